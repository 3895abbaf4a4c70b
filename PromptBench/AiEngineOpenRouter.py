"""
OpenRouter AI Engine for PromptBench

This module reaches every hosted model through OpenRouter's OpenAI-compatible
chat completions endpoint, using the official openai SDK.

Setup:
1. Install the SDK: pip install openai
2. Set your API key as an environment variable:
   - Windows: set OPENROUTER_API_KEY=your_api_key_here
   - Linux/Mac: export OPENROUTER_API_KEY=your_api_key_here

Get your API key from: https://openrouter.ai/keys

Usage accounting is requested on every call so the response carries the
dollar cost of the request: https://openrouter.ai/docs/use-cases/usage-accounting
"""

import hashlib
import os

from .BenchConfig import OPENROUTER_ENV_KEY, REASONING_MAX_TOKENS

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterEngine:
  """
  OpenRouter AI Engine class.

  Configuration parameters:
  - model: OpenRouter model slug (e.g., "moonshotai/kimi-k2")
  - reasoning: when True, a reasoning token budget is sent along with the request
  - reasoning_max_tokens: size of that budget
  - request_timeout: hard HTTP timeout handed to the SDK, in seconds
  """

  def __init__(self,
               model: str,
               reasoning=False,
               reasoning_max_tokens: int = REASONING_MAX_TOKENS,
               request_timeout: float = 3600):
    self.model = model
    self.reasoning = reasoning
    self.reasoning_max_tokens = reasoning_max_tokens
    self.request_timeout = request_timeout
    self.configAndSettingsHash = hashlib.sha256(model.encode() + str(reasoning).encode() +
                                                str(reasoning_max_tokens).encode()).hexdigest()
    self._client = None

  def _get_client(self):
    if self._client is None:
      from openai import OpenAI
      self._client = OpenAI(base_url=OPENROUTER_BASE_URL,
                            api_key=os.environ.get(OPENROUTER_ENV_KEY),
                            timeout=self.request_timeout)
    return self._client

  def AIHook(self, system_prompt: str, prompt: str) -> tuple:
    """
    Ask the model a single stateless question.

    Returns (text, chainOfThought, cost). Provider errors are raised to the
    caller, which records them against the run.
    """
    client = self._get_client()
    params = build_openrouter_params(system_prompt, prompt, self.model, self.reasoning,
                                     self.reasoning_max_tokens)
    response = client.chat.completions.create(**params)
    return parse_openrouter_response(response)


def build_openrouter_params(system_prompt: str, prompt: str, model: str, reasoning,
                            reasoning_max_tokens: int = REASONING_MAX_TOKENS) -> dict:
  messages = []
  if system_prompt:
    messages.append({"role": "system", "content": system_prompt})
  messages.append({"role": "user", "content": prompt})

  extra_body = {"usage": {"include": True}}
  if reasoning:
    extra_body["reasoning"] = {"max_tokens": reasoning_max_tokens}

  return {"model": model, "messages": messages, "extra_body": extra_body}


def extract_cost(usage) -> float:
  """Read OpenRouter's `usage.cost`, which the SDK keeps as an extra field."""
  if usage is None:
    return 0.0
  cost = getattr(usage, "cost", None)
  if cost is None and isinstance(usage, dict):
    cost = usage.get("cost")
  try:
    return float(cost) if cost is not None else 0.0
  except (TypeError, ValueError):
    return 0.0


def parse_openrouter_response(response) -> tuple:
  if not response.choices:
    raise RuntimeError("OpenRouter returned no choices")

  message = response.choices[0].message
  text = message.content or ""
  chainOfThought = getattr(message, "reasoning", None) or ""

  return text, chainOfThought, extract_cost(getattr(response, "usage", None))
