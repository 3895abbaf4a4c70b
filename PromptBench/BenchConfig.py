"""
Benchmark configuration for PromptBench.

Defaults live in module constants and can be overridden through environment
variables. Model configurations are plain dicts so the CLI can list, filter
and skip them without instantiating an engine.
"""

import fnmatch
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


def _env_int(name: str, default: int) -> int:
  raw = os.environ.get(name)
  if raw is None or raw.strip() == "":
    return default
  try:
    value = int(raw)
  except ValueError:
    raise ValueError(f"{name} must be an integer, got '{raw}'")
  if value < 1:
    raise ValueError(f"{name} must be at least 1, got {value}")
  return value


OUTPUT_DIRECTORY = os.environ.get("PROMPTBENCH_OUTPUT_DIR", "results")
TESTS_DIRECTORY = os.environ.get("PROMPTBENCH_TESTS_DIR", "suites")

# Defaults; PROMPTBENCH_* overrides are read by RunSettings.from_environment()
MAX_CONCURRENCY = 30
TEST_RUNS_PER_MODEL = 30
TIMEOUT_SECONDS = 200

# Token budget handed to reasoning models
REASONING_MAX_TOKENS = 2048

OPENROUTER_ENV_KEY = "OPENROUTER_API_KEY"


@dataclass
class RunSettings:
  """Knobs for a single benchmark run."""
  max_concurrency: int = MAX_CONCURRENCY
  runs_per_model: int = TEST_RUNS_PER_MODEL
  timeout_seconds: float = TIMEOUT_SECONDS
  output_directory: str = OUTPUT_DIRECTORY
  force: bool = False  # ignore previous results, execute everything
  offline: bool = False  # never call a model, reuse only

  def __post_init__(self):
    if self.max_concurrency < 1:
      raise ValueError("max_concurrency must be at least 1")
    if self.runs_per_model < 1:
      raise ValueError("runs_per_model must be at least 1")
    if self.timeout_seconds <= 0:
      raise ValueError("timeout_seconds must be positive")

  @classmethod
  def from_environment(cls) -> "RunSettings":
    return cls(max_concurrency=_env_int("PROMPTBENCH_MAX_CONCURRENCY", MAX_CONCURRENCY),
               runs_per_model=_env_int("PROMPTBENCH_RUNS_PER_MODEL", TEST_RUNS_PER_MODEL),
               timeout_seconds=_env_int("PROMPTBENCH_TIMEOUT_SECONDS", TIMEOUT_SECONDS),
               output_directory=os.environ.get("PROMPTBENCH_OUTPUT_DIR", OUTPUT_DIRECTORY))

  def to_metadata(self) -> Dict[str, Any]:
    return {
      "maxConcurrency": self.max_concurrency,
      "testRunsPerModel": self.runs_per_model,
      "timeoutSeconds": self.timeout_seconds,
    }


# (name, OpenRouter slug, reasoning, enabled)
OPENROUTER_MODELS = [
  ("kimi-k2", "moonshotai/kimi-k2", False, True),
  ("grok-3-mini", "x-ai/grok-3-mini-beta", True, True),
  ("qwen-3-32b", "qwen/qwen3-32b", True, True),
  ("grok-4", "x-ai/grok-4", True, False),
  ("gemini-2.5-pro", "google/gemini-2.5-pro-preview", True, False),
  ("claude-4-sonnet", "anthropic/claude-sonnet-4", True, False),
  ("claude-4-opus", "anthropic/claude-opus-4", True, False),
  ("o4-mini", "openai/o4-mini", True, False),
  ("o3", "openai/o3", True, False),
  ("gpt-4.1", "openai/gpt-4.1", True, False),
  ("gpt-4o", "openai/gpt-4o", True, False),
  ("gemini-2.0-flash", "google/gemini-2.0-flash-001", False, False),
  ("claude-3-5-sonnet", "anthropic/claude-3.5-sonnet", False, False),
  ("claude-3-7-sonnet", "anthropic/claude-3.7-sonnet", False, False),
  ("claude-3-7-sonnet-thinking", "anthropic/claude-3.7-sonnet:thinking", True, False),
]


def get_default_model_configs() -> List[Dict[str, Any]]:
  """
  Returns the default list of model configurations.

  Placebo models registered through AiEnginePlacebo come first, followed by
  the OpenRouter models. Disabled models are only run when named explicitly.
  """
  configs = []

  from .AiEnginePlacebo import get_placebo_model_configs
  configs.extend(get_placebo_model_configs())

  for name, slug, reasoning, enabled in OPENROUTER_MODELS:
    configs.append({
      "name": name,
      "engine": "openrouter",
      "base_model": slug,
      "reasoning": reasoning,
      "enabled": enabled,
      "env_key": OPENROUTER_ENV_KEY
    })

  return configs


def is_model_available(config: Dict[str, Any]) -> bool:
  env_key = config.get("env_key")
  return env_key is None or bool(os.environ.get(env_key))


def select_model_configs(configs: List[Dict[str, Any]],
                         models_arg: Optional[str] = None) -> List[Dict[str, Any]]:
  """
  Pick model configs from a comma-separated list of names or wildcard patterns.

  Without an argument, every enabled config is returned. Patterns use * and ?,
  matching is case-insensitive and a leading ^ excludes whatever the pattern
  matches. Order follows the config list.
  """
  if not models_arg:
    return [c for c in configs if c.get("enabled", True)]

  all_model_names = [c["name"] for c in configs]
  patterns = [m.strip() for m in models_arg.split(",") if m.strip()]
  matched_models = set()

  for pattern in patterns:
    if '*' in pattern or '?' in pattern:
      if pattern.startswith("^"):
        matches = [
          name for name in all_model_names
          if not fnmatch.fnmatch(name.lower(), pattern[1:].lower())
        ]
      else:
        matches = [
          name for name in all_model_names if fnmatch.fnmatch(name.lower(), pattern.lower())
        ]
      if not matches:
        print(f"Warning: Pattern '{pattern}' did not match any models")
      matched_models.update(matches)
    else:
      exact_match = next((name for name in all_model_names if name.lower() == pattern.lower()),
                         None)
      if exact_match:
        matched_models.add(exact_match)
      else:
        print(f"Error: Model '{pattern}' not found. Use --list-models to see available models.")

  if not matched_models:
    raise ValueError("No models matched '" + models_arg + "'")

  return [c for c in configs if c["name"] in matched_models]
