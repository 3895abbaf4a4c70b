import hashlib
import inspect
from typing import Callable, Optional, Union

# Placebo data provider - set by whoever wants canned answers
_placebo_data_provider: Optional[Callable[..., Union[str, tuple, None]]] = None

_models = []


def set_placebo_data_provider(models: list, provider: Optional[Callable[..., Union[str, tuple,
                                                                                   None]]]) -> None:
  """
  Set the placebo data provider function.

  Args:
      models: names to expose as placebo model configs
      provider: A function that takes (model_name, system_prompt, prompt) and returns
                the answer text, or a (text, reasoning) or (text, reasoning, cost)
                tuple. Returning None produces an empty answer.
  """
  global _placebo_data_provider
  global _models
  _models = list(models)
  _placebo_data_provider = provider


def clear_placebo_data_provider() -> None:
  set_placebo_data_provider([], None)


class PlaceboEngine:
  """
  Placebo AI Engine class for testing with pre-defined responses.

  This engine doesn't make any API calls. It is handy for dry runs of a new
  suite and for exercising the scheduler without a network.
  """

  def __init__(self, model_name: str):
    self.model_name = model_name
    self.configAndSettingsHash = hashlib.sha256(f"Placebo:{model_name}".encode("utf-8")).hexdigest()

  @staticmethod
  def _call_provider(provider: Callable, model_name: str, system_prompt: str, prompt: str):
    signature = inspect.signature(provider)
    params = list(signature.parameters.values())
    supports_varargs = any(param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
                           for param in params)
    if supports_varargs or len(params) >= 3:
      return provider(model_name, system_prompt, prompt)
    if len(params) == 2:
      return provider(model_name, prompt)
    raise ValueError("Placebo data provider must accept (model_name, system_prompt, prompt).")

  def AIHook(self, system_prompt: str, prompt: str) -> tuple:
    if _placebo_data_provider is None:
      return "", "", 0.0

    result = self._call_provider(_placebo_data_provider, self.model_name, system_prompt, prompt)
    if result is None:
      return "", "", 0.0
    if isinstance(result, str):
      return result, "", 0.0

    text = result[0] or ""
    reasoning = result[1] if len(result) > 1 else ""
    cost = float(result[2]) if len(result) > 2 else 0.0
    return text, reasoning, cost


def get_placebo_model_configs() -> list:
  configs = []
  for raw_name in _models:
    name = raw_name.strip()
    if not name:
      continue
    configs.append({
      "name": name,
      "engine": "placebo",
      "enabled": True,
      "env_key": None,
      "placebo_id": name,
    })
  return configs
