import json
from typing import List, Optional


def is_correct(answers: List[str], negative_answers: Optional[List[str]], result: str) -> bool:
  """
  Case-insensitive substring grading.

  Any negative answer in the result is an automatic fail, even when an expected
  answer is also present. Otherwise one expected answer is enough to pass.
  """
  result_lower = (result or "").lower()

  if negative_answers:
    if any(answer.lower() in result_lower for answer in negative_answers):
      return False

  return any(answer.lower() in result_lower for answer in answers)


def _normalize_answers(answers: Optional[List[str]]) -> List[str]:
  return sorted(a.strip().lower() for a in (answers or []))


def compute_test_signature(system_prompt: str, prompt: str, answers: List[str],
                           negative_answers: Optional[List[str]] = None) -> str:
  """Stable key used to match a test case against previously stored results."""
  normalized = {
    "system_prompt": system_prompt.strip(),
    "prompt": prompt.strip(),
    "answers": _normalize_answers(answers),
    "negative_answers": _normalize_answers(negative_answers),
  }
  return json.dumps(normalized, separators=(",", ":"), ensure_ascii=False)
