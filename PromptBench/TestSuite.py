"""
Test suite format for PromptBench.

A suite is a JSON file:

  {
    "id": "skate-tricks",            (optional)
    "name": "Skate Tricks",
    "description": "...",            (optional)
    "system_prompt": "...",
    "tests": [
      {"prompt": "...", "answers": ["..."], "negative_answers": ["..."]}
    ]
  }
"""

import os
import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class SuiteFormatError(ValueError):
  """Raised when a suite file cannot be parsed or validated."""

  def __init__(self, path: str, message: str):
    self.path = path
    super().__init__(f"Invalid test suite {path}: {message}")


class TestCase(BaseModel):
  __test__ = False
  model_config = ConfigDict(extra="ignore")

  prompt: str
  answers: List[str] = Field(min_length=1)
  negative_answers: Optional[List[str]] = None


class TestSuite(BaseModel):
  __test__ = False
  model_config = ConfigDict(extra="ignore")

  id: Optional[str] = None
  name: str
  description: Optional[str] = None
  system_prompt: str
  tests: List[TestCase]


def load_suite_from_file(file_path: str) -> TestSuite:
  try:
    with open(file_path, "r", encoding="utf-8") as f:
      raw = f.read()
  except OSError as e:
    raise SuiteFormatError(file_path, str(e))

  try:
    return TestSuite.model_validate_json(raw)
  except ValidationError as e:
    raise SuiteFormatError(file_path, str(e))


def find_test_suites(tests_dir: str) -> List[Tuple[str, TestSuite]]:
  """Return (file_path, suite) for every valid suite file directly inside tests_dir."""
  suites = []
  for entry in sorted(os.listdir(tests_dir)):
    file_path = os.path.join(tests_dir, entry)
    if not entry.endswith(".json") or not os.path.isfile(file_path):
      continue
    try:
      suites.append((file_path, load_suite_from_file(file_path)))
    except SuiteFormatError as e:
      print(f"Skipping {entry}: {e}")
  return suites


def slugify(name: str) -> str:
  slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
  return slug.strip("-")


def compute_suite_id(suite_id_or_stem: Optional[str], suite_name: str) -> str:
  if suite_id_or_stem and suite_id_or_stem.strip():
    return suite_id_or_stem
  return slugify(suite_name)


def resolve_suite_id(suite: TestSuite, suite_file_path: Optional[str] = None) -> str:
  candidate = suite.id
  if not candidate and suite_file_path:
    candidate = os.path.splitext(os.path.basename(suite_file_path))[0]
  return compute_suite_id(candidate, suite.name)

