"""
On-disk results for PromptBench.

Every run writes three files into <output>/<suiteId>/<version>/:

  test-results-<timestamp>.json   every run with metadata
  test-results-<timestamp>.md     human readable report
  summary-<timestamp>.json        per-model rankings

The test-results JSON files double as the reuse cache: before scheduling, all
of them are scanned and indexed by test signature so matching runs can be
answered from disk instead of calling the model again.
"""

import datetime
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from filelock import FileLock

from .Scoring import compute_test_signature
from .TestSuite import TestSuite

UNVERSIONED = "unversioned"
SUMMARY_PREFIX = "summary-"


@dataclass
class PreviousResultEntry:
  model: str
  prompt: str
  expected_answers: List[str]
  negative_answers: Optional[List[str]]
  text: str
  source_file: str
  correct: Optional[bool] = None
  duration: Optional[float] = None
  cost: Optional[float] = None


def artifact_timestamp(now: Optional[datetime.datetime] = None) -> str:
  """ISO timestamp that is safe to use in a file name."""
  return iso_timestamp(now).replace(":", "-").replace(".", "-")


def iso_timestamp(now: Optional[datetime.datetime] = None) -> str:
  if now is None:
    now = datetime.datetime.now(datetime.timezone.utc)
  return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def suite_results_dir(output_directory: str, suite_id: str, version: Optional[str] = None) -> str:
  return os.path.join(output_directory, suite_id, version or UNVERSIONED)


def _walk_json_files(directory: str) -> List[str]:
  found = []
  if not os.path.isdir(directory):
    return found
  for root, dirs, files in os.walk(directory):
    dirs.sort()
    for name in sorted(files):
      if name.endswith(".json") and not name.startswith(SUMMARY_PREFIX):
        found.append(os.path.join(root, name))
  return found


def extract_text_from_stored_result(result_obj: Any) -> Optional[str]:
  if not isinstance(result_obj, dict):
    return None
  if isinstance(result_obj.get("text"), str):
    return result_obj["text"]
  nested = result_obj.get("result")
  if isinstance(nested, dict) and isinstance(nested.get("text"), str):
    return nested["text"]
  return None


def _load_results_file(file_path: str) -> Optional[Dict[str, Any]]:
  try:
    with open(file_path, "r", encoding="utf-8") as f:
      parsed = json.load(f)
  except (OSError, UnicodeDecodeError, json.JSONDecodeError):
    return None
  if not isinstance(parsed, dict) or not isinstance(parsed.get("results"), list):
    return None
  return parsed


def find_previous_results(suite_id: str, suite: TestSuite,
                          output_directory: str) -> Dict[str, List[PreviousResultEntry]]:
  """
  Index every stored answer for this suite by test signature.

  The per-suite directory is scanned before the rest of the output directory,
  so answers stored under the suite id are reused first. Files from other
  suites, malformed files and entries without answer text are ignored.
  """
  previous: Dict[str, List[PreviousResultEntry]] = {}

  discovered = []
  seen = set()
  for base in (os.path.join(output_directory, suite_id), output_directory):
    for file_path in _walk_json_files(base):
      key = os.path.normcase(os.path.abspath(file_path))
      if key not in seen:
        seen.add(key)
        discovered.append(file_path)

  for file_path in discovered:
    parsed = _load_results_file(file_path)
    if parsed is None:
      continue

    metadata = parsed.get("metadata")
    suite_name_in_file = metadata.get("testSuite") if isinstance(metadata, dict) else None
    if suite_name_in_file and suite_name_in_file != suite.name:
      continue

    for r in parsed["results"]:
      if not isinstance(r, dict):
        continue
      prompt = r.get("prompt")
      expected_answers = r.get("expectedAnswers")
      negative_answers = r.get("negativeAnswers") or r.get("negative_answers")
      model = r.get("model")
      text = extract_text_from_stored_result(r.get("result"))
      if not prompt or not expected_answers or not model or not text:
        continue

      signature = compute_test_signature(suite.system_prompt, prompt, expected_answers,
                                         negative_answers)
      stored = r.get("result") or {}
      previous.setdefault(signature, []).append(
        PreviousResultEntry(model=model,
                            prompt=prompt,
                            expected_answers=expected_answers,
                            negative_answers=negative_answers,
                            text=text,
                            source_file=file_path,
                            correct=stored.get("correct", r.get("correct")),
                            duration=r.get("duration"),
                            cost=r.get("cost")))

  return previous


def write_json(file_path: str, data: Any) -> None:
  with open(file_path, "w", encoding="utf-8") as f:
    json.dump(data, f, indent=2, ensure_ascii=False)


def write_run_artifacts(suite_dir: str, timestamp: str, output_data: Dict[str, Any],
                        markdown: str, summary: Dict[str, Any]) -> Dict[str, str]:
  """Write the results, report and summary for one run. Returns their paths."""
  if not os.path.exists(suite_dir):
    os.makedirs(suite_dir, exist_ok=True)
    print(f"Created output directory: {suite_dir}")

  paths = {
    "results": os.path.join(suite_dir, f"test-results-{timestamp}.json"),
    "markdown": os.path.join(suite_dir, f"test-results-{timestamp}.md"),
    "summary": os.path.join(suite_dir, f"{SUMMARY_PREFIX}{timestamp}.json"),
  }

  with FileLock(os.path.join(suite_dir, ".write.lock"), timeout=60):
    write_json(paths["results"], output_data)
    print(f"Results saved to: {paths['results']}")

    with open(paths["markdown"], "w", encoding="utf-8") as f:
      f.write(markdown)
    print(f"Markdown report saved to: {paths['markdown']}")

    write_json(paths["summary"], summary)
    print(f"Summary saved to: {paths['summary']}")

  return paths
