import datetime
import json
import os

from PromptBench.ResultStore import (artifact_timestamp, extract_text_from_stored_result,
                                     find_previous_results, iso_timestamp, suite_results_dir,
                                     write_run_artifacts)
from PromptBench.Scoring import compute_test_signature
from PromptBench.TestSuite import TestSuite


def _suite(suite_dict):
  return TestSuite.model_validate(suite_dict)


def _stored_run(model, prompt, answers, text, negative_answers=None, nested=False, cost=0.001):
  result = {"result": {"text": text}} if nested else {"text": text, "correct": True}
  run = {
    "model": model,
    "testIndex": 0,
    "runNumber": 1,
    "prompt": prompt,
    "expectedAnswers": answers,
    "result": result,
    "duration": 120,
    "cost": cost,
  }
  if negative_answers is not None:
    run["negativeAnswers"] = negative_answers
  return run


def _write(path, runs, suite_name="Skate Tricks"):
  os.makedirs(os.path.dirname(path), exist_ok=True)
  with open(path, "w", encoding="utf-8") as f:
    json.dump({"metadata": {"testSuite": suite_name}, "results": runs}, f)


def test_timestamps():
  now = datetime.datetime(2025, 7, 1, 12, 30, 45, 123000, tzinfo=datetime.timezone.utc)
  assert iso_timestamp(now) == "2025-07-01T12:30:45.123Z"
  assert artifact_timestamp(now) == "2025-07-01T12-30-45-123Z"


def test_suite_results_dir(tmp_path):
  assert suite_results_dir("results", "skate", "v1") == os.path.join("results", "skate", "v1")
  assert suite_results_dir("results", "skate") == os.path.join("results", "skate", "unversioned")


def test_extract_text_from_stored_result():
  assert extract_text_from_stored_result({"text": "a"}) == "a"
  assert extract_text_from_stored_result({"result": {"text": "b"}}) == "b"
  assert extract_text_from_stored_result({"correct": True}) is None
  assert extract_text_from_stored_result("text") is None


def test_find_previous_results_indexes_by_signature(tmp_path, suite_dict):
  suite = _suite(suite_dict)
  test = suite_dict["tests"][0]
  output = str(tmp_path / "results")
  _write(os.path.join(output, "skate-tricks", "v1", "test-results-a.json"), [
    _stored_run("kimi-k2", test["prompt"], test["answers"], "tre flip",
                test["negative_answers"]),
    _stored_run("grok-3-mini", test["prompt"], test["answers"], "360 flip",
                test["negative_answers"], nested=True),
  ])

  previous = find_previous_results("skate-tricks", suite, output)

  signature = compute_test_signature(suite.system_prompt, test["prompt"], test["answers"],
                                     test["negative_answers"])
  entries = previous[signature]
  assert [e.model for e in entries] == ["kimi-k2", "grok-3-mini"]
  assert [e.text for e in entries] == ["tre flip", "360 flip"]
  assert entries[0].cost == 0.001
  assert entries[0].source_file.endswith("test-results-a.json")


def test_find_previous_results_skips_summaries_other_suites_and_garbage(tmp_path, suite_dict):
  suite = _suite(suite_dict)
  test = suite_dict["tests"][1]
  output = str(tmp_path / "results")
  run = _stored_run("kimi-k2", test["prompt"], test["answers"], "heelflip")
  suite_dir = os.path.join(output, "skate-tricks", "v1")

  _write(os.path.join(suite_dir, "summary-a.json"), [run])
  _write(os.path.join(suite_dir, "other-suite.json"), [run], suite_name="Other Suite")
  with open(os.path.join(suite_dir, "broken.json"), "w", encoding="utf-8") as f:
    f.write("{oops")
  _write(os.path.join(suite_dir, "no-text.json"),
         [dict(run, result={"correct": False}), dict(run, model="")])

  assert find_previous_results("skate-tricks", suite, output) == {}


def test_find_previous_results_scans_suite_dir_first(tmp_path, suite_dict):
  suite = _suite(suite_dict)
  test = suite_dict["tests"][1]
  output = str(tmp_path / "results")
  _write(os.path.join(output, "aaa-legacy.json"),
         [_stored_run("kimi-k2", test["prompt"], test["answers"], "legacy heelflip")])
  _write(os.path.join(output, "skate-tricks", "v1", "test-results-a.json"),
         [_stored_run("kimi-k2", test["prompt"], test["answers"], "suite heelflip")])

  previous = find_previous_results("skate-tricks", suite, output)

  (entries,) = previous.values()
  assert [e.text for e in entries] == ["suite heelflip", "legacy heelflip"]


def test_find_previous_results_missing_output_dir(tmp_path, suite_dict):
  assert find_previous_results("skate-tricks", _suite(suite_dict), str(tmp_path / "none")) == {}


def test_write_run_artifacts(tmp_path):
  suite_dir = str(tmp_path / "results" / "skate-tricks" / "v1")
  output_data = {"metadata": {"testSuite": "Skate Tricks"}, "results": []}
  summary = {"rankings": [], "metadata": {}}

  paths = write_run_artifacts(suite_dir, "2025-07-01T12-30-45-123Z", output_data, "# Report\n",
                              summary)

  assert os.path.basename(paths["results"]) == "test-results-2025-07-01T12-30-45-123Z.json"
  assert os.path.basename(paths["markdown"]) == "test-results-2025-07-01T12-30-45-123Z.md"
  assert os.path.basename(paths["summary"]) == "summary-2025-07-01T12-30-45-123Z.json"
  with open(paths["results"], encoding="utf-8") as f:
    assert json.load(f) == output_data
  with open(paths["markdown"], encoding="utf-8") as f:
    assert f.read() == "# Report\n"
  with open(paths["summary"], encoding="utf-8") as f:
    assert json.load(f) == summary
