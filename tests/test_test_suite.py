import json

import pytest

from PromptBench.TestSuite import (SuiteFormatError, compute_suite_id, find_test_suites,
                                   load_suite_from_file, resolve_suite_id, slugify)


def test_load_suite_from_file(suite_file):
  suite = load_suite_from_file(str(suite_file))

  assert suite.name == "Skate Tricks"
  assert suite.id == "skate-tricks"
  assert len(suite.tests) == 2
  assert suite.tests[0].negative_answers == ["backside 360 kickflip", "360 heelflip"]
  assert suite.tests[1].negative_answers is None


def test_load_rejects_missing_answers(tmp_path, suite_dict):
  suite_dict["tests"][0]["answers"] = []
  path = tmp_path / "bad.json"
  path.write_text(json.dumps(suite_dict), encoding="utf-8")

  with pytest.raises(SuiteFormatError) as excinfo:
    load_suite_from_file(str(path))
  assert "bad.json" in str(excinfo.value)


def test_load_rejects_malformed_json(tmp_path):
  path = tmp_path / "broken.json"
  path.write_text("{not json", encoding="utf-8")

  with pytest.raises(SuiteFormatError):
    load_suite_from_file(str(path))


def test_load_missing_file_is_a_format_error(tmp_path):
  with pytest.raises(SuiteFormatError):
    load_suite_from_file(str(tmp_path / "nope.json"))


def test_find_test_suites_skips_invalid_and_non_json(tmp_path, suite_file):
  suites_dir = suite_file.parent
  (suites_dir / "broken.json").write_text("[]", encoding="utf-8")
  (suites_dir / "notes.txt").write_text("hello", encoding="utf-8")

  found = find_test_suites(str(suites_dir))

  assert [s.name for _, s in found] == ["Skate Tricks"]
  assert found[0][0].endswith("skate-tricks.json")


def test_slugify():
  assert slugify("Skate Tricks!") == "skate-tricks"
  assert slugify("  --Weird__Name  ") == "weird-name"


def test_compute_suite_id_prefers_explicit_id():
  assert compute_suite_id("custom", "Skate Tricks") == "custom"
  assert compute_suite_id("", "Skate Tricks") == "skate-tricks"
  assert compute_suite_id(None, "Skate Tricks") == "skate-tricks"


def test_resolve_suite_id_falls_back_to_file_stem(tmp_path, suite_dict):
  del suite_dict["id"]
  path = tmp_path / "tricks-v2.json"
  path.write_text(json.dumps(suite_dict), encoding="utf-8")
  suite = load_suite_from_file(str(path))

  assert resolve_suite_id(suite, str(path)) == "tricks-v2"
  assert resolve_suite_id(suite) == "skate-tricks"
