from PromptBench.Reports import (build_summary, compute_model_rankings, count_outcomes,
                                 generate_markdown_report)
from PromptBench.TestSuite import TestSuite


def _run(model, test_index, run_number, correct=None, error=None, duration=100, cost=0.0,
         text="answer"):
  run = {
    "model": model,
    "testIndex": test_index,
    "runNumber": run_number,
    "prompt": f"prompt {test_index}",
    "expectedAnswers": ["tre flip", "360 flip"],
    "duration": duration,
    "cost": cost,
  }
  if error:
    run["error"] = error
  else:
    run["result"] = {"text": text, "correct": correct}
  return run


RESULTS = [
  _run("b-model", 0, 2, correct=False, duration=300, cost=0.02, text="laser flip"),
  _run("a-model", 0, 1, correct=True, duration=100, cost=0.01, text="a  tre\nflip"),
  _run("b-model", 0, 1, error="Test timeout", duration=200),
  _run("a-model", 1, 1, correct=True, duration=300, cost=0.01),
]


def test_count_outcomes():
  assert count_outcomes(RESULTS) == (2, 1, 1)


def test_rankings_sorted_by_success_then_duration():
  rankings = compute_model_rankings(RESULTS)

  assert [r["model"] for r in rankings] == ["a-model", "b-model"]
  a, b = rankings
  assert a["successRate"] == 100
  assert a["averageDuration"] == 200
  assert a["totalCost"] == 0.02
  assert a["averageCostPerTest"] == 0.01
  assert b["correct"] == 0 and b["incorrect"] == 1 and b["errors"] == 1
  assert b["errorRate"] == 50


def test_rankings_tie_broken_by_faster_model():
  results = [
    _run("slow", 0, 1, correct=True, duration=900),
    _run("fast", 0, 1, correct=True, duration=100),
  ]
  assert [r["model"] for r in compute_model_rankings(results)] == ["fast", "slow"]


def test_build_summary():
  summary = build_summary(RESULTS, {"maxConcurrency": 2}, "Skate Tricks", "skate-tricks", None,
                          "2025-07-01T12:30:45.123Z")

  meta = summary["metadata"]
  assert meta["totalModels"] == 2
  assert meta["totalTestsRun"] == 4
  assert meta["overallCorrect"] == 2
  assert meta["overallErrors"] == 1
  assert meta["overallSuccessRate"] == 50
  assert meta["version"] is None
  assert meta["config"] == {"maxConcurrency": 2}
  assert len(summary["rankings"]) == 2


def test_markdown_report(suite_dict):
  suite = TestSuite.model_validate(suite_dict)
  metadata = {
    "testSuite": "Skate Tricks",
    "timestamp": "2025-07-01T12:30:45.123Z",
    "version": "v1",
    "totalTests": 4,
    "successful": 2,
    "failed": 2,
    "models": ["a-model", "b-model"],
  }

  markdown = generate_markdown_report(RESULTS, metadata, suite)

  assert markdown.startswith("# Skate Tricks - Test Results\n\n")
  assert "**Version:** v1" in markdown
  assert "**Models:** a-model, b-model" in markdown
  assert markdown.index("## Test 1") < markdown.index("## Test 2")
  assert '**Expected answers:** "tre flip", "360 flip"' in markdown
  assert '**Negative answers (automatic fail):** "backside 360 kickflip", "360 heelflip"' in markdown
  assert '**a-model answer 1:** ✅ "a tre flip"' in markdown
  assert "**b-model answer 1:** ❌ Error: Test timeout" in markdown
  assert '**b-model answer 2:** ❌ "laser flip"' in markdown
  assert markdown.index("**a-model answer 1:**") < markdown.index("**b-model answer 1:**")
  assert markdown.index("**b-model answer 1:**") < markdown.index("**b-model answer 2:**")
  assert markdown.count("---\n\n") == 2


def test_markdown_report_without_version(suite_dict):
  suite = TestSuite.model_validate(suite_dict)
  metadata = {
    "testSuite": "Skate Tricks",
    "timestamp": "2025-07-01T12:30:45.123Z",
    "version": None,
    "totalTests": 0,
    "successful": 0,
    "failed": 0,
    "models": [],
  }
  assert "**Version:** (none)" in generate_markdown_report([], metadata, suite)


def test_markdown_orders_models_case_insensitively(suite_dict):
  suite = TestSuite.model_validate(suite_dict)
  results = [
    _run("claude-y", 0, 1, correct=True),
    _run("GPT-x", 0, 1, correct=True),
  ]
  metadata = {
    "testSuite": "Skate Tricks",
    "timestamp": "2025-07-01T12:30:45.123Z",
    "version": None,
    "totalTests": 2,
    "successful": 2,
    "failed": 0,
    "models": ["GPT-x", "claude-y"],
  }

  markdown = generate_markdown_report(results, metadata, suite)

  assert markdown.index("**claude-y answer 1:**") < markdown.index("**GPT-x answer 1:**")
