"""
Report generation for PromptBench.

Both functions here work on the serialised run results (the dicts stored in
test-results-*.json) so a report can be regenerated from any stored file.
"""

import datetime
import re
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

from .TestSuite import TestSuite


def count_outcomes(results: List[Dict[str, Any]]) -> Tuple[int, int, int]:
  """Return (correct, incorrect, errors)."""
  correct = incorrect = errors = 0
  for r in results:
    if r.get("error"):
      errors += 1
    elif (r.get("result") or {}).get("correct"):
      correct += 1
    else:
      incorrect += 1
  return correct, incorrect, errors


def _format_date(timestamp: str) -> str:
  try:
    parsed = datetime.datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
  except (AttributeError, ValueError):
    return str(timestamp)
  return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _quoted_list(values: List[str]) -> str:
  return ", ".join(f'"{v}"' for v in values)


def generate_markdown_report(results: List[Dict[str, Any]], metadata: Dict[str, Any],
                             suite: TestSuite) -> str:
  markdown = f"# {metadata['testSuite']} - Test Results\n\n"

  markdown += f"**Date:** {_format_date(metadata['timestamp'])}\n"
  markdown += f"**Version:** {metadata.get('version') or '(none)'}\n"
  markdown += f"**Total Tests:** {metadata['totalTests']}\n"
  markdown += f"**Successful:** {metadata['successful']}\n"
  markdown += f"**Failed:** {metadata['failed']}\n"
  markdown += f"**Models:** {', '.join(metadata['models'])}\n\n"

  test_groups: Dict[int, List[Dict[str, Any]]] = {}
  for result in results:
    test_groups.setdefault(result["testIndex"], []).append(result)

  for test_index in sorted(test_groups):
    test_results = test_groups[test_index]
    first_result = test_results[0]

    markdown += f"## Test {test_index + 1}\n\n"
    markdown += f"**Prompt:** \"{first_result['prompt']}\"\n\n"
    markdown += f"**Expected answers:** {_quoted_list(first_result['expectedAnswers'])}\n\n"

    negative_answers = None
    if 0 <= test_index < len(suite.tests):
      negative_answers = suite.tests[test_index].negative_answers
    if negative_answers:
      markdown += f"**Negative answers (automatic fail):** {_quoted_list(negative_answers)}\n\n"

    for result in sorted(test_results,
                         key=lambda r: (r["model"].lower(), r["model"], r["runNumber"])):
      label = f"**{result['model']} answer {result['runNumber']}:**"
      if result.get("error"):
        markdown += f"{label} ❌ Error: {result['error']}\n\n"
      elif result.get("result") is not None:
        stored = result["result"]
        raw_answer = stored.get("text") or (stored.get("result") or {}).get("text") \
            or "No text response"
        answer = re.sub(r"\s+", " ", raw_answer.strip())
        status = "✅" if stored.get("correct") else "❌"
        markdown += f"{label} {status} \"{answer}\"\n\n"

    markdown += "---\n\n"

  return markdown


def compute_model_rankings(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
  model_stats: "OrderedDict[str, Dict[str, float]]" = OrderedDict()
  for result in results:
    stats = model_stats.setdefault(
      result["model"], {
        "correct": 0,
        "incorrect": 0,
        "errors": 0,
        "totalDuration": 0,
        "totalTests": 0,
        "totalCost": 0.0,
      })
    stats["totalTests"] += 1
    if result.get("error"):
      stats["errors"] += 1
    elif (result.get("result") or {}).get("correct"):
      stats["correct"] += 1
    else:
      stats["incorrect"] += 1
    stats["totalDuration"] += result.get("duration") or 0
    stats["totalCost"] += result.get("cost") or 0

  rankings = []
  for model_name, stats in model_stats.items():
    total = stats["totalTests"]
    rankings.append({
      "model": model_name,
      "correct": stats["correct"],
      "incorrect": stats["incorrect"],
      "errors": stats["errors"],
      "totalTests": total,
      "successRate": (stats["correct"] / total) * 100 if total > 0 else 0,
      "errorRate": (stats["errors"] / total) * 100 if total > 0 else 0,
      "averageDuration": round(stats["totalDuration"] / total) if total > 0 else 0,
      "totalCost": stats["totalCost"],
      "averageCostPerTest": stats["totalCost"] / total if total > 0 else 0,
    })

  # Best success rate first, faster model wins a tie
  rankings.sort(key=lambda r: (-r["successRate"], r["averageDuration"]))
  return rankings


def build_summary(results: List[Dict[str, Any]], config: Dict[str, Any], suite_name: str,
                  suite_id: str, version: Optional[str], timestamp: str) -> Dict[str, Any]:
  rankings = compute_model_rankings(results)
  correct, incorrect, errors = count_outcomes(results)
  total = len(results)
  total_cost = sum(r.get("cost") or 0 for r in results)

  return {
    "rankings": rankings,
    "metadata": {
      "timestamp": timestamp,
      "totalModels": len(rankings),
      "totalTestsRun": total,
      "overallCorrect": correct,
      "overallIncorrect": incorrect,
      "overallErrors": errors,
      "overallSuccessRate": (correct / total) * 100 if total > 0 else 0,
      "overallErrorRate": (errors / total) * 100 if total > 0 else 0,
      "totalCost": total_cost,
      "averageCostPerTest": total_cost / total if total > 0 else 0,
      "config": config,
      "testSuite": suite_name,
      "suiteId": suite_id,
      "version": version or None,
    },
  }
