"""
PromptBench - repeated-run LLM benchmarking over JSON test suites

This package provides:
- TestSuite: suite format, loading and discovery
- Scoring: substring scoring with negative answers and test signatures
- Scheduler: worker pool that runs every test N times per model, reusing stored answers
- ResultStore / Reports: result files, Markdown report and per-model rankings
- ProgressBoard: live rich table fed by runner events
- TestRunner: command line entry point
"""

from .BenchConfig import (
  RunSettings,
  get_default_model_configs,
  is_model_available,
  select_model_configs,
)
from .TestSuite import (
  TestCase,
  TestSuite,
  SuiteFormatError,
  load_suite_from_file,
  find_test_suites,
  compute_suite_id,
  resolve_suite_id,
)
from .Scoring import is_correct, compute_test_signature
from .ResultStore import (
  PreviousResultEntry,
  find_previous_results,
  suite_results_dir,
  write_run_artifacts,
)
from .Reports import generate_markdown_report, compute_model_rankings, build_summary
from .Scheduler import (
  JobType,
  WorkItem,
  TestRun,
  RunResult,
  RunnerEvent,
  TestRunnerOptions,
  TestScheduler,
  TestTimeoutError,
  call_with_timeout,
  plan_test_jobs,
  test_runner,
)
from .ProgressBoard import ModelStats, ProgressBoard
from .TestRunner import main, create_argument_parser, parse_test_filter

__all__ = [
  'RunSettings',
  'get_default_model_configs',
  'is_model_available',
  'select_model_configs',
  'TestCase',
  'TestSuite',
  'SuiteFormatError',
  'load_suite_from_file',
  'find_test_suites',
  'compute_suite_id',
  'resolve_suite_id',
  'is_correct',
  'compute_test_signature',
  'PreviousResultEntry',
  'find_previous_results',
  'suite_results_dir',
  'write_run_artifacts',
  'generate_markdown_report',
  'compute_model_rankings',
  'build_summary',
  'JobType',
  'WorkItem',
  'TestRun',
  'RunResult',
  'RunnerEvent',
  'TestRunnerOptions',
  'TestScheduler',
  'TestTimeoutError',
  'call_with_timeout',
  'plan_test_jobs',
  'test_runner',
  'ModelStats',
  'ProgressBoard',
  'main',
  'create_argument_parser',
  'parse_test_filter',
]
