"""
Command line entry point for PromptBench.

  promptbench -s skate-tricks                 # Run a suite on every enabled model
  promptbench                                 # Pick the suite interactively
  promptbench --list-suites                   # List suites in the tests directory
  promptbench --list-models                   # List model names and whether they can run
  promptbench -s skate-tricks -m "grok-*"     # Wildcard model selection
  promptbench -s skate-tricks -t 1,3-5 -r 5   # Tests 1, 3, 4, 5 with five runs each
  promptbench -s skate-tricks --force         # Ignore stored answers, execute every run
  promptbench -s skate-tricks --offline       # Only reuse stored answers, never call a model
"""

import argparse
import datetime
import os
import sys
from typing import List, Optional, Set, Tuple

from rich.console import Console
from rich.prompt import Prompt

from .BenchConfig import (RunSettings, TESTS_DIRECTORY, get_default_model_configs,
                          is_model_available, select_model_configs)
from .ProgressBoard import ProgressBoard
from .Scheduler import TestRunnerOptions, test_runner
from .TestSuite import (TestSuite, find_test_suites, load_suite_from_file, resolve_suite_id)

console = Console()


def default_version() -> str:
  return datetime.date.today().strftime("%Y-%m-%d")


def parse_test_filter(test_arg: str) -> Set[int]:
  """Parse test filter argument into a set of 1-based test numbers."""
  tests = set()
  for part in test_arg.split(","):
    part = part.strip()
    if not part:
      continue
    try:
      if "-" in part:
        start, end = part.split("-", 1)
        tests.update(range(int(start), int(end) + 1))
      else:
        tests.add(int(part))
    except ValueError:
      raise ValueError(f"Invalid test filter '{test_arg}'")
  if not tests:
    raise ValueError(f"Invalid test filter '{test_arg}'")
  return tests


def to_test_indices(test_numbers: Set[int], suite: TestSuite) -> Set[int]:
  """Convert 1-based test numbers to 0-based indices, rejecting unknown tests."""
  out_of_range = sorted(n for n in test_numbers if n < 1 or n > len(suite.tests))
  if out_of_range:
    raise ValueError(f"Suite '{suite.name}' has {len(suite.tests)} tests, "
                     f"no test {', '.join(str(n) for n in out_of_range)}")
  return {n - 1 for n in test_numbers}


def resolve_suite_arg(suite_arg: str, tests_dir: str) -> Tuple[str, TestSuite]:
  """Find a suite by file path, id, file stem or name."""
  if os.path.isfile(suite_arg):
    return suite_arg, load_suite_from_file(suite_arg)

  wanted = suite_arg.strip().lower()
  for file_path, suite in find_test_suites(tests_dir):
    stem = os.path.splitext(os.path.basename(file_path))[0]
    candidates = {resolve_suite_id(suite, file_path).lower(), stem.lower(), suite.name.lower()}
    if wanted in candidates:
      return file_path, suite

  raise ValueError(f"Test suite '{suite_arg}' not found in {tests_dir}")


def pick_suite_interactively(tests_dir: str) -> Tuple[str, TestSuite]:
  suites = find_test_suites(tests_dir)
  if not suites:
    raise ValueError(f"No test suites found in {tests_dir}")

  console.print("[bold]Select a test suite:[/bold]")
  for number, (_, suite) in enumerate(suites, start=1):
    description = f" [dim]- {suite.description}[/dim]" if suite.description else ""
    console.print(f"  [cyan]{number}[/cyan]. {suite.name}{description}")

  choice = Prompt.ask("Suite", choices=[str(n) for n in range(1, len(suites) + 1)], default="1")
  return suites[int(choice) - 1]


def list_suites(tests_dir: str) -> None:
  suites = find_test_suites(tests_dir)
  if not suites:
    print(f"No test suites found in {tests_dir}")
    return
  print("Available suites:")
  for file_path, suite in suites:
    description = f" - {suite.description}" if suite.description else ""
    print(f"  {resolve_suite_id(suite, file_path)}: {suite.name} "
          f"({len(suite.tests)} tests){description}")


def list_models(configs: List[dict]) -> None:
  print("Available models:")
  for config in configs:
    env_key = config.get("env_key")
    available = "+" if is_model_available(config) else f"x (needs {env_key})"
    enabled = "" if config.get("enabled", True) else " (disabled by default)"
    print(f"  {available} {config['name']}{enabled}")


def create_argument_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(prog="promptbench",
                                   description="Run a PromptBench test suite against LLMs",
                                   formatter_class=argparse.RawDescriptionHelpFormatter,
                                   epilog=__doc__)

  parser.add_argument("-s", "--suite", type=str, help="Suite name, id or path to a suite JSON file")
  parser.add_argument("-v",
                      "--version",
                      type=str,
                      help="Version label for this run (default: today's date)")
  parser.add_argument("--tests-dir",
                      type=str,
                      default=TESTS_DIRECTORY,
                      help=f"Directory holding suite JSON files (default: {TESTS_DIRECTORY})")
  parser.add_argument("-o", "--output", type=str, help="Results directory")
  parser.add_argument("-c", "--concurrency", type=int, help="Maximum runs in flight")
  parser.add_argument("-r", "--runs", type=int, help="Runs per model for every test")
  parser.add_argument("--timeout", type=float, help="Seconds before a run is abandoned")
  parser.add_argument(
    "-m",
    "--models",
    type=str,
    help="Comma-separated list of model names or patterns with wildcards (* and ?)")
  parser.add_argument(
    "-t",
    "--tests",
    type=str,
    help="Comma-separated list of test numbers or ranges (e.g., '1,2,3' or '5-10' or '1,5-10,15')")
  parser.add_argument("--list-models",
                      action="store_true",
                      help="List all available model names and exit")
  parser.add_argument("--list-suites", action="store_true", help="List suites and exit")
  parser.add_argument("--force",
                      action="store_true",
                      help="Ignore stored answers and execute every run")
  parser.add_argument("--offline",
                      action="store_true",
                      help="Only reuse stored answers. Do not make any API calls.")
  parser.add_argument("--no-live",
                      action="store_true",
                      help="Print progress lines instead of the live table")
  return parser


def build_settings(args: argparse.Namespace) -> RunSettings:
  settings = RunSettings.from_environment()
  return RunSettings(
    max_concurrency=args.concurrency if args.concurrency is not None else settings.max_concurrency,
    runs_per_model=args.runs if args.runs is not None else settings.runs_per_model,
    timeout_seconds=args.timeout if args.timeout is not None else settings.timeout_seconds,
    output_directory=args.output or settings.output_directory,
    force=args.force,
    offline=args.offline)


def run(args: argparse.Namespace) -> int:
  all_configs = get_default_model_configs()

  if args.list_models:
    list_models(all_configs)
    return 0

  if args.list_suites:
    list_suites(args.tests_dir)
    return 0

  settings = build_settings(args)
  model_configs = select_model_configs(all_configs, args.models)

  version = args.version
  if args.suite:
    suite_path, suite = resolve_suite_arg(args.suite, args.tests_dir)
  elif sys.stdin.isatty():
    suite_path, suite = pick_suite_interactively(args.tests_dir)
    if version is None:
      version = Prompt.ask("Version label", default=default_version())
  else:
    raise ValueError("No suite given. Use --suite or run in an interactive terminal.")

  if version is None:
    version = default_version()

  test_filter = None
  if args.tests:
    test_filter = to_test_indices(parse_test_filter(args.tests), suite)
    print(f"Running tests: {sorted(n + 1 for n in test_filter)}")
  if args.models:
    print(f"Running models: {[c['name'] for c in model_configs]}")

  options = TestRunnerOptions(suite=suite,
                              model_configs=model_configs,
                              settings=settings,
                              suite_file_path=suite_path,
                              version=version,
                              test_filter=test_filter)

  if args.no_live or not sys.stdout.isatty():
    test_runner(options)
    return 0

  board = ProgressBoard(title=f"Running {suite.name} @ version {version}")
  options.silent = True
  options.on_event = board.handle_event
  with board.live(console=console):
    test_runner(options)
  return 0


def main(argv: Optional[List[str]] = None) -> int:
  parser = create_argument_parser()
  args = parser.parse_args(argv)

  try:
    return run(args)
  except (ValueError, OSError) as e:
    print(f"Error: {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
  sys.exit(main())
