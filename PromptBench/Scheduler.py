"""
Test-run scheduler for PromptBench

Turns a suite into runs and drives them through a bounded worker pool:

1. Build one work item per (test, model)
2. Plan each test's queue: reuse stored answers with a matching signature
   first, then execute whatever is still missing up to the run count
3. Announce per-model totals with a single "plan" event
4. Process tests one after another; inside a test, up to max_concurrency
   workers pull runs from a shared FIFO queue
5. Write the results, Markdown report and summary to disk

Executed runs race a timeout. A run that fails or times out is recorded with
its error message and never stops the rest of the queue.
"""

import os
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from filelock import Timeout as FileLockTimeout

from .BenchConfig import RunSettings, is_model_available
from .Reports import build_summary, count_outcomes, generate_markdown_report
from .ResultStore import (PreviousResultEntry, artifact_timestamp, find_previous_results,
                          iso_timestamp, suite_results_dir, write_run_artifacts)
from .Scoring import compute_test_signature, is_correct
from .TestSuite import TestSuite, resolve_suite_id


class JobType(Enum):
  EXECUTE = "execute"
  REUSE = "reuse"


class TestTimeoutError(Exception):
  __test__ = False


class OfflineModeError(Exception):
  pass


@dataclass
class WorkItem:
  """One test case paired with one model."""
  model: Dict[str, Any]
  engine: Any
  system_prompt: str
  prompt: str
  answers: List[str]
  negative_answers: Optional[List[str]]
  test_index: int

  @property
  def model_name(self) -> str:
    return self.model["name"]

  @property
  def signature(self) -> str:
    return compute_test_signature(self.system_prompt, self.prompt, self.answers,
                                  self.negative_answers)


@dataclass
class TestRun:
  __test__ = False

  job_type: JobType
  item: WorkItem
  run_number: int
  reuse_from: Optional[PreviousResultEntry] = None

  @property
  def label(self) -> str:
    return f"{self.item.test_index + 1}.{self.run_number}"


@dataclass
class RunResult:
  model: str
  test_index: int
  run_number: int
  prompt: str
  expected_answers: List[str]
  negative_answers: Optional[List[str]]
  duration: int
  cost: float = 0.0
  result: Optional[Dict[str, Any]] = None
  error: Optional[str] = None

  @property
  def correct(self) -> bool:
    return self.error is None and bool((self.result or {}).get("correct"))

  def to_dict(self) -> Dict[str, Any]:
    data = {
      "model": self.model,
      "testIndex": self.test_index,
      "runNumber": self.run_number,
      "prompt": self.prompt,
      "expectedAnswers": self.expected_answers,
    }
    if self.negative_answers is not None:
      data["negativeAnswers"] = self.negative_answers
    if self.result is not None:
      data["result"] = self.result
    if self.error is not None:
      data["error"] = self.error
    data["duration"] = self.duration
    data["cost"] = self.cost
    return data


@dataclass
class RunnerEvent:
  """Progress notification; "plan" carries totals, the others describe one run."""
  type: str
  model: str = ""
  test_index: Optional[int] = None
  run_number: Optional[int] = None
  duration: int = 0
  correct: Optional[bool] = None
  cost: float = 0.0
  error: Optional[str] = None
  totals: Dict[str, Dict[str, int]] = field(default_factory=dict)


@dataclass
class TestRunnerOptions:
  __test__ = False

  suite: TestSuite
  model_configs: List[Dict[str, Any]]
  settings: RunSettings = field(default_factory=RunSettings)
  suite_file_path: Optional[str] = None
  version: Optional[str] = None
  test_filter: Optional[Set[int]] = None  # 0-based test indices
  silent: bool = False
  on_event: Optional[Callable[[RunnerEvent], None]] = None


def create_engine_instance(config: Dict[str, Any], settings: Optional[RunSettings] = None):
  """Create an AI engine instance from config."""
  engine_type = config.get("engine", "unknown")

  if engine_type == "openrouter":
    from .AiEngineOpenRouter import OpenRouterEngine
    request_timeout = settings.timeout_seconds if settings else 3600
    return OpenRouterEngine(config["base_model"],
                            config.get("reasoning", False),
                            request_timeout=request_timeout)
  elif engine_type == "placebo":
    from .AiEnginePlacebo import PlaceboEngine
    return PlaceboEngine(config.get("placebo_id", config["name"]))
  raise ValueError(f"Unknown engine type '{engine_type}' for model {config.get('name')}")


def call_with_timeout(fn: Callable[[], Any], timeout_seconds: float) -> Any:
  """
  Run fn on a daemon thread and wait at most timeout_seconds for it.

  On timeout the call is abandoned (it may still finish in the background, its
  outcome is dropped) and TestTimeoutError is raised.
  """
  outcome_queue = queue.Queue(maxsize=1)

  def target():
    try:
      outcome_queue.put(("ok", fn()))
    except Exception as e:
      outcome_queue.put(("error", e))

  threading.Thread(target=target, daemon=True, name="promptbench-call").start()

  try:
    kind, payload = outcome_queue.get(timeout=timeout_seconds)
  except queue.Empty:
    raise TestTimeoutError("Test timeout")

  if kind == "error":
    raise payload
  return payload


def build_work_items(suite: TestSuite,
                     model_configs: List[Dict[str, Any]],
                     engines: Dict[str, Any],
                     test_filter: Optional[Set[int]] = None) -> Dict[int, List[WorkItem]]:
  items_by_test: Dict[int, List[WorkItem]] = {}
  for test_index, test in enumerate(suite.tests):
    if test_filter is not None and test_index not in test_filter:
      continue
    for config in model_configs:
      items_by_test.setdefault(test_index, []).append(
        WorkItem(model=config,
                 engine=engines.get(config["name"]),
                 system_prompt=suite.system_prompt,
                 prompt=test.prompt,
                 answers=test.answers,
                 negative_answers=test.negative_answers,
                 test_index=test_index))
  return items_by_test


def plan_test_jobs(items: List[WorkItem],
                   previous: Dict[str, List[PreviousResultEntry]],
                   runs_per_model: int,
                   force: bool = False) -> List[TestRun]:
  """
  Plan the run queue for one test.

  Stored answers for the same signature and model fill run numbers 1..k, the
  remaining run numbers are executed. The queue is ordered by run number and
  then model name so every model makes progress at the same pace.
  """
  jobs: List[TestRun] = []

  for item in items:
    previous_for_model = []
    if not force:
      previous_for_model = [p for p in previous.get(item.signature, []) if p.model == item.model_name]

    reuse_count = min(runs_per_model, len(previous_for_model))
    for run_number in range(1, reuse_count + 1):
      jobs.append(
        TestRun(job_type=JobType.REUSE,
                item=item,
                run_number=run_number,
                reuse_from=previous_for_model[run_number - 1]))
    for run_number in range(reuse_count + 1, runs_per_model + 1):
      jobs.append(TestRun(job_type=JobType.EXECUTE, item=item, run_number=run_number))

  jobs.sort(key=lambda j: (j.run_number, j.item.model_name.lower(), j.item.model_name))
  return jobs


def plan_totals(job_queues: List[List[TestRun]],
                model_names: List[str]) -> Dict[str, Dict[str, int]]:
  totals = {name: {"total": 0, "execute": 0, "reuse": 0} for name in model_names}
  for jobs in job_queues:
    for job in jobs:
      model_totals = totals.setdefault(job.item.model_name, {"total": 0, "execute": 0, "reuse": 0})
      model_totals["total"] += 1
      model_totals[job.job_type.value] += 1
  return totals


def _error_message(error: BaseException) -> str:
  return str(error) or error.__class__.__name__


def _elapsed_ms(start: float) -> int:
  return int(round((time.monotonic() - start) * 1000))


class TestScheduler:
  """
  Bounded worker pool over an in-memory run queue.

  Results and events are shared between workers and guarded by one lock, so
  on_event callbacks never run concurrently.
  """
  __test__ = False

  def __init__(self,
               settings: RunSettings,
               on_event: Optional[Callable[[RunnerEvent], None]] = None,
               silent: bool = False):
    self.settings = settings
    self.on_event = on_event
    self.silent = silent
    self.results: List[RunResult] = []
    self.active_jobs = 0
    self.peak_active_jobs = 0
    self._lock = threading.Lock()

  def log(self, message: str) -> None:
    if not self.silent:
      print(message, flush=True)

  def emit(self, event: RunnerEvent) -> None:
    if self.on_event is None:
      return
    with self._lock:
      self.on_event(event)

  def _record(self, result: RunResult) -> None:
    with self._lock:
      self.results.append(result)

  def _invoke_engine(self, item: WorkItem) -> Tuple[str, str, float]:
    if self.settings.offline:
      raise OfflineModeError("Offline mode: no stored result to reuse")
    if item.engine is None:
      raise RuntimeError(f"No engine available for {item.model_name}")
    return call_with_timeout(lambda: item.engine.AIHook(item.system_prompt, item.prompt),
                             self.settings.timeout_seconds)

  def _run_reuse(self, test_run: TestRun, start: float) -> None:
    item = test_run.item
    reused = test_run.reuse_from
    correct = is_correct(item.answers, item.negative_answers, reused.text)
    cost = reused.cost or 0.0

    self._record(
      RunResult(model=reused.model,
                test_index=item.test_index,
                run_number=test_run.run_number,
                prompt=item.prompt,
                expected_answers=item.answers,
                negative_answers=item.negative_answers,
                result={
                  "text": reused.text,
                  "correct": correct,
                  "reused": True,
                  "sourceFile": reused.source_file,
                },
                duration=_elapsed_ms(start),
                cost=cost))
    self.emit(
      RunnerEvent(type="reuse",
                  model=item.model_name,
                  test_index=item.test_index,
                  run_number=test_run.run_number,
                  correct=correct,
                  cost=cost))
    self.log(f"↺ Reused result for test {test_run.label} on {reused.model} from "
              f"{os.path.basename(reused.source_file)}")

  def _run_execute(self, test_run: TestRun, start: float) -> None:
    item = test_run.item
    self.log(f"Running test {test_run.label} for {item.model_name}")
    self.emit(
      RunnerEvent(type="start",
                  model=item.model_name,
                  test_index=item.test_index,
                  run_number=test_run.run_number))

    text, chainOfThought, cost = self._invoke_engine(item)
    correct = is_correct(item.answers, item.negative_answers, text)
    duration = _elapsed_ms(start)

    result = {"text": text, "correct": correct, "cost": cost}
    if chainOfThought:
      result["reasoning"] = chainOfThought

    self._record(
      RunResult(model=item.model_name,
                test_index=item.test_index,
                run_number=test_run.run_number,
                prompt=item.prompt,
                expected_answers=item.answers,
                negative_answers=item.negative_answers,
                result=result,
                duration=duration,
                cost=cost))
    self.emit(
      RunnerEvent(type="done",
                  model=item.model_name,
                  test_index=item.test_index,
                  run_number=test_run.run_number,
                  duration=duration,
                  correct=correct,
                  cost=cost))
    self.log(f"✓ Completed test {test_run.label} for {item.model_name} in {duration}ms")

  def run_job(self, test_run: TestRun) -> None:
    item = test_run.item
    with self._lock:
      self.active_jobs += 1
      self.peak_active_jobs = max(self.peak_active_jobs, self.active_jobs)
    start = time.monotonic()

    try:
      if test_run.job_type == JobType.REUSE and test_run.reuse_from is not None:
        self._run_reuse(test_run, start)
      else:
        self._run_execute(test_run, start)
    except Exception as e:
      duration = _elapsed_ms(start)
      message = _error_message(e)
      self._record(
        RunResult(model=item.model_name,
                  test_index=item.test_index,
                  run_number=test_run.run_number,
                  prompt=item.prompt,
                  expected_answers=item.answers,
                  negative_answers=item.negative_answers,
                  error=message,
                  duration=duration,
                  cost=0.0))
      self.emit(
        RunnerEvent(type="error",
                    model=item.model_name,
                    test_index=item.test_index,
                    run_number=test_run.run_number,
                    duration=duration,
                    error=message))
      self.log(f"✗ Failed test {test_run.label} for {item.model_name}: {message}")
    finally:
      with self._lock:
        self.active_jobs -= 1

  def _worker(self, job_queue: "queue.Queue[TestRun]") -> None:
    while True:
      try:
        test_run = job_queue.get_nowait()
      except queue.Empty:
        return
      self.run_job(test_run)

  def process_job_queue(self, jobs: List[TestRun]) -> None:
    """Run every job with at most settings.max_concurrency in flight."""
    if not jobs:
      return

    job_queue = queue.Queue()
    for job in jobs:
      job_queue.put(job)

    worker_count = min(self.settings.max_concurrency, len(jobs))
    with ThreadPoolExecutor(max_workers=worker_count,
                            thread_name_prefix="promptbench-worker") as executor:
      futures = [executor.submit(self._worker, job_queue) for _ in range(worker_count)]
      for future in as_completed(futures):
        future.result()


def _runnable_configs(configs: List[Dict[str, Any]], settings: RunSettings) -> List[Dict[str, Any]]:
  runnable = []
  for config in configs:
    if not settings.offline and not is_model_available(config):
      print(f"Skipping {config['name']}: {config.get('env_key')} not set")
      continue
    runnable.append(config)
  return runnable


def test_runner(options: TestRunnerOptions) -> List[RunResult]:
  """Run a whole suite and save its artifacts. Returns every run's result."""
  suite = options.suite
  settings = options.settings
  version = options.version
  suite_id = resolve_suite_id(suite, options.suite_file_path)

  configs = _runnable_configs(options.model_configs, settings)
  if not configs:
    raise ValueError("No runnable models (check API keys or --models)")
  model_names = [c["name"] for c in configs]

  engines = {c["name"]: create_engine_instance(c, settings) for c in configs}
  items_by_test = build_work_items(suite, configs, engines, options.test_filter)

  print(f"Starting test runner for suite \"{suite.name}\" (id: {suite_id}) with "
        f"{len(items_by_test)} tests, {len(configs)} models, {settings.runs_per_model} runs each")
  print(f"Concurrency limit: {settings.max_concurrency}, Timeout: {settings.timeout_seconds}s, "
        f"Version: {version or '(none)'}")

  previous = {}
  if not settings.force:
    previous = find_previous_results(suite_id, suite, settings.output_directory)

  planned = []
  for test_index in sorted(items_by_test):
    items = items_by_test[test_index]
    planned.append((test_index, items,
                    plan_test_jobs(items, previous, settings.runs_per_model, settings.force)))

  scheduler = TestScheduler(settings, on_event=options.on_event, silent=options.silent)
  scheduler.emit(RunnerEvent(type="plan", totals=plan_totals([p[2] for p in planned],
                                                             model_names)))

  for test_index, items, jobs in planned:
    reused = len([j for j in jobs if j.job_type == JobType.REUSE])
    scheduler.log(f"Scheduling Test {test_index + 1}: {len(jobs)} runs across "
                   f"{len(items)} models ({reused} reused)")
    scheduler.process_job_queue(jobs)

  results = scheduler.results
  result_dicts = [r.to_dict() for r in results]
  correct, incorrect, errors = count_outcomes(result_dicts)

  print(f"\nTest runner completed. Total results: {len(results)}")
  print(f"Correct: {correct}, Incorrect: {incorrect}, Errors: {errors}")

  timestamp = iso_timestamp()
  metadata = {
    "timestamp": timestamp,
    "totalTests": len(results),
    "correct": correct,
    "incorrect": incorrect,
    "errors": errors,
    "successful": correct,
    "failed": incorrect + errors,
    "config": settings.to_metadata(),
    "testSuite": suite.name,
    "suiteId": suite_id,
    "version": version or None,
    "models": model_names,
  }
  output_data = {"metadata": metadata, "results": result_dicts}

  try:
    write_run_artifacts(
      suite_results_dir(settings.output_directory, suite_id, version),
      artifact_timestamp(),
      output_data,
      generate_markdown_report(result_dicts, metadata, suite),
      build_summary(result_dicts, settings.to_metadata(), suite.name, suite_id, version,
                    timestamp),
    )
  except (OSError, FileLockTimeout) as e:
    print(f"Failed to save results to file: {e}")

  return results


# Keep pytest from collecting the runner when tests import it by name
test_runner.__test__ = False
