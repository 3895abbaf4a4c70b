"""
Live progress board for PromptBench runs.

Consumes RunnerEvents and keeps per-model counters up to date; render() turns
them into a rich table with a progress bar and an overall line.
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from rich.console import Group
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .Scheduler import RunnerEvent


@dataclass
class ModelStats:
  total: int = 0
  execute_total: int = 0
  reuse_total: int = 0
  reuse_completed: int = 0
  executed_started: int = 0
  executed_done: int = 0
  executed_errors: int = 0
  executed_duration_sum_ms: int = 0
  executed_max_duration_ms: int = 0
  correct_count: int = 0
  incorrect_count: int = 0
  cost_sum: float = 0.0

  @property
  def completed(self) -> int:
    return self.reuse_completed + self.executed_done + self.executed_errors

  @property
  def running(self) -> int:
    return max(0, self.executed_started - self.executed_done - self.executed_errors)

  @property
  def percent_correct(self) -> Optional[int]:
    answered = self.correct_count + self.incorrect_count
    if answered == 0:
      return None
    return int(round(self.correct_count / answered * 100))

  @property
  def average_duration_seconds(self) -> Optional[float]:
    count = self.executed_done + self.executed_errors
    if count == 0:
      return None
    return self.executed_duration_sum_ms / count / 1000

  @property
  def slowest_seconds(self) -> Optional[float]:
    if self.executed_max_duration_ms <= 0:
      return None
    return self.executed_max_duration_ms / 1000

  @property
  def average_cost(self) -> Optional[float]:
    # Errors carry no cost
    count = self.reuse_completed + self.executed_done
    if count == 0:
      return None
    return self.cost_sum / count


def percent_color(percent: Optional[int]) -> str:
  if percent is None:
    return "grey50"
  if percent >= 80:
    return "green"
  if percent >= 50:
    return "yellow"
  return "red"


def _dash_or(value, fmt: str) -> str:
  return "-" if value is None else fmt.format(value)


def progress_bar(completed: int, total: int, width: int = 40) -> Text:
  ratio = completed / total if total > 0 else 0
  filled = int(round(width * ratio))
  percent = int(ratio * 100) if total > 0 else 0

  bar = Text("[")
  bar.append("█" * filled, style="green")
  bar.append("░" * (width - filled), style="grey50")
  bar.append("] ")
  bar.append(f"{percent}%", style="cyan")
  bar.append(f" ({completed}/{total} completed)")
  return bar


class ProgressBoard:
  """Thread-safe per-model statistics fed by RunnerEvents."""

  def __init__(self, title: str = ""):
    self.title = title
    self.model_order: List[str] = []
    self.stats: Dict[str, ModelStats] = {}
    self._lock = threading.Lock()
    self._live: Optional[Live] = None

  def _stats_for(self, model: str) -> ModelStats:
    if model not in self.stats:
      self.stats[model] = ModelStats()
      self.model_order.append(model)
    return self.stats[model]

  def handle_event(self, event: RunnerEvent) -> None:
    with self._lock:
      if event.type == "plan":
        self.model_order = list(event.totals)
        self.stats = {
          name: ModelStats(total=t.get("total", 0),
                           execute_total=t.get("execute", 0),
                           reuse_total=t.get("reuse", 0)) for name, t in event.totals.items()
        }
      elif event.type == "start":
        self._stats_for(event.model).executed_started += 1
      elif event.type == "done":
        s = self._stats_for(event.model)
        s.executed_done += 1
        s.executed_duration_sum_ms += event.duration
        s.executed_max_duration_ms = max(s.executed_max_duration_ms, event.duration)
        if event.correct:
          s.correct_count += 1
        else:
          s.incorrect_count += 1
        s.cost_sum += event.cost or 0
      elif event.type == "error":
        s = self._stats_for(event.model)
        s.executed_errors += 1
        s.executed_duration_sum_ms += event.duration
        s.executed_max_duration_ms = max(s.executed_max_duration_ms, event.duration)
      elif event.type == "reuse":
        s = self._stats_for(event.model)
        s.reuse_completed += 1
        if event.correct:
          s.correct_count += 1
        else:
          s.incorrect_count += 1
        s.cost_sum += event.cost or 0

    if self._live is not None:
      self._live.update(self.render())

  def totals(self) -> Dict[str, float]:
    with self._lock:
      stats = [self.stats[name] for name in self.model_order if name in self.stats]

    totals = {
      "total": sum(s.total for s in stats),
      "completed": sum(s.completed for s in stats),
      "errors": sum(s.executed_errors for s in stats),
      "running": sum(s.running for s in stats),
      "correct": sum(s.correct_count for s in stats),
      "incorrect": sum(s.incorrect_count for s in stats),
      "cost_sum": sum(s.cost_sum for s in stats),
    }
    duration_sum = sum(s.executed_duration_sum_ms for s in stats)
    duration_count = sum(s.executed_done + s.executed_errors for s in stats)
    answered = totals["correct"] + totals["incorrect"]

    totals["percent_correct"] = int(round(totals["correct"] / answered * 100)) if answered else None
    totals["average_duration_seconds"] = (duration_sum / duration_count /
                                          1000) if duration_count else None
    return totals

  def render(self) -> Group:
    table = Table(show_edge=False, header_style="bold bright_white")
    table.add_column("Model", style="bright_white")
    table.add_column("Tests", justify="right")
    table.add_column("% Right", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Running Tests", justify="right")
    table.add_column("Avg Cost", justify="right")
    table.add_column("Avg Duration", justify="right")
    table.add_column("Slowest", justify="right")

    with self._lock:
      rows = [(name, self.stats[name]) for name in self.model_order if name in self.stats]

    for name, s in rows:
      pct = s.percent_correct
      table.add_row(
        name,
        f"{s.completed}/{s.total}",
        Text(_dash_or(pct, "{}%"), style=percent_color(pct)),
        Text(str(s.executed_errors) if s.executed_errors else "-",
             style="red" if s.executed_errors else "grey50"),
        Text(str(s.running) if s.running else "-", style="yellow" if s.running else "grey50"),
        Text(_dash_or(s.average_cost, "${:.4f}"), style="green"),
        Text(_dash_or(s.average_duration_seconds, "{:.2f}s"), style="cyan"),
        Text(_dash_or(s.slowest_seconds, "{:.2f}s"), style="magenta"),
      )

    totals = self.totals()
    overall = Text("Overall: ")
    overall.append(str(totals["completed"]), style="green")
    overall.append(f"/{totals['total']} done • ")
    overall.append(_dash_or(totals["percent_correct"], "{}%"),
                   style=percent_color(totals["percent_correct"]))
    overall.append(" correct • ")
    overall.append(str(totals["errors"] or "-"), style="red")
    overall.append(" errors • ")
    overall.append(str(totals["running"] or "-"), style="yellow")
    overall.append(" running • ")
    overall.append(_dash_or(totals["average_duration_seconds"], "{:.2f}s"), style="cyan")
    overall.append(" avg duration • ")
    overall.append(f"${totals['cost_sum']:.4f}", style="green")
    overall.append(" total cost")

    parts = []
    if self.title:
      parts.append(Text(self.title, style="bright_magenta"))
    parts.extend([table, Text(""), progress_bar(totals["completed"], totals["total"]), overall])
    return Group(*parts)

  def live(self, console=None) -> Live:
    """Live display that redraws on every event; use as a context manager."""
    self._live = Live(self.render(), console=console, refresh_per_second=8, transient=False)
    return self._live
