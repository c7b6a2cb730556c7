"""
Transition analytics: how long tasks stay in each column.

Every task's transitions are walked oldest first. Each transition closes the
interval the task spent in its previous column and opens one in the new
column. Tasks that are not done also contribute their still-open interval,
measured up to `now`. Averages are taken over all closed and open samples.

The computation is pure: callers pass the tasks, the full log and the
instant to measure against.
"""
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from .schema import Column, Task, Transition


@dataclass(frozen=True)
class DwellStat:
    """Average dwell time for one column. average_ms is None when there is no data."""
    column: Column
    average_ms: Optional[int]
    sample_count: int

    @property
    def has_data(self) -> bool:
        return self.sample_count > 0

    def to_dict(self) -> dict:
        return {
            "column": self.column.value,
            "average_ms": self.average_ms,
            "samples": self.sample_count,
        }


def _to_ms(delta: timedelta) -> float:
    return delta / timedelta(milliseconds=1)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def dwell_samples(
    task: Task, transitions: List[Transition], now: datetime
) -> List[tuple]:
    """
    Dwell samples for a single task as (column, milliseconds) pairs.

    `transitions` must belong to `task`; they are sorted here by timestamp.
    """
    if not transitions:
        return []
    ordered = sorted(transitions, key=lambda t: (t.timestamp, t.transition_id))

    samples = []
    start = ordered[0].timestamp
    column = ordered[0].to_column
    for transition in ordered[1:]:
        samples.append((column, _to_ms(transition.timestamp - start)))
        start = transition.timestamp
        column = transition.to_column

    # Open interval: only for tasks that have not reached the terminal column
    if not task.column.is_terminal:
        # Naive instants are read as local time, as the transition log does
        samples.append((task.column, _to_ms(now.astimezone(timezone.utc) - start)))
    return samples


def compute_dwell_stats(
    tasks: Iterable[Task],
    transitions: Iterable[Transition],
    now: datetime,
) -> Dict[Column, DwellStat]:
    """Per-column average dwell time across all tasks, as of `now`."""
    by_task: Dict[str, List[Transition]] = defaultdict(list)
    for transition in transitions:
        by_task[transition.task_id].append(transition)

    durations: Dict[Column, List[float]] = {column: [] for column in Column}
    for task in tasks:
        for column, ms in dwell_samples(task, by_task.get(task.task_id, []), now):
            durations[column].append(ms)

    stats = {}
    for column, values in durations.items():
        average = _round_half_up(sum(values) / len(values)) if values else None
        stats[column] = DwellStat(column=column, average_ms=average, sample_count=len(values))
    return stats
