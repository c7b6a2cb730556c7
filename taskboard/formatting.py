"""
Plain-text rendering of tasks, history and stats for the CLI.
"""
from typing import Dict, List, Sequence

from .analytics import DwellStat
from .schema import Column, Task, Transition


def _table(headers: Sequence[str], rows: List[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]
    lines = [
        "  ".join(h.ljust(w) for h, w in zip(headers, widths)).rstrip(),
        "  ".join("-" * w for w in widths),
    ]
    for row in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())
    return "\n".join(lines)


def format_task(task: Task) -> str:
    """Format one task as a short multi-line summary."""
    lines = [
        f"{task.task_id}: {task.title}",
        f"Column: {task.column.value}",
        f"Assignee: {task.assignee or '-'}",
    ]
    if task.dependencies:
        lines.append(f"Depends on: {', '.join(sorted(task.dependencies))}")
    if task.description:
        lines.append("")
        lines.append(task.description)
    return "\n".join(lines)


def format_task_table(tasks: List[Task]) -> str:
    rows = [
        (t.task_id, t.title, t.column.value, t.assignee or "", ",".join(sorted(t.dependencies)))
        for t in tasks
    ]
    return _table(("ID", "TITLE", "COLUMN", "ASSIGNEE", "DEPENDENCIES"), rows)


def format_history(transitions: List[Transition]) -> str:
    rows = [
        (
            str(t.transition_id),
            t.from_column.value if t.from_column else "-",
            t.to_column.value,
            t.timestamp.isoformat(timespec="seconds"),
        )
        for t in transitions
    ]
    return _table(("#", "FROM", "TO", "TIMESTAMP"), rows)


def format_column_counts(counts: Dict[Column, int]) -> str:
    lines = ["Task Statistics:"]
    for column in Column:
        lines.append(f"{column.value}: {counts.get(column, 0)}")
    return "\n".join(lines)


def format_dwell_stats(stats: Dict[Column, DwellStat]) -> str:
    lines = ["Transition Statistics (Average time in ms):"]
    for column in Column:
        stat = stats[column]
        if stat.has_data:
            lines.append(f"{column.value}: {stat.average_ms} ms ({stat.sample_count} instances)")
        else:
            lines.append(f"{column.value}: No data")
    return "\n".join(lines)
