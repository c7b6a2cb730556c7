"""
Transition log: append-only ledger of column changes.

Records are never updated. They disappear only when their task is deleted
(ON DELETE CASCADE on task_transitions.task_id).
"""
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .schema import Column, Transition

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current instant, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def _row_to_transition(row: sqlite3.Row) -> Transition:
    from_column = row["from_column"]
    return Transition(
        transition_id=row["id"],
        task_id=row["task_id"],
        from_column=Column(from_column) if from_column is not None else None,
        to_column=Column(row["to_column"]),
        timestamp=datetime.fromisoformat(row["timestamp"]),
    )


class TransitionLog:
    """Reads and appends task_transitions rows on a caller-supplied connection."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    def append(
        self,
        conn: sqlite3.Connection,
        task_id: str,
        from_column: Optional[Column],
        to_column: Column,
    ) -> Transition:
        """Record a column change. Runs inside the caller's transaction."""
        timestamp = self.clock().astimezone(timezone.utc)
        cur = conn.execute(
            "INSERT INTO task_transitions (task_id, from_column, to_column, timestamp) "
            "VALUES (?, ?, ?, ?)",
            (task_id, from_column.value if from_column else None,
             to_column.value, timestamp.isoformat(timespec="microseconds")),
        )
        logger.debug(
            f"Transition {task_id}: "
            f"{from_column.value if from_column else '-'} -> {to_column.value}"
        )
        return Transition(
            transition_id=cur.lastrowid,
            task_id=task_id,
            from_column=from_column,
            to_column=to_column,
            timestamp=timestamp,
        )

    def list_for(self, conn: sqlite3.Connection, task_id: str) -> List[Transition]:
        """All transitions for one task, oldest first."""
        rows = conn.execute(
            "SELECT * FROM task_transitions WHERE task_id = ? ORDER BY timestamp ASC, id ASC",
            (task_id,),
        ).fetchall()
        return [_row_to_transition(row) for row in rows]

    def list_all(self, conn: sqlite3.Connection) -> List[Transition]:
        """Every transition across all tasks, oldest first."""
        rows = conn.execute(
            "SELECT * FROM task_transitions ORDER BY timestamp ASC, id ASC"
        ).fetchall()
        return [_row_to_transition(row) for row in rows]
