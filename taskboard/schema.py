"""
Task board schema: columns, tasks, transitions and partial updates.

Task lifecycle:
  idea → approved idea → working on → blocked → ready for review → done

Columns are ordered for display, but any column may move to any other.
Every column change is recorded as an append-only Transition.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Union

from .errors import InvalidColumn


class Column(Enum):
    """Valid task columns on the board, in display order."""
    IDEA = "idea"
    APPROVED_IDEA = "approved idea"
    WORKING_ON = "working on"
    BLOCKED = "blocked"
    READY_FOR_REVIEW = "ready for review"
    DONE = "done"

    @classmethod
    def parse(cls, value: Union[str, "Column"]) -> "Column":
        """Parse an external column name. Raises InvalidColumn for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidColumn(
                f"Invalid column {value!r}. Valid columns: {', '.join(column_names())}"
            ) from None

    @property
    def is_terminal(self) -> bool:
        return self is TERMINAL_COLUMN


TERMINAL_COLUMN = Column.DONE


def column_names() -> List[str]:
    """Column values in board order."""
    return [c.value for c in Column]


class Unchanged(Enum):
    """Marker type for TaskUpdate fields that should keep their stored value."""
    TOKEN = "unchanged"


UNCHANGED = Unchanged.TOKEN


@dataclass
class Task:
    """A task card and its resolved dependency ids."""
    task_id: str
    title: str
    column: Column
    description: str = ""
    assignee: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.task_id,
            "title": self.title,
            "description": self.description,
            "assignee": self.assignee,
            "column": self.column.value,
            "dependencies": sorted(self.dependencies),
        }


@dataclass(frozen=True)
class Transition:
    """One recorded column change. from_column is None for the creation record."""
    transition_id: int
    task_id: str
    from_column: Optional[Column]
    to_column: Column
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.transition_id,
            "task_id": self.task_id,
            "from_column": self.from_column.value if self.from_column else None,
            "to_column": self.to_column.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TaskUpdate:
    """
    Partial update for a task.

    Each field is either UNCHANGED or the new value. None is a real value for
    assignee (unassigned), and "" is a real value for description/assignee.
    A dependencies list replaces the task's whole edge set.
    """
    title: Union[str, Unchanged] = UNCHANGED
    description: Union[str, Unchanged] = UNCHANGED
    assignee: Union[Optional[str], Unchanged] = UNCHANGED
    column: Union[Column, Unchanged] = UNCHANGED
    dependencies: Union[List[str], Unchanged] = UNCHANGED

    def is_empty(self) -> bool:
        return all(
            value is UNCHANGED
            for value in (self.title, self.description, self.assignee,
                          self.column, self.dependencies)
        )


@dataclass
class TaskFilter:
    """Conjunction of optional criteria; an empty filter matches every task."""
    title_prefix: Optional[str] = None
    column: Optional[Column] = None
    assignee: Optional[str] = None


@dataclass
class MoveResult:
    """Outcome of a move. transition is None when the task was already there."""
    task: Task
    transition: Optional[Transition] = None

    @property
    def moved(self) -> bool:
        return self.transition is not None
