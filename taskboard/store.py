"""
Task board storage backend (SQLite).

Owns tasks and dependency edges, and appends to the transition log whenever
a task's column changes. Each public operation runs in one transaction, so a
column change either records both the transition and the new column, or
neither.
"""
import logging
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .analytics import DwellStat, compute_dwell_stats
from .errors import DuplicateIdentity, NotFound, ValidationFailure
from .schema import (
    UNCHANGED,
    Column,
    MoveResult,
    Task,
    TaskFilter,
    TaskUpdate,
    Transition,
    column_names,
)
from .transitions import Clock, TransitionLog

logger = logging.getLogger(__name__)

_COLUMN_CHECK = ", ".join(f"'{name}'" for name in column_names())


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with FK enforcement and WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def _require(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationFailure(f"{name} is required")
    return _text(value, name)


def _text(value, name: str) -> str:
    if not isinstance(value, str):
        raise ValidationFailure(f"{name} must be a string")
    return value


def _optional_text(value, name: str) -> Optional[str]:
    return None if value is None else _text(value, name)


class TaskStore:
    """SQLite-backed store for tasks, dependency edges and transitions."""

    def __init__(self, db_path: Union[str, Path], clock: Optional[Clock] = None):
        """Initialize store and create tables if needed."""
        self.db_path = str(db_path)
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.log = TransitionLog(clock)
        self._init_schema()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back on error, always close."""
        with closing(_connect(self.db_path)) as conn:
            with conn:
                yield conn

    def _init_schema(self):
        """Create tables if they don't exist."""
        with self._transaction() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    assignee TEXT,
                    column_name TEXT NOT NULL CHECK (column_name IN ({_COLUMN_CHECK}))
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_dependencies (
                    task_id TEXT NOT NULL,
                    depends_on_id TEXT NOT NULL,
                    PRIMARY KEY (task_id, depends_on_id),
                    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE,
                    FOREIGN KEY (depends_on_id) REFERENCES tasks(id) ON DELETE CASCADE
                )
            """)
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS task_transitions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id TEXT NOT NULL,
                    from_column TEXT,
                    to_column TEXT NOT NULL CHECK (to_column IN ({_COLUMN_CHECK})),
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transitions_task "
                "ON task_transitions(task_id, timestamp)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_column ON tasks(column_name)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assignee)")
        logger.debug(f"Schema ready at {self.db_path}")

    # ── Helpers ──────────────────────────────────────────────────────────

    def _fetch_row(self, conn: sqlite3.Connection, task_id: str) -> sqlite3.Row:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            raise NotFound(f"Task {task_id} not found")
        return row

    def _dependencies(self, conn: sqlite3.Connection, task_id: str) -> List[str]:
        rows = conn.execute(
            "SELECT depends_on_id FROM task_dependencies WHERE task_id = ?",
            (task_id,),
        ).fetchall()
        return [row["depends_on_id"] for row in rows]

    def _row_to_task(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Task:
        """Convert a database row to a Task with its dependencies resolved."""
        return Task(
            task_id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            assignee=row["assignee"],
            column=Column(row["column_name"]),
            dependencies=self._dependencies(conn, row["id"]),
        )

    def _insert_dependencies(
        self, conn: sqlite3.Connection, task_id: str, dep_ids: Iterable[str]
    ) -> None:
        """Insert edges, ignoring duplicates. Every dependency must exist."""
        for dep_id in dep_ids:
            if not conn.execute("SELECT 1 FROM tasks WHERE id = ?", (dep_id,)).fetchone():
                raise NotFound(f"Dependency task {dep_id} not found")
            conn.execute(
                "INSERT OR IGNORE INTO task_dependencies (task_id, depends_on_id) VALUES (?, ?)",
                (task_id, dep_id),
            )

    def _query(self, conn: sqlite3.Connection, where: str = "", params: tuple = (),
               order: str = "rowid ASC") -> List[Task]:
        rows = conn.execute(
            f"SELECT * FROM tasks {where} ORDER BY {order}", params
        ).fetchall()
        return [self._row_to_task(conn, row) for row in rows]

    # ── Task CRUD ────────────────────────────────────────────────────────

    def create(
        self,
        task_id: str,
        title: str,
        column: Column,
        description: str = "",
        assignee: Optional[str] = None,
        dependencies: Iterable[str] = (),
    ) -> Task:
        """Insert a task and record its initial placement as a transition."""
        _require(task_id, "id")
        _require(title, "title")
        description = _optional_text(description, "description") or ""
        assignee = _optional_text(assignee, "assignee")
        column = Column.parse(column)
        with self._transaction() as conn:
            try:
                conn.execute(
                    "INSERT INTO tasks (id, title, description, assignee, column_name) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (task_id, title, description, assignee, column.value),
                )
            except sqlite3.IntegrityError:
                raise DuplicateIdentity(f"Task {task_id} already exists") from None
            self.log.append(conn, task_id, None, column)
            self._insert_dependencies(conn, task_id, dependencies)
            task = self._row_to_task(conn, self._fetch_row(conn, task_id))
        logger.info(f"Created task {task_id} in '{column.value}'")
        return task

    def get(self, task_id: str) -> Task:
        """Retrieve a task by id with its dependencies."""
        with self._transaction() as conn:
            return self._row_to_task(conn, self._fetch_row(conn, task_id))

    def list(self, task_filter: Optional[TaskFilter] = None) -> List[Task]:
        """List tasks matching every criterion of the filter (all tasks if None)."""
        clauses = []
        params: list = []
        if task_filter is not None:
            if task_filter.title_prefix:
                # substr keeps the prefix match case-sensitive, unlike LIKE
                clauses.append("substr(title, 1, length(?)) = ?")
                params.extend([task_filter.title_prefix, task_filter.title_prefix])
            if task_filter.column is not None:
                clauses.append("column_name = ?")
                params.append(Column.parse(task_filter.column).value)
            if task_filter.assignee is not None:
                clauses.append("assignee = ?")
                params.append(task_filter.assignee)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._transaction() as conn:
            return self._query(conn, where, tuple(params))

    def my_tasks(self, assignee: str, column: Optional[Column] = None) -> List[Task]:
        """Tasks assigned to someone, optionally in one column, newest id first."""
        where = "WHERE assignee = ?"
        params: list = [assignee]
        if column is not None:
            where += " AND column_name = ?"
            params.append(Column.parse(column).value)
        with self._transaction() as conn:
            return self._query(conn, where, tuple(params), order="id DESC")

    def update(self, task_id: str, changes: TaskUpdate) -> Task:
        """Apply a partial update. A column change is recorded before the row is written."""
        with self._transaction() as conn:
            current = self._row_to_task(conn, self._fetch_row(conn, task_id))

            title = current.title
            if changes.title is not UNCHANGED:
                title = _require(changes.title, "title")
            description = current.description
            if changes.description is not UNCHANGED:
                description = _text(changes.description, "description")
            assignee = current.assignee
            if changes.assignee is not UNCHANGED:
                assignee = _optional_text(changes.assignee, "assignee")
            column = current.column
            if changes.column is not UNCHANGED:
                column = Column.parse(changes.column)

            if column is not current.column:
                self.log.append(conn, task_id, current.column, column)
            conn.execute(
                "UPDATE tasks SET title = ?, description = ?, assignee = ?, column_name = ? "
                "WHERE id = ?",
                (title, description, assignee, column.value, task_id),
            )
            if changes.dependencies is not UNCHANGED:
                conn.execute("DELETE FROM task_dependencies WHERE task_id = ?", (task_id,))
                self._insert_dependencies(conn, task_id, changes.dependencies)
            task = self._row_to_task(conn, self._fetch_row(conn, task_id))
        logger.info(f"Updated task {task_id}")
        return task

    def move(self, task_id: str, column: Union[Column, str]) -> MoveResult:
        """Move a task to another column. Moving to the current column is a no-op."""
        column = Column.parse(column)
        with self._transaction() as conn:
            current = self._row_to_task(conn, self._fetch_row(conn, task_id))
            if current.column is column:
                logger.debug(f"Task {task_id} is already in '{column.value}'")
                return MoveResult(task=current)
            transition = self.log.append(conn, task_id, current.column, column)
            conn.execute(
                "UPDATE tasks SET column_name = ? WHERE id = ?", (column.value, task_id)
            )
            current.column = column
        logger.info(f"Moved task {task_id}: '{transition.from_column.value}' -> '{column.value}'")
        return MoveResult(task=current, transition=transition)

    def delete(self, task_id: str) -> None:
        """Delete a task with its dependency edges (both directions) and transitions."""
        with self._transaction() as conn:
            self._fetch_row(conn, task_id)
            conn.execute(
                "DELETE FROM task_dependencies WHERE task_id = ? OR depends_on_id = ?",
                (task_id, task_id),
            )
            conn.execute("DELETE FROM task_transitions WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        logger.info(f"Deleted task {task_id}")

    # ── Assignment ───────────────────────────────────────────────────────

    def assign(self, task_id: str, assignee: Optional[str]) -> Task:
        """Set (or clear, with None) the assignee. Never touches transitions."""
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE tasks SET assignee = ? WHERE id = ?", (assignee, task_id)
            )
            if cur.rowcount == 0:
                raise NotFound(f"Task {task_id} not found")
            task = self._row_to_task(conn, self._fetch_row(conn, task_id))
        logger.info(f"Task {task_id} assigned to {assignee!r}")
        return task

    def unassign(self, task_id: str) -> Task:
        """Clear the assignee (stored as NULL)."""
        return self.assign(task_id, None)

    # ── Dependencies ─────────────────────────────────────────────────────

    def add_dependency(self, task_id: str, dep_id: str) -> Task:
        """Make task_id depend on dep_id. Adding an existing edge is a no-op."""
        with self._transaction() as conn:
            self._fetch_row(conn, task_id)
            self._insert_dependencies(conn, task_id, [dep_id])
            task = self._row_to_task(conn, self._fetch_row(conn, task_id))
        logger.info(f"Task {task_id} depends on {dep_id}")
        return task

    def remove_dependency(self, task_id: str, dep_id: str) -> Task:
        """Remove one edge. Raises NotFound if the edge does not exist."""
        with self._transaction() as conn:
            cur = conn.execute(
                "DELETE FROM task_dependencies WHERE task_id = ? AND depends_on_id = ?",
                (task_id, dep_id),
            )
            if cur.rowcount == 0:
                raise NotFound(f"Dependency {task_id} -> {dep_id} not found")
            task = self._row_to_task(conn, self._fetch_row(conn, task_id))
        logger.info(f"Task {task_id} no longer depends on {dep_id}")
        return task

    # ── History & stats ──────────────────────────────────────────────────

    def history(self, task_id: str) -> List[Transition]:
        """Transitions for one task, oldest first."""
        with self._transaction() as conn:
            self._fetch_row(conn, task_id)
            return self.log.list_for(conn, task_id)

    def all_history(self) -> List[Transition]:
        """Transitions for every task, oldest first."""
        with self._transaction() as conn:
            return self.log.list_all(conn)

    def column_counts(self) -> Dict[Column, int]:
        """Number of tasks currently in each column, zeros included."""
        counts = {column: 0 for column in Column}
        with self._transaction() as conn:
            for row in conn.execute(
                "SELECT column_name, COUNT(*) AS n FROM tasks GROUP BY column_name"
            ):
                counts[Column(row["column_name"])] = row["n"]
        return counts

    def board(self) -> Dict[Column, List[Task]]:
        """Every column mapped to the tasks currently in it."""
        grouped: Dict[Column, List[Task]] = {column: [] for column in Column}
        for task in self.list():
            grouped[task.column].append(task)
        return grouped

    def dwell_stats(self, now: datetime) -> Dict[Column, DwellStat]:
        """Average time spent per column, computed from the full log as of `now`."""
        with self._transaction() as conn:
            tasks = self._query(conn)
            transitions = self.log.list_all(conn)
        return compute_dwell_stats(tasks, transitions, now)
