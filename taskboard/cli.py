#!/usr/bin/env python3
"""
Task Board CLI

Manage a task board with columns, dependencies and transition tracking.

Usage:
    taskboard add -i task1 -t "Implement feature" -c idea
    taskboard move task1 "working on"
    taskboard my-tasks "AI Agent" "working on"
    taskboard dependency add task2 task1
    taskboard search -c blocked
    taskboard transition-stats
    taskboard serve --port 7788

Available columns: idea, approved idea, working on, blocked, ready for review, done
"""
import argparse
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .config import Config
from .errors import TaskBoardError
from .formatting import (
    format_column_counts,
    format_dwell_stats,
    format_history,
    format_task,
    format_task_table,
)
from .schema import UNCHANGED, Column, TaskFilter, TaskUpdate, column_names
from .store import TaskStore

logger = logging.getLogger("taskboard")

COLUMNS_HELP = ", ".join(column_names())


def _split_ids(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _column(value: Optional[str]) -> Optional[Column]:
    return Column.parse(value) if value is not None else None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Command handlers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def cmd_add(store: TaskStore, args) -> int:
    task = store.create(
        task_id=args.id,
        title=args.title,
        column=Column.parse(args.column),
        description=args.description or "",
        assignee=args.assignee or None,
        dependencies=_split_ids(args.dependencies),
    )
    print(f"Task added with ID: {task.task_id}")
    return 0


def cmd_list(store: TaskStore, args) -> int:
    print(format_task_table(store.list()))
    return 0


def cmd_show(store: TaskStore, args) -> int:
    print(format_task(store.get(args.id)))
    return 0


def cmd_update(store: TaskStore, args) -> int:
    changes = TaskUpdate(
        title=args.title if args.title is not None else UNCHANGED,
        description=args.description if args.description is not None else UNCHANGED,
        assignee=args.assignee if args.assignee is not None else UNCHANGED,
        column=_column(args.column) or UNCHANGED,
        dependencies=_split_ids(args.dependencies) if args.dependencies is not None else UNCHANGED,
    )
    store.update(args.id, changes)
    print("Task updated")
    return 0


def cmd_delete(store: TaskStore, args) -> int:
    store.delete(args.id)
    print("Task deleted")
    return 0


def cmd_search(store: TaskStore, args) -> int:
    tasks = store.list(TaskFilter(
        title_prefix=args.title,
        column=_column(args.column),
        assignee=args.assignee,
    ))
    if tasks:
        print(format_task_table(tasks))
    else:
        print("No tasks found matching the criteria.")
    return 0


def cmd_assign(store: TaskStore, args) -> int:
    store.assign(args.id, args.assignee)
    print(f"Task {args.id} assigned to {args.assignee}")
    return 0


def cmd_unassign(store: TaskStore, args) -> int:
    store.unassign(args.id)
    print(f"Task {args.id} unassigned")
    return 0


def cmd_stats(store: TaskStore, args) -> int:
    print(format_column_counts(store.column_counts()))
    return 0


def cmd_history(store: TaskStore, args) -> int:
    transitions = store.history(args.id)
    if transitions:
        print(format_history(transitions))
    else:
        print("No transitions found for this task.")
    return 0


def cmd_transition_stats(store: TaskStore, args) -> int:
    print(format_dwell_stats(store.dwell_stats(datetime.now(timezone.utc))))
    return 0


def cmd_move(store: TaskStore, args) -> int:
    result = store.move(args.id, Column.parse(args.column))
    if result.moved:
        print(f'Task {args.id} moved to "{result.task.column.value}"')
    else:
        print("Task is already in that column")
    return 0


def cmd_dependency_add(store: TaskStore, args) -> int:
    store.add_dependency(args.task_id, args.dep_id)
    print(f"Dependency added: Task {args.task_id} depends on {args.dep_id}")
    return 0


def cmd_dependency_remove(store: TaskStore, args) -> int:
    store.remove_dependency(args.task_id, args.dep_id)
    print(f"Dependency removed: Task {args.task_id} no longer depends on {args.dep_id}")
    return 0


def cmd_my_tasks(store: TaskStore, args) -> int:
    tasks = store.my_tasks(args.assignee, _column(args.column))
    if tasks:
        print(format_task_table(tasks))
    else:
        suffix = f' in column "{args.column}"' if args.column else ""
        print(f"No tasks found for this assignee{suffix}")
    return 0


def cmd_serve(store: TaskStore, args) -> int:
    from .server import serve

    serve(store, host=args.host, port=args.port)
    return 0


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Argument parsing
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def build_parser(cfg: Optional[Config] = None) -> argparse.ArgumentParser:
    cfg = cfg or Config()
    ap = argparse.ArgumentParser(
        prog="taskboard",
        description="Manage a task board with columns, dependencies and transition tracking.",
        epilog=f"Available columns: {COLUMNS_HELP}",
    )
    ap.add_argument("--db", default=None, help="Path to the SQLite database (overrides TASKBOARD_DB)")
    ap.add_argument("--config", default=None, help="Path to taskboard.yaml")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add", help="Create a task and record its initial column")
    p.add_argument("-i", "--id", required=True, help="Task ID")
    p.add_argument("-t", "--title", required=True, help="Task title")
    p.add_argument("-d", "--description", help="Task description (markdown)")
    p.add_argument("-a", "--assignee", help="Assignee name")
    p.add_argument("-c", "--column", required=True, help=f"Initial column: {COLUMNS_HELP}")
    p.add_argument("--dependencies", help='Comma-separated task IDs, e.g. "task1,task2"')
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("list", help="Show all tasks with their dependencies")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Show one task")
    p.add_argument("id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("update", help="Update only the given fields of a task")
    p.add_argument("id")
    p.add_argument("-t", "--title", help="New title")
    p.add_argument("-d", "--description", help="New description")
    p.add_argument("-a", "--assignee", help="New assignee")
    p.add_argument("-c", "--column", help=f"New column: {COLUMNS_HELP}")
    p.add_argument("--dependencies", help="Comma-separated task IDs replacing existing ones")
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("delete", help="Delete a task with its dependencies and history")
    p.add_argument("id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("search", help="Find tasks matching all given criteria")
    p.add_argument("-t", "--title", help="Title prefix (case-sensitive)")
    p.add_argument("-c", "--column", help="Exact column")
    p.add_argument("-a", "--assignee", help="Exact assignee")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("assign", help="Assign a task")
    p.add_argument("id")
    p.add_argument("assignee")
    p.set_defaults(func=cmd_assign)

    p = sub.add_parser("unassign", help="Remove the assignee from a task")
    p.add_argument("id")
    p.set_defaults(func=cmd_unassign)

    p = sub.add_parser("stats", help="Count tasks per column")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("history", help="Show the column history of a task")
    p.add_argument("id")
    p.set_defaults(func=cmd_history)

    p = sub.add_parser("transition-stats", help="Average time spent in each column")
    p.set_defaults(func=cmd_transition_stats)

    p = sub.add_parser("move", help="Move a task to another column")
    p.add_argument("id")
    p.add_argument("column")
    p.set_defaults(func=cmd_move)

    dep = sub.add_parser("dependency", help="Add or remove a single dependency")
    dep_sub = dep.add_subparsers(dest="dependency_command", required=True)
    p = dep_sub.add_parser("add", help="Make <task_id> depend on <dep_id>")
    p.add_argument("task_id")
    p.add_argument("dep_id")
    p.set_defaults(func=cmd_dependency_add)
    p = dep_sub.add_parser("remove", help="Remove <dep_id> from the dependencies of <task_id>")
    p.add_argument("task_id")
    p.add_argument("dep_id")
    p.set_defaults(func=cmd_dependency_remove)

    p = sub.add_parser("my-tasks", help="Tasks assigned to someone, newest ID first")
    p.add_argument("assignee")
    p.add_argument("column", nargs="?")
    p.set_defaults(func=cmd_my_tasks)

    p = sub.add_parser("serve", help="Start the JSON API server")
    p.add_argument("--host", default=cfg.host,
                   help="Bind address (use 0.0.0.0 to expose on network)")
    p.add_argument("--port", type=int, default=cfg.port)
    p.set_defaults(func=cmd_serve)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    # Pre-parse --config so its values can feed the parser defaults
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    known, _ = pre.parse_known_args(argv)

    try:
        cfg = Config.load(known.config)
    except TaskBoardError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    args = build_parser(cfg).parse_args(argv)
    if args.db:
        cfg.db_path = args.db
        cfg.resolve_paths()

    logging.basicConfig(
        level=getattr(logging, str(cfg.log_level).upper(), logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        store = TaskStore(cfg.db_path)
        return args.func(store, args)
    except TaskBoardError as e:
        logger.debug(f"{args.command} failed: {e!r}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
