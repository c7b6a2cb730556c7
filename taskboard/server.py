"""
Task Board JSON API
-------------------
Flask front end over TaskStore. Every route maps 1:1 onto a store operation
and returns JSON; store failures become JSON errors with a matching status.

API:
    GET    /health                              → { status, db }
    GET    /api/board                           → tasks grouped by column + counts
    GET    /api/tasks?title=&column=&assignee=  → { tasks, count }
    POST   /api/tasks                           → create, 201
    GET    /api/tasks/<id>                      → { task }
    PUT    /api/tasks/<id>                      → partial update
    DELETE /api/tasks/<id>
    PUT    /api/tasks/<id>/move                 → body { column }
    PUT    /api/tasks/<id>/assignee             → body { assignee }
    DELETE /api/tasks/<id>/assignee
    POST   /api/tasks/<id>/dependencies         → body { depends_on }
    DELETE /api/tasks/<id>/dependencies/<dep>
    GET    /api/tasks/<id>/history
    GET    /api/history
    GET    /api/stats                           → tasks per column
    GET    /api/stats/dwell                     → average ms per column
"""
import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from .errors import (
    DuplicateIdentity,
    NotFound,
    TaskBoardError,
    ValidationFailure,
)
from .schema import Column, TaskFilter, TaskUpdate
from .store import TaskStore

logger = logging.getLogger(__name__)

_UPDATABLE = ("title", "description", "assignee", "column", "dependencies")


def _status_for(error: TaskBoardError) -> int:
    if isinstance(error, NotFound):
        return 404
    if isinstance(error, DuplicateIdentity):
        return 409
    if isinstance(error, ValidationFailure):
        return 400
    return 500


def _body() -> dict:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _text(data: dict, name: str) -> str:
    value = data.get(name, "")
    if not isinstance(value, str):
        raise ValidationFailure(f"{name} must be a string")
    return value.strip()


def _dependency_list(value) -> list:
    if isinstance(value, str):
        return [d.strip() for d in value.split(",") if d.strip()]
    if isinstance(value, list) and all(isinstance(d, str) for d in value):
        return value
    raise ValidationFailure("dependencies must be a list of task ids")


def create_app(store: TaskStore) -> Flask:
    """Build the Flask app bound to one store."""
    app = Flask(__name__)
    app.config["TASK_STORE"] = store

    @app.errorhandler(TaskBoardError)
    def handle_board_error(error):
        status = _status_for(error)
        if status >= 500:
            app.logger.warning(f"Unhandled board error: {error}")
        return jsonify({"error": str(error)}), status

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "db": store.db_path})

    @app.route("/api/board")
    def api_board():
        board = store.board()
        return jsonify({
            "columns": [
                {
                    "column": column.value,
                    "count": len(tasks),
                    "tasks": [t.to_dict() for t in tasks],
                }
                for column, tasks in board.items()
            ],
        })

    @app.route("/api/tasks", methods=["GET"])
    def api_list_tasks():
        column = request.args.get("column")
        task_filter = TaskFilter(
            title_prefix=request.args.get("title") or None,
            column=Column.parse(column) if column else None,
            assignee=request.args.get("assignee") or None,
        )
        tasks = store.list(task_filter)
        return jsonify({"tasks": [t.to_dict() for t in tasks], "count": len(tasks)})

    @app.route("/api/tasks", methods=["POST"])
    def api_create_task():
        data = _body()
        column = data.get("column")
        if not column:
            raise ValidationFailure("column is required")
        task = store.create(
            task_id=_text(data, "id"),
            title=_text(data, "title"),
            column=Column.parse(column),
            description=data.get("description", ""),
            assignee=data.get("assignee") or None,
            dependencies=_dependency_list(data.get("dependencies", [])),
        )
        return jsonify({"task": task.to_dict()}), 201

    @app.route("/api/tasks/<task_id>", methods=["GET"])
    def api_get_task(task_id):
        return jsonify({"task": store.get(task_id).to_dict()})

    @app.route("/api/tasks/<task_id>", methods=["PUT"])
    def api_update_task(task_id):
        data = _body()
        changes = TaskUpdate()
        for name in _UPDATABLE:
            if name not in data:
                continue
            value = data[name]
            if name == "column":
                value = Column.parse(value)
            elif name == "dependencies":
                value = _dependency_list(value)
            setattr(changes, name, value)
        task = store.update(task_id, changes)
        return jsonify({"task": task.to_dict()})

    @app.route("/api/tasks/<task_id>", methods=["DELETE"])
    def api_delete_task(task_id):
        store.delete(task_id)
        return jsonify({"deleted": task_id})

    @app.route("/api/tasks/<task_id>/move", methods=["PUT"])
    def api_move_task(task_id):
        column = _body().get("column", "")
        result = store.move(task_id, Column.parse(column))
        return jsonify({
            "task": result.task.to_dict(),
            "moved": result.moved,
            "transition": result.transition.to_dict() if result.transition else None,
        })

    @app.route("/api/tasks/<task_id>/assignee", methods=["PUT"])
    def api_assign_task(task_id):
        assignee = _text(_body(), "assignee")
        if not assignee:
            raise ValidationFailure("assignee is required")
        return jsonify({"task": store.assign(task_id, assignee).to_dict()})

    @app.route("/api/tasks/<task_id>/assignee", methods=["DELETE"])
    def api_unassign_task(task_id):
        return jsonify({"task": store.unassign(task_id).to_dict()})

    @app.route("/api/tasks/<task_id>/dependencies", methods=["POST"])
    def api_add_dependency(task_id):
        dep_id = _text(_body(), "depends_on")
        if not dep_id:
            raise ValidationFailure("depends_on is required")
        return jsonify({"task": store.add_dependency(task_id, dep_id).to_dict()})

    @app.route("/api/tasks/<task_id>/dependencies/<dep_id>", methods=["DELETE"])
    def api_remove_dependency(task_id, dep_id):
        return jsonify({"task": store.remove_dependency(task_id, dep_id).to_dict()})

    @app.route("/api/tasks/<task_id>/history")
    def api_task_history(task_id):
        return jsonify({"transitions": [t.to_dict() for t in store.history(task_id)]})

    @app.route("/api/history")
    def api_all_history():
        return jsonify({"transitions": [t.to_dict() for t in store.all_history()]})

    @app.route("/api/stats")
    def api_stats():
        counts = store.column_counts()
        return jsonify({
            "total": sum(counts.values()),
            "by_column": {column.value: n for column, n in counts.items()},
        })

    @app.route("/api/stats/dwell")
    def api_dwell_stats():
        stats = store.dwell_stats(datetime.now(timezone.utc))
        return jsonify({"columns": [stat.to_dict() for stat in stats.values()]})

    return app


def serve(store: TaskStore, host: str = "127.0.0.1", port: int = 7788):
    """Run the development server (blocking)."""
    app = create_app(store)
    logger.info(f"Task board API on http://{host}:{port} (db: {store.db_path})")
    app.run(host=host, port=port, debug=False, threaded=True)
