# Task board: column workflow, dependency tracking and transition analytics
#
# Components:
#   schema.py      - Data model (Column, Task, Transition, TaskUpdate, TaskFilter)
#   errors.py      - Failure kinds (NotFound, DuplicateIdentity, InvalidColumn, ...)
#   transitions.py - Append-only transition log
#   store.py       - SQLite persistence layer
#   analytics.py   - Per-column dwell time statistics
#   config.py      - YAML + environment configuration
#   cli.py         - Command-line front end
#   server.py      - Flask JSON API

__version__ = "1.0.0"
