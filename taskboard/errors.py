"""
Failure kinds raised by the task board core.

Every error is recoverable: the CLI and HTTP layers catch TaskBoardError
and turn it into an exit status or a JSON error response.
"""


class TaskBoardError(Exception):
    """Base class for all task board failures."""
    pass


class NotFound(TaskBoardError):
    """Raised when a task, dependency edge or history subject does not exist."""
    pass


class DuplicateIdentity(TaskBoardError):
    """Raised when creating a task whose id is already taken."""
    pass


class ValidationFailure(TaskBoardError):
    """Raised when a required field (id, title) is missing or blank."""
    pass


class InvalidColumn(ValidationFailure):
    """Raised when a column name is not one of the board columns."""
    pass


class ConfigError(TaskBoardError):
    """Raised when the configuration file cannot be parsed."""
    pass
