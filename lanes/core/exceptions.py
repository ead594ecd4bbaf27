"""
FILE: lanes/core/exceptions.py
PURPOSE: Custom exception classes for error handling
EXPORTS:
  - LanesError (base exception)
  - TaskNotFoundError
  - ProjectNotFoundError
  - ColumnNotFoundError
  - LabelNotFoundError
  - CommentNotFoundError
  - InvalidInputError
  - DuplicateLabelError
  - RelationCycleError
  - StoreError
  - StoreTimeoutError
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - All exceptions inherit from LanesError for easy catching
  - Exceptions include context (IDs, names) for helpful error messages
  - Service layer raises these, UI layers catch and display
  - StoreError wraps sqlite3 failures so callers never see driver errors
"""


class LanesError(Exception):
    """Base exception for all lanes errors."""
    pass


class TaskNotFoundError(LanesError):
    """Task with given ID doesn't exist."""

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class ProjectNotFoundError(LanesError):
    """Project with given ID doesn't exist."""

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class ColumnNotFoundError(LanesError):
    """Column with given ID doesn't exist."""

    def __init__(self, column_id: int):
        self.column_id = column_id
        super().__init__(f"Column {column_id} not found")


class LabelNotFoundError(LanesError):
    """Label with given ID doesn't exist."""

    def __init__(self, label_id: int):
        self.label_id = label_id
        super().__init__(f"Label {label_id} not found")


class CommentNotFoundError(LanesError):
    """Comment with given ID doesn't exist."""

    def __init__(self, comment_id: int):
        self.comment_id = comment_id
        super().__init__(f"Comment {comment_id} not found")


class InvalidInputError(LanesError):
    """Input validation failed."""

    def __init__(self, message: str):
        super().__init__(message)


class DuplicateLabelError(InvalidInputError):
    """A label with the same name already exists in the project."""

    def __init__(self, name: str, project_id: int):
        self.name = name
        self.project_id = project_id
        super().__init__(f"Label '{name}' already exists in this project")


class RelationCycleError(InvalidInputError):
    """Adding the relation would make a task its own ancestor."""

    def __init__(self, parent_id: int, child_id: int):
        self.parent_id = parent_id
        self.child_id = child_id
        super().__init__(
            f"Cannot relate task {parent_id} to task {child_id}: relation would create a cycle"
        )


class StoreError(LanesError):
    """The persistent store rejected or failed a call."""

    def __init__(self, message: str):
        super().__init__(message)


class StoreTimeoutError(StoreError):
    """The store stayed locked for longer than the configured timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Database busy for more than {timeout:g}s")
