"""
FILE: lanes/core/service.py
PURPOSE: Business logic layer over the repository
EXPORTS:
  - subscribe(callback) / unsubscribe(callback) - change notifications
  - Projects: create_project, get_project, list_projects, delete_project
  - Columns: create_column, get_column, list_columns, rename_column,
    delete_column, count_tasks_in_column
  - Tasks: create_task, get_task, update_task, delete_task,
    list_task_summaries, list_task_references, move_task_to_column,
    move_task_up, move_task_down, update_task_priority, update_task_type
  - Lookups: list_types, list_priorities, list_relation_types
  - Labels: create_label, list_labels, list_task_labels, attach_label, detach_label
  - Relations: add_relation, remove_relation, list_parents, list_children
  - Comments: create_comment, update_comment, delete_comment, list_comments
DEPENDENCIES:
  - lanes.core.repository (all CRUD functions)
  - lanes.core.models
  - lanes.core.exceptions
  - logging (stdlib)
NOTES:
  - All functions validate input and raise descriptive errors
  - No direct database access (use repository layer)
  - Returns domain objects, never dicts or raw SQL results
  - Every successful mutation emits the affected project id to subscribers,
    which is how other running boards learn about the change
  - Relations that would make a task its own ancestor are rejected
  - Label names are unique per project, compared case-insensitively
"""

import logging
from collections import deque
from typing import Callable, Dict, List, Optional

from . import repository
from .constants import (
    DEFAULT_PRIORITY_ID,
    DEFAULT_RELATION_TYPE_ID,
    DEFAULT_TYPE_ID,
    LABEL_COLORS,
    MAX_COMMENT_LENGTH,
    PRIORITIES,
    RELATION_TYPES,
    TASK_TYPES,
)
from .models import (
    Project,
    Column,
    Label,
    TaskSummary,
    TaskDetail,
    TaskReference,
    Comment,
    Option,
    RelationType,
)
from .exceptions import (
    TaskNotFoundError,
    ColumnNotFoundError,
    CommentNotFoundError,
    InvalidInputError,
    DuplicateLabelError,
    RelationCycleError,
)

logger = logging.getLogger(__name__)

_subscribers: List[Callable[[int], None]] = []


def subscribe(callback: Callable[[int], None]) -> None:
    """Register a callback receiving the project id of every change."""
    if callback not in _subscribers:
        _subscribers.append(callback)


def unsubscribe(callback: Callable[[int], None]) -> None:
    """Remove a callback registered with subscribe()."""
    if callback in _subscribers:
        _subscribers.remove(callback)


def _emit(project_id: Optional[int]) -> None:
    """Tell subscribers a project changed. A failing subscriber never undoes a write."""
    if project_id is None:
        return
    for callback in list(_subscribers):
        try:
            callback(project_id)
        except Exception:
            logger.exception("Change subscriber failed for project %s", project_id)


def _require_text(value: Optional[str], what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidInputError(f"{what} cannot be empty")
    return value


def _optional_text(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


# --- Projects ---


def create_project(name: str, description: Optional[str] = None) -> Project:
    """
    Create a new project.

    Args:
        name: Project name (required, must not be empty)
        description: Optional description

    Returns:
        Newly created Project

    Raises:
        InvalidInputError: If name is empty or whitespace-only
    """
    name = _require_text(name, "Project name")
    project = repository.create_project(name, _optional_text(description))
    logger.info("Created project %s (%s)", project.id, project.name)
    _emit(project.id)
    return project


def get_project(project_id: int) -> Optional[Project]:
    """Get project by ID, or None."""
    return repository.get_project(project_id)


def list_projects() -> List[Project]:
    """List all projects."""
    return repository.list_projects()


def delete_project(project_id: int) -> None:
    """
    Delete a project with its columns, tasks and labels.

    Raises:
        ProjectNotFoundError: If project doesn't exist
    """
    repository.delete_project(project_id)
    logger.info("Deleted project %s", project_id)
    _emit(project_id)


# --- Columns ---


def create_column(name: str, project_id: int, after_id: Optional[int] = None) -> Column:
    """
    Create a column, optionally right after another one.

    Args:
        name: Column name (required)
        project_id: Owning project
        after_id: Column to insert after; None appends

    Raises:
        InvalidInputError: If name is empty
        ProjectNotFoundError: If project doesn't exist
        ColumnNotFoundError: If after_id isn't in the project
    """
    name = _require_text(name, "Column name")
    column = repository.create_column(name, project_id, after_id)
    _emit(project_id)
    return column


def get_column(column_id: int) -> Column:
    """
    Get column by ID.

    Raises:
        ColumnNotFoundError: If column doesn't exist
    """
    column = repository.get_column(column_id)
    if column is None:
        raise ColumnNotFoundError(column_id)
    return column


def list_columns(project_id: int) -> List[Column]:
    """List a project's columns in board order."""
    return repository.list_columns(project_id)


def rename_column(column_id: int, name: str) -> Column:
    """
    Rename a column.

    Raises:
        InvalidInputError: If name is empty
        ColumnNotFoundError: If column doesn't exist
    """
    name = _require_text(name, "Column name")
    column = repository.rename_column(column_id, name)
    _emit(column.project_id)
    return column


def delete_column(column_id: int) -> None:
    """
    Delete a column and all of its tasks.

    Raises:
        ColumnNotFoundError: If column doesn't exist
    """
    column = get_column(column_id)
    repository.delete_column(column_id)
    logger.info("Deleted column %s (%s)", column_id, column.name)
    _emit(column.project_id)


def count_tasks_in_column(column_id: int) -> int:
    """Return the number of tasks in a column."""
    return repository.count_tasks_in_column(column_id)


# --- Tasks ---


def _check_option(value: int, options, what: str) -> None:
    if value not in {row[0] for row in options}:
        raise InvalidInputError(f"Unknown {what} {value}")


def create_task(
    title: str,
    column_id: int,
    description: Optional[str] = None,
    type_id: int = DEFAULT_TYPE_ID,
    priority_id: int = DEFAULT_PRIORITY_ID,
) -> TaskDetail:
    """
    Create a new task at the end of a column.

    Args:
        title: Task title (required, must not be empty)
        column_id: Column to place task in
        description: Optional task description
        type_id: Task type id
        priority_id: Priority id

    Returns:
        Newly created TaskDetail

    Raises:
        InvalidInputError: If title is empty or type/priority is unknown
        ColumnNotFoundError: If column doesn't exist

    Notes:
        - Trims whitespace from title and description
        - The task is appended after the column's last task
    """
    title = _require_text(title, "Task title")
    _check_option(type_id, TASK_TYPES, "type")
    _check_option(priority_id, PRIORITIES, "priority")

    task = repository.create_task(
        title=title,
        column_id=column_id,
        description=_optional_text(description),
        type_id=type_id,
        priority_id=priority_id,
    )
    _emit(task.project_id)
    return task


def get_task(task_id: int) -> TaskDetail:
    """
    Get a task with labels and relations.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    task = repository.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def update_task(task_id: int, title: str, description: Optional[str] = None) -> TaskDetail:
    """
    Update a task's title and description.

    Raises:
        InvalidInputError: If title is empty
        TaskNotFoundError: If task doesn't exist
    """
    title = _require_text(title, "Task title")
    task = repository.update_task(task_id, title, _optional_text(description))
    _emit(task.project_id)
    return task


def delete_task(task_id: int) -> None:
    """
    Delete a task.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    project_id = repository.get_task_project_id(task_id)
    repository.delete_task(task_id)
    _emit(project_id)


def list_task_summaries(project_id: int, query: Optional[str] = None) -> Dict[int, List[TaskSummary]]:
    """Board cards of a project keyed by column id, optionally filtered."""
    query = (query or "").strip() or None
    return repository.list_task_summaries(project_id, query)


def list_task_references(project_id: int) -> List[TaskReference]:
    """Every task of a project as a reference."""
    return repository.list_task_references(project_id)


def move_task_to_column(task_id: int, column_id: int) -> TaskDetail:
    """
    Move a task to the end of another column of the same project.

    Raises:
        TaskNotFoundError: If task doesn't exist
        ColumnNotFoundError: If column doesn't exist
        InvalidInputError: If the column belongs to another project
    """
    project_id = repository.get_task_project_id(task_id)
    if project_id is None:
        raise TaskNotFoundError(task_id)
    column = get_column(column_id)
    if column.project_id != project_id:
        raise InvalidInputError("Cannot move a task to another project's column")

    task = repository.move_task_to_column(task_id, column_id)
    _emit(project_id)
    return task


def move_task_up(task_id: int) -> None:
    """
    Swap a task with the one above it.

    Raises:
        TaskNotFoundError: If task doesn't exist
        InvalidInputError: If already at the top
    """
    repository.swap_task_position(task_id, -1)
    _emit(repository.get_task_project_id(task_id))


def move_task_down(task_id: int) -> None:
    """
    Swap a task with the one below it.

    Raises:
        TaskNotFoundError: If task doesn't exist
        InvalidInputError: If already at the bottom
    """
    repository.swap_task_position(task_id, 1)
    _emit(repository.get_task_project_id(task_id))


def update_task_priority(task_id: int, priority_id: int) -> None:
    """
    Set a task's priority.

    Raises:
        InvalidInputError: If priority is unknown
        TaskNotFoundError: If task doesn't exist
    """
    _check_option(priority_id, PRIORITIES, "priority")
    repository.update_task_priority(task_id, priority_id)
    _emit(repository.get_task_project_id(task_id))


def update_task_type(task_id: int, type_id: int) -> None:
    """
    Set a task's type.

    Raises:
        InvalidInputError: If type is unknown
        TaskNotFoundError: If task doesn't exist
    """
    _check_option(type_id, TASK_TYPES, "type")
    repository.update_task_type(task_id, type_id)
    _emit(repository.get_task_project_id(task_id))


# --- Lookups ---


def list_types() -> List[Option]:
    return repository.list_types()


def list_priorities() -> List[Option]:
    return repository.list_priorities()


def list_relation_types() -> List[RelationType]:
    return repository.list_relation_types()


# --- Labels ---


def create_label(name: str, color: str, project_id: int) -> Label:
    """
    Create a label in a project.

    Args:
        name: Label name (required)
        color: Hex color, one of the label palette
        project_id: Owning project

    Raises:
        InvalidInputError: If name is empty or color is not a palette color
        DuplicateLabelError: If the project already has a label with that
            name, ignoring case
        ProjectNotFoundError: If project doesn't exist
    """
    name = _require_text(name, "Label name")
    if color not in {hex_value for _, hex_value in LABEL_COLORS}:
        raise InvalidInputError(f"Unknown label color {color}")

    existing = {label.name.casefold() for label in repository.list_labels(project_id)}
    if name.casefold() in existing:
        raise DuplicateLabelError(name, project_id)

    label = repository.create_label(name, color, project_id)
    _emit(project_id)
    return label


def list_labels(project_id: int) -> List[Label]:
    """List a project's labels."""
    return repository.list_labels(project_id)


def list_task_labels(task_id: int) -> List[Label]:
    """List labels attached to a task."""
    return repository.list_task_labels(task_id)


def attach_label(task_id: int, label_id: int) -> None:
    """
    Attach a label to a task.

    Raises:
        TaskNotFoundError / LabelNotFoundError
    """
    repository.attach_label(task_id, label_id)
    _emit(repository.get_task_project_id(task_id))


def detach_label(task_id: int, label_id: int) -> None:
    """Detach a label from a task."""
    repository.detach_label(task_id, label_id)
    _emit(repository.get_task_project_id(task_id))


# --- Relations ---


def _reaches(start_id: int, target_id: int) -> bool:
    """True if target_id is reachable from start_id following parent -> child edges."""
    queue = deque([start_id])
    seen = {start_id}
    while queue:
        current = queue.popleft()
        if current == target_id:
            return True
        for child_id in repository.list_child_ids(current):
            if child_id not in seen:
                seen.add(child_id)
                queue.append(child_id)
    return False


def add_relation(parent_id: int, child_id: int, relation_type_id: int = DEFAULT_RELATION_TYPE_ID) -> None:
    """
    Relate two tasks as parent and child.

    Re-adding an existing pair replaces its relation type.

    Raises:
        InvalidInputError: If relation type is unknown
        RelationCycleError: If parent == child or the parent is already
            reachable from the child
        TaskNotFoundError: If either task doesn't exist
    """
    _check_option(relation_type_id, RELATION_TYPES, "relation type")
    if parent_id == child_id or _reaches(child_id, parent_id):
        raise RelationCycleError(parent_id, child_id)

    repository.add_relation(parent_id, child_id, relation_type_id)
    _emit(repository.get_task_project_id(parent_id))
    child_project = repository.get_task_project_id(child_id)
    if child_project != repository.get_task_project_id(parent_id):
        _emit(child_project)


def remove_relation(parent_id: int, child_id: int) -> None:
    """Remove a parent/child relation."""
    repository.remove_relation(parent_id, child_id)
    _emit(repository.get_task_project_id(parent_id))


def list_parents(task_id: int) -> List[TaskReference]:
    return repository.list_parents(task_id)


def list_children(task_id: int) -> List[TaskReference]:
    return repository.list_children(task_id)


# --- Comments ---


def _check_comment(message: str) -> str:
    message = _require_text(message, "Comment")
    if len(message) > MAX_COMMENT_LENGTH:
        raise InvalidInputError(
            f"Comment is too long ({len(message)} > {MAX_COMMENT_LENGTH} characters)"
        )
    return message


def create_comment(task_id: int, message: str, author: str = "") -> Comment:
    """
    Add a comment to a task.

    Raises:
        InvalidInputError: If message is empty or too long
        TaskNotFoundError: If task doesn't exist
    """
    comment = repository.create_comment(task_id, _check_comment(message), author)
    _emit(repository.get_task_project_id(task_id))
    return comment


def update_comment(comment_id: int, message: str) -> Comment:
    """
    Replace a comment's message.

    Raises:
        InvalidInputError: If message is empty or too long
        CommentNotFoundError: If comment doesn't exist
    """
    comment = repository.update_comment(comment_id, _check_comment(message))
    _emit(repository.get_task_project_id(comment.task_id))
    return comment


def delete_comment(comment_id: int) -> None:
    """
    Delete a comment.

    Raises:
        CommentNotFoundError: If comment doesn't exist
    """
    comment = repository.get_comment(comment_id)
    if comment is None:
        raise CommentNotFoundError(comment_id)
    repository.delete_comment(comment_id)
    _emit(repository.get_task_project_id(comment.task_id))


def list_comments(task_id: int) -> List[Comment]:
    """List a task's comments, oldest first."""
    return repository.list_comments(task_id)
