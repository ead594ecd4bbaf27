"""
FILE: lanes/tui/reconcile.py
PURPOSE: Keep the board cache in step with the store
EXPORTS:
  - reload_projects(board, store) -> bool
  - switch_to_project(board, store) -> None
  - reload_current_project(board, store) -> None
  - reload_tasks(board, store) -> None
  - remove_task(board, column_id, task_id) -> None
  - remove_column(board, column_id) -> None
  - relocate_task(board, task_id, from_column_id, to_column_id) -> None
  - swap_tasks(board, column_id, first, second) -> None
  - renumber(tasks) -> List[TaskSummary]
DEPENDENCIES:
  - lanes.core.exceptions (LanesError)
NOTES:
  - Patch helpers are only called after the matching store call succeeded
  - Wholesale reloads replace a collection only when its load succeeded,
    except switch_to_project which degrades to empty collections so the
    board always opens
  - After any patch every task sits under its own column id with dense
    positions
"""

import logging
from dataclasses import replace
from typing import List

from ..core.exceptions import LanesError
from ..core.models import TaskSummary
from .board import BoardState

logger = logging.getLogger(__name__)


def renumber(tasks: List[TaskSummary]) -> List[TaskSummary]:
    """Return tasks with positions rewritten to 0..n-1 in list order."""
    return [
        task if task.position == index else replace(task, position=index)
        for index, task in enumerate(tasks)
    ]


def reload_projects(board: BoardState, store) -> bool:
    """
    Reload the project list, keeping the current project selected when
    it still exists. Returns False on failure, leaving the old list (empty
    on a first load) in place.
    """
    current_id = board.project_id
    try:
        board.projects = store.list_projects()
    except LanesError as e:
        logger.error("Failed to load projects: %s", e)
        return False

    board.project_index = 0
    for index, project in enumerate(board.projects):
        if project.id == current_id:
            board.project_index = index
            break
    return True


def switch_to_project(board: BoardState, store) -> None:
    """Load columns, tasks and labels of the current project, each falling back to empty."""
    project_id = board.project_id
    board.clear_project_data()
    if not project_id:
        return

    try:
        board.columns = store.list_columns(project_id)
    except LanesError as e:
        logger.error("Failed to load columns for project %s: %s", project_id, e)
        board.columns = []
    try:
        board.tasks = store.list_task_summaries(project_id, board.search_query or None)
    except LanesError as e:
        logger.error("Failed to load tasks for project %s: %s", project_id, e)
        board.tasks = {}
    try:
        board.labels = store.list_labels(project_id)
    except LanesError as e:
        logger.error("Failed to load labels for project %s: %s", project_id, e)
        board.labels = []


def reload_current_project(board: BoardState, store) -> None:
    """
    Reload columns, tasks and labels of the open project.

    Nothing is replaced unless all three loads succeed.

    Raises:
        LanesError: From the first failing load
    """
    project_id = board.project_id
    if not project_id:
        board.clear_project_data()
        return
    columns = store.list_columns(project_id)
    tasks = store.list_task_summaries(project_id, board.search_query or None)
    labels = store.list_labels(project_id)
    board.columns, board.tasks, board.labels = columns, tasks, labels


def reload_tasks(board: BoardState, store) -> None:
    """
    Reload only the task summaries of the open project.

    Raises:
        LanesError: If the load fails (cache untouched)
    """
    project_id = board.project_id
    if not project_id:
        return
    board.tasks = store.list_task_summaries(project_id, board.search_query or None)


def remove_task(board: BoardState, column_id: int, task_id: int) -> None:
    tasks = [t for t in board.tasks_in(column_id) if t.id != task_id]
    board.tasks[column_id] = renumber(tasks)


def remove_column(board: BoardState, column_id: int) -> None:
    index = board.column_index_of(column_id)
    if index < 0:
        return
    removed = board.columns[index]
    columns = list(board.columns)
    del columns[index]

    # Relink the cached neighbours the same way the store did
    relinked = []
    for column in columns:
        if column.id == removed.prev_id:
            column = replace(column, next_id=removed.next_id)
        elif column.id == removed.next_id:
            column = replace(column, prev_id=removed.prev_id)
        relinked.append(column)
    board.columns = relinked
    board.tasks.pop(column_id, None)


def relocate_task(board: BoardState, task_id: int, from_column_id: int, to_column_id: int) -> None:
    """Move a cached task to the end of another column."""
    source = board.tasks_in(from_column_id)
    task = next((t for t in source if t.id == task_id), None)
    if task is None:
        return
    board.tasks[from_column_id] = renumber([t for t in source if t.id != task_id])
    target = list(board.tasks_in(to_column_id))
    target.append(replace(task, column_id=to_column_id, position=len(target)))
    board.tasks[to_column_id] = target


def swap_tasks(board: BoardState, column_id: int, first: int, second: int) -> None:
    tasks = list(board.tasks_in(column_id))
    tasks[first], tasks[second] = tasks[second], tasks[first]
    board.tasks[column_id] = renumber(tasks)
