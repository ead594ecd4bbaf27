"""
FILE: lanes/tui/handlers/normal.py
PURPOSE: Board navigation and the entry points into every other mode
EXPORTS:
  - handle_normal(ctl, key) -> command | None
NOTES:
  - Keys are resolved to Action values through the configured keymap;
    arrow keys always navigate even when rebound
  - Old notifications are cleared before each key is handled
"""

import logging

from ...config import Action
from ...core.models import Column
from .. import reconcile
from ..forms import ColumnFormSession, ProjectFormSession, TaskFormSession
from ..messages import Quit
from ..modes import Mode
from .pickers import open_status_picker

logger = logging.getLogger(__name__)

ARROW_ACTIONS = {
    "left": Action.COLUMN_LEFT,
    "right": Action.COLUMN_RIGHT,
    "up": Action.TASK_UP,
    "down": Action.TASK_DOWN,
}


def handle_normal(ctl, key: str):
    ctl.notifications.clear()
    action = ctl.config.keymap.get(key) or ARROW_ACTIONS.get(key)
    if action is None:
        return None
    handler = NORMAL_ACTIONS.get(action)
    if handler is None:
        return None
    return handler(ctl)


# --- navigation ---


def _column_left(ctl):
    if not ctl.selection.move_column_left():
        ctl.notifications.info("Already at the first column")


def _column_right(ctl):
    if not ctl.selection.move_column_right(len(ctl.board.columns)):
        ctl.notifications.info("Already at the last column")


def _task_up(ctl):
    if not ctl.selection.move_task_up():
        ctl.notifications.info("Already at the first task")


def _task_down(ctl):
    count = len(ctl.board.selected_tasks(ctl.selection))
    if not ctl.selection.move_task_down(count):
        ctl.notifications.info("Already at the last task")


def _scroll_left(ctl):
    if not ctl.selection.scroll_left():
        ctl.notifications.info("Already at the leftmost view")


def _scroll_right(ctl):
    if not ctl.selection.scroll_right(len(ctl.board.columns)):
        ctl.notifications.info("Already at the rightmost view")


def _switch_project(ctl, step: int):
    target = ctl.board.project_index + step
    if target < 0:
        ctl.notifications.info("Already at the first project")
        return
    if target >= len(ctl.board.projects):
        ctl.notifications.info("Already at the last project")
        return
    ctl.board.project_index = target
    ctl.board.search_query = ""
    reconcile.switch_to_project(ctl.board, ctl.store)
    ctl.selection.reset()
    ctl.selection.set_viewport_size(ctl.selection.viewport_size, len(ctl.board.columns))


# --- tasks ---


def _add_task(ctl):
    column = ctl.selected_column()
    if column is None:
        ctl.notifications.error("Cannot add task: No columns exist. Create a column first with 'C'")
        return
    ctl.task_form = TaskFormSession.open_new(column.id)
    ctl.set_mode(Mode.TASK_FORM)


def _edit_task(ctl):
    task = ctl.selected_task()
    if task is None:
        ctl.notifications.info("No task selected to edit")
        return
    ok, detail = ctl.attempt("Failed to load task", ctl.store.get_task, task.id)
    if not ok:
        return
    ctl.task_form = TaskFormSession.open_existing(detail)
    ctl.set_mode(Mode.TASK_FORM)


def _delete_task(ctl):
    if ctl.selected_task() is None:
        ctl.notifications.info("No task selected to delete")
        return
    ctl.set_mode(Mode.DELETE_TASK_CONFIRM)


def _view_task(ctl):
    task = ctl.selected_task()
    if task is None:
        ctl.notifications.info("No task selected to view")
        return
    ok, detail = ctl.attempt("Failed to load task", ctl.store.get_task, task.id)
    if not ok:
        return
    ctl.viewed_task = detail
    ctl.set_mode(Mode.VIEW_TASK)


def _neighbour_index(ctl, column: Column, step: int) -> int:
    neighbour_id = column.next_id if step > 0 else column.prev_id
    if neighbour_id is None:
        return -1
    return ctl.board.column_index_of(neighbour_id)


def _move_task_sideways(ctl, step: int):
    task = ctl.selected_task()
    if task is None:
        ctl.notifications.info("No task selected to move")
        return
    column = ctl.selected_column()
    target_index = _neighbour_index(ctl, column, step)
    if target_index < 0:
        ctl.notifications.info("There are no more columns to move to.")
        return
    target = ctl.board.columns[target_index]
    ok, _ = ctl.attempt("Failed to move task", ctl.store.move_task_to_column, task.id, target.id)
    if not ok:
        return
    ctl.after_task_moved(task.id, column.id, target.id)


def _move_task_vertically(ctl, step: int):
    task = ctl.selected_task()
    if task is None:
        ctl.notifications.info("No task selected to move")
        return
    if ctl.board.search_query:
        # Hidden neighbours make the filtered order differ from the stored one
        ctl.notifications.info("Clear the search to reorder tasks")
        return
    column = ctl.selected_column()
    count = len(ctl.board.tasks_in(column.id))
    index = ctl.selection.task_index
    if step < 0 and index == 0:
        ctl.notifications.info("Task is already at the top")
        return
    if step > 0 and index >= count - 1:
        ctl.notifications.info("Task is already at the bottom")
        return
    move = ctl.store.move_task_up if step < 0 else ctl.store.move_task_down
    ok, _ = ctl.attempt("Failed to move task", move, task.id)
    if not ok:
        return
    reconcile.swap_tasks(ctl.board, column.id, index, index + step)
    ctl.selection.select_task(index + step, count)


def _change_status(ctl):
    task = ctl.selected_task()
    if task is None:
        ctl.notifications.info("No task selected to move")
        return
    open_status_picker(ctl, task)


# --- columns and projects ---


def _create_column(ctl):
    if not ctl.board.project_id:
        ctl.notifications.error("Cannot add column: No project exists. Create a project first with 'P'")
        return
    column = ctl.selected_column()
    inline = ctl.config.column_editor == "inline"
    ctl.column_form = ColumnFormSession.open_new(column.id if column else None, inline=inline)
    ctl.set_mode(ctl.column_form.mode)


def _rename_column(ctl):
    column = ctl.selected_column()
    if column is None:
        ctl.notifications.info("No column selected to rename")
        return
    inline = ctl.config.column_editor == "inline"
    ctl.column_form = ColumnFormSession.open_existing(column, inline=inline)
    ctl.set_mode(ctl.column_form.mode)


def _delete_column(ctl):
    column = ctl.selected_column()
    if column is None:
        ctl.notifications.info("No column selected to delete")
        return
    ok, count = ctl.attempt("Failed to count tasks", ctl.store.count_tasks_in_column, column.id)
    if not ok:
        return
    ctl.pending_column_delete = (column.id, count)
    ctl.set_mode(Mode.DELETE_COLUMN_CONFIRM)


def _create_project(ctl):
    ctl.project_form = ProjectFormSession.open_new()
    ctl.set_mode(Mode.PROJECT_FORM)


def _search(ctl):
    if not ctl.board.project_id:
        ctl.notifications.info("No project to search")
        return
    ctl.search_text = ctl.board.search_query
    ctl.set_mode(Mode.SEARCH)


def _help(ctl):
    ctl.set_mode(Mode.HELP_OVERLAY)


def _quit(ctl):
    return Quit()


NORMAL_ACTIONS = {
    Action.QUIT: _quit,
    Action.HELP: _help,
    Action.ADD_TASK: _add_task,
    Action.EDIT_TASK: _edit_task,
    Action.DELETE_TASK: _delete_task,
    Action.VIEW_TASK: _view_task,
    Action.MOVE_TASK_LEFT: lambda ctl: _move_task_sideways(ctl, -1),
    Action.MOVE_TASK_RIGHT: lambda ctl: _move_task_sideways(ctl, 1),
    Action.MOVE_TASK_UP: lambda ctl: _move_task_vertically(ctl, -1),
    Action.MOVE_TASK_DOWN: lambda ctl: _move_task_vertically(ctl, 1),
    Action.COLUMN_LEFT: _column_left,
    Action.COLUMN_RIGHT: _column_right,
    Action.TASK_UP: _task_up,
    Action.TASK_DOWN: _task_down,
    Action.SCROLL_LEFT: _scroll_left,
    Action.SCROLL_RIGHT: _scroll_right,
    Action.PREV_PROJECT: lambda ctl: _switch_project(ctl, -1),
    Action.NEXT_PROJECT: lambda ctl: _switch_project(ctl, 1),
    Action.CREATE_COLUMN: _create_column,
    Action.RENAME_COLUMN: _rename_column,
    Action.DELETE_COLUMN: _delete_column,
    Action.CREATE_PROJECT: _create_project,
    Action.CHANGE_STATUS: _change_status,
    Action.SEARCH: _search,
}
