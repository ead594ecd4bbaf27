"""
FILE: lanes/tui/handlers/views.py
PURPOSE: Read-mostly modes - help overlays, search prompt and task detail view
EXPORTS:
  - handle_help, handle_task_form_help
  - handle_search
  - handle_view_task
NOTES:
  - Search queries go to the store; the cache only ever holds the
    filtered result of the active query
  - Pickers opened from the detail view are view-bound: every toggle is
    written straight away
"""

import logging

from .. import reconcile
from ..forms import TaskFormSession
from ..modes import Mode
from .forms import open_comment_list
from .pickers import open_label_picker, open_option_picker, open_task_picker

logger = logging.getLogger(__name__)

CLOSE_KEYS = ("?", "q", "esc", "enter", "space")


# --- help ---


def handle_help(ctl, key: str):
    if key in CLOSE_KEYS:
        ctl.set_mode(Mode.NORMAL)
    return None


def handle_task_form_help(ctl, key: str):
    if key in CLOSE_KEYS or ctl.config.form_keymap.get(key) is not None:
        ctl.set_mode(Mode.TASK_FORM if ctl.task_form is not None else Mode.NORMAL)
    return None


# --- search ---


def handle_search(ctl, key: str):
    if key == "esc":
        ctl.search_text = ""
        _apply_query(ctl, "")
        ctl.set_mode(Mode.NORMAL)
        return None
    if key == "enter":
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "backspace":
        if not ctl.search_text:
            return None
        ctl.search_text = ctl.search_text[:-1]
    elif key == "space":
        ctl.search_text += " "
    elif len(key) == 1 and key.isprintable():
        ctl.search_text += key
    else:
        return None
    _apply_query(ctl, ctl.search_text)
    return None


def _apply_query(ctl, query: str) -> None:
    previous = ctl.board.search_query
    ctl.board.search_query = query.strip()
    if ctl.board.search_query == previous:
        return
    ok, _ = ctl.attempt("Search failed", reconcile.reload_tasks, ctl.board, ctl.store)
    if not ok:
        ctl.board.search_query = previous
        return
    ctl.selection.task_offsets = {}
    ctl.selection.select_task(0, len(ctl.board.selected_tasks(ctl.selection)))


# --- task detail ---


def handle_view_task(ctl, key: str):
    task = ctl.viewed_task
    if task is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key in ("esc", "q", "space"):
        ctl.viewed_task = None
        ctl.set_mode(Mode.NORMAL)
    elif key == "e":
        ctl.viewed_task = None
        ctl.task_form = TaskFormSession.open_existing(task)
        ctl.set_mode(Mode.TASK_FORM)
    elif key == "l":
        open_label_picker(ctl, task.id, Mode.VIEW_TASK, [label.id for label in task.labels])
    elif key == "p":
        open_task_picker(ctl, True, task.id, Mode.VIEW_TASK, {p.id: p.relation_type_id for p in task.parents})
    elif key == "c":
        open_task_picker(ctl, False, task.id, Mode.VIEW_TASK, {c.id: c.relation_type_id for c in task.children})
    elif key == "r":
        open_option_picker(ctl, Mode.PRIORITY_PICKER, task.id, Mode.VIEW_TASK, task.priority_id)
    elif key == "t":
        open_option_picker(ctl, Mode.TYPE_PICKER, task.id, Mode.VIEW_TASK, task.type_id)
    elif key == "m":
        open_comment_list(ctl, task.id, Mode.COMMENTS_VIEW, Mode.VIEW_TASK)
    return None
