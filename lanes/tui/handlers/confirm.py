"""
FILE: lanes/tui/handlers/confirm.py
PURPOSE: y/n confirmation modes
EXPORTS:
  - handle_discard_confirm(ctl, key)
  - handle_delete_task_confirm(ctl, key)
  - handle_delete_column_confirm(ctl, key)
NOTES:
  - Any key other than y / n / esc is ignored while a confirmation is open
  - Declining a discard returns to the form with every edit intact
"""

import logging

from .. import reconcile
from ..modes import Mode

logger = logging.getLogger(__name__)

YES_KEYS = ("y", "Y")
NO_KEYS = ("n", "N", "esc")


def handle_discard_confirm(ctl, key: str):
    context = ctl.discard
    if context is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key in YES_KEYS:
        ctl.clear_session(context.source_mode)
        ctl.discard = None
        ctl.set_mode(context.resume_mode)
    elif key in NO_KEYS:
        ctl.discard = None
        ctl.set_mode(context.source_mode)
    return None


def handle_delete_task_confirm(ctl, key: str):
    if key in NO_KEYS:
        ctl.set_mode(Mode.NORMAL)
        return None
    if key not in YES_KEYS:
        return None

    ctl.set_mode(Mode.NORMAL)
    task = ctl.selected_task()
    if task is None:
        return None
    ok, _ = ctl.attempt("Failed to delete task", ctl.store.delete_task, task.id)
    if not ok:
        return None
    reconcile.remove_task(ctl.board, task.column_id, task.id)
    ctl.selection.after_task_removed(len(ctl.board.tasks_in(task.column_id)))
    ctl.notifications.info(f"Deleted task #{task.ticket_number}")
    return None


def handle_delete_column_confirm(ctl, key: str):
    if key in NO_KEYS:
        ctl.pending_column_delete = None
        ctl.set_mode(Mode.NORMAL)
        return None
    if key not in YES_KEYS:
        return None

    pending = ctl.pending_column_delete
    ctl.pending_column_delete = None
    ctl.set_mode(Mode.NORMAL)
    if pending is None:
        return None
    column_id, _count = pending
    ok, _ = ctl.attempt("Failed to delete column", ctl.store.delete_column, column_id)
    if not ok:
        return None
    reconcile.remove_column(ctl.board, column_id)
    ctl.selection.after_structural_change(len(ctl.board.columns))
    return None
