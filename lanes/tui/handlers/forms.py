"""
FILE: lanes/tui/handlers/forms.py
PURPOSE: Task, project, column and comment form modes
EXPORTS:
  - handle_task_form, handle_project_form, handle_column_form, handle_comment_form
  - commit_task_form(ctl) - shared by enter-on-confirm and the save shortcut
NOTES:
  - esc asks the controller to close the form (discard check included)
  - A blank primary field on commit means "nothing to save": the form
    closes without a store call
  - If the create/update call itself fails the form stays open with an
    error notification; label and relation sub-calls that fail are
    reported and skipped, the rest still apply
  - Task commits end with a full reload because labels and relations
    change what the cards show
"""

import logging

from ...config import FormAction
from .. import reconcile
from ..comments import CommentList
from ..forms import FormStatus, diff_ids, diff_relations, task_fields
from ..modes import Mode
from .pickers import open_label_picker, open_option_picker, open_task_picker

logger = logging.getLogger(__name__)


# --- task form ---


def handle_task_form(ctl, key: str):
    form = ctl.task_form
    if form is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        ctl.request_close(form)
        return None

    action = ctl.config.form_keymap.get(key)
    if action is not None:
        _task_form_shortcut(ctl, form, action)
        return None

    form.update(key)
    if form.completed:
        commit_task_form(ctl)
    return None


def _task_form_shortcut(ctl, form, action: FormAction) -> None:
    if action is FormAction.SAVE:
        form.force_complete()
        commit_task_form(ctl)
    elif action is FormAction.PARENT_PICKER:
        open_task_picker(ctl, True, form.editing_id, Mode.TASK_FORM, form.fields.parent_map)
    elif action is FormAction.CHILD_PICKER:
        open_task_picker(ctl, False, form.editing_id, Mode.TASK_FORM, form.fields.child_map)
    elif action is FormAction.LABEL_PICKER:
        open_label_picker(ctl, form.editing_id, Mode.TASK_FORM, form.fields.label_ids)
    elif action is FormAction.PRIORITY_PICKER:
        open_option_picker(ctl, Mode.PRIORITY_PICKER, form.editing_id, Mode.TASK_FORM, form.fields.priority_id)
    elif action is FormAction.TYPE_PICKER:
        open_option_picker(ctl, Mode.TYPE_PICKER, form.editing_id, Mode.TASK_FORM, form.fields.type_id)
    elif action is FormAction.COMMENTS:
        if form.is_new:
            ctl.notifications.info("Save the task before adding comments")
            return
        open_comment_list(ctl, form.editing_id, Mode.COMMENT_EDIT, Mode.TASK_FORM)
    elif action is FormAction.FORM_HELP:
        ctl.set_mode(Mode.TASK_FORM_HELP_OVERLAY)


def commit_task_form(ctl) -> None:
    form = ctl.task_form
    fields = form.fields
    title = fields.title.strip()

    if not fields.confirm or not title:
        ctl.clear_session(Mode.TASK_FORM)
        ctl.set_mode(Mode.NORMAL)
        return

    if form.is_new:
        ok, task = ctl.attempt(
            "Error creating task",
            ctl.store.create_task,
            title,
            form.column_id,
            fields.description,
            fields.type_id,
            fields.priority_id,
        )
    else:
        ok, task = ctl.attempt("Error updating task", ctl.store.update_task, form.editing_id, title, fields.description)
    if not ok:
        # Keep the form open so nothing typed is lost
        form.widget.status = FormStatus.NORMAL
        return

    # Diff against the task as stored now, not as it was when the form opened
    _apply_task_diffs(ctl, task.id, task_fields(task), fields)

    ctl.clear_session(Mode.TASK_FORM)
    ctl.set_mode(Mode.NORMAL)
    if ctl.reload_board():
        ctl.select_task_by_id(task.id)


def _apply_task_diffs(ctl, task_id: int, stored, fields) -> None:
    store = ctl.store
    to_attach, to_detach = diff_ids(stored.label_ids, fields.label_ids)
    for label_id in to_attach:
        ctl.attempt("Failed to add label to task", store.attach_label, task_id, label_id)
    for label_id in to_detach:
        ctl.attempt("Failed to remove label from task", store.detach_label, task_id, label_id)

    # Every removal goes first: a child turned parent must be unlinked
    # before the reverse link is checked for cycles
    parents_add, parents_remove = diff_relations(stored.parent_map, fields.parent_map)
    children_add, children_remove = diff_relations(stored.child_map, fields.child_map)
    for parent_id in parents_remove:
        ctl.attempt("Failed to remove parent from task", store.remove_relation, parent_id, task_id)
    for child_id in children_remove:
        ctl.attempt("Failed to remove child from task", store.remove_relation, task_id, child_id)
    for parent_id, type_id in parents_add.items():
        ctl.attempt("Failed to add parent to task", store.add_relation, parent_id, task_id, type_id)
    for child_id, type_id in children_add.items():
        ctl.attempt("Failed to add child to task", store.add_relation, task_id, child_id, type_id)


# --- project form ---


def handle_project_form(ctl, key: str):
    form = ctl.project_form
    if form is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        ctl.request_close(form)
        return None
    if ctl.config.form_keymap.get(key) is FormAction.SAVE:
        form.force_complete()
    else:
        form.update(key)
    if form.completed:
        _commit_project_form(ctl)
    return None


def _commit_project_form(ctl) -> None:
    form = ctl.project_form
    name = form.fields.name.strip()
    if not form.fields.confirm or not name:
        ctl.clear_session(Mode.PROJECT_FORM)
        ctl.set_mode(Mode.NORMAL)
        return

    ok, project = ctl.attempt("Error creating project", ctl.store.create_project, name, form.fields.description)
    if not ok:
        form.widget.status = FormStatus.NORMAL
        return

    ctl.clear_session(Mode.PROJECT_FORM)
    ctl.set_mode(Mode.NORMAL)
    reconcile.reload_projects(ctl.board, ctl.store)
    for index, candidate in enumerate(ctl.board.projects):
        if candidate.id == project.id:
            ctl.board.project_index = index
    ctl.board.search_query = ""
    reconcile.switch_to_project(ctl.board, ctl.store)
    ctl.selection.reset()
    ctl.notifications.info(f"Created project {project.name}")


# --- column form / inline prompt ---


def handle_column_form(ctl, key: str):
    form = ctl.column_form
    if form is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        ctl.request_close(form)
        return None
    if ctl.config.form_keymap.get(key) is FormAction.SAVE:
        form.force_complete()
    else:
        form.update(key)
    if form.completed:
        _commit_column_form(ctl)
    return None


def _commit_column_form(ctl) -> None:
    form = ctl.column_form
    name = form.fields.name.strip()
    if not form.fields.confirm or not name:
        ctl.clear_session(form.mode)
        ctl.set_mode(Mode.NORMAL)
        return

    if form.is_new:
        ok, column = ctl.attempt(
            "Failed to create column", ctl.store.create_column, name, ctl.board.project_id, form.after_id
        )
    else:
        ok, column = ctl.attempt("Failed to rename column", ctl.store.rename_column, form.editing_id, name)
    if not ok:
        form.widget.status = FormStatus.NORMAL
        return

    ctl.clear_session(form.mode)
    ctl.set_mode(Mode.NORMAL)
    if ctl.reload_board():
        index = ctl.board.column_index_of(column.id)
        if index >= 0:
            ctl.selection.select_column(index, len(ctl.board.columns))
            ctl.selection.select_task(0, len(ctl.board.tasks_in(column.id)))


# --- comments ---


def open_comment_list(ctl, task_id: int, mode: Mode, return_mode: Mode) -> None:
    ok, comments = ctl.attempt("Failed to load comments", ctl.store.list_comments, task_id)
    if not ok:
        return
    ctl.comment_list = CommentList(task_id=task_id, return_mode=return_mode, comments=comments)
    ctl.set_mode(mode)


def handle_comment_form(ctl, key: str):
    form = ctl.comment_form
    if form is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        ctl.request_close(form, form.return_mode)
        return None
    if ctl.config.form_keymap.get(key) is FormAction.SAVE:
        form.force_complete()
    else:
        form.update(key)
    if form.completed:
        _commit_comment_form(ctl)
    return None


def _commit_comment_form(ctl) -> None:
    form = ctl.comment_form
    message = form.fields.message.strip()
    if form.fields.confirm and message:
        if form.is_new:
            ok, _ = ctl.attempt("Failed to add comment", ctl.store.create_comment, form.task_id, message)
        else:
            ok, _ = ctl.attempt("Failed to update comment", ctl.store.update_comment, form.editing_id, message)
        if not ok:
            form.widget.status = FormStatus.NORMAL
            return

    ctl.clear_session(Mode.COMMENT_FORM)
    ctl.set_mode(form.return_mode)
    if ctl.comment_list is not None:
        ok, comments = ctl.attempt("Failed to load comments", ctl.store.list_comments, form.task_id)
        if ok:
            ctl.comment_list.replace(comments)
