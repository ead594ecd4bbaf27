"""
FILE: lanes/tui/handlers/__init__.py
PURPOSE: The Mode -> key handler table
EXPORTS:
  - MODE_HANDLERS (dict)
NOTES:
  - Every handler has the signature handler(ctl, key) -> command | None
  - Modes missing from the table ignore key input
"""

from ..modes import Mode
from .comments import handle_comments
from .confirm import handle_delete_column_confirm, handle_delete_task_confirm, handle_discard_confirm
from .forms import handle_column_form, handle_comment_form, handle_project_form, handle_task_form
from .normal import handle_normal
from .pickers import (
    handle_label_picker,
    handle_priority_picker,
    handle_relation_type_picker,
    handle_status_picker,
    handle_task_picker,
    handle_type_picker,
)
from .views import handle_help, handle_search, handle_task_form_help, handle_view_task

MODE_HANDLERS = {
    Mode.NORMAL: handle_normal,
    Mode.DELETE_TASK_CONFIRM: handle_delete_task_confirm,
    Mode.DELETE_COLUMN_CONFIRM: handle_delete_column_confirm,
    Mode.DISCARD_CONFIRM: handle_discard_confirm,
    Mode.ADD_COLUMN: handle_column_form,
    Mode.EDIT_COLUMN: handle_column_form,
    Mode.ADD_COLUMN_FORM: handle_column_form,
    Mode.EDIT_COLUMN_FORM: handle_column_form,
    Mode.TASK_FORM: handle_task_form,
    Mode.PROJECT_FORM: handle_project_form,
    Mode.COMMENT_FORM: handle_comment_form,
    Mode.COMMENTS_VIEW: handle_comments,
    Mode.COMMENT_EDIT: handle_comments,
    Mode.HELP_OVERLAY: handle_help,
    Mode.TASK_FORM_HELP_OVERLAY: handle_task_form_help,
    Mode.LABEL_PICKER: handle_label_picker,
    Mode.PARENT_PICKER: handle_task_picker,
    Mode.CHILD_PICKER: handle_task_picker,
    Mode.PRIORITY_PICKER: handle_priority_picker,
    Mode.TYPE_PICKER: handle_type_picker,
    Mode.RELATION_TYPE_PICKER: handle_relation_type_picker,
    Mode.STATUS_PICKER: handle_status_picker,
    Mode.SEARCH: handle_search,
    Mode.VIEW_TASK: handle_view_task,
}
