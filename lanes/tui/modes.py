"""
FILE: lanes/tui/modes.py
PURPOSE: The closed set of interaction modes and the discard-confirmation record
EXPORTS:
  - Mode (enum)
  - DiscardContext (dataclass)
  - FORM_MODES (frozenset)
NOTES:
  - Exactly one Mode is active at a time; switching modes is the only way
    a session gains or loses the keyboard
"""

from dataclasses import dataclass
from enum import Enum


class Mode(Enum):
    NORMAL = "normal"
    DELETE_TASK_CONFIRM = "delete_task_confirm"
    DELETE_COLUMN_CONFIRM = "delete_column_confirm"
    DISCARD_CONFIRM = "discard_confirm"
    ADD_COLUMN = "add_column"
    EDIT_COLUMN = "edit_column"
    ADD_COLUMN_FORM = "add_column_form"
    EDIT_COLUMN_FORM = "edit_column_form"
    TASK_FORM = "task_form"
    PROJECT_FORM = "project_form"
    COMMENT_FORM = "comment_form"
    COMMENTS_VIEW = "comments_view"
    COMMENT_EDIT = "comment_edit"
    HELP_OVERLAY = "help_overlay"
    TASK_FORM_HELP_OVERLAY = "task_form_help_overlay"
    LABEL_PICKER = "label_picker"
    PARENT_PICKER = "parent_picker"
    CHILD_PICKER = "child_picker"
    PRIORITY_PICKER = "priority_picker"
    TYPE_PICKER = "type_picker"
    RELATION_TYPE_PICKER = "relation_type_picker"
    STATUS_PICKER = "status_picker"
    SEARCH = "search"
    VIEW_TASK = "view_task"

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").upper()


FORM_MODES = frozenset({
    Mode.TASK_FORM,
    Mode.PROJECT_FORM,
    Mode.COMMENT_FORM,
    Mode.ADD_COLUMN_FORM,
    Mode.EDIT_COLUMN_FORM,
})


@dataclass(frozen=True)
class DiscardContext:
    """
    A one-shot request to confirm throwing away unsaved edits.

    source_mode is resumed untouched on "n"; resume_mode is entered after
    the session is cleared on "y".
    """

    source_mode: Mode
    message: str
    resume_mode: Mode = Mode.NORMAL
