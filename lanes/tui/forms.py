"""
FILE: lanes/tui/forms.py
PURPOSE: Form widget and the edit sessions built on it
EXPORTS:
  - FieldKind, FieldSpec, FormStatus
  - FormWidget - keyboard-driven form over prompt_toolkit Buffers
  - TaskFields, ProjectFields, ColumnFields, CommentFields (dataclasses)
  - task_fields(task) -> TaskFields
  - TaskFormSession, ProjectFormSession, ColumnFormSession, CommentFormSession
  - diff_ids(current, desired) -> (to_add, to_remove)
  - diff_relations(current, desired) -> (to_add, to_remove)
DEPENDENCIES:
  - prompt_toolkit (Buffer / Document for line editing)
NOTES:
  - The widget owns its buffers; sessions hold a plain field struct that
    is refreshed from the widget after every key (sync_from_widget), so
    nothing outside the widget aliases its state
  - A snapshot of the field struct is taken at open time; has_changes is
    a structural comparison against it
  - Buffers are used headless: no Application is required
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document

from ..core.constants import DEFAULT_PRIORITY_ID, DEFAULT_TYPE_ID, MAX_COMMENT_LENGTH
from ..core.models import Column, Comment, TaskDetail
from .modes import Mode


class FieldKind(Enum):
    TEXT = "text"
    MULTILINE = "multiline"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    max_length: Optional[int] = None


class FormStatus(Enum):
    NORMAL = "normal"
    COMPLETED = "completed"


class FormWidget:
    """
    A small form: text fields edited through prompt_toolkit Buffers and an
    optional yes/no confirm field.

    Keys:
        tab / shift+tab     next / previous field
        enter               next field; completes on the last text field
                            or on the confirm field; newline in multiline
        y / n, left / right set the confirm field
        backspace, delete, home, end, left, right, up, down  edit text
    """

    def __init__(self, fields: List[FieldSpec], values: Dict[str, object]):
        self.fields = list(fields)
        self.focus = 0
        self.status = FormStatus.NORMAL
        self._buffers: Dict[str, Buffer] = {}
        self._confirm: Dict[str, bool] = {}
        for spec in self.fields:
            if spec.kind is FieldKind.CONFIRM:
                self._confirm[spec.key] = bool(values.get(spec.key, True))
            else:
                text = str(values.get(spec.key) or "")
                self._buffers[spec.key] = Buffer(
                    document=Document(text, len(text)),
                    multiline=spec.kind is FieldKind.MULTILINE,
                )

    @property
    def focused(self) -> FieldSpec:
        return self.fields[self.focus]

    def values(self) -> Dict[str, object]:
        result: Dict[str, object] = {}
        for key, buffer in self._buffers.items():
            result[key] = buffer.text
        result.update(self._confirm)
        return result

    def cursor_position(self, key: str) -> int:
        return self._buffers[key].cursor_position

    def force_complete(self) -> None:
        """Finish now as if confirmed (the save shortcut)."""
        for key in self._confirm:
            self._confirm[key] = True
        self.status = FormStatus.COMPLETED

    def update(self, key: str) -> None:
        if self.status is FormStatus.COMPLETED:
            return
        spec = self.focused

        if key == "tab":
            self.focus = (self.focus + 1) % len(self.fields)
            return
        if key == "shift+tab":
            self.focus = (self.focus - 1) % len(self.fields)
            return

        if spec.kind is FieldKind.CONFIRM:
            self._update_confirm(spec, key)
        else:
            self._update_text(spec, key)

    def _update_confirm(self, spec: FieldSpec, key: str) -> None:
        if key in ("y", "Y", "left"):
            self._confirm[spec.key] = True
        elif key in ("n", "N", "right"):
            self._confirm[spec.key] = False
        elif key == "enter":
            self.status = FormStatus.COMPLETED

    def _update_text(self, spec: FieldSpec, key: str) -> None:
        buffer = self._buffers[spec.key]
        multiline = spec.kind is FieldKind.MULTILINE

        if key == "enter":
            if multiline:
                self._insert(spec, buffer, "\n")
            elif self.focus == len(self.fields) - 1:
                self.status = FormStatus.COMPLETED
            else:
                self.focus += 1
        elif key == "backspace":
            buffer.delete_before_cursor(1)
        elif key == "delete":
            buffer.delete(1)
        elif key == "left":
            buffer.cursor_left()
        elif key == "right":
            buffer.cursor_right()
        elif key == "up" and multiline:
            buffer.cursor_up()
        elif key == "down" and multiline:
            buffer.cursor_down()
        elif key == "home":
            buffer.cursor_position += buffer.document.get_start_of_line_position()
        elif key == "end":
            buffer.cursor_position += buffer.document.get_end_of_line_position()
        elif key == "space":
            self._insert(spec, buffer, " ")
        elif len(key) == 1 and key.isprintable():
            self._insert(spec, buffer, key)

    @staticmethod
    def _insert(spec: FieldSpec, buffer: Buffer, text: str) -> None:
        if spec.max_length is not None and len(buffer.text) + len(text) > spec.max_length:
            return
        buffer.insert_text(text)


# --- diffs ---


def diff_ids(current, desired) -> Tuple[List[int], List[int]]:
    """Ids to attach (desired - current) and to detach (current - desired)."""
    current, desired = set(current), set(desired)
    return sorted(desired - current), sorted(current - desired)


def diff_relations(current: Dict[int, int], desired: Dict[int, int]) -> Tuple[Dict[int, int], List[int]]:
    """
    Compare {task_id: relation_type_id} maps.

    Returns the relations to (re)add, which covers new ones and ones whose
    type changed, and the task ids whose relation must be removed.
    Unchanged pairs appear in neither.
    """
    to_add = {
        task_id: type_id
        for task_id, type_id in desired.items()
        if current.get(task_id) != type_id
    }
    to_remove = sorted(task_id for task_id in current if task_id not in desired)
    return to_add, to_remove


# --- field structs ---


@dataclass(frozen=True)
class TaskFields:
    title: str = ""
    description: str = ""
    confirm: bool = True
    label_ids: FrozenSet[int] = frozenset()
    parents: Tuple[Tuple[int, int], ...] = ()
    children: Tuple[Tuple[int, int], ...] = ()
    priority_id: int = DEFAULT_PRIORITY_ID
    type_id: int = DEFAULT_TYPE_ID

    @property
    def parent_map(self) -> Dict[int, int]:
        return dict(self.parents)

    @property
    def child_map(self) -> Dict[int, int]:
        return dict(self.children)

    def differs_from(self, other: "TaskFields") -> bool:
        return (
            self.title != other.title
            or self.description != other.description
            or self.label_ids != other.label_ids
            or self.parents != other.parents
            or self.children != other.children
        )


@dataclass(frozen=True)
class ProjectFields:
    name: str = ""
    description: str = ""
    confirm: bool = True

    def differs_from(self, other: "ProjectFields") -> bool:
        return self.name != other.name or self.description != other.description


@dataclass(frozen=True)
class ColumnFields:
    name: str = ""
    confirm: bool = True

    def differs_from(self, other: "ColumnFields") -> bool:
        return self.name != other.name


@dataclass(frozen=True)
class CommentFields:
    message: str = ""
    confirm: bool = True

    def differs_from(self, other: "CommentFields") -> bool:
        return self.message != other.message


def _relation_tuple(mapping: Dict[int, int]) -> Tuple[Tuple[int, int], ...]:
    return tuple(sorted(mapping.items()))


def task_fields(task: TaskDetail) -> TaskFields:
    """Field values of a stored task."""
    return TaskFields(
        title=task.title,
        description=task.description or "",
        label_ids=frozenset(label.id for label in task.labels),
        parents=_relation_tuple({p.id: p.relation_type_id for p in task.parents}),
        children=_relation_tuple({c.id: c.relation_type_id for c in task.children}),
        priority_id=task.priority_id,
        type_id=task.type_id,
    )


# --- sessions ---


class FormSession:
    """Common lifecycle: open -> update* -> commit or discard."""

    mode: Mode = Mode.NORMAL
    entity: str = ""

    def __init__(self, widget: FormWidget, fields, editing_id: int = 0):
        self.widget = widget
        self.editing_id = editing_id
        self.fields = fields
        self.snapshot = fields

    @property
    def is_new(self) -> bool:
        return self.editing_id == 0

    @property
    def completed(self) -> bool:
        return self.widget.status is FormStatus.COMPLETED

    @property
    def has_changes(self) -> bool:
        return self.fields.differs_from(self.snapshot)

    @property
    def discard_message(self) -> str:
        return f"Discard {self.entity}?" if self.is_new else "Discard changes?"

    def update(self, key: str) -> None:
        self.widget.update(key)
        self.sync_from_widget()

    def force_complete(self) -> None:
        self.widget.force_complete()
        self.sync_from_widget()

    def sync_from_widget(self) -> None:
        # Only the fields the widget edits; pickers own the rest
        self.fields = replace(self.fields, **self.widget.values())


class TaskFormSession(FormSession):
    mode = Mode.TASK_FORM
    entity = "task"

    def __init__(
        self,
        widget: FormWidget,
        fields: TaskFields,
        editing_id: int = 0,
        column_id: int = 0,
        original: Optional[TaskFields] = None,
    ):
        super().__init__(widget, fields, editing_id)
        self.column_id = column_id
        # What the store holds, for the commit-time diff
        self.original = original or TaskFields()

    @staticmethod
    def _widget(fields: TaskFields, is_new: bool) -> FormWidget:
        return FormWidget(
            [
                FieldSpec("title", "Title"),
                FieldSpec("description", "Description", FieldKind.MULTILINE),
                FieldSpec("confirm", "Create task?" if is_new else "Save changes?", FieldKind.CONFIRM),
            ],
            {"title": fields.title, "description": fields.description, "confirm": True},
        )

    @classmethod
    def open_new(cls, column_id: int) -> "TaskFormSession":
        fields = TaskFields()
        return cls(cls._widget(fields, True), fields, 0, column_id, fields)

    @classmethod
    def open_existing(cls, task: TaskDetail) -> "TaskFormSession":
        fields = task_fields(task)
        return cls(cls._widget(fields, False), fields, task.id, task.column_id, fields)

    def set_labels(self, label_ids) -> None:
        self.fields = replace(self.fields, label_ids=frozenset(label_ids))

    def set_parents(self, mapping: Dict[int, int]) -> None:
        self.fields = replace(self.fields, parents=_relation_tuple(mapping))

    def set_children(self, mapping: Dict[int, int]) -> None:
        self.fields = replace(self.fields, children=_relation_tuple(mapping))

    def set_priority(self, priority_id: int) -> None:
        self.fields = replace(self.fields, priority_id=priority_id)

    def set_type(self, type_id: int) -> None:
        self.fields = replace(self.fields, type_id=type_id)


class ProjectFormSession(FormSession):
    mode = Mode.PROJECT_FORM
    entity = "project"

    @classmethod
    def open_new(cls) -> "ProjectFormSession":
        fields = ProjectFields()
        widget = FormWidget(
            [
                FieldSpec("name", "Name"),
                FieldSpec("description", "Description", FieldKind.MULTILINE),
                FieldSpec("confirm", "Create project?", FieldKind.CONFIRM),
            ],
            {"name": "", "description": "", "confirm": True},
        )
        return cls(widget, fields)


class ColumnFormSession(FormSession):
    """
    Column name editor. inline=True is the single-line prompt (enter
    saves), otherwise a form with a confirm field.
    """

    entity = "column"

    def __init__(self, widget, fields, editing_id=0, after_id=None, inline=False):
        super().__init__(widget, fields, editing_id)
        self.after_id = after_id
        self.inline = inline
        if inline:
            self.mode = Mode.ADD_COLUMN if editing_id == 0 else Mode.EDIT_COLUMN
        else:
            self.mode = Mode.ADD_COLUMN_FORM if editing_id == 0 else Mode.EDIT_COLUMN_FORM

    @staticmethod
    def _widget(name: str, is_new: bool, inline: bool) -> FormWidget:
        specs = [FieldSpec("name", "Column name")]
        if not inline:
            specs.append(FieldSpec("confirm", "Create column?" if is_new else "Save changes?", FieldKind.CONFIRM))
        return FormWidget(specs, {"name": name, "confirm": True})

    @classmethod
    def open_new(cls, after_id: Optional[int], inline: bool = False) -> "ColumnFormSession":
        fields = ColumnFields()
        return cls(cls._widget("", True, inline), fields, 0, after_id, inline)

    @classmethod
    def open_existing(cls, column: Column, inline: bool = False) -> "ColumnFormSession":
        fields = ColumnFields(name=column.name)
        return cls(cls._widget(column.name, False, inline), fields, column.id, None, inline)


class CommentFormSession(FormSession):
    mode = Mode.COMMENT_FORM
    entity = "comment"

    def __init__(self, widget, fields, editing_id=0, task_id=0, return_mode=Mode.COMMENTS_VIEW):
        super().__init__(widget, fields, editing_id)
        self.task_id = task_id
        self.return_mode = return_mode

    @staticmethod
    def _widget(message: str, is_new: bool) -> FormWidget:
        return FormWidget(
            [
                FieldSpec("message", "Comment", FieldKind.MULTILINE, max_length=MAX_COMMENT_LENGTH),
                FieldSpec("confirm", "Add comment?" if is_new else "Save changes?", FieldKind.CONFIRM),
            ],
            {"message": message, "confirm": True},
        )

    @classmethod
    def open_new(cls, task_id: int, return_mode: Mode) -> "CommentFormSession":
        return cls(cls._widget("", True), CommentFields(), 0, task_id, return_mode)

    @classmethod
    def open_existing(cls, comment: Comment, return_mode: Mode) -> "CommentFormSession":
        fields = CommentFields(message=comment.message)
        return cls(cls._widget(comment.message, False), fields, comment.id, comment.task_id, return_mode)
