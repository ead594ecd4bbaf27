"""
FILE: lanes/tui/pickers.py
PURPOSE: Filterable selection lists used by the picker modes
EXPORTS:
  - PickerItem (dataclass)
  - ListPicker - filter, cursor and multi-select over PickerItems
  - LabelPicker - adds the "create new label" sub-mode
  - TaskPicker - parent/child pickers carrying a relation type per item
  - OptionPicker - single choice (priority, type, relation type, status)
NOTES:
  - cursor always indexes the *filtered* view and is clamped after
    every filter change
  - A fresh picker is built every time a picker mode is entered, so no
    filter or cursor survives from an earlier use
  - Pickers never touch the store; handlers decide what a toggle means
"""

from dataclasses import dataclass
from typing import List, Optional

from ..core.constants import (
    DEFAULT_LABEL_NAME,
    DEFAULT_RELATION_TYPE_ID,
    LABEL_COLORS,
    MAX_LABEL_FILTER_LENGTH,
)
from .modes import Mode


@dataclass
class PickerItem:
    id: int
    label: str
    selected: bool = False
    relation_type_id: int = 0
    color: str = ""


class ListPicker:
    def __init__(self, items: List[PickerItem], return_mode: Mode, max_filter: int = MAX_LABEL_FILTER_LENGTH):
        self.items = list(items)
        self.return_mode = return_mode
        self.filter = ""
        self.cursor = 0
        self.max_filter = max_filter

    @property
    def form_bound(self) -> bool:
        """Toggles stay local until the task form commits."""
        return self.return_mode is Mode.TASK_FORM

    def filtered(self) -> List[PickerItem]:
        if not self.filter:
            return list(self.items)
        needle = self.filter.casefold()
        return [item for item in self.items if needle in item.label.casefold()]

    def row_count(self) -> int:
        return len(self.filtered())

    def current(self) -> Optional[PickerItem]:
        rows = self.filtered()
        if 0 <= self.cursor < len(rows):
            return rows[self.cursor]
        return None

    def index_of(self, item: PickerItem) -> int:
        """Position of an item in the unfiltered list."""
        for index, candidate in enumerate(self.items):
            if candidate is item:
                return index
        return -1

    def clamp(self) -> None:
        count = self.row_count()
        if count == 0:
            self.cursor = 0
        else:
            self.cursor = max(0, min(self.cursor, count - 1))

    def type_char(self, char: str) -> None:
        if len(self.filter) >= self.max_filter:
            return
        self.filter += char
        self.clamp()

    def backspace(self) -> None:
        if self.filter:
            self.filter = self.filter[:-1]
            self.clamp()

    def move_up(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1

    def move_down(self) -> None:
        if self.cursor < self.row_count() - 1:
            self.cursor += 1

    def handle_common_key(self, key: str) -> bool:
        """Navigation and filter editing. Returns True if the key was used."""
        if key == "up":
            self.move_up()
        elif key == "down":
            self.move_down()
        elif key == "backspace":
            self.backspace()
        elif key == "space":
            self.type_char(" ")
        elif len(key) == 1 and key.isprintable():
            self.type_char(key)
        else:
            return False
        return True

    def selected_ids(self) -> List[int]:
        return [item.id for item in self.items if item.selected]

    def toggle(self, item: PickerItem) -> bool:
        """Flip an item's selection and return the new state."""
        item.selected = not item.selected
        return item.selected


class LabelPicker(ListPicker):
    """Label multi-select with an inline "create new label" flow."""

    def __init__(self, items: List[PickerItem], return_mode: Mode, task_id: int = 0):
        super().__init__(items, return_mode)
        self.task_id = task_id
        self.create_mode = False
        self.color_index = 0
        self.new_name = ""

    def offers_create_row(self) -> bool:
        if not self.filter.strip():
            return False
        needle = self.filter.strip().casefold()
        return all(item.label.casefold() != needle for item in self.items)

    def row_count(self) -> int:
        return len(self.filtered()) + (1 if self.offers_create_row() else 0)

    def on_create_row(self) -> bool:
        return self.offers_create_row() and self.cursor == len(self.filtered())

    def enter_create_mode(self) -> None:
        self.create_mode = True
        self.color_index = 0
        self.new_name = self.filter.strip() or DEFAULT_LABEL_NAME

    def leave_create_mode(self) -> None:
        self.create_mode = False
        self.new_name = ""

    def cycle_color(self, step: int) -> None:
        self.color_index = (self.color_index + step) % len(LABEL_COLORS)

    @property
    def color(self) -> str:
        return LABEL_COLORS[self.color_index][1]

    @property
    def color_name(self) -> str:
        return LABEL_COLORS[self.color_index][0]

    def add_created(self, label_id: int, name: str, color: str) -> PickerItem:
        item = PickerItem(id=label_id, label=name, selected=True, color=color)
        self.items.append(item)
        self.filter = ""
        self.cursor = self.index_of(item)
        self.leave_create_mode()
        return item


class TaskPicker(ListPicker):
    """Parent or child task multi-select; each item carries a relation type."""

    def __init__(self, items: List[PickerItem], return_mode: Mode, task_id: int = 0, is_parent: bool = True):
        super().__init__(items, return_mode)
        self.task_id = task_id
        self.is_parent = is_parent

    @property
    def mode(self) -> Mode:
        return Mode.PARENT_PICKER if self.is_parent else Mode.CHILD_PICKER

    def toggle(self, item: PickerItem) -> bool:
        selected = super().toggle(item)
        if selected and not item.relation_type_id:
            item.relation_type_id = DEFAULT_RELATION_TYPE_ID
        return selected

    def relation_map(self):
        return {item.id: item.relation_type_id or DEFAULT_RELATION_TYPE_ID for item in self.items if item.selected}


class OptionPicker(ListPicker):
    """
    Single-choice list. item_index points back into the picker we came
    from when choosing a relation type for one of its rows.
    """

    def __init__(
        self,
        items: List[PickerItem],
        return_mode: Mode,
        mode: Mode,
        task_id: int = 0,
        current_id: Optional[int] = None,
        item_index: int = -1,
    ):
        super().__init__(items, return_mode)
        self.mode = mode
        self.task_id = task_id
        self.item_index = item_index
        for index, item in enumerate(self.items):
            item.selected = item.id == current_id
            if item.selected:
                self.cursor = index
