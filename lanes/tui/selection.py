"""
FILE: lanes/tui/selection.py
PURPOSE: Selected column/task and the window of visible columns
EXPORTS:
  - Selection (dataclass)
  - viewport_size_for_width(width) -> int
NOTES:
  - Pure arithmetic, no I/O
  - Movement methods return False when nothing moved so callers can tell
    the user they hit an edge
  - After any user movement the selected column lies inside
    [viewport_offset, viewport_offset + viewport_size)
"""

from dataclasses import dataclass, field
from typing import Dict

from ..core.constants import COLUMN_WIDTH, DEFAULT_VIEWPORT_SIZE, RESERVED_WIDTH


def viewport_size_for_width(width: int) -> int:
    """Number of columns that fit in a terminal of the given width (at least 1)."""
    return max(1, (width - RESERVED_WIDTH) // COLUMN_WIDTH)


@dataclass
class Selection:
    column_index: int = 0
    task_index: int = 0
    viewport_offset: int = 0
    viewport_size: int = DEFAULT_VIEWPORT_SIZE
    visible_task_rows: int = 0
    task_offsets: Dict[int, int] = field(default_factory=dict)

    # --- columns ---

    def move_column_left(self) -> bool:
        if self.column_index <= 0:
            return False
        self.column_index -= 1
        self.task_index = 0
        if self.column_index < self.viewport_offset:
            # Jump so the selection becomes the first visible column
            self.viewport_offset = self.column_index
        return True

    def move_column_right(self, column_count: int) -> bool:
        if self.column_index >= column_count - 1:
            return False
        self.column_index += 1
        self.task_index = 0
        if self.column_index >= self.viewport_offset + self.viewport_size:
            # Jump so the selection becomes the last visible column
            self.viewport_offset = self.column_index - self.viewport_size + 1
        return True

    def select_column(self, index: int, column_count: int) -> None:
        """Select a column directly (e.g. after moving a task there)."""
        if column_count <= 0:
            self.column_index = 0
        else:
            self.column_index = max(0, min(index, column_count - 1))
        self.ensure_column_visible()

    def ensure_column_visible(self) -> None:
        if self.column_index < self.viewport_offset:
            self.viewport_offset = self.column_index
        elif self.column_index >= self.viewport_offset + self.viewport_size:
            self.viewport_offset = self.column_index - self.viewport_size + 1

    # --- viewport ---

    def scroll_left(self) -> bool:
        if self.viewport_offset <= 0:
            return False
        self.viewport_offset -= 1
        last_visible = self.viewport_offset + self.viewport_size - 1
        if self.column_index > last_visible:
            self.column_index = last_visible
            self.task_index = 0
        return True

    def scroll_right(self, column_count: int) -> bool:
        if self.viewport_offset + self.viewport_size >= column_count:
            return False
        self.viewport_offset += 1
        if self.column_index < self.viewport_offset:
            self.column_index = self.viewport_offset
            self.task_index = 0
        return True

    def set_viewport_size(self, size: int, column_count: int) -> None:
        """Apply a new viewport size (terminal resize)."""
        self.viewport_size = max(1, size)
        self.viewport_offset = max(0, min(self.viewport_offset, column_count - self.viewport_size))
        if column_count > 0:
            self.ensure_column_visible()

    # --- tasks ---

    def move_task_up(self) -> bool:
        if self.task_index <= 0:
            return False
        self.task_index -= 1
        self.follow_task()
        return True

    def move_task_down(self, task_count: int) -> bool:
        if self.task_index >= task_count - 1:
            return False
        self.task_index += 1
        self.follow_task()
        return True

    def select_task(self, index: int, task_count: int) -> None:
        self.task_index = max(0, min(index, task_count - 1)) if task_count > 0 else 0
        self.follow_task()

    def clamp_task(self, task_count: int) -> None:
        if self.task_index >= task_count:
            self.task_index = max(0, task_count - 1)
        self.follow_task()

    def after_task_removed(self, task_count: int) -> None:
        """Keep the cursor on the same slot, stepping up if the last task went."""
        self.clamp_task(task_count)

    def follow_task(self) -> None:
        """Scroll the current column's task list so the selected task shows."""
        if self.visible_task_rows <= 0:
            return
        offset = self.task_offsets.get(self.column_index, 0)
        if self.task_index < offset:
            offset = self.task_index
        elif self.task_index >= offset + self.visible_task_rows:
            offset = self.task_index - self.visible_task_rows + 1
        self.task_offsets[self.column_index] = offset

    def task_offset(self, column_index: int) -> int:
        return self.task_offsets.get(column_index, 0)

    # --- structural changes ---

    def after_structural_change(self, column_count: int) -> None:
        """
        Re-clamp after columns were added or removed.

        The column index steps back by one when it fell off the end
        instead of jumping to the first column; task selection resets.
        """
        self.task_index = 0
        self.task_offsets = {}
        if column_count <= 0:
            self.column_index = 0
            self.viewport_offset = 0
            return
        if self.column_index >= column_count:
            self.column_index = column_count - 1
        self.viewport_offset = max(0, min(self.viewport_offset, column_count - self.viewport_size))
        self.ensure_column_visible()

    def reset(self) -> None:
        self.column_index = 0
        self.task_index = 0
        self.viewport_offset = 0
        self.task_offsets = {}
