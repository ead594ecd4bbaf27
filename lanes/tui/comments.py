"""
FILE: lanes/tui/comments.py
PURPOSE: Comment list shown in CommentsView / CommentEdit
EXPORTS:
  - CommentList (dataclass)
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..core.models import Comment
from .modes import Mode


@dataclass
class CommentList:
    """Comments of one task; return_mode is where esc goes back to."""

    task_id: int
    return_mode: Mode
    comments: List[Comment] = field(default_factory=list)
    cursor: int = 0

    def current(self) -> Optional[Comment]:
        if 0 <= self.cursor < len(self.comments):
            return self.comments[self.cursor]
        return None

    def move_up(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1

    def move_down(self) -> None:
        if self.cursor < len(self.comments) - 1:
            self.cursor += 1

    def replace(self, comments: List[Comment]) -> None:
        self.comments = list(comments)
        self.cursor = max(0, min(self.cursor, len(self.comments) - 1)) if self.comments else 0
