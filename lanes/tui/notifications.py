"""
FILE: lanes/tui/notifications.py
PURPOSE: Leveled, auto-expiring messages shown in the status bar
EXPORTS:
  - Level (enum)
  - Notification (dataclass)
  - Notifications
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional


class Level(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def parse(cls, value: str) -> "Level":
        try:
            return cls(value.lower())
        except ValueError:
            return cls.INFO


@dataclass
class Notification:
    level: Level
    text: str
    created_at: float


class Notifications:
    """Holds current notifications; the newest is last."""

    def __init__(self, ttl: float = 4.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._items: List[Notification] = []

    def add(self, level: Level, text: str) -> Notification:
        note = Notification(level=level, text=text, created_at=self._clock())
        self._items.append(note)
        return note

    def info(self, text: str) -> Notification:
        return self.add(Level.INFO, text)

    def warning(self, text: str) -> Notification:
        return self.add(Level.WARNING, text)

    def error(self, text: str) -> Notification:
        return self.add(Level.ERROR, text)

    def expire(self, now: Optional[float] = None) -> bool:
        """Drop notifications older than the TTL. Returns True if any went."""
        now = self._clock() if now is None else now
        before = len(self._items)
        self._items = [n for n in self._items if now - n.created_at < self.ttl]
        return len(self._items) != before

    def clear(self) -> None:
        self._items = []

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    @property
    def latest(self) -> Optional[Notification]:
        return self._items[-1] if self._items else None

    def __len__(self) -> int:
        return len(self._items)
