"""
FILE: lanes/tui/messages.py
PURPOSE: Inputs to the controller loop and the side-effect commands it returns
EXPORTS:
  - Messages: KeyMsg, ResizeMsg, TickMsg, RefreshMsg, NotificationMsg,
    ConnectionEstablishedMsg, ConnectionLostMsg, ConnectionReconnectingMsg
  - Commands: Quit, Listen, Batch, batch()
  - FEED_MESSAGES (tuple of feed-delivered message types)
NOTES:
  - Messages are plain immutable values; handlers never receive callbacks
  - Commands are performed by the application shell, not the controller
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class KeyMsg:
    key: str


@dataclass(frozen=True)
class ResizeMsg:
    width: int
    height: int


@dataclass(frozen=True)
class TickMsg:
    now: float


@dataclass(frozen=True)
class RefreshMsg:
    """Data changed for project_id (0 means every project)."""

    project_id: int
    sequence_id: int = 0


@dataclass(frozen=True)
class NotificationMsg:
    level: str
    text: str


@dataclass(frozen=True)
class ConnectionEstablishedMsg:
    pass


@dataclass(frozen=True)
class ConnectionLostMsg:
    reason: str = ""


@dataclass(frozen=True)
class ConnectionReconnectingMsg:
    attempt: int = 0


FEED_MESSAGES = (
    RefreshMsg,
    NotificationMsg,
    ConnectionEstablishedMsg,
    ConnectionLostMsg,
    ConnectionReconnectingMsg,
)


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Listen:
    """Arm the feed waiter so the next feed message reaches the loop."""
    pass


@dataclass(frozen=True)
class Batch:
    commands: Tuple[object, ...]


def batch(*commands) -> Optional[object]:
    """Combine commands, dropping Nones; returns None, one command or a Batch."""
    flat = []
    for command in commands:
        if command is None:
            continue
        if isinstance(command, Batch):
            flat.extend(command.commands)
        else:
            flat.append(command)
    if not flat:
        return None
    if len(flat) == 1:
        return flat[0]
    return Batch(tuple(flat))
