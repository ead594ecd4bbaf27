"""
FILE: lanes/feed/protocol.py
PURPOSE: Wire format of the change feed - one JSON object per line
EXPORTS:
  - Event (dataclass) - a db_changed notification for one project
  - encode(message) -> bytes
  - decode(line) -> dict
  - subscribe_message(project_id), event_message(event), ping_message(), pong_message()
  - ProtocolError
NOTES:
  - Message shapes:
      {"type": "subscribe", "project_id": 0}
      {"type": "event", "event": {"type": "db_changed", "project_id": 3,
                                  "sequence_id": 12, "timestamp": "..."}}
      {"type": "ping"} / {"type": "pong"}
  - project_id 0 means "every project", both in subscriptions and events
  - sequence_id is assigned by the broker; publishers send 0
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

EVENT_DB_CHANGED = "db_changed"

MESSAGE_TYPES = ("subscribe", "event", "ping", "pong")


class ProtocolError(ValueError):
    """A line that is not a valid feed message."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Event:
    project_id: int
    type: str = EVENT_DB_CHANGED
    sequence_id: int = 0
    timestamp: str = field(default_factory=_now)

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        try:
            return cls(
                project_id=int(data.get("project_id", 0)),
                type=str(data.get("type", EVENT_DB_CHANGED)),
                sequence_id=int(data.get("sequence_id", 0)),
                timestamp=str(data.get("timestamp") or _now()),
            )
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"bad event payload: {e}") from e

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "project_id": self.project_id,
            "sequence_id": self.sequence_id,
            "timestamp": self.timestamp,
        }


def encode(message: dict) -> bytes:
    return (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")


def decode(line) -> dict:
    """
    Parse one line into a message dict.

    Raises:
        ProtocolError: If the line is not JSON or has an unknown type
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    try:
        message = json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"invalid JSON: {e}") from e
    if not isinstance(message, dict) or message.get("type") not in MESSAGE_TYPES:
        raise ProtocolError(f"unknown message: {line.strip()[:80]}")
    return message


def subscribe_message(project_id: int = 0) -> dict:
    return {"type": "subscribe", "project_id": project_id}


def event_message(event: Event) -> dict:
    return {"type": "event", "event": event.to_dict()}


def ping_message() -> dict:
    return {"type": "ping"}


def pong_message() -> dict:
    return {"type": "pong"}


def event_from_message(message: dict) -> Optional[Event]:
    """The Event carried by an "event" message, or None for other types."""
    if message.get("type") != "event":
        return None
    payload = message.get("event")
    if not isinstance(payload, dict):
        raise ProtocolError("event message without payload")
    return Event.from_dict(payload)
