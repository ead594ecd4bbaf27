"""
FILE: lanes/tui/connection.py
PURPOSE: Health of the link to the event feed
EXPORTS:
  - ConnectionState (enum)
  - infer_connection_state(text) -> ConnectionState | None
  - next_connection_state(current, msg) -> ConnectionState
NOTES:
  - Only feed messages move the state; local editing never depends on it
"""

from enum import Enum
from typing import Optional

from .messages import (
    ConnectionEstablishedMsg,
    ConnectionLostMsg,
    ConnectionReconnectingMsg,
    NotificationMsg,
)


class ConnectionState(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"


def infer_connection_state(text: str) -> Optional[ConnectionState]:
    """
    Guess the connection state from a feed notification's text.

    Backs up the explicit connection signals in case one was missed.
    Order matters: "Failed to reconnect" also contains "reconnect".
    """
    if "Failed to reconnect" in text:
        return ConnectionState.DISCONNECTED
    if "Reconnected" in text:
        return ConnectionState.CONNECTED
    if "Connection lost" in text or "reconnecting" in text:
        return ConnectionState.RECONNECTING
    return None


def next_connection_state(current: ConnectionState, msg) -> ConnectionState:
    """State after one feed message; messages that say nothing keep the current state."""
    if isinstance(msg, ConnectionEstablishedMsg):
        return ConnectionState.CONNECTED
    if isinstance(msg, ConnectionLostMsg):
        return ConnectionState.DISCONNECTED
    if isinstance(msg, ConnectionReconnectingMsg):
        return ConnectionState.RECONNECTING
    if isinstance(msg, NotificationMsg):
        return infer_connection_state(msg.text) or current
    return current
