"""
FILE: lanes/feed/client.py
PURPOSE: Connection from a running board to the feed broker
EXPORTS:
  - FeedClient
DEPENDENCIES:
  - lanes.feed.protocol
  - lanes.tui.messages (what the listener hands to the UI loop)
NOTES:
  - The listener runs on its own daemon thread and only ever calls
    deliver(msg); it never touches board state
  - Connection changes are reported twice: as an explicit connection
    message and as a leveled notification whose text carries the same
    information
  - Reconnect: exponential backoff starting at base_delay, doubling,
    max_retries attempts; after that the listener stops for good
  - Events whose sequence id is not newer than the last one seen are
    dropped; ids restart when the broker restarts, so a reconnect resets
    the counter
"""

import logging
import socket
import threading
from typing import Callable, Optional

from ..tui.messages import (
    ConnectionEstablishedMsg,
    ConnectionLostMsg,
    ConnectionReconnectingMsg,
    NotificationMsg,
    RefreshMsg,
)
from . import protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY = 1.0
# The broker pings every 30s, so a silent minute means the link is dead
DEFAULT_READ_TIMEOUT = 60.0

LOST_TEXT = "Connection lost, reconnecting..."
RECONNECTED_TEXT = "Reconnected to daemon"
FAILED_TEXT = "Failed to reconnect to daemon"


class FeedClient:
    def __init__(
        self,
        socket_path: str,
        deliver: Callable[[object], None],
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        self.socket_path = socket_path
        self.deliver = deliver
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.read_timeout = read_timeout
        self.last_sequence = 0

        self._sock: Optional[socket.socket] = None
        self._reader = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    # --- connection ---

    def connect(self) -> None:
        """
        Connect and subscribe to every project.

        Raises:
            OSError: If the broker is not reachable
        """
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.read_timeout)
            sock.connect(self.socket_path)
            sock.sendall(protocol.encode(protocol.subscribe_message(0)))
        except OSError:
            sock.close()
            raise
        with self._lock:
            self._sock = sock
            self._reader = sock.makefile("rb")
        self.last_sequence = 0
        logger.info("Connected to feed at %s", self.socket_path)

    def _disconnect(self) -> None:
        with self._lock:
            sock, reader = self._sock, self._reader
            self._sock = None
            self._reader = None
        if reader is not None:
            try:
                reader.close()
            except OSError as e:
                logger.debug("Error closing feed reader: %s", e)
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug("Error closing feed socket: %s", e)

    def close(self) -> None:
        self._stop.set()
        with self._lock:
            sock = self._sock
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                logger.debug("Feed socket already closed: %s", e)
        self._disconnect()

    # --- publishing ---

    def publish(self, project_id: int) -> bool:
        """Tell other boards that project_id changed. No-op while disconnected."""
        with self._lock:
            sock = self._sock
            if sock is None:
                return False
            try:
                sock.sendall(protocol.encode(protocol.event_message(protocol.Event(project_id=project_id))))
            except OSError as e:
                logger.warning("Failed to publish change for project %s: %s", project_id, e)
                return False
        return True

    def _send(self, message: dict) -> None:
        with self._lock:
            if self._sock is None:
                return
            self._sock.sendall(protocol.encode(message))

    # --- listening ---

    def start(self) -> threading.Thread:
        """Start the listener thread (connecting first if needed)."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self._listen_loop, name="lanes-feed", daemon=True)
        self._thread.start()
        return self._thread

    def _listen_loop(self) -> None:
        if not self.connected:
            try:
                self.connect()
            except OSError as e:
                logger.warning("Feed not reachable at %s: %s", self.socket_path, e)
                if not self._recover():
                    return
        self.deliver(ConnectionEstablishedMsg())

        while not self._stop.is_set():
            try:
                self._read_events()
            except (OSError, ValueError) as e:
                # close() from another thread may close the reader mid-read
                if self._stop.is_set():
                    return
                logger.warning("Feed connection lost: %s", e)
            if self._stop.is_set() or not self._recover():
                return

    def _recover(self) -> bool:
        """Report the loss, then reconnect with backoff. False when giving up."""
        self._disconnect()
        self.deliver(NotificationMsg("warning", LOST_TEXT))
        if self._reconnect():
            self.deliver(NotificationMsg("info", RECONNECTED_TEXT))
            self.deliver(ConnectionEstablishedMsg())
            return True
        if not self._stop.is_set():
            logger.error("Giving up on the feed after %d attempts", self.max_retries)
            self.deliver(NotificationMsg("error", FAILED_TEXT))
            self.deliver(ConnectionLostMsg(reason=FAILED_TEXT))
        return False

    def _reconnect(self) -> bool:
        delay = self.base_delay
        for attempt in range(1, self.max_retries + 1):
            self.deliver(ConnectionReconnectingMsg(attempt=attempt))
            if self._stop.wait(delay):
                return False
            try:
                self.connect()
            except OSError as e:
                logger.info("Reconnect attempt %d/%d failed: %s", attempt, self.max_retries, e)
                delay *= 2
                continue
            logger.info("Reconnected to feed (attempt %d/%d)", attempt, self.max_retries)
            return True
        return False

    def _read_events(self) -> None:
        """
        Read until the connection fails.

        Raises:
            OSError: On a socket error or when the broker closes the stream
        """
        reader = self._reader
        if reader is None:
            raise ConnectionError("not connected")
        while not self._stop.is_set():
            line = reader.readline()
            if not line:
                raise ConnectionError("feed closed the connection")
            try:
                message = protocol.decode(line)
                self._handle_message(message)
            except protocol.ProtocolError as e:
                logger.warning("Ignoring bad feed message: %s", e)

    def _handle_message(self, message: dict) -> None:
        kind = message["type"]
        if kind == "ping":
            self._send(protocol.pong_message())
            return
        event = protocol.event_from_message(message)
        if event is None or event.type != protocol.EVENT_DB_CHANGED:
            return
        if event.sequence_id <= self.last_sequence:
            logger.debug("Dropping stale event %d", event.sequence_id)
            return
        self.last_sequence = event.sequence_id
        self.deliver(RefreshMsg(project_id=event.project_id, sequence_id=event.sequence_id))
