"""
FILE: lanes/tui/sync.py
PURPOSE: Bridge between the feed listener thread and the UI loop
EXPORTS:
  - SyncClient
NOTES:
  - The listener pushes every feed message into the inbox queue
  - resubscribe() arms a waiter that takes exactly one message off the
    queue and hands it to the loop; the loop re-arms after handling it
  - At most one waiter exists at any time, so calling resubscribe()
    repeatedly is harmless; messages that arrive while no waiter is armed
    stay queued
"""

import logging
import queue
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_STOP = object()


class SyncClient:
    def __init__(self, deliver: Callable[[object], None]):
        self.inbox: "queue.Queue[object]" = queue.Queue()
        self._deliver = deliver
        self._lock = threading.Lock()
        self._waiter: Optional[threading.Thread] = None
        self._closed = False

    def push(self, msg) -> None:
        """Called from the listener thread for each feed message."""
        self.inbox.put(msg)

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._waiter is not None

    def resubscribe(self) -> bool:
        """Arm the waiter unless one is already armed. True if a new one started."""
        with self._lock:
            if self._closed or self._waiter is not None:
                return False
            self._waiter = threading.Thread(target=self._wait_one, name="lanes-sync", daemon=True)
            self._waiter.start()
            return True

    def _wait_one(self) -> None:
        msg = self.inbox.get()
        with self._lock:
            # Disarm before delivering so the loop can re-arm right away
            self._waiter = None
        if msg is _STOP:
            return
        try:
            self._deliver(msg)
        except RuntimeError as e:
            # The event loop is gone; nothing left to deliver to
            logger.warning("Dropping feed message %r: %s", msg, e)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            armed = self._waiter is not None
        if armed:
            self.inbox.put(_STOP)
