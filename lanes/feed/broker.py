"""
FILE: lanes/feed/broker.py
PURPOSE: The feed daemon - fans change events out to every connected board
EXPORTS:
  - FeedBroker (socketserver over a Unix domain socket)
  - serve(socket_path) - run until interrupted
DEPENDENCIES:
  - socketserver, threading (stdlib)
  - lanes.feed.protocol
NOTES:
  - One handler thread per connection; writes to a connection are
    serialized by that subscriber's lock
  - Sequence ids increase by one per broadcast event across all projects
  - An event goes to every subscriber except its sender, when the event is
    for project 0, the subscriber follows project 0, or the ids match
  - A pinger thread sends ping every PING_INTERVAL and drops subscribers
    that have not answered within STALE_AFTER
"""

import logging
import os
import socketserver
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from . import protocol

logger = logging.getLogger(__name__)

PING_INTERVAL = 30.0
STALE_AFTER = 90.0


class Subscriber:
    def __init__(self, request, project_id: int = 0):
        self.request = request
        self.project_id = project_id
        self.last_pong = time.monotonic()
        self.lock = threading.Lock()

    def wants(self, project_id: int) -> bool:
        return project_id == 0 or self.project_id == 0 or self.project_id == project_id

    def send(self, message: dict) -> bool:
        with self.lock:
            try:
                self.request.sendall(protocol.encode(message))
            except OSError as e:
                logger.info("Dropping subscriber after send failure: %s", e)
                return False
        return True


class FeedRequestHandler(socketserver.StreamRequestHandler):
    def setup(self):
        super().setup()
        self.subscriber = self.server.add_subscriber(self.request)

    def handle(self):
        for line in self.rfile:
            try:
                message = protocol.decode(line)
            except protocol.ProtocolError as e:
                logger.warning("Ignoring bad message from subscriber: %s", e)
                continue
            self.server.handle_message(self.subscriber, message)

    def finish(self):
        self.server.remove_subscriber(self.subscriber)
        super().finish()


class FeedBroker(socketserver.ThreadingUnixStreamServer):
    daemon_threads = True

    def __init__(self, socket_path: str):
        self.socket_path = str(socket_path)
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()
        self._sequence = 0
        self._stopped = threading.Event()
        self._pinger: Optional[threading.Thread] = None
        super().__init__(self.socket_path, FeedRequestHandler)

    # --- subscribers ---

    def add_subscriber(self, request) -> Subscriber:
        subscriber = Subscriber(request)
        with self._lock:
            self._subscribers.append(subscriber)
            count = len(self._subscribers)
        logger.info("Subscriber connected, total %d", count)
        return subscriber

    def remove_subscriber(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber not in self._subscribers:
                return
            self._subscribers.remove(subscriber)
            count = len(self._subscribers)
        logger.info("Subscriber disconnected, total %d", count)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # --- messages ---

    def handle_message(self, subscriber: Subscriber, message: dict) -> None:
        kind = message["type"]
        if kind == "subscribe":
            subscriber.project_id = int(message.get("project_id") or 0)
            logger.info("Subscriber follows project %d", subscriber.project_id)
        elif kind == "pong":
            subscriber.last_pong = time.monotonic()
        elif kind == "ping":
            subscriber.send(protocol.pong_message())
        elif kind == "event":
            try:
                event = protocol.event_from_message(message)
            except protocol.ProtocolError as e:
                logger.warning("Ignoring bad event: %s", e)
                return
            self.broadcast(event, sender=subscriber)

    def broadcast(self, event: protocol.Event, sender: Optional[Subscriber] = None) -> int:
        """Stamp the event with the next sequence id and send it out. Returns the id."""
        with self._lock:
            self._sequence += 1
            event.sequence_id = self._sequence
            targets = [s for s in self._subscribers if s is not sender and s.wants(event.project_id)]
        message = protocol.event_message(event)
        failed = [s for s in targets if not s.send(message)]
        for subscriber in failed:
            self.remove_subscriber(subscriber)
        logger.debug("Event %d for project %d sent to %d", event.sequence_id, event.project_id, len(targets))
        return event.sequence_id

    # --- health ---

    def ping_all(self, now: Optional[float] = None) -> Dict[str, int]:
        """Ping everyone and drop subscribers whose last pong is too old."""
        now = time.monotonic() if now is None else now
        with self._lock:
            subscribers = list(self._subscribers)
        stale = [s for s in subscribers if now - s.last_pong > STALE_AFTER]
        for subscriber in stale:
            logger.info("Removing stale subscriber (last pong %.0fs ago)", now - subscriber.last_pong)
            self.remove_subscriber(subscriber)
        pinged = 0
        for subscriber in subscribers:
            if subscriber in stale:
                continue
            if subscriber.send(protocol.ping_message()):
                pinged += 1
            else:
                self.remove_subscriber(subscriber)
        return {"pinged": pinged, "removed": len(stale)}

    def _ping_loop(self) -> None:
        while not self._stopped.wait(PING_INTERVAL):
            self.ping_all()

    def start_pinger(self) -> None:
        self._pinger = threading.Thread(target=self._ping_loop, name="lanes-feed-ping", daemon=True)
        self._pinger.start()

    def server_close(self):
        self._stopped.set()
        super().server_close()
        try:
            os.unlink(self.socket_path)
        except FileNotFoundError:
            logger.debug("Socket %s already removed", self.socket_path)


def prepare_socket_path(socket_path) -> str:
    """Create the parent directory and remove a stale socket file."""
    path = Path(socket_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        path.unlink()
    return str(path)


def serve(socket_path) -> None:
    """Run the broker in the foreground until KeyboardInterrupt."""
    path = prepare_socket_path(socket_path)
    with FeedBroker(path) as broker:
        broker.start_pinger()
        logger.info("Feed broker listening on %s", path)
        try:
            broker.serve_forever()
        except KeyboardInterrupt:
            logger.info("Feed broker stopping")
