"""
FILE: lanes/tui/app.py
PURPOSE: Full-screen prompt_toolkit application around the controller
EXPORTS:
  - BoardApp
  - translate_key(key_press) -> str | None
  - run_board(config) - wire store, feed and UI together and block until quit
DEPENDENCIES:
  - prompt_toolkit (application, key bindings, ANSI display)
  - lanes.tui.render (rich output)
  - lanes.feed.client, lanes.tui.sync
NOTES:
  - Every input becomes a message for Controller.dispatch on the event
    loop thread; the returned command is performed here
  - Feed messages come from other threads and are marshalled onto the
    loop with call_soon_threadsafe
  - SIGTERM sets the controller's cancelled event; the next dispatch
    returns Quit
"""

import asyncio
import logging
import signal
import time
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl

from ..config import Config
from ..core import repository, service
from ..feed.client import FeedClient
from ..logging_utils import configure_logging
from .controller import Controller
from .messages import Batch, KeyMsg, Listen, Quit, ResizeMsg, TickMsg
from .render import render
from .sync import SyncClient

logger = logging.getLogger(__name__)

TICK_SECONDS = 0.5

NAMED_KEYS = {
    Keys.Enter: "enter",
    Keys.Escape: "esc",
    Keys.Tab: "tab",
    Keys.BackTab: "shift+tab",
    Keys.Backspace: "backspace",
    Keys.Delete: "delete",
    Keys.Up: "up",
    Keys.Down: "down",
    Keys.Left: "left",
    Keys.Right: "right",
    Keys.Home: "home",
    Keys.End: "end",
    Keys.PageUp: "pgup",
    Keys.PageDown: "pgdown",
}


def translate_key(key_press) -> Optional[str]:
    """Key string the controller understands, or None for keys it never uses."""
    key = key_press.key
    if key in NAMED_KEYS:
        return NAMED_KEYS[key]
    value = key.value if isinstance(key, Keys) else str(key)
    if value.startswith("c-") and len(value) == 3:
        return "ctrl+" + value[2]
    if len(value) == 1 and value.isprintable():
        return "space" if value == " " else value
    return None


class BoardApp:
    def __init__(self, controller: Controller, sync: Optional[SyncClient] = None):
        self.ctl = controller
        self.sync = sync
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._size = (0, 0)

        self.control = FormattedTextControl(self._text, focusable=True, show_cursor=False)
        self.app = Application(
            layout=Layout(Window(content=self.control)),
            key_bindings=self._bindings(),
            full_screen=True,
            mouse_support=False,
        )
        # esc should act at once instead of waiting for a meta sequence
        self.app.ttimeoutlen = 0.05
        self.app.timeoutlen = 0.2

    def _bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add(Keys.Any)
        def _(event):
            key = translate_key(event.key_sequence[0])
            if key is not None:
                self.send(KeyMsg(key))

        return kb

    def _text(self):
        columns, rows = self._size
        if not columns:
            size = self.app.output.get_size()
            columns, rows = size.columns, size.rows
        return ANSI(render(self.ctl, columns, rows))

    # --- message loop ---

    def send(self, msg) -> None:
        command = self.ctl.dispatch(msg)
        self.perform(command)
        self.app.invalidate()

    def perform(self, command) -> None:
        if command is None:
            return
        if isinstance(command, Batch):
            for inner in command.commands:
                self.perform(inner)
        elif isinstance(command, Quit):
            future = self.app.future
            if self.app.is_running and future is not None and not future.done():
                self.app.exit()
        elif isinstance(command, Listen):
            if self.sync is not None:
                self.sync.resubscribe()

    def deliver(self, msg) -> None:
        """Thread-safe entry for feed messages."""
        if self.loop is None:
            raise RuntimeError("board loop not running")
        self.loop.call_soon_threadsafe(self.send, msg)

    def _check_size(self) -> None:
        size = self.app.output.get_size()
        current = (size.columns, size.rows)
        if current != self._size:
            self._size = current
            self.send(ResizeMsg(width=size.columns, height=size.rows))

    async def _ticker(self) -> None:
        while True:
            await asyncio.sleep(TICK_SECONDS)
            self._check_size()
            self.send(TickMsg(now=time.monotonic()))

    def _on_sigterm(self, signum, frame) -> None:
        logger.info("SIGTERM received, shutting down")
        self.ctl.cancelled.set()
        if self.loop is not None:
            self.loop.call_soon_threadsafe(self.send, TickMsg(now=time.monotonic()))

    def _pre_run(self) -> None:
        self.loop = asyncio.get_event_loop()
        self._check_size()
        self.app.create_background_task(self._ticker())

    def run(self) -> None:
        previous = signal.signal(signal.SIGTERM, self._on_sigterm)
        try:
            self.app.run(pre_run=self._pre_run)
        finally:
            signal.signal(signal.SIGTERM, previous)


def run_board(config: Config) -> None:
    """Open the board and block until the user quits."""
    configure_logging(config.log_file, config.log_level)
    repository.DB_TIMEOUT = config.db_timeout

    controller = Controller(config=config, feed_enabled=config.feed_enabled)
    controller.load()

    feed: Optional[FeedClient] = None
    sync: Optional[SyncClient] = None
    board = BoardApp(controller)
    if config.feed_enabled:
        sync = SyncClient(deliver=board.deliver)
        board.sync = sync
        feed = FeedClient(str(config.feed_socket), deliver=sync.push)
        feed.start()
        service.subscribe(feed.publish)

    logger.info("Board started (feed %s)", "on" if feed else "off")
    try:
        board.run()
    finally:
        if feed is not None:
            service.unsubscribe(feed.publish)
            feed.close()
        if sync is not None:
            sync.close()
        logger.info("Board stopped")
