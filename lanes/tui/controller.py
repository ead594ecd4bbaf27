"""
FILE: lanes/tui/controller.py
PURPOSE: The mode controller - routes every input to the session that owns it
EXPORTS:
  - Controller
  - BoardView (dataclass) - read-only snapshot for the renderer
DEPENDENCIES:
  - lanes.core.service (default store)
  - lanes.tui.handlers (Mode -> handler table)
NOTES:
  - dispatch(msg) -> command is the only entry point; it runs on the UI
    loop thread and never blocks except inside a store call
  - Exactly one Mode is active; sessions exist only while their mode (or
    a mode nested on top of it) is active
  - Guard pattern: when a precondition fails the handler adds a
    notification and leaves the mode unchanged
  - Store failures are logged, shown as error notifications and leave
    the cache as it was
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..config import Config, default_config
from ..core import service
from ..core.constants import ALL_PROJECTS
from ..core.exceptions import LanesError
from ..core.models import Column, TaskDetail, TaskSummary
from . import reconcile
from .board import BoardState
from .comments import CommentList
from .connection import ConnectionState, next_connection_state
from .handlers import MODE_HANDLERS
from .forms import (
    ColumnFormSession,
    CommentFormSession,
    FormSession,
    ProjectFormSession,
    TaskFormSession,
)
from .messages import (
    FEED_MESSAGES,
    KeyMsg,
    Listen,
    NotificationMsg,
    Quit,
    RefreshMsg,
    ResizeMsg,
    TickMsg,
    batch,
)
from .modes import DiscardContext, Mode
from .notifications import Level, Notification, Notifications
from .pickers import LabelPicker, OptionPicker, TaskPicker
from .selection import Selection, viewport_size_for_width

logger = logging.getLogger(__name__)

# Rows used by everything but the task cards, and rows per card
BOARD_CHROME_ROWS = 8
CARD_ROWS = 4


@dataclass(frozen=True)
class BoardView:
    mode: Mode
    project_name: str
    project_names: Tuple[str, ...]
    project_index: int
    columns: Tuple[Column, ...]
    tasks: Dict[int, List[TaskSummary]]
    column_index: int
    task_index: int
    viewport_offset: int
    viewport_size: int
    task_offsets: Dict[int, int]
    notifications: Tuple[Notification, ...]
    connection: ConnectionState
    feed_enabled: bool
    search_query: str


class Controller:
    def __init__(
        self,
        store=service,
        config: Optional[Config] = None,
        feed_enabled: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.config = config or default_config()
        self.feed_enabled = feed_enabled
        self.cancelled = threading.Event()

        self.mode = Mode.NORMAL
        self.board = BoardState()
        self.selection = Selection()
        self.notifications = Notifications(ttl=self.config.notification_seconds, clock=clock)
        self.connection = ConnectionState.DISCONNECTED
        self.listening = False

        # Sessions; None whenever their mode is not open
        self.task_form: Optional[TaskFormSession] = None
        self.project_form: Optional[ProjectFormSession] = None
        self.column_form: Optional[ColumnFormSession] = None
        self.comment_form: Optional[CommentFormSession] = None
        self.label_picker: Optional[LabelPicker] = None
        self.parent_picker: Optional[TaskPicker] = None
        self.child_picker: Optional[TaskPicker] = None
        self.option_picker: Optional[OptionPicker] = None
        self.relation_picker: Optional[OptionPicker] = None
        self.discard: Optional[DiscardContext] = None
        self.comment_list: Optional[CommentList] = None
        self.viewed_task: Optional[TaskDetail] = None
        self.search_text = ""
        self.pending_column_delete: Optional[Tuple[int, int]] = None

    # --- lifecycle ---

    def load(self) -> None:
        """Initial load; failures degrade to an empty board."""
        reconcile.reload_projects(self.board, self.store)
        reconcile.switch_to_project(self.board, self.store)
        self.selection.reset()

    def dispatch(self, msg):
        """Handle one message and return the command for the shell (or None)."""
        if self.cancelled.is_set():
            return Quit()

        listen = None
        if isinstance(msg, KeyMsg):
            command = self._handle_key(msg.key)
        elif isinstance(msg, ResizeMsg):
            self._handle_resize(msg)
            command = None
        elif isinstance(msg, TickMsg):
            self.notifications.expire(msg.now)
            if self.feed_enabled and not self.listening:
                self.listening = True
                listen = Listen()
            command = None
        elif isinstance(msg, FEED_MESSAGES):
            self._handle_feed(msg)
            # Re-arm after every feed message so listening never stops
            listen = Listen() if self.feed_enabled else None
            command = None
        else:
            command = None
        return batch(command, listen)

    def _handle_key(self, key: str):
        handler = MODE_HANDLERS.get(self.mode)
        if handler is None:
            return None
        return handler(self, key)

    def _handle_resize(self, msg: ResizeMsg) -> None:
        self.selection.set_viewport_size(viewport_size_for_width(msg.width), len(self.board.columns))
        self.selection.visible_task_rows = max(1, (msg.height - BOARD_CHROME_ROWS) // CARD_ROWS)
        self.selection.follow_task()

    def _handle_feed(self, msg) -> None:
        if isinstance(msg, RefreshMsg):
            self.handle_refresh(msg.project_id)
            return
        if isinstance(msg, NotificationMsg):
            self.notifications.add(Level.parse(msg.level), msg.text)
        self.set_connection(next_connection_state(self.connection, msg))

    def set_connection(self, state: ConnectionState) -> None:
        if state is not self.connection:
            logger.info("Feed connection %s -> %s", self.connection.value, state.value)
        self.connection = state

    def handle_refresh(self, project_id: int) -> None:
        """Reload when the change concerns the open project (or every project)."""
        previous = self.board.current_project
        if project_id == ALL_PROJECTS:
            reconcile.reload_projects(self.board, self.store)
        elif project_id != self.board.project_id:
            return

        if previous is not None and self.board.project_id != previous.id:
            # The open project was deleted by another board
            self.board.search_query = ""
            reconcile.switch_to_project(self.board, self.store)
            self.selection.reset()
            self.selection.set_viewport_size(self.selection.viewport_size, len(self.board.columns))
            self.notifications.info(f"Project {previous.name} no longer exists")
        else:
            try:
                reconcile.reload_current_project(self.board, self.store)
            except LanesError as e:
                logger.warning("Refresh of project %s failed: %s", project_id, e)
                return
            self.clamp_selection()
        if self.viewed_task is not None:
            self.refresh_viewed_task()

    # --- mode and session helpers ---

    def set_mode(self, mode: Mode) -> None:
        if mode is not self.mode:
            logger.debug("mode %s -> %s", self.mode.value, mode.value)
        self.mode = mode

    def request_close(self, session: FormSession, resume_mode: Mode = Mode.NORMAL) -> None:
        """Close a form, asking first when it holds unsaved edits."""
        if session.has_changes:
            self.discard = DiscardContext(session.mode, session.discard_message, resume_mode)
            self.set_mode(Mode.DISCARD_CONFIRM)
        else:
            self.clear_session(session.mode)
            self.set_mode(resume_mode)

    def clear_session(self, mode: Mode) -> None:
        if mode is Mode.TASK_FORM:
            self.task_form = None
            self.label_picker = None
            self.parent_picker = None
            self.child_picker = None
            self.option_picker = None
            self.relation_picker = None
            self.comment_list = None
        elif mode is Mode.PROJECT_FORM:
            self.project_form = None
        elif mode in (Mode.ADD_COLUMN, Mode.EDIT_COLUMN, Mode.ADD_COLUMN_FORM, Mode.EDIT_COLUMN_FORM):
            self.column_form = None
        elif mode is Mode.COMMENT_FORM:
            self.comment_form = None

    def attempt(self, failure: str, func, *args, **kwargs):
        """
        Run a store call. On failure log it, show "failure: reason" and
        return (False, None); otherwise (True, result).
        """
        try:
            return True, func(*args, **kwargs)
        except LanesError as e:
            logger.error("%s: %s", failure, e)
            self.notifications.error(f"{failure}: {e}")
            return False, None

    # --- board helpers ---

    def selected_column(self) -> Optional[Column]:
        return self.board.selected_column(self.selection)

    def selected_task(self) -> Optional[TaskSummary]:
        return self.board.selected_task(self.selection)

    def clamp_selection(self) -> None:
        count = len(self.board.columns)
        if self.selection.column_index >= count:
            self.selection.after_structural_change(count)
        else:
            self.selection.set_viewport_size(self.selection.viewport_size, count)
            self.selection.clamp_task(len(self.board.selected_tasks(self.selection)))

    def reload_board(self) -> bool:
        """Full reload of the open project; keeps the old cache on failure."""
        ok, _ = self.attempt("Failed to reload board", reconcile.reload_current_project, self.board, self.store)
        if ok:
            self.clamp_selection()
        return ok

    def select_task_by_id(self, task_id: int) -> None:
        for column_index, column in enumerate(self.board.columns):
            for task_index, task in enumerate(self.board.tasks_in(column.id)):
                if task.id == task_id:
                    self.selection.select_column(column_index, len(self.board.columns))
                    self.selection.select_task(task_index, len(self.board.tasks_in(column.id)))
                    return

    def refresh_viewed_task(self) -> None:
        if self.viewed_task is None:
            return
        ok, task = self.attempt("Failed to load task", self.store.get_task, self.viewed_task.id)
        if ok:
            self.viewed_task = task

    def after_task_moved(self, task_id: int, from_column_id: int, to_column_id: int) -> None:
        """
        Bring the cache in line after the store moved a task to another column,
        then select it. While a search hides tasks the cached positions are not
        the stored ones, so the tasks are reloaded instead of patched.
        """
        if self.board.search_query:
            self.attempt("Failed to reload tasks", reconcile.reload_tasks, self.board, self.store)
        else:
            reconcile.relocate_task(self.board, task_id, from_column_id, to_column_id)
        self.select_task_by_id(task_id)

    def after_task_change(self) -> None:
        """Refresh what shows a task after a picker wrote to the store."""
        ok, _ = self.attempt("Failed to reload tasks", reconcile.reload_tasks, self.board, self.store)
        if ok:
            self.clamp_selection()
        self.refresh_viewed_task()

    # --- read-only view ---

    def snapshot(self) -> BoardView:
        return BoardView(
            mode=self.mode,
            project_name=self.board.current_project.name if self.board.current_project else "",
            project_names=tuple(p.name for p in self.board.projects),
            project_index=self.board.project_index,
            columns=tuple(self.board.columns),
            tasks={k: list(v) for k, v in self.board.tasks.items()},
            column_index=self.selection.column_index,
            task_index=self.selection.task_index,
            viewport_offset=self.selection.viewport_offset,
            viewport_size=self.selection.viewport_size,
            task_offsets=dict(self.selection.task_offsets),
            notifications=tuple(self.notifications.items),
            connection=self.connection,
            feed_enabled=self.feed_enabled,
            search_query=self.board.search_query,
        )
