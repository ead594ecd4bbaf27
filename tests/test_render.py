"""
Tests for drawing the board and translating prompt_toolkit key presses.
"""

from prompt_toolkit.key_binding.key_processor import KeyPress
from prompt_toolkit.keys import Keys
from rich.text import Text

from lanes.core import service
from lanes.tui.app import translate_key
from lanes.tui.controller import BoardView
from lanes.tui.messages import ResizeMsg
from lanes.tui.modes import Mode
from lanes.tui.render import render

from conftest import press


def _plain(ctl, width=140, height=40):
    return Text.from_ansi(render(ctl, width, height)).plain


def test_translate_key():
    assert translate_key(KeyPress(Keys.Enter)) == "enter"
    assert translate_key(KeyPress(Keys.Escape)) == "esc"
    assert translate_key(KeyPress(Keys.BackTab)) == "shift+tab"
    assert translate_key(KeyPress(Keys.ControlS)) == "ctrl+s"
    assert translate_key(KeyPress("a")) == "a"
    assert translate_key(KeyPress("H")) == "H"
    assert translate_key(KeyPress(" ")) == "space"
    assert translate_key(KeyPress(Keys.F5)) is None


def test_empty_board_hint(make_controller):
    ctl = make_controller()
    assert "press P to create one" in _plain(ctl)


def test_board_shows_columns_and_cards(make_controller):
    project = service.create_project("Work")
    todo = service.create_column("Todo", project.id)
    service.create_column("Done", project.id)
    service.create_task("Write spec", todo.id)
    ctl = make_controller()
    ctl.dispatch(ResizeMsg(width=140, height=40))

    text = _plain(ctl)
    assert "Work" in text
    assert "Todo" in text
    assert "Done" in text
    assert "Write spec" in text


def test_snapshot_is_a_copy(make_controller):
    project = service.create_project("Work")
    todo = service.create_column("Todo", project.id)
    service.create_task("One", todo.id)
    ctl = make_controller()

    view = ctl.snapshot()
    assert isinstance(view, BoardView)
    view.tasks[todo.id].clear()
    assert len(ctl.board.tasks_in(todo.id)) == 1


def test_every_overlay_renders(make_controller):
    project = service.create_project("Work")
    todo = service.create_column("Todo", project.id)
    service.create_task("One", todo.id)
    ctl = make_controller()

    press(ctl, "?")
    assert "help" in _plain(ctl).lower()
    press(ctl, "esc")

    press(ctl, "a", "x", "esc")
    assert ctl.mode is Mode.DISCARD_CONFIRM
    assert "Discard task?" in _plain(ctl)
    press(ctl, "n", "ctrl+l")
    assert ctl.mode is Mode.LABEL_PICKER
    _plain(ctl)
    press(ctl, "esc", "ctrl+r")
    assert ctl.mode is Mode.PRIORITY_PICKER
    assert "critical" in _plain(ctl)
    press(ctl, "esc", "ctrl+g")
    assert ctl.mode is Mode.TASK_FORM_HELP_OVERLAY
    _plain(ctl)
    press(ctl, "esc", "esc", "y")
    assert ctl.mode is Mode.NORMAL

    press(ctl, "space")
    assert "One" in _plain(ctl)
    press(ctl, "m")
    assert ctl.mode is Mode.COMMENTS_VIEW
    _plain(ctl)
    press(ctl, "esc", "esc", "/")
    assert ctl.mode is Mode.SEARCH
    _plain(ctl)
    press(ctl, "esc", "d")
    assert ctl.mode is Mode.DELETE_TASK_CONFIRM
    _plain(ctl)
    press(ctl, "n", "X")
    assert ctl.mode is Mode.DELETE_COLUMN_CONFIRM
    _plain(ctl, width=30, height=10)


def test_status_bar_shows_notification(make_controller):
    ctl = make_controller()
    ctl.notifications.info("Hello there")
    assert "Hello there" in _plain(ctl)
