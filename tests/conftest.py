"""Shared pytest configuration and fixtures for tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lanes.config import default_config  # noqa: E402
from lanes.core import repository, service  # noqa: E402
from lanes.tui.controller import Controller  # noqa: E402
from lanes.tui.messages import KeyMsg  # noqa: E402


@pytest.fixture(autouse=True)
def temp_db(monkeypatch, tmp_path):
    """Use temporary database for all tests."""
    db_path = tmp_path / "test_lanes.db"
    monkeypatch.setattr(repository, "DB_PATH", db_path)
    monkeypatch.setattr(repository, "DB_DIR", tmp_path)
    monkeypatch.setattr(service, "_subscribers", [])
    yield db_path


class RecordingStore:
    """
    Wraps the service module and records the name of every call, so tests
    can assert that an operation did (or did not) touch the store.
    """

    def __init__(self, target=service, fail=None):
        self._target = target
        self.calls = []
        # name -> exception raised instead of calling through
        self.fail = dict(fail or {})

    def __getattr__(self, name):
        attr = getattr(self._target, name)
        if not callable(attr):
            return attr

        def wrapper(*args, **kwargs):
            self.calls.append((name, args))
            if name in self.fail:
                raise self.fail[name]
            return attr(*args, **kwargs)

        return wrapper

    def names(self):
        return [name for name, _ in self.calls]

    def mutations(self):
        return [
            name for name in self.names()
            if not (name.startswith("list_") or name.startswith("get_") or name.startswith("count_"))
        ]

    def reset(self):
        self.calls = []


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def make_controller(store):
    """Build a loaded controller over the recording store."""

    def build(feed_enabled=False, clock=None):
        kwargs = {"store": store, "config": default_config(), "feed_enabled": feed_enabled}
        if clock is not None:
            kwargs["clock"] = clock
        ctl = Controller(**kwargs)
        ctl.load()
        store.reset()
        return ctl

    return build


def press(ctl, *keys):
    """Dispatch keys one by one; returns the last command."""
    command = None
    for key in keys:
        command = ctl.dispatch(KeyMsg(key))
    return command


def type_text(ctl, text):
    for char in text:
        press(ctl, "space" if char == " " else char)
