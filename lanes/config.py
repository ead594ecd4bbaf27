"""
FILE: lanes/config.py
PURPOSE: User configuration and key bindings
EXPORTS:
  - Action, FormAction (enums) - what a key does on the board / in the task form
  - Config (dataclass)
  - config_path() -> Path
  - default_keybinds(), default_form_keybinds()
  - normalize_key_token(token) -> str | None
  - load_config(path) -> (Config, errors)
DEPENDENCIES:
  - configparser (stdlib)
NOTES:
  - Key strings are resolved to Action values once, at load time;
    handlers only ever dispatch on the enum
  - Unknown or invalid values are reported and replaced by defaults
  - A missing file means "all defaults", not an error
"""

import configparser
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .core.constants import DEFAULT_DB_TIMEOUT

logger = logging.getLogger(__name__)

LANES_DIR = Path.home() / ".lanes"
DEFAULT_SOCKET_PATH = LANES_DIR / "feed.sock"
DEFAULT_LOG_PATH = LANES_DIR / "lanes.log"
DEFAULT_NOTIFICATION_SECONDS = 4.0
COLUMN_EDITORS = ("form", "inline")


class Action(Enum):
    QUIT = "quit"
    HELP = "help"
    ADD_TASK = "add_task"
    EDIT_TASK = "edit_task"
    DELETE_TASK = "delete_task"
    VIEW_TASK = "view_task"
    MOVE_TASK_LEFT = "move_task_left"
    MOVE_TASK_RIGHT = "move_task_right"
    MOVE_TASK_UP = "move_task_up"
    MOVE_TASK_DOWN = "move_task_down"
    COLUMN_LEFT = "column_left"
    COLUMN_RIGHT = "column_right"
    TASK_UP = "task_up"
    TASK_DOWN = "task_down"
    SCROLL_LEFT = "scroll_left"
    SCROLL_RIGHT = "scroll_right"
    PREV_PROJECT = "prev_project"
    NEXT_PROJECT = "next_project"
    CREATE_COLUMN = "create_column"
    RENAME_COLUMN = "rename_column"
    DELETE_COLUMN = "delete_column"
    CREATE_PROJECT = "create_project"
    CHANGE_STATUS = "change_status"
    SEARCH = "search"


class FormAction(Enum):
    SAVE = "save"
    PARENT_PICKER = "parent_picker"
    CHILD_PICKER = "child_picker"
    LABEL_PICKER = "label_picker"
    PRIORITY_PICKER = "priority_picker"
    TYPE_PICKER = "type_picker"
    COMMENTS = "comments"
    FORM_HELP = "form_help"


def default_keybinds() -> Dict[str, list]:
    return {
        "quit": ["q"],
        "help": ["?"],
        "add_task": ["a"],
        "edit_task": ["e"],
        "delete_task": ["d"],
        "view_task": ["space"],
        "move_task_left": ["H"],
        "move_task_right": ["L"],
        "move_task_up": ["K"],
        "move_task_down": ["J"],
        "column_left": ["h", "left"],
        "column_right": ["l", "right"],
        "task_up": ["k", "up"],
        "task_down": ["j", "down"],
        "scroll_left": ["["],
        "scroll_right": ["]"],
        "prev_project": ["{"],
        "next_project": ["}"],
        "create_column": ["C"],
        "rename_column": ["R"],
        "delete_column": ["X"],
        "create_project": ["P"],
        "change_status": ["s"],
        "search": ["/"],
    }


def default_form_keybinds() -> Dict[str, list]:
    return {
        "save": ["ctrl+s"],
        "parent_picker": ["ctrl+p"],
        "child_picker": ["ctrl+b"],
        "label_picker": ["ctrl+l"],
        "priority_picker": ["ctrl+r"],
        "type_picker": ["ctrl+t"],
        "comments": ["ctrl+o"],
        "form_help": ["ctrl+g"],
    }


KEY_ALIASES = {
    "escape": "esc",
    "return": "enter",
    "cr": "enter",
    "spacebar": "space",
    "bs": "backspace",
    "del": "delete",
    "s-tab": "shift+tab",
    "backtab": "shift+tab",
    "pageup": "pgup",
    "pagedown": "pgdown",
}

NAMED_KEYS = {
    "enter", "esc", "tab", "shift+tab", "backspace", "delete", "space",
    "up", "down", "left", "right", "home", "end", "pgup", "pgdown",
}


def normalize_key_token(token: str) -> Optional[str]:
    """
    Turn a key as written in the config file into the key string the
    board receives. Single characters keep their case (H is not h).
    """
    if token is None:
        return None
    if token == " ":
        return "space"
    trimmed = token.strip()
    if not trimmed:
        return None
    if len(trimmed) == 1:
        return trimmed

    lowered = trimmed.lower()
    lowered = KEY_ALIASES.get(lowered, lowered)
    for prefix in ("ctrl-", "c-", "control+", "control-"):
        if lowered.startswith(prefix):
            lowered = "ctrl+" + lowered[len(prefix):]
            break
    if lowered.startswith("ctrl+") and len(lowered) == len("ctrl+") + 1:
        return lowered
    if lowered in NAMED_KEYS:
        return lowered
    return None


@dataclass
class Config:
    keymap: Dict[str, Action]
    form_keymap: Dict[str, FormAction]
    db_timeout: float = DEFAULT_DB_TIMEOUT
    notification_seconds: float = DEFAULT_NOTIFICATION_SECONDS
    column_editor: str = "form"
    feed_enabled: bool = True
    feed_socket: Path = DEFAULT_SOCKET_PATH
    log_level: str = "INFO"
    log_file: Path = DEFAULT_LOG_PATH
    keys_for: Dict[Action, List[str]] = field(default_factory=dict)

    def key_hint(self, action: Action) -> str:
        """First key bound to an action, for help text."""
        keys = self.keys_for.get(action) or ["?"]
        return keys[0]


def config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "lanes" / "config.ini"


def _parse_tokens(raw: str) -> List[str]:
    # "space" and "," need spelling out, so a plain comma split is enough
    return [tok for tok in (part.strip() for part in raw.split(",")) if tok]


def _build_keymap(enum_cls, defaults: Dict[str, list], section, errors: List[str]):
    keymap: Dict[str, Enum] = {}
    keys_for: Dict[Enum, List[str]] = {}
    for name, tokens in defaults.items():
        action = enum_cls(name)
        if section is not None and name in section:
            tokens = _parse_tokens(section[name])
        resolved: List[str] = []
        for tok in tokens:
            key = normalize_key_token(tok)
            if key is None:
                errors.append(f"{name}: unknown key '{tok}'")
                continue
            if key in keymap and keymap[key] is not action:
                errors.append(f"{name}: key '{key}' already bound to {keymap[key].value}")
                continue
            keymap[key] = action
            resolved.append(key)
        keys_for[action] = resolved

    if section is not None:
        known = set(defaults)
        for name in section:
            if name not in known and name not in section.parser.defaults():
                errors.append(f"unknown action '{name}'")
    return keymap, keys_for


def default_config() -> Config:
    config, _ = load_config(None)
    return config


def load_config(path: Optional[Path] = None) -> Tuple[Config, List[str]]:
    """
    Load configuration from an INI file.

    Args:
        path: File to read; None skips reading and returns defaults

    Returns:
        (Config, list of human readable problems found while loading)
    """
    parser = configparser.ConfigParser()
    errors: List[str] = []
    if path is not None and path.exists():
        try:
            parser.read(path, encoding="utf-8")
        except configparser.Error as e:
            errors.append(f"{path}: {e}")
            parser = configparser.ConfigParser()

    keys = parser["keys"] if parser.has_section("keys") else None
    form_keys = parser["form_keys"] if parser.has_section("form_keys") else None
    keymap, keys_for = _build_keymap(Action, default_keybinds(), keys, errors)
    form_keymap, _ = _build_keymap(FormAction, default_form_keybinds(), form_keys, errors)

    config = Config(keymap=keymap, form_keymap=form_keymap, keys_for=keys_for)

    if parser.has_section("board"):
        board = parser["board"]
        try:
            timeout = board.getfloat("db_timeout_seconds", fallback=DEFAULT_DB_TIMEOUT)
            if timeout <= 0:
                raise ValueError(timeout)
            config.db_timeout = timeout
        except ValueError:
            errors.append("db_timeout_seconds must be a positive number; using default")
        try:
            seconds = board.getfloat("notification_seconds", fallback=DEFAULT_NOTIFICATION_SECONDS)
            if seconds <= 0:
                raise ValueError(seconds)
            config.notification_seconds = seconds
        except ValueError:
            errors.append("notification_seconds must be a positive number; using default")
        editor = board.get("column_editor", fallback="form").strip().lower()
        if editor in COLUMN_EDITORS:
            config.column_editor = editor
        else:
            errors.append(f"column_editor must be one of {', '.join(COLUMN_EDITORS)}; using form")

    if parser.has_section("feed"):
        feed = parser["feed"]
        try:
            config.feed_enabled = feed.getboolean("enabled", fallback=True)
        except ValueError:
            errors.append("feed enabled must be true/false; using true")
        socket_path = feed.get("socket", fallback="").strip()
        if socket_path:
            config.feed_socket = Path(socket_path).expanduser()

    if parser.has_section("logging"):
        section = parser["logging"]
        level = section.get("level", fallback="INFO").strip().upper()
        if isinstance(logging.getLevelName(level), int):
            config.log_level = level
        else:
            errors.append(f"unknown log level '{level}'; using INFO")
        log_file = section.get("file", fallback="").strip()
        if log_file:
            config.log_file = Path(log_file).expanduser()

    for problem in errors:
        logger.warning("config: %s", problem)
    return config, errors
