"""
FILE: lanes/core/constants.py
PURPOSE: Constants used throughout the application
EXPORTS:
  - Lookup seeds: TASK_TYPES, PRIORITIES, RELATION_TYPES
  - Defaults: DEFAULT_TYPE_ID, DEFAULT_PRIORITY_ID, DEFAULT_RELATION_TYPE_ID
  - LABEL_COLORS: palette offered when creating a label
  - ALL_PROJECTS: sentinel project id meaning "every project"
  - Layout: COLUMN_WIDTH, RESERVED_WIDTH, DEFAULT_VIEWPORT_SIZE
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - Centralized constants to avoid magic strings
  - Lookup tuples are the seed rows for the schema as well as the
    source for pickers, so ids must stay stable
"""

# Task types (id, description)
TASK_TYPES = (
    (1, "task"),
    (2, "feature"),
    (3, "bug"),
)

# Priorities (id, description, color), low to high
PRIORITIES = (
    (1, "trivial", "#3B82F6"),
    (2, "low", "#22C55E"),
    (3, "medium", "#EAB308"),
    (4, "high", "#F97316"),
    (5, "critical", "#EF4444"),
)

# Relation types (id, parent-side label, child-side label, color, is_blocking)
RELATION_TYPES = (
    (1, "Parent", "Child", "#6B7280", False),
    (2, "Blocked By", "Blocker", "#EF4444", True),
    (3, "Related To", "Related To", "#3B82F6", False),
)

DEFAULT_TYPE_ID = 1
DEFAULT_PRIORITY_ID = 3
DEFAULT_RELATION_TYPE_ID = 1

# Label palette (name, hex)
LABEL_COLORS = (
    ("Red", "#EF4444"),
    ("Orange", "#F97316"),
    ("Yellow", "#EAB308"),
    ("Green", "#22C55E"),
    ("Cyan", "#06B6D4"),
    ("Blue", "#3B82F6"),
    ("Purple", "#7D56F4"),
    ("Pink", "#EC4899"),
    ("Gray", "#6B7280"),
)
DEFAULT_LABEL_NAME = "New Label"
MAX_LABEL_FILTER_LENGTH = 50

# Project id used by feed events that concern every project
ALL_PROJECTS = 0

# Limits
MAX_COMMENT_LENGTH = 500

# Board layout
COLUMN_WIDTH = 46
RESERVED_WIDTH = 4
DEFAULT_VIEWPORT_SIZE = 1

# Store call timeout in seconds
DEFAULT_DB_TIMEOUT = 30.0
