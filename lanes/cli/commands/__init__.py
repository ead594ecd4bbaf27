"""
FILE: lanes/cli/commands/__init__.py
PURPOSE: CLI command modules
"""

from .system import (
    version,
    daemon,
)
from .projects import (
    project_add,
    project_ls,
    project_rm,
)
from .columns import (
    column_add,
    column_ls,
)
from .tasks import (
    task_add,
    task_ls,
)

__all__ = [
    "version",
    "daemon",
    "project_add",
    "project_ls",
    "project_rm",
    "column_add",
    "column_ls",
    "task_add",
    "task_ls",
]
