"""
FILE: lanes/core/models.py
PURPOSE: Domain models for projects, columns, tasks, labels and comments
EXPORTS:
  - Project (dataclass)
  - Column (dataclass)
  - Label (dataclass)
  - TaskSummary (dataclass) - what a board card shows
  - TaskDetail (dataclass) - the full task with labels and relations
  - TaskReference (dataclass) - a related task as seen from another task
  - Comment (dataclass)
  - Option (dataclass) - a row of a lookup table (type, priority)
  - RelationType (dataclass)
DEPENDENCIES:
  - dataclasses (stdlib)
  - json (stdlib)
  - typing (stdlib)
NOTES:
  - All models have from_row() for SQLite row conversion
  - All models have to_json() for serialization
  - Optional fields use None as default
  - Timestamps stored as ISO-8601 strings
"""

from dataclasses import dataclass, asdict, field
from typing import List, Optional
import json

from .constants import RELATION_TYPES

BLOCKING_RELATION_TYPE_IDS = frozenset(rt[0] for rt in RELATION_TYPES if rt[4])


@dataclass
class Project:
    """A project owning its own columns, tasks and labels."""

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Project":
        """Convert SQLite row to Project object."""
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            created_at=row["created_at"],
        )

    def to_json(self) -> str:
        """Serialize project to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class Column:
    """A board column. Ordering is a doubly-linked list via prev_id/next_id."""

    id: int
    name: str
    project_id: int
    prev_id: Optional[int] = None
    next_id: Optional[int] = None

    @classmethod
    def from_row(cls, row) -> "Column":
        """Convert SQLite row to Column object."""
        return cls(
            id=row["id"],
            name=row["name"],
            project_id=row["project_id"],
            prev_id=row["prev_id"],
            next_id=row["next_id"],
        )

    def to_json(self) -> str:
        """Serialize column to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class Label:
    """A colored tag scoped to one project."""

    id: int
    name: str
    color: str
    project_id: int

    @classmethod
    def from_row(cls, row) -> "Label":
        """Convert SQLite row to Label object."""
        return cls(
            id=row["id"],
            name=row["name"],
            color=row["color"],
            project_id=row["project_id"],
        )

    def to_json(self) -> str:
        """Serialize label to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class TaskSummary:
    """The slice of a task shown on a board card."""

    id: int
    title: str
    column_id: int
    position: int
    ticket_number: int = 0
    labels: List[Label] = field(default_factory=list)
    type_description: str = ""
    priority_description: str = ""
    priority_color: str = ""
    is_blocked: bool = False

    @classmethod
    def from_row(cls, row, labels: Optional[List[Label]] = None) -> "TaskSummary":
        """Convert SQLite row (joined with type/priority) to TaskSummary."""
        return cls(
            id=row["id"],
            title=row["title"],
            column_id=row["column_id"],
            position=row["position"],
            ticket_number=row["ticket_number"],
            labels=list(labels or []),
            type_description=row["type_description"],
            priority_description=row["priority_description"],
            priority_color=row["priority_color"],
            is_blocked=bool(row["is_blocked"]),
        )

    def to_json(self) -> str:
        """Serialize summary to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class TaskReference:
    """Another task as seen across a relation (parent or child)."""

    id: int
    title: str
    ticket_number: int = 0
    project_name: str = ""
    relation_type_id: int = 1
    relation_label: str = ""

    @classmethod
    def from_row(cls, row) -> "TaskReference":
        """Convert SQLite row to TaskReference object."""
        return cls(
            id=row["id"],
            title=row["title"],
            ticket_number=row["ticket_number"],
            project_name=row["project_name"],
            relation_type_id=row["relation_type_id"],
            relation_label=row["relation_label"],
        )

    def to_json(self) -> str:
        """Serialize reference to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class TaskDetail:
    """A task with everything the edit form and detail view need."""

    id: int
    title: str
    column_id: int
    position: int
    project_id: int
    description: Optional[str] = None
    ticket_number: int = 0
    type_id: int = 1
    priority_id: int = 3
    type_description: str = ""
    priority_description: str = ""
    priority_color: str = ""
    labels: List[Label] = field(default_factory=list)
    parents: List[TaskReference] = field(default_factory=list)
    children: List[TaskReference] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_blocked(self) -> bool:
        # The parent side of a blocking relation is the blocked task
        return any(c.relation_type_id in BLOCKING_RELATION_TYPE_IDS for c in self.children)

    @classmethod
    def from_row(cls, row) -> "TaskDetail":
        """Convert SQLite row to TaskDetail (labels and relations filled later)."""
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            column_id=row["column_id"],
            position=row["position"],
            project_id=row["project_id"],
            ticket_number=row["ticket_number"],
            type_id=row["type_id"],
            priority_id=row["priority_id"],
            type_description=row["type_description"],
            priority_description=row["priority_description"],
            priority_color=row["priority_color"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_json(self) -> str:
        """Serialize task to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class Comment:
    """A comment attached to a task."""

    id: int
    task_id: int
    message: str
    author: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Comment":
        """Convert SQLite row to Comment object."""
        return cls(
            id=row["id"],
            task_id=row["task_id"],
            message=row["message"],
            author=row["author"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_json(self) -> str:
        """Serialize comment to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class Option:
    """A lookup row (task type or priority)."""

    id: int
    description: str
    color: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


@dataclass
class RelationType:
    """A kind of task relation, labelled from both ends."""

    id: int
    parent_label: str
    child_label: str
    color: str
    is_blocking: bool = False

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)
