"""
FILE: lanes/core/repository.py
PURPOSE: Database operations and SQLite connection management
EXPORTS:
  - get_connection() -> Connection
  - connection() -> context manager yielding a Connection
  - init_database(conn) -> None
  - Projects: create_project, get_project, list_projects, delete_project
  - Columns: create_column, get_column, list_columns, rename_column,
    delete_column, count_tasks_in_column
  - Tasks: create_task, get_task, get_task_project_id, update_task, delete_task,
    list_task_summaries, list_task_references, move_task_to_column,
    swap_task_position, update_task_priority, update_task_type
  - Lookups: list_types, list_priorities, list_relation_types
  - Labels: create_label, get_label, list_labels, list_task_labels,
    attach_label, detach_label
  - Relations: add_relation, remove_relation, list_parents, list_children,
    list_child_ids
  - Comments: create_comment, get_comment, update_comment, delete_comment,
    list_comments
DEPENDENCIES:
  - sqlite3 (stdlib)
  - pathlib (stdlib)
  - datetime (stdlib)
  - lanes.core.models
  - lanes.core.exceptions
NOTES:
  - Database stored at ~/.lanes/lanes.db
  - Auto-creates directory and initializes schema on first run
  - Every connection is opened with a bounded busy timeout (DB_TIMEOUT)
  - sqlite3 errors are translated to StoreError / StoreTimeoutError
  - Returns domain objects, never raw dicts
  - Columns are ordered as a doubly-linked list (prev_id / next_id)
  - Task positions are kept dense (0..n-1) within a column
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from .constants import TASK_TYPES, PRIORITIES, RELATION_TYPES, DEFAULT_DB_TIMEOUT
from .models import (
    Project,
    Column,
    Label,
    TaskSummary,
    TaskDetail,
    TaskReference,
    Comment,
    Option,
    RelationType,
)
from .exceptions import (
    TaskNotFoundError,
    ProjectNotFoundError,
    ColumnNotFoundError,
    LabelNotFoundError,
    CommentNotFoundError,
    InvalidInputError,
    StoreError,
    StoreTimeoutError,
)

logger = logging.getLogger(__name__)

# Database file location (cross-platform)
DB_DIR = Path.home() / ".lanes"
DB_PATH = DB_DIR / "lanes.db"

# Seconds a call waits on a locked database before failing
DB_TIMEOUT = DEFAULT_DB_TIMEOUT

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS types (
    id INTEGER PRIMARY KEY,
    description TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS priorities (
    id INTEGER PRIMARY KEY,
    description TEXT NOT NULL,
    color TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS relation_types (
    id INTEGER PRIMARY KEY,
    p_to_c_label TEXT NOT NULL,
    c_to_p_label TEXT NOT NULL,
    color TEXT NOT NULL,
    is_blocking INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    next_ticket_number INTEGER NOT NULL DEFAULT 1,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS columns (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    prev_id INTEGER,
    next_id INTEGER,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS labels (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    UNIQUE (project_id, name)
);

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    column_id INTEGER NOT NULL REFERENCES columns(id) ON DELETE CASCADE,
    position INTEGER NOT NULL DEFAULT 0,
    ticket_number INTEGER NOT NULL DEFAULT 0,
    type_id INTEGER NOT NULL DEFAULT 1 REFERENCES types(id),
    priority_id INTEGER NOT NULL DEFAULT 3 REFERENCES priorities(id),
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS task_labels (
    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    label_id INTEGER NOT NULL REFERENCES labels(id) ON DELETE CASCADE,
    PRIMARY KEY (task_id, label_id)
);

CREATE TABLE IF NOT EXISTS task_relations (
    parent_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    child_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    relation_type_id INTEGER NOT NULL DEFAULT 1 REFERENCES relation_types(id),
    PRIMARY KEY (parent_id, child_id),
    CHECK (parent_id != child_id)
);

CREATE TABLE IF NOT EXISTS task_comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    message TEXT NOT NULL CHECK (length(message) <= 500),
    author TEXT NOT NULL DEFAULT '',
    created_at TEXT,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_tasks_column ON tasks(column_id, position);
CREATE INDEX IF NOT EXISTS idx_columns_project ON columns(project_id);
"""

# Summary query shared by the filtered and unfiltered board loads
_SUMMARY_SELECT = """
    SELECT
        t.id, t.title, t.column_id, t.position, t.ticket_number,
        ty.description AS type_description,
        p.description AS priority_description,
        p.color AS priority_color,
        EXISTS(
            SELECT 1 FROM task_relations tr
            INNER JOIN relation_types rt ON tr.relation_type_id = rt.id
            WHERE tr.parent_id = t.id AND rt.is_blocking = 1
        ) AS is_blocked
    FROM tasks t
    INNER JOIN columns c ON t.column_id = c.id
    LEFT JOIN types ty ON t.type_id = ty.id
    LEFT JOIN priorities p ON t.priority_id = p.id
"""

_DETAIL_SELECT = """
    SELECT
        t.*, c.project_id,
        ty.description AS type_description,
        p.description AS priority_description,
        p.color AS priority_color
    FROM tasks t
    INNER JOIN columns c ON t.column_id = c.id
    LEFT JOIN types ty ON t.type_id = ty.id
    LEFT JOIN priorities p ON t.priority_id = p.id
"""


def _now() -> str:
    return datetime.now().isoformat()


def get_connection() -> sqlite3.Connection:
    """
    Get SQLite connection to the lanes database.

    Creates ~/.lanes directory if it doesn't exist.
    Enables row_factory for dict-like row access.
    Enables foreign key constraints.
    Initializes database schema on first connection.
    """
    # Ensure directory exists
    DB_DIR.mkdir(parents=True, exist_ok=True)

    # The timeout bounds how long a call waits on another writer
    conn = sqlite3.connect(DB_PATH, timeout=DB_TIMEOUT)
    conn.row_factory = sqlite3.Row

    # Enable foreign key constraints (required for ON DELETE CASCADE)
    conn.execute("PRAGMA foreign_keys = ON")

    # Initialize schema if needed
    init_database(conn)

    return conn


@contextmanager
def connection() -> Iterator[sqlite3.Connection]:
    """
    Open a connection for one atomic store call.

    Commits on success, rolls back on any error and always closes.

    Raises:
        StoreTimeoutError: If the database stayed locked past DB_TIMEOUT
        StoreError: For any other sqlite3 failure
    """
    try:
        conn = get_connection()
    except sqlite3.Error as e:
        logger.error("Cannot open database %s: %s", DB_PATH, e)
        raise StoreError(f"Cannot open database: {e}") from e

    try:
        yield conn
        conn.commit()
    except sqlite3.OperationalError as e:
        conn.rollback()
        if "locked" in str(e) or "busy" in str(e):
            logger.error("Database busy after %ss: %s", DB_TIMEOUT, e)
            raise StoreTimeoutError(DB_TIMEOUT) from e
        logger.error("Database error: %s", e)
        raise StoreError(str(e)) from e
    except sqlite3.IntegrityError as e:
        conn.rollback()
        logger.error("Constraint violated: %s", e)
        raise InvalidInputError(f"Constraint violated: {e}") from e
    except sqlite3.Error as e:
        conn.rollback()
        logger.error("Database error: %s", e)
        raise StoreError(str(e)) from e
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_database(conn: sqlite3.Connection) -> None:
    """
    Initialize database schema if tables don't exist.

    Creates tables and seeds the lookup tables.
    Safe to call multiple times (uses CREATE TABLE IF NOT EXISTS).
    """
    # Check if tables exist by querying sqlite_master
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='tasks'"
    )
    if cursor.fetchone() is not None:
        return

    conn.executescript(SCHEMA_SQL)
    conn.executemany(
        "INSERT OR IGNORE INTO types (id, description) VALUES (?, ?)", TASK_TYPES
    )
    conn.executemany(
        "INSERT OR IGNORE INTO priorities (id, description, color) VALUES (?, ?, ?)",
        PRIORITIES,
    )
    conn.executemany(
        """
        INSERT OR IGNORE INTO relation_types (id, p_to_c_label, c_to_p_label, color, is_blocking)
        VALUES (?, ?, ?, ?, ?)
        """,
        [(i, p, c, color, int(blocking)) for i, p, c, color, blocking in RELATION_TYPES],
    )
    conn.commit()
    logger.info("Initialized database schema at %s", DB_PATH)


# --- Projects ---


def create_project(name: str, description: Optional[str] = None) -> Project:
    """
    Create a new project.

    Args:
        name: Project name (required)
        description: Optional description

    Returns:
        Newly created Project object
    """
    now = _now()
    with connection() as conn:
        cursor = conn.execute(
            "INSERT INTO projects (name, description, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (name, description, now, now),
        )
        project_id = cursor.lastrowid
    return get_project(project_id)


def get_project(project_id: int) -> Optional[Project]:
    """Get project by ID, or None if it doesn't exist."""
    with connection() as conn:
        row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
    return Project.from_row(row) if row else None


def list_projects() -> List[Project]:
    """List all projects ordered by ID (creation order)."""
    with connection() as conn:
        rows = conn.execute("SELECT * FROM projects ORDER BY id").fetchall()
    return [Project.from_row(row) for row in rows]


def delete_project(project_id: int) -> None:
    """
    Delete a project and everything it owns.

    Raises:
        ProjectNotFoundError: If project doesn't exist
    """
    with connection() as conn:
        cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        if cursor.rowcount == 0:
            raise ProjectNotFoundError(project_id)


# --- Columns ---


def create_column(name: str, project_id: int, after_id: Optional[int] = None) -> Column:
    """
    Create a column, linking it into the project's column list.

    Args:
        name: Column name
        project_id: Owning project
        after_id: Insert directly after this column; None appends at the end

    Returns:
        Newly created Column object

    Raises:
        ProjectNotFoundError: If project doesn't exist
        ColumnNotFoundError: If after_id is not a column of the project
    """
    now = _now()
    with connection() as conn:
        if conn.execute("SELECT 1 FROM projects WHERE id = ?", (project_id,)).fetchone() is None:
            raise ProjectNotFoundError(project_id)

        if after_id is None:
            tail = conn.execute(
                "SELECT id FROM columns WHERE project_id = ? AND next_id IS NULL ORDER BY id DESC LIMIT 1",
                (project_id,),
            ).fetchone()
            prev_id = tail["id"] if tail else None
            next_id = None
        else:
            after = conn.execute(
                "SELECT id, next_id FROM columns WHERE id = ? AND project_id = ?",
                (after_id, project_id),
            ).fetchone()
            if after is None:
                raise ColumnNotFoundError(after_id)
            prev_id = after["id"]
            next_id = after["next_id"]

        cursor = conn.execute(
            """
            INSERT INTO columns (name, project_id, prev_id, next_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (name, project_id, prev_id, next_id, now, now),
        )
        column_id = cursor.lastrowid

        # Splice the new node between its neighbours
        if prev_id is not None:
            conn.execute("UPDATE columns SET next_id = ? WHERE id = ?", (column_id, prev_id))
        if next_id is not None:
            conn.execute("UPDATE columns SET prev_id = ? WHERE id = ?", (column_id, next_id))

    return get_column(column_id)


def get_column(column_id: int) -> Optional[Column]:
    """Get column by ID, or None if it doesn't exist."""
    with connection() as conn:
        row = conn.execute("SELECT * FROM columns WHERE id = ?", (column_id,)).fetchone()
    return Column.from_row(row) if row else None


def list_columns(project_id: int) -> List[Column]:
    """
    List a project's columns in board order.

    Walks the linked list from its head. Any column the walk cannot
    reach is appended in id order so a damaged list never hides data.
    """
    with connection() as conn:
        rows = conn.execute(
            "SELECT * FROM columns WHERE project_id = ? ORDER BY id", (project_id,)
        ).fetchall()

    by_id = {row["id"]: Column.from_row(row) for row in rows}
    ordered: List[Column] = []
    seen = set()

    head = next((c for c in by_id.values() if c.prev_id is None), None)
    current = head
    while current is not None and current.id not in seen:
        ordered.append(current)
        seen.add(current.id)
        current = by_id.get(current.next_id) if current.next_id is not None else None

    for column in by_id.values():
        if column.id not in seen:
            ordered.append(column)
    return ordered


def rename_column(column_id: int, name: str) -> Column:
    """
    Rename a column.

    Raises:
        ColumnNotFoundError: If column doesn't exist
    """
    with connection() as conn:
        cursor = conn.execute(
            "UPDATE columns SET name = ?, updated_at = ? WHERE id = ?",
            (name, _now(), column_id),
        )
        if cursor.rowcount == 0:
            raise ColumnNotFoundError(column_id)
    return get_column(column_id)


def delete_column(column_id: int) -> None:
    """
    Delete a column and its tasks, relinking its neighbours.

    Raises:
        ColumnNotFoundError: If column doesn't exist
    """
    with connection() as conn:
        row = conn.execute(
            "SELECT prev_id, next_id FROM columns WHERE id = ?", (column_id,)
        ).fetchone()
        if row is None:
            raise ColumnNotFoundError(column_id)

        prev_id, next_id = row["prev_id"], row["next_id"]
        if prev_id is not None:
            conn.execute("UPDATE columns SET next_id = ? WHERE id = ?", (next_id, prev_id))
        if next_id is not None:
            conn.execute("UPDATE columns SET prev_id = ? WHERE id = ?", (prev_id, next_id))
        conn.execute("DELETE FROM columns WHERE id = ?", (column_id,))


def count_tasks_in_column(column_id: int) -> int:
    """Return the number of tasks in a column."""
    with connection() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM tasks WHERE column_id = ?", (column_id,)
        ).fetchone()
    return row["n"]


# --- Tasks ---


def _densify(conn: sqlite3.Connection, column_id: int) -> None:
    """Renumber a column's task positions to 0..n-1 keeping their order."""
    rows = conn.execute(
        "SELECT id FROM tasks WHERE column_id = ? ORDER BY position, id", (column_id,)
    ).fetchall()
    for position, row in enumerate(rows):
        conn.execute("UPDATE tasks SET position = ? WHERE id = ?", (position, row["id"]))


def create_task(
    title: str,
    column_id: int,
    description: Optional[str] = None,
    type_id: int = 1,
    priority_id: int = 3,
) -> TaskDetail:
    """
    Create a new task at the end of a column.

    Args:
        title: Task title (required)
        column_id: Column to place task in
        description: Optional description
        type_id: Task type (defaults to task)
        priority_id: Priority (defaults to medium)

    Returns:
        Newly created TaskDetail

    Raises:
        ColumnNotFoundError: If column doesn't exist

    Note:
        Ticket numbers are allocated per project from a counter on the project row.
    """
    now = _now()
    with connection() as conn:
        column = conn.execute(
            "SELECT project_id FROM columns WHERE id = ?", (column_id,)
        ).fetchone()
        if column is None:
            raise ColumnNotFoundError(column_id)

        project_id = column["project_id"]
        ticket = conn.execute(
            "SELECT next_ticket_number FROM projects WHERE id = ?", (project_id,)
        ).fetchone()["next_ticket_number"]
        conn.execute(
            "UPDATE projects SET next_ticket_number = next_ticket_number + 1 WHERE id = ?",
            (project_id,),
        )

        position = conn.execute(
            "SELECT COUNT(*) AS n FROM tasks WHERE column_id = ?", (column_id,)
        ).fetchone()["n"]

        cursor = conn.execute(
            """
            INSERT INTO tasks (title, description, column_id, position, ticket_number,
                               type_id, priority_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (title, description, column_id, position, ticket, type_id, priority_id, now, now),
        )
        task_id = cursor.lastrowid

    return get_task(task_id)


def get_task(task_id: int) -> Optional[TaskDetail]:
    """
    Get a task with its labels, parents and children.

    Returns:
        TaskDetail if found, None otherwise
    """
    with connection() as conn:
        row = conn.execute(_DETAIL_SELECT + " WHERE t.id = ?", (task_id,)).fetchone()
    if row is None:
        return None

    task = TaskDetail.from_row(row)
    task.labels = list_task_labels(task_id)
    task.parents = list_parents(task_id)
    task.children = list_children(task_id)
    return task


def get_task_project_id(task_id: int) -> Optional[int]:
    """Return the project a task belongs to, or None if the task doesn't exist."""
    with connection() as conn:
        row = conn.execute(
            "SELECT c.project_id FROM tasks t INNER JOIN columns c ON t.column_id = c.id WHERE t.id = ?",
            (task_id,),
        ).fetchone()
    return row["project_id"] if row else None


def update_task(task_id: int, title: str, description: Optional[str]) -> TaskDetail:
    """
    Update a task's title and description.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    with connection() as conn:
        cursor = conn.execute(
            "UPDATE tasks SET title = ?, description = ?, updated_at = ? WHERE id = ?",
            (title, description, _now(), task_id),
        )
        if cursor.rowcount == 0:
            raise TaskNotFoundError(task_id)
    return get_task(task_id)


def delete_task(task_id: int) -> None:
    """
    Delete a task and close the gap it leaves in its column.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    with connection() as conn:
        row = conn.execute("SELECT column_id FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise TaskNotFoundError(task_id)
        conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        _densify(conn, row["column_id"])


def list_task_summaries(project_id: int, query: Optional[str] = None) -> Dict[int, List[TaskSummary]]:
    """
    Load the board cards of a project grouped by column.

    Args:
        project_id: Project to load
        query: Optional case-insensitive substring matched against title
            and description

    Returns:
        Dict mapping every column id of the project to its tasks ordered
        by position (empty columns map to an empty list)
    """
    sql = _SUMMARY_SELECT + " WHERE c.project_id = ?"
    params: list = [project_id]
    if query:
        sql += " AND (t.title LIKE ? OR COALESCE(t.description, '') LIKE ?)"
        pattern = f"%{query}%"
        params.extend([pattern, pattern])
    sql += " ORDER BY t.column_id, t.position, t.id"

    with connection() as conn:
        column_rows = conn.execute(
            "SELECT id FROM columns WHERE project_id = ?", (project_id,)
        ).fetchall()
        rows = conn.execute(sql, params).fetchall()
        label_rows = conn.execute(
            """
            SELECT tl.task_id, l.*
            FROM task_labels tl
            INNER JOIN labels l ON tl.label_id = l.id
            WHERE l.project_id = ?
            ORDER BY l.name
            """,
            (project_id,),
        ).fetchall()

    labels_by_task: Dict[int, List[Label]] = {}
    for row in label_rows:
        labels_by_task.setdefault(row["task_id"], []).append(Label.from_row(row))

    result: Dict[int, List[TaskSummary]] = {row["id"]: [] for row in column_rows}
    for row in rows:
        summary = TaskSummary.from_row(row, labels_by_task.get(row["id"]))
        result.setdefault(summary.column_id, []).append(summary)
    return result


def list_task_references(project_id: int) -> List[TaskReference]:
    """List every task of a project as a reference (for relation pickers)."""
    with connection() as conn:
        rows = conn.execute(
            """
            SELECT t.id, t.title, t.ticket_number, p.name AS project_name,
                   1 AS relation_type_id, '' AS relation_label
            FROM tasks t
            INNER JOIN columns c ON t.column_id = c.id
            INNER JOIN projects p ON c.project_id = p.id
            WHERE p.id = ?
            ORDER BY t.ticket_number
            """,
            (project_id,),
        ).fetchall()
    return [TaskReference.from_row(row) for row in rows]


def move_task_to_column(task_id: int, column_id: int) -> TaskDetail:
    """
    Move a task to the end of another column.

    Raises:
        TaskNotFoundError: If task doesn't exist
        ColumnNotFoundError: If column doesn't exist
    """
    with connection() as conn:
        row = conn.execute("SELECT column_id FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise TaskNotFoundError(task_id)
        if conn.execute("SELECT 1 FROM columns WHERE id = ?", (column_id,)).fetchone() is None:
            raise ColumnNotFoundError(column_id)

        old_column_id = row["column_id"]
        if old_column_id != column_id:
            position = conn.execute(
                "SELECT COUNT(*) AS n FROM tasks WHERE column_id = ?", (column_id,)
            ).fetchone()["n"]
            conn.execute(
                "UPDATE tasks SET column_id = ?, position = ?, updated_at = ? WHERE id = ?",
                (column_id, position, _now(), task_id),
            )
            _densify(conn, old_column_id)

    return get_task(task_id)


def swap_task_position(task_id: int, direction: int) -> None:
    """
    Swap a task with its neighbour in the same column.

    Args:
        task_id: Task to move
        direction: -1 to move up, +1 to move down

    Raises:
        TaskNotFoundError: If task doesn't exist
        InvalidInputError: If the task is already at that edge
    """
    with connection() as conn:
        row = conn.execute(
            "SELECT column_id, position FROM tasks WHERE id = ?", (task_id,)
        ).fetchone()
        if row is None:
            raise TaskNotFoundError(task_id)

        neighbour = conn.execute(
            "SELECT id, position FROM tasks WHERE column_id = ? AND position = ?",
            (row["column_id"], row["position"] + direction),
        ).fetchone()
        if neighbour is None:
            edge = "top" if direction < 0 else "bottom"
            raise InvalidInputError(f"Task is already at the {edge}")

        conn.execute(
            "UPDATE tasks SET position = ? WHERE id = ?", (neighbour["position"], task_id)
        )
        conn.execute(
            "UPDATE tasks SET position = ? WHERE id = ?", (row["position"], neighbour["id"])
        )


def update_task_priority(task_id: int, priority_id: int) -> None:
    """
    Set a task's priority.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    with connection() as conn:
        cursor = conn.execute(
            "UPDATE tasks SET priority_id = ?, updated_at = ? WHERE id = ?",
            (priority_id, _now(), task_id),
        )
        if cursor.rowcount == 0:
            raise TaskNotFoundError(task_id)


def update_task_type(task_id: int, type_id: int) -> None:
    """
    Set a task's type.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    with connection() as conn:
        cursor = conn.execute(
            "UPDATE tasks SET type_id = ?, updated_at = ? WHERE id = ?",
            (type_id, _now(), task_id),
        )
        if cursor.rowcount == 0:
            raise TaskNotFoundError(task_id)


# --- Lookups ---


def list_types() -> List[Option]:
    """List task types."""
    with connection() as conn:
        rows = conn.execute("SELECT id, description FROM types ORDER BY id").fetchall()
    return [Option(id=row["id"], description=row["description"]) for row in rows]


def list_priorities() -> List[Option]:
    """List priorities, lowest first."""
    with connection() as conn:
        rows = conn.execute("SELECT id, description, color FROM priorities ORDER BY id").fetchall()
    return [Option(id=row["id"], description=row["description"], color=row["color"]) for row in rows]


def list_relation_types() -> List[RelationType]:
    """List relation types."""
    with connection() as conn:
        rows = conn.execute("SELECT * FROM relation_types ORDER BY id").fetchall()
    return [
        RelationType(
            id=row["id"],
            parent_label=row["p_to_c_label"],
            child_label=row["c_to_p_label"],
            color=row["color"],
            is_blocking=bool(row["is_blocking"]),
        )
        for row in rows
    ]


# --- Labels ---


def create_label(name: str, color: str, project_id: int) -> Label:
    """
    Create a label in a project.

    Raises:
        ProjectNotFoundError: If project doesn't exist
    """
    with connection() as conn:
        if conn.execute("SELECT 1 FROM projects WHERE id = ?", (project_id,)).fetchone() is None:
            raise ProjectNotFoundError(project_id)
        cursor = conn.execute(
            "INSERT INTO labels (name, color, project_id) VALUES (?, ?, ?)",
            (name, color, project_id),
        )
        label_id = cursor.lastrowid
    return get_label(label_id)


def get_label(label_id: int) -> Optional[Label]:
    """Get label by ID, or None if it doesn't exist."""
    with connection() as conn:
        row = conn.execute("SELECT * FROM labels WHERE id = ?", (label_id,)).fetchone()
    return Label.from_row(row) if row else None


def list_labels(project_id: int) -> List[Label]:
    """List a project's labels by name."""
    with connection() as conn:
        rows = conn.execute(
            "SELECT * FROM labels WHERE project_id = ? ORDER BY name", (project_id,)
        ).fetchall()
    return [Label.from_row(row) for row in rows]


def list_task_labels(task_id: int) -> List[Label]:
    """List labels attached to a task."""
    with connection() as conn:
        rows = conn.execute(
            """
            SELECT l.* FROM labels l
            INNER JOIN task_labels tl ON tl.label_id = l.id
            WHERE tl.task_id = ?
            ORDER BY l.name
            """,
            (task_id,),
        ).fetchall()
    return [Label.from_row(row) for row in rows]


def attach_label(task_id: int, label_id: int) -> None:
    """
    Attach a label to a task (no-op if already attached).

    Raises:
        TaskNotFoundError: If task doesn't exist
        LabelNotFoundError: If label doesn't exist
    """
    with connection() as conn:
        if conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone() is None:
            raise TaskNotFoundError(task_id)
        if conn.execute("SELECT 1 FROM labels WHERE id = ?", (label_id,)).fetchone() is None:
            raise LabelNotFoundError(label_id)
        conn.execute(
            "INSERT OR IGNORE INTO task_labels (task_id, label_id) VALUES (?, ?)",
            (task_id, label_id),
        )


def detach_label(task_id: int, label_id: int) -> None:
    """Detach a label from a task (no-op if not attached)."""
    with connection() as conn:
        conn.execute(
            "DELETE FROM task_labels WHERE task_id = ? AND label_id = ?", (task_id, label_id)
        )


# --- Relations ---


def add_relation(parent_id: int, child_id: int, relation_type_id: int = 1) -> None:
    """
    Relate two tasks, replacing the relation type if already related.

    Raises:
        TaskNotFoundError: If either task doesn't exist
    """
    with connection() as conn:
        for task_id in (parent_id, child_id):
            if conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone() is None:
                raise TaskNotFoundError(task_id)
        conn.execute(
            """
            INSERT OR REPLACE INTO task_relations (parent_id, child_id, relation_type_id)
            VALUES (?, ?, ?)
            """,
            (parent_id, child_id, relation_type_id),
        )


def remove_relation(parent_id: int, child_id: int) -> None:
    """Remove a relation (no-op if absent)."""
    with connection() as conn:
        conn.execute(
            "DELETE FROM task_relations WHERE parent_id = ? AND child_id = ?",
            (parent_id, child_id),
        )


def list_parents(task_id: int) -> List[TaskReference]:
    """List the parents of a task, labelled from the parent's side."""
    with connection() as conn:
        rows = conn.execute(
            """
            SELECT t.id, t.title, t.ticket_number, p.name AS project_name,
                   rt.id AS relation_type_id, rt.p_to_c_label AS relation_label
            FROM tasks t
            INNER JOIN task_relations tr ON t.id = tr.parent_id
            INNER JOIN relation_types rt ON tr.relation_type_id = rt.id
            INNER JOIN columns c ON t.column_id = c.id
            INNER JOIN projects p ON c.project_id = p.id
            WHERE tr.child_id = ?
            ORDER BY p.name, t.ticket_number
            """,
            (task_id,),
        ).fetchall()
    return [TaskReference.from_row(row) for row in rows]


def list_children(task_id: int) -> List[TaskReference]:
    """List the children of a task, labelled from the child's side."""
    with connection() as conn:
        rows = conn.execute(
            """
            SELECT t.id, t.title, t.ticket_number, p.name AS project_name,
                   rt.id AS relation_type_id, rt.c_to_p_label AS relation_label
            FROM tasks t
            INNER JOIN task_relations tr ON t.id = tr.child_id
            INNER JOIN relation_types rt ON tr.relation_type_id = rt.id
            INNER JOIN columns c ON t.column_id = c.id
            INNER JOIN projects p ON c.project_id = p.id
            WHERE tr.parent_id = ?
            ORDER BY p.name, t.ticket_number
            """,
            (task_id,),
        ).fetchall()
    return [TaskReference.from_row(row) for row in rows]


def list_child_ids(task_id: int) -> List[int]:
    """List child task ids without joins (used for graph walks)."""
    with connection() as conn:
        rows = conn.execute(
            "SELECT child_id FROM task_relations WHERE parent_id = ?", (task_id,)
        ).fetchall()
    return [row["child_id"] for row in rows]


# --- Comments ---


def create_comment(task_id: int, message: str, author: str = "") -> Comment:
    """
    Add a comment to a task.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    now = _now()
    with connection() as conn:
        if conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone() is None:
            raise TaskNotFoundError(task_id)
        cursor = conn.execute(
            """
            INSERT INTO task_comments (task_id, message, author, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (task_id, message, author, now, now),
        )
        comment_id = cursor.lastrowid
    return get_comment(comment_id)


def get_comment(comment_id: int) -> Optional[Comment]:
    """Get comment by ID, or None if it doesn't exist."""
    with connection() as conn:
        row = conn.execute("SELECT * FROM task_comments WHERE id = ?", (comment_id,)).fetchone()
    return Comment.from_row(row) if row else None


def update_comment(comment_id: int, message: str) -> Comment:
    """
    Replace a comment's message.

    Raises:
        CommentNotFoundError: If comment doesn't exist
    """
    with connection() as conn:
        cursor = conn.execute(
            "UPDATE task_comments SET message = ?, updated_at = ? WHERE id = ?",
            (message, _now(), comment_id),
        )
        if cursor.rowcount == 0:
            raise CommentNotFoundError(comment_id)
    return get_comment(comment_id)


def delete_comment(comment_id: int) -> None:
    """
    Delete a comment.

    Raises:
        CommentNotFoundError: If comment doesn't exist
    """
    with connection() as conn:
        cursor = conn.execute("DELETE FROM task_comments WHERE id = ?", (comment_id,))
        if cursor.rowcount == 0:
            raise CommentNotFoundError(comment_id)


def list_comments(task_id: int) -> List[Comment]:
    """List a task's comments, oldest first."""
    with connection() as conn:
        rows = conn.execute(
            "SELECT * FROM task_comments WHERE task_id = ? ORDER BY created_at, id", (task_id,)
        ).fetchall()
    return [Comment.from_row(row) for row in rows]
