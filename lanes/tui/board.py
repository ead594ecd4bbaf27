"""
FILE: lanes/tui/board.py
PURPOSE: In-memory snapshot of the open project
EXPORTS:
  - BoardState (dataclass)
NOTES:
  - Mutated only by bulk reloads and by the patch helpers in reconcile.py,
    each called right after a successful store call
  - Every task is stored under the id of the column it belongs to and
    positions are dense 0..n-1 within a column
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core.models import Column, Label, Project, TaskSummary
from .selection import Selection


@dataclass
class BoardState:
    projects: List[Project] = field(default_factory=list)
    project_index: int = 0
    columns: List[Column] = field(default_factory=list)
    tasks: Dict[int, List[TaskSummary]] = field(default_factory=dict)
    labels: List[Label] = field(default_factory=list)
    search_query: str = ""

    @property
    def current_project(self) -> Optional[Project]:
        if 0 <= self.project_index < len(self.projects):
            return self.projects[self.project_index]
        return None

    @property
    def project_id(self) -> int:
        project = self.current_project
        return project.id if project else 0

    def tasks_in(self, column_id: int) -> List[TaskSummary]:
        return self.tasks.get(column_id, [])

    def column_at(self, index: int) -> Optional[Column]:
        if 0 <= index < len(self.columns):
            return self.columns[index]
        return None

    def column_index_of(self, column_id: Optional[int]) -> int:
        for index, column in enumerate(self.columns):
            if column.id == column_id:
                return index
        return -1

    def selected_column(self, selection: Selection) -> Optional[Column]:
        return self.column_at(selection.column_index)

    def selected_tasks(self, selection: Selection) -> List[TaskSummary]:
        column = self.selected_column(selection)
        return self.tasks_in(column.id) if column else []

    def selected_task(self, selection: Selection) -> Optional[TaskSummary]:
        tasks = self.selected_tasks(selection)
        if 0 <= selection.task_index < len(tasks):
            return tasks[selection.task_index]
        return None

    def check_consistency(self) -> List[str]:
        """Describe every broken board invariant (empty list when consistent)."""
        problems = []
        column_ids = {c.id for c in self.columns}
        for column_id, tasks in self.tasks.items():
            if column_id not in column_ids:
                problems.append(f"tasks cached for unknown column {column_id}")
            for expected, task in enumerate(tasks):
                if task.column_id != column_id:
                    problems.append(
                        f"task {task.id} says column {task.column_id} but is under {column_id}"
                    )
                if task.position != expected:
                    problems.append(
                        f"task {task.id} in column {column_id} has position {task.position}, expected {expected}"
                    )
        return problems

    def clear_project_data(self) -> None:
        self.columns = []
        self.tasks = {}
        self.labels = []
