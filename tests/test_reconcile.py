"""
Tests for keeping the board cache in step with the store.
"""

import pytest

from lanes.core import service
from lanes.core.exceptions import StoreError
from lanes.tui import reconcile
from lanes.tui.board import BoardState

from conftest import RecordingStore


@pytest.fixture
def loaded():
    project = service.create_project("Work")
    todo = service.create_column("Todo", project.id)
    doing = service.create_column("Doing", project.id)
    for title in ("One", "Two", "Three"):
        service.create_task(title, todo.id)
    board = BoardState()
    reconcile.reload_projects(board, service)
    reconcile.switch_to_project(board, service)
    return board, todo, doing


def test_switch_loads_everything(loaded):
    board, todo, doing = loaded
    assert [c.name for c in board.columns] == ["Todo", "Doing"]
    assert [t.title for t in board.tasks_in(todo.id)] == ["One", "Two", "Three"]
    assert board.tasks_in(doing.id) == []
    assert board.check_consistency() == []


def test_remove_task_renumbers(loaded):
    board, todo, _ = loaded
    second = board.tasks_in(todo.id)[1]
    reconcile.remove_task(board, todo.id, second.id)
    assert [(t.title, t.position) for t in board.tasks_in(todo.id)] == [("One", 0), ("Three", 1)]
    assert board.check_consistency() == []


def test_relocate_task_appends_to_target(loaded):
    board, todo, doing = loaded
    first = board.tasks_in(todo.id)[0]
    reconcile.relocate_task(board, first.id, todo.id, doing.id)

    moved = board.tasks_in(doing.id)
    assert [(t.title, t.column_id, t.position) for t in moved] == [("One", doing.id, 0)]
    assert [t.position for t in board.tasks_in(todo.id)] == [0, 1]
    assert board.check_consistency() == []


def test_swap_tasks(loaded):
    board, todo, _ = loaded
    reconcile.swap_tasks(board, todo.id, 0, 1)
    assert [(t.title, t.position) for t in board.tasks_in(todo.id)] == [("Two", 0), ("One", 1), ("Three", 2)]


def test_remove_column_relinks_cache(loaded):
    board, todo, doing = loaded
    reconcile.remove_column(board, todo.id)
    assert [c.id for c in board.columns] == [doing.id]
    assert board.columns[0].prev_id is None
    assert todo.id not in board.tasks
    assert board.check_consistency() == []


def test_failed_reload_keeps_cache(loaded):
    board, todo, _ = loaded
    failing = RecordingStore(fail={"list_labels": StoreError("disk gone")})
    before = list(board.tasks_in(todo.id))

    with pytest.raises(StoreError):
        reconcile.reload_current_project(board, failing)

    assert board.tasks_in(todo.id) == before
    assert len(board.columns) == 2


def test_switch_degrades_to_empty_on_failure(loaded):
    board, _, _ = loaded
    failing = RecordingStore(fail={"list_columns": StoreError("locked")})
    reconcile.switch_to_project(board, failing)
    assert board.columns == []
    assert board.project_id != 0
    assert len(board.labels) == 0


def test_reload_projects_keeps_current(loaded):
    board, _, _ = loaded
    current = board.project_id
    service.create_project("Another")
    assert reconcile.reload_projects(board, service)
    assert board.project_id == current
    assert len(board.projects) == 2


def test_failed_project_reload_keeps_the_list(loaded):
    board, _, _ = loaded
    current = board.project_id
    failing = RecordingStore(fail={"list_projects": StoreError("locked")})
    assert not reconcile.reload_projects(board, failing)
    assert board.project_id == current
    assert len(board.projects) == 1


def test_consistency_reports_misplaced_tasks(loaded):
    board, todo, doing = loaded
    board.tasks[doing.id] = [board.tasks_in(todo.id)[0]]
    problems = board.check_consistency()
    assert any("is under" in p for p in problems)
