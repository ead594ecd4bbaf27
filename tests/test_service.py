"""
Tests for the store: projects, ordered columns, dense task positions,
labels, relations and comments.
"""

import pytest

from lanes.core import repository, service
from lanes.core.constants import LABEL_COLORS
from lanes.core.exceptions import (
    ColumnNotFoundError,
    DuplicateLabelError,
    InvalidInputError,
    RelationCycleError,
    TaskNotFoundError,
)


@pytest.fixture
def project():
    return service.create_project("Work")


@pytest.fixture
def board(project):
    todo = service.create_column("Todo", project.id)
    doing = service.create_column("Doing", project.id)
    done = service.create_column("Done", project.id)
    return project, todo, doing, done


def test_create_project_validates_name():
    project = service.create_project("  Home  ", "  stuff ")
    assert project.name == "Home"
    assert project.description == "stuff"

    with pytest.raises(InvalidInputError):
        service.create_project("   ")


def test_columns_keep_linked_order(board):
    project, todo, doing, done = board
    names = [c.name for c in service.list_columns(project.id)]
    assert names == ["Todo", "Doing", "Done"]

    review = service.create_column("Review", project.id, after_id=doing.id)
    columns = service.list_columns(project.id)
    assert [c.name for c in columns] == ["Todo", "Doing", "Review", "Done"]
    assert columns[0].prev_id is None
    assert columns[-1].next_id is None
    assert columns[2].id == review.id
    assert columns[2].prev_id == doing.id and columns[2].next_id == done.id


def test_delete_column_relinks_neighbours(board):
    project, todo, doing, done = board
    service.create_task("Gone with the column", doing.id)

    service.delete_column(doing.id)

    columns = service.list_columns(project.id)
    assert [c.id for c in columns] == [todo.id, done.id]
    assert columns[0].next_id == done.id
    assert columns[1].prev_id == todo.id
    with pytest.raises(ColumnNotFoundError):
        service.get_column(doing.id)


def test_rename_column(board):
    _, todo, _, _ = board
    assert service.rename_column(todo.id, " Backlog ").name == "Backlog"
    with pytest.raises(InvalidInputError):
        service.rename_column(todo.id, "")


def test_tasks_get_dense_positions_and_ticket_numbers(board):
    project, todo, doing, _ = board
    first = service.create_task("First", todo.id)
    second = service.create_task("Second", todo.id)
    third = service.create_task("Third", todo.id)

    assert [first.position, second.position, third.position] == [0, 1, 2]
    assert [first.ticket_number, second.ticket_number, third.ticket_number] == [1, 2, 3]

    service.move_task_to_column(first.id, doing.id)
    tasks = service.list_task_summaries(project.id)
    assert [(t.title, t.position) for t in tasks[todo.id]] == [("Second", 0), ("Third", 1)]
    assert [(t.title, t.position) for t in tasks[doing.id]] == [("First", 0)]


def test_move_task_up_and_down(board):
    project, todo, _, _ = board
    first = service.create_task("First", todo.id)
    second = service.create_task("Second", todo.id)

    service.move_task_up(second.id)
    titles = [t.title for t in service.list_task_summaries(project.id)[todo.id]]
    assert titles == ["Second", "First"]

    service.move_task_down(second.id)
    titles = [t.title for t in service.list_task_summaries(project.id)[todo.id]]
    assert titles == ["First", "Second"]

    with pytest.raises(InvalidInputError):
        service.move_task_up(first.id)


def test_delete_task_closes_gap(board):
    project, todo, _, _ = board
    tasks = [service.create_task(f"Task {i}", todo.id) for i in range(3)]

    service.delete_task(tasks[1].id)

    remaining = service.list_task_summaries(project.id)[todo.id]
    assert [(t.title, t.position) for t in remaining] == [("Task 0", 0), ("Task 2", 1)]
    with pytest.raises(TaskNotFoundError):
        service.get_task(tasks[1].id)


def test_search_filters_titles(board):
    project, todo, _, _ = board
    service.create_task("Fix login bug", todo.id)
    service.create_task("Write docs", todo.id)

    found = service.list_task_summaries(project.id, "BUG")
    assert [t.title for t in found.get(todo.id, [])] == ["Fix login bug"]


def test_label_names_unique_ignoring_case(project):
    red = LABEL_COLORS[0][1]
    service.create_label("Bug", red, project.id)
    with pytest.raises(DuplicateLabelError):
        service.create_label("bug", red, project.id)

    other = service.create_project("Other")
    assert service.create_label("bug", red, other.id).name == "bug"


def test_attach_and_detach_labels(board):
    project, todo, _, _ = board
    task = service.create_task("Label me", todo.id)
    label = service.create_label("UI", LABEL_COLORS[1][1], project.id)

    service.attach_label(task.id, label.id)
    assert [l.name for l in service.get_task(task.id).labels] == ["UI"]
    summary = service.list_task_summaries(project.id)[todo.id][0]
    assert [l.name for l in summary.labels] == ["UI"]

    service.detach_label(task.id, label.id)
    assert service.get_task(task.id).labels == []


def test_relations_reject_cycles(board):
    _, todo, _, _ = board
    a = service.create_task("A", todo.id)
    b = service.create_task("B", todo.id)
    c = service.create_task("C", todo.id)

    service.add_relation(a.id, b.id)
    service.add_relation(b.id, c.id)

    with pytest.raises(RelationCycleError):
        service.add_relation(c.id, a.id)
    with pytest.raises(RelationCycleError):
        service.add_relation(a.id, a.id)

    assert [p.id for p in service.list_parents(b.id)] == [a.id]
    assert [ch.id for ch in service.list_children(b.id)] == [c.id]


def test_blocking_relation_marks_parent_blocked(board):
    project, todo, _, _ = board
    blocked = service.create_task("Blocked", todo.id)
    blocker = service.create_task("Blocker", todo.id)

    service.add_relation(blocked.id, blocker.id, 2)

    assert service.get_task(blocked.id).is_blocked
    assert not service.get_task(blocker.id).is_blocked
    by_id = {t.id: t for t in service.list_task_summaries(project.id)[todo.id]}
    assert by_id[blocked.id].is_blocked
    assert not by_id[blocker.id].is_blocked


def test_readding_relation_changes_type(board):
    _, todo, _, _ = board
    a = service.create_task("A", todo.id)
    b = service.create_task("B", todo.id)
    service.add_relation(a.id, b.id, 1)
    service.add_relation(a.id, b.id, 3)

    children = service.list_children(a.id)
    assert len(children) == 1
    assert children[0].relation_type_id == 3


def test_comments_crud_and_length_limit(board):
    _, todo, _, _ = board
    task = service.create_task("Discuss", todo.id)

    comment = service.create_comment(task.id, "  first thought ")
    assert comment.message == "first thought"
    assert service.update_comment(comment.id, "second thought").message == "second thought"
    assert [c.message for c in service.list_comments(task.id)] == ["second thought"]

    with pytest.raises(InvalidInputError):
        service.create_comment(task.id, "x" * 501)

    service.delete_comment(comment.id)
    assert service.list_comments(task.id) == []


def test_mutations_notify_subscribers(board):
    project, todo, _, _ = board
    seen = []
    service.subscribe(seen.append)

    task = service.create_task("Noisy", todo.id)
    service.update_task(task.id, "Still noisy")

    assert seen == [project.id, project.id]
    service.unsubscribe(seen.append)
    service.delete_task(task.id)
    assert len(seen) == 2


def test_failing_subscriber_does_not_undo_write(board):
    project, todo, _, _ = board

    def broken(project_id):
        raise RuntimeError("boom")

    service.subscribe(broken)
    task = service.create_task("Survives", todo.id)
    assert service.get_task(task.id).title == "Survives"


def test_delete_project_cascades(board):
    project, todo, _, _ = board
    service.create_task("Doomed", todo.id)

    service.delete_project(project.id)

    assert service.get_project(project.id) is None
    assert service.list_columns(project.id) == []
    assert repository.count_tasks_in_column(todo.id) == 0
