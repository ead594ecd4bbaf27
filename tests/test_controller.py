"""
Tests for the mode controller: key routing, guards, forms, pickers,
confirmations and how store results reach the board cache.
"""

import pytest

from lanes.core import service
from lanes.core.exceptions import StoreError
from lanes.tui.messages import KeyMsg, Quit
from lanes.tui.modes import Mode
from lanes.tui.notifications import Level

from conftest import press, type_text


@pytest.fixture
def project():
    return service.create_project("Work")


@pytest.fixture
def two_columns(project):
    todo = service.create_column("Todo", project.id)
    done = service.create_column("Done", project.id)
    return todo, done


def _sessions(ctl):
    return {
        "task_form": ctl.task_form,
        "project_form": ctl.project_form,
        "column_form": ctl.column_form,
        "comment_form": ctl.comment_form,
        "label_picker": ctl.label_picker,
        "parent_picker": ctl.parent_picker,
        "child_picker": ctl.child_picker,
        "option_picker": ctl.option_picker,
        "relation_picker": ctl.relation_picker,
        "discard": ctl.discard,
    }


def _open_sessions(ctl):
    return sorted(name for name, value in _sessions(ctl).items() if value is not None)


def _latest(ctl):
    note = ctl.notifications.latest
    return note.text if note else None


# --- end to end ---


def test_create_project_column_and_task_from_empty_store(make_controller, store):
    ctl = make_controller()
    assert ctl.board.projects == []

    press(ctl, "P")
    assert ctl.mode is Mode.PROJECT_FORM
    type_text(ctl, "Work")
    press(ctl, "ctrl+s")
    assert ctl.mode is Mode.NORMAL
    assert ctl.board.current_project.name == "Work"
    assert _latest(ctl) == "Created project Work"

    press(ctl, "C")
    assert ctl.mode is Mode.ADD_COLUMN_FORM
    type_text(ctl, "Todo")
    press(ctl, "enter", "enter")
    assert ctl.mode is Mode.NORMAL
    assert [c.name for c in ctl.board.columns] == ["Todo"]

    press(ctl, "a")
    assert ctl.mode is Mode.TASK_FORM
    type_text(ctl, "Write spec")
    press(ctl, "ctrl+s")
    assert ctl.mode is Mode.NORMAL

    column = ctl.board.columns[0]
    tasks = ctl.board.tasks_in(column.id)
    assert [(t.title, t.position) for t in tasks] == [("Write spec", 0)]
    assert ctl.selected_task().title == "Write spec"
    assert _open_sessions(ctl) == []

    # No column to the right: guarded, nothing sent to the store
    store.reset()
    press(ctl, "L")
    assert store.calls == []
    assert ctl.mode is Mode.NORMAL
    assert _latest(ctl) == "There are no more columns to move to."
    assert ctl.board.tasks_in(column.id)[0].title == "Write spec"


def test_down_on_last_task_is_guarded(make_controller, store, two_columns):
    todo, _ = two_columns
    for title in ("One", "Two", "Three"):
        service.create_task(title, todo.id)
    ctl = make_controller()

    press(ctl, "down", "down")
    assert ctl.selection.task_index == 2

    store.reset()
    press(ctl, "down")
    assert ctl.selection.task_index == 2
    assert _latest(ctl) == "Already at the last task"
    assert store.calls == []


def test_column_navigation_guards(make_controller, two_columns):
    ctl = make_controller()
    press(ctl, "h")
    assert _latest(ctl) == "Already at the first column"
    press(ctl, "l")
    assert ctl.selection.column_index == 1
    press(ctl, "l")
    assert _latest(ctl) == "Already at the last column"


# --- guards ---


def test_add_task_without_columns_is_an_error(make_controller, project, store):
    ctl = make_controller()
    press(ctl, "a")
    assert ctl.mode is Mode.NORMAL
    assert ctl.task_form is None
    assert _latest(ctl).startswith("Cannot add task: No columns exist")
    assert store.calls == []


def test_add_column_without_project_is_an_error(make_controller):
    ctl = make_controller()
    press(ctl, "C")
    assert ctl.mode is Mode.NORMAL
    assert _latest(ctl).startswith("Cannot add column: No project exists")


def test_task_actions_need_a_selected_task(make_controller, two_columns, store):
    ctl = make_controller()
    for key, text in (
        ("e", "No task selected to edit"),
        ("d", "No task selected to delete"),
        ("space", "No task selected to view"),
        ("L", "No task selected to move"),
    ):
        press(ctl, key)
        assert ctl.mode is Mode.NORMAL
        assert _latest(ctl) == text
    assert store.calls == []


def test_vertical_move_guards_and_swap(make_controller, two_columns, store):
    todo, _ = two_columns
    service.create_task("One", todo.id)
    service.create_task("Two", todo.id)
    ctl = make_controller()

    press(ctl, "K")
    assert _latest(ctl) == "Task is already at the top"
    assert store.calls == []

    press(ctl, "J")
    assert store.mutations() == ["move_task_down"]
    assert [t.title for t in ctl.board.tasks_in(todo.id)] == ["Two", "One"]
    assert ctl.selection.task_index == 1
    assert ctl.board.check_consistency() == []

    store.reset()
    press(ctl, "J")
    assert _latest(ctl) == "Task is already at the bottom"
    assert store.calls == []


def test_move_task_right_patches_cache(make_controller, two_columns, store):
    todo, done = two_columns
    service.create_task("Ship it", todo.id)
    ctl = make_controller()

    press(ctl, "L")

    assert store.mutations() == ["move_task_to_column"]
    assert ctl.board.tasks_in(todo.id) == []
    assert [t.title for t in ctl.board.tasks_in(done.id)] == ["Ship it"]
    assert ctl.selection.column_index == 1
    assert ctl.selected_task().title == "Ship it"
    assert ctl.board.check_consistency() == []


def test_store_failure_leaves_cache_and_mode(make_controller, two_columns, store):
    todo, _ = two_columns
    service.create_task("Stuck", todo.id)
    ctl = make_controller()
    store.fail["move_task_to_column"] = StoreError("database is locked")

    press(ctl, "L")

    assert ctl.mode is Mode.NORMAL
    assert [t.title for t in ctl.board.tasks_in(todo.id)] == ["Stuck"]
    assert ctl.selection.column_index == 0
    assert _latest(ctl) == "Failed to move task: database is locked"


# --- forms and discard ---


def test_discard_round_trip(make_controller, two_columns, store):
    ctl = make_controller()

    press(ctl, "a")
    type_text(ctl, "Draft")
    press(ctl, "esc")
    assert ctl.mode is Mode.DISCARD_CONFIRM
    assert ctl.discard.source_mode is Mode.TASK_FORM
    assert ctl.discard.message == "Discard task?"

    # Keys other than y / n / esc are ignored
    press(ctl, "x")
    assert ctl.mode is Mode.DISCARD_CONFIRM

    press(ctl, "n")
    assert ctl.mode is Mode.TASK_FORM
    assert ctl.discard is None
    assert ctl.task_form.fields.title == "Draft"
    type_text(ctl, "!")
    assert ctl.task_form.fields.title == "Draft!"

    press(ctl, "esc")
    press(ctl, "y")
    assert ctl.mode is Mode.NORMAL
    assert _open_sessions(ctl) == []
    assert store.calls == []


def test_esc_without_changes_closes_at_once(make_controller, two_columns):
    ctl = make_controller()
    press(ctl, "a")
    press(ctl, "esc")
    assert ctl.mode is Mode.NORMAL
    assert ctl.task_form is None


def test_blank_title_saves_nothing(make_controller, two_columns, store):
    ctl = make_controller()
    press(ctl, "a")
    type_text(ctl, "   ")
    press(ctl, "ctrl+s")
    assert ctl.mode is Mode.NORMAL
    assert store.mutations() == []


def test_declined_confirm_field_saves_nothing(make_controller, two_columns, store):
    ctl = make_controller()
    press(ctl, "a")
    type_text(ctl, "Maybe")
    press(ctl, "tab", "tab", "n", "enter")
    assert ctl.mode is Mode.NORMAL
    assert ctl.task_form is None
    assert store.mutations() == []


def test_failed_create_keeps_form_open(make_controller, two_columns, store):
    ctl = make_controller()
    store.fail["create_task"] = StoreError("disk full")
    press(ctl, "a")
    type_text(ctl, "Keep me")
    press(ctl, "ctrl+s")

    assert ctl.mode is Mode.TASK_FORM
    assert ctl.task_form.fields.title == "Keep me"
    assert not ctl.task_form.completed
    assert _latest(ctl) == "Error creating task: disk full"


def test_edit_task_commits_only_relation_changes(make_controller, two_columns, store):
    todo, _ = two_columns
    a = service.create_task("A", todo.id)
    b = service.create_task("B", todo.id)
    c = service.create_task("C", todo.id)
    task = service.create_task("Target", todo.id)
    service.add_relation(task.id, a.id, 1)
    service.add_relation(task.id, b.id, 2)
    ctl = make_controller()

    press(ctl, "down", "down", "down")
    assert ctl.selected_task().id == task.id
    press(ctl, "e")
    assert ctl.task_form.fields.child_map == {a.id: 1, b.id: 2}

    press(ctl, "ctrl+b")
    assert ctl.mode is Mode.CHILD_PICKER
    assert [i.id for i in ctl.child_picker.items] == [a.id, b.id, c.id]
    press(ctl, "enter")          # A off
    press(ctl, "down", "down")
    press(ctl, "enter")          # C on
    press(ctl, "esc")
    assert ctl.mode is Mode.TASK_FORM
    assert ctl.task_form.fields.child_map == {b.id: 2, c.id: 1}
    # Form-bound toggles never reach the store
    assert store.mutations() == []

    press(ctl, "ctrl+s")

    assert ctl.mode is Mode.NORMAL
    relation_calls = [(name, args) for name, args in store.calls if name.endswith("_relation")]
    assert relation_calls == [
        ("remove_relation", (task.id, a.id)),
        ("add_relation", (task.id, c.id, 1)),
    ]
    children = {ref.id: ref.relation_type_id for ref in service.list_children(task.id)}
    assert children == {b.id: 2, c.id: 1}
    assert ctl.selected_task().id == task.id


def test_child_turned_parent_in_one_commit(make_controller, two_columns, store):
    todo, _ = two_columns
    task = service.create_task("Target", todo.id)
    other = service.create_task("Other", todo.id)
    service.add_relation(task.id, other.id, 1)
    ctl = make_controller()
    assert ctl.selected_task().id == task.id

    press(ctl, "e", "ctrl+b")
    press(ctl, "enter", "esc")       # Other no longer a child
    press(ctl, "ctrl+p")
    press(ctl, "enter", "esc")       # Other becomes a parent
    assert ctl.task_form.fields.parent_map == {other.id: 1}
    assert ctl.task_form.fields.child_map == {}
    press(ctl, "ctrl+s")

    assert ctl.mode is Mode.NORMAL
    relation_calls = [(name, args) for name, args in store.calls if name.endswith("_relation")]
    assert relation_calls == [
        ("remove_relation", (task.id, other.id)),
        ("add_relation", (other.id, task.id, 1)),
    ]
    assert [ref.id for ref in service.list_parents(task.id)] == [other.id]
    assert service.list_children(task.id) == []
    assert not [note for note in ctl.notifications.items if note.level is Level.ERROR]


def test_commit_diffs_against_relations_stored_at_save_time(make_controller, two_columns, store):
    todo, _ = two_columns
    task = service.create_task("Target", todo.id)
    other = service.create_task("Other", todo.id)
    ctl = make_controller()

    press(ctl, "e", "ctrl+b", "enter", "esc")
    assert ctl.task_form.fields.child_map == {other.id: 1}
    # Another board links the same pair while this form is open
    service.add_relation(task.id, other.id, 1)
    press(ctl, "ctrl+s")

    assert ctl.mode is Mode.NORMAL
    assert not [name for name in store.names() if name.endswith("_relation")]
    assert [ref.id for ref in service.list_children(task.id)] == [other.id]



def test_relation_type_picker_sets_row_type(make_controller, two_columns):
    todo, _ = two_columns
    other = service.create_task("Other", todo.id)
    service.create_task("Target", todo.id)
    ctl = make_controller()

    press(ctl, "down", "e", "ctrl+p")
    assert ctl.mode is Mode.PARENT_PICKER
    press(ctl, "enter", "tab")
    assert ctl.mode is Mode.RELATION_TYPE_PICKER
    press(ctl, "down", "enter")
    assert ctl.mode is Mode.PARENT_PICKER
    press(ctl, "esc")
    assert ctl.task_form.fields.parent_map == {other.id: 2}

    press(ctl, "ctrl+s")
    parents = service.list_parents(ctl.selected_task().id)
    assert [(p.id, p.relation_type_id) for p in parents] == [(other.id, 2)]


def test_label_created_in_form_is_attached_on_save(make_controller, two_columns, store):
    ctl = make_controller()
    press(ctl, "a")
    type_text(ctl, "Labelled")
    press(ctl, "ctrl+l")
    assert ctl.mode is Mode.LABEL_PICKER

    type_text(ctl, "Urgent")
    press(ctl, "enter")
    assert ctl.label_picker.create_mode
    press(ctl, "enter")
    assert not ctl.label_picker.create_mode
    assert store.mutations() == ["create_label"]

    press(ctl, "esc")
    assert ctl.mode is Mode.TASK_FORM
    press(ctl, "ctrl+s")

    task = service.get_task(ctl.selected_task().id)
    assert [l.name for l in task.labels] == ["Urgent"]
    assert "attach_label" in store.mutations()


def test_new_task_priority_is_local_until_save(make_controller, two_columns, store):
    ctl = make_controller()
    press(ctl, "a")
    type_text(ctl, "Hot")
    press(ctl, "ctrl+r")
    assert ctl.mode is Mode.PRIORITY_PICKER
    press(ctl, "down", "down", "enter")
    assert ctl.mode is Mode.TASK_FORM
    assert ctl.task_form.fields.priority_id == 5
    assert store.mutations() == []

    press(ctl, "ctrl+s")
    assert service.get_task(ctl.selected_task().id).priority_id == 5


def test_comments_need_a_saved_task(make_controller, two_columns):
    ctl = make_controller()
    press(ctl, "a", "ctrl+o")
    assert ctl.mode is Mode.TASK_FORM
    assert _latest(ctl) == "Save the task before adding comments"


# --- view task ---


def test_view_bound_label_toggle_writes_at_once(make_controller, two_columns, store, project):
    todo, _ = two_columns
    task = service.create_task("Viewed", todo.id)
    label = service.create_label("UI", "#EF4444", project.id)
    ctl = make_controller()

    press(ctl, "space")
    assert ctl.mode is Mode.VIEW_TASK
    press(ctl, "l", "enter")
    assert store.mutations() == ["attach_label"]
    assert [l.id for l in ctl.viewed_task.labels] == [label.id]
    assert [l.name for l in ctl.board.tasks_in(todo.id)[0].labels] == ["UI"]

    press(ctl, "esc")
    assert ctl.mode is Mode.VIEW_TASK
    press(ctl, "esc")
    assert ctl.mode is Mode.NORMAL
    assert service.get_task(task.id).labels[0].id == label.id


def test_comment_discard_returns_to_comment_list(make_controller, two_columns, store):
    todo, _ = two_columns
    task = service.create_task("Chatty", todo.id)
    ctl = make_controller()

    press(ctl, "space", "m")
    assert ctl.mode is Mode.COMMENTS_VIEW
    press(ctl, "a")
    assert ctl.mode is Mode.COMMENT_FORM
    type_text(ctl, "hello")
    press(ctl, "esc", "y")
    assert ctl.mode is Mode.COMMENTS_VIEW
    assert ctl.comment_form is None

    press(ctl, "a")
    type_text(ctl, "hello there")
    press(ctl, "ctrl+s")
    assert ctl.mode is Mode.COMMENTS_VIEW
    assert [c.message for c in ctl.comment_list.comments] == ["hello there"]

    press(ctl, "d")
    assert _latest(ctl) == "Comment deleted"
    assert service.list_comments(task.id) == []

    press(ctl, "esc")
    assert ctl.mode is Mode.VIEW_TASK


# --- confirmations ---


def test_delete_task_confirm(make_controller, two_columns, store):
    todo, _ = two_columns
    service.create_task("Keep", todo.id)
    doomed = service.create_task("Doomed", todo.id)
    ctl = make_controller()

    press(ctl, "down", "d")
    assert ctl.mode is Mode.DELETE_TASK_CONFIRM
    press(ctl, "n")
    assert ctl.mode is Mode.NORMAL
    assert store.mutations() == []

    press(ctl, "d", "y")
    assert store.mutations() == ["delete_task"]
    assert [t.title for t in ctl.board.tasks_in(todo.id)] == ["Keep"]
    assert ctl.selection.task_index == 0
    assert _latest(ctl) == f"Deleted task #{doomed.ticket_number}"


def test_delete_column_confirm(make_controller, two_columns, store):
    todo, done = two_columns
    ctl = make_controller()

    press(ctl, "l", "X")
    assert ctl.mode is Mode.DELETE_COLUMN_CONFIRM
    assert ctl.pending_column_delete == (done.id, 0)
    press(ctl, "y")

    assert [c.id for c in ctl.board.columns] == [todo.id]
    assert ctl.selection.column_index == 0
    assert ctl.pending_column_delete is None


# --- overlays, search, quit ---


def test_help_overlay(make_controller):
    ctl = make_controller()
    press(ctl, "?")
    assert ctl.mode is Mode.HELP_OVERLAY
    press(ctl, "a")
    assert ctl.mode is Mode.HELP_OVERLAY
    press(ctl, "esc")
    assert ctl.mode is Mode.NORMAL


def test_search_filters_and_esc_clears(make_controller, two_columns, store):
    todo, _ = two_columns
    service.create_task("Fix bug", todo.id)
    service.create_task("Write docs", todo.id)
    ctl = make_controller()

    press(ctl, "/")
    assert ctl.mode is Mode.SEARCH
    type_text(ctl, "bug")
    assert [t.title for t in ctl.board.tasks_in(todo.id)] == ["Fix bug"]
    press(ctl, "enter")
    assert ctl.mode is Mode.NORMAL
    assert ctl.board.search_query == "bug"

    press(ctl, "/", "esc")
    assert ctl.board.search_query == ""
    assert len(ctl.board.tasks_in(todo.id)) == 2


def _search(ctl, text):
    press(ctl, "/")
    type_text(ctl, text)
    press(ctl, "enter")


def test_reorder_is_refused_while_searching(make_controller, project, two_columns, store):
    todo, _ = two_columns
    for title in ("apple", "banana", "apricot"):
        service.create_task(title, todo.id)
    ctl = make_controller()
    _search(ctl, "ap")
    press(ctl, "down")
    assert ctl.selected_task().title == "apricot"
    store.reset()

    press(ctl, "K")

    assert _latest(ctl) == "Clear the search to reorder tasks"
    assert store.mutations() == []
    assert [t.title for t in ctl.board.tasks_in(todo.id)] == ["apple", "apricot"]
    stored = service.list_task_summaries(project.id)[todo.id]
    assert [t.title for t in stored] == ["apple", "banana", "apricot"]


def test_move_between_columns_while_searching_matches_store(make_controller, project, two_columns, store):
    todo, done = two_columns
    for title in ("apple", "banana", "apricot"):
        service.create_task(title, todo.id)
    for title in ("apple pie", "banana split"):
        service.create_task(title, done.id)
    ctl = make_controller()
    _search(ctl, "ap")
    press(ctl, "down")
    moved = ctl.selected_task()
    assert moved.title == "apricot"

    press(ctl, "L")

    assert ctl.selected_task().id == moved.id
    assert [t.title for t in ctl.board.tasks_in(done.id)] == ["apple pie", "apricot"]
    stored = service.list_task_summaries(project.id)
    for column_id, cached in ctl.board.tasks.items():
        positions = {t.id: t.position for t in stored.get(column_id, [])}
        assert all(t.position == positions[t.id] for t in cached)



def test_project_switch_guards(make_controller, project):
    other = service.create_project("Home")
    ctl = make_controller()
    press(ctl, "{")
    assert _latest(ctl) == "Already at the first project"
    press(ctl, "}")
    assert ctl.board.project_id == other.id
    press(ctl, "}")
    assert _latest(ctl) == "Already at the last project"


def test_quit_and_cancellation(make_controller):
    ctl = make_controller()
    assert isinstance(press(ctl, "q"), Quit)

    ctl = make_controller()
    ctl.cancelled.set()
    assert isinstance(ctl.dispatch(KeyMsg("j")), Quit)


def test_only_the_active_session_exists(make_controller, two_columns):
    ctl = make_controller()
    press(ctl, "a")
    assert _open_sessions(ctl) == ["task_form"]
    press(ctl, "ctrl+l")
    assert _open_sessions(ctl) == ["label_picker", "task_form"]
    press(ctl, "esc", "esc")
    assert ctl.mode is Mode.NORMAL
    assert _open_sessions(ctl) == []
    press(ctl, "C")
    assert _open_sessions(ctl) == ["column_form"]
