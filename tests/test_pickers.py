"""
Tests for the filterable picker lists.
"""

from lanes.core.constants import DEFAULT_LABEL_NAME, DEFAULT_RELATION_TYPE_ID, LABEL_COLORS
from lanes.tui.modes import Mode
from lanes.tui.pickers import LabelPicker, ListPicker, OptionPicker, PickerItem, TaskPicker


def _items(*names):
    return [PickerItem(id=i + 1, label=name) for i, name in enumerate(names)]


def test_filter_is_case_insensitive_and_clamps_cursor():
    picker = ListPicker(_items("Bug", "Feature", "Debt"), Mode.TASK_FORM)
    picker.move_down()
    picker.move_down()
    assert picker.cursor == 2

    picker.type_char("B")
    assert [i.label for i in picker.filtered()] == ["Bug", "Debt"]
    assert picker.cursor == 1

    picker.type_char("u")
    assert [i.label for i in picker.filtered()] == ["Bug"]
    assert picker.cursor == 0

    picker.backspace()
    picker.backspace()
    assert picker.row_count() == 3


def test_cursor_stays_in_bounds():
    picker = ListPicker(_items("a", "b"), Mode.NORMAL)
    picker.move_up()
    assert picker.cursor == 0
    for _ in range(5):
        picker.move_down()
    assert picker.cursor == 1

    picker.type_char("z")
    assert picker.row_count() == 0
    assert picker.cursor == 0
    assert picker.current() is None


def test_filter_length_is_limited():
    picker = ListPicker([], Mode.NORMAL, max_filter=3)
    for char in "abcdef":
        picker.type_char(char)
    assert picker.filter == "abc"


def test_form_bound_depends_on_return_mode():
    assert ListPicker([], Mode.TASK_FORM).form_bound
    assert not ListPicker([], Mode.VIEW_TASK).form_bound


def test_common_keys():
    picker = ListPicker(_items("one", "two"), Mode.NORMAL)
    assert picker.handle_common_key("down")
    assert picker.cursor == 1
    assert picker.handle_common_key("space")
    assert picker.filter == " "
    assert not picker.handle_common_key("ctrl+x")


def test_label_create_row_only_for_new_names():
    picker = LabelPicker(_items("Bug", "UI"), Mode.TASK_FORM)
    assert not picker.offers_create_row()

    for char in "bug":
        picker.type_char(char)
    assert not picker.offers_create_row()

    picker.type_char("s")
    assert picker.offers_create_row()
    assert picker.row_count() == 1
    assert picker.on_create_row()


def test_label_create_mode_uses_filter_or_default():
    picker = LabelPicker([], Mode.TASK_FORM)
    picker.enter_create_mode()
    assert picker.new_name == DEFAULT_LABEL_NAME

    picker.leave_create_mode()
    for char in "Ops":
        picker.type_char(char)
    picker.enter_create_mode()
    assert picker.create_mode
    assert picker.new_name == "Ops"


def test_label_colors_cycle():
    picker = LabelPicker([], Mode.TASK_FORM)
    picker.enter_create_mode()
    assert picker.color == LABEL_COLORS[0][1]
    picker.cycle_color(-1)
    assert picker.color_name == LABEL_COLORS[-1][0]
    picker.cycle_color(2)
    assert picker.color == LABEL_COLORS[1][1]


def test_created_label_is_selected_and_focused():
    picker = LabelPicker(_items("Bug"), Mode.TASK_FORM)
    for char in "New":
        picker.type_char(char)
    picker.enter_create_mode()

    item = picker.add_created(9, "New", "#EF4444")

    assert item.selected
    assert not picker.create_mode
    assert picker.filter == ""
    assert picker.current() is item
    assert picker.selected_ids() == [9]


def test_task_picker_default_relation_type():
    picker = TaskPicker(_items("A", "B"), Mode.TASK_FORM, task_id=5, is_parent=False)
    assert picker.mode is Mode.CHILD_PICKER

    picker.toggle(picker.items[1])
    assert picker.relation_map() == {2: DEFAULT_RELATION_TYPE_ID}

    picker.items[1].relation_type_id = 2
    picker.toggle(picker.items[0])
    assert picker.relation_map() == {1: DEFAULT_RELATION_TYPE_ID, 2: 2}

    picker.toggle(picker.items[1])
    assert picker.relation_map() == {1: DEFAULT_RELATION_TYPE_ID}


def test_option_picker_starts_on_current():
    picker = OptionPicker(_items("low", "medium", "high"), Mode.TASK_FORM, Mode.PRIORITY_PICKER, current_id=2)
    assert picker.cursor == 1
    assert picker.current().selected
    assert [i.selected for i in picker.items] == [False, True, False]
