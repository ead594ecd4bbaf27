"""
FILE: lanes/tui/handlers/pickers.py
PURPOSE: Opening and driving the picker modes
EXPORTS:
  - open_label_picker, open_task_picker, open_option_picker, open_status_picker
  - handle_label_picker, handle_task_picker, handle_priority_picker,
    handle_type_picker, handle_relation_type_picker, handle_status_picker
NOTES:
  - Form-bound pickers (return mode TaskForm) only flip local selection;
    the form applies the final sets on commit. On esc the selection is
    copied back into the task form.
  - View-bound pickers write each toggle to the store immediately and
    then refresh the task's summary
  - tab on a parent/child row opens the relation-type picker pointing
    back at that row
"""

import logging

from ...core.constants import DEFAULT_RELATION_TYPE_ID
from ..modes import Mode
from ..pickers import LabelPicker, OptionPicker, PickerItem, TaskPicker

logger = logging.getLogger(__name__)


# --- opening ---


def open_label_picker(ctl, task_id: int, return_mode: Mode, selected_ids) -> None:
    ok, labels = ctl.attempt("Failed to load labels", ctl.store.list_labels, ctl.board.project_id)
    if not ok:
        return
    selected_ids = set(selected_ids)
    items = [
        PickerItem(id=label.id, label=label.name, selected=label.id in selected_ids, color=label.color)
        for label in labels
    ]
    ctl.label_picker = LabelPicker(items, return_mode, task_id)
    ctl.set_mode(Mode.LABEL_PICKER)


def open_task_picker(ctl, is_parent: bool, task_id: int, return_mode: Mode, current: dict) -> None:
    ok, refs = ctl.attempt("Failed to load tasks", ctl.store.list_task_references, ctl.board.project_id)
    if not ok:
        return
    items = [
        PickerItem(
            id=ref.id,
            label=f"#{ref.ticket_number} {ref.title}",
            selected=ref.id in current,
            relation_type_id=current.get(ref.id, 0),
        )
        for ref in refs
        if ref.id != task_id
    ]
    picker = TaskPicker(items, return_mode, task_id, is_parent=is_parent)
    if is_parent:
        ctl.parent_picker = picker
    else:
        ctl.child_picker = picker
    ctl.set_mode(picker.mode)


def open_option_picker(ctl, mode: Mode, task_id: int, return_mode: Mode, current_id: int) -> None:
    loader = ctl.store.list_priorities if mode is Mode.PRIORITY_PICKER else ctl.store.list_types
    what = "priorities" if mode is Mode.PRIORITY_PICKER else "types"
    ok, options = ctl.attempt(f"Failed to load {what}", loader)
    if not ok:
        return
    items = [PickerItem(id=o.id, label=o.description, color=o.color) for o in options]
    ctl.option_picker = OptionPicker(items, return_mode, mode, task_id, current_id)
    ctl.set_mode(mode)


def open_status_picker(ctl, task) -> None:
    items = [PickerItem(id=c.id, label=c.name) for c in ctl.board.columns]
    ctl.option_picker = OptionPicker(items, Mode.NORMAL, Mode.STATUS_PICKER, task.id, task.column_id)
    ctl.set_mode(Mode.STATUS_PICKER)


def _open_relation_picker(ctl, origin: TaskPicker, item: PickerItem) -> None:
    ok, types = ctl.attempt("Failed to load relation types", ctl.store.list_relation_types)
    if not ok:
        return
    items = [
        PickerItem(
            id=rt.id,
            label=rt.parent_label if rt.parent_label == rt.child_label else f"{rt.parent_label} / {rt.child_label}",
            color=rt.color,
        )
        for rt in types
    ]
    ctl.relation_picker = OptionPicker(
        items,
        origin.mode,
        Mode.RELATION_TYPE_PICKER,
        origin.task_id,
        item.relation_type_id or DEFAULT_RELATION_TYPE_ID,
        item_index=origin.index_of(item),
    )
    ctl.set_mode(Mode.RELATION_TYPE_PICKER)


def _close_picker(ctl, return_mode: Mode) -> None:
    ctl.set_mode(return_mode)


# --- labels ---


def handle_label_picker(ctl, key: str):
    picker = ctl.label_picker
    if picker is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if picker.create_mode:
        _handle_label_create(ctl, picker, key)
        return None

    if key == "esc":
        if picker.form_bound and ctl.task_form is not None:
            ctl.task_form.set_labels(picker.selected_ids())
        ctl.label_picker = None
        _close_picker(ctl, picker.return_mode)
    elif key == "enter":
        if picker.on_create_row() or (picker.filter.strip() and not picker.filtered()):
            picker.enter_create_mode()
            return None
        item = picker.current()
        if item is None:
            return None
        if picker.form_bound:
            picker.toggle(item)
        else:
            _toggle_label_in_store(ctl, picker, item)
    else:
        picker.handle_common_key(key)
    return None


def _toggle_label_in_store(ctl, picker: LabelPicker, item: PickerItem) -> None:
    if item.selected:
        ok, _ = ctl.attempt("Failed to remove label from task", ctl.store.detach_label, picker.task_id, item.id)
    else:
        ok, _ = ctl.attempt("Failed to add label to task", ctl.store.attach_label, picker.task_id, item.id)
    if ok:
        picker.toggle(item)
        ctl.after_task_change()


def _handle_label_create(ctl, picker: LabelPicker, key: str) -> None:
    if key == "esc":
        picker.leave_create_mode()
    elif key in ("left", "up"):
        picker.cycle_color(-1)
    elif key in ("right", "down", "tab"):
        picker.cycle_color(1)
    elif key == "backspace":
        picker.new_name = picker.new_name[:-1]
    elif key == "space":
        picker.new_name += " "
    elif key == "enter":
        _create_label(ctl, picker)
    elif len(key) == 1 and key.isprintable():
        picker.new_name += key


def _create_label(ctl, picker: LabelPicker) -> None:
    ok, label = ctl.attempt(
        "Failed to create label", ctl.store.create_label, picker.new_name, picker.color, ctl.board.project_id
    )
    if not ok:
        picker.leave_create_mode()
        return

    ctl.board.labels = ctl.board.labels + [label]
    item = picker.add_created(label.id, label.name, label.color)
    if picker.form_bound:
        return
    ok, _ = ctl.attempt("Failed to add label to task", ctl.store.attach_label, picker.task_id, label.id)
    if ok:
        ctl.after_task_change()
    else:
        item.selected = False


# --- parents / children ---


def handle_task_picker(ctl, key: str):
    picker = ctl.parent_picker if ctl.mode is Mode.PARENT_PICKER else ctl.child_picker
    if picker is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        if picker.form_bound and ctl.task_form is not None:
            if picker.is_parent:
                ctl.task_form.set_parents(picker.relation_map())
            else:
                ctl.task_form.set_children(picker.relation_map())
        if picker.is_parent:
            ctl.parent_picker = None
        else:
            ctl.child_picker = None
        _close_picker(ctl, picker.return_mode)
    elif key == "tab":
        item = picker.current()
        if item is not None:
            _open_relation_picker(ctl, picker, item)
    elif key == "enter":
        item = picker.current()
        if item is None:
            return None
        if picker.form_bound:
            picker.toggle(item)
        else:
            _toggle_relation_in_store(ctl, picker, item)
    else:
        picker.handle_common_key(key)
    return None


def _relation_ends(picker: TaskPicker, item: PickerItem):
    # A parent picker lists candidate parents of the task, a child picker its children
    if picker.is_parent:
        return item.id, picker.task_id
    return picker.task_id, item.id


def _toggle_relation_in_store(ctl, picker: TaskPicker, item: PickerItem) -> None:
    side = "parent" if picker.is_parent else "child"
    parent_id, child_id = _relation_ends(picker, item)
    if item.selected:
        ok, _ = ctl.attempt(f"Failed to remove {side} from task", ctl.store.remove_relation, parent_id, child_id)
    else:
        type_id = item.relation_type_id or DEFAULT_RELATION_TYPE_ID
        ok, _ = ctl.attempt(f"Failed to add {side} to task", ctl.store.add_relation, parent_id, child_id, type_id)
    if ok:
        picker.toggle(item)
        ctl.after_task_change()


def handle_relation_type_picker(ctl, key: str):
    picker = ctl.relation_picker
    if picker is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        ctl.relation_picker = None
        _close_picker(ctl, picker.return_mode)
    elif key == "enter":
        chosen = picker.current()
        origin = ctl.parent_picker if picker.return_mode is Mode.PARENT_PICKER else ctl.child_picker
        if chosen is not None and origin is not None and 0 <= picker.item_index < len(origin.items):
            item = origin.items[picker.item_index]
            if origin.form_bound or not item.selected:
                item.relation_type_id = chosen.id
            else:
                parent_id, child_id = _relation_ends(origin, item)
                ok, _ = ctl.attempt(
                    "Failed to update relation type", ctl.store.add_relation, parent_id, child_id, chosen.id
                )
                if ok:
                    item.relation_type_id = chosen.id
                    ctl.after_task_change()
        ctl.relation_picker = None
        _close_picker(ctl, picker.return_mode)
    else:
        picker.handle_common_key(key)
    return None


# --- priority / type ---


def _handle_option_picker(ctl, key: str, what: str, set_local, store_update) -> None:
    picker = ctl.option_picker
    if picker is None:
        ctl.set_mode(Mode.NORMAL)
        return

    if key == "esc":
        ctl.option_picker = None
        _close_picker(ctl, picker.return_mode)
        return
    if key != "enter":
        picker.handle_common_key(key)
        return

    chosen = picker.current()
    if chosen is None:
        return
    form = ctl.task_form if picker.return_mode is Mode.TASK_FORM else None
    if form is not None and form.is_new:
        set_local(form, chosen.id)
        ctl.notifications.info(f"{what} set to {chosen.label}")
    else:
        ok, _ = ctl.attempt(f"Failed to update {what.lower()}", store_update, picker.task_id, chosen.id)
        if not ok:
            return
        if form is not None:
            set_local(form, chosen.id)
        ctl.notifications.info(f"{what} updated to {chosen.label}")
        ctl.after_task_change()
    ctl.option_picker = None
    _close_picker(ctl, picker.return_mode)


def handle_priority_picker(ctl, key: str):
    _handle_option_picker(
        ctl, key, "Priority",
        lambda form, value: form.set_priority(value),
        ctl.store.update_task_priority,
    )
    return None


def handle_type_picker(ctl, key: str):
    _handle_option_picker(
        ctl, key, "Type",
        lambda form, value: form.set_type(value),
        ctl.store.update_task_type,
    )
    return None


# --- status (column) ---


def handle_status_picker(ctl, key: str):
    picker = ctl.option_picker
    if picker is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        ctl.option_picker = None
        ctl.set_mode(Mode.NORMAL)
        return None
    if key != "enter":
        picker.handle_common_key(key)
        return None

    chosen = picker.current()
    if chosen is None:
        return None
    task = next(
        (t for tasks in ctl.board.tasks.values() for t in tasks if t.id == picker.task_id),
        None,
    )
    if task is not None and task.column_id != chosen.id:
        ok, _ = ctl.attempt("Failed to move task", ctl.store.move_task_to_column, task.id, chosen.id)
        if not ok:
            return None
        ctl.after_task_moved(task.id, task.column_id, chosen.id)
        ctl.notifications.info(f"Moved to {chosen.label}")
    ctl.option_picker = None
    ctl.set_mode(Mode.NORMAL)
    return None
