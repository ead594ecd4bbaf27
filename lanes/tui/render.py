"""
FILE: lanes/tui/render.py
PURPOSE: Draw the controller state with rich and hand back ANSI text
EXPORTS:
  - render(ctl, width, height) -> str
  - task_card(task, selected) -> Panel
DEPENDENCIES:
  - rich (layout, colours, ANSI capture)
NOTES:
  - Read-only: nothing here calls the store or changes controller state
  - The board is always drawn; modal modes add a panel under it and the
    status bar stays last
"""

from typing import List

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.constants import COLUMN_WIDTH, LABEL_COLORS
from ..config import Action, FormAction
from .connection import ConnectionState
from .forms import FieldKind
from .modes import FORM_MODES, Mode
from .notifications import Level

LEVEL_STYLES = {
    Level.INFO: "cyan",
    Level.WARNING: "yellow",
    Level.ERROR: "bold red",
}

CONNECTION_STYLES = {
    ConnectionState.CONNECTED: ("● live", "green"),
    ConnectionState.RECONNECTING: ("◐ reconnecting", "yellow"),
    ConnectionState.DISCONNECTED: ("○ offline", "dim"),
}

ACTION_HELP = (
    (Action.ADD_TASK, "add task"),
    (Action.EDIT_TASK, "edit task"),
    (Action.DELETE_TASK, "delete task"),
    (Action.VIEW_TASK, "view task"),
    (Action.MOVE_TASK_LEFT, "move task left"),
    (Action.MOVE_TASK_RIGHT, "move task right"),
    (Action.MOVE_TASK_UP, "move task up"),
    (Action.MOVE_TASK_DOWN, "move task down"),
    (Action.CHANGE_STATUS, "change status"),
    (Action.COLUMN_LEFT, "previous column"),
    (Action.COLUMN_RIGHT, "next column"),
    (Action.TASK_UP, "previous task"),
    (Action.TASK_DOWN, "next task"),
    (Action.SCROLL_LEFT, "scroll left"),
    (Action.SCROLL_RIGHT, "scroll right"),
    (Action.PREV_PROJECT, "previous project"),
    (Action.NEXT_PROJECT, "next project"),
    (Action.CREATE_COLUMN, "create column"),
    (Action.RENAME_COLUMN, "rename column"),
    (Action.DELETE_COLUMN, "delete column"),
    (Action.CREATE_PROJECT, "create project"),
    (Action.SEARCH, "search"),
    (Action.HELP, "help"),
    (Action.QUIT, "quit"),
)

FORM_HELP = (
    (FormAction.SAVE, "save now"),
    (FormAction.PARENT_PICKER, "parents"),
    (FormAction.CHILD_PICKER, "children"),
    (FormAction.LABEL_PICKER, "labels"),
    (FormAction.PRIORITY_PICKER, "priority"),
    (FormAction.TYPE_PICKER, "type"),
    (FormAction.COMMENTS, "comments (saved tasks)"),
    (FormAction.FORM_HELP, "this help"),
)


def render(ctl, width: int, height: int) -> str:
    console = Console(width=max(20, width), height=max(5, height), force_terminal=True, color_system="truecolor")
    view = ctl.snapshot()
    parts = [_tab_bar(view), _board(view)]
    overlay = _overlay(ctl)
    if overlay is not None:
        parts.append(overlay)
    parts.append(_status_bar(view))
    with console.capture() as capture:
        console.print(Group(*parts))
    return capture.get()


# --- board ---


def _tab_bar(view) -> Text:
    text = Text()
    if not view.project_names:
        text.append(" no projects - press P to create one ", style="dim")
        return text
    for index, name in enumerate(view.project_names):
        style = "bold black on cyan" if index == view.project_index else "cyan"
        text.append(f" {name} ", style=style)
        text.append(" ")
    if view.search_query:
        text.append(f"  /{view.search_query}", style="yellow")
    return text


def task_card(task, selected: bool) -> Panel:
    body = Text()
    body.append(f"#{task.ticket_number} ", style="dim")
    body.append(task.title, style="bold" if selected else "")
    meta = Text()
    if task.priority_description:
        meta.append(task.priority_description, style=task.priority_color or "white")
        meta.append(" ")
    if task.type_description:
        meta.append(task.type_description, style="magenta")
    if task.is_blocked:
        meta.append(" blocked", style="bold red")
    lines: List[Text] = [body, meta]
    if task.labels:
        labels = Text()
        for label in task.labels:
            labels.append(f" {label.name} ", style=f"black on {label.color}")
            labels.append(" ")
        lines.append(labels)
    return Panel(
        Group(*lines),
        border_style="bright_white" if selected else "grey39",
        padding=(0, 1),
    )


def _board(view):
    if not view.columns:
        return Panel(Text("No columns yet - press C to create one", style="dim"), border_style="grey39")

    start = view.viewport_offset
    visible = view.columns[start:start + view.viewport_size]
    grid = Table.grid(padding=(0, 1))
    panels = []
    for offset, column in enumerate(visible):
        index = start + offset
        tasks = view.tasks.get(column.id, [])
        focused = index == view.column_index
        first = view.task_offsets.get(index, 0)
        cards = [
            task_card(task, focused and position == view.task_index)
            for position, task in enumerate(tasks)
            if position >= first
        ]
        if not cards:
            cards = [Text("empty", style="dim")]
        grid.add_column(width=COLUMN_WIDTH - 2)
        panels.append(
            Panel(
                Group(*cards),
                title=f"{column.name} ({len(tasks)})",
                border_style="cyan" if focused else "grey39",
            )
        )
    grid.add_row(*panels)

    hidden_left = start
    hidden_right = len(view.columns) - start - len(visible)
    if hidden_left or hidden_right:
        hint = Text(f"◀ {hidden_left}   {hidden_right} ▶", style="dim", justify="center")
        return Group(grid, hint)
    return grid


def _status_bar(view) -> Text:
    text = Text()
    text.append(f" {view.mode.title} ", style="bold black on white")
    if view.feed_enabled:
        label, style = CONNECTION_STYLES[view.connection]
        text.append(f" {label} ", style=style)
    if view.notifications:
        note = view.notifications[-1]
        text.append(f" {note.text}", style=LEVEL_STYLES.get(note.level, "white"))
    return text


# --- modal content ---


def _overlay(ctl):
    mode = ctl.mode
    if mode in FORM_MODES or mode in (Mode.ADD_COLUMN, Mode.EDIT_COLUMN):
        return _form_panel(ctl)
    if mode is Mode.DISCARD_CONFIRM and ctl.discard is not None:
        return _confirm_panel(ctl.discard.message)
    if mode is Mode.DELETE_TASK_CONFIRM:
        task = ctl.selected_task()
        title = f"#{task.ticket_number} {task.title}" if task else "task"
        return _confirm_panel(f"Delete {title}?")
    if mode is Mode.DELETE_COLUMN_CONFIRM and ctl.pending_column_delete is not None:
        column = ctl.selected_column()
        _, count = ctl.pending_column_delete
        name = column.name if column else "column"
        return _confirm_panel(f"Delete column {name} and its {count} task(s)?")
    if mode is Mode.HELP_OVERLAY:
        return _help_panel("Keys", [(ctl.config.key_hint(a), d) for a, d in ACTION_HELP])
    if mode is Mode.TASK_FORM_HELP_OVERLAY:
        form_keys = {action: key for key, action in ctl.config.form_keymap.items()}
        return _help_panel("Task form keys", [(form_keys.get(a, "-"), d) for a, d in FORM_HELP])
    if mode is Mode.LABEL_PICKER and ctl.label_picker is not None:
        return _label_picker_panel(ctl.label_picker)
    if mode is Mode.PARENT_PICKER and ctl.parent_picker is not None:
        return _picker_panel("Parents (tab: relation type)", ctl.parent_picker, multi=True)
    if mode is Mode.CHILD_PICKER and ctl.child_picker is not None:
        return _picker_panel("Children (tab: relation type)", ctl.child_picker, multi=True)
    if mode is Mode.RELATION_TYPE_PICKER and ctl.relation_picker is not None:
        return _picker_panel("Relation type", ctl.relation_picker, multi=False)
    if mode in (Mode.PRIORITY_PICKER, Mode.TYPE_PICKER, Mode.STATUS_PICKER) and ctl.option_picker is not None:
        titles = {Mode.PRIORITY_PICKER: "Priority", Mode.TYPE_PICKER: "Type", Mode.STATUS_PICKER: "Move to"}
        return _picker_panel(titles[mode], ctl.option_picker, multi=False)
    if mode is Mode.SEARCH:
        return Panel(Text(f"/{ctl.search_text}█"), title="Search", border_style="yellow")
    if mode is Mode.VIEW_TASK and ctl.viewed_task is not None:
        return _task_detail_panel(ctl.viewed_task)
    if mode in (Mode.COMMENTS_VIEW, Mode.COMMENT_EDIT) and ctl.comment_list is not None:
        return _comments_panel(ctl.comment_list)
    return None


def _current_form(ctl):
    mode = ctl.mode
    if mode is Mode.TASK_FORM:
        return ctl.task_form, "Task"
    if mode is Mode.PROJECT_FORM:
        return ctl.project_form, "New project"
    if mode is Mode.COMMENT_FORM:
        return ctl.comment_form, "Comment"
    return ctl.column_form, "Column"


def _form_panel(ctl):
    form, title = _current_form(ctl)
    if form is None:
        return None
    widget = form.widget
    values = widget.values()
    rows = Table.grid(padding=(0, 1))
    rows.add_column(style="bold", no_wrap=True)
    rows.add_column()
    for index, spec in enumerate(widget.fields):
        focused = index == widget.focus
        label = Text(spec.label, style="cyan" if focused else "")
        if spec.kind is FieldKind.CONFIRM:
            yes = values.get(spec.key, True)
            value = Text()
            value.append(" Yes ", style="bold black on green" if yes else "dim")
            value.append(" ")
            value.append(" No ", style="bold black on red" if not yes else "dim")
        else:
            text = str(values.get(spec.key, ""))
            if focused:
                cursor = widget.cursor_position(spec.key)
                text = text[:cursor] + "█" + text[cursor:]
            value = Text(text or " ")
            if spec.max_length:
                value.append(f"  {len(str(values.get(spec.key, '')))}/{spec.max_length}", style="dim")
        rows.add_row(label, value)

    if ctl.mode is Mode.TASK_FORM:
        fields = form.fields
        labels = {label.id: label.name for label in ctl.board.labels}
        rows.add_row(Text("Labels", style="dim"), Text(", ".join(labels.get(i, str(i)) for i in sorted(fields.label_ids)) or "-"))
        rows.add_row(Text("Parents", style="dim"), Text(str(len(fields.parents))))
        rows.add_row(Text("Children", style="dim"), Text(str(len(fields.children))))
    return Panel(rows, title=title, border_style="cyan")


def _confirm_panel(message: str) -> Panel:
    text = Text(message, style="bold")
    text.append("   [y]es / [n]o", style="dim")
    return Panel(text, border_style="red")


def _help_panel(title: str, entries) -> Panel:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", no_wrap=True)
    table.add_column()
    for key, description in entries:
        table.add_row(key, description)
    return Panel(table, title=title, border_style="cyan")


def _picker_rows(picker, multi: bool) -> Table:
    table = Table.grid(padding=(0, 1))
    table.add_column(no_wrap=True)
    table.add_column()
    for index, item in enumerate(picker.filtered()):
        pointer = "▶" if index == picker.cursor else " "
        mark = ("[x]" if item.selected else "[ ]") if multi else ("●" if item.selected else "○")
        label = Text(item.label, style=item.color or "")
        table.add_row(f"{pointer} {mark}", label)
    return table


def _picker_panel(title: str, picker, multi: bool) -> Panel:
    parts = [Text(f"filter: {picker.filter}", style="dim"), _picker_rows(picker, multi)]
    return Panel(Group(*parts), title=title, border_style="magenta")


def _label_picker_panel(picker) -> Panel:
    if picker.create_mode:
        swatches = Text()
        for index, (name, color) in enumerate(LABEL_COLORS):
            marker = "▶" if index == picker.color_index else " "
            swatches.append(f"{marker}{name} ", style=color)
        body = Group(Text(f"Name: {picker.new_name}█"), swatches, Text("←/→ colour, enter create, esc back", style="dim"))
        return Panel(body, title="New label", border_style="magenta")
    parts = [Text(f"filter: {picker.filter}", style="dim"), _picker_rows(picker, multi=True)]
    if picker.offers_create_row():
        pointer = "▶" if picker.on_create_row() else " "
        parts.append(Text(f"{pointer} + create \"{picker.filter.strip()}\"", style="green"))
    return Panel(Group(*parts), title="Labels", border_style="magenta")


def _task_detail_panel(task) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold", no_wrap=True)
    table.add_column()
    table.add_row("Title", task.title)
    table.add_row("Type", task.type_description or "-")
    table.add_row("Priority", Text(task.priority_description or "-", style=task.priority_color or ""))
    labels = Text()
    for label in task.labels:
        labels.append(f" {label.name} ", style=f"black on {label.color}")
        labels.append(" ")
    table.add_row("Labels", labels if task.labels else Text("-"))
    table.add_row("Parents", "\n".join(f"{p.relation_label}: #{p.ticket_number} {p.title}" for p in task.parents) or "-")
    table.add_row("Children", "\n".join(f"{c.relation_label}: #{c.ticket_number} {c.title}" for c in task.children) or "-")
    if task.is_blocked:
        table.add_row("Status", Text("blocked", style="bold red"))
    table.add_row("Description", task.description or "-")
    footer = Text("e edit  l labels  p parents  c children  r priority  t type  m comments  esc close", style="dim")
    return Panel(Group(table, footer), title=f"#{task.ticket_number}", border_style="cyan")


def _comments_panel(comments) -> Panel:
    if not comments.comments:
        body = Text("No comments yet", style="dim")
    else:
        table = Table.grid(padding=(0, 1))
        table.add_column(no_wrap=True)
        table.add_column()
        for index, comment in enumerate(comments.comments):
            pointer = "▶" if index == comments.cursor else " "
            stamp = (comment.created_at or "")[:16]
            table.add_row(f"{pointer} {stamp}", comment.message)
        body = table
    footer = Text("a add  e edit  d delete  esc back", style="dim")
    return Panel(Group(body, footer), title="Comments", border_style="cyan")
