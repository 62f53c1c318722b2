"""Checkbox list widget over a ``MultiSelect``."""

from __future__ import annotations

from rich.text import Text
from textual.binding import Binding
from textual.widgets import Static

from ..transfer import MultiSelect

MAX_VISIBLE = 8


def render_select(select: MultiSelect, max_visible: int = MAX_VISIBLE) -> Text:
    """Render a window of *select* around its cursor."""
    text = Text()
    if not select.items:
        text.append("Nothing to select", style="dim")
        return text

    start = max(0, min(select.cursor - max_visible // 2, len(select.items) - max_visible))
    window = select.items[start:start + max_visible]
    if start > 0:
        text.append(f"  ↑ {start} more\n", style="dim")
    for offset, item in enumerate(window):
        idx = start + offset
        box = "[x]" if select.is_selected(item.id) else "[ ]"
        pointer = ">" if idx == select.cursor else " "
        style = "reverse" if idx == select.cursor else ""
        text.append(f"{pointer} {box} {item.label}\n", style=style)
    remaining = len(select.items) - (start + len(window))
    if remaining > 0:
        text.append(f"  ↓ {remaining} more\n", style="dim")
    text.append(f"{select.selected_count}/{len(select.items)} selected", style="dim")
    return text


class SelectList(Static, can_focus=True):
    """space toggles, a selects all, n clears, j/k move."""

    BINDINGS = [
        Binding("space", "toggle", "Toggle", show=False),
        Binding("a", "select_all", "All", show=False),
        Binding("n", "deselect_all", "None", show=False),
        Binding("j,down", "down", "Down", show=False),
        Binding("k,up", "up", "Up", show=False),
    ]

    def __init__(self, select: MultiSelect, **kwargs) -> None:
        super().__init__("", **kwargs)
        self.select = select

    def on_mount(self) -> None:
        self.redraw()

    def redraw(self) -> None:
        self.update(render_select(self.select))

    def action_toggle(self) -> None:
        self.select.toggle_current()
        self.redraw()

    def action_select_all(self) -> None:
        self.select.select_all()
        self.redraw()

    def action_deselect_all(self) -> None:
        self.select.deselect_all()
        self.redraw()

    def action_down(self) -> None:
        self.select.move_down()
        self.redraw()

    def action_up(self) -> None:
        self.select.move_up()
        self.redraw()
