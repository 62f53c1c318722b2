"""Read-only detail view of one resource, one tab at a time."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static

from ..details import ResourceDetail, detail_lines


def tab_bar(detail: ResourceDetail) -> str:
    parts = []
    for idx, tab in enumerate(detail.tabs):
        label = f" {tab.upper()} "
        parts.append(f"[reverse bold]{label}[/reverse bold]" if idx == detail.tab else label)
    return "  ".join(parts)


class DetailScreen(ModalScreen[None]):
    DEFAULT_CSS = """
    DetailScreen {
        align: center bottom;
    }

    DetailScreen #detail-box {
        width: 100%;
        height: 16;
        background: $surface;
        border: round $accent;
        padding: 0 1;
    }

    DetailScreen #detail-header {
        height: 1;
    }

    DetailScreen #detail-tabs {
        height: 1;
        margin-bottom: 1;
    }
    """

    BINDINGS = [
        Binding("escape", "close", "Close", show=False),
        Binding("h,left", "tab(-1)", "Prev tab", show=False),
        Binding("l,right", "tab(1)", "Next tab", show=False),
    ]

    def __init__(self, controller) -> None:
        super().__init__()
        self._controller = controller

    def compose(self) -> ComposeResult:
        with Vertical(id="detail-box"):
            yield Static("", id="detail-header")
            yield Static("", id="detail-tabs")
            with VerticalScroll():
                yield Static("", id="detail-body")

    def on_mount(self) -> None:
        self._sync()

    def _sync(self) -> None:
        detail = self._controller.store.state.detail
        if detail is None:
            return
        resource = detail.resource
        name = escape(str(detail.data.get("name") or resource.name))
        self.query_one("#detail-header", Static).update(
            f"[bold cyan]{name}[/bold cyan] [dim]({resource.type_label})   Esc to close[/dim]"
        )
        self.query_one("#detail-tabs", Static).update(tab_bar(detail))
        self.query_one("#detail-body", Static).update("\n".join(detail_lines(detail)))

    def action_tab(self, step: int) -> None:
        self._controller.move_detail_tab(step)
        self._sync()

    def action_close(self) -> None:
        self._controller.close_detail()
        self.dismiss(None)
