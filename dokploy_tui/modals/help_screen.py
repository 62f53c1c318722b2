"""Key reference overlay."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Center, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static

KEY_SECTIONS: list[tuple[str, list[tuple[str, str]]]] = [
    ("Navigation", [
        ("Tab / Shift+Tab", "Switch between projects / resources"),
        ("j / k", "Move the cursor"),
        ("e", "Next environment"),
        ("/", "Filter resources (Enter keeps, Esc clears)"),
    ]),
    ("Resource", [
        ("Enter", "Details (h / l switch tabs)"),
        ("d", "Deploy"),
        ("S / s", "Start / stop"),
        ("r", "Restart"),
        ("X", "Delete (asks y/n)"),
        ("o", "Open in browser (project from the sidebar)"),
        ("E", "Export the application to a file"),
    ]),
    ("Deployments", [
        ("l", "Show / hide the deployment log"),
        ("a", "Toggle auto-scroll"),
        ("c", "Clear the log"),
    ]),
    ("Project", [
        ("x", "Export services to a file"),
        ("i", "Import services from a file"),
    ]),
    ("Global", [
        ("R", "Refresh now"),
        ("t", "Toggle auto-refresh"),
        ("M", "Switch server"),
        ("?", "Show this help"),
        ("q", "Quit"),
    ]),
]


def help_text(interval: float | None = None) -> str:
    width = max(len(key) for _, keys in KEY_SECTIONS for key, _ in keys) + 2
    lines = ["[bold]Dokploy: Keyboard Shortcuts[/bold]"]
    for title, keys in KEY_SECTIONS:
        lines.append("")
        lines.append(f"[bold underline]{title}[/bold underline]")
        for key, desc in keys:
            lines.append(f"  [bold]{key.ljust(width)}[/bold]{desc}")
    lines.append("")
    if interval is not None:
        lines.append(f"[dim]Auto-refresh runs every {interval:g}s.[/dim]")
    lines.append("[dim]Press Escape to close.[/dim]")
    return "\n".join(lines)


class HelpScreen(ModalScreen[None]):
    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }

    HelpScreen #help-box {
        width: 64;
        height: auto;
        max-height: 85%;
        background: $surface;
        border: round $accent;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("escape,question_mark", "close", "Close", show=False),
    ]

    def __init__(self, interval: float | None = None) -> None:
        super().__init__()
        self._interval = interval

    def compose(self) -> ComposeResult:
        with Center():
            with VerticalScroll(id="help-box"):
                yield Static(help_text(self._interval))

    def action_close(self) -> None:
        self.dismiss(None)
