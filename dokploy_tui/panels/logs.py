"""Deployment log for the selected application."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.containers import Vertical, VerticalScroll
from textual.widgets import Static

from ..state import AppState

_LEVEL_STYLES = {
    "info": "",
    "warn": "yellow",
    "error": "red",
}


def log_body(state: AppState) -> str:
    if state.active_app is None:
        return "[dim]Select an app to view logs[/dim]"
    if not state.log_lines:
        return "[dim]Loading logs...[/dim]" if state.logs_loading else "[dim]No logs available[/dim]"
    lines = []
    for line in state.log_lines:
        style = _LEVEL_STYLES.get(line.level, "")
        message = escape(line.message)
        if style:
            message = f"[{style}]{message}[/{style}]"
        lines.append(f"[dim]\\[{escape(line.timestamp)}][/dim] {message}")
    return "\n".join(lines)


def log_title(state: AppState) -> str:
    title = "[bold cyan]DEPLOYMENTS[/bold cyan]"
    if state.active_app is not None:
        title += f" [dim]({escape(state.active_app.name)})[/dim]"
    auto = "[green]on[/green]" if state.log_auto_scroll else "[dim]off[/dim]"
    title += f"   [dim]auto-scroll:[/dim] {auto}"
    if state.logs_loading:
        title += "  [yellow]refreshing...[/yellow]"
    return title


class LogsPanel(Vertical):
    def __init__(self) -> None:
        super().__init__(id="logs-panel")
        self._body = ""

    def compose(self) -> ComposeResult:
        yield Static("", id="logs-title", classes="panel-title")
        with VerticalScroll(id="logs-scroll"):
            yield Static("", id="logs-body")
        yield Static("[dim]l close  a auto-scroll  c clear  Esc close[/dim]", id="logs-keys")

    def show(self, state: AppState) -> None:
        self.display = state.logs_open
        if not state.logs_open:
            return
        self.query_one("#logs-title", Static).update(log_title(state))
        body = log_body(state)
        if body != self._body:
            self._body = body
            self.query_one("#logs-body", Static).update(body)
            if state.log_auto_scroll:
                self.query_one("#logs-scroll", VerticalScroll).scroll_end(animate=False)
