"""Status line shown under the tables."""

from __future__ import annotations

import time

from ..state import AppState

_MESSAGE_STYLES = {
    "success": "bold #a6e3a1",
    "error": "bold #f38ba8",
    "info": "#89b4fa",
}


def status_line(state: AppState) -> str:
    """Rich markup for the status bar; the first matching state wins."""
    if state.pending_confirm is not None:
        return f"[bold #f9e2af]{state.pending_confirm.message}[/] [dim](y/n)[/dim]"
    if state.action_running:
        return f"[bold #f9e2af]{state.action_running}[/]"
    if state.action_message is not None:
        style = _MESSAGE_STYLES.get(state.action_message.type, "")
        return f"[{style}]{state.action_message.text}[/]"

    parts = [f"Server: {state.current_server_alias or '-'}"]
    if state.is_loading:
        parts.append("Loading...")
    if state.error:
        parts.append(f"[bold red]{state.error}[/bold red]")
    if state.search_query:
        parts.append(f"Filter: {state.search_query}")
    parts.append("auto-refresh on" if state.auto_refresh else "[dim]auto-refresh off[/dim]")
    if state.last_updated is not None:
        parts.append(f"Updated {time.strftime('%H:%M:%S', time.localtime(state.last_updated))}")
    return " | ".join(parts)
