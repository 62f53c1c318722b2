"""Server selector modal: pick which configured server to browse."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from ..config import ServerInfo


class ServerSelectorModal(ModalScreen[str | None]):
    """Dismisses with the chosen alias, or None on cancel."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    ServerSelectorModal {
        align: center middle;
    }

    ServerSelectorModal #servers-dialog {
        width: 60;
        max-width: 90%;
        height: auto;
        max-height: 80%;
        background: $surface;
        border: tall $primary;
        padding: 1 2;
    }

    ServerSelectorModal #servers-title {
        text-align: center;
        text-style: bold;
        width: 100%;
        margin-bottom: 1;
    }

    ServerSelectorModal Button {
        width: 100%;
        margin: 0 0 1 0;
    }
    """

    def __init__(self, servers: list[ServerInfo]) -> None:
        super().__init__()
        self._servers = servers

    def compose(self) -> ComposeResult:
        with Vertical(id="servers-dialog"):
            yield Label("Switch server", id="servers-title")
            if not self._servers:
                yield Label("No servers configured. Run `dokploy auth login`.")
            for idx, server in enumerate(self._servers):
                marker = "* " if server.is_current else "  "
                yield Button(
                    f"{marker}{server.alias}  {server.server_url}",
                    variant="primary" if server.is_current else "default",
                    id=f"server-{idx}",
                )
            yield Button("Cancel", id="servers-cancel-btn")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("server-"):
            self.dismiss(self._servers[int(button_id.split("-", 1)[1])].alias)
        else:
            self.dismiss(None)

    def on_click(self, event) -> None:
        if self is event.widget:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)
