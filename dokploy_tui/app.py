"""Main Textual application: projects sidebar plus the resources of one environment."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import DataTable, Footer, Header, Input, Static

from .api import DokployClient
from .config import ServerConfig
from .controller import Controller
from .details import LOG_POLL_INTERVAL
from .modals.detail_screen import DetailScreen
from .modals.help_screen import HelpScreen
from .modals.server_selector import ServerSelectorModal
from .modals.transfer_dialog import ExportDialog, ImportDialog
from .panels.logs import LogsPanel
from .panels.resources import ProjectsPanel, ResourcesPanel
from .panels.status import status_line
from .scheduler import DEFAULT_INTERVAL, RefreshScheduler
from .state import AppState, StateStore, visible_resources

_log = logging.getLogger("dokploy-tui")


def default_client_factory(server: ServerConfig) -> DokployClient:
    return DokployClient(server.server_url, server.api_token)


class DokployApp(App):
    """Browse and operate Dokploy projects."""

    TITLE = "Dokploy"
    CSS_PATH = "styles/app.tcss"
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("question_mark", "help", "Help", key_display="?"),
        Binding("R", "refresh", "Refresh"),
        Binding("t", "toggle_auto_refresh", "Auto"),
        Binding("slash", "search", "Filter", key_display="/"),
        Binding("e", "cycle_environment", "Env"),
        Binding("d", "run_action('deploy')", "Deploy"),
        Binding("S", "run_action('start')", "Start", show=False),
        Binding("s", "run_action('stop')", "Stop", show=False),
        Binding("r", "run_action('restart')", "Restart", show=False),
        Binding("X", "run_action('delete')", "Delete", show=False),
        Binding("x", "export", "Export", show=False),
        Binding("E", "export_application", "Export app", show=False),
        Binding("i", "import", "Import", show=False),
        Binding("M", "servers", "Server", show=False),
        Binding("l", "toggle_logs", "Logs"),
        Binding("o", "open_browser", "Open", show=False),
        Binding("c", "clear_logs", "Clear logs", show=False),
        Binding("a", "log_auto_scroll", "Auto-scroll", show=False),
        Binding("y", "confirm", "Yes", show=False),
        Binding("n", "cancel", "No", show=False),
        Binding("escape", "escape", "Cancel", show=False),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
    ]

    def __init__(
        self,
        config_file: str,
        cache_file: str,
        alias: str | None = None,
        interval: float = DEFAULT_INTERVAL,
        auto_refresh: bool = True,
        client_factory: Callable[[ServerConfig], Any] = default_client_factory,
    ) -> None:
        super().__init__()
        self.store = StateStore()
        self.scheduler = RefreshScheduler(self.set_interval, interval=interval, enabled=auto_refresh)
        self.log_scheduler = RefreshScheduler(self.set_interval, interval=LOG_POLL_INTERVAL, name="deployment-log")
        self.controller = Controller(
            self.store,
            client_factory,
            config_file=config_file,
            cache_file=cache_file,
            alias=alias,
            call_later=self.set_timer,
            spawn=self._spawn,
            scheduler=self.scheduler,
            log_scheduler=self.log_scheduler,
        )

    def compose(self) -> ComposeResult:
        yield Header(icon="")
        with Horizontal(id="main"):
            yield ProjectsPanel()
            yield ResourcesPanel()
        yield LogsPanel()
        yield Input(placeholder="Filter by name, status or type", id="search-input")
        yield Static("", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#search-input", Input).display = False
        self.store.subscribe(self._render_state)
        self._render_state(self.store.state)
        self.query_one("#resources-table", DataTable).focus()
        self.scheduler.start()
        self._spawn(self.controller.load())

    def on_unmount(self) -> None:
        self.scheduler.stop()
        self.log_scheduler.stop()
        self.store.unsubscribe(self._render_state)

    def _spawn(self, work: Awaitable[Any]) -> None:
        self.run_worker(work, group="dokploy", exit_on_error=False)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_state(self, state: AppState) -> None:
        self.sub_title = state.current_server_alias
        self.query_one(ProjectsPanel).show(state.projects, state.active_project)
        self.query_one(ResourcesPanel).show(
            state.active_project,
            state.active_environment,
            visible_resources(state),
            state.active_resource,
        )
        self.query_one(LogsPanel).show(state)
        self.query_one("#status-bar", Static).update(status_line(state))

    # ------------------------------------------------------------------
    # Table events
    # ------------------------------------------------------------------

    @on(DataTable.RowHighlighted, "#projects-table")
    def _on_project_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.cursor_row != event.data_table.cursor_row:
            return
        key = event.row_key.value if event.row_key is not None else None
        current = self.store.state.active_project
        if current is not None and current.project_id == key:
            return
        for project in self.store.state.projects:
            if project.project_id == key:
                self.controller.select_project(project)
                break

    @on(DataTable.RowSelected, "#resources-table")
    def _on_resource_selected(self) -> None:
        self.action_details()

    @on(DataTable.RowHighlighted, "#resources-table")
    def _on_resource_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.cursor_row != event.data_table.cursor_row:
            return
        key = event.row_key.value if event.row_key is not None else None
        resource = self.query_one(ResourcesPanel).resource_for_key(key)
        if resource is not None:
            self.controller.select_resource(resource)

    # ------------------------------------------------------------------
    # Search input
    # ------------------------------------------------------------------

    @on(Input.Changed, "#search-input")
    def _on_search_changed(self, event: Input.Changed) -> None:
        self.controller.update_search(event.value)

    @on(Input.Submitted, "#search-input")
    def _on_search_submitted(self) -> None:
        self.controller.stop_search(keep_query=True)
        self._hide_search()

    def _hide_search(self) -> None:
        search = self.query_one("#search-input", Input)
        search.display = False
        self.query_one("#resources-table", DataTable).focus()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_help(self) -> None:
        self.push_screen(HelpScreen(self.scheduler.interval))

    def action_refresh(self) -> None:
        self._spawn(self.controller.refresh())

    def action_toggle_auto_refresh(self) -> None:
        enabled = self.controller.toggle_auto_refresh()
        self.notify(f"Auto-refresh {'on' if enabled else 'off'}")

    def action_search(self) -> None:
        self.controller.start_search()
        search = self.query_one("#search-input", Input)
        search.value = ""
        search.display = True
        search.focus()

    def action_cycle_environment(self) -> None:
        self.controller.cycle_environment(1)

    def action_run_action(self, verb: str) -> None:
        self._spawn(self.controller.request_action(verb))

    def action_confirm(self) -> None:
        if self.store.state.pending_confirm is not None:
            self._spawn(self.controller.confirm())

    def action_cancel(self) -> None:
        self.controller.cancel()

    def action_escape(self) -> None:
        state = self.store.state
        if state.pending_confirm is not None:
            self.controller.cancel()
        elif state.is_searching or state.search_query:
            self.controller.stop_search()
            self._hide_search()
        elif state.logs_open:
            self.controller.close_logs()

    def action_export(self) -> None:
        if self.controller.open_export():
            self.push_screen(ExportDialog(self.controller))

    def action_export_application(self) -> None:
        if self.controller.open_export_application():
            self.push_screen(ExportDialog(self.controller))

    def action_import(self) -> None:
        if self.controller.open_import():
            self.push_screen(ImportDialog(self.controller))

    def action_details(self) -> None:
        self._spawn(self._open_details())

    async def _open_details(self) -> None:
        if await self.controller.open_detail():
            self.push_screen(DetailScreen(self.controller))

    def action_toggle_logs(self) -> None:
        self.controller.toggle_logs()

    def action_clear_logs(self) -> None:
        if self.store.state.logs_open:
            self.controller.clear_logs()

    def action_log_auto_scroll(self) -> None:
        if self.store.state.logs_open:
            self.controller.toggle_log_auto_scroll()

    def action_open_browser(self) -> None:
        focused = self.focused
        on_sidebar = isinstance(focused, DataTable) and focused.id == "projects-table"
        self.controller.open_in_browser("project" if on_sidebar else "resource")

    def action_servers(self) -> None:
        def _on_pick(alias: str | None) -> None:
            if alias:
                self._spawn(self.controller.switch_server(alias))

        self.push_screen(ServerSelectorModal(self.controller.list_servers()), callback=_on_pick)

    def action_cursor_down(self) -> None:
        self._move_cursor(1)

    def action_cursor_up(self) -> None:
        self._move_cursor(-1)

    def _move_cursor(self, step: int) -> None:
        focused = self.focused
        if isinstance(focused, DataTable) and focused.id == "projects-table":
            self.controller.move_project(step)
        else:
            self.controller.move_resource(step)
