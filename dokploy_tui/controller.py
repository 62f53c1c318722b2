"""Glue between the state store, the remote service and the UI.

The Textual app only calls methods on ``Controller`` and renders
``StateStore.state``; everything with an invariant lives below this layer.
"""

from __future__ import annotations

import inspect
import logging
import time
from typing import Any, Awaitable, Callable

from .actions import VERBS, ActionExecutor
from .api import ApiError
from .browser import BrowserError, open_url, project_url, resource_url
from .cache import ResourceCache
from .config import (
    ServerConfig,
    ServerInfo,
    get_server_config,
    list_server_aliases,
    set_current_alias,
)
from .details import LogLine, ResourceDetail, deployment_log_lines, local_time
from .extractor import extract_resources
from .models import Project, Resource, parse_projects
from .reconcile import (
    Selection,
    reconcile_environment,
    reconcile_resource,
    reconcile_selection,
)
from .scheduler import RefreshScheduler
from .state import AppState, StateStore, visible_resources
from .transfer import (
    ExportRequest,
    ExportResult,
    ExportWizard,
    ImportReport,
    ImportRequest,
    ImportWizard,
    TransferError,
    export_application,
    export_project,
    import_entries,
)

_log = logging.getLogger("dokploy-tui")

CallLater = Callable[[float, Callable[[], Any]], Any]

BROWSER_MESSAGE_TTL = 2.0


class Controller:
    def __init__(
        self,
        store: StateStore,
        client_factory: Callable[[ServerConfig], Any],
        *,
        config_file: str,
        cache_file: str,
        call_later: CallLater,
        spawn: Callable[[Awaitable[Any]], Any],
        alias: str | None = None,
        scheduler: RefreshScheduler | None = None,
        cache_factory: Callable[[str, str], ResourceCache] | None = None,
        log_scheduler: RefreshScheduler | None = None,
        opener: Callable[[str], Any] = open_url,
    ) -> None:
        self.store = store
        self._client_factory = client_factory
        self._config_file = config_file
        self._cache_file = cache_file
        self._cache_factory = cache_factory or (lambda path, a: ResourceCache(path, a))
        self._spawn = spawn
        self._opener = opener
        self.scheduler = scheduler
        self.log_scheduler = log_scheduler

        self.server = get_server_config(config_file, alias)
        self.api = client_factory(self.server)
        self.cache = self._cache_factory(cache_file, self.server.alias)
        self.store.update(current_server_alias=self.server.alias)

        self.executor = ActionExecutor(store, lambda: self.api, self.refresh, call_later)
        self.export_wizard = ExportWizard()
        self.import_wizard = ImportWizard()

        if scheduler is not None:
            scheduler.callback = self.refresh_in_background
            self.store.update(auto_refresh=scheduler.enabled)
        if log_scheduler is not None:
            log_scheduler.callback = self.poll_logs
        self._log_app_id: str | None = None
        self.store.subscribe(self._follow_active_app)

    # ------------------------------------------------------------------
    # Loading / refresh
    # ------------------------------------------------------------------

    def _apply_projects(self, projects: list[Project]) -> None:
        state = self.store.state
        selection = reconcile_selection(
            projects,
            state.active_project or self._default_project(projects),
            state.active_environment,
            state.active_resource,
        )
        self.store.set_selection(selection, projects=tuple(projects))
        if selection.environment is not None:
            self.cache.set_resources(
                selection.project.project_id,
                selection.environment.environment_id,
                list(selection.resources),
            )

    def _default_project(self, projects: list[Project]) -> Project | None:
        wanted = self.server.default_project_id
        if not wanted:
            return None
        for project in projects:
            if project.project_id == wanted:
                return project
        _log.warning("default project %s not found on %s", wanted, self.server.alias)
        return None

    async def load(self, use_cache: bool = True) -> list[Project]:
        """Show cached projects straight away, then replace them with live data.

        A failed fetch leaves whatever is on screen in place and records the
        error for the status bar.
        """
        if use_cache:
            cached = self.cache.get_projects()
            if cached:
                self._apply_projects(parse_projects(cached))

        api = self.api
        self.store.set_loading(True)
        try:
            raw = await api.fetch_projects()
        except ApiError as e:
            _log.error("load: project fetch failed: %s", e.message)
            self.store.set_error(e.message)
            return list(self.store.state.projects)
        finally:
            self.store.set_loading(False)

        if api is not self.api:
            _log.debug("load: server switched mid-fetch, dropping result")
            return list(self.store.state.projects)

        self.cache.set_projects(raw)
        projects = parse_projects(raw)
        self.store.update(error=None, last_updated=time.time())
        self._apply_projects(projects)
        return projects

    async def refresh(self) -> list[Project]:
        return await self.load(use_cache=False)

    def refresh_in_background(self) -> None:
        """Timer entry point: start a refresh without waiting for it."""
        self._spawn(self.refresh())

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_project(self, project: Project | None) -> None:
        """Make *project* active, re-running environment then resource selection."""
        if project is None:
            self.store.set_project(None)
            return
        state = self.store.state
        same = state.active_project is not None and state.active_project.project_id == project.project_id
        env = reconcile_environment(project, state.active_environment if same else None)
        if env is None:
            self.store.set_selection(Selection(project=project))
            return

        previous = state.active_resource if same else None
        if not same:
            cached = self.cache.get_resources(project.project_id, env.environment_id)
            if cached is not None:
                resource = reconcile_resource(cached, None)
                self.store.set_selection(Selection(project, env, tuple(cached), resource))
                previous = resource

        resources = extract_resources(project, env.environment_id)
        self.store.set_selection(
            Selection(project, env, tuple(resources), reconcile_resource(resources, previous))
        )
        self.cache.set_resources(project.project_id, env.environment_id, resources)

    def move_project(self, step: int) -> None:
        projects = self.store.state.projects
        if not projects:
            return
        current = self.store.state.active_project
        idx = 0
        if current is not None:
            for i, p in enumerate(projects):
                if p.project_id == current.project_id:
                    idx = max(0, min(len(projects) - 1, i + step))
                    break
        self.select_project(projects[idx])

    def cycle_environment(self, step: int = 1) -> None:
        state = self.store.state
        project = state.active_project
        if project is None or not project.environments:
            return
        envs = project.environments
        current = state.active_environment
        idx = 0
        if current is not None:
            for i, env in enumerate(envs):
                if env.environment_id == current.environment_id:
                    idx = (i + step) % len(envs)
                    break
        env = envs[idx]
        resources = extract_resources(project, env.environment_id)
        self.store.set_selection(
            Selection(project, env, tuple(resources), reconcile_resource(resources, None))
        )

    def select_resource(self, resource: Resource | None) -> None:
        self.store.set_resource(resource)

    def move_resource(self, step: int) -> None:
        resources = visible_resources(self.store.state)
        if not resources:
            return
        current = self.store.state.active_resource
        idx = 0
        if current is not None:
            for i, r in enumerate(resources):
                if r.identity == current.identity:
                    idx = max(0, min(len(resources) - 1, i + step))
                    break
        self.store.set_resource(resources[idx])

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def request_action(self, verb: str) -> bool:
        if verb not in VERBS:
            raise ValueError(f"unknown action: {verb}")
        resource = self.store.state.active_resource
        if resource is None:
            return False
        if verb == "delete":
            return self.store.request_confirm(
                f"Delete {resource.type_label} {resource.name}? This cannot be undone.",
                lambda: self._delete_confirmed(resource.identity, resource.name),
            )
        return await self.executor.run(verb, resource)

    async def _delete_confirmed(self, identity: str, name: str) -> bool:
        # The list may have been refreshed while the prompt was open.
        for resource in self.store.state.resources:
            if resource.identity == identity:
                return await self.executor.run("delete", resource)
        _log.warning("delete: %s is gone, not dispatching", identity)
        self.notify(f"{name} is no longer listed", "error")
        return False

    async def confirm(self) -> Any:
        result = self.store.confirm()
        if inspect.isawaitable(result):
            result = await result
        return result

    def cancel(self) -> None:
        self.store.cancel_confirm()

    def notify(self, text: str, type: str = "info", ttl: float | None = None) -> None:
        self.executor.notify(text, type, ttl)

    # ------------------------------------------------------------------
    # Detail panel
    # ------------------------------------------------------------------

    async def open_detail(self) -> bool:
        """Fetch the active resource in full and show its first tab."""
        state = self.store.state
        resource = state.active_resource
        if resource is None or state.detail is not None or state.action_running is not None:
            return False
        if not resource.id:
            self.notify(f"Cannot load {resource.name}: missing identifier", "error")
            return False

        self.store.set_action_running("Loading details...")
        try:
            data = await self.api.fetch_detail(resource.kind, resource.id, resource.engine)
        except ApiError as e:
            _log.error("detail for %s failed: %s", resource.identity, e.message)
            self.notify("Failed to load details", "error")
            return False
        finally:
            self.store.set_action_running(None)

        if not isinstance(data, dict):
            _log.error("detail for %s: unexpected %s payload", resource.identity, type(data).__name__)
            self.notify("Failed to load details", "error")
            return False
        self.store.set_detail(ResourceDetail(resource, data))
        return True

    def close_detail(self) -> None:
        self.store.set_detail(None)

    def move_detail_tab(self, step: int) -> None:
        detail = self.store.state.detail
        if detail is not None:
            self.store.set_detail(detail.move_tab(step))

    # ------------------------------------------------------------------
    # Deployment log
    # ------------------------------------------------------------------

    def toggle_logs(self) -> bool:
        """Open or close the deployment log; returns whether it is now open."""
        if self.store.state.logs_open:
            self.close_logs()
            return False
        app = self.store.state.active_app
        if app is None:
            self.notify("Select an application to view its deployments", "error")
            return False
        self._log_app_id = app.id
        self.store.update(logs_open=True, log_lines=())
        if self.log_scheduler is not None:
            self.log_scheduler.start()
        self.poll_logs()
        return True

    def close_logs(self) -> None:
        if self.log_scheduler is not None:
            self.log_scheduler.stop()
        self._log_app_id = None
        self.store.update(logs_open=False, log_lines=(), logs_loading=False)

    def clear_logs(self) -> None:
        self.store.set_logs(())

    def toggle_log_auto_scroll(self) -> bool:
        enabled = not self.store.state.log_auto_scroll
        self.store.update(log_auto_scroll=enabled)
        return enabled

    def poll_logs(self) -> None:
        """Timer entry point: fetch the log without waiting for it."""
        if self.store.state.logs_open:
            self._spawn(self.load_logs())

    def _follow_active_app(self, state: AppState) -> None:
        # The log follows the selection while it is open.
        if not state.logs_open:
            return
        app_id = state.active_app.id if state.active_app is not None else None
        if app_id != self._log_app_id:
            self._log_app_id = app_id
            self._spawn(self.load_logs())

    async def load_logs(self) -> tuple[LogLine, ...]:
        app = self.store.state.active_app
        if app is None or not app.id:
            self.store.set_logs(())
            return ()

        api = self.api
        self.store.update(logs_loading=True)
        try:
            lines = deployment_log_lines(await api.fetch_deployments(app.id))
        except ApiError as e:
            _log.error("deployments for %s failed: %s", app.identity, e.message)
            lines = (LogLine(local_time(time.time()), "Failed to fetch logs", "error"),)

        state = self.store.state
        current = state.active_app
        if not state.logs_open or api is not self.api or current is None or current.id != app.id:
            _log.debug("load_logs: selection moved during fetch, dropping %s", app.identity)
            return lines
        self.store.set_logs(lines)
        return lines

    # ------------------------------------------------------------------
    # Browser
    # ------------------------------------------------------------------

    def open_in_browser(self, target: str = "resource") -> bool:
        """Open the active project (``target="project"``) or resource in the dashboard."""
        state = self.store.state
        server_url = self.server.server_url
        if not server_url:
            self.notify("Not authenticated - please login first", "error")
            return False
        try:
            if target == "project":
                if state.active_project is None:
                    return False
                url = project_url(server_url, state.active_project)
            else:
                if state.active_resource is None:
                    return False
                url = resource_url(server_url, state.active_resource)
            self._opener(url)
        except BrowserError as e:
            _log.error("open in browser failed: %s", e)
            self.notify(str(e), "error")
            return False
        self.notify("Opened in browser", "success", ttl=BROWSER_MESSAGE_TTL)
        return True

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def start_search(self) -> None:
        self.store.set_search("", True)

    def update_search(self, query: str) -> None:
        self.store.set_search(query, True)

    def stop_search(self, keep_query: bool = False) -> None:
        query = self.store.state.search_query if keep_query else ""
        self.store.set_search(query, False)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def open_export(self) -> bool:
        state = self.store.state
        if state.active_project is None or state.active_environment is None:
            self.notify("Select a project first", "error")
            return False
        self.export_wizard.open(state.active_project, list(state.resources))
        return True

    def open_export_application(self) -> bool:
        state = self.store.state
        if state.active_project is None or state.active_app is None:
            self.notify("Select an application first", "error")
            return False
        self.export_wizard.open_application(state.active_project, state.active_app)
        return True

    def close_export(self) -> None:
        self.export_wizard.close()

    def _busy(self, wizard) -> bool:
        running = self.store.state.action_running
        if running is not None:
            wizard.error = f"Wait for the current operation to finish ({running})"
        return running is not None

    def export_advance(self) -> bool:
        """Advance the export wizard; starts the export once the path is confirmed."""
        request = self.export_wizard.advance()
        if request is None or self._busy(self.export_wizard):
            return False
        self.export_wizard.close()
        self._spawn(self.run_export(request))
        return True

    async def run_export(self, request: ExportRequest) -> ExportResult | None:
        self.store.set_action_running("Exporting...")
        try:
            if request.single_application:
                result = await export_application(self.api, request.resources[0], request.path)
            else:
                result = await export_project(self.api, request.project, request.resources, request.path)
        except (TransferError, ApiError) as e:
            message = e.message if isinstance(e, ApiError) else str(e)
            _log.error("export to %s failed: %s", request.path, message)
            self.notify(f"Export failed: {message}", "error")
            return None
        except Exception as e:
            _log.exception("export to %s failed: %s", request.path, e)
            self.notify(f"Export failed: {e}", "error")
            return None
        finally:
            self.store.set_action_running(None)
        self.notify(result.message, result.type)
        await self.refresh()
        return result

    def open_import(self, initial_path: str = "") -> bool:
        env = self.store.state.active_environment
        if self.store.state.active_project is None or env is None:
            self.notify("Select a project first", "error")
            return False
        self.import_wizard.open(env, initial_path)
        return True

    def close_import(self) -> None:
        self.import_wizard.close()

    def import_advance(self) -> bool:
        """Advance the import wizard; starts the import once there is a plan."""
        request = self.import_wizard.advance()
        if request is None or self._busy(self.import_wizard):
            return False
        self.import_wizard.close()
        self._spawn(self.run_import(request))
        return True

    async def run_import(self, request: ImportRequest) -> ImportReport | None:
        self.store.set_action_running("Importing...")
        try:
            report = await import_entries(self.api, request.environment, request.entries)
        except Exception as e:
            _log.exception("import into %s failed: %s", request.environment.environment_id, e)
            self.notify(f"Import failed: {e}", "error")
            return None
        finally:
            self.store.set_action_running(None)

        if request.single_application:
            outcome = report.outcomes[0]
            if not outcome.created:
                self.notify(outcome.error or "Import failed", "error")
            elif not outcome.configured:
                self.notify(f'Imported "{outcome.name}" but configuration failed: {outcome.error}', "error")
            else:
                self.notify(f'Imported "{outcome.name}"', "success")
        else:
            self.notify(report.message, report.type)

        if report.imported:
            await self.refresh()
        return report

    # ------------------------------------------------------------------
    # Auto refresh / servers
    # ------------------------------------------------------------------

    def toggle_auto_refresh(self) -> bool:
        if self.scheduler is None:
            return False
        enabled = self.scheduler.toggle()
        self.store.update(auto_refresh=enabled)
        return enabled

    def set_refresh_interval(self, seconds: float) -> None:
        if self.scheduler is not None:
            self.scheduler.set_interval_seconds(seconds)

    def list_servers(self) -> list[ServerInfo]:
        return list_server_aliases(self._config_file)

    async def switch_server(self, alias: str) -> bool:
        if alias == self.store.state.current_server_alias:
            return False
        set_current_alias(self._config_file, alias)
        server = get_server_config(self._config_file, alias)
        old_api = self.api
        self.server = server
        self.api = self._client_factory(server)
        self.cache = self._cache_factory(self._cache_file, server.alias)
        _log.info("switched server to %s", alias)

        self.stop_search()
        self.export_wizard.close()
        self.import_wizard.close()
        self.close_logs()
        self.close_detail()
        self.store.cancel_confirm()
        self.store.set_project(None)
        self.store.update(projects=(), error=None, last_updated=None, current_server_alias=server.alias)

        close = getattr(old_api, "aclose", None)
        if close is not None:
            await close()
        await self.load(use_cache=True)
        return True
