"""Immutable application state and the store that owns it.

Components receive the ``StateStore`` in their constructor and go through its
setters; nothing else holds mutable UI state.  Each setter swaps in a new
``AppState`` snapshot and notifies subscribers only when the snapshot changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from .details import LogLine, ResourceDetail
from .models import Environment, Project, Resource, ResourceKind
from .reconcile import Selection
from .search import filter_resources

_log = logging.getLogger("dokploy-tui")

Listener = Callable[["AppState"], None]


@dataclass(frozen=True)
class ActionMessage:
    text: str
    type: str = "info"  # success | error | info
    seq: int = 0


@dataclass(frozen=True)
class PendingConfirm:
    message: str
    callback: Callable[[], Any] = field(compare=False)


@dataclass(frozen=True)
class AppState:
    projects: tuple[Project, ...] = ()
    resources: tuple[Resource, ...] = ()

    active_project: Project | None = None
    active_environment: Environment | None = None
    active_resource: Resource | None = None
    active_app: Resource | None = None

    is_loading: bool = False
    error: str | None = None

    action_running: str | None = None
    action_message: ActionMessage | None = None
    pending_confirm: PendingConfirm | None = None

    search_query: str = ""
    is_searching: bool = False

    detail: ResourceDetail | None = None

    logs_open: bool = False
    log_lines: tuple[LogLine, ...] = ()
    logs_loading: bool = False
    log_auto_scroll: bool = True

    current_server_alias: str = ""
    auto_refresh: bool = True
    last_updated: float | None = None


def visible_resources(state: AppState) -> tuple[Resource, ...]:
    """The raw resource list, or the filtered one while a query is set."""
    if not state.search_query:
        return state.resources
    return tuple(filter_resources(state.resources, state.search_query))


class StateStore:
    def __init__(self, initial: AppState | None = None) -> None:
        self._state = initial or AppState()
        self._listeners: list[Listener] = []
        self._message_seq = 0

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def update(self, **changes: Any) -> AppState:
        new = replace(self._state, **changes)
        if new == self._state:
            return self._state
        self._state = new
        for listener in list(self._listeners):
            listener(new)
        return new

    # ------------------------------------------------------------------
    # Data + selection
    # ------------------------------------------------------------------

    def set_projects(self, projects: list[Project] | tuple[Project, ...]) -> AppState:
        return self.update(projects=tuple(projects))

    def set_project(self, project: Project | None) -> AppState:
        if project is None:
            return self.update(
                active_project=None,
                active_environment=None,
                resources=(),
                active_resource=None,
                active_app=None,
            )
        return self.update(active_project=project)

    def set_selection(self, selection: Selection, **extra: Any) -> AppState:
        """Swap project, environment, resource list and resource in one step."""
        resource = selection.resource
        app = resource if resource is not None and resource.kind is ResourceKind.APPLICATION else None
        return self.update(
            active_project=selection.project,
            active_environment=selection.environment,
            resources=tuple(selection.resources),
            active_resource=resource,
            active_app=app,
            **extra,
        )

    def set_resources(self, resources: list[Resource] | tuple[Resource, ...]) -> AppState:
        return self.update(resources=tuple(resources))

    def set_resource(self, resource: Resource | None) -> AppState:
        app = resource if resource is not None and resource.kind is ResourceKind.APPLICATION else None
        return self.update(active_resource=resource, active_app=app)

    def set_loading(self, loading: bool) -> AppState:
        return self.update(is_loading=loading)

    def set_error(self, error: str | None) -> AppState:
        return self.update(error=error)

    # ------------------------------------------------------------------
    # Action / message (mutually exclusive)
    # ------------------------------------------------------------------

    def set_action_running(self, label: str | None) -> AppState:
        if label is None:
            return self.update(action_running=None)
        return self.update(action_running=label, action_message=None)

    def set_action_message(self, text: str | None, type: str = "info") -> AppState:
        if text is None:
            return self.update(action_message=None)
        self._message_seq += 1
        return self.update(
            action_running=None,
            action_message=ActionMessage(text=text, type=type, seq=self._message_seq),
        )

    def expire_message(self, seq: int) -> AppState:
        """Clear the message only if it is still the one numbered *seq*."""
        msg = self._state.action_message
        if msg is not None and msg.seq == seq:
            return self.update(action_message=None)
        return self._state

    # ------------------------------------------------------------------
    # Confirmation gate
    # ------------------------------------------------------------------

    def request_confirm(self, message: str, callback: Callable[[], Any]) -> bool:
        if self._state.pending_confirm is not None:
            _log.debug("request_confirm: already pending, ignoring %r", message)
            return False
        self.update(pending_confirm=PendingConfirm(message=message, callback=callback))
        return True

    def confirm(self) -> Any:
        """Clear the pending slot, then run its callback and return the result."""
        pending = self._state.pending_confirm
        if pending is None:
            return None
        self.update(pending_confirm=None)
        return pending.callback()

    def cancel_confirm(self) -> None:
        self.update(pending_confirm=None)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def set_search(self, query: str, searching: bool) -> AppState:
        return self.update(search_query=query, is_searching=searching)

    # ------------------------------------------------------------------
    # Detail panel / deployment log
    # ------------------------------------------------------------------

    def set_detail(self, detail: ResourceDetail | None) -> AppState:
        return self.update(detail=detail)

    def set_logs(self, lines: tuple[LogLine, ...] | list[LogLine]) -> AppState:
        return self.update(log_lines=tuple(lines), logs_loading=False)
