"""Single-slot executor for deploy/start/stop/restart/delete."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .api import ApiError
from .models import Resource, ResourceKind, database_id_field
from .state import StateStore

_log = logging.getLogger("dokploy-tui")

MESSAGE_TTL = 3.0

VERBS = ("deploy", "start", "stop", "restart", "delete")

_LABELS = {
    "deploy": "Deploying",
    "start": "Starting",
    "stop": "Stopping",
    "restart": "Restarting",
    "delete": "Deleting",
}

_PAST = {
    "deploy": "Deployed",
    "start": "Started",
    "stop": "Stopped",
    "restart": "Restarted",
    "delete": "Deleted",
}

# Remote operation name per kind, keyed by verb.
_OPERATIONS: dict[ResourceKind, dict[str, str]] = {
    ResourceKind.APPLICATION: {
        "deploy": "deploy",
        "start": "start",
        "stop": "stop",
        "restart": "reload",
        "delete": "delete",
    },
    ResourceKind.COMPOSE: {
        "deploy": "deploy",
        "start": "start",
        "stop": "stop",
        "restart": "redeploy",
        "delete": "delete",
    },
    ResourceKind.DATABASE: {
        "deploy": "deploy",
        "start": "start",
        "stop": "stop",
        "restart": "reload",
        "delete": "remove",
    },
}


def action_request(resource: Resource, verb: str) -> tuple[str, dict]:
    """Return ``(operation, payload)`` for running *verb* on *resource*."""
    if verb not in VERBS:
        raise ValueError(f"unknown action: {verb}")
    op = _OPERATIONS[resource.kind][verb]
    if resource.kind is ResourceKind.APPLICATION:
        return f"application.{op}", {"applicationId": resource.id}
    if resource.kind is ResourceKind.COMPOSE:
        return f"compose.{op}", {"composeId": resource.id}
    if resource.engine is None:
        raise ValueError(f"database {resource.name!r} has no engine")
    return f"{resource.engine.value}.{op}", {database_id_field(resource.engine): resource.id}


class ActionExecutor:
    """Runs at most one mutating call at a time.

    ``call_later(delay, fn)`` schedules message expiry; the Textual app passes
    ``set_timer``.  ``refresh`` is awaited after a successful action only.
    """

    def __init__(
        self,
        store: StateStore,
        api_getter: Callable[[], Any],
        refresh: Callable[[], Awaitable[Any]],
        call_later: Callable[[float, Callable[[], Any]], Any],
        *,
        message_ttl: float = MESSAGE_TTL,
    ) -> None:
        self._store = store
        self._api_getter = api_getter
        self._refresh = refresh
        self._call_later = call_later
        self._message_ttl = message_ttl

    def notify(self, text: str, type: str = "info", ttl: float | None = None) -> None:
        """Show a settled message that expires after *ttl* (the message TTL by default)."""
        state = self._store.set_action_message(text, type)
        seq = state.action_message.seq
        self._call_later(self._message_ttl if ttl is None else ttl, lambda: self._store.expire_message(seq))

    async def run(self, verb: str, resource: Resource | None = None) -> bool:
        """Run *verb* on *resource*, or on the active resource when omitted."""
        state = self._store.state
        if resource is None:
            resource = state.active_resource
        if resource is None or state.action_running is not None:
            return False
        if not resource.id:
            self.notify(f"Cannot {verb} {resource.name}: missing identifier", "error")
            return False

        operation, payload = action_request(resource, verb)
        self._store.set_action_running(f"{_LABELS[verb]}...")
        _log.info("action %s on %s (%s)", verb, resource.identity, operation)
        try:
            await self._api_getter().dispatch(operation, payload)
        except ApiError as e:
            _log.error("action %s on %s failed: %s", verb, resource.identity, e.message)
            self.notify(e.message or f"Failed to {verb}", "error")
            return False
        finally:
            self._store.set_action_running(None)

        self.notify(f"{_PAST[verb]} {resource.name}", "success")
        await self._refresh()
        return True
