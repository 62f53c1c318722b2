"""Read-only views over a fetched resource and its deployment history.

Everything here turns raw ``<router>.one`` / ``deployment.all`` payloads into
rich-markup lines; nothing talks to the server.  Secrets never leave this
module unmasked: env values, database passwords and connection-string
passwords are all rendered as ``***``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Sequence

from rich.markup import escape

from .models import DatabaseEngine, Resource, ResourceKind

DEFAULT_PORTS: dict[DatabaseEngine, int] = {
    DatabaseEngine.POSTGRES: 5432,
    DatabaseEngine.MYSQL: 3306,
    DatabaseEngine.MARIADB: 3306,
    DatabaseEngine.MONGO: 27017,
    DatabaseEngine.REDIS: 6379,
}

DETAIL_TABS: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.APPLICATION: ("general", "env", "domains", "deployments"),
    ResourceKind.DATABASE: ("general", "connection", "env", "mounts"),
    ResourceKind.COMPOSE: ("general", "env", "domains", "deployments"),
}

ENV_PREVIEW = 8
LIST_PREVIEW = 6
LOG_LIMIT = 10
LOG_POLL_INTERVAL = 5.0

_URL_SCHEMES: dict[DatabaseEngine, str] = {
    DatabaseEngine.POSTGRES: "postgresql",
    DatabaseEngine.MYSQL: "mysql",
    DatabaseEngine.MARIADB: "mysql",
    DatabaseEngine.MONGO: "mongodb",
}

_STATUS_COLORS = {
    "done": "green",
    "running": "yellow",
    "error": "red",
}


# ---------------------------------------------------------------------------
# Detail panel
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResourceDetail:
    """A fetched resource and the tab being shown."""

    resource: Resource
    data: dict[str, Any] = field(default_factory=dict, repr=False, hash=False)
    tab: int = 0

    @property
    def tabs(self) -> tuple[str, ...]:
        return DETAIL_TABS[self.resource.kind]

    @property
    def tab_name(self) -> str:
        return self.tabs[self.tab]

    def move_tab(self, step: int) -> ResourceDetail:
        """Clamped at both ends."""
        tab = max(0, min(len(self.tabs) - 1, self.tab + step))
        return self if tab == self.tab else replace(self, tab=tab)


def _value(data: dict, key: str, default: str = "-") -> str:
    value = data.get(key)
    if value is None or value == "":
        return default
    return escape(str(value))


def mask_env(env: Any) -> list[str]:
    """``KEY=***`` for the first few variables, with a count."""
    lines = [line for line in str(env or "").splitlines() if line.strip()]
    out = [f"[dim]{len(lines)} variable(s)[/dim]"]
    for line in lines[:ENV_PREVIEW]:
        out.append(f"{escape(line.split('=', 1)[0])}=***")
    if len(lines) > ENV_PREVIEW:
        out.append(f"[dim]... and {len(lines) - ENV_PREVIEW} more[/dim]")
    return out


def domain_url(domain: dict) -> str:
    scheme = "https" if domain.get("https") else "http"
    return f"{scheme}://{domain.get('host') or ''}{domain.get('path') or ''}"


def _dicts(items: Any) -> list[dict]:
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def connection_url(engine: DatabaseEngine, data: dict, external: bool = False) -> str:
    """Connection string with the password masked.

    Internal URLs address the service by its ``appName`` on the default
    port; external ones go through ``localhost`` and ``externalPort``.
    """
    external_port = data.get("externalPort")
    port = external_port if external and external_port else DEFAULT_PORTS[engine]
    host = "localhost" if external else data.get("appName") or ""
    if engine is DatabaseEngine.REDIS:
        return f"redis://{host}:{port}"
    user = data.get("databaseUser") or ""
    name = data.get("databaseName") or ""
    return f"{_URL_SCHEMES[engine]}://{user}:***@{host}:{port}/{name}"


def _status(value: Any) -> str:
    status = str(value or "-")
    color = _STATUS_COLORS.get(status, "yellow")
    return f"[{color}]{escape(status)}[/{color}]"


def _general(resource: Resource, data: dict) -> list[str]:
    if resource.kind is ResourceKind.APPLICATION:
        return [
            f"ID: [dim]{_value(data, 'applicationId', resource.id)}[/dim]",
            f"Status: {_status(data.get('applicationStatus') or resource.status)}",
            f"Build: [dim]{_value(data, 'buildType')}[/dim]",
            f"Source: [dim]{_value(data, 'sourceType')}[/dim]",
            f"Replicas: [dim]{_value(data, 'replicas')}[/dim]",
        ]
    if resource.kind is ResourceKind.COMPOSE:
        lines = [
            f"ID: [dim]{_value(data, 'composeId', resource.id)}[/dim]",
            f"Status: {_status(data.get('composeStatus') or resource.status)}",
            f"Type: [dim]{_value(data, 'composeType')}[/dim]",
            f"Source: [dim]{_value(data, 'sourceType')}[/dim]",
        ]
        if data.get("composePath"):
            lines.append(f"Path: [dim]{_value(data, 'composePath')}[/dim]")
        if data.get("repository"):
            lines.append(f"Repo: [dim]{_value(data, 'repository')}[/dim]")
        return lines
    return [
        f"Type: [magenta]{resource.type_label}[/magenta]",
        f"Status: {_status(data.get('applicationStatus') or resource.status)}",
        f"Image: [dim]{_value(data, 'dockerImage', 'default')}[/dim]",
        f"Replicas: [dim]{_value(data, 'replicas')}[/dim]",
    ]


def _connection(engine: DatabaseEngine, data: dict) -> list[str]:
    lines = []
    if data.get("databaseName"):
        lines.append(f"Database: [dim]{_value(data, 'databaseName')}[/dim]")
    if data.get("databaseUser"):
        lines.append(f"Username: [dim]{_value(data, 'databaseUser')}[/dim]")
    if data.get("databasePassword"):
        lines.append("Password: [dim]***[/dim]")
    lines.append(f"Internal Port: [dim]{DEFAULT_PORTS[engine]}[/dim]")
    lines.append(f"External Port: [dim]{_value(data, 'externalPort', '(not exposed)')}[/dim]")
    lines.append(f"Internal URL: [dim]{escape(connection_url(engine, data))}[/dim]")
    if data.get("externalPort"):
        lines.append(f"External URL: [dim]{escape(connection_url(engine, data, external=True))}[/dim]")
    return lines


def _domains(data: dict) -> list[str]:
    domains = _dicts(data.get("domains"))
    if not domains:
        return ["[dim](no domains)[/dim]"]
    return [escape(domain_url(d)) for d in domains[:LIST_PREVIEW]]


def _deployments(data: dict) -> list[str]:
    deployments = _dicts(data.get("deployments"))
    if not deployments:
        return ["[dim](no deployments)[/dim]"]
    lines = []
    for d in deployments[:LIST_PREVIEW]:
        status = str(d.get("status") or "-")
        color = _STATUS_COLORS.get(status, "yellow")
        lines.append(f"[{color}]{escape(status.ljust(8))}[/{color}] [dim]{_value(d, 'createdAt', '')}[/dim]")
    return lines


def _mounts(data: dict) -> list[str]:
    mounts = _dicts(data.get("mounts"))
    if not mounts:
        return ["[dim](no mounts)[/dim]"]
    lines = []
    for m in mounts[:LIST_PREVIEW]:
        line = f"[dim]\\[{_value(m, 'type', '?')}][/dim] {_value(m, 'mountPath', '')}"
        if m.get("hostPath"):
            line += f" [dim]<- {_value(m, 'hostPath')}[/dim]"
        lines.append(line)
    return lines


def detail_lines(detail: ResourceDetail) -> list[str]:
    """Markup lines for the active tab of *detail*."""
    data = detail.data
    tab = detail.tab_name
    if tab == "general":
        return _general(detail.resource, data)
    if tab == "env":
        return mask_env(data.get("env"))
    if tab == "domains":
        return _domains(data)
    if tab == "deployments":
        return _deployments(data)
    if tab == "mounts":
        return _mounts(data)
    if tab == "connection" and detail.resource.engine is not None:
        return _connection(detail.resource.engine, data)
    return []


# ---------------------------------------------------------------------------
# Deployment log
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LogLine:
    timestamp: str
    message: str
    level: str = "info"  # info | warn | error


def local_time(value: Any) -> str:
    """``HH:MM:SS`` in local time for an ISO timestamp or epoch seconds."""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value).strftime("%H:%M:%S")
    text = str(value or "")
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    return parsed.astimezone().strftime("%H:%M:%S")


def deployment_log_lines(deployments: Sequence[Any], limit: int = LOG_LIMIT) -> tuple[LogLine, ...]:
    """One line per deployment, newest first, as the server orders them."""
    lines = []
    for d in list(deployments)[:limit]:
        if not isinstance(d, dict):
            continue
        status = str(d.get("status") or "unknown")
        title = d.get("title") or "Deployment"
        short_id = str(d.get("deploymentId") or "")[:8]
        if status == "error":
            level = "error"
        elif status == "running":
            level = "warn"
        else:
            level = "info"
        lines.append(LogLine(
            timestamp=local_time(d.get("createdAt")),
            message=f"[{status.upper()}] {title} - {short_id}",
            level=level,
        ))
    return tuple(lines)
