"""Project/application export and import, plus the two-step wizards.

Export file format
-----------------
{
  "version": "1.0",
  "type": "application" | "project",
  "schemaVersion": "2.0",
  "exportedAt": "2024-01-15T12:30:00+00:00",
  "data": {...}
}

For ``application`` files ``data`` is one application entry.  For ``project``
files it is ``{"name", "description", "applications": [...], "compose": [...],
"databases": [...]}``.
"""

from __future__ import annotations

import json
import logging
import os
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from .api import ApiError
from .models import (
    DatabaseEngine,
    Environment,
    Project,
    Resource,
    ResourceKind,
    database_id_field,
)

_log = logging.getLogger("dokploy-tui")

EXPORT_VERSION = "1.0"
SCHEMA_VERSION = "2.0"
DOCUMENT_TYPES = ("application", "project")

T = TypeVar("T")


class TransferError(Exception):
    """Malformed export file, missing selection or unusable path."""


def resolve_path(text: str) -> str:
    """Expand ``~``, normalize, and anchor relative paths at the cwd."""
    path = (text or "").strip()
    if not path:
        raise TransferError("Path required")
    return os.path.abspath(os.path.normpath(os.path.expanduser(path)))


# ---------------------------------------------------------------------------
# Multi-select list
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SelectItem(Generic[T]):
    id: str
    label: str
    data: T


class MultiSelect(Generic[T]):
    """Checkbox list with a cursor: space toggles, a/n select or clear all."""

    def __init__(self, items: list[SelectItem[T]], selected: list[str] | None = None) -> None:
        self.items = list(items)
        known = {item.id for item in self.items}
        self._selected = {i for i in (selected or []) if i in known}
        self.cursor = 0

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    def is_selected(self, item_id: str) -> bool:
        return item_id in self._selected

    def toggle(self, item_id: str) -> None:
        if item_id in self._selected:
            self._selected.discard(item_id)
        elif any(item.id == item_id for item in self.items):
            self._selected.add(item_id)

    def toggle_current(self) -> None:
        if self.items:
            self.toggle(self.items[self.cursor].id)

    def select_all(self) -> None:
        self._selected = {item.id for item in self.items}

    def deselect_all(self) -> None:
        self._selected = set()

    def move_up(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def move_down(self) -> None:
        self.cursor = max(0, min(len(self.items) - 1, self.cursor + 1))

    def selected(self) -> list[SelectItem[T]]:
        return [item for item in self.items if item.id in self._selected]


# ---------------------------------------------------------------------------
# Document building
# ---------------------------------------------------------------------------


def _domains(items: Any) -> list[dict]:
    return [
        {
            "host": d.get("host"),
            "path": d.get("path"),
            "port": d.get("port"),
            "https": d.get("https", False),
            "certificateType": d.get("certificateType", "none"),
        }
        for d in (items or [])
        if isinstance(d, dict)
    ]


def _mounts(items: Any) -> list[dict]:
    return [
        {
            "type": m.get("type"),
            "hostPath": m.get("hostPath"),
            "mountPath": m.get("mountPath"),
            "content": m.get("content"),
        }
        for m in (items or [])
        if isinstance(m, dict)
    ]


def _ports(items: Any) -> list[dict]:
    return [
        {
            "publishedPort": p.get("publishedPort"),
            "targetPort": p.get("targetPort"),
            "protocol": p.get("protocol", "tcp"),
        }
        for p in (items or [])
        if isinstance(p, dict)
    ]


def application_entry(detail: dict) -> dict:
    return {
        "name": detail.get("name") or "",
        "description": detail.get("description"),
        "buildType": detail.get("buildType"),
        "sourceType": detail.get("sourceType"),
        "env": detail.get("env") or "",
        "dockerfile": detail.get("dockerfile"),
        "dockerImage": detail.get("dockerImage"),
        "replicas": detail.get("replicas"),
        "domains": _domains(detail.get("domains")),
        "mounts": _mounts(detail.get("mounts")),
        "ports": _ports(detail.get("ports")),
    }


def compose_entry(detail: dict) -> dict:
    return {
        "name": detail.get("name") or "",
        "description": detail.get("description"),
        "composeType": detail.get("composeType"),
        "sourceType": detail.get("sourceType"),
        "env": detail.get("env") or "",
        "composeFile": detail.get("composeFile"),
        "composePath": detail.get("composePath"),
        "domains": _domains(detail.get("domains")),
        "mounts": _mounts(detail.get("mounts")),
    }


def database_entry(detail: dict, engine: DatabaseEngine) -> dict:
    return {
        "name": detail.get("name") or "",
        "description": detail.get("description"),
        "dbType": engine.value,
        "env": detail.get("env") or "",
        "dockerImage": detail.get("dockerImage"),
        "databaseName": detail.get("databaseName"),
        "databaseUser": detail.get("databaseUser"),
        "externalPort": detail.get("externalPort"),
        "replicas": detail.get("replicas"),
        "memoryReservation": detail.get("memoryReservation"),
        "memoryLimit": detail.get("memoryLimit"),
        "mounts": _mounts(detail.get("mounts")),
    }


def build_document(doc_type: str, data: dict, now: datetime | None = None) -> dict:
    if doc_type not in DOCUMENT_TYPES:
        raise ValueError(f"unknown export type: {doc_type}")
    return {
        "version": EXPORT_VERSION,
        "type": doc_type,
        "schemaVersion": SCHEMA_VERSION,
        "exportedAt": (now or datetime.now(timezone.utc)).isoformat(),
        "data": data,
    }


def write_document(path: str, document: dict) -> None:
    try:
        with open(path, "w") as f:
            json.dump(document, f, indent=2)
            f.write("\n")
    except OSError as e:
        raise TransferError(f"Could not write {path}: {e.strerror or e}") from e


def read_export(path: str) -> dict:
    """Load and validate an export document."""
    try:
        with open(path, "r") as f:
            document = json.load(f)
    except FileNotFoundError as e:
        raise TransferError(f"File not found: {path}") from e
    except json.JSONDecodeError as e:
        raise TransferError(f"Invalid JSON in {os.path.basename(path)}: {e.msg}") from e
    except OSError as e:
        raise TransferError(f"Could not read {path}: {e.strerror or e}") from e

    if (
        not isinstance(document, dict)
        or not document.get("version")
        or document.get("type") not in DOCUMENT_TYPES
        or not isinstance(document.get("data"), dict)
    ):
        raise TransferError("Invalid export file")
    return document


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


@dataclass
class ExportResult:
    path: str
    exported: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.exported:
            detail = f": {self.errors[0]}" if self.errors else ""
            return f"Export failed{detail}"
        text = f"Exported {self.exported} service(s) to {self.path}"
        if self.failed:
            text += f", {self.failed} failed"
        return text

    @property
    def type(self) -> str:
        return "success" if self.exported and not self.failed else "error"


async def _fetch_entry(api: Any, resource: Resource) -> tuple[str, dict]:
    detail = await api.fetch_detail(resource.kind, resource.id, resource.engine)
    if not isinstance(detail, dict):
        raise ApiError(f"No detail returned for {resource.name}")
    if resource.kind is ResourceKind.APPLICATION:
        return "applications", application_entry(detail)
    if resource.kind is ResourceKind.COMPOSE:
        return "compose", compose_entry(detail)
    return "databases", database_entry(detail, resource.engine)


async def export_project(
    api: Any,
    project: Project,
    resources: list[Resource],
    path: str,
) -> ExportResult:
    """Fetch each resource's full detail and write one project document.

    Items that fail to fetch are counted and skipped; the file is only
    written when at least one item made it.
    """
    result = ExportResult(path=path)
    data: dict[str, Any] = {
        "name": project.name,
        "description": project.description,
        "applications": [],
        "compose": [],
        "databases": [],
    }
    for resource in resources:
        try:
            section, entry = await _fetch_entry(api, resource)
        except ApiError as e:
            _log.error("export: %s failed: %s", resource.identity, e.message)
            result.failed += 1
            result.errors.append(f"{resource.name}: {e.message}")
            continue
        data[section].append(entry)
        result.exported += 1

    if result.exported:
        write_document(path, build_document("project", data))
        _log.info("export: wrote %d item(s) to %s", result.exported, path)
    return result


async def export_application(api: Any, resource: Resource, path: str) -> ExportResult:
    if resource.kind is not ResourceKind.APPLICATION:
        raise TransferError("Only applications can be exported on their own")
    detail = await api.fetch_detail(resource.kind, resource.id)
    write_document(path, build_document("application", application_entry(detail)))
    return ExportResult(path=path, exported=1)


class WizardStep(str, Enum):
    SELECT = "select"
    PATH = "path"


@dataclass(frozen=True)
class ExportRequest:
    project: Project
    resources: list[Resource]
    path: str
    single_application: bool = False


class ExportWizard:
    """select → path. Enter on an empty selection does not advance.

    A wizard opened for one application starts (and stays) on the path step
    and yields a single-application request.
    """

    def __init__(self) -> None:
        self.close()

    def close(self) -> None:
        self.is_open = False
        self.step = WizardStep.SELECT
        self.project: Project | None = None
        self.select: MultiSelect[Resource] = MultiSelect([])
        self.path = ""
        self.error: str | None = None
        self.single_application = False

    def open(self, project: Project, resources: list[Resource]) -> None:
        self.close()
        items = [
            SelectItem(id=r.identity, label=f"{r.name} ({r.type_label})", data=r)
            for r in resources
        ]
        self.select = MultiSelect(items, selected=[item.id for item in items])
        self.project = project
        self.path = f"./{project.name}-export.json"
        self.is_open = True

    def open_application(self, project: Project, resource: Resource) -> None:
        if resource.kind is not ResourceKind.APPLICATION:
            raise TransferError("Only applications can be exported on their own")
        self.open(project, [resource])
        self.single_application = True
        self.step = WizardStep.PATH
        self.path = f"./{resource.name}-export.json"

    def set_path(self, text: str) -> None:
        self.path = text
        self.error = None

    def back(self) -> None:
        if self.step is WizardStep.PATH and not self.single_application:
            self.step = WizardStep.SELECT
            self.error = None

    def advance(self) -> ExportRequest | None:
        if not self.is_open or self.project is None:
            return None
        if self.step is WizardStep.SELECT:
            if self.select.selected_count == 0:
                self.error = "Select at least one service"
                return None
            self.error = None
            self.step = WizardStep.PATH
            return None
        try:
            path = resolve_path(self.path)
        except TransferError as e:
            self.error = str(e)
            return None
        return ExportRequest(
            project=self.project,
            resources=[item.data for item in self.select.selected()],
            path=path,
            single_application=self.single_application,
        )


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImportEntry:
    kind: ResourceKind
    name: str
    data: dict = field(hash=False)
    engine: DatabaseEngine | None = None

    @property
    def label(self) -> str:
        tag = self.engine.value if self.engine else self.kind.value
        return f"{self.name} ({tag})"


@dataclass(frozen=True)
class ImportOutcome:
    """Result for one service.

    ``created`` means the remote resource now exists; ``configured`` means
    every follow-up call (settings, env, domains, mounts, ports) succeeded.
    A created-but-unconfigured service is left in place.
    """

    name: str
    created: bool
    configured: bool
    error: str | None = None


@dataclass
class ImportReport:
    outcomes: list[ImportOutcome] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return sum(1 for o in self.outcomes if o.created)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.created)

    @property
    def partial(self) -> int:
        return sum(1 for o in self.outcomes if o.created and not o.configured)

    @property
    def message(self) -> str:
        text = f"Imported {self.imported} service(s)"
        if self.failed:
            text += f", {self.failed} failed"
        if self.partial:
            text += f", {self.partial} partially configured"
        return text

    @property
    def type(self) -> str:
        return "success" if not self.failed and not self.partial else "error"


_SECTIONS = ("applications", "compose", "databases")
_LIST_FIELDS = ("domains", "mounts", "ports")


def check_entry(entry: Any, section: str = "applications") -> dict:
    """Raise ``TransferError`` unless *entry* has the shape the import calls expect."""
    if not isinstance(entry, dict):
        raise TransferError(f"Invalid export file: {section} entry is not an object")
    name = entry.get("name")
    if name is not None and not isinstance(name, str):
        raise TransferError(f"Invalid export file: {section} entry name must be text")
    label = name or section
    for key in _LIST_FIELDS:
        items = entry.get(key)
        if items is None:
            continue
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise TransferError(f"Invalid export file: {key} of {label} must be a list of objects")
    env = entry.get("env")
    if env is not None and not isinstance(env, str):
        raise TransferError(f"Invalid export file: env of {label} must be text")
    return entry


def project_entries(document: dict) -> list[ImportEntry]:
    data = document.get("data") or {}
    for section in _SECTIONS:
        items = data.get(section)
        if items is not None and not isinstance(items, list):
            raise TransferError(f"Invalid export file: {section} must be a list")

    entries: list[ImportEntry] = []
    for app in data.get("applications") or []:
        check_entry(app, "applications")
        entries.append(ImportEntry(ResourceKind.APPLICATION, app.get("name") or "", app))
    for compose in data.get("compose") or []:
        check_entry(compose, "compose")
        entries.append(ImportEntry(ResourceKind.COMPOSE, compose.get("name") or "", compose))
    for db in data.get("databases") or []:
        check_entry(db, "databases")
        try:
            engine = DatabaseEngine(db.get("dbType"))
        except ValueError:
            _log.warning("import: skipping database %r with unknown type %r", db.get("name"), db.get("dbType"))
            continue
        entries.append(ImportEntry(ResourceKind.DATABASE, db.get("name") or "", db, engine))
    return entries


def _app_name(name: str) -> str:
    slug = re.sub(r"[^a-z0-9-]+", "-", name.lower()).strip("-") or "service"
    return f"{slug}-{secrets.token_hex(3)}"


def _compact(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if v is not None}


async def _configure(api: Any, name: str, steps: list[tuple[str, dict]]) -> ImportOutcome:
    for operation, payload in steps:
        try:
            await api.post(operation, _compact(payload))
        except ApiError as e:
            _log.error("import: %s created but %s failed: %s", name, operation, e.message)
            return ImportOutcome(name, created=True, configured=False, error=e.message)
    return ImportOutcome(name, created=True, configured=True)


async def import_application(api: Any, environment: Environment, data: dict) -> ImportOutcome:
    name = data.get("name") or ""
    try:
        created = await api.post(
            "application.create",
            _compact({
                "name": name,
                "appName": _app_name(name),
                "description": data.get("description"),
                "environmentId": environment.environment_id,
            }),
        )
    except ApiError as e:
        _log.error("import: application.create %s failed: %s", name, e.message)
        return ImportOutcome(name, created=False, configured=False, error=e.message)

    app_id = created.get("applicationId") if isinstance(created, dict) else None
    if not app_id:
        return ImportOutcome(name, created=True, configured=False, error="Server returned no applicationId")

    steps: list[tuple[str, dict]] = [
        ("application.update", {
            "applicationId": app_id,
            "buildType": data.get("buildType"),
            "sourceType": data.get("sourceType"),
            "dockerImage": data.get("dockerImage"),
            "dockerfile": data.get("dockerfile"),
            "replicas": data.get("replicas"),
        }),
    ]
    if data.get("env"):
        steps.append(("application.saveEnvironment", {"applicationId": app_id, "env": data["env"]}))
    for domain in data.get("domains") or []:
        steps.append(("domain.create", {"applicationId": app_id, **domain}))
    for mount in data.get("mounts") or []:
        steps.append(("mounts.create", {"serviceId": app_id, "serviceType": "application", **mount}))
    for port in data.get("ports") or []:
        steps.append(("port.create", {"applicationId": app_id, **port}))
    return await _configure(api, name, steps)


async def import_compose(api: Any, environment: Environment, data: dict) -> ImportOutcome:
    name = data.get("name") or ""
    try:
        created = await api.post(
            "compose.create",
            _compact({
                "name": name,
                "appName": _app_name(name),
                "description": data.get("description"),
                "environmentId": environment.environment_id,
                "composeType": data.get("composeType"),
            }),
        )
    except ApiError as e:
        _log.error("import: compose.create %s failed: %s", name, e.message)
        return ImportOutcome(name, created=False, configured=False, error=e.message)

    compose_id = created.get("composeId") if isinstance(created, dict) else None
    if not compose_id:
        return ImportOutcome(name, created=True, configured=False, error="Server returned no composeId")

    steps: list[tuple[str, dict]] = [
        ("compose.update", {
            "composeId": compose_id,
            "sourceType": data.get("sourceType"),
            "composeFile": data.get("composeFile"),
            "composePath": data.get("composePath"),
            "env": data.get("env") or None,
        }),
    ]
    for domain in data.get("domains") or []:
        steps.append(("domain.create", {"composeId": compose_id, **domain}))
    for mount in data.get("mounts") or []:
        steps.append(("mounts.create", {"serviceId": compose_id, "serviceType": "compose", **mount}))
    return await _configure(api, name, steps)


async def import_database(
    api: Any,
    environment: Environment,
    engine: DatabaseEngine,
    data: dict,
) -> ImportOutcome:
    name = data.get("name") or ""
    # exports carry no credentials
    payload = {
        "name": name,
        "appName": _app_name(name),
        "description": data.get("description"),
        "environmentId": environment.environment_id,
        "dockerImage": data.get("dockerImage"),
        "databasePassword": secrets.token_urlsafe(18),
    }
    if engine is not DatabaseEngine.REDIS:
        payload["databaseName"] = data.get("databaseName")
        payload["databaseUser"] = data.get("databaseUser")
    try:
        created = await api.post(f"{engine.value}.create", _compact(payload))
    except ApiError as e:
        _log.error("import: %s.create %s failed: %s", engine.value, name, e.message)
        return ImportOutcome(name, created=False, configured=False, error=e.message)

    id_field = database_id_field(engine)
    db_id = created.get(id_field) if isinstance(created, dict) else None
    steps: list[tuple[str, dict]] = []
    if data.get("env"):
        steps.append((f"{engine.value}.saveEnvironment", {id_field: db_id, "env": data["env"]}))
    for mount in data.get("mounts") or []:
        steps.append(("mounts.create", {"serviceId": db_id, "serviceType": engine.value, **mount}))
    if steps and not db_id:
        return ImportOutcome(name, created=True, configured=False, error=f"Server returned no {id_field}")
    return await _configure(api, name, steps)


async def import_entry(api: Any, environment: Environment, entry: ImportEntry) -> ImportOutcome:
    """Import one service; any failure becomes a failed outcome for that service."""
    try:
        check_entry(entry.data)
        if entry.kind is ResourceKind.APPLICATION:
            return await import_application(api, environment, entry.data)
        if entry.kind is ResourceKind.COMPOSE:
            return await import_compose(api, environment, entry.data)
        return await import_database(api, environment, entry.engine, entry.data)
    except TransferError as e:
        _log.error("import: %s rejected: %s", entry.name, e)
        return ImportOutcome(entry.name, created=False, configured=False, error=str(e))
    except Exception as e:
        _log.exception("import: %s failed: %s", entry.name, e)
        return ImportOutcome(entry.name, created=False, configured=False, error=f"Import of {entry.name} failed: {e}")


async def import_entries(api: Any, environment: Environment, entries: list[ImportEntry]) -> ImportReport:
    """Create every entry independently; nothing is rolled back."""
    report = ImportReport()
    for entry in entries:
        report.outcomes.append(await import_entry(api, environment, entry))
    return report


@dataclass(frozen=True)
class ImportRequest:
    environment: Environment
    entries: list[ImportEntry]
    single_application: bool = False


class ImportWizard:
    """path → select. Application files skip the select step."""

    def __init__(self) -> None:
        self.close()

    def close(self) -> None:
        self.is_open = False
        self.step = WizardStep.PATH
        self.environment: Environment | None = None
        self.select: MultiSelect[ImportEntry] = MultiSelect([])
        self.path = ""
        self.error: str | None = None
        self.source_name = ""

    def open(self, environment: Environment, initial_path: str = "") -> None:
        self.close()
        self.environment = environment
        self.path = initial_path
        self.is_open = True

    def set_path(self, text: str) -> None:
        self.path = text
        self.error = None

    def back(self) -> None:
        if self.step is WizardStep.SELECT:
            self.step = WizardStep.PATH
            self.select = MultiSelect([])
            self.error = None

    def _submit_path(self) -> ImportRequest | None:
        try:
            document = read_export(resolve_path(self.path))
            if document["type"] == "application":
                data = check_entry(document["data"])
                entry = ImportEntry(ResourceKind.APPLICATION, data.get("name") or "", data)
                self.error = None
                return ImportRequest(self.environment, [entry], single_application=True)
            entries = project_entries(document)
        except TransferError as e:
            self.error = str(e)
            return None

        self.error = None
        if not entries:
            self.error = "Export file contains no services"
            return None
        items = [
            SelectItem(id=f"{entry.kind.value}:{idx}", label=entry.label, data=entry)
            for idx, entry in enumerate(entries)
        ]
        self.select = MultiSelect(items, selected=[item.id for item in items])
        self.source_name = document["data"].get("name") or ""
        self.step = WizardStep.SELECT
        return None

    def advance(self) -> ImportRequest | None:
        if not self.is_open or self.environment is None:
            return None
        if self.step is WizardStep.PATH:
            return self._submit_path()
        chosen = self.select.selected()
        if not chosen:
            self.error = "Select at least one service"
            return None
        return ImportRequest(self.environment, [item.data for item in chosen])
