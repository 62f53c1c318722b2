"""Project sidebar and resource table."""

from __future__ import annotations

import logging
from typing import Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import DataTable, Static

from ..models import Environment, Project, Resource
from ..reconcile import index_of

_log = logging.getLogger("dokploy-tui")


# ---------------------------------------------------------------------------
# Status styling helpers
# ---------------------------------------------------------------------------

_STATUS_STYLES: dict[str, str] = {
    "running": "bold #f9e2af",
    "done": "bold #a6e3a1",
    "idle": "dim",
    "error": "bold #f38ba8",
}

_TYPE_STYLES: dict[str, str] = {
    "application": "#89b4fa",
    "compose": "#cba6f7",
}


def status_text(status: str) -> Text:
    return Text(status or "-", style=_STATUS_STYLES.get(status, ""))


def type_text(resource: Resource) -> Text:
    return Text(resource.type_label, style=_TYPE_STYLES.get(resource.type_label, "#94e2d5"))


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class ProjectsPanel(Vertical):
    """Sidebar listing projects; the highlighted row is the active project."""

    def __init__(self) -> None:
        super().__init__(id="projects-panel")
        self._rows: tuple[str, ...] = ()

    def compose(self) -> ComposeResult:
        yield Static("[bold]Projects[/bold]", classes="panel-title")
        yield DataTable(id="projects-table", cursor_type="row", show_header=False)

    def on_mount(self) -> None:
        self.query_one("#projects-table", DataTable).add_column("Name")

    def show(self, projects: Sequence[Project], active: Project | None) -> None:
        table = self.query_one("#projects-table", DataTable)
        rows = tuple(p.project_id for p in projects)
        if rows != self._rows:
            table.clear()
            for project in projects:
                table.add_row(Text(project.name, style="bold"), key=project.project_id)
            self._rows = rows
        if active is not None and active.project_id in rows:
            row = rows.index(active.project_id)
            if table.cursor_row != row:
                table.move_cursor(row=row)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class ResourcesPanel(Vertical):
    """Resources of the active environment."""

    def __init__(self) -> None:
        super().__init__(id="resources-panel")
        self._rows: tuple[Resource, ...] = ()

    def compose(self) -> ComposeResult:
        yield Static("", id="environment-bar", classes="panel-title")
        yield DataTable(id="resources-table", cursor_type="row", zebra_stripes=True)
        yield Static("", id="resource-detail")

    def on_mount(self) -> None:
        table = self.query_one("#resources-table", DataTable)
        table.add_columns("Name", "Type", "Status")

    def resource_for_key(self, key: str | None) -> Resource | None:
        for resource in self._rows:
            if resource.identity == key:
                return resource
        return None

    def show(
        self,
        project: Project | None,
        environment: Environment | None,
        resources: Sequence[Resource],
        active: Resource | None,
    ) -> None:
        self._show_environment(project, environment)

        table = self.query_one("#resources-table", DataTable)
        rows = tuple(resources)
        if rows != self._rows:
            table.clear()
            for resource in rows:
                table.add_row(
                    Text(resource.name, style="bold"),
                    type_text(resource),
                    status_text(resource.status),
                    key=resource.identity,
                )
            self._rows = rows

        row = index_of(rows, active)
        if row is not None and table.cursor_row != row:
            table.move_cursor(row=row)
        self._show_detail(active)

    def _show_environment(self, project: Project | None, environment: Environment | None) -> None:
        bar = self.query_one("#environment-bar", Static)
        if project is None:
            bar.update("No project selected")
            return
        envs = project.environments
        if not envs:
            bar.update(f"[bold]{project.name}[/bold]  [dim]no environments[/dim]")
            return
        parts = []
        for env in envs:
            if environment is not None and env.environment_id == environment.environment_id:
                parts.append(f"[reverse] {env.name} [/reverse]")
            else:
                parts.append(f"[dim]{env.name}[/dim]")
        bar.update(f"[bold]{project.name}[/bold]  " + " ".join(parts))

    def _show_detail(self, resource: Resource | None) -> None:
        detail = self.query_one("#resource-detail", Static)
        if resource is None:
            detail.update("")
            return
        lines = [f"[bold]{resource.name}[/bold] ({resource.type_label})"]
        app_name = resource.data.get("appName")
        if app_name:
            lines.append(f"App name: {app_name}")
        for key in ("buildType", "sourceType", "composeType", "dockerImage"):
            value = resource.data.get(key)
            if value:
                lines.append(f"{key}: {value}")
        if not resource.id:
            lines.append("[bold red]missing identifier[/bold red]")
        detail.update("\n".join(lines))
