"""Dashboard URLs for projects and resources, and the platform URL opener."""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess

from .models import Project, Resource, ResourceKind

_log = logging.getLogger("dokploy-tui")


class BrowserError(Exception):
    """No usable URL for the selection, or no way to open one."""


def _base(server_url: str) -> str:
    if not server_url or not server_url.startswith("http"):
        raise BrowserError("Invalid server URL")
    return server_url.rstrip("/")


def project_url(server_url: str, project: Project) -> str:
    """The project's first environment, or the dashboard when it has none."""
    base = _base(server_url)
    if not project.environments:
        return f"{base}/dashboard"
    env = project.environments[0]
    return f"{base}/dashboard/project/{project.project_id}/environment/{env.environment_id}"


def resource_url(server_url: str, resource: Resource) -> str:
    base = _base(server_url)
    if resource.kind is ResourceKind.DATABASE:
        if not resource.id or resource.engine is None:
            raise BrowserError(f"Database ID not found for type: {resource.type_label}")
        service = resource.engine.value
    else:
        if not resource.id:
            raise BrowserError(f"{resource.name} has no {resource.kind.value} ID")
        service = resource.kind.value
    return (
        f"{base}/dashboard/project/{resource.project_id}"
        f"/environment/{resource.environment_id}/services/{service}/{resource.id}"
    )


def open_url(url: str) -> None:
    """Open *url* in the default browser without waiting for it."""
    opener = "open" if platform.system() == "Darwin" else "xdg-open"
    if not shutil.which(opener):
        raise BrowserError(f"Failed to open browser: {opener} not found")
    _log.info("opening %s", url)
    try:
        subprocess.Popen(
            [opener, url],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise BrowserError(f"Failed to open browser: {e.strerror or e}") from e
