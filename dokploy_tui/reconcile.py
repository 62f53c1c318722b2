"""Re-bind the active selection to a freshly fetched tree.

Every refresh replaces the whole tree, so the project, environment and
resource the operator had selected are stale objects afterwards.  These
functions look each one up again by id (or derived identity for resources)
and fall back deterministically when it is gone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .extractor import default_environment, extract_resources
from .models import Environment, Project, Resource


@dataclass(frozen=True)
class Selection:
    project: Project | None = None
    environment: Environment | None = None
    resources: tuple[Resource, ...] = field(default_factory=tuple)
    resource: Resource | None = None


def reconcile_project(projects: Sequence[Project], active: Project | None) -> Project | None:
    if active is not None:
        for project in projects:
            if project.project_id == active.project_id:
                return project
    return projects[0] if projects else None


def reconcile_environment(project: Project | None, active: Environment | None) -> Environment | None:
    if project is None:
        return None
    if active is not None:
        env = project.environment(active.environment_id)
        if env is not None:
            return env
    return default_environment(project)


def reconcile_resource(resources: Sequence[Resource], active: Resource | None) -> Resource | None:
    if active is not None:
        identity = active.identity
        for resource in resources:
            if resource.identity == identity:
                return resource
    return resources[0] if resources else None


def index_of(resources: Sequence[Resource], resource: Resource | None) -> int | None:
    """Cursor row for *resource* in *resources*, matched by identity."""
    if resource is None:
        return None
    for idx, candidate in enumerate(resources):
        if candidate.identity == resource.identity:
            return idx
    return None


def reconcile_selection(
    projects: Sequence[Project],
    project: Project | None,
    environment: Environment | None,
    resource: Resource | None,
) -> Selection:
    """Run project, environment and resource reconciliation in order."""
    new_project = reconcile_project(projects, project)
    new_env = reconcile_environment(new_project, environment)
    if new_env is None:
        return Selection(project=new_project)
    resources = tuple(extract_resources(new_project, new_env.environment_id))
    return Selection(
        project=new_project,
        environment=new_env,
        resources=resources,
        resource=reconcile_resource(resources, resource),
    )
