"""Flatten one environment of a project tree into typed resources."""

from __future__ import annotations

from .models import (
    DatabaseEngine,
    Environment,
    Project,
    Resource,
    ResourceKind,
    database_id_field,
)


def default_environment(project: Project | None) -> Environment | None:
    """The environment flagged default, else the first one, else None."""
    if project is None or not project.environments:
        return None
    for env in project.environments:
        if env.is_default:
            return env
    return project.environments[0]


def _items(raw: dict, key: str) -> list[dict]:
    return [item for item in (raw.get(key) or []) if isinstance(item, dict)]


def environment_resources(env: Environment) -> list[Resource]:
    """Applications, then compose stacks, then databases in engine order."""
    resources: list[Resource] = []

    for app in _items(env.raw, "applications"):
        resources.append(
            Resource(
                kind=ResourceKind.APPLICATION,
                id=str(app.get("applicationId") or ""),
                name=str(app.get("name") or ""),
                status=str(app.get("applicationStatus") or ""),
                project_id=env.project_id,
                environment_id=env.environment_id,
                data=app,
            )
        )

    for compose in _items(env.raw, "compose"):
        resources.append(
            Resource(
                kind=ResourceKind.COMPOSE,
                id=str(compose.get("composeId") or ""),
                name=str(compose.get("name") or ""),
                status=str(compose.get("composeStatus") or ""),
                project_id=env.project_id,
                environment_id=env.environment_id,
                data=compose,
            )
        )

    for engine in DatabaseEngine:
        id_field = database_id_field(engine)
        for db in _items(env.raw, engine.value):
            resources.append(
                Resource(
                    kind=ResourceKind.DATABASE,
                    id=str(db.get(id_field) or ""),
                    name=str(db.get("name") or ""),
                    status=str(db.get("applicationStatus") or ""),
                    project_id=env.project_id,
                    environment_id=env.environment_id,
                    engine=engine,
                    data=db,
                )
            )

    return resources


def extract_resources(project: Project | None, environment_id: str | None = None) -> list[Resource]:
    """Resources of a single environment of *project*.

    ``environment_id=None`` means the default environment.  An id that is not
    part of the project yields an empty list rather than falling back, so a
    caller never sees resources from an environment it did not ask for.
    """
    if project is None:
        return []
    if environment_id is None:
        env = default_environment(project)
    else:
        env = project.environment(environment_id)
    if env is None:
        return []
    return environment_resources(env)
