"""Typed views over the Dokploy project tree.

Projects come back from ``project.all`` as nested JSON.  These dataclasses
wrap that payload without copying it: the raw dict stays on ``raw``/``data``
so exports and the cache can round-trip whatever the server sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ResourceKind(str, Enum):
    APPLICATION = "application"
    DATABASE = "database"
    COMPOSE = "compose"


class DatabaseEngine(str, Enum):
    """Database engines, in the order they are listed inside an environment."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    MONGO = "mongo"
    REDIS = "redis"
    MARIADB = "mariadb"


_DB_ID_FIELDS: dict[DatabaseEngine, str] = {
    DatabaseEngine.POSTGRES: "postgresId",
    DatabaseEngine.MYSQL: "mysqlId",
    DatabaseEngine.MONGO: "mongoId",
    DatabaseEngine.REDIS: "redisId",
    DatabaseEngine.MARIADB: "mariadbId",
}


def database_id_field(engine: DatabaseEngine | str) -> str:
    """Return the payload field holding a database's id for *engine*."""
    return _DB_ID_FIELDS[DatabaseEngine(engine)]


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Environment:
    environment_id: str
    name: str
    project_id: str
    is_default: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False, hash=False)

    @classmethod
    def from_dict(cls, data: dict, project_id: str = "") -> Environment:
        return cls(
            environment_id=str(data.get("environmentId") or ""),
            name=str(data.get("name") or ""),
            project_id=str(data.get("projectId") or project_id),
            is_default=bool(data.get("isDefault", False)),
            raw=data,
        )


@dataclass(frozen=True)
class Project:
    project_id: str
    name: str
    description: str | None = None
    environments: tuple[Environment, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, repr=False, hash=False)

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        project_id = str(data.get("projectId") or "")
        envs = tuple(
            Environment.from_dict(env, project_id)
            for env in (data.get("environments") or [])
            if isinstance(env, dict)
        )
        return cls(
            project_id=project_id,
            name=str(data.get("name") or ""),
            description=data.get("description"),
            environments=envs,
            raw=data,
        )

    def environment(self, environment_id: str) -> Environment | None:
        for env in self.environments:
            if env.environment_id == environment_id:
                return env
        return None


def parse_projects(payload: Any) -> list[Project]:
    """Parse a ``project.all`` response, skipping anything that isn't a dict."""
    if not isinstance(payload, list):
        return []
    return [Project.from_dict(p) for p in payload if isinstance(p, dict)]


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Resource:
    """One application, compose stack or database inside an environment."""

    kind: ResourceKind
    id: str
    name: str
    status: str
    project_id: str
    environment_id: str
    engine: DatabaseEngine | None = None
    data: dict[str, Any] = field(default_factory=dict, repr=False, hash=False)

    @property
    def identity(self) -> str:
        return f"{self.kind.value}:{self.id}"

    @property
    def type_label(self) -> str:
        """Engine name for databases, kind otherwise."""
        return self.engine.value if self.engine else self.kind.value

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "projectId": self.project_id,
            "environmentId": self.environment_id,
            "engine": self.engine.value if self.engine else None,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Resource:
        engine = data.get("engine")
        return cls(
            kind=ResourceKind(data["kind"]),
            id=data.get("id", ""),
            name=str(data.get("name") or ""),
            status=data.get("status", ""),
            project_id=data.get("projectId", ""),
            environment_id=data.get("environmentId", ""),
            engine=DatabaseEngine(engine) if engine else None,
            data=data.get("data") or {},
        )
