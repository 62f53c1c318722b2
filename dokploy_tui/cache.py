"""Time-bounded snapshot cache for the TUI, partitioned per server alias.

Cache schema (``tui-cache.json``)
---------------------------------
{
  "projects":  { "<alias>": {"data": [...raw project.all...], "timestamp": 1700000000.0} },
  "resources": { "<alias>:<projectId>:<environmentId>": {"data": [...], "timestamp": ...} }
}
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Callable

from .config import config_dir, config_read, config_write
from .models import Resource

_log = logging.getLogger("dokploy-tui")

CACHE_TTL = 5 * 60


def default_cache_file() -> str:
    return os.path.join(config_dir(), "tui-cache.json")


class ResourceCache:
    """Project and resource snapshots keyed by the active server alias."""

    def __init__(
        self,
        cache_file: str,
        alias: str,
        *,
        ttl: float = CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache_file = cache_file
        self.alias = alias
        self._ttl = ttl
        self._clock = clock

    def _is_valid(self, entry: Any) -> bool:
        if not isinstance(entry, dict) or "timestamp" not in entry:
            return False
        try:
            return self._clock() - float(entry["timestamp"]) < self._ttl
        except (TypeError, ValueError):
            return False

    def _get(self, section: str, key: str) -> Any:
        entry = config_read(self._cache_file).get(section, {}).get(key)
        if not self._is_valid(entry):
            return None
        return entry.get("data")

    def _set(self, section: str, key: str, data: Any) -> None:
        cache = config_read(self._cache_file)
        cache.setdefault(section, {})[key] = {"data": data, "timestamp": self._clock()}
        try:
            config_write(self._cache_file, cache)
        except OSError as e:
            _log.warning("cache write failed for %s: %s", self._cache_file, e)

    def _resources_key(self, project_id: str, environment_id: str) -> str:
        return f"{self.alias}:{project_id}:{environment_id}"

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_projects(self) -> list[dict] | None:
        data = self._get("projects", self.alias)
        return data if isinstance(data, list) else None

    def set_projects(self, data: list[dict]) -> None:
        self._set("projects", self.alias, data)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def get_resources(self, project_id: str, environment_id: str) -> list[Resource] | None:
        data = self._get("resources", self._resources_key(project_id, environment_id))
        if not isinstance(data, list):
            return None
        try:
            return [Resource.from_dict(item) for item in data]
        except (KeyError, ValueError) as e:
            _log.warning("discarding malformed resource cache entry: %s", e)
            return None

    def set_resources(self, project_id: str, environment_id: str, resources: list[Resource]) -> None:
        self._set(
            "resources",
            self._resources_key(project_id, environment_id),
            [r.to_dict() for r in resources],
        )

