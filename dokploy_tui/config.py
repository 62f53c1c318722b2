"""Server alias + credential lookup from the Dokploy config file.

Config schema
-------------
{
  "currentAlias": "default",       // alias used when none is given
  "servers": {
    "default": {
      "serverUrl": "https://dokploy.example.com",
      "apiToken": "xxx",
      "defaultProjectId": "prj-1"  // optional
    }
  }
}

The file lives in ``$DOKPLOY_CONFIG_DIR`` (default ``~/.config/dokploy``) and
is shared with the non-interactive CLI.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass

_log = logging.getLogger("dokploy-tui")

DEFAULT_ALIAS = "default"


class ConfigError(Exception):
    """Raised for config lookups that cannot be satisfied."""


@dataclass(frozen=True)
class ServerConfig:
    alias: str
    server_url: str
    api_token: str
    default_project_id: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.server_url and self.api_token)


@dataclass(frozen=True)
class ServerInfo:
    alias: str
    server_url: str
    is_current: bool


def config_dir() -> str:
    return os.environ.get("DOKPLOY_CONFIG_DIR") or os.path.join(
        os.path.expanduser("~"), ".config", "dokploy"
    )


def default_config_file() -> str:
    return os.path.join(config_dir(), "config.json")


def config_read(config_file: str) -> dict:
    """Read and parse the config file. Returns dict or empty dict."""
    try:
        with open(config_file, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        _log.warning("config_read: invalid JSON in %s: %s", config_file, e)
        return {}
    return data if isinstance(data, dict) else {}


def config_write(config_file: str, data: dict) -> None:
    """Write config data to the config file."""
    os.makedirs(os.path.dirname(config_file) or ".", exist_ok=True)
    with open(config_file, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def get_current_alias(config_file: str) -> str:
    cfg = config_read(config_file)
    return cfg.get("currentAlias") or DEFAULT_ALIAS


def set_current_alias(config_file: str, alias: str) -> None:
    cfg = config_read(config_file)
    if alias not in (cfg.get("servers") or {}):
        raise ConfigError(f'Server alias "{alias}" not found')
    cfg["currentAlias"] = alias
    config_write(config_file, cfg)


def get_server_config(config_file: str, alias: str | None = None) -> ServerConfig:
    """Return the server entry for *alias* (default: current alias).

    A missing entry comes back unconfigured rather than raising, so the API
    client can report "not authenticated" the same way for both cases.
    """
    cfg = config_read(config_file)
    alias = alias or cfg.get("currentAlias") or DEFAULT_ALIAS
    entry = (cfg.get("servers") or {}).get(alias) or {}
    return ServerConfig(
        alias=alias,
        server_url=entry.get("serverUrl", ""),
        api_token=entry.get("apiToken", ""),
        default_project_id=entry.get("defaultProjectId"),
    )


def list_server_aliases(config_file: str) -> list[ServerInfo]:
    cfg = config_read(config_file)
    current = cfg.get("currentAlias") or DEFAULT_ALIAS
    return [
        ServerInfo(alias=alias, server_url=entry.get("serverUrl", ""), is_current=alias == current)
        for alias, entry in (cfg.get("servers") or {}).items()
    ]
