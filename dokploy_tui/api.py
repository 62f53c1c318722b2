"""Async client for the Dokploy HTTP API."""

from __future__ import annotations

import logging
import ssl
from typing import Any

import certifi
import httpx

from .models import DatabaseEngine, ResourceKind, database_id_field

_log = logging.getLogger("dokploy-tui")

TIMEOUT = 10
SSL_CONTEXT = ssl.create_default_context(cafile=certifi.where())


class ApiError(Exception):
    """Any failed API call: missing credentials, HTTP error, or transport error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DokployClient:
    """Thin wrapper around ``httpx.AsyncClient`` for one server."""

    def __init__(
        self,
        server_url: str,
        api_token: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = TIMEOUT,
    ) -> None:
        self._server_url = (server_url or "").rstrip("/")
        self._api_token = api_token or ""
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=SSL_CONTEXT,
            transport=transport,
        )

    @property
    def server_url(self) -> str:
        return self._server_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> Any:
        if not self._server_url or not self._api_token:
            raise ApiError("Not authenticated. Run `dokploy auth login` first.", 401)

        url = f"{self._server_url}/api/{endpoint.lstrip('/')}"
        _log.debug("API %s %s", method, url)
        try:
            resp = await self._client.request(
                method,
                url,
                params=params,
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "x-api-key": self._api_token,
                },
            )
        except httpx.HTTPError as e:
            _log.error("API transport error for %s: %s", url, e)
            raise ApiError(f"Could not reach server: {e}") from e

        _log.debug("API response %s %s", resp.status_code, url)
        if resp.is_error:
            message = f"API request failed: {resp.status_code} {resp.reason_phrase}"
            try:
                data = resp.json()
                if isinstance(data, dict) and data.get("message"):
                    message = data["message"]
            except ValueError:
                pass
            _log.error("API HTTP %s for %s: %s", resp.status_code, url, message)
            raise ApiError(message, resp.status_code)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {endpoint}") from e

    async def get(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, body: Any = None) -> Any:
        return await self.request("POST", endpoint, body=body)

    # ------------------------------------------------------------------
    # Typed operations
    # ------------------------------------------------------------------

    async def fetch_projects(self) -> list[dict]:
        data = await self.get("project.all")
        if not isinstance(data, list):
            raise ApiError("Unexpected response from project.all")
        return data

    async def fetch_detail(
        self,
        kind: ResourceKind,
        resource_id: str,
        engine: DatabaseEngine | None = None,
    ) -> dict:
        router, id_field = detail_route(kind, engine)
        return await self.get(f"{router}.one", {id_field: resource_id})

    async def fetch_deployments(self, application_id: str) -> list[dict]:
        """Deployments of one application, newest first."""
        data = await self.get("deployment.all", {"applicationId": application_id})
        if not isinstance(data, list):
            raise ApiError("Unexpected response from deployment.all")
        return data

    async def dispatch(self, operation: str, payload: dict) -> Any:
        return await self.post(operation, payload)


def detail_route(kind: ResourceKind, engine: DatabaseEngine | None = None) -> tuple[str, str]:
    """Return ``(router, id_field)`` for a resource kind."""
    if kind is ResourceKind.APPLICATION:
        return "application", "applicationId"
    if kind is ResourceKind.COMPOSE:
        return "compose", "composeId"
    if engine is None:
        raise ValueError("database resources need an engine")
    return engine.value, database_id_field(engine)
