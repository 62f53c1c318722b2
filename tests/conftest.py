"""Shared test fixtures."""

import asyncio
import copy
import json

import pytest

from dokploy_tui.api import ApiError
from dokploy_tui.cache import ResourceCache
from dokploy_tui.controller import Controller
from dokploy_tui.models import parse_projects
from dokploy_tui.state import StateStore


def make_projects():
    """Two projects; the first has a production and a staging environment."""
    return [
        {
            "projectId": "p1",
            "name": "Shop",
            "description": "storefront",
            "environments": [
                {
                    "environmentId": "e1",
                    "name": "production",
                    "isDefault": True,
                    "applications": [
                        {"applicationId": "a1", "name": "web", "applicationStatus": "done", "appName": "web-abc"},
                        {"applicationId": "a2", "name": "worker", "applicationStatus": "idle"},
                    ],
                    "compose": [
                        {"composeId": "c1", "name": "stack", "composeStatus": "running"},
                    ],
                    "postgres": [
                        {"postgresId": "pg1", "name": "db", "applicationStatus": "done"},
                    ],
                    "redis": [
                        {"redisId": "rd1", "name": "cache", "applicationStatus": "idle"},
                    ],
                },
                {
                    "environmentId": "e2",
                    "name": "staging",
                    "isDefault": False,
                    "applications": [
                        {"applicationId": "a3", "name": "web-staging", "applicationStatus": "idle"},
                    ],
                },
            ],
        },
        {
            "projectId": "p2",
            "name": "Blog",
            "environments": [
                {"environmentId": "e3", "name": "production", "isDefault": True, "applications": []},
            ],
        },
    ]


class FakeApi:
    """In-memory stand-in for ``DokployClient`` that records every call."""

    def __init__(self, projects=None, details=None, deployments=None):
        self.projects = make_projects() if projects is None else projects
        self.details = details or {}
        self.deployments = deployments or {}
        self.fail_deployments = set()
        self.calls = []
        self.fail_fetch = None
        self.fail_ops = {}
        self.fail_names = set()
        self.fail_details = set()
        self.responses = {}
        self.gate = None
        self.closed = False

    async def fetch_projects(self):
        self.calls.append(("project.all", None))
        if self.fail_fetch:
            raise ApiError(self.fail_fetch)
        return copy.deepcopy(self.projects)

    async def fetch_detail(self, kind, resource_id, engine=None):
        self.calls.append(("detail", resource_id))
        if resource_id in self.fail_details:
            raise ApiError(f"{resource_id} not found", 404)
        return copy.deepcopy(self.details.get(resource_id, {"name": resource_id}))

    async def fetch_deployments(self, application_id):
        self.calls.append(("deployment.all", application_id))
        if application_id in self.fail_deployments:
            raise ApiError("deployments unavailable", 500)
        return copy.deepcopy(self.deployments.get(application_id, []))

    async def dispatch(self, operation, payload):
        return await self.post(operation, payload)

    async def post(self, operation, payload=None):
        self.calls.append((operation, payload))
        if self.gate is not None:
            await self.gate.wait()
        if operation in self.fail_ops:
            raise ApiError(self.fail_ops[operation])
        if payload and payload.get("name") in self.fail_names:
            raise ApiError(f"cannot create {payload['name']}")
        return copy.deepcopy(self.responses.get(operation, {}))

    async def aclose(self):
        self.closed = True

    def operations(self):
        return [op for op, _ in self.calls]


class Clock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class Recorder:
    """Collects ``call_later`` and ``spawn`` requests instead of scheduling them."""

    def __init__(self):
        self.timers = []
        self.spawned = []

    def call_later(self, delay, fn):
        self.timers.append((delay, fn))

    def spawn(self, work):
        self.spawned.append(work)

    def drain(self):
        """Run every spawned coroutine to completion, in order."""
        while self.spawned:
            asyncio.run(self.spawned.pop(0))


@pytest.fixture
def projects():
    return parse_projects(make_projects())


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "currentAlias": "default",
        "servers": {
            "default": {"serverUrl": "https://dokploy.example.com", "apiToken": "tok-1"},
            "staging": {"serverUrl": "https://staging.example.com", "apiToken": "tok-2"},
        },
    }))
    return str(path)


@pytest.fixture
def cache_file(tmp_path):
    return str(tmp_path / "tui-cache.json")


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def apis():
    return {"default": FakeApi(), "staging": FakeApi(projects=[])}


@pytest.fixture
def opened():
    return []


@pytest.fixture
def controller(config_file, cache_file, clock, recorder, apis, opened):
    return Controller(
        StateStore(),
        lambda server: apis[server.alias],
        config_file=config_file,
        cache_file=cache_file,
        call_later=recorder.call_later,
        spawn=recorder.spawn,
        cache_factory=lambda path, alias: ResourceCache(path, alias, clock=clock),
        opener=opened.append,
    )
