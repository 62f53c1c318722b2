"""Tests for the single-slot action executor."""

import asyncio

import pytest
from conftest import FakeApi, Recorder

from dokploy_tui.actions import MESSAGE_TTL, ActionExecutor, action_request
from dokploy_tui.models import DatabaseEngine, Resource, ResourceKind
from dokploy_tui.state import StateStore

APP = Resource(ResourceKind.APPLICATION, "a1", "web", "done", "p1", "e1")
STACK = Resource(ResourceKind.COMPOSE, "c1", "stack", "running", "p1", "e1")
CACHE = Resource(ResourceKind.DATABASE, "rd1", "cache", "idle", "p1", "e1", DatabaseEngine.REDIS)


class Harness:
    def __init__(self, resource=APP):
        self.store = StateStore()
        self.store.set_resource(resource)
        self.api = FakeApi()
        self.recorder = Recorder()
        self.refreshes = 0
        self.executor = ActionExecutor(
            self.store,
            lambda: self.api,
            self.refresh,
            self.recorder.call_later,
        )

    async def refresh(self):
        self.refreshes += 1


class TestActionRequest:
    def test_application(self):
        assert action_request(APP, "deploy") == ("application.deploy", {"applicationId": "a1"})
        assert action_request(APP, "restart") == ("application.reload", {"applicationId": "a1"})

    def test_compose(self):
        assert action_request(STACK, "restart") == ("compose.redeploy", {"composeId": "c1"})

    def test_database_uses_engine_router(self):
        assert action_request(CACHE, "stop") == ("redis.stop", {"redisId": "rd1"})
        assert action_request(CACHE, "delete") == ("redis.remove", {"redisId": "rd1"})

    def test_unknown_verb(self):
        with pytest.raises(ValueError):
            action_request(APP, "explode")


class TestActionExecutor:
    def test_success_notifies_then_refreshes(self):
        h = Harness()
        assert asyncio.run(h.executor.run("deploy")) is True

        assert h.api.calls == [("application.deploy", {"applicationId": "a1"})]
        assert h.refreshes == 1
        msg = h.store.state.action_message
        assert (msg.text, msg.type) == ("Deployed web", "success")
        assert h.store.state.action_running is None

    def test_failure_skips_refresh(self):
        h = Harness()
        h.api.fail_ops["application.stop"] = "Application is locked"
        assert asyncio.run(h.executor.run("stop")) is False

        assert h.refreshes == 0
        msg = h.store.state.action_message
        assert (msg.text, msg.type) == ("Application is locked", "error")
        assert h.store.state.action_running is None

    def test_second_action_while_running_is_rejected(self):
        h = Harness()

        async def scenario():
            h.api.gate = asyncio.Event()
            first = asyncio.create_task(h.executor.run("deploy"))
            await asyncio.sleep(0)
            assert h.store.state.action_running == "Deploying..."

            assert await h.executor.run("stop") is False
            h.api.gate.set()
            return await first

        assert asyncio.run(scenario()) is True
        assert h.api.operations() == ["application.deploy"]

    def test_explicit_resource_wins_over_selection(self):
        h = Harness(APP)
        assert asyncio.run(h.executor.run("restart", CACHE)) is True
        assert h.api.calls == [("redis.reload", {"redisId": "rd1"})]
        assert h.store.state.active_resource is APP
        assert h.store.state.action_message.text == "Restarted cache"

    def test_missing_identifier_never_dispatches(self):
        h = Harness(Resource(ResourceKind.APPLICATION, "", "ghost", "idle", "p1", "e1"))
        assert asyncio.run(h.executor.run("deploy")) is False
        assert h.api.calls == []
        assert h.store.state.action_message.type == "error"

    def test_no_resource(self):
        h = Harness(None)
        assert asyncio.run(h.executor.run("deploy")) is False
        assert h.api.calls == []

    def test_message_expires_unless_replaced(self):
        h = Harness()
        h.executor.notify("first")
        h.executor.notify("second")
        (delay, expire_first), (_, expire_second) = h.recorder.timers
        assert delay == MESSAGE_TTL

        expire_first()
        assert h.store.state.action_message.text == "second"
        expire_second()
        assert h.store.state.action_message is None
