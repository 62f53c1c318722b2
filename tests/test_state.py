"""Tests for the state store and its exclusivity rules."""

from dokploy_tui.models import DatabaseEngine, Resource, ResourceKind
from dokploy_tui.state import AppState, StateStore, visible_resources

APP = Resource(ResourceKind.APPLICATION, "a1", "web", "done", "p1", "e1")
DB = Resource(ResourceKind.DATABASE, "pg1", "db", "done", "p1", "e1", DatabaseEngine.POSTGRES)


class TestStateStore:
    def test_equal_update_does_not_notify(self):
        store = StateStore()
        seen = []
        store.subscribe(seen.append)

        store.set_loading(False)
        assert seen == []

        store.set_loading(True)
        assert len(seen) == 1
        assert seen[0].is_loading is True

        store.unsubscribe(seen.append)
        store.set_loading(False)
        assert len(seen) == 1

    def test_snapshots_are_immutable(self):
        store = StateStore()
        before = store.state
        store.set_error("boom")
        assert before.error is None
        assert store.state.error == "boom"

    def test_running_and_message_are_exclusive(self):
        store = StateStore()
        store.set_action_message("Deployed web", "success")
        store.set_action_running("Stopping...")
        assert store.state.action_message is None
        assert store.state.action_running == "Stopping..."

        store.set_action_message("Stopped web", "success")
        assert store.state.action_running is None
        assert store.state.action_message.text == "Stopped web"

    def test_expire_message_only_clears_matching_seq(self):
        store = StateStore()
        first = store.set_action_message("one").action_message.seq
        store.set_action_message("two")

        store.expire_message(first)
        assert store.state.action_message.text == "two"

        store.expire_message(store.state.action_message.seq)
        assert store.state.action_message is None

    def test_active_app_tracks_resource_kind(self):
        store = StateStore()
        store.set_resource(APP)
        assert store.state.active_app is APP
        store.set_resource(DB)
        assert store.state.active_resource is DB
        assert store.state.active_app is None

    def test_clearing_project_clears_dependents(self):
        store = StateStore(AppState(resources=(APP,), active_resource=APP, active_app=APP))
        store.set_project(None)
        state = store.state
        assert state.active_environment is None
        assert state.resources == ()
        assert state.active_resource is None
        assert state.active_app is None


class TestConfirmGate:
    def test_single_pending_slot(self):
        store = StateStore()
        assert store.request_confirm("Delete web?", lambda: "first")
        assert not store.request_confirm("Delete db?", lambda: "second")
        assert store.state.pending_confirm.message == "Delete web?"

        assert store.confirm() == "first"
        assert store.state.pending_confirm is None
        assert store.confirm() is None

    def test_cancel_never_runs_callback(self):
        store = StateStore()
        ran = []
        store.request_confirm("Delete web?", lambda: ran.append(True))
        store.cancel_confirm()
        assert store.state.pending_confirm is None
        assert store.confirm() is None
        assert ran == []


class TestVisibleResources:
    def test_filters_only_with_query(self):
        state = AppState(resources=(APP, DB))
        assert visible_resources(state) == (APP, DB)
        assert visible_resources(AppState(resources=(APP, DB), search_query="postgres")) == (DB,)
