"""Tests for export/import and the two-step wizards."""

import asyncio
import json

import pytest
from conftest import FakeApi

from dokploy_tui.extractor import extract_resources
from dokploy_tui.models import DatabaseEngine, Environment, ResourceKind
from dokploy_tui.transfer import (
    ExportWizard,
    ImportEntry,
    ImportWizard,
    TransferError,
    WizardStep,
    build_document,
    export_application,
    export_project,
    import_entries,
    read_export,
    resolve_path,
)

ENV = Environment("e9", "production", "p9")

WEB_DETAIL = {
    "name": "web",
    "buildType": "dockerfile",
    "sourceType": "github",
    "env": "PORT=3000",
    "domains": [{"host": "web.example.com", "port": 3000, "https": True, "secret": "x"}],
    "mounts": [],
    "ports": [{"publishedPort": 8080, "targetPort": 3000}],
    "password": "never-exported",
}


def _write(path, document):
    path.write_text(json.dumps(document))
    return str(path)


def _project_doc():
    return build_document("project", {
        "name": "Shop",
        "applications": [{"name": "web", "env": ""}],
        "compose": [{"name": "stack", "composeType": "docker-compose"}],
        "databases": [{"name": "db", "dbType": "postgres"}, {"name": "odd", "dbType": "oracle"}],
    })


class TestExportWizard:
    def test_empty_selection_does_not_advance(self, projects):
        wizard = ExportWizard()
        wizard.open(projects[0], extract_resources(projects[0]))
        assert wizard.select.selected_count == 5
        assert wizard.path == "./Shop-export.json"

        wizard.select.deselect_all()
        assert wizard.advance() is None
        assert wizard.step is WizardStep.SELECT
        assert wizard.error == "Select at least one service"

    def test_select_then_path(self, projects, tmp_path):
        wizard = ExportWizard()
        wizard.open(projects[0], extract_resources(projects[0]))
        wizard.select.toggle("application:a2")
        assert wizard.advance() is None
        assert wizard.step is WizardStep.PATH

        wizard.set_path("  ")
        assert wizard.advance() is None
        assert wizard.error == "Path required"

        wizard.set_path(str(tmp_path / "out.json"))
        request = wizard.advance()
        assert request.path == str(tmp_path / "out.json")
        assert [r.id for r in request.resources] == ["a1", "c1", "pg1", "rd1"]

    def test_back_keeps_selection(self, projects):
        wizard = ExportWizard()
        wizard.open(projects[0], extract_resources(projects[0]))
        wizard.select.toggle("compose:c1")
        wizard.advance()
        wizard.back()
        assert wizard.step is WizardStep.SELECT
        assert not wizard.select.is_selected("compose:c1")

    def test_single_application_starts_at_path(self, projects, tmp_path):
        resources = extract_resources(projects[0])
        wizard = ExportWizard()
        wizard.open_application(projects[0], resources[0])
        assert wizard.step is WizardStep.PATH
        assert wizard.path == "./web-export.json"
        wizard.back()
        assert wizard.step is WizardStep.PATH

        wizard.set_path(str(tmp_path / "web.json"))
        request = wizard.advance()
        assert request.single_application
        assert [r.id for r in request.resources] == ["a1"]

        with pytest.raises(TransferError):
            wizard.open_application(projects[0], resources[2])


class TestExport:
    def test_project_document(self, projects, tmp_path):
        api = FakeApi(details={"a1": WEB_DETAIL})
        path = str(tmp_path / "shop.json")
        resources = extract_resources(projects[0])

        result = asyncio.run(export_project(api, projects[0], resources, path))
        assert result.exported == 5
        assert result.message == f"Exported 5 service(s) to {path}"

        document = read_export(path)
        assert document["version"] == "1.0"
        assert document["schemaVersion"] == "2.0"
        assert document["type"] == "project"
        data = document["data"]
        assert [a["name"] for a in data["applications"]] == ["web", "a2"]
        assert data["databases"][1]["dbType"] == "redis"
        web = data["applications"][0]
        assert web["domains"] == [{
            "host": "web.example.com",
            "path": None,
            "port": 3000,
            "https": True,
            "certificateType": "none",
        }]
        assert web["ports"][0]["protocol"] == "tcp"
        assert "password" not in web

    def test_partial_failure_is_counted(self, projects, tmp_path):
        api = FakeApi()
        api.fail_details = {"c1"}
        path = str(tmp_path / "shop.json")
        result = asyncio.run(export_project(api, projects[0], extract_resources(projects[0]), path))
        assert (result.exported, result.failed) == (4, 1)
        assert result.message.endswith(", 1 failed")
        assert result.type == "error"

    def test_nothing_exported_writes_nothing(self, projects, tmp_path):
        api = FakeApi()
        api.fail_details = {"a1"}
        path = tmp_path / "shop.json"
        resources = extract_resources(projects[0])[:1]
        result = asyncio.run(export_project(api, projects[0], resources, str(path)))
        assert result.message == "Export failed: web: a1 not found"
        assert not path.exists()

    def test_single_application(self, projects, tmp_path):
        api = FakeApi(details={"a1": WEB_DETAIL})
        path = str(tmp_path / "web.json")
        asyncio.run(export_application(api, extract_resources(projects[0])[0], path))
        document = read_export(path)
        assert document["type"] == "application"
        assert document["data"]["env"] == "PORT=3000"

    def test_single_export_rejects_databases(self, projects, tmp_path):
        db = extract_resources(projects[0])[3]
        with pytest.raises(TransferError):
            asyncio.run(export_application(FakeApi(), db, str(tmp_path / "db.json")))


class TestReadExport:
    def test_missing_file(self, tmp_path):
        with pytest.raises(TransferError, match="File not found"):
            read_export(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{")
        with pytest.raises(TransferError, match="Invalid JSON"):
            read_export(str(path))

    def test_unknown_type(self, tmp_path):
        path = _write(tmp_path / "x.json", {"version": "1.0", "type": "server", "data": {}})
        with pytest.raises(TransferError, match="Invalid export file"):
            read_export(path)

    def test_resolve_path_expands_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert resolve_path("~/a/../b.json") == str(tmp_path / "b.json")


class TestImport:
    def test_one_of_two_fails(self):
        api = FakeApi()
        api.responses["application.create"] = {"applicationId": "new-a"}
        api.fail_names = {"stack"}
        entries = [
            ImportEntry(ResourceKind.APPLICATION, "web", {"name": "web"}),
            ImportEntry(ResourceKind.COMPOSE, "stack", {"name": "stack"}),
        ]
        report = asyncio.run(import_entries(api, ENV, entries))
        assert report.message == "Imported 1 service(s), 1 failed"
        assert report.type == "error"
        create = dict(api.calls)["application.create"]
        assert create["environmentId"] == "e9"
        assert create["appName"].startswith("web-")

    def test_configuration_failure_is_partial(self):
        api = FakeApi()
        api.responses["application.create"] = {"applicationId": "new-a"}
        api.fail_ops["application.saveEnvironment"] = "env too large"
        entry = ImportEntry(ResourceKind.APPLICATION, "web", dict(WEB_DETAIL))
        report = asyncio.run(import_entries(api, ENV, [entry]))

        (outcome,) = report.outcomes
        assert outcome.created and not outcome.configured
        assert outcome.error == "env too large"
        assert report.message == "Imported 1 service(s), 1 partially configured"
        assert "domain.create" not in api.operations()

    def test_full_application_configuration(self):
        api = FakeApi()
        api.responses["application.create"] = {"applicationId": "new-a"}
        entry = ImportEntry(ResourceKind.APPLICATION, "web", dict(WEB_DETAIL))
        report = asyncio.run(import_entries(api, ENV, [entry]))
        assert report.type == "success"
        assert api.operations() == [
            "application.create",
            "application.update",
            "application.saveEnvironment",
            "domain.create",
            "port.create",
        ]
        domain = dict(api.calls)["domain.create"]
        assert domain["applicationId"] == "new-a"

    def test_database_gets_fresh_password(self):
        api = FakeApi()
        api.responses["redis.create"] = {"redisId": "new-r"}
        entry = ImportEntry(ResourceKind.DATABASE, "cache", {"name": "cache", "databaseName": "x"}, DatabaseEngine.REDIS)
        asyncio.run(import_entries(api, ENV, [entry]))
        payload = dict(api.calls)["redis.create"]
        assert payload["databasePassword"]
        assert "databaseName" not in payload

    def test_malformed_entries_fail_without_calls(self):
        api = FakeApi()
        entries = [
            ImportEntry(ResourceKind.APPLICATION, "api", {"name": "api", "domains": ["not-a-dict"]}),
            ImportEntry(ResourceKind.COMPOSE, "stack", {"name": "stack", "mounts": {"path": "/x"}}),
            ImportEntry(ResourceKind.DATABASE, "db", {"name": "db", "env": ["A=1"]}, DatabaseEngine.POSTGRES),
        ]
        report = asyncio.run(import_entries(api, ENV, entries))
        assert report.failed == 3
        assert report.message == "Imported 0 service(s), 3 failed"
        assert all(o.error.startswith("Invalid export file") for o in report.outcomes)
        assert api.calls == []

    def test_unexpected_error_is_one_failed_outcome(self):
        class BrokenApi(FakeApi):
            async def post(self, operation, payload=None):
                raise KeyError(operation)

        api = BrokenApi()
        entry = ImportEntry(ResourceKind.APPLICATION, "web", {"name": "web"})
        report = asyncio.run(import_entries(api, ENV, [entry, entry]))
        assert report.failed == 2
        assert report.outcomes[0].error.startswith("Import of web failed")


class TestImportWizard:
    def test_application_file_skips_selection(self, tmp_path):
        path = _write(tmp_path / "web.json", build_document("application", {"name": "web"}))
        wizard = ImportWizard()
        wizard.open(ENV, path)
        request = wizard.advance()
        assert request.single_application
        assert [e.name for e in request.entries] == ["web"]

    def test_project_file_goes_to_selection(self, tmp_path):
        path = _write(tmp_path / "shop.json", _project_doc())
        wizard = ImportWizard()
        wizard.open(ENV, path)
        assert wizard.advance() is None
        assert wizard.step is WizardStep.SELECT
        assert wizard.source_name == "Shop"
        # the database with an unknown engine is skipped
        assert wizard.select.selected_count == 3

        wizard.select.toggle("compose:1")
        request = wizard.advance()
        assert [e.name for e in request.entries] == ["web", "db"]
        assert not request.single_application

    def test_empty_selection_stays(self, tmp_path):
        path = _write(tmp_path / "shop.json", _project_doc())
        wizard = ImportWizard()
        wizard.open(ENV, path)
        wizard.advance()
        wizard.select.deselect_all()
        assert wizard.advance() is None
        assert wizard.error == "Select at least one service"

    def test_bad_path_reports_error(self, tmp_path):
        wizard = ImportWizard()
        wizard.open(ENV, str(tmp_path / "missing.json"))
        assert wizard.advance() is None
        assert wizard.step is WizardStep.PATH
        assert wizard.error.startswith("File not found")

    def test_non_object_domain_is_rejected(self, tmp_path):
        document = build_document("project", {"applications": [{"name": "api", "domains": ["not-a-dict"]}]})
        wizard = ImportWizard()
        wizard.open(ENV, _write(tmp_path / "bad.json", document))
        assert wizard.advance() is None
        assert wizard.step is WizardStep.PATH
        assert wizard.error == "Invalid export file: domains of api must be a list of objects"

    def test_non_list_section_is_rejected(self, tmp_path):
        document = build_document("project", {"applications": "web"})
        wizard = ImportWizard()
        wizard.open(ENV, _write(tmp_path / "bad.json", document))
        assert wizard.advance() is None
        assert wizard.error == "Invalid export file: applications must be a list"

    def test_application_name_must_be_text(self, tmp_path):
        path = _write(tmp_path / "web.json", build_document("application", {"name": 42}))
        wizard = ImportWizard()
        wizard.open(ENV, path)
        assert wizard.advance() is None
        assert wizard.error == "Invalid export file: applications entry name must be text"

    def test_null_names_are_allowed(self, tmp_path):
        path = _write(tmp_path / "web.json", build_document("application", {"name": None}))
        wizard = ImportWizard()
        wizard.open(ENV, path)
        request = wizard.advance()
        assert [e.name for e in request.entries] == [""]
