"""MCP tool functions over a file-backed service."""

from __future__ import annotations

import json

import pytest

from smart_roster import mcp_server
from smart_roster.service import WorklistService
from smart_roster.storage import FileRepository
from worklist_core.models import Schedule, StaffMember


@pytest.fixture
def service(tmp_path, monkeypatch):
    monkeypatch.setenv("SMART_ROSTER_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("SMART_ROSTER_BACKEND", raising=False)
    repo = FileRepository(tmp_path)
    repo.save_schedule(
        Schedule(
            shifts=[
                StaffMember(name="Essix, Solomon", shifts={"mon": "4:00AM-12:30PM"}),
                StaffMember(name="OHare, Barry", role="Clerk", shifts={"mon": "2:00PM-10:30PM"}),
            ]
        )
    )
    svc = WorklistService(repo)
    monkeypatch.setattr(mcp_server, "_SERVICE", svc)
    return svc


def test_distribute_writes_summary(service, tmp_path):
    assert mcp_server.auto_distribute("mon")["status"] == "confirmation_required"

    out = mcp_server.auto_distribute("mon", confirm=True, date_of_month=1)
    assert out["status"] == "completed"
    summary = json.loads((tmp_path / "reports" / "mon" / "summary.json").read_text(encoding="utf-8"))
    assert summary["tasks_assigned"] == out["tasks_assigned"]
    assert out["summary_path"].endswith("summary.json")


def test_manual_edit_round(service):
    task = mcp_server.add_manual_task("mon", "OHare, Barry", "Call vendor")
    moved = mcp_server.move_task("mon", "OHare, Barry", "Essix, Solomon", task["instanceId"])
    assert moved["name"] == "Call vendor"
    done = mcp_server.toggle_task_complete("mon", "Essix, Solomon", task["instanceId"])
    assert done["isComplete"] is True


def test_list_rules_by_type(service):
    rules = mcp_server.list_rules("shift_based")
    assert rules
    assert {r["type"] for r in rules} == {"shift_based"}


def test_edit_fallback_needs_an_action(service):
    with pytest.raises(ValueError):
        mcp_server.edit_fallback(206)


def test_bundle_tools(service, tmp_path):
    path = tmp_path / "backup.json"
    mcp_server.export_bundle(str(path))
    assert mcp_server.import_bundle(str(path))["adopted"][0] == "schedule"


def test_roster_row_tools_keep_worklists(service):
    added = mcp_server.add_roster_row("Nash, Deb A", "Clerk")
    assert added["name"] == "Nash, Deb A"
    task = mcp_server.add_manual_task("mon", "OHare, Barry", "Call vendor")

    assert mcp_server.remove_roster_row("OHare, Barry") == {"name": "OHare, Barry", "removed": True}
    names = [row["name"] for row in mcp_server.get_schedule()["shifts"]]
    assert names == ["Essix, Solomon", "Nash, Deb A"]
    assert service.assignments().tasks_for("mon", "OHare, Barry")[0].instance_id == task["instanceId"]
    assert mcp_server.remove_roster_row("OHare, Barry")["removed"] is False


class TestHttpApp:
    @pytest.fixture
    def client(self, monkeypatch):
        from starlette.testclient import TestClient

        monkeypatch.delenv("SMART_ROSTER_BACKEND", raising=False)
        return TestClient(mcp_server._build_http_app("s3cret"))

    def test_health_is_open(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "backend": "file"}

    def test_missing_or_wrong_token_rejected(self, client):
        assert client.post("/mcp", json={}).status_code == 401
        assert client.post("/mcp", json={}, headers={"Authorization": "Bearer nope"}).status_code == 401
        assert client.post("/mcp", json={}, headers={"Authorization": "Basic s3cret"}).status_code == 401
