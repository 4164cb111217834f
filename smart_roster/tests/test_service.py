"""WorklistService: confirmation gating, manual edits, team sync, catalog edits."""

from __future__ import annotations

import itertools

import pytest

from smart_roster.service import MANUAL_CODE, WorklistService
from smart_roster.storage import AutoSaver, FileRepository
from worklist_core.models import AssignedTask, Schedule, StaffMember, TaskRule, TeamMember


def _ids():
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture
def repo(tmp_path):
    repo = FileRepository(tmp_path)
    repo.save_schedule(
        Schedule(
            week_period="Week 42",
            shifts=[
                StaffMember(name="Powell, Marlon", role="Lead", shifts={"mon": "5:00AM-1:30PM"}),
                StaffMember(name="Cooley, Sandra K", role="Stock", shifts={"mon": "7:00AM-3:30PM"}),
                StaffMember(name="OHare, Barry", role="Clerk", shifts={"mon": "2:00PM-10:30PM"}),
            ],
        )
    )
    return repo


@pytest.fixture
def service(repo):
    return WorklistService(repo, id_factory=_ids())


class TestAutoDistribute:
    def test_requires_confirmation(self, service, repo):
        out = service.auto_distribute("mon")
        assert out["status"] == "confirmation_required"
        assert out["staff_count"] == 3
        assert repo.get_assignments().days() == []

    def test_no_staff_reported_before_confirmation(self, service):
        out = service.auto_distribute("sun")
        assert out["status"] == "no_staff"
        assert "check the schedule" in out["message"].lower()

    def test_confirmed_run_saves(self, service, repo):
        out = service.auto_distribute("mon", confirm=True, date_of_month=1)
        assert out["status"] == "completed"
        assert out["message"].startswith(f"Distributed {out['tasks_assigned']} tasks across 3 staff")
        saved = repo.get_assignments()
        assert sorted(saved.staff_keys("mon")) == ["Cooley, Sandra K", "OHare, Barry", "Powell, Marlon"]
        assert service.last_result is not None

    def test_empty_catalog_gap_fills(self, service, repo):
        repo.save_catalog([])
        out = service.auto_distribute("Monday", confirm=True, date_of_month=1)
        assert out["status"] == "no_rules"
        assert "frequency" in out["message"]
        assert out["tasks_assigned"] == 3

    def test_ambiguous_shift_flagged_in_message(self, service, repo):
        service.replace_schedule(Schedule(shifts=[StaffMember(name="Ann", role="Stock", shifts={"mon": "5:00-1:30"})]))
        out = service.auto_distribute("mon", confirm=True, date_of_month=1)
        assert out["ambiguous_staff"] == ["Ann"]
        assert "Check AM/PM for: Ann" in out["message"]

    def test_failure_keeps_existing(self, service, repo, monkeypatch):
        service.add_manual_task("mon", "Cooley, Sandra K", "Call vendor")
        before = repo.get_assignments()

        def broken():
            raise RuntimeError("catalog unreadable")

        monkeypatch.setattr(repo, "get_catalog", broken)
        out = service.auto_distribute("mon", confirm=True)
        assert out["status"] == "failed"
        assert "catalog unreadable" in out["message"]
        assert repo.get_assignments() == before
        assert service.last_result is None

    def test_clear_day(self, service, repo):
        service.auto_distribute("mon", confirm=True, date_of_month=1)
        assert service.clear_day("mon")["status"] == "confirmation_required"
        out = service.clear_day("mon", confirm=True)
        assert out == {"status": "cleared", "day": "mon", "worklists_removed": 3}
        assert repo.get_assignments().staff_keys("mon") == []


class TestTaskEdits:
    def test_manual_tasks_stack(self, service, repo):
        service.add_manual_task("mon", "OHare, Barry", "Call vendor")
        service.add_manual_task("mon", "OHare, Barry", "Order bags", effort=15)
        tasks = repo.get_assignments().tasks_for("mon", "OHare, Barry")
        assert [t.rule.name for t in tasks] == ["Call vendor", "Order bags"]
        assert all(t.rule.code == MANUAL_CODE for t in tasks)
        assert tasks[1].effort == 15

    def test_manual_requires_text(self, service):
        with pytest.raises(ValueError):
            service.add_manual_task("mon", "OHare, Barry", "   ")

    def test_move_and_delete(self, service, repo):
        task = service.add_manual_task("mon", "OHare, Barry", "Call vendor")
        service.move_task("mon", "OHare, Barry", "Cooley, Sandra K", task.instance_id)
        amap = repo.get_assignments()
        assert amap.tasks_for("mon", "OHare, Barry") == []
        assert [t.instance_id for t in amap.tasks_for("mon", "Cooley, Sandra K")] == [task.instance_id]

        service.delete_task("mon", "Cooley, Sandra K", task.instance_id)
        assert repo.get_assignments().tasks_for("mon", "Cooley, Sandra K") == []

    def test_toggle_complete(self, service, repo):
        task = service.add_manual_task("mon", "OHare, Barry", "Call vendor")
        assert service.toggle_complete("mon", "OHare, Barry", task.instance_id).is_complete is True
        assert service.toggle_complete("mon", "OHare, Barry", task.instance_id).is_complete is False

    def test_unknown_instance(self, service):
        with pytest.raises(KeyError):
            service.delete_task("mon", "OHare, Barry", "missing")

    def test_worklist_display_order(self, service):
        service.add_manual_task("mon", "OHare, Barry", "Call vendor")
        service.auto_distribute("mon", confirm=True, date_of_month=1)
        service.add_manual_task("mon", "OHare, Barry", "Order bags")
        barry = next(w for w in service.worklists("mon") if w["name"] == "OHare, Barry")
        types = [t["type"] for t in barry["tasks"]]
        assert types[0] == "skilled"
        assert types[-1] == "manual"
        assert barry["load_minutes"] == sum(t["effort"] for t in barry["tasks"])


class TestRoster:
    def test_set_shift_debounced(self, repo):
        saver = AutoSaver(repo.save_schedule, delay_s=60)
        service = WorklistService(repo, schedule_saver=saver)

        service.set_shift("OHare, Barry", "tue", "6:00AM-2:30PM")
        assert repo.get_schedule().find("OHare, Barry").shift_for("tue") == "OFF"
        assert service.schedule().find("OHare, Barry").shift_for("tue") == "6:00AM-2:30PM"

        service.flush()
        assert repo.get_schedule().find("OHare, Barry").shift_for("tue") == "6:00AM-2:30PM"

    def test_set_shift_direct_save(self, service, repo):
        service.set_shift("OHare, Barry", "mon", "")
        assert repo.get_schedule().find("OHare, Barry").shift_for("mon") == "OFF"

    def test_set_shift_unknown_row(self, service):
        with pytest.raises(KeyError):
            service.set_shift("Nobody", "mon", "OFF")

    def test_describe_staff(self, service):
        rows = service.describe_staff("mon")
        assert [r["name"] for r in rows] == ["Powell, Marlon", "Cooley, Sandra K", "OHare, Barry"]
        assert rows[0]["category"] == "Open"
        assert (rows[0]["start"], rows[0]["end"]) == ("05:00", "13:30")
        assert (rows[2]["start"], rows[2]["end"]) == ("14:00", "22:30")

    def test_add_team_to_schedule(self, service, repo):
        repo.save_team(
            [
                TeamMember(id="m1", name="Powell, Marlon", role="Lead"),
                TeamMember(id="m2", name="Nash, Deb A", role="Clerk"),
                TeamMember(id="m3", name="Gone, Former", is_active=False),
            ]
        )
        assert service.add_team_to_schedule() == ["Nash, Deb A"]
        row = repo.get_schedule().find("Nash, Deb A")
        assert row.id == "m2"
        assert row.shift_for("mon") == "OFF"

    def test_import_schedule_to_team(self, service, repo):
        repo.save_team([TeamMember(id="m1", name="powell, marlon")])
        assert service.import_schedule_to_team() == ["Cooley, Sandra K", "OHare, Barry"]
        assert len(repo.get_team()) == 3

    def test_add_staff_row(self, service, repo):
        service.add_staff_row("Nash, Deb A", "Clerk")
        row = repo.get_schedule().find("Nash, Deb A")
        assert (row.role, row.is_manual, row.shift_for("mon")) == ("Clerk", True, "OFF")
        with pytest.raises(ValueError):
            service.add_staff_row("Nash, Deb A")

    def test_remove_staff_row_keeps_worklists(self, service, repo):
        service.auto_distribute("mon", confirm=True, date_of_month=1)
        before = repo.get_assignments().tasks_for("mon", "OHare, Barry")
        assert before

        assert service.remove_staff_row("OHare, Barry") is True
        assert repo.get_schedule().find("OHare, Barry") is None
        assert repo.get_assignments().tasks_for("mon", "OHare, Barry") == before
        assert service.remove_staff_row("OHare, Barry") is False

    def test_remove_row_keeps_pending_cell_edit(self, repo):
        saver = AutoSaver(repo.save_schedule, delay_s=60)
        service = WorklistService(repo, schedule_saver=saver)
        service.set_shift("OHare, Barry", "tue", "6:00AM-2:30PM")
        service.remove_staff_row("Cooley, Sandra K")

        assert saver.pending is False
        stored = repo.get_schedule()
        assert stored.find("Cooley, Sandra K") is None
        assert stored.find("OHare, Barry").shift_for("tue") == "6:00AM-2:30PM"


class TestAssistantHooks:
    def test_adopt_ai_tasks_goes_to_lead(self, service, repo):
        rules = [TaskRule(id=8000, code="AI", name="Wipe scale"), TaskRule(id=8001, code="AI", name="Face apples")]
        out = service.adopt_ai_tasks("mon", rules)
        assert out == {"assigned_to": "Powell, Marlon", "count": 2}
        assert len(repo.get_assignments().tasks_for("mon", "Powell, Marlon")) == 2

    def test_adopt_ai_tasks_without_staff(self, service):
        with pytest.raises(ValueError):
            service.adopt_ai_tasks("sun", [])

    def test_huddle(self, service):
        calls = []

        def fake(day_label, headcount, focus):
            calls.append((day_label, headcount, focus))
            return "Let's go."

        out = service.huddle("mon", fake)
        assert out["headcount"] == 3
        assert out["script"] == "Let's go."
        assert calls[0][0] == "Monday"
        assert len(out["focus_areas"]) == 3


class TestCatalogEdits:
    def test_upsert_new_and_existing(self, service, repo):
        service.upsert_rule({"id": 700, "code": "NEW", "name": "New Task", "effort": 25})
        service.upsert_rule({"id": 700, "code": "NEW", "name": "Renamed Task"})
        matches = [r for r in repo.get_catalog() if r.id == 700]
        assert [r.name for r in matches] == ["Renamed Task"]

    def test_fallback_editing(self, service):
        rule = service.add_fallback(206, "Cooley, Sandra K")
        assert rule.fallback_chain == ("Cooley, Sandra K",)
        assert service.add_fallback(206, "Cooley, Sandra K").fallback_chain == ("Cooley, Sandra K",)
        assert service.remove_fallback(206, 0).fallback_chain == ()
        with pytest.raises(IndexError):
            service.remove_fallback(206, 0)

    def test_delete_rule(self, service, repo):
        assert service.delete_rule(206) is True
        assert service.delete_rule(206) is False
        assert all(r.id != 206 for r in repo.get_catalog())

    def test_unknown_rule(self, service):
        with pytest.raises(KeyError):
            service.add_fallback(123456, "Anyone")


def test_manual_task_survives_in_other_day(service, repo):
    service.add_manual_task("tue", "OHare, Barry", "Call vendor")
    service.auto_distribute("mon", confirm=True, date_of_month=1)
    tasks = repo.get_assignments().tasks_for("tue", "OHare, Barry")
    assert [t.rule.name for t in tasks] == ["Call vendor"]
    assert isinstance(tasks[0], AssignedTask)
