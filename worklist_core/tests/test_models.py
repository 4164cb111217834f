"""Entity parsing, day keys and the flat worklist codec."""

from datetime import date

import pytest

from worklist_core.models import (
    AssignedTask,
    AssignmentMap,
    CatalogError,
    Schedule,
    StaffMember,
    TaskRule,
    TeamMember,
    day_key_for,
    ensure_day,
    load_catalog,
    previous_day,
)


class TestDayKeys:
    def test_previous_day_wraps(self):
        assert previous_day("sun") == "sat"
        assert previous_day("mon") == "sun"

    def test_day_key_for(self):
        assert day_key_for(date(2024, 12, 1)) == "sun"
        assert day_key_for(date(2024, 12, 6)) == "fri"

    def test_ensure_day(self):
        assert ensure_day("Friday") == "fri"
        assert ensure_day(" MON ") == "mon"
        assert ensure_day("today") == day_key_for(date.today())
        with pytest.raises(ValueError):
            ensure_day("someday")


class TestTaskRule:
    def test_defaults_applied_once(self):
        rule = TaskRule.from_dict({"id": "7", "code": "X", "name": "Thing", "effort": 0, "type": "weird"})
        assert rule.id == 7
        assert rule.effort == 30
        assert rule.type == "general"
        assert rule.frequency == "daily"

    def test_aliases(self):
        rule = TaskRule.from_dict(
            {"id": 1, "title": "Close", "dueTime": "Closing", "fallbackChain": "A|B", "excludedDays": ["Sunday"]}
        )
        assert rule.name == "Close"
        assert rule.due_time == "Closing"
        assert rule.fallback_chain == ("A", "B")
        assert rule.excluded_days == ("sun",)

    def test_needs_id(self):
        with pytest.raises(CatalogError):
            TaskRule.from_dict({"code": "X"})


class TestLoadCatalog:
    rows = [{"id": 1, "code": "A", "name": "First"}, {"id": 1, "code": "B", "name": "Second"}, {"code": "C"}]

    def test_tolerant(self):
        assert [r.name for r in load_catalog(self.rows)] == ["First"]

    def test_strict(self):
        with pytest.raises(CatalogError):
            load_catalog(self.rows, strict=True)


class TestStaffAndTeam:
    def test_missing_days_are_off(self):
        member = StaffMember.from_dict({"name": "Ann", "mon_shift": "7:00AM-3:30PM"})
        assert member.role == "Stock"
        assert member.shift_for("mon") == "7:00AM-3:30PM"
        assert member.shift_for("sat") == "OFF"

    def test_team_member_name_from_parts(self):
        member = TeamMember.from_dict({"member_id": "m1", "first_name": "Jane", "last_name": "Smith"})
        assert (member.id, member.name, member.is_active) == ("m1", "Jane Smith", True)

    def test_add_and_remove_row(self):
        schedule = Schedule(shifts=[StaffMember(name="Ann"), StaffMember(name="Ben")])
        row = schedule.add_row("Cara", "Clerk")
        assert row.is_manual is True
        assert schedule.remove_row("Ann") is True
        assert schedule.remove_row("Ann") is False
        assert [m.name for m in schedule.shifts] == ["Ben", "Cara"]


class TestAssignmentMap:
    def _task(self, rule_id=215, iid="a"):
        return AssignedTask(TaskRule(id=rule_id, code="FLR", name="Sweep"), iid)

    def test_add_guards_duplicates(self):
        amap = AssignmentMap()
        assert amap.add("mon", "Ann", self._task(iid="a")) is True
        assert amap.add("mon", "Ann", self._task(iid="b")) is False
        amap.append("mon", "Ann", self._task(iid="c"))
        assert [t.instance_id for t in amap.tasks_for("mon", "Ann")] == ["a", "c"]

    def test_flat_keys_split_on_first_dash(self):
        amap = AssignmentMap.from_flat(
            {
                "mon-Mary-Kate Olsen": [self._task().to_dict()],
                "noday": [],
                "xyz-Ann": [],
            }
        )
        assert amap.staff_keys("mon") == ["Mary-Kate Olsen"]
        assert amap.to_flat() == {"mon-Mary-Kate Olsen": [self._task().to_dict()]}

    def test_copy_is_deep(self):
        amap = AssignmentMap()
        amap.add("mon", "Ann", self._task())
        clone = amap.copy()
        clone.set_complete("mon", "Ann", "a")
        assert amap.tasks_for("mon", "Ann")[0].is_complete is False

    def test_clear_day_counts_lists(self):
        amap = AssignmentMap()
        amap.add("mon", "Ann", self._task())
        amap.add("mon", "Ben", self._task())
        amap.add("tue", "Ann", self._task())
        assert amap.clear_day("mon") == 2
        assert amap.days() == ["tue"]
