"""Tests for active-staff resolution, including overnight spillover."""

import pytest

from worklist_core.models import Schedule, StaffMember
from worklist_core.roster import active_staff_for_day
from worklist_core.time_utils import OPEN, OVERNIGHT


def _member(name, role="Stock", **shifts):
    return StaffMember(name=name, role=role, shifts=dict(shifts))


@pytest.fixture
def schedule():
    return Schedule(
        week_period="Test Week",
        shifts=[
            _member("Ann Early", mon="5:00-1:30"),
            _member("Bob Off", role="Cashier", mon="OFF"),
            _member("Cara Night", role="Overnight", sun="10:00PM-6:00AM"),
        ],
    )


class TestActiveStaff:
    def test_off_staff_excluded(self, schedule):
        names = [s.name for s in active_staff_for_day(schedule, "mon")]
        assert "Bob Off" not in names

    def test_spillover_listed_first(self, schedule):
        names = [s.name for s in active_staff_for_day(schedule, "mon")]
        assert names == ["Cara Night", "Ann Early"]

    def test_today_entry_fields(self, schedule):
        ann = next(s for s in active_staff_for_day(schedule, "mon") if s.name == "Ann Early")
        assert ann.category == OPEN
        assert (ann.start, ann.end) == (500, 1330)
        assert ann.is_spillover is False
        assert ann.raw_time == "5:00-1:30"

    def test_nobody_working(self, schedule):
        assert active_staff_for_day(schedule, "thu") == []

    def test_24_hour_shift_for_late_role(self):
        sched = Schedule(shifts=[_member("Dee Till", role="Cashier", mon="06:00-14:30")])
        (dee,) = active_staff_for_day(sched, "mon")
        assert dee.category == OPEN
        assert (dee.start, dee.end) == (600, 1430)
        assert dee.ambiguous is False


class TestSpillover:
    def test_overnight_carries_into_next_day(self):
        sched = Schedule(shifts=[_member("Owl", tue="22:00-06:00")])
        staff = active_staff_for_day(sched, "wed")
        assert len(staff) == 1
        owl = staff[0]
        assert owl.is_spillover is True
        assert owl.category == OVERNIGHT
        assert owl.start == 0
        assert owl.end == 600
        assert owl.label.endswith("(Prev)")

    def test_saturday_overnight_reaches_sunday(self):
        sched = Schedule(shifts=[_member("Owl", sat="11:00PM-7:00AM")])
        staff = active_staff_for_day(sched, "sun")
        assert [s.name for s in staff] == ["Owl"]
        assert staff[0].is_spillover is True

    def test_day_shift_does_not_carry(self):
        sched = Schedule(shifts=[_member("Day", tue="7:00AM-3:30PM")])
        assert active_staff_for_day(sched, "wed") == []

    def test_today_shift_replaces_spillover_in_place(self):
        sched = Schedule(
            shifts=[
                _member("Ann", mon="7:00AM-3:30PM"),
                _member("Owl", sun="11:00PM-7:00AM", mon="11:00PM-7:00AM"),
            ]
        )
        staff = active_staff_for_day(sched, "mon")
        assert [s.name for s in staff] == ["Owl", "Ann"]
        owl = staff[0]
        assert owl.is_spillover is False
        assert owl.start == 2300


class TestAmbiguity:
    def test_ambiguous_parse_is_flagged(self):
        sched = Schedule(shifts=[_member("Cas", role="Cashier", mon="5:00-1:00")])
        cas = active_staff_for_day(sched, "mon")[0]
        assert cas.ambiguous is True
        assert cas.start == 1700

    def test_suffixed_parse_is_not_flagged(self):
        sched = Schedule(shifts=[_member("Cas", role="Cashier", mon="5:00PM-1:00AM")])
        assert active_staff_for_day(sched, "mon")[0].ambiguous is False
