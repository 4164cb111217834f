"""Tests for day filtering and priority ordering of catalog rules."""

from worklist_core.models import TaskRule
from worklist_core.rules import priority_sort, rules_active_on, skip_reason


def _rule(rule_id, code="GEN", **kwargs):
    return TaskRule(id=rule_id, code=code, name=f"Rule {rule_id}", **kwargs)


class TestDayFilter:
    def test_daily_always_live(self):
        assert skip_reason(_rule(1), "mon", 3) is None

    def test_excluded_day(self):
        rule = _rule(1, excluded_days=("mon", "tue"))
        assert rules_active_on([rule], "mon", 1) == []
        assert rules_active_on([rule], "wed", 1) == [rule]

    def test_weekly_defaults_to_friday(self):
        rule = _rule(1, frequency="weekly")
        assert rules_active_on([rule], "mon", 1) == []
        assert rules_active_on([rule], "fri", 1) == [rule]

    def test_weekly_named_day(self):
        rule = _rule(1, frequency="weekly", frequency_day="tue")
        assert rules_active_on([rule], "tue", 1) == [rule]
        assert rules_active_on([rule], "fri", 1) == []

    def test_monthly_matches_date(self):
        rule = _rule(1, frequency="monthly", frequency_date=15)
        assert rules_active_on([rule], "mon", 15) == [rule]
        assert rules_active_on([rule], "mon", 16) == []

    def test_monthly_without_date_never_live(self):
        rule = _rule(1, frequency="monthly")
        assert skip_reason(rule, "mon", 1) == "monthly without a date"

    def test_exclusion_beats_weekly_match(self):
        rule = _rule(1, frequency="weekly", frequency_day="fri", excluded_days=("fri",))
        assert rules_active_on([rule], "fri", 1) == []


class TestPrioritySort:
    def test_pinned_then_front_of_house_then_rest(self):
        rules = [
            _rule(500, code="ZZZ"),
            _rule(501, code="T9"),
            _rule(110, code="SAFE"),
            _rule(502, code="wr2"),
            _rule(503, code="ABC"),
        ]
        ordered = [r.id for r in priority_sort(rules)]
        assert ordered == [110, 501, 502, 500, 503]

    def test_stable_within_rank(self):
        rules = [_rule(i, code="X") for i in (9, 3, 7)]
        assert [r.id for r in priority_sort(rules)] == [9, 3, 7]

    def test_custom_pins(self):
        rules = [_rule(1, code="A"), _rule(2, code="B")]
        assert [r.id for r in priority_sort(rules, pinned_ids=(2,))] == [2, 1]
