"""
Unit tests for the milestone schedule.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured

from dj_loyalty.milestones import MilestoneSchedule, threshold_label


class TestThresholdLabel:
    def test_integral_values(self):
        assert threshold_label(Decimal("100.00")) == "100"
        assert threshold_label(Decimal("1E+3")) == "1000"

    def test_fractional_values(self):
        assert threshold_label(Decimal("12.50")) == "12.5"


class TestSchedule:
    def test_default_schedule(self):
        schedule = MilestoneSchedule()
        assert len(schedule) == 5
        assert [m.label for m in schedule] == ["100", "500", "1000", "5000", "10000"]
        assert schedule.milestones[0].bonus_points == Decimal("10")

    def test_custom_schedule_is_sorted(self):
        schedule = MilestoneSchedule({"500": 50, "100": 10})
        assert [m.label for m in schedule] == ["100", "500"]

    def test_invalid_schedule(self):
        with pytest.raises(ImproperlyConfigured):
            MilestoneSchedule({"abc": 1})

    def test_reached_is_inclusive(self):
        schedule = MilestoneSchedule()
        assert [m.label for m in schedule.reached(Decimal("500"))] == ["100", "500"]
        assert schedule.reached(Decimal("99.99")) == []

    def test_bonus_with_multiplier(self):
        schedule = MilestoneSchedule({100: 10})
        assert schedule.bonus_for(schedule.milestones[0], Decimal("2")) == Decimal("20")
        assert schedule.bonus_for(schedule.milestones[0], 0) == Decimal("0")

    def test_next_milestone(self):
        schedule = MilestoneSchedule()
        assert schedule.next_milestone(Decimal("100")).label == "500"
        assert schedule.next_milestone(Decimal("10000")) is None


class TestProgress:
    def test_progress_report(self):
        progress = MilestoneSchedule({100: 10, 500: 50}).progress(Decimal("250"))
        first, second = progress["milestones"]
        assert first["is_reached"] is True
        assert first["progress"] == Decimal("100.00")
        assert second["is_reached"] is False
        assert second["progress"] == Decimal("50.00")
        assert progress["next_milestone"] == Decimal("500")

    def test_progress_with_no_points(self):
        progress = MilestoneSchedule({100: 10}).progress(Decimal("0"))
        assert progress["milestones"][0]["progress"] == Decimal("0.00")
        assert progress["next_milestone"] == Decimal("100")
