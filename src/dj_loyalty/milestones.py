"""
Milestone policy: cumulative-points thresholds that trigger a one-time bonus.

The "already awarded" half of the policy lives in the ledger (a marker
transaction per threshold); this module only answers which thresholds are
reached and what they pay.
"""

from dataclasses import dataclass
from decimal import Decimal

from .conf import loyalty_settings, normalize_thresholds


def threshold_label(threshold):
    """Canonical marker for a threshold: ``Decimal("100.00")`` -> ``"100"``."""
    threshold = Decimal(threshold)
    if threshold == threshold.to_integral_value():
        return str(threshold.quantize(Decimal("1")))
    return str(threshold.normalize())


@dataclass(frozen=True)
class Milestone:
    threshold: Decimal
    bonus_points: Decimal

    @property
    def label(self):
        return threshold_label(self.threshold)


class MilestoneSchedule:
    """Ordered threshold -> bonus mapping."""

    def __init__(self, thresholds=None):
        if thresholds is None:
            pairs = loyalty_settings.MILESTONE_THRESHOLDS
        else:
            pairs = normalize_thresholds(thresholds)
        self.milestones = [Milestone(threshold, bonus) for threshold, bonus in pairs]

    def __iter__(self):
        return iter(self.milestones)

    def __len__(self):
        return len(self.milestones)

    def reached(self, points):
        """Milestones whose threshold the cumulative points reach, lowest first."""
        return [m for m in self.milestones if points >= m.threshold]

    def bonus_for(self, milestone, multiplier):
        return milestone.bonus_points * Decimal(multiplier)

    def next_milestone(self, points):
        for milestone in self.milestones:
            if points < milestone.threshold:
                return milestone
        return None

    def progress(self, points):
        rows = []
        for milestone in self.milestones:
            percent = min(Decimal("100"), points / milestone.threshold * 100)
            rows.append(
                {
                    "threshold": milestone.threshold,
                    "bonus_points": milestone.bonus_points,
                    "is_reached": points >= milestone.threshold,
                    "progress": percent.quantize(Decimal("0.01")),
                }
            )
        upcoming = self.next_milestone(points)
        return {
            "total_points": points,
            "milestones": rows,
            "next_milestone": upcoming.threshold if upcoming else None,
        }
