"""
Tier policy: an ordered, static table of loyalty ranks.

Pure functions over configuration; nothing here touches the database.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import models
from django.utils.translation import gettext_lazy as _

from .conf import loyalty_settings, normalize_multipliers


class Tier(models.TextChoices):
    BRONZE = "bronze", _("Bronze")
    SILVER = "silver", _("Silver")
    GOLD = "gold", _("Gold")
    PLATINUM = "platinum", _("Platinum")


@dataclass(frozen=True)
class TierLevel:
    name: str
    min_points: Decimal
    multiplier: Decimal
    next_tier: Optional[str] = None

    @property
    def is_terminal(self):
        return self.next_tier is None

    def as_dict(self):
        return {
            "tier": self.name,
            "min_points": self.min_points,
            "multiplier": self.multiplier,
            "next_tier": self.next_tier,
        }


class TierPolicy:
    """
    Ordered tier table: bronze < silver < gold < platinum.

    ``multipliers`` lets a user or business override the earning multiplier of
    individual tiers without touching the thresholds.
    """

    def __init__(self, table=None, multipliers=None):
        table = table if table is not None else loyalty_settings.TIERS
        multipliers = normalize_multipliers(multipliers) if multipliers else {}
        names = [row[0] for row in table]
        levels = []
        for index, (name, min_points, multiplier) in enumerate(table):
            if name in multipliers:
                multiplier = multipliers[name]
            next_tier = names[index + 1] if index + 1 < len(names) else None
            levels.append(
                TierLevel(
                    name=name,
                    min_points=Decimal(str(min_points)),
                    multiplier=Decimal(str(multiplier)),
                    next_tier=next_tier,
                )
            )
        self._levels = {level.name: level for level in levels}
        self._order = names

    @property
    def levels(self):
        return [self._levels[name] for name in self._order]

    @property
    def lowest(self):
        return self._levels[self._order[0]]

    def level(self, tier):
        try:
            return self._levels[str(tier)]
        except KeyError:
            raise ValueError(f"Unknown tier: {tier!r}") from None

    def next_level(self, tier):
        current = self.level(tier)
        if current.is_terminal:
            return None
        return self._levels[current.next_tier]

    def rank(self, tier):
        return self._order.index(self.level(tier).name)

    def tier_for_points(self, points):
        """Highest tier whose threshold the cumulative points reach (inclusive)."""
        reached = self.lowest
        for level in self.levels:
            if points >= level.min_points:
                reached = level
        return reached

    def shortfall(self, tier, points):
        """Points still missing to reach the tier after ``tier``; zero when reached or terminal."""
        upcoming = self.next_level(tier)
        if upcoming is None:
            return Decimal("0")
        return max(Decimal("0"), upcoming.min_points - points)

    def can_upgrade(self, tier, points):
        upcoming = self.next_level(tier)
        return upcoming is not None and points >= upcoming.min_points

    def status(self, tier, points):
        current = self.level(tier)
        return {
            "current_tier": current.name,
            "current_multiplier": current.multiplier,
            "total_points": points,
            "next_tier": current.next_tier,
            "points_to_next_tier": self.shortfall(tier, points),
            "tiers": [level.as_dict() for level in self.levels],
        }
