"""Weight tiers mapping a voucher's discount to its draw weight."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class WeightTier:
    """A single tier of a :class:`WeightTable`.

    Attributes
    ----------
    min_value : float
        Smallest display value (inclusive) that falls into this tier.
    weight : float
        Draw weight assigned to vouchers in this tier.
    """

    min_value: float
    weight: float


class WeightTable:
    """Discrete, exhaustive lookup from display value to draw weight.

    Tiers are checked from the highest ``min_value`` down; any value below
    every tier, including negative values and NaN, receives ``floor_weight``.
    Bigger discounts are expected to carry smaller weights so that they are
    rarer.
    """

    def __init__(self, tiers: Iterable[WeightTier], *, floor_weight: float) -> None:
        ordered = sorted(tiers, key=lambda tier: tier.min_value, reverse=True)
        thresholds = [tier.min_value for tier in ordered]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError("weight tiers must have distinct min_value thresholds")
        self._tiers: Tuple[WeightTier, ...] = tuple(ordered)
        self._floor_weight = floor_weight

    @property
    def tiers(self) -> Tuple[WeightTier, ...]:
        """Tiers ordered by descending threshold."""
        return self._tiers

    @property
    def floor_weight(self) -> float:
        return self._floor_weight

    def weight_for(self, display_value: float) -> float:
        """Return the draw weight for a voucher worth ``display_value``."""
        for tier in self._tiers:
            if display_value >= tier.min_value:
                return tier.weight
        return self._floor_weight


DEFAULT_WEIGHT_TABLE = WeightTable(
    [
        WeightTier(min_value=50, weight=5),
        WeightTier(min_value=30, weight=10),
        WeightTier(min_value=20, weight=15),
        WeightTier(min_value=10, weight=25),
    ],
    floor_weight=45,
)


def weight_for(display_value: float) -> float:
    """Look ``display_value`` up in :data:`DEFAULT_WEIGHT_TABLE`."""
    return DEFAULT_WEIGHT_TABLE.weight_for(display_value)


__all__ = ["DEFAULT_WEIGHT_TABLE", "WeightTable", "WeightTier", "weight_for"]
