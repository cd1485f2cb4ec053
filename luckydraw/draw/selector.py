"""Candidate set construction and weighted-random winner selection."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from .errors import InvalidState
from .voucher import Voucher
from .weights import DEFAULT_WEIGHT_TABLE, WeightTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeightedVoucher:
    """A candidate voucher together with the weight derived for this draw."""

    voucher: Voucher
    weight: float


# Ordered like the wheel segments; the winner is reported by index.
DrawCandidateSet = Tuple[WeightedVoucher, ...]


def build_candidates(
    vouchers: Iterable[Voucher],
    *,
    now: Optional[datetime] = None,
    table: Optional[WeightTable] = None,
) -> DrawCandidateSet:
    """Filter ``vouchers`` down to eligible candidates and attach weights.

    Source order is preserved. Vouchers that are inactive, outside their
    validity window, out of stock, or whose derived weight is not positive
    are left out.

    Parameters
    ----------
    vouchers : Iterable[Voucher]
        Raw catalog in display order.
    now : Optional[datetime], default: None
        Reference time for the validity check. Defaults to the current UTC time.
    table : Optional[WeightTable], default: None
        Weight table to use. Defaults to :data:`DEFAULT_WEIGHT_TABLE`.

    Returns
    -------
    DrawCandidateSet
        Immutable ordered tuple of :class:`WeightedVoucher`.
    """

    reference = now or datetime.now(timezone.utc)
    active_table = table or DEFAULT_WEIGHT_TABLE

    candidates: list[WeightedVoucher] = []
    seen: set[str] = set()
    for voucher in vouchers:
        if voucher.id in seen:
            logger.warning("Skipping duplicate voucher id %s", voucher.id)
            continue
        seen.add(voucher.id)
        if not voucher.is_eligible(reference):
            continue
        weight = active_table.weight_for(voucher.display_value)
        if not weight > 0:
            logger.warning(
                "Excluding voucher %s: derived weight %r is not positive",
                voucher.id,
                weight,
            )
            continue
        candidates.append(WeightedVoucher(voucher=voucher, weight=weight))

    logger.debug("Built %d draw candidates", len(candidates))
    return tuple(candidates)


def pick_index(candidates: DrawCandidateSet, r: float) -> int:
    """Return the index whose cumulative weight interval contains ``r``.

    Candidate ``i`` owns the half-open interval ``[acc_i, acc_i + weight_i)``.
    When ``r`` falls on or beyond the final cumulative sum the last index is
    returned.
    """

    if not candidates:
        raise InvalidState("cannot select from an empty candidate set")

    acc = 0.0
    for index, candidate in enumerate(candidates):
        acc += candidate.weight
        if r < acc:
            return index

    logger.debug("Cumulative walk exhausted for r=%r; using last candidate", r)
    return len(candidates) - 1


def select_winner(
    candidates: DrawCandidateSet,
    rng: Optional[random.Random] = None,
) -> int:
    """Pick the winning index with probability ``weight / total``.

    Parameters
    ----------
    candidates : DrawCandidateSet
        Non-empty candidate set.
    rng : Optional[random.Random], default: None
        Random source. Pass a seeded :class:`random.Random` for reproducible
        draws; defaults to the module-level generator.

    Raises
    ------
    InvalidState
        If ``candidates`` is empty.
    """

    if not candidates:
        raise InvalidState("cannot select from an empty candidate set")

    source = rng or random
    total = sum(candidate.weight for candidate in candidates)
    r = source.random() * total
    index = pick_index(candidates, r)
    logger.debug("Selected candidate %d of %d (r=%.6f, total=%s)", index, len(candidates), r, total)
    return index


__all__ = [
    "DrawCandidateSet",
    "WeightedVoucher",
    "build_candidates",
    "pick_index",
    "select_winner",
]
