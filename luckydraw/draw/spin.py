"""Geometry of the wheel spin: where to stop and how long to take."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

FULL_TURN_DEG = 360.0
MIN_FULL_ROTATIONS = 5
MAX_FULL_ROTATIONS = 7
SPIN_DURATION_MS = 3000


@dataclass(frozen=True)
class SpinPlan:
    """Rotation parameters handed to the animation driver.

    Attributes
    ----------
    winner_index : int
        Index of the winning segment in candidate order.
    segment_angle_deg : float
        Angular width of one segment.
    target_angle_deg : float
        Centre of the winning segment, measured from the reference used to
        render segment 0.
    full_rotation_count : int
        Whole turns performed before settling.
    final_angle_deg : float
        Total clockwise rotation to apply to the wheel.
    duration_ms : int
        Animation duration; constant regardless of distance.
    """

    winner_index: int
    segment_angle_deg: float
    target_angle_deg: float
    full_rotation_count: int
    final_angle_deg: float
    duration_ms: int


def plan_spin(
    winner_index: int,
    candidate_count: int,
    *,
    rng: Optional[random.Random] = None,
    full_rotation_count: Optional[int] = None,
    duration_ms: int = SPIN_DURATION_MS,
) -> SpinPlan:
    """Compute the rotation that brings ``winner_index`` under the pointer.

    The pointer is fixed at 0 degrees and the wheel turns. Rotating by
    ``360 - target`` (plus whole turns) moves the centre of the winning
    segment onto the pointer.

    Parameters
    ----------
    winner_index : int
        Index of the winning candidate.
    candidate_count : int
        Number of segments on the wheel.
    rng : Optional[random.Random], default: None
        Random source for the number of full rotations.
    full_rotation_count : Optional[int], default: None
        Fix the number of full rotations instead of drawing one in
        ``[MIN_FULL_ROTATIONS, MAX_FULL_ROTATIONS]``.
    duration_ms : int, default: SPIN_DURATION_MS
        Animation duration.

    Raises
    ------
    ValueError
        If ``candidate_count`` is not positive, ``winner_index`` is out of
        range, or ``full_rotation_count`` is below one.
    """

    if candidate_count <= 0:
        raise ValueError("candidate_count must be positive")
    if not 0 <= winner_index < candidate_count:
        raise ValueError(
            f"winner_index {winner_index} is out of range for {candidate_count} segments"
        )

    if full_rotation_count is None:
        source = rng or random
        full_rotation_count = source.randint(MIN_FULL_ROTATIONS, MAX_FULL_ROTATIONS)
    elif full_rotation_count < 1:
        raise ValueError("full_rotation_count must be at least 1")

    segment = FULL_TURN_DEG / candidate_count
    target = winner_index * segment + segment / 2
    final = full_rotation_count * FULL_TURN_DEG + (FULL_TURN_DEG - target)

    plan = SpinPlan(
        winner_index=winner_index,
        segment_angle_deg=segment,
        target_angle_deg=target,
        full_rotation_count=full_rotation_count,
        final_angle_deg=final,
        duration_ms=duration_ms,
    )
    logger.debug("Planned spin %s", plan)
    return plan


def segment_under_pointer(final_angle_deg: float, candidate_count: int) -> int:
    """Return the segment index that rests under the pointer after a rotation."""

    if candidate_count <= 0:
        raise ValueError("candidate_count must be positive")
    segment = FULL_TURN_DEG / candidate_count
    resting = (-final_angle_deg) % FULL_TURN_DEG
    return min(int(math.floor(resting / segment)), candidate_count - 1)


__all__ = [
    "FULL_TURN_DEG",
    "MAX_FULL_ROTATIONS",
    "MIN_FULL_ROTATIONS",
    "SPIN_DURATION_MS",
    "SpinPlan",
    "plan_spin",
    "segment_under_pointer",
]
