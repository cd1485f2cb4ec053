"""Value objects describing committed draw state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .voucher import Voucher


@dataclass(frozen=True)
class CooldownState:
    """Cooldown bookkeeping; ``last_draw_at_ms`` is ``None`` before the first draw."""

    last_draw_at_ms: Optional[int] = None
    draw_count: int = 0


@dataclass(frozen=True)
class SpinResult:
    """The voucher won by a settled draw and when it was won."""

    voucher: Voucher
    won_at_ms: int


@dataclass(frozen=True)
class CooldownRecord:
    """Everything written by one commit, persisted as a single record."""

    state: CooldownState
    result: Optional[SpinResult] = None


__all__ = ["CooldownRecord", "CooldownState", "SpinResult"]
