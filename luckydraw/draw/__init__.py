"""The lucky draw engine: weighting, selection, spin planning and cooldown."""

from .cooldown import CooldownGate, DEFAULT_COOLDOWN_MS, format_remaining, iter_countdown
from .dispatch import AnimationDriver, CallbackQueue, TimerAnimationDriver, call_now
from .errors import (
    AlreadySpinning,
    CooldownActive,
    DrawError,
    InvalidState,
    NoEligibleVouchers,
    PersistenceFailure,
)
from .selector import DrawCandidateSet, WeightedVoucher, build_candidates, select_winner
from .session import DrawPhase, DrawSession, PendingSpin
from .spin import SPIN_DURATION_MS, SpinPlan, plan_spin, segment_under_pointer
from .state import CooldownRecord, CooldownState, SpinResult
from .store import CooldownStore, SqlCooldownStore
from .voucher import Voucher, VoucherStatus
from .weights import DEFAULT_WEIGHT_TABLE, WeightTable, WeightTier, weight_for

__all__ = [
    "AlreadySpinning",
    "AnimationDriver",
    "CallbackQueue",
    "CooldownActive",
    "CooldownGate",
    "CooldownRecord",
    "CooldownState",
    "CooldownStore",
    "DEFAULT_COOLDOWN_MS",
    "DEFAULT_WEIGHT_TABLE",
    "DrawCandidateSet",
    "DrawError",
    "DrawPhase",
    "DrawSession",
    "InvalidState",
    "NoEligibleVouchers",
    "PendingSpin",
    "PersistenceFailure",
    "SPIN_DURATION_MS",
    "SpinPlan",
    "SpinResult",
    "SqlCooldownStore",
    "TimerAnimationDriver",
    "Voucher",
    "VoucherStatus",
    "WeightTable",
    "WeightTier",
    "WeightedVoucher",
    "build_candidates",
    "call_now",
    "format_remaining",
    "iter_countdown",
    "plan_spin",
    "segment_under_pointer",
    "select_winner",
    "weight_for",
]
