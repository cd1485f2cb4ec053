"""Orchestration of a single lucky draw from request to settled prize."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from ..db.utils import epoch_ms_now, ms_to_datetime
from .cooldown import Clock, CooldownGate
from .dispatch import AnimationDriver, Dispatcher, call_now
from .errors import AlreadySpinning, CooldownActive, NoEligibleVouchers, PersistenceFailure
from .selector import DrawCandidateSet, build_candidates, select_winner
from .spin import SPIN_DURATION_MS, SpinPlan, plan_spin
from .state import SpinResult
from .voucher import Voucher
from .weights import DEFAULT_WEIGHT_TABLE, WeightTable

logger = logging.getLogger(__name__)


class DrawPhase(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    SPINNING = "spinning"
    SETTLING = "settling"


@dataclass(frozen=True)
class PendingSpin:
    """A draw whose winner is decided but whose animation has not finished.

    Attributes
    ----------
    spin_id : str
        Token the completion callback must present to
        :meth:`DrawSession.complete_spin`. Also the draw id committed to the
        cooldown gate, so it is unique across sessions sharing that gate.
    plan : SpinPlan
        Rotation parameters for the animation driver.
    winner : Voucher
        The selected voucher. Only revealed to the user once settled.
    candidates : DrawCandidateSet
        Candidate set in wheel order, as used for this draw.
    """

    spin_id: str
    plan: SpinPlan
    winner: Voucher
    candidates: DrawCandidateSet


class DrawSession:
    """Drive the ``IDLE -> SELECTING -> SPINNING -> SETTLING -> IDLE`` cycle.

    All methods must be called from one control thread. The animation driver
    may finish on another thread; its completion is routed through
    ``dispatch`` so that :meth:`complete_spin` runs back on the control
    thread. Durable state is written only while settling, i.e. after the
    animation has finished.
    """

    def __init__(
        self,
        gate: CooldownGate,
        *,
        weight_table: Optional[WeightTable] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
        driver: Optional[AnimationDriver] = None,
        dispatch: Optional[Dispatcher] = None,
        on_result: Optional[Callable[[SpinResult], None]] = None,
        spin_duration_ms: int = SPIN_DURATION_MS,
    ) -> None:
        """Create a session around ``gate``.

        Parameters
        ----------
        gate : CooldownGate
            Cooldown gate holding the persisted state.
        weight_table : Optional[WeightTable], default: None
            Weight tiers; defaults to :data:`DEFAULT_WEIGHT_TABLE`.
        rng : Optional[random.Random], default: None
            Random source for selection and rotation count.
        clock : Optional[Clock], default: None
            Epoch-millisecond clock. Defaults to the gate's clock semantics
            (wall-clock UTC).
        driver : Optional[AnimationDriver], default: None
            Driver started for every draw. When omitted, the caller animates
            and reports completion through :meth:`complete_spin`.
        dispatch : Optional[Dispatcher], default: None
            Called as ``dispatch(fn, *args)`` to deliver the driver's
            completion onto the control thread, e.g. ``CallbackQueue.post``.
            Defaults to calling immediately.
        on_result : Optional[Callable[[SpinResult], None]], default: None
            Listener notified with every settled prize.
        spin_duration_ms : int, default: SPIN_DURATION_MS
            Animation duration placed in each plan.
        """

        self._gate = gate
        self._table = weight_table or DEFAULT_WEIGHT_TABLE
        self._rng = rng or random.Random()
        self._clock = clock or epoch_ms_now
        self._driver = driver
        self._dispatch = dispatch or call_now
        self._on_result = on_result
        self._spin_duration_ms = spin_duration_ms

        self._phase = DrawPhase.IDLE
        self._candidates: DrawCandidateSet = ()
        self._pending: Optional[PendingSpin] = None

    @property
    def phase(self) -> DrawPhase:
        return self._phase

    @property
    def is_spinning(self) -> bool:
        return self._phase is DrawPhase.SPINNING

    @property
    def candidates(self) -> DrawCandidateSet:
        """Candidate set last built, in wheel segment order."""
        return self._candidates

    @property
    def pending(self) -> Optional[PendingSpin]:
        return self._pending

    @property
    def last_result(self) -> Optional[SpinResult]:
        """The most recently committed prize, as held by the cooldown gate."""
        return self._gate.last_result

    def remaining(self, now: Optional[int] = None) -> int:
        return self._gate.remaining(self._clock() if now is None else now)

    def can_draw(self, now: Optional[int] = None) -> bool:
        return self._phase is DrawPhase.IDLE and self.remaining(now) == 0

    def refresh_candidates(
        self, vouchers: Iterable[Voucher], *, now: Optional[int] = None
    ) -> DrawCandidateSet:
        """Rebuild the candidate set shown on the wheel without drawing.

        Raises
        ------
        AlreadySpinning
            If a spin is in flight; the set is frozen for its duration.
        """

        if self._phase is not DrawPhase.IDLE:
            raise AlreadySpinning("cannot refresh candidates while a draw is in progress")
        current = self._clock() if now is None else now
        self._candidates = build_candidates(
            vouchers, now=ms_to_datetime(current), table=self._table
        )
        return self._candidates

    def start_draw(
        self, vouchers: Iterable[Voucher], *, now: Optional[int] = None
    ) -> PendingSpin:
        """Select a winner among ``vouchers`` and start the spin.

        Parameters
        ----------
        vouchers : Iterable[Voucher]
            Current catalog in wheel order; filtered for eligibility here.
        now : Optional[int], default: None
            Request time in epoch milliseconds; defaults to the clock.

        Returns
        -------
        PendingSpin
            The spin in flight. Settle it with :meth:`complete_spin` unless a
            driver does so.

        Raises
        ------
        AlreadySpinning
            If another draw is in progress.
        CooldownActive
            If the cooldown window has not elapsed.
        NoEligibleVouchers
            If no voucher qualifies; the gate is left untouched.
        """

        if self._phase is not DrawPhase.IDLE:
            raise AlreadySpinning("a draw is already in progress")

        current = self._clock() if now is None else now
        remaining = self._gate.remaining(current)
        if remaining > 0:
            raise CooldownActive(remaining)

        self._phase = DrawPhase.SELECTING
        try:
            candidates = build_candidates(
                vouchers, now=ms_to_datetime(current), table=self._table
            )
            self._candidates = candidates
            if not candidates:
                raise NoEligibleVouchers("no voucher is eligible for a draw right now")
            index = select_winner(candidates, self._rng)
            plan = plan_spin(
                index,
                len(candidates),
                rng=self._rng,
                duration_ms=self._spin_duration_ms,
            )
        except Exception:
            self._phase = DrawPhase.IDLE
            raise

        pending = PendingSpin(
            spin_id=self._gate.new_draw_id(),
            plan=plan,
            winner=candidates[index].voucher,
            candidates=candidates,
        )
        self._pending = pending
        self._phase = DrawPhase.SPINNING
        logger.info(
            "Spin %s started: %d candidates, final angle %.2f deg",
            pending.spin_id,
            len(candidates),
            plan.final_angle_deg,
        )

        if self._driver is not None:
            spin_id = pending.spin_id
            try:
                self._driver.start(
                    plan.final_angle_deg,
                    plan.duration_ms,
                    lambda: self._dispatch(self.complete_spin, spin_id),
                )
            except Exception:
                logger.error("Animation driver failed to start spin %s", spin_id)
                if self._pending is pending:
                    self._pending = None
                    self._phase = DrawPhase.IDLE
                raise
        return pending

    def complete_spin(
        self, spin_id: str, *, now: Optional[int] = None
    ) -> Optional[SpinResult]:
        """Settle the spin identified by ``spin_id``.

        Must run on the control thread. Completions for a spin that is not in
        flight (duplicates, stale ids) are ignored and return ``None``.

        Raises
        ------
        PersistenceFailure
            If the cooldown record could not be written. The session is back
            to IDLE, the gate is Waiting in memory and the prize is available
            as :attr:`last_result`; call :meth:`retry_commit` later.
        """

        pending = self._pending
        if self._phase is not DrawPhase.SPINNING or pending is None or pending.spin_id != spin_id:
            logger.debug("Ignoring completion for spin %r", spin_id)
            return None

        self._phase = DrawPhase.SETTLING
        current = self._clock() if now is None else now
        result = SpinResult(voucher=pending.winner, won_at_ms=current)
        self._pending = None

        failure: Optional[PersistenceFailure] = None
        try:
            self._gate.commit(current, result, draw_id=spin_id)
        except PersistenceFailure as exc:
            failure = exc
        finally:
            self._phase = DrawPhase.IDLE

        logger.info("Spin %s settled on voucher %s", spin_id, result.voucher.id)
        if self._on_result is not None:
            self._on_result(result)
        if failure is not None:
            raise failure
        return result

    def retry_commit(self) -> None:
        """Retry a cooldown write that previously raised :class:`PersistenceFailure`."""
        self._gate.flush()


__all__ = ["DrawPhase", "DrawSession", "PendingSpin"]
