"""Durable once-per-period rate limiting for the lucky draw."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Hashable, Iterator, Optional

from ..db.utils import epoch_ms_now
from .errors import PersistenceFailure
from .state import CooldownRecord, CooldownState, SpinResult
from .store import CooldownStore

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_MS = 24 * 60 * 60 * 1000

Clock = Callable[[], int]


class CooldownGate:
    """Two-state gate (Ready / Waiting) driven by elapsed wall-clock time.

    The gate reads its record from ``store`` once, on construction. After that
    the in-memory state is authoritative: :meth:`commit` updates it first and
    then writes it through. A failed write leaves the gate Waiting, keeps the
    record pending and raises :class:`PersistenceFailure`; :meth:`flush`
    retries it.
    """

    def __init__(
        self,
        store: CooldownStore,
        *,
        clock: Optional[Clock] = None,
        cooldown_ms: int = DEFAULT_COOLDOWN_MS,
    ) -> None:
        """Create a gate bound to ``store``.

        Parameters
        ----------
        store : CooldownStore
            Durable storage for the cooldown record.
        clock : Optional[Clock], default: None
            Callable returning the current time in epoch milliseconds.
        cooldown_ms : int, default: DEFAULT_COOLDOWN_MS
            Length of the waiting period after each committed draw.
        """

        if cooldown_ms < 0:
            raise ValueError("cooldown_ms must not be negative")
        self._store = store
        self._clock = clock or epoch_ms_now
        self.cooldown_ms = cooldown_ms

        record = store.load()
        self._state = record.state if record is not None else CooldownState()
        self._result = record.result if record is not None else None
        self._pending: Optional[CooldownRecord] = None
        self._committed_ids: set[Hashable] = set()

    @property
    def state(self) -> CooldownState:
        return self._state

    @property
    def last_result(self) -> Optional[SpinResult]:
        """The most recently committed prize, surviving restarts."""
        return self._result

    @property
    def has_pending_write(self) -> bool:
        return self._pending is not None

    def new_draw_id(self) -> str:
        """Return a fresh draw identifier, unique across sessions sharing this gate."""
        return uuid.uuid4().hex

    def remaining(self, now: Optional[int] = None) -> int:
        """Milliseconds until the next draw is allowed; ``0`` when Ready.

        A clock that moved backwards never yields more than ``cooldown_ms``.
        """
        last = self._state.last_draw_at_ms
        if last is None:
            return 0
        current = self._clock() if now is None else now
        elapsed = current - last
        return min(self.cooldown_ms, max(0, self.cooldown_ms - elapsed))

    def can_draw(self, now: Optional[int] = None) -> bool:
        return self.remaining(now) == 0

    def commit(
        self,
        now: Optional[int] = None,
        result: Optional[SpinResult] = None,
        *,
        draw_id: Hashable,
    ) -> CooldownState:
        """Record a completed draw and persist it.

        Parameters
        ----------
        now : Optional[int], default: None
            Commit time in epoch milliseconds; defaults to the clock.
        result : Optional[SpinResult], default: None
            Prize stored in the same record as the cooldown state.
        draw_id : Hashable
            Identifier of the draw being committed, normally obtained from
            :meth:`new_draw_id`. A commit carrying an id that was already
            committed does not count again; it only retries a pending write.

        Returns
        -------
        CooldownState
            The state after the commit.

        Raises
        ------
        PersistenceFailure
            If the record could not be written. The in-memory state has
            already transitioned.
        """

        if draw_id is None:
            raise ValueError("draw_id is required to commit a draw")
        if draw_id in self._committed_ids:
            logger.debug("Draw %r already committed; not counting it again", draw_id)
            self.flush()
            return self._state

        current = self._clock() if now is None else now
        self._state = CooldownState(
            last_draw_at_ms=current,
            draw_count=self._state.draw_count + 1,
        )
        self._result = result
        self._committed_ids.add(draw_id)
        self._pending = CooldownRecord(state=self._state, result=self._result)
        logger.debug(
            "Committed draw %r at %d (draw_count=%d)",
            draw_id,
            current,
            self._state.draw_count,
        )
        self.flush()
        return self._state

    def flush(self) -> None:
        """Write the pending record, if any. Raises :class:`PersistenceFailure`."""
        if self._pending is None:
            return
        try:
            self._store.save(self._pending)
        except PersistenceFailure:
            logger.error("Cooldown record write failed; keeping it pending for retry")
            raise
        self._pending = None

    def reset(self) -> None:
        """Forget every committed draw, in memory and in storage (logout)."""
        self._store.clear()
        self._state = CooldownState()
        self._result = None
        self._pending = None
        self._committed_ids.clear()


def format_remaining(remaining_ms: int) -> str:
    """Render a countdown as ``"{h}h {m}m {s}s"``."""
    remaining_ms = max(0, int(remaining_ms))
    hours = remaining_ms // 3_600_000
    minutes = (remaining_ms % 3_600_000) // 60_000
    seconds = (remaining_ms % 60_000) // 1000
    return f"{hours}h {minutes}m {seconds}s"


def iter_countdown(
    gate: CooldownGate,
    *,
    interval_s: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[int]:
    """Poll ``gate.remaining()`` every ``interval_s`` seconds.

    Yields the remaining milliseconds on every tick and stops right after
    yielding ``0``.
    """

    while True:
        remaining = gate.remaining()
        yield remaining
        if remaining == 0:
            return
        sleep(interval_s)


__all__ = [
    "Clock",
    "CooldownGate",
    "DEFAULT_COOLDOWN_MS",
    "format_remaining",
    "iter_countdown",
]
