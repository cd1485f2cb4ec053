from __future__ import annotations

import random
import threading
import unittest
from datetime import date
from typing import Callable, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from luckydraw.draw import (
    AlreadySpinning,
    CallbackQueue,
    CooldownActive,
    CooldownGate,
    CooldownRecord,
    DEFAULT_COOLDOWN_MS,
    DrawPhase,
    DrawSession,
    NoEligibleVouchers,
    PersistenceFailure,
    SpinResult,
    SqlCooldownStore,
    TimerAnimationDriver,
    Voucher,
    VoucherStatus,
    segment_under_pointer,
)
from luckydraw.models import Base

# 2026-10-18T12:00:00Z
NOW = 1_792_324_800_000


class MemoryStore:
    def __init__(self) -> None:
        self.record: Optional[CooldownRecord] = None
        self.saves = 0
        self.fail_saves = 0

    def load(self) -> Optional[CooldownRecord]:
        return self.record

    def save(self, record: CooldownRecord) -> None:
        if self.fail_saves:
            self.fail_saves -= 1
            raise PersistenceFailure("storage unavailable")
        self.record = record
        self.saves += 1

    def clear(self) -> None:
        self.record = None


class FakeClock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class RecordingDriver:
    """Driver that remembers the completion callbacks instead of animating."""

    def __init__(self) -> None:
        self.calls: list[tuple[float, int, Callable[[], None]]] = []

    def start(self, final_angle_deg, duration_ms, on_complete) -> None:
        self.calls.append((final_angle_deg, duration_ms, on_complete))


class ExplodingDriver:
    def start(self, final_angle_deg, duration_ms, on_complete) -> None:
        raise RuntimeError("renderer gone")


def catalog() -> list[Voucher]:
    window = dict(valid_from=date(2026, 10, 1), valid_to=date(2026, 10, 31))
    return [
        Voucher(id="5", display_value=5, name="5% off", **window),
        Voucher(id="10", display_value=10, name="10% off", **window),
        Voucher(id="old", display_value=20, valid_from=date(2025, 1, 1), valid_to=date(2025, 2, 1)),
        Voucher(id="20", display_value=20, name="20% off", **window),
        Voucher(id="off", display_value=30, status=VoucherStatus.INACTIVE, **window),
        Voucher(id="50", display_value=50, name="50% off", stock=2, **window),
    ]


class DrawSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(NOW)
        self.store = MemoryStore()
        self.gate = CooldownGate(self.store, clock=self.clock)
        self.results: list[SpinResult] = []
        self.session = DrawSession(
            self.gate,
            rng=random.Random(42),
            clock=self.clock,
            on_result=self.results.append,
        )

    def test_full_cycle_commits_only_after_completion(self) -> None:
        self.assertEqual(self.session.phase, DrawPhase.IDLE)
        pending = self.session.start_draw(catalog())

        self.assertEqual(self.session.phase, DrawPhase.SPINNING)
        self.assertTrue(self.session.is_spinning)
        self.assertEqual([c.voucher.id for c in pending.candidates], ["5", "10", "20", "50"])
        self.assertIs(pending.winner, pending.candidates[pending.plan.winner_index].voucher)
        self.assertEqual(
            segment_under_pointer(pending.plan.final_angle_deg, len(pending.candidates)),
            pending.plan.winner_index,
        )
        self.assertEqual(self.store.saves, 0)
        self.assertTrue(self.gate.can_draw(NOW))

        self.clock.now = NOW + 3000
        result = self.session.complete_spin(pending.spin_id)

        assert result is not None
        self.assertEqual(result.voucher, pending.winner)
        self.assertEqual(result.won_at_ms, NOW + 3000)
        self.assertEqual(self.session.phase, DrawPhase.IDLE)
        self.assertEqual(self.store.saves, 1)
        self.assertEqual(self.gate.state.draw_count, 1)
        self.assertEqual(self.session.last_result, result)
        self.assertEqual(self.results, [result])
        self.assertFalse(self.session.can_draw())
        self.assertEqual(self.session.remaining(), DEFAULT_COOLDOWN_MS)

    def test_rejects_draw_while_spinning(self) -> None:
        self.session.start_draw(catalog())
        with self.assertRaises(AlreadySpinning):
            self.session.start_draw(catalog())
        with self.assertRaises(AlreadySpinning):
            self.session.refresh_candidates(catalog())

    def test_rejects_draw_during_cooldown(self) -> None:
        pending = self.session.start_draw(catalog())
        self.session.complete_spin(pending.spin_id)

        self.clock.now = NOW + DEFAULT_COOLDOWN_MS - 1
        with self.assertRaises(CooldownActive) as ctx:
            self.session.start_draw(catalog())
        self.assertEqual(ctx.exception.remaining_ms, 1)
        self.assertEqual(self.session.phase, DrawPhase.IDLE)

        self.clock.now = NOW + DEFAULT_COOLDOWN_MS
        self.session.start_draw(catalog())
        self.assertTrue(self.session.is_spinning)

    def test_empty_catalog_leaves_gate_untouched(self) -> None:
        for vouchers in ([], [v for v in catalog() if v.id in {"old", "off"}]):
            with self.subTest(count=len(vouchers)):
                with self.assertRaises(NoEligibleVouchers):
                    self.session.start_draw(vouchers)
                self.assertEqual(self.session.phase, DrawPhase.IDLE)
                self.assertEqual(self.store.saves, 0)
                self.assertEqual(self.gate.state.draw_count, 0)
                self.assertTrue(self.gate.can_draw())

    def test_duplicate_completion_is_ignored(self) -> None:
        pending = self.session.start_draw(catalog())
        first = self.session.complete_spin(pending.spin_id)
        second = self.session.complete_spin(pending.spin_id)
        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(self.gate.state.draw_count, 1)
        self.assertEqual(self.store.saves, 1)
        self.assertEqual(len(self.results), 1)

    def test_stale_completion_is_ignored(self) -> None:
        pending = self.session.start_draw(catalog())
        self.assertIsNone(self.session.complete_spin(pending.spin_id + "-stale"))
        self.assertTrue(self.session.is_spinning)
        self.assertIsNone(self.session.complete_spin("not-a-spin"))
        self.assertEqual(self.store.saves, 0)

    def test_persistence_failure_surfaces_but_keeps_result(self) -> None:
        self.store.fail_saves = 1
        pending = self.session.start_draw(catalog())
        with self.assertLogs("luckydraw.draw.cooldown", level="ERROR"):
            with self.assertRaises(PersistenceFailure):
                self.session.complete_spin(pending.spin_id)

        self.assertEqual(self.session.phase, DrawPhase.IDLE)
        last = self.session.last_result
        assert last is not None
        self.assertEqual(last.voucher, pending.winner)
        self.assertEqual(len(self.results), 1)
        self.assertFalse(self.session.can_draw())
        with self.assertRaises(CooldownActive):
            self.session.start_draw(catalog())
        self.assertIsNone(self.store.record)

        self.session.retry_commit()
        assert self.store.record is not None
        self.assertEqual(self.store.record.state.draw_count, 1)

    def test_sessions_sharing_a_gate_each_count_their_draw(self) -> None:
        pending = self.session.start_draw(catalog())
        self.session.complete_spin(pending.spin_id)

        self.clock.now = NOW + DEFAULT_COOLDOWN_MS
        second = DrawSession(self.gate, rng=random.Random(7), clock=self.clock)
        other = second.start_draw(catalog())
        self.assertNotEqual(other.spin_id, pending.spin_id)
        second.complete_spin(other.spin_id)

        self.assertEqual(self.gate.state.draw_count, 2)
        self.assertEqual(self.gate.state.last_draw_at_ms, NOW + DEFAULT_COOLDOWN_MS)
        self.assertEqual(self.store.saves, 2)
        self.assertFalse(second.can_draw())
        self.assertFalse(self.session.can_draw())
        with self.assertRaises(CooldownActive):
            second.start_draw(catalog())

    def test_last_result_cleared_by_gate_reset(self) -> None:
        pending = self.session.start_draw(catalog())
        self.session.complete_spin(pending.spin_id)
        self.assertIsNotNone(self.session.last_result)

        self.gate.reset()
        self.assertIsNone(self.session.last_result)
        self.assertTrue(self.session.can_draw())
        self.assertEqual(self.store.record.result, last)

    def test_refresh_candidates_follows_catalog(self) -> None:
        candidates = self.session.refresh_candidates(catalog())
        self.assertEqual([c.weight for c in candidates], [45, 25, 15, 5])
        self.assertEqual(self.session.candidates, candidates)
        self.assertEqual(self.session.refresh_candidates([]), ())

    def test_seeded_sessions_pick_the_same_winner(self) -> None:
        winners = []
        for _ in range(2):
            session = DrawSession(
                CooldownGate(MemoryStore(), clock=self.clock),
                rng=random.Random(2024),
                clock=self.clock,
            )
            pending = session.start_draw(catalog())
            winners.append((pending.winner.id, pending.plan))
        self.assertEqual(winners[0], winners[1])


class DrawSessionDriverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(NOW)
        self.store = MemoryStore()
        self.gate = CooldownGate(self.store, clock=self.clock)

    def test_driver_receives_plan_and_settles_through_callback(self) -> None:
        driver = RecordingDriver()
        session = DrawSession(self.gate, clock=self.clock, driver=driver, spin_duration_ms=1500)
        pending = session.start_draw(catalog())

        self.assertEqual(len(driver.calls), 1)
        final_angle, duration, on_complete = driver.calls[0]
        self.assertEqual(final_angle, pending.plan.final_angle_deg)
        self.assertEqual(duration, 1500)
        self.assertEqual(self.store.saves, 0)

        on_complete()
        on_complete()
        self.assertEqual(session.phase, DrawPhase.IDLE)
        self.assertEqual(self.gate.state.draw_count, 1)
        self.assertEqual(self.store.saves, 1)

    def test_driver_failure_returns_to_idle(self) -> None:
        session = DrawSession(self.gate, clock=self.clock, driver=ExplodingDriver())
        with self.assertLogs("luckydraw.draw.session", level="ERROR"):
            with self.assertRaises(RuntimeError):
                session.start_draw(catalog())
        self.assertEqual(session.phase, DrawPhase.IDLE)
        self.assertIsNone(session.pending)
        self.assertTrue(self.gate.can_draw())

    def test_completion_is_marshalled_to_control_thread(self) -> None:
        callbacks = CallbackQueue()
        driver = TimerAnimationDriver()
        settled_on: list[str] = []
        session = DrawSession(
            self.gate,
            clock=self.clock,
            driver=driver,
            dispatch=callbacks.post,
            on_result=lambda _: settled_on.append(threading.current_thread().name),
            spin_duration_ms=10,
        )
        session.start_draw(catalog())
        driver.join(timeout=5)

        # The timer fired on its own thread, but nothing settled yet.
        self.assertTrue(session.is_spinning)
        self.assertEqual(self.store.saves, 0)
        self.assertEqual(len(callbacks), 1)

        self.assertEqual(callbacks.drain(timeout=5), 1)
        self.assertEqual(session.phase, DrawPhase.IDLE)
        self.assertEqual(settled_on, [threading.current_thread().name])
        self.assertEqual(self.store.saves, 1)

    def test_drain_times_out_without_callbacks(self) -> None:
        self.assertEqual(CallbackQueue().drain(timeout=0.01), 0)
        self.assertEqual(CallbackQueue().drain(), 0)


class DrawSessionRestartTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.clock = FakeClock(NOW)

    def tearDown(self) -> None:
        self.engine.dispose()

    def _open(self) -> DrawSession:
        gate = CooldownGate(SqlCooldownStore(self.Session, "KH001"), clock=self.clock)
        return DrawSession(gate, rng=random.Random(5), clock=self.clock)

    def test_state_survives_restart(self) -> None:
        session = self._open()
        pending = session.start_draw(catalog())
        result = session.complete_spin(pending.spin_id)

        self.clock.now = NOW + 60_000
        before = (session.can_draw(), session.remaining())

        restarted = self._open()
        self.assertEqual((restarted.can_draw(), restarted.remaining()), before)
        self.assertEqual(restarted.last_result, result)
        with self.assertRaises(CooldownActive):
            restarted.start_draw(catalog())

    def test_interrupted_spin_leaves_gate_ready(self) -> None:
        session = self._open()
        session.start_draw(catalog())
        # Process killed before the animation finished.
        restarted = self._open()
        self.assertTrue(restarted.can_draw())
        self.assertIsNone(restarted.last_result)
        restarted.start_draw(catalog())


if __name__ == "__main__":
    unittest.main()
