"""Durable storage for the cooldown record."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import DrawState
from .errors import PersistenceFailure
from .state import CooldownRecord, CooldownState, SpinResult
from .voucher import Voucher

logger = logging.getLogger(__name__)


class CooldownStore(Protocol):
    """Key-value persistence contract used by :class:`CooldownGate`.

    ``save`` must write the whole record atomically; a ``load`` after a crash
    returns the last record whose ``save`` completed.
    """

    def load(self) -> Optional[CooldownRecord]: ...

    def save(self, record: CooldownRecord) -> None: ...

    def clear(self) -> None: ...


class SqlCooldownStore:
    """Store the cooldown record of one user in a :class:`DrawState` row.

    Each operation opens its own transaction through ``session_factory`` so
    the row is committed before :meth:`save` returns.
    """

    def __init__(self, session_factory: Callable[[], Session], user_key: str) -> None:
        if not user_key:
            raise ValueError("user_key must not be empty")
        self._session_factory = session_factory
        self.user_key = user_key

    def load(self) -> Optional[CooldownRecord]:
        """Return the persisted record, or ``None`` if nothing was committed yet."""
        try:
            with self._session_factory() as session:
                row = DrawState.get_by_user_key(session, self.user_key)
                if row is None:
                    return None
                return _row_to_record(row)
        except SQLAlchemyError as exc:
            logger.error("Failed to load draw state for %s: %s", self.user_key, exc)
            raise PersistenceFailure(f"Failed to load draw state: {exc}") from exc

    def save(self, record: CooldownRecord) -> None:
        """Upsert the user's row with ``record`` in a single transaction."""
        try:
            with self._session_factory() as session, session.begin():
                row = DrawState.get_by_user_key(session, self.user_key)
                if row is None:
                    row = DrawState(user_key=self.user_key)
                    session.add(row)
                _apply_record(row, record)
        except SQLAlchemyError as exc:
            logger.error("Failed to save draw state for %s: %s", self.user_key, exc)
            raise PersistenceFailure(f"Failed to save draw state: {exc}") from exc
        logger.debug(
            "Saved draw state for %s (draw_count=%d)",
            self.user_key,
            record.state.draw_count,
        )

    def clear(self) -> None:
        """Delete the user's row, if any."""
        try:
            with self._session_factory() as session, session.begin():
                row = DrawState.get_by_user_key(session, self.user_key)
                if row is not None:
                    session.delete(row)
        except SQLAlchemyError as exc:
            logger.error("Failed to clear draw state for %s: %s", self.user_key, exc)
            raise PersistenceFailure(f"Failed to clear draw state: {exc}") from exc


def _row_to_record(row: DrawState) -> CooldownRecord:
    state = CooldownState(
        last_draw_at_ms=row.last_draw_at_ms,
        draw_count=row.draw_count or 0,
    )
    result: Optional[SpinResult] = None
    payload = row.result_payload
    if payload is not None and row.won_at_ms is not None:
        result = SpinResult(voucher=Voucher.from_snapshot(payload), won_at_ms=row.won_at_ms)
    return CooldownRecord(state=state, result=result)


def _apply_record(row: DrawState, record: CooldownRecord) -> None:
    row.last_draw_at_ms = record.state.last_draw_at_ms
    row.draw_count = record.state.draw_count
    if record.result is None:
        row.last_result_voucher_id = None
        row.result_payload = None
        row.won_at_ms = None
    else:
        row.last_result_voucher_id = record.result.voucher.id
        row.result_payload = record.result.voucher.to_snapshot()
        row.won_at_ms = record.result.won_at_ms


__all__ = ["CooldownStore", "SqlCooldownStore"]
