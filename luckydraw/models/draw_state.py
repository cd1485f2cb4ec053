"""Database model holding the durable lucky draw state of one user."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base


class DrawState(Base):
    """Cooldown bookkeeping and last committed prize for a single user key.

    The cooldown fields and the last result live in the same row so that a
    commit is written as one record.
    """

    __tablename__ = "draw_states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Primary key."""

    user_key: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True, index=True
    )
    """Identifier of the player whose draws are being rate limited."""

    last_draw_at_ms: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    """Epoch milliseconds of the last committed draw."""

    draw_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Number of committed draws."""

    last_result_voucher_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )
    """Identifier of the voucher won by the last committed draw."""

    last_result_payload: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """JSON snapshot of the won voucher, shown again after a restart."""

    won_at_ms: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    """Epoch milliseconds at which the last result was won."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            "<DrawState("
            f"id={self.id}, user_key='{self.user_key}', "
            f"last_draw_at_ms={self.last_draw_at_ms}, draw_count={self.draw_count}"
            ")>"
        )

    @classmethod
    def get_by_user_key(cls, session: Session, user_key: str) -> Optional["DrawState"]:
        """Fetch the state row for ``user_key`` if one was ever written."""

        return session.scalar(select(cls).where(cls.user_key == user_key))

    @property
    def result_payload(self) -> Optional[dict[str, Any]]:
        """Decoded :attr:`last_result_payload`, or ``None`` when absent."""

        if self.last_result_payload is None:
            return None
        return json.loads(self.last_result_payload)

    @result_payload.setter
    def result_payload(self, value: Optional[dict[str, Any]]) -> None:
        self.last_result_payload = (
            None if value is None else json.dumps(value, ensure_ascii=False)
        )
