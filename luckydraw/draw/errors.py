"""Errors raised by the lucky draw engine."""

from __future__ import annotations


class DrawError(Exception):
    """Base class for every error surfaced by the draw engine."""


class InvalidState(DrawError):
    """The engine was called with inputs its preconditions rule out."""


class CooldownActive(DrawError):
    """A draw was requested before the cooldown window elapsed."""

    def __init__(self, remaining_ms: int) -> None:
        super().__init__(f"Next draw available in {remaining_ms} ms")
        self.remaining_ms = remaining_ms


class AlreadySpinning(DrawError):
    """A draw was requested while another spin is still in flight."""


class NoEligibleVouchers(DrawError):
    """No voucher qualifies for the draw right now."""


class PersistenceFailure(DrawError):
    """The durable cooldown record could not be written; retry later."""


__all__ = [
    "AlreadySpinning",
    "CooldownActive",
    "DrawError",
    "InvalidState",
    "NoEligibleVouchers",
    "PersistenceFailure",
]
