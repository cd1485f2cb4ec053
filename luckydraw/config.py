"""Runtime settings read from the environment (and a ``.env`` file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .draw.cooldown import DEFAULT_COOLDOWN_MS
from .draw.spin import SPIN_DURATION_MS


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{name}' must be an integer") from exc
    if value < 0:
        raise ValueError(f"Environment variable '{name}' must not be negative")
    return value


@dataclass(frozen=True)
class DrawSettings:
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    spin_duration_ms: int = SPIN_DURATION_MS
    voucher_api_base_url: Optional[str] = None
    voucher_api_timeout: int = 45

    @classmethod
    def from_env(cls) -> "DrawSettings":
        """Read ``LUCKYDRAW_*`` and ``VOUCHER_API_*`` variables, with defaults."""
        load_dotenv()
        return cls(
            cooldown_ms=_int_env("LUCKYDRAW_COOLDOWN_MS", DEFAULT_COOLDOWN_MS),
            spin_duration_ms=_int_env("LUCKYDRAW_SPIN_DURATION_MS", SPIN_DURATION_MS),
            voucher_api_base_url=os.getenv("VOUCHER_API_BASE_URL") or None,
            voucher_api_timeout=_int_env("VOUCHER_API_TIMEOUT", 45),
        )
