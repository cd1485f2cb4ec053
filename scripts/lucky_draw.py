"""Play one lucky draw from the terminal against the configured database.

Usage::

    python scripts/lucky_draw.py USER_KEY [CATALOG_JSON]

The catalog is read from ``CATALOG_JSON`` when given, otherwise fetched from
``VOUCHER_API_BASE_URL``. Migrations are applied before the draw.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from luckydraw.catalog.api import VoucherClient
from luckydraw.config import DrawSettings
from luckydraw.db.engine import get_sessionmaker, make_engine
from luckydraw.db.schema import upgrade_db
from luckydraw.draw import (
    CallbackQueue,
    CooldownActive,
    DrawError,
    PersistenceFailure,
    SpinResult,
    TimerAnimationDriver,
    Voucher,
    format_remaining,
)
from luckydraw.workflows import open_draw_session

def _load_catalog(path: str | None, settings: DrawSettings) -> list[Voucher]:
    if path is None:
        client = VoucherClient(
            base_url=settings.voucher_api_base_url,
            timeout=settings.voucher_api_timeout,
        )
        return client.fetch_catalog()
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return [Voucher.from_payload(item) for item in payload]


def _announce(result: SpinResult) -> None:
    voucher = result.voucher
    print(f"You won: {voucher.name or voucher.id} ({voucher.display_value:g} off)")
    if voucher.redeem_code:
        print(f"Code: {voucher.redeem_code}")


def main(argv: list[str]) -> int:
    if not argv:
        print(__doc__, file=sys.stderr)
        return 2
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")

    user_key = argv[0]
    settings = DrawSettings.from_env()
    upgrade_db()

    callbacks = CallbackQueue()
    driver = TimerAnimationDriver()
    session = open_draw_session(
        get_sessionmaker(make_engine()),
        user_key,
        settings=settings,
        driver=driver,
        dispatch=callbacks.post,
        on_result=_announce,
    )

    last = session.last_result
    if last is not None:
        print(f"Last prize: {last.voucher.name or last.voucher.id}")

    try:
        pending = session.start_draw(_load_catalog(argv[1] if len(argv) > 1 else None, settings))
    except CooldownActive as exc:
        print(f"Please wait {format_remaining(exc.remaining_ms)} before the next spin.")
        return 1
    except DrawError as exc:
        print(f"Cannot spin: {exc}")
        return 1

    print(f"Spinning across {len(pending.candidates)} vouchers...")
    # Completion arrives on the timer thread and is settled here.
    timeout_s = pending.plan.duration_ms / 1000 + 5
    try:
        settled = callbacks.drain(timeout=timeout_s)
    except PersistenceFailure as exc:
        print(f"Prize not saved yet: {exc}", file=sys.stderr)
        return 2
    if settled == 0:
        print("The spin did not finish in time.", file=sys.stderr)
        return 2
    print(f"Next spin in {format_remaining(session.remaining())}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
