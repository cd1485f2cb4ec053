from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional
import random

from sqlalchemy.orm import Session

from .config import DrawSettings
from .draw.cooldown import Clock, CooldownGate
from .draw.dispatch import AnimationDriver, Dispatcher
from .draw.session import DrawSession
from .draw.state import SpinResult
from .draw.store import SqlCooldownStore
from .draw.voucher import Voucher

if TYPE_CHECKING:
    from .catalog.api import VoucherClient


def open_draw_session(
    session_factory: Callable[[], Session],
    user_key: str,
    *,
    settings: Optional[DrawSettings] = None,
    driver: Optional[AnimationDriver] = None,
    dispatch: Optional[Dispatcher] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Clock] = None,
    on_result: Optional[Callable[[SpinResult], None]] = None,
) -> DrawSession:
    """Build a :class:`DrawSession` whose cooldown survives restarts.

    The workflow wires three pieces together:

    1. A :class:`SqlCooldownStore` keyed by ``user_key``.
    2. A :class:`CooldownGate` that loads the persisted record from that store.
    3. The :class:`DrawSession` orchestrating selection, spin and commit.

    Parameters
    ----------
    session_factory : Callable[[], Session]
        SQLAlchemy session factory, typically from
        :func:`luckydraw.db.engine.get_sessionmaker`.
    user_key : str
        Identifier of the player whose draws are rate limited.
    settings : Optional[DrawSettings]
        Cooldown and spin timing. Read from the environment when omitted.
    driver : Optional[AnimationDriver]
        Animation driver started for every draw.
    dispatch : Optional[Dispatcher]
        Marshals the driver's completion onto the control thread.
    rng : Optional[random.Random]
        Random source; pass a seeded one for reproducible draws.
    clock : Optional[Clock]
        Epoch-millisecond clock shared by gate and session.
    on_result : Optional[Callable[[SpinResult], None]]
        Listener notified with each settled prize.

    Returns
    -------
    DrawSession
        A session in the IDLE phase.

    Raises
    ------
    PersistenceFailure
        If the stored record cannot be read.
    """

    settings = settings or DrawSettings.from_env()
    store = SqlCooldownStore(session_factory, user_key)
    gate = CooldownGate(store, clock=clock, cooldown_ms=settings.cooldown_ms)
    return DrawSession(
        gate,
        rng=rng,
        clock=clock,
        driver=driver,
        dispatch=dispatch,
        on_result=on_result,
        spin_duration_ms=settings.spin_duration_ms,
    )


def load_eligible_vouchers(
    client: "VoucherClient", *, now: Optional[datetime] = None
) -> list[Voucher]:
    """Fetch the catalog and keep only vouchers that may be drawn at ``now``.

    Catalog order is preserved, since it becomes the wheel's segment order.
    """

    reference = now or datetime.now(timezone.utc)
    return [voucher for voucher in client.fetch_catalog() if voucher.is_eligible(reference)]


def reset_draw_state(session_factory: Callable[[], Session], user_key: str) -> None:
    """Delete the persisted cooldown record of ``user_key`` (e.g. on logout)."""

    SqlCooldownStore(session_factory, user_key).clear()
