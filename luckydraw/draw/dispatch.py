"""Animation driver contract and control-thread marshalling helpers."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[], None]
Dispatcher = Callable[..., None]


class AnimationDriver(Protocol):
    """Anything able to rotate the wheel.

    ``start`` must invoke ``on_complete`` exactly once, after ``duration_ms``
    has elapsed and the wheel rests at ``final_angle_deg`` (mod 360). The
    callback may be invoked from any thread.
    """

    def start(
        self,
        final_angle_deg: float,
        duration_ms: int,
        on_complete: CompletionCallback,
    ) -> None: ...


def call_now(fn: Callable[..., Any], *args: Any) -> None:
    """Dispatcher for drivers that already call back on the control thread."""
    fn(*args)


class CallbackQueue:
    """Hand callbacks from worker threads to the control thread.

    Worker threads call :meth:`post`; the control thread calls :meth:`drain`
    from its own loop, which is where engine state is touched.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[tuple[Callable[..., Any], tuple[Any, ...]]]" = queue.Queue()

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        self._queue.put((fn, args))

    def drain(self, timeout: Optional[float] = None) -> int:
        """Run every queued callback on the calling thread.

        Parameters
        ----------
        timeout : Optional[float], default: None
            When given, block up to ``timeout`` seconds for the first callback
            before giving up.

        Returns
        -------
        int
            Number of callbacks executed.
        """

        executed = 0
        if timeout is not None:
            try:
                fn, args = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            fn(*args)
            executed += 1
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return executed
            fn(*args)
            executed += 1

    def __len__(self) -> int:
        return self._queue.qsize()


class TimerAnimationDriver:
    """Driver that only keeps time: completes after ``duration_ms`` on a timer thread.

    Useful for headless front-ends that render nothing but still need the
    spin to take its full duration.
    """

    def __init__(self) -> None:
        self._timers: list[threading.Timer] = []

    def start(
        self,
        final_angle_deg: float,
        duration_ms: int,
        on_complete: CompletionCallback,
    ) -> None:
        logger.debug("Spinning to %.2f deg over %d ms", final_angle_deg, duration_ms)
        timer = threading.Timer(duration_ms / 1000, on_complete)
        timer.daemon = True
        self._timers = [t for t in self._timers if t.is_alive()]
        self._timers.append(timer)
        timer.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for running timers to fire."""
        for timer in list(self._timers):
            timer.join(timeout)


__all__ = [
    "AnimationDriver",
    "CallbackQueue",
    "CompletionCallback",
    "Dispatcher",
    "TimerAnimationDriver",
    "call_now",
]
