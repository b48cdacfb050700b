"""Cancellation signals for asyncio.

An :class:`AbortController` owns an :class:`AbortSignal`. Aborting the
controller flips the signal, runs its listeners synchronously and wakes every
coroutine waiting on it. :func:`race` runs an awaitable against a signal and
cancels the awaitable when the signal fires first.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

AbortListener = Callable[["AbortSignal"], None]


class AbortError(Exception):
    """Low-level error raised when an operation is interrupted by a signal."""

    def __init__(self, reason: Any = None):
        super().__init__("The operation was aborted")
        self.reason = reason


class AbortSignal:
    """Read side of an abort controller."""

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._listeners: List[AbortListener] = []
        self._event: Optional[asyncio.Event] = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        """Register ``listener``; it runs immediately if already aborted."""
        if self._aborted:
            listener(self)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: AbortListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def raise_if_aborted(self) -> None:
        if self._aborted:
            raise AbortError(self._reason)

    async def wait(self) -> None:
        """Block until the signal is aborted."""
        if self._aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def _abort(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        if self._event is not None:
            self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(self)
            except Exception:
                logger.warning("Abort listener failed", exc_info=True)

    def __repr__(self) -> str:
        return f"AbortSignal(aborted={self._aborted})"


class AbortController:
    """Write side: creates a signal and aborts it on demand."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        self.signal._abort(reason)


async def race(awaitable: Awaitable[T], signal: Optional[AbortSignal]) -> T:
    """Await ``awaitable`` unless ``signal`` aborts first.

    When the signal wins, the pending operation is cancelled and
    :class:`AbortError` is raised. Cancelling the caller cancels both sides.

    :raises AbortError: If the signal is (or becomes) aborted
    """
    if signal is None:
        return await awaitable
    if signal.aborted:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise AbortError(signal.reason)

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(signal.wait())
    interrupted = True
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        interrupted = not task.done()
    finally:
        if not waiter.done():
            waiter.cancel()
        if not task.done():
            task.cancel()
            # Let the operation unwind before reporting the abort.
            await asyncio.wait({task})

    if interrupted:
        if not task.cancelled():
            # Consume the outcome so asyncio does not report it as unhandled.
            task.exception()
        raise AbortError(signal.reason)
    return task.result()


async def sleep(delay: float, signal: Optional[AbortSignal] = None) -> None:
    """``asyncio.sleep`` that wakes early with :class:`AbortError`."""
    await race(asyncio.sleep(delay), signal)
