"""Cancellation tokens and the timeout/cancellation race used by backend calls."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

import structlog

from .exceptions import DockerTimeoutError, OperationCancelledError

logger = structlog.get_logger()

T = TypeVar("T")

USER_CANCELLED = "Operation cancelled by user"


class CancellationToken:
    """One-shot cancellation signal that any number of calls can observe."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = USER_CANCELLED) -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self.reason or USER_CANCELLED)


async def race(
    call: Callable[[], Awaitable[T]],
    *,
    timeout: float,
    signals: Iterable[CancellationToken | None] = (),
    operation: str = "call",
) -> T:
    """Run ``call`` and return its result unless a timeout or signal wins first.

    The call, the timer and one waiter per signal are independent tasks; the
    first to finish decides the outcome and every other task is cancelled and
    awaited before returning, so no timer or waiter outlives the call.

    Raises:
        DockerTimeoutError: The timeout elapsed before the call finished
        OperationCancelledError: A signal fired before the call finished
    """
    active = [signal for signal in signals if signal is not None]
    for signal in active:
        # Already cancelled: do not start the call at all
        signal.raise_if_cancelled()

    call_task = asyncio.ensure_future(call())
    timer = asyncio.ensure_future(asyncio.sleep(timeout))
    waiters = {asyncio.ensure_future(signal.wait()): signal for signal in active}
    tasks = [call_task, timer, *waiters]

    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

        if call_task in done:
            return call_task.result()

        for waiter, signal in waiters.items():
            if waiter in done:
                logger.debug("Call cancelled", operation=operation, reason=signal.reason)
                raise OperationCancelledError(signal.reason or USER_CANCELLED)

        logger.warning("Call timed out", operation=operation, timeout=timeout)
        raise DockerTimeoutError(f"{operation} timed out after {timeout} seconds")

    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
