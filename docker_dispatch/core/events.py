"""Publish/subscribe channel with ordered, sequential fan-out."""

import inspect
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")

Listener = Callable[[T], Awaitable[None] | None]


class Subscription:
    """Handle returned by ``EventChannel.subscribe``; dispose to unsubscribe."""

    def __init__(self, channel: "EventChannel", listener: Listener):
        self._channel = channel
        self._listener = listener

    def dispose(self) -> None:
        self._channel._unsubscribe(self._listener)


class EventChannel(Generic[T]):
    """Observer list delivering each event to every listener in turn.

    Listeners may be plain callables or coroutine functions. Delivery is
    sequential: a listener finishes before the next one is invoked, and
    ``fire`` returns only after every listener has run.
    """

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def fire(self, event: T) -> None:
        """Deliver ``event`` to a snapshot of the current listeners."""
        for listener in list(self._listeners):
            result = listener(event)
            if inspect.isawaitable(result):
                await result

    def clear(self) -> None:
        self._listeners.clear()
