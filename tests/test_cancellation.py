"""Tests for the timeout/cancellation race, cancellation tokens and events."""

import asyncio

import pytest

from docker_dispatch.core.cancellation import CancellationToken, race
from docker_dispatch.core.events import EventChannel
from docker_dispatch.core.exceptions import (
    DockerTimeoutError,
    NotSupportedError,
    OperationCancelledError,
)


async def _never() -> None:
    await asyncio.Event().wait()


def _other_tasks() -> set[asyncio.Task]:
    return asyncio.all_tasks() - {asyncio.current_task()}


class TestRace:
    """Test the first-to-finish race around a single call."""

    async def test_call_result_wins(self):
        async def call():
            return "done"

        assert await race(call, timeout=1) == "done"

    async def test_call_error_propagates(self):
        async def call():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await race(call, timeout=1)

    async def test_timeout(self):
        loop = asyncio.get_running_loop()
        started = loop.time()

        with pytest.raises(DockerTimeoutError) as exc_info:
            await race(_never, timeout=0.05, operation="get_containers")

        assert loop.time() - started >= 0.05
        assert "get_containers" in str(exc_info.value)
        assert exc_info.value.reportable is False

    async def test_no_dangling_tasks_across_repeated_calls(self):
        for _ in range(20):
            with pytest.raises(DockerTimeoutError):
                await race(_never, timeout=0.001)

        async def quick():
            return 1

        for _ in range(20):
            await race(quick, timeout=10, signals=(CancellationToken(),))

        assert _other_tasks() == set()

    async def test_token_cancels_in_flight_call(self):
        token = CancellationToken()
        task = asyncio.create_task(race(_never, timeout=10, signals=(token,)))
        await asyncio.sleep(0.01)

        token.cancel()

        with pytest.raises(OperationCancelledError, match="cancelled by user"):
            await task
        assert _other_tasks() == set()

    async def test_already_cancelled_token_does_not_start_call(self):
        token = CancellationToken()
        token.cancel("Docker context changed")
        started = []

        async def call():
            started.append(True)

        with pytest.raises(OperationCancelledError, match="context changed"):
            await race(call, timeout=1, signals=(None, token))
        assert started == []

    async def test_outer_cancellation_cleans_up(self):
        task = asyncio.create_task(race(_never, timeout=10))
        await asyncio.sleep(0.01)

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert _other_tasks() == set()


class TestCancellationToken:
    """Test the one-shot cancellation token."""

    def test_first_reason_is_kept(self):
        token = CancellationToken()
        assert token.is_cancellation_requested is False

        token.cancel("first")
        token.cancel("second")

        assert token.is_cancellation_requested is True
        assert token.reason == "first"


class TestEventChannel:
    """Test ordered publish/subscribe delivery."""

    async def test_fan_out_in_subscription_order(self):
        channel: EventChannel[str] = EventChannel("test")
        received = []

        async def async_listener(event):
            await asyncio.sleep(0)
            received.append(("async", event))

        channel.subscribe(async_listener)
        channel.subscribe(lambda event: received.append(("sync", event)))

        await channel.fire("ctx")

        assert received == [("async", "ctx"), ("sync", "ctx")]

    async def test_dispose_unsubscribes(self):
        channel: EventChannel[str] = EventChannel("test")
        received = []
        subscription = channel.subscribe(received.append)

        subscription.dispose()
        subscription.dispose()
        await channel.fire("ctx")

        assert received == []
        assert channel.listener_count == 0


class TestNotSupportedError:
    """Test the backend capability fault shape."""

    def test_carries_operation_and_backend(self):
        error = NotSupportedError("inspect_container", "serverless")

        assert error.operation == "inspect_container"
        assert error.backend == "serverless"
        assert error.reportable is False
        assert "not supported in the current Docker context" in str(error)
        assert "inspect_container" in str(error)
