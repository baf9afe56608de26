"""
Tests for the Throttle transport.
"""

import asyncio

import pytest

from layover.core.context import Context
from layover.core.throttle import Throttle
from layover.core.types import Request
from layover.exceptions import DeadlineExceededError, RequestCancelledError
from layover.testing import RecordingSleep, StubTransport, make_response

URL = "https://api.example.com/items"


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.delays = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        self.now += delay


class TestThrottle:
    """Tests for Throttle.send()."""

    @pytest.mark.asyncio
    async def test_first_request_is_not_delayed(self):
        """Test the first request goes out immediately."""
        clock = FakeClock()
        throttle = Throttle(StubTransport([make_response(200)]), qps=10, sleep=clock.sleep, clock=clock)

        await throttle.send(Request("GET", URL))

        assert clock.delays == []

    @pytest.mark.asyncio
    async def test_requests_are_spaced(self):
        """Test sequential requests wait one window (1/qps) apart."""
        clock = FakeClock()
        stub = StubTransport([make_response(200)])
        throttle = Throttle(stub, qps=10, sleep=clock.sleep, clock=clock)

        for _ in range(3):
            await throttle.send(Request("GET", URL))

        assert clock.delays == [pytest.approx(0.1), pytest.approx(0.1)]
        assert stub.calls == 3

    @pytest.mark.asyncio
    async def test_idle_time_is_not_banked(self):
        """Test a request after a long pause goes out immediately, and the next one is paced again."""
        clock = FakeClock()
        throttle = Throttle(StubTransport([make_response(200)]), qps=2, sleep=clock.sleep, clock=clock)

        await throttle.send(Request("GET", URL))
        clock.now += 60
        await throttle.send(Request("GET", URL))
        await throttle.send(Request("GET", URL))

        assert clock.delays == [pytest.approx(0.5)]

    @pytest.mark.asyncio
    async def test_concurrent_callers_get_distinct_slots(self):
        """Test concurrent requests queue one window apart."""
        sleep = RecordingSleep()
        stub = StubTransport([make_response(200)])
        throttle = Throttle(stub, qps=10, sleep=sleep, clock=lambda: 0.0)

        await asyncio.gather(*(throttle.send(Request("GET", URL)) for _ in range(5)))

        assert sorted(sleep.delays) == [pytest.approx(d) for d in (0.1, 0.2, 0.3, 0.4)]
        assert stub.calls == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("qps", [0, -1])
    async def test_disabled(self, qps):
        """Test qps <= 0 passes requests straight through."""
        sleep = RecordingSleep()
        stub = StubTransport([make_response(200)])
        throttle = Throttle(stub, qps=qps, sleep=sleep)

        for _ in range(5):
            await throttle.send(Request("GET", URL))

        assert sleep.delays == []
        assert stub.calls == 5

    @pytest.mark.asyncio
    async def test_cancel_while_waiting(self):
        """Test cancelling a paced request raises without sending it."""
        sleep = RecordingSleep(block=True)
        stub = StubTransport([make_response(200)])
        throttle = Throttle(stub, qps=0.1, sleep=sleep)
        await throttle.send(Request("GET", URL))

        ctx = Context()
        task = asyncio.create_task(throttle.send(Request("GET", URL, context=ctx)))
        await asyncio.wait_for(sleep.started.wait(), timeout=1)
        ctx.cancel()

        with pytest.raises(RequestCancelledError):
            await asyncio.wait_for(task, timeout=1)
        assert stub.calls == 1

    @pytest.mark.asyncio
    async def test_deadline_while_waiting(self):
        """Test a context deadline interrupts a long real wait."""
        stub = StubTransport([make_response(200)])
        throttle = Throttle(stub, qps=0.1)
        await throttle.send(Request("GET", URL))

        ctx = Context().with_timeout(0.05)
        with pytest.raises(DeadlineExceededError):
            await asyncio.wait_for(throttle.send(Request("GET", URL, context=ctx)), timeout=2)
        assert stub.calls == 1

    def test_unwrap(self):
        """Test unwrap() exposes the inner transport."""
        stub = StubTransport([make_response(200)])
        assert Throttle(stub, qps=1).unwrap() is stub
