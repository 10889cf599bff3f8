"""
Shared test doubles for the forced-leak engine.

FakeClock provides virtual time: the forcer's sleeps register timers that
only fire when the test driver advances the clock, so cadence and
deadline behaviour can be checked without real waiting.
"""

import asyncio
import heapq
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class FakeClock:
    """Virtual clock whose sleep() completes only when time is advanced"""

    def __init__(self):
        self.now = 0.0
        self._timers = []
        self._seq = 0

    def time(self) -> float:
        return self.now

    async def sleep(self, delay: float):
        future = asyncio.get_running_loop().create_future()
        self._seq += 1
        heapq.heappush(self._timers, (self.now + delay, self._seq, future))
        await future

    async def run(self, coro):
        """Drive ``coro`` to completion, jumping to the next timer whenever the loop is idle"""
        task = asyncio.ensure_future(coro)
        while not task.done():
            await self._settle()
            if task.done():
                break
            if not self._fire_next():
                await asyncio.sleep(0)
        return task.result()

    def drive(self, coro):
        """Run ``coro`` on a fresh event loop under virtual time"""
        return asyncio.run(self.run(coro))

    async def _settle(self):
        for _ in range(50):
            await asyncio.sleep(0)

    def _fire_next(self) -> bool:
        """Fire every live timer due at the earliest pending instant, like one loop turn"""
        fired = False
        due = None
        while self._timers:
            when, _seq, future = self._timers[0]
            if future.done():
                heapq.heappop(self._timers)  # Cancelled sleeper
                continue
            if due is not None and when != due:
                break
            heapq.heappop(self._timers)
            due = when
            self.now = max(self.now, when)
            future.set_result(None)
            fired = True
        return fired


class FakeSession:
    """Auxiliary session handle that counts close() calls"""

    def __init__(self, url: str):
        self.url = url
        self.close_calls = 0

    async def close(self):
        self.close_calls += 1


class FakeOpener:
    """Session opener capability; can simulate a blocked popup"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sessions = []

    async def __call__(self, url: str):
        if self.fail:
            raise RuntimeError("popup blocked")
        session = FakeSession(url)
        self.sessions.append(session)
        return session


class FakeInventory:
    """
    Storage inventory capability.

    ``responses`` is consumed one entry per probe; the last entry repeats.
    An Exception entry makes that probe fail.
    """

    def __init__(self, responses):
        self.responses = list(responses) or [[]]
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        response = self.responses[min(self.calls, len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def opener() -> FakeOpener:
    return FakeOpener()
