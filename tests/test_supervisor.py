import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from processor.scan_engine import EXIT_STALLED, NavigationStalled
from processor.supervisor import run_supervised


@pytest.mark.asyncio
async def test_returns_zero_when_attempt_finishes(sleep):
    calls = []

    async def attempt(restart):
        calls.append(restart)

    assert await run_supervised(attempt, max_restarts=3, restart_delay_sec=10, sleep=sleep) == 0
    assert calls == [0]
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_restarts_after_stall(sleep):
    calls = []

    async def attempt(restart):
        calls.append(restart)
        if restart < 2:
            raise NavigationStalled("stuck")

    assert await run_supervised(attempt, max_restarts=5, restart_delay_sec=10, sleep=sleep) == 0
    assert calls == [0, 1, 2]
    assert sleep.delays == [10, 10]


@pytest.mark.asyncio
async def test_gives_up_after_max_restarts(sleep):
    calls = []

    async def attempt(restart):
        calls.append(restart)
        raise NavigationStalled("stuck")

    assert await run_supervised(attempt, max_restarts=2, restart_delay_sec=1, sleep=sleep) == EXIT_STALLED
    assert calls == [0, 1, 2]
    assert EXIT_STALLED == 75


@pytest.mark.asyncio
async def test_other_errors_propagate(sleep):
    async def attempt(restart):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await run_supervised(attempt, max_restarts=2, restart_delay_sec=1, sleep=sleep)
