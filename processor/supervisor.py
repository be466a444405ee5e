"""In-process restart loop for stalled scans.

A stall means the page stopped responding to navigation; the cure is a fresh
browser session and a fresh checkpoint resolution, which is what each call of
``attempt`` does. This is the outer loop only: the bounded retries inside the
scan engine stay as they are.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from processor.scan_engine import EXIT_STALLED, NavigationStalled


async def run_supervised(
    attempt: Callable[[int], Awaitable[None]],
    max_restarts: int,
    restart_delay_sec: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """Run ``attempt(restart_index)`` until it returns; exit code 0 or EXIT_STALLED."""
    for restart in range(max_restarts + 1):
        try:
            await attempt(restart)
            return 0
        except NavigationStalled as e:
            if restart == max_restarts:
                logger.error(f"[supervisor] 재시작 한도 {max_restarts}회 초과, 종료: {e}")
                return EXIT_STALLED
            logger.warning(
                f"[supervisor] 정체 감지 ({e}), {restart_delay_sec:.0f}초 후 재시작 "
                f"({restart + 1}/{max_restarts})"
            )
            await sleep(restart_delay_sec)
    return EXIT_STALLED
