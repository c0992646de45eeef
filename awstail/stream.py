from __future__ import annotations
import asyncio
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from .config import log
from .events import Cursor, LogEvent, next_cursor


def stream_start(initial_events: List[LogEvent], now: int) -> int:
    """
    Where tailing picks up after the initial fetch.
    """
    if initial_events:
        return next_cursor(initial_events)
    return now


async def stream_logs(
    fetch_page: Callable[[int], List[LogEvent]],
    *,
    start_time: int,
    poll_seconds: float,
    on_poll: Optional[Callable[[], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncIterator[List[LogEvent]]:
    """
    Poll forever from start_time, yielding each non-empty batch in received order.

    fetch_page(start_time) is blocking and only its first page is used per poll.
    It runs in a worker thread so keystrokes keep being served while it waits;
    the cursor and everything downstream only ever change on the loop thread.
    """
    cursor = Cursor(start_time)
    while True:
        events = await asyncio.to_thread(fetch_page, cursor.value)
        if events:
            # advance before handing anything downstream
            cursor.advance(events)
            log.debug(f"[stream] {len(events)} new event(s), cursor={cursor.value}")
            yield events
        if on_poll is not None:
            on_poll()
        await sleep(poll_seconds)
