from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from models import GenerationCancelled

Sleep = Callable[[float], Awaitable[object]]


def raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise GenerationCancelled("Generation cancelled by caller")


async def sleep_unless_cancelled(
    seconds: float,
    cancel_event: asyncio.Event | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Sleep for `seconds`, waking early (and raising) if `cancel_event` is set."""
    raise_if_cancelled(cancel_event)
    if cancel_event is None:
        await sleep(seconds)
        return

    sleeper = asyncio.ensure_future(sleep(seconds))
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        sleeper.cancel()
        waiter.cancel()
    raise_if_cancelled(cancel_event)
