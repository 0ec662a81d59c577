from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fanout.utils.error_handler import DeadlineExceededError
from fanout.utils.logger import get_logger

from .token import CancellationToken

logger = get_logger(__name__)


async def sleep_or_cancel(delay: float, token: CancellationToken) -> bool:
    """
    Sleep for `delay` seconds unless `token` fires first.

    Returns True when the full delay elapsed, False when the wait was
    abandoned because the token was triggered.
    """
    if token.is_triggered():
        return False
    if delay <= 0:
        await asyncio.sleep(0)
        return not token.is_triggered()

    sleeper = asyncio.ensure_future(asyncio.sleep(delay))
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for fut in (sleeper, waiter):
            if not fut.done():
                fut.cancel()
    return not token.is_triggered()


@asynccontextmanager
async def cancel_after(
    seconds: float, parent: Optional[CancellationToken] = None
) -> AsyncIterator[CancellationToken]:
    """
    Yield a token that is triggered once `seconds` have passed.

    The token's reason is a DeadlineExceededError. When `parent` is given the
    token is also linked to it. The timer is cancelled on exit.
    """
    token = CancellationToken(name=f"deadline:{seconds:g}s")
    if parent is not None:
        token.link(parent)

    def _expire() -> None:
        if token.trigger(DeadlineExceededError(seconds)):
            logger.warning("deadline_exceeded", deadline_s=seconds)

    handle = asyncio.get_running_loop().call_later(seconds, _expire)
    try:
        yield token
    finally:
        handle.cancel()
