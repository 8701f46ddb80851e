"""Cooperative yield point for long-running sync loops."""

import asyncio


async def checkpoint() -> None:
    """Let other tasks on the event loop run before continuing.

    Awaited after every page fetched and every unit of write work so one
    large sync does not starve concurrent requests sharing the loop.
    """
    await asyncio.sleep(0)
