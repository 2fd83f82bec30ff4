"""Structured fan-out of concurrent backend calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any


async def settle(*aws: Awaitable[Any]) -> list[Any]:
    """Await all *aws* concurrently and return their results in order.

    Every awaitable runs to completion before this returns, even when one of
    them fails; the first failure (in argument order) is then re-raised
    unchanged.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results
