from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_settled(
    awaitables: Dict[str, Awaitable[T]],
) -> Dict[str, Union[T, BaseException]]:
    """Await all ``awaitables`` concurrently and return every outcome by key.

    Failures are returned in place of results instead of cancelling the
    siblings. Cancellation of the caller still propagates.
    """
    keys = list(awaitables)
    results = await asyncio.gather(*awaitables.values(), return_exceptions=True)
    for key, result in zip(keys, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
    return dict(zip(keys, results))


def settled_or_default(
    results: Dict[str, Any], key: str, default: T, what: str
) -> Union[Any, T]:
    """Return ``results[key]``, or ``default`` with a warning if it failed."""
    result = results[key]
    if isinstance(result, Exception):
        logger.warning(f"Failed to fetch {what}; continuing without it: {result}")
        return default
    if isinstance(result, BaseException):
        raise result
    return result
