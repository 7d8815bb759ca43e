"""Exclusive execution decorators for async functions.

Provides decorators:
- async_exclusive: All calls to the async function run through one private queue
- async_exclusive_by_key: All calls run through the queue registered under a key
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from .async_queue import AsyncExclusiveQueue
from .registry import QueueRegistry, default_registry

T = TypeVar("T")
P = ParamSpec("P")


def async_exclusive(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Decorator that runs all calls to an async function one at a time, in call order.

    Creates a single AsyncExclusiveQueue for the function. Unlike a lock, a call
    that fails does not need to release anything: the next call starts as soon
    as the previous one settles.

    Args:
        func: Async function to make exclusive

    Returns:
        Exclusive version of the function with the same signature. It returns a
        future instead of a coroutine, and the place in line is taken when the
        function is called, not when the result is awaited.

    Example:
        @async_exclusive
        async def write_record(record: dict) -> None:
            # Only one coroutine writes at a time
            await storage.append(record)
    """
    queue = AsyncExclusiveQueue()

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> asyncio.Future[T]:
        return queue.run(lambda: func(*args, **kwargs))

    return wrapper


def async_exclusive_by_key(
    key: str, registry: QueueRegistry | None = None
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator that runs all calls to an async function through a shared, named queue.

    The queue is looked up in the registry on every call, so functions decorated
    with the same key share one serialization domain with each other and with
    any other user of that key. Removing or replacing the key affects later
    calls only.

    Args:
        key: Key of the shared queue
        registry: Registry to look the queue up in (default: default_registry)

    Returns:
        Decorator producing the exclusive version of the function, which returns
        a future and takes its place in line at call time

    Raises:
        ValueError: If key is empty

    Example:
        @async_exclusive_by_key("billing-api")
        async def charge(customer_id: str, amount: int) -> Receipt:
            ...

        @async_exclusive_by_key("billing-api")
        async def refund(receipt_id: str) -> None:
            # Never overlaps with charge()
            ...
    """
    if not key:
        raise ValueError("Queue key cannot be empty")
    target = registry if registry is not None else default_registry

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> asyncio.Future[T]:
            return target.get_or_create(key).run(lambda: func(*args, **kwargs))

        return wrapper

    return decorator
