"""Exclusive execution of async callables in submission order."""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

if TYPE_CHECKING:
    from .registry import QueueRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _settle(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)


class AsyncExclusiveQueue:
    """Run async callables one at a time, in the order they were submitted.

    Each call to run() captures the current tail of the chain and installs a new
    one, so a submitted task starts only after every earlier task on this queue
    has settled. Settled means finished: a failing task does not skip or abort
    the tasks queued behind it.

    A queue created with a key registers itself in the given registry (the
    default registry when none is given), replacing whatever queue was
    registered under that key before.

    Example:
        queue = AsyncExclusiveQueue()

        # execution time
        queue.run(wait_3s)  # |---|
        queue.run(wait_3s)  #     |---|
        queue.run(wait_3s)  #         |---|
    """

    def __init__(self, key: str | None = None, *, registry: "QueueRegistry | None" = None) -> None:
        """Initialize AsyncExclusiveQueue.

        Args:
            key: Optional identity to register the queue under
            registry: Registry to register the queue in (default: default_registry)

        Raises:
            ValueError: If key is an empty string
        """
        if key == "":
            raise ValueError("Queue key cannot be empty")

        self.key = key
        self._tail: asyncio.Future[None] | None = None
        self._runners: set[asyncio.Task[None]] = set()

        if key is not None:
            if registry is None:
                from .registry import default_registry

                registry = default_registry
            registry.register(key, self)

    def __repr__(self) -> str:
        return f"AsyncExclusiveQueue(key={self.key!r}, pending={self.pending})"

    @property
    def pending(self) -> int:
        """Number of submitted tasks that have not settled yet."""
        return len(self._runners)

    def run(self, task: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Submit an async callable for exclusive execution.

        The position in the queue is taken at call time, not when the returned
        future is awaited.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            Future that settles with exactly the outcome of task

        Raises:
            RuntimeError: If there is no running event loop
        """
        loop = asyncio.get_running_loop()
        previous = self._tail
        advance: asyncio.Future[None] = loop.create_future()
        result: asyncio.Future[T] = loop.create_future()
        self._tail = advance

        runner = loop.create_task(self._execute(task, previous, result))
        self._runners.add(runner)
        runner.add_done_callback(functools.partial(self._advance, previous, result, advance))
        return result

    def fetch(
        self, method: str, url: httpx.URL | str, *, client: httpx.AsyncClient | None = None, **kwargs: Any
    ) -> asyncio.Future[httpx.Response]:
        """Send an HTTP request exclusively.

        Arguments are forwarded to httpx.AsyncClient.request(). Without a client
        a short-lived one is opened for this request.

        Example:
            queue = AsyncExclusiveQueue()

            # network waterfall
            queue.fetch("GET", "https://example.com/")  # |---|
            queue.fetch("GET", "https://example.com/")  #     |-----|
            queue.fetch("GET", "https://example.com/")  #           |----|
        """

        async def request() -> httpx.Response:
            if client is not None:
                return await client.request(method, url, **kwargs)
            async with httpx.AsyncClient() as own_client:
                return await own_client.request(method, url, **kwargs)

        return self.run(request)

    async def _execute(
        self,
        task: Callable[[], Awaitable[T]],
        previous: asyncio.Future[None] | None,
        result: asyncio.Future[T],
    ) -> None:
        try:
            if previous is not None and not previous.done():
                await asyncio.shield(previous)
            value = await task()
        except asyncio.CancelledError:
            result.cancel()
            raise
        except Exception as err:
            logger.debug("Task raised an exception", extra={"queue_key": self.key}, exc_info=err)
            if not result.done():
                result.set_exception(err)
        except BaseException as err:
            if not result.done():
                result.set_exception(err)
            raise
        else:
            if not result.done():
                result.set_result(value)

    def _advance(
        self,
        previous: asyncio.Future[None] | None,
        result: asyncio.Future[Any],
        advance: asyncio.Future[None],
        runner: asyncio.Task[None],
    ) -> None:
        self._runners.discard(runner)
        # A runner cancelled before its first step never reached its result
        result.cancel()
        if previous is None or previous.done():
            _settle(advance)
        else:
            # Torn down before our turn: keep the chain ordered behind previous
            previous.add_done_callback(lambda _: _settle(advance))
