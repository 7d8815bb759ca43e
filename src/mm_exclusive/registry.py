"""Identity-based sharing of exclusive queues.

Provides:
- QueueRegistry: maps keys to AsyncExclusiveQueue instances
- default_registry: process-wide registry, with get_queue/remove_queue shortcuts
"""

import logging
from collections.abc import KeysView

from .async_queue import AsyncExclusiveQueue

logger = logging.getLogger(__name__)


def _check_key(key: str) -> None:
    if not key:
        raise ValueError("Queue key cannot be empty")


class QueueRegistry:
    """Map of keys to exclusive queues.

    Call sites that only share a key get the same queue, and therefore the same
    serialization domain, until the key is removed or replaced. Removing or
    replacing a key never touches work already submitted to the old queue.

    All mutations are single synchronous steps, so the registry needs no lock
    within one event loop. It is not thread-safe.

    Example:
        registry = QueueRegistry()
        queue1 = registry.get_or_create("sample")
        queue2 = registry.get_or_create("sample")  # same object as queue1

        registry.remove("sample")
        queue3 = registry.get_or_create("sample")  # new object
    """

    def __init__(self) -> None:
        self._queues: dict[str, AsyncExclusiveQueue] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._queues

    def __len__(self) -> int:
        return len(self._queues)

    def keys(self) -> KeysView[str]:
        return self._queues.keys()

    def get(self, key: str) -> AsyncExclusiveQueue | None:
        """Return the queue registered under key, or None."""
        return self._queues.get(key)

    def get_or_create(self, key: str) -> AsyncExclusiveQueue:
        """Return the queue registered under key, creating and registering it if missing.

        Raises:
            ValueError: If key is empty
        """
        _check_key(key)
        queue = self._queues.get(key)
        if queue is None:
            queue = AsyncExclusiveQueue(key, registry=self)
        return queue

    def create(self, key: str) -> AsyncExclusiveQueue:
        """Create a new queue and register it under key, replacing any existing one.

        Holders of the replaced queue keep working against it.

        Raises:
            ValueError: If key is empty
        """
        return AsyncExclusiveQueue(key, registry=self)

    def register(self, key: str, queue: AsyncExclusiveQueue) -> None:
        """Register queue under key, unconditionally replacing any existing mapping.

        Raises:
            ValueError: If key is empty
        """
        _check_key(key)
        replaced = self._queues.get(key)
        self._queues[key] = queue
        if replaced is not None and replaced is not queue:
            logger.debug("Queue replaced", extra={"queue_key": key, "replaced_pending": replaced.pending})

    def remove(self, key: str) -> None:
        """Remove the queue registered under key. Does nothing if key is not registered."""
        if self._queues.pop(key, None) is not None:
            logger.debug("Queue removed", extra={"queue_key": key})

    def clear(self) -> None:
        """Remove all registered queues."""
        self._queues.clear()


default_registry = QueueRegistry()


def get_queue(key: str) -> AsyncExclusiveQueue:
    """Return the queue registered under key in the default registry, creating it if missing."""
    return default_registry.get_or_create(key)


def remove_queue(key: str) -> None:
    """Remove the queue registered under key from the default registry."""
    default_registry.remove(key)
