from .async_exclusive import async_exclusive, async_exclusive_by_key
from .async_queue import AsyncExclusiveQueue
from .registry import QueueRegistry, default_registry, get_queue, remove_queue

__all__ = [
    "AsyncExclusiveQueue",
    "QueueRegistry",
    "async_exclusive",
    "async_exclusive_by_key",
    "default_registry",
    "get_queue",
    "remove_queue",
]
