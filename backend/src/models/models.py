import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, Iterable, List, Optional

from utilities import filter_messages, DEFAULT_QUERY_LIMIT

logger = logging.getLogger(__name__)

# ------------ In-memory structures ------------
class MessageBuffer:
    ''' Bounded mirror of recently observed messages, oldest evicted first.'''

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        # deque(maxlen) drops from the left on overflow: strict FIFO eviction
        self.messages: Deque[dict] = deque(maxlen=capacity)
        # pollers, the publish path and clear all mutate the same deque
        self.lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self.messages)

    async def push(self, msg: dict):
        async with self.lock:
            self.messages.append(msg)

    async def extend(self, msgs: Iterable[dict]):
        # a pulled batch lands contiguously, in pull order
        async with self.lock:
            self.messages.extend(msgs)

    async def snapshot(self) -> List[dict]:
        async with self.lock:
            return list(self.messages)

    async def clear(self):
        async with self.lock:
            self.messages.clear()

    async def query(self, subscription: Optional[str] = None, q: Optional[str] = None,
                    limit: int = DEFAULT_QUERY_LIMIT) -> List[dict]:
        # filtering runs on the snapshot, outside the lock
        items = await self.snapshot()
        return filter_messages(items, subscription, q, limit)


class TopicPoller:
    ''' Polling state for one topic's mirror subscription.'''

    def __init__(self, topic: str, subscription: str):
        self.topic = topic
        self.subscription = subscription
        self.task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self.task is not None and not self.task.done()

    # graceful cleanup
    async def stop(self):
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass


class PollerRegistry:
    ''' At most one active poller per mirror subscription name.'''

    def __init__(self):
        self.pollers: Dict[str, TopicPoller] = {}

    def is_active(self, subscription: str) -> bool:
        poller = self.pollers.get(subscription)
        return poller is not None and poller.active

    def ensure(self, topic: str, subscription: str,
               factory: Callable[[], Awaitable[None]]) -> bool:
        '''
        Start factory() as the poller for subscription unless one is already active.

        The task is registered before it first runs, so a later call in the
        same cycle sees it. Returns True when a new poller was started.
        '''
        if self.is_active(subscription):
            return False
        poller = TopicPoller(topic, subscription)
        poller.task = asyncio.create_task(factory(), name=f"poller:{subscription}")
        self.pollers[subscription] = poller
        return True

    def active(self) -> List[str]:
        return [name for name, p in self.pollers.items() if p.active]

    async def stop(self, subscription: str) -> bool:
        poller = self.pollers.pop(subscription, None)
        if poller is None:
            return False
        await poller.stop()
        logger.info("Poller stopped for %s", subscription)
        return True

    async def stop_all(self):
        pollers = list(self.pollers.values())
        self.pollers.clear()
        for poller in pollers:
            await poller.stop()
