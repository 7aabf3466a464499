"""
Partition Actors: one serialized execution context per partition key.

Each key (a room id, or the fixed "global" registry key) is served by at most
one live actor instance, and every operation on that key runs while holding
the key's lock. Multi-step read-then-write sequences inside an operation are
therefore atomic with respect to other operations on the same key.

Actors keep no decision state in memory; whatever they need is read back from
durable storage, so an idle instance can be evicted and recreated at any time.
Eviction is lazy: it happens when the namespace is next used, never on a timer.

Usage:
    rooms = ActorNamespace("room", factory=lambda key: StreamRoomCoordinator(key, ...))

    async with rooms.acquire("42") as room:
        await room.broadcast_state()
"""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from loguru import logger

ActorT = TypeVar("ActorT")


@dataclass
class _ActorSlot(Generic[ActorT]):
    actor: ActorT
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_used: float = 0.0
    in_flight: int = 0


class ActorNamespace(Generic[ActorT]):
    """
    Registry of partition actors of one kind.

    Args:
        name: Namespace name used in log prefixes
        factory: Creates the actor instance for a key
        idle_timeout: Seconds of inactivity after which an instance may be
            evicted; None disables eviction
        clock: Monotonic time source
    """

    def __init__(
        self,
        name: str,
        factory: Callable[[str], ActorT],
        idle_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._factory = factory
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._slots: dict[str, _ActorSlot[ActorT]] = {}

    def _get_or_create_slot(self, key: str) -> _ActorSlot[ActorT]:
        slot = self._slots.get(key)
        if slot is None:
            slot = _ActorSlot(actor=self._factory(key), last_used=self._clock())
            self._slots[key] = slot
            logger.info(f"[{self.name}:{key}] Actor instance created ({len(self._slots)} active)")
        return slot

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[ActorT]:
        """Run one operation on the actor for ``key``, serialized per key."""
        slot = self._get_or_create_slot(key)
        slot.in_flight += 1
        try:
            async with slot.lock:
                slot.last_used = self._clock()
                yield slot.actor
        finally:
            slot.in_flight -= 1
            slot.last_used = self._clock()
            self.evict_idle()

    def evict(self, key: str) -> bool:
        """
        Drop the instance for ``key``.

        Instances with operations in flight are never evicted.

        Returns:
            True if an instance was removed
        """
        slot = self._slots.get(key)
        if slot is None or slot.in_flight > 0:
            return False
        del self._slots[key]
        logger.info(f"[{self.name}:{key}] Actor instance evicted")
        return True

    def evict_idle(self) -> list[str]:
        """Evict every instance idle for longer than the timeout."""
        if self._idle_timeout is None:
            return []

        now = self._clock()
        idle = [
            key for key, slot in self._slots.items()
            if slot.in_flight == 0 and now - slot.last_used > self._idle_timeout
        ]
        return [key for key in idle if self.evict(key)]

    def active_keys(self) -> list[str]:
        """Keys with a live actor instance."""
        return list(self._slots)
