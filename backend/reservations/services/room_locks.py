"""
Per-room mutual exclusion for booking mutations.

Two mutations on the same room never interleave their read-check-write
sequence; mutations on different rooms run fully concurrently.

Locks live in an arena keyed by room id. Entries are created on first use
and discarded once no task holds or waits on them, so the arena stays as
large as the set of rooms currently being mutated.

A mutation touching several rooms (moving a booking) acquires them in
ascending id order so two movers can never deadlock each other. Waiting is
bounded by ROOM_LOCK_TIMEOUT; a timeout surfaces as Unavailable.

Scope: one process. Cross-process coordination is left to the database.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from reservations.core.config import get_settings
from reservations.core.errors import Unavailable
from reservations.core.logging import get_logger
from reservations.core.metrics import room_lock_timeouts, room_lock_wait

logger = get_logger(__name__)


class RoomLockRegistry:
    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, room_id: int) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        self._users[room_id] = self._users.get(room_id, 0) + 1
        return lock

    def _checkin(self, room_id: int) -> None:
        self._users[room_id] -= 1
        if self._users[room_id] == 0:
            del self._users[room_id]
            del self._locks[room_id]

    @asynccontextmanager
    async def hold(self, *room_ids: int) -> AsyncIterator[None]:
        ordered = sorted(set(room_ids))
        timeout = self.timeout if self.timeout is not None else get_settings().ROOM_LOCK_TIMEOUT
        locks = [self._checkout(room_id) for room_id in ordered]
        acquired: list[asyncio.Lock] = []
        start = time.perf_counter()
        try:
            for room_id, lock in zip(ordered, locks):
                try:
                    # acquire() runs in this task: a timeout never leaves the lock held
                    async with asyncio.timeout(timeout):
                        await lock.acquire()
                except TimeoutError:
                    room_lock_timeouts.inc()
                    logger.warning("room_lock_timeout", room_id=room_id, timeout=timeout)
                    raise Unavailable(f"Room {room_id} is busy, please retry")
                acquired.append(lock)
            room_lock_wait.observe(time.perf_counter() - start)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for room_id in ordered:
                self._checkin(room_id)


room_locks = RoomLockRegistry()
