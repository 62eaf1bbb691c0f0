"""Per-slot locks serializing access to shared queue slots.

Every read-modify-write of a slot runs under that slot's mutation lock and a
whole synchronization pass runs under its pass lock. Locks are only acquired
in that order (pass, then mutation), and the mutation lock is never held
across a note-service call. Locks are process-local: one process owns a
store at a time.
"""

from __future__ import annotations

import asyncio


class SlotLockRegistry:
    """Hands out one mutation lock and one pass lock per slot key."""

    def __init__(self) -> None:
        self._mutation_locks: dict[str, asyncio.Lock] = {}
        self._pass_locks: dict[str, asyncio.Lock] = {}

    def mutation_lock(self, slot: str) -> asyncio.Lock:
        lock = self._mutation_locks.get(slot)
        if lock is None:
            lock = asyncio.Lock()
            self._mutation_locks[slot] = lock
        return lock

    def pass_lock(self, slot: str) -> asyncio.Lock:
        lock = self._pass_locks.get(slot)
        if lock is None:
            lock = asyncio.Lock()
            self._pass_locks[slot] = lock
        return lock

    def is_syncing(self, slot: str) -> bool:
        lock = self._pass_locks.get(slot)
        return lock is not None and lock.locked()
