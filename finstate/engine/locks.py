"""
Per-Entity Locks

Every mutation reads current state, validates against it and then submits.
Two payments against the same loan must never interleave that sequence,
or both could validate against the same stale balance.

Locks are keyed by (kind, id). A mutation touching several entities takes
all of their locks in one canonical order, so two mutations can never wait
on each other.

A lock lives only while some mutation holds or waits on it.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from finstate.models.entities import EntityKind

LockKey = tuple[EntityKind, Any]


def _sort_key(key: LockKey) -> tuple[str, str]:
    kind, entity_id = key
    return (EntityKind(kind).value, str(entity_id))


class EntityLocks:
    """Registry of asyncio locks, one per entity."""

    def __init__(self):
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    @property
    def active_count(self) -> int:
        """Number of entities currently held or waited on."""
        return len(self._locks)

    def _checkout(self, normalized: tuple[str, str]) -> asyncio.Lock:
        lock = self._locks.get(normalized)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[normalized] = lock
        self._users[normalized] = self._users.get(normalized, 0) + 1
        return lock

    def _checkin(self, normalized: tuple[str, str]) -> None:
        remaining = self._users[normalized] - 1
        if remaining:
            self._users[normalized] = remaining
        else:
            del self._users[normalized]
            del self._locks[normalized]

    def is_locked(self, key: LockKey) -> bool:
        lock = self._locks.get(_sort_key(key))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *keys: LockKey) -> AsyncIterator[None]:
        """
        Hold the locks for `keys` for the duration of the block.

        Keys with a None id are ignored; duplicates are taken once.
        """
        wanted = sorted({_sort_key(key) for key in keys if key[1] is not None})
        locks = [self._checkout(normalized) for normalized in wanted]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for normalized in wanted:
                self._checkin(normalized)
