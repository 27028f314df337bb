"""Reader/writer locking over the storage tree.

Two modes are supported:

    - ``bucket``: a namespace lock guards the set of buckets, and each
      bucket has its own lock guarding the objects inside it. Writes to
      different buckets do not contend.
    - ``global``: one lock for the whole tree. Every write is exclusive
      against every other operation.

Locks are always taken namespace first, then bucket, and never re-entered.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class RWLock:
    """An asyncio reader/writer lock that prefers waiting writers.

    Any number of readers may hold the lock together. A writer holds it
    alone. New readers queue behind a waiting writer so a steady stream of
    reads cannot starve writes.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def locked(self) -> bool:
        """True while any reader or writer holds the lock."""
        return self._writer or self._readers > 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold the lock shared for the duration of the block."""
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._waiting_writers == 0)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._waiting_writers -= 1
                # Readers held back by this writer may proceed if it gave up.
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class LockManager:
    """Hands out namespace and per-bucket locks.

    Per-bucket locks are created on first use and dropped once no task
    holds or waits for them, so the table does not grow with every bucket
    name ever seen.

    Attributes:
        mode: ``"bucket"`` or ``"global"``.
    """

    def __init__(self, mode: str = "bucket") -> None:
        if mode not in ("bucket", "global"):
            raise ValueError(f"Unknown lock mode: {mode}")
        self.mode = mode
        self._namespace = RWLock()
        self._buckets: dict[str, RWLock] = {}
        self._refs: dict[str, int] = {}

    @asynccontextmanager
    async def namespace(self, exclusive: bool = False) -> AsyncIterator[None]:
        """Lock the set of buckets (list/create/delete bucket)."""
        cm = self._namespace.write() if exclusive else self._namespace.read()
        async with cm:
            yield

    @asynccontextmanager
    async def bucket(self, name: str, exclusive: bool = False) -> AsyncIterator[None]:
        """Lock the objects of one bucket.

        In ``global`` mode this is the single tree-wide lock.
        """
        if self.mode == "global":
            async with self.namespace(exclusive=exclusive):
                yield
            return

        async with self._namespace.read():
            lock = self._checkout(name)
            try:
                cm = lock.write() if exclusive else lock.read()
                async with cm:
                    yield
            finally:
                self._release(name)

    def bucket_lock_count(self) -> int:
        """Number of per-bucket locks currently tracked."""
        return len(self._buckets)

    def _checkout(self, name: str) -> RWLock:
        lock = self._buckets.get(name)
        if lock is None:
            lock = self._buckets[name] = RWLock()
        self._refs[name] = self._refs.get(name, 0) + 1
        return lock

    def _release(self, name: str) -> None:
        self._refs[name] -= 1
        if self._refs[name] == 0:
            del self._refs[name]
            del self._buckets[name]
