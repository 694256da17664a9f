"""
Per-session write serialization within one process.

Every mutating scheduling operation for a class session (book, release,
promote, attendance transition, capacity edit) runs while holding that
session's lock, and the lock is held until the unit of work commits. Work on
different sessions never contends.

Across processes the database provides the same guarantee: the session row is
locked with SELECT ... FOR UPDATE and seat claims are conditional UPDATEs, so
this registry only removes pointless contention inside one worker.

A lock lives only while someone holds or waits for it; the last user removes
it, so the registry stays as large as the set of sessions being written.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from app.core.metrics import locked_sessions


class SessionLockRegistry:
    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            async with lock:
                locked_sessions.inc()
                try:
                    yield
                finally:
                    locked_sessions.dec()
        finally:
            self._users[session_id] -= 1
            if self._users[session_id] == 0:
                del self._users[session_id]
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)

    def clear(self) -> None:
        self._locks.clear()
        self._users.clear()


session_locks = SessionLockRegistry()
