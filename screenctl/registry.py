"""Session lock registry: one SessionLock per session name.

Every Session value for a name, however it was obtained, shares the lock
held here, so operations on the same session serialize against each
other. Entries are created on first use and live for the whole process,
so the lock cannot be tied to any one event loop: a name locked under
one asyncio.run() must still work under the next, or from another
thread's loop.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque

from .waiting import Waiter


def _wake(fut: asyncio.Future) -> None:
    if not fut.done():
        fut.set_result(None)


class SessionLock:
    """Async mutex that works from any event loop or thread.

    State is guarded by a threading.Lock. Waiters park on a future of their
    own loop; release() hands ownership straight to the oldest waiter and
    wakes it with call_soon_threadsafe.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locked = False
        self._waiters: deque[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = deque()

    def __repr__(self) -> str:
        state = "locked" if self._locked else "unlocked"
        return f"<SessionLock [{state}, waiters:{len(self._waiters)}]>"

    def locked(self) -> bool:
        return self._locked

    async def acquire(self, waiter: Waiter | None = None) -> None:
        """Take the lock, waiting behind earlier callers.

        With a waiter, gives up with WaitCancelled when its cancel event
        fires or its deadline passes before the lock comes free.
        """
        if waiter is not None:
            waiter.check()

        with self._guard:
            if not self._locked and not self._waiters:
                self._locked = True
                return
            loop = asyncio.get_running_loop()
            entry = (loop, loop.create_future())
            self._waiters.append(entry)

        try:
            if waiter is None:
                await entry[1]
            else:
                await waiter.wait(entry[1])
        except BaseException:
            with self._guard:
                try:
                    self._waiters.remove(entry)
                    handed_over = False
                except ValueError:
                    handed_over = True
            # release() already made us the owner; pass it on
            if handed_over:
                self.release()
            raise

    def release(self) -> None:
        with self._guard:
            if not self._locked:
                raise RuntimeError("SessionLock is not acquired")
            if not self._waiters:
                self._locked = False
                return
            loop, fut = self._waiters.popleft()
        loop.call_soon_threadsafe(_wake, fut)

    async def __aenter__(self) -> None:
        await self.acquire()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


_locks: dict[str, SessionLock] = {}


def acquire_lock(name: str) -> SessionLock:
    """Get the lock for a session name, creating it on first reference.

    dict.setdefault is a single atomic load-or-store, so concurrent callers
    asking for the same unseen name converge on one lock.
    """
    return _locks.setdefault(name, SessionLock())
