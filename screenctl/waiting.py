"""Cancellation-aware pauses for the poll loops.

Creation and output capture both poll the screen tool on wall-clock time,
and both may first queue behind another holder of the session lock. A
Waiter bundles the caller's cancel event and deadline so each wait can
check them at every boundary and wake as soon as the event fires,
instead of sleeping out the rest of the interval.
"""

from __future__ import annotations

import asyncio

from .errors import WaitCancelled


class Waiter:
    """Cancel event plus optional deadline for one polling operation."""

    def __init__(self, cancel: asyncio.Event | None = None, timeout: float | None = None):
        self.cancel = cancel
        self.deadline: float | None = None
        if timeout is not None:
            self.deadline = asyncio.get_event_loop().time() + timeout

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - asyncio.get_event_loop().time())

    def check(self) -> None:
        """Raise WaitCancelled if the cancel event fired or the deadline passed."""
        if self.cancel is not None and self.cancel.is_set():
            raise WaitCancelled("wait cancelled")
        if self.deadline is not None and asyncio.get_event_loop().time() >= self.deadline:
            raise WaitCancelled("wait deadline exceeded")

    async def wait(self, fut: asyncio.Future) -> None:
        """Wait for fut, raising WaitCancelled if cancel or the deadline comes first.

        fut itself is left alone on cancellation; its owner cleans up.
        """
        self.check()
        pending: set[asyncio.Future] = {fut}
        stop = None
        if self.cancel is not None:
            stop = asyncio.ensure_future(self.cancel.wait())
            pending.add(stop)
        try:
            done, _ = await asyncio.wait(pending, timeout=self.remaining(), return_when=asyncio.FIRST_COMPLETED)
        finally:
            if stop is not None:
                stop.cancel()
        if fut in done:
            return
        self.check()
        raise WaitCancelled("wait cancelled")

    async def pause(self, delay: float) -> None:
        """Sleep up to delay seconds, then re-check for cancellation."""
        self.check()
        remaining = self.remaining()
        if remaining is not None:
            delay = min(delay, remaining)

        if self.cancel is None:
            await asyncio.sleep(delay)
        else:
            try:
                await asyncio.wait_for(self.cancel.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

        self.check()
