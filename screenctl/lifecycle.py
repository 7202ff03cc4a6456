"""Session creation.

`screen -dmS` detaches immediately, before the new session shows up in
`screen -ls`. create() therefore polls discovery until the session is
visible, giving up as soon as the caller cancels.

The session lock is held from the existence check through the poll, so
two concurrent create() calls for one name cannot both pass the check.
Queueing for that lock counts against the caller's cancel event and
timeout like the poll itself. If the wait is cancelled after screen accepted the command, the session
may still come up on its own; nothing rolls it back.
"""

from __future__ import annotations

import asyncio
import shlex

from . import runner
from .discovery import find
from .errors import CommandFailedError, SessionExistsError, SessionNotFoundError, ValidationError, WaitCancelled
from .logging_config import get_logger
from .registry import acquire_lock
from .session import Session
from .waiting import Waiter

logger = get_logger(__name__)

CREATE_POLL_INTERVAL = 0.1  # Seconds between discovery polls while a session starts


async def create(
    name: str,
    shell: str = "sh",
    *,
    cancel: asyncio.Event | None = None,
    timeout: float | None = None,
) -> Session:
    """Start a detached session running shell and wait until it is live.

    shell is split into an argv (e.g. "bash -l"). Raises SessionExistsError
    if the name is taken, CommandFailedError if screen rejects the command,
    and WaitCancelled if cancel fires or timeout expires first.
    """
    if not name:
        raise ValidationError("screen session name cannot be empty")
    argv = shlex.split(shell)
    if not argv:
        raise ValidationError("shell command cannot be empty")

    waiter = Waiter(cancel=cancel, timeout=timeout)

    lock = acquire_lock(name)
    await lock.acquire(waiter)
    try:
        try:
            await find(name)
        except SessionNotFoundError:
            pass
        else:
            raise SessionExistsError(name)

        waiter.check()

        logger.info(f"Creating screen session '{name}': {shell}")
        returncode, output = await runner.run_screen("-dmS", name, *argv)
        if returncode != 0:
            raise CommandFailedError(output, ("-dmS", name, *argv))

        try:
            return await _wait_until_live(name, waiter)
        except WaitCancelled:
            logger.warning(f"Gave up waiting for screen session '{name}'; it may still start")
            raise
    finally:
        lock.release()


async def _wait_until_live(name: str, waiter: Waiter) -> Session:
    """Poll discovery until name appears. Errors other than not-found end the wait."""
    while True:
        await waiter.pause(CREATE_POLL_INTERVAL)
        try:
            session = await find(name)
        except SessionNotFoundError:
            continue
        logger.info(f"Screen session '{name}' is live (pid {session.pid})")
        return session
