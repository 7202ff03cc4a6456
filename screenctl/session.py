"""Screen sessions and the commands dispatched to them.

A Session is a lightweight reference to a live screen session: its name,
the shared per-name lock from the registry, and the pid of the screen
process backing it. It is not authoritative. The session may exit at any
moment, so every mutating operation takes the lock, re-discovers the
session by name, and only then runs `screen -S <name> -X <command>`.

Compound operations (hardcopy, log) run a short fixed sequence of control
commands under one lock hold. screen has no transactions: a failure
between sub-commands leaves the earlier settings applied.
"""

from __future__ import annotations

import asyncio
import os
import re
import tempfile
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

import psutil

from . import runner
from .errors import CommandFailedError, SessionNotFoundError, SignalError, ValidationError
from .logging_config import get_logger
from .registry import SessionLock
from .waiting import Waiter

logger = get_logger(__name__)


DEFAULT_FLUSH_INTERVAL = 10  # screen's own logfile flush default (seconds)
LOG_SETTLE_DELAY = 2.0  # screen takes a moment before logging engages
CAPTURE_POLL_INTERVAL = 1.0  # How often capture_output() re-reads the log file
CAPTURE_FLUSH_INTERVAL = 1  # logfile flush interval while capturing

# exec fd pattern: up to three of . ! : optionally followed by |
_FDPAT_RE = re.compile(r"[.!:]{0,3}\|?")


@dataclass
class Session:
    """A named screen session."""

    name: str
    lock: SessionLock = field(repr=False, compare=False)
    pid: int | None = None

    # --- Liveness ---

    async def is_alive(self) -> bool:
        """Re-discover this session by name."""
        try:
            await self._rediscover()
        except SessionNotFoundError:
            return False
        return True

    async def _rediscover(self) -> Session:
        from .discovery import find

        return await find(self.name)

    @asynccontextmanager
    async def _exclusive(self, waiter: Waiter | None = None) -> AsyncIterator[Session]:
        """Hold the session lock and confirm the session is still running.

        Yields the freshly discovered record, whose pid may differ from
        this handle's if the session was recreated under the same name.
        """
        await self.lock.acquire(waiter)
        try:
            yield await self._rediscover()
        finally:
            self.lock.release()

    async def _control(self, *args: str) -> None:
        """Run one `screen -X` command against this session. Caller holds the lock."""
        returncode, output = await runner.run_screen("-S", self.name, "-X", *args)
        if returncode != 0:
            raise CommandFailedError(output, args)

    # --- Builtin commands ---

    async def quit(self) -> None:
        """Stop the session."""
        async with self._exclusive():
            await self._control("quit")
        logger.info(f"Session '{self.name}' quit")

    async def kill(self) -> None:
        """Kill the session's current window."""
        async with self._exclusive():
            await self._control("kill")
        logger.info(f"Session '{self.name}' killed")

    async def clear(self) -> None:
        """Erase the session's scrollback buffer."""
        async with self._exclusive():
            await self._control("clear")

    async def stuff(self, *commands: str) -> None:
        """Paste text into the session's stdin.

        Arguments are joined with single spaces. No newline is added: append
        "\\n" to submit a line.
        """
        async with self._exclusive():
            await self._stuff(*commands)

    async def _stuff(self, *commands: str) -> None:
        await self._control("stuff", " ".join(commands))

    async def chdir(self, path: str | Path) -> None:
        """Change the session's working directory for new windows."""
        if not os.path.exists(path):
            raise FileNotFoundError(f"chdir target {path} does not exist")
        async with self._exclusive():
            await self._control("chdir", str(path))

    async def exec(self, fdpat: str, command: str, *args: str) -> None:
        """Start a process in the session's current window.

        fdpat controls how the new process's file descriptors are wired to
        the window (see the "exec" section of screen(1)). An empty fdpat
        uses screen's default.
        """
        if fdpat and not _FDPAT_RE.fullmatch(fdpat):
            raise ValidationError(f"invalid exec fd pattern '{fdpat}'")
        async with self._exclusive():
            argv = [fdpat] if fdpat else []
            await self._control("exec", *argv, command, *args)

    async def hardcopy(self, path: str | Path, append: bool = False) -> None:
        """Write the session's scrollback buffer to path."""
        async with self._exclusive():
            await self._control("hardcopy_append", "on" if append else "off")
            await self._control("hardcopy", str(path))

    async def log(self, path: str | Path, append: bool = False, flush_interval: int = DEFAULT_FLUSH_INTERVAL) -> None:
        """Log the session's output to path. An empty path turns logging off.

        screen always appends to an existing logfile, so without append the
        file is truncated first.
        """
        async with self._exclusive():
            await self._log(str(path), append, flush_interval)

    async def _log(self, path: str, append: bool, flush_interval: int) -> None:
        if path:
            _prepare_logfile(Path(path), append)
        await self._control("logfile", path)
        await self._control("logfile", "flush", str(flush_interval))
        await self._control("log", "on" if path else "off")

    # --- Process signals ---

    async def signal(self, signum: int) -> None:
        """Send a signal to every process descended from the session's screen process."""
        async with self._exclusive() as current:
            if current.pid is None:
                raise SignalError(f"screen session '{self.name}' has no known process")
            if current.pid != self.pid:
                logger.info(f"Session '{self.name}' now runs as pid {current.pid} (was {self.pid})")
            pids = await asyncio.to_thread(_descendants, current.pid)
            logger.info(f"Session '{self.name}': signal {int(signum)} -> {len(pids)} process(es)")
            for pid in pids:
                _deliver(pid, signum)

    # --- Output capture ---

    async def hardcopy_string(self) -> str:
        """Return the session's scrollback buffer as text."""
        fd, tmp = tempfile.mkstemp(prefix="screenctl-hardcopy-")
        os.close(fd)
        try:
            await self.hardcopy(tmp, append=False)
            return Path(tmp).read_text(errors="replace")
        finally:
            Path(tmp).unlink(missing_ok=True)

    async def capture_output(
        self,
        *commands: str,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> str:
        """Type a line into the session and return the output it produces.

        Logging is pointed at a temporary file, the commands are stuffed
        followed by a newline, and the file is polled until something shows
        up in it. This cannot tell "still running" from "produced nothing
        yet", so pass a generous timeout and search the result for what you
        need. Raises WaitCancelled when cancel fires or timeout expires.
        """
        waiter = Waiter(cancel=cancel, timeout=timeout)
        fd, tmp = tempfile.mkstemp(prefix="screenctl-capture-")
        os.close(fd)
        log_file = Path(tmp)
        try:
            async with self._exclusive(waiter):
                await self._log(tmp, False, CAPTURE_FLUSH_INTERVAL)
                try:
                    await waiter.pause(LOG_SETTLE_DELAY)
                    await self._stuff(*commands, "\n")
                    return await _poll_nonempty(log_file, waiter)
                finally:
                    await self._stop_logging()
        finally:
            log_file.unlink(missing_ok=True)

    async def _stop_logging(self) -> None:
        """Turn logging back off after a capture. Failures are logged only."""
        try:
            await self._control("log", "off")
        except CommandFailedError as e:
            logger.warning(f"Session '{self.name}': disabling log after capture failed: {e.output.strip()}")


def _prepare_logfile(path: Path, append: bool) -> None:
    """Get path ready for screen, which always appends to its logfile."""
    try:
        path.stat()
    except FileNotFoundError:
        return
    if not append:
        path.write_bytes(b"")


async def _poll_nonempty(path: Path, waiter: Waiter) -> str:
    """Re-read path every CAPTURE_POLL_INTERVAL until it has content."""
    while True:
        await waiter.pause(CAPTURE_POLL_INTERVAL)
        try:
            content = path.read_text(errors="replace")
        except OSError as e:
            logger.debug("capture: read %s failed: %s", path, e)
            continue
        if content:
            return content


def _descendants(root_pid: int) -> list[int]:
    """Breadth-first list of every pid below root_pid in the process tree.

    A process whose children can't be queried (gone, or not ours) counts as
    a leaf.
    """
    found: list[int] = []
    queue = deque([root_pid])
    while queue:
        pid = queue.popleft()
        try:
            children = psutil.Process(pid).children()
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.debug("signal: cannot list children of %d: %s", pid, e)
            continue
        for child in children:
            found.append(child.pid)
            queue.append(child.pid)
    return found


def _deliver(pid: int, signum: int) -> None:
    """Signal one process. A process that has already exited is skipped."""
    try:
        psutil.Process(pid).send_signal(signum)
    except psutil.NoSuchProcess:
        logger.debug("signal: process %d already gone", pid)
    except psutil.Error as e:
        raise SignalError(str(e)) from e
