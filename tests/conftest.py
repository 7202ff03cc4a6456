"""Shared fixtures for screenctl tests."""

import asyncio
import atexit
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import pytest

import screenctl.runner as runner
from screenctl.config import init as _config_init

# Module-level setup: a private session directory so tests (including the
# real-screen integration tests) never touch the user's own sessions.
# mkdtemp creates it 0700, which screen insists on.
_tmp = Path(tempfile.mkdtemp(prefix="screenctl-test-"))
atexit.register(shutil.rmtree, _tmp, ignore_errors=True)
_config_init(screen_dir=_tmp)

SOCKET_DIR = "/run/screen/S-tester"


@dataclass
class FakeSession:
    name: str
    pid: int | str
    buffer: str = ""
    cwd: str | None = None
    execs: list[list[str]] = field(default_factory=list)
    hardcopy_append: bool = False
    logfile: str | None = None
    flush: int | None = None
    logging: bool = False
    echo_to_log: bool = True  # write stuffed text to the logfile when logging


class FakeScreen:
    """Stand-in for the screen executable, patched over runner.run_screen.

    Records every argv in `calls` and (argv, start, end) in `spans` so tests
    can check ordering and overlap.
    """

    def __init__(self):
        self.sessions: dict[str, FakeSession] = {}
        self.calls: list[tuple[str, ...]] = []
        self.spans: list[tuple[tuple[str, ...], float, float]] = []
        self.failures: dict[str, str] = {}  # subcommand -> output of a failed run
        self.delay = 0.0
        self.listings_before_visible = 0
        self._pending: dict[str, tuple[FakeSession, int]] = {}
        self._next_pid = 4000

    def add(self, name: str, pid: int | str | None = None) -> FakeSession:
        if pid is None:
            self._next_pid += 1
            pid = self._next_pid
        session = FakeSession(name=name, pid=pid)
        self.sessions[name] = session
        return session

    def control_calls(self, name: str | None = None) -> list[tuple[str, ...]]:
        """The -X commands issued, as (subcommand, *args)."""
        return [c[3:] for c in self.calls if c[0] == "-S" and (name is None or c[1] == name)]

    async def run(self, *args: str) -> tuple[int, str]:
        loop = asyncio.get_event_loop()
        start = loop.time()
        self.calls.append(args)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self._handle(list(args))
        finally:
            self.spans.append((args, start, loop.time()))

    def _handle(self, args: list[str]) -> tuple[int, str]:
        if args[0] == "-ls":
            return self._list(args[1] if len(args) > 1 else None)
        if args[0] == "-dmS":
            return self._create(args[1], args[2:])
        if args[0] == "-S" and args[2] == "-X":
            return self._control(args[1], args[3], args[4:])
        return 1, f"unexpected arguments {args}\n"

    def _list(self, pattern: str | None) -> tuple[int, str]:
        for name, (session, remaining) in list(self._pending.items()):
            if remaining <= 0:
                self.sessions[name] = session
                del self._pending[name]
            else:
                self._pending[name] = (session, remaining - 1)

        # screen matches the filter loosely; discovery must anchor on the name
        matched = [s for s in self.sessions.values() if pattern is None or pattern in s.name]
        if not matched:
            return 1, f"No Sockets found in {SOCKET_DIR}.\n\n"
        header = "There is a screen on:" if len(matched) == 1 else "There are screens on:"
        lines = [header]
        lines += [f"\t{s.pid}.{s.name}\t(12/01/2025 10:00:00 AM)\t(Detached)" for s in matched]
        lines.append(f"{len(matched)} Socket{'s' if len(matched) != 1 else ''} in {SOCKET_DIR}.")
        return 1, "\n".join(lines) + "\n\n"

    def _create(self, name: str, argv: list[str]) -> tuple[int, str]:
        if "create" in self.failures:
            return 1, self.failures["create"]
        self._next_pid += 1
        session = FakeSession(name=name, pid=self._next_pid)
        if self.listings_before_visible:
            self._pending[name] = (session, self.listings_before_visible)
        else:
            self.sessions[name] = session
        return 0, ""

    def _control(self, name: str, sub: str, rest: list[str]) -> tuple[int, str]:
        session = self.sessions.get(name)
        if session is None:
            return 1, "No screen session found.\n"
        if sub in self.failures:
            return 1, self.failures[sub]

        if sub == "stuff":
            session.buffer += rest[0]
            if session.logging and session.logfile and session.echo_to_log:
                with open(session.logfile, "a") as f:
                    f.write(rest[0])
        elif sub == "chdir":
            session.cwd = rest[0]
        elif sub == "exec":
            session.execs.append(rest)
        elif sub == "hardcopy_append":
            session.hardcopy_append = rest[0] == "on"
        elif sub == "hardcopy":
            with open(rest[0], "a" if session.hardcopy_append else "w") as f:
                f.write(session.buffer)
        elif sub == "logfile":
            if rest[0] == "flush":
                session.flush = int(rest[1])
            else:
                session.logfile = rest[0]
        elif sub == "log":
            session.logging = rest[0] == "on"
        elif sub == "clear":
            session.buffer = ""
        elif sub in ("quit", "kill"):
            del self.sessions[name]
        else:
            return 1, f"unknown command '{sub}'\n"
        return 0, ""


@pytest.fixture
def fake_screen(monkeypatch):
    """Patch a FakeScreen over the screen executable."""
    fake = FakeScreen()
    monkeypatch.setattr(runner, "run_screen", fake.run)
    return fake
