"""Session discovery: parse `screen -ls` into Session values.

`screen -ls` prints semi-structured text, one indented entry per session:

    There are screens on:
    	12345.build	(Detached)
    	12400.web	(Attached)
    2 Sockets in /run/screen/S-alice.

or "No Sockets found in ..." when nothing is running. Its exit status is
non-zero in both cases, so only the text is interpreted.
"""

from __future__ import annotations

import re

from . import runner
from .errors import SessionNotFoundError, ValidationError
from .logging_config import get_logger
from .registry import acquire_lock
from .session import Session

logger = get_logger(__name__)

NO_SOCKETS = "No Sockets found"


def _parse_pid(token: str) -> int | None:
    try:
        return int(token)
    except ValueError:
        return None


def parse_listing(output: str) -> list[tuple[int | None, str]]:
    """Parse `screen -ls` output into (pid, name) pairs.

    Header, footer and blank lines are skipped: entries are the indented
    lines. The first field of an entry is "<pid>.<name>"; the name is
    everything after the first dot.
    """
    entries = []
    if NO_SOCKETS in output:
        return entries
    for line in output.splitlines():
        if not line.strip() or not line[0].isspace():
            continue
        token = line.split()[0]
        pid_token, dot, name = token.partition(".")
        if not dot or not name:
            continue
        entries.append((_parse_pid(pid_token), name))
    return entries


def _entry_pattern(name: str) -> re.Pattern[str]:
    # "<pid>.<name>" bounded by whitespace on both sides, so "foo" matches
    # neither "123.foobar" nor "123.x.foo"
    return re.compile(rf"(?:^|\s)([^\s.]+)\.({re.escape(name)})(?=\s|$)", re.MULTILINE)


async def find(name: str) -> Session:
    """Find a live session by exact name.

    Raises ValidationError for an empty name and SessionNotFoundError when
    no running session has exactly this name.
    """
    if not name:
        raise ValidationError("screen session name cannot be empty")

    _, output = await runner.run_screen("-ls", name)
    if NO_SOCKETS in output:
        raise SessionNotFoundError(name)

    match = _entry_pattern(name).search(output)
    if match is None:
        raise SessionNotFoundError(name)

    pid = _parse_pid(match.group(1))
    if pid is None:
        logger.debug("find: unparseable pid %r for session '%s'", match.group(1), name)
    return Session(name=name, lock=acquire_lock(name), pid=pid)


async def find_all() -> list[Session]:
    """List every running session. Empty when nothing is running."""
    _, output = await runner.run_screen("-ls")
    sessions = [Session(name=name, lock=acquire_lock(name), pid=pid) for pid, name in parse_listing(output)]
    logger.debug(f"find_all: {len(sessions)} session(s)")
    return sessions
