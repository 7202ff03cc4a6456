"""screenctl: manage named GNU screen sessions from asyncio code.

Call config.init() once at startup, then:

    from screenctl import create, find

    session = await create("build", "bash")
    await session.stuff("make", "\n")
    text = await session.hardcopy_string()
"""

from .discovery import find, find_all, parse_listing
from .errors import (
    CommandFailedError,
    ScreenError,
    SessionExistsError,
    SessionNotFoundError,
    SignalError,
    ValidationError,
    WaitCancelled,
)
from .lifecycle import create
from .registry import acquire_lock
from .session import Session

__all__ = [
    "CommandFailedError",
    "ScreenError",
    "Session",
    "SessionExistsError",
    "SessionNotFoundError",
    "SignalError",
    "ValidationError",
    "WaitCancelled",
    "acquire_lock",
    "create",
    "find",
    "find_all",
    "parse_listing",
]
