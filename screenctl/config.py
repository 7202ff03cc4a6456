"""Process-wide configuration, resolved once at startup.

Call init() once before touching any session. Failing to resolve the
session directory or the current user is fatal: init() raises and the
process should not continue.
"""

import getpass
import os
import shutil
from pathlib import Path

DEFAULT_SCREEN_DIR = Path("/run/screen")
DEFAULT_SCREEN_EXEC = "/usr/bin/screen"

_screen_dir: Path | None = None
_screen_dir_overridden: bool = False
_username: str | None = None
_screen_exec: str | None = None


def init(screen_dir: Path | None = None, screen_exec: str | None = None) -> None:
    """Resolve the session directory, current user and screen executable.

    The session directory comes from the argument, then $SCREENDIR, then
    /run/screen. It must already exist.
    """
    global _screen_dir, _screen_dir_overridden, _username, _screen_exec

    overridden = True
    if screen_dir is None:
        env_dir = os.environ.get("SCREENDIR")
        if env_dir:
            screen_dir = Path(env_dir)
        else:
            screen_dir = DEFAULT_SCREEN_DIR
            overridden = False

    if not screen_dir.is_dir():
        raise FileNotFoundError(f"screen directory {screen_dir} does not exist")

    if screen_exec is None:
        screen_exec = os.environ.get("SCREEN_EXEC") or shutil.which("screen") or DEFAULT_SCREEN_EXEC

    _username = getpass.getuser()
    _screen_dir = screen_dir
    _screen_dir_overridden = overridden
    _screen_exec = screen_exec


def screen_dir() -> Path:
    """Get the session directory. Raises if init() hasn't been called."""
    if _screen_dir is None:
        raise RuntimeError("config.init() not called")
    return _screen_dir


def username() -> str:
    """Get the invoking user's name. Raises if init() hasn't been called."""
    if _username is None:
        raise RuntimeError("config.init() not called")
    return _username


def screen_exec() -> str:
    """Get the path of the screen executable."""
    if _screen_exec is None:
        raise RuntimeError("config.init() not called")
    return _screen_exec


def socket_dir() -> Path:
    """Directory holding this user's session sockets.

    screen nests sockets under S-<user> in the system directory, but uses
    an overridden $SCREENDIR as-is.
    """
    if _screen_dir_overridden:
        return screen_dir()
    return screen_dir() / f"S-{username()}"


def screen_env() -> dict[str, str]:
    """Environment for screen invocations, carrying the overridden directory."""
    env = dict(os.environ)
    if _screen_dir_overridden:
        env["SCREENDIR"] = str(screen_dir())
    return env
