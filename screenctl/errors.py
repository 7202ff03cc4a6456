"""Exception taxonomy for screen session management.

Every error raised by screenctl derives from ScreenError, so callers can
catch the whole family at once. Local filesystem failures (missing chdir
target, temp file trouble) are left as the builtin OSError family.
"""


class ScreenError(Exception):
    """Base class for screenctl errors."""


class ValidationError(ScreenError, ValueError):
    """Malformed input rejected before the screen tool is invoked."""


class SessionNotFoundError(ScreenError, LookupError):
    """No live session with the given name."""

    def __init__(self, name: str):
        super().__init__(f"screen session '{name}' not found")
        self.name = name


class SessionExistsError(ScreenError):
    """A live session with the given name already exists."""

    def __init__(self, name: str):
        super().__init__(f"screen session '{name}' already exists")
        self.name = name


class CommandFailedError(ScreenError):
    """The screen tool exited non-zero.

    The message is the tool's combined output, verbatim, so operators can
    act on it without re-running the command by hand.
    """

    def __init__(self, output: str, command: tuple[str, ...] = ()):
        super().__init__(output)
        self.output = output
        self.command = command


class WaitCancelled(ScreenError):
    """A polling wait was aborted by its cancel event or deadline."""


class SignalError(ScreenError):
    """Delivering a signal to a session's process tree failed."""
