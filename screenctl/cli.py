"""CLI interface for screenctl.

Entry point: screenctl [--screen-dir DIR] <subcommand> [args...]
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from .errors import ScreenError


def _parse_signal(value: str) -> int:
    """Accept a signal number or name ("15", "TERM", "SIGTERM")."""
    if value.isdigit():
        return int(value)
    name = value.upper()
    if not name.startswith("SIG"):
        name = "SIG" + name
    try:
        return int(signal.Signals[name])
    except KeyError:
        raise argparse.ArgumentTypeError(f"unknown signal '{value}'")


# --- Subcommands ---


async def cmd_ls(args):
    """List running sessions."""
    from . import config
    from .discovery import find_all

    sessions = await find_all()
    if not sessions:
        print(f"No running sessions in {config.socket_dir()}.")
        return
    for s in sessions:
        pid = s.pid if s.pid is not None else "?"
        print(f"{pid}\t{s.name}")


async def cmd_new(args):
    """Create a detached session and wait for it to come up."""
    from .lifecycle import create

    session = await create(args.name, args.shell, timeout=args.timeout)
    print(f"Started session '{session.name}' (pid {session.pid}).")


async def cmd_stuff(args):
    """Type text into a session."""
    from .discovery import find

    session = await find(args.name)
    text = list(args.text)
    if args.enter:
        text.append("\n")
    await session.stuff(*text)


async def cmd_chdir(args):
    from .discovery import find

    session = await find(args.name)
    await session.chdir(args.path)


async def cmd_exec(args):
    from .discovery import find

    session = await find(args.name)
    await session.exec(args.fdpat, args.cmd, *args.args)


async def cmd_hardcopy(args):
    """Dump a session's scrollback to a file, or to stdout without a path."""
    from .discovery import find

    session = await find(args.name)
    if args.path:
        await session.hardcopy(args.path, append=args.append)
    else:
        sys.stdout.write(await session.hardcopy_string())


async def cmd_log(args):
    """Point a session's log at a file. No path turns logging off."""
    from .discovery import find

    session = await find(args.name)
    await session.log(args.path or "", append=args.append, flush_interval=args.flush)


async def cmd_capture(args):
    """Run a line in a session and print the output it logs."""
    from .discovery import find

    session = await find(args.name)
    sys.stdout.write(await session.capture_output(*args.cmd, timeout=args.timeout))


async def cmd_clear(args):
    from .discovery import find

    await (await find(args.name)).clear()


async def cmd_quit(args):
    from .discovery import find

    await (await find(args.name)).quit()


async def cmd_kill(args):
    from .discovery import find

    await (await find(args.name)).kill()


async def cmd_signal(args):
    """Signal every process running inside a session."""
    from .discovery import find

    session = await find(args.name)
    await session.signal(args.signum)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screenctl",
        description="Manage named GNU screen sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--screen-dir", type=Path, help="Session directory (default: $SCREENDIR or /run/screen)")
    parser.add_argument("--log-dir", type=Path, help="Also write rotating log files here")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ls_parser = subparsers.add_parser("ls", help="List running sessions")
    ls_parser.set_defaults(func=cmd_ls)

    new_parser = subparsers.add_parser("new", help="Create a detached session")
    new_parser.add_argument("name", help="Session name")
    new_parser.add_argument("--shell", "-s", default="sh", help="Command to run in the session (default: sh)")
    new_parser.add_argument("--timeout", "-t", type=float, default=10.0, help="Seconds to wait for the session")
    new_parser.set_defaults(func=cmd_new)

    stuff_parser = subparsers.add_parser("stuff", help="Type text into a session")
    stuff_parser.add_argument("name", help="Session name")
    stuff_parser.add_argument("text", nargs="+", help="Text, joined with spaces")
    stuff_parser.add_argument("--enter", "-e", action="store_true", help="Append a newline")
    stuff_parser.set_defaults(func=cmd_stuff)

    chdir_parser = subparsers.add_parser("chdir", help="Change a session's working directory")
    chdir_parser.add_argument("name", help="Session name")
    chdir_parser.add_argument("path", help="Directory")
    chdir_parser.set_defaults(func=cmd_chdir)

    exec_parser = subparsers.add_parser("exec", help="Start a process in a session's window")
    exec_parser.add_argument("name", help="Session name")
    exec_parser.add_argument("--fdpat", default="", help="fd pattern, e.g. '.!|' (see screen(1))")
    exec_parser.add_argument("cmd", help="Program")
    exec_parser.add_argument("args", nargs=argparse.REMAINDER, help="Program arguments")
    exec_parser.set_defaults(func=cmd_exec)

    hardcopy_parser = subparsers.add_parser("hardcopy", help="Dump a session's scrollback")
    hardcopy_parser.add_argument("name", help="Session name")
    hardcopy_parser.add_argument("path", nargs="?", help="Output file (default: print to stdout)")
    hardcopy_parser.add_argument("--append", "-a", action="store_true", help="Append to the file")
    hardcopy_parser.set_defaults(func=cmd_hardcopy)

    log_parser = subparsers.add_parser("log", help="Log a session's output to a file")
    log_parser.add_argument("name", help="Session name")
    log_parser.add_argument("path", nargs="?", help="Log file (omit to turn logging off)")
    log_parser.add_argument("--append", "-a", action="store_true", help="Keep existing file content")
    log_parser.add_argument("--flush", "-f", type=int, default=10, help="Flush interval in seconds")
    log_parser.set_defaults(func=cmd_log)

    capture_parser = subparsers.add_parser("capture", help="Run a line in a session and print its output")
    capture_parser.add_argument("name", help="Session name")
    capture_parser.add_argument("cmd", nargs="+", help="Command line, joined with spaces")
    capture_parser.add_argument("--timeout", "-t", type=float, default=30.0, help="Seconds to wait for output")
    capture_parser.set_defaults(func=cmd_capture)

    for name, func, help_text in (
        ("clear", cmd_clear, "Erase a session's scrollback"),
        ("quit", cmd_quit, "Stop a session"),
        ("kill", cmd_kill, "Kill a session's current window"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("name", help="Session name")
        p.set_defaults(func=func)

    signal_parser = subparsers.add_parser("signal", help="Signal every process inside a session")
    signal_parser.add_argument("name", help="Session name")
    signal_parser.add_argument("signum", type=_parse_signal, help="Signal number or name (e.g. TERM)")
    signal_parser.set_defaults(func=cmd_signal)

    return parser


def main(argv: list[str] | None = None):
    from . import config
    from .logging_config import setup_process_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    setup_process_logging(
        "screenctl",
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_dir=args.log_dir,
    )

    try:
        config.init(screen_dir=args.screen_dir)
    except (OSError, KeyError) as e:
        print(f"Error: cannot initialize screenctl: {e}")
        sys.exit(1)

    try:
        asyncio.run(args.func(args))
    except (ScreenError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
