"""Invocation of the screen executable."""

import asyncio

from . import config
from .logging_config import get_logger

logger = get_logger(__name__)


async def run_screen(*args: str) -> tuple[int, str]:
    """Run screen with args, return (returncode, combined stdout+stderr)."""
    cmd = (config.screen_exec(), *args)
    logger.debug("exec: %s", " ".join(cmd))
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        env=config.screen_env(),
    )
    stdout, _ = await proc.communicate()
    output = stdout.decode("utf-8", errors="replace")
    returncode = proc.returncode or 0
    if returncode != 0:
        logger.debug("screen exited %d: %s", returncode, output.strip())
    return returncode, output
