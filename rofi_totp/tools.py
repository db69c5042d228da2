import asyncio
import logging
from collections.abc import Mapping

from rofi_totp.exceptions import ToolError


logger = logging.getLogger(__name__)


async def run(
    *argv: str,
    input: bytes | None = None,
    env: Mapping[str, str] | None = None,
    capture: bool = True,
    interactive: bool = False,
) -> bytes:
    """Run an external command and return its stdout.

    With ``capture=False`` stdout is discarded and stderr goes straight to
    ours, which is what the clipboard tools need: they fork a child that
    holds on to any pipe we give them. ``interactive`` leaves stderr on the
    terminal but still collects stdout (fzf).
    """

    logger.debug("running %s", argv[0])

    pipe_stderr = capture and not interactive

    try:
        process = await asyncio.subprocess.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if input is not None else None,
            stdout=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE if pipe_stderr else None,
            env=dict(env) if env is not None else None,
        )

    except FileNotFoundError as err:
        raise ToolError(argv, 127, f"{argv[0]}: command not found\n".encode()) from err

    stdout, stderr = await process.communicate(input)

    if process.returncode != 0:
        raise ToolError(argv, process.returncode, stderr or b"")

    return stdout or b""
