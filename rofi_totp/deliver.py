import asyncio
import enum
import logging
import sys
from collections.abc import Mapping
from typing import TextIO

from rofi_totp import tools
from rofi_totp.config import Config
from rofi_totp.exceptions import ToolError


logger = logging.getLogger(__name__)


class Display(enum.Enum):
    NONE = "none"
    WAYLAND = "wayland"
    X11 = "x11"


# clipboard command, type command, enter-key command
BACKENDS = {
    Display.WAYLAND: (
        ("wl-copy",),
        ("ydotool", "type"),
        ("ydotool", "key", "28:1", "28:0"),
    ),
    Display.X11: (
        ("xclip", "-selection", "clipboard"),
        ("xdotool", "type", "--"),
        ("xdotool", "key", "Return"),
    ),
}


def detect_display(environ: Mapping[str, str]) -> Display:
    if environ.get("WAYLAND_DISPLAY"):
        return Display.WAYLAND

    if environ.get("DISPLAY"):
        return Display.X11

    return Display.NONE


async def copy_to_clipboard(display: Display, code: str) -> None:
    clipboard, _, _ = BACKENDS[display]

    await tools.run(*clipboard, input=code.encode(), capture=False)


async def autopaste(display: Display, code: str, delay: float, enter: bool) -> None:
    _, type_cmd, enter_cmd = BACKENDS[display]

    await tools.run(*type_cmd, code)

    if delay > 0:
        await asyncio.sleep(delay)

    if enter:
        await tools.run(*enter_cmd)


async def deliver(
    config: Config,
    code: str,
    environ: Mapping[str, str],
    stdout: TextIO | None = None,
    force_stdout: bool = False,
) -> bool:
    """Hand the code to the user; returns False if any delivery step failed.

    Clipboard and autopaste run independently, one failing does not stop the
    other.
    """

    display = detect_display(environ)

    if (
        force_stdout
        or display is Display.NONE
        or not (config.autoclipboard or config.autopaste)
    ):
        print(code, file=stdout or sys.stdout)

        return True

    ok = True

    if config.autoclipboard:
        try:
            await copy_to_clipboard(display, code)
            logger.info("copied code to the %s clipboard", display.value)

        except ToolError as err:
            logger.error("clipboard copy failed (%s): %s", err.argv[0], err)
            ok = False

    if config.autopaste:
        try:
            await autopaste(display, code, config.autopaste_delay, config.autoenter)
            logger.info("typed code via %s", display.value)

        except ToolError as err:
            logger.error("autopaste failed (%s): %s", err.argv[0], err)
            ok = False

    return ok
