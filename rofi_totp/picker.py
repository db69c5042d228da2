import sys
from collections.abc import Mapping
from typing import TextIO

from rofi_totp import cache, tools
from rofi_totp.config import Config, launcher_mode
from rofi_totp.exceptions import SelectionError


async def fzf_pick(names: list[str]) -> str:
    # names on stdin, selection on stdout, UI on the terminal
    output = await tools.run(
        "fzf",
        "--prompt=totp> ",
        input="".join(f"{name}\n" for name in names).encode(),
        interactive=True,
    )

    return output.decode().strip()


async def select_name(
    config: Config,
    name: str | None,
    environ: Mapping[str, str],
    stdin: TextIO = sys.stdin,
) -> str | None:
    """Figure out which entry to use.

    Returns None in launcher mode when no name was given: the caller is then
    expected to list the names for the launcher instead.
    """

    if name:
        return name

    if launcher_mode(environ):
        return None

    if stdin.isatty():
        choice = await fzf_pick(await cache.cached_names(config, environ))

        if choice:
            return choice

    raise SelectionError("name is empty!")
