import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import TextIO

from rofi_totp import __version__, cache, store
from rofi_totp.config import APP_NAME, Config, launcher_mode, load_config
from rofi_totp.deliver import Display, deliver, detect_display
from rofi_totp.exceptions import RofiTotpError
from rofi_totp.log import setup_logger
from rofi_totp.picker import select_name


logger = logging.getLogger(__name__)

CONFIG_HELP = f"""\
configuration:
  Options are read from the environment, then from
  $XDG_CONFIG_HOME/{APP_NAME}/config (KEY=VALUE per line), then from the
  command line, later sources winning. Flags are true for y, yes or 1.

  GNUPGHOME                  gpg home directory used for decryption
  ROFI_TOTP_SECRETS          secrets file (default: <config dir>/secrets.json.gpg)
  ROFI_TOTP_NO_ENCRYPTION    read the secrets file as plain JSON (default: no)
  ROFI_TOTP_AUTOPASTE        type the code into the focused window (default: yes)
  ROFI_TOTP_AUTOPASTE_DELAY  seconds to wait before pressing Enter (default: 0.1)
  ROFI_TOTP_AUTOENTER        press Enter after typing the code (default: yes)
  ROFI_TOTP_AUTOCLIPBOARD    copy the code to the clipboard (default: no)
  ROFI_TOTP_CACHE_DIR        where entry names are cached
  ROFI_TOTP_CACHE_KEEP       number of name caches to keep (default: 5)
  ROFI_TOTP_LOG_LEVEL        stderr log level (default: WARNING)

secrets file:
  A JSON object mapping entry names to
  {{"secret": "<base32>", "digits": 6, "period": 30, "issuer": "..."}}

rofi:
  rofi -modi "totp:{APP_NAME}" -show totp
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Generate a TOTP code from an encrypted secrets file and "
        "type it, copy it or print it.",
        epilog=CONFIG_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("name", nargs="?", help="entry to generate a code for")
    parser.add_argument("-h", "--help", action="store_true", help="show this help")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--list", action="store_true", help="print the entry names and exit"
    )
    parser.add_argument(
        "--clear-cache", action="store_true", help="remove cached entry names"
    )
    parser.add_argument(
        "--stdout", action="store_true", help="always print the code to stdout"
    )
    parser.add_argument(
        "--clipboard",
        dest="autoclipboard",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="copy the code to the clipboard",
    )
    parser.add_argument(
        "--autopaste",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="type the code into the focused window",
    )
    parser.add_argument(
        "--delay",
        dest="autopaste_delay",
        type=float,
        metavar="SECONDS",
        help="delay between typing the code and pressing Enter",
    )
    parser.add_argument("--secrets", type=Path, metavar="PATH", help="secrets file")
    parser.add_argument(
        "--no-encryption",
        dest="encryption",
        action="store_const",
        const=False,
        default=None,
        help="read the secrets file as plain JSON",
    )

    return parser


def detach_stdout() -> None:
    """Point fd 1 at /dev/null so the launcher sees EOF and goes away."""

    sys.stdout.flush()

    devnull = os.open(os.devnull, os.O_WRONLY)

    try:
        os.dup2(devnull, sys.stdout.fileno())

    finally:
        os.close(devnull)


async def generate_and_deliver(
    config: Config,
    name: str,
    environ: Mapping[str, str],
    stdout: TextIO | None = None,
    force_stdout: bool = False,
) -> bool:
    otp = await store.load_entry(config, name, environ)
    code = await otp.get_code()

    logger.debug("code for %r is valid for %ds", name, otp.remaining())

    return await deliver(config, code, environ, stdout=stdout, force_stdout=force_stdout)


def _report_background(task: "asyncio.Task[bool]") -> None:
    if task.cancelled():
        logger.error("background delivery was cancelled")

        return

    err = task.exception()

    if isinstance(err, RofiTotpError):
        logger.error("background delivery failed: %s", err)

    elif err is not None:
        logger.error("background delivery crashed", exc_info=err)

    elif not task.result():
        logger.error("background delivery finished with errors")


async def run_in_background(
    config: Config, name: str, environ: Mapping[str, str]
) -> None:
    detach_stdout()

    if detect_display(environ) is Display.NONE:
        logger.warning("no display found, the code for %r goes nowhere", name)

    task = asyncio.create_task(generate_and_deliver(config, name, environ))
    task.add_done_callback(_report_background)

    await asyncio.wait({task})


async def main(
    argv: list[str] | None = None,
    environ: Mapping[str, str] = os.environ,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.help:
        parser.print_help(stderr)

        return 0

    overrides = {
        "secrets": args.secrets.expanduser() if args.secrets else None,
        "encryption": args.encryption,
        "autopaste": args.autopaste,
        "autopaste_delay": args.autopaste_delay,
        "autoclipboard": args.autoclipboard,
    }

    try:
        config = load_config(overrides, environ)

        if args.clear_cache:
            removed = cache.clear(config.cache_dir)
            logger.info("removed %d cache file(s)", removed)

            return 0

        if not config.secrets.is_file():
            print(f"secrets file not found: {config.secrets}", file=stderr)
            parser.print_help(stderr)

            return 1

        if args.list:
            name = None

        else:
            name = await select_name(config, args.name, environ, stdin)

        if name is None:
            for entry in await cache.cached_names(config, environ):
                print(entry, file=stdout)

            return 0

        if args.name and launcher_mode(environ):
            await run_in_background(config, name, environ)

            return 0

        ok = await generate_and_deliver(
            config, name, environ, stdout=stdout, force_stdout=args.stdout
        )

    except RofiTotpError as err:
        message = str(err)

        if message:
            print(message, file=stderr)

        return err.exit_code

    return 0 if ok else 1


def run() -> None:
    setup_logger()

    sys.exit(asyncio.run(main()))
