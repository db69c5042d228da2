import json
import logging
import os
from collections.abc import Mapping
from typing import Any

from rofi_totp import tools
from rofi_totp.config import Config
from rofi_totp.exceptions import StoreError
from rofi_totp.otp import OTPInfo


logger = logging.getLogger(__name__)


async def decrypt(config: Config, environ: Mapping[str, str] = os.environ) -> bytes:
    if not config.encryption:
        return config.secrets.read_bytes()

    logger.debug("decrypting %s", config.secrets)

    return await tools.run(
        "gpg",
        "--quiet",
        "--batch",
        "--decrypt",
        str(config.secrets),
        env=config.gpg_env(environ),
    )


def parse(data: bytes) -> dict[str, Any]:
    try:
        entries = json.loads(data)

    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        raise StoreError(f"secrets file is not valid JSON: {err}") from err

    if not isinstance(entries, dict):
        raise StoreError("secrets file must contain a JSON object")

    return entries


def entry_names(entries: dict[str, Any]) -> list[str]:
    return list(entries)


def read_entry(entries: dict[str, Any], name: str) -> OTPInfo:
    try:
        entry = entries[name]

    except KeyError:
        raise StoreError(f"no such entry: {name}") from None

    if not isinstance(entry, dict) or not entry.get("secret"):
        raise StoreError(f"{name}: entry has no secret")

    try:
        digits = int(entry.get("digits", 6))
        period = int(entry.get("period", 30))

    except (TypeError, ValueError) as err:
        raise StoreError(f"{name}: malformed entry: {err}") from err

    if digits <= 0 or period <= 0:
        raise StoreError(f"{name}: digits and period must be positive")

    return OTPInfo(
        secret=str(entry["secret"]),
        digits=digits,
        period=period,
        issuer=str(entry.get("issuer") or "???"),
    )


async def load_entry(
    config: Config, name: str, environ: Mapping[str, str] = os.environ
) -> OTPInfo:
    return read_entry(parse(await decrypt(config, environ)), name)
