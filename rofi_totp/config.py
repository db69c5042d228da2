import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from rofi_totp.exceptions import ConfigError


APP_NAME = "rofi-totp"

TRUTHY = frozenset({"y", "yes", "1"})

# Launcher signal and recursion guard, never read from the config file.
LAUNCHER_ENV = "ROFI_RETV"
GUARD_ENV = "ROFI_TOTP_DETACHED"


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY


def parse_flag(value: str | None) -> bool:
    """Parse a boolean option, telling "unset" apart from "false".

    Raises ValueError for a missing or empty value.
    """

    if value is None or not value.strip():
        raise ValueError("flag is unset")

    return is_truthy(value)


def config_dir(environ: Mapping[str, str] = os.environ) -> Path:
    cfg_home = environ.get("XDG_CONFIG_HOME") or os.path.join(Path.home(), ".config")
    path = Path(cfg_home) / APP_NAME
    path.mkdir(parents=True, exist_ok=True)

    return path


def default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / f"{APP_NAME}-{os.getuid()}"


@dataclass(kw_only=True, frozen=True)
class Config:
    secrets: Path
    cache_dir: Path
    gnupghome: str | None = None
    encryption: bool = True
    autopaste: bool = True
    autopaste_delay: float = 0.1
    autoclipboard: bool = False
    autoenter: bool = True
    cache_keep: int = 5

    def gpg_env(self, environ: Mapping[str, str] = os.environ) -> dict[str, str]:
        env = dict(environ)

        if self.gnupghome:
            env["GNUPGHOME"] = os.path.expanduser(self.gnupghome)

        return env


def _apply(fields: dict[str, Any], layer: Mapping[str, str | None]) -> None:
    def text(key: str) -> str | None:
        value = layer.get(key)

        return value.strip() if value and value.strip() else None

    def flag(key: str, field: str, invert: bool = False) -> None:
        try:
            value = parse_flag(layer.get(key))

        except ValueError:
            return

        fields[field] = not value if invert else value

    def number(key: str, field: str, kind: type) -> None:
        value = text(key)

        if value is None:
            return

        try:
            fields[field] = kind(value)

        except ValueError as err:
            raise ConfigError(f"{key}: not a valid number: {value!r}") from err

    if text("GNUPGHOME"):
        fields["gnupghome"] = text("GNUPGHOME")

    if text("ROFI_TOTP_SECRETS"):
        fields["secrets"] = Path(text("ROFI_TOTP_SECRETS")).expanduser()

    if text("ROFI_TOTP_CACHE_DIR"):
        fields["cache_dir"] = Path(text("ROFI_TOTP_CACHE_DIR")).expanduser()

    flag("ROFI_TOTP_NO_ENCRYPTION", "encryption", invert=True)
    flag("ROFI_TOTP_AUTOPASTE", "autopaste")
    flag("ROFI_TOTP_AUTOCLIPBOARD", "autoclipboard")
    flag("ROFI_TOTP_AUTOENTER", "autoenter")
    number("ROFI_TOTP_AUTOPASTE_DELAY", "autopaste_delay", float)
    number("ROFI_TOTP_CACHE_KEEP", "cache_keep", int)


def load_config(
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] = os.environ,
) -> Config:
    """Build the configuration from defaults, environment, config file and
    CLI overrides, each layer winning over the previous one."""

    directory = config_dir(environ)

    fields: dict[str, Any] = {
        "secrets": directory / "secrets.json.gpg",
        "cache_dir": default_cache_dir(),
    }

    _apply(fields, environ)

    config_file = directory / "config"

    if config_file.is_file():
        _apply(fields, dotenv_values(config_file))

    config = Config(**fields)

    if overrides:
        config = replace(
            config, **{k: v for k, v in overrides.items() if v is not None}
        )

    return config


def launcher_mode(environ: Mapping[str, str] = os.environ) -> bool:
    return LAUNCHER_ENV in environ and not environ.get(GUARD_ENV)
