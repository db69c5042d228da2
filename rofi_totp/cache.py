"""Entry-name cache.

Listing the store should not need a gpg passphrase prompt every time, so the
names are kept in a plain file keyed by the SHA-256 of the *encrypted* store.
Editing the store changes the key; old files are pruned down to
``Config.cache_keep`` whenever a new one is written. Only files named like a
SHA-256 hex digest are ever treated as caches, so the directory can be shared.
"""

import hashlib
import logging
import os
import re
import tempfile
from collections.abc import Mapping
from pathlib import Path

from rofi_totp import store
from rofi_totp.config import Config


logger = logging.getLogger(__name__)

CACHE_NAME = re.compile(r"[0-9a-f]{64}")


def cache_key(path: Path) -> str:
    digest = hashlib.sha256()

    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)

    return digest.hexdigest()


def cache_path(config: Config) -> Path:
    return config.cache_dir / cache_key(config.secrets)


def _ensure_dir(directory: Path) -> None:
    directory.mkdir(mode=0o700, parents=True, exist_ok=True)


def write_names(path: Path, names: list[str]) -> None:
    _ensure_dir(path.parent)

    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.writelines(f"{name}\n" for name in names)

        os.replace(tmp, path)

    except BaseException:
        os.unlink(tmp)
        raise


def read_names(path: Path) -> list[str]:
    return [line for line in path.read_text(encoding="utf-8").splitlines() if line]


def is_cache_file(path: Path) -> bool:
    return CACHE_NAME.fullmatch(path.name) is not None and path.is_file()


def cache_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []

    return [f for f in directory.iterdir() if is_cache_file(f)]


def _mtime(path: Path) -> float:
    # another invocation may prune it first; sort it last as already gone
    try:
        return path.stat().st_mtime

    except FileNotFoundError:
        return 0.0


def prune(directory: Path, keep: int, current: Path | None = None) -> list[Path]:
    files = sorted(cache_files(directory), key=_mtime, reverse=True)

    if current is not None and current in files:
        files.remove(current)
        keep -= 1

    removed = files[max(keep, 0):]

    for f in removed:
        f.unlink(missing_ok=True)

    if removed:
        logger.debug("pruned %d stale cache file(s)", len(removed))

    return removed


def clear(directory: Path) -> int:
    files = cache_files(directory)

    for f in files:
        f.unlink(missing_ok=True)

    return len(files)


async def cached_names(
    config: Config, environ: Mapping[str, str] = os.environ
) -> list[str]:
    path = cache_path(config)

    try:
        names = read_names(path)

    except FileNotFoundError:
        pass

    else:
        logger.debug("name cache hit: %s", path.name)

        return names

    names = store.entry_names(store.parse(await store.decrypt(config, environ)))

    if names:
        write_names(path, names)
        prune(config.cache_dir, config.cache_keep, current=path)

    return names
