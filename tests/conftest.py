import io
import json
from pathlib import Path

import pytest

from rofi_totp import tools
from rofi_totp.config import Config
from rofi_totp.exceptions import ToolError


ENTRIES = {
    "github": {"secret": "P8AKZ4RBH81ROVBH", "digits": 6, "period": 30, "issuer": "GitHub"},
    "aws root": {"secret": "JBSWY3DPEHPK3PXP", "digits": 8, "period": 60, "issuer": "AWS"},
    "mail": {"secret": "GEZDGNBVGY3TQOJQ", "digits": 6, "period": 30, "issuer": "Fastmail"},
}


class FakeTools:
    """Stands in for tools.run and records every command."""

    def __init__(self):
        self.calls = []
        self.responses = {}

    def respond(self, program, result):
        self.responses[program] = result

    def programs(self):
        return [argv[0] for argv, _ in self.calls]

    def find(self, program):
        return [(argv, kwargs) for argv, kwargs in self.calls if argv[0] == program]

    async def run(self, *argv, **kwargs):
        self.calls.append((argv, kwargs))

        result = self.responses.get(argv[0], b"")

        if callable(result):
            result = result(argv, kwargs)

        if isinstance(result, BaseException):
            raise result

        return result


class Terminal(io.StringIO):
    def isatty(self):
        return True


@pytest.fixture
def fake_tools(monkeypatch):
    fake = FakeTools()
    fake.respond("oathtool", b"492039\n")
    monkeypatch.setattr(tools, "run", fake.run)

    return fake


@pytest.fixture
def secrets_file(tmp_path):
    path = tmp_path / "secrets.json"
    path.write_text(json.dumps(ENTRIES), encoding="utf-8")

    return path


@pytest.fixture
def environ(tmp_path, secrets_file):
    return {
        "HOME": str(tmp_path / "home"),
        "XDG_CONFIG_HOME": str(tmp_path / "config"),
        "XDG_STATE_HOME": str(tmp_path / "state"),
        "ROFI_TOTP_CACHE_DIR": str(tmp_path / "cache"),
        "ROFI_TOTP_SECRETS": str(secrets_file),
        "ROFI_TOTP_NO_ENCRYPTION": "yes",
    }


@pytest.fixture
def config(tmp_path, secrets_file):
    return Config(
        secrets=secrets_file,
        cache_dir=tmp_path / "cache",
        encryption=False,
    )


def tool_error(program, code=1, stderr=b""):
    return ToolError((program,), code, stderr)


def cache_dir(environ):
    return Path(environ["ROFI_TOTP_CACHE_DIR"])
