class RofiTotpError(Exception):
    exit_code = 1


class ConfigError(RofiTotpError):
    pass


class StoreError(RofiTotpError):
    pass


class SelectionError(RofiTotpError):
    pass


class ToolError(RofiTotpError):
    """An external command exited non-zero.

    The exit code and stderr of the command are kept as-is so the caller can
    hand them back to the user unchanged.
    """

    def __init__(self, argv: tuple[str, ...], returncode: int, stderr: bytes = b""):
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr

        super().__init__(stderr.decode(errors="replace").rstrip("\n"))

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        # killed by a signal: report it the way a shell does
        if self.returncode < 0:
            return 128 - self.returncode

        return self.returncode or 1
