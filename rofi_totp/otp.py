import time
from dataclasses import dataclass

from rofi_totp import tools


@dataclass(kw_only=True, frozen=True)
class OTPInfo:
    period: int = 30
    issuer: str = "???"
    digits: int = 6
    algorithm: str = "SHA1"
    secret: str

    async def get_code(self) -> str:
        output = await tools.run(
            "oathtool",
            "--base32",
            f"--totp={self.algorithm}",
            "--digits",
            str(self.digits),
            "--time-step-size",
            f"{self.period}s",
            self.secret,
        )

        return output.decode().strip()

    def remaining(self) -> int:
        return self.period - (int(time.time()) % self.period)
