from __future__ import annotations

import secrets
from typing import Optional

_BASE32_DIGITS = "0123456789abcdefghijklmnopqrstuv"


def random_string(bits: int = 130) -> str:
    """Random base-32 token, used for the ``zx`` cache buster and the xpc channel name."""
    value = secrets.randbits(bits)
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 32)
        digits.append(_BASE32_DIGITS[rem])
    return "".join(reversed(digits))


def chomp(text: Optional[str]) -> Optional[str]:
    """Remove one trailing ``\\r\\n``, ``\\n`` or ``\\r``."""
    if not text:
        return text
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith(("\n", "\r")):
        return text[:-1]
    return text


__all__ = ["random_string", "chomp"]
