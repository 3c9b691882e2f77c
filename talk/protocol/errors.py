from __future__ import annotations

from enum import IntEnum
from typing import Optional, Union


class StatusCode(IntEnum):
    """HTTP-like status codes reported to channel listeners."""

    SUCCESS = 200
    INTERNAL_ERROR = 500
    BAD_GATEWAY = 502


class ErrorCode(IntEnum):
    """Domain specific error codes."""

    MALFORMED_FRAME = 2001
    DECODE_FAILED = 2002
    TYPE_MISMATCH = 2003
    PROTOCOL_MISMATCH = 2004
    TRANSPORT_FAILED = 2005


def _status_label(status: int) -> str:
    try:
        return StatusCode(status).name
    except ValueError:
        return "HTTP"


class ProtocolError(Exception):
    """Structured protocol exception carrying status + code + message."""

    def __init__(self, status: Union[StatusCode, int], code: Optional[ErrorCode] = None, message: str = "") -> None:
        self.status = int(status)
        self.code = code
        self.message = message
        super().__init__(f"{_status_label(self.status)} ({self.status}): {message} (code={code.name if code else 'n/a'})")


class MalformedFrame(ProtocolError):
    """Frame length header could not be read, or the frame was cut short."""

    def __init__(self, message: str) -> None:
        super().__init__(StatusCode.INTERNAL_ERROR, ErrorCode.MALFORMED_FRAME, message)


class DecodeError(ProtocolError):
    """Message text violates the array grammar."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.DECODE_FAILED) -> None:
        super().__init__(StatusCode.INTERNAL_ERROR, code, message)


class TypeMismatch(DecodeError):
    """An entry was read as a different kind than it holds."""

    def __init__(self, expected: str, actual: str, detail: str = "") -> None:
        self.expected = expected
        self.actual = actual
        text = f"{expected} value expected, found: {actual}"
        if detail:
            text = f"{text} ({detail})"
        super().__init__(text, ErrorCode.TYPE_MISMATCH)


class ProtocolMismatch(ProtocolError):
    """Handshake data did not match the channel being opened."""

    def __init__(self, message: str) -> None:
        super().__init__(StatusCode.BAD_GATEWAY, ErrorCode.PROTOCOL_MISMATCH, message)


__all__ = [
    "StatusCode",
    "ErrorCode",
    "ProtocolError",
    "MalformedFrame",
    "DecodeError",
    "TypeMismatch",
    "ProtocolMismatch",
]
