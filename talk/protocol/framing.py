from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Optional

from .constants import FRAME_LINE_END
from .decoder import decode_message
from .errors import MalformedFrame
from .wire import WireValue


def encode_frame(payload: str) -> str:
    """Prefix payload with its character count on its own line."""
    return f"{len(payload)}{FRAME_LINE_END}{payload}"


async def _iter_once(text: str) -> AsyncIterator[str]:
    yield text


class FrameReader:
    """
    Reads length-prefixed frames from a streaming text body.

    Each frame is a decimal length on its own line followed by exactly that
    many characters. Running out of input before a length line is the normal
    end of the stream and yields ``None``.
    """

    def __init__(self, chunks: AsyncIterable[str]) -> None:
        self._chunks = chunks.__aiter__()
        self._buffer = ""
        self._exhausted = False

    @classmethod
    def from_text(cls, text: str) -> "FrameReader":
        return cls(_iter_once(text))

    async def read_frame(self) -> Optional[str]:
        """Return the next frame payload, or None once the stream is exhausted."""
        line = await self._read_line()
        if line is None:
            return None

        size_text = line.strip()
        if not size_text.isdigit() or not size_text.isascii():
            raise MalformedFrame(f"Submission was not in expected format: {line!r}")
        size = int(size_text)

        while len(self._buffer) < size:
            if not await self._fill():
                raise MalformedFrame(f"Frame truncated: expected {size} chars, got {len(self._buffer)}")
        payload, self._buffer = self._buffer[:size], self._buffer[size:]
        return payload

    async def read_message(self) -> Optional[WireValue]:
        """Read one frame and decode it as a talk message."""
        payload = await self.read_frame()
        if payload is None:
            return None
        return decode_message(payload)

    async def _read_line(self) -> Optional[str]:
        while FRAME_LINE_END not in self._buffer:
            if not await self._fill():
                if not self._buffer:
                    return None
                line, self._buffer = self._buffer, ""
                return line
        line, self._buffer = self._buffer.split(FRAME_LINE_END, 1)
        return line

    async def _fill(self) -> bool:
        if self._exhausted:
            return False
        try:
            chunk = await self._chunks.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            return False
        self._buffer += chunk
        return True


__all__ = ["encode_frame", "FrameReader"]
