"""
Recursive-descent decoder for talk messages.

The format is a loose JavaScript array literal::

    message := '[' (entry (',' entry)*)? ']'
    entry   := message | string | number | <empty>

The protocol was reverse-engineered, so decoding is lenient: ``null`` and any
entry that is not a plain decimal integer become empty entries instead of
failing the whole message. Only a missing ``,``/``]`` separator or a message
that ends early is an error.
"""

from __future__ import annotations

from typing import List, Optional

from .errors import DecodeError
from .wire import EMPTY, INT64_MAX, WireValue

_QUOTES = "\"'"
_NULL_START = "n"


class _Cursor:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def read(self) -> Optional[str]:
        if self.pos >= len(self.text):
            return None
        ch = self.text[self.pos]
        self.pos += 1
        return ch

    def peek(self) -> Optional[str]:
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def read_significant(self) -> Optional[str]:
        ch = self.read()
        while ch is not None and ch.isspace():
            ch = self.read()
        return ch

    def skip_to_next_entry(self) -> Optional[str]:
        """Consume through the next ``,`` or ``]`` and return it (None at end of text)."""
        while True:
            ch = self.read()
            if ch is None or ch in ",]":
                return ch


def decode_message(text: str) -> WireValue:
    """Decode one talk message into a list :class:`WireValue`."""
    cursor = _Cursor(text)
    if cursor.read_significant() != "[":
        raise DecodeError("Expected initial [")
    try:
        return WireValue.nested(_parse_entries(cursor))
    except RecursionError as exc:
        raise DecodeError("Message nests too deeply") from exc


def _parse_entries(cursor: _Cursor) -> List[WireValue]:
    entries: List[WireValue] = []
    ch = cursor.read_significant()
    while ch != "]":
        if ch is None:
            raise DecodeError("Unexpected end-of-message.")

        if ch == "[":
            entries.append(WireValue.nested(_parse_entries(cursor)))
            ch = cursor.read_significant()
        elif ch in _QUOTES:
            entries.append(WireValue.string(_parse_string(cursor, ch)))
            ch = cursor.read_significant()
        elif ch == ",":
            # blank entry; the comma doubles as its separator
            entries.append(EMPTY)
        elif ch == _NULL_START:
            entries.append(EMPTY)
            ch = cursor.skip_to_next_entry()
        else:
            number = _parse_number(cursor, ch)
            if number is None:
                entries.append(EMPTY)
                ch = cursor.skip_to_next_entry()
            else:
                entries.append(WireValue.number(number))
                ch = cursor.read_significant()

        if ch == ",":
            ch = cursor.read_significant()
        elif ch != "]":
            found = "end-of-message" if ch is None else repr(ch)
            raise DecodeError(f"Expected , or ], found {found}")

    return entries


def _parse_string(cursor: _Cursor, quote: str) -> str:
    chars: List[str] = []
    ch = cursor.read()
    while ch is not None and ch != quote:
        if ch == "\\":
            ch = cursor.read()
            if ch is None:
                break
        chars.append(ch)
        ch = cursor.read()
    return "".join(chars)


def _parse_number(cursor: _Cursor, first: str) -> Optional[int]:
    """Read a run of ASCII digits starting at ``first``; None when it is not an int64."""
    if not _is_digit(first):
        return None
    digits = [first]
    while _is_digit(cursor.peek()):
        digits.append(cursor.read())
    value = int("".join(digits))
    if value > INT64_MAX:
        return None
    return value


def _is_digit(ch: Optional[str]) -> bool:
    return ch is not None and "0" <= ch <= "9"


__all__ = ["decode_message"]
