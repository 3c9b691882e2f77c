from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple, Union

from .errors import TypeMismatch

INT64_MAX = 2**63 - 1


class EntryKind(Enum):
    """Kinds of entries a talk message can hold."""

    STRING = "string"
    NUMBER = "number"
    EMPTY = "empty"
    LIST = "list"


WirePayload = Union[str, int, None, Tuple["WireValue", ...]]


@dataclass(frozen=True)
class WireValue:
    """
    One entry of a talk message: a string, an integer, an empty slot, or a
    nested list of further entries. Values are immutable once decoded.
    """

    kind: EntryKind
    value: WirePayload = None

    @classmethod
    def string(cls, text: str) -> "WireValue":
        return cls(EntryKind.STRING, text)

    @classmethod
    def number(cls, number: int) -> "WireValue":
        return cls(EntryKind.NUMBER, number)

    @classmethod
    def nested(cls, entries: Iterable["WireValue"]) -> "WireValue":
        return cls(EntryKind.LIST, tuple(entries))

    @property
    def is_string(self) -> bool:
        return self.kind is EntryKind.STRING

    def as_string(self) -> str:
        return self._expect(EntryKind.STRING)

    def as_number(self) -> int:
        return self._expect(EntryKind.NUMBER)

    def as_list(self) -> Tuple["WireValue", ...]:
        return self._expect(EntryKind.LIST)

    def entry(self, index: int) -> "WireValue":
        """Return entry ``index`` of a list value; a missing slot is a type mismatch too."""
        entries = self.as_list()
        if not 0 <= index < len(entries):
            raise TypeMismatch("entry", "end of list", f"index {index} of {len(entries)}")
        return entries[index]

    def _expect(self, kind: EntryKind):
        if self.kind is not kind:
            raise TypeMismatch(kind.name, self.kind.name, str(self))
        return self.value

    def __str__(self) -> str:
        if self.kind is EntryKind.EMPTY:
            return ""
        if self.kind is EntryKind.STRING:
            return f'"{self.value}"'
        if self.kind is EntryKind.LIST:
            return "[" + ",".join(str(entry) for entry in self.value) + "]"
        return str(self.value)


EMPTY = WireValue(EntryKind.EMPTY)


__all__ = ["EntryKind", "WireValue", "EMPTY", "INT64_MAX"]
