"""Binary message framing: a fixed 24-byte header followed by a body."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Union

CHAR64_SIZE = 8
_HEADER_STRUCT = struct.Struct("<8s8sIHH")

Char64Like = Union["Char64", str, bytes, bytearray, int]


def _strncmp_equal(data: bytes, other: bytes) -> bool:
    """Compare like strncmp over len(other) bytes, stopping at a shared NUL."""
    for mine, theirs in zip(data, other):
        if mine != theirs:
            return False
        if mine == 0:
            return True
    return True


class Char64:
    """A short string of at most 8 bytes, also viewable as a 64-bit integer."""

    __slots__ = ("_data",)

    def __init__(self, value: Char64Like = 0):
        if isinstance(value, Char64):
            data = value._data
        elif isinstance(value, int):
            if not 0 <= value < 1 << 64:
                raise ValueError(f"Char64 integer out of range: {value}")
            data = value.to_bytes(CHAR64_SIZE, "little")
        else:
            raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
            if len(raw) > CHAR64_SIZE:
                raise ValueError(f"Char64 holds at most {CHAR64_SIZE} bytes, got {len(raw)}")
            data = raw.ljust(CHAR64_SIZE, b"\0")
        self._data = data

    @classmethod
    def from_bytes(cls, data: bytes) -> Char64:
        """Build from exactly 8 raw bytes, as found on the wire."""
        data = bytes(data)
        if len(data) != CHAR64_SIZE:
            raise ValueError(f"Char64 needs exactly {CHAR64_SIZE} bytes, got {len(data)}")
        result = cls()
        result._data = data
        return result

    def to_int(self) -> int:
        return int.from_bytes(self._data, "little")

    def to_bytes(self) -> bytes:
        return self._data

    def __str__(self) -> str:
        return self._data[: len(self)].decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"Char64({str(self)!r})"

    def __len__(self) -> int:
        nul = self._data.find(b"\0")
        return CHAR64_SIZE if nul < 0 else nul

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Char64):
            return self._data == other._data
        if isinstance(other, int) and not isinstance(other, bool):
            return self.to_int() == other
        if isinstance(other, (str, bytes, bytearray)):
            raw = other.encode("utf-8") if isinstance(other, str) else bytes(other)
            if len(raw) > CHAR64_SIZE:
                return False
            return _strncmp_equal(self._data, raw)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_int())


@dataclass
class Header:
    """Message header: prefix, type, message id, body length and flags."""

    SIZE: ClassVar[int] = _HEADER_STRUCT.size

    pref: Char64
    type: Char64
    msg_id: int = 0
    length: int = 0
    flags: int = 0

    def __post_init__(self) -> None:
        self.pref = Char64(self.pref)
        self.type = Char64(self.type)
        if not 0 <= self.msg_id < 1 << 32:
            raise ValueError(f"message id out of range: {self.msg_id}")
        if not 0 <= self.length < 1 << 16:
            raise ValueError(f"body length out of range: {self.length}")
        if not 0 <= self.flags < 1 << 16:
            raise ValueError(f"flags out of range: {self.flags}")

    def pack(self) -> bytes:
        return _HEADER_STRUCT.pack(
            self.pref.to_bytes(), self.type.to_bytes(), self.msg_id, self.length, self.flags
        )

    @classmethod
    def unpack(cls, data: bytes) -> Header:
        """Decode a header from the start of ``data``."""
        if len(data) < cls.SIZE:
            raise ValueError(f"header needs {cls.SIZE} bytes, got {len(data)}")
        pref, type_, msg_id, length, flags = _HEADER_STRUCT.unpack_from(data)
        return cls(Char64.from_bytes(pref), Char64.from_bytes(type_), msg_id, length, flags)


class RawMessage:
    """A message whose header has not been decoded yet."""

    __slots__ = ("data",)

    def __init__(self, data: bytes):
        self.data = bytes(data)

    def header(self) -> Header | None:
        """The decoded header, or None if the data is shorter than one."""
        if len(self.data) < Header.SIZE:
            return None
        return Header.unpack(self.data)

    def body(self) -> bytes:
        """The body, or empty bytes when the message length is wrong."""
        if not self.is_correct():
            return b""
        return self.data[Header.SIZE:]

    def is_correct(self) -> bool:
        """Whether the data length matches the length declared in the header."""
        head = self.header()
        if head is None:
            return False
        return len(self.data) == Header.SIZE + head.length

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"RawMessage({self.data!r})"


class MessageBuffer:
    """Accumulates a byte stream and splits it into complete messages."""

    def __init__(self):
        self._pending = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet forming a whole message."""
        return bytes(self._pending)

    def feed(self, data: bytes) -> list[RawMessage]:
        """Add received bytes; return every message completed by them, in order."""
        self._pending += data
        messages = []
        while len(self._pending) >= Header.SIZE:
            size = Header.SIZE + Header.unpack(self._pending).length
            if size > len(self._pending):
                break
            messages.append(RawMessage(self._pending[:size]))
            del self._pending[:size]
        return messages