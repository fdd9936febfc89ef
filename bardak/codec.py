"""Encoding and decoding of message bodies described by protocol definitions."""

from __future__ import annotations

import struct
from collections.abc import Mapping
from typing import Any

from .binmsg import Char64, Header, RawMessage
from .protocol import Arg, ArgType, MsgType, Protocol

_SLICE_LEN = struct.Struct("<H")
_MAX_SLICE = 0xFFFF

_SRV_DEFS = """\
server srv:hasPref(char64 pref);
server srv:name(string name);
server srv:id(id clientId);
server srv:level(char64 level);
client srv:setLvl(char64 level);
server srv:r.setLvl(id msg, bool ok);
client srv:username(string name);
"""


class DecodeError(ValueError):
    """Raised when a message cannot be decoded as the expected type."""


def _encode_slice(arg: Arg, value: Any) -> bytes:
    if isinstance(value, str):
        raw = value.encode("utf-8", errors="surrogateescape")
    else:
        raw = bytes(value)
    if len(raw) > _MAX_SLICE:
        raise ValueError(f"{arg.name} is {len(raw)} bytes long, at most {_MAX_SLICE} fit")
    return _SLICE_LEN.pack(len(raw)) + raw


def _encode_arg(arg: Arg, value: Any) -> bytes:
    if arg.type.is_slice:
        return _encode_slice(arg, value)
    if arg.type == ArgType.CHAR64:
        return Char64(value).to_bytes()
    if arg.type == ArgType.BOOL:
        return struct.pack("<b", 1 if value else 0)
    try:
        return struct.pack(arg.type.struct_format, value)
    except struct.error as err:
        raise ValueError(f"cannot encode {value!r} as {arg.type.keyword} {arg.name}") from err


class MessageCodec:
    """Turns field values into wire messages of one message type, and back."""

    def __init__(self, msg_type: MsgType):
        names = [arg.name for arg in msg_type.args]
        if None in names:
            raise ValueError(
                f"{msg_type.prefix}:{msg_type.type_name} has an argument without a name"
            )
        if len(set(names)) != len(names):
            raise ValueError(
                f"{msg_type.prefix}:{msg_type.type_name} has repeated argument names"
            )
        self.msg_type = msg_type

    @property
    def names(self) -> list[str]:
        """Argument names in wire order."""
        return [arg.name for arg in self.msg_type.args]

    def encode(self, values: Mapping[str, Any], msg_id: int = 0, flags: int = 0) -> bytes:
        """Build a complete message (header and body) from field values."""
        unknown = set(values) - set(self.names)
        if unknown:
            raise ValueError(f"unknown fields: {', '.join(sorted(unknown))}")
        missing = [name for name in self.names if name not in values]
        if missing:
            raise ValueError(f"missing fields: {', '.join(missing)}")
        body = b"".join(_encode_arg(arg, values[arg.name]) for arg in self.msg_type.args)
        header = Header(
            Char64(self.msg_type.prefix),
            Char64(self.msg_type.type_name),
            msg_id,
            len(body),
            flags,
        )
        return header.pack() + body

    def decode(self, raw: RawMessage | bytes) -> dict[str, Any]:
        """Read field values from a message whose length matches its header.

        Raises DecodeError when the length is wrong or the body is too short.
        Bytes left over after the last field are ignored.
        """
        if not isinstance(raw, RawMessage):
            raw = RawMessage(raw)
        if not raw.is_correct():
            raise DecodeError("message length does not match its header")
        body = raw.body()
        pos = 0
        values: dict[str, Any] = {}

        def take(count: int) -> bytes:
            nonlocal pos
            if pos + count > len(body):
                raise DecodeError(f"message body ends inside field {arg.name}")
            chunk = body[pos : pos + count]
            pos += count
            return chunk

        for arg in self.msg_type.args:
            if arg.type.is_slice:
                (size,) = _SLICE_LEN.unpack(take(_SLICE_LEN.size))
                chunk = take(size)
                if arg.type == ArgType.STRING:
                    values[arg.name] = chunk.decode("utf-8", errors="surrogateescape")
                else:
                    values[arg.name] = chunk
            elif arg.type == ArgType.CHAR64:
                values[arg.name] = Char64.from_bytes(take(arg.type.size))
            elif arg.type == ArgType.BOOL:
                values[arg.name] = take(1) != b"\0"
            else:
                (values[arg.name],) = struct.unpack(arg.type.struct_format, take(arg.type.size))
        return values


def srv_protocol() -> Protocol:
    """The built-in ``srv`` message types every server speaks."""
    protocol = Protocol()
    protocol.load_defs(_SRV_DEFS)
    return protocol