"""Human-readable dumps of binary messages, guided by loaded protocol definitions."""

from __future__ import annotations

import re
import struct

from .binmsg import Header
from .protocol import Arg, ArgType, Protocol, Side

HEXDUMP_WIDTH = 8

GRY = "\x1b[90m"
RED = "\x1b[91m"
GRN = "\x1b[92m"
YLW = "\x1b[93m"
BLU = "\x1b[94m"
MGN = "\x1b[95m"
CYN = "\x1b[96m"
RST = "\x1b[0m"

_ESCAPE_RE = re.compile("\x1b[^m]*m?")
_SHORT_STRING_LIMIT = 32
_NO_NAME = "<no name>"
_SIDE_NAMES = {Side.CLIENT: "client", Side.SERVER: "server"}

_PREF_OFFSET, _TYPE_OFFSET, _SEQ_OFFSET, _LEN_OFFSET, _FLAGS_OFFSET = 0, 8, 16, 20, 22


def strip_color(text: str) -> str:
    """Remove terminal colour sequences (from ESC up to and including ``m``)."""
    return _ESCAPE_RE.sub("", text)


def _cstr(data: bytes) -> str:
    return data.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def hexdump(data: bytes, start: int, length: int) -> str:
    """Hex bytes ``data[start:start + length]``, aligned to rows of eight."""
    parts = ["    "]
    parts.extend(f"{GRY}.. {RST}" for _ in range(start % HEXDUMP_WIDTH))
    for i, byte in enumerate(data[start : start + length]):
        parts.append(f"{YLW}{byte:02x} {RST}")
        if (start + i + 1) % HEXDUMP_WIDTH == 0 and i != length - 1:
            parts.append("\n    ")
    tail = (start + length) % HEXDUMP_WIDTH
    if tail:
        parts.extend(f"{GRY}.. {RST}" for _ in range(HEXDUMP_WIDTH - tail))
    return "".join(parts)


def _format_value(arg_type: ArgType, value) -> str:
    if arg_type == ArgType.CHAR64:
        return _cstr(value)
    if arg_type in (ArgType.FLOAT, ArgType.DOUBLE):
        return f"{value:f}"
    if arg_type == ArgType.BOOL:
        return str(value & 0xFFFFFFFF)
    return str(value)


def _dump_fixed(
    data: bytes, arg_type: ArgType, pos: int, label: str, long_form: bool
) -> tuple[str, int]:
    size = arg_type.size
    name = arg_type.keyword
    if len(data) < pos + size:
        if long_form:
            text = hexdump(data, pos, len(data) - pos) + (
                f"{GRY} -- {CYN}{name} {RST}{label} {GRY}= {RED}[x] Message was cut\n{RST}"
            )
        else:
            text = f"{label} {GRY}= {RED}[cut]{RST}"
        return text, len(data)
    (value,) = struct.unpack_from(arg_type.struct_format, data, pos)
    shown = _format_value(arg_type, value)
    if long_form:
        text = hexdump(data, pos, size) + (
            f"{GRY} -- {CYN}{name} {RST}{label} {GRY}= {YLW}{shown}{RST}\n"
        )
    else:
        text = f"{label} {GRY}= {YLW}{shown}{RST}"
    return text, pos + size


def _dump_slice(
    data: bytes, arg_type: ArgType, pos: int, label: str, long_form: bool
) -> tuple[str, int]:
    name = arg_type.keyword
    is_blob = arg_type == ArgType.BLOB
    if len(data) < pos + 2:
        if long_form:
            text = hexdump(data, pos, len(data) - pos) + (
                f"{GRY} -- {CYN}{name} {RST}{label} {GRY}= {RED}[x] Message was cut\n{RST}"
            )
        else:
            text = f"{label} {GRY} = {RED}[cut]{RST}"
        return text, len(data)

    (size,) = struct.unpack_from("<H", data, pos)
    if len(data) < pos + 2 + size:
        if long_form:
            text = hexdump(data, pos, len(data) - pos) + (
                f"{GRY} -- {CYN}{name} {RST}{label} {GRY}of length {YLW}{size} "
                f"{GRY}= {RED}[x] Message was cut\n{RST}"
            )
        else:
            text = f"{label}{GRY} = {RED}[cut]{RST}"
        return text, len(data)

    content = data[pos + 2 : pos + 2 + size]
    if long_form:
        text = hexdump(data, pos, 2 + size)
        if is_blob:
            text += f"{GRY} -- {CYN}blob {RST}{label} {GRY}of length {YLW}{size} {RST}\n{RST}"
        else:
            text += (
                f"{GRY} -- {CYN}string {RST}{label} {GRY}of length {YLW}{size} "
                f"{GRY}= {GRN}`{_cstr(content)}`\n{RST}"
            )
    else:
        text = f"{label} {GRY}= {RST}"
        if is_blob:
            text += f"blob[{YLW}{size}{RST}]"
        else:
            shown = content[:_SHORT_STRING_LIMIT]
            closing = "`" if len(shown) == size else "`..."
            text += f"{GRN}`{_cstr(shown)}{closing}{RST}"
    return text, pos + 2 + size


def _dump_arg(data: bytes, arg: Arg, pos: int, long_form: bool) -> tuple[str, int]:
    label = arg.name if arg.name is not None else _NO_NAME
    if arg.type.is_slice:
        return _dump_slice(data, arg.type, pos, label, long_form)
    return _dump_fixed(data, arg.type, pos, label, long_form)


def _finish(parts: list[str], color: bool) -> str:
    text = "".join(parts)
    return text if color else strip_color(text)


def bin_dump(
    protocol: Protocol, side: Side, data: bytes, color: bool = True
) -> tuple[str, int]:
    """Describe the message at the start of ``data`` field by field.

    Returns the text and the number of bytes the message took.
    """
    data = bytes(data)
    parts: list[str] = []
    if len(data) < Header.SIZE:
        parts.append(f"{RED}partial message\n{RST}")
        parts.append(hexdump(data, 0, len(data)))
        parts.append(f"{GRY} -- {RED}[x] Message was cut before header ends\n{RST}")
        return _finish(parts, color), len(data)

    header = Header.unpack(data)
    pref, type_name = str(header.pref), str(header.type)
    parts.append(
        f"{BLU}{_SIDE_NAMES[Side(side)]} {GRN}{pref}{GRY}:{RST}{type_name} {YLW}"
        f"#{header.msg_id} {GRY}with {YLW}{header.length} {GRY}bytes of args\n{RST}"
    )
    parts.append(hexdump(data, _PREF_OFFSET, 8))
    parts.append(f"{GRY} -- {RST}prefix {GRY}= {GRN}`{pref}`\n{RST}")
    parts.append(hexdump(data, _TYPE_OFFSET, 8))
    parts.append(f"{GRY} -- {RST}type {GRY}= {GRN}`{type_name}`\n{RST}")
    parts.append(hexdump(data, _SEQ_OFFSET, 4))
    parts.append(f"{GRY} -- {RST}sequence number {GRY}= {YLW}{header.msg_id}\n{RST}")
    parts.append(hexdump(data, _LEN_OFFSET, 2))
    parts.append(f"{GRY} -- {RST}body length {GRY}= {YLW}{header.length}\n{RST}")
    parts.append(hexdump(data, _FLAGS_OFFSET, 2))
    parts.append(f"{GRY} -- {RST}flags {GRY}= {YLW}{header.flags}\n{RST}")

    pos = Header.SIZE
    msg_type = protocol.bin_match(side, data)
    if msg_type is None:
        available = min(header.length, len(data) - pos)
        parts.append(hexdump(data, pos, available))
        parts.append(" -- <unknown body type>\n")
        if available != header.length:
            parts.append(
                "    /!\\ Warning: Body cuts before specified body length "
                f"({header.length}), {header.length - available} bytes missing\n"
            )
        return _finish(parts, color), pos + available

    for arg in msg_type.args:
        text, pos = _dump_arg(data, arg, pos, True)
        parts.append(text)
    real_len = pos - Header.SIZE

    if real_len < header.length:
        extra = min(header.length - real_len, len(data) - pos)
        parts.append(hexdump(data, pos, extra))
        parts.append(" -- /!\\ extra data\n")
    if real_len != header.length:
        parts.append(
            f"    /!\\ Warning: Declared message body length ({header.length}) "
            f"!= real body length ({real_len})\n"
        )
    return _finish(parts, color), pos


def bin_dump_short(
    protocol: Protocol, side: Side, data: bytes, color: bool = True
) -> tuple[str, int]:
    """Describe the message at the start of ``data`` on one line.

    Returns the text and the number of bytes the message took.
    """
    data = bytes(data)
    if len(data) < Header.SIZE:
        return _finish([f"{RED}partial message{RST}"], color), len(data)

    header = Header.unpack(data)
    parts = [
        f"{BLU}{_SIDE_NAMES[Side(side)]} {GRN}{header.pref}{GRY}:{RST}{header.type} {YLW}"
        f"#{header.msg_id} {GRY}len = {YLW}{header.length} {GRY}({RST}"
    ]
    pos = Header.SIZE
    msg_type = protocol.bin_match(side, data)
    if msg_type is None:
        parts.append(f"{RED}unknown type{GRY})")
        return _finish(parts, color), pos

    fields = []
    for arg in msg_type.args:
        text, pos = _dump_arg(data, arg, pos, False)
        fields.append(text)
    parts.append(f"{GRY}, {RST}".join(fields))
    parts.append(f"{GRY})")
    return _finish(parts, color), pos