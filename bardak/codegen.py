"""Generation of C++ headers describing loaded message types."""

from __future__ import annotations

import string
from typing import TextIO

from .protocol import ArgType, MsgType, Protocol, Side

DEFAULT_INCPATH = "libpan_cxx_macros.hpp"

_ALNUM = frozenset((string.ascii_letters + string.digits).encode("ascii"))
_ALPHA = frozenset(string.ascii_letters.encode("ascii"))

_SIDE_NAMES = {Side.CLIENT: "client", Side.SERVER: "server"}

_C_TYPES = {
    ArgType.ID: "PAN_GH_ID",
    ArgType.CHAR64: "PAN_GH_CHAR64",
    ArgType.INT8: "int8_t",
    ArgType.INT16: "int16_t",
    ArgType.INT32: "int32_t",
    ArgType.INT64: "int64_t",
    ArgType.FLOAT: "float",
    ArgType.DOUBLE: "double",
    ArgType.STRING: "PAN_GH_SLICE",
    ArgType.BLOB: "PAN_GH_SLICE",
    ArgType.BOOL: "bool",
}


def make_identifier(name: str) -> str:
    """Cut ``name`` to 8 bytes and replace anything not valid in an identifier with ``_``."""
    raw = name.encode("utf-8")[:8].split(b"\0", 1)[0]
    return "".join(
        "_" if byte not in _ALNUM or (i == 0 and byte not in _ALPHA) else chr(byte)
        for i, byte in enumerate(raw)
    )


def c_type_name(arg_type: ArgType) -> str:
    """The C++ type used for an argument of this type in generated headers."""
    return _C_TYPES[ArgType(arg_type)]


def _message_block(msg: MsgType) -> str:
    pref = make_identifier(msg.prefix)
    tname = make_identifier(msg.type_name)
    loc = "PAN_GH_CLIENT" if msg.side == Side.CLIENT else "PAN_GH_SERVER"
    opening = f'({loc}, {pref}, {tname}, "{msg.prefix}", "{msg.type_name}",\n'

    lines = [f"PAN_GH_MSG{opening}"]
    lines.extend(f"    {c_type_name(a.type):<16} {a.name};\n" for a in msg.args)
    lines.append(")\n")

    lines.append(f"PAN_GH_DECODE{opening}")
    for a in msg.args:
        if a.type.is_slice:
            lines.append(f"    uint16_t {a.name}_len = 0;\n")
            lines.append(f"    PAN_GH_READ(&{a.name}_len, 2);\n")
            lines.append(f"    PAN_GH_READ_SLICE(&self->{a.name}, {a.name}_len);\n")
        else:
            lines.append(f"    PAN_GH_READ(&self->{a.name}, sizeof(self->{a.name}));\n")
    lines.append(")\n")

    lines.append(f"PAN_GH_ENCODE{opening}")
    lines.append("    uint16_t len = 0;\n")
    for a in msg.args:
        if a.type.is_slice:
            lines.append(f"    len += 2 + PAN_GH_SLICE_LEN(&self->{a.name});\n")
        else:
            lines.append(f"    len += sizeof(self->{a.name});\n")
    lines.append(f'    PAN_GH_HEADER("{msg.prefix}", "{msg.type_name}", len);\n')
    for a in msg.args:
        if a.type.is_slice:
            lines.append(f"    uint16_t {a.name}_len = PAN_GH_SLICE_LEN(&self->{a.name});\n")
            lines.append(f"    PAN_GH_WRITE(&{a.name}_len, 2);\n")
            lines.append(f"    PAN_GH_WRITE_SLICE(&self->{a.name}, {a.name}_len);\n")
        else:
            lines.append(f"    PAN_GH_WRITE(&self->{a.name}, sizeof(self->{a.name}));\n")
    lines.append(")\n")
    lines.append("\n")
    return "".join(lines)


def generate_header(
    protocol: Protocol, output: TextIO, incpath: str = DEFAULT_INCPATH
) -> None:
    """Write a header declaring every loaded message type, most recent first.

    Raises ValueError if some argument has no name, before anything is written.
    """
    messages = list(protocol)
    for msg in messages:
        for arg in msg.args:
            if arg.name is None:
                raise ValueError(
                    f"argument of {msg.prefix}:{msg.type_name} has no name; "
                    "cannot generate a header for it"
                )

    parts = [
        "// GENERATED FILE -- DO NOT EDIT\n",
        "// Generated by libpan\n",
        "// Contains:\n",
    ]
    parts.extend(
        f"//  - {_SIDE_NAMES[Side(m.side)]} {m.prefix}:{m.type_name}(...)\n"
        for m in messages
    )
    parts.append("\n")
    parts.append("#pragma once\n")
    parts.append(f'#include "{incpath}"\n')
    parts.append("\n")
    parts.append("PAN_GH_DEFS_BEGIN\n")
    parts.append("\n")
    parts.extend(_message_block(m) for m in messages)
    parts.append("PAN_GH_DEFS_END\n")
    output.write("".join(parts))