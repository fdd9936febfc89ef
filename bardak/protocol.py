"""Protocol definition (.pan) parsing and message type lookup."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from os import PathLike
from pathlib import Path
from typing import Iterable, Iterator

PREF_LEN = 8
TYPE_LEN = 8


class ArgType(IntEnum):
    ID = 0
    CHAR64 = 1
    INT8 = 2
    INT16 = 3
    INT32 = 4
    INT64 = 5
    FLOAT = 6
    DOUBLE = 7
    STRING = 8
    BLOB = 9
    BOOL = 10

    @property
    def keyword(self) -> str:
        """The name of this type in .pan sources."""
        return self.name.lower()

    @property
    def is_slice(self) -> bool:
        """Whether values are length-prefixed byte runs (string or blob)."""
        return self in (ArgType.STRING, ArgType.BLOB)

    @property
    def size(self) -> int | None:
        """Encoded size in bytes, or None for length-prefixed types."""
        return _FIXED_SIZES.get(self)

    @property
    def struct_format(self) -> str | None:
        """Little-endian struct format for fixed-size types."""
        return _FORMATS.get(self)


_FORMATS = {
    ArgType.ID: "<I",
    ArgType.CHAR64: "<8s",
    ArgType.INT8: "<b",
    ArgType.INT16: "<h",
    ArgType.INT32: "<i",
    ArgType.INT64: "<q",
    ArgType.FLOAT: "<f",
    ArgType.DOUBLE: "<d",
    ArgType.BOOL: "<b",
}
_FIXED_SIZES = {
    ArgType.ID: 4,
    ArgType.CHAR64: 8,
    ArgType.INT8: 1,
    ArgType.INT16: 2,
    ArgType.INT32: 4,
    ArgType.INT64: 8,
    ArgType.FLOAT: 4,
    ArgType.DOUBLE: 8,
    ArgType.BOOL: 1,
}


class Side(IntEnum):
    CLIENT = 0
    SERVER = 1


class TokenType(IntEnum):
    EOF = 0
    LPAREN = ord("(")
    RPAREN = ord(")")
    COMMA = ord(",")
    COLON = ord(":")
    SEMICOLON = ord(";")
    NAME = 60
    KW_CLIENT = 61
    KW_SERVER = 62
    TYPE_ID = 63
    TYPE_CHAR64 = 64
    TYPE_INT8 = 65
    TYPE_INT16 = 66
    TYPE_INT32 = 67
    TYPE_INT64 = 68
    TYPE_FLOAT = 69
    TYPE_DOUBLE = 70
    TYPE_STRING = 71
    TYPE_BLOB = 72
    TYPE_BOOL = 73

    @property
    def is_name(self) -> bool:
        """Names and keywords alike may serve as identifiers."""
        return self >= TokenType.NAME

    @property
    def is_type(self) -> bool:
        return self >= TokenType.TYPE_ID

    @property
    def arg_type(self) -> ArgType:
        if not self.is_type:
            raise ValueError(f"{self.name} is not a type keyword")
        return ArgType(self - TokenType.TYPE_ID)


_KEYWORDS = {
    "client": TokenType.KW_CLIENT,
    "server": TokenType.KW_SERVER,
    **{t.keyword: TokenType(TokenType.TYPE_ID + t) for t in ArgType},
}
_PUNCT = {t.value: t for t in TokenType if 0 < t < TokenType.NAME}

_SPACE = " \t\n\v\f\r"
_TOKEN_RE = re.compile(
    rf"(?P<space>[{_SPACE}]+)"
    r"|(?P<comment>#[^\n]*\n?)"
    r"|(?P<punct>[:(),;])"
    rf"|(?P<name>[^{_SPACE}:(),;]+)"
)


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    line: int


def tokenize(source: str) -> Iterator[Token]:
    """Split .pan source into tokens, ending with a single EOF token."""
    nul = source.find("\0")
    if nul >= 0:
        source = source[:nul]
    line = 1
    for match in _TOKEN_RE.finditer(source):
        kind = match.lastgroup
        text = match.group()
        if kind in ("space", "comment"):
            line += text.count("\n")
        elif kind == "punct":
            yield Token(_PUNCT[ord(text)], text, line)
        else:
            yield Token(_KEYWORDS.get(text, TokenType.NAME), text, line)
    yield Token(TokenType.EOF, "", line)


@dataclass
class Arg:
    type: ArgType
    name: str | None = None


@dataclass
class MsgType:
    side: Side
    prefix: str
    type_name: str
    args: list[Arg] = field(default_factory=list)


class PanSyntaxError(ValueError):
    """Raised when a protocol definition cannot be parsed."""

    def __init__(self, token: Token, reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"Syntax error @ line {token.line}, token `{token.text}`: {reason}")


class _TokenStream:
    def __init__(self, tokens: Iterable[Token]):
        self._tokens = iter(tokens)
        self._last: Token | None = None

    def next(self) -> Token:
        self._last = next(self._tokens, self._last)
        return self._last


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _cstr(data: bytes) -> str:
    return data.split(b"\0", 1)[0].decode("utf-8", errors="surrogateescape")


class Protocol:
    """A set of message types loaded from protocol definitions."""

    def __init__(self):
        self._types: list[MsgType] = []

    def load_defs(self, source: str) -> list[MsgType]:
        """Parse definitions and add them; return the new types in source order.

        Types parsed before a syntax error stay loaded.
        """
        tokens = _TokenStream(tokenize(source))
        loaded: list[MsgType] = []
        while True:
            side_tok = tokens.next()
            if side_tok.type == TokenType.EOF:
                return loaded
            if side_tok.type not in (TokenType.KW_CLIENT, TokenType.KW_SERVER):
                raise PanSyntaxError(side_tok, "Expected `client` or `server`")

            prefix = tokens.next()
            if not prefix.type.is_name:
                raise PanSyntaxError(prefix, "Message prefix name expected")
            if _byte_len(prefix.text) > PREF_LEN:
                raise PanSyntaxError(prefix, "Prefixes are no longer than 8 chars")
            if tokens.next().type != TokenType.COLON:
                raise PanSyntaxError(prefix, "Expected `:` after prefix name")

            type_tok = tokens.next()
            if not type_tok.type.is_name:
                raise PanSyntaxError(type_tok, "Message type name expected")
            if _byte_len(type_tok.text) > TYPE_LEN:
                raise PanSyntaxError(prefix, "Message types are no longer than 8 chars")
            if tokens.next().type != TokenType.LPAREN:
                raise PanSyntaxError(prefix, "Expected `(` to open argument list")

            args = self._parse_args(tokens)
            side = Side.SERVER if side_tok.type == TokenType.KW_SERVER else Side.CLIENT
            msg = MsgType(side, prefix.text, type_tok.text, args)
            self._types.append(msg)
            loaded.append(msg)

            if tokens.next().type != TokenType.SEMICOLON:
                raise PanSyntaxError(prefix, "Expected `;` after message definition")

    @staticmethod
    def _parse_args(tokens: _TokenStream) -> list[Arg]:
        args: list[Arg] = []
        while True:
            type_tok = tokens.next()
            if type_tok.type == TokenType.RPAREN:
                return args
            if not type_tok.type.is_type:
                raise PanSyntaxError(type_tok, "Expected argument type name")
            name = None
            tok = tokens.next()
            if tok.type.is_name:
                name = tok.text
                tok = tokens.next()
            args.append(Arg(type_tok.type.arg_type, name))
            if tok.type == TokenType.RPAREN:
                return args
            if tok.type != TokenType.COMMA:
                raise PanSyntaxError(tok, "Unexpected thing after argument")

    def load_defs_from_file(self, path: str | PathLike) -> list[MsgType]:
        """Load definitions from a file; OSError propagates if it cannot be read."""
        return self.load_defs(Path(path).read_text(encoding="utf-8"))

    def find(self, side: Side, prefix: str, type_name: str) -> MsgType | None:
        """The most recently loaded type with this side, prefix and name."""
        side = Side(side)
        return next(
            (
                m
                for m in self
                if m.side == side and m.prefix == prefix and m.type_name == type_name
            ),
            None,
        )

    def bin_match(self, side: Side, data: bytes) -> MsgType | None:
        """The message type matching the prefix and type at the start of ``data``."""
        if len(data) < PREF_LEN + TYPE_LEN:
            return None
        prefix = _cstr(data[:PREF_LEN])
        type_name = _cstr(data[PREF_LEN : PREF_LEN + TYPE_LEN])
        return self.find(side, prefix, type_name)

    def __iter__(self) -> Iterator[MsgType]:
        """Message types, most recently loaded first."""
        return reversed(self._types)

    def __len__(self) -> int:
        return len(self._types)