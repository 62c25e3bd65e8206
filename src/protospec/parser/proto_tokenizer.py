"""Tokenizer for the .proto subset emitted by the generator."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List


class ProtoTokenType(Enum):
    # Keywords
    SYNTAX = auto()
    PACKAGE = auto()
    IMPORT = auto()
    OPTION = auto()
    RESERVED = auto()
    MESSAGE = auto()
    ENUM = auto()
    ONEOF = auto()
    REPEATED = auto()
    OPTIONAL = auto()
    SERVICE = auto()
    RPC = auto()
    RETURNS = auto()
    STREAM = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    SEMICOLON = auto()
    EQUALS = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING_LIT = auto()

    # Special
    EOF = auto()


_KEYWORDS = {
    "syntax": ProtoTokenType.SYNTAX,
    "package": ProtoTokenType.PACKAGE,
    "import": ProtoTokenType.IMPORT,
    "option": ProtoTokenType.OPTION,
    "reserved": ProtoTokenType.RESERVED,
    "message": ProtoTokenType.MESSAGE,
    "enum": ProtoTokenType.ENUM,
    "oneof": ProtoTokenType.ONEOF,
    "repeated": ProtoTokenType.REPEATED,
    "optional": ProtoTokenType.OPTIONAL,
    "service": ProtoTokenType.SERVICE,
    "rpc": ProtoTokenType.RPC,
    "returns": ProtoTokenType.RETURNS,
    "stream": ProtoTokenType.STREAM,
}

_PUNCTUATION = {
    "{": ProtoTokenType.LBRACE,
    "}": ProtoTokenType.RBRACE,
    "(": ProtoTokenType.LPAREN,
    ")": ProtoTokenType.RPAREN,
    ";": ProtoTokenType.SEMICOLON,
    "=": ProtoTokenType.EQUALS,
}


@dataclass
class ProtoToken:
    type: ProtoTokenType
    value: str
    line: int
    col: int


# Order matters: comments before the single "/" fallback, numbers before
# identifiers so that "-1" is not split.
_SCANNER = re.compile(
    r"""
    (?P<newline>\n)
  | (?P<space>[ \t\r]+)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*.*?(?:\*/|\Z))
  | (?P<string>(?P<quote>["'])(?P<body>(?:\\.|(?!(?P=quote))[^\\])*)(?P=quote)?)
  | (?P<number>-?\d+)
  | (?P<word>[A-Za-z_.][\w.]*)
  | (?P<punct>[{}();=])
  | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)


def tokenize_proto(text: str) -> List[ProtoToken]:
    """Tokenize protobuf source into a list of tokens ending with EOF.

    Identifiers may contain dots so that qualified type references
    (``google.protobuf.Timestamp``, ``.pkg.Msg``) arrive as one token.
    Characters outside the supported subset come back as one-character
    IDENT tokens and are rejected by the parser.
    """
    tokens: List[ProtoToken] = []
    line = 1
    line_start = 0

    for m in _SCANNER.finditer(text):
        kind = m.lastgroup
        value = m.group()
        col = m.start() - line_start + 1

        if kind == "string":
            tokens.append(ProtoToken(ProtoTokenType.STRING_LIT, m.group("body"), line, col))
        elif kind == "number":
            tokens.append(ProtoToken(ProtoTokenType.NUMBER, value, line, col))
        elif kind == "word":
            tokens.append(ProtoToken(_KEYWORDS.get(value, ProtoTokenType.IDENT), value, line, col))
        elif kind == "punct":
            tokens.append(ProtoToken(_PUNCTUATION[value], value, line, col))
        elif kind == "other":
            tokens.append(ProtoToken(ProtoTokenType.IDENT, value, line, col))

        newlines = value.count("\n")
        if newlines:
            line += newlines
            line_start = m.start() + value.rindex("\n") + 1

    tokens.append(ProtoToken(ProtoTokenType.EOF, "", line, len(text) - line_start + 1))
    return tokens
