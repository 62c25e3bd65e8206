"""Recursive descent parser for the .proto subset emitted by the generator.

Consumes a token stream from proto_tokenizer and produces a ProtoDocument.
Supported: syntax, package, import, enum, message (nested messages and
enums, repeated/optional fields, oneof members), service with rpc and
stream. Options and reserved statements are skipped; oneof members are
read as plain fields. Anything else is a ProtoParseError; this is not a
general protobuf grammar.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from protospec.models import (
    Enum,
    EnumValue,
    Field,
    Message,
    ProtoDocument,
    Service,
    ServiceMethod,
    Streaming,
)

from .proto_tokenizer import ProtoToken, ProtoTokenType, tokenize_proto

# Keywords that may still appear where a name or type is expected.
_NAME_TOKENS = {
    ProtoTokenType.IDENT,
    ProtoTokenType.SYNTAX,
    ProtoTokenType.PACKAGE,
    ProtoTokenType.IMPORT,
    ProtoTokenType.OPTION,
    ProtoTokenType.RESERVED,
    ProtoTokenType.ONEOF,
    ProtoTokenType.SERVICE,
    ProtoTokenType.RPC,
    ProtoTokenType.RETURNS,
    ProtoTokenType.STREAM,
}


class ProtoParseError(Exception):
    """Raised when the parser encounters unexpected input."""

    def __init__(self, message: str, token: ProtoToken | None = None):
        if token:
            super().__init__(f"Line {token.line}:{token.col}: {message}")
        else:
            super().__init__(message)


class ProtoParser:
    """Recursive descent parser for .proto files."""

    def __init__(self, tokens: List[ProtoToken]):
        self._tokens = tokens
        self._pos = 0

    # -- public API --

    def parse(self) -> ProtoDocument:
        """Parse the full token stream into a ProtoDocument."""
        document = ProtoDocument(syntax="proto2")

        while not self._at_end():
            tt = self._peek().type

            if tt == ProtoTokenType.SYNTAX:
                document.syntax = self._parse_syntax()
            elif tt == ProtoTokenType.PACKAGE:
                document.package = self._parse_package()
            elif tt == ProtoTokenType.IMPORT:
                document.imports.append(self._parse_import())
            elif tt == ProtoTokenType.ENUM:
                document.enums.append(self._parse_enum())
            elif tt == ProtoTokenType.MESSAGE:
                document.messages.append(self._parse_message())
            elif tt == ProtoTokenType.SERVICE:
                document.services.append(self._parse_service())
            elif tt == ProtoTokenType.OPTION:
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                tok = self._peek()
                raise ProtoParseError(f"Unexpected top-level token {tok.type.name} ({tok.value!r})", tok)

        return document

    # -- file-level statements --

    def _parse_syntax(self) -> str:
        """Parse: SYNTAX EQUALS STRING_LIT SEMICOLON"""
        self._expect(ProtoTokenType.SYNTAX)
        self._expect(ProtoTokenType.EQUALS)
        value = self._expect(ProtoTokenType.STRING_LIT).value
        self._expect(ProtoTokenType.SEMICOLON)
        return value

    def _parse_package(self) -> str:
        """Parse: PACKAGE IDENT SEMICOLON"""
        self._expect(ProtoTokenType.PACKAGE)
        name = self._expect_name().value
        self._expect(ProtoTokenType.SEMICOLON)
        return name

    def _parse_import(self) -> str:
        """Parse: IMPORT [public|weak] STRING_LIT SEMICOLON"""
        self._expect(ProtoTokenType.IMPORT)
        if self._peek().type == ProtoTokenType.IDENT and self._peek().value in ("public", "weak"):
            self._advance()
        path = self._expect(ProtoTokenType.STRING_LIT).value
        self._expect(ProtoTokenType.SEMICOLON)
        return path

    # -- enum parsing --

    def _parse_enum(self) -> Enum:
        """Parse: ENUM IDENT LBRACE { IDENT EQUALS NUMBER SEMICOLON } RBRACE"""
        self._expect(ProtoTokenType.ENUM)
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.LBRACE)
        values: List[EnumValue] = []

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt in (ProtoTokenType.OPTION, ProtoTokenType.RESERVED):
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                value_name = self._expect_name()
                self._expect(ProtoTokenType.EQUALS)
                number = self._expect(ProtoTokenType.NUMBER)
                self._expect(ProtoTokenType.SEMICOLON)
                values.append(EnumValue(name=value_name.value, number=int(number.value)))

        self._expect(ProtoTokenType.RBRACE)
        return Enum(name=name_tok.value, values=values)

    # -- message parsing --

    def _parse_message(self) -> Message:
        """Parse: MESSAGE IDENT LBRACE body RBRACE"""
        self._expect(ProtoTokenType.MESSAGE)
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.LBRACE)
        msg = Message(name=name_tok.value)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type

            if tt == ProtoTokenType.MESSAGE:
                msg.nested_messages.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                msg.nested_enums.append(self._parse_enum())
            elif tt in (ProtoTokenType.OPTION, ProtoTokenType.RESERVED):
                self._skip_statement()
            elif tt == ProtoTokenType.ONEOF:
                msg.fields.extend(self._parse_oneof())
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                msg.fields.append(self._parse_field())

        self._expect(ProtoTokenType.RBRACE)
        return msg

    def _parse_field(self) -> Field:
        """Parse: [REPEATED|OPTIONAL|required] type IDENT EQUALS NUMBER SEMICOLON"""
        repeated = False
        optional = False
        tok = self._peek()
        if tok.type == ProtoTokenType.REPEATED:
            repeated = True
            self._advance()
        elif tok.type == ProtoTokenType.OPTIONAL:
            optional = True
            self._advance()
        elif tok.type == ProtoTokenType.IDENT and tok.value == "required":
            self._advance()

        type_tok = self._expect_name()
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.EQUALS)
        num_tok = self._expect(ProtoTokenType.NUMBER)
        self._expect(ProtoTokenType.SEMICOLON)

        return Field(
            type=type_tok.value,
            name=name_tok.value,
            number=int(num_tok.value),
            repeated=repeated,
            optional=optional,
        )

    def _parse_oneof(self) -> List[Field]:
        """Parse: ONEOF IDENT LBRACE { field } RBRACE

        Members come back as plain fields of the enclosing message; oneof
        membership does not change their wire encoding.
        """
        self._expect(ProtoTokenType.ONEOF)
        self._expect_name()
        self._expect(ProtoTokenType.LBRACE)
        fields: List[Field] = []

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.OPTION:
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                fields.append(self._parse_field())

        self._expect(ProtoTokenType.RBRACE)
        return fields

    # -- service parsing --

    def _parse_service(self) -> Service:
        """Parse: SERVICE IDENT LBRACE { rpc } RBRACE"""
        self._expect(ProtoTokenType.SERVICE)
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.LBRACE)
        service = Service(name=name_tok.value)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.RPC:
                service.methods.append(self._parse_rpc())
            elif tt == ProtoTokenType.OPTION:
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                tok = self._peek()
                raise ProtoParseError(f"Expected RPC, got {tok.type.name} ({tok.value!r})", tok)

        self._expect(ProtoTokenType.RBRACE)
        return service

    def _parse_rpc(self) -> ServiceMethod:
        """Parse: RPC IDENT ( [STREAM] type ) RETURNS ( [STREAM] type ) (SEMICOLON | block)"""
        self._expect(ProtoTokenType.RPC)
        name_tok = self._expect_name()
        input_stream, input_type = self._parse_rpc_type()
        self._expect(ProtoTokenType.RETURNS)
        output_stream, output_type = self._parse_rpc_type()

        if self._peek().type == ProtoTokenType.LBRACE:
            self._skip_braces()
        else:
            self._expect(ProtoTokenType.SEMICOLON)

        return ServiceMethod(
            name=name_tok.value,
            input_type=input_type,
            output_type=output_type,
            streaming=Streaming(input=input_stream, output=output_stream),
        )

    def _parse_rpc_type(self) -> Tuple[bool, str]:
        self._expect(ProtoTokenType.LPAREN)
        stream = False
        if self._peek().type == ProtoTokenType.STREAM:
            stream = True
            self._advance()
        type_tok = self._expect_name()
        self._expect(ProtoTokenType.RPAREN)
        return stream, type_tok.value

    # -- skip helpers --

    def _skip_statement(self) -> None:
        """Skip tokens until (and including) the next semicolon."""
        while not self._at_end():
            tok = self._advance()
            if tok.type == ProtoTokenType.SEMICOLON:
                return

    def _skip_braces(self) -> None:
        self._expect(ProtoTokenType.LBRACE)
        depth = 1
        while not self._at_end() and depth > 0:
            tok = self._advance()
            if tok.type == ProtoTokenType.LBRACE:
                depth += 1
            elif tok.type == ProtoTokenType.RBRACE:
                depth -= 1
        if depth > 0:
            raise ProtoParseError("Unterminated block", self._peek())

    # -- token helpers --

    def _peek(self) -> ProtoToken:
        return self._tokens[self._pos]

    def _advance(self) -> ProtoToken:
        tok = self._tokens[self._pos]
        if tok.type != ProtoTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, expected: ProtoTokenType) -> ProtoToken:
        tok = self._peek()
        if tok.type != expected:
            raise ProtoParseError(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _expect_name(self) -> ProtoToken:
        tok = self._peek()
        if tok.type not in _NAME_TOKENS or not (tok.value[:1].isalpha() or tok.value[:1] in ("_", ".")):
            raise ProtoParseError(
                f"Expected IDENT, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == ProtoTokenType.EOF


def parse_proto_text(text: str) -> ProtoDocument:
    """Parse .proto source text into a ProtoDocument.

    A file without a syntax statement is proto2, as protoc treats it.
    """
    return ProtoParser(tokenize_proto(text)).parse()


def parse_proto_file(file_path: str) -> ProtoDocument:
    """Parse a .proto file from disk."""
    return parse_proto_text(Path(file_path).read_text(encoding="utf-8"))
