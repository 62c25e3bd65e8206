from __future__ import annotations

import os
from pathlib import Path
from typing import List

from protospec.models import Enum, Message, ProtoDocument, Service

INDENT = "  "


def _emit_enum(e: Enum, depth: int, lines: List[str]) -> None:
    pad = INDENT * depth
    lines.append(f"{pad}enum {e.name} {{")
    for value in e.values:
        lines.append(f"{pad}{INDENT}{value.name} = {value.number};")
    lines.append(f"{pad}}}")
    lines.append("")


def _emit_message(msg: Message, depth: int, lines: List[str]) -> None:
    """Render a message: nested enums, then nested messages, then fields."""
    pad = INDENT * depth
    lines.append(f"{pad}message {msg.name} {{")
    for nested_enum in msg.nested_enums:
        _emit_enum(nested_enum, depth + 1, lines)
    for nested in msg.nested_messages:
        _emit_message(nested, depth + 1, lines)
    for f in msg.fields:
        repeated = "repeated " if f.repeated else ""
        optional = "optional " if f.optional else ""
        lines.append(f"{pad}{INDENT}{repeated}{optional}{f.type} {f.name} = {f.number};")
    lines.append(f"{pad}}}")
    lines.append("")


def _emit_service(svc: Service, lines: List[str]) -> None:
    lines.append(f"service {svc.name} {{")
    for method in svc.methods:
        in_stream = "stream " if method.streaming.input else ""
        out_stream = "stream " if method.streaming.output else ""
        lines.append(
            f"{INDENT}rpc {method.name}({in_stream}{method.input_type}) "
            f"returns ({out_stream}{method.output_type});"
        )
    lines.append("}")
    lines.append("")


def generate_proto(document: ProtoDocument) -> str:
    """Render a document as canonical .proto source text.

    Declaration order is preserved. Every block is followed by a blank line,
    so the output always ends with an empty line.
    """
    lines: List[str] = [f'syntax = "{document.syntax or "proto3"}";', ""]

    if document.package:
        lines.append(f"package {document.package};")
        lines.append("")

    if document.imports:
        for import_path in document.imports:
            lines.append(f'import "{import_path}";')
        lines.append("")

    for e in document.enums:
        _emit_enum(e, 0, lines)

    for msg in document.messages:
        _emit_message(msg, 0, lines)

    for svc in document.services:
        _emit_service(svc, lines)

    return "\n".join(lines) + "\n"


def write_proto(document: ProtoDocument, output_dir: str, file_name: str) -> str:
    """Write the generated text to <output_dir>/<file_name>.proto.

    Returns the written file path.
    """
    os.makedirs(output_dir, exist_ok=True)
    stem = file_name[:-len(".proto")] if file_name.endswith(".proto") else file_name
    file_path = os.path.join(output_dir, f"{stem}.proto")
    Path(file_path).write_text(generate_proto(document), encoding="utf-8")
    return file_path
