"""Decode stored specification JSON into the document model, and back.

The stored shape uses camelCase keys (``nestedMessages``, ``inputType``...).
Missing collections and flags are tolerated; missing names and numbers are
not, and no attribute is accepted with the wrong JSON type.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

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

_MISSING = object()


class InvalidDocumentError(ValueError):
    """Raised when a specification payload lacks a required attribute."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


# -- helpers --


def _require(node: Dict[str, Any], key: str, path: str) -> Any:
    value = node.get(key, _MISSING)
    if value is _MISSING or value is None:
        raise InvalidDocumentError(path, f"missing required attribute '{key}'")
    return value


def _require_str(node: Dict[str, Any], key: str, path: str) -> str:
    value = _require(node, key, path)
    if not isinstance(value, str):
        raise InvalidDocumentError(path, f"attribute '{key}' must be a string, got {type(value).__name__}")
    return value


def _require_int(node: Dict[str, Any], key: str, path: str) -> int:
    value = _require(node, key, path)
    # bool is an int subclass; a flag in a number slot is a shape error
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDocumentError(path, f"attribute '{key}' must be an integer, got {value!r}")
    return value


def _optional_str(node: Dict[str, Any], key: str, path: str) -> Optional[str]:
    value = node.get(key)
    if value is not None and not isinstance(value, str):
        raise InvalidDocumentError(path, f"attribute '{key}' must be a string, got {type(value).__name__}")
    return value


def _bool(node: Dict[str, Any], key: str, path: str) -> bool:
    value = node.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidDocumentError(path, f"attribute '{key}' must be a boolean, got {value!r}")
    return value


def _list(node: Dict[str, Any], key: str, path: str) -> List[Any]:
    value = node.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidDocumentError(path, f"attribute '{key}' must be a list")
    return value


def _object(value: Any, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidDocumentError(path, f"expected an object, got {type(value).__name__}")
    return value


# -- decoding --


def _decode_field(node: Any, path: str) -> Field:
    node = _object(node, path)
    return Field(
        type=_require_str(node, "type", path),
        name=_require_str(node, "name", path),
        number=_require_int(node, "number", path),
        repeated=_bool(node, "repeated", path),
        optional=_bool(node, "optional", path),
    )


def _decode_enum(node: Any, path: str) -> Enum:
    node = _object(node, path)
    values = []
    for i, v in enumerate(_list(node, "values", path)):
        vpath = f"{path}.values[{i}]"
        v = _object(v, vpath)
        values.append(EnumValue(
            name=_require_str(v, "name", vpath),
            number=_require_int(v, "number", vpath),
        ))
    return Enum(name=_require_str(node, "name", path), values=values)


def _decode_message(node: Any, path: str) -> Message:
    node = _object(node, path)
    name = _require_str(node, "name", path)
    fields = [
        _decode_field(f, f"{path}.fields[{i}]")
        for i, f in enumerate(_list(node, "fields", path))
    ]
    nested_enums = [
        _decode_enum(e, f"{path}.nestedEnums[{i}]")
        for i, e in enumerate(_list(node, "nestedEnums", path))
    ]
    nested_messages = [
        _decode_message(m, f"{path}.nestedMessages[{i}]")
        for i, m in enumerate(_list(node, "nestedMessages", path))
    ]
    return Message(
        name=name,
        fields=fields,
        nested_messages=nested_messages,
        nested_enums=nested_enums,
    )


def _decode_method(node: Any, path: str) -> ServiceMethod:
    node = _object(node, path)
    streaming = node.get("streaming") or {}
    streaming = _object(streaming, f"{path}.streaming")
    return ServiceMethod(
        name=_require_str(node, "name", path),
        input_type=_optional_str(node, "inputType", path) or "",
        output_type=_optional_str(node, "outputType", path) or "",
        streaming=Streaming(
            input=_bool(streaming, "input", f"{path}.streaming"),
            output=_bool(streaming, "output", f"{path}.streaming"),
        ),
    )


def _decode_service(node: Any, path: str) -> Service:
    node = _object(node, path)
    return Service(
        name=_require_str(node, "name", path),
        methods=[
            _decode_method(m, f"{path}.methods[{i}]")
            for i, m in enumerate(_list(node, "methods", path))
        ],
    )


def decode_document(data: Any) -> ProtoDocument:
    """Build a ProtoDocument from its stored JSON shape.

    Raises InvalidDocumentError when a required attribute is absent or any
    attribute has the wrong type.
    """
    data = _object(data, "")
    imports = _list(data, "imports", "")
    for i, imp in enumerate(imports):
        if not isinstance(imp, str):
            raise InvalidDocumentError(f"imports[{i}]", "import path must be a string")
    package = _optional_str(data, "package", "")
    return ProtoDocument(
        syntax=_optional_str(data, "syntax", "") or "proto3",
        package=package,
        imports=list(imports),
        messages=[
            _decode_message(m, f"messages[{i}]")
            for i, m in enumerate(_list(data, "messages", ""))
        ],
        enums=[
            _decode_enum(e, f"enums[{i}]")
            for i, e in enumerate(_list(data, "enums", ""))
        ],
        services=[
            _decode_service(s, f"services[{i}]")
            for i, s in enumerate(_list(data, "services", ""))
        ],
    )


def load_document(file_path: str) -> ProtoDocument:
    """Read a JSON or YAML specification file.

    Stored spec records keep the document under ``spec_data``; such a
    wrapper is unwrapped.
    """
    path = Path(file_path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise InvalidDocumentError("", f"{file_path} is not valid YAML: {e}") from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidDocumentError("", f"{file_path} is not valid JSON: {e}") from e
    if isinstance(data, dict) and isinstance(data.get("spec_data"), dict):
        data = data["spec_data"]
    return decode_document(data)


# -- encoding --


def _encode_enum(e: Enum) -> Dict[str, Any]:
    return {
        "name": e.name,
        "values": [{"name": v.name, "number": v.number} for v in e.values],
    }


def _encode_message(msg: Message) -> Dict[str, Any]:
    return {
        "name": msg.name,
        "fields": [
            {
                "type": f.type,
                "name": f.name,
                "number": f.number,
                "repeated": f.repeated,
                "optional": f.optional,
            }
            for f in msg.fields
        ],
        "nestedMessages": [_encode_message(m) for m in msg.nested_messages],
        "nestedEnums": [_encode_enum(e) for e in msg.nested_enums],
    }


def encode_document(document: ProtoDocument) -> Dict[str, Any]:
    """Inverse of decode_document: the stored JSON shape of a document."""
    return {
        "syntax": document.syntax,
        "package": document.package or "",
        "imports": list(document.imports),
        "messages": [_encode_message(m) for m in document.messages],
        "enums": [_encode_enum(e) for e in document.enums],
        "services": [
            {
                "name": s.name,
                "methods": [
                    {
                        "name": m.name,
                        "inputType": m.input_type,
                        "outputType": m.output_type,
                        "streaming": {
                            "input": m.streaming.input,
                            "output": m.streaming.output,
                        },
                    }
                    for m in s.methods
                ],
            }
            for s in document.services
        ],
    }
