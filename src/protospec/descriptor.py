"""Conversion between documents and compiled protobuf descriptors.

A ``FileDescriptorSet`` produced by ``protoc --descriptor_set_out`` (or
``buf build``) can be loaded as a document, and a document can be turned
into a ``FileDescriptorProto`` for tools that consume descriptors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from google.protobuf import descriptor_pb2 as d2
from google.protobuf.message import DecodeError

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

FDP = d2.FieldDescriptorProto

SCALAR_TYPES: Dict[str, int] = {
    "double": FDP.TYPE_DOUBLE,
    "float": FDP.TYPE_FLOAT,
    "int64": FDP.TYPE_INT64,
    "uint64": FDP.TYPE_UINT64,
    "int32": FDP.TYPE_INT32,
    "fixed64": FDP.TYPE_FIXED64,
    "fixed32": FDP.TYPE_FIXED32,
    "bool": FDP.TYPE_BOOL,
    "string": FDP.TYPE_STRING,
    "bytes": FDP.TYPE_BYTES,
    "uint32": FDP.TYPE_UINT32,
    "sfixed32": FDP.TYPE_SFIXED32,
    "sfixed64": FDP.TYPE_SFIXED64,
    "sint32": FDP.TYPE_SINT32,
    "sint64": FDP.TYPE_SINT64,
}

_SCALAR_NAMES = {v: k for k, v in SCALAR_TYPES.items()}


class DescriptorError(Exception):
    """Raised when a descriptor set cannot be read or lacks the wanted file."""


# -- document -> descriptor --


def _enum_to_descriptor(e: Enum, out: d2.EnumDescriptorProto) -> None:
    out.name = e.name
    for value in e.values:
        out.value.add(name=value.name, number=value.number)


def _message_to_descriptor(msg: Message, out: d2.DescriptorProto, proto3: bool) -> None:
    out.name = msg.name
    for nested_enum in msg.nested_enums:
        _enum_to_descriptor(nested_enum, out.enum_type.add())
    for nested in msg.nested_messages:
        _message_to_descriptor(nested, out.nested_type.add(), proto3)
    for f in msg.fields:
        fd = out.field.add(name=f.name, number=f.number)
        if f.repeated:
            fd.label = FDP.LABEL_REPEATED
        else:
            fd.label = FDP.LABEL_OPTIONAL
            if f.optional and proto3:
                # proto3 optional lives in a synthetic single-field oneof
                fd.proto3_optional = True
                fd.oneof_index = len(out.oneof_decl)
                out.oneof_decl.add(name=f"_{f.name}")
        if f.type in SCALAR_TYPES:
            fd.type = SCALAR_TYPES[f.type]
        else:
            # message or enum reference; left unresolved like the document
            fd.type_name = f.type


def to_file_descriptor(document: ProtoDocument, file_name: str = "spec.proto") -> d2.FileDescriptorProto:
    """Build a FileDescriptorProto mirroring the document.

    Type references are copied verbatim and not resolved, so the result
    describes the document's shape rather than a link-checked schema.
    """
    proto3 = document.syntax == "proto3"
    fdp = d2.FileDescriptorProto(name=file_name, syntax=document.syntax or "proto3")
    if document.package:
        fdp.package = document.package
    fdp.dependency.extend(document.imports)
    for e in document.enums:
        _enum_to_descriptor(e, fdp.enum_type.add())
    for msg in document.messages:
        _message_to_descriptor(msg, fdp.message_type.add(), proto3)
    for svc in document.services:
        sd = fdp.service.add(name=svc.name)
        for method in svc.methods:
            sd.method.add(
                name=method.name,
                input_type=method.input_type,
                output_type=method.output_type,
                client_streaming=method.streaming.input,
                server_streaming=method.streaming.output,
            )
    return fdp


# -- descriptor -> document --


def _qualify(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


def _local_name(type_name: str, scope: str) -> str:
    """Shorten a fully-qualified reference relative to ``scope``.

    protoc writes ``.shop.Order.Line``; seen from inside ``shop.Order`` the
    source wrote ``Line``, and from elsewhere in package ``shop`` it wrote
    ``Order.Line``. The longest enclosing scope that prefixes the reference
    is dropped. References into other packages keep their qualification.
    """
    while scope:
        if type_name.startswith(f".{scope}."):
            return type_name[len(scope) + 2:]
        scope = scope.rpartition(".")[0]
    return type_name.lstrip(".")


def _type_name_from_field(fd: d2.FieldDescriptorProto, scope: str) -> str:
    # unresolved references (as written by to_file_descriptor) carry no type
    if fd.type_name and (not fd.HasField("type") or fd.type in (FDP.TYPE_MESSAGE, FDP.TYPE_ENUM)):
        return _local_name(fd.type_name, scope)
    return _SCALAR_NAMES.get(fd.type, "bytes")


def _enum_from_descriptor(desc: d2.EnumDescriptorProto) -> Enum:
    return Enum(
        name=desc.name,
        values=[EnumValue(name=v.name, number=v.number) for v in desc.value],
    )


def _message_from_descriptor(desc: d2.DescriptorProto, proto3: bool, parent: str) -> Message:
    scope = _qualify(parent, desc.name)
    fields = []
    for fd in desc.field:
        repeated = fd.label == FDP.LABEL_REPEATED
        if proto3:
            optional = fd.proto3_optional
        else:
            optional = fd.label == FDP.LABEL_OPTIONAL
        fields.append(Field(
            type=_type_name_from_field(fd, scope),
            name=fd.name,
            number=fd.number,
            repeated=repeated,
            optional=optional,
        ))
    return Message(
        name=desc.name,
        fields=fields,
        # map<K, V> fields compile to synthetic *Entry types; they are not declarations
        nested_messages=[
            _message_from_descriptor(n, proto3, scope)
            for n in desc.nested_type
            if not n.options.map_entry
        ],
        nested_enums=[_enum_from_descriptor(e) for e in desc.enum_type],
    )


def from_file_descriptor(fdp: d2.FileDescriptorProto) -> ProtoDocument:
    """Map a FileDescriptorProto onto the document model."""
    # protoc leaves syntax empty for proto2 files
    syntax = fdp.syntax or "proto2"
    proto3 = syntax == "proto3"
    return ProtoDocument(
        syntax=syntax,
        package=fdp.package or None,
        imports=list(fdp.dependency),
        messages=[
            _message_from_descriptor(m, proto3, fdp.package)
            for m in fdp.message_type
            if not m.options.map_entry
        ],
        enums=[_enum_from_descriptor(e) for e in fdp.enum_type],
        services=[
            Service(
                name=svc.name,
                methods=[
                    ServiceMethod(
                        name=m.name,
                        input_type=_local_name(m.input_type, fdp.package),
                        output_type=_local_name(m.output_type, fdp.package),
                        streaming=Streaming(input=m.client_streaming, output=m.server_streaming),
                    )
                    for m in svc.method
                ],
            )
            for svc in fdp.service
        ],
    )


def load_descriptor_set(file_path: str, file_name: Optional[str] = None) -> ProtoDocument:
    """Read a binary FileDescriptorSet and return one of its files as a document.

    ``file_name`` selects the file by (suffix of its) name. Without it the
    set must hold exactly one file, or the last file is taken when the set
    was built with ``--include_imports`` (protoc lists the target last).
    """
    fds = d2.FileDescriptorSet()
    try:
        fds.ParseFromString(Path(file_path).read_bytes())
    except DecodeError as e:
        raise DescriptorError(f"{file_path} is not a FileDescriptorSet: {e}") from e

    if not fds.file:
        raise DescriptorError(f"{file_path} contains no files")

    if file_name is None:
        return from_file_descriptor(fds.file[-1])

    for f in fds.file:
        if f.name == file_name or f.name.endswith(f"/{file_name}"):
            return from_file_descriptor(f)

    names = ", ".join(f.name for f in fds.file)
    raise DescriptorError(f"Could not locate '{file_name}' in descriptor set. Found: {names}")
