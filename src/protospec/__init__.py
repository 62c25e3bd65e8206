"""Protobuf specification documents: generation, validation, diffing and
breaking-change detection."""

from protospec.compat import check_compatibility
from protospec.decoder import InvalidDocumentError, decode_document, encode_document, load_document
from protospec.differ import diff_documents, diff_lines, diff_text
from protospec.generator.proto_generator import generate_proto
from protospec.models import (
    CompatibilityIssue,
    DiffLine,
    DiffLineType,
    DiffResult,
    DiffStats,
    Enum,
    EnumValue,
    Field,
    IssueKind,
    Message,
    ProtoDocument,
    RuleResult,
    Service,
    ServiceMethod,
    Streaming,
)
from protospec.validator import validate

generate_proto_text = generate_proto

__all__ = [
    "CompatibilityIssue",
    "DiffLine",
    "DiffLineType",
    "DiffResult",
    "DiffStats",
    "Enum",
    "EnumValue",
    "Field",
    "InvalidDocumentError",
    "IssueKind",
    "Message",
    "ProtoDocument",
    "RuleResult",
    "Service",
    "ServiceMethod",
    "Streaming",
    "check_compatibility",
    "decode_document",
    "diff_documents",
    "diff_lines",
    "diff_text",
    "encode_document",
    "generate_proto",
    "generate_proto_text",
    "load_document",
    "validate",
]
