from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple


@dataclass
class Field:
    type: str
    name: str
    number: int
    repeated: bool = False
    optional: bool = False


@dataclass
class EnumValue:
    name: str
    number: int


@dataclass
class Enum:
    name: str
    values: List[EnumValue] = field(default_factory=list)


@dataclass
class Message:
    name: str
    fields: List[Field] = field(default_factory=list)
    nested_messages: List[Message] = field(default_factory=list)
    nested_enums: List[Enum] = field(default_factory=list)


@dataclass
class Streaming:
    input: bool = False
    output: bool = False


@dataclass
class ServiceMethod:
    name: str
    input_type: str = ""
    output_type: str = ""
    streaming: Streaming = field(default_factory=Streaming)


@dataclass
class Service:
    name: str
    methods: List[ServiceMethod] = field(default_factory=list)


@dataclass
class ProtoDocument:
    """Root of a specification: one .proto file worth of definitions."""

    syntax: str = "proto3"
    package: Optional[str] = None
    imports: List[str] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    enums: List[Enum] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)

    def __post_init__(self):
        # "" and None both mean "no package statement"
        if not self.package:
            self.package = None


def iter_messages(
    messages: List[Message], prefix: str = ""
) -> Iterator[Tuple[str, Message]]:
    """Yield (dotted_path, message) depth-first, parents before children."""
    for msg in messages:
        path = f"{prefix}{msg.name}"
        yield path, msg
        yield from iter_messages(msg.nested_messages, prefix=f"{path}.")


def iter_enums(document: ProtoDocument) -> Iterator[Tuple[str, Enum]]:
    """Yield (dotted_path, enum) for top-level enums, then nested ones."""
    for e in document.enums:
        yield e.name, e
    for path, msg in iter_messages(document.messages):
        for e in msg.nested_enums:
            yield f"{path}.{e.name}", e


# -- results --


class DiffLineType(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"
    EMPTY = "empty"


@dataclass
class DiffLine:
    content: str
    type: DiffLineType
    line_number: int


@dataclass
class DiffStats:
    added: int = 0
    removed: int = 0
    unchanged: int = 0
    modified: int = 0


@dataclass
class DiffResult:
    left_lines: List[DiffLine] = field(default_factory=list)
    right_lines: List[DiffLine] = field(default_factory=list)
    stats: DiffStats = field(default_factory=DiffStats)


class IssueKind(str, enum.Enum):
    REMOVED_MESSAGE = "REMOVED_MESSAGE"
    REMOVED_FIELD = "REMOVED_FIELD"
    CHANGED_FIELD_TYPE = "CHANGED_FIELD_TYPE"
    CHANGED_FIELD_LABEL = "CHANGED_FIELD_LABEL"
    RENAMED_FIELD = "RENAMED_FIELD"
    ADDED_MESSAGE = "ADDED_MESSAGE"
    ADDED_FIELD = "ADDED_FIELD"
    REMOVED_ENUM = "REMOVED_ENUM"
    REMOVED_ENUM_VALUE = "REMOVED_ENUM_VALUE"
    RENAMED_ENUM_VALUE = "RENAMED_ENUM_VALUE"
    ADDED_ENUM = "ADDED_ENUM"
    ADDED_ENUM_VALUE = "ADDED_ENUM_VALUE"
    REMOVED_SERVICE = "REMOVED_SERVICE"
    REMOVED_METHOD = "REMOVED_METHOD"
    CHANGED_METHOD_TYPE = "CHANGED_METHOD_TYPE"
    CHANGED_METHOD_STREAMING = "CHANGED_METHOD_STREAMING"
    ADDED_SERVICE = "ADDED_SERVICE"
    ADDED_METHOD = "ADDED_METHOD"


@dataclass
class CompatibilityIssue:
    kind: IssueKind
    message: str
    breaking: bool
    location: str = ""


@dataclass
class RuleResult:
    rule_name: str
    passed: bool
    message: str
