"""Breaking-change analysis between two versions of a document.

The comparison is structural. Messages, enums and services are matched by
(dotted) name; fields and enum values by number, since the number is the
wire identity; service methods by name.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from protospec.models import (
    CompatibilityIssue,
    Enum,
    EnumValue,
    Field,
    IssueKind,
    Message,
    ProtoDocument,
    Service,
    iter_enums,
    iter_messages,
)

_N = TypeVar("_N", Field, EnumValue)


def _issue(kind: IssueKind, message: str, breaking: bool, location: str) -> CompatibilityIssue:
    return CompatibilityIssue(kind=kind, message=message, breaking=breaking, location=location)


def _pair_by_number(base: Sequence[_N], target: Sequence[_N]) -> Tuple[List[Tuple[_N, Optional[_N]]], List[_N]]:
    """Pair entries that share a number, in declaration order within it.

    A number may repeat (enum aliases), so the k-th base entry carrying a
    number pairs with the k-th target entry carrying it. Returns the
    (base, target or None) pairs and the target entries left unpaired, in
    target order.
    """
    target_groups: Dict[int, List[int]] = {}
    for i, item in enumerate(target):
        target_groups.setdefault(item.number, []).append(i)

    seen: Dict[int, int] = {}
    paired = set()
    pairs: List[Tuple[_N, Optional[_N]]] = []
    for item in base:
        k = seen.get(item.number, 0)
        seen[item.number] = k + 1
        group = target_groups.get(item.number, [])
        if k < len(group):
            paired.add(group[k])
            pairs.append((item, target[group[k]]))
        else:
            pairs.append((item, None))

    unpaired = [item for i, item in enumerate(target) if i not in paired]
    return pairs, unpaired


def _compare_fields(path: str, base: Message, target: Message) -> List[CompatibilityIssue]:
    issues: List[CompatibilityIssue] = []
    pairs, added = _pair_by_number(base.fields, target.fields)

    for base_field, target_field in pairs:
        location = f"{path}.{base_field.name}"
        if target_field is None:
            issues.append(_issue(
                IssueKind.REMOVED_FIELD,
                f"Field '{base_field.name}' ({base_field.number}) was removed from message '{path}'",
                True,
                location,
            ))
            continue
        if base_field.type != target_field.type:
            issues.append(_issue(
                IssueKind.CHANGED_FIELD_TYPE,
                f"Field '{base_field.name}' type changed from '{base_field.type}' "
                f"to '{target_field.type}' in message '{path}'",
                True,
                location,
            ))
        elif base_field.repeated != target_field.repeated:
            before = "repeated" if base_field.repeated else "singular"
            after = "repeated" if target_field.repeated else "singular"
            issues.append(_issue(
                IssueKind.CHANGED_FIELD_LABEL,
                f"Field '{base_field.name}' changed from {before} to {after} in message '{path}'",
                True,
                location,
            ))
        if base_field.name != target_field.name:
            issues.append(_issue(
                IssueKind.RENAMED_FIELD,
                f"Field {base_field.number} renamed from '{base_field.name}' "
                f"to '{target_field.name}' in message '{path}'",
                False,
                location,
            ))

    for target_field in added:
        issues.append(_issue(
            IssueKind.ADDED_FIELD,
            f"Field '{target_field.name}' ({target_field.number}) was added to message '{path}'",
            False,
            f"{path}.{target_field.name}",
        ))

    return issues


def _compare_messages(base: ProtoDocument, target: ProtoDocument) -> List[CompatibilityIssue]:
    issues: List[CompatibilityIssue] = []
    target_by_path: Dict[str, Message] = dict(iter_messages(target.messages))
    base_paths = set()
    removed: List[str] = []

    for path, base_msg in iter_messages(base.messages):
        base_paths.add(path)
        # children of a removed message are covered by its own issue
        if any(path.startswith(f"{r}.") for r in removed):
            continue
        target_msg = target_by_path.get(path)
        if target_msg is None:
            removed.append(path)
            issues.append(_issue(
                IssueKind.REMOVED_MESSAGE,
                f"Message '{path}' was removed",
                True,
                path,
            ))
            continue
        issues.extend(_compare_fields(path, base_msg, target_msg))

    added: List[str] = []
    for path in target_by_path:
        if path in base_paths or any(path.startswith(f"{a}.") for a in added):
            continue
        added.append(path)
        issues.append(_issue(
            IssueKind.ADDED_MESSAGE,
            f"Message '{path}' was added",
            False,
            path,
        ))

    return issues


def _compare_enum_values(path: str, base: Enum, target: Enum) -> List[CompatibilityIssue]:
    issues: List[CompatibilityIssue] = []
    pairs, added = _pair_by_number(base.values, target.values)

    for value, target_value in pairs:
        if target_value is None:
            issues.append(_issue(
                IssueKind.REMOVED_ENUM_VALUE,
                f"Enum value '{value.name}' ({value.number}) was removed from enum '{path}'",
                True,
                f"{path}.{value.name}",
            ))
        elif target_value.name != value.name:
            issues.append(_issue(
                IssueKind.RENAMED_ENUM_VALUE,
                f"Enum value {value.number} renamed from '{value.name}' "
                f"to '{target_value.name}' in enum '{path}'",
                False,
                f"{path}.{value.name}",
            ))

    for value in added:
        issues.append(_issue(
            IssueKind.ADDED_ENUM_VALUE,
            f"Enum value '{value.name}' ({value.number}) was added to enum '{path}'",
            False,
            f"{path}.{value.name}",
        ))

    return issues


def _compare_enums(base: ProtoDocument, target: ProtoDocument) -> List[CompatibilityIssue]:
    issues: List[CompatibilityIssue] = []
    target_messages = {path for path, _ in iter_messages(target.messages)}
    target_by_path: Dict[str, Enum] = dict(iter_enums(target))
    base_paths = set()

    for path, base_enum in iter_enums(base):
        base_paths.add(path)
        target_enum = target_by_path.get(path)
        if target_enum is None:
            parent = path.rpartition(".")[0]
            if parent and parent not in target_messages:
                # enclosing message already reported as removed
                continue
            issues.append(_issue(
                IssueKind.REMOVED_ENUM,
                f"Enum '{path}' was removed",
                True,
                path,
            ))
            continue
        issues.extend(_compare_enum_values(path, base_enum, target_enum))

    base_messages = {path for path, _ in iter_messages(base.messages)}
    for path in target_by_path:
        if path in base_paths:
            continue
        parent = path.rpartition(".")[0]
        if parent and parent not in base_messages:
            # enclosing message already reported as added
            continue
        issues.append(_issue(
            IssueKind.ADDED_ENUM,
            f"Enum '{path}' was added",
            False,
            path,
        ))

    return issues


def _compare_methods(base: Service, target: Service) -> List[CompatibilityIssue]:
    issues: List[CompatibilityIssue] = []
    target_by_name = {m.name: m for m in target.methods}
    base_names = {m.name for m in base.methods}

    for method in base.methods:
        location = f"{base.name}.{method.name}"
        target_method = target_by_name.get(method.name)
        if target_method is None:
            issues.append(_issue(
                IssueKind.REMOVED_METHOD,
                f"Method '{method.name}' was removed from service '{base.name}'",
                True,
                location,
            ))
            continue
        if (method.input_type, method.output_type) != (target_method.input_type, target_method.output_type):
            issues.append(_issue(
                IssueKind.CHANGED_METHOD_TYPE,
                f"Method '{method.name}' signature changed from "
                f"({method.input_type}) returns ({method.output_type}) to "
                f"({target_method.input_type}) returns ({target_method.output_type}) "
                f"in service '{base.name}'",
                True,
                location,
            ))
        if method.streaming != target_method.streaming:
            issues.append(_issue(
                IssueKind.CHANGED_METHOD_STREAMING,
                f"Method '{method.name}' streaming changed in service '{base.name}'",
                True,
                location,
            ))

    for method in target.methods:
        if method.name not in base_names:
            issues.append(_issue(
                IssueKind.ADDED_METHOD,
                f"Method '{method.name}' was added to service '{base.name}'",
                False,
                f"{base.name}.{method.name}",
            ))

    return issues


def _compare_services(base: ProtoDocument, target: ProtoDocument) -> List[CompatibilityIssue]:
    issues: List[CompatibilityIssue] = []
    target_by_name = {s.name: s for s in target.services}
    base_names = {s.name for s in base.services}

    for service in base.services:
        target_service = target_by_name.get(service.name)
        if target_service is None:
            issues.append(_issue(
                IssueKind.REMOVED_SERVICE,
                f"Service '{service.name}' was removed",
                True,
                service.name,
            ))
            continue
        issues.extend(_compare_methods(service, target_service))

    for service in target.services:
        if service.name not in base_names:
            issues.append(_issue(
                IssueKind.ADDED_SERVICE,
                f"Service '{service.name}' was added",
                False,
                service.name,
            ))

    return issues


def check_compatibility(base: ProtoDocument, target: ProtoDocument) -> List[CompatibilityIssue]:
    """Report every difference between two versions, breaking or not.

    Messages come first, then enums, then services; additions follow
    removals and changes within each group.
    """
    issues: List[CompatibilityIssue] = []
    issues.extend(_compare_messages(base, target))
    issues.extend(_compare_enums(base, target))
    issues.extend(_compare_services(base, target))
    return issues


def has_breaking_changes(issues: List[CompatibilityIssue]) -> bool:
    return any(issue.breaking for issue in issues)


def breaking_only(issues: List[CompatibilityIssue]) -> List[CompatibilityIssue]:
    return [issue for issue in issues if issue.breaking]
