from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from protospec.models import ProtoDocument, RuleResult, iter_enums, iter_messages

FIELD_NUMBER_MIN = 1
FIELD_NUMBER_MAX = 536870911
RESERVED_RANGE = (19000, 19999)

VALID_SYNTAXES = ("proto2", "proto3")

_PACKAGE_RE = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*$")

Outcome = Tuple[bool, str]


@dataclass
class ValidationRule:
    name: str
    description: str
    check: Callable[[ProtoDocument], Outcome]


def _check_syntax(document: ProtoDocument) -> Outcome:
    if not document.syntax:
        return False, "Syntax version not specified"
    if document.syntax not in VALID_SYNTAXES:
        return False, f"Invalid syntax version: {document.syntax}"
    return True, f"Valid syntax: {document.syntax}"


def _check_package(document: ProtoDocument) -> Outcome:
    if not document.package:
        return False, "Package name not specified"
    if not _PACKAGE_RE.match(document.package):
        return False, "Package name should follow lowercase dot notation"
    return True, f"Valid package name: {document.package}"


def _check_field_numbers(document: ProtoDocument) -> Outcome:
    reserved_lo, reserved_hi = RESERVED_RANGE
    for path, msg in iter_messages(document.messages):
        seen = set()
        for f in msg.fields:
            if f.number in seen:
                return False, f"Duplicate field number {f.number} in message {path}"
            seen.add(f.number)
            if f.number < FIELD_NUMBER_MIN or f.number > FIELD_NUMBER_MAX:
                return False, f"Invalid field number {f.number} in message {path}"
            if reserved_lo <= f.number <= reserved_hi:
                return False, f"Reserved field number {f.number} in message {path}"
    return True, "All field numbers are valid and unique"


def _check_enum_values(document: ProtoDocument) -> Outcome:
    for path, e in iter_enums(document):
        if not e.values:
            return False, f"Enum {path} must declare at least one value"
        seen = set()
        for value in e.values:
            if value.number in seen:
                return False, f"Duplicate enum value {value.number} in enum {path}"
            seen.add(value.number)
        if 0 not in seen and document.syntax == "proto3":
            return False, f"Enum {path} must have a zero value in proto3"
    return True, "All enum values are valid"


def _check_service_methods(document: ProtoDocument) -> Outcome:
    for service in document.services:
        seen = set()
        for method in service.methods:
            if method.name in seen:
                return False, f"Duplicate method name {method.name} in service {service.name}"
            seen.add(method.name)
            if not method.input_type or not method.output_type:
                return False, f"Method {method.name} missing input or output type"
    return True, "All service methods are valid"


RULES: List[ValidationRule] = [
    ValidationRule("syntax_version", "Check if syntax version is specified", _check_syntax),
    ValidationRule("package_name", "Check if package name follows conventions", _check_package),
    ValidationRule("field_numbers", "Check field number uniqueness and ranges", _check_field_numbers),
    ValidationRule("enum_values", "Check enum value uniqueness and zero value", _check_enum_values),
    ValidationRule("service_methods", "Check service method definitions", _check_service_methods),
]

RULE_NAMES = [rule.name for rule in RULES]


def select_rules(names: Optional[Sequence[str]] = None) -> List[ValidationRule]:
    """Return the registered rules, optionally restricted to the given names."""
    if names is None:
        return list(RULES)
    unknown = [n for n in names if n not in RULE_NAMES]
    if unknown:
        raise ValueError(f"Unknown validation rule(s): {', '.join(unknown)}. Available: {', '.join(RULE_NAMES)}")
    return [rule for rule in RULES if rule.name in names]


def validate(document: ProtoDocument, rules: Optional[Sequence[str]] = None) -> List[RuleResult]:
    """Run every selected rule against the document.

    Each rule reports once, pass or fail, and a failing rule never stops the
    others from running.
    """
    results: List[RuleResult] = []
    for rule in select_rules(rules):
        passed, message = rule.check(document)
        results.append(RuleResult(rule_name=rule.name, passed=passed, message=message))
    return results
