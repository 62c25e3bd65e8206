"""Terminal, JSON and YAML presentation of documents and results."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from rich.console import Console
from rich.table import Table
from rich.text import Text

from protospec.decoder import encode_document
from protospec.models import (
    CompatibilityIssue,
    DiffLine,
    DiffLineType,
    DiffResult,
    ProtoDocument,
    RuleResult,
)


def make_console(color: bool = True) -> Console:
    # without a color system rich writes plain text, which is what files need
    return Console(color_system="auto" if color else None, highlight=False)


# -- plain data --


def _diff_line_data(line: DiffLine) -> Dict[str, Any]:
    return {"content": line.content, "type": line.type.value, "lineNumber": line.line_number}


def to_data(obj: Any) -> Any:
    """Convert documents and result records into JSON-compatible structures."""
    if isinstance(obj, ProtoDocument):
        return encode_document(obj)
    if isinstance(obj, DiffResult):
        return {
            "leftLines": [_diff_line_data(line) for line in obj.left_lines],
            "rightLines": [_diff_line_data(line) for line in obj.right_lines],
            "stats": asdict(obj.stats),
        }
    if isinstance(obj, CompatibilityIssue):
        return {
            "kind": obj.kind.value,
            "message": obj.message,
            "breaking": obj.breaking,
            "location": obj.location,
        }
    if isinstance(obj, RuleResult):
        return {"ruleName": obj.rule_name, "passed": obj.passed, "message": obj.message}
    if isinstance(obj, dict):
        return {k: to_data(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_data(item) for item in obj]
    if is_dataclass(obj) and not isinstance(obj, type):
        return to_data(asdict(obj))
    return obj


def to_json(obj: Any) -> str:
    return json.dumps(to_data(obj), indent=2)


def to_yaml(obj: Any) -> str:
    return yaml.safe_dump(to_data(obj), sort_keys=False, allow_unicode=True)


# -- terminal --


def print_diff(
    diff: DiffResult,
    left_title: str,
    right_title: str,
    console: Optional[Console] = None,
    color: bool = True,
) -> None:
    """Print a unified listing of an aligned diff.

    Each row shows the side that owns it: removals with their left line
    number, additions with their right line number, unchanged lines once.
    """
    console = console or make_console(color)
    stats = diff.stats

    console.print(Text(f"--- {left_title}", style="bold"), soft_wrap=True)
    console.print(Text(f"+++ {right_title}", style="bold"), soft_wrap=True)
    console.print(Text(f"@@ Changes: +{stats.added} -{stats.removed} @@", style="bright_black"))
    console.print()

    # one physical line per row, whatever the console width
    for left, right in zip(diff.left_lines, diff.right_lines):
        if left.type == DiffLineType.REMOVED:
            console.print(Text(f"- {left.line_number:>4} | {left.content}", style="red"), soft_wrap=True)
        elif right.type == DiffLineType.ADDED:
            console.print(Text(f"+ {right.line_number:>4} | {right.content}", style="green"), soft_wrap=True)
        elif left.type == DiffLineType.UNCHANGED:
            console.print(Text(f"  {left.line_number:>4} | {left.content}", style="bright_black"), soft_wrap=True)

    console.print()
    console.print(Text("Summary:", style="bold"))
    console.print(Text(f"  Added lines: {stats.added}", style="green"))
    console.print(Text(f"  Removed lines: {stats.removed}", style="red"))
    console.print(Text(f"  Unchanged lines: {stats.unchanged}", style="bright_black"))


def print_validation_report(
    results_by_title: Sequence[Tuple[str, List[RuleResult]]],
    console: Optional[Console] = None,
) -> Tuple[int, int]:
    """Print per-document rule outcomes and a summary.

    Returns (passed, failed) counts over all documents.
    """
    console = console or make_console()
    passed = 0
    failed = 0

    for title, results in results_by_title:
        console.print(Text(f"Validating: {title}", style="bold"))
        for result in results:
            if result.passed:
                passed += 1
                console.print(Text(f"  ✓ {result.rule_name}: {result.message}", style="green"))
            else:
                failed += 1
                console.print(Text(f"  ✗ {result.rule_name}: {result.message}", style="red"))
        console.print()

    console.print(Text("Validation Summary:", style="bold"))
    console.print(Text(f"  Passed: {passed}", style="green"))
    console.print(Text(f"  Failed: {failed}", style="red"))
    console.print(Text(f"  Total: {passed + failed}", style="bright_black"))
    return passed, failed


def print_compatibility_report(
    issues: List[CompatibilityIssue],
    console: Optional[Console] = None,
) -> None:
    console = console or make_console()
    if not issues:
        console.print(Text("✓ No compatibility issues found", style="green"))
        return

    breaking = sum(1 for issue in issues if issue.breaking)
    console.print(Text(
        f"Found {len(issues)} compatibility issue(s), {breaking} breaking:",
        style="red" if breaking else "yellow",
    ))
    table = Table(show_header=True, header_style="bold")
    table.add_column("Severity", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Location", no_wrap=True)
    table.add_column("Message")
    for issue in issues:
        style = "red" if issue.breaking else "yellow"
        table.add_row(
            Text("BREAKING" if issue.breaking else "info", style=style),
            Text(issue.kind.value, style=style),
            Text(issue.location),
            Text(issue.message),
        )
    console.print(table)
