from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from protospec.compat import breaking_only, check_compatibility, has_breaking_changes
from protospec.decoder import InvalidDocumentError, load_document
from protospec.descriptor import DescriptorError, load_descriptor_set
from protospec.differ import diff_documents
from protospec.generator.html_diff_generator import generate_html_diff
from protospec.generator.proto_generator import generate_proto, write_proto
from protospec.models import ProtoDocument
from protospec.output import (
    make_console,
    print_compatibility_report,
    print_diff,
    print_validation_report,
    to_json,
    to_yaml,
)
from protospec.parser.proto_parser import ProtoParseError, parse_proto_file
from protospec.validator import validate

DESCRIPTOR_SUFFIXES = (".pb", ".desc", ".binpb")


def load_input(file_path: str) -> ProtoDocument:
    """Load a document from JSON/YAML, .proto text or a descriptor set."""
    suffix = Path(file_path).suffix.lower()
    if suffix == ".proto":
        return parse_proto_file(file_path)
    if suffix in DESCRIPTOR_SUFFIXES:
        return load_descriptor_set(file_path)
    return load_document(file_path)


def _title(file_path: str) -> str:
    return Path(file_path).stem


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        print(f"Written: {output}")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def _cmd_generate(args: argparse.Namespace) -> int:
    document = load_input(args.document)
    if args.out_dir:
        out_path = write_proto(document, args.out_dir, _title(args.document))
        print(f"Generated: {out_path}")
    else:
        _emit(generate_proto(document), None)
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    document = load_input(args.document)
    if args.format == "json":
        text = to_json(document) + "\n"
    elif args.format == "yaml":
        text = to_yaml(document)
    else:
        text = generate_proto(document)
    _emit(text, args.output)
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    rules = [r.strip() for r in args.rules.split(",") if r.strip()] if args.rules else None
    reports = []
    for path in args.documents:
        reports.append((_title(path), validate(load_input(path), rules=rules)))

    print(f"Running validation on {len(reports)} specification(s)...")
    _, failed = print_validation_report(reports, console=make_console(not args.no_color))
    return 1 if failed else 0


def _cmd_diff(args: argparse.Namespace) -> int:
    left = load_input(args.left)
    right = load_input(args.right)
    left_title = _title(args.left)
    right_title = _title(args.right)
    diff = diff_documents(left, right)

    if args.format == "json":
        _emit(to_json(diff) + "\n", args.output)
    elif args.format == "yaml":
        _emit(to_yaml(diff), args.output)
    elif args.format == "html":
        _emit(generate_html_diff(diff, left_title, right_title), args.output)
    elif args.output:
        console = make_console(color=False)
        with console.capture() as capture:
            print_diff(diff, left_title, right_title, console=console)
        _emit(capture.get(), args.output)
    else:
        print_diff(diff, left_title, right_title, color=not args.no_color)
    return 0


def _cmd_compat(args: argparse.Namespace) -> int:
    base = load_input(args.base)
    target = load_input(args.target)
    issues = check_compatibility(base, target)
    shown = breaking_only(issues) if args.breaking_only else issues

    if args.format == "json":
        print(to_json(shown))
    elif args.format == "yaml":
        print(to_yaml(shown), end="")
    else:
        print(f"Testing compatibility: {_title(args.base)} -> {_title(args.target)}")
        print_compatibility_report(shown, console=make_console(not args.no_color))

    return 1 if has_breaking_changes(issues) else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protospec",
        description="Generate, validate, diff and compatibility-check protobuf specification documents",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", help="Render a document as .proto text")
    p.add_argument("document", help="Specification file (.json, .yaml, .proto or descriptor set)")
    p.add_argument("-o", "--out-dir", help="Write <name>.proto into this directory instead of stdout")
    p.set_defaults(func=_cmd_generate)

    p = sub.add_parser("export", help="Export a document as proto, json or yaml")
    p.add_argument("document")
    p.add_argument("-f", "--format", choices=["proto", "json", "yaml"], default="proto")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.set_defaults(func=_cmd_export)

    p = sub.add_parser("validate", help="Run validation rules; exits 1 when any rule fails")
    p.add_argument("documents", nargs="+")
    p.add_argument("--rules", help="Comma-separated list of rules to run")
    p.add_argument("--no-color", action="store_true", help="Disable colored output")
    p.set_defaults(func=_cmd_validate)

    p = sub.add_parser("diff", help="Line diff of the generated .proto text of two documents")
    p.add_argument("left")
    p.add_argument("right")
    p.add_argument("-f", "--format", choices=["diff", "json", "yaml", "html"], default="diff")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument("--no-color", action="store_true", help="Disable colored output")
    p.set_defaults(func=_cmd_diff)

    p = sub.add_parser("compat", help="Detect breaking changes; exits 1 when any are found")
    p.add_argument("base")
    p.add_argument("target")
    p.add_argument("-f", "--format", choices=["table", "json", "yaml"], default="table")
    p.add_argument("--breaking-only", action="store_true", help="Only list breaking changes")
    p.add_argument("--no-color", action="store_true", help="Disable colored output")
    p.set_defaults(func=_cmd_compat)

    return parser


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, dispatch the subcommand and return its exit code."""
    args = build_parser().parse_args(argv)
    if os.environ.get("NO_COLOR") and hasattr(args, "no_color"):
        args.no_color = True
    try:
        return args.func(args)
    except (InvalidDocumentError, ProtoParseError, DescriptorError, ValueError, OSError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 1


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
