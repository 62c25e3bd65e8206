from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from jinja2 import Environment, FileSystemLoader, select_autoescape

from protospec.models import DiffLineType, DiffResult


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "j2"]),
        keep_trailing_newline=True,
    )


def _build_rows(diff: DiffResult) -> List[Dict]:
    """One row per aligned pair, taken from the side that owns it."""
    rows = []
    for left, right in zip(diff.left_lines, diff.right_lines):
        if left.type == DiffLineType.REMOVED:
            rows.append({"css": "removed", "marker": "-", "number": left.line_number, "content": left.content})
        elif right.type == DiffLineType.ADDED:
            rows.append({"css": "added", "marker": "+", "number": right.line_number, "content": right.content})
        elif left.type == DiffLineType.UNCHANGED:
            rows.append({"css": "unchanged", "marker": " ", "number": left.line_number, "content": left.content})
    return rows


def generate_html_diff(diff: DiffResult, left_title: str, right_title: str) -> str:
    """Render a standalone HTML page for a diff. Line content is escaped."""
    env = _get_template_env()
    template = env.get_template("diff.html.j2")
    return template.render(
        left_title=left_title,
        right_title=right_title,
        stats=diff.stats,
        rows=_build_rows(diff),
    )
