"""Line-oriented diff built on a longest-common-subsequence table.

Output is two aligned columns of equal length: a line present on only one
side is paired with an ``empty`` placeholder on the other, so the columns
can be rendered side by side or merged into a unified listing.

Line numbers are 1-based positions within each side's own input. A
placeholder carries the number of the next line its side will consume.
"""

from __future__ import annotations

from typing import List, Sequence

from protospec.generator.proto_generator import generate_proto
from protospec.models import DiffLine, DiffLineType, DiffResult, ProtoDocument


def longest_common_subsequence(left: Sequence[str], right: Sequence[str]) -> List[str]:
    """Return one longest common subsequence of the two line sequences.

    When both neighbours of a cell hold the same length the backtrace moves
    up, consuming a left line first.
    """
    m = len(left)
    n = len(right)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if left[i - 1] == right[j - 1]:
                dp[i][j] = dp[i - 1][j - 1] + 1
            else:
                dp[i][j] = max(dp[i - 1][j], dp[i][j - 1])

    lcs: List[str] = []
    i, j = m, n
    while i > 0 and j > 0:
        if left[i - 1] == right[j - 1]:
            lcs.append(left[i - 1])
            i -= 1
            j -= 1
        elif dp[i - 1][j] >= dp[i][j - 1]:
            i -= 1
        else:
            j -= 1
    lcs.reverse()
    return lcs


class _Aligner:
    """Accumulates the two aligned columns and the running line numbers."""

    def __init__(self, left: Sequence[str], right: Sequence[str]):
        self.left = left
        self.right = right
        self.left_index = 0
        self.right_index = 0
        self.result = DiffResult()

    def remove(self) -> None:
        self.result.left_lines.append(
            DiffLine(self.left[self.left_index], DiffLineType.REMOVED, self.left_index + 1)
        )
        self.result.right_lines.append(
            DiffLine("", DiffLineType.EMPTY, self.right_index + 1)
        )
        self.result.stats.removed += 1
        self.left_index += 1

    def add(self) -> None:
        self.result.left_lines.append(
            DiffLine("", DiffLineType.EMPTY, self.left_index + 1)
        )
        self.result.right_lines.append(
            DiffLine(self.right[self.right_index], DiffLineType.ADDED, self.right_index + 1)
        )
        self.result.stats.added += 1
        self.right_index += 1

    def keep(self) -> None:
        self.result.left_lines.append(
            DiffLine(self.left[self.left_index], DiffLineType.UNCHANGED, self.left_index + 1)
        )
        self.result.right_lines.append(
            DiffLine(self.right[self.right_index], DiffLineType.UNCHANGED, self.right_index + 1)
        )
        self.result.stats.unchanged += 1
        self.left_index += 1
        self.right_index += 1


def diff_lines(left: Sequence[str], right: Sequence[str]) -> DiffResult:
    """Align two line sequences and classify every row."""
    aligner = _Aligner(left, right)

    for common in longest_common_subsequence(left, right):
        while aligner.left_index < len(left) and left[aligner.left_index] != common:
            aligner.remove()
        while aligner.right_index < len(right) and right[aligner.right_index] != common:
            aligner.add()
        if aligner.left_index < len(left) and aligner.right_index < len(right):
            aligner.keep()

    while aligner.left_index < len(left):
        aligner.remove()
    while aligner.right_index < len(right):
        aligner.add()

    return aligner.result


def split_lines(text: str) -> List[str]:
    if not text:
        return []
    return text.split("\n")


def diff_text(left_text: str, right_text: str) -> DiffResult:
    """Diff two texts line by line."""
    return diff_lines(split_lines(left_text), split_lines(right_text))


def diff_documents(base: ProtoDocument, target: ProtoDocument) -> DiffResult:
    """Diff the generated .proto text of two documents."""
    return diff_text(generate_proto(base), generate_proto(target))
