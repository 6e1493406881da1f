"""Line based comparison of lore entry versions.

The version history view highlights which lines were added or removed between
two snapshots of a lore entry. Texts are small, so a plain dynamic programming
longest common subsequence is used; inputs are bounded by
:data:`MAX_DIFF_LINES` to keep the table size predictable.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Literal, Sequence

DiffKind = Literal["unchanged", "added", "removed"]

MAX_DIFF_LINES = 2000


@dataclass(frozen=True)
class DiffLine:
    """A single line of a rendered diff."""

    kind: DiffKind
    content: str
    line_number: int | None = None


@dataclass(frozen=True)
class LineDiff:
    """Result of comparing two texts line by line."""

    lines: tuple[DiffLine, ...] = field(default_factory=tuple)
    added: int = 0
    removed: int = 0

    @property
    def has_changes(self) -> bool:
        return self.added > 0 or self.removed > 0


@dataclass(frozen=True)
class VersionComparison:
    """Differences between two snapshots of a lore entry."""

    title_changed: bool
    summary_changed: bool
    content: LineDiff


def _split_lines(text: str | None) -> list[str]:
    if not text:
        return []
    return text.split("\n")


def _lcs_table(old: Sequence[str], new: Sequence[str]) -> list[list[int]]:
    if len(old) > MAX_DIFF_LINES or len(new) > MAX_DIFF_LINES:
        raise ValueError(
            f"Texts longer than {MAX_DIFF_LINES} lines cannot be compared."
        )

    rows = len(old)
    cols = len(new)
    table = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(1, rows + 1):
        previous_row = table[i - 1]
        current_row = table[i]
        old_line = old[i - 1]
        for j in range(1, cols + 1):
            if old_line == new[j - 1]:
                current_row[j] = previous_row[j - 1] + 1
            else:
                current_row[j] = max(previous_row[j], current_row[j - 1])
    return table


def longest_common_subsequence(old: Sequence[str], new: Sequence[str]) -> list[str]:
    """Return the longest common subsequence of ``old`` and ``new``."""

    table = _lcs_table(old, new)
    result: list[str] = []
    i = len(old)
    j = len(new)
    while i > 0 and j > 0:
        if old[i - 1] == new[j - 1]:
            result.append(old[i - 1])
            i -= 1
            j -= 1
        elif table[i - 1][j] > table[i][j - 1]:
            i -= 1
        else:
            j -= 1
    result.reverse()
    return result


def compute_line_diff(old_text: str | None, new_text: str | None) -> LineDiff:
    """Compare ``old_text`` with ``new_text`` line by line.

    Removed lines carry their 1-based position in the old text, added lines
    their position in the new text. Within each changed region removals are
    listed before additions.
    """

    old_lines = _split_lines(old_text)
    new_lines = _split_lines(new_text)
    common = longest_common_subsequence(old_lines, new_lines)

    lines: list[DiffLine] = []
    added = 0
    removed = 0
    old_index = 0
    new_index = 0

    for anchor in common:
        while old_lines[old_index] != anchor:
            lines.append(DiffLine("removed", old_lines[old_index], old_index + 1))
            removed += 1
            old_index += 1
        while new_lines[new_index] != anchor:
            lines.append(DiffLine("added", new_lines[new_index], new_index + 1))
            added += 1
            new_index += 1
        lines.append(DiffLine("unchanged", anchor))
        old_index += 1
        new_index += 1

    for index in range(old_index, len(old_lines)):
        lines.append(DiffLine("removed", old_lines[index], index + 1))
        removed += 1
    for index in range(new_index, len(new_lines)):
        lines.append(DiffLine("added", new_lines[index], index + 1))
        added += 1

    return LineDiff(lines=tuple(lines), added=added, removed=removed)


def compare_versions(
    *,
    previous_title: str,
    previous_summary: str | None,
    previous_content: str,
    current_title: str,
    current_summary: str | None,
    current_content: str,
) -> VersionComparison:
    """Return the title, summary and content differences between snapshots."""

    return VersionComparison(
        title_changed=previous_title != current_title,
        summary_changed=(previous_summary or None) != (current_summary or None),
        content=compute_line_diff(previous_content, current_content),
    )


def format_unified_diff(
    old_text: str | None,
    new_text: str | None,
    *,
    fromfile: str,
    tofile: str,
) -> str:
    """Return a unified diff between the two texts for plain-text clients."""

    diff_lines = difflib.unified_diff(
        _split_lines(old_text),
        _split_lines(new_text),
        fromfile=fromfile,
        tofile=tofile,
        lineterm="",
    )
    return "\n".join(diff_lines)


__all__ = [
    "DiffKind",
    "DiffLine",
    "LineDiff",
    "MAX_DIFF_LINES",
    "VersionComparison",
    "compare_versions",
    "compute_line_diff",
    "format_unified_diff",
    "longest_common_subsequence",
]
