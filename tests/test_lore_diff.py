from __future__ import annotations

import pytest

from gamedesk.lore_diff import (
    MAX_DIFF_LINES,
    DiffLine,
    compare_versions,
    compute_line_diff,
    format_unified_diff,
    longest_common_subsequence,
)


def test_longest_common_subsequence_of_lines() -> None:
    old = ["a", "b", "c", "d"]
    new = ["a", "c", "x", "d"]

    assert longest_common_subsequence(old, new) == ["a", "c", "d"]


def test_ties_keep_the_later_line_of_the_old_text() -> None:
    assert longest_common_subsequence(["a", "b"], ["b", "a"]) == ["b"]


def test_swapped_lines_remove_before_the_anchor_and_add_after_it() -> None:
    diff = compute_line_diff("a\nb", "b\na")

    assert diff.lines == (
        DiffLine("removed", "a", 1),
        DiffLine("unchanged", "b"),
        DiffLine("added", "a", 2),
    )


def test_identical_texts_have_no_changes() -> None:
    diff = compute_line_diff("one\ntwo", "one\ntwo")

    assert diff.added == 0
    assert diff.removed == 0
    assert not diff.has_changes
    assert [line.kind for line in diff.lines] == ["unchanged", "unchanged"]


def test_diff_reports_added_and_removed_lines_with_positions() -> None:
    diff = compute_line_diff("intro\nold middle\noutro", "intro\nnew middle\noutro\ncoda")

    assert diff.lines == (
        DiffLine("unchanged", "intro"),
        DiffLine("removed", "old middle", 2),
        DiffLine("added", "new middle", 2),
        DiffLine("unchanged", "outro"),
        DiffLine("added", "coda", 4),
    )
    assert diff.added == 2
    assert diff.removed == 1


def test_diff_against_empty_text_marks_every_line_added() -> None:
    diff = compute_line_diff("", "first\nsecond")

    assert [(line.kind, line.line_number) for line in diff.lines] == [
        ("added", 1),
        ("added", 2),
    ]
    assert diff.removed == 0


def test_diff_rejects_texts_beyond_the_line_limit() -> None:
    too_long = "\n".join(str(index) for index in range(MAX_DIFF_LINES + 1))

    with pytest.raises(ValueError):
        compute_line_diff(too_long, "short")


def test_compare_versions_flags_title_and_summary_changes() -> None:
    comparison = compare_versions(
        previous_title="Valoris",
        previous_summary="",
        previous_content="line",
        current_title="Valoris the Fallen",
        current_summary=None,
        current_content="line\nmore",
    )

    assert comparison.title_changed is True
    assert comparison.summary_changed is False
    assert comparison.content.added == 1


def test_format_unified_diff_names_both_sides() -> None:
    rendered = format_unified_diff("a\nb", "a\nc", fromfile="v1", tofile="v2")

    assert rendered.splitlines()[:2] == ["--- v1", "+++ v2"]
    assert "-b" in rendered.splitlines()
    assert "+c" in rendered.splitlines()
