from __future__ import annotations

import pytest

from gamedesk.tags import collect_tags, parse_tags


def test_parse_tags_splits_trims_and_lowercases() -> None:
    assert parse_tags(" Hero, UNDEAD ,final ") == ["hero", "undead", "final"]


def test_parse_tags_removes_duplicates_keeping_first_occurrence() -> None:
    assert parse_tags("wip, Hero, hero, WIP, art") == ["wip", "hero", "art"]


def test_parse_tags_drops_empty_entries() -> None:
    assert parse_tags(",, ,hero,,") == ["hero"]
    assert parse_tags("") == []
    assert parse_tags(None) == []


def test_parse_tags_accepts_sequences_with_embedded_commas() -> None:
    assert parse_tags(["Balance", "pvp, urgent", "balance"]) == [
        "balance",
        "pvp",
        "urgent",
    ]


def test_parse_tags_rejects_non_string_items() -> None:
    with pytest.raises(ValueError):
        parse_tags(["hero", 3])  # type: ignore[list-item]


def test_collect_tags_returns_sorted_union() -> None:
    assert collect_tags([["undead", "hero"], None, [], ["art", "hero"]]) == [
        "art",
        "hero",
        "undead",
    ]
