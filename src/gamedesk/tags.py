"""Helpers for normalising the free-form tags attached to dashboard content."""

from __future__ import annotations

from typing import Iterable


def parse_tags(raw: str | Iterable[str] | None) -> list[str]:
    """Return ``raw`` as a list of lowercase, de-duplicated tags.

    ``raw`` may be the comma separated text typed into a form field or an
    already split sequence. Whitespace is trimmed, empty entries are dropped
    and the first occurrence of each tag wins so the author's ordering is
    preserved.
    """

    if raw is None:
        return []

    if isinstance(raw, str):
        candidates: Iterable[str] = raw.split(",")
    else:
        candidates = []
        for item in raw:
            if not isinstance(item, str):
                raise ValueError("Tags must be provided as strings.")
            candidates.extend(item.split(","))

    tags: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        tag = candidate.strip().lower()
        if not tag or tag in seen:
            continue
        seen.add(tag)
        tags.append(tag)
    return tags


def collect_tags(tag_lists: Iterable[Iterable[str] | None]) -> list[str]:
    """Return the sorted union of every tag found in ``tag_lists``."""

    collected: set[str] = set()
    for tags in tag_lists:
        if not tags:
            continue
        collected.update(tags)
    return sorted(collected)


__all__ = ["parse_tags", "collect_tags"]
