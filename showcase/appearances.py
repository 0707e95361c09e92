# showcase/appearances.py
from typing import Iterable

from showcase.dates import iso_date
from showcase.entities import Single


def chronological_singles(singles: Iterable[Single]) -> list[Single]:
    """
    Oldest release first. Singles without a parsable release date go after all
    dated ones; ties keep their original list order.
    """
    indexed = list(enumerate(singles or []))

    def sort_key(item):
        i, s = item
        released = iso_date(s.release)
        return (released is None, released or "", i)

    return [s for _, s in sorted(indexed, key=sort_key)]


def cumulative_counts_by_single(singles: Iterable[Single]) -> dict[str, dict[str, int]]:
    """
    single id -> {member id: A-side appearances up to and including that single}.

    A member seated twice in one lineup counts once for that single.
    """
    counts: dict[str, int] = {}
    snapshots: dict[str, dict[str, int]] = {}
    for s in chronological_singles(singles):
        appeared = {mid for mid in s.aside_lineup.slots if mid}
        for mid in appeared:
            counts[mid] = counts.get(mid, 0) + 1
        if s.id:
            snapshots[s.id] = dict(counts)
    return snapshots


def cumulative_counts(singles: Iterable[Single], single_id: str) -> dict[str, int]:
    return cumulative_counts_by_single(singles).get(single_id, {})


def appearance_label(count: int) -> str:
    """Badge text under a seated member: 'first' for a debut, the running total afterwards."""
    if count <= 0:
        return ""
    if count == 1:
        return "first"
    return str(count)
