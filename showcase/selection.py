# showcase/selection.py
"""
Selection Derivation Engine.

selectionHistory is never patched in place: every member's map is rebuilt from
the singles' slot assignments each time the document changes. The single
hand-authored exception is the "joined before this release" override, which
cannot be read off a seating chart and is carried over from the prior map.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from showcase.dates import iso_date
from showcase.entities import (
    Derived,
    Document,
    JoinedBefore,
    Member,
    NotSelected,
    SelectionStatus,
    Single,
    is_joined_before_text,
    parse_status,
    render_status,
)
from showcase.lineup import normalize_role, row_from_front

logger = logging.getLogger("showcase_backend")


def graduation_cutoff(member: Member, singles: Iterable[Single]) -> Optional[str]:
    """
    Release date of the latest single released on or before the member's
    graduation date. None for active members, or when nothing qualifies.
    """
    if member.is_active:
        return None
    graduated_on = iso_date(member.graduation_date)
    if not graduated_on:
        return None
    best = None
    for s in singles or []:
        released = iso_date(s.release)
        if not released or released > graduated_on:
            continue
        if best is None or released > best:
            best = released
    return best


def derive_status(member_id: str, single: Single) -> SelectionStatus:
    lineup = single.aside_lineup
    try:
        slot_index = lineup.slots.index(member_id)
    except ValueError:
        return NotSelected()

    return Derived(row=row_from_front(lineup.rows, slot_index), role=normalize_role(lineup.slot_roles.get(slot_index)))


def derive_member_history(member: Member, singles: Iterable[Single]) -> dict[str, SelectionStatus]:
    singles = [s for s in (singles or []) if s.id]
    cutoff = graduation_cutoff(member, singles)
    prior = member.selection_history or {}

    history: dict[str, SelectionStatus] = {}
    for s in singles:
        released = iso_date(s.release)
        # graduated before this single's lineup was decided: no entry at all
        if cutoff and released and released > cutoff:
            continue
        if is_joined_before_text(prior.get(s.id)):
            history[s.id] = JoinedBefore()
            continue
        history[s.id] = derive_status(member.id, s)
    return history


def recompute_selections(document: Document) -> Document:
    """Returns a copy of the document with every member's selectionHistory rebuilt."""
    members = []
    for m in document.members:
        derived = derive_member_history(m, document.singles)
        rendered = {sid: render_status(status) for sid, status in derived.items()}
        members.append(m.model_copy(update={"selection_history": rendered}))
    logger.debug(f"recompute_selections: {len(members)} members x {len(document.singles)} singles")
    return document.model_copy(update={"members": members})


@dataclass(frozen=True)
class HistoryEntry:
    single_id: str
    single_title: str
    release: Optional[str]
    status: Optional[SelectionStatus]


def member_lineup_history(member: Member, singles: Iterable[Single]) -> list[HistoryEntry]:
    """
    The member's stored selection entries in release order (undated singles last),
    for profile pages. Entries keyed by unknown ids are left out.
    """
    by_id = {s.id: s for s in (singles or []) if s.id}
    entries = []
    for sid, value in (member.selection_history or {}).items():
        s = by_id.get(sid)
        if s is None:
            continue
        entries.append(HistoryEntry(
            single_id=sid,
            single_title=s.title,
            release=iso_date(s.release),
            status=parse_status(value),
        ))
    # stable sort keeps list order for equal / missing dates
    entries.sort(key=lambda e: (e.release is None, e.release or ""))
    return entries
