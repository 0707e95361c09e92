# showcase/lineup.py
"""
Slot Assignment Model.

A lineup is a list of row capacities stored back-to-front plus a flat list of
slots. For rows [5, 5, 1] there are three rows; the trailing 1 is the front row
("row 1"), the first 5 is the back row. Slot positions map onto rows through
cumulative offsets: slots 0-4 sit in the back row, 5-9 in the middle, 10 in front.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from showcase.entities import (
    AsideLineup,
    LEGACY_GUARDIAN,
    Member,
    ROLE_CENTER,
    ROLE_GUARDIAN,
)
from showcase.dates import iso_date


@dataclass(frozen=True)
class RowMeta:
    row_from_back: int
    start: int
    end: int

    def contains(self, slot_index: int) -> bool:
        return self.start <= slot_index < self.end


def _capacity(n) -> int:
    try:
        return max(0, int(n))
    except (TypeError, ValueError):
        return 0


def build_row_meta(rows: Optional[Iterable]) -> list[RowMeta]:
    out = []
    start = 0
    for i, n in enumerate(rows or []):
        size = _capacity(n)
        out.append(RowMeta(row_from_back=i + 1, start=start, end=start + size))
        start += size
    return out


def row_from_back(rows, slot_index: int) -> int:
    """1 = the first row in storage order (the back row). Out-of-range indexes fall back to 1."""
    for meta in build_row_meta(rows):
        if meta.contains(slot_index):
            return meta.row_from_back
    return 1


def row_from_front(rows, slot_index: int) -> int:
    """1 = the front row (last entry of rows). Out-of-range indexes are treated as the front row."""
    meta = build_row_meta(rows)
    for r in meta:
        if r.contains(slot_index):
            total_rows = len(meta) or 1
            return total_rows - r.row_from_back + 1
    return 1


def total_capacity(rows) -> int:
    return sum(_capacity(n) for n in (rows or []))


def parse_rows_text(text: str) -> list[int]:
    """'5,7' -> [5, 7]. Blank, non-numeric and non-positive entries are dropped."""
    rows = []
    for part in str(text or "").split(","):
        try:
            n = int(part.strip())
        except ValueError:
            continue
        if n > 0:
            rows.append(n)
    return rows


def normalize_role(raw) -> Optional[str]:
    if raw == ROLE_CENTER:
        return ROLE_CENTER
    if raw in (ROLE_GUARDIAN, LEGACY_GUARDIAN):
        return ROLE_GUARDIAN
    return None


def resize_slots(slots: Sequence[Optional[str]], rows) -> list[Optional[str]]:
    """Preserving resize: keeps assignments by position, pads with None or truncates."""
    size = total_capacity(rows)
    out = list(slots or [])[:size]
    out.extend([None] * (size - len(out)))
    return out


def regenerate_rows(lineup: AsideLineup, rows_or_text: Union[str, Sequence[int]]) -> AsideLineup:
    """
    Regenerates the placeholder boxes for a new row layout.

    Every prior assignment and role is discarded: the new slots are all empty.
    This is not a resize; use resize_slots to keep seats.
    """
    if isinstance(rows_or_text, str):
        rows = parse_rows_text(rows_or_text)
    else:
        rows = [n for n in (_capacity(x) for x in rows_or_text) if n > 0]
    size = sum(rows)
    return lineup.model_copy(update={
        "rows": rows,
        "slots": [None] * size,
        "slot_roles": {},
        "selection_count": size,
    })


def assign_slot(
    lineup: AsideLineup,
    slot_index: int,
    member_id: Optional[str],
    role: Optional[str] = None,
) -> AsideLineup:
    """
    Seats member_id at slot_index and sets (or clears) that slot's role tag.

    A member already seated elsewhere in this lineup is moved: the old slot is
    vacated along with its role. Passing member_id=None empties the slot.
    """
    slots = resize_slots(lineup.slots, lineup.rows)
    if not 0 <= slot_index < len(slots):
        raise IndexError(f"slot {slot_index} is outside a lineup of {len(slots)} slots")

    roles = dict(lineup.slot_roles)
    if member_id:
        for idx, occupant in enumerate(slots):
            if occupant == member_id and idx != slot_index:
                slots[idx] = None
                roles.pop(idx, None)

    slots[slot_index] = member_id or None
    normalized = normalize_role(role) if member_id else None
    if normalized:
        roles[slot_index] = normalized
    else:
        roles.pop(slot_index, None)

    return lineup.model_copy(update={
        "slots": slots,
        "slot_roles": roles,
        "selection_count": len(slots),
    })


def clear_slot(lineup: AsideLineup, slot_index: int) -> AsideLineup:
    return assign_slot(lineup, slot_index, None)


def remove_member(lineup: AsideLineup, member_id: str) -> AsideLineup:
    """Empties every slot holding member_id (used when a member is deleted)."""
    slots = list(lineup.slots)
    roles = dict(lineup.slot_roles)
    changed = False
    for idx, occupant in enumerate(slots):
        if occupant == member_id:
            slots[idx] = None
            roles.pop(idx, None)
            changed = True
    if not changed:
        return lineup
    return lineup.model_copy(update={"slots": slots, "slot_roles": roles})


def lineup_rows_for_display(lineup: AsideLineup) -> list[tuple[int, list[tuple[int, Optional[str], Optional[str]]]]]:
    """
    Rows front-first as (row_number, [(slot_index, member_id, role), ...]).
    Row 1 is the front row, i.e. the last entry of lineup.rows.
    """
    slots = resize_slots(lineup.slots, lineup.rows)
    meta = build_row_meta(lineup.rows)
    total_rows = len(meta)
    out = []
    for r in reversed(meta):
        cells = [
            (idx, slots[idx], normalize_role(lineup.slot_roles.get(idx)))
            for idx in range(r.start, r.end)
        ]
        out.append((total_rows - r.row_from_back + 1, cells))
    return out


def eligible_members(members: Iterable[Member], release) -> list[Member]:
    """Members offered by the slot picker: graduates are hidden for singles released after graduation."""
    single_release = iso_date(release)
    members = list(members or [])
    if not single_release:
        return members
    out = []
    for m in members:
        graduated_on = iso_date(m.graduation_date)
        if m.is_active or not graduated_on or single_release <= graduated_on:
            out.append(m)
    return out
