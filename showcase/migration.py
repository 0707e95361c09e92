# showcase/migration.py
"""
Load-time normalization of stored documents.

Older documents keyed selectionHistory by single titles, sometimes with the
series label and a status glued on ("1st Single · Red Star Love A面选拔（第1排 center）").
migrate_selection_history_keys rewrites those keys to single ids so the
derivation engine can look entries up by id.
"""

import logging
import re
from typing import Any, Iterable, Optional

from showcase.entities import Document, Member, Single, Track
from showcase.lineup import resize_slots, total_capacity

logger = logging.getLogger("showcase_backend")

TITLE_SEPARATOR = "·"


def _norm(text) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()


def split_single_title(full_title) -> tuple[str, str]:
    """'1st Single · Neon Bloom' -> ('1st Single', 'Neon Bloom'); no separator -> ('', title)."""
    t = str(full_title or "").strip()
    if not t:
        return "", ""
    parts = [p.strip() for p in t.split(TITLE_SEPARATOR) if p.strip()]
    if len(parts) <= 1:
        return "", t
    return parts[0], " · ".join(parts[1:])


def resolve_single_id(key: str, value: Any, singles: Iterable[Single]) -> Optional[str]:
    singles = [s for s in (singles or []) if s.id]
    if not key:
        return value.get("singleId") if isinstance(value, dict) else None

    if any(s.id == key for s in singles):
        return key

    if isinstance(value, dict) and value.get("singleId"):
        return str(value["singleId"])

    _, remainder = split_single_title(key)
    cleaned = _norm(remainder)
    for s in singles:
        if _norm(s.title) == cleaned:
            return s.id

    for s in singles:
        title = _norm(s.title)
        if not title or not cleaned:
            continue
        if title in cleaned or cleaned in title:
            return s.id
    return None


def migrate_member_history(member: Member, singles: Iterable[Single]) -> Member:
    singles = [s for s in (singles or []) if s.id]
    known_ids = {s.id for s in singles}
    history = member.selection_history or {}

    migrated: dict[str, Any] = {}
    # canonical keys first: they always win over legacy ones
    for key, value in history.items():
        if key in known_ids:
            migrated[key] = value

    for key, value in history.items():
        if key in known_ids:
            continue
        sid = resolve_single_id(key, value, singles)
        if sid is None:
            migrated[key] = value
        elif migrated.get(sid) is None:
            migrated[sid] = value
        else:
            logger.debug(f"migrate: dropping legacy key {key!r} for {member.id}, {sid} already set")

    return member.model_copy(update={"selection_history": migrated})


def migrate_selection_history_keys(members: Iterable[Member], singles: Iterable[Single]) -> list[Member]:
    singles = list(singles or [])
    return [migrate_member_history(m, singles) for m in (members or [])]


def ensure_track_shape(tracks: list[Track]) -> list[Track]:
    """Tracks numbered from 1, the first one is the A-side; at least one track is kept."""
    tracks = list(tracks or []) or [Track()]
    return [
        t.model_copy(update={"no": i + 1, "is_aside": i == 0})
        for i, t in enumerate(tracks)
    ]


def normalize_single(single: Single) -> Single:
    lineup = single.aside_lineup
    slots = resize_slots(lineup.slots, lineup.rows)
    roles = {idx: role for idx, role in lineup.slot_roles.items() if 0 <= idx < len(slots)}
    lineup = lineup.model_copy(update={
        "slots": slots,
        "slot_roles": roles,
        "selection_count": total_capacity(lineup.rows),
    })
    return single.model_copy(update={
        "tracks": ensure_track_shape(single.tracks),
        "aside_lineup": lineup,
    })


def normalize_document(raw) -> Document:
    """
    Any JSON-ish value -> Document. Missing or malformed top-level arrays
    become empty; every single gets a consistent track list and lineup size.
    """
    if isinstance(raw, Document):
        doc = raw
    elif isinstance(raw, dict):
        doc = Document.model_validate(raw)
    else:
        logger.warning(f"normalize_document: expected an object, got {type(raw).__name__}; using empty document")
        doc = Document()
    return doc.model_copy(update={"singles": [normalize_single(s) for s in doc.singles]})
