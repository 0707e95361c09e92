# showcase/store.py

import logging
import threading
from typing import Any, Callable, Optional, Sequence, Union
from uuid import uuid4

from showcase.appearances import cumulative_counts
from showcase.dates import iso_date
from showcase.entities import (
    Document,
    JOINED_BEFORE_MARKER,
    Member,
    Post,
    Single,
    is_joined_before_text,
)
from showcase.lineup import assign_slot, clear_slot, regenerate_rows, remove_member
from showcase.migration import migrate_selection_history_keys, normalize_document, normalize_single
from showcase.selection import HistoryEntry, member_lineup_history, recompute_selections

logger = logging.getLogger("showcase_backend")

# graduation song title meaning "graduated without a song"
NO_GRADUATION_SONG = ("none", "无")


class AdminValidationError(ValueError):
    pass


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:8]}"


class DocumentStore:
    """
    Owns the in-memory showcase document.

    - Every mutation goes through recompute_selections before it is visible.
    - Listeners are called (outside the lock) after each mutation; the client
      hooks its debounced save here.
    - Last write wins: there is no version token.
    """

    def __init__(self, document: Optional[Document] = None) -> None:
        self._lock = threading.Lock()
        self._document = recompute_selections(document or Document())
        self._listeners: list[Callable[[Document], None]] = []

    # -----------------------
    # Read API
    # -----------------------

    def snapshot(self) -> Document:
        with self._lock:
            return self._document.model_copy(deep=True)

    def to_json_dict(self) -> dict[str, Any]:
        with self._lock:
            return self._document.to_json_dict()

    def member(self, member_id: str) -> Member:
        with self._lock:
            return self._find(self._document.members, member_id, "member").model_copy(deep=True)

    def single(self, single_id: str) -> Single:
        with self._lock:
            return self._find(self._document.singles, single_id, "single").model_copy(deep=True)

    def cumulative_counts(self, single_id: str) -> dict[str, int]:
        with self._lock:
            return cumulative_counts(self._document.singles, single_id)

    def member_history(self, member_id: str) -> list[HistoryEntry]:
        with self._lock:
            member = self._find(self._document.members, member_id, "member")
            return member_lineup_history(member, self._document.singles)

    # -----------------------
    # Listeners
    # -----------------------

    def add_listener(self, callback: Callable[[Document], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Document], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # -----------------------
    # Whole-document writes
    # -----------------------

    def load(self, raw, notify: bool = False) -> Document:
        """Normalizes a fetched document, migrates legacy history keys once, then derives."""
        doc = normalize_document(raw)
        members = migrate_selection_history_keys(doc.members, doc.singles)
        doc = doc.model_copy(update={"members": members})
        logger.info(f"store.load: {len(doc.members)} members, {len(doc.singles)} singles, {len(doc.posts)} posts")
        return self._commit(doc, notify=notify)

    def replace(self, document: Document) -> Document:
        """Swaps in an already-normalized document (no key migration); listeners are notified."""
        return self._commit(document)

    def reset(self, notify: bool = True) -> Document:
        return self._commit(Document(), notify=notify)

    # -----------------------
    # Members
    # -----------------------

    def new_member_id(self) -> str:
        return _new_id("m")

    def upsert_member(self, member: Union[Member, dict]) -> Document:
        if isinstance(member, dict):
            member = Member.model_validate(member)
        self._validate_member(member)
        if not member.id:
            member = member.model_copy(update={"id": self.new_member_id()})

        def mutate(doc: Document) -> Document:
            return doc.model_copy(update={"members": self._upsert(doc.members, member)})

        return self._mutate(mutate)

    def delete_member(self, member_id: str) -> Document:
        def mutate(doc: Document) -> Document:
            members = [m for m in doc.members if m.id != member_id]
            singles = [
                s.model_copy(update={"aside_lineup": remove_member(s.aside_lineup, member_id)})
                for s in doc.singles
            ]
            return doc.model_copy(update={"members": members, "singles": singles})

        return self._mutate(mutate)

    def set_joined_before(self, member_id: str, single_id: str, joined_before: bool = True) -> Document:
        """The one hand-authored selection entry: the member joined after this single's lineup was chosen."""

        def mutate(doc: Document) -> Document:
            self._find(doc.singles, single_id, "single")
            member = self._find(doc.members, member_id, "member")
            history = dict(member.selection_history)
            if joined_before:
                history[single_id] = JOINED_BEFORE_MARKER
            elif is_joined_before_text(history.get(single_id)):
                history.pop(single_id, None)
            updated = member.model_copy(update={"selection_history": history})
            return doc.model_copy(update={"members": self._upsert(doc.members, updated)})

        return self._mutate(mutate)

    # -----------------------
    # Singles
    # -----------------------

    def new_single_id(self) -> str:
        return _new_id("s")

    def upsert_single(self, single: Union[Single, dict]) -> Document:
        if isinstance(single, dict):
            single = Single.model_validate(single)
        if not single.id:
            single = single.model_copy(update={"id": self.new_single_id()})
        single = normalize_single(single)

        def mutate(doc: Document) -> Document:
            return doc.model_copy(update={"singles": self._upsert(doc.singles, single)})

        return self._mutate(mutate)

    def delete_single(self, single_id: str) -> Document:
        def mutate(doc: Document) -> Document:
            return doc.model_copy(update={"singles": [s for s in doc.singles if s.id != single_id]})

        return self._mutate(mutate)

    def assign_slot(self, single_id: str, slot_index: int, member_id: Optional[str], role: Optional[str] = None) -> Document:
        def mutate(doc: Document) -> Document:
            if member_id:
                self._find(doc.members, member_id, "member")
            single = self._find(doc.singles, single_id, "single")
            lineup = assign_slot(single.aside_lineup, slot_index, member_id, role)
            updated = single.model_copy(update={"aside_lineup": lineup})
            return doc.model_copy(update={"singles": self._upsert(doc.singles, updated)})

        return self._mutate(mutate)

    def clear_slot(self, single_id: str, slot_index: int) -> Document:
        def mutate(doc: Document) -> Document:
            single = self._find(doc.singles, single_id, "single")
            updated = single.model_copy(update={"aside_lineup": clear_slot(single.aside_lineup, slot_index)})
            return doc.model_copy(update={"singles": self._upsert(doc.singles, updated)})

        return self._mutate(mutate)

    def regenerate_rows(self, single_id: str, rows_or_text: Union[str, Sequence[int]]) -> Document:
        """Discards the single's whole seating chart and lays out empty boxes for the new rows."""

        def mutate(doc: Document) -> Document:
            single = self._find(doc.singles, single_id, "single")
            updated = single.model_copy(update={"aside_lineup": regenerate_rows(single.aside_lineup, rows_or_text)})
            logger.info(f"regenerate_rows: {single_id} -> {updated.aside_lineup.rows}, prior seats discarded")
            return doc.model_copy(update={"singles": self._upsert(doc.singles, updated)})

        return self._mutate(mutate)

    # -----------------------
    # Posts
    # -----------------------

    def new_post_id(self) -> str:
        return _new_id("p")

    def upsert_post(self, post: Union[Post, dict]) -> Document:
        if isinstance(post, dict):
            post = Post.model_validate(post)
        if not post.id:
            post = post.model_copy(update={"id": self.new_post_id()})

        def mutate(doc: Document) -> Document:
            return doc.model_copy(update={"posts": self._upsert(doc.posts, post)})

        return self._mutate(mutate)

    def delete_post(self, post_id: str) -> Document:
        def mutate(doc: Document) -> Document:
            return doc.model_copy(update={"posts": [p for p in doc.posts if p.id != post_id]})

        return self._mutate(mutate)

    # -----------------------
    # Internals
    # -----------------------

    def _validate_member(self, member: Member) -> None:
        if member.is_active:
            return
        if not iso_date(member.graduation_date):
            raise AdminValidationError("graduation date (YYYY-MM-DD) is required for a graduated member")
        if not (member.graduation_song_title or "").strip():
            raise AdminValidationError(
                "graduation song title is required for a graduated member "
                f"(use {NO_GRADUATION_SONG[0]!r} when there is none)"
            )

    @staticmethod
    def _find(items, item_id: str, label: str):
        for item in items:
            if item.id == item_id:
                return item
        raise KeyError(f"No {label} with id '{item_id}'")

    @staticmethod
    def _upsert(items, record):
        out = list(items)
        for i, item in enumerate(out):
            if item.id == record.id:
                out[i] = record
                return out
        out.append(record)
        return out

    def _mutate(self, fn: Callable[[Document], Document]) -> Document:
        with self._lock:
            doc = recompute_selections(fn(self._document))
            self._document = doc
            result = doc.model_copy(deep=True)
        self._notify(result)
        return result

    def _commit(self, doc: Document, notify: bool = True) -> Document:
        with self._lock:
            self._document = recompute_selections(doc)
            result = self._document.model_copy(deep=True)
        if notify:
            self._notify(result)
        return result

    def _notify(self, doc: Document) -> None:
        for callback in list(self._listeners):
            try:
                callback(doc)
            except Exception as e:
                logger.warning(f"store listener {callback!r} failed: {e}")
