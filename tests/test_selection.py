"""Tests for the selection derivation engine."""

from showcase.entities import (
    Derived,
    Document,
    JoinedBefore,
    NotSelected,
    Single,
    parse_status,
    render_status,
)
from showcase.lineup import assign_slot
from showcase.selection import (
    derive_member_history,
    graduation_cutoff,
    member_lineup_history,
    recompute_selections,
)

JOINED = "joined before this release"


def _history(document: Document, member_id: str) -> dict:
    return next(m for m in document.members if m.id == member_id).selection_history


# ---------------------------------------------------------------------------
# Status rendering
# ---------------------------------------------------------------------------


def test_render_status_texts():
    assert render_status(NotSelected()) == "not selected"
    assert render_status(JoinedBefore()) == JOINED
    assert render_status(Derived(row=2)) == "A-side selection (row 2)"
    assert render_status(Derived(row=1, role="center")) == "A-side selection (row 1 center)"


def test_parse_status_reads_current_and_legacy_texts():
    assert parse_status("A-side selection (row 3 guardian)") == Derived(row=3, role="guardian")
    assert parse_status("not selected") == NotSelected()
    assert parse_status(JOINED) == JoinedBefore()
    assert parse_status("加入前") == JoinedBefore()
    assert parse_status("落选") == NotSelected()
    assert parse_status("A面选拔（第1排 center）") == Derived(row=1, role="center")
    assert parse_status("A面选拔（第2排 护法）") == Derived(row=2, role="guardian")
    assert parse_status("A面选拔（2列）") == Derived(row=2)
    assert parse_status("") is None
    assert parse_status({"singleId": "s1"}) is None


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


def test_row_and_role_from_slot(make_single, make_member):
    s1 = make_single("s1", "2025-01-01", rows=[5, 7], slots=[None] * 6 + ["m1"], roles={6: "center"})
    history = derive_member_history(make_member("m1"), [s1])
    assert history == {"s1": Derived(row=1, role="center")}


def test_back_row_member(make_single, make_member):
    s1 = make_single("s1", "2025-01-01", rows=[5, 7], slots=["m1"])
    assert derive_member_history(make_member("m1"), [s1]) == {"s1": Derived(row=2)}


def test_not_selected_default(make_single, make_member):
    singles = [
        make_single("s1", "2025-01-01", slots=["m2"]),
        make_single("s2", "2025-06-01"),
        make_single("s3", None),
    ]
    history = derive_member_history(make_member("m1"), singles)
    assert history == {"s1": NotSelected(), "s2": NotSelected(), "s3": NotSelected()}


def test_graduation_cutoff_skips_later_singles(make_single, make_member):
    member = make_member("m1", active=False, graduation_date="2025-12-31")
    singles = [
        make_single("s1", "2025-09-01", slots=["m1"]),
        make_single("s2", "2026-01-10"),
    ]
    assert graduation_cutoff(member, singles) == "2025-09-01"
    doc = recompute_selections(Document(members=[member], singles=singles))
    history = _history(doc, "m1")
    assert "s1" in history
    assert "s2" not in history


def test_cutoff_is_latest_single_not_graduation_date(make_single, make_member):
    member = make_member("m1", active=False, graduation_date="2025-12-31")
    singles = [
        make_single("s1", "2025-03-01"),
        make_single("s2", "2025-09-01"),
        make_single("s3", "2025-10-15T10:00:00"),
        make_single("s4", "2026-01-10"),
    ]
    assert graduation_cutoff(member, singles) == "2025-10-15"
    assert set(derive_member_history(member, singles)) == {"s1", "s2", "s3"}


def test_no_cutoff_for_active_or_dateless_members(make_single, make_member):
    singles = [make_single("s1", "2025-09-01"), make_single("s2", "2026-01-10")]
    assert graduation_cutoff(make_member("m1"), singles) is None

    dateless = make_member("m2", active=False, graduation_date=None)
    assert graduation_cutoff(dateless, singles) is None
    assert set(derive_member_history(dateless, singles)) == {"s1", "s2"}


def test_graduated_before_every_single_means_no_filtering(make_single, make_member):
    member = make_member("m1", active=False, graduation_date="2020-01-01")
    singles = [make_single("s1", "2025-09-01"), make_single("s2", "2026-01-10")]
    assert graduation_cutoff(member, singles) is None
    assert set(derive_member_history(member, singles)) == {"s1", "s2"}


def test_undated_single_is_never_skipped(make_single, make_member):
    member = make_member("m1", active=False, graduation_date="2025-12-31")
    singles = [
        make_single("s1", "2025-09-01"),
        make_single("s2", "not a date"),
        make_single("s3", "2026-01-10"),
    ]
    assert set(derive_member_history(member, singles)) == {"s1", "s2"}


def test_joined_before_override_survives(make_single, make_member):
    member = make_member("m1", history={"s2": JOINED})
    singles = [
        make_single("s1", "2025-01-01", slots=["m1"]),
        make_single("s2", "2025-06-01", slots=["m1"]),
    ]
    doc = recompute_selections(Document(members=[member], singles=singles))
    history = _history(doc, "m1")
    assert history["s2"] == JOINED
    assert history["s1"] == "A-side selection (row 2)"


def test_legacy_joined_before_marker_is_recognized(make_single, make_member):
    member = make_member("m1", history={"s1": "加入前"})
    history = derive_member_history(member, [make_single("s1", "2025-01-01")])
    assert history == {"s1": JoinedBefore()}


def test_other_manual_text_is_overwritten(make_single, make_member):
    member = make_member("m1", history={"s1": "A-side selection (row 1 center)", "gone": "x"})
    doc = recompute_selections(Document(members=[member], singles=[make_single("s1", "2025-01-01")]))
    assert _history(doc, "m1") == {"s1": "not selected"}


def test_role_round_trip(make_single, make_member):
    single = make_single("s1", "2025-01-01", rows=[5, 7])
    member = make_member("m1")

    single = single.model_copy(update={"aside_lineup": assign_slot(single.aside_lineup, 8, "m1", "center")})
    doc = recompute_selections(Document(members=[member], singles=[single]))
    assert _history(doc, "m1")["s1"] == "A-side selection (row 1 center)"

    single = single.model_copy(update={"aside_lineup": assign_slot(single.aside_lineup, 8, "m1")})
    doc = recompute_selections(doc.model_copy(update={"singles": [single]}))
    assert _history(doc, "m1")["s1"] == "A-side selection (row 1)"


def test_recompute_is_idempotent(make_single, make_member):
    members = [
        make_member("m1"),
        make_member("m2", active=False, graduation_date="2025-07-01"),
        make_member("m3", history={"s2": JOINED}),
    ]
    singles = [
        make_single("s1", "2025-01-01", slots=["m1", "m2"], roles={1: "guardian"}),
        make_single("s2", "2025-08-01", slots=[None] * 6 + ["m1"], roles={6: "center"}),
    ]
    once = recompute_selections(Document(members=members, singles=singles))
    twice = recompute_selections(once)
    assert once.to_json_dict() == twice.to_json_dict()


def test_malformed_lineups_do_not_raise(make_member):
    singles = [
        Single.model_validate({"id": "s1", "release": "2025-01-01"}),
        Single.model_validate({"id": "s2", "asideLineup": {"rows": "x", "slots": None, "slotRoles": [1]}}),
        Single.model_validate({"id": "s3", "asideLineup": None}),
        Single.model_validate({"id": "s4", "asideLineup": {"slots": ["m1"], "rows": ["bad"]}}),
        Single.model_validate({"title": "no id"}),
    ]
    history = derive_member_history(make_member("m1"), singles)
    assert history == {
        "s1": NotSelected(),
        "s2": NotSelected(),
        "s3": NotSelected(),
        "s4": Derived(row=1),
    }


def test_member_lineup_history_sorted_by_release(make_single, make_member):
    singles = [
        make_single("s3", None, title="Undated"),
        make_single("s2", "2025-06-01", title="Second", slots=["m1"]),
        make_single("s1", "2025-01-01", title="First"),
    ]
    doc = recompute_selections(Document(members=[make_member("m1")], singles=singles))
    entries = member_lineup_history(doc.members[0], doc.singles)
    assert [e.single_id for e in entries] == ["s1", "s2", "s3"]
    assert entries[1].status == Derived(row=2)
    assert entries[0].status == NotSelected()
