"""Tests for the row/slot addressing scheme and slot assignment."""

import pytest

from showcase.entities import AsideLineup, Member
from showcase.lineup import (
    assign_slot,
    build_row_meta,
    clear_slot,
    eligible_members,
    lineup_rows_for_display,
    normalize_role,
    parse_rows_text,
    regenerate_rows,
    remove_member,
    resize_slots,
    row_from_back,
    row_from_front,
)


# ---------------------------------------------------------------------------
# Row math
# ---------------------------------------------------------------------------


def test_row_meta_cumulative_ranges():
    meta = build_row_meta([5, 5, 1])
    assert [(r.row_from_back, r.start, r.end) for r in meta] == [(1, 0, 5), (2, 5, 10), (3, 10, 11)]


def test_front_row_is_last_entry():
    rows = [5, 7]
    assert row_from_back(rows, 6) == 2
    assert row_from_front(rows, 6) == 1
    assert row_from_back(rows, 0) == 1
    assert row_from_front(rows, 0) == 2
    assert row_from_front(rows, 4) == 2
    assert row_from_front(rows, 5) == 1


def test_three_rows():
    rows = [5, 5, 1]
    assert row_from_front(rows, 10) == 1
    assert row_from_front(rows, 7) == 2
    assert row_from_front(rows, 2) == 3


def test_out_of_range_slot_defaults_to_front_row():
    assert row_from_front([5, 7], 40) == 1
    assert row_from_front([], 0) == 1
    assert row_from_back([5, 7], 40) == 1


def test_parse_rows_text_drops_junk():
    assert parse_rows_text("5,7") == [5, 7]
    assert parse_rows_text(" 4, x, -1, 4,,4 ") == [4, 4, 4]
    assert parse_rows_text("") == []


def test_normalize_role_accepts_legacy_guardian():
    assert normalize_role("center") == "center"
    assert normalize_role("guardian") == "guardian"
    assert normalize_role("护法") == "guardian"
    assert normalize_role("captain") is None
    assert normalize_role(None) is None


# ---------------------------------------------------------------------------
# Resizing
# ---------------------------------------------------------------------------


def test_regenerate_rows_discards_assignments():
    lineup = AsideLineup(rows=[5, 7], slots=["m1"] + [None] * 10 + ["m2"], slot_roles={11: "center"})
    fresh = regenerate_rows(lineup, "4,4,4")
    assert fresh.rows == [4, 4, 4]
    assert fresh.slots == [None] * 12
    assert fresh.slot_roles == {}
    assert fresh.selection_count == 12
    # the original is untouched
    assert lineup.slots[0] == "m1"


def test_regenerate_rows_from_sequence():
    fresh = regenerate_rows(AsideLineup(), [3, 0, 2])
    assert fresh.rows == [3, 2]
    assert len(fresh.slots) == 5


def test_resize_slots_preserves_positions():
    assert resize_slots(["a", "b", "c"], [2]) == ["a", "b"]
    assert resize_slots(["a"], [2, 1]) == ["a", None, None]


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


def test_assign_slot_sets_member_and_role():
    lineup = AsideLineup(rows=[2, 2], slots=[None] * 4)
    out = assign_slot(lineup, 3, "m1", "center")
    assert out.slots == [None, None, None, "m1"]
    assert out.slot_roles == {3: "center"}


def test_assign_slot_moves_member_already_seated():
    lineup = AsideLineup(rows=[2, 2], slots=["m1", None, None, None], slot_roles={0: "center"})
    out = assign_slot(lineup, 3, "m1", "护法")
    assert out.slots == [None, None, None, "m1"]
    assert out.slot_roles == {3: "guardian"}


def test_assign_without_role_clears_role():
    lineup = AsideLineup(rows=[2], slots=["m1", None], slot_roles={0: "center"})
    out = assign_slot(lineup, 0, "m1")
    assert out.slot_roles == {}


def test_assign_pads_short_slot_list():
    lineup = AsideLineup(rows=[2, 2], slots=["m1"])
    out = assign_slot(lineup, 2, "m2")
    assert out.slots == ["m1", None, "m2", None]
    assert out.selection_count == 4


def test_assign_out_of_range_raises():
    with pytest.raises(IndexError):
        assign_slot(AsideLineup(rows=[2], slots=[None, None]), 5, "m1")


def test_clear_slot_and_remove_member():
    lineup = AsideLineup(rows=[3], slots=["m1", "m2", "m1"], slot_roles={0: "center", 1: "guardian"})
    assert clear_slot(lineup, 1).slots == ["m1", None, "m1"]
    removed = remove_member(lineup, "m1")
    assert removed.slots == [None, "m2", None]
    assert removed.slot_roles == {1: "guardian"}


def test_rows_for_display_front_first():
    lineup = AsideLineup(rows=[2, 1], slots=["a", "b", "c"], slot_roles={2: "center"})
    assert lineup_rows_for_display(lineup) == [
        (1, [(2, "c", "center")]),
        (2, [(0, "a", None), (1, "b", None)]),
    ]


def test_eligible_members_hides_graduates_after_graduation():
    active = Member(id="a")
    grad = Member.model_validate({"id": "g", "isActive": False, "graduationDate": "2025-12-31"})
    assert [m.id for m in eligible_members([active, grad], "2025-09-01")] == ["a", "g"]
    assert [m.id for m in eligible_members([active, grad], "2026-01-10")] == ["a"]
    assert [m.id for m in eligible_members([active, grad], None)] == ["a", "g"]
