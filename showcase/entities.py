# showcase/entities.py
import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ROLE_CENTER = "center"
ROLE_GUARDIAN = "guardian"
LEGACY_GUARDIAN = "护法"

JOINED_BEFORE_MARKER = "joined before this release"
LEGACY_JOINED_BEFORE_MARKER = "加入前"
NOT_SELECTED_TEXT = "not selected"
LEGACY_NOT_SELECTED_TEXTS = ("落选", "未入选", "未选拔")


class ShowcaseModel(BaseModel):
    # unknown fields (profile, avatar, electionRanks, ...) must survive a load/save cycle
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _as_id(v) -> str:
    if v is None:
        return ""
    return str(v)


def _as_optional_text(v) -> Optional[str]:
    if v is None:
        return None
    return str(v)


# -----------------------
# Document records
# -----------------------

class Track(ShowcaseModel):
    no: int = 0
    title: str = ""
    is_aside: bool = Field(False, alias="isAside")
    audio: str = ""

    @field_validator("no", mode="before")
    @classmethod
    def coerce_no(cls, v):
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0

    @field_validator("title", "audio", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("is_aside", mode="before")
    @classmethod
    def coerce_is_aside(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes", "on")
        return bool(v)


class AsideLineup(ShowcaseModel):
    """
    Seating chart of the A-side.

    rows are stored back-to-front: the LAST entry is the front row (row 1).
    slots is flat, len(slots) == sum(rows), position -> row via cumulative offsets.
    slot_roles is sparse: slot index -> "center" | "guardian".
    """

    rows: list[int] = Field(default_factory=list)
    slots: list[Optional[str]] = Field(default_factory=list)
    slot_roles: dict[int, str] = Field(default_factory=dict, alias="slotRoles")
    selection_count: int = Field(0, alias="selectionCount")

    @field_validator("rows", mode="before")
    @classmethod
    def coerce_rows(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        out = []
        for n in v:
            try:
                out.append(max(0, int(n)))
            except (TypeError, ValueError):
                out.append(0)
        return out

    @field_validator("slots", mode="before")
    @classmethod
    def coerce_slots(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        return [str(x) if x else None for x in v]

    @field_validator("slot_roles", mode="before")
    @classmethod
    def coerce_slot_roles(cls, v):
        if not isinstance(v, dict):
            return {}
        out = {}
        for k, role in v.items():
            try:
                idx = int(k)
            except (TypeError, ValueError):
                continue
            if role:
                out[idx] = str(role)
        return out

    @field_validator("selection_count", mode="before")
    @classmethod
    def coerce_selection_count(cls, v):
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0


class Member(ShowcaseModel):
    id: str = ""
    name: str = ""
    generation: str = ""
    avatar: str = ""
    is_active: bool = Field(True, alias="isActive")
    graduation_date: Optional[str] = Field(None, alias="graduationDate")
    graduation_song_title: Optional[str] = Field(None, alias="graduationSongTitle")
    # derived by the selection engine; values stay Any because legacy data may hold objects
    selection_history: dict[str, Any] = Field(default_factory=dict, alias="selectionHistory")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _as_id(v)

    @field_validator("name", "generation", "avatar", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("graduation_date", "graduation_song_title", mode="before")
    @classmethod
    def coerce_optional(cls, v):
        return _as_optional_text(v)

    @field_validator("is_active", mode="before")
    @classmethod
    def coerce_active(cls, v):
        # only an explicit "false" graduates a member
        if v is None:
            return True
        if isinstance(v, str):
            return v.strip().lower() not in ("false", "0", "no", "off")
        return bool(v)

    @field_validator("selection_history", mode="before")
    @classmethod
    def coerce_history(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): val for k, val in v.items()}


class Single(ShowcaseModel):
    id: str = ""
    title: str = ""
    release: Optional[str] = None
    cover: str = ""
    tracks: list[Track] = Field(default_factory=list)
    aside_lineup: AsideLineup = Field(default_factory=AsideLineup, alias="asideLineup")
    notes: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _as_id(v)

    @field_validator("title", "cover", "notes", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("release", mode="before")
    @classmethod
    def coerce_release(cls, v):
        return _as_optional_text(v)

    @field_validator("tracks", mode="before")
    @classmethod
    def coerce_tracks(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        return [t if isinstance(t, (dict, Track)) else {} for t in v]

    @field_validator("aside_lineup", mode="before")
    @classmethod
    def coerce_lineup(cls, v):
        if isinstance(v, (dict, AsideLineup)):
            return v
        return {}


class Post(ShowcaseModel):
    id: str = ""
    title: str = ""
    date: Optional[str] = None
    cover: str = ""
    content: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _as_id(v)

    @field_validator("title", "cover", "content", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return _as_optional_text(v)


class Document(ShowcaseModel):
    members: list[Member] = Field(default_factory=list)
    singles: list[Single] = Field(default_factory=list)
    posts: list[Post] = Field(default_factory=list)

    @field_validator("members", "singles", "posts", mode="before")
    @classmethod
    def coerce_collection(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        return [x for x in v if isinstance(x, (dict, BaseModel))]


# -----------------------
# Selection status (tagged variants)
# -----------------------

class Derived(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["derived"] = "derived"
    row: int
    role: Optional[Literal["center", "guardian"]] = None


class JoinedBefore(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["joinedBefore"] = "joinedBefore"


class NotSelected(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["notSelected"] = "notSelected"


SelectionStatus = Annotated[Union[Derived, JoinedBefore, NotSelected], Field(discriminator="kind")]


def render_status(status: SelectionStatus) -> str:
    """Display/storage text for a selection status."""
    if isinstance(status, JoinedBefore):
        return JOINED_BEFORE_MARKER
    if isinstance(status, NotSelected):
        return NOT_SELECTED_TEXT
    suffix = f" {status.role}" if status.role else ""
    return f"A-side selection (row {status.row}{suffix})"


def is_joined_before_text(value) -> bool:
    if not isinstance(value, str):
        return False
    return JOINED_BEFORE_MARKER in value or LEGACY_JOINED_BEFORE_MARKER in value


_DERIVED_RE = re.compile(r"A-side selection \(row (\d+)(?: (center|guardian))?\)")
_LEGACY_ROW_RE = re.compile(r"第?\s*(\d+)\s*[排列]")


def parse_status(value) -> Optional[SelectionStatus]:
    """
    Reads a stored selectionHistory value back into a tagged status.
    Understands the current texts and the older Chinese ones
    ("A面选拔（第1排 center）", "落选", "加入前", ...). Returns None when unrecognized.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if is_joined_before_text(text):
        return JoinedBefore()
    if text == NOT_SELECTED_TEXT or any(t in text for t in LEGACY_NOT_SELECTED_TEXTS):
        return NotSelected()

    m = _DERIVED_RE.search(text)
    if m:
        return Derived(row=int(m.group(1)), role=m.group(2))

    if "A面选拔" in text:
        row_match = _LEGACY_ROW_RE.search(text)
        row = int(row_match.group(1)) if row_match else 1
        role = None
        if ROLE_CENTER in text:
            role = ROLE_CENTER
        elif LEGACY_GUARDIAN in text or ROLE_GUARDIAN in text:
            role = ROLE_GUARDIAN
        return Derived(row=row, role=role)
    return None


# -----------------------
# General election ranks
# -----------------------

ELECTION_JOINED_BEFORE = "加入前"
ELECTION_OUT_OF_RANKING = "圈外"
ELECTION_SENBATSU = "选拔"
ELECTION_UNDER_GIRLS = "UG"
ELECTION_EMPTY_TEXT = "—"

_CN_DIGITS = {"零": 0, "一": 1, "二": 2, "三": 3, "四": 4, "五": 5, "六": 6, "七": 7, "八": 8, "九": 9}


class ElectionBadge(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: Optional[int] = None
    group: Optional[str] = None
    text: str


def chinese_to_int(value) -> Optional[int]:
    """'十四位' -> 14, '二十' -> 20, '7' -> 7. Only numbers below 100 are understood."""
    if not value:
        return None
    s = str(value).replace("位", "").strip()
    if re.fullmatch(r"\d+", s):
        return int(s)
    if s == "十":
        return 10
    if "十" not in s:
        return _CN_DIGITS.get(s)
    left, _, right = s.partition("十")
    tens = _CN_DIGITS.get(left) if left else 1
    ones = _CN_DIGITS.get(right) if right else 0
    if tens is None or ones is None:
        return None
    return tens * 10 + ones


def election_badge(raw) -> ElectionBadge:
    """
    Labels one general election result ("14位", "十四位", "14", "圈外", "加入前").
    Ranks 1-12 are senbatsu, 13-19 under girls, 20 and beyond are out of ranking.
    Unparsable text is shown as entered.
    """
    v = "" if raw is None else str(raw).strip()
    if not v:
        return ElectionBadge(text=ELECTION_EMPTY_TEXT)
    if v in (ELECTION_JOINED_BEFORE, ELECTION_OUT_OF_RANKING):
        return ElectionBadge(group=v, text=v)

    digits = re.search(r"\d+", v)
    n = int(digits.group(0)) if digits else chinese_to_int(v)
    if n is None:
        return ElectionBadge(text=v)
    if n >= 20:
        return ElectionBadge(rank=n, group=ELECTION_OUT_OF_RANKING, text=ELECTION_OUT_OF_RANKING)
    group = ELECTION_UNDER_GIRLS if n >= 13 else ELECTION_SENBATSU
    return ElectionBadge(rank=n, group=group, text=f"{n}位（{group}）")


def member_election_badges(member: Member) -> list[tuple[str, ElectionBadge]]:
    """(edition, badge) for each entry of a member's electionRanks list, in stored order."""
    ranks = (member.model_extra or {}).get("electionRanks")
    if not isinstance(ranks, list):
        return []
    out = []
    for entry in ranks:
        if not isinstance(entry, dict):
            continue
        out.append((str(entry.get("edition") or ""), election_badge(entry.get("rank"))))
    return out
