import os
import tempfile

# keep the module-level app in server.py away from the working tree
_SCRATCH = tempfile.mkdtemp(prefix="showcase-tests-")
os.environ.setdefault("SHOWCASE_DATA_PATH", os.path.join(_SCRATCH, "data", "db.json"))
os.environ.setdefault("SHOWCASE_DATA_FALLBACK_PATH", os.path.join(_SCRATCH, "db.json"))
os.environ.setdefault("SHOWCASE_UPLOADS_DIR", os.path.join(_SCRATCH, "uploads"))

import pytest

from showcase.entities import Member, Single


@pytest.fixture
def make_single():
    def _make(sid, release=None, rows=(5, 7), slots=None, roles=None, title=None, tracks=None):
        rows = list(rows)
        size = sum(rows)
        slots = list(slots or [])
        slots += [None] * (size - len(slots))
        return Single.model_validate({
            "id": sid,
            "title": title or f"Single {sid}",
            "release": release,
            "tracks": tracks or [{"no": 1, "title": "A-side", "isAside": True}],
            "asideLineup": {
                "rows": rows,
                "slots": slots,
                "slotRoles": roles or {},
                "selectionCount": size,
            },
        })

    return _make


@pytest.fixture
def make_member():
    def _make(mid, active=True, graduation_date=None, history=None, song="none"):
        data = {
            "id": mid,
            "name": mid.upper(),
            "generation": "1期",
            "isActive": active,
            "selectionHistory": history or {},
        }
        if not active:
            data["graduationDate"] = graduation_date
            data["graduationSongTitle"] = song
        return Member.model_validate(data)

    return _make
