# showcase/dates.py
from datetime import date
from typing import Optional


def iso_date(value) -> Optional[str]:
    """
    Date-only ISO text ("YYYY-MM-DD") for a date-like value, or None when it
    does not parse. Only the first 10 characters are considered, so full
    timestamps are accepted.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()[:10]
    text = str(value).strip()[:10]
    if not text:
        return None
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        return None
