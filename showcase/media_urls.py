# showcase/media_urls.py
"""
Uploads are always stored as relative "/uploads/..." paths so the same document
works from localhost, a tunnel, or a phone on the LAN.
"""

import copy
import re
from typing import Any

UPLOADS_PREFIX = "/uploads/"

_ABSOLUTE_UPLOADS_RE = re.compile(r"^https?://[^/]+(/uploads/.*)$", re.IGNORECASE)
_ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_HTML_UPLOADS_RE = re.compile(r"""(src|href)=("|')/uploads/""")


def to_relative_uploads_url(value):
    """'http://host:3001/uploads/a.jpg' -> '/uploads/a.jpg'. Anything else is returned unchanged."""
    if not value or not isinstance(value, str):
        return value
    if value.startswith(UPLOADS_PREFIX):
        return value
    m = _ABSOLUTE_UPLOADS_RE.match(value)
    if m:
        return m.group(1)
    return value


def sanitize_document(doc: Any) -> Any:
    """Deep copy of a raw document with every media reference made relative."""
    if not isinstance(doc, dict):
        return doc
    out = copy.deepcopy(doc)

    for m in out.get("members") or []:
        if isinstance(m, dict) and isinstance(m.get("avatar"), str):
            m["avatar"] = to_relative_uploads_url(m["avatar"])

    for s in out.get("singles") or []:
        if not isinstance(s, dict):
            continue
        if isinstance(s.get("cover"), str):
            s["cover"] = to_relative_uploads_url(s["cover"])
        tracks = s.get("tracks")
        if isinstance(tracks, list):
            for t in tracks:
                if isinstance(t, dict) and isinstance(t.get("audio"), str):
                    t["audio"] = to_relative_uploads_url(t["audio"])

    for p in out.get("posts") or []:
        if isinstance(p, dict) and isinstance(p.get("cover"), str):
            p["cover"] = to_relative_uploads_url(p["cover"])

    return out


def resolve_media_url(value, base_url: str = ""):
    """Prefix relative uploads paths with base_url; absolute URLs pass through."""
    if not value or not isinstance(value, str):
        return value
    if _ABSOLUTE_URL_RE.match(value):
        return value
    if value.startswith(UPLOADS_PREFIX) and base_url:
        return f"{base_url.rstrip('/')}{value}"
    return value


def resolve_html_media(html, base_url: str = ""):
    """Rewrites src="/uploads/..." and href="/uploads/..." in rich-text post bodies."""
    if not html or not isinstance(html, str) or not base_url:
        return html
    base = base_url.rstrip("/")
    return _HTML_UPLOADS_RE.sub(lambda m: f"{m.group(1)}={m.group(2)}{base}/uploads/", html)
