# showcase/backend.py

import json
import logging
import os
import re
import tempfile
import time
from io import BytesIO
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError

from showcase import settings
from showcase.media_urls import UPLOADS_PREFIX, sanitize_document
from showcase.migration import migrate_selection_history_keys, normalize_document
from showcase.selection import recompute_selections

logger = logging.getLogger("showcase_backend")

COLLECTIONS = ("members", "singles", "posts")
AUDIO_SUBDIR = "audio"


class InvalidDocumentError(ValueError):
    pass


class InvalidImageError(ValueError):
    pass


def _sanitize_for_filename(s: str) -> str:
    if not s:
        return ""
    # letters, digits, _ . - only
    return re.sub(r"[^A-Za-z0-9_.-]", "_", s)


def _generated_name(ext: str) -> str:
    return f"{int(time.time() * 1000)}-{os.urandom(3).hex()}{ext}"


def empty_document() -> dict[str, list]:
    return {name: [] for name in COLLECTIONS}


def coerce_top_level(raw: Any) -> dict[str, Any]:
    """A stored value that is not an object, or lacks an array, reads as empty for that part."""
    if not isinstance(raw, dict):
        return empty_document()
    out = dict(raw)
    for name in COLLECTIONS:
        if not isinstance(out.get(name), list):
            out[name] = []
    return out


class Backend:
    """
    File-backed persistence for the showcase document and its media.

    The whole document lives in one JSON file; saves overwrite it (last write wins).
    Media files get unique generated names, so concurrent uploads never collide.
    """

    def __init__(
        self,
        data_path: Optional[str] = None,
        fallback_path: Optional[str] = None,
        uploads_dir: Optional[str] = None,
        image_max_width: Optional[int] = None,
        image_quality: Optional[int] = None,
        recompute_on_save: Optional[bool] = None,
    ):
        self.data_path = data_path or settings.DATA_PATH_PRIMARY
        self.fallback_path = fallback_path or settings.DATA_PATH_FALLBACK
        self.uploads_dir = uploads_dir or settings.UPLOADS_DIR
        self.image_max_width = image_max_width or settings.IMAGE_MAX_WIDTH
        self.image_quality = image_quality or settings.IMAGE_QUALITY
        self.recompute_on_save = settings.RECOMPUTE_ON_SAVE if recompute_on_save is None else recompute_on_save

    # -----------------------
    # Document
    # -----------------------

    def resolve_data_path(self) -> str:
        """Primary path, then fallback path; if neither exists, seed an empty document at the primary path."""
        if os.path.exists(self.data_path):
            return self.data_path
        if os.path.exists(self.fallback_path):
            return self.fallback_path

        parent = os.path.dirname(self.data_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self._write_json(self.data_path, empty_document())
        logger.info(f"[DATA] Created empty document at {self.data_path}")
        return self.data_path

    def read_raw(self) -> dict[str, Any]:
        path = self.resolve_data_path()
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[DATA] Unreadable document at {path}: {e}. Serving an empty document.")
            return empty_document()
        return coerce_top_level(raw)

    def load_document(self) -> dict[str, Any]:
        return sanitize_document(self.read_raw())

    def save_document(self, payload: Any) -> dict[str, Any]:
        # a bad write must never clobber the stored document
        if not isinstance(payload, dict):
            raise InvalidDocumentError(f"document must be a JSON object, got {type(payload).__name__}")
        doc = sanitize_document(coerce_top_level(payload))
        if self.recompute_on_save:
            normalized = normalize_document(doc)
            # imported documents may still carry title-keyed history
            members = migrate_selection_history_keys(normalized.members, normalized.singles)
            normalized = normalized.model_copy(update={"members": members})
            doc = recompute_selections(normalized).to_json_dict()
        path = self.resolve_data_path()
        self._write_json(path, doc)
        logger.info(
            f"[DATA] Saved {path}: "
            + ", ".join(f"{len(doc[name])} {name}" for name in COLLECTIONS)
        )
        return {"ok": True}

    def _write_json(self, path: str, data: Any) -> None:
        directory = os.path.dirname(os.path.abspath(path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".db-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # -----------------------
    # Media
    # -----------------------

    def store_image(self, data: bytes) -> dict[str, str]:
        """Downscales to image_max_width, re-encodes as JPEG, returns {"url": "/uploads/<name>"}."""
        try:
            im = Image.open(BytesIO(data))
            im.load()
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError(f"not a decodable image: {e}") from e

        im = im.convert("RGB")
        if im.width > self.image_max_width:
            height = max(1, round(im.height * self.image_max_width / im.width))
            im = im.resize((self.image_max_width, height), Image.LANCZOS)

        os.makedirs(self.uploads_dir, exist_ok=True)
        filename = _generated_name(".jpg")
        im.save(os.path.join(self.uploads_dir, filename), format="JPEG", quality=self.image_quality)
        logger.info(f"[UPLOAD] image {filename} ({im.width}x{im.height})")
        return {"url": f"{UPLOADS_PREFIX}{filename}"}

    def store_audio(self, data: bytes, original_filename: str = "") -> dict[str, str]:
        """Stores the bytes verbatim under uploads/audio/, keeping the original extension (default .mp3)."""
        ext = _sanitize_for_filename(os.path.splitext(original_filename or "")[1]) or ".mp3"
        directory = os.path.join(self.uploads_dir, AUDIO_SUBDIR)
        os.makedirs(directory, exist_ok=True)
        filename = _generated_name(ext)
        with open(os.path.join(directory, filename), "wb") as f:
            f.write(data)
        logger.info(f"[UPLOAD] audio {filename} ({len(data)} bytes)")
        return {"url": f"{UPLOADS_PREFIX}{AUDIO_SUBDIR}/{filename}"}
