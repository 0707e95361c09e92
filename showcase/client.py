# showcase/client.py
"""
Application-side access to the persistence service.

Load runs the legacy key migration once and then the derivation engine; every
store mutation schedules a debounced save, so a burst of edits becomes one
POST /data. Saves are not queued or locked: the last one to land wins.
"""

import logging
import threading
from typing import Optional

import httpx

from showcase import settings
from showcase.entities import Document
from showcase.selection import recompute_selections
from showcase.store import DocumentStore

logger = logging.getLogger("showcase_client")


class DocumentLoadError(RuntimeError):
    pass


class ShowcaseClient:
    def __init__(
        self,
        base_url: str = "",
        store: Optional[DocumentStore] = None,
        debounce_seconds: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or settings.API_BASE_URL or f"http://localhost:{settings.PORT}").rstrip("/")
        self.store = store or DocumentStore()
        self.debounce_seconds = settings.SAVE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self._http = httpx.Client(base_url=self.base_url, transport=transport, timeout=timeout)
        self._timer_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._loaded = False

    # -----------------------
    # Load / save
    # -----------------------

    def load(self) -> Document:
        try:
            resp = self._http.get("/data")
            resp.raise_for_status()
            raw = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"load(): failed to fetch document -> {e}")
            self.store.reset(notify=False)
            raise DocumentLoadError(f"Failed to load data: {e}") from e

        doc = self.store.load(raw)
        if not self._loaded:
            self.store.add_listener(self._on_store_change)
            self._loaded = True
        return doc

    def _on_store_change(self, _doc: Document) -> None:
        self.schedule_save()

    def schedule_save(self) -> None:
        """(Re)starts the debounce timer; only the last call in a burst results in a POST."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self._background_save)
            self._timer.daemon = True
            self._timer.start()

    def _background_save(self) -> None:
        with self._timer_lock:
            # a newer timer may already be pending; only forget ourselves
            if self._timer is threading.current_thread():
                self._timer = None
        try:
            self.save_now()
        except Exception as e:
            # fire-and-forget: the next edit schedules another save
            logger.warning(f"background save failed -> {e}")

    def save_now(self) -> dict:
        payload = recompute_selections(self.store.snapshot()).to_json_dict()
        resp = self._http.post("/data", json=payload)
        resp.raise_for_status()
        return resp.json()

    def flush(self) -> None:
        """Runs a pending debounced save right away (used on shutdown)."""
        with self._timer_lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            self._background_save()

    def has_pending_save(self) -> bool:
        with self._timer_lock:
            return self._timer is not None

    def close(self) -> None:
        self.flush()
        self.store.remove_listener(self._on_store_change)
        self._http.close()

    # -----------------------
    # Media
    # -----------------------

    def upload_image(self, data: bytes, filename: str = "image.jpg") -> str:
        resp = self._http.post("/upload", files={"image": (filename, data)})
        resp.raise_for_status()
        return resp.json()["url"]

    def upload_audio(self, data: bytes, filename: str = "audio.mp3") -> str:
        resp = self._http.post("/upload-audio", files={"audio": (filename, data)})
        resp.raise_for_status()
        return resp.json()["url"]
