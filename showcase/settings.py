# showcase/settings.py

import logging
import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("SHOWCASE_LOG_LEVEL", "DEBUG").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.DEBUG),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("showcase_backend")

# --- Configuration ---
DATA_PATH_PRIMARY   = os.getenv("SHOWCASE_DATA_PATH", "./data/db.json")
DATA_PATH_FALLBACK  = os.getenv("SHOWCASE_DATA_FALLBACK_PATH", "./db.json")
UPLOADS_DIR         = os.getenv("SHOWCASE_UPLOADS_DIR", "./uploads")

IMAGE_MAX_WIDTH     = int(os.getenv("SHOWCASE_IMAGE_MAX_WIDTH", "1024"))
IMAGE_QUALITY       = int(os.getenv("SHOWCASE_IMAGE_QUALITY", "80"))

HOST                = os.getenv("SHOWCASE_HOST", "0.0.0.0")
PORT                = int(os.getenv("SHOWCASE_PORT", "3001"))
CORS_ORIGINS        = [o.strip() for o in os.getenv("SHOWCASE_CORS_ORIGINS", "*").split(",") if o.strip()]

# Prefix for /uploads/... paths when media is served from another origin (tunnels, phones)
API_BASE_URL        = os.getenv("SHOWCASE_API_BASE_URL", "").rstrip("/")

SAVE_DEBOUNCE_SECONDS = float(os.getenv("SHOWCASE_SAVE_DEBOUNCE_SECONDS", "0.3"))
RECOMPUTE_ON_SAVE     = os.getenv("SHOWCASE_RECOMPUTE_ON_SAVE", "true").strip().lower() in ("1", "true", "yes", "on")
