from __future__ import annotations

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
STATIC_DIR = Path(os.getenv("GROUPCHAT_STATIC_DIR", BASE_DIR / "public"))
DEFAULT_AVATAR_PATH = Path(os.getenv("GROUPCHAT_DEFAULT_AVATAR", STATIC_DIR / "default-avatar.png"))

DATABASE_URL = os.getenv("GROUPCHAT_DATABASE_URL", f"sqlite:///{BASE_DIR / 'groupchat.db'}")
DB_TIMEOUT_SECONDS = float(os.getenv("GROUPCHAT_DB_TIMEOUT", "5"))

MAX_MEDIA_MB = int(os.getenv("GROUPCHAT_MAX_MEDIA_MB", "5"))
MAX_MEDIA_BYTES = MAX_MEDIA_MB * 1024 * 1024

TYPING_EXPIRY_SECONDS = float(os.getenv("GROUPCHAT_TYPING_EXPIRY", "1.0"))
TYPING_MIN_INTERVAL_SECONDS = float(os.getenv("GROUPCHAT_TYPING_MIN_INTERVAL", "0"))

LOG_FILE = Path(os.getenv("GROUPCHAT_LOG_FILE", BASE_DIR / "groupchat.log"))
LOG_LEVEL = os.getenv("GROUPCHAT_LOG_LEVEL", "INFO").upper()
