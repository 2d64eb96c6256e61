# beetracker/config.py
from __future__ import annotations

import logging
import os

import pytz
from dotenv import load_dotenv

load_dotenv()

# ───────── Config ─────────
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/spelling-bee.db")
DB_TIMEOUT = float(os.getenv("DB_TIMEOUT", "30"))      # seconds a SQLite writer waits for the lock
TZ = pytz.timezone(os.getenv("APP_TZ", "UTC"))
MIN_WORD_LEN = int(os.getenv("MIN_WORD_LEN", "4"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
