"""
Configuration for the match program backend.

All tunables are read from the environment (optionally via a .env file).
Court and round limits describe the club hall: how many courts exist, how
many rounds a training evening has, and how many slots a court has by default.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./matchprogram.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

MAX_COURTS = _env_int("MAX_COURTS", 8)
MAX_ROUNDS = _env_int("MAX_ROUNDS", 4)
DEFAULT_COURT_CAPACITY = _env_int("DEFAULT_COURT_CAPACITY", 4)

# Extended capacity applies to a single court in a single round only
MIN_EXTENDED_CAPACITY = 5
MAX_EXTENDED_CAPACITY = 8

# 3+ players sharing a court again is a repeated grouping; pairs are expected
DUPLICATE_MATCHUP_THRESHOLD = 3

CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()
]
