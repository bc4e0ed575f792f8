# classifieds/config/settings.py

"""Central configuration for the classifieds client."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the classifieds client."""

    # --- Backend ---
    API_URL: str = os.getenv(
        "CLASSIFIEDS_API_URL", "http://localhost:3000/api"
    )
    REQUEST_TIMEOUT: int = int(
        os.getenv("CLASSIFIEDS_REQUEST_TIMEOUT", "15")
    )                                   # Seconds per attempt
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "User-Agent": "classifieds-client/1.0",
    }

    # --- Resilience ---
    MAX_ATTEMPTS: int = 5               # Attempts per read request
    BACKOFF_BASE_MS: int = 1000         # Delay after the first failure
    BACKOFF_CAP_MS: int = 5000          # Ceiling for the doubling delay

    # --- Accounts ---
    MIN_PASSWORD_LENGTH: int = 6

    # --- Moderation placeholders ---
    REDACTED_TITLE: str = "[DELETED]"
    REDACTED_DESCRIPTION: str = "This post was deleted by moderation"

    # --- Degraded mode (backend unreachable) ---
    FALLBACK_CATEGORIES: list[dict[str, str]] = [
        {"key": "electronics", "name": "electronics"},
        {"key": "furniture", "name": "furniture"},
        {"key": "cars_trucks", "name": "cars & trucks"},
        {"key": "books", "name": "books"},
        {"key": "free_stuff", "name": "free stuff"},
    ]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SESSION_DIR: Path = Path(
        os.getenv("CLASSIFIEDS_SESSION_DIR", str(BASE_DIR / "session"))
    )
    LOGS_DIR: Path = Path(
        os.getenv("CLASSIFIEDS_LOGS_DIR", str(BASE_DIR / "logs"))
    )

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("CLASSIFIEDS_LOG_LEVEL", "WARNING").upper()
    LOG_RETENTION: int = 20             # Run logs kept in LOGS_DIR
