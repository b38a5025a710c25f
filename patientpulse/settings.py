"""
Centralized configuration for PatientPulse.
Values come from the environment (or a local .env file).
"""

import os
from dotenv import load_dotenv

from patientpulse.analytics.errors import ConfigurationError

load_dotenv()


def _positive_number(name: str, default: str, cast=int):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


# --- Record store ---
RECORD_STORE_PATH = os.getenv("RECORD_STORE_PATH", "data/records.json")

# --- Analytics ---
ANALYTICS_REFRESH_INTERVAL = _positive_number("ANALYTICS_REFRESH_INTERVAL", "300", float)
ANALYTICS_MAX_WORKERS = _positive_number("ANALYTICS_MAX_WORKERS", "4")

# --- Server ---
PORT = _positive_number("PORT", "8080")
