"""Application settings, read from the environment (and an optional .env file)."""
import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Use PostgreSQL in production (from DATABASE_URL env var), SQLite locally
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookingflow.db")

# Public calendar dates/times and form dates are expressed in this zone
DISPLAY_TIMEZONE_NAME = os.getenv("DISPLAY_TIMEZONE", "Europe/Stockholm")
DISPLAY_TIMEZONE = ZoneInfo(DISPLAY_TIMEZONE_NAME)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

SEED_ON_STARTUP = os.getenv("SEED_ON_STARTUP", "1") == "1"
VALIDATE_REFERENCE_DATA = os.getenv("VALIDATE_REFERENCE_DATA", "1") == "1"

# Well-known workflow status slugs
PENDING_STATUS_SLUG = "pending"
APPROVED_STATUS_SLUG = "approved"

# Event type bounds (minutes)
EVENT_TYPE_MIN_DURATION = 15
EVENT_TYPE_MAX_DURATION = 480
BUFFER_MIN = 0
BUFFER_MAX = 240

# Booking bounds (minutes)
BOOKING_MIN_DURATION = 30
BOOKING_MAX_DURATION = 480
