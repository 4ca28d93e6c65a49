import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./vetschedule.db")

# Seconds a SQLite writer waits for the database write lock before giving up
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "15"))

# Appointment defaults
DEFAULT_APPOINTMENT_DURATION = int(os.getenv("DEFAULT_APPOINTMENT_DURATION", "30"))  # minutes
DEFAULT_APPOINTMENT_TYPE = os.getenv("DEFAULT_APPOINTMENT_TYPE", "CONSULTATION")

# Time template defaults
DEFAULT_SLOT_DURATION = int(os.getenv("DEFAULT_SLOT_DURATION", "30"))  # minutes
DEFAULT_MAX_CONCURRENT = int(os.getenv("DEFAULT_MAX_CONCURRENT", "1"))

# Redis cache for active time templates (read-mostly data)
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"
TEMPLATE_CACHE_TTL = int(os.getenv("TEMPLATE_CACHE_TTL", "300"))  # seconds

# Booking rate limiting (per acting user)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "20"))
BOOKING_RATE_WINDOW = int(os.getenv("BOOKING_RATE_WINDOW", "60"))  # seconds

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
