import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Falls back to a local SQLite file so the API can boot without a hosted database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./opsboard.db")

# Frontend base URL used to build masked meeting links (/meet/<room>)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Daily.co video provisioning
DAILY_API_KEY = os.getenv("DAILY_API_KEY")
DAILY_API_URL = os.getenv("DAILY_API_URL", "https://api.daily.co/v1")
# Seconds to wait for the video provider before aborting a booking
VIDEO_PROVIDER_TIMEOUT = float(os.getenv("VIDEO_PROVIDER_TIMEOUT", "10"))
# Rooms open this many minutes before the meeting and close an hour after it
VIDEO_ROOM_OPEN_BEFORE_MINUTES = int(os.getenv("VIDEO_ROOM_OPEN_BEFORE_MINUTES", "10"))
VIDEO_ROOM_CLOSE_AFTER_MINUTES = int(os.getenv("VIDEO_ROOM_CLOSE_AFTER_MINUTES", "60"))

# Scheduling engine
MAX_PROPAGATION_DEPTH = int(os.getenv("MAX_PROPAGATION_DEPTH", "50"))
BOOKING_SEARCH_DAYS = int(os.getenv("BOOKING_SEARCH_DAYS", "7"))
MAX_SUGGESTED_TIMES = int(os.getenv("MAX_SUGGESTED_TIMES", "5"))
TENANT_POLICY_CACHE_TTL = int(os.getenv("TENANT_POLICY_CACHE_TTL", "300"))

# Public booking rate limits (requests per window, per IP)
BOOKING_SLOTS_RATE_LIMIT = int(os.getenv("BOOKING_SLOTS_RATE_LIMIT", "60"))
BOOKING_CREATE_RATE_LIMIT = int(os.getenv("BOOKING_CREATE_RATE_LIMIT", "10"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
