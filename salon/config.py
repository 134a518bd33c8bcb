import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salon.db")

# Booking rules
MIN_BOOKING_NOTICE_HOURS = int(os.getenv("MIN_BOOKING_NOTICE_HOURS", "24"))
MAX_RESCHEDULES = int(os.getenv("MAX_RESCHEDULES", "2"))
# Minutes past the scheduled start before a confirmed appointment counts as overdue
OVERDUE_GRACE_MINUTES = int(os.getenv("OVERDUE_GRACE_MINUTES", "10"))

# Payment webhook (signed by the payment collaborator)
PAYMENT_WEBHOOK_SECRET = os.getenv("PAYMENT_WEBHOOK_SECRET")
PAYMENT_WEBHOOK_MAX_AGE_SECONDS = int(os.getenv("PAYMENT_WEBHOOK_MAX_AGE_SECONDS", "300"))

# Rate limiting for public booking endpoints (Redis settings are read by rate_limiter)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
