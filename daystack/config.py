import os
from dotenv import load_dotenv

load_dotenv()

# --- JWT Configuration ---
JWT_SECRET = os.getenv("JWT_SECRET", "change-this-secret-key")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 720  # 30 days
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "daystack.session-token")

# --- Database ---
# Default to local SQLite, but prefer environment variable (for hosted Postgres)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/daystack.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- App ---
APP_NAME = "DayStack"
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000").rstrip("/")

# --- Google OAuth ---
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

# --- Email (magic links) ---
EMAIL_SERVER = os.getenv("EMAIL_SERVER", "")  # SMTP host; empty = log links instead of sending
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "DayStack <no-reply@daystack.local>")
VERIFICATION_TOKEN_HOURS = 24

# --- CLI client ---
DAYSTACK_API_URL = os.getenv("DAYSTACK_API_URL", BASE_URL + "/api/v1")
DAYSTACK_TOKEN = os.getenv("DAYSTACK_TOKEN", "")
