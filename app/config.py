import os
from dotenv import load_dotenv

load_dotenv()


def _normalize_database_url(url: str) -> str:
    # Hosting providers hand out sync-style URLs
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


DATABASE_URL = _normalize_database_url(
    os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./escape_room.db")
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
is_development = ENVIRONMENT == "development"
is_production = ENVIRONMENT == "production"

CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")

# Optional static key protecting /api/leads
API_KEY = os.getenv("API_KEY") or None

ADMIN_USERNAME = os.getenv("ADMIN_USERNAME") or None
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD") or None


def cors_origins():
    if CORS_ORIGIN == "*":
        return ["*"]
    return [origin.strip() for origin in CORS_ORIGIN.split(",") if origin.strip()]


# --- Game client ---

CLIENT_API_ENDPOINT = os.getenv("ESCAPE_API_ENDPOINT", "").rstrip("/")
CLIENT_API_KEY = os.getenv("ESCAPE_API_KEY", "")
CLIENT_STATE_DIR = os.getenv("ESCAPE_STATE_DIR", os.path.join(os.path.expanduser("~"), ".escape_room"))
