import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "3000"))

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")

    # Seeded admin account (only used when the admin table is empty)
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin123")

    # Session settings
    session_ttl_minutes: int = int(os.getenv("SESSION_TTL_MINUTES", "1440"))  # 24 hours
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "library_session")
    session_cookie_secure: bool = _env_flag("SESSION_COOKIE_SECURE")

    # Lending rules
    grace_period_days: int = int(os.getenv("GRACE_PERIOD_DAYS", "7"))
    fine_per_day: int = int(os.getenv("FINE_PER_DAY", "2"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Desk")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


DEFAULT_ADMIN_PASSWORD = "admin123"

settings = Settings()
