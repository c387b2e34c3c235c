# listing_optimizer/config.py
"""Process configuration read from the environment (and `.env`).

`load_settings()` is called once at startup; the resulting `Settings` is
passed explicitly to whatever needs it.
"""
import os
from dataclasses import dataclass
from typing import Optional, Tuple
from dotenv import load_dotenv
from .errors import ConfigurationError

SCRAPER_BACKENDS = ("scraperapi", "playwright")
DEFAULT_MODELS = ("gemini-2.5-flash",)


@dataclass(frozen=True)
class Settings:
    database_url: str
    gemini_api_key: str
    scraper_api_key: Optional[str] = None
    scraper_backend: str = "scraperapi"
    gemini_models: Tuple[str, ...] = DEFAULT_MODELS
    scrape_timeout: float = 10.0
    retry_attempts: int = 1
    retry_delay: float = 1.0
    retry_backoff: float = 2.0
    db_pool_size: int = 5
    db_max_overflow: int = 10
    headless: bool = True
    cors_origins: Tuple[str, ...] = ("*",)
    expose_error_details: bool = True
    log_level: str = "INFO"


def normalize_database_url(url: str) -> str:
    # SQLAlchemy 2.x doesn't accept 'postgres://'
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    # bare mysql:// would load MySQLdb; the mysql extra ships PyMySQL
    if url.startswith("mysql://"):
        return url.replace("mysql://", "mysql+pymysql://", 1)
    return url


def _split(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    load_dotenv()

    database_url = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL")
    if not database_url:
        raise ConfigurationError("DATABASE_URL (or POSTGRES_URL) not set")

    gemini_api_key = os.getenv("GEMINI_API_KEY")
    if not gemini_api_key:
        raise ConfigurationError("GEMINI_API_KEY not set")

    backend = os.getenv("SCRAPER_BACKEND", "scraperapi").strip().lower()
    if backend not in SCRAPER_BACKENDS:
        raise ConfigurationError(
            f"SCRAPER_BACKEND must be one of {', '.join(SCRAPER_BACKENDS)}, got {backend!r}"
        )
    scraper_api_key = os.getenv("SCRAPER_API_KEY")
    if backend == "scraperapi" and not scraper_api_key:
        raise ConfigurationError("SCRAPER_API_KEY not set")

    models = _split(os.getenv("GEMINI_MODELS", "")) or DEFAULT_MODELS

    retry_attempts = _number("RETRY_ATTEMPTS", 1, int)
    if retry_attempts < 1:
        raise ConfigurationError("RETRY_ATTEMPTS must be at least 1")

    return Settings(
        database_url=normalize_database_url(database_url),
        gemini_api_key=gemini_api_key,
        scraper_api_key=scraper_api_key,
        scraper_backend=backend,
        gemini_models=models,
        scrape_timeout=_number("SCRAPE_TIMEOUT", 10.0, float),
        retry_attempts=retry_attempts,
        retry_delay=_number("RETRY_DELAY", 1.0, float),
        retry_backoff=_number("RETRY_BACKOFF", 2.0, float),
        db_pool_size=_number("DB_POOL_SIZE", 5, int),
        db_max_overflow=_number("DB_MAX_OVERFLOW", 10, int),
        headless=_flag("HEADLESS", True),
        cors_origins=_split(os.getenv("CORS_ORIGINS", "*")) or ("*",),
        expose_error_details=_flag("EXPOSE_ERROR_DETAILS", True),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
