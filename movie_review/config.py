import os
from datetime import timedelta

from dotenv import load_dotenv


def _normalize_db_url(url: str) -> str:
    """
    Normalize postgres:// to postgresql+psycopg2:// for SQLAlchemy.
    """
    if not url:
        return url
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "on", "yes"}


class Config:
    # Load .env if present
    load_dotenv()

    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret-key-change-me")
    SESSION_COOKIE_NAME = "moviereview_session"
    PERMANENT_SESSION_LIFETIME = timedelta(days=30)

    # Database config
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///movie_review.db")
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(DATABASE_URL)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Catalog defaults
    DEFAULT_POSTER = os.getenv("DEFAULT_POSTER", "https://via.placeholder.com/300x450?text=No+Poster")

    # TMDB keys, only used by the optional poster lookup during import
    TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")
    TMDB_BEARER_TOKEN = os.getenv("TMDB_BEARER_TOKEN", "")

    # Outbound HTTP cache (requests-cache, sqlite backend)
    HTTP_CACHE_ENABLED = _env_flag("HTTP_CACHE_ENABLED", True)
    HTTP_CACHE_NAME = os.getenv("HTTP_CACHE_NAME", "http_cache")
    HTTP_CACHE_EXPIRE = int(os.getenv("HTTP_CACHE_EXPIRE", "86400"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # JSON API only; forms are not served
    WTF_CSRF_TIME_LIMIT = None


class DevelopmentConfig(Config):
    DEBUG = True
    ENV = "development"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()


class ProductionConfig(Config):
    DEBUG = False
    ENV = "production"


class TestingConfig(Config):
    TESTING = True
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    HTTP_CACHE_ENABLED = False
    TMDB_API_KEY = ""
    TMDB_BEARER_TOKEN = ""
    LOG_LEVEL = "DEBUG"


def get_config():
    env = os.getenv("FLASK_ENV", "development").lower()
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
