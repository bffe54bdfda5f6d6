"""Environment-aware configuration for the Flask application."""
import os
from datetime import timedelta


class BaseConfig:
    def __init__(self) -> None:
        # Defaults for local dev: SQLite db and a non-empty secret. Override via env for production.
        self.SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
        db_url = os.getenv("DATABASE_URL")
        if db_url:
            self.SQLALCHEMY_DATABASE_URI = db_url
        else:
            self.SQLALCHEMY_DATABASE_URI = os.getenv(
                "SQLITE_URL",
                f"sqlite:///{os.path.join(os.getcwd(), 'instance', 'complaints.db')}",
            )
        self.SQLALCHEMY_TRACK_MODIFICATIONS = False
        self.SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_size": int(os.getenv("DB_POOL_SIZE", 10)),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", 20)),
            "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", 30)),
            "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", 1800)),
        }
        # Bearer API: forms are validated without CSRF tokens.
        self.WTF_CSRF_ENABLED = False
        self.PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")
        self.JWT_SECRET = os.getenv("JWT_SECRET", self.SECRET_KEY)
        self.JWT_ALGORITHM = "HS256"
        self.JWT_EXPIRES = timedelta(hours=int(os.getenv("JWT_EXPIRES_HOURS", 24)))
        self.PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", 4))
        self.UPLOAD_FOLDER = os.getenv("UPLOAD_PATH", os.path.join(os.getcwd(), "instance", "uploads"))
        self.UPLOAD_URL_PREFIX = "/uploads"
        self.MAX_PHOTO_BYTES = int(os.getenv("MAX_FILE_SIZE_MB", 5)) * 1024 * 1024
        self.ALLOWED_PHOTO_EXTENSIONS = [
            ext.strip().lower()
            for ext in os.getenv("ALLOWED_EXTENSIONS", "jpg,jpeg,png,gif,webp").split(",")
            if ext.strip()
        ]
        self.MAX_CONTENT_LENGTH = int(os.getenv("MAX_REQUEST_BYTES", 8 * 1024 * 1024))
        self.CORS_ORIGINS = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGIN", "http://localhost:3000").split(",")
            if origin.strip()
        ]
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))
        # Optional bootstrap authority so a fresh install can triage complaints.
        self.DEFAULT_AUTHORITY_EMAIL = os.getenv("DEFAULT_AUTHORITY_EMAIL", "")
        self.DEFAULT_AUTHORITY_PASSWORD = os.getenv("DEFAULT_AUTHORITY_PASSWORD", "")
        self.RANKING_LIMIT = int(os.getenv("RANKING_LIMIT", 10))
        self.STATS_WINDOW_DAYS = int(os.getenv("STATS_WINDOW_DAYS", 30))
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
        # New Google accounts on this domain may ask for the authority role.
        self.GOOGLE_AUTHORITY_DOMAIN = os.getenv("GOOGLE_AUTHORITY_DOMAIN", "muni.com")


class DevelopmentConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = True
        self.ENV = "development"


class ProductionConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = False
        self.ENV = "production"


class TestingConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.TESTING = True
        self.DEBUG = False
        self.ENV = "testing"
        self.SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite://")
        # SQLite in-memory uses a static pool; pool sizing options do not apply.
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.JWT_SECRET = "test-jwt-secret"
        self.PREFERRED_URL_SCHEME = "http"
        self.GOOGLE_CLIENT_ID = "test-google-client"
        self.GOOGLE_AUTHORITY_DOMAIN = "muni.com"
