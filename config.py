import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


class ConfigurationError(RuntimeError):
    """Raised when a required startup setting is missing"""


def _env_bool(name, default):
    return os.environ.get(name, str(default)).lower() in ["true", "on", "1"]


class Config:
    # The store endpoint and access key; startup aborts without them
    REQUIRED_SETTINGS = ("DATABASE_URL", "SECRET_KEY")

    SECRET_KEY = os.environ.get("SECRET_KEY")
    WTF_CSRF_SECRET_KEY = os.environ.get("WTF_CSRF_SECRET_KEY")

    def __init__(self):
        """Check required settings, then resolve key and database URI"""
        missing = self._missing_settings()
        if missing and not self._dev_defaults_allowed():
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )

        self.SECRET_KEY = os.environ.get("SECRET_KEY") or self.SECRET_KEY
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _missing_settings(self):
        return [name for name in self.REQUIRED_SETTINGS if not os.environ.get(name)]

    def _dev_defaults_allowed(self):
        return False

    def _build_database_uri(self):
        return os.environ.get("DATABASE_URL")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Third-party schedule/roster feed
    NHL_API_BASE_URL = (
        os.environ.get("NHL_API_BASE_URL") or "https://api-web.nhle.com/v1"
    )
    NHL_TEAM_ABBREV = os.environ.get("NHL_TEAM_ABBREV", "COL")

    # Scoring policy
    POINTS_CORRECT = int(os.environ.get("POINTS_CORRECT", 10))
    POINTS_INCORRECT = int(os.environ.get("POINTS_INCORRECT", -5))

    # Game clock policy
    GAME_IN_PROGRESS_WINDOW_HOURS = float(
        os.environ.get("GAME_IN_PROGRESS_WINDOW_HOURS", 3)
    )
    PREDICTIONS_NEXT_GAME_ONLY = _env_bool("PREDICTIONS_NEXT_GAME_ONLY", True)
    TIMEZONE = os.environ.get("TIMEZONE", "America/Denver")

    # Caching configuration (seconds)
    ROSTER_CACHE_TTL = int(os.environ.get("ROSTER_CACHE_TTL", 300))  # 5 minutes
    LEADERBOARD_CACHE_TTL = int(os.environ.get("LEADERBOARD_CACHE_TTL", 30))
    CACHE_MAX_ENTRIES = int(os.environ.get("CACHE_MAX_ENTRIES", 1024))
    LEADERBOARD_DEFAULT_LIMIT = int(os.environ.get("LEADERBOARD_DEFAULT_LIMIT", 10))

    # Scheduler configuration
    SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", True)
    SWEEP_INTERVAL_SECONDS = int(os.environ.get("SWEEP_INTERVAL_SECONDS", 300))
    SWEEP_INITIAL_DELAY_SECONDS = int(os.environ.get("SWEEP_INITIAL_DELAY_SECONDS", 5))
    FEED_SYNC_ENABLED = _env_bool("FEED_SYNC_ENABLED", False)
    # "manual" waits for an administrator, "feed" reads the official result
    RESULT_ORACLE = os.environ.get("RESULT_ORACLE", "manual")

    # Accounts created with these emails are administrators
    ADMIN_EMAILS = [
        email.strip().lower()
        for email in os.environ.get("ADMIN_EMAILS", "").split(",")
        if email.strip()
    ]

    # Rate limiting
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = _env_bool("LOG_TO_CONSOLE", True)
    LOG_TO_FILE = _env_bool("LOG_TO_FILE", True)
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """
    Development configuration

    Missing settings are fatal here too, unless FIRSTGOAL_ALLOW_DEV_DEFAULTS
    opts into a local SQLite file and a generated key.
    """

    DEBUG = True
    SQLALCHEMY_ECHO = _env_bool("SQLALCHEMY_ECHO", False)

    def __init__(self):
        super().__init__()
        if not self.SECRET_KEY:
            self.SECRET_KEY = secrets.token_urlsafe(32)
            warnings.warn(
                "SECRET_KEY not set! Using auto-generated key. "
                "Sessions will reset on app restart. "
                "Run 'python manage.py secrets' to generate secure keys.",
                UserWarning,
            )
        if not self.WTF_CSRF_SECRET_KEY:
            self.WTF_CSRF_SECRET_KEY = self.SECRET_KEY

    def _dev_defaults_allowed(self):
        return _env_bool("FIRSTGOAL_ALLOW_DEV_DEFAULTS", False)

    def _build_database_uri(self):
        return os.environ.get("DATABASE_URL") or "sqlite:///" + os.path.join(
            basedir, "firstgoal.db"
        )


class ProductionConfig(Config):
    """Production configuration"""

    DEBUG = False

    def __init__(self):
        super().__init__()

        if not self.WTF_CSRF_SECRET_KEY:
            warnings.warn(
                "PRODUCTION WARNING: WTF_CSRF_SECRET_KEY not explicitly set!",
                UserWarning,
            )
            self.WTF_CSRF_SECRET_KEY = self.SECRET_KEY


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    SECRET_KEY = "testing-secret-key"
    WTF_CSRF_SECRET_KEY = "testing-csrf-key"
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    FEED_SYNC_ENABLED = False
    RESULT_ORACLE = "manual"
    PREDICTIONS_NEXT_GAME_ONLY = True
    ADMIN_EMAILS = ["admin@example.com"]
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False

    def _missing_settings(self):
        return []

    def _build_database_uri(self):
        return "sqlite:///:memory:"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
