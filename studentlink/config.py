import os

class BaseConfig:
    # Secrets (env in prod; dev/test may use defaults)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-not-secure")

    # Database (env in prod; dev/test may use default)
    try:
        from dotenv import dotenv_values
        _ENV_FALLBACK = dotenv_values(".env")
    except Exception:
        _ENV_FALLBACK = {}
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or _ENV_FALLBACK.get("DATABASE_URL") or "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging / misc
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Flask-Limiter default: off globally; prefer per-route limits
    RATELIMIT_DEFAULT = None

    # --- JWT (bearer tokens for the JSON API) ---
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or SECRET_KEY
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_TTL_MINUTES = int(os.getenv("JWT_TTL_MINUTES", "60"))

    # --- Real-time broadcasting ---
    # memory:// keeps published events in-process; redis://... publishes to the bus
    BROADCAST_URL = os.getenv("BROADCAST_URL", "memory://")
    BROADCAST_PREFIX = os.getenv("BROADCAST_PREFIX", "")

    # --- Mail ---
    MAIL_SERVER = os.getenv("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = (os.getenv("MAIL_USE_TLS", "true").lower() == "true")
    MAIL_USE_SSL = (os.getenv("MAIL_USE_SSL", "false").lower() == "true")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "StudentLink <noreply@studentlink.edu>")
    MAIL_SUPPRESS_SEND = (os.getenv("MAIL_SUPPRESS_SEND", "false").lower() == "true")

    # Used for absolute links in emails (must be https in prod)
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000")

    # --- Workflow automation (n8n) ---
    N8N_ENABLED = (os.getenv("N8N_ENABLED", "true").lower() == "true")
    N8N_WEBHOOK_SECRET = os.getenv("N8N_WEBHOOK_SECRET")
    N8N_CONFIDENCE_THRESHOLD = float(os.getenv("N8N_CONFIDENCE_THRESHOLD", "0.7"))

    # --- Ops commands ---
    EXPORT_DIR = os.getenv("EXPORT_DIR", ".")
    STORAGE_ROOT = os.getenv("STORAGE_ROOT", "storage")
    STORAGE_DIRS = (
        "logs",
        "framework/cache",
        "framework/sessions",
        "framework/views",
        "app/public",
        "reports",
    )

    # Report branding
    SITE_NAME = os.getenv("SITE_NAME", "StudentLink")
    INSTITUTION_NAME = os.getenv("INSTITUTION_NAME", "Bestlink College of the Philippines")

class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    MAIL_SUPPRESS_SEND = True

class StagingConfig(BaseConfig):
    DEBUG = False
    BROADCAST_URL = os.getenv("BROADCAST_URL") or os.getenv("REDIS_URL", "")

class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    # REQUIRE env vars in production (fail fast if missing)
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or SECRET_KEY
    BROADCAST_URL = os.getenv("BROADCAST_URL") or os.getenv("REDIS_URL", "")
    MAIL_SUPPRESS_SEND = False

class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    BROADCAST_URL = "memory://"
    MAIL_SUPPRESS_SEND = True
    N8N_WEBHOOK_SECRET = None

_ENV_MAP = {
    "development": DevelopmentConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}

def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
