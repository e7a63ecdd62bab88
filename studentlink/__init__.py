import os
from flask import Flask

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=False)


from .config import get_config
from .extensions import db, migrate, login_manager, limiter, mail, broadcaster
from .security import init_security
from .observability import init_logging, init_sentry, log_event
from .responses import fail

def create_app():
    app = Flask(__name__, template_folder="templates")

    # ---- Rate limiting storage ----
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        # Hard fail in stage/prod so we never silently run without RL storage
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")

    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    app.config.setdefault("RATELIMIT_DEFAULTS", ["1000 per hour"])
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)

    app.config.from_object(get_config())
    if app_env == "testing":
        app.config["RATELIMIT_ENABLED"] = False

    # --- Required env validation for prod-like envs (staging/production) ---
    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        _require("SECRET_KEY")
        _require("DATABASE_URL")
        _require("BROADCAST_URL")

    # --- Observability & Security ---
    init_logging(app)
    init_sentry(app)
    if app_env in ("staging", "production"):
        init_security(app)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    login_manager.init_app(app)
    limiter.init_app(app)
    mail.init_app(app)
    broadcaster.init_app(app)

    # registers the bearer-token request_loader
    from .services import policy  # noqa: F401

    from .blueprints.auth import bp as auth_bp
    from .blueprints.concerns import bp as concerns_bp
    from .blueprints.staff import bp as staff_bp
    from .blueprints.chat import bp as chat_bp
    from .blueprints.ai import bp as ai_bp
    from .blueprints.smart_assignment import bp as smart_assignment_bp
    from .blueprints.escalation import bp as escalation_bp
    from .blueprints.analytics import bp as analytics_bp
    from .blueprints.reports import bp as reports_bp
    from .blueprints.departments import bp as departments_bp
    from .blueprints.webhooks import bp as webhooks_bp

    # Prefixes live on the blueprints themselves (/api/...)
    app.register_blueprint(auth_bp)
    app.register_blueprint(departments_bp)
    app.register_blueprint(concerns_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(smart_assignment_bp)
    app.register_blueprint(escalation_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(webhooks_bp)

    # Report template filters
    from .utils.helpers import humanize, long_datetime, short_date
    app.add_template_filter(long_datetime)
    app.add_template_filter(short_date)
    app.add_template_filter(humanize)

    @limiter.exempt
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    # Error handlers: everything under /api answers with the JSON envelope
    from .services.errors import ServiceError

    @app.errorhandler(ServiceError)
    def service_error(e):
        extra = {"errors": e.errors} if e.errors else {}
        return fail(e.message, e.status_code, **extra)

    @app.errorhandler(404)
    def not_found(e):
        return fail("Resource not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return fail("Method not allowed", 405)

    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        extra = {}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
            extra["retry_after"] = int(retry_after)
        body, status = fail("Too many requests", 429, **extra)
        return body, status, headers

    @app.errorhandler(500)
    def server_error(e):
        log_event("server_error", error=str(getattr(e, "original_exception", e)))
        return fail("Internal server error", 500)

    # CLI commands (ops-grade utilities)
    from .cli import register_cli
    register_cli(app)

    return app
