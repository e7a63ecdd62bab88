from flask import request
from flask_login import current_user
from sqlalchemy import func

from studentlink.extensions import db, limiter
from studentlink.models.user import User
from studentlink.observability import log_event
from studentlink.responses import fail, ok
from studentlink.services import tokens
from studentlink.services.policy import authenticate
from studentlink.utils.helpers import utcnow
from . import bp


def _login_email_scope():
    data_json = request.get_json(silent=True) or {}
    email = (data_json.get("email") or request.form.get("email") or "").strip().lower()
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"

def _token_payload(user):
    return {
        "token": tokens.issue(user),
        "token_type": "bearer",
        "expires_in": tokens.ttl_seconds(),
        "user": user.to_dict(),
    }

@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")              # per-IP (anon -> IP via _rate_limit_key)
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""

    if not email or not password:
        errors = {}
        if not email:
            errors["email"] = ["The email field is required."]
        if not password:
            errors["password"] = ["The password field is required."]
        return fail("Validation failed", 422, errors=errors)

    user = db.session.execute(
        db.select(User).where(func.lower(User.email) == func.lower(email))
    ).scalar_one_or_none()

    if not user or not user.check_password(password) or not user.is_active:
        log_event("auth.login_failed", email=email.lower())
        return fail("Invalid credentials", 401)

    user.last_login_at = utcnow()
    db.session.commit()
    log_event("auth.login", user_id=user.id, role=user.role)
    return ok(_token_payload(user), message="Login successful")

@bp.get("/me")
@authenticate
def me():
    return ok(current_user.to_dict())

@bp.post("/refresh")
@authenticate
def refresh():
    return ok(_token_payload(current_user), message="Token refreshed")

@bp.post("/logout")
@authenticate
def logout():
    # Tokens are stateless; the client drops its copy
    log_event("auth.logout", user_id=current_user.id)
    return ok(message="Logged out successfully")
