from functools import wraps
from flask import g
from flask_login import current_user
from jose import ExpiredSignatureError, JWTError

from studentlink.extensions import db, login_manager
from studentlink.models.user import User
from studentlink.responses import fail
from studentlink.utils.helpers import safe_int
from . import tokens

MSG_TOKEN_REQUIRED = "Token is required"
MSG_TOKEN_EXPIRED = "Token has expired"
MSG_TOKEN_INVALID = "Token is invalid"
MSG_USER_NOT_FOUND = "User not found"
MSG_UNAUTHORIZED = "Unauthorized"
MSG_FORBIDDEN = "Forbidden - Insufficient permissions"

def _bearer_token(req) -> str | None:
    header = (req.headers.get("Authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

@login_manager.request_loader
def load_user_from_request(req):
    """
    Resolve the principal from `Authorization: Bearer <jwt>`.
    The failure reason is parked on `g.auth_error` for `authenticate`.
    """
    token = _bearer_token(req)
    if token is None:
        g.auth_error = MSG_TOKEN_REQUIRED
        return None
    try:
        claims = tokens.decode(token)
    except ExpiredSignatureError:
        g.auth_error = MSG_TOKEN_EXPIRED
        return None
    except JWTError:
        g.auth_error = MSG_TOKEN_INVALID
        return None

    user_id = safe_int(claims.get("sub"))
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None or not user.is_active:
        g.auth_error = MSG_USER_NOT_FOUND
        return None
    return user

def require_token():
    """before_request hook: None lets the request through, otherwise a 401 envelope."""
    if current_user.is_authenticated:
        return None
    return fail(g.get("auth_error") or MSG_TOKEN_REQUIRED, 401)

def authenticate(fn):
    @wraps(fn)
    def _wrap(*args, **kwargs):
        denied = require_token()
        if denied is not None:
            return denied
        return fn(*args, **kwargs)
    return _wrap

def role_required(*roles):
    def deco(fn):
        @wraps(fn)
        def _wrap(*args, **kwargs):
            if not current_user.is_authenticated:
                return fail(MSG_UNAUTHORIZED, 401)
            if current_user.role not in roles:
                return fail(MSG_FORBIDDEN, 403)
            return fn(*args, **kwargs)
        return _wrap
    return deco
