from datetime import datetime, timedelta, timezone
from flask import current_app
from jose import jwt

def ttl_seconds() -> int:
    return int(current_app.config.get("JWT_TTL_MINUTES", 60)) * 60

def issue(user) -> str:
    """Signed bearer token for `user`; subject is the user id as a string."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds()),
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )

def decode(token: str) -> dict:
    """
    Return the verified claims.
    Raises jose.ExpiredSignatureError for stale tokens and jose.JWTError for anything else.
    """
    return jwt.decode(
        token,
        current_app.config["JWT_SECRET_KEY"],
        algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
    )
