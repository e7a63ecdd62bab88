import re
from typing import Any, Dict, Iterable, List

# Simple, pragmatic patterns
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

Errors = Dict[str, List[str]]

def clean_str(val: Any, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", str(val)).strip()
    if not s:
        return None
    return s[:max_len]

def is_valid_email(val: str | None) -> bool:
    if not val:
        return False
    return bool(_EMAIL_RE.match(val))

def require_str(data: dict, field: str, errors: Errors, max_len: int = 255) -> str | None:
    raw = data.get(field)
    if raw is not None and not isinstance(raw, str):
        errors.setdefault(field, []).append(f"The {field} must be a string.")
        return None
    if raw is not None and len(raw.strip()) > max_len:
        errors.setdefault(field, []).append(f"The {field} may not be greater than {max_len} characters.")
        return None
    val = clean_str(raw, max_len=max_len)
    if val is None:
        errors.setdefault(field, []).append(f"The {field} field is required.")
    return val

def require_choice(data: dict, field: str, choices: Iterable[str], errors: Errors, default: str | None = None) -> str | None:
    raw = data.get(field, default)
    if raw is None:
        errors.setdefault(field, []).append(f"The {field} field is required.")
        return None
    if raw not in tuple(choices):
        errors.setdefault(field, []).append(f"The selected {field} is invalid.")
        return None
    return raw

def require_int(data: dict, field: str, errors: Errors, required: bool = True) -> int | None:
    raw = data.get(field)
    if raw is None or raw == "":
        if required:
            errors.setdefault(field, []).append(f"The {field} field is required.")
        return None
    if isinstance(raw, bool):
        errors.setdefault(field, []).append(f"The {field} must be an integer.")
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        errors.setdefault(field, []).append(f"The {field} must be an integer.")
        return None
