"""Security helpers for response headers, CORS, and password policy."""
from typing import Iterable

from flask import request

CORS_ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
CORS_ALLOWED_HEADERS = "Authorization, Content-Type"


def apply_security_headers(response, force_https: bool = False):
    """Apply headers suitable for a JSON API served behind a browser frontend."""
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Cache-Control", "no-store")
    if force_https or request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
    return response


def apply_cors_headers(response, allowed_origins: Iterable[str]):
    origin = request.headers.get("Origin")
    allowed = set(allowed_origins or [])
    if origin and ("*" in allowed or origin in allowed):
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = CORS_ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = CORS_ALLOWED_HEADERS
        response.headers.add("Vary", "Origin")
    return response


def password_meets_policy(password: str, min_length: int = 4) -> tuple[bool, str | None]:
    if not isinstance(password, str) or len(password) < min_length:
        return False, f"Password must be at least {min_length} characters long."
    return True, None
