"""Bearer token issuance and verification."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import current_app
from jose import JWTError, jwt

from utils.errors import Unauthenticated


def issue_token(user) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "name": user.name,
        "iat": now,
        "exp": now + current_app.config["JWT_EXPIRES"],
    }
    return jwt.encode(claims, current_app.config["JWT_SECRET"], algorithm=current_app.config["JWT_ALGORITHM"])


def decode_token(token: str) -> Dict[str, Any]:
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError as exc:
        raise Unauthenticated("Invalid or expired token") from exc
    if not claims.get("sub"):
        raise Unauthenticated("Invalid or expired token")
    return claims


def bearer_token(authorization_header: Optional[str]) -> Optional[str]:
    """Extract the token from ``Authorization: Bearer <token>``."""
    if not authorization_header:
        return None
    scheme, _, token = authorization_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Invalid token format. Use: Bearer <token>")
    return token.strip()
