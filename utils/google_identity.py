"""Verification of Google Sign-In ID tokens."""
from __future__ import annotations

from typing import Any, Dict

from flask import current_app
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from utils.errors import ServiceError, Unauthenticated


def verify_credential(credential: str) -> Dict[str, Any]:
    """Return the claims of a Google ID token issued for this application."""
    client_id = current_app.config.get("GOOGLE_CLIENT_ID")
    if not client_id:
        raise ServiceError("Google sign-in is not configured")
    try:
        claims = id_token.verify_oauth2_token(credential, google_requests.Request(), client_id)
    except (ValueError, GoogleAuthError) as exc:
        current_app.logger.warning("google_token_rejected", extra={"reason": str(exc)})
        raise Unauthenticated("Invalid Google credential") from exc
    if claims.get("email_verified") is False:
        raise Unauthenticated("Google account email is not verified")
    return claims
