"""Account storage: registration, credentials, and administration."""
from __future__ import annotations

import secrets
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Complaint, User, UserRole
from utils.errors import NotFoundError, PersistenceError, Unauthenticated, ValidationError
from utils.image_utils import remove_photo
from utils.persistence import storage_guard, transactional
from utils.security import password_meets_policy


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _parse_role(role) -> UserRole:
    try:
        return UserRole(role)
    except ValueError as exc:
        raise ValidationError.for_field("role", "Invalid role") from exc


def _check_password(password: str) -> None:
    ok, reason = password_meets_policy(password, current_app.config.get("PASSWORD_MIN_LENGTH", 4))
    if not ok:
        raise ValidationError.for_field("password", reason)


def get(user_id) -> Optional[User]:
    with storage_guard("user lookup"):
        return db.session.get(User, str(user_id))


def get_or_raise(user_id) -> User:
    user = get(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def find_by_email(email: str) -> Optional[User]:
    with storage_guard("user lookup by email"):
        return User.query.filter_by(email=_normalize_email(email)).first()


def list_all() -> List[User]:
    with storage_guard("user listing"):
        return User.query.order_by(User.created_at.desc(), User.id.desc()).all()


def register(name: str, email: str, password: str, role=UserRole.CITIZEN) -> User:
    role = _parse_role(role)
    email = _normalize_email(email)
    _check_password(password)
    if find_by_email(email):
        raise ValidationError.for_field("email", "Email is already registered")

    user = User(name=name.strip(), email=email, role=role.value)
    user.set_password(password)
    try:
        with transactional("user registration"):
            db.session.add(user)
    except PersistenceError as exc:
        # Raced with another registration for the same address.
        if isinstance(exc.__cause__, IntegrityError):
            raise ValidationError.for_field("email", "Email is already registered") from exc
        raise

    current_app.logger.info("user_registered", extra={"user_id": user.id, "role": user.role})
    return user


def authenticate(email: str, password: str, role=None) -> User:
    user = find_by_email(email)
    if user is None or not user.check_password(password or ""):
        raise Unauthenticated("Invalid credentials")
    if role and user.role != _parse_role(role).value:
        raise Unauthenticated("Invalid credentials")
    return user


def update_profile(user: User, name: str) -> User:
    with transactional("profile update"):
        user.name = name.strip()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not user.check_password(current_password or ""):
        raise Unauthenticated("Current password is incorrect")
    _check_password(new_password)
    with transactional("password change"):
        user.set_password(new_password)
    current_app.logger.info("password_changed", extra={"user_id": user.id})


def admin_update(user_id, name: Optional[str] = None, role=None, password: Optional[str] = None) -> User:
    """Administrative update path. Email addresses never change."""
    user = get_or_raise(user_id)
    if password:
        _check_password(password)
    with transactional("user administration update"):
        if name:
            user.name = name.strip()
        if role:
            user.role = _parse_role(role).value
        if password:
            user.set_password(password)
    current_app.logger.info(
        "user_updated",
        extra={"user_id": user.id, "role_changed": bool(role), "password_changed": bool(password)},
    )
    return user


def delete(user_id, acting_user_id: str) -> None:
    if str(user_id) == str(acting_user_id):
        raise ValidationError.for_field("id", "You cannot delete your own account")
    user = get_or_raise(user_id)
    with storage_guard("photo lookup for user deletion"):
        photo_urls = [
            row.photo_url
            for row in db.session.query(Complaint.photo_url).filter(
                Complaint.submitter_id == user.id, Complaint.photo_url.isnot(None)
            )
        ]
    with transactional("user deletion"):
        db.session.delete(user)
    current_app.logger.info(
        "user_deleted",
        extra={"user_id": str(user_id), "acting_user_id": acting_user_id, "photo_count": len(photo_urls)},
    )
    for photo_url in photo_urls:
        remove_photo(photo_url)


def sign_in_with_google(email: str, name: Optional[str], requested_role=None) -> User:
    """Find or provision the account behind a verified Google identity.

    Authority is only granted to new accounts whose address belongs to
    ``GOOGLE_AUTHORITY_DOMAIN``; existing accounts keep their role.
    """
    email = _normalize_email(email)
    if not email:
        raise ValidationError.for_field("credential", "Google account has no email address")
    user = find_by_email(email)
    if user is not None:
        return user

    role = UserRole.CITIZEN
    domain = (current_app.config.get("GOOGLE_AUTHORITY_DOMAIN") or "").strip().lower().lstrip("@")
    if requested_role and _parse_role(requested_role) is UserRole.AUTHORITY:
        if domain and email.endswith("@" + domain):
            role = UserRole.AUTHORITY

    user = User(name=(name or "Google User").strip()[:100], email=email, role=role.value)
    # Password logins stay closed until the user sets one through the admin path.
    user.set_password(secrets.token_hex(32))
    try:
        with transactional("google account provisioning"):
            db.session.add(user)
    except PersistenceError as exc:
        if isinstance(exc.__cause__, IntegrityError):
            existing = find_by_email(email)
            if existing is not None:
                return existing
        raise

    current_app.logger.info("user_registered", extra={"user_id": user.id, "role": user.role, "via": "google"})
    return user
