"""Authorization decorators for role-based access control."""
from functools import wraps

from flask import current_app, request
from flask_login import current_user, login_required

from models import UserRole
from utils.errors import Forbidden

ROLE_DENIED_MESSAGES = {
    frozenset({UserRole.AUTHORITY}): "Access denied. Authorities only.",
    frozenset({UserRole.CITIZEN}): "Access denied. Citizens only.",
}


def roles_required(*roles: UserRole):
    allowed = frozenset(UserRole(r) for r in roles)

    def decorator(view_func):
        @wraps(view_func)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.has_role(*allowed):
                return view_func(*args, **kwargs)

            current_app.logger.warning(
                "Unauthorized role access attempt",
                extra={
                    "user_id": current_user.id,
                    "role": current_user.role,
                    "path": request.path,
                    "method": request.method,
                },
            )
            raise Forbidden(ROLE_DENIED_MESSAGES.get(allowed))

        return wrapped

    return decorator


authority_required = roles_required(UserRole.AUTHORITY)
citizen_required = roles_required(UserRole.CITIZEN)
