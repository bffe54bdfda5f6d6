"""Blueprint registration plus health and upload routes."""
import time

from flask import Blueprint, current_app, send_from_directory
from werkzeug.utils import secure_filename

from utils.errors import NotFoundError
from utils.responses import success_response
from .auth import auth_bp
from .complaints import complaints_bp
from .statistics import statistics_bp
from .users import users_bp

main_bp = Blueprint("main", __name__)

API_VERSION = "1.0.0"
_STARTED_AT = time.monotonic()


@main_bp.route("/api/test", methods=["GET"])
def api_index():
    return success_response(
        message="Citizen Complaints Platform API",
        version=API_VERSION,
        endpoints={
            "auth": "/api/auth",
            "complaints": "/api/complaints",
            "statistics": "/api/statistics",
            "users": "/api/users",
        },
    )


@main_bp.route("/api/health", methods=["GET"])
def health():
    return success_response({"status": "healthy", "uptime": round(time.monotonic() - _STARTED_AT, 1)})


@main_bp.route("/uploads/<string:filename>", methods=["GET"])
def uploaded_photo(filename):
    safe_name = secure_filename(filename)
    if not safe_name or safe_name != filename:
        raise NotFoundError("File not found")
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], safe_name)


__all__ = ["main_bp", "auth_bp", "complaints_bp", "statistics_bp", "users_bp"]
