"""Photo validation and storage for complaint uploads."""
import io
import os
import uuid
from typing import Iterable, Tuple

from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from utils.errors import ValidationError

DEFAULT_ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")
DEFAULT_MAX_PHOTO_BYTES = 5 * 1024 * 1024  # 5 MB
PHOTO_PREFIX = "denuncia-"

# Pillow format name -> extensions it may legitimately arrive with.
_FORMAT_EXTENSIONS = {
    "JPEG": {"jpg", "jpeg"},
    "PNG": {"png"},
    "GIF": {"gif"},
    "WEBP": {"webp"},
}


def _fail_if(condition: bool, message: str) -> None:
    if condition:
        raise ValidationError.for_field("photo", message)


def validate_photo(
    file: FileStorage,
    allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
    max_bytes: int = DEFAULT_MAX_PHOTO_BYTES,
) -> Tuple[bytes, str]:
    allowed = {ext.lower() for ext in allowed_extensions}
    filename = secure_filename(file.filename or "")
    _fail_if(not filename or "." not in filename, "Unsupported file name")
    ext = filename.rsplit(".", 1)[1].lower()
    _fail_if(ext not in allowed, f"File type not allowed. Allowed extensions: {', '.join(sorted(allowed))}")

    content = file.read(max_bytes + 1)
    _fail_if(len(content) == 0, "Empty file")
    _fail_if(len(content) > max_bytes, f"File is too large. Maximum {max_bytes // (1024 * 1024)}MB.")

    try:
        with Image.open(io.BytesIO(content)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValidationError.for_field("photo", "Invalid image data") from exc
    _fail_if(ext not in _FORMAT_EXTENSIONS.get(image_format or "", set()), "File contents do not match its extension")

    file.stream.seek(0)
    return content, ext


def save_photo(file: FileStorage) -> str:
    """Validate and store an uploaded photo; return its public URL."""
    config = current_app.config
    content, ext = validate_photo(
        file,
        allowed_extensions=config.get("ALLOWED_PHOTO_EXTENSIONS", DEFAULT_ALLOWED_EXTENSIONS),
        max_bytes=int(config.get("MAX_PHOTO_BYTES", DEFAULT_MAX_PHOTO_BYTES)),
    )
    upload_dir = config["UPLOAD_FOLDER"]
    os.makedirs(upload_dir, exist_ok=True)
    stored_name = secure_filename(f"{PHOTO_PREFIX}{uuid.uuid4().hex}.{ext}")
    with open(os.path.join(upload_dir, stored_name), "wb") as f:
        f.write(content)
    return f"{config.get('UPLOAD_URL_PREFIX', '/uploads')}/{stored_name}"


def photo_path(photo_url: str) -> str:
    # Only the basename is trusted; URLs never address anything outside the upload folder.
    return os.path.join(current_app.config["UPLOAD_FOLDER"], os.path.basename(photo_url or ""))


def remove_photo(photo_url: str) -> bool:
    """Best-effort removal. Failures are logged, never raised."""
    path = photo_path(photo_url)
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        current_app.logger.warning("photo_cleanup_missing", extra={"photo_url": photo_url})
    except OSError:
        current_app.logger.warning("photo_cleanup_failed", extra={"photo_url": photo_url}, exc_info=True)
    return False
