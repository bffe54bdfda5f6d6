"""Input normalisation shared by the forms and the stores."""
from __future__ import annotations

from models import COMPLAINT_CATEGORIES, COMPLAINT_STATES, Coordinates, ComplaintCategory, ComplaintState
from utils.errors import ValidationError

MIN_SEARCH_LENGTH = 3
MAX_COMMENT_LENGTH = 500


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_coordinates(latitude, longitude) -> Coordinates | None:
    """Turn two raw inputs into one optional ``Coordinates`` value.

    Blank strings count as absent. Supplying exactly one of the two is
    rejected, as is anything non-numeric or out of range.
    """
    lat_missing = _blank(latitude)
    lng_missing = _blank(longitude)
    if lat_missing and lng_missing:
        return None
    if lat_missing != lng_missing:
        raise ValidationError.for_field(
            "coordinates", "Latitude and longitude must be sent together (or not at all)."
        )

    errors = []
    try:
        lat = float(latitude)
    except (TypeError, ValueError):
        errors.append({"field": "latitude", "message": "Invalid latitude"})
        lat = None
    try:
        lng = float(longitude)
    except (TypeError, ValueError):
        errors.append({"field": "longitude", "message": "Invalid longitude"})
        lng = None
    if lat is not None and not -90 <= lat <= 90:
        errors.append({"field": "latitude", "message": "Latitude must be between -90 and 90"})
    if lng is not None and not -180 <= lng <= 180:
        errors.append({"field": "longitude", "message": "Longitude must be between -180 and 180"})
    if errors:
        raise ValidationError(errors=errors)
    return Coordinates(lat, lng)


def parse_state(value) -> ComplaintState:
    if isinstance(value, ComplaintState):
        return value
    if value not in COMPLAINT_STATES:
        raise ValidationError.for_field("state", f"Invalid state. Use one of: {', '.join(COMPLAINT_STATES)}")
    return ComplaintState(value)


def parse_category(value) -> ComplaintCategory:
    if isinstance(value, ComplaintCategory):
        return value
    if value not in COMPLAINT_CATEGORIES:
        raise ValidationError.for_field(
            "category", f"Invalid category. Use one of: {', '.join(COMPLAINT_CATEGORIES)}"
        )
    return ComplaintCategory(value)


def normalize_search_term(term) -> str:
    cleaned = (term or "").strip()
    if len(cleaned) < MIN_SEARCH_LENGTH:
        raise ValidationError.for_field("q", f"Search term must be at least {MIN_SEARCH_LENGTH} characters")
    return cleaned


def normalize_comment(comment) -> str | None:
    if _blank(comment):
        return None
    cleaned = str(comment).strip()
    if len(cleaned) > MAX_COMMENT_LENGTH:
        raise ValidationError.for_field("comment", f"Comment must be at most {MAX_COMMENT_LENGTH} characters")
    return cleaned
