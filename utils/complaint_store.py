"""Complaint records and their state column."""
from __future__ import annotations

from typing import List, Optional

from flask import current_app
from sqlalchemy import or_

from extensions import db
from models import Complaint, ComplaintState, Coordinates
from utils.errors import NotFoundError
from utils.image_utils import remove_photo
from utils.persistence import storage_guard, transactional
from utils.validators import normalize_search_term, parse_category, parse_state


def _newest_first(query):
    return query.order_by(Complaint.created_at.desc(), Complaint.id.desc())


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def create(
    submitter_id: str,
    title: str,
    description: str,
    category,
    address: str,
    coordinates: Optional[Coordinates] = None,
    photo_url: Optional[str] = None,
) -> Complaint:
    """Insert a complaint in the ``pending`` state.

    Field lengths are checked by the forms before this is reached; the
    category is re-checked here because the column has a closed set.
    """
    complaint = Complaint(
        submitter_id=submitter_id,
        title=title.strip(),
        description=description.strip(),
        category=parse_category(category).value,
        address=address.strip(),
        photo_url=photo_url or None,
        state=ComplaintState.PENDING.value,
    )
    complaint.coordinates = coordinates
    with transactional("complaint creation"):
        db.session.add(complaint)

    current_app.logger.info(
        "complaint_created",
        extra={
            "complaint_id": complaint.id,
            "submitter_id": submitter_id,
            "category": complaint.category,
            "has_coordinates": coordinates is not None,
            "has_photo": bool(photo_url),
        },
    )
    return complaint


def get(complaint_id) -> Optional[Complaint]:
    with storage_guard("complaint lookup"):
        return db.session.get(Complaint, str(complaint_id))


def get_or_raise(complaint_id) -> Complaint:
    complaint = get(complaint_id)
    if complaint is None:
        raise NotFoundError("Complaint not found")
    return complaint


def list_all() -> List[Complaint]:
    with storage_guard("complaint listing"):
        return _newest_first(Complaint.query).all()


def list_by_submitter(submitter_id: str) -> List[Complaint]:
    with storage_guard("complaint listing by submitter"):
        return _newest_first(Complaint.query.filter_by(submitter_id=submitter_id)).all()


def list_by_category(category) -> List[Complaint]:
    value = parse_category(category).value
    with storage_guard("complaint listing by category"):
        return _newest_first(Complaint.query.filter_by(category=value)).all()


def list_by_state(state) -> List[Complaint]:
    value = parse_state(state).value
    with storage_guard("complaint listing by state"):
        return _newest_first(Complaint.query.filter_by(state=value)).all()


def search(term: str) -> List[Complaint]:
    """Case-insensitive substring match over title, description, and address."""
    cleaned = normalize_search_term(term)
    pattern = _like_pattern(cleaned)
    with storage_guard("complaint search"):
        query = Complaint.query.filter(
            or_(
                Complaint.title.ilike(pattern, escape="\\"),
                Complaint.description.ilike(pattern, escape="\\"),
                Complaint.address.ilike(pattern, escape="\\"),
            )
        )
        return _newest_first(query).all()


def recent(limit: int = 10) -> List[Complaint]:
    with storage_guard("recent complaints"):
        return _newest_first(Complaint.query).limit(limit).all()


def transition_state(complaint_id, new_state) -> bool:
    """Update the state column only. Not committed; see ``utils.transitions``."""
    value = parse_state(new_state).value
    with storage_guard("complaint state update"):
        updated = (
            Complaint.query.filter_by(id=str(complaint_id))
            .update({Complaint.state: value}, synchronize_session="fetch")
        )
    return updated > 0


def delete(complaint_id, requesting_submitter_id: str) -> bool:
    """Delete a complaint owned by the requester.

    Returns False when the complaint does not exist or belongs to someone
    else; callers report both cases the same way.
    """
    with storage_guard("complaint ownership lookup"):
        complaint = Complaint.query.filter_by(
            id=str(complaint_id), submitter_id=requesting_submitter_id
        ).first()
    if complaint is None:
        return False

    photo_url = complaint.photo_url
    with transactional("complaint deletion"):
        db.session.delete(complaint)

    current_app.logger.info(
        "complaint_deleted",
        extra={"complaint_id": str(complaint_id), "submitter_id": requesting_submitter_id},
    )
    if photo_url:
        remove_photo(photo_url)
    return True
