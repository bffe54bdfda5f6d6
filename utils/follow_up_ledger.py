"""Append-only audit trail of complaint state transitions."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import aliased

from extensions import db
from models import Complaint, FollowUpEntry, User, utcnow
from utils.persistence import storage_guard
from utils.validators import normalize_comment, parse_state


def day_key(value) -> Optional[str]:
    """Normalise ``DATE(...)`` results, which differ between drivers."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)[:10]


def record(complaint_id, authority_id: Optional[str], comment, state_before, state_after) -> int:
    """Insert one entry and return its id.

    The entry is flushed, not committed, so it joins whatever transaction
    the caller has open.
    """
    entry = FollowUpEntry(
        complaint_id=str(complaint_id),
        authority_id=authority_id,
        comment=normalize_comment(comment),
        state_before=parse_state(state_before).value,
        state_after=parse_state(state_after).value,
    )
    with storage_guard("follow-up record"):
        db.session.add(entry)
        db.session.flush()
    return entry.id


def list_for_complaint(complaint_id) -> List[FollowUpEntry]:
    with storage_guard("follow-up listing"):
        return (
            FollowUpEntry.query.filter_by(complaint_id=str(complaint_id))
            .order_by(FollowUpEntry.changed_at.desc(), FollowUpEntry.id.desc())
            .all()
        )


def recent_history(limit: int = 100) -> List[Dict]:
    authority = aliased(User)
    citizen = aliased(User)
    with storage_guard("follow-up history"):
        rows = (
            db.session.query(
                FollowUpEntry,
                Complaint.title,
                authority.name,
                citizen.name,
            )
            .join(Complaint, FollowUpEntry.complaint_id == Complaint.id)
            .outerjoin(authority, FollowUpEntry.authority_id == authority.id)
            .join(citizen, Complaint.submitter_id == citizen.id)
            .order_by(FollowUpEntry.changed_at.desc(), FollowUpEntry.id.desc())
            .limit(limit)
            .all()
        )
    history = []
    for entry, title, authority_name, citizen_name in rows:
        item = entry.to_dict()
        item.update(
            {
                "complaint_title": title,
                "authority_name": authority_name,
                "citizen_name": citizen_name,
            }
        )
        history.append(item)
    return history


def recent_stats(window_days: int = 30) -> List[Dict]:
    """Transition counts per day, resulting state, and authority over a window."""
    since = utcnow() - timedelta(days=window_days)
    day = func.date(FollowUpEntry.changed_at)
    with storage_guard("follow-up statistics"):
        rows = (
            db.session.query(
                day.label("day"),
                FollowUpEntry.state_after,
                FollowUpEntry.authority_id,
                User.name,
                func.count(FollowUpEntry.id),
            )
            .outerjoin(User, FollowUpEntry.authority_id == User.id)
            .filter(FollowUpEntry.changed_at >= since)
            .group_by(day, FollowUpEntry.state_after, FollowUpEntry.authority_id, User.name)
            .order_by(day.desc())
            .all()
        )
    return [
        {
            "date": day_key(row_day),
            "state_after": state_after,
            "authority_id": authority_id,
            "authority_name": authority_name,
            "changes": int(count),
        }
        for row_day, state_after, authority_id, authority_name, count in rows
    ]
