"""Read-side reports over complaints and their follow-up entries.

Every call recomputes from the current tables; nothing is cached.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, literal_column

from extensions import db
from models import (
    COMPLAINT_CATEGORIES,
    COMPLAINT_STATES,
    Complaint,
    ComplaintState,
    FollowUpEntry,
    USER_ROLES,
    User,
    UserRole,
    utcnow,
)
from utils import complaint_store, follow_up_ledger
from utils.errors import ValidationError
from utils.follow_up_ledger import day_key
from utils.persistence import storage_guard

PERIODS: tuple[str, ...] = ("dia", "semana", "mes", "ano")
HEAT_MAP_PRECISION = 4


def resolution_percentage(resolved: int, total: int) -> float:
    if not total:
        return 0
    return round(resolved / total * 100, 2)


def _grouped_counts(column, base_filters=()) -> Dict[str, int]:
    rows = (
        db.session.query(column, func.count(Complaint.id))
        .filter(*base_filters)
        .group_by(column)
        .all()
    )
    return {key: int(count) for key, count in rows}


def _timeline(base_filters=()) -> List[Dict]:
    day = func.date(Complaint.created_at)
    rows = (
        db.session.query(day, func.count(Complaint.id))
        .filter(*base_filters)
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [{"date": day_key(row_day), "complaints": int(count)} for row_day, count in rows]


def _summarize(base_filters=()) -> Dict:
    by_state = _grouped_counts(Complaint.state, base_filters)
    by_category = _grouped_counts(Complaint.category, base_filters)
    states = {state: by_state.get(state, 0) for state in COMPLAINT_STATES}
    total = sum(by_state.values())
    return {
        "total": total,
        "states": states,
        "categories": {category: by_category[category] for category in COMPLAINT_CATEGORIES if category in by_category},
        "timeline": _timeline(base_filters),
        "resolution_percentage": resolution_percentage(states[ComplaintState.RESOLVED.value], total),
    }


def general_summary(window_days: int = 30, recent_limit: int = 5) -> Dict:
    """Totals, per-state and per-category counts, timeline, and context lists."""
    with storage_guard("general statistics"):
        summary = _summarize()
    summary["follow_ups"] = follow_up_ledger.recent_stats(window_days)
    summary["users"] = user_stats(window_days)
    summary["recent_complaints"] = [c.to_dict() for c in complaint_store.recent(recent_limit)]
    return summary


def period_bounds(period: str, today: Optional[date] = None) -> Tuple[datetime, datetime]:
    """Half-open ``[start, end)`` range for today, this week, month, or year."""
    today = today or utcnow().date()
    if period == "dia":
        start = today
        end = today + timedelta(days=1)
    elif period == "semana":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=7)
    elif period == "mes":
        start = today.replace(day=1)
        end = (start.replace(year=start.year + 1, month=1) if start.month == 12 else start.replace(month=start.month + 1))
    elif period == "ano":
        start = today.replace(month=1, day=1)
        end = start.replace(year=start.year + 1)
    else:
        raise ValidationError.for_field("period", f"Invalid period. Use: {', '.join(PERIODS)}")
    return datetime.combine(start, datetime.min.time()), datetime.combine(end, datetime.min.time())


def period_summary(period: str, today: Optional[date] = None) -> Dict:
    start, end = period_bounds(period, today)
    filters = (Complaint.created_at >= start, Complaint.created_at < end)
    with storage_guard("period statistics"):
        summary = _summarize(filters)
    summary.update({"period": period, "start": start.isoformat(), "end": end.isoformat()})
    return summary


def authority_ranking(limit: int = 10) -> List[Dict]:
    """Rank authorities by complaints resolved, then by complaints touched.

    A complaint counts for every authority that recorded a transition on it.
    ``avg_resolution_hours`` averages creation-to-first-resolution time over
    the touched complaints that have been resolved; it is ``None`` when none
    have.
    """
    with storage_guard("authority ranking"):
        authorities = User.query.filter_by(role=UserRole.AUTHORITY.value).all()
        touched_pairs = (
            db.session.query(FollowUpEntry.authority_id, FollowUpEntry.complaint_id)
            .filter(FollowUpEntry.authority_id.isnot(None))
            .distinct()
            .all()
        )
        complaint_ids = {complaint_id for _, complaint_id in touched_pairs}
        complaints = {}
        if complaint_ids:
            complaints = {
                c.id: c
                for c in Complaint.query.filter(Complaint.id.in_(complaint_ids)).all()
            }
        resolutions = (
            db.session.query(FollowUpEntry.complaint_id, FollowUpEntry.changed_at)
            .filter(FollowUpEntry.state_after == ComplaintState.RESOLVED.value)
            .all()
        )

    first_resolved: Dict[str, datetime] = {}
    for complaint_id, changed_at in resolutions:
        current = first_resolved.get(complaint_id)
        if current is None or changed_at < current:
            first_resolved[complaint_id] = changed_at

    touched_by: Dict[str, set] = {}
    for authority_id, complaint_id in touched_pairs:
        touched_by.setdefault(authority_id, set()).add(complaint_id)

    ranking = []
    for authority in authorities:
        touched = touched_by.get(authority.id, set())
        resolved = 0
        hours: List[float] = []
        for complaint_id in touched:
            complaint = complaints.get(complaint_id)
            if complaint is None:
                continue
            if complaint.state == ComplaintState.RESOLVED.value:
                resolved += 1
            resolved_at = first_resolved.get(complaint_id)
            if resolved_at is not None:
                hours.append((resolved_at - complaint.created_at).total_seconds() / 3600)
        ranking.append(
            {
                "id": authority.id,
                "name": authority.name,
                "email": authority.email,
                "complaints_handled": len(touched),
                "complaints_resolved": resolved,
                "avg_resolution_hours": round(sum(hours) / len(hours), 2) if hours else None,
            }
        )

    ranking.sort(key=lambda r: (-r["complaints_resolved"], -r["complaints_handled"], r["name"]))
    return ranking[:limit]


def heat_map(precision: int = HEAT_MAP_PRECISION) -> List[Dict]:
    """Complaint counts per rounded coordinate, category, and state."""
    lat = func.round(Complaint.latitude, literal_column(str(int(precision))))
    lng = func.round(Complaint.longitude, literal_column(str(int(precision))))
    with storage_guard("heat map"):
        rows = (
            db.session.query(lat, lng, Complaint.category, Complaint.state, func.count(Complaint.id))
            .filter(Complaint.latitude.isnot(None), Complaint.longitude.isnot(None))
            .group_by(lat, lng, Complaint.category, Complaint.state)
            .all()
        )
    return [
        {
            "latitude": round(float(row_lat), precision),
            "longitude": round(float(row_lng), precision),
            "category": category,
            "state": state,
            "count": int(count),
        }
        for row_lat, row_lng, category, state, count in rows
    ]


def user_stats(window_days: int = 30) -> Dict:
    since = utcnow() - timedelta(days=window_days)
    day = func.date(User.created_at)
    with storage_guard("user statistics"):
        by_role = dict(db.session.query(User.role, func.count(User.id)).group_by(User.role).all())
        registrations = (
            db.session.query(day, func.count(User.id))
            .filter(User.created_at >= since)
            .group_by(day)
            .order_by(day)
            .all()
        )
    roles = {role: int(by_role.get(role, 0)) for role in USER_ROLES}
    return {
        "total": sum(roles.values()),
        "roles": roles,
        "registrations": [{"date": day_key(d), "users": int(count)} for d, count in registrations],
    }
