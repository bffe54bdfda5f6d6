"""State transition protocol: one state change, exactly one audit entry."""
from __future__ import annotations

from typing import Optional

from flask import current_app

from extensions import db
from models import Complaint
from utils import complaint_store, follow_up_ledger
from utils.errors import NotFoundError
from utils.persistence import transactional
from utils.validators import normalize_comment, parse_state


def transition_complaint(complaint_id, authority_id: str, new_state, comment: Optional[str] = None) -> Complaint:
    """Move a complaint to ``new_state`` on behalf of an authority.

    The state update and the follow-up insert share one transaction: if
    either fails, neither is kept. Moving to the current state is allowed
    and still recorded.
    """
    target = parse_state(new_state)
    note = normalize_comment(comment)

    complaint = complaint_store.get_or_raise(complaint_id)
    previous_state = complaint.state

    with transactional("complaint state transition"):
        if not complaint_store.transition_state(complaint.id, target):
            raise NotFoundError("Complaint not found")
        entry_id = follow_up_ledger.record(complaint.id, authority_id, note, previous_state, target)

    db.session.refresh(complaint)
    current_app.logger.info(
        "complaint_state_changed",
        extra={
            "complaint_id": complaint.id,
            "authority_id": authority_id,
            "state_before": previous_state,
            "state_after": target.value,
            "follow_up_id": entry_id,
        },
    )
    return complaint
