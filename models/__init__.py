"""Core data models for accounts, complaints, and the follow-up audit trail."""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from flask_login import UserMixin
from sqlalchemy import event, inspect
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db


def generate_uuid() -> str:
	return str(uuid.uuid4())


def utcnow() -> datetime:
	# Columns are naive UTC, matching what the database hands back.
	return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole(str, Enum):
	CITIZEN = "citizen"
	AUTHORITY = "authority"


class ComplaintState(str, Enum):
	PENDING = "pending"
	IN_PROGRESS = "in_progress"
	RESOLVED = "resolved"


class ComplaintCategory(str, Enum):
	POTHOLE = "pothole"
	LIGHTING = "lighting"
	TRASH = "trash"
	WATER = "water"
	SECURITY = "security"
	TRANSPORT = "transport"
	OTHER = "other"


USER_ROLES: tuple[str, ...] = tuple(r.value for r in UserRole)
COMPLAINT_STATES: tuple[str, ...] = tuple(s.value for s in ComplaintState)
COMPLAINT_CATEGORIES: tuple[str, ...] = tuple(c.value for c in ComplaintCategory)

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def _sql_in(values: tuple[str, ...]) -> str:
	return ",".join(f"'{v}'" for v in values)


@dataclass(frozen=True)
class Coordinates:
	"""A latitude/longitude pair. A complaint has one of these or none at all."""

	latitude: float
	longitude: float

	def __post_init__(self) -> None:
		lat_min, lat_max = LATITUDE_RANGE
		lng_min, lng_max = LONGITUDE_RANGE
		if not lat_min <= float(self.latitude) <= lat_max:
			raise ValueError("Latitude must be between -90 and 90")
		if not lng_min <= float(self.longitude) <= lng_max:
			raise ValueError("Longitude must be between -180 and 180")

	def as_dict(self) -> dict:
		return {"latitude": float(self.latitude), "longitude": float(self.longitude)}


class User(UserMixin, db.Model):
	__tablename__ = "users"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	name = db.Column(db.String(100), nullable=False)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password_hash = db.Column(db.String(255), nullable=False)
	role = db.Column(db.String(20), nullable=False, default=UserRole.CITIZEN.value, index=True)
	created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(f"role IN ({_sql_in(USER_ROLES)})", name="ck_user_role_valid"),
	)

	complaints = db.relationship(
		"Complaint",
		back_populates="submitter",
		cascade="all, delete-orphan",
		passive_deletes=True,
	)
	follow_ups = db.relationship("FollowUpEntry", back_populates="authority", passive_deletes=True)

	def set_password(self, password: str) -> None:
		self.password_hash = generate_password_hash(password, method="pbkdf2:sha256", salt_length=16)

	def check_password(self, password: str) -> bool:
		return check_password_hash(self.password_hash, password)

	@property
	def user_role(self) -> UserRole:
		return UserRole(self.role)

	def has_role(self, *roles: UserRole) -> bool:
		return self.role in {UserRole(r).value for r in roles}

	@property
	def is_authority(self) -> bool:
		return self.role == UserRole.AUTHORITY.value

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"email": self.email,
			"role": self.role,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}


class Complaint(db.Model):
	__tablename__ = "complaints"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	submitter_id = db.Column(
		db.String(36),
		db.ForeignKey("users.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)
	title = db.Column(db.String(200), nullable=False)
	description = db.Column(db.Text, nullable=False)
	category = db.Column(db.String(20), nullable=False, index=True)
	latitude = db.Column(db.Numeric(10, 7, asdecimal=False), nullable=True)
	longitude = db.Column(db.Numeric(10, 7, asdecimal=False), nullable=True)
	address = db.Column(db.String(255), nullable=False)
	photo_url = db.Column(db.String(500), nullable=True)
	state = db.Column(db.String(20), nullable=False, default=ComplaintState.PENDING.value, index=True)
	created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(f"category IN ({_sql_in(COMPLAINT_CATEGORIES)})", name="ck_complaint_category_valid"),
		db.CheckConstraint(f"state IN ({_sql_in(COMPLAINT_STATES)})", name="ck_complaint_state_valid"),
		db.CheckConstraint(
			"(latitude IS NULL AND longitude IS NULL) OR (latitude IS NOT NULL AND longitude IS NOT NULL)",
			name="ck_complaint_coordinates_paired",
		),
		db.Index("ix_complaints_state_created", "state", "created_at"),
	)

	submitter = db.relationship("User", back_populates="complaints")
	follow_ups = db.relationship(
		"FollowUpEntry",
		back_populates="complaint",
		order_by="FollowUpEntry.changed_at.desc()",
		cascade="all, delete-orphan",
		passive_deletes=True,
	)

	@property
	def coordinates(self) -> Coordinates | None:
		if self.latitude is None or self.longitude is None:
			return None
		return Coordinates(float(self.latitude), float(self.longitude))

	@coordinates.setter
	def coordinates(self, value: Coordinates | None) -> None:
		if value is None:
			self.latitude = None
			self.longitude = None
			return
		self.latitude = float(value.latitude)
		self.longitude = float(value.longitude)

	def to_dict(self, include_follow_ups: bool = False) -> dict:
		coords = self.coordinates
		payload = {
			"id": self.id,
			"submitter_id": self.submitter_id,
			"submitter_name": self.submitter.name if self.submitter else None,
			"title": self.title,
			"description": self.description,
			"category": self.category,
			"latitude": coords.latitude if coords else None,
			"longitude": coords.longitude if coords else None,
			"address": self.address,
			"photo_url": self.photo_url,
			"state": self.state,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}
		if include_follow_ups:
			payload["follow_ups"] = [entry.to_dict() for entry in self.follow_ups]
		return payload


class FollowUpEntry(db.Model):
	__tablename__ = "followup_entries"

	id = db.Column(db.Integer, primary_key=True)
	complaint_id = db.Column(
		db.String(36),
		db.ForeignKey("complaints.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)
	authority_id = db.Column(
		db.String(36),
		db.ForeignKey("users.id", ondelete="SET NULL"),
		nullable=True,
		index=True,
	)
	comment = db.Column(db.String(500), nullable=True)
	state_before = db.Column(db.String(20), nullable=False)
	state_after = db.Column(db.String(20), nullable=False, index=True)
	changed_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(f"state_before IN ({_sql_in(COMPLAINT_STATES)})", name="ck_followup_state_before_valid"),
		db.CheckConstraint(f"state_after IN ({_sql_in(COMPLAINT_STATES)})", name="ck_followup_state_after_valid"),
	)

	complaint = db.relationship("Complaint", back_populates="follow_ups")
	authority = db.relationship("User", back_populates="follow_ups")

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"complaint_id": self.complaint_id,
			"authority_id": self.authority_id,
			"authority_name": self.authority.name if self.authority else None,
			"comment": self.comment,
			"state_before": self.state_before,
			"state_after": self.state_after,
			"changed_at": self.changed_at.isoformat() if self.changed_at else None,
		}


@event.listens_for(FollowUpEntry, "before_update")
def _reject_follow_up_updates(mapper, connection, target):
	changed = {attr.key for attr in inspect(target).attrs if attr.history.has_changes()}
	if not changed:
		return
	# Removing the acting authority nulls its reference; nothing else may change.
	if changed - {"authority_id", "authority"}:
		raise ValueError("Follow-up entries are immutable once recorded")
