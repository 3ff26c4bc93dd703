from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, UniqueConstraint

from ..extensions import db
from .location import LocationMixin

ADOPTION_PENDING = "PENDING"
ADOPTION_ACCEPTED = "ACCEPTED"
ADOPTION_REJECTED = "REJECTED"


class PetDetailsMixin:
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.String(512), nullable=True)
    species = db.Column(db.String(50), nullable=True)
    breed = db.Column(db.String(120), nullable=True)
    gender = db.Column(db.String(20), nullable=True)
    upvotes_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "species": self.species,
            "breed": self.breed,
            "gender": self.gender,
            **self.location_dict(),
            "upvotes_count": self.upvotes_count,
            "user": self.user.to_public_dict() if self.user else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class DonationPost(db.Model, PetDetailsMixin, LocationMixin):
    __tablename__ = "donation_posts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    age = db.Column(db.Integer, nullable=True)
    vaccinated = db.Column(db.Boolean, nullable=False, default=False)
    neutered = db.Column(db.Boolean, nullable=False, default=False)
    is_available = db.Column(db.Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        CheckConstraint("age IS NULL OR age >= 0", name="ck_donation_age_non_negative"),
        CheckConstraint("upvotes_count >= 0", name="ck_donation_upvotes_non_negative"),
    )

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "age": self.age,
            "vaccinated": self.vaccinated,
            "neutered": self.neutered,
            "is_available": self.is_available,
        }


class MissingPost(db.Model, PetDetailsMixin, LocationMixin):
    __tablename__ = "missing_posts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    last_seen_at = db.Column(db.Date, nullable=True)
    contact_info = db.Column(db.String(255), nullable=True)
    is_found = db.Column(db.Boolean, nullable=False, default=False, index=True)

    __table_args__ = (
        CheckConstraint("upvotes_count >= 0", name="ck_missing_upvotes_non_negative"),
    )

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "last_seen_at": self.last_seen_at.isoformat() if self.last_seen_at else None,
            "contact_info": self.contact_info,
            "is_found": self.is_found,
        }


class AdoptionForm(db.Model):
    __tablename__ = "adoption_forms"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    donation_post_id = db.Column(
        db.Integer,
        db.ForeignKey("donation_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description = db.Column(db.Text, nullable=False)
    meeting_time = db.Column(db.DateTime, nullable=True)
    phone = db.Column(db.String(40), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ADOPTION_PENDING, index=True)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("user_id", "donation_post_id", name="uq_adoption_user_post"),
    )

    user = db.relationship("User")
    donation_post = db.relationship("DonationPost")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donation_post_id": self.donation_post_id,
            "user": self.user.to_public_dict() if self.user else None,
            "description": self.description,
            "meeting_time": self.meeting_time.isoformat() if self.meeting_time else None,
            "phone": self.phone,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
