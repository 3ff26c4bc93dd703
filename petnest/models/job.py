from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, UniqueConstraint, or_

from ..extensions import db
from .location import LocationMixin

JOB_OPEN = "OPEN"
JOB_ONGOING = "ONGOING"
JOB_CLOSED = "CLOSED"

APPLICATION_PENDING = "PENDING"
APPLICATION_ACCEPTED = "ACCEPTED"
APPLICATION_REJECTED = "REJECTED"


class JobPost(db.Model, LocationMixin):
    __tablename__ = "job_posts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    selected_caregiver_id = db.Column(
        db.Integer, db.ForeignKey("caregivers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    tags = db.Column(db.String(500), nullable=True)  # comma separated, lower-case
    pet_type = db.Column(db.String(50), nullable=True)

    min_price = db.Column(db.Float, nullable=False)
    max_price = db.Column(db.Float, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=JOB_OPEN, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    closed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("min_price >= 0 AND max_price >= min_price", name="ck_job_price_range"),
        CheckConstraint("end_date >= start_date", name="ck_job_date_range"),
    )

    user = db.relationship("User")
    selected_caregiver = db.relationship("Caregiver")
    applications = db.relationship(
        "Application", back_populates="job", lazy="dynamic", passive_deletes=True
    )

    @property
    def tag_list(self) -> list:
        return [t for t in (self.tags or "").split(",") if t]

    @tag_list.setter
    def tag_list(self, values) -> None:
        self.tags = ",".join(values or []) or None

    @staticmethod
    def tag_filter(tag: str):
        t = tag.strip().lower()
        return or_(
            JobPost.tags == t,
            JobPost.tags.like(f"{t},%"),
            JobPost.tags.like(f"%,{t}"),
            JobPost.tags.like(f"%,{t},%"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "tags": self.tag_list,
            "pet_type": self.pet_type,
            **self.location_dict(),
            "min_price": self.min_price,
            "max_price": self.max_price,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status,
            "user": self.user.to_public_dict() if self.user else None,
            "selected_caregiver": (
                {"id": self.selected_caregiver.id, "name": self.selected_caregiver.name}
                if self.selected_caregiver
                else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Application(db.Model):
    __tablename__ = "applications"

    id = db.Column(db.Integer, primary_key=True)
    job_post_id = db.Column(
        db.Integer, db.ForeignKey("job_posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    caregiver_id = db.Column(
        db.Integer, db.ForeignKey("caregivers.id", ondelete="CASCADE"), nullable=False, index=True
    )

    proposal = db.Column(db.Text, nullable=False)
    requested_amount = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=APPLICATION_PENDING, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("caregiver_id", "job_post_id", name="uq_application_caregiver_job"),
    )

    job = db.relationship("JobPost", back_populates="applications")
    caregiver = db.relationship("Caregiver")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_post_id": self.job_post_id,
            "caregiver": (
                {"id": self.caregiver.id, "name": self.caregiver.name,
                 "image": self.caregiver.image, "is_verified": self.caregiver.is_verified}
                if self.caregiver
                else None
            ),
            "proposal": self.proposal,
            "requested_amount": self.requested_amount,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    job_post_id = db.Column(
        db.Integer, db.ForeignKey("job_posts.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    caregiver_id = db.Column(
        db.Integer, db.ForeignKey("caregivers.id", ondelete="CASCADE"), nullable=False, index=True
    )

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
    )

    user = db.relationship("User")
    caregiver = db.relationship("Caregiver", back_populates="reviews")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_post_id": self.job_post_id,
            "caregiver_id": self.caregiver_id,
            "user": self.user.to_public_dict() if self.user else None,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
