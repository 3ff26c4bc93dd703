from datetime import datetime, timezone

from flask_login import UserMixin
from sqlalchemy import CheckConstraint
from werkzeug.security import check_password_hash, generate_password_hash

from ..extensions import db
from .location import LocationMixin


class PasswordMixin:
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


class User(db.Model, UserMixin, PasswordMixin, LocationMixin):
    __tablename__ = "users"
    role = "user"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    phone = db.Column(db.String(40), nullable=True)
    image = db.Column(db.String(512), nullable=True)

    # lifestyle preferences, used by pet shop recommendations
    daily_availability = db.Column(db.Integer, nullable=True)  # hours per day
    has_outdoor_space = db.Column(db.Boolean, nullable=False, default=False)
    has_children = db.Column(db.Boolean, nullable=False, default=False)
    has_allergies = db.Column(db.Boolean, nullable=False, default=False)
    experience_level = db.Column(db.Integer, nullable=True)  # 1..5

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint(
            "experience_level IS NULL OR (experience_level BETWEEN 1 AND 5)",
            name="ck_user_experience_range",
        ),
    )

    def preferences_dict(self) -> dict:
        return {
            "daily_availability": self.daily_availability,
            "has_outdoor_space": self.has_outdoor_space,
            "has_children": self.has_children,
            "has_allergies": self.has_allergies,
            "experience_level": self.experience_level,
        }

    def to_public_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "image": self.image}

    def to_dict(self) -> dict:
        return {
            **self.to_public_dict(),
            "email": self.email,
            "phone": self.phone,
            **self.location_dict(),
            "preferences": self.preferences_dict(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Caregiver(db.Model, UserMixin, PasswordMixin, LocationMixin):
    __tablename__ = "caregivers"
    role = "caregiver"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    phone = db.Column(db.String(40), nullable=True)
    image = db.Column(db.String(512), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    experience_years = db.Column(db.Integer, nullable=True)
    hourly_rate = db.Column(db.Float, nullable=True)
    is_verified = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    reviews = db.relationship(
        "Review", back_populates="caregiver", lazy="dynamic", passive_deletes=True
    )

    def rating_summary(self) -> dict:
        from .job import Review

        avg, count = (
            db.session.query(db.func.avg(Review.rating), db.func.count(Review.id))
            .filter(Review.caregiver_id == self.id)
            .one()
        )
        return {
            "average_rating": round(float(avg), 2) if avg is not None else None,
            "review_count": count,
        }

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "bio": self.bio,
            "experience_years": self.experience_years,
            "hourly_rate": self.hourly_rate,
            "is_verified": self.is_verified,
            **self.location_dict(),
            **self.rating_summary(),
        }

    def to_dict(self) -> dict:
        return {
            **self.to_public_dict(),
            "email": self.email,
            "phone": self.phone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Admin(db.Model, UserMixin, PasswordMixin):
    __tablename__ = "admins"
    role = "admin"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), nullable=False, unique=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}


PRINCIPALS = {cls.role: cls for cls in (User, Caregiver, Admin)}
