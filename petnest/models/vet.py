from datetime import datetime, timezone

from ..extensions import db
from .location import LocationMixin

APPOINTMENT_PENDING = "PENDING"


def _now():
    return datetime.now(timezone.utc)


class VetDoctor(db.Model, LocationMixin):
    __tablename__ = "vet_doctors"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    specialty = db.Column(db.String(120), nullable=True)
    contact = db.Column(db.String(120), nullable=True)
    image = db.Column(db.String(512), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    appointments = db.relationship(
        "Appointment", back_populates="vet", lazy="dynamic", passive_deletes=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "specialty": self.specialty,
            "contact": self.contact,
            "image": self.image,
            "bio": self.bio,
            **self.location_dict(),
        }


class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vet_id = db.Column(
        db.Integer, db.ForeignKey("vet_doctors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(20), nullable=False)  # free text, e.g. "10:30"
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=APPOINTMENT_PENDING)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    vet = db.relationship("VetDoctor", back_populates="appointments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "time": self.time,
            "reason": self.reason,
            "status": self.status,
            "vet": {"id": self.vet.id, "name": self.vet.name, "image": self.vet.image},
        }
