"""Vet directory and appointment booking."""
from __future__ import annotations

import logging

from ..errors import NotFound
from ..extensions import db
from ..models.vet import Appointment, VetDoctor

logger = logging.getLogger(__name__)


def get_vet(vet_id: int) -> VetDoctor:
    vet = db.session.get(VetDoctor, vet_id)
    if vet is None:
        raise NotFound("Vet not found")
    return vet


def list_vets(user) -> dict:
    """Every vet, plus the ones sharing the user's city and area.

    A user without a stored city or area has no nearby vets.
    """
    all_vets = VetDoctor.query.order_by(VetDoctor.name.asc(), VetDoctor.id.asc()).all()
    if not user.city or not user.area:
        return {"nearby_vets": [], "all_vets": all_vets}
    nearby = [v for v in all_vets if v.city == user.city and v.area == user.area]
    return {"nearby_vets": nearby, "all_vets": all_vets}


def create_appointment(user, data: dict) -> Appointment:
    vet = get_vet(data["vet_id"])
    appointment = Appointment(
        user_id=user.id,
        vet_id=vet.id,
        date=data["date"],
        time=data["time"].strip(),
        reason=data["reason"].strip(),
    )
    db.session.add(appointment)
    db.session.commit()
    logger.info("Appointment %s booked by user %s with vet %s", appointment.id, user.id, vet.id)
    return appointment


def list_appointments(user) -> list:
    return (
        Appointment.query.filter_by(user_id=user.id)
        .order_by(Appointment.date.asc(), Appointment.time.asc(), Appointment.id.asc())
        .all()
    )
