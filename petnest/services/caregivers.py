from __future__ import annotations

from ..errors import NotFound
from ..extensions import db
from ..models.job import Review
from ..models.location import normalize_location
from ..models.user import Caregiver


def get_caregiver(caregiver_id: int) -> Caregiver:
    caregiver = db.session.get(Caregiver, caregiver_id)
    if caregiver is None:
        raise NotFound("Caregiver not found")
    return caregiver


def list_caregivers(city=None, area=None, verified_only: bool = False) -> list:
    q = Caregiver.query
    if city:
        q = q.filter(Caregiver.city == normalize_location(city))
    if area:
        q = q.filter(Caregiver.area == normalize_location(area))
    if verified_only:
        q = q.filter(Caregiver.is_verified.is_(True))
    return q.order_by(Caregiver.name.asc()).all()


def profile(caregiver_id: int) -> dict:
    caregiver = get_caregiver(caregiver_id)
    data = caregiver.to_public_dict()
    data["reviews"] = [
        r.to_dict()
        for r in caregiver.reviews.order_by(Review.created_at.desc()).limit(20)
    ]
    return data

