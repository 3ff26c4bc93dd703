"""Registration, login and profile updates for users, caregivers and admins."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..errors import AuthenticationFailed, Conflict
from ..extensions import db, media
from ..models.user import Admin, Caregiver, User

logger = logging.getLogger(__name__)

USER_FIELDS = ("name", "phone")
PREFERENCE_FIELDS = (
    "daily_availability", "has_outdoor_space", "has_children", "has_allergies", "experience_level",
)
CAREGIVER_FIELDS = ("name", "phone", "bio", "experience_years", "hourly_rate")


def _register(model, data: dict, fields: tuple):
    email = data["email"].strip().lower()
    if model.query.filter_by(email=email).first():
        raise Conflict("Email is already registered.")
    account = model(email=email, name=data["name"].strip())
    for key in fields:
        if key != "name" and data.get(key) is not None:
            setattr(account, key, data[key])
    account.set_location(data.get("country"), data.get("city"), data.get("area"))
    account.set_password(data["password"])
    try:
        db.session.add(account)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Email is already registered.")
    logger.info("Registered %s %s", model.role, account.id)
    return account


def register_user(data: dict) -> User:
    return _register(User, data, USER_FIELDS + PREFERENCE_FIELDS)


def register_caregiver(data: dict) -> Caregiver:
    return _register(Caregiver, data, CAREGIVER_FIELDS)


def authenticate(model, email: str, password: str):
    account = model.query.filter_by(email=email.strip().lower()).first()
    if not account or not account.check_password(password):
        logger.warning("Failed %s login for %s", model.role, email)
        raise AuthenticationFailed("Invalid credentials.")
    return account


def authenticate_admin(username: str, password: str) -> Admin:
    admin = Admin.query.filter_by(username=username.strip()).first()
    if not admin or not admin.check_password(password):
        logger.warning("Failed admin login for %s", username)
        raise AuthenticationFailed("Invalid credentials.")
    return admin


def create_admin(username: str, password: str) -> Admin:
    if Admin.query.filter_by(username=username).first():
        raise Conflict("Admin already exists.")
    admin = Admin(username=username)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    return admin


def update_profile(account, data: dict, fields: tuple):
    for key in fields:
        if key in data and data[key] is not None:
            setattr(account, key, data[key])
    account.set_location(data.get("country"), data.get("city"), data.get("area"))
    db.session.commit()
    return account


def update_user_profile(user: User, data: dict) -> User:
    return update_profile(user, data, USER_FIELDS)


def update_preferences(user: User, data: dict) -> User:
    return update_profile(user, data, PREFERENCE_FIELDS)


def update_caregiver_profile(caregiver: Caregiver, data: dict) -> Caregiver:
    return update_profile(caregiver, data, CAREGIVER_FIELDS)


def update_image(account, image_file) -> str:
    old_image = account.image
    url = media.save(image_file, prefix=account.role)
    account.image = url
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        media.delete(url)
        raise
    if old_image and old_image != url:
        media.delete(old_image)
    return url
