from __future__ import annotations

import logging

from sqlalchemy import func

from ..extensions import db, media
from ..models.job import JOB_OPEN, JobPost
from ..models.post import ADOPTION_ACCEPTED, AdoptionForm, DonationPost, MissingPost
from ..models.store import ORDER_CANCELLED, Order, PetOrder, Product, ShopPet
from ..models.user import Caregiver, User
from ..models.vet import VetDoctor
from . import caregivers as caregiver_service
from . import store, vets

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ("name", "description", "price", "stock", "category")
SHOP_PET_FIELDS = (
    "name", "breed", "age", "price", "bio", "description", "energy_level",
    "space_required", "maintenance", "child_friendly", "allergy_safe", "is_available",
)
VET_FIELDS = ("name", "specialty", "contact", "bio")


def dashboard() -> dict:
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total), 0.0))
        .filter(Order.status != ORDER_CANCELLED)
        .scalar()
    )
    return {
        "users": User.query.count(),
        "caregivers": Caregiver.query.count(),
        "verified_caregivers": Caregiver.query.filter_by(is_verified=True).count(),
        "donation_posts": DonationPost.query.count(),
        "available_donations": DonationPost.query.filter_by(is_available=True).count(),
        "adoptions_completed": AdoptionForm.query.filter_by(status=ADOPTION_ACCEPTED).count(),
        "missing_posts": MissingPost.query.filter_by(is_found=False).count(),
        "open_jobs": JobPost.query.filter_by(status=JOB_OPEN).count(),
        "orders": Order.query.count(),
        "pet_orders": PetOrder.query.count(),
        "revenue": round(float(revenue or 0), 2),
    }


def list_users() -> list:
    return User.query.order_by(User.created_at.desc()).all()


def set_caregiver_verified(caregiver_id: int, verified: bool = True) -> Caregiver:
    caregiver = caregiver_service.get_caregiver(caregiver_id)
    caregiver.is_verified = verified
    db.session.commit()
    logger.info("Caregiver %s verified=%s", caregiver.id, verified)
    return caregiver


def _save_with_image(row, data: dict, fields: tuple, image_file, prefix: str):
    old_image = row.image
    uploaded = media.save(image_file, prefix=prefix) if image_file else None
    for key in fields:
        if key in data and data[key] is not None:
            setattr(row, key, data[key])
    if uploaded:
        row.image = uploaded
    elif data.get("image_url"):
        row.image = data["image_url"]
    try:
        db.session.add(row)
        db.session.commit()
    except Exception:
        db.session.rollback()
        if uploaded:
            media.delete(uploaded)
        raise
    if old_image and old_image != row.image:
        media.delete(old_image)
    return row


def save_product(data: dict, image_file=None, product_id: int | None = None) -> Product:
    product = store.get_product(product_id) if product_id else Product()
    if data.get("category"):
        data = {**data, "category": data["category"].strip().lower()}
    return _save_with_image(product, data, PRODUCT_FIELDS, image_file, "product")


def delete_product(product_id: int) -> None:
    product = store.get_product(product_id)
    image = product.image
    db.session.delete(product)
    db.session.commit()
    media.delete(image)


def save_shop_pet(data: dict, image_file=None, pet_id: int | None = None) -> ShopPet:
    pet = store.get_shop_pet(pet_id) if pet_id else ShopPet()
    return _save_with_image(pet, data, SHOP_PET_FIELDS, image_file, "shoppet")


def delete_shop_pet(pet_id: int) -> None:
    pet = store.get_shop_pet(pet_id)
    image = pet.image
    db.session.delete(pet)
    db.session.commit()
    media.delete(image)


def save_vet(data: dict, image_file=None, vet_id: int | None = None) -> VetDoctor:
    vet = vets.get_vet(vet_id) if vet_id else VetDoctor()
    vet.set_location(data.get("country"), data.get("city"), data.get("area"))
    return _save_with_image(vet, data, VET_FIELDS, image_file, "vet")


def delete_vet(vet_id: int) -> None:
    vet = vets.get_vet(vet_id)
    image = vet.image
    db.session.delete(vet)
    db.session.commit()
    media.delete(image)


def list_orders(status: str | None = None) -> list:
    q = Order.query
    if status:
        q = q.filter(Order.status == status.upper())
    return q.order_by(Order.created_at.desc()).all()


def update_order_status(order_id: int, status: str) -> Order:
    return store.change_order_status(store.get_order(order_id), status)
