"""Donation posts and the adoption workflow."""
from __future__ import annotations

import logging

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, NotFound, PermissionDenied
from ..extensions import db, media
from ..models.location import normalize_location
from ..models.post import (
    ADOPTION_ACCEPTED,
    ADOPTION_PENDING,
    ADOPTION_REJECTED,
    AdoptionForm,
    DonationPost,
)
from . import engagement, notifications
from .selection import SelectionRule, select_winner

logger = logging.getLogger(__name__)

TARGET = "donation_post_id"
FIELDS = ("title", "description", "species", "breed", "gender", "age", "vaccinated", "neutered")

ADOPTION_RULE = SelectionRule(
    parent=DonationPost,
    candidate=AdoptionForm,
    group_column="donation_post_id",
    guard={"is_available": True},
    outcome=lambda form: {"is_available": False},
    closed_message="This pet has already been adopted",
    pending=ADOPTION_PENDING,
    accepted=ADOPTION_ACCEPTED,
    rejected=ADOPTION_REJECTED,
    name="adoption",
)


def _link(post_id: int) -> str:
    return f"/donation/{post_id}"


def get_post(post_id: int) -> DonationPost:
    post = db.session.get(DonationPost, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


def _owned_post(user, post_id: int, verb: str) -> DonationPost:
    post = get_post(post_id)
    if post.user_id != user.id:
        raise PermissionDenied(f"You can only {verb} your own posts")
    return post


def _apply_fields(post: DonationPost, data: dict) -> None:
    for key in FIELDS:
        if key in data:
            setattr(post, key, data[key])
    post.set_location(data.get("country"), data.get("city"), data.get("area"))


def create_post(user, data: dict, image_file=None) -> DonationPost:
    uploaded = media.save(image_file, prefix="donation") if image_file else None
    post = DonationPost(user_id=user.id, image=uploaded or data.get("image_url"))
    _apply_fields(post, data)
    post.vaccinated = bool(post.vaccinated)
    post.neutered = bool(post.neutered)
    try:
        db.session.add(post)
        db.session.flush()
        recipients = notifications.users_in_area(post.city, post.area, exclude_user_id=user.id)
        notifications.notify_many(
            recipients,
            f"New pet available for adoption in your area: {post.title}",
            notifications.KIND_AREA_POST,
            _link(post.id),
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        if uploaded:
            media.delete(uploaded)
        raise
    logger.info(
        "Donation post %s created by user %s, %d area notifications",
        post.id, user.id, len(recipients),
    )
    return post


def list_posts(
    species=None, city=None, area=None, search=None,
    include_unavailable: bool = False, page: int = 1, per_page: int = 12,
) -> dict:
    q = DonationPost.query
    if not include_unavailable:
        q = q.filter(DonationPost.is_available.is_(True))
    if species:
        q = q.filter(db.func.lower(DonationPost.species) == species.strip().lower())
    if city:
        q = q.filter(DonationPost.city == normalize_location(city))
    if area:
        q = q.filter(DonationPost.area == normalize_location(area))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(DonationPost.title.ilike(like), DonationPost.description.ilike(like),
                         DonationPost.breed.ilike(like)))
    page = max(page, 1)
    fetched = (
        q.order_by(DonationPost.created_at.desc(), DonationPost.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page + 1)
        .all()
    )
    return {
        "items": fetched[:per_page],
        "page": page,
        "has_next": len(fetched) > per_page,
        "has_prev": page > 1,
    }


def list_mine(user) -> list:
    return (
        DonationPost.query.filter_by(user_id=user.id)
        .order_by(DonationPost.created_at.desc())
        .all()
    )


def post_detail(post_id: int, viewer=None) -> dict:
    post = get_post(post_id)
    data = post.to_dict()
    data["comments"] = [c.to_dict() for c in engagement.comments_for(TARGET, post.id)]
    data["has_upvoted"] = engagement.has_upvoted(viewer, TARGET, post.id)
    data["is_owner"] = bool(viewer is not None and viewer.id == post.user_id)
    data["has_applied"] = bool(
        viewer is not None
        and AdoptionForm.query.filter_by(user_id=viewer.id, donation_post_id=post.id).first()
    )
    return data


def update_post(user, post_id: int, data: dict, image_file=None) -> DonationPost:
    post = _owned_post(user, post_id, "update")
    old_image = post.image
    uploaded = media.save(image_file, prefix="donation") if image_file else None
    _apply_fields(post, data)
    if uploaded:
        post.image = uploaded
    elif "image_url" in data:
        post.image = data["image_url"]
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        if uploaded:
            media.delete(uploaded)
        raise
    if old_image and old_image != post.image:
        media.delete(old_image)
    return post


def delete_post(user, post_id: int) -> None:
    post = _owned_post(user, post_id, "delete")
    image = post.image
    try:
        engagement.purge(TARGET, post.id)
        db.session.execute(
            delete(AdoptionForm)
            .where(AdoptionForm.donation_post_id == post.id)
            .execution_options(synchronize_session=False)
        )
        db.session.delete(post)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    media.delete(image)
    logger.info("Donation post %s deleted by user %s", post_id, user.id)


def upvote(user, post_id: int) -> DonationPost:
    return engagement.upvote(user, get_post(post_id), TARGET)


def remove_upvote(user, post_id: int) -> DonationPost:
    return engagement.remove_upvote(user, get_post(post_id), TARGET)


def add_comment(user, post_id: int, content: str):
    post = get_post(post_id)
    return engagement.add_comment(user, post, TARGET, content, _link(post.id))


def delete_comment(user, post_id: int, comment_id: int) -> None:
    engagement.delete_comment(user, get_post(post_id), TARGET, comment_id)


def submit_adoption_form(user, post_id: int, data: dict) -> AdoptionForm:
    post = get_post(post_id)
    if post.user_id == user.id:
        raise PermissionDenied("You cannot apply to adopt your own pet")
    if not post.is_available:
        raise Conflict("This pet is no longer available for adoption")
    existing = AdoptionForm.query.filter_by(user_id=user.id, donation_post_id=post.id).first()
    if existing:
        raise Conflict("You have already applied for this pet")

    form = AdoptionForm(
        user_id=user.id,
        donation_post_id=post.id,
        description=data["description"],
        meeting_time=data.get("meeting_time"),
        phone=data.get("phone"),
        status=ADOPTION_PENDING,
    )
    try:
        db.session.add(form)
        db.session.flush()
        notifications.notify(
            post.user_id,
            f'{user.name} applied to adopt "{post.title}"',
            notifications.KIND_ADOPTION_APPLICATION,
            _link(post.id),
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("You have already applied for this pet")
    logger.info("Adoption form %s submitted for post %s", form.id, post.id)
    return form


def list_applications(user, post_id: int) -> list:
    post = get_post(post_id)
    if post.user_id != user.id:
        raise PermissionDenied("Only the post owner can view applications")
    return (
        AdoptionForm.query.filter_by(donation_post_id=post.id)
        .order_by(AdoptionForm.created_at.asc())
        .all()
    )


def accept_adoption_form(user, form_id: int) -> AdoptionForm:
    form = db.session.get(AdoptionForm, form_id)
    if form is None:
        raise NotFound("Application not found")
    post = form.donation_post
    if post.user_id != user.id:
        raise PermissionDenied("Only the post owner can accept applications")
    if not post.is_available:
        raise Conflict("This pet has already been adopted")
    title = post.title
    post_id = post.id

    def _notify(winner, losers):
        notifications.notify(
            winner.user_id,
            f'Your adoption request for "{title}" was accepted',
            notifications.KIND_ADOPTION_ACCEPTED,
            _link(post_id),
        )
        notifications.notify_many(
            [f.user_id for f in losers],
            f'Your adoption request for "{title}" was declined',
            notifications.KIND_ADOPTION_REJECTED,
            _link(post_id),
        )

    select_winner(ADOPTION_RULE, form, on_selected=_notify)
    return form


def meetings(user) -> list:
    return (
        AdoptionForm.query.join(DonationPost, DonationPost.id == AdoptionForm.donation_post_id)
        .filter(
            AdoptionForm.status == ADOPTION_ACCEPTED,
            or_(AdoptionForm.user_id == user.id, DonationPost.user_id == user.id),
        )
        .order_by(AdoptionForm.meeting_time.asc())
        .all()
    )
