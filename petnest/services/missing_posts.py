"""Missing-pet reports: CRUD, upvotes, comments.

Users in the post's area hear about a new report and about the pet being found.
"""
from __future__ import annotations

import logging

from sqlalchemy import or_

from ..errors import NotFound, PermissionDenied
from ..extensions import db, media
from ..models.location import normalize_location
from ..models.post import MissingPost
from . import engagement, notifications

logger = logging.getLogger(__name__)

TARGET = "missing_post_id"
FIELDS = (
    "title", "description", "species", "breed", "gender",
    "last_seen_at", "contact_info", "is_found",
)


def _link(post_id: int) -> str:
    return f"/missingposts/{post_id}"


def get_post(post_id: int) -> MissingPost:
    post = db.session.get(MissingPost, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


def _owned_post(user, post_id: int, verb: str) -> MissingPost:
    post = get_post(post_id)
    if post.user_id != user.id:
        raise PermissionDenied(f"You can only {verb} your own posts")
    return post


def _apply_fields(post: MissingPost, data: dict) -> None:
    for key in FIELDS:
        if key in data:
            setattr(post, key, data[key])
    post.set_location(data.get("country"), data.get("city"), data.get("area"))


def _notify_area(post: MissingPost, message: str, kind: str) -> int:
    recipients = notifications.users_in_area(post.city, post.area, exclude_user_id=post.user_id)
    return notifications.notify_many(recipients, message, kind, _link(post.id))


def create_post(user, data: dict, image_file=None) -> MissingPost:
    uploaded = media.save(image_file, prefix="missing") if image_file else None
    post = MissingPost(user_id=user.id, image=uploaded or data.get("image_url"))
    _apply_fields(post, data)
    post.is_found = bool(post.is_found)
    try:
        db.session.add(post)
        db.session.flush()
        sent = _notify_area(
            post,
            f"Missing pet reported in your area: {post.title}",
            notifications.KIND_MISSING_POST,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        if uploaded:
            media.delete(uploaded)
        raise
    logger.info("Missing post %s created by user %s, %d area notifications", post.id, user.id, sent)
    return post


def list_posts(city=None, area=None, species=None, search=None,
               include_found: bool = False, page: int = 1, per_page: int = 12) -> dict:
    q = MissingPost.query
    if not include_found:
        q = q.filter(MissingPost.is_found.is_(False))
    if city:
        q = q.filter(MissingPost.city == normalize_location(city))
    if area:
        q = q.filter(MissingPost.area == normalize_location(area))
    if species:
        q = q.filter(db.func.lower(MissingPost.species) == species.strip().lower())
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(MissingPost.title.ilike(like), MissingPost.description.ilike(like)))
    page = max(page, 1)
    fetched = (
        q.order_by(MissingPost.created_at.desc(), MissingPost.id.desc())
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


def post_detail(post_id: int, viewer=None) -> dict:
    post = get_post(post_id)
    data = post.to_dict()
    data["comments"] = [c.to_dict() for c in engagement.comments_for(TARGET, post.id)]
    data["has_upvoted"] = engagement.has_upvoted(viewer, TARGET, post.id)
    data["is_owner"] = bool(viewer is not None and viewer.id == post.user_id)
    return data


def update_post(user, post_id: int, data: dict, image_file=None) -> MissingPost:
    post = _owned_post(user, post_id, "update")
    old_image = post.image
    was_found = post.is_found
    uploaded = media.save(image_file, prefix="missing") if image_file else None
    _apply_fields(post, data)
    if uploaded:
        post.image = uploaded
    elif "image_url" in data:
        post.image = data["image_url"]
    try:
        if post.is_found and not was_found:
            _notify_area(
                post,
                f"Good news! A missing pet in your area has been found: {post.title}",
                notifications.KIND_PET_FOUND,
            )
            logger.info("Missing post %s marked found", post.id)
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
        db.session.delete(post)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    media.delete(image)
    logger.info("Missing post %s deleted by user %s", post_id, user.id)


def upvote(user, post_id: int) -> MissingPost:
    return engagement.upvote(user, get_post(post_id), TARGET)


def remove_upvote(user, post_id: int) -> MissingPost:
    return engagement.remove_upvote(user, get_post(post_id), TARGET)


def add_comment(user, post_id: int, content: str):
    post = get_post(post_id)
    return engagement.add_comment(user, post, TARGET, content, _link(post.id))


def delete_comment(user, post_id: int, comment_id: int) -> None:
    engagement.delete_comment(user, get_post(post_id), TARGET, comment_id)
