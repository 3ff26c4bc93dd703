"""Notification writer and the recipient-side read operations.

Writers only add rows to the current session; the caller's transaction
decides when they become visible.
"""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func, update

from ..errors import NotFound, PermissionDenied
from ..extensions import db
from ..models.location import normalize_location
from ..models.notification import Notification
from ..models.user import User

logger = logging.getLogger(__name__)

KIND_AREA_POST = "donation_post"
KIND_COMMENT = "comment"
KIND_ADOPTION_APPLICATION = "adoption_application"
KIND_ADOPTION_ACCEPTED = "adoption_accepted"
KIND_ADOPTION_REJECTED = "adoption_rejected"
KIND_JOB_APPLICATION = "job_application"
KIND_MISSING_POST = "missing_post"
KIND_PET_FOUND = "pet_found"


def notify(user_id: int, message: str, kind: str = "general", link: str | None = None) -> Notification:
    n = Notification(user_id=user_id, message=message[:500], kind=kind, link=link)
    db.session.add(n)
    return n


def notify_many(
    user_ids: Iterable[int], message: str, kind: str = "general", link: str | None = None
) -> int:
    recipients = sorted(set(user_ids))
    for uid in recipients:
        notify(uid, message, kind, link)
    if recipients:
        logger.info("Queued %d '%s' notifications", len(recipients), kind)
    return len(recipients)


def users_in_area(city: str | None, area: str | None, exclude_user_id: int | None = None) -> list:
    city = normalize_location(city)
    area = normalize_location(area)
    if not city or not area:
        return []
    q = db.session.query(User.id).filter(
        func.lower(func.trim(User.city)) == city,
        func.lower(func.trim(User.area)) == area,
    )
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    return [row.id for row in q.all()]


def list_for(user, unread_only: bool = False, limit: int = 50) -> list:
    q = Notification.query.filter_by(user_id=user.id)
    if unread_only:
        q = q.filter_by(is_read=False)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(user) -> int:
    return Notification.query.filter_by(user_id=user.id, is_read=False).count()


def mark_read(user, notification_id: int) -> Notification:
    n = db.session.get(Notification, notification_id)
    if n is None:
        raise NotFound("Notification not found")
    if n.user_id != user.id:
        raise PermissionDenied("You can only update your own notifications")
    n.is_read = True
    db.session.commit()
    return n


def mark_all_read(user) -> int:
    result = db.session.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    db.session.commit()
    return result.rowcount
