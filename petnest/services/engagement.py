"""Upvotes and comments shared by donation and missing-pet posts.

``target`` is the Upvote/Comment column pointing at the post's table
(``donation_post_id`` or ``missing_post_id``).
"""
from __future__ import annotations

import logging

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, NotFound, PermissionDenied
from ..extensions import db
from ..models.social import Comment, Upvote
from . import notifications

logger = logging.getLogger(__name__)

ALREADY_UPVOTED = "You have already upvoted this post"
NOT_UPVOTED = "You have not upvoted this post"


def has_upvoted(user, target: str, post_id: int) -> bool:
    if user is None:
        return False
    q = Upvote.query.filter(Upvote.user_id == user.id, getattr(Upvote, target) == post_id)
    return db.session.query(q.exists()).scalar()


def _bump(post, delta: int) -> None:
    model = type(post)
    db.session.execute(
        update(model)
        .where(model.id == post.id)
        .values(upvotes_count=model.upvotes_count + delta)
        .execution_options(synchronize_session=False)
    )


def upvote(user, post, target: str):
    if has_upvoted(user, target, post.id):
        raise Conflict(ALREADY_UPVOTED)
    try:
        db.session.add(Upvote(user_id=user.id, **{target: post.id}))
        # a concurrent duplicate trips the unique constraint here
        db.session.flush()
        _bump(post, +1)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(ALREADY_UPVOTED)
    db.session.refresh(post)
    return post


def remove_upvote(user, post, target: str):
    try:
        removed = db.session.execute(
            delete(Upvote)
            .where(Upvote.user_id == user.id, getattr(Upvote, target) == post.id)
            .execution_options(synchronize_session=False)
        )
        if removed.rowcount == 0:
            db.session.rollback()
            raise Conflict(NOT_UPVOTED)
        _bump(post, -1)
        db.session.commit()
    except Conflict:
        raise
    except Exception:
        db.session.rollback()
        raise
    db.session.refresh(post)
    return post


def comments_for(target: str, post_id: int) -> list:
    return (
        Comment.query.filter(getattr(Comment, target) == post_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


def add_comment(user, post, target: str, content: str, link: str) -> Comment:
    comment = Comment(user_id=user.id, content=content, **{target: post.id})
    db.session.add(comment)
    if post.user_id != user.id:
        notifications.notify(
            post.user_id,
            f'{user.name} commented on your post "{post.title}"',
            notifications.KIND_COMMENT,
            link,
        )
    db.session.commit()
    return comment


def delete_comment(user, post, target: str, comment_id: int) -> None:
    comment = db.session.get(Comment, comment_id)
    if comment is None or getattr(comment, target) != post.id:
        raise NotFound("Comment not found")
    if comment.user_id != user.id:
        raise PermissionDenied("You can only delete your own comments")
    db.session.delete(comment)
    db.session.commit()


def purge(target: str, post_id: int) -> None:
    """Delete a post's upvotes and comments; the caller commits."""
    for model in (Upvote, Comment):
        db.session.execute(
            delete(model)
            .where(getattr(model, target) == post_id)
            .execution_options(synchronize_session=False)
        )
