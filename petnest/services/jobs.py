"""Caregiving jobs: OPEN -> ONGOING -> CLOSED, or OPEN -> CLOSED when cancelled.

The owner picks one caregiver among the pending applications; that moves the
job to ONGOING and rejects the other applications. Ending the job (with an
optional review) closes it.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from ..extensions import db
from ..models.job import (
    APPLICATION_ACCEPTED,
    APPLICATION_PENDING,
    APPLICATION_REJECTED,
    JOB_CLOSED,
    JOB_ONGOING,
    JOB_OPEN,
    Application,
    JobPost,
    Review,
)
from ..models.location import normalize_location
from ..models.user import Caregiver
from . import notifications
from .selection import SelectionRule, select_winner

logger = logging.getLogger(__name__)

FIELDS = (
    "title", "description", "pet_type", "min_price", "max_price", "start_date", "end_date",
)

CAREGIVER_RULE = SelectionRule(
    parent=JobPost,
    candidate=Application,
    group_column="job_post_id",
    guard={"status": JOB_OPEN},
    outcome=lambda application: {
        "status": JOB_ONGOING,
        "selected_caregiver_id": application.caregiver_id,
    },
    closed_message="This job is no longer open",
    pending=APPLICATION_PENDING,
    accepted=APPLICATION_ACCEPTED,
    rejected=APPLICATION_REJECTED,
    name="caregiver selection",
)


def _now():
    return datetime.now(timezone.utc)


def _link(job_id: int) -> str:
    return f"/jobs/{job_id}"


def get_job(job_id: int) -> JobPost:
    job = db.session.get(JobPost, job_id)
    if job is None:
        raise NotFound("Job not found")
    return job


def _owned_job(user, job_id: int) -> JobPost:
    job = get_job(job_id)
    if job.user_id != user.id:
        raise PermissionDenied("You can only manage your own jobs")
    return job


def _check_ranges(job: JobPost) -> None:
    if job.min_price is None or job.max_price is None or job.min_price < 0:
        raise ValidationFailed("Price range is required")
    if job.min_price > job.max_price:
        raise ValidationFailed("Minimum price cannot exceed maximum price")
    if job.end_date < job.start_date:
        raise ValidationFailed("End date cannot be before start date")


def _apply_fields(job: JobPost, data: dict) -> None:
    for key in FIELDS:
        if key in data:
            setattr(job, key, data[key])
    if "tags" in data:
        job.tag_list = data["tags"]
    job.set_location(data.get("country"), data.get("city"), data.get("area"))


def create_job(user, data: dict) -> JobPost:
    job = JobPost(user_id=user.id, status=JOB_OPEN)
    _apply_fields(job, data)
    _check_ranges(job)
    db.session.add(job)
    db.session.commit()
    logger.info("Job %s opened by user %s", job.id, user.id)
    return job


def update_job(user, job_id: int, data: dict) -> JobPost:
    job = _owned_job(user, job_id)
    if job.status != JOB_OPEN:
        raise Conflict("Only open jobs can be edited")
    _apply_fields(job, data)
    try:
        _check_ranges(job)
    except ValidationFailed:
        db.session.rollback()
        raise
    db.session.commit()
    return job


def list_my_jobs(user, status: str | None = None) -> list:
    q = JobPost.query.filter_by(user_id=user.id)
    if status:
        q = q.filter(JobPost.status == status.upper())
    return q.order_by(JobPost.created_at.desc(), JobPost.id.desc()).all()


def list_open_jobs(city=None, area=None, tag=None, page: int = 1, per_page: int = 12) -> dict:
    q = JobPost.query.filter(JobPost.status == JOB_OPEN)
    if city:
        q = q.filter(JobPost.city == normalize_location(city))
    if area:
        q = q.filter(JobPost.area == normalize_location(area))
    if tag:
        q = q.filter(JobPost.tag_filter(tag))
    page = max(page, 1)
    fetched = (
        q.order_by(JobPost.start_date.asc(), JobPost.id.asc())
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


def job_detail(job_id: int, viewer) -> dict:
    job = get_job(job_id)
    data = job.to_dict()
    review = Review.query.filter_by(job_post_id=job.id).first()
    data["review"] = review.to_dict() if review else None
    if viewer.role == "user":
        if job.user_id != viewer.id:
            raise PermissionDenied("You can only view your own jobs")
        data["applications"] = [
            a.to_dict() for a in job.applications.order_by(Application.created_at.asc())
        ]
    elif viewer.role == "caregiver":
        mine = Application.query.filter_by(job_post_id=job.id, caregiver_id=viewer.id).first()
        data["my_application"] = mine.to_dict() if mine else None
        data["application_count"] = job.applications.count()
    return data


def apply(caregiver, job_id: int, data: dict) -> Application:
    job = get_job(job_id)
    if job.status != JOB_OPEN:
        raise Conflict("This job is no longer accepting applications")
    existing = Application.query.filter_by(job_post_id=job.id, caregiver_id=caregiver.id).first()
    if existing:
        raise Conflict("You have already applied for this job")
    amount = data["requested_amount"]
    if not (job.min_price <= amount <= job.max_price):
        raise ValidationFailed(
            f"Requested amount must be between {job.min_price:g} and {job.max_price:g}"
        )

    application = Application(
        job_post_id=job.id,
        caregiver_id=caregiver.id,
        proposal=data["proposal"],
        requested_amount=amount,
        status=APPLICATION_PENDING,
    )
    try:
        db.session.add(application)
        db.session.flush()
        notifications.notify(
            job.user_id,
            f'{caregiver.name} applied to your job "{job.title}"',
            notifications.KIND_JOB_APPLICATION,
            _link(job.id),
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("You have already applied for this job")
    logger.info("Caregiver %s applied to job %s", caregiver.id, job.id)
    return application


def select_caregiver(user, job_id: int, application_id: int) -> JobPost:
    job = _owned_job(user, job_id)
    application = db.session.get(Application, application_id)
    if application is None or application.job_post_id != job.id:
        raise NotFound("Application not found")
    if job.status != JOB_OPEN:
        raise Conflict("This job is no longer open")
    select_winner(CAREGIVER_RULE, application)
    return get_job(job_id)


def _new_review(job: JobPost, user, rating: int, comment: str | None) -> Review:
    if not 1 <= rating <= 5:
        raise ValidationFailed("Rating must be between 1 and 5")
    if Review.query.filter_by(job_post_id=job.id).first():
        raise Conflict("You have already reviewed this job")
    review = Review(
        job_post_id=job.id,
        user_id=user.id,
        caregiver_id=job.selected_caregiver_id,
        rating=rating,
        comment=comment,
    )
    db.session.add(review)
    return review


def submit_review(user, job_id: int, rating: int, comment: str | None = None) -> Review:
    job = _owned_job(user, job_id)
    if job.selected_caregiver_id is None or job.status not in (JOB_ONGOING, JOB_CLOSED):
        raise Conflict("Only jobs with a selected caregiver can be reviewed")
    review = _new_review(job, user, rating, comment)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("You have already reviewed this job")
    return review


def end_job(user, job_id: int, rating: int | None = None, comment: str | None = None) -> JobPost:
    job = _owned_job(user, job_id)
    if job.status != JOB_ONGOING:
        raise Conflict("Only ongoing jobs can be ended")
    try:
        if rating is not None:
            _new_review(job, user, rating, comment)
        closed = db.session.execute(
            update(JobPost)
            .where(JobPost.id == job.id, JobPost.status == JOB_ONGOING)
            .values(status=JOB_CLOSED, closed_at=_now())
            .execution_options(synchronize_session=False)
        )
        if closed.rowcount != 1:
            raise Conflict("Only ongoing jobs can be ended")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.refresh(job)
    logger.info("Job %s closed by user %s", job.id, user.id)
    return job


def cancel_job(user, job_id: int) -> JobPost:
    job = _owned_job(user, job_id)
    if job.status != JOB_OPEN:
        raise Conflict("Only open jobs can be cancelled")
    try:
        cancelled = db.session.execute(
            update(JobPost)
            .where(JobPost.id == job.id, JobPost.status == JOB_OPEN)
            .values(status=JOB_CLOSED, closed_at=_now())
            .execution_options(synchronize_session=False)
        )
        if cancelled.rowcount != 1:
            raise Conflict("Only open jobs can be cancelled")
        db.session.execute(
            update(Application)
            .where(Application.job_post_id == job.id, Application.status == APPLICATION_PENDING)
            .values(status=APPLICATION_REJECTED)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.refresh(job)
    logger.info("Job %s cancelled by user %s", job.id, user.id)
    return job


def delete_job(user, job_id: int) -> None:
    job = _owned_job(user, job_id)
    if job.status != JOB_OPEN:
        raise Conflict("Only open jobs can be deleted")
    try:
        db.session.execute(
            delete(Application)
            .where(Application.job_post_id == job.id)
            .execution_options(synchronize_session=False)
        )
        db.session.delete(job)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def caregiver_applications(caregiver) -> list:
    return (
        Application.query.filter_by(caregiver_id=caregiver.id)
        .order_by(Application.created_at.desc())
        .all()
    )


def caregiver_schedule(caregiver_id: int) -> list:
    if db.session.get(Caregiver, caregiver_id) is None:
        raise NotFound("Caregiver not found")
    return (
        JobPost.query.filter(
            JobPost.selected_caregiver_id == caregiver_id,
            JobPost.status.in_([JOB_ONGOING, JOB_CLOSED]),
        )
        .order_by(JobPost.start_date.asc())
        .all()
    )
