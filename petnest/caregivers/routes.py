from flask import Blueprint, jsonify, request

from ..services import caregivers, jobs

caregivers_bp = Blueprint("caregivers", __name__)


@caregivers_bp.get("/caregivers/caregivers")
def list_caregivers():
    rows = caregivers.list_caregivers(
        city=request.args.get("city"),
        area=request.args.get("area"),
        verified_only=request.args.get("verified", "").lower() in ("1", "true"),
    )
    return jsonify([c.to_public_dict() for c in rows])


@caregivers_bp.get("/caregivers/caregivers/<int:caregiver_id>")
def caregiver_profile(caregiver_id):
    return jsonify(caregivers.profile(caregiver_id))


@caregivers_bp.get("/caregivers/caregivers/<int:caregiver_id>/schedule")
def caregiver_schedule(caregiver_id):
    # booked dates only, so owners can plan around them
    return jsonify([
        {
            "job_id": job.id,
            "title": job.title,
            "start_date": job.start_date.isoformat(),
            "end_date": job.end_date.isoformat(),
            "status": job.status,
        }
        for job in jobs.caregiver_schedule(caregiver_id)
    ])
