from flask import Blueprint, jsonify, request

from ..auth.guards import principal, role_required
from ..services import notifications

notifications_bp = Blueprint("notifications", __name__)


@notifications_bp.get("/users/notifications")
@role_required("user")
def list_notifications():
    unread_only = request.args.get("unread", "").lower() in ("1", "true")
    limit = min(request.args.get("limit", 50, type=int), 200)
    rows = notifications.list_for(principal(), unread_only=unread_only, limit=limit)
    return jsonify([n.to_dict() for n in rows])


@notifications_bp.get("/users/notifications/count")
@role_required("user")
def unread_count():
    return jsonify({"unread": notifications.unread_count(principal())})


@notifications_bp.patch("/users/notifications/<int:notification_id>")
@role_required("user")
def mark_read(notification_id):
    return jsonify(notifications.mark_read(principal(), notification_id).to_dict())


@notifications_bp.post("/users/notifications/read-all")
@role_required("user")
def mark_all_read():
    return jsonify({"updated": notifications.mark_all_read(principal())})
