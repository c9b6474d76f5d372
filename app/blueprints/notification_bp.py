"""
SLF/PBG Certification Workflow
Notification Blueprint.

All routes act on the notifications of the acting profile.

Endpoints:
    GET   /api/v1/notifications                ?unread_only=1&limit=&offset=
    GET   /api/v1/notifications/unread-count
    PATCH /api/v1/notifications/<id>/read
    POST  /api/v1/notifications/read-all
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from app.middleware.actor_context import current_actor_id, require_roles
from app.models.profile import ROLES
from app.services.notification import NotificationService
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification", __name__, url_prefix="/api/v1")


@notification_bp.route("/notifications", methods=["GET"])
@require_roles(*ROLES)
def list_notifications():
    unread_only = request.args.get("unread_only") in ("1", "true")
    limit = min(request.args.get("limit", 50, type=int), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)

    items, total = NotificationService.list_for_recipient(
        current_actor_id(), unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    })


@notification_bp.route("/notifications/unread-count", methods=["GET"])
@require_roles(*ROLES)
def unread_count():
    return jsonify({"unread_count": NotificationService.unread_count(current_actor_id())})


@notification_bp.route("/notifications/<int:nid>/read", methods=["PATCH"])
@require_roles(*ROLES)
def mark_read(nid):
    notif = NotificationService.mark_read(nid, current_actor_id())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(notif.to_dict())


@notification_bp.route("/notifications/read-all", methods=["POST"])
@require_roles(*ROLES)
def mark_all_read():
    count = NotificationService.mark_all_read(current_actor_id())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"marked_read": count})
