"""
Payment Blueprint.

Endpoints:
    GET  /api/v1/projects/<id>/payments            list + summary (staff, owning client)
    POST /api/v1/projects/<id>/payments            upload proof (client, admin_lead)
    GET  /api/v1/payments                          verification queue (?status=pending|all)
    GET  /api/v1/payments/<id>
    POST /api/v1/payments/<id>/verify              (admin_lead)
    POST /api/v1/payments/<id>/reject              {reason} (admin_lead)
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import paginate_query
from app.core.exceptions import PermissionDenied
from app.middleware.actor_context import current_actor, require_roles
from app.models.payment import Payment
from app.models.profile import ROLES
from app.models.project import Project
from app.services import payment_service
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

payment_bp = Blueprint("payment", __name__, url_prefix="/api/v1")


def _check_visible(project):
    if not payment_service.can_view_payments(current_actor(), project):
        raise PermissionDenied("Payments of this project are not visible to this profile")


@payment_bp.route("/projects/<int:project_id>/payments", methods=["GET"])
@require_roles(*ROLES)
def list_project_payments(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    _check_visible(project)
    items = payment_service.list_payments(project)
    return jsonify({
        "items": [p.to_dict() for p in items],
        "total": len(items),
        "summary": payment_service.project_payment_summary(project),
    })


@payment_bp.route("/projects/<int:project_id>/payments", methods=["POST"])
@require_roles("client", "admin_lead")
def upload(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON body is required")

    payment = payment_service.upload_payment(project, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(payment.to_dict()), 201


@payment_bp.route("/payments", methods=["GET"])
@require_roles("admin_lead")
def review_queue():
    status = request.args.get("status", "pending")
    if status == "all":
        status = None
    query = payment_service.list_payments_for_review(status)
    items, total = paginate_query(query)
    return jsonify({
        "items": [p.to_dict() for p in items],
        "total": total,
        "counts": payment_service.payment_status_counts(),
    })


@payment_bp.route("/payments/<int:payment_id>", methods=["GET"])
@require_roles(*ROLES)
def get_payment(payment_id):
    payment, err = get_or_404(Payment, payment_id)
    if err:
        return err
    _check_visible(payment.project)
    return jsonify(payment.to_dict())


@payment_bp.route("/payments/<int:payment_id>/verify", methods=["POST"])
@require_roles("admin_lead")
def verify(payment_id):
    payment, err = get_or_404(Payment, payment_id)
    if err:
        return err
    result = payment_service.review_payment(payment, "verified", actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


@payment_bp.route("/payments/<int:payment_id>/reject", methods=["POST"])
@require_roles("admin_lead")
def reject(payment_id):
    payment, err = get_or_404(Payment, payment_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    result = payment_service.review_payment(
        payment, "rejected", actor=current_actor(), reason=data.get("reason"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)
