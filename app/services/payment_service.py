"""
Payment Service

Client payment proofs and their verification by the admin lead.

Lifecycle: pending → verified | rejected. A rejection must carry a reason
and is final for that proof; the client uploads a new one.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import func

from app.core.exceptions import NotFoundError, PermissionDenied, TransitionError, ValidationError
from app.models import db
from app.models.audit import write_audit
from app.models.payment import Payment
from app.models.project import Project
from app.models.status import PAYMENT_STATUSES, PAYMENT_TRANSITIONS, validate_payment_transition
from app.services.notification import NotificationService
from app.utils.helpers import optional_text, parse_date_input

logger = logging.getLogger(__name__)

CLOSED_FOR_PAYMENT = frozenset({"cancelled", "rejected"})
UPLOADER_ROLES = frozenset({"client", "admin_lead", "superadmin"})


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFoundError(resource="Payment", resource_id=payment_id)
    return payment


def _is_own_client_project(actor, project: Project) -> bool:
    return actor.client_id is not None and actor.client_id == project.client_id


def can_view_payments(actor, project: Project) -> bool:
    """Staff see every project's payments; clients only their own."""
    if actor is None:
        return False
    if actor.role == "client":
        return _is_own_client_project(actor, project)
    return True


def list_payments(project: Project) -> list[Payment]:
    return (
        Payment.query
        .filter_by(project_id=project.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


def list_payments_for_review(status: str | None = "pending"):
    """Verification queue, oldest first so nothing waits forever."""
    query = Payment.query
    if status:
        query = query.filter(Payment.status == status)
    return query.order_by(Payment.created_at.asc(), Payment.id.asc())


def payment_status_counts() -> dict:
    rows = db.session.query(Payment.status, func.count(Payment.id)).group_by(Payment.status).all()
    counts = {status: 0 for status in sorted(PAYMENT_STATUSES)}
    counts.update(dict(rows))
    return counts


def project_payment_summary(project: Project) -> dict:
    payments = list_payments(project)
    verified = [p for p in payments if p.status == "verified"]
    return {
        "total_payments": len(payments),
        "pending_payments": sum(1 for p in payments if p.status == "pending"),
        "verified_payments": len(verified),
        "total_amount": float(sum((p.amount for p in payments), Decimal("0"))),
        "verified_amount": float(sum((p.amount for p in verified), Decimal("0"))),
    }


def parse_amount(value) -> Decimal:
    """Positive amount in rupiah; raises ValueError otherwise."""
    if value is None or value == "" or isinstance(value, bool):
        raise ValueError("amount is required")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError("amount must be a number") from exc
    if not amount.is_finite() or amount <= 0:
        raise ValueError("amount must be greater than 0")
    return amount.quantize(Decimal("0.01"))


# ── Upload ───────────────────────────────────────────────────────────────────

def upload_payment(project: Project, data: dict, actor) -> Payment:
    """
    Record a payment proof for ``project``.

    Raises:
        PermissionDenied: not a client of this project (or an admin lead)
        ValidationError: bad amount/date/proof, or the project is closed
    """
    if actor is None or actor.role not in UPLOADER_ROLES:
        raise PermissionDenied("Role may not upload payments")
    if actor.role == "client" and not _is_own_client_project(actor, project):
        raise PermissionDenied("Project belongs to another client")

    errors = {}
    if project.status in CLOSED_FOR_PAYMENT:
        errors["project_id"] = f"Project is {project.status} and no longer accepts payments"
    try:
        amount = parse_amount(data.get("amount"))
    except ValueError as exc:
        errors["amount"] = str(exc)
    try:
        payment_date = parse_date_input(data.get("payment_date"))
    except ValueError as exc:
        errors["payment_date"] = str(exc)
    else:
        if payment_date is None:
            errors["payment_date"] = "payment_date is required"
    proof_url = notes = None
    try:
        proof_url = optional_text(data.get("proof_url"), "proof_url")
    except ValidationError as exc:
        errors.update(exc.details)
    else:
        if not proof_url:
            errors["proof_url"] = "proof_url is required"
    try:
        notes = optional_text(data.get("notes"), "notes")
    except ValidationError as exc:
        errors.update(exc.details)
    if errors:
        raise ValidationError("Invalid payment", details=errors)

    payment = Payment(
        project_id=project.id,
        amount=amount,
        payment_date=payment_date,
        proof_url=proof_url,
        notes=notes,
        status="pending",
        uploaded_by=actor.id,
    )
    db.session.add(payment)
    db.session.flush()

    logger.info("Payment %s uploaded for project %s", payment.id, project.id,
                extra={"project_id": project.id, "profile_id": actor.id})
    try:
        write_audit(
            entity_type="payment",
            entity_id=payment.id,
            action="payment.upload",
            actor_id=actor.id,
            project_id=project.id,
            diff={"amount": str(amount), "payment_date": payment_date},
        )
    except Exception:
        logger.warning("Audit log failed for payment upload; main flow unaffected", exc_info=True)

    NotificationService.notify_payment_uploaded(payment, project, sender_id=actor.id)
    return payment


# ── Verification ─────────────────────────────────────────────────────────────

def review_payment(payment: Payment, decision: str, actor, reason=None) -> dict:
    """
    Verify or reject a pending payment.

    ``decision`` is the target status. Rejection requires ``reason``.

    Raises:
        ValidationError: unknown decision or missing rejection reason
        TransitionError: payment already decided
    """
    if decision not in ("verified", "rejected"):
        raise ValidationError(
            f"Unknown payment decision: {decision}",
            details={"status": "Must be verified or rejected"},
        )
    if not validate_payment_transition(payment.status, decision):
        raise TransitionError(
            "Payment", payment.status, decision,
            allowed=PAYMENT_TRANSITIONS.get(payment.status, []),
        )
    reason = optional_text(reason, "reason")
    if decision == "rejected" and not reason:
        raise ValidationError("A rejection reason is required", details={"reason": "reason is required"})

    previous_status = payment.status
    payment.status = decision
    payment.verified_by = actor.id
    payment.verified_at = datetime.now(UTC)
    if decision == "rejected":
        payment.rejection_reason = reason
    db.session.flush()

    logger.info("Payment %s: %s → %s", payment.id, previous_status, decision,
                extra={"project_id": payment.project_id, "from_status": previous_status,
                       "to_status": decision, "profile_id": actor.id})
    try:
        write_audit(
            entity_type="payment",
            entity_id=payment.id,
            action="payment.verify" if decision == "verified" else "payment.reject",
            actor_id=actor.id,
            project_id=payment.project_id,
            diff={"status": {"old": previous_status, "new": decision}, "reason": reason},
        )
    except Exception:
        logger.warning("Audit log failed for payment review; main flow unaffected", exc_info=True)

    project = db.session.get(Project, payment.project_id)
    NotificationService.notify_payment_reviewed(payment, project, sender_id=actor.id)
    return {
        "payment_id": payment.id,
        "previous_status": previous_status,
        "new_status": decision,
    }
