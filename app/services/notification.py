"""
SLF/PBG Certification Workflow
Notification Service.

Central service for creating and querying in-app notifications.
Workflow services call the ``notify_*`` helpers; nothing here commits,
so a notification lands in the same transaction as the event it reports.
"""

from datetime import UTC, datetime

from app.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from app.models import db
from app.models.notification import NOTIFICATION_TYPES, Notification
from app.models.status import get_status_label


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create(*, recipient_id, message="", type="system", sender_id=None, project_id=None):
        """
        Create a single notification record.

        Returns:
            The created Notification instance (flushed, not committed).
        """
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Unknown notification type: {type}", details={"type": type})
        notif = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type,
            message=message,
            project_id=project_id,
        )
        db.session.add(notif)
        db.session.flush()
        return notif

    @staticmethod
    def broadcast(*, recipient_ids, message="", type="system", sender_id=None, project_id=None):
        """
        Send the same notification to several recipients.

        ``None`` ids and duplicates are skipped; the sender is never notified
        about their own action.

        Returns:
            List of created Notification instances.
        """
        notifications = []
        seen = set()
        for rid in recipient_ids:
            if rid is None or rid in seen or rid == sender_id:
                continue
            seen.add(rid)
            notifications.append(NotificationService.create(
                recipient_id=rid,
                sender_id=sender_id,
                type=type,
                message=message,
                project_id=project_id,
            ))
        return notifications

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_recipient(recipient_id, unread_only=False, limit=50, offset=0):
        """
        Retrieve notifications for a recipient, newest first.
        """
        q = Notification.query.filter_by(recipient_id=recipient_id)
        if unread_only:
            q = q.filter_by(read=False)
        total = q.count()
        items = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return items, total

    @staticmethod
    def unread_count(recipient_id):
        """Return count of unread notifications."""
        return Notification.query.filter_by(recipient_id=recipient_id, read=False).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id, recipient_id):
        """Mark a single notification as read; only its recipient may do so."""
        notif = db.session.get(Notification, notification_id)
        if notif is None:
            raise NotFoundError(resource="Notification", resource_id=notification_id)
        if notif.recipient_id != recipient_id:
            raise PermissionDenied("Notification belongs to another recipient")
        notif.mark_read()
        db.session.flush()
        return notif

    @staticmethod
    def mark_all_read(recipient_id):
        """Mark all notifications for a recipient as read."""
        now = datetime.now(UTC)
        count = (
            Notification.query
            .filter_by(recipient_id=recipient_id, read=False)
            .update({"read": True, "read_at": now}, synchronize_session="fetch")
        )
        db.session.flush()
        return count

    # ── Workflow Integration Helpers ──────────────────────────────────────

    @staticmethod
    def notify_project_created(project, recipient_id, sender_id=None):
        """Tell the original uploader their documents became a project."""
        return NotificationService.broadcast(
            recipient_ids=[recipient_id],
            sender_id=sender_id,
            type="project_created",
            message=f"Proyek '{project.name}' telah dibuat dari dokumen Anda.",
            project_id=project.id,
        )

    @staticmethod
    def notify_documents_linked(project, recipient_ids, count, sender_id=None):
        return NotificationService.broadcast(
            recipient_ids=recipient_ids,
            sender_id=sender_id,
            type="documents_linked",
            message=f"{count} dokumen telah ditautkan ke proyek '{project.name}'.",
            project_id=project.id,
        )

    @staticmethod
    def notify_status_changed(project, old_status, new_status, sender_id=None):
        """Notify project and admin leads about a lifecycle transition."""
        return NotificationService.broadcast(
            recipient_ids=[project.project_lead_id, project.admin_lead_id],
            sender_id=sender_id,
            type="status_changed",
            message=(
                f"Status proyek '{project.name}' berubah: "
                f"{get_status_label(old_status)} → {get_status_label(new_status)}."
            ),
            project_id=project.id,
        )

    @staticmethod
    def notify_document_reviewed(document, new_status_label, sender_id=None):
        if document.created_by is None:
            return None
        return NotificationService.broadcast(
            recipient_ids=[document.created_by],
            sender_id=sender_id,
            type="document_reviewed",
            message=f"Dokumen '{document.name}' sekarang berstatus {new_status_label}.",
            project_id=document.project_id,
        )

    @staticmethod
    def notify_team_assigned(project, user_id, role, sender_id=None):
        return NotificationService.broadcast(
            recipient_ids=[user_id],
            sender_id=sender_id,
            type="team_assigned",
            message=f"Anda ditugaskan sebagai {role} pada proyek '{project.name}'.",
            project_id=project.id,
        )

    @staticmethod
    def notify_inspection_scheduled(inspection, project, sender_id=None):
        return NotificationService.broadcast(
            recipient_ids=[inspection.inspector_id, project.project_lead_id],
            sender_id=sender_id,
            type="inspection_scheduled",
            message=(
                f"Inspeksi proyek '{project.name}' dijadwalkan pada "
                f"{inspection.scheduled_date.isoformat()}."
            ),
            project_id=project.id,
        )

    @staticmethod
    def notify_schedule_assigned(schedule, project, sender_id=None):
        return NotificationService.broadcast(
            recipient_ids=[schedule.assigned_to],
            sender_id=sender_id,
            type="schedule_assigned",
            message=(
                f"Jadwal '{schedule.title}' untuk proyek '{project.name}' pada "
                f"{schedule.schedule_date.strftime('%Y-%m-%d %H:%M')}."
            ),
            project_id=project.id,
        )

    @staticmethod
    def notify_payment_uploaded(payment, project, sender_id=None):
        """Ask the project's admin lead to verify a new payment proof."""
        amount = f"{payment.amount:,.0f}".replace(",", ".")
        return NotificationService.broadcast(
            recipient_ids=[project.admin_lead_id, project.created_by],
            sender_id=sender_id,
            type="payment_uploaded",
            message=f"Bukti pembayaran sebesar Rp {amount} telah diupload untuk {project.name}.",
            project_id=project.id,
        )

    @staticmethod
    def notify_payment_reviewed(payment, project, sender_id=None):
        if payment.status == "verified":
            message = f"Pembayaran untuk proyek '{project.name}' telah diverifikasi."
        else:
            message = f"Pembayaran untuk proyek '{project.name}' ditolak: {payment.rejection_reason}"
        return NotificationService.broadcast(
            recipient_ids=[payment.uploaded_by],
            sender_id=sender_id,
            type="payment_reviewed",
            message=message,
            project_id=project.id,
        )
