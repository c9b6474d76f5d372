"""
Document Triage Service

Admin-lead inbox for documents uploaded without a project ("pending",
``project_id IS NULL``). Pending documents are grouped by the uploader's
client; an admin lead then either creates a project from a group or links
selected documents to one of their open projects.

Both write paths are single units of work: the project insert, document
updates, audit rows and notifications are flushed together and committed
(or rolled back) by the caller.
"""

import logging

from sqlalchemy import or_

from app.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from app.models import db
from app.models.audit import write_audit
from app.models.document import Document
from app.models.profile import Client, Profile
from app.models.project import PRIORITIES, VALID_APPLICATION_TYPES, Project
from app.services.notification import NotificationService

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

# Projects in these statuses no longer accept documents.
CLOSED_PROJECT_STATUSES = frozenset({"completed", "cancelled"})

DEFAULT_APPLICATION_TYPE = "SLF"


# ── Grouping ─────────────────────────────────────────────────────────────────

def _uploader_client_id(document):
    uploader = getattr(document, "uploader", None)
    return uploader.client_id if uploader is not None else None


def group_documents_by_client(documents) -> dict:
    """
    Group documents by their uploader's client.

    Documents whose uploader has no client land under ``"unknown"``. Each
    group carries the first ``building_info`` / ``application_type`` found
    in its documents' metadata, in input order.
    """
    groups: dict = {}
    for doc in documents:
        client_id = _uploader_client_id(doc)
        key = client_id if client_id is not None else UNKNOWN_CLIENT
        group = groups.get(key)
        if group is None:
            group = groups[key] = {
                "client_id": client_id,
                "documents": [],
                "building_info": None,
                "application_type": None,
            }
        group["documents"].append(doc)

        meta = doc.meta or {}
        if group["building_info"] is None and meta.get("building_info"):
            group["building_info"] = meta["building_info"]
        if group["application_type"] is None and meta.get("application_type"):
            group["application_type"] = meta["application_type"]
    return groups


# ── Queries ──────────────────────────────────────────────────────────────────

def admin_client_ids(admin) -> set:
    """Clients the admin created plus clients of projects they lead."""
    created = db.session.query(Client.id).filter(Client.created_by == admin.id)
    led = (
        db.session.query(Project.client_id)
        .filter(Project.admin_lead_id == admin.id, Project.client_id.isnot(None))
    )
    return {row[0] for row in created.all()} | {row[0] for row in led.all()}


def _pending_documents_for_profiles(profile_ids):
    return (
        Document.query
        .filter(Document.project_id.is_(None), Document.created_by.in_(profile_ids))
        .order_by(Document.created_at.desc(), Document.id.desc())
        .all()
    )


def list_pending_groups(admin) -> dict:
    """
    Pending documents for the admin's clients, grouped by client.

    Returns ``{}`` without further queries when the admin has no clients or
    none of those clients has a linked profile.
    """
    client_ids = admin_client_ids(admin)
    if not client_ids:
        return {}

    profile_ids = [
        row[0] for row in
        db.session.query(Profile.id).filter(Profile.client_id.in_(client_ids)).all()
    ]
    if not profile_ids:
        return {}

    groups = group_documents_by_client(_pending_documents_for_profiles(profile_ids))
    clients = {c.id: c for c in Client.query.filter(Client.id.in_(client_ids)).all()}
    for key, group in groups.items():
        client = clients.get(key)
        group["client"] = client.to_dict() if client is not None else None
    return groups


def list_linkable_projects(admin, client_id: int) -> list[Project]:
    """The admin's projects for ``client_id`` that still accept documents."""
    return (
        Project.query
        .filter(
            Project.client_id == client_id,
            or_(Project.created_by == admin.id, Project.admin_lead_id == admin.id),
            Project.status.notin_(CLOSED_PROJECT_STATUSES),
        )
        .order_by(Project.created_at.desc(), Project.id.desc())
        .all()
    )


# ── Writes ───────────────────────────────────────────────────────────────────

def _client_pending_documents(client_id: int) -> list[Document]:
    return (
        Document.query
        .join(Profile, Profile.id == Document.created_by)
        .filter(Profile.client_id == client_id, Document.project_id.is_(None))
        .order_by(Document.created_at.desc(), Document.id.desc())
        .all()
    )


def _select(documents: list[Document], document_ids) -> list[Document]:
    if not document_ids:
        return list(documents)
    by_id = {d.id: d for d in documents}
    unknown = [i for i in document_ids if i not in by_id]
    if unknown:
        raise ValidationError(
            "Some documents are not pending for this client",
            details={"document_ids": unknown},
        )
    selected_ids = set(document_ids)
    return [d for d in documents if d.id in selected_ids]


def _text(form: dict, key: str):
    value = form.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def create_project_from_documents(admin, client_id: int, form: dict, document_ids=None) -> tuple[Project, list[Document]]:
    """
    Create a draft project for a client group and attach its documents.

    Missing address/city/description fall back to the group's
    ``building_info`` (buildingAddress, buildingCity, notes); the
    application type falls back to the group's, then "SLF". With no
    ``document_ids`` every pending document of the client is attached.

    Raises:
        ValidationError, PermissionDenied, NotFoundError
    """
    form = form or {}
    name = _text(form, "name")
    if not name:
        raise ValidationError("Project name is required", details={"name": "Project name is required"})

    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError(resource="Client", resource_id=client_id)
    if admin.role != "superadmin" and client_id not in admin_client_ids(admin):
        raise PermissionDenied("Client is not managed by this admin")

    documents = _select(_client_pending_documents(client_id), document_ids)
    if not documents:
        raise ValidationError(
            "No pending documents for this client",
            details={"document_ids": "No pending documents to attach"},
        )

    group = group_documents_by_client(documents).get(client_id, {})
    building_info = group.get("building_info") or {}

    application_type = (
        _text(form, "application_type") or group.get("application_type") or DEFAULT_APPLICATION_TYPE
    )
    priority = _text(form, "priority") or "medium"
    errors = {}
    if application_type not in VALID_APPLICATION_TYPES:
        errors["application_type"] = f"Unknown application type: {application_type}"
    if priority not in PRIORITIES:
        errors["priority"] = f"Priority must be one of: {', '.join(PRIORITIES)}"
    if errors:
        raise ValidationError("Invalid project form", details=errors)

    address = _text(form, "address") or building_info.get("buildingAddress")
    project = Project(
        name=name,
        client_id=client_id,
        application_type=application_type,
        status="draft",
        location=_text(form, "location") or address,
        address=address,
        city=_text(form, "city") or building_info.get("buildingCity"),
        description=_text(form, "description") or building_info.get("notes"),
        priority=priority,
        admin_lead_id=admin.id,
        created_by=admin.id,
    )
    db.session.add(project)
    db.session.flush()

    for doc in documents:
        doc.project_id = project.id
    db.session.flush()

    logger.info(
        "Project %s created from %d pending documents of client %s",
        project.id, len(documents), client_id,
        extra={"project_id": project.id, "profile_id": admin.id},
    )

    try:
        write_audit(
            entity_type="project",
            entity_id=project.id,
            action="project.create_from_documents",
            actor_id=admin.id,
            project_id=project.id,
            diff={
                "status": {"old": None, "new": "draft"},
                "document_ids": [d.id for d in documents],
            },
        )
    except Exception:
        logger.warning("Audit log failed for triage project creation; main flow unaffected", exc_info=True)

    NotificationService.notify_project_created(project, documents[0].created_by, sender_id=admin.id)
    return project, documents


def link_documents_to_project(admin, project_id: int, document_ids) -> tuple[Project, list[Document]]:
    """
    Attach pending documents to one of the admin's open projects.

    Raises:
        NotFoundError, PermissionDenied, ValidationError
    """
    if not document_ids:
        raise ValidationError(
            "Select at least one document",
            details={"document_ids": "At least one document is required"},
        )

    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    if admin.role != "superadmin" and admin.id not in (project.created_by, project.admin_lead_id):
        raise PermissionDenied("Project is not managed by this admin")
    if project.status in CLOSED_PROJECT_STATUSES:
        raise ValidationError(
            f"Project is {project.status} and no longer accepts documents",
            details={"project_id": project.status},
        )

    documents = Document.query.filter(Document.id.in_(document_ids)).all()
    found = {d.id: d for d in documents}
    errors = {}
    missing = [i for i in document_ids if i not in found]
    if missing:
        errors["missing"] = missing
    linked = [d.id for d in documents if not d.is_pending]
    if linked:
        errors["already_linked"] = sorted(linked)
    if project.client_id is not None:
        foreign = [d.id for d in documents if _uploader_client_id(d) != project.client_id]
    elif admin.role != "superadmin":
        # no client on the project: only the admin's own clients' documents
        allowed = admin_client_ids(admin)
        foreign = [d.id for d in documents if _uploader_client_id(d) not in allowed]
    else:
        foreign = []
    if foreign:
        errors["other_client"] = sorted(foreign)
    if errors:
        raise ValidationError("Documents cannot be linked to this project", details=errors)

    ordered = [found[i] for i in dict.fromkeys(document_ids)]
    for doc in ordered:
        doc.project_id = project.id
    db.session.flush()

    logger.info("Linked %d documents to project %s", len(ordered), project.id,
                extra={"project_id": project.id, "profile_id": admin.id})

    try:
        for doc in ordered:
            write_audit(
                entity_type="document",
                entity_id=doc.id,
                action="document.link",
                actor_id=admin.id,
                project_id=project.id,
                diff={"project_id": {"old": None, "new": project.id}},
            )
    except Exception:
        logger.warning("Audit log failed for document linking; main flow unaffected", exc_info=True)

    uploaders = list(dict.fromkeys(d.created_by for d in ordered if d.created_by is not None))
    NotificationService.notify_documents_linked(project, uploaders, len(ordered), sender_id=admin.id)
    return project, ordered
