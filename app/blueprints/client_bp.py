"""
Client & Profile Blueprint.

Endpoints:
    GET  /api/v1/clients
    POST /api/v1/clients                 (admin_lead)
    GET  /api/v1/clients/<id>
    GET  /api/v1/profiles                ?role=&client_id=
    POST /api/v1/profiles                (admin_lead)
    GET  /api/v1/profiles/<id>
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import paginate_query
from app.middleware.actor_context import current_actor_id, require_roles
from app.models import db
from app.models.profile import ROLES, Client, Profile
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

client_bp = Blueprint("client", __name__, url_prefix="/api/v1")


def _clean(data, key):
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# ═══════════════════════════════════════════════════════════════════════════
#  CLIENTS
# ═══════════════════════════════════════════════════════════════════════════

@client_bp.route("/clients", methods=["GET"])
def list_clients():
    q = Client.query
    created_by = request.args.get("created_by", type=int)
    if created_by is not None:
        q = q.filter_by(created_by=created_by)
    items, total = paginate_query(q.order_by(Client.name.asc()))
    return jsonify({"items": [c.to_dict() for c in items], "total": total})


@client_bp.route("/clients", methods=["POST"])
@require_roles("admin_lead")
def create_client():
    data = request.get_json(silent=True) or {}
    name = _clean(data, "name")
    if not name:
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    client = Client(
        name=name,
        company_name=_clean(data, "company_name"),
        email=_clean(data, "email"),
        phone=_clean(data, "phone"),
        address=_clean(data, "address"),
        created_by=current_actor_id(),
    )
    db.session.add(client)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(client.to_dict()), 201


@client_bp.route("/clients/<int:client_id>", methods=["GET"])
def get_client(client_id):
    client, err = get_or_404(Client, client_id)
    if err:
        return err
    return jsonify(client.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  PROFILES
# ═══════════════════════════════════════════════════════════════════════════

@client_bp.route("/profiles", methods=["GET"])
def list_profiles():
    q = Profile.query
    role = request.args.get("role")
    if role:
        if role not in ROLES:
            return api_error(E.VALIDATION_INVALID, f"Invalid role. Must be one of: {sorted(ROLES)}")
        q = q.filter_by(role=role)
    client_id = request.args.get("client_id", type=int)
    if client_id is not None:
        q = q.filter_by(client_id=client_id)
    items, total = paginate_query(q.order_by(Profile.full_name.asc()))
    return jsonify({"items": [p.to_dict() for p in items], "total": total})


@client_bp.route("/profiles", methods=["POST"])
@require_roles("admin_lead")
def create_profile():
    data = request.get_json(silent=True) or {}
    full_name = _clean(data, "full_name")
    email = _clean(data, "email")
    if not full_name:
        return api_error(E.VALIDATION_REQUIRED, "full_name is required")
    if not email:
        return api_error(E.VALIDATION_REQUIRED, "email is required")

    role = _clean(data, "role") or "client"
    if role not in ROLES:
        return api_error(E.VALIDATION_INVALID, f"Invalid role. Must be one of: {sorted(ROLES)}")

    client_id = data.get("client_id")
    if client_id is not None:
        try:
            client_id = int(client_id)
        except (TypeError, ValueError):
            return api_error(E.VALIDATION_INVALID, "client_id must be an integer")
        _client, err = get_or_404(Client, client_id)
        if err:
            return err

    if Profile.query.filter_by(email=email).first():
        return api_error(E.CONFLICT_DUPLICATE, f"Profile with email {email} already exists")

    profile = Profile(
        full_name=full_name,
        email=email,
        phone_number=_clean(data, "phone_number"),
        role=role,
        specialization=_clean(data, "specialization") if role == "inspector" else None,
        client_id=client_id,
    )
    db.session.add(profile)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(profile.to_dict()), 201


@client_bp.route("/profiles/<int:profile_id>", methods=["GET"])
def get_profile(profile_id):
    profile, err = get_or_404(Profile, profile_id)
    if err:
        return err
    return jsonify(profile.to_dict())
