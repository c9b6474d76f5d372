"""
Actor Context Middleware: resolves the acting profile for each API request.

Authentication lives upstream (gateway / identity provider). This service
trusts the ``X-Profile-Id`` header it forwards:

  1. Header present and matches a Profile → g.profile = Profile
  2. Header missing, malformed or unknown  → g.profile = None

Routes that need an actor guard themselves with ``require_roles``.
"""

import functools
import logging

from flask import g, request

from app.models import db
from app.models.profile import Profile
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

ACTOR_HEADER = "X-Profile-Id"

# Passes every role guard.
SUPERUSER_ROLE = "superadmin"


def init_actor_context(app):
    """Register actor context middleware as a before_request hook."""

    @app.before_request
    def _actor_context():
        g.profile = None

        if not request.path.startswith("/api/v1/"):
            return None

        raw = request.headers.get(ACTOR_HEADER, "").strip()
        if not raw:
            return None
        if not raw.isdigit():
            logger.warning("Ignoring malformed %s header: %r", ACTOR_HEADER, raw)
            return None

        profile = db.session.get(Profile, int(raw))
        if profile is None:
            logger.warning("%s=%s does not match any profile", ACTOR_HEADER, raw)
            return None

        g.profile = profile
        return None

    logger.info("Actor context middleware installed")


def current_actor() -> Profile | None:
    return getattr(g, "profile", None)


def current_actor_id() -> int | None:
    profile = current_actor()
    return profile.id if profile is not None else None


def require_roles(*roles: str):
    """
    Decorator: require the acting profile to hold one of ``roles``.

    Usage:
        @bp.route("/projects", methods=["POST"])
        @require_roles("admin_lead")
        def create_project(): ...

    401 when no actor is resolved, 403 when the role does not match.
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            profile = current_actor()
            if profile is None:
                return api_error(E.UNAUTHENTICATED, "Acting profile required", status=401)

            if profile.role != SUPERUSER_ROLE and profile.role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access %s (allowed: %s)",
                    profile.role, request.path, ", ".join(sorted(allowed)),
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")

            return f(*args, **kwargs)
        return decorated
    return decorator
