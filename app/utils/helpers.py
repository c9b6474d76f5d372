"""Shared blueprint helpers.

get_or_404:          tuple-return lookup (no abort)
parse_date_input:    strict, ValueError on bad input
parse_time_input:    strict HH:MM[:SS] parser for inspection slots
parse_datetime_input: ISO datetime for schedules, naive means UTC
parse_id_list:       validates a JSON list of integer ids
optional_text:       free-text field, ValidationError on non-strings
db_commit_or_error:  single commit point for blueprints
"""
import logging
from datetime import UTC, date, datetime, time

from app.core.exceptions import ValidationError
from app.models import db
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (response, 404))

        obj, err = get_or_404(Project, pid)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj:
        return None, api_error(E.NOT_FOUND, f"{label} not found")
    return obj, None


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Supports: YYYY-MM-DD, DD.MM.YYYY, date objects.
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        try:
            return datetime.strptime(str(value), "%d.%m.%Y").date()
        except ValueError as exc:
            raise ValueError(
                "Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY."
            ) from exc


def parse_time_input(value):
    """Parse HH:MM or HH:MM:SS, raising ValueError on bad input."""
    if not value:
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError("Invalid time format. Use HH:MM.") from exc


def parse_datetime_input(value):
    """Parse an ISO datetime (``T`` or space separated), raising ValueError on bad input.

    A bare date means midnight. Naive values are taken as UTC.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError as exc:
            raise ValueError("Invalid datetime format. Use YYYY-MM-DDTHH:MM.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def optional_text(value, field):
    """Strip an optional free-text field; blank becomes None.

    Raises:
        ValidationError: the value is present but not a string
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: "must be a string"})
    return value.strip() or None


def parse_id_list(value, field="document_ids"):
    """Return a list of ints from a JSON array, raising ValueError otherwise."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field} must be a list")
    ids = []
    for item in value:
        if isinstance(item, bool):
            raise ValueError(f"{field} must contain integer ids")
        try:
            ids.append(int(item))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{field} must contain integer ids") from exc
    return ids


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure: ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)

    The session is rolled back on every failure, so a multi-row operation
    either lands completely or not at all.
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return api_error(E.DATABASE, "Database error")
