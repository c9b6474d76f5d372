"""Audit writer tests."""

import pytest

from app.models.audit import AUDIT_ACTIONS, AuditLog, write_audit
from app.models.status import DOCUMENT_TRANSITIONS


def test_write_audit_serialises_diff(admin):
    row = write_audit(
        entity_type="project", entity_id=7, action="project.update",
        actor_id=admin.id, diff={"priority": {"old": "low", "new": "high"}},
    )
    assert row.entity_id == "7"
    assert AuditLog.query.one().diff == {"priority": {"old": "low", "new": "high"}}


def test_unknown_action_rejected():
    with pytest.raises(ValueError):
        write_audit(entity_type="project", entity_id=1, action="project.explode")


def test_unknown_entity_rejected():
    with pytest.raises(ValueError):
        write_audit(entity_type="invoice", entity_id=1, action="project.update")


def test_every_document_action_is_auditable():
    assert {f"document.{a}" for a in DOCUMENT_TRANSITIONS} <= AUDIT_ACTIONS
