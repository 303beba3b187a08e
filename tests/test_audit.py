"""Tests for the audit trail written by the service layer."""

import json
from datetime import datetime, timedelta, timezone

from docuhub.models import AuditLog
from docuhub.services import audit_service
from tests.conftest import create_document, create_project


class TestAuditTrail:

    def test_document_lifecycle_is_audited(self, client, db):
        project = create_project(client)
        doc = create_document(client, project["id"])
        client.put(f"/api/documents/{doc['id']}", json={"content": "hello world"})

        entries = audit_service.get_by_resource(db, "document", doc["id"])
        assert [e.action for e in entries] == ["update", "create"]
        assert json.loads(entries[0].details)["versioned"] is True

    def test_purge_removes_only_old_entries(self, db):
        old = datetime.now(timezone.utc) - timedelta(days=400)
        db.add(AuditLog(user_id="u1", action="create", resource_type="document", resource_id="1", created_at=old))
        db.commit()
        audit_service.log(db, "u1", "update", "document", 1)

        assert audit_service.purge_old_entries(db, days=365) == 1
        assert [e.action for e in audit_service.get_by_resource(db, "document", 1)] == ["update"]

    def test_zero_retention_keeps_everything(self, db):
        audit_service.log(db, "u1", "create", "document", 1)
        assert audit_service.purge_old_entries(db, days=0) == 0
