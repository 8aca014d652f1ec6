"""
test_document_service.py — Tests for the document requirement registry.

Covers:
- add_required_document(): validation, owner checks, defaults
- add_template_document(): due date from typical_due_days, notes from
  instructions, no idempotency
- update_document(), requested/received-from tracking, delete
- count_missing_documents() and listing order

Called by: pytest
Depends on: caseflow/services/document_service.py, conftest.py
"""

from datetime import datetime, timedelta, timezone

import pytest

from caseflow.errors import NotFoundError, ValidationError
from caseflow.models import Contact, DocumentStatusHistory, Lead, RequiredDocument
from caseflow.services import document_service


class TestAddRequiredDocument:
    def test_creates_missing_document(self, db_session, test_lead):
        doc = document_service.add_required_document(
            db_session, test_lead.id, "  Passport  ", document_type="identity"
        )
        assert doc.id is not None
        assert doc.document_name == "Passport"
        assert doc.status == "missing"
        assert doc.is_required is True
        assert doc.contact_id is None

    def test_blank_name_rejected(self, db_session, test_lead):
        with pytest.raises(ValidationError):
            document_service.add_required_document(db_session, test_lead.id, "   ")
        assert db_session.query(RequiredDocument).count() == 0

    def test_missing_lead_id_rejected(self, db_session):
        with pytest.raises(ValidationError):
            document_service.add_required_document(db_session, None, "Passport")

    def test_unknown_lead(self, db_session):
        with pytest.raises(NotFoundError):
            document_service.add_required_document(db_session, 9999, "Passport")

    def test_unknown_type(self, db_session, test_lead):
        with pytest.raises(ValidationError):
            document_service.add_required_document(db_session, test_lead.id, "Passport", document_type="misc")

    def test_contact_from_other_lead_rejected(self, db_session, test_lead):
        other = Lead(lead_number="L200", name="Other Case")
        db_session.add(other)
        db_session.flush()
        stranger = Contact(lead_id=other.id, name="Stranger", relationship="other")
        db_session.add(stranger)
        db_session.commit()

        with pytest.raises(NotFoundError):
            document_service.add_required_document(
                db_session, test_lead.id, "Passport", contact_id=stranger.id
            )


class TestTemplateDocument:
    def test_due_date_and_notes_from_template(self, db_session, test_lead, main_contact, birth_template):
        doc = document_service.add_template_document(
            db_session, test_lead.id, birth_template, contact_id=main_contact.id, requested_by="Dana"
        )
        expected = (datetime.now(timezone.utc) + timedelta(days=30)).date()
        assert abs((doc.due_date - expected).days) <= 1
        assert doc.notes == birth_template.instructions
        assert doc.document_type == "civil_status"
        assert doc.document_name == "Birth Certificate"
        assert doc.requested_by == "Dana"

    def test_accepts_template_id(self, db_session, test_lead, birth_template):
        doc = document_service.add_template_document(db_session, test_lead.id, birth_template.id)
        assert doc.document_name == birth_template.name

    def test_unknown_template_id(self, db_session, test_lead):
        with pytest.raises(NotFoundError):
            document_service.add_template_document(db_session, test_lead.id, 9999)

    def test_not_idempotent(self, db_session, test_lead, birth_template):
        document_service.add_template_document(db_session, test_lead.id, birth_template)
        document_service.add_template_document(db_session, test_lead.id, birth_template)
        assert len(document_service.list_documents_for_lead(db_session, test_lead.id)) == 2


class TestUpdateDocument:
    def test_edit_descriptive_fields(self, db_session, test_document):
        doc = document_service.update_document(
            db_session, test_document.id, notes="Ask the archive in Lodz", is_required=False
        )
        assert doc.notes == "Ask the archive in Lodz"
        assert doc.is_required is False

    def test_status_not_editable_here(self, db_session, test_document):
        with pytest.raises(ValidationError):
            document_service.update_document(db_session, test_document.id, status="approved")

    def test_status_change_goes_through_ledger(self, db_session, test_document):
        entry = document_service.update_document_status(db_session, test_document.id, "pending", "Dana")
        assert entry.old_status == "missing"
        assert db_session.query(DocumentStatusHistory).count() == 1

    def test_requested_from_stamps_actor(self, db_session, test_document):
        doc = document_service.update_requested_from(db_session, test_document.id, "Client", "Dana")
        assert doc.requested_from == "Client"
        assert doc.requested_from_changed_by == "Dana"
        assert doc.requested_from_changed_at is not None

    def test_received_from_cleared_with_blank(self, db_session, test_document):
        document_service.update_received_from(db_session, test_document.id, "Archive", "Dana")
        doc = document_service.update_received_from(db_session, test_document.id, "  ", "Dana")
        assert doc.received_from is None

    def test_update_missing_document(self, db_session):
        with pytest.raises(NotFoundError):
            document_service.update_document(db_session, 9999, notes="x")


class TestDeleteAndCount:
    def test_delete(self, db_session, test_document):
        document_service.delete_document(db_session, test_document.id)
        assert db_session.get(RequiredDocument, test_document.id) is None

    def test_count_missing(self, db_session, test_lead, test_document):
        document_service.add_required_document(db_session, test_lead.id, "Passport", status="received")
        document_service.add_required_document(db_session, test_lead.id, "Marriage Certificate")
        counts = document_service.count_missing_documents(db_session, [test_lead.id])
        assert counts == {test_lead.id: 2}

    def test_count_missing_empty(self, db_session):
        assert document_service.count_missing_documents(db_session, []) == {}

    def test_list_for_contact(self, db_session, test_lead, main_contact, test_document):
        document_service.add_required_document(db_session, test_lead.id, "Case Summary")
        docs = document_service.list_documents_for_contact(db_session, main_contact.id)
        assert [d.id for d in docs] == [test_document.id]
