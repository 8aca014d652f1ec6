"""
test_lead_service.py — Tests for lead numbering, intake and lead CRUD.

Covers:
- next_lead_number(): L1 on an empty table, continues after the highest
  existing suffix, never reuses a number
- normalize_intake_payload(): nested "query" bodies and field aliases
- find_duplicate(): email (case-insensitive), phone, normalized name, contacts
- intake_lead(): disabled switch, required fields, duplicate parking
- update_lead() / list_leads()

Called by: pytest
Depends on: caseflow/services/lead_service.py, conftest.py
"""

import pytest

from caseflow.errors import IntakeDisabledError, NotFoundError, ValidationError
from caseflow.models import Contact, DuplicateLead, IntakeSettings, Lead, LeadNumberSequence
from caseflow.services import lead_service


class TestLeadNumbering:
    def test_first_number_is_l1(self, db_session):
        assert lead_service.next_lead_number(db_session) == "L1"

    def test_continues_after_existing_max(self, db_session):
        db_session.add_all([
            Lead(lead_number="L7", name="A"),
            Lead(lead_number="L42", name="B"),
            Lead(lead_number="C19", name="C"),
        ])
        db_session.commit()
        assert lead_service.next_lead_number(db_session) == "L43"

    def test_sequence_increments(self, db_session):
        first = lead_service.create_lead(db_session, {"name": "First"})
        second = lead_service.create_lead(db_session, {"name": "Second"})
        assert (first.lead_number, second.lead_number) == ("L1", "L2")
        assert db_session.get(LeadNumberSequence, "L").last_value == 2

    def test_custom_prefix(self, db_session):
        assert lead_service.next_lead_number(db_session, prefix="C") == "C1"


class TestNormalizePayload:
    def test_nested_query_and_aliases(self):
        form = lead_service.normalize_intake_payload({
            "query": {
                "name": " Miriam ",
                "email": "m@example.com",
                "mobile": "0501234567",
                "category": "Restitution",
                "desc": "Family lost property in 1939",
                "lead_source": "17",
            }
        })
        assert form["name"] == "Miriam"
        assert form["phone"] == "0501234567"
        assert form["topic"] == "Restitution"
        assert form["facts"] == "Family lost property in 1939"
        assert form["source_code"] == 17
        assert form["source"] == "webhook"
        assert form["language"] == "English"

    def test_bad_source_code_dropped(self):
        assert lead_service.normalize_intake_payload({"source_code": "1.5"})["source_code"] is None

    def test_facts_kept_as_given(self):
        facts = {"q1": "yes", "children": 3}
        assert lead_service.normalize_intake_payload({"facts": facts})["facts"] == facts

    @pytest.mark.parametrize("field,value", [("email", 12345), ("name", ["Miriam"]), ("phone", {"n": 1}), ("mobile", True)])
    def test_non_string_text_field_rejected(self, field, value):
        with pytest.raises(ValidationError, match=field):
            lead_service.normalize_intake_payload({"name": "Miriam", "email": "m@example.com", field: value})

    def test_integer_phone_becomes_text(self):
        assert lead_service.normalize_intake_payload({"phone": 505550100})["phone"] == "505550100"


class TestFindDuplicate:
    def test_email_case_insensitive(self, db_session, test_lead):
        lead, fields = lead_service.find_duplicate(db_session, {"name": "Someone", "email": "MIRIAM@example.com"})
        assert lead.id == test_lead.id
        assert fields == ["email"]

    def test_name_normalized(self, db_session, test_lead):
        lead, fields = lead_service.find_duplicate(db_session, {"name": "  miriam COHEN ", "email": "x@y.z"})
        assert lead.id == test_lead.id
        assert fields == ["name"]

    def test_contact_match_points_to_its_lead(self, db_session, test_lead):
        db_session.add(Contact(lead_id=test_lead.id, name="Sarah Levi", email="sarah@example.com"))
        db_session.commit()
        lead, fields = lead_service.find_duplicate(db_session, {"name": "New Person", "email": "sarah@example.com"})
        assert lead.id == test_lead.id
        assert fields == ["email"]

    def test_phone_matches_contact_mobile(self, db_session, test_lead):
        db_session.add(Contact(lead_id=test_lead.id, name="Sarah Levi", mobile="0527770000"))
        db_session.commit()
        lead, fields = lead_service.find_duplicate(
            db_session, {"name": "New Person", "email": "n@x.y", "phone": "0527770000"}
        )
        assert lead.id == test_lead.id
        assert fields == ["phone"]

    def test_no_match(self, db_session, test_lead):
        assert lead_service.find_duplicate(db_session, {"name": "Nobody", "email": "n@x.y"}) == (None, [])


class TestIntakeLead:
    def test_creates_lead(self, db_session):
        result = lead_service.intake_lead(db_session, {"name": "Miriam", "email": "m@example.com", "facts": {"a": 1}})
        assert result.lead.lead_number == "L1"
        assert result.lead.stage == "created"
        assert result.lead.status == "new"
        assert result.lead.facts == {"a": 1}

    def test_missing_email_inserts_nothing(self, db_session):
        with pytest.raises(ValidationError):
            lead_service.intake_lead(db_session, {"name": "Miriam"})
        assert db_session.query(Lead).count() == 0

    def test_disabled(self, db_session):
        db_session.add(IntakeSettings(is_active=False))
        db_session.commit()
        with pytest.raises(IntakeDisabledError):
            lead_service.intake_lead(db_session, {"name": "Miriam", "email": "m@example.com"})

    def test_duplicate_parked_for_review(self, db_session, test_lead):
        result = lead_service.intake_lead(db_session, {"name": "Other", "email": "miriam@example.com"})
        assert result.lead is None
        assert result.duplicate_fields == ["email"]
        dup = db_session.query(DuplicateLead).one()
        assert dup.existing_lead_id == test_lead.id
        assert dup.status == "pending"
        assert db_session.query(Lead).count() == 1

    def test_toggle(self, db_session):
        assert lead_service.intake_enabled(db_session) is True
        lead_service.set_intake_active(db_session, False, updated_by="Admin")
        assert lead_service.intake_enabled(db_session) is False


class TestLeadCrud:
    def test_update(self, db_session, test_lead):
        lead = lead_service.update_lead(db_session, test_lead.id, {"handler": "Dana", "stage": "meeting"})
        assert lead.handler == "Dana"
        assert lead.stage == "meeting"

    def test_update_rejects_unknown_field(self, db_session, test_lead):
        with pytest.raises(ValidationError):
            lead_service.update_lead(db_session, test_lead.id, {"lead_number": "L1"})

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            lead_service.get_lead(db_session, 9999)

    def test_list_search(self, db_session, test_lead):
        lead_service.create_lead(db_session, {"name": "Yosef Katz"})
        rows, total = lead_service.list_leads(db_session, search="katz")
        assert total == 1
        assert rows[0].name == "Yosef Katz"
