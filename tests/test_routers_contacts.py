"""
test_routers_contacts.py — Tests for the contacts API.

Called by: pytest
Depends on: caseflow/routers/contacts.py, conftest.py
"""

from caseflow.models import RequiredDocument


class TestContactsApi:
    def test_add_main_applicant(self, client, test_lead):
        resp = client.post(
            f"/api/leads/{test_lead.id}/contacts",
            json={"name": "Abraham Cohen", "relationship": "persecuted_person"},
        )
        assert resp.status_code == 201
        assert resp.json()["is_main_applicant"] is True

    def test_unknown_relationship_422(self, client, test_lead):
        resp = client.post(f"/api/leads/{test_lead.id}/contacts", json={"name": "X", "relationship": "neighbor"})
        assert resp.status_code == 422

    def test_list_decorated(self, client, test_lead, test_document):
        rows = client.get(f"/api/leads/{test_lead.id}/contacts").json()
        assert rows[0]["relationship"] == "persecuted_person"
        assert rows[0]["document_count"] == 1
        assert rows[0]["completion_percentage"] == 0

    def test_completion(self, client, main_contact, test_document):
        data = client.get(f"/api/contacts/{main_contact.id}/completion").json()
        assert data == {"contact_id": main_contact.id, "total": 1, "completed": 0, "percentage": 0}

    def test_delete_cascades_documents(self, client, db_session, main_contact, test_document):
        assert client.delete(f"/api/contacts/{main_contact.id}").json() == {"ok": True}
        assert db_session.query(RequiredDocument).count() == 0

    def test_mobile_round_trips(self, client, test_lead):
        data = client.post(
            f"/api/leads/{test_lead.id}/contacts",
            json={"name": "Ruth Cohen", "relationship": "child", "mobile": "0527770000"},
        ).json()
        assert data["mobile"] == "0527770000"
