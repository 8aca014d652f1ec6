"""
test_routers_intake.py — Tests for the public lead intake webhook.

Covers POST /api/hook/catch (201, 400, duplicate 200, 503), the health
probe, and the admin intake toggle.

Called by: pytest
Depends on: caseflow/routers/intake.py, conftest.py
"""

from caseflow.models import DuplicateLead, IntakeSettings, Lead


class TestCatch:
    def test_creates_first_lead(self, client, db_session):
        resp = client.post("/api/hook/catch", json={"name": "Miriam Cohen", "email": "m@example.com"})
        assert resp.status_code == 201
        data = resp.json()
        assert data["lead_number"] == "L1"
        assert data["name"] == "Miriam Cohen"
        assert data["email"] == "m@example.com"
        assert data["id"] and data["created_at"]

    def test_nested_query_body(self, client, db_session):
        resp = client.post("/api/hook/catch", json={"query": {"name": "Yosef", "email": "y@example.com", "desc": "story"}})
        assert resp.status_code == 201
        assert db_session.query(Lead).one().facts == "story"

    def test_missing_email_400_no_insert(self, client, db_session):
        resp = client.post("/api/hook/catch", json={"name": "Miriam"})
        assert resp.status_code == 400
        assert "email" in resp.json()["error"]
        assert db_session.query(Lead).count() == 0

    def test_urlencoded_form_body(self, client, db_session):
        resp = client.post(
            "/api/hook/catch",
            data={"name": "Miriam Cohen", "email": "m@example.com", "mobile": "0505550100", "lead_source": "7"},
        )
        assert resp.status_code == 201
        lead = db_session.query(Lead).one()
        assert lead.phone == "0505550100"
        assert lead.source_code == 7

    def test_non_string_email_400(self, client, db_session):
        resp = client.post("/api/hook/catch", json={"name": "Miriam", "email": 12345})
        assert resp.status_code == 400
        assert "email" in resp.json()["error"]
        assert db_session.query(Lead).count() == 0

    def test_list_name_400(self, client, db_session):
        resp = client.post("/api/hook/catch", json={"name": ["Miriam"], "email": "m@example.com"})
        assert resp.status_code == 400
        assert "name" in resp.json()["error"]
        assert db_session.query(Lead).count() == 0

    def test_numeric_phone_accepted(self, client, db_session):
        resp = client.post("/api/hook/catch", json={"name": "Miriam", "email": "m@example.com", "phone": 972505550100})
        assert resp.status_code == 201
        assert db_session.query(Lead).one().phone == "972505550100"

    def test_non_object_body_400(self, client):
        resp = client.post("/api/hook/catch", json=["not", "an", "object"])
        assert resp.status_code == 400

    def test_continues_numbering(self, client, db_session):
        db_session.add(Lead(lead_number="L42", name="Existing", email="old@example.com"))
        db_session.commit()
        resp = client.post("/api/hook/catch", json={"name": "New", "email": "new@example.com"})
        assert resp.json()["lead_number"] == "L43"

    def test_duplicate_returns_200(self, client, db_session, test_lead):
        resp = client.post("/api/hook/catch", json={"name": "Someone", "email": "MIRIAM@example.com"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["duplicate"] is True
        assert data["existing_lead_id"] == test_lead.id
        assert data["duplicate_fields"] == ["email"]
        assert db_session.query(DuplicateLead).count() == 1
        assert db_session.query(Lead).count() == 1

    def test_disabled_503(self, client, db_session):
        db_session.add(IntakeSettings(is_active=False))
        db_session.commit()
        resp = client.post("/api/hook/catch", json={"name": "Miriam", "email": "m@example.com"})
        assert resp.status_code == 503
        assert resp.json()["success"] is False

    def test_public_without_auth(self, anon_client):
        resp = anon_client.post("/api/hook/catch", json={"name": "Miriam", "email": "m@example.com"})
        assert resp.status_code == 201


class TestHookHealth:
    def test_health(self, anon_client):
        data = anon_client.get("/api/hook/health").json()
        assert data["status"] == "OK"
        assert data["message"] == "Webhook endpoint is active"
        assert "timestamp" in data


class TestIntakeSettings:
    def test_admin_can_disable(self, admin_client):
        resp = admin_client.put("/api/hook/settings", json={"is_active": False})
        assert resp.status_code == 200
        assert admin_client.get("/api/hook/settings").json() == {"is_active": False}

    def test_non_admin_forbidden(self, client):
        resp = client.put("/api/hook/settings", json={"is_active": False})
        assert resp.status_code == 403
        assert resp.json()["error"] == "Admin access required"
