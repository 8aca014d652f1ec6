"""
test_e2e_document_flow.py — A case from intake to a fully approved file.

Walks the API the way a handler does: webhook intake, add the persecuted
person, require a document, approve it, and check completion and history.

Called by: pytest
Depends on: caseflow/main.py, conftest.py
"""


def test_intake_to_approved_document(client):
    created = client.post("/api/hook/catch", json={"name": "Miriam Cohen", "email": "miriam@example.com"})
    assert created.status_code == 201
    lead_id = created.json()["id"]

    contact = client.post(
        f"/api/leads/{lead_id}/contacts",
        json={"name": "Abraham Cohen", "relationship": "persecuted_person"},
    ).json()
    assert contact["is_main_applicant"] is True

    doc = client.post(
        f"/api/leads/{lead_id}/documents",
        json={"document_name": "Birth Certificate", "document_type": "civil_status", "contact_id": contact["id"]},
    ).json()

    resp = client.put(f"/api/documents/{doc['id']}/status", json={"status": "approved"})
    assert resp.status_code == 200

    completion = client.get(f"/api/contacts/{contact['id']}/completion").json()
    assert completion["total"] == 1
    assert completion["percentage"] == 100

    history = client.get(f"/api/leads/{lead_id}/history").json()
    assert len(history) == 1
    assert history[0]["old_status"] == "missing"
    assert history[0]["new_status"] == "approved"

    docs = client.get(f"/api/contacts/{contact['id']}/documents").json()
    assert docs[0]["approved_date"] is not None
