"""
conftest.py — Shared Test Fixtures for caseflow

Provides an in-memory SQLite database, FastAPI TestClient with auth
overrides, and factory fixtures for core models (User, Lead, Contact,
RequiredDocument, DocumentTemplate).

Business Rules:
- All tests run against isolated in-memory DB (no prod data risk)
- Auth is overridden so tests don't need a session cookie
- Each test function gets a fresh schema (create_all / drop_all)
- OneDrive is never reached: get_drive_store is overridden per test

Called by: all test files via pytest autodiscovery
Depends on: caseflow.models (Base), caseflow.database (get_db), caseflow.dependencies
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing caseflow modules
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from caseflow.models import Base, Contact, DocumentTemplate, Lead, RequiredDocument, User

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"  # in-memory, fresh per session

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """A standard handler user."""
    user = User(
        email="handler@caseflow.test",
        full_name="Dana Handler",
        role="handler",
        created_at=datetime.now(timezone.utc),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    """An admin-role user for privileged operations."""
    user = User(
        email="admin@caseflow.test",
        full_name="Test Admin",
        role="admin",
        created_at=datetime.now(timezone.utc),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def test_lead(db_session: Session) -> Lead:
    """A case with a fixed lead number."""
    lead = Lead(
        lead_number="L100",
        name="Miriam Cohen",
        email="miriam@example.com",
        phone="+972-50-555-0100",
        stage="created",
        status="new",
        created_at=datetime.now(timezone.utc),
    )
    db_session.add(lead)
    db_session.commit()
    db_session.refresh(lead)
    return lead


@pytest.fixture()
def main_contact(db_session: Session, test_lead: Lead) -> Contact:
    """The persecuted person (main applicant) on test_lead."""
    contact = Contact(
        lead_id=test_lead.id,
        name="Abraham Cohen",
        relationship="persecuted_person",
        is_main_applicant=True,
        is_persecuted=True,
    )
    db_session.add(contact)
    db_session.commit()
    db_session.refresh(contact)
    return contact


@pytest.fixture()
def test_document(db_session: Session, test_lead: Lead, main_contact: Contact) -> RequiredDocument:
    """A missing Birth Certificate for the main contact."""
    doc = RequiredDocument(
        lead_id=test_lead.id,
        contact_id=main_contact.id,
        document_name="Birth Certificate",
        document_type="civil_status",
        status="missing",
    )
    db_session.add(doc)
    db_session.commit()
    db_session.refresh(doc)
    return doc


@pytest.fixture()
def birth_template(db_session: Session) -> DocumentTemplate:
    t = DocumentTemplate(
        name="Birth Certificate",
        category="civil_status",
        typical_due_days=30,
        instructions="Full civil record, apostilled if foreign.",
    )
    db_session.add(t)
    db_session.commit()
    db_session.refresh(t)
    return t


@pytest.fixture()
def client(db_session: Session, test_user: User) -> TestClient:
    """FastAPI TestClient with auth overridden to return test_user.

    Overrides get_db to use the test session and require_user to
    skip session auth entirely.
    """
    from caseflow.database import get_db
    from caseflow.dependencies import require_user
    from caseflow.main import app

    def _override_db():
        yield db_session

    def _override_user():
        return test_user

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[require_user] = _override_user

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def admin_client(db_session: Session, admin_user: User) -> TestClient:
    """TestClient with admin auth overrides."""
    from caseflow.database import get_db
    from caseflow.dependencies import require_user
    from caseflow.main import app

    def _override_db():
        yield db_session

    def _override_admin():
        return admin_user

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[require_user] = _override_admin

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def anon_client(db_session: Session) -> TestClient:
    """TestClient with only the DB overridden (real auth dependencies)."""
    from caseflow.database import get_db
    from caseflow.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
