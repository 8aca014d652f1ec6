"""
startup.py — Database Startup Seeding (Idempotent)

Tables, columns, and indexes are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). This file seeds the reference
data the app needs on a fresh database: the document template catalog, the
default-document rules per relationship, and the intake settings row.
Existing rows are never overwritten, so staff edits survive restarts.

Called by: main.py lifespan
Depends on: database.py (engine, SessionLocal), models
"""

import logging
import os

from .database import SessionLocal, engine

log = logging.getLogger(__name__)

# name, category, typical_due_days, instructions
TEMPLATE_CATALOG = [
    ("Birth Certificate", "civil_status", 30, "Full (unabridged) civil record, apostilled if foreign."),
    ("Marriage Certificate", "civil_status", 30, "Civil marriage record showing both spouses' names."),
    ("Death Certificate", "civil_status", 45, "Official death record, apostilled if foreign."),
    ("Name Change Record", "civil_status", 45, "Any official record of a change of surname."),
    ("Passport", "identity", 14, "Colour copy of the photo page, valid for at least 6 months."),
    ("National ID Card", "identity", 14, "Both sides, colour copy."),
    ("Proof of Persecution", "legal", 60, "Archive records, residence registrations or camp records."),
    ("Police Clearance", "legal", 45, "Issued within the last 6 months."),
    ("Power of Attorney", "legal", 14, "Signed and notarized on the firm's form."),
    ("Bank Statement", "financial", 30, "Last 3 months, showing the account holder's name."),
    ("Employment Letter", "professional", 30, "On company letterhead, stating role and start date."),
    ("Medical Report", "health", 30, "Recent report from a licensed physician."),
]

# relationship -> template names seeded when a contact is added
DEFAULT_RULES = {
    "persecuted_person": ["Birth Certificate", "Death Certificate", "Proof of Persecution"],
    "spouse": ["Birth Certificate", "Marriage Certificate", "Passport"],
    "child": ["Birth Certificate", "Passport"],
    "grandchild": ["Birth Certificate", "Passport"],
    "great_grandchild": ["Birth Certificate", "Passport"],
    "grandson": ["Birth Certificate", "Passport"],
    "granddaughter": ["Birth Certificate", "Passport"],
    "great_grandson": ["Birth Certificate", "Passport"],
    "great_granddaughter": ["Birth Certificate", "Passport"],
    "parent": ["Birth Certificate", "Marriage Certificate"],
    "grandparent": ["Birth Certificate", "Marriage Certificate"],
    "great_grandparent": ["Birth Certificate", "Marriage Certificate"],
}


def run_startup_migrations() -> None:
    """Execute all idempotent startup operations. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        log.info("TESTING mode — skipping startup migrations")
        return

    from .models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("ORM schema sync complete (create_all checkfirst=True)")

    db = SessionLocal()
    try:
        seed_reference_data(db)
    finally:
        db.close()
    log.info("Startup migrations complete")


def seed_reference_data(db) -> None:
    """Insert missing templates, default rules and the intake settings row."""
    from .models import DefaultDocumentRule, DocumentTemplate, IntakeSettings

    existing = {t.name: t for t in db.query(DocumentTemplate).all()}
    added = 0
    for name, category, due_days, instructions in TEMPLATE_CATALOG:
        if name in existing:
            continue
        t = DocumentTemplate(
            name=name, category=category, typical_due_days=due_days, instructions=instructions
        )
        db.add(t)
        existing[name] = t
        added += 1
    db.flush()

    # Rules are only seeded into an empty table; after that they are staff-owned
    rules_added = 0
    if not db.query(DefaultDocumentRule.id).first():
        for relationship, names in DEFAULT_RULES.items():
            for name in names:
                db.add(DefaultDocumentRule(relationship_type=relationship, template_id=existing[name].id))
                rules_added += 1

    if not db.query(IntakeSettings.id).first():
        db.add(IntakeSettings(is_active=True))

    db.commit()
    log.info("Seeded %d templates, %d default document rules", added, rules_added)
