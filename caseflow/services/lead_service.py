"""Lead service — case numbering, intake, and internal lead CRUD.

Lead numbers come from a row-locked counter (LeadNumberSequence) so
concurrent intake deliveries can never draw the same number. The counter is
seeded once from the highest numeric suffix already in the leads table.

Intake business rules:
- Fields may arrive nested under "query"; source_code|lead_source,
  facts|desc, phone|mobile and topic|category are aliases
- name and email are required; nothing is written when either is missing
- Text fields must be strings (integer phone numbers are taken as text);
  any other shape is a ValidationError
- A submission matching an existing lead or family contact (email
  case-insensitive, phone exact, name trimmed + lowercased) is parked in the
  DuplicateLead review queue instead of creating a lead

Called by: routers/intake.py, routers/leads.py
Depends on: models.leads, models.contacts
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import commit_or_raise
from ..errors import IntakeDisabledError, NotFoundError, ValidationError
from ..models import Contact, DuplicateLead, IntakeSettings, Lead, LeadNumberSequence
from ..utils import safe_int32

_TRAILING_DIGITS = re.compile(r"(\d+)\s*$")

LEAD_UPDATE_FIELDS = (
    "name", "email", "phone", "mobile", "topic", "category", "stage", "status",
    "language", "balance", "balance_currency", "handler", "expert", "closer",
    "manager", "scheduler",
)


# ── Numbering ────────────────────────────────────────────────────────


def _max_existing_suffix(db: Session) -> int:
    highest = 0
    for (number,) in db.query(Lead.lead_number).yield_per(1000):
        m = _TRAILING_DIGITS.search(number or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return highest


def _ensure_sequence(db: Session, prefix: str) -> None:
    if db.get(LeadNumberSequence, prefix):
        return
    seed = _max_existing_suffix(db)
    db.add(LeadNumberSequence(prefix=prefix, last_value=seed))
    try:
        db.commit()
        logger.info("Lead number sequence '{}' seeded at {}", prefix, seed)
    except IntegrityError:
        # Another worker seeded it first
        db.rollback()


def next_lead_number(db: Session, prefix: str | None = None) -> str:
    """Draw the next lead number. The counter row stays locked until the caller commits."""
    prefix = prefix or settings.lead_number_prefix
    _ensure_sequence(db, prefix)
    seq = (
        db.query(LeadNumberSequence)
        .filter(LeadNumberSequence.prefix == prefix)
        .with_for_update()
        .one()
    )
    seq.last_value += 1
    db.flush()
    return f"{prefix}{seq.last_value}"


# ── Creation ─────────────────────────────────────────────────────────


def _build_lead(db: Session, fields: dict, created_by: str | None) -> Lead:
    name = (fields.get("name") or "").strip()
    if not name:
        raise ValidationError("Lead name is required")
    lead = Lead(
        lead_number=next_lead_number(db),
        name=name,
        email=fields.get("email"),
        phone=fields.get("phone"),
        mobile=fields.get("mobile"),
        topic=fields.get("topic"),
        category=fields.get("category"),
        facts=fields.get("facts"),
        source=fields.get("source") or settings.default_lead_source,
        source_code=safe_int32(fields.get("source_code")),
        language=fields.get("language") or settings.default_lead_language,
        balance=fields.get("balance"),
        balance_currency=fields.get("balance_currency") or settings.default_balance_currency,
        stage="created",
        status="new",
        created_by=created_by,
    )
    db.add(lead)
    return lead


def create_lead(db: Session, fields: dict, created_by: str | None = None) -> Lead:
    """Create a lead with the next sequential number in one transaction."""
    lead = _build_lead(db, fields, created_by)
    commit_or_raise(db, "Create lead")
    db.refresh(lead)
    logger.info("Lead {} created by {}", lead.lead_number, created_by or "intake")
    return lead


# ── Intake ───────────────────────────────────────────────────────────


def intake_enabled(db: Session) -> bool:
    row = db.query(IntakeSettings).order_by(IntakeSettings.id).first()
    return row is None or bool(row.is_active)


def set_intake_active(
    db: Session, is_active: bool, notes: str | None = None, updated_by: str | None = None
) -> IntakeSettings:
    row = db.query(IntakeSettings).order_by(IntakeSettings.id).first()
    if row is None:
        row = IntakeSettings()
        db.add(row)
    row.is_active = is_active
    row.notes = notes
    row.updated_by = updated_by
    commit_or_raise(db, "Update intake settings")
    db.refresh(row)
    logger.info("Intake webhook {} by {}", "enabled" if is_active else "disabled", updated_by)
    return row


_TEXT_FIELDS = ("name", "email", "phone", "mobile", "topic", "category", "source", "language")


def normalize_intake_payload(body: dict) -> dict:
    """Flatten a raw webhook body into lead fields, resolving aliases.

    Text fields must be strings. Phone numbers sent as JSON integers are
    taken as their decimal text. Anything else raises ValidationError.
    """
    data = body.get("query") if isinstance(body.get("query"), dict) else body

    for key in _TEXT_FIELDS:
        v = data.get(key)
        if key in ("phone", "mobile") and isinstance(v, int) and not isinstance(v, bool):
            continue
        if v is not None and not isinstance(v, str):
            raise ValidationError(f"Field '{key}' must be a string")

    def pick(*keys):
        for k in keys:
            v = data.get(k)
            if isinstance(v, str):
                v = v.strip()
            if v not in (None, ""):
                return v
        return None

    def text(*keys):
        v = pick(*keys)
        return str(v) if v is not None else None

    return {
        "name": text("name"),
        "email": text("email"),
        "phone": text("phone", "mobile"),
        "mobile": text("mobile"),
        "topic": text("topic", "category"),
        "category": text("category"),
        "facts": pick("facts", "desc"),
        "source": text("source") or settings.default_lead_source,
        "language": text("language") or settings.default_lead_language,
        "source_code": safe_int32(pick("source_code", "lead_source")),
    }


def _normalize_name(name: str | None) -> str:
    return (name or "").strip().lower()


def _match_fields(form: dict, email: str | None, phones: tuple, name: str | None) -> list[str]:
    matched = []
    if form.get("email") and email and email.lower() == form["email"].lower():
        matched.append("email")
    if form.get("phone") and form["phone"] in phones:
        matched.append("phone")
    if form.get("name") and name and _normalize_name(name) == _normalize_name(form["name"]):
        matched.append("name")
    return matched


def find_duplicate(db: Session, form: dict) -> tuple[Lead | None, list[str]]:
    """First existing lead (or contact's lead) matching the form, with matched fields."""
    email = (form.get("email") or "").lower()
    phone = form.get("phone")
    norm_name = _normalize_name(form.get("name"))

    lead_conds = []
    if email:
        lead_conds.append(func.lower(Lead.email) == email)
    if phone:
        lead_conds += [Lead.phone == phone, Lead.mobile == phone]
    if norm_name:
        lead_conds.append(func.lower(func.trim(Lead.name)) == norm_name)
    if not lead_conds:
        return None, []

    lead = (
        db.query(Lead)
        .filter(or_(*lead_conds))
        .order_by(Lead.created_at.desc(), Lead.id.desc())
        .first()
    )
    if lead:
        return lead, _match_fields(form, lead.email, (lead.phone, lead.mobile), lead.name)

    contact_conds = []
    if email:
        contact_conds.append(func.lower(Contact.email) == email)
    if phone:
        contact_conds += [Contact.phone == phone, Contact.mobile == phone]
    if norm_name:
        contact_conds.append(func.lower(func.trim(Contact.name)) == norm_name)
    contact = (
        db.query(Contact)
        .filter(or_(*contact_conds))
        .order_by(Contact.created_at.desc(), Contact.id.desc())
        .first()
    )
    if contact:
        fields = _match_fields(form, contact.email, (contact.phone, contact.mobile), contact.name)
        return contact.lead, fields
    return None, []


@dataclass
class IntakeResult:
    lead: Lead | None = None
    duplicate: DuplicateLead | None = None
    duplicate_fields: list[str] = field(default_factory=list)


def intake_lead(db: Session, body: dict) -> IntakeResult:
    """Process one webhook submission.

    Raises IntakeDisabledError when intake is switched off, ValidationError
    when name or email is missing, DatabaseError on a failed write.
    """
    if not intake_enabled(db):
        raise IntakeDisabledError("Webhook endpoint is currently disabled")

    form = normalize_intake_payload(body or {})
    if not form["name"] or not form["email"]:
        raise ValidationError("Missing required fields: name and email are required")

    existing, fields = find_duplicate(db, form)
    if existing and fields:
        dup = DuplicateLead(
            new_lead_data={k: v for k, v in form.items() if v is not None},
            existing_lead_id=existing.id,
            duplicate_fields=fields,
            status="pending",
        )
        db.add(dup)
        commit_or_raise(db, "Store duplicate lead")
        db.refresh(dup)
        logger.info(
            "Intake duplicate of lead {} on {} parked for review", existing.lead_number, fields
        )
        return IntakeResult(duplicate=dup, duplicate_fields=fields)

    lead = create_lead(db, form, created_by=None)
    return IntakeResult(lead=lead)


# ── Internal CRUD ────────────────────────────────────────────────────


def get_lead(db: Session, lead_id: int) -> Lead:
    lead = db.get(Lead, lead_id)
    if not lead:
        raise NotFoundError(f"Lead {lead_id} not found")
    return lead


def list_leads(
    db: Session, search: str | None = None, stage: str | None = None,
    limit: int = 50, offset: int = 0,
) -> tuple[list[Lead], int]:
    q = db.query(Lead)
    if stage:
        q = q.filter(Lead.stage == stage)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Lead.name.ilike(like), Lead.email.ilike(like), Lead.lead_number.ilike(like)))
    total = q.count()
    rows = q.order_by(Lead.created_at.desc(), Lead.id.desc()).offset(offset).limit(limit).all()
    return rows, total


def update_lead(db: Session, lead_id: int, fields: dict) -> Lead:
    lead = get_lead(db, lead_id)
    unknown = set(fields) - set(LEAD_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
    if "name" in fields and not (fields["name"] or "").strip():
        raise ValidationError("Lead name is required")
    for key, value in fields.items():
        setattr(lead, key, value)
    commit_or_raise(db, "Update lead")
    db.refresh(lead)
    return lead


def lead_to_dict(lead: Lead) -> dict:
    return {
        "id": lead.id,
        "lead_number": lead.lead_number,
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "mobile": lead.mobile,
        "topic": lead.topic,
        "category": lead.category,
        "facts": lead.facts,
        "source": lead.source,
        "source_code": lead.source_code,
        "language": lead.language,
        "stage": lead.stage,
        "status": lead.status,
        "handler_stage": lead.handler_stage,
        "balance": float(lead.balance) if lead.balance is not None else None,
        "balance_currency": lead.balance_currency,
        "onedrive_folder_id": lead.onedrive_folder_id,
        "onedrive_folder_link": lead.onedrive_folder_link,
        "handler": lead.handler,
        "expert": lead.expert,
        "closer": lead.closer,
        "manager": lead.manager,
        "scheduler": lead.scheduler,
        "created_by": lead.created_by,
        "created_at": lead.created_at.isoformat() if lead.created_at else None,
        "updated_at": lead.updated_at.isoformat() if lead.updated_at else None,
    }
