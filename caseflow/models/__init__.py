"""Database models — re-exports all models.

Import from here:  from caseflow.models import Lead, Contact, ...
Or from submodules: from caseflow.models.documents import RequiredDocument
"""

from .base import Base  # noqa: F401

# Staff
from .auth import User  # noqa: F401

# Cases
from .leads import (  # noqa: F401
    DuplicateLead,
    HandlerStageHistory,
    IntakeSettings,
    Lead,
    LeadNumberSequence,
)

# Family contacts
from .contacts import RELATIONSHIPS, Contact  # noqa: F401

# Documents & status ledger
from .documents import (  # noqa: F401
    COMPLETED_STATUSES,
    DOCUMENT_STATUSES,
    DOCUMENT_TYPES,
    DefaultDocumentRule,
    DocumentStatusHistory,
    DocumentTemplate,
    RequiredDocument,
)

# Tasks
from .tasks import TASK_PRIORITIES, TASK_STATUSES, HandlerTask  # noqa: F401

# Push notifications
from .push import PushSubscription  # noqa: F401
