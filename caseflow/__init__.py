"""caseflow — case management backend (leads, family contacts, document tracking)."""

__version__ = "1.2.0"
