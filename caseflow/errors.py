"""
errors.py — Domain exception taxonomy

Services raise these; main.py maps each to an HTTP status and renders the
shared ErrorResponse body. Routers never build error JSON by hand except for
the intake webhook, whose wire format is fixed by external form providers.

Called by: services/*, routers/*, utils/graph_client.py, main.py
"""


class CaseflowError(Exception):
    """Base class. ``status_code`` is the HTTP status main.py responds with."""

    status_code = 500

    def __init__(self, message: str, *, detail: list | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(CaseflowError):
    status_code = 400


class NotFoundError(CaseflowError):
    status_code = 404


class InvalidTransitionError(CaseflowError):
    """A document status change outside the allowed transition table."""

    status_code = 409

    def __init__(self, old_status: str, new_status: str):
        super().__init__(f"Cannot change document status from {old_status} to {new_status}")
        self.old_status = old_status
        self.new_status = new_status


class IntakeDisabledError(CaseflowError):
    status_code = 503


class DatabaseError(CaseflowError):
    status_code = 500


class RemoteStoreError(CaseflowError):
    """Any failure talking to the remote file store (OneDrive / Graph)."""

    status_code = 502


class GraphError(RemoteStoreError):
    """Non-retryable error response from Microsoft Graph."""

    def __init__(self, status: int, message: str, code: str | None = None):
        super().__init__(f"Graph {status}: {message}")
        self.status = status
        self.code = code
        self.provider_message = message

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_conflict(self) -> bool:
        return self.status == 409


class ExternalServiceError(CaseflowError):
    """Third-party API failure (Web Push, token endpoint)."""

    status_code = 502
