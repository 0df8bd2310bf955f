"""Exception hierarchy for the proposal workflow.

Every failure the lifecycle engine reports is a :class:`WorkflowError`
subclass so callers can tell validation, permission, conflict and
persistence failures apart without string matching.
"""


class WorkflowError(Exception):
    """Base exception for all proposal workflow errors."""

    kind = "workflow_error"

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationFailed(WorkflowError):
    """Raised when required proposal content is missing or malformed."""

    kind = "validation_error"


class AuthorizationError(WorkflowError):
    """Raised when the acting role may not perform the requested action."""

    kind = "authorization_error"


class InvalidTransition(WorkflowError):
    """Raised when no transition exists between the two statuses."""

    kind = "invalid_transition"


class ConflictError(WorkflowError):
    """Raised when a conditional write finds the proposal already changed."""

    kind = "conflict"


class RecordNotFound(WorkflowError):
    """Raised when an id does not resolve to a stored row."""

    kind = "not_found"


class ProposalNotFound(RecordNotFound):
    """Raised when the proposal id does not resolve to a stored row."""


class AccountNotFound(RecordNotFound):
    """Raised when the account id has no profile row."""


class StoreError(WorkflowError):
    """Raised when the record store is unreachable or rejects a write."""

    kind = "store_error"
