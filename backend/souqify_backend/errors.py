"""Domain error taxonomy shared by every app.

Services raise these; ``api.v1.exceptions.api_exception_handler`` turns them
into the structured error envelope.
"""

from __future__ import annotations


class DomainError(Exception):
    code = "error"
    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, code: str | None = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def extra(self) -> dict:
        return {}


class ValidationError(DomainError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid input."


class AuthorizationError(DomainError):
    code = "permission_denied"
    status_code = 403
    default_message = "You do not have permission to perform this action."


class VerificationRequired(AuthorizationError):
    code = "verification_required"
    default_message = "You must verify your identity first."

    def extra(self) -> dict:
        return {"requires_verification": True}


class NotFoundError(DomainError):
    code = "not_found"
    status_code = 404
    default_message = "Not found."


class ConflictError(DomainError):
    code = "conflict"
    status_code = 409
    default_message = "The resource is not in a state that allows this action."


class DuplicateError(DomainError):
    code = "duplicate"
    status_code = 400
    default_message = "Already done."


class DependencyError(DomainError):
    """An external collaborator (image pipeline, email) failed.

    Never surfaced to clients: call sites catch and log it.
    """

    code = "dependency_error"
    status_code = 502
    default_message = "An external service failed."
