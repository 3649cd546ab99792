# errors.py — Typed errors raised by the board core
# Callers match on the class (or `kind`), never on the message text.
# The HTTP adapter in main.py maps each kind to a status code.

from typing import Optional


class KanbanError(Exception):
    """Base class for every error the core raises on purpose"""

    kind = "Error"
    code = "ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        field: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.field = field
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "code": self.code,
            "message": self.message,
            "resource": self.resource,
            "field": self.field,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, resource={self.resource!r})"


class NotFoundError(KanbanError):
    kind = "NotFound"
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Optional[str] = None):
        message = (
            f"{resource.capitalize()} '{identifier}' not found"
            if identifier else f"{resource.capitalize()} not found"
        )
        super().__init__(message, resource=resource)
        self.identifier = identifier


class ForbiddenError(KanbanError):
    kind = "Forbidden"
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied", resource: Optional[str] = None):
        super().__init__(message, resource=resource)


class ValidationError(KanbanError):
    """Well-formed input that breaks a semantic rule (empty title, bad color, ...)"""
    kind = "ValidationError"
    code = "INVALID"


class ScopeMismatchError(ValidationError):
    code = "SCOPE_MISMATCH"


class InvalidPositionError(ValidationError):
    code = "INVALID_POSITION"


class DuplicatePositionError(ValidationError):
    code = "DUPLICATE_POSITION"


class ConflictError(KanbanError):
    """Write-time collision; the caller may retry"""
    kind = "Conflict"
    code = "CONFLICT"
    retryable = True


class BusinessRuleViolation(KanbanError):
    kind = "BusinessRuleViolation"
    code = "RULE_VIOLATION"
