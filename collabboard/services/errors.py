"""
Service Errors

Every failure raised by the board, task, chat and calendar services is one of
these. None of them is fatal: each is scoped to the single operation that
raised it and carries a machine-readable code for the HTTP layer.
"""

from typing import Any, Dict, List, Optional


class CollabError(Exception):
    """Base exception for collaborative-state errors"""
    code = "ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(CollabError):
    """Malformed input: empty text, unknown status, bad confirmation phrase."""
    code = "VALIDATION_ERROR"


class NotFoundError(CollabError):
    """Email lookup miss or a referenced document that does not exist."""
    code = "NOT_FOUND"


class AuthorizationError(CollabError):
    """Non-owner (or non-member) attempting a restricted action."""
    code = "FORBIDDEN"


class TransportError(CollabError):
    """The document store could not complete the request."""
    code = "TRANSPORT_ERROR"


class PartialDeletionError(TransportError):
    """
    A multi-step deletion stopped part way.

    ``completed`` lists the document paths already removed and ``remaining``
    the ones still present, so the caller can retry only what is left.
    """
    code = "PARTIAL_DELETION"

    def __init__(
        self,
        message: str,
        completed: Optional[List[str]] = None,
        remaining: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.completed = list(completed or [])
        self.remaining = list(remaining or [])
        merged = dict(details or {})
        merged.update({"completed": self.completed, "remaining": self.remaining})
        super().__init__(message, merged)
