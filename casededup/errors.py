"""
Error taxonomy for duplicate-case detection and resolution.

Repositories translate storage exceptions into these types so callers
(CLI, HTTP surface, tests) only ever see one family of errors.
"""

from typing import Any, Dict, Optional


class CaseDedupError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": type(self).__name__, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(CaseDedupError):
    """Bad threshold, status or payload; raised before any work is done."""
    pass


class NotFoundError(CaseDedupError):
    """Unknown pair or case id."""
    pass


class ConflictError(CaseDedupError):
    """The ordered pair is already registered."""
    pass


class InvalidTransitionError(CaseDedupError):
    """Attempt to resolve a pair that is no longer PENDING."""
    pass


class DependencyError(CaseDedupError):
    """Case store or audit log unavailable."""
    pass


class DetectionCancelled(CaseDedupError):
    """Detection pass stopped by timeout or cancellation before persisting."""
    pass
