"""
Domain error taxonomy.

Every error carries a stable machine-readable ``code`` so clients can tell
"someone already took this job" apart from "you don't own this request".
"""

from typing import Any, Dict


class DispatchError(Exception):
    """Base class for dispatch-engine failures."""

    status_code: int = 400
    kind: str = "dispatch_error"

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.kind, "code": self.code, "message": self.message}

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(code={self.code!r}, message={self.message!r})>"


class ValidationError(DispatchError):
    """Malformed or missing input."""
    status_code = 422
    kind = "validation_error"


class NotFoundError(DispatchError):
    """Unknown request, driver, company or quote."""
    status_code = 404
    kind = "not_found"


class ConflictError(DispatchError):
    """State-machine or assignment precondition violated."""
    status_code = 409
    kind = "conflict"


class ForbiddenError(DispatchError):
    """Caller is not allowed to perform the action."""
    status_code = 403
    kind = "forbidden"
