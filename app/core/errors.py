# app/core/errors.py
"""
Error taxonomy shared by the API (raised by services, rendered by the
exception handler in main.py) and by the client (rebuilt from response
bodies in app.client.api).

Every error carries an HTTP `status_code` and a machine-readable `code`
which is what travels over the wire: `{"detail": "...", "code": "..."}`.
"""
from typing import Dict, Optional, Type


class CollaborationError(Exception):
    """Base class for every user-visible collaboration failure."""
    status_code: int = 400
    code: str = "collaboration_error"
    default_message: str = "The collaboration request could not be completed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def detail(self) -> str:
        return str(self)


class ForbiddenError(CollaborationError):
    """Role or ownership violation."""
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to perform this action."


class InvalidTransitionError(CollaborationError):
    """State machine violation, e.g. reviewing a suggestion that is no longer pending."""
    status_code = 409
    code = "invalid_transition"
    default_message = "This item has already been processed."


class DuplicateInvitationError(CollaborationError):
    """A non-declined collaborator already exists for that email on that journey."""
    status_code = 409
    code = "duplicate_invitation"
    default_message = "User is already invited or a collaborator."


class NotFoundError(CollaborationError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class NetworkFailureError(CollaborationError):
    """Transient failure talking to the backend."""
    status_code = 503
    code = "network_failure"
    default_message = "The collaboration service could not be reached."


ERRORS_BY_CODE: Dict[str, Type[CollaborationError]] = {
    cls.code: cls
    for cls in (
        ForbiddenError,
        InvalidTransitionError,
        DuplicateInvitationError,
        NotFoundError,
        NetworkFailureError,
    )
}
