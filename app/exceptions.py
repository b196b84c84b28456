"""
Domain errors raised by the services layer.

Routers let these propagate; the handlers registered in app.main turn them
into JSON responses of the form {"error": code, "message": text}.
"""
from typing import Optional


class VocabularyAppError(Exception):
    """Base class for expected, user-facing failures"""
    status_code = 400
    code = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EmptyPoolError(VocabularyAppError):
    """The user has no vocabulary to draw from"""
    status_code = 404
    code = "empty_pool"

    def __init__(self, message: str = "No vocabulary items found. Please upload some vocabulary first."):
        super().__init__(message)


class ItemNotFound(VocabularyAppError):
    status_code = 404
    code = "item_not_found"

    def __init__(self, item_id: int):
        super().__init__("Vocabulary item not found")
        self.item_id = item_id


class ValidationError(VocabularyAppError):
    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidSessionError(VocabularyAppError):
    """Quiz session token is malformed, expired or belongs to someone else"""
    status_code = 400
    code = "invalid_session"


class SessionStateError(VocabularyAppError):
    """Requested transition is not allowed from the current session state"""
    status_code = 409
    code = "invalid_session_state"
