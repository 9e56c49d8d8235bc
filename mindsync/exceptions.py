"""
MindSync Backend — Custom Exception Hierarchy
===============================================

What:  Every error the session ledger, user and emotion services can raise.
How:   A message safe for clients plus a context dict for logs and details.
       main.register_exception_handlers maps each class to a status code
       and an `error` string in the JSON body.
Who:   Raised by services, deps and middleware.

Exception Hierarchy:
    MindSyncError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found (also "owned by someone else")
    ├── InvalidStateError        → 409 Conflict (one-way transition already taken)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── StorageError             → 500 Internal Server Error
    │   └── PartialCompletionError → 500 (session saved, aggregates not updated)
    └── EmotionAnalysisError     → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class MindSyncError(Exception):
    """
    Base exception for all MindSync application errors.

    Attributes:
        message:  Text returned to the client as-is
        context:  Structured details (field, session_id, ...)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MindSyncError):
    """
    Raised when client input fails a business rule.

    When:    Unknown enum value, out-of-range number, oversized text,
             invalid page/limit, rejected upload.
    HTTP:    400 Bad Request

    Never retried automatically; the caller has to correct the input.

    Example response:
        {
            "error": "validation_error",
            "message": "duration must be between 60 and 7200 seconds",
            "details": {"field": "duration", "min": 60, "max": 7200}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(MindSyncError):
    """
    Raised when a request carries no usable caller identity.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        code: str = "NO_IDENTITY",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["code"] = code
        super().__init__(message=message, context=ctx)
        self.code = code


class NotFoundError(MindSyncError):
    """
    Raised when a requested resource does not exist for the caller.

    HTTP:    404 Not Found

    Owner-scoped lookups raise this for rows belonging to another user too,
    so the response never reveals that the id exists.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class InvalidStateError(MindSyncError):
    """
    Raised when an operation is not allowed in the resource's current state.

    When:    Completing a session that is already completed.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The operation is not allowed in the current state",
        state: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if state:
            ctx["state"] = state
        super().__init__(message=message, context=ctx)
        self.state = state


class StorageError(MindSyncError):
    """
    Raised when the persistence layer is unreachable or rejects a write.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the context
    (exception type, ids) is logged server-side.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PartialCompletionError(StorageError):
    """
    Raised when a session was completed but the owner's aggregates were not
    incremented.

    The session row stays completed (no rollback); the user's totals
    under-count by this one session. The session id travels in the context
    so clients can reload the completed session.
    """

    def __init__(
        self,
        session_id: str,
        reason: str = "aggregate_update_failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["session_id"] = session_id
        ctx["session_saved"] = True
        ctx["reason"] = reason
        super().__init__(
            message=(
                "The session was completed, but your meditation totals could not be "
                "updated. They will be behind by this session."
            ),
            context=ctx,
        )
        self.session_id = session_id
        self.reason = reason


class EmotionAnalysisError(MindSyncError):
    """
    Raised when the emotion classifier fails and no fallback is available.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Emotion analysis is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MindSyncError):
    """
    Raised when a caller exceeds the sliding-window request limit.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
