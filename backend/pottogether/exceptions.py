"""
PotTogether Backend: Exception Hierarchy
=========================================

What:  Application exceptions, each tagged with an `ErrorKind`.
How:   Services raise these; callers switch on the exception class or on
       `exc.kind`, never on message text. The HTTP layer (main.py) maps
       kinds to status codes and wraps the message in the response envelope.
Who:   Raised by services and the identity dependency; caught by the global
       handlers registered in main.py.

Exception Hierarchy:
    PotTogetherError (base)
    ├── ValidationError            invalid_input  → 400
    ├── UnauthorizedError          unauthorized   → 401
    ├── NotFoundError              not_found      → 404
    ├── ConflictError              conflict       → 409
    │   ├── AlreadyMemberError
    │   ├── NotMemberError
    │   ├── RoomFullError
    │   └── AlreadyCompletedError
    ├── DatabaseError              internal       → 500
    ├── InvariantViolationError    internal       → 500
    └── FileStorageError           internal       → 500
"""

import enum
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    """Classification used by callers to decide how to react to a failure."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


class PotTogetherError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing description (safe to return in the envelope)
        context:  Debug info for logs; never returned to the client
        kind:     ErrorKind of this failure
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PotTogetherError):
    """
    Raised when input breaks a business rule the client can fix.

    Examples: non-positive member limit, blank room name, unknown privacy
    value, terminal status outside {1, 2}, unsupported upload type.
    """

    kind = ErrorKind.INVALID_INPUT

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


class UnauthorizedError(PotTogetherError):
    """Raised by the identity dependency when no valid bearer token is present."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(
        self,
        message: str = "Missing or invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PotTogetherError):
    """
    Raised when a referenced room, record, user or ingredient does not exist.

    SQLAlchemy returns None for missing rows; services turn that None into
    this exception.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(PotTogetherError):
    """The request is well-formed but clashes with the current state."""

    kind = ErrorKind.CONFLICT


class AlreadyMemberError(ConflictError):
    def __init__(self, user_id: int, room_id: int):
        super().__init__(
            message=f"User {user_id} is already a member of room {room_id}",
            context={"user_id": user_id, "room_id": room_id},
        )


class NotMemberError(ConflictError):
    def __init__(self, user_id: int, room_id: int):
        super().__init__(
            message=f"User {user_id} is not a member of room {room_id}",
            context={"user_id": user_id, "room_id": room_id},
        )


class RoomFullError(ConflictError):
    """
    Raised when a join finds `member_cnt == member_limit`.

    Detected by the conditional increment affecting zero rows, so concurrent
    joins can never push a room past its limit.
    """

    def __init__(self, room_id: int, member_limit: Optional[int] = None):
        ctx: Dict[str, Any] = {"room_id": room_id}
        if member_limit is not None:
            ctx["member_limit"] = member_limit
        super().__init__(message=f"Room {room_id} is full", context=ctx)


class AlreadyCompletedError(ConflictError):
    """Raised when a record has already left the active state."""

    def __init__(self, record_id: int, status: Optional[int] = None):
        ctx: Dict[str, Any] = {"record_id": record_id}
        if status is not None:
            ctx["status"] = status
        super().__init__(
            message=f"Record {record_id} has already been completed",
            context=ctx,
        )


class DatabaseError(PotTogetherError):
    """
    Raised when a database operation fails unexpectedly.

    The client always receives a generic message; the SQL error is logged
    server-side together with the operation and entity id.
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvariantViolationError(PotTogetherError):
    """
    Raised when stored data breaks an invariant, e.g. a member count that
    would drop below zero. Signals a consistency bug, never clamped.
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "Stored data is inconsistent",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(PotTogetherError):
    """Raised when the object store cannot write or read an object."""

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
