"""Error taxonomy for the synchronization core"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .db.entities import PersonEntity


class RelGraphError(Exception):
    """Base class for all errors raised by relgraph"""


class NotAuthenticatedError(RelGraphError):
    """A mutating call was attempted without an active session"""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class RemoteRejectionError(RelGraphError):
    """The remote store rejected or failed a call"""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{detail}")


class PartialFailureError(RelGraphError):
    """A multi-step intent committed its first step but failed later.

    The committed person stays in the store; nothing is rolled back.
    """

    def __init__(self, person: "PersonEntity", cause: BaseException):
        self.person = person
        self.cause = cause
        super().__init__(
            f"Person {person.id} created but connections failed: {cause}"
        )


class LoadError(RelGraphError):
    """Initial bulk load failed"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class NotificationDecodeError(RelGraphError, ValueError):
    """An inbound change notification did not match any entity schema"""
