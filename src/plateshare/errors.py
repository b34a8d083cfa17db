"""Domain error taxonomy shared by the lifecycle manager and persistence helpers."""

from __future__ import annotations


class PlateshareError(Exception):
    """Base class for business-rule failures surfaced to callers."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PlateshareError):
    """Referenced listing, request or account does not exist."""

    kind = "not_found"


class InvalidStateError(PlateshareError):
    """Operation is not legal for the entity's current status."""

    kind = "invalid_state"


class InsufficientQuantityError(PlateshareError):
    """Requested amount exceeds what the listing still holds."""

    kind = "insufficient_quantity"


class ConflictError(PlateshareError):
    """Duplicate pending request by the same user on the same listing."""

    kind = "conflict"


class ForbiddenError(PlateshareError):
    """Caller does not own the resource they are trying to mutate."""

    kind = "forbidden"


__all__ = [
    "PlateshareError",
    "NotFoundError",
    "InvalidStateError",
    "InsufficientQuantityError",
    "ConflictError",
    "ForbiddenError",
]
