"""Service-level error taxonomy.

Services raise these instead of ``HTTPException`` so they stay usable outside
a request. Each subclass carries the HTTP status the API layer maps it to.
"""

from __future__ import annotations

from fastapi import status


class ServiceError(RuntimeError):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidArgumentError(ServiceError):
    """The request is malformed (empty content, bad identifier, ...)."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthenticatedError(ServiceError):
    """Credentials are missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ServiceError):
    """The caller is authenticated but not allowed to do this."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    """A referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    """A uniqueness constraint would be violated."""

    status_code = status.HTTP_409_CONFLICT


class RateLimitedError(ServiceError):
    """Too many attempts inside the current window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class UnavailableError(ServiceError):
    """The store or an external dependency failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
