"""Shared enums for the short-link service.

Using enums instead of string literals keeps metric labels and health
payloads consistent across modules.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "CacheStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Outcome labels for creation and resolution metrics."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Resolution cache lookup results."""

    HIT = "hit"
    MISS = "miss"
    ERROR = "error"
