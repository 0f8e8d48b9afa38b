"""Domain error taxonomy.

Every error derives from DRF's ``APIException`` so the API layer renders the
right status code without per-view handling.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class DomainError(APIException):
    """Base class for lifecycle errors raised by domain services."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."
    default_code = "domain_error"


class ValidationError(DomainError):
    """Missing or malformed input. Never retried."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "invalid"


class PermissionDeniedError(DomainError):
    """Wrong role or not the owner of the object."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Unauthorized."
    default_code = "permission_denied"


class ConflictError(DomainError):
    """State conflict; the caller may retry after refetching state."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict with current state."
    default_code = "conflict"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class StorageError(DomainError):
    """Underlying persistence failure."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage unavailable."
    default_code = "storage_error"
