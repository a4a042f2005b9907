# lpr_hub/errors.py
"""
Error taxonomy shared by the store, the ingestion path and the HTTP layer.
Each kind carries the HTTP status the API maps it to.
"""

from fastapi import status


class LprHubError(Exception):
    kind = "InternalError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.kind


class ValidationError(LprHubError):
    """Malformed or missing required input. Never retried."""
    kind = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(LprHubError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class ConstraintViolation(LprHubError):
    """Uniqueness or foreign-key conflict reported by the database."""
    kind = "ConstraintViolation"
    status_code = status.HTTP_409_CONFLICT


class StorageError(LprHubError):
    """Transaction or I/O failure. Surfaced to callers as InternalError."""
    kind = "InternalError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
