"""Error taxonomy shared by the services and the HTTP layer.

Every error carries the status code it maps to, so routes can raise domain
errors directly and ``backend.main`` renders them with a single handler.
"""

from typing import Any


class ClinicError(Exception):
    """Base class for errors that are reported back to the caller."""

    status_code: int = 500
    error_code: str = 'CLINIC_ERROR'

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            'success': False,
            'error': self.error_code,
            'message': self.message,
        }
        if self.details is not None:
            body['details'] = self.details
        return body


class ValidationError(ClinicError):
    status_code = 400
    error_code = 'VALIDATION_ERROR'


class MissingFieldsError(ValidationError):
    error_code = 'MISSING_FIELDS'


class InvalidDateError(ValidationError):
    error_code = 'INVALID_DATE'


class PastDateError(ValidationError):
    error_code = 'PAST_DATE'


class InvalidStatusError(ValidationError):
    error_code = 'INVALID_STATUS'


class InvalidStatusTransitionError(ValidationError):
    error_code = 'INVALID_STATUS_TRANSITION'


class InvalidRoleError(ValidationError):
    error_code = 'INVALID_ROLE'


class NotFoundError(ClinicError):
    status_code = 404
    error_code = 'NOT_FOUND'


class ConflictError(ClinicError):
    status_code = 400
    error_code = 'CONFLICT'


class SchedulingConflictError(ConflictError):
    error_code = 'SCHEDULING_CONFLICT'


class AuthError(ClinicError):
    status_code = 401
    error_code = 'AUTH_ERROR'


class InternalError(ClinicError):
    status_code = 500
    error_code = 'INTERNAL_ERROR'
