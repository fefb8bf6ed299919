"""
Error Types
===========
Every failure a request can hit is a PharmacyError carrying an explicit
ErrorKind tag and the HTTP status it maps to. The store layer raises these
directly; routes turn them into the JSON envelope.
"""
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = 'not_found'
    INVALID_IDENTIFIER = 'invalid_identifier'
    VALIDATION = 'validation'
    UNIQUENESS_CONFLICT = 'uniqueness_conflict'
    PROXIMITY_CONFLICT = 'proximity_conflict'
    ALREADY_IN_STATE = 'already_in_state'
    INTERNAL = 'internal'


class PharmacyError(Exception):
    """Base class for all pharmacy module failures."""

    kind = ErrorKind.INTERNAL
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    @property
    def envelope_status(self):
        """JSend-style status: 'fail' for client errors, 'error' otherwise."""
        return 'fail' if self.status_code < 500 else 'error'

    def to_dict(self):
        return {'status': self.envelope_status, 'message': self.message}


class NotFoundError(PharmacyError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, message='Pharmacy not found'):
        super().__init__(message)


class InvalidIdentifierError(PharmacyError):
    kind = ErrorKind.INVALID_IDENTIFIER
    status_code = 400

    def __init__(self, value):
        super().__init__(f"Invalid pharmacy ID format: {value}")
        self.value = value


class ValidationFailure(PharmacyError):
    kind = ErrorKind.VALIDATION
    status_code = 400

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__(', '.join(self.messages))


class UniquenessConflict(PharmacyError):
    kind = ErrorKind.UNIQUENESS_CONFLICT
    status_code = 409

    def __init__(self, field):
        super().__init__(f"{field} already exists. Please use a different {field}")
        self.field = field


class ProximityConflict(PharmacyError):
    kind = ErrorKind.PROXIMITY_CONFLICT
    status_code = 409

    def __init__(self, radius_m=1000):
        if radius_m % 1000 == 0:
            distance = f"{radius_m // 1000}km"
        else:
            distance = f"{radius_m}m"
        super().__init__(f"A pharmacy already exists within {distance} of this location")
        self.radius_m = radius_m


class AlreadyInDesiredState(PharmacyError):
    kind = ErrorKind.ALREADY_IN_STATE
    status_code = 400


class InternalFailure(PharmacyError):
    kind = ErrorKind.INTERNAL
    status_code = 500

    def __init__(self, message='An internal error occurred'):
        super().__init__(message)
