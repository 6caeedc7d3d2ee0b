from __future__ import annotations


class SchedulingError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SchedulingError):
    status_code = 400


class InvalidRangeError(ValidationError):
    pass


class ConflictError(SchedulingError):
    status_code = 409


class NotFoundError(SchedulingError):
    status_code = 404


class AuthorizationError(SchedulingError):
    status_code = 403
