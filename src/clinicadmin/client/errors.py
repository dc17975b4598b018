from __future__ import annotations

from typing import Optional


class ClinicAdminError(Exception):
    """Base class for errors raised by :class:`ClinicAdminClient`."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ClientNotStartedError(ClinicAdminError):
    """A call was made before ``ClinicAdminClient.start()``."""


class NetworkError(ClinicAdminError):
    pass


class ValidationError(ClinicAdminError):
    pass


class AuthenticationError(ClinicAdminError):
    pass


class PermissionDeniedError(ClinicAdminError):
    pass


class NotFoundError(ClinicAdminError):
    pass


class ConflictError(ClinicAdminError):
    pass


class ServerError(ClinicAdminError):
    pass


_STATUS_ERRORS = {
    400: ValidationError,
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
}


def error_for_status(status_code: int, message: str) -> ClinicAdminError:
    if status_code >= 500:
        return ServerError(message, status_code)
    return _STATUS_ERRORS.get(status_code, ClinicAdminError)(message, status_code)
