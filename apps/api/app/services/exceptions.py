from typing import Any


class ServiceError(Exception):
    status_code = 500

    def __init__(
        self,
        code: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message or code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ServiceError):
    status_code = 404


class PermissionDeniedError(ServiceError):
    status_code = 403


class ConflictError(ServiceError):
    status_code = 409


class RegistrationRejectedError(ConflictError):
    """Admission refused: deadline, duplicate, full, or missing registration."""

    status_code = 400


class ValidationError(ServiceError):
    status_code = 400


class ConsistencyFaultError(ServiceError):
    """Two views of one registration disagree. Logged, never shown raw."""

    status_code = 500
