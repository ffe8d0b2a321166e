from typing import Any

from shared.utils.app_status_code import AppStatusCode


class PlazaError(Exception):
    """Base class for errors that map onto a JSON failure envelope."""

    http_status: int = 400
    status_code: str = AppStatusCode.OPERATION_FAILED

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(PlazaError):
    http_status = 400
    status_code = AppStatusCode.INVALID_INPUT


class InvalidAmount(ValidationError):
    status_code = AppStatusCode.INVALID_AMOUNT


class DuplicateRecord(PlazaError):
    http_status = 409
    status_code = AppStatusCode.DUPLICATE_ADD_ERROR


class NotFound(PlazaError):
    http_status = 404
    status_code = AppStatusCode.RECORD_NOT_FOUND


class AdvanceFullyCoversObligation(PlazaError):
    """Not a failure: bill creation stops until the caller acknowledges the advance."""

    http_status = 409
    status_code = AppStatusCode.ADVANCE_COVERS_OBLIGATION


class PersistenceError(PlazaError):
    http_status = 503
    status_code = AppStatusCode.PERSISTENCE_ERROR

    def __init__(self, message: str, retryable: bool = False, data: Any = None):
        super().__init__(message, data)
        self.retryable = retryable


class TransientWriteConflict(PersistenceError):
    http_status = 409
    status_code = AppStatusCode.WRITE_CONFLICT

    def __init__(self, message: str, data: Any = None):
        super().__init__(message, retryable=True, data=data)
