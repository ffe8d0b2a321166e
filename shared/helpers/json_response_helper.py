from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from typing import Any

from shared.utils.app_status_code import AppStatusCode
from shared.core.schemas import JsonOutResult


def success_response(data: Any = None, message: str = "Success", status_code: str = AppStatusCode.OPERATION_SUCCESSFUL):
    return JsonOutResult(
        data=data,
        status="Success",
        status_code=status_code,
        message=message
    )


def failure_envelope(message: str, status_code: str = AppStatusCode.OPERATION_FAILED, data: Any = None) -> dict:
    """JSON-ready failure body shared by error_response and the exception handlers."""
    return jsonable_encoder(JsonOutResult(
        data=data,
        status="Failure",
        status_code=status_code,
        message=message
    ).model_dump())


def error_response(message: str, status_code: str = AppStatusCode.OPERATION_FAILED, http_status: int = 400, data: Any = None):
    raise HTTPException(
        status_code=http_status,
        detail=failure_envelope(message, status_code, data)
    )
