"""Mapping of structured errors onto HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from copydesk_api.responses import failure
from copydesk_core.ports.orchestrator import OrchestrationError, OrchestrationErrorCode
from copydesk_core.ports.storage import StorageError, StorageErrorCode
from copydesk_schemas.responses import ErrorDetails, ErrorResponse

_ORCHESTRATION_STATUS = {
    OrchestrationErrorCode.BATCH_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OrchestrationErrorCode.UPLOAD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OrchestrationErrorCode.LEASE_CONFLICT: status.HTTP_409_CONFLICT,
    OrchestrationErrorCode.INVALID_SELECTION: status.HTTP_400_BAD_REQUEST,
    OrchestrationErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
}

_STORAGE_STATUS = {
    StorageErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    StorageErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    StorageErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
}


async def _orchestration_error_handler(
    request: Request, exc: OrchestrationError
) -> JSONResponse:
    status_code = _ORCHESTRATION_STATUS.get(
        OrchestrationErrorCode(exc.info.code), status.HTTP_400_BAD_REQUEST
    )
    return JSONResponse(
        status_code=status_code, content=failure(exc.info.to_error_response())
    )


async def _storage_error_handler(
    request: Request, exc: StorageError
) -> JSONResponse:
    status_code = _STORAGE_STATUS.get(
        StorageErrorCode(exc.info.code), status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(
        status_code=status_code, content=failure(exc.info.to_error_response())
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    error = ErrorResponse(
        code=OrchestrationErrorCode.INVALID_REQUEST,
        message=str(first.get("msg") or "Invalid request"),
        details=ErrorDetails(field=location or None, provided=None, valid_options=None),
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=failure(error))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers that render structured errors as API envelopes.

    Args:
        app: Application to configure.
    """
    app.add_exception_handler(
        OrchestrationError,
        _orchestration_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        StorageError,
        _storage_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        _validation_error_handler,  # type: ignore[arg-type]
    )
