from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from .services.scheduler_errors import AccessControlError, SchedulingNotAllowed


logger = logging.getLogger(__name__)


def _error(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message, **extra}})


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(_: Request, exc: HTTPException):  # type: ignore[override]
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            return JSONResponse(status_code=exc.status_code, content=exc.detail)
        return _error(exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_: Request, exc: RequestValidationError):  # type: ignore[override]
        return _error(422, "invalid_request", "Validation failed", details=exc.errors())

    @app.exception_handler(SchedulingNotAllowed)
    async def scheduling_not_allowed_handler(_: Request, exc: SchedulingNotAllowed):  # type: ignore[override]
        return _error(403, "scheduling_not_allowed", str(exc), job_name=exc.job_name, action_user=exc.action_user)

    @app.exception_handler(AccessControlError)
    async def access_control_handler(_: Request, exc: AccessControlError):  # type: ignore[override]
        return _error(403, "forbidden", str(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.exception("unhandled error: %s %s", request.method, request.url.path)
        return _error(500, "internal_error", str(exc))
