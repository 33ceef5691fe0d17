#
# Error helpers.
#
from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException

from ..services.scheduler_errors import AccessControlError, OperationFailed


_OPERATION_STATUS = {
    "already_exists": (409, "conflict"),
    "not_a_folder": (409, "conflict"),
    "parent_not_found": (404, "not_found"),
    "not_found": (404, "not_found"),
}


def http_error(status_code: int, code: str, message: str) -> NoReturn:
    raise HTTPException(status_code=status_code, detail={"error": {"code": code, "message": message}})


def operation_error(exc: OperationFailed) -> NoReturn:
    msg = str(exc)
    if isinstance(exc, AccessControlError):
        http_error(403, "forbidden", msg)
    prefix = msg.split(":", 1)[0]
    status_code, code = _OPERATION_STATUS.get(prefix, (500, "operation_failed"))
    http_error(status_code, code, msg)
