from __future__ import annotations

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..deps import CurrentUserDep, ResolverDep
from ..services.output_path_resolver import ResolutionRequest
from ..utils.errors import http_error


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


class ResolveOutputPathRequest(BaseModel):
    filename: str = Field(min_length=1, max_length=512)
    directory: str | None = Field(default=None, max_length=1024)
    # Job creator; defaults to the caller. Admins may resolve on behalf of others.
    action_user: str | None = None


class ResolveOutputPathResponse(BaseModel):
    output_file_path: str
    job_name: str
    action_user: str


@router.post("/output-path", response_model=ResolveOutputPathResponse)
def resolve_output_path(user: CurrentUserDep, resolver: ResolverDep, req: ResolveOutputPathRequest):
    """Resolve where a scheduled job writes its output.

    SchedulingNotAllowed is turned into a 403 by the app exception handlers.
    """

    action_user = (req.action_user or "").strip() or user.username
    if action_user != user.username and user.role != "admin":
        http_error(403, "forbidden", "Only admins may resolve for another user")
    if not req.filename.strip():
        http_error(422, "invalid_request", "Missing filename")

    request = ResolutionRequest(filename=req.filename, directory=req.directory, action_user=action_user)
    path = resolver.resolve_output_file_path(request)
    if path is None:
        logger.error("output path unresolved: job=%s action_user=%s", request.job_name, action_user)
        http_error(500, "output_path_unresolved", "No valid output folder for the job")

    return ResolveOutputPathResponse(output_file_path=path, job_name=request.job_name, action_user=action_user)
