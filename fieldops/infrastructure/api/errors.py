"""Map domain errors to structured JSON responses."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from fieldops.domain.errors import (
    AssignmentError,
    AssignmentNotFound,
    DuplicateActiveAssignment,
    InvalidStateTransition,
    MaxRoundsExceeded,
    NoQualifiedProvider,
    ServiceOrderNotFound,
    WorkTeamMismatch,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[AssignmentError], int] = {
    AssignmentNotFound: 404,
    ServiceOrderNotFound: 404,
    DuplicateActiveAssignment: 409,
    InvalidStateTransition: 409,
    NoQualifiedProvider: 422,
    MaxRoundsExceeded: 422,
    WorkTeamMismatch: 422,
}


def build_error_payload(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


async def assignment_error_handler(_: Request, exc: AssignmentError) -> JSONResponse:
    status_code = STATUS_BY_ERROR.get(type(exc), 400)
    logger.info("%s (%d): %s", exc.code, status_code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content=build_error_payload(exc.code, exc.message, exc.details),
    )
