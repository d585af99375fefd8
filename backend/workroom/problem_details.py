"""RFC 7807 Problem Details helpers."""
from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .domain_errors import DomainError

logger = logging.getLogger(__name__)


def build_problem_details_response(exc: DomainError) -> JSONResponse:
    """Render DomainError as RFC 7807 payload with stable domain code."""
    try:
        title = HTTPStatus(exc.http_status).phrase
    except ValueError:
        title = "Domain Error"

    payload: dict[str, object] = {
        "type": f"https://api.workroom.local/problems/{exc.code.lower()}",
        "title": title,
        "status": exc.http_status,
        "detail": exc.message,
        "code": exc.code,
    }
    if exc.details is not None:
        payload["details"] = exc.details

    return JSONResponse(
        status_code=exc.http_status,
        content=payload,
        media_type="application/problem+json",
    )


async def _handle_domain_error(_: Request, exc: DomainError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Domain error %s: %s", exc.code, exc.message)
    return build_problem_details_response(exc)


def install_problem_details(app: FastAPI) -> None:
    """Route every DomainError raised by a use case through the problem+json renderer."""
    app.add_exception_handler(DomainError, _handle_domain_error)
