"""Error responses for the PromptCanvas API.

Every handled failure is answered with a JSON body of the form
``{"error": <message>}``, plus ``"details"`` when there is more to say.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """An error to be returned to the client as ``{"error", "details"}``.

    Args:
        status_code: HTTP status of the response.
        message: Short, client-facing error message.
        details: Optional extra information (string or JSON-serialisable).
    """

    def __init__(self, status_code: int, message: str, details: Any = None):
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)


def error_body(message: str, details: Any = None) -> dict:
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body


def setup_error_handlers(app: FastAPI) -> None:
    """Register the API's exception handlers on *app*."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message} ({exc.details})")
        else:
            logger.warning(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path}: invalid request {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content=error_body("Invalid request", jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error in {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=error_body("Internal server error"))
