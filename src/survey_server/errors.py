"""Exception-to-response mapping for the survey API.

Submission rejections are answered inside the route with a
``SubmissionAck`` body.  Everything that escapes a route lands here:

    KeyError (unknown catalog)          -> 404
    ValueError "already ..." / "not found" -> 409 / 404
    other ValueError                    -> 400
    anything else                       -> 500

Clients only ever see a generic detail string; the real message is logged.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Checked in order against the lowercased message
_PHRASE_STATUS: tuple[tuple[str, int], ...] = (
    ("already", 409),
    ("not found", 404),
    ("unknown survey", 404),
)

_PUBLIC_DETAIL = {
    400: "Invalid request",
    404: "Resource not found",
    409: "Resource already exists",
    500: "Internal server error",
}


def status_for_value_error(exc: ValueError) -> int:
    msg = str(exc).lower()
    return next((code for phrase, code in _PHRASE_STATUS if phrase in msg), 400)


def _reply(status: int) -> JSONResponse:
    return JSONResponse(status_code=status, content={"detail": _PUBLIC_DETAIL[status]})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    status = status_for_value_error(exc)
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, status, exc)
    return _reply(status)


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    logger.info("%s %s -> 404: %s", request.method, request.url.path, exc)
    return _reply(404)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _reply(500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)
