# gatehouse/errors.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger("gatehouse.errors")


class GatehouseError(Exception):
    """
    Base for every failure the workflows report to callers.

    `kind` is the stable errorKind clients switch on; `message` is
    human-readable. Internal identifiers and tracebacks never go here.
    """

    kind: str = "Internal"
    status_code: int = 500

    def __init__(self, message: str, *, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason

    def envelope(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "errorKind": self.kind, "message": self.message}
        if self.reason:
            body["reason"] = self.reason
        return body


class Unauthenticated(GatehouseError):
    kind = "Unauthenticated"
    status_code = 401


class Forbidden(GatehouseError):
    kind = "Forbidden"
    status_code = 403


class NotFound(GatehouseError):
    kind = "NotFound"
    status_code = 404


class InvalidArgument(GatehouseError):
    kind = "InvalidArgument"
    status_code = 400


class Conflict(GatehouseError):
    kind = "Conflict"
    status_code = 409


class InvalidState(GatehouseError):
    kind = "InvalidState"
    status_code = 409


class Internal(GatehouseError):
    kind = "Internal"
    status_code = 500


async def _gatehouse_error_handler(request: Request, exc: GatehouseError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request failed: %s", exc.message, extra={"path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content=exc.envelope())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in (err.get("loc") or ()) if x != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    body = InvalidArgument("; ".join(parts) or "invalid request").envelope()
    return JSONResponse(status_code=InvalidArgument.status_code, content=body)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=Internal("Internal server error").envelope())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatehouseError, _gatehouse_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
