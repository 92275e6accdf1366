# gatehouse/middleware/request_id.py
from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

HEADER = "X-Request-ID"


def get_request_id() -> str | None:
    return request_id_ctx.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id so log lines from one call can be joined.

    - Reuses an incoming X-Request-ID / X-Request-Id when the client sends one
    - Otherwise generates UUID4
    - Exposes it via ContextVar (for logging) and request.state (for handlers)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(HEADER) or request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = rid

        token = request_id_ctx.set(rid)
        try:
            resp = await call_next(request)
            resp.headers[HEADER] = rid
            return resp
        finally:
            request_id_ctx.reset(token)
