# gatehouse/middleware/structured_logging.py
from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("gatehouse.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one structured log line per request with:
      request_id, actor (id/type/community), method, path, status_code, latency_ms

    The actor is whatever get_principal stored on request.state; requests that
    never authenticate (health, 401s) log without one.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = int((time.perf_counter() - t0) * 1000)
            principal = getattr(request.state, "principal", None)
            request_id: Optional[str] = getattr(request.state, "request_id", None)

            log.info(
                json.dumps(
                    {
                        "event": "http_request",
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": status_code,
                        "latency_ms": latency_ms,
                        "actor_id": getattr(principal, "id", None),
                        "actor_type": getattr(getattr(principal, "type", None), "value", None),
                        "community_id": getattr(principal, "community_id", None),
                    },
                    default=str,
                )
            )
