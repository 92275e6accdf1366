# gatehouse/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import settings
from .middleware.request_id import get_request_id

STRUCTURED_EXTRAS = (
    "community_id",
    "user_id",
    "actor_type",
    "apartment_id",
    "request_ref",
    "session_id",
    "room_id",
    "dispute_id",
    "path",
)


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.
    Carries the request id and any workflow ids passed through extra=.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = get_request_id()
        if rid:
            payload["request_id"] = rid

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in STRUCTURED_EXTRAS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    level = (settings.log_level or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)

    # drop handlers left by an earlier configure_logging()
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())

    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel("WARNING")
