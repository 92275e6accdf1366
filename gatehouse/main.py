# gatehouse/main.py
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import init_db
from .errors import install_error_handlers
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.meta import router as meta_router
from .routers.me import router as me_router
from .routers.apartment_requests import router as apartment_requests_router
from .routers.rent_sessions import router as rent_sessions_router
from .routers.rooms import router as rooms_router
from .routers.disputes import router as disputes_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def _lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Gatehouse", version=settings.app_version, lifespan=_lifespan)

    # added last runs first: request id wraps the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    # Core
    app.include_router(meta_router, prefix=API_PREFIX)
    app.include_router(me_router, prefix=API_PREFIX)

    # Workflows
    app.include_router(apartment_requests_router, prefix=API_PREFIX)
    app.include_router(rent_sessions_router, prefix=API_PREFIX)
    app.include_router(rooms_router, prefix=API_PREFIX)
    app.include_router(disputes_router, prefix=API_PREFIX)

    return app


app = create_app()
