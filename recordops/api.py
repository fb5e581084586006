from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from recordops.config.app_config import Settings, get_settings
from recordops.engine.factory import build_engine
from recordops.engine.orchestrator import BulkDeleteEngine
from recordops.logging_utils import RequestLoggingMiddleware, setup_logging
from recordops.routers import bulk_delete as bulk_delete_router

logger = logging.getLogger("api")


def create_app(
    settings: Optional[Settings] = None, engine: Optional[BulkDeleteEngine] = None
) -> FastAPI:
    s = settings or get_settings()
    setup_logging()

    app = FastAPI(title="Record Ops API", version=s.VERSION)
    # one engine per process: its busy flag and undo slot are shared by all requests
    app.state.engine = engine or build_engine(s)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=s.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware, log_requests=s.LOG_REQUESTS)

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "ok"

    app.include_router(bulk_delete_router.router)
    logger.info(
        "api ready store=%s batch_size=%d",
        type(app.state.engine.store).__name__,
        app.state.engine.defaults.batch_size,
    )
    return app


app = create_app()
