from __future__ import annotations

import json
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from recordops.config.app_config import get_settings

# Per-request correlation ID
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="-")

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # provide %(correlation_id)s to all formatters
        record.correlation_id = correlation_id_ctx.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; an `event` dict passed via extra= is merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }
        evt = getattr(record, "event", None)
        if isinstance(evt, dict):
            payload.update(evt)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


_CONFIGURED = False


def setup_logging(level: Optional[int] = None, *, json_logs: Optional[bool] = None) -> None:
    """
    Idempotent logging setup that ensures %(correlation_id)s is available in all log lines.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    if json_logs is None:
        json_logs = get_settings().LOG_JSON

    filt = CorrelationIdFilter()
    root = logging.getLogger()
    formatter: logging.Formatter = (
        JsonFormatter() if json_logs else logging.Formatter(TEXT_FORMAT)
    )

    if not root.handlers:
        handler = logging.StreamHandler()
        root.addHandler(handler)
        root.setLevel(level or logging.INFO)
    elif level is not None:
        root.setLevel(level)

    for h in root.handlers:
        h.addFilter(filt)
        fmt = getattr(h.formatter, "_fmt", "") if h.formatter else ""
        if json_logs or "%(correlation_id)" not in (fmt or ""):
            h.setFormatter(formatter)

    # Common FastAPI/Uvicorn loggers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        logging.getLogger(name).addFilter(filt)

    _CONFIGURED = True


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    - Takes X-Correlation-ID from the request or generates one
    - Logs start/end/errors (gated by LOG_REQUESTS)
    - Adds X-Correlation-ID response header
    """

    def __init__(self, app, log_requests: Optional[bool] = None):
        super().__init__(app)
        self._logger = logging.getLogger("request")
        self._log_requests = (
            get_settings().LOG_REQUESTS if log_requests is None else log_requests
        )

    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        token = correlation_id_ctx.set(cid)
        request.state.correlation_id = cid

        method = request.method
        path = request.url.path
        start = time.perf_counter()

        if self._log_requests:
            client = request.client.host if request.client else "-"
            self._logger.info(">> %s %s client=%s", method, path, client)

        try:
            response: Response = await call_next(request)
            dur_ms = int((time.perf_counter() - start) * 1000)
            response.headers["X-Correlation-ID"] = cid
            if self._log_requests:
                self._logger.info(
                    "<< %s %s %d %dms", method, path, response.status_code, dur_ms
                )
            return response
        except Exception as e:
            dur_ms = int((time.perf_counter() - start) * 1000)
            # Always log exceptions
            self._logger.exception(
                "!! %s %s error after %dms: %s", method, path, dur_ms, e
            )
            raise
        finally:
            correlation_id_ctx.reset(token)
