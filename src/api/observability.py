import json
import logging
import os
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Awaitable, Callable, Iterator
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from prometheus_fastapi_instrumentator import Instrumentator

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")

access_logger = logging.getLogger("http.access")


@dataclass(frozen=True)
class RequestContext:
    correlation_id: str
    request_id: str
    trace_id: str

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        return cls(
            correlation_id=request.headers.get("X-Correlation-Id") or f"corr_{uuid4().hex[:12]}",
            request_id=request.headers.get("X-Request-Id") or f"req_{uuid4().hex[:12]}",
            trace_id=_trace_id_from_traceparent(request.headers.get("traceparent", "")),
        )

    def apply_to(self, response: Response) -> None:
        response.headers.setdefault("X-Correlation-Id", self.correlation_id)
        response.headers["X-Request-Id"] = self.request_id
        response.headers["X-Trace-Id"] = self.trace_id
        response.headers["traceparent"] = f"00-{self.trace_id}-0000000000000001-01"


@contextmanager
def bind_request_context(context: RequestContext) -> Iterator[None]:
    tokens = (
        (correlation_id_var, correlation_id_var.set(context.correlation_id)),
        (request_id_var, request_id_var.set(context.request_id)),
        (trace_id_var, trace_id_var.set(context.trace_id)),
    )
    try:
        yield
    finally:
        for var, token in tokens:
            var.reset(token)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the active request context.

    ``extra={"extra_fields": {...}}`` merges structured fields into the line.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "service": os.getenv("SERVICE_NAME", "proposal-contracting"),
            "environment": os.getenv("ENVIRONMENT", "local"),
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get() or None,
            "request_id": request_id_var.get() or None,
            "trace_id": trace_id_var.get() or None,
            "exception": self.formatException(record.exc_info) if record.exc_info else None,
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            payload.update(extra_fields)
        return json.dumps({k: v for k, v in payload.items() if v is not None}, default=str)


def configure_logging() -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)


def setup_observability(app: FastAPI) -> None:
    configure_logging()
    Instrumentator().instrument(app).expose(app)

    @app.middleware("http")
    async def _request_observability_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        context = RequestContext.from_request(request)
        started = time.perf_counter()
        status_code = 500
        with bind_request_context(context):
            try:
                response = await call_next(request)
                status_code = response.status_code
            finally:
                access_logger.info(
                    "request.completed",
                    extra={
                        "extra_fields": {
                            "http_method": request.method,
                            "endpoint": request.url.path,
                            "status_code": status_code,
                            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                        }
                    },
                )
        context.apply_to(response)
        return response


def _trace_id_from_traceparent(traceparent: str) -> str:
    parts = traceparent.split("-") if traceparent else []
    if len(parts) >= 4 and len(parts[1]) == 32:
        return parts[1]
    return uuid4().hex
