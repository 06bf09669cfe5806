"""
FastAPI application factory for the ministry reports gateway.

Usage:
    python -m api.app                    # Dev server on port 8000
    MINISTRY_API_BASE_URL=https://ministry.example.org python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

The gateway is stateless: every request resolves the caller's scope through
the ministry API and runs the attendance/reporting state machines for that
one request.  The only shared object is the MinistryClient (connection pool
plus the reference-list cache).

Structured JSON logging is enabled with APP_LOG_FORMAT=json.
CORS origins are configured via APP_CORS_ORIGINS.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.deps import close_client, get_client, set_client
from api.models import HealthOut
from api.routes import attendance, dates, events, reports, scope
from ministry.client import ApiError, MinistryClient
from ministry.export import ExportError
from utils.config import AppConfig

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("ministry_reports_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)

# ── Application metrics ───────────────────────────────────────────────────────
# In-memory counters; reset on process restart.
_app_start_time: float = time.time()
_metrics: dict = {
    "request_count": 0,
    "error_count": 0,
    "upstream_error_count": 0,
    "response_times_ms": [],  # capped at last 100 entries
}
_RESPONSE_TIME_WINDOW = 100


def _error_body(error: str, detail: str | None, status_code: int) -> dict:
    return {"error": error, "detail": detail, "status_code": status_code}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the shared client's connection pool on shutdown."""
    yield
    close_client()


def create_app(client: MinistryClient | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        client: Use this MinistryClient instead of building one from the
            environment (useful for testing).

    Returns:
        Configured FastAPI application instance.
    """
    if client is not None:
        set_client(client)

    app = FastAPI(
        title="Ministry Reports API",
        summary="Attendance marking and engagement reporting over the ministry REST API.",
        description=(
            "## Ministry Reports Gateway\n\n"
            "Runs the attendance and reporting workflows of the ministry "
            "management system against its REST API.\n\n"
            "### Key concepts\n"
            "- **Scope**: region → university → small group (or alumni group). "
            "Selectors above the caller's own scope are pinned to it.\n"
            "- **Event keys** are `type-id`, e.g. `training-12` or `permanent-3`.\n"
            "- **Drilldown paths** are `level:id:name` segments joined by `/`, "
            "e.g. `region:5:North/university:9:Makerere`.\n"
            "- **Dates** are ISO `YYYY-MM-DD`; ranges are `dateFrom`/`dateTo` "
            "or a predefined range id such as `last7days`.\n\n"
            "### Errors\n"
            "Every error body is `{error, detail, status_code}`. Failures of "
            "the ministry API surface as `502 Upstream API error`."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "scope",
                "description": "Region, university, small group and alumni group selectors.",
            },
            {
                "name": "events",
                "description": "Scope-validated event lists with event-management filters.",
            },
            {
                "name": "dates",
                "description": "Available attendance dates, predefined ranges and quick actions.",
            },
            {
                "name": "attendance",
                "description": "Marking sessions, record browsing and inline status edits.",
            },
            {
                "name": "reports",
                "description": "Hierarchical engagement reports and PDF export.",
            },
            {
                "name": "meta",
                "description": "Health check and gateway metrics.",
            },
        ],
    )

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request and record metrics."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        path = request.url.path

        _metrics["request_count"] += 1
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000

        _metrics["response_times_ms"].append(duration_ms)
        if len(_metrics["response_times_ms"]) > _RESPONSE_TIME_WINDOW:
            _metrics["response_times_ms"] = (
                _metrics["response_times_ms"][-_RESPONSE_TIME_WINDOW:]
            )
        if response.status_code >= 500:
            _metrics["error_count"] += 1

        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, path, response.status_code, duration_ms, request_id,
            )
        if duration_ms > 1000:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", str(exc), 500),
        )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        _metrics["upstream_error_count"] += 1
        _logger.error(
            "upstream error path=%s upstream_path=%s status=%s: %s",
            request.url.path, exc.path, exc.status_code, exc.message,
        )
        return JSONResponse(
            status_code=502,
            content=_error_body("Upstream API error", exc.message, 502),
        )

    @app.exception_handler(ExportError)
    async def export_error_handler(request: Request, exc: ExportError):
        return JSONResponse(
            status_code=500,
            content=_error_body("Export failed", str(exc), 500),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content=_error_body("Bad request", str(exc), 400),
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get(
        "/health",
        tags=["meta"],
        response_model=HealthOut,
        responses={503: {"model": HealthOut}},
        summary="Health check",
    )
    def health(client: MinistryClient = Depends(get_client)):
        """Return 200 OK if the gateway can reach the ministry API."""
        upstream = client.config.base_url
        try:
            client.current_user_scope()
        except ApiError as exc:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "upstream": upstream, "error": exc.message},
            )
        return {"status": "ok", "upstream": upstream}

    @app.get(
        "/health/detailed",
        tags=["meta"],
        summary="Detailed health metrics",
        response_description="Operational metrics for monitoring dashboards",
    )
    def health_detailed(client: MinistryClient = Depends(get_client)):
        """Return uptime, request/error counters and average response time.

        Counters reset on process restart.
        """
        rts = _metrics["response_times_ms"]
        avg_rt = round(sum(rts) / len(rts), 2) if rts else 0.0
        return {
            "status": "ok",
            "uptime_seconds": round(time.time() - _app_start_time, 2),
            "request_count": _metrics["request_count"],
            "error_count": _metrics["error_count"],
            "upstream_error_count": _metrics["upstream_error_count"],
            "avg_response_time_ms": avg_rt,
            "upstream": client.config.base_url,
        }

    # ── Register routers ──────────────────────────────────────────────────────

    prefix = "/api/v1"
    app.include_router(scope.router,      prefix=prefix)
    app.include_router(events.router,     prefix=prefix)
    app.include_router(dates.router,      prefix=prefix)
    app.include_router(attendance.router, prefix=prefix)
    app.include_router(reports.router,    prefix=prefix)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
