"""FastAPI application factory for DirStore.

The app has three routes: ``/health``, ``/metrics`` (when metrics are on) and
a catch-all that hands every other request to ``RequestDispatcher``. Fixed
routes are registered first so they win over the catch-all for GET; their
names are reserved, so other methods on them get a 405 instead of touching
a bucket.
"""

import base64
import email.utils
import json
import logging
import secrets
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dirstore import __version__, metrics
from dirstore.config import DirStoreConfig
from dirstore.errors import DirStoreError
from dirstore.handlers.dispatch import RequestDispatcher
from dirstore.storage.local import LocalStorageBackend

logger = logging.getLogger(__name__)

SERVER_NAME = "DirStore"

# Every method goes to the dispatcher so that unsupported ones get the same
# plain-text 405 as unsupported method/resource combinations.
_ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE"]

# Not logged per request.
_QUIET_PATHS = frozenset({"/health", "/metrics"})

# The instrumentator registers collectors in the global prometheus registry,
# so it is created once per process however many apps are built.
_instrumentator = None


def _get_instrumentator():
    global _instrumentator
    if _instrumentator is None:
        from prometheus_fastapi_instrumentator import Instrumentator
        from prometheus_fastapi_instrumentator import metrics as http_metrics

        # Request counts and latency only. The default size metrics parse
        # Content-Length themselves and fail on a malformed header before the
        # request reaches the dispatcher.
        _instrumentator = Instrumentator(excluded_handlers=["/metrics"]).add(
            http_metrics.requests(metric_namespace="dirstore"),
            http_metrics.latency(metric_namespace="dirstore"),
        )
    return _instrumentator


def create_app(config: DirStoreConfig) -> FastAPI:
    """Build the DirStore application.

    The storage backend is created in the lifespan hook and published as
    ``app.state.storage``; tests may assign their own backend there instead.

    Args:
        config: The loaded DirStore configuration.

    Returns:
        A configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage = LocalStorageBackend(config.storage.root, lock_mode=config.storage.lock_mode)
        await storage.init()
        app.state.storage = storage
        logger.info(
            "Serving %s (lock_mode=%s)", config.storage.root, config.storage.lock_mode
        )
        try:
            yield
        finally:
            await storage.close()
            logger.info("Storage backend closed")

    app = FastAPI(
        title="DirStore",
        version=__version__,
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config

    _register_exception_handlers(app)
    _register_middleware(app, metrics_enabled=config.observability.metrics)

    if config.observability.metrics:
        metrics.init_metrics()
        _get_instrumentator().instrument(app, metric_namespace="dirstore").expose(
            app, endpoint="/metrics"
        )

    _register_health(app, probe=config.observability.health_check)
    reserved = {"health"}
    if config.observability.metrics:
        reserved.add("metrics")
    _register_catch_all(app, frozenset(reserved))

    return app


# -- Errors ---------------------------------------------------------------------


def _text_response(message: str, status: int, method: str) -> Response:
    """Plain-text error body, ``message`` plus a newline. HEAD gets no body."""
    if method == "HEAD":
        return Response(status_code=status)
    return PlainTextResponse(f"{message}\n", status_code=status)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DirStoreError)
    async def dirstore_error_handler(request: Request, exc: DirStoreError) -> Response:
        if exc.http_status >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _text_response(exc.message, exc.http_status, request.method)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        return _text_response(str(exc.detail), exc.status_code, request.method)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> Response:
        # Runs outside the access middleware: headers and the log line are
        # produced here.
        request_id = getattr(request.state, "request_id", None) or secrets.token_hex(8).upper()
        logger.exception(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": 500,
                "request_id": request_id,
            },
        )
        response = _text_response("internal error", 500, request.method)
        response.headers.update(_common_headers(request_id))
        return response


# -- Middleware -----------------------------------------------------------------


def _declared_length(headers) -> int:
    """Content-Length as an int; 0 when absent or malformed."""
    try:
        return max(int(headers.get("content-length", 0)), 0)
    except ValueError:
        return 0


def _common_headers(request_id: str) -> dict[str, str]:
    """The S3-style headers attached to every response."""
    return {
        "x-amz-request-id": request_id,
        "x-amz-id-2": base64.b64encode(secrets.token_bytes(24)).decode(),
        "Date": email.utils.formatdate(usegmt=True),
        "Server": SERVER_NAME,
    }


def _register_middleware(app: FastAPI, metrics_enabled: bool) -> None:
    @app.middleware("http")
    async def access_middleware(request: Request, call_next) -> Response:
        """Tag the response with request headers, count bytes, log the request."""
        request_id = secrets.token_hex(8).upper()
        request.state.request_id = request_id
        start = time.monotonic()

        response = await call_next(request)

        response.headers.update(_common_headers(request_id))

        if metrics_enabled:
            metrics.record_bytes(
                _declared_length(request.headers), _declared_length(response.headers)
            )

        path = request.url.path
        if path not in _QUIET_PATHS:
            duration_ms = round((time.monotonic() - start) * 1000, 2)
            logger.info(
                "%s %s %d %.2fms",
                request.method,
                path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": duration_ms,
                    "request_id": request_id,
                },
            )
        return response


# -- Routes ---------------------------------------------------------------------


def _probe_storage(app: FastAPI) -> dict:
    """Check that the storage root is still a directory."""
    storage = getattr(app.state, "storage", None)
    if storage is None:
        return {"status": "error", "error": "storage backend not initialized", "latency_ms": 0}

    start = time.monotonic()
    ok = Path(storage.root).is_dir()
    result = {"status": "ok" if ok else "error"}
    if not ok:
        result["error"] = "data directory not found"
    result["latency_ms"] = round((time.monotonic() - start) * 1000, 1)
    return result


def _register_health(app: FastAPI, probe: bool) -> None:
    @app.get("/health")
    async def health() -> Response:
        """Liveness. With probing on, 503 when the storage root is gone."""
        if not probe:
            return Response('{"status":"ok"}', media_type="application/json")

        storage_check = _probe_storage(app)
        healthy = storage_check["status"] == "ok"
        body = {
            "status": "ok" if healthy else "degraded",
            "checks": {"storage": storage_check},
        }
        return Response(
            json.dumps(body),
            status_code=200 if healthy else 503,
            media_type="application/json",
        )


def _register_catch_all(app: FastAPI, reserved_buckets: frozenset[str]) -> None:
    dispatcher = RequestDispatcher(app, reserved_buckets=reserved_buckets)

    @app.api_route("/{path:path}", methods=_ROUTED_METHODS)
    async def s3(path: str, request: Request) -> Response:
        return await dispatcher.dispatch(request, path)
