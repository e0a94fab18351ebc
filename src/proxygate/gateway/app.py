"""Main FastAPI application for the App Proxy gateway."""

import logging
from typing import Optional
from uuid import uuid4
from time import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from proxygate import __version__
from proxygate.errors import ProxyError, UpstreamCallFailure
from proxygate.subscriptions import SubscriptionClient

from .audit import AuditLogger, entry_for_request
from .config import GatewayConfig, load_gateway_config
from .metrics import GatewayMetrics, route_label
from .endpoints import health, metrics, portal

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(config: Optional[GatewayConfig] = None) -> FastAPI:
    """
    Build the gateway application.

    Configuration (including the shared secret) is read once here and kept
    read-only on app.state for the lifetime of the process.
    """
    if config is None:
        config = load_gateway_config()

    app = FastAPI(
        title="Proxygate",
        version=__version__,
        description="Signature-verified App Proxy backend"
    )

    app.state.config = config
    app.state.metrics = GatewayMetrics()
    app.state.audit = AuditLogger(config.audit_log_path) if config.audit_log_path else None
    app.state.subscriptions = SubscriptionClient(
        config.subscriptions.base_url,
        config.subscriptions.token,
        timeout=config.subscriptions.timeout_sec
    )

    if not config.secret_configured:
        logger.warning(
            f"{config.secret_env} not set; every proxied request will be rejected"
        )
    if config.debug:
        logging.getLogger("proxygate").setLevel(logging.DEBUG)
        logger.warning("Debug mode enabled; canonical strings and digests are logged")

    # Request middleware for audit logging, metrics and request_id
    @app.middleware("http")
    async def audit_middleware(request: Request, call_next):
        """Audit the gate decision, record metrics and add request_id header."""
        request_id = str(uuid4())
        request.state.request_id = request_id

        start_time = time()
        response = await call_next(request)
        duration = time() - start_time

        response.headers["X-Request-ID"] = request_id

        # Route template, set on the shared scope once routing matched
        route = route_label(request.scope)

        audit_logger = request.app.state.audit
        if audit_logger is not None:
            entry = entry_for_request(request, route, response.status_code, int(duration * 1000))
            await run_in_threadpool(audit_logger.write, entry)

        request.app.state.metrics.record_request(route, response.status_code, duration)

        return response

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        """Render gate and routing failures as {ok: false, error}."""
        if isinstance(exc, UpstreamCallFailure):
            logger.warning(
                f"Subscription API failure on {request.method} {request.url.path}: "
                f"{exc.detail} (status={exc.status})"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": exc.message}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error = "Not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": error},
            headers=getattr(exc, "headers", None)
        )

    # Exception handler for 5xx errors
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Log stack traces for unhandled exceptions."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            f"Unhandled exception [request_id={request_id}] {request.method} {request.url.path}",
            exc_info=exc
        )

        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error": "Server error",
                "request_id": request_id
            }
        )

    # Public monitoring endpoints
    app.include_router(health.router, tags=["Health"])
    app.include_router(metrics.router, tags=["Metrics"])

    # Proxied routes; each one passes through the signature gate
    app.include_router(portal.router, prefix=config.proxy_prefix, tags=["Portal"])

    return app


app = create_app()
