"""
FastAPI scaffolding shared by token service processes.

Every service built on ``BaseService`` gets request correlation and timing,
``/health`` and ``/metrics``, and a JSON error document for any
``TokenServiceException`` raised by a route.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from typing import Any, Dict, Optional
import time
import os

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import TokenServiceException

SERVICE_VERSION = "1.0.0"


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)

        configure_logging(service_name, self.config.log_level)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self.started_at = time.time()

        self.app = FastAPI(
            title=f"{service_name.title()} Service",
            version=SERVICE_VERSION,
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url=None,
        )
        self.app.middleware("http")(self._correlate_request)
        self.app.add_exception_handler(TokenServiceException, self._handle_service_error)
        self.app.add_exception_handler(Exception, self._handle_unexpected_error)

        self.app.add_api_route("/health", self._health, methods=["GET"])
        self.app.add_api_route("/metrics", self._metrics, methods=["GET"])

    async def _correlate_request(self, request: Request, call_next):
        """Tag log events with the caller's request id and time the request."""
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        started = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - started
        self.metrics.record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status_code=response.status_code,
            duration=duration,
        )
        self.logger.info(
            "HTTP request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        response.headers["X-Request-ID"] = request_id
        clear_context()

        return response

    async def _handle_service_error(self, request: Request, exc: TokenServiceException) -> JSONResponse:
        # details never carry key material or token strings
        self.logger.warning(
            "Request rejected",
            path=request.url.path,
            code=exc.code,
            message=exc.message,
            details=exc.details,
        )
        self.metrics.record_error(exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

    async def _handle_unexpected_error(self, request: Request, exc: Exception) -> JSONResponse:
        self.logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        self.metrics.record_error("INTERNAL_ERROR")
        return JSONResponse(
            status_code=500,
            content={"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
        )

    async def _health(self):
        """Liveness plus whatever the service reports about its dependencies."""
        try:
            dependencies = await self._check_dependencies()
        except Exception as e:
            self.logger.error("Health check failed", error=str(e))
            self.metrics.record_health_check("error")
            return JSONResponse(
                status_code=503,
                content={"service": self.service_name, "status": "error", "error": str(e)},
            )

        self.metrics.record_health_check("ok")
        return {
            "service": self.service_name,
            "status": "ok",
            "uptime_seconds": time.time() - self.started_at,
            "dependencies": dependencies,
            "version": SERVICE_VERSION,
            "commit": os.getenv("GIT_COMMIT", "unknown"),
        }

    async def _metrics(self) -> Response:
        return Response(content=self.metrics.render(), media_type=CONTENT_TYPE_LATEST)

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report dependency state for /health. Override in subclasses."""
        return {}

    def run(self):
        """Serve the application with uvicorn."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
