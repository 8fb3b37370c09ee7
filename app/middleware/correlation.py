# ==== CORRELATION ID MIDDLEWARE ==== #

"""
Correlation ID middleware for request tracing in Credit Gate.

Every request carries an ``X-Correlation-Id`` (generated when absent) that is
echoed on the response, attached to the request span and used by the error
handlers, and every request's latency is recorded per company and route.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.observability.metrics import http_request_latency_seconds
from app.observability.tracing import get_tracer


# ==== MODULE INITIALIZATION ==== #

tracer = get_tracer(__name__)


# ==== CORRELATION MIDDLEWARE CLASS ==== #

class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request with correlation ID tracking and latency metrics.

        Args:
            request (Request): Incoming HTTP request
            call_next (Callable): Next middleware/handler in chain

        Returns:
            Response: HTTP response with correlation ID header
        """
        # --► CORRELATION ID MANAGEMENT
        correlation_id = request.headers.get("X-Correlation-Id") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()

        with tracer.start_as_current_span("http_request") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.url", str(request.url))
            span.set_attribute("correlation_id", correlation_id)

            response = await call_next(request)
            response.headers["X-Correlation-Id"] = correlation_id

            # --► METRICS COLLECTION
            duration = time.perf_counter() - start_time

            # ⚠️ Label by route template so path parameters do not explode cardinality
            route = request.scope.get("route")
            route_path = getattr(route, "path", "unmatched")
            company = str(request.scope.get("company_id", "none"))

            http_request_latency_seconds.labels(
                company=company,
                method=request.method,
                route=route_path
            ).observe(duration)

            span.set_attribute("http.status_code", response.status_code)
            return response
