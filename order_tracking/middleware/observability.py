from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from order_tracking.core.metrics import request_metrics
from order_tracking.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_context(
            request_id=request_id,
            company_id=request.headers.get("X-Company-ID"),
            user_id=request.headers.get("X-User-ID"),
            user_role=request.headers.get("X-User-Role"),
        )

        status_code = 500
        method = request.method

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = _route_path(request)
            company_id = _extract_company_id(request)
            user_id = _extract_user_id(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            set_request_context(company_id=company_id, user_id=user_id)
            request_metrics.observe(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
                company_id=company_id,
            )

            logger.info(
                "request completed",
                extra={
                    "request_id": request_id,
                    "company_id": company_id,
                    "user_id": user_id,
                    "endpoint": endpoint,
                    "method": method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if "response" in locals():
                response.headers["X-Request-ID"] = request_id

            clear_request_context()


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _extract_company_id(request: Request) -> str | None:
    company = request.path_params.get("company_id") or request.query_params.get("company_id")
    if company:
        return str(company)
    return request.headers.get("X-Company-ID") or None


def _extract_user_id(request: Request) -> str | None:
    viewer = getattr(request.state, "viewer", None)
    if viewer is not None and viewer.user_id:
        return viewer.user_id
    return request.headers.get("X-User-ID") or None
