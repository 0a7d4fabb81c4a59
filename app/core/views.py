"""
Core views: infrastructure endpoints and error rendering shared by the apps.
"""

from __future__ import annotations

import logging

from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response

from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def error_response(exc: BaseApplicationError) -> Response:
    """
    Render an application error with its own HTTP status.

    Body: {"error": ..., "error_code": ..., "details": {...}}
    """
    if exc.http_status >= 500:
        logger.warning(
            f"Request failed: {exc.error_code}",
            extra={"error_code": exc.error_code, "details": exc.details},
        )
    return Response(exc.to_dict(), status=exc.http_status)


def health_check(request):
    """
    Health check for load balancers and container orchestrators.

    Returns 200 when the database answers, 503 otherwise. The cache
    (Redis) is reported but does not fail the check: only hosted payment
    link creation depends on it.

    Example Response:
        {"status": "healthy", "database": "connected", "cache": "connected"}
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check: database unavailable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        health_status["cache"] = "connected" if cache.get("health_check") == "ok" else "disconnected"
    except Exception:
        health_status["cache"] = "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
