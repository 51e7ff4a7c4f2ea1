"""Health check endpoint for container orchestration."""

import logging

from django.http import JsonResponse
from django.db import connection

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Liveness probe for the review API.

    Reports healthy only when the database holding the review schedules
    answers a trivial query; otherwise 503 so the orchestrator restarts
    or stops routing to this instance.
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        return JsonResponse({"status": "healthy"})
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JsonResponse({"status": "unhealthy", "error": str(e)}, status=503)
