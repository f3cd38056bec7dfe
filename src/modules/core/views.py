import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger()

CACHE_PROBE_KEY = "_health_check"


def _probe_database() -> Dict[str, Any]:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return {}


def _probe_cache() -> Dict[str, Any]:
    cache.set(CACHE_PROBE_KEY, "ok", 10)
    if cache.get(CACHE_PROBE_KEY) != "ok":
        raise ConnectionError("Cache read failed")
    return {}


def _probe_outbox() -> Dict[str, Any]:
    # a growing backlog means the relay is behind, not that the API is down
    return {
        "pending": OutboxEvent.objects.filter(status=EventStatus.PENDING).count(),
        "failed": OutboxEvent.objects.filter(status=EventStatus.FAILED).count(),
    }


PROBES: Dict[str, Callable[[], Dict[str, Any]]] = {
    "database": _probe_database,
    "cache": _probe_cache,
    "outbox": _probe_outbox,
}


def health_check(request: HttpRequest) -> JsonResponse:
    """Database, cache and outbox status; 503 when any probe fails."""
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    for name, probe in PROBES.items():
        start = time.monotonic()
        try:
            details = probe()
        except Exception:
            services[name] = {"status": "down"}
            overall_healthy = False
            logger.exception("health_check_probe_failed", service=name)
            continue
        services[name] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
            **details,
        }

    logger.info(
        "health_check_completed", status="healthy" if overall_healthy else "unhealthy"
    )

    return JsonResponse(
        {
            "status": "healthy" if overall_healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if overall_healthy else 503,
    )


class MeView(APIView):
    """The caller's resolved profile.

    * No token          -> 401
    * Bad token         -> 401
    * Unknown/inactive  -> 401
    * Valid, active     -> 200
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        user = request.user
        return Response(
            {
                "subject_id": user.subject_id,
                "email": user.session.identity.email,
                "role": user.role.value,
                "retailer_id": str(user.retailer_id) if user.retailer_id else None,
                "is_active": user.is_active,
            }
        )
