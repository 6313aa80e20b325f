"""
Process-wide TrackingService for the Django app.

The location store and route cache live inside this one instance, so every
request handled by this process must go through get_tracking_service().
"""

import threading

from django.conf import settings

from routing.osrm_client import OSRMClient
from routing.route_service import DirectionsService
from tracking.policy import tracking_policy_from_env
from tracking.service import TrackingService

from .repository import DjangoTripStore

_service = None
_service_lock = threading.Lock()


def build_tracking_service() -> TrackingService:
    policy = tracking_policy_from_env()
    osrm = OSRMClient(
        profile=settings.OSRM_PROFILE,
        timeout=policy.directions_timeout_seconds,
        base_url=settings.OSRM_BASE_URL,
    )
    return TrackingService(DjangoTripStore(), DirectionsService(osrm), policy=policy)


def get_tracking_service() -> TrackingService:
    global _service
    with _service_lock:
        if _service is None:
            _service = build_tracking_service()
        return _service
