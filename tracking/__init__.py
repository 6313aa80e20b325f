#Expose the live tracking pieces:
#Location store + route cache (ephemeral, process-local)
#Route resolver (cache-or-provider)
#TrackingService (the "one call per endpoint" entry point)

from .access import Caller, Role
from .location_store import LocationStore, RiderLocation
from .policy import TrackingPolicy, default_tracking_policy, tracking_policy_from_env
from .realtime import RealtimeEvent, RealtimeHub
from .resolver import RouteResolver
from .route_cache import RouteCache, RouteCacheEntry
from .service import TrackingService
from .sweeper import CacheSweeper

__all__ = [
    "CacheSweeper",
    "Caller",
    "LocationStore",
    "RealtimeEvent",
    "RealtimeHub",
    "RiderLocation",
    "Role",
    "RouteCache",
    "RouteCacheEntry",
    "RouteResolver",
    "TrackingPolicy",
    "TrackingService",
    "default_tracking_policy",
    "tracking_policy_from_env",
]
