#Marks routing as a package.
#Re-exports the public API (OSRMClient, DirectionsService, haversine_km)
#so other modules import from routing without knowing internal file names.
#No business logic.

from .osrm_client import OSRMClient, OSRMError
from .route_service import DirectionsService, RouteLeg, RouteResult
from .geo import haversine_km

__all__ = [
    "OSRMClient",
    "OSRMError",
    "DirectionsService",
    "RouteLeg",
    "RouteResult",
    "haversine_km",
]
