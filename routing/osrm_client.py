#Purpose: The OSRM “adapter/client”.
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lon,lat)
#URL construction (/route)
#timeouts and error handling
#parsing response JSON into your internal shape
#It should not contain trip rules or caching.


from dotenv import load_dotenv
import os
from typing import List, Tuple, Dict, Any, Optional
import requests

# Read OSRM base URL from environment
# Example in .env:
# BASE_URL=http://router.project-osrm.org
load_dotenv()
BASE_URL = os.getenv("BASE_URL")

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]

class OSRMError(Exception):
    """Custom exception for OSRM client errors."""
    pass

class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Convert internal (lat, lon) → OSRM (lon,lat)
    - Return normalized outputs

    """
    def __init__(self, profile: str = "driving", timeout: float = 5, base_url: Optional[str] = None):
        self.base_url = base_url or BASE_URL
        self.timeout = timeout #the time to wait for a response from OSRM before giving up
        self.profile = profile #the mode of transportation (driving, walking, cycling)

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set it in the .env file.")

    #----------------
    # Internal helper methods for coordinate formatting, URL construction, error handling
    #----------------
    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join([f"{lon},{lat}" for lat, lon in coords])

    def _get(self, path: str, coordinates: List[LatLon], params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}/v1/{self.profile}/{self.format_coordinates(coordinates)}"

        response = requests.get(url, params=params, timeout=self.timeout)

        try:
            data = response.json()
        except ValueError as exc:
            raise OSRMError(f"OSRM returned a non-JSON response (HTTP {response.status_code})") from exc

        #validating OSRM response
        if data.get("code") != "Ok":
            raise OSRMError(f"OSRM error: {data.get('message', data.get('code', 'Unknown error'))}")
        return data

    #----------------
    # Public methods
    #----------------
    def compute_route_geometry(self, coordinates: List[LatLon]) -> Optional[Dict[str, Any]]:
        """
        Calls the OSRM /route endpoint with the full geometry, for map display.

        Coordinates are visited in the given order (origin, waypoints..., destination).

        Returns None when OSRM finds no route, otherwise:
            {
                "coordinates": [(lat, lon), ...],  # the polyline
                "legs": [{"distance": m, "duration": s}, ...],
                "distance": float, # total meters
                "duration": float, # total seconds
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        data = self._get(
            "route",
            coordinates,
            {
                "overview": "full",
                "geometries": "geojson",
                "steps": "false",
            },
        )
        routes = data.get("routes") or []
        if not routes:
            return None
        route = routes[0]

        # geojson coordinates come back as [lon, lat]
        polyline = [(lat, lon) for lon, lat in route["geometry"]["coordinates"]]
        legs = [{"distance": leg["distance"], "duration": leg["duration"]} for leg in route.get("legs", [])]

        return {
            "coordinates": polyline,
            "legs": legs,
            "distance": route["distance"],
            "duration": route["duration"],
        }
