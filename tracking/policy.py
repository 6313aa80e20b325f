"""
Purpose: Central configuration for live tracking and route caching.
What it does:

Stores all tunable thresholds so behavior can be tuned without rewriting code:

LOCATION_TTL_SECONDS = 600          (drop a rider position after 10 min of silence)
ROUTE_MAX_AGE_SECONDS = 60          (reuse a cached route for at most 1 min)
ROUTE_MAX_DISPLACEMENT_KM = 0.5     (... and only while the rider moved < 500 m)
ROUTE_CACHE_TTL_SECONDS = 120       (garbage-collect cached routes after 2 min)
SWEEP_INTERVAL_SECONDS = 60
DIRECTIONS_TIMEOUT_SECONDS = 5

Rule: No logic here, just parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class TrackingPolicy:
    """
    Central configuration for the location store, the route cache and the sweeper.
    """

    # --- Location store ---
    location_ttl_seconds: float = 600

    # --- Route cache validity ---
    # A cached route is reused only while ALL hold:
    #   age < route_max_age_seconds
    #   rider displacement since the route's origin < route_max_displacement_km
    #   number of remaining stops unchanged
    route_max_age_seconds: float = 60
    route_max_displacement_km: float = 0.5

    # Entries older than this are evicted whether or not they are still read.
    route_cache_ttl_seconds: float = 120

    # --- Background sweeper ---
    sweep_interval_seconds: float = 60

    # --- Directions provider ---
    directions_timeout_seconds: float = 5

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.location_ttl_seconds <= 0:
            raise ValueError("location_ttl_seconds must be > 0")
        if self.route_max_age_seconds <= 0:
            raise ValueError("route_max_age_seconds must be > 0")
        if self.route_max_displacement_km <= 0:
            raise ValueError("route_max_displacement_km must be > 0")
        if self.route_cache_ttl_seconds < self.route_max_age_seconds:
            raise ValueError("route_cache_ttl_seconds must be >= route_max_age_seconds")
        if self.sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")
        if self.directions_timeout_seconds <= 0:
            raise ValueError("directions_timeout_seconds must be > 0")


def default_tracking_policy() -> TrackingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = TrackingPolicy()
    p.validate()
    return p


def tracking_policy_from_env() -> TrackingPolicy:
    """
    Same defaults, overridable with TRACKING_* variables from the environment / .env.
    """
    def _float(name: str, default: float) -> float:
        value = os.getenv(name)
        return float(value) if value not in (None, "") else default

    defaults = TrackingPolicy()
    p = TrackingPolicy(
        location_ttl_seconds=_float("TRACKING_LOCATION_TTL_SECONDS", defaults.location_ttl_seconds),
        route_max_age_seconds=_float("TRACKING_ROUTE_MAX_AGE_SECONDS", defaults.route_max_age_seconds),
        route_max_displacement_km=_float("TRACKING_ROUTE_MAX_DISPLACEMENT_KM", defaults.route_max_displacement_km),
        route_cache_ttl_seconds=_float("TRACKING_ROUTE_CACHE_TTL_SECONDS", defaults.route_cache_ttl_seconds),
        sweep_interval_seconds=_float("TRACKING_SWEEP_INTERVAL_SECONDS", defaults.sweep_interval_seconds),
        directions_timeout_seconds=_float("TRACKING_DIRECTIONS_TIMEOUT_SECONDS", defaults.directions_timeout_seconds),
    )
    p.validate()
    return p
