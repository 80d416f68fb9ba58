"""
Geographic points and great-circle distances.
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """
    Immutable latitude/longitude pair with a human readable label.
    Ranges are not validated, out-of-range or NaN values pass through.
    """
    latitude: float
    longitude: float
    label: str = ""
    
    def distance_to(self, other: 'GeoPoint') -> float:
        """Great-circle distance to another point in kilometers."""
        return distance_km(self, other)
    
    def __str__(self) -> str:
        return self.label or f"({self.latitude:.5f}, {self.longitude:.5f})"


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """
    Haversine distance between two points.
    
    Args:
        a: First point
        b: Second point
    
    Returns:
        Distance in kilometers (NaN when any coordinate is NaN or infinite)
    """
    coords = (a.latitude, a.longitude, b.latitude, b.longitude)
    if not all(math.isfinite(c) for c in coords):
        return math.nan
    
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lon = math.radians(b.longitude - a.longitude)
    
    h = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) * math.sin(delta_lon / 2) ** 2)
    # Rounding can push h just past 1 for near-antipodal points
    h = min(max(h, 0.0), 1.0)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distances_km(points: Sequence[GeoPoint], target: GeoPoint) -> np.ndarray:
    """
    Vectorised haversine distance from every point to a single target.
    
    Args:
        points: Points to measure from
        target: Common destination point
    
    Returns:
        Array of distances in kilometers, same order as points
    """
    if not points:
        return np.empty(0)
    
    coords = np.radians(np.array([(p.latitude, p.longitude) for p in points], dtype=float))
    lat1 = coords[:, 0]
    lat2 = math.radians(target.latitude)
    delta_lat = lat2 - lat1
    delta_lon = math.radians(target.longitude) - coords[:, 1]
    
    with np.errstate(invalid='ignore'):
        h = np.sin(delta_lat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(delta_lon / 2) ** 2
    # Clip rounding noise so sqrt(1 - h) stays real
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))
