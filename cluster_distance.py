"""
cluster_distance.py

Distance helpers for the training-center map:
1) Great-circle (haversine) distance in km, scalar and vectorized,
2) Human-readable distance labels,
3) Bounding boxes for fitting the map to visible markers,
4) Stable per-cluster marker colours.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

EARTH_RADIUS_KM = 6371.0

CLUSTER_COLORS: Sequence[str] = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#FFA07A", "#98D8C8",
    "#F7DC6F", "#BB8FCE", "#85C1E9", "#F8B88B", "#AED6F1",
    "#F1948A", "#73C6B6", "#FAD7A0", "#D7BDE2", "#A9DFBF",
    "#F9E79F", "#FADBD8", "#D5F4E6", "#FCF3CF", "#EBDEF0",
    "#E8DAEF", "#D1F2EB", "#FEF5E7", "#FDEBD0",
)


# -----------------------------
# Distance helpers
# -----------------------------

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS-84 points in kilometres."""
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    # rounding can push a just past 1 for near-antipodal points
    c = 2 * atan2(sqrt(a), sqrt(max(0.0, 1 - a)))
    return EARTH_RADIUS_KM * c


def _to_rad(deg) -> np.ndarray:
    return np.deg2rad(np.asarray(deg, dtype=float))


def haversine_km_vectorized(lat1, lon1, lat2, lon2) -> np.ndarray:
    """
    Vectorized haversine distance (km). Inputs broadcast like numpy arrays.
    """
    lat1 = _to_rad(lat1)
    lon1 = _to_rad(lon1)
    lat2 = _to_rad(lat2)
    lon2 = _to_rad(lon2)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2.0) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(np.clip(1 - a, 0.0, None)))
    return EARTH_RADIUS_KM * c


def format_distance(km: float) -> str:
    if km < 1:
        return f"{round(km * 1000)}m"
    return f"{km:.1f}km"


# -----------------------------
# Map helpers
# -----------------------------

@dataclass(frozen=True)
class MapBounds:
    north: float
    south: float
    east: float
    west: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.north + self.south) / 2.0, (self.east + self.west) / 2.0


def map_bounds(points: Iterable[Tuple[float, float]]) -> Optional[MapBounds]:
    """Bounding box of ``(lat, lng)`` pairs, or None when there are no points."""
    points = list(points)
    if not points:
        return None
    lats = [lat for lat, _ in points]
    lngs = [lng for _, lng in points]
    return MapBounds(north=max(lats), south=min(lats), east=max(lngs), west=min(lngs))


def cluster_color(cluster_id: int) -> str:
    return CLUSTER_COLORS[cluster_id % len(CLUSTER_COLORS)]
