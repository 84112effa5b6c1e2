"""
Geo math for group walks: Haversine distance, weighted centroid, bounding radius.
Pure functions, no state.
"""

import math
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from walkgroups.domain.models import Coordinate

EARTH_RADIUS_M = 6371000.0
M_PER_DEG_LAT = 111320.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1_r = math.radians(lat1)
    lat2_r = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.asin(min(1.0, math.sqrt(a)))
    return EARTH_RADIUS_M * c


def haversine_m_many(
    lat: float, lng: float, lats: np.ndarray, lngs: np.ndarray
) -> np.ndarray:
    """Vectorized Haversine from one point to N points, in meters."""
    lat_r = np.radians(lat)
    lats_r = np.radians(lats)
    dlat = lats_r - lat_r
    dlon = np.radians(lngs - lng)
    a = np.sin(dlat / 2) ** 2 + np.cos(lat_r) * np.cos(lats_r) * np.sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * np.arcsin(np.minimum(1.0, np.sqrt(a)))


def distance_m(a: Coordinate, b: Coordinate) -> float:
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def centroid(points: Iterable[Tuple[Coordinate, float]]) -> Coordinate:
    """
    Weighted mean of lat/lng (weight = dogs at that point).
    Fine at neighborhood scale; no geodesic projection below ~10 km.
    """
    pts = list(points)
    if not pts:
        raise ValueError("empty point set")
    weights = np.array([max(float(w), 0.0) for _, w in pts])
    if weights.sum() <= 0:
        weights = np.ones(len(pts))
    lats = np.array([c.lat for c, _ in pts])
    lngs = np.array([c.lng for c, _ in pts])
    return Coordinate(
        lat=float(np.average(lats, weights=weights)),
        lng=float(np.average(lngs, weights=weights)),
    )


def bounding_radius_m(center: Coordinate, points: Sequence[Coordinate]) -> float:
    """Max distance(center, p) over points; 0.0 when empty."""
    if not points:
        return 0.0
    lats = np.array([p.lat for p in points])
    lngs = np.array([p.lng for p in points])
    return float(haversine_m_many(center.lat, center.lng, lats, lngs).max())


def medoid(points: Sequence[Coordinate]) -> Tuple[Coordinate, float]:
    """Point minimizing the summed distance to the others; returns (point, summed distance)."""
    if not points:
        raise ValueError("empty point set")
    lats = np.array([p.lat for p in points])
    lngs = np.array([p.lng for p in points])
    totals = np.array([haversine_m_many(p.lat, p.lng, lats, lngs).sum() for p in points])
    idx = int(np.argmin(totals))
    return points[idx], float(totals[idx])


def to_local_meters(
    coords: Sequence[Coordinate], ref_lat: float, ref_lng: float
) -> np.ndarray:
    """Local tangent plane with origin at (ref_lat, ref_lng). Returns (N, 2) [y_m, x_m]."""
    cos_lat = math.cos(math.radians(ref_lat))
    ys = np.array([c.lat for c in coords], dtype=float)
    xs = np.array([c.lng for c in coords], dtype=float)
    y_m = (ys - ref_lat) * M_PER_DEG_LAT
    x_m = (xs - ref_lng) * M_PER_DEG_LAT * cos_lat
    return np.column_stack([y_m, x_m]) if len(coords) else np.zeros((0, 2))


def coords_to_radians(coords: Sequence[Coordinate]) -> np.ndarray:
    """(N, 2) [lat, lng] in radians, the layout BallTree(metric="haversine") expects."""
    arr: List[List[float]] = [[c.lat, c.lng] for c in coords]
    return np.radians(np.array(arr, dtype=float).reshape(-1, 2))
