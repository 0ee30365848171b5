"""
Geographic measurement utilities: distance, polygon area and perimeter,
and display formatting.

Area uses a planar Shoelace approximation on radian (lon, lat) pairs scaled
by the Earth's radius. It is accurate only for work areas a few kilometers
across and ignores the cos(latitude) shrink of longitude. Per-acre prices
are calibrated against this approximation.
"""
from typing import Optional, Sequence

import numpy as np
from pyproj import Geod

from estimator.domain.models import GeoPoint, MeasurementKind, MeasurementResult

EARTH_RADIUS_M = 6_371_000.0
SQUARE_METERS_PER_ACRE = 4047.0
SQUARE_FEET_PER_SQUARE_METER = 10.764

_GEOD = Geod(ellps="WGS84")


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """
    Geodesic distance between two points on the WGS84 ellipsoid.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in meters
    """
    _, _, meters = _GEOD.inv(a.longitude, a.latitude, b.longitude, b.latitude)
    return float(meters)


def polygon_area(points: Sequence[GeoPoint]) -> float:
    """
    Approximate area of a small polygon ring.

    Args:
        points: Ring vertices (closure implied)

    Returns:
        Area in square meters, 0 for fewer than 3 points
    """
    if len(points) < 3:
        return 0.0

    lat = np.radians([p.latitude for p in points])
    lon = np.radians([p.longitude for p in points])
    lat_next = np.roll(lat, -1)
    lon_next = np.roll(lon, -1)

    cross = float(np.sum(lon * lat_next - lon_next * lat))
    return abs(cross) * EARTH_RADIUS_M * EARTH_RADIUS_M / 2.0


def polygon_perimeter(points: Sequence[GeoPoint]) -> float:
    """
    Length of the closed ring through the points.

    Args:
        points: Ring vertices (closure implied)

    Returns:
        Perimeter in meters, 0 for fewer than 2 points
    """
    if len(points) < 2:
        return 0.0

    lats = np.array([p.latitude for p in points])
    lons = np.array([p.longitude for p in points])
    _, _, segments = _GEOD.inv(lons, lats, np.roll(lons, -1), np.roll(lats, -1))
    return float(np.sum(segments))


def square_meters_to_acres(square_meters: float) -> float:
    return square_meters / SQUARE_METERS_PER_ACRE


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{meters:.1f} m"
    return f"{meters / 1000:.2f} km"


def format_area(square_meters: float) -> str:
    """Format an area in acres and square feet, leading with the larger unit."""
    square_feet = square_meters * SQUARE_FEET_PER_SQUARE_METER
    acres = square_meters_to_acres(square_meters)

    if acres > 0.5:
        return f"{acres:.2f} acres ({square_feet:,.0f} sq ft)"
    return f"{square_feet:,.0f} sq ft ({acres:.3f} acres)"


def measure(points: Sequence[GeoPoint]) -> Optional[MeasurementResult]:
    """
    Measure the points placed with the measuring tool.

    Two points give a distance; three or more give an area with its
    perimeter.

    Args:
        points: Points in placement order

    Returns:
        MeasurementResult, or None with fewer than 2 points
    """
    if len(points) < 2:
        return None

    if len(points) == 2:
        meters = distance(points[0], points[1])
        return MeasurementResult(
            kind=MeasurementKind.DISTANCE,
            value=meters,
            unit="meters",
            display_value=format_distance(meters),
        )

    area = polygon_area(points)
    return MeasurementResult(
        kind=MeasurementKind.AREA,
        value=area,
        unit="square meters",
        display_value=format_area(area),
        perimeter=polygon_perimeter(points),
    )
