"""
Spatial helper functions for drawn work areas.

Provides utilities for:
- Polygon construction from map points
- Ring validity (self-intersection) checks
- Centroid lookup for labels and exports
"""
from typing import Optional, Sequence
from shapely.geometry import Polygon as ShapelyPolygon
import logging

from estimator.domain.models import GeoPoint

logger = logging.getLogger(__name__)


def to_shapely_polygon(points: Sequence[GeoPoint]) -> Optional[ShapelyPolygon]:
    """
    Build a shapely polygon in (lon, lat) order.

    Args:
        points: Ring vertices (closure implied)

    Returns:
        Polygon, or None with fewer than 3 points
    """
    if len(points) < 3:
        return None
    return ShapelyPolygon([(p.longitude, p.latitude) for p in points])


def is_simple_ring(points: Sequence[GeoPoint]) -> bool:
    """
    Check that the ring does not cross itself.

    A self-intersecting ring still gets an area from the Shoelace formula
    but the value is meaningless, so exports flag it.

    Args:
        points: Ring vertices

    Returns:
        True if the ring is a valid simple polygon
    """
    polygon = to_shapely_polygon(points)
    if polygon is None:
        return False
    if not polygon.is_valid:
        logger.debug(f"Ring of {len(points)} points is not a simple polygon")
        return False
    return True


def polygon_centroid(points: Sequence[GeoPoint]) -> Optional[GeoPoint]:
    """
    Centroid of the ring in degrees.

    Falls back to the vertex mean for degenerate (zero-area) rings.

    Args:
        points: Ring vertices

    Returns:
        Centroid point, or None for an empty sequence
    """
    if not points:
        return None

    polygon = to_shapely_polygon(points)
    if polygon is None or polygon.area == 0:
        lat = sum(p.latitude for p in points) / len(points)
        lon = sum(p.longitude for p in points) / len(points)
        return GeoPoint(latitude=lat, longitude=lon)

    centroid = polygon.centroid
    return GeoPoint(latitude=centroid.y, longitude=centroid.x)
