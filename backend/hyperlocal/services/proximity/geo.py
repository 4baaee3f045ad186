"""
Spherical-earth helpers for radius queries.

Distances use the haversine formula on a sphere of the IUGG mean earth
radius. :func:`bounding_box` yields a lat/lng rectangle that contains the
whole circle, so an indexed range scan can prefilter candidates before the
exact distance test.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_M = 6_371_008.8
BOUNDARY_TOLERANCE_M = 1e-3
BOX_PADDING = 1.001


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance in meters between two WGS84 coordinates.

    :param lat1: Latitude of the first point, in degrees.
    :param lng1: Longitude of the first point, in degrees.
    :param lat2: Latitude of the second point, in degrees.
    :param lng2: Longitude of the second point, in degrees.
    :rtype: float
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """
    Lat/lng rectangle in degrees.

    ``min_lng > max_lng`` means the box crosses the antimeridian and covers
    ``[min_lng, 180] U [-180, max_lng]``.
    """

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.min_lng > self.max_lng


def bounding_box(lat: float, lng: float, radius_m: float) -> BoundingBox:
    """
    Smallest lat/lng rectangle containing every point within ``radius_m``.

    The radius is padded slightly so float error never drops a point that
    the exact test would keep. Near a pole the box spans all longitudes.

    :param lat: Center latitude in degrees.
    :param lng: Center longitude in degrees.
    :param radius_m: Radius in meters (``>= 0``).
    :rtype: BoundingBox
    """
    angular = (radius_m + BOUNDARY_TOLERANCE_M) * BOX_PADDING / EARTH_RADIUS_M
    dlat = math.degrees(angular)
    min_lat, max_lat = lat - dlat, lat + dlat

    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(max(min_lat, -90.0), min(max_lat, 90.0), -180.0, 180.0)

    ratio = math.sin(angular) / math.cos(math.radians(lat))
    if ratio >= 1.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    dlng = math.degrees(math.asin(ratio))
    min_lng, max_lng = lng - dlng, lng + dlng
    if min_lng < -180.0:
        min_lng += 360.0
    if max_lng > 180.0:
        max_lng -= 360.0
    return BoundingBox(min_lat, max_lat, min_lng, max_lng)
