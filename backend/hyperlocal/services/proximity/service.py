# hyperlocal/services/proximity/service.py
from __future__ import annotations

import logging
import math

from hyperlocal.services._shared.base import BaseService
from hyperlocal.services._shared.errors import ValidationError
from hyperlocal.services.posts.dto import PostOut, post_to_out
from hyperlocal.services.posts.service import validate_coordinate
from hyperlocal.services.proximity.geo import (
    BOUNDARY_TOLERANCE_M,
    bounding_box,
    haversine_m,
)

log = logging.getLogger(__name__)


class ProximityService(BaseService):
    """
    Radius queries over posts.

    Two phases: an indexed bounding-box scan in the store, then an exact
    haversine filter in Python. The boundary is inclusive. Results keep the
    store order (newest first, id as tiebreaker) and carry their authors,
    which are loaded in the same query.
    """

    def nearby(
        self,
        lat: float,
        lng: float,
        radius_m: float,
        *,
        limit: int | None = None,
        include_flagged: bool = False,
    ) -> list[PostOut]:
        """
        Posts within ``radius_m`` meters of ``(lat, lng)``.

        :param lat: Center latitude in degrees.
        :param lng: Center longitude in degrees.
        :param radius_m: Radius in meters; any finite non-negative value.
        :param limit: Optional cap on returned posts.
        :param include_flagged: Also return posts hidden by the report rule.
        :raises ValidationError: Bad coordinate, radius or limit.
        """
        lat, lng = validate_coordinate(lat, lng)
        try:
            radius = float(radius_m)
        except (TypeError, ValueError) as exc:
            raise ValidationError("radius", "must be a number") from exc
        if not math.isfinite(radius) or radius < 0:
            raise ValidationError("radius", "must be a non-negative number of meters")
        if limit is not None and limit < 1:
            raise ValidationError("limit", "must be positive")

        box = bounding_box(lat, lng, radius)
        cutoff = radius + BOUNDARY_TOLERANCE_M
        out: list[PostOut] = []

        with self.ro_uow() as uow:
            candidates = uow.posts.within_box(
                min_lat=box.min_lat,
                max_lat=box.max_lat,
                min_lng=box.min_lng,
                max_lng=box.max_lng,
                include_flagged=include_flagged,
            )
            for post in candidates:
                distance = haversine_m(lat, lng, post.latitude, post.longitude)
                if distance <= cutoff:
                    out.append(post_to_out(post, distance_m=distance))
                    if limit is not None and len(out) >= limit:
                        break

        log.debug(
            "Nearby query",
            extra={"radius_m": radius, "candidates": len(candidates), "count": len(out)},
        )
        return out
