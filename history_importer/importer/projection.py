"""
Reprojection of WGS84 coordinates

Node coordinates are stored as lon/lat and reprojected to spherical
mercator before geometries are built.
"""

import math
from typing import Optional, Tuple

from pyproj import Transformer
from pyproj.exceptions import ProjError

from ..config import ProjectionConfig


# Legacy "google" code of spherical mercator, still expected by the database
SRID_MERCATOR = 900913
SRID_WGS84 = 4326


class MercatorProjection:
    """
    Callable projection from lon/lat to the configured target CRS.

    Returns None for coordinates outside the valid domain of the projection
    instead of raising, the caller drops such coordinates.
    """

    def __init__(self, config: Optional[ProjectionConfig] = None):
        self.config = config or ProjectionConfig()
        self.transformer = Transformer.from_crs(
            self.config.source_crs, self.config.target_crs, always_xy=True
        )

    def __call__(self, lon: float, lat: float) -> Optional[Tuple[float, float]]:
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        if abs(lat) > self.config.max_latitude or abs(lon) > 180.0:
            return None

        try:
            x, y = self.transformer.transform(lon, lat)
        except ProjError:
            return None

        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        return x, y


_default_projection: Optional[MercatorProjection] = None


def to_mercator(lon: float, lat: float) -> Optional[Tuple[float, float]]:
    """Project a lon/lat pair to spherical mercator with the default settings"""
    global _default_projection
    if _default_projection is None:
        _default_projection = MercatorProjection()
    return _default_projection(lon, lat)
