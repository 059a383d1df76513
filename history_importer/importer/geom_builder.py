"""
Way geometry building

Geometries are built from the node list of a way at a given timestamp.
Every referenced node is resolved as it was at that time, reprojected and
assembled into a line string, or into a polygon when the tags say the way
could be an area and the ring is closed.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import shapely
from loguru import logger
from shapely.errors import ShapelyError
from shapely.geometry import LineString, Polygon
from shapely.geometry.base import BaseGeometry

from ..config import GeometryConfig, ProjectionConfig, get_config
from .nodestore import Nodestore
from .projection import MercatorProjection, SRID_MERCATOR

Projection = Callable[[float, float], Optional[Tuple[float, float]]]


class BuilderMode(Enum):
    """Named presets of the builder"""
    IMPORT = "import"
    UPDATE = "update"


class GeometryStatus(Enum):
    """Outcome of a geometry build"""
    BUILT = "built"
    MISSING_DATA = "missing_data"
    ENGINE_FAILURE = "engine_failure"


@dataclass
class GeometryResult:
    """Geometry of a way at one point in time, or the reason there is none"""
    status: GeometryStatus
    geometry: Optional[BaseGeometry] = None
    srid: Optional[int] = None
    coordinate_count: int = 0
    skipped_nodes: int = 0
    skipped_projections: int = 0
    error: Optional[str] = None

    @property
    def is_polygon(self) -> bool:
        return isinstance(self.geometry, Polygon)

    def __bool__(self) -> bool:
        return self.status is GeometryStatus.BUILT


class GeomBuilder:
    """
    Builds shapely geometries for ways at historical timestamps

    The builder borrows the node store and the projection, and hands every
    produced geometry over to the caller.

    Usage:
        builder = GeomBuilder.for_import(nodestore)
        result = builder.for_way(way.nodes, way.timestamp, looks_like_polygon=True)
        if result:
            save(result.geometry)
    """

    def __init__(
        self,
        nodestore: Nodestore,
        projection: Optional[Projection] = None,
        mode: BuilderMode = BuilderMode.IMPORT,
        keep_latlng: bool = False,
        debug: bool = False,
        show_errors: bool = False,
        srid: int = SRID_MERCATOR,
        srid_follows_projection: bool = False,
        geographic_srid: int = 4326,
    ):
        self.nodestore = nodestore
        self.mode = mode
        self.keep_latlng = keep_latlng
        self.debug = debug
        self.show_errors = show_errors
        self.srid = srid
        self.srid_follows_projection = srid_follows_projection
        self.geographic_srid = geographic_srid

        if projection is None and not keep_latlng:
            projection = MercatorProjection()
        self.projection = projection

    @classmethod
    def from_config(
        cls,
        nodestore: Nodestore,
        mode: BuilderMode = BuilderMode.IMPORT,
        geometry_config: Optional[GeometryConfig] = None,
        projection_config: Optional[ProjectionConfig] = None,
        projection: Optional[Projection] = None,
    ) -> "GeomBuilder":
        """Create a builder from the geometry and projection config sections"""
        config = get_config()
        geometry_config = geometry_config or config.geometry
        projection_config = projection_config or config.projection

        if projection is None and not geometry_config.keep_latlng:
            projection = MercatorProjection(projection_config)

        return cls(
            nodestore,
            projection=projection,
            mode=mode,
            keep_latlng=geometry_config.keep_latlng,
            debug=geometry_config.debug,
            show_errors=geometry_config.show_errors,
            srid=geometry_config.srid,
            srid_follows_projection=geometry_config.srid_follows_projection,
            geographic_srid=geometry_config.geographic_srid,
        )

    @classmethod
    def for_import(cls, nodestore: Nodestore, **kwargs) -> "GeomBuilder":
        """Builder preset used while importing a full history file"""
        return cls.from_config(nodestore, mode=BuilderMode.IMPORT, **kwargs)

    @classmethod
    def for_update(cls, nodestore: Nodestore, **kwargs) -> "GeomBuilder":
        """Builder preset used while applying history diffs"""
        return cls.from_config(nodestore, mode=BuilderMode.UPDATE, **kwargs)

    @property
    def is_update(self) -> bool:
        return self.mode is BuilderMode.UPDATE

    def is_keeping_latlng(self) -> bool:
        return self.keep_latlng

    def is_printing_debug_messages(self) -> bool:
        return self.debug

    def output_srid(self) -> int:
        """SRID stamped on produced geometries"""
        if self.keep_latlng and self.srid_follows_projection:
            return self.geographic_srid
        return self.srid

    def for_way(
        self,
        node_refs: Sequence[int],
        timestamp: datetime,
        looks_like_polygon: bool,
    ) -> GeometryResult:
        """
        Build the geometry of a way as it was at a given time

        Args:
            node_refs: Ordered node ids of the way, duplicates allowed
            timestamp: Point in time to resolve the nodes at
            looks_like_polygon: Tags say the way could be an area

        Returns:
            GeometryResult, truthy if a geometry was built
        """
        coords: List[Tuple[float, float]] = []
        skipped_nodes = 0
        skipped_projections = 0

        for node_id in node_refs:
            info = self.nodestore.lookup(node_id, timestamp)

            # a missing node can just be skipped
            if info is None:
                skipped_nodes += 1
                if self.debug or self.show_errors:
                    logger.debug(f"node #{node_id} not found at tstamp {timestamp}, skipping")
                continue

            lon, lat = info.lon, info.lat
            if self.debug:
                logger.debug(
                    f"node #{node_id} at tstamp {timestamp} references node at "
                    f"POINT({lon:.8f} {lat:.8f})"
                )

            if not self.keep_latlng:
                projected = self.projection(lon, lat)
                if projected is None:
                    skipped_projections += 1
                    if self.show_errors:
                        logger.warning(
                            f"node #{node_id} at POINT({lon:.8f} {lat:.8f}) "
                            f"could not be projected, skipping"
                        )
                    continue
                lon, lat = projected

            coords.append((lon, lat))

        # less than 2 coordinates can not form any geometry
        if len(coords) < 2:
            if self.show_errors:
                logger.warning(f"found only {len(coords)} valid coordinates, skipping way")
            return GeometryResult(
                status=GeometryStatus.MISSING_DATA,
                coordinate_count=len(coords),
                skipped_nodes=skipped_nodes,
                skipped_projections=skipped_projections,
            )

        try:
            # tags say it could be a polygon, the way is closed and has
            # at least 3 different coordinates
            if looks_like_polygon and coords[0] == coords[-1] and len(coords) >= 4:
                geom = Polygon(coords)
            else:
                geom = LineString(coords)
        except (ShapelyError, ValueError) as e:
            if self.show_errors:
                logger.warning(f"error creating geometry: {e}")
            return GeometryResult(
                status=GeometryStatus.ENGINE_FAILURE,
                coordinate_count=len(coords),
                skipped_nodes=skipped_nodes,
                skipped_projections=skipped_projections,
                error=str(e),
            )

        srid = self.output_srid()
        return GeometryResult(
            status=GeometryStatus.BUILT,
            geometry=shapely.set_srid(geom, srid),
            srid=srid,
            coordinate_count=len(coords),
            skipped_nodes=skipped_nodes,
            skipped_projections=skipped_projections,
        )
