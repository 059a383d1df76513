"""
OSM history import core

Components:
- EntityTracker: previous/current/next window over a versioned entity stream
- GeomBuilder: way geometries at historical timestamps
- MemoryNodestore: node coordinates over time
- MercatorProjection: lon/lat to spherical mercator
- PolygonClassifier: area detection from tags
- HistoryParser: OSM-JSON history documents
- HistoryHandler: drives a history stream through all of the above
"""

from .models import NodeVersion, WayVersion, RelationVersion, RelationMember
from .entity_tracker import EntityTracker, ProtocolViolationError, EmptySlotError
from .nodestore import MemoryNodestore, NodeInfo
from .projection import MercatorProjection, SRID_MERCATOR, SRID_WGS84
from .polygon_tags import PolygonClassifier
from .geom_builder import GeomBuilder, GeometryResult, GeometryStatus, BuilderMode
from .parser import HistoryParser
from .handler import HistoryHandler

__all__ = [
    "NodeVersion",
    "WayVersion",
    "RelationVersion",
    "RelationMember",
    "EntityTracker",
    "ProtocolViolationError",
    "EmptySlotError",
    "MemoryNodestore",
    "NodeInfo",
    "MercatorProjection",
    "SRID_MERCATOR",
    "SRID_WGS84",
    "PolygonClassifier",
    "GeomBuilder",
    "GeometryResult",
    "GeometryStatus",
    "BuilderMode",
    "HistoryParser",
    "HistoryHandler",
]
