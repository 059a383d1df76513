"""
Pydantic models for importer output

Every record describes one entity version together with the time interval
during which it was valid.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry


# ============================================================
# GeoJSON Types
# ============================================================

class GeoJSONPoint(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]  # [x, y]


class GeoJSONLineString(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: List[List[float]]  # [[x, y], ...]


class GeoJSONPolygon(BaseModel):
    type: Literal["Polygon"] = "Polygon"
    coordinates: List[List[List[float]]]  # [[[x, y], ...]], exterior ring only


GeoJSONGeometry = Union[GeoJSONPoint, GeoJSONLineString, GeoJSONPolygon]


def to_geojson(geom: BaseGeometry) -> GeoJSONGeometry:
    """Convert a shapely point, line string or polygon into a GeoJSON model"""
    data = mapping(geom)
    if data["type"] == "Point":
        return GeoJSONPoint(coordinates=list(data["coordinates"]))
    if data["type"] == "LineString":
        return GeoJSONLineString(coordinates=[list(c) for c in data["coordinates"]])
    if data["type"] == "Polygon":
        return GeoJSONPolygon(coordinates=[[list(c) for c in ring] for ring in data["coordinates"]])
    raise ValueError(f"unsupported geometry type: {data['type']}")


# ============================================================
# Entity Records
# ============================================================

class NodeRecord(BaseModel):
    id: int
    version: int
    visible: bool
    valid_from: datetime
    valid_to: Optional[datetime] = None  # None = still valid
    is_latest: bool
    tags: Dict[str, str] = Field(default_factory=dict)
    srid: Optional[int] = None
    geometry: Optional[GeoJSONPoint] = None


class WayRecord(BaseModel):
    id: int
    version: int
    minor: int = 0  # Counts geometry changes caused by moved nodes
    visible: bool
    valid_from: datetime
    valid_to: Optional[datetime] = None
    is_latest: bool
    is_polygon: bool = False
    tags: Dict[str, str] = Field(default_factory=dict)
    nodes: List[int] = Field(default_factory=list)
    status: str = "built"
    srid: Optional[int] = None
    geometry: Optional[Union[GeoJSONLineString, GeoJSONPolygon]] = None


class RelationMemberRecord(BaseModel):
    type: str
    ref: int
    role: str = ""


class RelationRecord(BaseModel):
    id: int
    version: int
    visible: bool
    valid_from: datetime
    valid_to: Optional[datetime] = None
    is_latest: bool
    tags: Dict[str, str] = Field(default_factory=dict)
    members: List[RelationMemberRecord] = Field(default_factory=list)


# ============================================================
# Import Result
# ============================================================

class ImportStats(BaseModel):
    nodes: int = 0
    ways: int = 0
    relations: int = 0
    deleted_versions: int = 0
    way_geometries_built: int = 0
    way_polygons: int = 0
    way_missing_data: int = 0
    way_engine_failures: int = 0
    skipped_node_refs: int = 0
    skipped_projections: int = 0


class ImportResult(BaseModel):
    mode: str = "import"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stats: ImportStats = Field(default_factory=ImportStats)
    nodes: List[NodeRecord] = Field(default_factory=list)
    ways: List[WayRecord] = Field(default_factory=list)
    relations: List[RelationRecord] = Field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {"mode": self.mode, **self.stats.model_dump()}
