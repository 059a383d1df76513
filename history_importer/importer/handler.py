"""
History stream handler

Drives the import of a sorted OSM history stream (all nodes, then all
ways, then all relations; each ordered by id and version):

  1. Every entity is fed into the tracker of its kind
  2. The tracked current version is emitted once its successor is known,
     which gives the end of its validity interval
  3. Nodes are kept in the node store, so ways can later be built as
     they were at any point in time
  4. Way versions are split into minor versions at every change of one of
     their nodes, and a geometry is built for each of them
"""

from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple, Union

from loguru import logger

from ..config import ImporterConfig, get_config
from ..models import (
    ImportResult, NodeRecord, WayRecord, RelationRecord, RelationMemberRecord,
    GeoJSONPoint, to_geojson,
)
from .entity_tracker import EntityTracker
from .geom_builder import BuilderMode, GeomBuilder, GeometryStatus
from .models import NodeVersion, WayVersion, RelationVersion
from .nodestore import MemoryNodestore
from .polygon_tags import PolygonClassifier

Entity = Union[NodeVersion, WayVersion, RelationVersion]
Interval = Tuple[datetime, Optional[datetime]]

_NODES, _WAYS, _RELATIONS = 0, 1, 2
_STAGE_NAMES = {_NODES: "nodes", _WAYS: "ways", _RELATIONS: "relations"}


class HistoryHandler:
    """
    Turns a history stream into node, way and relation records

    Usage:
        handler = HistoryHandler()
        result = handler.process(HistoryParser.load("history.json"))
    """

    def __init__(
        self,
        config: Optional[ImporterConfig] = None,
        nodestore: Optional[MemoryNodestore] = None,
        builder: Optional[GeomBuilder] = None,
        classifier: Optional[PolygonClassifier] = None,
    ):
        self.config = config or get_config()

        if nodestore is None:
            nodestore = builder.nodestore if builder is not None else MemoryNodestore()
        self.nodestore = nodestore

        self.builder = builder or GeomBuilder.from_config(
            self.nodestore,
            mode=BuilderMode(self.config.mode),
            geometry_config=self.config.geometry,
            projection_config=self.config.projection,
        )
        self.classifier = classifier or PolygonClassifier(self.config.polygon_tags)

        self.node_tracker: EntityTracker[NodeVersion] = EntityTracker()
        self.way_tracker: EntityTracker[WayVersion] = EntityTracker()
        self.relation_tracker: EntityTracker[RelationVersion] = EntityTracker()

        self.result = ImportResult(mode=self.builder.mode.value)
        self._stage = _NODES

        # (id, version, is_polygon) of the last way record built
        self._last_way_shape: Optional[Tuple[int, int, bool]] = None

    # ============================================================
    # Stream input
    # ============================================================

    def node(self, node: NodeVersion):
        self._enter_stage(_NODES)
        self.nodestore.record_node(node)
        self._advance(self.node_tracker, node, self._emit_node)

    def way(self, way: WayVersion):
        self._enter_stage(_WAYS)
        self._advance(self.way_tracker, way, self._emit_way)

    def relation(self, relation: RelationVersion):
        self._enter_stage(_RELATIONS)
        self._advance(self.relation_tracker, relation, self._emit_relation)

    def apply(self, entity: Entity):
        """Dispatch one entity version to the handler of its kind"""
        if isinstance(entity, NodeVersion):
            self.node(entity)
        elif isinstance(entity, WayVersion):
            self.way(entity)
        elif isinstance(entity, RelationVersion):
            self.relation(entity)
        else:
            raise TypeError(f"unsupported entity type: {type(entity).__name__}")

    def flush(self):
        """Emit the last tracked version of every kind"""
        self._flush_tracker(self.node_tracker, self._emit_node)
        self._flush_tracker(self.way_tracker, self._emit_way)
        self._flush_tracker(self.relation_tracker, self._emit_relation)

    def process(self, entities: Iterable[Entity]) -> ImportResult:
        """
        Run a complete history stream through the handler

        Args:
            entities: Entity versions in stream order

        Returns:
            ImportResult with all records and counters
        """
        for entity in entities:
            self.apply(entity)
        self.flush()

        stats = self.result.stats
        logger.info(
            f"Import finished: {stats.nodes} node versions, {stats.ways} way versions, "
            f"{stats.relations} relation versions, {stats.way_geometries_built} way geometries "
            f"({stats.way_polygons} polygons), {stats.way_missing_data} without data, "
            f"{stats.way_engine_failures} rejected"
        )
        return self.result

    # ============================================================
    # Tracker plumbing
    # ============================================================

    def _enter_stage(self, stage: int):
        if stage == self._stage:
            return
        if stage < self._stage:
            raise ValueError(
                f"entity stream out of order: {_STAGE_NAMES[stage]} after {_STAGE_NAMES[self._stage]}"
            )

        if self._stage == _NODES:
            self._flush_tracker(self.node_tracker, self._emit_node)
            logger.info(f"Stored {self.nodestore.version_count} versions of {len(self.nodestore)} nodes")
        if self._stage <= _WAYS < stage:
            self._flush_tracker(self.way_tracker, self._emit_way)
        self._stage = stage

    @staticmethod
    def _advance(tracker: EntityTracker, entity: Entity, emit: Callable[[EntityTracker], None]):
        tracker.feed(entity)
        if tracker.has_current():
            emit(tracker)
        tracker.swap()

    @staticmethod
    def _flush_tracker(tracker: EntityTracker, emit: Callable[[EntityTracker], None]):
        if tracker.has_current():
            emit(tracker)
            tracker.swap()

    @staticmethod
    def _interval(tracker: EntityTracker) -> Tuple[datetime, Optional[datetime], bool]:
        """Validity interval of the current version and whether it is the latest"""
        current = tracker.current()
        if tracker.next_is_same_entity():
            return current.timestamp, tracker.next().timestamp, False
        return current.timestamp, None, True

    # ============================================================
    # Record emission
    # ============================================================

    def _emit_node(self, tracker: EntityTracker[NodeVersion]):
        node = tracker.current()
        valid_from, valid_to, is_latest = self._interval(tracker)
        self.result.stats.nodes += 1

        geometry = None
        srid = None
        if node.visible:
            coords = (node.lon, node.lat)
            if not self.builder.is_keeping_latlng():
                coords = self.builder.projection(node.lon, node.lat)
            if coords is None:
                self.result.stats.skipped_projections += 1
                if self.builder.show_errors:
                    logger.warning(f"node #{node.id} v{node.version} could not be projected")
            else:
                geometry = GeoJSONPoint(coordinates=list(coords))
                srid = self.builder.output_srid()
        else:
            self.result.stats.deleted_versions += 1

        self.result.nodes.append(NodeRecord(
            id=node.id,
            version=node.version,
            visible=node.visible,
            valid_from=valid_from,
            valid_to=valid_to,
            is_latest=is_latest,
            tags=node.tags,
            srid=srid,
            geometry=geometry,
        ))

    def _emit_way(self, tracker: EntityTracker[WayVersion]):
        way = tracker.current()
        valid_from, valid_to, is_latest = self._interval(tracker)
        stats = self.result.stats
        stats.ways += 1

        if not way.visible:
            stats.deleted_versions += 1
            # a deleted version keeps the shape type of the version before
            was_polygon = False
            if tracker.previous_is_same_entity() and self._last_way_shape is not None:
                previous = tracker.previous()
                shape_id, shape_version, shape_is_polygon = self._last_way_shape
                if (shape_id, shape_version) == (previous.id, previous.version):
                    was_polygon = shape_is_polygon
            self._last_way_shape = (way.id, way.version, False)
            self.result.ways.append(WayRecord(
                id=way.id,
                version=way.version,
                visible=False,
                valid_from=valid_from,
                valid_to=valid_to,
                is_latest=is_latest,
                is_polygon=was_polygon,
                tags=way.tags,
                status="deleted",
            ))
            return

        looks_like_polygon = self.classifier.looks_like_polygon(way.tags)
        intervals = self.minor_intervals(way, valid_from, valid_to)
        if self.builder.debug:
            logger.debug(f"way #{way.id} v{way.version} has {len(intervals)} minor versions")

        for minor, (start, end) in enumerate(intervals):
            result = self.builder.for_way(way.nodes, start, looks_like_polygon)
            stats.skipped_node_refs += result.skipped_nodes
            stats.skipped_projections += result.skipped_projections

            geometry = None
            if result:
                stats.way_geometries_built += 1
                if result.is_polygon:
                    stats.way_polygons += 1
                geometry = to_geojson(result.geometry)
            elif result.status is GeometryStatus.MISSING_DATA:
                stats.way_missing_data += 1
            else:
                stats.way_engine_failures += 1

            self.result.ways.append(WayRecord(
                id=way.id,
                version=way.version,
                minor=minor,
                visible=True,
                valid_from=start,
                valid_to=end,
                is_latest=is_latest and minor == len(intervals) - 1,
                is_polygon=result.is_polygon,
                tags=way.tags,
                nodes=way.nodes,
                status=result.status.value,
                srid=result.srid,
                geometry=geometry,
            ))
            self._last_way_shape = (way.id, way.version, result.is_polygon)

    def _emit_relation(self, tracker: EntityTracker[RelationVersion]):
        relation = tracker.current()
        valid_from, valid_to, is_latest = self._interval(tracker)
        self.result.stats.relations += 1
        if not relation.visible:
            self.result.stats.deleted_versions += 1

        self.result.relations.append(RelationRecord(
            id=relation.id,
            version=relation.version,
            visible=relation.visible,
            valid_from=valid_from,
            valid_to=valid_to,
            is_latest=is_latest,
            tags=relation.tags,
            members=[
                RelationMemberRecord(type=m.type, ref=m.ref, role=m.role)
                for m in relation.members
            ],
        ))

    def minor_intervals(
        self,
        way: WayVersion,
        valid_from: datetime,
        valid_to: Optional[datetime],
    ) -> List[Interval]:
        """
        Split the validity interval of a way version at every change of one
        of its nodes

        Args:
            way: Way version
            valid_from: Start of the validity of the version
            valid_to: End of the validity, None if still valid

        Returns:
            Consecutive (start, end) intervals covering [valid_from, valid_to)
        """
        stamps = {valid_from}
        for node_id in set(way.nodes):
            for stamp in self.nodestore.timestamps(node_id):
                if stamp > valid_from and (valid_to is None or stamp < valid_to):
                    stamps.add(stamp)

        ordered = sorted(stamps)
        ends: List[Optional[datetime]] = list(ordered[1:])
        ends.append(valid_to)
        return list(zip(ordered, ends))
