from __future__ import annotations

from datetime import datetime, timezone

import pytest

from history_importer.config import ImporterConfig
from history_importer.importer import (
    HistoryHandler, NodeVersion, RelationMember, RelationVersion, WayVersion,
)


def _ts(day: int) -> datetime:
    return datetime(2012, 1, day, tzinfo=timezone.utc)


def _node(node_id: int, version: int, day: int, lon: float, lat: float) -> NodeVersion:
    return NodeVersion(id=node_id, version=version, timestamp=_ts(day), lon=lon, lat=lat)


def _stream() -> list:
    square = [1, 2, 3, 4, 1]
    return [
        _node(1, 1, 1, 0.0, 0.0),
        _node(2, 1, 1, 1.0, 0.0),
        _node(2, 2, 3, 2.0, 0.0),
        _node(3, 1, 1, 1.0, 1.0),
        _node(4, 1, 1, 0.0, 1.0),
        WayVersion(id=10, version=1, timestamp=_ts(2), nodes=square, tags={"building": "yes"}),
        WayVersion(id=10, version=2, timestamp=_ts(5), nodes=square, tags={"building": "house"}),
        WayVersion(id=10, version=3, timestamp=_ts(7), nodes=[], visible=False),
        WayVersion(id=11, version=1, timestamp=_ts(2), nodes=[1, 99], tags={"highway": "service"}),
        RelationVersion(id=20, version=1, timestamp=_ts(4), members=[RelationMember("way", 10, "outer")]),
    ]


def test_way_versions_are_split_at_node_changes(latlng_config) -> None:
    result = HistoryHandler(config=latlng_config).process(_stream())

    ways = [(w.id, w.version, w.minor, w.valid_from, w.valid_to) for w in result.ways]
    assert ways == [
        (10, 1, 0, _ts(2), _ts(3)),
        (10, 1, 1, _ts(3), _ts(5)),
        (10, 2, 0, _ts(5), _ts(7)),
        (10, 3, 0, _ts(7), None),
        (11, 1, 0, _ts(2), None),
    ]


def test_way_geometries_follow_their_nodes(latlng_config) -> None:
    result = HistoryHandler(config=latlng_config).process(_stream())
    first, second = result.ways[0], result.ways[1]

    assert first.is_polygon and first.status == "built"
    assert first.geometry.type == "Polygon"
    assert first.geometry.coordinates == [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.0, 0.0]]]
    assert second.geometry.coordinates[0][1] == [2.0, 0.0]
    assert first.srid == 900913


def test_latest_and_deleted_versions(latlng_config) -> None:
    result = HistoryHandler(config=latlng_config).process(_stream())
    by_key = {(w.id, w.version, w.minor): w for w in result.ways}

    assert [k for k, w in by_key.items() if w.is_latest] == [(10, 3, 0), (11, 1, 0)]

    deleted = by_key[(10, 3, 0)]
    assert not deleted.visible
    assert deleted.status == "deleted"
    assert deleted.geometry is None
    assert deleted.is_polygon  # shape type of the version before deletion


def test_ways_without_enough_nodes_have_no_geometry(latlng_config) -> None:
    result = HistoryHandler(config=latlng_config).process(_stream())
    service = [w for w in result.ways if w.id == 11][0]

    assert service.status == "missing_data"
    assert service.geometry is None
    assert service.srid is None


def test_stats(latlng_config) -> None:
    stats = HistoryHandler(config=latlng_config).process(_stream()).stats

    assert stats.nodes == 5
    assert stats.ways == 4
    assert stats.relations == 1
    assert stats.deleted_versions == 1
    assert stats.way_geometries_built == 3
    assert stats.way_polygons == 3
    assert stats.way_missing_data == 1
    assert stats.way_engine_failures == 0
    assert stats.skipped_node_refs == 1


def test_node_and_relation_records(latlng_config) -> None:
    result = HistoryHandler(config=latlng_config).process(_stream())

    node2 = [n for n in result.nodes if n.id == 2]
    assert [(n.version, n.valid_from, n.valid_to, n.is_latest) for n in node2] == [
        (1, _ts(1), _ts(3), False),
        (2, _ts(3), None, True),
    ]
    assert node2[0].geometry.coordinates == [1.0, 0.0]

    relation = result.relations[0]
    assert relation.id == 20 and relation.is_latest
    assert relation.members[0].ref == 10


def test_default_config_projects_to_mercator() -> None:
    result = HistoryHandler(config=ImporterConfig()).process(_stream())

    origin = result.nodes[0]
    assert origin.geometry.coordinates == pytest.approx([0.0, 0.0], abs=1e-6)
    assert origin.srid == 900913
    assert result.ways[0].geometry.coordinates[0][1][0] == pytest.approx(111319.49, abs=0.01)


def test_update_mode_is_reported() -> None:
    config = ImporterConfig(mode="update")
    handler = HistoryHandler(config=config)

    assert handler.builder.is_update
    assert handler.process([]).mode == "update"


def test_stream_must_be_sorted_by_kind(latlng_config) -> None:
    handler = HistoryHandler(config=latlng_config)
    handler.way(WayVersion(id=1, version=1, timestamp=_ts(1), nodes=[1, 2]))

    with pytest.raises(ValueError, match="out of order"):
        handler.node(_node(1, 1, 1, 0.0, 0.0))


def test_unsupported_entities_are_rejected(latlng_config) -> None:
    with pytest.raises(TypeError):
        HistoryHandler(config=latlng_config).apply("not an entity")


def test_minor_intervals_ignore_changes_outside_the_version(latlng_config) -> None:
    handler = HistoryHandler(config=latlng_config)
    for node in _stream()[:5]:
        handler.node(node)
    handler.flush()

    way = WayVersion(id=10, version=1, timestamp=_ts(4), nodes=[1, 2, 3])

    assert handler.minor_intervals(way, _ts(4), None) == [(_ts(4), None)]
    assert handler.minor_intervals(way, _ts(2), _ts(3)) == [(_ts(2), _ts(3))]
    assert handler.minor_intervals(way, _ts(2), None) == [(_ts(2), _ts(3)), (_ts(3), None)]


def test_deleted_way_keeps_the_shape_that_was_built(latlng_config) -> None:
    # tagged as an area and closed, but too short for a ring
    stream = [
        _node(1, 1, 1, 0.0, 0.0),
        _node(2, 1, 1, 1.0, 0.0),
        WayVersion(id=10, version=1, timestamp=_ts(2), nodes=[1, 2, 1], tags={"building": "yes"}),
        WayVersion(id=10, version=2, timestamp=_ts(4), nodes=[], visible=False),
    ]

    result = HistoryHandler(config=latlng_config).process(stream)
    built, deleted = result.ways

    assert built.geometry.type == "LineString"
    assert not built.is_polygon
    assert deleted.status == "deleted"
    assert not deleted.is_polygon


def test_deleted_way_without_previous_version_is_not_a_polygon(latlng_config) -> None:
    stream = [
        _node(1, 1, 1, 0.0, 0.0),
        WayVersion(id=10, version=1, timestamp=_ts(2), nodes=[1, 2, 3, 1], tags={"building": "yes"}),
        WayVersion(id=11, version=2, timestamp=_ts(4), nodes=[], visible=False, tags={"building": "yes"}),
    ]

    result = HistoryHandler(config=latlng_config).process(stream)

    assert [w.is_polygon for w in result.ways] == [False, False]
