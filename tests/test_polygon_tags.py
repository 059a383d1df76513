from __future__ import annotations

from history_importer.config import PolygonTagConfig
from history_importer.importer import PolygonClassifier


def test_area_keys_make_polygons() -> None:
    classifier = PolygonClassifier()

    assert classifier.looks_like_polygon({"building": "yes"})
    assert classifier.looks_like_polygon({"landuse": "residential", "name": "Estate"})
    assert classifier.looks_like_polygon({"area": "yes", "highway": "footway"})


def test_linear_features_are_lines() -> None:
    classifier = PolygonClassifier()

    assert not classifier.looks_like_polygon({})
    assert not classifier.looks_like_polygon({"highway": "residential"})
    assert not classifier.looks_like_polygon({"waterway": "river"})
    assert not classifier.looks_like_polygon({"natural": "coastline"})


def test_area_no_wins() -> None:
    classifier = PolygonClassifier()

    assert not classifier.looks_like_polygon({"building": "yes", "area": "no"})
    assert not classifier.looks_like_polygon({"building": "no"})


def test_area_values() -> None:
    classifier = PolygonClassifier()

    assert classifier.looks_like_polygon({"natural": "water"})
    assert classifier.looks_like_polygon({"waterway": "riverbank"})
    assert classifier.looks_like_polygon({"highway": "pedestrian"})


def test_custom_tag_lists() -> None:
    classifier = PolygonClassifier(PolygonTagConfig(area_keys=["piste:type"], area_values={}))

    assert classifier.looks_like_polygon({"piste:type": "downhill"})
    assert not classifier.looks_like_polygon({"building": "yes"})
