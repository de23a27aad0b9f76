"""Tests for the service-area geofence."""
import json
import os

import pytest

from app.geo import ServiceArea

SQUARE = [[[80.0, 13.0], [80.1, 13.0], [80.1, 13.1], [80.0, 13.1], [80.0, 13.0]]]
FAR_SQUARE = [[[77.5, 12.9], [77.7, 12.9], [77.7, 13.1], [77.5, 13.1], [77.5, 12.9]]]


def feature(coords, kind="Polygon"):
    return {"type": "Feature", "properties": {}, "geometry": {"type": kind, "coordinates": coords}}


def test_bare_polygon_contains_inside_point():
    area = ServiceArea.from_geojson({"type": "Polygon", "coordinates": SQUARE})
    assert area.contains(13.05, 80.05)
    assert not area.contains(13.2, 80.05)


def test_coordinates_are_lng_lat():
    # A point with lat/lng swapped must not match
    area = ServiceArea.from_geojson({"type": "Polygon", "coordinates": SQUARE})
    assert not area.contains(80.05, 13.05)


def test_multipolygon():
    area = ServiceArea.from_geojson(
        {"type": "MultiPolygon", "coordinates": [SQUARE, FAR_SQUARE]}
    )
    assert len(area) == 2
    assert area.contains(13.05, 80.05)
    assert area.contains(13.0, 77.6)


def test_single_feature():
    area = ServiceArea.from_geojson(feature(SQUARE))
    assert area.contains(13.05, 80.05)


def test_feature_collection_matches_any_polygon():
    area = ServiceArea.from_geojson(
        {"type": "FeatureCollection", "features": [feature(FAR_SQUARE), feature(SQUARE)]}
    )
    assert area.contains(13.05, 80.05)
    assert area.contains(13.0, 77.6)


def test_feature_collection_point_outside_all():
    area = ServiceArea.from_geojson(
        {"type": "FeatureCollection", "features": [feature(FAR_SQUARE), feature(SQUARE)]}
    )
    assert not area.contains(19.07, 72.87)


def test_feature_collection_ignores_non_polygon_features():
    area = ServiceArea.from_geojson(
        {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "geometry": {"type": "Point", "coordinates": [80.05, 13.05]}},
                feature(SQUARE),
            ],
        }
    )
    assert len(area) == 1
    assert area.contains(13.05, 80.05)


def test_polygon_hole_is_outside():
    hole = [[80.04, 13.04], [80.06, 13.04], [80.06, 13.06], [80.04, 13.06], [80.04, 13.04]]
    area = ServiceArea.from_geojson({"type": "Polygon", "coordinates": SQUARE + [hole]})
    assert not area.contains(13.05, 80.05)
    assert area.contains(13.02, 80.02)


@pytest.mark.parametrize(
    "data",
    [
        None,
        [],
        "Polygon",
        {},
        {"type": "Point", "coordinates": [80.05, 13.05]},
        {"type": "GeometryCollection", "geometries": []},
        {"type": "Polygon"},
        {"type": "Polygon", "coordinates": [[[80.0, 13.0], [80.1]]]},
        {"type": "Polygon", "coordinates": "not-a-list"},
        {"type": "Feature", "geometry": None},
        {"type": "FeatureCollection", "features": None},
        {"type": "FeatureCollection", "features": ["junk", 42]},
    ],
)
def test_malformed_shapes_fail_closed(data):
    area = ServiceArea.from_geojson(data)
    assert not area
    assert not area.contains(13.05, 80.05)


def test_non_finite_point_is_outside():
    area = ServiceArea.from_geojson({"type": "Polygon", "coordinates": SQUARE})
    assert not area.contains(float("nan"), 80.05)


def test_area_is_immutable():
    area = ServiceArea.from_geojson({"type": "Polygon", "coordinates": SQUARE})
    with pytest.raises(AttributeError):
        area._polygons = ()


def test_load_missing_file_gives_empty_area(tmp_path):
    area = ServiceArea.load(str(tmp_path / "nope.geojson"))
    assert len(area) == 0
    assert not area.contains(13.05, 80.05)


def test_load_invalid_json_gives_empty_area(tmp_path):
    path = tmp_path / "broken.geojson"
    path.write_text("{not json", encoding="utf-8")
    assert not ServiceArea.load(str(path))


def test_load_from_file(tmp_path):
    path = tmp_path / "area.geojson"
    path.write_text(json.dumps(feature(SQUARE)), encoding="utf-8")
    area = ServiceArea.load(str(path))
    assert area.contains(13.05, 80.05)


def test_bundled_service_area():
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    area = ServiceArea.load(os.path.join(root, "geo", "service-area.geojson"))
    assert len(area) == 2
    assert area.contains(13.04, 80.235)  # T. Nagar
    assert not area.contains(12.97, 77.59)  # Bengaluru


def test_concave_polygon_notch_is_outside():
    # L-shape: the missing top-right quadrant is not served
    l_shape = [[
        [80.0, 13.0], [80.2, 13.0], [80.2, 13.1], [80.1, 13.1],
        [80.1, 13.2], [80.0, 13.2], [80.0, 13.0],
    ]]
    area = ServiceArea.from_geojson({"type": "Polygon", "coordinates": l_shape})
    assert area.contains(13.05, 80.15)
    assert area.contains(13.15, 80.05)
    assert not area.contains(13.15, 80.15)


def test_polygons_keep_their_holes():
    hole = [[80.04, 13.04], [80.06, 13.04], [80.06, 13.06], [80.04, 13.06], [80.04, 13.04]]
    area = ServiceArea.from_geojson({"type": "Polygon", "coordinates": SQUARE + [hole]})
    (polygon,) = area.polygons
    assert len(polygon.interiors) == 1
    assert polygon.exterior.coords[0] == (80.0, 13.0)


def test_degenerate_ring_is_skipped():
    collapsed = [[[80.0, 13.0], [80.1, 13.1], [80.0, 13.0]]]
    area = ServiceArea.from_geojson(
        {"type": "FeatureCollection", "features": [feature(collapsed), feature(SQUARE)]}
    )
    assert len(area) == 1
    assert area.contains(13.05, 80.05)
