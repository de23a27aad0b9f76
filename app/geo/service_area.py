"""Service-area geofence built from a GeoJSON document."""
import json
import logging
import math
import os

from shapely.errors import ShapelyError
from shapely.geometry import Point, Polygon
from shapely.prepared import prep

logger = logging.getLogger(__name__)

POLYGON_TYPES = {"Polygon", "MultiPolygon"}


def _ring(coords):
    """Convert a GeoJSON linear ring into a tuple of (lng, lat) floats."""
    ring = tuple((float(pt[0]), float(pt[1])) for pt in coords)
    if len(ring) < 3:
        raise ValueError("ring needs at least 3 positions")
    return ring


def _from_geometry(geometry):
    if not isinstance(geometry, dict) or geometry.get("type") not in POLYGON_TYPES:
        return []
    coords = geometry.get("coordinates")
    if geometry["type"] == "Polygon":
        coords = [coords]
    polygons = []
    for rings in coords:
        if not rings:
            continue
        shell, *holes = [_ring(r) for r in rings]
        polygons.append(Polygon(shell, holes))
    return polygons


def normalize_polygons(data):
    """Flatten any accepted GeoJSON shape into a list of shapely polygons.

    Accepts a bare Polygon/MultiPolygon, a Feature, or a FeatureCollection.
    GeoJSON positions are (lng, lat), so polygon x is longitude.
    Unsupported or malformed input yields no polygons.
    """
    if not isinstance(data, dict):
        return []

    kind = data.get("type")
    if kind in POLYGON_TYPES:
        geometries = [data]
    elif kind == "Feature":
        geometries = [data.get("geometry")]
    elif kind == "FeatureCollection":
        features = data.get("features")
        if not isinstance(features, list):
            return []
        geometries = [f.get("geometry") for f in features if isinstance(f, dict)]
    else:
        return []

    polygons = []
    for geometry in geometries:
        try:
            polygons.extend(_from_geometry(geometry))
        except (TypeError, ValueError, IndexError, KeyError, ShapelyError):
            logger.warning("Skipping malformed service-area geometry")
    return polygons


class ServiceArea:
    """Immutable set of delivery polygons.

    Built once at startup and handed to the admission policy. An empty area
    contains no points. Points exactly on an edge count as outside.
    """

    __slots__ = ("_polygons", "_prepared")

    def __init__(self, polygons=()):
        polygons = tuple(polygons)
        object.__setattr__(self, "_polygons", polygons)
        object.__setattr__(self, "_prepared", tuple(prep(p) for p in polygons))

    def __setattr__(self, name, value):
        raise AttributeError("ServiceArea is immutable")

    @classmethod
    def from_geojson(cls, data):
        return cls(normalize_polygons(data))

    @classmethod
    def load(cls, path):
        """Read a GeoJSON file. Missing or unreadable files give an empty area."""
        if not path or not os.path.exists(path):
            logger.warning("Service area file not found: %r", path)
            return cls()
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError):
            logger.exception("Could not read service area file %s", path)
            return cls()
        area = cls.from_geojson(data)
        logger.info("Loaded %d service-area polygon(s) from %s", len(area), path)
        return area

    @property
    def polygons(self):
        return self._polygons

    def __len__(self):
        return len(self._polygons)

    def __bool__(self):
        return bool(self._polygons)

    def contains(self, lat, lng):
        """Return True if (lat, lng) falls inside any polygon."""
        lat, lng = float(lat), float(lng)
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        point = Point(lng, lat)
        return any(p.contains(point) for p in self._prepared)

    def __repr__(self):
        return f"<ServiceArea polygons={len(self._polygons)}>"
