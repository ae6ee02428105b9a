"""Random geometry generation within coordinate system bounds.

Provides the coordinate system registry (bounds and selector parsing) and
random Point, LineString and Polygon generators built on numpy and shapely.
"""

from collections import namedtuple
from enum import Enum

import numpy as np
from shapely.geometry import LineString, Point, Polygon

# --- ERRORS ---


class InvalidArgument(ValueError):
    """Raised for any user-supplied value the generator cannot accept."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)

    def __str__(self):
        return f"Invalid argument: {self.message}"


# --- COORDINATE SYSTEMS ---

Bounds = namedtuple("Bounds", ["min_lon", "max_lon", "min_lat", "max_lat"])

WGS84_BOUNDS = Bounds(min_lon=-180.0, max_lon=180.0, min_lat=-90.0, max_lat=90.0)
# Web Mercator is undefined beyond this latitude
WEB_MERCATOR_BOUNDS = Bounds(
    min_lon=-180.0, max_lon=180.0, min_lat=-85.05112878, max_lat=85.05112878
)

LINESTRING_POINTS = (2, 10)
POLYGON_POINTS = (3, 10)


class CoordinateSystem(Enum):
    WGS84 = 4326
    WEB_MERCATOR = 3857

    @property
    def epsg(self):
        return self.value

    def bounds(self):
        return _BOUNDS[self]

    @classmethod
    def parse(cls, text):
        """Resolve a coordinate system selector, ignoring case.

        Args:
            text: One of "wgs84", "4326", "webmercator", "web_mercator", "3857"

        Returns:
            The matching CoordinateSystem member

        Raises:
            InvalidArgument: if the text matches no known alias
        """
        system = _ALIASES.get(str(text).strip().lower())
        if system is None:
            raise InvalidArgument(f"Invalid coordinate system: {text}")
        return system


_BOUNDS = {
    CoordinateSystem.WGS84: WGS84_BOUNDS,
    CoordinateSystem.WEB_MERCATOR: WEB_MERCATOR_BOUNDS,
}

_ALIASES = {
    "wgs84": CoordinateSystem.WGS84,
    "4326": CoordinateSystem.WGS84,
    "webmercator": CoordinateSystem.WEB_MERCATOR,
    "web_mercator": CoordinateSystem.WEB_MERCATOR,
    "3857": CoordinateSystem.WEB_MERCATOR,
}


class GeometryKind(Enum):
    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"
    ALL = "All"

    @classmethod
    def parse(cls, text):
        for kind in cls:
            if kind.value.lower() == str(text).strip().lower():
                return kind
        raise InvalidArgument(
            f"Geometry type must be one of: Point, LineString, Polygon, All (got {text})"
        )


CONCRETE_KINDS = (GeometryKind.POINT, GeometryKind.LINESTRING, GeometryKind.POLYGON)

# --- RANDOM GEOMETRY ---

_default_rng = np.random.default_rng()


def _resolve_rng(rng):
    return _default_rng if rng is None else rng


def _uniform(rng, low, high, count):
    values = rng.uniform(low, high, count)
    # uniform() can round up to the upper bound
    return np.minimum(values, np.nextafter(high, low))


def random_coordinates(system, count, rng=None):
    """Draw ``count`` independent [lon, lat] pairs inside the system bounds.

    Returns a numpy array of shape (count, 2).
    """
    rng = _resolve_rng(rng)
    bounds = system.bounds()
    lons = _uniform(rng, bounds.min_lon, bounds.max_lon, count)
    lats = _uniform(rng, bounds.min_lat, bounds.max_lat, count)
    return np.column_stack((lons, lats))


def random_point(system, rng=None):
    lon, lat = random_coordinates(system, 1, rng)[0]
    return Point(lon, lat)


def random_linestring(system, rng=None):
    rng = _resolve_rng(rng)
    num_points = int(rng.integers(*LINESTRING_POINTS))
    return LineString(random_coordinates(system, num_points, rng))


def random_polygon(system, rng=None):
    """Random single-ring polygon; the ring is closed with a copy of its first point."""
    rng = _resolve_rng(rng)
    num_points = int(rng.integers(*POLYGON_POINTS))
    coords = random_coordinates(system, num_points, rng)
    ring = np.vstack((coords, coords[:1]))
    return Polygon(ring)


_GENERATORS = {
    GeometryKind.POINT: random_point,
    GeometryKind.LINESTRING: random_linestring,
    GeometryKind.POLYGON: random_polygon,
}


def random_geometry(kind, system, rng=None):
    """Generate one geometry of ``kind``; ALL picks a kind uniformly per call."""
    rng = _resolve_rng(rng)
    if kind is GeometryKind.ALL:
        kind = CONCRETE_KINDS[int(rng.integers(0, len(CONCRETE_KINDS)))]
    return _GENERATORS[kind](system, rng)
