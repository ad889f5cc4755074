# io/geojson.py
"""
Provider geometry payloads -> domain geometry.

Providers send GeoJSON-like objects whose "type" decides the shape of
"coordinates" ([lon, lat] pairs, or lists of them). Transit legs instead carry
a "passShape" string of space separated "lon,lat" pairs.
"""

import logging
import re
from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from rendezvous.domain.entities.geography import Coordinate, Geometry, LineString, MultiLineString

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")


def _to_coords(pairs: list[list[float]]) -> tuple[Coordinate, ...]:
    # [lon, lat, (alt)] -> Coordinate(lat, lon); short pairs are skipped
    return tuple(Coordinate(lat=p[1], lon=p[0]) for p in pairs if len(p) >= 2)


class LineStringPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")
    type: Literal["LineString"]
    coordinates: list[list[float]] = Field(default_factory=list)

    def to_geometry(self) -> LineString:
        return LineString(_to_coords(self.coordinates))


class MultiLineStringPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")
    type: Literal["MultiLineString"]
    coordinates: list[list[list[float]]] = Field(default_factory=list)

    def to_geometry(self) -> MultiLineString:
        return MultiLineString(tuple(_to_coords(line) for line in self.coordinates))


GeometryPayload = Annotated[
    LineStringPayload | MultiLineStringPayload, Field(discriminator="type")
]
_geometry_adapter = TypeAdapter(GeometryPayload)

_KNOWN_TYPES = {"LineString", "MultiLineString"}


def parse_geometry(obj: Mapping[str, Any] | None) -> Geometry:
    """Unknown geometry types (Point, Polygon, missing) become an empty LineString."""
    if not obj or obj.get("type") not in _KNOWN_TYPES:
        return LineString()
    return _geometry_adapter.validate_python(obj).to_geometry()


class FeaturePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")  # provider properties are not used
    geometry: dict[str, Any] | None = None


def parse_feature_collection(obj: Mapping[str, Any]) -> list[Geometry]:
    """Line geometries of a FeatureCollection, in feature order."""
    out: list[Geometry] = []
    for raw in obj.get("features") or ():
        feature = FeaturePayload.model_validate(raw)
        geom = parse_geometry(feature.geometry)
        if isinstance(geom, LineString) and not geom.coords:
            continue
        out.append(geom)
    return out


def parse_pass_shape(shape: str | Mapping[str, Any] | None) -> list[Coordinate]:
    """
    "127.1,37.5 127.2,37.6" -> [Coordinate(37.5, 127.1), Coordinate(37.6, 127.2)].
    Also accepts {"linestring": "..."}; malformed and zero pairs are dropped.
    """
    if isinstance(shape, Mapping):
        shape = shape.get("linestring")
    if not isinstance(shape, str) or not shape.strip():
        return []

    out: list[Coordinate] = []
    for token in _WS_RE.split(shape.strip()):
        parts = token.split(",")
        if len(parts) != 2:
            continue
        try:
            lon, lat = float(parts[0]), float(parts[1])
        except ValueError:
            logger.debug("skipping malformed shape pair %r", token)
            continue
        if lon != 0.0 and lat != 0.0:
            out.append(Coordinate(lat=lat, lon=lon))
    return out
