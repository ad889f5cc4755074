from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, assert_never

if TYPE_CHECKING:
    from rendezvous.domain.entities.traveler import TravelMode


# Core geometry types used by mechanics
@dataclass(frozen=True)
class Coordinate:
    lat: float  # WGS-84 degrees
    lon: float

    @property
    def is_unset(self) -> bool:
        # providers encode "unknown" as (0, 0)
        return self.lat == 0.0 or self.lon == 0.0


@dataclass(frozen=True)
class NamedWaypoint:
    """A coordinate with a human name, e.g. a transit stop."""

    name: str
    coord: Coordinate


# ------------- Geometry variant --------------------


@dataclass(frozen=True)
class LineString:
    coords: tuple[Coordinate, ...] = ()


@dataclass(frozen=True)
class MultiLineString:
    lines: tuple[tuple[Coordinate, ...], ...] = ()


Geometry = LineString | MultiLineString


def flatten_geometry(geom: Geometry) -> list[Coordinate]:
    match geom:
        case LineString(coords=coords):
            return list(coords)
        case MultiLineString(lines=lines):
            return [c for line in lines for c in line]
        case _:
            assert_never(geom)


def flatten_geometries(geoms: Iterable[Geometry]) -> list[Coordinate]:
    out: list[Coordinate] = []
    for g in geoms:
        out.extend(flatten_geometry(g))
    return out


# ------------- Routes --------------------


@dataclass(frozen=True)
class Leg:
    """
    One sub-segment of a transit itinerary.
    mode: provider leg mode ("WALK" | "BUS" | "SUBWAY" | ...)
    """

    mode: str
    points: tuple[Coordinate, ...] = ()
    distance_m: int = 0
    duration_s: int = 0
    line_name: str | None = None
    line_color: str | None = None
    waypoints: tuple[NamedWaypoint, ...] = ()


@dataclass(frozen=True)
class RouteSegment:
    """
    A whole origin -> destination route for one traveler.
    points are ordered start -> destination; fare is in currency minor units (0 if unknown).
    """

    mode: TravelMode | None
    points: tuple[Coordinate, ...] = ()
    distance_m: int = 0
    duration_s: int = 0
    fare: int = 0
    waypoints: tuple[NamedWaypoint, ...] = ()
    legs: tuple[Leg, ...] = ()
    title: str = ""

    @classmethod
    def empty(cls, mode: TravelMode | None = None) -> RouteSegment:
        return cls(mode=mode)

    @classmethod
    def from_legs(
        cls,
        mode: TravelMode,
        legs: Sequence[Leg],
        *,
        distance_m: int,
        duration_s: int,
        fare: int = 0,
        title: str = "",
    ) -> RouteSegment:
        """Merge leg geometry and waypoints into one route, keeping the legs for narration."""
        points = tuple(p for leg in legs for p in leg.points)
        waypoints = tuple(w for leg in legs for w in leg.waypoints)
        return cls(
            mode=mode,
            points=points,
            distance_m=distance_m,
            duration_s=duration_s,
            fare=fare,
            waypoints=waypoints,
            legs=tuple(legs),
            title=title,
        )

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def destination(self) -> Coordinate | None:
        return self.points[-1] if self.points else None


@dataclass(frozen=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(cls, points: Iterable[Coordinate]) -> BoundingBox | None:
        pts = list(points)
        if not pts:
            return None
        lats = [p.lat for p in pts]
        lons = [p.lon for p in pts]
        return cls(min(lats), min(lons), max(lats), max(lons))

