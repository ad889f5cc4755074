# src/rendezvous/io/scenario.py
"""
Offline planning scenarios: travelers, destination, deadline and canned provider
responses in one JSON file. Feeds a StaticRouteProvider so a run needs no network.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from rendezvous.app.protocols import Place
from rendezvous.domain.entities.geography import (
    Coordinate,
    Geometry,
    Leg,
    NamedWaypoint,
    RouteSegment,
    flatten_geometries,
)
from rendezvous.domain.entities.traveler import Traveler, TravelMode
from rendezvous.io.geojson import parse_feature_collection, parse_geometry, parse_pass_shape
from rendezvous.services.route_provider import StaticRouteProvider

LatLon = tuple[float, float]


def _coord(p: LatLon) -> Coordinate:
    return Coordinate(lat=p[0], lon=p[1])


def _geometries(raw: dict[str, Any]) -> list[Geometry]:
    if raw.get("type") == "FeatureCollection":
        return parse_feature_collection(raw)
    return [parse_geometry(raw)]


class WaypointModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    at: LatLon

    def to_domain(self) -> NamedWaypoint:
        return NamedWaypoint(self.name, _coord(self.at))


class LegModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    mode: str  # WALK | BUS | SUBWAY
    pass_shape: str = ""  # "lon,lat lon,lat ..."
    distance_m: int = 0
    duration_s: int = 0
    line_name: str | None = None
    line_color: str | None = None
    stops: list[WaypointModel] = Field(default_factory=list)

    def to_domain(self) -> Leg:
        return Leg(
            mode=self.mode,
            points=tuple(parse_pass_shape(self.pass_shape)),
            distance_m=self.distance_m,
            duration_s=self.duration_s,
            line_name=self.line_name,
            line_color=self.line_color,
            waypoints=tuple(w.to_domain() for w in self.stops),
        )


class RouteModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    origin: LatLon
    mode: TravelMode
    distance_m: int
    duration_s: int
    fare: int = 0
    title: str = ""
    # car/walk: GeoJSON-like line geometries or FeatureCollections; transit: legs
    geometries: list[dict[str, Any]] = Field(default_factory=list)
    waypoints: list[WaypointModel] = Field(default_factory=list)
    legs: list[LegModel] = Field(default_factory=list)

    def to_domain(self) -> RouteSegment:
        if self.legs:
            return RouteSegment.from_legs(
                self.mode,
                [leg.to_domain() for leg in self.legs],
                distance_m=self.distance_m,
                duration_s=self.duration_s,
                fare=self.fare,
                title=self.title,
            )
        points = flatten_geometries(geom for g in self.geometries for geom in _geometries(g))
        return RouteSegment(
            mode=self.mode,
            points=tuple(points),
            distance_m=self.distance_m,
            duration_s=self.duration_s,
            fare=self.fare,
            waypoints=tuple(w.to_domain() for w in self.waypoints),
            title=self.title,
        )


class TravelerModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    id: int
    name: str
    origin: LatLon | None = None
    mode: TravelMode = TravelMode.CAR
    search_option: int = 0
    color: str = "#1976D2"

    def to_domain(self) -> Traveler:
        return Traveler(
            id=self.id,
            name=self.name,
            origin=_coord(self.origin) if self.origin else None,
            mode=self.mode,
            search_option=self.search_option,
            color=self.color,
        )


class PlaceModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    at: LatLon
    category: str
    address: str = ""


class AddressModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    at: LatLon
    address: str


class ScenarioModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "scenario"
    destination: LatLon
    arrive_by: datetime | None = None
    travelers: list[TravelerModel]
    routes: list[RouteModel] = Field(default_factory=list)
    places: list[PlaceModel] = Field(default_factory=list)
    addresses: list[AddressModel] = Field(default_factory=list)
    failing_origins: list[LatLon] = Field(default_factory=list)


@dataclass
class Scenario:
    name: str
    travelers: list[Traveler]
    destination: Coordinate
    arrive_by: datetime | None
    provider: StaticRouteProvider


def scenario_from_model(model: ScenarioModel) -> Scenario:
    provider = StaticRouteProvider(
        places=[Place(p.name, _coord(p.at), p.address, p.category) for p in model.places],
        addresses={_coord(a.at): a.address for a in model.addresses},
        failing=[_coord(o) for o in model.failing_origins],
    )
    for r in model.routes:
        provider.add_route(_coord(r.origin), r.to_domain())
    return Scenario(
        name=model.name,
        travelers=[t.to_domain() for t in model.travelers],
        destination=_coord(model.destination),
        arrive_by=model.arrive_by,
        provider=provider,
    )


def load_scenario(path: str) -> Scenario:
    path = os.path.expandvars(os.path.expanduser(path))
    with open(path, encoding="utf-8") as f:
        return scenario_from_model(ScenarioModel.model_validate_json(f.read()))
