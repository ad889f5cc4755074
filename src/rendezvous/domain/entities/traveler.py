# domain/entities/traveler.py
from dataclasses import dataclass
from enum import Enum

from rendezvous.domain.entities.geography import Coordinate


class TravelMode(Enum):
    CAR = "car"  # always preferred as leader
    TRANSIT = "transit"  # bus / subway
    WALK = "walk"


class CarRouteOption(Enum):
    """Provider search option integers for CAR routes."""

    RECOMMEND = 0
    FREE = 1
    SHORTEST = 2
    FASTEST = 3


class TransitRouteOption(Enum):
    """Itinerary ranking for TRANSIT routes."""

    OPTIMAL = 0
    LEAST_TRANSFER = 1
    FASTEST = 2
    LEAST_WALKING = 3


@dataclass
class Traveler:
    id: int
    name: str
    origin: Coordinate | None = None  # None => not yet usable
    mode: TravelMode = TravelMode.CAR
    search_option: int = 0
    color: str = "#1976D2"

    @property
    def has_origin(self) -> bool:
        return self.origin is not None
