# rendezvous/policy/naming.py
import logging

from rendezvous.app.protocols import CAFE, CONVENIENCE, SUBWAY, PlaceNamer, RouteProvider
from rendezvous.domain.entities.geography import Coordinate

logger = logging.getLogger(__name__)


class NearbyPlaceNamer(PlaceNamer):
    """
    Human name for an arbitrary meeting coordinate, first hit wins:
    subway station (300 m) > cafe (100 m) > convenience store (100 m) > street address > fallback.
    """

    def __init__(
        self,
        provider: RouteProvider,
        *,
        subway_radius_m: int = 300,
        cafe_radius_m: int = 100,
        convenience_radius_m: int = 100,
        fallback_label: str = "Meeting point",
    ):
        self.provider = provider
        self.fallback_label = fallback_label
        self._chain = (
            (SUBWAY, subway_radius_m, "Near {}"),
            (CAFE, cafe_radius_m, "In front of {}"),
            (CONVENIENCE, convenience_radius_m, "In front of {}"),
        )

    async def name_for(self, coord: Coordinate) -> str:
        for code, radius, fmt in self._chain:
            places = await self.provider.search_nearby(code, coord, radius)
            if places:
                return fmt.format(places[0].name)

        address = await self.provider.reverse_geocode(coord)
        if address:
            return address
        logger.debug("no place name for %s, using fallback", coord)
        return self.fallback_label


class FixedPlaceNamer(PlaceNamer):
    def __init__(self, label: str = "Meeting point"):
        self.label = label

    async def name_for(self, coord: Coordinate) -> str:
        return self.label
