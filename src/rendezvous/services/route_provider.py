# rendezvous/services/route_provider.py
import logging
from collections.abc import Iterable, Mapping, Sequence

from rendezvous.app.protocols import Place, RouteProvider
from rendezvous.domain.entities.geography import Coordinate, RouteSegment
from rendezvous.domain.entities.traveler import TransitRouteOption, TravelMode
from rendezvous.domain.mechanics.mechanics_geometry import distance_m

logger = logging.getLogger(__name__)


# ---------------- itinerary ranking ----------------


def transfer_count(route: RouteSegment) -> int:
    rides = sum(1 for leg in route.legs if leg.mode != "WALK")
    return max(0, rides - 1)


def walking_m(route: RouteSegment) -> int:
    return sum(leg.distance_m for leg in route.legs if leg.mode == "WALK")


def rank_itineraries(candidates: Sequence[RouteSegment], option: int) -> list[RouteSegment]:
    """
    Order transit itineraries by the traveler's search option.
    OPTIMAL keeps the provider's order; sorts are stable so ties keep it too.
    """
    if option == TransitRouteOption.LEAST_TRANSFER.value:
        return sorted(candidates, key=transfer_count)
    if option == TransitRouteOption.FASTEST.value:
        return sorted(candidates, key=lambda r: r.duration_s)
    if option == TransitRouteOption.LEAST_WALKING.value:
        return sorted(candidates, key=walking_m)
    return list(candidates)


# ---------------- providers ----------------


class SafeRouteProvider(RouteProvider):
    """
    Applies the provider failure contract to any inner provider:
    transport/parsing failures become RouteSegment.empty(mode) or [] and are logged.
    Cancellation and a missing destination still raise.
    """

    def __init__(self, inner: RouteProvider):
        self.inner = inner

    async def fetch_route(self, mode, origin, destination, option) -> RouteSegment:
        if destination is None:
            raise ValueError("destination is required")
        try:
            route = await self.inner.fetch_route(mode, origin, destination, option)
        except Exception:
            logger.warning("route fetch failed mode=%s origin=%s", mode.value, origin, exc_info=True)
            return RouteSegment.empty(mode)
        return route if route is not None else RouteSegment.empty(mode)

    async def search_nearby(self, category_code, center, radius_m) -> list[Place]:
        try:
            return list(await self.inner.search_nearby(category_code, center, radius_m))
        except Exception:
            logger.warning("place search failed category=%s", category_code, exc_info=True)
            return []

    async def reverse_geocode(self, center) -> str | None:
        try:
            return await self.inner.reverse_geocode(center)
        except Exception:
            logger.warning("reverse geocode failed at %s", center, exc_info=True)
            return None


class StaticRouteProvider(RouteProvider):
    """
    In-memory provider for tests, demos and offline runs.
    Routes are looked up by (origin, mode); the destination only has to be present.
    """

    def __init__(
        self,
        routes: Mapping[tuple[Coordinate, TravelMode], Sequence[RouteSegment]] | None = None,
        places: Iterable[Place] = (),
        addresses: Mapping[Coordinate, str] | None = None,
        *,
        address_radius_m: float = 100.0,
        failing: Iterable[Coordinate] = (),
    ):
        self.routes: dict[tuple[Coordinate, TravelMode], list[RouteSegment]] = {
            k: list(v) for k, v in (routes or {}).items()
        }
        self.places = list(places)
        self.addresses = dict(addresses or {})
        self.address_radius_m = address_radius_m
        self.failing = set(failing)
        self.requests: list[tuple[TravelMode, Coordinate, int]] = []

    def add_route(self, origin: Coordinate, route: RouteSegment) -> None:
        if route.mode is None:
            raise ValueError("route.mode is required to index a static route")
        self.routes.setdefault((origin, route.mode), []).append(route)

    async def fetch_route(self, mode, origin, destination, option) -> RouteSegment:
        if destination is None:
            raise ValueError("destination is required")
        self.requests.append((mode, origin, option))
        if origin in self.failing:
            raise ConnectionError(f"no connection for origin {origin}")

        candidates = self.routes.get((origin, mode))
        if not candidates:
            return RouteSegment.empty(mode)
        if mode is TravelMode.TRANSIT:
            return rank_itineraries(candidates, option)[0]
        return candidates[0]

    async def search_nearby(self, category_code, center, radius_m) -> list[Place]:
        hits = [
            (distance_m(center, p.coord), p)
            for p in self.places
            if p.category == category_code
        ]
        return [p for d, p in sorted(hits, key=lambda h: h[0]) if d <= radius_m]

    async def reverse_geocode(self, center) -> str | None:
        best: tuple[float, str] | None = None
        for coord, address in self.addresses.items():
            d = distance_m(center, coord)
            if d <= self.address_radius_m and (best is None or d < best[0]):
                best = (d, address)
        return best[1] if best else None
