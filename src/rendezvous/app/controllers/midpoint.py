# rendezvous/app/controllers/midpoint.py
from collections.abc import Sequence
from dataclasses import dataclass

from rendezvous.app.protocols import CAFE, RESTAURANT, SUBWAY, RouteProvider
from rendezvous.domain.entities.geography import Coordinate
from rendezvous.domain.entities.traveler import Traveler

CATEGORY_LABELS = {
    SUBWAY: "Subway station",
    CAFE: "Cafe",
    RESTAURANT: "Restaurant",
}


@dataclass(frozen=True)
class SuggestedPlace:
    name: str
    address: str
    coord: Coordinate
    category_label: str


def centroid(travelers: Sequence[Traveler]) -> Coordinate | None:
    """Plain lat/lon average of every traveler with an origin."""
    origins = [t.origin for t in travelers if t.has_origin]
    if not origins:
        return None
    return Coordinate(
        lat=sum(o.lat for o in origins) / len(origins),
        lon=sum(o.lon for o in origins) / len(origins),
    )


async def recommend_midpoint_places(
    travelers: Sequence[Traveler],
    provider: RouteProvider,
    categories: Sequence[str] = (SUBWAY, CAFE, RESTAURANT),
    radius_m: int = 2000,
    per_category: int = 3,
) -> list[SuggestedPlace]:
    """Destination ideas around the travelers' centroid, top `per_category` per category."""
    center = centroid(travelers)
    if center is None:
        return []

    out: list[SuggestedPlace] = []
    for code in categories:
        places = await provider.search_nearby(code, center, radius_m)
        for p in places[:per_category]:
            out.append(
                SuggestedPlace(
                    name=p.name,
                    address=p.address,
                    coord=p.coord,
                    category_label=CATEGORY_LABELS.get(code, "Place"),
                )
            )
    return out
