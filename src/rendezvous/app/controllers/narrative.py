# rendezvous/app/controllers/narrative.py
"""
Itinerary text. Everything here is plain string building over finished data;
the planner calls it once all routes, meeting points and times are known.
"""

from collections.abc import Sequence
from datetime import datetime

from rendezvous.core.clock import format_hhmm
from rendezvous.domain.entities.geography import Leg, RouteSegment
from rendezvous.domain.entities.traveler import Traveler, TravelMode
from rendezvous.domain.mechanics.mechanics_geometry import normalize_station_name
from rendezvous.domain.state import TravelerPlan

INDENT = "   - "
STEP_INDENT = "      "
RULE = "-" * 32

_MODE_LABELS = {
    TravelMode.CAR: "car",
    TravelMode.TRANSIT: "transit",
    TravelMode.WALK: "walk",
}
_LEG_LABELS = {"WALK": "Walk", "BUS": "Bus", "SUBWAY": "Subway"}


def mode_label(mode: TravelMode) -> str:
    return _MODE_LABELS[mode]


def header(group_count: int, deadline: datetime | None) -> list[str]:
    lines = []
    if deadline is not None:
        lines.append(f"Arrive by {format_hhmm(deadline)}")
    lines.append(f"Groups: {group_count}")
    lines.append(RULE)
    return lines


def summary_line(traveler: Traveler, route: RouteSegment) -> str:
    """'12.3 km / 25 min' plus the fare for cars (tolls) or whenever a fare is known."""
    text = f"{route.distance_m / 1000.0:.1f} km / {route.duration_s // 60} min"
    if traveler.mode is TravelMode.CAR or route.fare > 0:
        text += f" / {route.fare:,} KRW"
    return INDENT + "info: " + text


def departure_line(plan: TravelerPlan) -> str | None:
    if plan.departure is None:
        return None
    line = INDENT + f"depart: {format_hhmm(plan.departure)}"
    if plan.is_late and plan.late_by_min > 0:
        line += f" (late! should have left {plan.late_by_min} min ago)"
    elif plan.is_late:
        line += " (late! leave now)"
    return line


def _stop_label(leg: Leg | None) -> str | None:
    if leg is None or not leg.waypoints:
        return None
    name = leg.waypoints[0].name
    if leg.mode == "SUBWAY":
        if not (name.endswith("Station") or name.endswith("역")):
            name += " Station"
    elif leg.mode == "BUS":
        name += " stop"
    return name


def _matches(name: str, limit_key: str) -> bool:
    return bool(limit_key) and limit_key in normalize_station_name(name)


def transit_steps(legs: Sequence[Leg], limit_name: str | None = None) -> list[str]:
    """
    Numbered leg-by-leg directions. With limit_name (a follower's meeting stop)
    the listing stops at the first leg reaching it, marked "(join here!)".
    """
    limit_key = normalize_station_name(limit_name) if limit_name else ""
    lines = []
    for n, leg in enumerate(legs, start=1):
        stop = False
        if leg.mode == "WALK":
            dist = f"{leg.distance_m} m" if leg.distance_m > 0 else "short"
            next_stop = _stop_label(legs[n] if n < len(legs) else None)
            target = f" -> {next_stop}" if next_stop else ""
            if next_stop and _matches(next_stop, limit_key):
                stop = True
                target += " (join here!)"
            lines.append(f"{STEP_INDENT}{n}. Walk ({dist}){target}")
        else:
            label = _LEG_LABELS.get(leg.mode, leg.mode.title())
            names = [w.name for w in leg.waypoints if w.name.strip()]
            if limit_key:
                cut = next((i for i, s in enumerate(names) if _matches(s, limit_key)), None)
                if cut is not None:
                    names = names[: cut + 1]
                    stop = True
            suffix = " (join here!)" if stop else ""
            lines.append(
                f"{STEP_INDENT}{n}. {label} ({leg.line_name or ''}): [{', '.join(names)}]{suffix}"
            )
        if stop:
            break
    return lines


def route_detail(traveler: Traveler, route: RouteSegment, limit_name: str | None = None):
    if traveler.mode is TravelMode.TRANSIT and route.legs:
        return [INDENT + "route:", *transit_steps(route.legs, limit_name)]
    if limit_name is not None:
        return [INDENT + f"route: {mode_label(traveler.mode)} > {limit_name} (join)"]
    return []


def _block(lines: Sequence[str | None]) -> str:
    return "\n".join(line for line in lines if line is not None)


def solo_block(traveler: Traveler, route: RouteSegment, plan: TravelerPlan) -> str:
    return _block(
        [
            f"{traveler.name} ({mode_label(traveler.mode)})",
            summary_line(traveler, route),
            *route_detail(traveler, route),
            departure_line(plan),
        ]
    )


def unroutable_block(traveler: Traveler) -> str:
    reason = "no starting point set" if not traveler.has_origin else "no route available"
    return _block(
        [
            f"{traveler.name} ({mode_label(traveler.mode)})",
            INDENT + f"{reason}: travels independently",
        ]
    )


def pickup_task(leader: Traveler, follower: Traveler, plan: TravelerPlan) -> str:
    """'Pickup: Gangnam Station (08:42) (Bo boards)' for car leaders, 'Join: ...' otherwise."""
    at = f" ({format_hhmm(plan.meeting_time)})" if plan.meeting_time else ""
    if leader.mode is TravelMode.CAR:
        return f"Pickup: {plan.meeting.name}{at} ({follower.name} boards)"
    return f"Join: {plan.meeting.name}{at} ({follower.name} meets)"


def leader_block(
    leader: Traveler,
    route: RouteSegment,
    plan: TravelerPlan,
    tasks: Sequence[str],
) -> str:
    lines = [
        f"[leader] {leader.name} ({mode_label(leader.mode)})",
        summary_line(leader, route),
        departure_line(plan),
        *route_detail(leader, route),
    ]
    if tasks:
        lines.extend(INDENT + t for t in tasks)
    else:
        lines.append(INDENT + "(no joinable followers)")
    return _block(lines)


def follower_block(
    follower: Traveler,
    route: RouteSegment,
    plan: TravelerPlan,
    buffer_s: int,
) -> str:
    lines = [
        f"[follower] {follower.name} ({mode_label(follower.mode)})",
        summary_line(follower, route),
    ]
    if plan.meeting is not None:
        lines.append(departure_line(plan))
        if plan.meeting_time is not None:
            lines.append(
                INDENT + f"meet at {format_hhmm(plan.meeting_time)} "
                f"(arrive {buffer_s // 60} min early)"
            )
        lines.extend(route_detail(follower, route, plan.meeting.name))
    else:
        lines.append(INDENT + "(join failed: travels independently)")
        lines.append(departure_line(plan))
        lines.extend(route_detail(follower, route))
    return _block(lines)


def assemble(head: Sequence[str], blocks: Sequence[str]) -> str:
    return "\n".join(head) + "\n" + "\n\n".join(blocks) + ("\n" if blocks else "")
