# tests/app/test_planner_scenarios.py
import asyncio
import math
from datetime import datetime, timedelta

import pytest

from rendezvous.app.build import build
from rendezvous.app.controllers.planner import NO_ORIGIN_MESSAGE, cut_legs
from rendezvous.config.models import PlannerModel
from rendezvous.core.clock import FixedClock, WallClock
from rendezvous.domain.entities.geography import Coordinate, Leg, NamedWaypoint, RouteSegment
from rendezvous.domain.entities.traveler import Traveler, TravelMode
from rendezvous.domain.mechanics.mechanics_geometry import distance_m
from rendezvous.errors import MissingDestinationError, NoTravelersError, PlanningError
from rendezvous.io.recorder import MemorySink
from rendezvous.services.renderer import RecordingRenderer
from rendezvous.services.route_provider import StaticRouteProvider

M_PER_DEG = 6_371_000.0 * math.pi / 180.0
NOW = FixedClock.utc(2025, 3, 14, 8, 0)


def offset(p, north_m=0.0, east_m=0.0):
    return Coordinate(
        p.lat + north_m / M_PER_DEG,
        p.lon + east_m / (M_PER_DEG * math.cos(math.radians(p.lat))),
    )


def straight(origin, dest, n=11):
    return tuple(
        Coordinate(origin.lat + (dest.lat - origin.lat) * k / (n - 1),
                   origin.lon + (dest.lon - origin.lon) * k / (n - 1))
        for k in range(n)
    )


def make_app(provider, cfg=None, sinks=(), use_logging=False):
    renderer = RecordingRenderer()
    app = build(
        cfg or PlannerModel(),
        provider=provider,
        renderer=renderer,
        clock=NOW,
        use_logging=use_logging,
        sinks=sinks,
    )
    return app, renderer


# ---------------- Scenario A: car picks up a walker ----------------

P1 = Coordinate(37.50, 127.00)
CAR_PTS = tuple(offset(P1, north_m=100 * i) for i in range(20))
D = CAR_PTS[-1]
X = CAR_PTS[11]  # 800 m before D
WALK_PTS = tuple(
    [offset(X, east_m=e) for e in (300, 240, 180, 120, 60, 40)]
    + [offset(p, east_m=40) for p in CAR_PTS[12:]]
)
P2 = WALK_PTS[0]


@pytest.fixture
def scenario_a():
    provider = StaticRouteProvider()
    provider.add_route(P1, RouteSegment(TravelMode.CAR, CAR_PTS, distance_m=1_900, duration_s=950, fare=1_200))
    provider.add_route(P2, RouteSegment(TravelMode.WALK, WALK_PTS, distance_m=1_060, duration_s=1_060))
    a = Traveler(1, "Ana", P1, TravelMode.CAR, color="#ff0000")
    b = Traveler(2, "Bo", P2, TravelMode.WALK, color="#00ff00")
    return provider, [a, b]


def test_scenario_a_walker_meets_car_on_its_road(scenario_a):
    provider, travelers = scenario_a
    app, _ = make_app(provider)
    result = app.planner.calculate_sync(travelers, D)

    assert distance_m(X, D) == pytest.approx(800.0, abs=1e-6)
    assert result.group_ids() == [[1, 2]]
    assert result.groups[0].leader.id == 1

    plan_b = result.plans[2]
    assert plan_b.role == "follower"
    assert plan_b.meeting.coord == X
    assert plan_b.meeting.leader_index == 11
    assert plan_b.meeting.follower_index == 5
    assert plan_b.meeting.name == "Meeting point"  # no places known, no address
    assert distance_m(plan_b.meeting.coord, D) > 500


def test_scenario_a_cut_indices_and_paths(scenario_a):
    provider, travelers = scenario_a
    app, renderer = make_app(provider)
    result = app.planner.calculate_sync(travelers, D)

    assert result.cut_indices == {1: 11, 2: 5}
    assert result.solo_paths[2] == list(WALK_PTS[:6])
    assert result.joined_paths[2] == list(CAR_PTS[11:])
    assert result.solo_paths[1] == list(CAR_PTS[:12])
    assert [o.style for o in result.overlaps] == ["emphasis"]
    assert result.overlaps[0].points == CAR_PTS[11:]

    assert renderer.ops() == ["clear", "path", "path", "joined", "camera"]
    assert [c.color for c in renderer.paths()] == ["#ff0000", "#00ff00"]
    assert len(renderer.calls[-1].points) == len(CAR_PTS) + len(WALK_PTS)


def test_scenario_a_follower_timing(scenario_a):
    provider, travelers = scenario_a
    app, _ = make_app(provider)
    deadline = NOW.now() + timedelta(hours=1)
    result = app.planner.calculate_sync(travelers, D, deadline)

    leader, follower = result.plans[1], result.plans[2]
    assert leader.departure == deadline - timedelta(seconds=950)
    # leader reaches X after ~11/19 of its route
    to_meet = (follower.meeting_time - leader.departure).total_seconds()
    assert to_meet == pytest.approx(550, abs=1)
    # follower walks ~260 m of 1060 m and arrives 5 minutes early
    lead_time = (follower.meeting_time - follower.departure).total_seconds()
    assert lead_time == pytest.approx(260 + 300, abs=1)
    assert not leader.is_late and not follower.is_late

    text = result.traveler_logs[1]
    assert "Pickup: Meeting point" in text and "(Bo boards)" in text
    assert "meet at" in result.traveler_logs[2]
    assert result.narrative.startswith("Arrive by 09:00\nGroups: 1\n")


# ---------------- Scenario B: transit riders share a station ----------------

DEST_B = Coordinate(37.55, 127.00)


def test_scenario_b_named_station_groups_two_of_three():
    origins = {
        1: offset(DEST_B, east_m=-5_000),
        2: offset(DEST_B, north_m=-5_000),
        3: offset(DEST_B, east_m=5_000),
    }
    names = {1: "Central Station (Line 1)", 2: "Central Station", 3: "Riverside"}
    provider = StaticRouteProvider()
    travelers = []
    for tid, origin in origins.items():
        pts = straight(origin, DEST_B)
        provider.add_route(
            origin,
            RouteSegment(
                TravelMode.TRANSIT, pts, distance_m=5_000 + tid, duration_s=1_800,
                fare=1_400, waypoints=(NamedWaypoint(names[tid], pts[3]),),
            ),
        )
        travelers.append(Traveler(tid, f"T{tid}", origin, TravelMode.TRANSIT))

    app, renderer = make_app(provider)
    result = app.planner.calculate_sync(travelers, DEST_B)

    assert result.group_ids() == [[1, 2], [3]]
    meet = result.plans[2].meeting
    assert meet.source == "waypoint" and meet.name == "Central Station"
    assert [o.style for o in result.overlaps] == ["transit"]
    assert result.plans[3].role == "solo"
    assert "Join: Central Station" in result.traveler_logs[1]


# ---------------- Scenario C: one fetch fails ----------------


def test_scenario_c_failed_fetch_is_isolated(scenario_a):
    provider, travelers = scenario_a
    p4 = offset(P1, east_m=-50)
    provider.failing.add(p4)
    provider.add_route(p4, RouteSegment(TravelMode.CAR, CAR_PTS, distance_m=1_900, duration_s=950))
    d = Traveler(4, "Dee", p4, TravelMode.CAR)
    app, renderer = make_app(provider)

    result = app.planner.calculate_sync([d, *travelers], D)

    assert result.group_ids() == [[4], [1, 2]]
    assert not result.groups[0].routable
    assert result.plans[4].role == "unroutable"
    assert 4 not in result.routes and 4 not in result.solo_paths
    assert "no route available" in result.traveler_logs[4]
    assert "no route available" in result.narrative
    # the rest of the batch still resolved
    assert result.plans[2].meeting.coord == X


def test_traveler_without_origin_is_reported(scenario_a):
    provider, travelers = scenario_a
    ghost = Traveler(9, "Gus", None, TravelMode.WALK)
    app, _ = make_app(provider)
    result = app.planner.calculate_sync([*travelers, ghost], D)
    assert result.group_ids() == [[1, 2], [9]]
    assert "no starting point set" in result.traveler_logs[9]
    assert len(provider.requests) == 2


# ---------------- Scenario D: departure already in the past ----------------


def test_scenario_d_late_departure():
    origin = Coordinate(37.40, 127.10)
    dest = Coordinate(37.50, 127.10)
    provider = StaticRouteProvider()
    provider.add_route(
        origin, RouteSegment(TravelMode.CAR, straight(origin, dest), distance_m=11_000, duration_s=40 * 60)
    )
    app, _ = make_app(provider)
    deadline = NOW.now() + timedelta(minutes=10)

    result = app.planner.calculate_sync([Traveler(1, "Kim", origin, TravelMode.CAR)], dest, deadline)

    plan = result.plans[1]
    assert plan.departure == NOW.now() - timedelta(minutes=30)
    assert plan.is_late and plan.late_by_min == 30
    assert "late! should have left 30 min ago" in result.narrative


def test_scenario_d_naive_deadline_is_local_time(seoul_tz):
    origin = Coordinate(37.40, 127.10)
    dest = Coordinate(37.50, 127.10)
    provider = StaticRouteProvider()
    provider.add_route(
        origin, RouteSegment(TravelMode.CAR, straight(origin, dest), distance_m=11_000, duration_s=40 * 60)
    )
    app = build(PlannerModel(), provider=provider, renderer=RecordingRenderer(), clock=WallClock(), use_logging=False)
    deadline = datetime.now() + timedelta(minutes=10)  # naive, Seoul wall time

    result = app.planner.calculate_sync([Traveler(1, "Kim", origin, TravelMode.CAR)], dest, deadline)

    plan = result.plans[1]
    assert plan.departure.utcoffset() == timedelta(hours=9)
    assert plan.is_late and plan.late_by_min == 30
    expected = (deadline - timedelta(minutes=40)).strftime("%H:%M")
    assert f"depart: {expected} (late! should have left 30 min ago)" in result.narrative
    assert result.narrative.startswith(f"Arrive by {deadline.strftime('%H:%M')}\n")


# ---------------- one leader, several followers ----------------


def walker_joining_at(idx):
    """Walking path that reaches the car road at CAR_PTS[idx] and follows it 40 m east."""
    x = CAR_PTS[idx]
    return tuple(
        [offset(x, east_m=e) for e in (300, 240, 180, 120, 60, 40)]
        + [offset(p, east_m=40) for p in CAR_PTS[idx + 1:]]
    )


def test_leader_cut_is_the_earliest_follower_join():
    early, late = walker_joining_at(3), walker_joining_at(9)
    provider = StaticRouteProvider()
    provider.add_route(P1, RouteSegment(TravelMode.CAR, CAR_PTS, distance_m=1_900, duration_s=950))
    provider.add_route(early[0], RouteSegment(TravelMode.WALK, early, distance_m=1_860, duration_s=1_860))
    provider.add_route(late[0], RouteSegment(TravelMode.WALK, late, distance_m=1_260, duration_s=1_260))
    travelers = [
        Traveler(1, "Ana", P1, TravelMode.CAR),
        Traveler(2, "Bo", late[0], TravelMode.WALK),
        Traveler(3, "Cy", early[0], TravelMode.WALK),
    ]
    app, renderer = make_app(provider)

    result = app.planner.calculate_sync(travelers, D)

    assert result.group_ids() == [[1, 2, 3]]
    assert result.plans[2].meeting.leader_index == 9
    assert result.plans[3].meeting.leader_index == 3
    assert result.cut_indices == {1: 3, 2: 5, 3: 5}
    assert result.solo_paths[1] == list(CAR_PTS[:4])
    assert [o.points for o in result.overlaps] == [CAR_PTS[3:]]
    assert result.joined_paths[2] == list(CAR_PTS[9:])
    assert result.joined_paths[3] == list(CAR_PTS[3:])
    assert renderer.ops() == ["clear", "path", "path", "path", "joined", "camera"]


# ---------------- failures and edge cases ----------------


def test_missing_destination_fails_before_any_side_effect(scenario_a):
    provider, travelers = scenario_a
    app, renderer = make_app(provider)
    with pytest.raises(MissingDestinationError):
        app.planner.calculate_sync(travelers, None)
    assert renderer.calls == []
    assert provider.requests == []


def test_no_travelers_is_a_planning_error(scenario_a):
    provider, _ = scenario_a
    app, renderer = make_app(provider)
    with pytest.raises(PlanningError):
        app.planner.calculate_sync([], D)
    with pytest.raises(NoTravelersError):
        app.planner.calculate_sync([], D)
    assert renderer.calls == []


def test_nobody_has_an_origin(scenario_a):
    provider, _ = scenario_a
    app, renderer = make_app(provider)
    result = app.planner.calculate_sync([Traveler(1, "a"), Traveler(2, "b")], D)
    assert result.groups == []
    assert result.narrative == NO_ORIGIN_MESSAGE
    assert renderer.ops() == ["clear"]


def test_paths_touching_only_at_the_destination_stay_apart():
    origin_car = Coordinate(37.40, 127.00)
    origin_walk = Coordinate(37.40, 127.20)
    dest = Coordinate(37.50, 127.10)
    car_pts = straight(origin_car, dest)
    walk_pts = straight(origin_walk, dest)
    provider = StaticRouteProvider()
    # the walk reaches the car road only at the destination itself
    provider.add_route(origin_car, RouteSegment(TravelMode.CAR, car_pts, 15_000, 1_500))
    provider.add_route(origin_walk, RouteSegment(TravelMode.WALK, walk_pts, 15_000, 10_000))
    app, _ = make_app(provider)
    travelers = [Traveler(1, "c", origin_car, TravelMode.CAR), Traveler(2, "w", origin_walk, TravelMode.WALK)]

    result = app.planner.calculate_sync(travelers, dest)
    assert result.group_ids() == [[1], [2]]
    assert result.cut_indices == {1: 10, 2: 10}
    assert result.overlaps == []


def test_independent_follower_when_pair_cannot_meet():
    # A (car) meets B (walk); C (walk) meets B's walking path but never the car
    a_origin = Coordinate(37.50, 127.00)
    car_pts = tuple(offset(a_origin, north_m=100 * i) for i in range(20))
    dest = car_pts[-1]
    x = car_pts[5]
    b_pts = tuple(
        [offset(x, east_m=e) for e in (500, 400, 300, 200, 100, 30)]
        + [offset(p, east_m=30) for p in car_pts[6:]]
    )
    shared_stop = NamedWaypoint("Corner", b_pts[1])
    b_route = RouteSegment(TravelMode.WALK, b_pts, 2_000, 1_500, waypoints=(shared_stop,))
    c_origin = offset(b_pts[1], north_m=-3_000)
    c_pts = straight(c_origin, b_pts[1], n=6)[:-1] + (b_pts[1], offset(b_pts[1], north_m=-10))
    c_route = RouteSegment(TravelMode.WALK, c_pts, 3_000, 2_400, waypoints=(NamedWaypoint("corner", b_pts[1]),))

    provider = StaticRouteProvider()
    provider.add_route(b_pts[0], b_route)
    provider.add_route(c_origin, c_route)
    provider.add_route(a_origin, RouteSegment(TravelMode.CAR, car_pts, 1_900, 950))
    travelers = [
        Traveler(2, "B", b_pts[0], TravelMode.WALK),
        Traveler(3, "C", c_origin, TravelMode.WALK),
        Traveler(1, "A", a_origin, TravelMode.CAR),
    ]
    app, _ = make_app(provider)
    result = app.planner.calculate_sync(travelers, dest, NOW.now() + timedelta(hours=2))

    assert result.group_ids() == [[2, 3, 1]]
    assert result.groups[0].leader.id == 1
    assert result.plans[2].role == "follower"
    assert result.plans[3].role == "independent"
    assert result.plans[3].departure == NOW.now() + timedelta(hours=2) - timedelta(seconds=2_400)
    assert "(join failed: travels independently)" in result.traveler_logs[3]
    assert result.cut_indices[1] == 5


def test_transit_paths_are_drawn_per_leg_up_to_the_cut():
    o = Coordinate(37.5, 127.0)
    walk = Leg("WALK", (o, offset(o, north_m=100)), distance_m=100)
    ride = Leg("SUBWAY", tuple(offset(o, north_m=100 * i) for i in range(2, 8)), line_name="Line 2")
    tail = Leg("WALK", (offset(o, north_m=800), offset(o, north_m=900)), distance_m=200)
    assert cut_legs([walk, ride, tail], 4) == [walk.points, ride.points[:3]]
    assert cut_legs([walk, ride, tail], 9) == [walk.points, ride.points, tail.points]
    assert cut_legs([walk, ride, tail], 0) == [walk.points[:1]]
    # cut on the first point of a leg still reaches the meeting point
    assert cut_legs([walk, ride, tail], 2) == [walk.points, ride.points[:1]]
    assert cut_legs([walk, ride, tail], 8) == [walk.points, ride.points, tail.points[:1]]


# ---------------- concurrency ----------------


class SlowProvider(StaticRouteProvider):
    def __init__(self, *a, **kw):
        super().__init__(*a, **kw)
        self.in_flight = 0
        self.peak = 0

    async def fetch_route(self, mode, origin, destination, option):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return await super().fetch_route(mode, origin, destination, option)
        finally:
            self.in_flight -= 1


def test_fetch_fan_out_is_bounded():
    provider = SlowProvider()
    travelers = []
    for i in range(6):
        origin = Coordinate(37.0 + i * 0.1, 127.0)
        provider.add_route(origin, RouteSegment(TravelMode.WALK, (origin, D), 1_000, 600))
        travelers.append(Traveler(i, f"w{i}", origin, TravelMode.WALK))
    app, _ = make_app(provider, PlannerModel.model_validate({"fetch": {"max_concurrency": 2}}))

    result = app.planner.calculate_sync(travelers, D)
    assert provider.peak == 2
    assert len(result.routes) == 6


class HangingProvider(StaticRouteProvider):
    def __init__(self):
        super().__init__()
        self.started = 0

    async def fetch_route(self, mode, origin, destination, option):
        self.started += 1
        await asyncio.Event().wait()


def test_cancelled_calculation_draws_nothing(scenario_a):
    _, travelers = scenario_a
    provider = HangingProvider()
    app, renderer = make_app(provider)

    async def scenario():
        task = asyncio.create_task(app.planner.calculate(travelers, D))
        while provider.started < len(travelers):
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert renderer.ops() == ["clear"]


def test_travelers_are_snapshotted(scenario_a):
    provider, travelers = scenario_a
    app, _ = make_app(provider)
    result = app.planner.calculate_sync(travelers, D)
    travelers[0].mode = TravelMode.WALK
    assert result.groups[0].leader.mode is TravelMode.CAR
    assert result.groups[0].leader is not travelers[0]


# ---------------- business events ----------------


def test_run_emits_business_events(scenario_a):
    provider, travelers = scenario_a
    sink = MemorySink()
    app, _ = make_app(provider, sinks=(sink,), use_logging=True)
    app.planner.calculate_sync(travelers, D, NOW.now() + timedelta(minutes=5))

    names = sink.names()
    assert names.count("RouteFetched") == 2
    assert "GroupFormed" in names and "FollowerMatched" in names
    assert "LateDeparture" in names
    matched = next(e for e in sink.events if e.name == "FollowerMatched")
    assert (matched.follower_id, matched.leader_id, matched.leader_index) == (2, 1, 11)
