# rendezvous/app/controllers/planner.py
import asyncio
import time
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

from rendezvous.app.controllers import narrative
from rendezvous.app.controllers.grouping import GroupFormationEngine
from rendezvous.app.protocols import PlaceNamer, Renderer, RouteProvider
from rendezvous.config.models import FetchModel, GeometryModel, SchedulingModel
from rendezvous.core.clock import Clock, WallClock, as_aware, late_by_minutes, shift
from rendezvous.core.hooks import NoopHooks, PlannerHooks
from rendezvous.domain.entities.geography import Coordinate, Leg, RouteSegment
from rendezvous.domain.entities.traveler import Traveler, TravelMode
from rendezvous.domain.mechanics.mechanics_geometry import estimate_elapsed_s, nearest_path_index
from rendezvous.domain.mechanics.mechanics_meeting import (
    find_meeting_point,
    outside_destination_guard,
)
from rendezvous.domain.state import (
    CalculationResult,
    Group,
    JoinedPath,
    MeetingPoint,
    RouteMap,
    TravelerPlan,
)
from rendezvous.errors import MissingDestinationError, NoTravelersError

NO_ORIGIN_MESSAGE = "No traveler has a starting point yet. Set an origin for at least one traveler."


def cut_legs(legs: Sequence[Leg], cut_index: int) -> list[tuple[Coordinate, ...]]:
    """
    Per-leg point lists up to and including the merged-path index cut_index.
    Leg points concatenate to the route's points, so indices line up.
    """
    parts = []
    start = 0
    for leg in legs:
        if not leg.points:
            continue
        if start > cut_index:
            break
        parts.append(leg.points[: cut_index - start + 1])
        start += len(leg.points)
    return parts


class RendezvousPlanner:
    """
    Orchestrates one planning run:
      fetch (concurrent, bounded) -> partition -> per-group meeting points and times
      -> narrative -> render.
    Only renderer.clear() happens before every fetch has settled.
    """

    def __init__(
        self,
        provider: RouteProvider,
        renderer: Renderer,
        grouping: GroupFormationEngine,
        namer: PlaceNamer,
        *,
        geometry: GeometryModel | None = None,
        scheduling: SchedulingModel | None = None,
        fetch: FetchModel | None = None,
        clock: Clock | None = None,
        hooks: PlannerHooks | None = None,
    ):
        self.provider = provider
        self.renderer = renderer
        self.grouping = grouping
        self.namer = namer
        self.geometry = geometry or GeometryModel()
        self.scheduling = scheduling or SchedulingModel()
        self.fetch = fetch or FetchModel()
        self.clock = clock or WallClock()
        self.hooks = hooks or NoopHooks()

    # ---------------- entry points ----------------

    def calculate_sync(
        self,
        travelers: Sequence[Traveler],
        destination: Coordinate | None,
        arrival_deadline: datetime | None = None,
    ) -> CalculationResult:
        return asyncio.run(self.calculate(travelers, destination, arrival_deadline))

    async def calculate(
        self,
        travelers: Sequence[Traveler],
        destination: Coordinate | None,
        arrival_deadline: datetime | None = None,
    ) -> CalculationResult:
        if destination is None:
            raise MissingDestinationError("a destination is required")
        if not travelers:
            raise NoTravelersError("at least one traveler is required")

        t0 = time.perf_counter()
        # callers may edit their travelers while we await the provider
        travelers = [replace(t) for t in travelers]
        deadline = as_aware(arrival_deadline) if arrival_deadline is not None else None

        self.renderer.clear()
        with_origin = [t for t in travelers if t.has_origin]
        self.hooks.run_start(
            travelers=len(travelers), with_origin=len(with_origin), deadline=deadline
        )
        for t in travelers:
            if not t.has_origin:
                self.hooks.route_unavailable(traveler_id=t.id, mode=t.mode, reason="no_origin")
        if not with_origin:
            self.hooks.run_end(groups=0, wall_ms=(time.perf_counter() - t0) * 1000)
            return CalculationResult.no_travelers(NO_ORIGIN_MESSAGE)

        routes = await self._fetch_all(with_origin, destination)
        groups = self.grouping.partition(travelers, routes)

        result = CalculationResult(
            groups=groups,
            routes=routes,
            legs={tid: r.legs for tid, r in routes.items() if r.legs},
            camera_points=[p for t in travelers if t.id in routes for p in routes[t.id].points],
        )
        now = self.clock.now()
        blocks: list[str] = []
        for group in groups:
            if not group.routable:
                blocks.append(self._resolve_unroutable(group, result))
            elif group.is_singleton:
                blocks.append(self._resolve_solo(group.members[0], routes, deadline, now, result))
            else:
                blocks.extend(await self._resolve_group(group, routes, deadline, now, result))

        result.narrative = narrative.assemble(narrative.header(len(groups), deadline), blocks)
        self._render(result)
        self.hooks.run_end(groups=len(groups), wall_ms=(time.perf_counter() - t0) * 1000)
        return result

    # ---------------- fetch phase ----------------

    async def _fetch_one(self, t: Traveler, destination: Coordinate, sem: asyncio.Semaphore):
        async with sem:
            try:
                route = await self.provider.fetch_route(
                    t.mode, t.origin, destination, t.search_option
                )
            except Exception as exc:
                self.hooks.error(reason="route_fetch_failed", traveler_id=t.id, error=str(exc))
                self.hooks.route_unavailable(
                    traveler_id=t.id, mode=t.mode, reason="provider_error"
                )
                return t.id, None

        if route is None or route.is_empty:
            self.hooks.route_unavailable(traveler_id=t.id, mode=t.mode, reason="empty_route")
            return t.id, None
        self.hooks.route_fetched(
            traveler_id=t.id,
            mode=t.mode,
            points=len(route.points),
            distance_m=route.distance_m,
            duration_s=route.duration_s,
            fare=route.fare,
        )
        return t.id, route

    async def _fetch_all(self, travelers: Sequence[Traveler], destination: Coordinate) -> RouteMap:
        sem = asyncio.Semaphore(self.fetch.max_concurrency)
        settled = await asyncio.gather(*(self._fetch_one(t, destination, sem) for t in travelers))
        return {tid: route for tid, route in settled if route is not None}

    # ---------------- per-group resolution ----------------

    def _own_path(self, result: CalculationResult, t: Traveler, route: RouteSegment):
        result.solo_paths[t.id] = list(route.points)
        result.cut_indices[t.id] = len(route.points) - 1

    def _schedule(self, plan: TravelerPlan, departure: datetime | None, now: datetime):
        plan.departure = departure
        if departure is None or departure >= now:
            return
        plan.is_late = True
        plan.late_by_min = late_by_minutes(departure, now)
        self.hooks.late_departure(traveler_id=plan.traveler_id, late_by_min=plan.late_by_min)

    def _back_calculate(self, route: RouteSegment, deadline: datetime | None):
        return shift(deadline, -route.duration_s) if deadline is not None else None

    def _resolve_unroutable(self, group: Group, result: CalculationResult) -> str:
        t = group.members[0]
        result.plans[t.id] = TravelerPlan(t.id, "unroutable")
        block = narrative.unroutable_block(t)
        result.traveler_logs[t.id] = block
        return block

    def _resolve_solo(self, t, routes: RouteMap, deadline, now, result) -> str:
        route = routes[t.id]
        plan = TravelerPlan(t.id, "solo")
        self._schedule(plan, self._back_calculate(route, deadline), now)
        result.plans[t.id] = plan
        self._own_path(result, t, route)
        block = narrative.solo_block(t, route, plan)
        result.traveler_logs[t.id] = block
        return block

    async def _meeting_for(
        self, leader: Traveler, l_route: RouteSegment, f: Traveler, f_route: RouteSegment
    ) -> MeetingPoint | None:
        # recomputed per pair: the group may have formed through a third member
        cand = find_meeting_point(leader, l_route, f, f_route, self.geometry)
        if cand is None or not outside_destination_guard(
            cand.coord, l_route.destination, self.geometry
        ):
            return None
        name = cand.name or await self.namer.name_for(cand.coord)
        return MeetingPoint(
            coord=cand.coord,
            name=name,
            leader_index=nearest_path_index(l_route.points, cand.coord),
            follower_index=nearest_path_index(f_route.points, cand.coord),
            source=cand.source,
        )

    async def _resolve_group(self, group: Group, routes: RouteMap, deadline, now, result):
        leader = group.leader
        l_route = routes[leader.id]
        leader_plan = TravelerPlan(leader.id, "leader")
        leader_start = self._back_calculate(l_route, deadline)
        self._schedule(leader_plan, leader_start, now)
        result.plans[leader.id] = leader_plan

        buffer_s = self.scheduling.follower_buffer_s
        tasks: list[str] = []
        follower_blocks: list[str] = []
        leader_cuts: list[int] = []

        for f in group.followers:
            f_route = routes[f.id]
            meet = await self._meeting_for(leader, l_route, f, f_route)

            if meet is None:
                plan = TravelerPlan(f.id, "independent", leader_id=leader.id)
                self._schedule(plan, self._back_calculate(f_route, deadline), now)
                self._own_path(result, f, f_route)
                self.hooks.follower_independent(follower_id=f.id, leader_id=leader.id)
            else:
                plan = TravelerPlan(f.id, "follower", meeting=meet, leader_id=leader.id)
                if leader_start is not None:
                    l_elapsed = estimate_elapsed_s(
                        l_route.points, meet.leader_index, l_route.distance_m, l_route.duration_s
                    )
                    f_elapsed = estimate_elapsed_s(
                        f_route.points, meet.follower_index, f_route.distance_m, f_route.duration_s
                    )
                    plan.meeting_time = shift(leader_start, l_elapsed)
                    self._schedule(plan, shift(plan.meeting_time, -f_elapsed - buffer_s), now)

                result.solo_paths[f.id] = list(f_route.points[: meet.follower_index + 1])
                result.joined_paths[f.id] = list(l_route.points[meet.leader_index :])
                result.cut_indices[f.id] = meet.follower_index
                leader_cuts.append(meet.leader_index)
                tasks.append(narrative.pickup_task(leader, f, plan))
                self.hooks.follower_matched(
                    follower_id=f.id,
                    leader_id=leader.id,
                    source=meet.source,
                    name=meet.name,
                    leader_index=meet.leader_index,
                    follower_index=meet.follower_index,
                )

            result.plans[f.id] = plan
            block = narrative.follower_block(f, f_route, plan, buffer_s)
            result.traveler_logs[f.id] = block
            follower_blocks.append(block)

        if leader_cuts:
            # joined style starts where the earliest follower gets on
            cut = min(leader_cuts)
            result.solo_paths[leader.id] = list(l_route.points[: cut + 1])
            result.joined_paths[leader.id] = list(l_route.points[cut:])
            result.cut_indices[leader.id] = cut
            style = "transit" if leader.mode is TravelMode.TRANSIT else "emphasis"
            result.overlaps.append(JoinedPath(tuple(l_route.points[cut:]), style, leader.id))
        else:
            self._own_path(result, leader, l_route)

        leader_block = narrative.leader_block(leader, l_route, leader_plan, tasks)
        result.traveler_logs[leader.id] = leader_block
        return [leader_block, *follower_blocks]

    # ---------------- render plan ----------------

    def _render(self, result: CalculationResult):
        for group in result.groups:
            for t in group.members:
                points = result.solo_paths.get(t.id)
                if not points:
                    continue
                route = result.routes[t.id]
                if t.mode is TravelMode.TRANSIT and route.legs:
                    for part in cut_legs(route.legs, result.cut_indices[t.id]):
                        self.renderer.draw_path(part, t.color)
                else:
                    self.renderer.draw_path(points, t.color)

        for overlap in result.overlaps:
            self.renderer.draw_joined_path(overlap.points, overlap.style)
        if result.camera_points:
            self.renderer.fit_camera(result.camera_points)
