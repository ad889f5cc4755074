# rendezvous/app/controllers/grouping.py
from collections.abc import Sequence

from rendezvous.app.protocols import LeaderPolicy, TimeCompatibilityPolicy
from rendezvous.config.models import GeometryModel
from rendezvous.core.hooks import NoopHooks, PlannerHooks
from rendezvous.domain.entities.traveler import Traveler
from rendezvous.domain.mechanics.mechanics_meeting import (
    find_meeting_point,
    outside_destination_guard,
)
from rendezvous.domain.state import Group, RouteMap


class GroupFormationEngine:
    """
    Greedy pivot partitioning: the first unassigned traveler becomes the pivot and
    absorbs every remaining candidate it can meet en route. Repeats until the pool
    is empty. Good enough for a handful of travelers; not an optimal clustering.
    """

    def __init__(
        self,
        time_policy: TimeCompatibilityPolicy,
        leader_policy: LeaderPolicy,
        geometry: GeometryModel | None = None,
        hooks: PlannerHooks | None = None,
    ):
        self.time_policy = time_policy
        self.leader_policy = leader_policy
        self.geometry = geometry or GeometryModel()
        self.hooks = hooks or NoopHooks()

    def select_leader(self, group: Sequence[Traveler], routes: RouteMap) -> Traveler | None:
        return self.leader_policy.select(group, routes)

    def partition(self, travelers: Sequence[Traveler], routes: RouteMap) -> list[Group]:
        unassigned = list(travelers)
        groups: list[Group] = []

        while unassigned:
            pivot = unassigned.pop(0)
            pivot_route = routes.get(pivot.id)
            if pivot_route is None or pivot_route.is_empty:
                groups.append(Group((pivot,), leader=None, routable=False))
                continue

            members = [pivot]
            destination = pivot_route.destination
            remaining: list[Traveler] = []
            for candidate in unassigned:
                candidate_route = routes.get(candidate.id)
                if candidate_route is None or candidate_route.is_empty:
                    # stays in the pool; becomes its own unroutable group later
                    remaining.append(candidate)
                    continue

                meet = find_meeting_point(
                    pivot, pivot_route, candidate, candidate_route, self.geometry
                )
                if (
                    meet is not None
                    and outside_destination_guard(meet.coord, destination, self.geometry)
                    and self.time_policy.compatible(
                        pivot, pivot_route, candidate, candidate_route, meet.coord
                    )
                ):
                    members.append(candidate)
                else:
                    remaining.append(candidate)
            unassigned = remaining

            leader = self.select_leader(members, routes)
            group = Group(tuple(members), leader=leader)
            groups.append(group)
            self.hooks.group_formed(
                members=group.member_ids, leader_id=leader.id if leader else None
            )
        return groups
