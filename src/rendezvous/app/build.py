# rendezvous/app/build.py
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from rendezvous.app.controllers.grouping import GroupFormationEngine
from rendezvous.app.controllers.midpoint import SuggestedPlace, recommend_midpoint_places
from rendezvous.app.controllers.planner import RendezvousPlanner
from rendezvous.app.protocols import PlaceNamer, Renderer, RouteProvider
from rendezvous.config.models import PlannerModel
from rendezvous.core.clock import Clock, WallClock
from rendezvous.core.hooks import NoopHooks
from rendezvous.domain.entities.traveler import Traveler
from rendezvous.io.planner_logging import PlannerLogging  # JSON logs
from rendezvous.io.recorder import JsonlSink, Recorder, Sink
from rendezvous.runtime.policy_factory import make_leader_policy
from rendezvous.runtime.registries import make_namer, make_time_policy
from rendezvous.services.route_provider import SafeRouteProvider


@dataclass
class App:
    planner: RendezvousPlanner
    grouping: GroupFormationEngine
    provider: RouteProvider
    namer: PlaceNamer
    clock: Clock
    hooks: object

    async def recommend_midpoint(self, travelers: Sequence[Traveler], **kw) -> list[SuggestedPlace]:
        """Destination ideas around the travelers' centroid, looked up through the safe provider."""
        return await recommend_midpoint_places(travelers, self.provider, **kw)


def build(
    cfg: PlannerModel | Mapping,
    *,
    provider: RouteProvider,
    renderer: Renderer,
    clock: Clock | None = None,
    use_logging: bool = True,
    sinks: tuple[Sink, ...] = (),
) -> App:
    # 0) Validate config
    model = cfg if isinstance(cfg, PlannerModel) else PlannerModel.model_validate(cfg)

    # 1) Clock
    clock = clock or WallClock()

    # 2) Hooks (JSON logs + analytics recorder)
    hooks = (
        PlannerLogging(
            run_id=model.log.run_id,
            recorder=Recorder(*(sinks or (JsonlSink(),))),
            level=model.log.level,
            debug=model.log.debug,
        )
        if use_logging
        else NoopHooks()
    )

    # 3) Provider failure contract
    safe = provider if isinstance(provider, SafeRouteProvider) else SafeRouteProvider(provider)

    # 4) Policies
    time_policy = make_time_policy(model.time_policy)
    leader_policy = make_leader_policy(model.leader_policy)
    namer = make_namer(model.naming, deps={"provider": safe})

    # 5) Controllers (inject deps explicitly)
    grouping = GroupFormationEngine(
        time_policy=time_policy,
        leader_policy=leader_policy,
        geometry=model.geometry,
        hooks=hooks,
    )
    planner = RendezvousPlanner(
        provider=safe,
        renderer=renderer,
        grouping=grouping,
        namer=namer,
        geometry=model.geometry,
        scheduling=model.scheduling,
        fetch=model.fetch,
        clock=clock,
        hooks=hooks,
    )
    return App(planner, grouping, safe, namer, clock, hooks)
