# io/planner_logging.py
import json
import logging
import sys

from rendezvous.core.hooks import NoopHooks
from rendezvous.io.business_events import (
    FollowerIndependentBiz,
    FollowerMatchedBiz,
    GroupFormedBiz,
    LateDepartureBiz,
    RouteFetchedBiz,
    RouteUnavailableBiz,
)
from rendezvous.io.recorder import Recorder


def _default_json_logger(name="rendezvous", level="INFO"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)

        class _JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "msg": record.getMessage(),
                    "logger": record.name,
                }
                extra = getattr(record, "extra", None)
                if isinstance(extra, dict):
                    payload.update(extra)
                if record.exc_info:
                    payload["exc"] = self.formatException(record.exc_info)
                return json.dumps(payload, default=str)

        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
        logger.setLevel(level)
    return logger


class PlannerLogging(NoopHooks):
    """
    One place to shape and emit structured logs for a planning run.
    Per-traveler outcomes are also forwarded to the recorder as business events.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        logger: logging.Logger | None = None,
        recorder: Recorder | None = None,
    ):
        self.run_id, self.debug = run_id, debug
        self.recorder = recorder
        self.log = logger or _default_json_logger(level=level)

    # --------------- Helpers -----------------------------

    def _emit(self, level: str, msg: str, **extra):
        payload = {"run_id": self.run_id}
        self.log.log(getattr(logging, level), msg, extra={"extra": {**payload, **extra}})

    def biz(self, ev):
        if self.recorder:
            self.recorder.emit(ev)

    # --------------------------------------------------------

    # run lifecycle

    def run_start(self, *, travelers: int, with_origin: int, deadline):
        self._emit(
            "INFO",
            "run_start",
            travelers=travelers,
            with_origin=with_origin,
            deadline=deadline.isoformat() if deadline else None,
        )

    def run_end(self, *, groups: int, wall_ms: float):
        self._emit("INFO", "run_end", groups=groups, wall_ms=round(wall_ms, 2))

    def error(self, *, reason: str, **extra):
        self._emit("ERROR", "planner_error", reason=reason, **extra)

    # fetch phase

    def route_fetched(
        self, *, traveler_id: int, mode, points: int, distance_m: int, duration_s: int, fare=0
    ):
        if self.debug:
            self._emit(
                "DEBUG",
                "route_fetched",
                traveler_id=traveler_id,
                mode=mode.value,
                points=points,
                distance_m=distance_m,
                duration_s=duration_s,
            )
        self.biz(
            RouteFetchedBiz(
                run_id=self.run_id,
                name="RouteFetched",
                traveler_id=traveler_id,
                mode=mode.value,
                distance_m=distance_m,
                duration_s=duration_s,
                fare=fare,
            )
        )

    def route_unavailable(self, *, traveler_id: int, mode, reason: str):
        self._emit(
            "WARNING", "route_unavailable", traveler_id=traveler_id, mode=mode.value, reason=reason
        )
        self.biz(
            RouteUnavailableBiz(
                run_id=self.run_id,
                name="RouteUnavailable",
                traveler_id=traveler_id,
                mode=mode.value,
                reason=reason,
            )
        )

    # grouping / resolution

    def group_formed(self, *, members: list[int], leader_id: int | None):
        self._emit("INFO", "group_formed", members=members, leader_id=leader_id)
        self.biz(
            GroupFormedBiz(
                run_id=self.run_id, name="GroupFormed", members=list(members), leader_id=leader_id
            )
        )

    def follower_matched(
        self,
        *,
        follower_id: int,
        leader_id: int,
        source: str,
        name: str,
        leader_index: int = -1,
        follower_index: int = -1,
    ):
        self._emit(
            "INFO",
            "follower_matched",
            follower_id=follower_id,
            leader_id=leader_id,
            source=source,
            meeting=name,
        )
        self.biz(
            FollowerMatchedBiz(
                run_id=self.run_id,
                name="FollowerMatched",
                follower_id=follower_id,
                leader_id=leader_id,
                source=source,
                meeting_name=name,
                leader_index=leader_index,
                follower_index=follower_index,
            )
        )

    def follower_independent(self, *, follower_id: int, leader_id: int):
        self._emit("INFO", "follower_independent", follower_id=follower_id, leader_id=leader_id)
        self.biz(
            FollowerIndependentBiz(
                run_id=self.run_id,
                name="FollowerIndependent",
                follower_id=follower_id,
                leader_id=leader_id,
            )
        )

    def late_departure(self, *, traveler_id: int, late_by_min: int):
        self._emit("WARNING", "late_departure", traveler_id=traveler_id, late_by_min=late_by_min)
        self.biz(
            LateDepartureBiz(
                run_id=self.run_id,
                name="LateDeparture",
                traveler_id=traveler_id,
                late_by_min=late_by_min,
            )
        )
