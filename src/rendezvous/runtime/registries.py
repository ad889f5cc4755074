# runtime/registries.py
from collections.abc import Callable
from typing import Any

from rendezvous.app.protocols import PlaceNamer, TimeCompatibilityPolicy
from rendezvous.config.models import (
    NamingPolicyFixedModel,
    NamingPolicyNearbyModel,
    NamingPolicyUnion,
    TimePolicyAlwaysModel,
    TimePolicyMaxWaitModel,
    TimePolicyUnion,
)
from rendezvous.policy.naming import FixedPlaceNamer, NearbyPlaceNamer
from rendezvous.policy.time_compat import AlwaysCompatiblePolicy, MaxWaitCompatiblePolicy

TimePolicyFactory = Callable[[TimePolicyUnion, dict], TimeCompatibilityPolicy]
NamerFactory = Callable[[NamingPolicyUnion, dict], PlaceNamer]

_time_policy_registry: dict[str, TimePolicyFactory] = {}
_namer_registry: dict[str, NamerFactory] = {}


# ------------------- Time compatibility policies ---------------------------


def register_time_policy(kind: str):
    def deco(fn: TimePolicyFactory):
        _time_policy_registry[kind] = fn
        return fn

    return deco


def make_time_policy(cfg: TimePolicyUnion, *, deps: dict[str, Any] | None = None):
    try:
        factory = _time_policy_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown time policy kind {cfg.kind!r}") from None
    return factory(cfg, deps or {})


@register_time_policy("always")
def _make_always(cfg: TimePolicyAlwaysModel, deps):
    return AlwaysCompatiblePolicy()


@register_time_policy("max_wait")
def _make_max_wait(cfg: TimePolicyMaxWaitModel, deps):
    return MaxWaitCompatiblePolicy(max_wait_s=cfg.max_wait_s)


# ------------------- Meeting place naming ---------------------------


def register_namer(kind: str):
    def deco(fn: NamerFactory):
        _namer_registry[kind] = fn
        return fn

    return deco


def make_namer(cfg: NamingPolicyUnion, *, deps: dict[str, Any]) -> PlaceNamer:
    try:
        factory = _namer_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown naming kind {cfg.kind!r}") from None
    return factory(cfg, deps)


@register_namer("nearby")
def _make_nearby(cfg: NamingPolicyNearbyModel, deps):
    return NearbyPlaceNamer(
        deps["provider"],
        subway_radius_m=cfg.subway_radius_m,
        cafe_radius_m=cfg.cafe_radius_m,
        convenience_radius_m=cfg.convenience_radius_m,
        fallback_label=cfg.fallback_label,
    )


@register_namer("fixed")
def _make_fixed(cfg: NamingPolicyFixedModel, deps):
    return FixedPlaceNamer(cfg.label)
