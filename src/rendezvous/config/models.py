from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    run_id: str = "local"


# ----------------- GEOMETRY ---------------------


class GeometryModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    meeting_radius_m: float = 50.0  # car <-> transit/walk proximity
    destination_guard_m: float = 500.0  # reject meetings this close to the destination
    shared_run_tolerance_m: float = 30.0
    shared_run_angle_deg: float = 45.0
    shared_run_lookahead: int = 5
    shared_run_min_points: int = 6
    walk_sample_stride: int = 1  # check every n-th walking point

    @field_validator(
        "meeting_radius_m", "destination_guard_m", "shared_run_tolerance_m", "shared_run_angle_deg"
    )
    @classmethod
    def _nonneg(cls, v: float, info: ValidationInfo) -> float:
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator("shared_run_lookahead", "shared_run_min_points", "walk_sample_stride")
    @classmethod
    def _positive(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v


class SchedulingModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    follower_buffer_s: int = 5 * 60  # follower arrives this much before the leader

    @field_validator("follower_buffer_s")
    @classmethod
    def _nonneg(cls, v: int) -> int:
        if v < 0:
            raise ValueError("follower_buffer_s must be >= 0")
        return v


class FetchModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    max_concurrency: int = Field(default=8, ge=1)


# ----------------- POLICIES ---------------------


class TimePolicyAlwaysModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["always"] = "always"


class TimePolicyMaxWaitModel(BaseModel):
    """Reject matches whose arrival times at the meeting point differ by more than max_wait_s."""

    model_config = ConfigDict(extra="forbid")
    kind: Literal["max_wait"] = "max_wait"
    max_wait_s: float = Field(gt=0)  # no default: the window is a product decision


TimePolicyUnion = Annotated[
    TimePolicyAlwaysModel | TimePolicyMaxWaitModel, Field(discriminator="kind")
]


class LeaderPolicyCarFirstModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["car_first"] = "car_first"


LeaderPolicyUnion = Annotated[LeaderPolicyCarFirstModel, Field(discriminator="kind")]


class NamingPolicyNearbyModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["nearby"] = "nearby"
    subway_radius_m: int = 300
    cafe_radius_m: int = 100
    convenience_radius_m: int = 100
    fallback_label: str = "Meeting point"


class NamingPolicyFixedModel(BaseModel):
    """Never queries the provider; every meeting point gets the same label."""

    model_config = ConfigDict(extra="forbid")
    kind: Literal["fixed"] = "fixed"
    label: str = "Meeting point"


NamingPolicyUnion = Annotated[
    NamingPolicyNearbyModel | NamingPolicyFixedModel, Field(discriminator="kind")
]


# ------------------------------------------------------------------


class PlannerModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "rendezvous"
    log: LogModel = LogModel()
    geometry: GeometryModel = GeometryModel()
    scheduling: SchedulingModel = SchedulingModel()
    fetch: FetchModel = FetchModel()
    time_policy: TimePolicyUnion = Field(default_factory=TimePolicyAlwaysModel)
    leader_policy: LeaderPolicyUnion = Field(default_factory=LeaderPolicyCarFirstModel)
    naming: NamingPolicyUnion = Field(default_factory=NamingPolicyNearbyModel)
