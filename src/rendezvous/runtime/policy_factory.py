from rendezvous.app.protocols import LeaderPolicy
from rendezvous.config.models import LeaderPolicyCarFirstModel, LeaderPolicyUnion
from rendezvous.policy.leader import CarFirstLeaderPolicy


def make_leader_policy(cfg: LeaderPolicyUnion) -> LeaderPolicy:
    if isinstance(cfg, LeaderPolicyCarFirstModel):
        return CarFirstLeaderPolicy()
    else:
        raise TypeError(cfg)
