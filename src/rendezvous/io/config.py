# src/rendezvous/io/config.py
import os

from rendezvous.config.models import PlannerModel


def load_config(path: str) -> PlannerModel:
    path = os.path.expandvars(os.path.expanduser(path))
    with open(path, encoding="utf-8") as f:
        return PlannerModel.model_validate_json(f.read())
