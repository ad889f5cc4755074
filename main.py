# main.py
import argparse
import asyncio
import logging

from rendezvous.app.build import build
from rendezvous.config.models import PlannerModel
from rendezvous.io.config import load_config
from rendezvous.io.scenario import load_scenario
from rendezvous.services.renderer import RecordingRenderer

log = logging.getLogger("rendezvous.main")


def run(scenario_path: str, config_path: str | None = None, use_logging: bool = False) -> str:
    cfg = load_config(config_path) if config_path else PlannerModel()
    scenario = load_scenario(scenario_path)

    renderer = RecordingRenderer()
    app = build(cfg, provider=scenario.provider, renderer=renderer, use_logging=use_logging)
    result = app.planner.calculate_sync(
        scenario.travelers, scenario.destination, scenario.arrive_by
    )
    log.info("drew %d paths, %d joined segments", len(renderer.paths()), len(result.overlaps))
    return result.narrative


def suggest(scenario_path: str, config_path: str | None = None) -> list[str]:
    """Midpoint destination ideas for the scenario's travelers, one line each."""
    cfg = load_config(config_path) if config_path else PlannerModel()
    scenario = load_scenario(scenario_path)

    app = build(cfg, provider=scenario.provider, renderer=RecordingRenderer(), use_logging=False)
    places = asyncio.run(app.recommend_midpoint(scenario.travelers))
    return [
        f"{p.category_label}: {p.name}" + (f" ({p.address})" if p.address else "") for p in places
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="Plan where a group of travelers can meet en route")
    parser.add_argument("scenario", help="Path to scenario JSON")
    parser.add_argument("--config", help="Path to planner config JSON")
    parser.add_argument("--log", action="store_true", help="Emit JSON run logs and events")
    parser.add_argument(
        "--suggest", action="store_true", help="List destination ideas around the travelers' midpoint"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
    if args.suggest:
        print("\n".join(suggest(args.scenario, args.config)) or "No suggestions.")
        return
    print(run(args.scenario, args.config, use_logging=args.log))


if __name__ == "__main__":
    main()
