"""
Command line entry point: run a dispatch simulation or compare scenarios.
"""

import argparse
import logging
import sys

from domain.exceptions import DispatchError
from model.city_model import CityModel
from model.config import DEFAULT_SIMULATION_CONFIG, DEFAULT_SIMULATION_STEPS
from scenarios.scenario_analyzer import ScenarioAnalyzer

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Taxi dispatch simulation")
    parser.add_argument(
        "command",
        choices=["simulate", "compare-strategies", "fleet-size"],
        help="What to run",
    )
    parser.add_argument("--steps", type=int, default=DEFAULT_SIMULATION_STEPS,
                        help="Simulation steps per run")
    parser.add_argument("--taxis", type=int, default=DEFAULT_SIMULATION_CONFIG['num_taxis'],
                        help="Fleet size")
    parser.add_argument("--request-rate", type=float,
                        default=DEFAULT_SIMULATION_CONFIG['request_rate'],
                        help="Expected new ride requests per step")
    parser.add_argument("--fifo", action="store_true",
                        help="Dispatch the longest idle taxi instead of the nearest one")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def run(args):
    config = dict(DEFAULT_SIMULATION_CONFIG)
    config.update({
        'num_taxis': args.taxis,
        'request_rate': args.request_rate,
        'use_nearest': not args.fifo,
        'seed': args.seed,
    })
    
    if args.command == "simulate":
        model = CityModel(**config)
        for _ in range(args.steps):
            model.step()
            if not model.running:
                break
        for key, value in model.summary().items():
            print(f"{key:>22}: {value}")
        return
    
    analyzer = ScenarioAnalyzer(config)
    if args.command == "compare-strategies":
        frame = analyzer.analyze_strategy_impact(simulation_steps=args.steps)
    else:
        frame = analyzer.analyze_fleet_size_impact(simulation_steps=args.steps)
    
    print(frame.to_string(index=False))
    for recommendation in analyzer.get_recommendations():
        print(f"- {recommendation['message']}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        run(args)
    except DispatchError as e:
        logger.error("Dispatch failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
