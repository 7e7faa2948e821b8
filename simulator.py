#!/usr/bin/env python3
"""
Deadlock Toolkit
Command-line driver for the allocation engine.

Loads a scenario (synthesized or from JSON), optionally applies requests,
checks for deadlock, prints prevention advice and resolves deadlocks.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from algorithms.prevention import PreventionStrategy
from algorithms.scenarios import SCENARIOS, Scenario, random_scenario
from analysis.events import DeadlockEvent
from analysis.metrics import format_metrics_report
from engine import AllocationEngine
from models.errors import ConfigurationError
from utils.logger import EngineLogger
from utils.scenario_loader import ScenarioLoadError, load_scenario


class LoggingListener:
    """Echo deadlock lifecycle events through the logger."""

    def __init__(self, logger: EngineLogger):
        self.logger = logger

    def on_deadlock_detected(self, processes: List[int], event: DeadlockEvent) -> None:
        detected = event.detection_time.strftime("%H:%M:%S")
        self.logger.log(f"  listener: deadlock among {processes} at {detected}", "debug")

    def on_deadlock_resolved(self, processes: List[int], strategy: str) -> None:
        self.logger.log(f"  listener: deadlock among {processes} resolved by {strategy}", "debug")


def build_scenario(args: argparse.Namespace) -> Scenario:
    """
    Build the scenario selected on the command line.

    Raises:
        ScenarioLoadError: If a JSON file cannot be loaded
        ConfigurationError: If synthesizer arguments are invalid
    """
    if args.scenario == "random":
        return random_scenario(
            args.processes,
            args.resources,
            args.deadlock_probability,
            rng=args.seed
        )
    if args.scenario in SCENARIOS:
        return SCENARIOS[args.scenario](args.size)
    if Path(args.scenario).suffix == ".json":
        return load_scenario(args.scenario)
    raise ConfigurationError(
        f"Unknown scenario '{args.scenario}' "
        f"(choose {', '.join(sorted(SCENARIOS))}, random, or a .json file)"
    )


def parse_request(text: str) -> Tuple[int, int, int]:
    """Parse "P:R:UNITS" into integers."""
    try:
        process, resource, units = (int(part) for part in text.split(":"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Request must look like P:R:UNITS, got '{text}'")
    return process, resource, units


def run(args: argparse.Namespace, logger: EngineLogger) -> int:
    """
    Run the engine against one scenario.

    Order:
    1. Load scenario and display initial state
    2. Apply --wait edges, then --request allocations (in command-line order)
    3. Check for deadlock
    4. Print the requested prevention report
    5. If --resolve: terminate victims until no cycle remains

    Returns:
        Process exit code
    """
    try:
        scenario = build_scenario(args)
    except (ScenarioLoadError, ConfigurationError) as e:
        logger.log(f"Failed to load scenario: {e}", "error")
        return 1

    engine = AllocationEngine(logger=logger)
    engine.add_deadlock_listener(LoggingListener(logger))
    engine.load_scenario(scenario)

    logger.log(f"\n{'='*60}")
    logger.log(f"SCENARIO: {scenario.name}")
    logger.log(f"{'='*60}")
    logger.log(engine.display())

    try:
        for process, resource, units in args.wait or []:
            engine.wait_for_resource(process, resource, units)
        for process, resource, units in args.request or []:
            engine.request_resource(process, resource, units)
    except ConfigurationError as e:
        logger.log(f"Invalid operation: {e}", "error")
        return 1

    sequence = engine.safety_state.safe_sequence()
    if sequence is None:
        logger.log("\nBanker's check: UNSAFE state")
    else:
        logger.log("\nBanker's check: SAFE, sequence " + " -> ".join(f"P{p}" for p in sequence))

    if not engine.detect_deadlock():
        logger.log("Deadlock check: No deadlock detected")

    if args.strategy:
        logger.log("")
        logger.log(engine.apply_prevention_strategy(PreventionStrategy(args.strategy)))

    if args.resolve:
        victims = engine.resolve_all_deadlocks()
        if victims:
            logger.log("\nTerminated: " + ", ".join(f"P{v}" for v in victims))
            logger.log(engine.display())

    logger.log(format_metrics_report(engine.metrics, verbose=args.verbose))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the toolkit."""
    parser = argparse.ArgumentParser(
        description='Deadlock Toolkit - detection, avoidance, prevention and recovery'
    )
    parser.add_argument(
        '--scenario',
        default='circular_wait',
        help='circular_wait, dining_philosophers, random, or path to a scenario JSON file'
    )
    parser.add_argument(
        '--size',
        type=int,
        default=3,
        help='Number of processes for circular_wait / dining_philosophers (default: 3)'
    )
    parser.add_argument('--processes', type=int, default=4, help='Processes for random scenarios')
    parser.add_argument('--resources', type=int, default=3, help='Resources for random scenarios')
    parser.add_argument(
        '--deadlock-probability',
        type=float,
        default=0.5,
        help='Chance of injecting a request chain in random scenarios (default: 0.5)'
    )
    parser.add_argument('--seed', type=int, default=None, help='Seed for random scenarios')
    parser.add_argument(
        '--request',
        type=parse_request,
        action='append',
        metavar='P:R:UNITS',
        help='Request units through the Banker\'s check (repeatable)'
    )
    parser.add_argument(
        '--wait',
        type=parse_request,
        action='append',
        metavar='P:R:UNITS',
        help='Record a blocked request edge (repeatable)'
    )
    parser.add_argument(
        '--strategy',
        choices=[s.value for s in PreventionStrategy],
        help='Print a prevention strategy report'
    )
    parser.add_argument(
        '--resolve',
        action='store_true',
        help='Terminate victims until no deadlock remains'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument('--log-file', type=str, default=None, help='Also write the log to a file')

    args = parser.parse_args(argv)

    logger = EngineLogger(verbose=args.verbose, log_file=args.log_file)
    try:
        return run(args, logger)
    finally:
        logger.close()


if __name__ == '__main__':
    sys.exit(main())
