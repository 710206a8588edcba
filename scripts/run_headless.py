# --- START OF FILE scripts/run_headless.py ---

"""Runs the block stacker replanning loop without a renderer and reports the outcome."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from block_stacker.agent_config import HeadlessRunConfig, load_config
from block_stacker.models.datatypes import PlannedAction
from block_stacker.models.exceptions import ConfigurationError
from block_stacker.planner_modules.replanner import run_block_stacker_headless
from block_stacker.scenarios import get_scenario_by_id, scenario_ids

logger = logging.getLogger("run_headless")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="Path to a config.toml file.")
    parser.add_argument("--scenario", choices=scenario_ids(), default=None,
                        help="Named scenario; takes precedence over --config scenario values.")
    parser.add_argument("--max-iterations", type=int, default=None, help="Override the iteration budget.")
    parser.add_argument("--lookahead", action="store_true", help="Plan the whole staircase in one pass.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON.")
    return parser


def resolve_config(args: argparse.Namespace) -> HeadlessRunConfig:
    base = HeadlessRunConfig.from_dict(load_config(args.config)) if args.config else HeadlessRunConfig()
    if args.scenario:
        config = get_scenario_by_id(args.scenario).to_config(
            grid_width=base.grid_width, grid_depth=base.grid_depth, half_extents=base.half_extents,
            planner=base.planner, navigation=base.navigation,
        )
    else:
        config = base
    if args.max_iterations is not None:
        config.max_iterations = args.max_iterations
    if args.lookahead:
        config.planner.full_staircase_lookahead = True
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    try:
        config = resolve_config(args)
        config.validate()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    def print_action(action: PlannedAction) -> None:
        if not args.json:
            print(f"  [{action.type.value:>8}] {action.description}")

    result = run_block_stacker_headless(config, on_action=print_action)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        status = "reached goal" if result.reached_goal else "did NOT reach goal"
        print(f"\nAgent {status} ({result.outcome.value}) after {result.iterations} iterations, "
              f"{len(result.actions)} actions.")
        print(f"Final agent position: {tuple(round(c, 2) for c in result.final_agent_pos)}")
    return 0 if result.reached_goal else 1


if __name__ == "__main__":
    sys.exit(main())

# --- END OF FILE scripts/run_headless.py ---
