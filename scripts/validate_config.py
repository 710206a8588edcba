# --- START OF FILE scripts/validate_config.py ---

"""Validates a block stacker configuration file against requirements."""

import sys
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

import toml

from block_stacker.agent_config import HeadlessRunConfig
from block_stacker.models.exceptions import ConfigurationError


# --- Configuration Requirements ---
REQUIRED_CONFIG_KEYS = {
    "world": {
        "grid_width": int,
        "grid_depth": int,
    },
    "scenario": {
        "start_cell": list,
        "goal_cell": list,
        "goal_height": int,
        "stairs": list,
        "supply_sources": list,
    },
    "navigation": {
        "walkable_climb": float,
        "walkable_height": float,
        "walkable_slope_angle_degrees": float,
        "agent_half_extents": list,
    },
    "planner": {
        "max_depth": int,
        "iteration_base": int,
        "iterations_per_step": int,
        "full_staircase_lookahead": bool,
        "profiler_history_size": int,
    },
}

OPTIONAL_CONFIG_KEYS = {
    "scenario": {
        "initial_heights": list,
        "max_iterations": int,
        "start_carrying": bool,
    },
}

VALUE_CHECKS: Dict[str, Any] = {
    "world.grid_width": lambda x: x > 0,
    "world.grid_depth": lambda x: x > 0,
    "scenario.goal_height": lambda x: x >= 0,
    "scenario.max_iterations": lambda x: x > 0,
    "navigation.walkable_climb": lambda x: x >= 0,
    "navigation.walkable_height": lambda x: x > 0,
    "navigation.walkable_slope_angle_degrees": lambda x: 0 <= x < 90,
    "navigation.agent_half_extents": lambda x: len(x) == 3 and all(isinstance(v, (int, float)) and v > 0 for v in x),
    "planner.max_depth": lambda x: x > 0,
    "planner.iteration_base": lambda x: x > 0,
    "planner.iterations_per_step": lambda x: x >= 0,
    "planner.profiler_history_size": lambda x: x > 0,
}


def _check_type(value: Any, expected: type) -> Tuple[bool, bool]:
    """Returns (ok, int_for_float)."""
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return True, True
    if expected is int and isinstance(value, bool):
        return False, False
    return isinstance(value, expected), False


def _check_keys(config: Dict[str, Any], table: Dict[str, Dict[str, type]], required: bool,
                errors: List[str], warnings: List[str]) -> None:
    for section, keys_config in table.items():
        if section not in config:
            if required:
                errors.append(f"Missing required configuration section: '[{section}]'")
            continue
        if not isinstance(config[section], dict):
            errors.append(f"Configuration section '[{section}]' is not a valid table/dictionary.")
            continue
        for key, expected_type in keys_config.items():
            if key not in config[section]:
                if required:
                    errors.append(f"Missing required key '{key}' in section '[{section}]'")
                continue
            ok, int_for_float = _check_type(config[section][key], expected_type)
            if int_for_float:
                warnings.append(f"Key '{key}' in section '[{section}]' is an integer, but float expected. Will be treated as float.")
            if not ok:
                errors.append(f"Invalid type for key '{key}' in section '[{section}]'. "
                              f"Expected {expected_type.__name__}, found {type(config[section][key]).__name__}.")


def validate_config(config_filepath: str = "config.toml") -> bool:
    config_path = Path(config_filepath)
    errors: List[str] = []
    warnings: List[str] = []

    if not config_path.exists() or not config_path.is_file():
        print(f"❌ ERROR: Configuration file not found or is not a file: {config_path.resolve()}")
        return False

    try:
        config = toml.load(config_path)
        print(f"ℹ️ Successfully parsed config file: {config_path.resolve()}")
    except toml.TomlDecodeError as e:
        print(f"❌ ERROR: Failed to parse TOML configuration file: {e}")
        return False

    # --- Key and Type Validation ---
    _check_keys(config, REQUIRED_CONFIG_KEYS, True, errors, warnings)
    _check_keys(config, OPTIONAL_CONFIG_KEYS, False, errors, warnings)

    # --- Value Validation ---
    for key_path, check in VALUE_CHECKS.items():
        section, key = key_path.split('.', 1)
        if section in config and isinstance(config.get(section), dict) and key in config[section]:
            value = config[section][key]
            try:
                if not check(value):
                    errors.append(f"Invalid value for '{key_path}': {value}.")
            except TypeError as e:
                errors.append(f"Error validating value for '{key_path}' ({value}): {e}")

    # --- Cross-field Validation (cells in bounds, well-formed entries) ---
    if not errors:
        try:
            HeadlessRunConfig.from_dict(config).validate()
        except ConfigurationError as e:
            errors.append(str(e))

    # --- Print Results ---
    if warnings:
        print("\n--- Configuration Warnings ---")
        for warning in warnings: print(f"⚠️ WARNING: {warning}")
    if errors:
        print("\n--- Configuration Errors ---")
        for error in errors: print(f"❌ ERROR: {error}")
        print("\nConfiguration is INVALID.")
    elif warnings: print("\nConfiguration is VALID with warnings.")
    else: print("\n✅ Configuration is VALID.")

    return not errors


def main(argv: List[str]) -> int:
    logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
    default_config_path = Path(__file__).resolve().parent.parent / "config.toml"
    config_to_validate_path_str = argv[0] if argv else str(default_config_path)

    if not Path(config_to_validate_path_str).exists():
        print(f"❌ ERROR: Config file '{config_to_validate_path_str}' not found. Please specify a valid path or place config.toml in the project root.")
        return 2

    return 0 if validate_config(config_to_validate_path_str) else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

# --- END OF FILE scripts/validate_config.py ---
