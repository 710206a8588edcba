# --- START OF FILE agent_config.py ---

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import toml

from .models.datatypes import Cell, NavMeshOptions, StepDefinition, SupplySource, Vec3
from .models.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# --- Constants & Configuration ---
BLOCK_SIZE = 1.0
GRID_WIDTH = 8
GRID_DEPTH = 8

# Agent collision half-extents used by path queries (x, y, z)
HALF_EXTENTS: Vec3 = (0.3, 0.6, 0.3)

# Agent counts as "on the goal" within a quarter block in each direction
GOAL_HORIZONTAL_TOLERANCE = BLOCK_SIZE * 0.25
GOAL_VERTICAL_TOLERANCE = BLOCK_SIZE * 0.25

ITERATION_BUDGET_BASE = 16
ITERATION_BUDGET_PER_STEP = 8
DEFAULT_MAX_PLANNING_DEPTH = 12
DEFAULT_PROFILER_HISTORY_SIZE = 100

# --- Canonical scenario ---
STAIRS: List[StepDefinition] = [
    StepDefinition(Cell(3, 2), 1, "Step 1"),
    StepDefinition(Cell(3, 3), 2, "Step 2"),
    StepDefinition(Cell(3, 4), 3, "Step 3"),
    StepDefinition(Cell(3, 5), 4, "Step 4"),
]

START_CELL = Cell(3, 1)
GOAL_CELL = Cell(3, 6)
GOAL_HEIGHT = 5

SUPPLY_SOURCES: List[SupplySource] = [
    SupplySource(Cell(1, 1), 3),
    SupplySource(Cell(5, 2), 2),
    SupplySource(Cell(6, 4), 2),
    SupplySource(Cell(2, 6), 2),
    SupplySource(Cell(4, 4), 3),
]


def compute_iteration_budget(step_count: int,
                             base: int = ITERATION_BUDGET_BASE,
                             per_step: int = ITERATION_BUDGET_PER_STEP) -> int:
    return max(base, base + step_count * per_step)


@dataclass
class PlannerSettings:
    max_depth: int = DEFAULT_MAX_PLANNING_DEPTH
    iteration_base: int = ITERATION_BUDGET_BASE
    iterations_per_step: int = ITERATION_BUDGET_PER_STEP
    full_staircase_lookahead: bool = False
    profiler_history_size: int = DEFAULT_PROFILER_HISTORY_SIZE


@dataclass
class HeadlessRunConfig:
    """Run configuration. Every field defaults to the canonical scenario and can be overridden on its own."""
    start_cell: Cell = START_CELL
    goal_cell: Cell = GOAL_CELL
    goal_height: int = GOAL_HEIGHT
    stairs: List[StepDefinition] = field(default_factory=lambda: list(STAIRS))
    supply_sources: List[SupplySource] = field(default_factory=lambda: list(SUPPLY_SOURCES))
    initial_heights: List[SupplySource] = field(default_factory=list)
    max_iterations: Optional[int] = None
    start_carrying: bool = False
    grid_width: int = GRID_WIDTH
    grid_depth: int = GRID_DEPTH
    half_extents: Vec3 = HALF_EXTENTS
    planner: PlannerSettings = field(default_factory=PlannerSettings)
    navigation: NavMeshOptions = field(default_factory=NavMeshOptions)

    @property
    def iteration_budget(self) -> int:
        if self.max_iterations is not None:
            return self.max_iterations
        return compute_iteration_budget(
            len(self.stairs), self.planner.iteration_base, self.planner.iterations_per_step
        )

    def in_bounds(self, cell: Cell) -> bool:
        return 0 <= cell.x < self.grid_width and 0 <= cell.z < self.grid_depth

    def validate(self) -> None:
        """Raises ConfigurationError if any cell is off-grid or any height/budget is invalid."""
        if self.grid_width <= 0 or self.grid_depth <= 0:
            raise ConfigurationError(f"Grid dimensions must be positive, got {self.grid_width}x{self.grid_depth}.")
        named_cells: List[Tuple[str, Cell]] = [("start_cell", self.start_cell), ("goal_cell", self.goal_cell)]
        named_cells += [(f"stairs[{i}]", s.cell) for i, s in enumerate(self.stairs)]
        named_cells += [(f"supply_sources[{i}]", s.cell) for i, s in enumerate(self.supply_sources)]
        named_cells += [(f"initial_heights[{i}]", s.cell) for i, s in enumerate(self.initial_heights)]
        for name, cell in named_cells:
            if not self.in_bounds(cell):
                raise ConfigurationError(f"{name} {cell} is outside the {self.grid_width}x{self.grid_depth} grid.")
        heights = [self.goal_height] + [s.height for s in self.supply_sources] + [s.height for s in self.initial_heights]
        if any(h < 0 for h in heights):
            raise ConfigurationError("Column heights must be non-negative.")
        if any(s.target_height < 0 for s in self.stairs):
            raise ConfigurationError("Step target heights must be non-negative.")
        if self.max_iterations is not None and self.max_iterations <= 0:
            raise ConfigurationError(f"max_iterations must be positive, got {self.max_iterations}.")
        if self.planner.max_depth <= 0:
            raise ConfigurationError(f"planner.max_depth must be positive, got {self.planner.max_depth}.")

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "HeadlessRunConfig":
        """Builds a run config from a parsed config.toml mapping. Missing keys keep their defaults."""
        kwargs: Dict[str, Any] = {}

        world = _section(config, "world")
        if "grid_width" in world: kwargs["grid_width"] = _as_int(world["grid_width"], "world.grid_width")
        if "grid_depth" in world: kwargs["grid_depth"] = _as_int(world["grid_depth"], "world.grid_depth")

        scenario = _section(config, "scenario")
        known_scenario_keys = {"start_cell", "goal_cell", "goal_height", "stairs", "supply_sources",
                               "initial_heights", "max_iterations", "start_carrying"}
        for unknown in sorted(set(scenario) - known_scenario_keys):
            logger.warning(f"HeadlessRunConfig: Ignoring unknown [scenario] key '{unknown}'.")
        if "start_cell" in scenario: kwargs["start_cell"] = parse_cell(scenario["start_cell"], "scenario.start_cell")
        if "goal_cell" in scenario: kwargs["goal_cell"] = parse_cell(scenario["goal_cell"], "scenario.goal_cell")
        if "goal_height" in scenario: kwargs["goal_height"] = _as_int(scenario["goal_height"], "scenario.goal_height")
        if "stairs" in scenario:
            kwargs["stairs"] = [_parse_step(entry, f"scenario.stairs[{i}]") for i, entry in enumerate(scenario["stairs"])]
        if "supply_sources" in scenario:
            kwargs["supply_sources"] = [_parse_column(entry, f"scenario.supply_sources[{i}]")
                                        for i, entry in enumerate(scenario["supply_sources"])]
        if "initial_heights" in scenario:
            kwargs["initial_heights"] = [_parse_column(entry, f"scenario.initial_heights[{i}]")
                                         for i, entry in enumerate(scenario["initial_heights"])]
        if "max_iterations" in scenario:
            kwargs["max_iterations"] = _as_int(scenario["max_iterations"], "scenario.max_iterations")
        if "start_carrying" in scenario:
            kwargs["start_carrying"] = bool(scenario["start_carrying"])

        navigation = _section(config, "navigation")
        nav_kwargs: Dict[str, Any] = {}
        for key in ("walkable_climb", "walkable_height", "walkable_slope_angle_degrees"):
            if key in navigation:
                nav_kwargs[key] = _as_float(navigation[key], f"navigation.{key}")
        if nav_kwargs:
            kwargs["navigation"] = NavMeshOptions(**nav_kwargs)
        if "agent_half_extents" in navigation:
            extents = navigation["agent_half_extents"]
            if not isinstance(extents, (list, tuple)) or len(extents) != 3:
                raise ConfigurationError("navigation.agent_half_extents must be a list of three numbers.")
            kwargs["half_extents"] = tuple(_as_float(v, "navigation.agent_half_extents") for v in extents)

        planner = _section(config, "planner")
        settings = PlannerSettings()
        if "max_depth" in planner: settings.max_depth = _as_int(planner["max_depth"], "planner.max_depth")
        if "iteration_base" in planner: settings.iteration_base = _as_int(planner["iteration_base"], "planner.iteration_base")
        if "iterations_per_step" in planner:
            settings.iterations_per_step = _as_int(planner["iterations_per_step"], "planner.iterations_per_step")
        if "full_staircase_lookahead" in planner:
            settings.full_staircase_lookahead = bool(planner["full_staircase_lookahead"])
        if "profiler_history_size" in planner:
            settings.profiler_history_size = _as_int(planner["profiler_history_size"], "planner.profiler_history_size")
        kwargs["planner"] = settings

        return cls(**kwargs)


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Reads a toml config file. A missing file yields an empty mapping (all defaults)."""
    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Config file not found: {path}. Using defaults.")
        return {}
    try:
        with open(path, "r") as f:
            config_data = toml.load(f)
    except toml.TomlDecodeError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e
    logger.info(f"Loaded configuration from {path}")
    return config_data


def load_run_config(config_path: Union[str, Path]) -> HeadlessRunConfig:
    return HeadlessRunConfig.from_dict(load_config(config_path))


# --- Parsing helpers ---

def parse_cell(value: Any, where: str = "cell") -> Cell:
    """Accepts [x, z] or {x = .., z = ..}."""
    if isinstance(value, Cell):
        return value
    if isinstance(value, Mapping) and "x" in value and "z" in value:
        return Cell(_as_int(value["x"], f"{where}.x"), _as_int(value["z"], f"{where}.z"))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return Cell(_as_int(value[0], f"{where}[0]"), _as_int(value[1], f"{where}[1]"))
    raise ConfigurationError(f"{where}: expected [x, z] or {{x, z}}, got {value!r}")


def _parse_step(entry: Any, where: str) -> StepDefinition:
    if not isinstance(entry, Mapping) or "cell" not in entry or "target_height" not in entry:
        raise ConfigurationError(f"{where}: step needs 'cell' and 'target_height'.")
    cell = parse_cell(entry["cell"], f"{where}.cell")
    label = str(entry.get("label", f"Step {cell}"))
    return StepDefinition(cell, _as_int(entry["target_height"], f"{where}.target_height"), label)


def _parse_column(entry: Any, where: str) -> SupplySource:
    if not isinstance(entry, Mapping) or "cell" not in entry or "height" not in entry:
        raise ConfigurationError(f"{where}: entry needs 'cell' and 'height'.")
    return SupplySource(parse_cell(entry["cell"], f"{where}.cell"), _as_int(entry["height"], f"{where}.height"))


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = config.get(name, {})
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"[{name}] must be a table, got {type(section).__name__}.")
    return section


def _as_int(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{where} must be an integer, got {value!r}")
    return value


def _as_float(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{where} must be a number, got {value!r}")
    return float(value)

# --- END OF FILE agent_config.py ---
