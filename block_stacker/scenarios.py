# --- START OF FILE scenarios.py ---

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .agent_config import HeadlessRunConfig
from .models.datatypes import Cell, StepDefinition, SupplySource
from .models.exceptions import ConfigurationError


@dataclass(frozen=True)
class Scenario:
    id: str
    name: str
    description: str
    overrides: Dict[str, Any] = field(default_factory=dict)

    def to_config(self, **extra: Any) -> HeadlessRunConfig:
        """Fresh run config for this scenario; extra keyword overrides win."""
        kwargs = {k: list(v) if isinstance(v, list) else v for k, v in self.overrides.items()}
        kwargs.update(extra)
        return HeadlessRunConfig(**kwargs)


_TWO_STEP_STAIRS = (
    StepDefinition(Cell(3, 2), 1, "Step 1"),
    StepDefinition(Cell(3, 3), 2, "Goal column"),
)

SCENARIOS: List[Scenario] = [
    Scenario("default", "Default (Full Staircase)", "Build a 4-step staircase to reach the goal tower"),
    Scenario(
        "at_goal", "Already at Goal", "Agent starts at goal position",
        {"start_cell": Cell(3, 3), "goal_cell": Cell(3, 3), "goal_height": 1, "stairs": [], "supply_sources": []},
    ),
    Scenario(
        "simple_navigate", "Simple Navigation", "Navigate to goal when goal height is 1 (no pick/place needed)",
        {"start_cell": Cell(1, 1), "goal_cell": Cell(3, 3), "goal_height": 1, "stairs": [], "supply_sources": []},
    ),
    Scenario(
        "walk_step", "Walk Existing Step", "Walk an existing single step to the goal",
        {
            "start_cell": Cell(3, 1), "goal_cell": Cell(3, 2), "goal_height": 1,
            "stairs": [], "supply_sources": [],
            "initial_heights": [SupplySource(Cell(3, 2), 1)],
            "max_iterations": 10,
        },
    ),
    Scenario(
        "pick_place_one", "Pick and Place One Block", "Goal height is 2, requires one block to be placed",
        {
            "start_cell": Cell(0, 0), "goal_cell": Cell(2, 2), "goal_height": 2,
            "stairs": [StepDefinition(Cell(2, 1), 1, "Step to goal")],
            "supply_sources": [SupplySource(Cell(0, 1), 1)],
            "max_iterations": 20,
        },
    ),
    Scenario(
        "walk_existing_stairs", "Walk Existing Two-Step Staircase", "Walk an existing two-step staircase to the goal",
        {
            "start_cell": Cell(3, 1), "goal_cell": Cell(3, 3), "goal_height": 0,
            "stairs": list(_TWO_STEP_STAIRS), "supply_sources": [],
            "initial_heights": [SupplySource(Cell(3, 2), 1), SupplySource(Cell(3, 3), 2)],
            "max_iterations": 20,
        },
    ),
    Scenario(
        "build_two_steps", "Build Two-Step Staircase", "Build a two-step staircase and reach goal",
        {
            "start_cell": Cell(3, 1), "goal_cell": Cell(3, 3), "goal_height": 0,
            "stairs": list(_TWO_STEP_STAIRS),
            "supply_sources": [SupplySource(Cell(1, 1), 2), SupplySource(Cell(5, 2), 2)],
            "max_iterations": 200,
        },
    ),
    Scenario(
        "direct_place_adjacent", "Direct Place on Adjacent", "Place block directly on adjacent cell when at same height",
        {
            "start_cell": Cell(2, 2), "goal_cell": Cell(3, 3), "goal_height": 2,
            "stairs": [StepDefinition(Cell(3, 2), 1, "Step to goal")],
            "supply_sources": [SupplySource(Cell(2, 2), 2)],
            "initial_heights": [SupplySource(Cell(2, 2), 1)],
            "max_iterations": 50,
        },
    ),
]


def scenario_ids() -> List[str]:
    return [s.id for s in SCENARIOS]


def get_scenario_by_id(scenario_id: str) -> Scenario:
    for scenario in SCENARIOS:
        if scenario.id == scenario_id:
            return scenario
    raise ConfigurationError(f"Scenario not found: {scenario_id}. Known: {', '.join(scenario_ids())}")


def get_default_scenario() -> Scenario:
    return SCENARIOS[0]

# --- END OF FILE scenarios.py ---
