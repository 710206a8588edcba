# block_stacker/planner_modules/world_model.py

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..agent_config import HeadlessRunConfig
from ..models.datatypes import (Cell, Grid, NavigateAction, PathResult, PickAction, PlaceAction,
                                PlannedAction, Vec3)
from ..models.exceptions import WorldInvariantError
from ..protocols import PathfindingOracle
from ..utils.grid_utils import cell_top, clone_grid, in_bounds, total_blocks

logger = logging.getLogger(__name__)


def create_initial_grid(config: HeadlessRunConfig) -> Grid:
    """Goal column first, then supply stock, then explicit overrides (later writes win)."""
    grid: Grid = [[0] * config.grid_depth for _ in range(config.grid_width)]
    grid[config.goal_cell.x][config.goal_cell.z] = config.goal_height
    for source in config.supply_sources:
        grid[source.cell.x][source.cell.z] = source.height
    for entry in config.initial_heights:
        grid[entry.cell.x][entry.cell.z] = entry.height
    return grid


@dataclass
class WorldState:
    """Height grid, agent pose and the navmesh that matches the grid.

    A WorldState is owned by exactly one holder. Planning works on clones; the
    replanning loop swaps its live instance for a new one only after a whole
    plan has been replayed onto it.
    """
    grid: Grid
    agent_pos: Vec3
    carrying: bool
    nav_mesh: Any
    oracle: PathfindingOracle
    half_extents: Vec3

    @classmethod
    def from_config(cls, config: HeadlessRunConfig, oracle: PathfindingOracle) -> "WorldState":
        grid = create_initial_grid(config)
        return cls(
            grid=grid,
            agent_pos=cell_top(grid, config.start_cell),
            carrying=config.start_carrying,
            nav_mesh=oracle.rebuild_nav_mesh(grid),
            oracle=oracle,
            half_extents=tuple(config.half_extents),
        )

    def clone(self) -> "WorldState":
        # Navmesh is immutable and only ever replaced, so sharing it is safe.
        return WorldState(
            grid=clone_grid(self.grid),
            agent_pos=tuple(self.agent_pos),
            carrying=self.carrying,
            nav_mesh=self.nav_mesh,
            oracle=self.oracle,
            half_extents=self.half_extents,
        )

    def height(self, cell: Cell) -> int:
        return self.grid[cell.x][cell.z]

    def top(self, cell: Cell) -> Vec3:
        return cell_top(self.grid, cell)

    @property
    def total_blocks(self) -> int:
        """Blocks on the grid plus the one in hand, if any. Constant across pick/place."""
        return total_blocks(self.grid) + (1 if self.carrying else 0)

    def path_to(self, target: Vec3, start: Optional[Vec3] = None) -> PathResult:
        origin = self.agent_pos if start is None else start
        return self.oracle.find_path(self.nav_mesh, origin, target, self.half_extents)

    def rebuild_nav_mesh(self) -> None:
        self.nav_mesh = self.oracle.rebuild_nav_mesh(self.grid)

    # --- Mutations ---

    def move_to(self, pos: Vec3) -> None:
        self.agent_pos = tuple(pos)

    def pick(self, cell: Cell) -> None:
        if not in_bounds(self.grid, cell):
            raise WorldInvariantError(f"Pick target {cell} is outside the grid.")
        if self.carrying:
            raise WorldInvariantError(f"Cannot pick at {cell}: already carrying a block.")
        if self.grid[cell.x][cell.z] <= 0:
            raise WorldInvariantError(f"Cannot pick at {cell}: column is empty.")
        self.grid[cell.x][cell.z] -= 1
        self.carrying = True
        self.rebuild_nav_mesh()

    def place(self, cell: Cell) -> None:
        if not in_bounds(self.grid, cell):
            raise WorldInvariantError(f"Place target {cell} is outside the grid.")
        if not self.carrying:
            raise WorldInvariantError(f"Cannot place at {cell}: not carrying a block.")
        self.grid[cell.x][cell.z] += 1
        self.carrying = False
        self.rebuild_nav_mesh()

    def apply_action(self, action: PlannedAction) -> None:
        """Replays one committed action: Navigate moves the agent, Pick/Place mutate the grid."""
        if isinstance(action, NavigateAction):
            self.move_to(action.destination)
        elif isinstance(action, PickAction):
            self.pick(action.cell)
        elif isinstance(action, PlaceAction):
            self.place(action.cell)
        else:
            raise WorldInvariantError(f"Unknown action type: {type(action).__name__}")
        logger.debug(f"WorldState: applied {action.type.value} -> agent at {self.agent_pos}, carrying={self.carrying}")

    def same_state_as(self, other: "WorldState") -> bool:
        return self.grid == other.grid and self.carrying == other.carrying and \
            all(abs(a - b) < 1e-6 for a, b in zip(self.agent_pos, other.agent_pos))
