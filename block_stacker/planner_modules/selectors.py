# block_stacker/planner_modules/selectors.py

import logging
import math
from typing import Optional, Sequence

from ..agent_config import BLOCK_SIZE
from ..models.datatypes import AdjacentMove, Cell, Grid, PlannedStep, StepDefinition, SupplySource, Vec3
from ..utils.grid_utils import (cell_top, get_agent_height, is_adjacent, neighbours,
                                path_length, pos_to_cell)
from .world_model import WorldState

logger_selectors = logging.getLogger(__name__)


def get_frontier(grid: Grid, stairs: Sequence[StepDefinition]) -> Optional[StepDefinition]:
    """First step, in declaration order, still below its target height. None once the staircase is complete."""
    for step in stairs:
        if grid[step.cell.x][step.cell.z] < step.target_height:
            return step
    return None


def frontier_anchor(stairs: Sequence[StepDefinition], frontier: StepDefinition, start_cell: Cell) -> Cell:
    """Staging cell for the frontier: the previous step's cell, or the start cell for the first step."""
    for index, step in enumerate(stairs):
        if step is frontier or step == frontier:
            return start_cell if index == 0 else stairs[index - 1].cell
    return start_cell


def frontier_step(grid: Grid, stairs: Sequence[StepDefinition], start_cell: Cell) -> Optional[PlannedStep]:
    """Step record with no supply trip, for when a block is already in hand."""
    frontier = get_frontier(grid, stairs)
    if frontier is None:
        return None
    return PlannedStep(frontier=frontier, anchor=frontier_anchor(stairs, frontier, start_cell))


def choose_supply(world: WorldState, stairs: Sequence[StepDefinition],
                  supply_sources: Sequence[SupplySource], start_cell: Cell) -> Optional[PlannedStep]:
    """
    Picks the supply column whose closest reachable stand cell has the shortest
    path from the agent. Nearest-first only; future steps are not considered.
    Ties keep the supply declared first. Returns None when no supply with stock
    has a reachable stand.
    """
    grid = world.grid
    frontier = get_frontier(grid, stairs)
    if frontier is None:
        logger_selectors.debug("SupplySelector: no frontier steps remaining")
        return None
    anchor = frontier_anchor(stairs, frontier, start_cell)
    logger_selectors.debug(
        f"SupplySelector: evaluating frontier '{frontier.label}' "
        f"(height {grid[frontier.cell.x][frontier.cell.z]}/{frontier.target_height}) from {world.agent_pos}"
    )

    best: Optional[PlannedStep] = None
    best_dist = math.inf
    for source in supply_sources:
        supply = source.cell
        if grid[supply.x][supply.z] <= 0:
            logger_selectors.debug(f"SupplySelector: skipping empty supply at {supply}")
            continue

        approach: Optional[PlannedStep] = None
        approach_dist = math.inf
        for stand in neighbours(grid, supply):
            stand_top = cell_top(grid, stand)
            result = world.path_to(stand_top)
            if not result.success or not result.path:
                continue
            length = path_length(result.path)
            if length < approach_dist:
                approach_dist = length
                approach = PlannedStep(
                    frontier=frontier,
                    anchor=anchor,
                    supply=supply,
                    supply_top=cell_top(grid, supply),
                    stand=stand,
                    stand_top=stand_top,
                    path_to_stand=tuple(result.path),
                )

        if approach is None:
            logger_selectors.warning(f"SupplySelector: no reachable stand around supply {supply}")
            continue
        if approach_dist < best_dist:
            best, best_dist = approach, approach_dist

    if best is None:
        logger_selectors.warning(f"SupplySelector: no reachable supplies for frontier '{frontier.label}'")
    else:
        logger_selectors.info(
            f"SupplySelector: frontier '{frontier.label}' <- supply {best.supply} via stand {best.stand} "
            f"(distance {best_dist:.2f})"
        )
    return best


def can_place_directly_on_adjacent(grid: Grid, agent_pos: Vec3, carrying: bool, frontier_cell: Cell) -> bool:
    """True when carrying, orthogonally next to the frontier, and standing level with it or one block higher."""
    if not carrying:
        return False
    if not is_adjacent(pos_to_cell(agent_pos), frontier_cell):
        return False
    agent_height = get_agent_height(grid, agent_pos)
    frontier_height = grid[frontier_cell.x][frontier_cell.z]
    return frontier_height <= agent_height <= frontier_height + 1


def find_adjacent_placement_move(world: WorldState, frontier_cell: Cell) -> Optional[AdjacentMove]:
    """First reachable neighbour of the frontier from which a direct placement would be possible."""
    grid = world.grid
    frontier_height = grid[frontier_cell.x][frontier_cell.z]
    for adjacent in neighbours(grid, frontier_cell):
        adjacent_height = grid[adjacent.x][adjacent.z]
        target_height = max(adjacent_height, frontier_height)
        if target_height > adjacent_height + 1:
            continue
        if not frontier_height <= target_height <= frontier_height + 1:
            continue
        top = cell_top(grid, adjacent)
        target_pos: Vec3 = (top[0], target_height * BLOCK_SIZE, top[2])
        result = world.path_to(target_pos)
        if not result.success or not result.path:
            continue
        return AdjacentMove(
            path=tuple(result.path),
            target_pos=target_pos,
            adjacent_cell=adjacent,
            target_height=target_height,
            adjacent_height=adjacent_height,
        )
    return None
