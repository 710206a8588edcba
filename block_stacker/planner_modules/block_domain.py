# block_stacker/planner_modules/block_domain.py

import logging
from typing import List, Optional, Tuple

from ..agent_config import HeadlessRunConfig, compute_iteration_budget
from ..models.datatypes import (AdjacentMove, NavigateAction, PickAction, PlaceAction, PlannedAction,
                                PlannedStep, StepDefinition, Vec3)
from ..models.enums import TaskStatus
from ..utils.grid_utils import cell_top, distance3, has_agent_reached_goal
from .htn_planner import CompoundTask, Condition, HTNPlanner, action, select, sequence
from .selectors import (can_place_directly_on_adjacent, choose_supply, find_adjacent_placement_move,
                        frontier_step, get_frontier)
from .world_model import WorldState

logger = logging.getLogger(__name__)

# Two positions closer than this count as the same standing spot.
SAME_SPOT_EPS = 1e-3


class BlockWorldContext:
    """Planning context: an owned world snapshot, the action queue it produced, and per-pass scratch."""

    def __init__(self, world: WorldState, config: HeadlessRunConfig):
        self.world = world
        self.config = config
        self.action_queue: List[PlannedAction] = []
        self.pending_step: Optional[PlannedStep] = None
        # Scratch written by task bodies and consumed by the same task's effect.
        self.goal_path: Tuple[Vec3, ...] = ()
        self.climb_legs: List[NavigateAction] = []
        self.adjacent_move: Optional[AdjacentMove] = None
        self.anchor_path: Tuple[Vec3, ...] = ()
        self.lookahead: Optional["BlockWorldContext"] = None

    def fork(self) -> "BlockWorldContext":
        child = BlockWorldContext(self.world.clone(), self.config)
        child.action_queue = list(self.action_queue)
        child.pending_step = self.pending_step
        child.goal_path = self.goal_path
        child.climb_legs = list(self.climb_legs)
        child.adjacent_move = self.adjacent_move
        child.anchor_path = self.anchor_path
        return child

    def adopt(self, other: "BlockWorldContext") -> None:
        self.world = other.world
        self.action_queue = other.action_queue
        self.pending_step = other.pending_step
        self.goal_path = other.goal_path
        self.climb_legs = other.climb_legs
        self.adjacent_move = other.adjacent_move
        self.anchor_path = other.anchor_path
        self.lookahead = None

    # --- Convenience ---

    @property
    def stairs(self) -> List[StepDefinition]:
        return self.config.stairs

    def frontier(self) -> Optional[StepDefinition]:
        return get_frontier(self.world.grid, self.config.stairs)

    def goal_top(self) -> Vec3:
        return cell_top(self.world.grid, self.config.goal_cell)

    def enqueue(self, planned: PlannedAction) -> None:
        self.action_queue.append(planned)


# --- Conditions ---

def _staircase_complete(ctx: BlockWorldContext) -> bool:
    return ctx.frontier() is None


def _frontier_exists(ctx: BlockWorldContext) -> bool:
    return ctx.frontier() is not None


def _goal_not_directly_reachable(ctx: BlockWorldContext) -> bool:
    return not ctx.world.path_to(ctx.goal_top()).success


def _carrying(ctx: BlockWorldContext) -> bool:
    return ctx.world.carrying


def _has_step(ctx: BlockWorldContext) -> bool:
    return ctx.pending_step is not None


def _supply_planned(ctx: BlockWorldContext) -> bool:
    return ctx.pending_step is not None and ctx.pending_step.supply is not None


def _supply_has_stock(ctx: BlockWorldContext) -> bool:
    supply = ctx.pending_step.supply
    return not ctx.world.carrying and ctx.world.height(supply) > 0


def _can_place_directly(ctx: BlockWorldContext) -> bool:
    return can_place_directly_on_adjacent(
        ctx.world.grid, ctx.world.agent_pos, ctx.world.carrying, ctx.pending_step.frontier.cell
    )


def _not_adjacent(ctx: BlockWorldContext) -> bool:
    return not _can_place_directly(ctx)


def _lookahead_enabled(ctx: BlockWorldContext) -> bool:
    return ctx.config.planner.full_staircase_lookahead


# --- Reach / climb ---

def _find_goal_path(ctx: BlockWorldContext) -> TaskStatus:
    result = ctx.world.path_to(ctx.goal_top())
    if not result.success or not result.path:
        logger.debug("BlockDomain: goal not directly reachable")
        return TaskStatus.FAILURE
    ctx.goal_path = tuple(result.path)
    return TaskStatus.SUCCESS


def _navigate_to_goal(ctx: BlockWorldContext) -> None:
    goal_top = ctx.goal_top()
    ctx.enqueue(NavigateAction(ctx.goal_path, goal_top, "Climb to the tower top"))
    ctx.world.move_to(goal_top)


def _plan_climb_legs(ctx: BlockWorldContext) -> TaskStatus:
    grid = ctx.world.grid
    completed = [s for s in ctx.stairs if grid[s.cell.x][s.cell.z] >= s.target_height]
    if not completed:
        return TaskStatus.FAILURE

    legs: List[NavigateAction] = []
    current = ctx.world.agent_pos
    targets = [(step.cell, f"Walk existing {step.label}") for step in completed]
    targets.append((ctx.config.goal_cell, "Climb to goal top"))
    for cell, description in targets:
        top = cell_top(grid, cell)
        if distance3(current, top) < SAME_SPOT_EPS:
            current = top
            continue
        result = ctx.world.path_to(top, start=current)
        if not result.success or not result.path:
            logger.warning(f"BlockDomain: climb leg to {cell} unavailable from {current}")
            return TaskStatus.FAILURE
        legs.append(NavigateAction(tuple(result.path), top, description))
        current = top

    if not legs:
        return TaskStatus.FAILURE
    ctx.climb_legs = legs
    return TaskStatus.SUCCESS


def _navigate_climb_legs(ctx: BlockWorldContext) -> None:
    for leg in ctx.climb_legs:
        ctx.enqueue(leg)
        ctx.world.move_to(leg.destination)
    ctx.climb_legs = []


# --- Build step ---

def _select_frontier_and_supply(ctx: BlockWorldContext) -> TaskStatus:
    if ctx.world.carrying:
        step = frontier_step(ctx.world.grid, ctx.stairs, ctx.config.start_cell)
    else:
        step = choose_supply(ctx.world, ctx.stairs, ctx.config.supply_sources, ctx.config.start_cell)
    if step is None:
        return TaskStatus.FAILURE
    ctx.pending_step = step
    return TaskStatus.SUCCESS


def _navigate_to_supply(ctx: BlockWorldContext) -> None:
    step = ctx.pending_step
    if distance3(ctx.world.agent_pos, step.stand_top) >= SAME_SPOT_EPS:
        ctx.enqueue(NavigateAction(step.path_to_stand, step.stand_top,
                                   f"Walk to supply crate at ({step.supply.x}, {step.supply.z})"))
    ctx.world.move_to(step.stand_top)


def _pick_block(ctx: BlockWorldContext) -> None:
    step = ctx.pending_step
    supply = step.supply
    # Position recorded before the pick lowers the column.
    world_pos = cell_top(ctx.world.grid, supply)
    ctx.world.pick(supply)
    ctx.enqueue(PickAction(supply, world_pos, f"Pick block at ({supply.x}, {supply.z})"))
    logger.debug(f"BlockDomain: simulated pick at {supply}, {ctx.world.height(supply)} left")


def _find_adjacent_move(ctx: BlockWorldContext) -> TaskStatus:
    move = find_adjacent_placement_move(ctx.world, ctx.pending_step.frontier.cell)
    if move is None:
        return TaskStatus.FAILURE
    ctx.adjacent_move = move
    return TaskStatus.SUCCESS


def _navigate_adjacent(ctx: BlockWorldContext) -> None:
    move = ctx.adjacent_move
    ctx.enqueue(NavigateAction(move.path, move.target_pos,
                               f"Move to position adjacent to {ctx.pending_step.frontier.label}"))
    ctx.world.move_to(move.target_pos)
    ctx.adjacent_move = None


def _find_anchor_path(ctx: BlockWorldContext) -> TaskStatus:
    anchor_top = ctx.world.top(ctx.pending_step.anchor)
    if distance3(ctx.world.agent_pos, anchor_top) < SAME_SPOT_EPS:
        ctx.anchor_path = ()
        return TaskStatus.SUCCESS
    result = ctx.world.path_to(anchor_top)
    if not result.success or not result.path:
        logger.warning(f"BlockDomain: anchor {ctx.pending_step.anchor} unreachable from {ctx.world.agent_pos}")
        return TaskStatus.FAILURE
    ctx.anchor_path = tuple(result.path)
    return TaskStatus.SUCCESS


def _carry_to_anchor(ctx: BlockWorldContext) -> None:
    anchor_top = ctx.world.top(ctx.pending_step.anchor)
    if ctx.anchor_path:
        ctx.enqueue(NavigateAction(ctx.anchor_path, anchor_top,
                                   f"Carry block to {ctx.pending_step.frontier.label} staging cell"))
    ctx.world.move_to(anchor_top)
    ctx.anchor_path = ()


def _place_block(ctx: BlockWorldContext) -> None:
    frontier = ctx.pending_step.frontier
    direct = can_place_directly_on_adjacent(ctx.world.grid, ctx.world.agent_pos, True, frontier.cell)
    ctx.world.place(frontier.cell)
    description = f"Place block on top of {frontier.label}" if direct else f"Stack block for {frontier.label}"
    ctx.enqueue(PlaceAction(frontier.cell, ctx.world.top(frontier.cell), description))
    logger.debug(f"BlockDomain: simulated place on {frontier.label}, now {ctx.world.height(frontier.cell)}")
    ctx.pending_step = None


REACH_DIRECT = action(
    "Reach goal directly",
    Condition("Staircase complete", _staircase_complete),
    body=_find_goal_path,
    effect=_navigate_to_goal,
)

CLIMB_COMPLETED_STEPS = action(
    "Climb completed steps",
    Condition("Staircase complete", _staircase_complete),
    Condition("Goal not directly reachable", _goal_not_directly_reachable),
    body=_plan_climb_legs,
    effect=_navigate_climb_legs,
)

BUILD_STEP = sequence(
    "BuildStep",
    action("Choose frontier and supply", Condition("Frontier exists", _frontier_exists),
           body=_select_frontier_and_supply),
    select(
        "AcquireBlock",
        action("Already carrying", Condition("Carrying block", _carrying)),
        sequence(
            "FetchBlock",
            action("Navigate to supply", Condition("Supply chosen", _supply_planned), effect=_navigate_to_supply),
            action("Pick block", Condition("Supply has stock", _supply_has_stock), effect=_pick_block),
        ),
    ),
    select(
        "ApproachFrontier",
        action("Already adjacent", Condition("Can place directly", _can_place_directly)),
        action("Move adjacent to frontier", Condition("Not already adjacent", _not_adjacent),
               body=_find_adjacent_move, effect=_navigate_adjacent),
        action("Carry to staging cell", Condition("Step chosen", _has_step),
               body=_find_anchor_path, effect=_carry_to_anchor),
    ),
    action("Place block", Condition("Carrying block", _carrying), effect=_place_block),
)

CLIMB_TO_GOAL = select("ClimbToGoal", REACH_DIRECT, CLIMB_COMPLETED_STEPS)


# --- Whole-staircase lookahead ---

def _plan_whole_staircase(ctx: BlockWorldContext) -> TaskStatus:
    """Simulates build steps until the staircase is done, then the climb. Succeeds only if the goal is reached."""
    settings = ctx.config.planner
    sim = ctx.fork()
    step_planner = HTNPlanner(BUILD_STEP, settings.max_depth)
    climb_planner = HTNPlanner(CLIMB_TO_GOAL, settings.max_depth)
    limit = compute_iteration_budget(len(ctx.stairs), settings.iteration_base, settings.iterations_per_step)

    for iteration in range(limit):
        if sim.frontier() is None:
            if has_agent_reached_goal(sim.world.grid, sim.world.agent_pos, ctx.config.goal_cell):
                ctx.lookahead = sim
                logger.info(f"BlockDomain: lookahead planned {len(sim.action_queue)} actions in {iteration} rounds")
                return TaskStatus.SUCCESS
            if not climb_planner.find_plan(sim).succeeded:
                logger.warning(f"BlockDomain: lookahead cannot climb to the goal (round {iteration})")
                return TaskStatus.FAILURE
            continue
        if not step_planner.find_plan(sim).succeeded:
            logger.warning(f"BlockDomain: lookahead stuck on frontier (round {iteration})")
            return TaskStatus.FAILURE
    logger.warning(f"BlockDomain: lookahead exhausted {limit} rounds")
    return TaskStatus.FAILURE


def _adopt_lookahead(ctx: BlockWorldContext) -> None:
    ctx.adopt(ctx.lookahead)


PLAN_WHOLE_STAIRCASE = action(
    "Plan full staircase and climb",
    Condition("Lookahead enabled", _lookahead_enabled),
    body=_plan_whole_staircase,
    effect=_adopt_lookahead,
)


def build_block_domain() -> CompoundTask:
    return select("AchieveGoal", PLAN_WHOLE_STAIRCASE, REACH_DIRECT, CLIMB_COMPLETED_STEPS, BUILD_STEP)


BLOCK_DOMAIN = build_block_domain()
