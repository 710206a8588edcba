# block_stacker/planner_modules/replanner.py

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import psutil

from ..agent_config import HeadlessRunConfig
from ..models.datatypes import HeadlessRunResult, PlannedAction
from ..models.enums import RunOutcome
from ..protocols import PathfindingOracle
from ..utils.grid_utils import clone_grid, has_agent_reached_goal
from ..utils.profiler import CycleProfiler
from .block_domain import BLOCK_DOMAIN, BlockWorldContext
from .htn_planner import HTNPlanner
from .navigation import GridNavigator
from .selectors import get_frontier
from .world_model import WorldState

logger_replanner = logging.getLogger(__name__)

ActionCallback = Callable[[PlannedAction], None]
StatusCallback = Callable[[Dict[str, Any]], None]


class ReplanningLoop:
    """
    Drives plan -> commit iterations against a live world until the goal is
    reached, the planner is stuck, the iteration budget runs out, or an abort
    is requested.

    Each plan is searched on a private clone. The live world is replaced in one
    step, and only after every action of an accepted plan has been replayed
    onto a fresh clone of it.
    """

    def __init__(self, config: Optional[HeadlessRunConfig] = None,
                 oracle: Optional[PathfindingOracle] = None,
                 abort_signal: Optional[threading.Event] = None,
                 on_action: Optional[ActionCallback] = None,
                 on_status: Optional[StatusCallback] = None):
        self.config = config or HeadlessRunConfig()
        self.config.validate()
        self.oracle = oracle or GridNavigator(self.config.navigation)
        self.abort_signal = abort_signal
        self.on_action = on_action
        self.on_status = on_status

        self.planner = HTNPlanner(BLOCK_DOMAIN, self.config.planner.max_depth)
        self.profiler = CycleProfiler(self.config.planner.profiler_history_size)
        self.max_iterations = self.config.iteration_budget

        self.world = WorldState.from_config(self.config, self.oracle)
        self.actions: List[PlannedAction] = []
        self.iteration = 0
        self.outcome: Optional[RunOutcome] = None
        self.last_plan: List[str] = []

    def goal_reached(self) -> bool:
        return get_frontier(self.world.grid, self.config.stairs) is None and \
            has_agent_reached_goal(self.world.grid, self.world.agent_pos, self.config.goal_cell)

    def run(self) -> HeadlessRunResult:
        logger_replanner.info(
            f"ReplanningLoop: starting run (goal {self.config.goal_cell} h={self.config.goal_height}, "
            f"{len(self.config.stairs)} steps, budget {self.max_iterations})"
        )
        while self.iteration < self.max_iterations:
            if self.abort_signal is not None and self.abort_signal.is_set():
                logger_replanner.warning(f"ReplanningLoop: abort requested after {self.iteration} iterations")
                return self._finish(RunOutcome.ABORTED)
            self.iteration += 1
            outcome = self.step()
            if self.on_status:
                self.on_status(self.get_status())
            if outcome is not None:
                return self._finish(outcome)

        logger_replanner.warning(f"ReplanningLoop: iteration budget of {self.max_iterations} exhausted")
        return self._finish(RunOutcome.ITERATIONS_EXHAUSTED)

    def step(self) -> Optional[RunOutcome]:
        """One iteration. Returns a terminal outcome, or None to keep going."""
        frontier = get_frontier(self.world.grid, self.config.stairs)
        logger_replanner.debug(
            f"ReplanningLoop: iteration {self.iteration} (agent {self.world.agent_pos}, "
            f"carrying={self.world.carrying}, frontier={frontier.label if frontier else None})"
        )
        if self.goal_reached():
            logger_replanner.info(f"ReplanningLoop: goal reached at iteration {self.iteration}")
            return RunOutcome.GOAL_REACHED

        self.profiler.start_section("plan")
        context = BlockWorldContext(self.world.clone(), self.config)
        result = self.planner.find_plan(context)
        self.profiler.end_section()
        self.last_plan = result.task_names

        if not result.succeeded or not context.action_queue:
            logger_replanner.error(
                f"ReplanningLoop: planner stuck at iteration {self.iteration} "
                f"(status={result.status.value}, actions={len(context.action_queue)})"
            )
            return RunOutcome.STUCK

        logger_replanner.info(
            f"ReplanningLoop: iteration {self.iteration} committing {len(context.action_queue)} actions "
            f"via {result.task_names}"
        )
        self.profiler.start_section("commit")
        self._commit(context)
        self.profiler.end_section()
        return None

    def _commit(self, context: BlockWorldContext) -> None:
        committed = self.world.clone()
        for planned in context.action_queue:
            committed.apply_action(planned)
        if not committed.same_state_as(context.world):
            logger_replanner.warning("ReplanningLoop: replayed world differs from the planning snapshot")
        self.world = committed
        self.actions.extend(context.action_queue)
        if self.on_action:
            for planned in context.action_queue:
                self.on_action(planned)

    def _finish(self, outcome: RunOutcome) -> HeadlessRunResult:
        self.outcome = outcome
        self.profiler.end_section()
        reached = outcome == RunOutcome.GOAL_REACHED
        log = logger_replanner.info if reached else logger_replanner.warning
        log(f"ReplanningLoop: finished with {outcome.value} after {self.iteration} iterations, "
            f"{len(self.actions)} actions")
        return HeadlessRunResult(
            reached_goal=reached,
            actions=list(self.actions),
            final_grid=clone_grid(self.world.grid),
            final_agent_pos=tuple(self.world.agent_pos),
            iterations=self.iteration,
            outcome=outcome,
        )

    def get_status(self) -> Dict[str, Any]:
        frontier = get_frontier(self.world.grid, self.config.stairs)
        return {
            "iteration": self.iteration,
            "max_iterations": self.max_iterations,
            "outcome": self.outcome.value if self.outcome else None,
            "agent_pos": list(self.world.agent_pos),
            "carrying": self.world.carrying,
            "frontier": frontier.label if frontier else None,
            "actions_committed": len(self.actions),
            "total_blocks": self.world.total_blocks,
            "last_plan": list(self.last_plan),
            "profile_last": self.profiler.get_cycle_profile(),
            "profile_avg": self.profiler.get_average_profile(),
            "memory_percent": psutil.Process().memory_percent(),
        }


def run_block_stacker_headless(config: Optional[HeadlessRunConfig] = None,
                               abort_signal: Optional[threading.Event] = None,
                               on_action: Optional[ActionCallback] = None,
                               on_status: Optional[StatusCallback] = None) -> HeadlessRunResult:
    """Runs the replanning loop to completion and returns the batch result."""
    loop = ReplanningLoop(config, abort_signal=abort_signal, on_action=on_action, on_status=on_status)
    return loop.run()
