# block_stacker/planner_modules/htn_planner.py

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Union

from ..agent_config import DEFAULT_MAX_PLANNING_DEPTH
from ..models.enums import Combinator, TaskStatus
from ..models.exceptions import PlanningError

logger = logging.getLogger(__name__)


class PlanningContext(Protocol):
    """State threaded through decomposition. Select branches run on forks."""

    def fork(self) -> "PlanningContext":
        ...

    def adopt(self, other: "PlanningContext") -> None:
        ...


@dataclass
class Condition:
    name: str
    predicate: Callable[[Any], bool]


@dataclass
class PrimitiveTask:
    """Leaf task: conditions gate it, body may still fail it, effect mutates the context."""
    name: str
    conditions: List[Condition] = field(default_factory=list)
    body: Optional[Callable[[Any], TaskStatus]] = None
    effect: Optional[Callable[[Any], None]] = None


@dataclass
class CompoundTask:
    name: str
    combinator: Combinator
    children: List["Task"] = field(default_factory=list)


Task = Union[PrimitiveTask, CompoundTask]


def sequence(name: str, *children: Task) -> CompoundTask:
    return CompoundTask(name, Combinator.SEQUENCE, list(children))


def select(name: str, *children: Task) -> CompoundTask:
    return CompoundTask(name, Combinator.SELECT, list(children))


def action(name: str, *conditions: Condition,
           body: Optional[Callable[[Any], TaskStatus]] = None,
           effect: Optional[Callable[[Any], None]] = None) -> PrimitiveTask:
    return PrimitiveTask(name, list(conditions), body, effect)


@dataclass
class PlanResult:
    status: TaskStatus
    task_names: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.SUCCESS


def validate_domain(task: Task, path: str = "") -> None:
    """Raises PlanningError for malformed trees (empty compounds, foreign nodes)."""
    where = f"{path}/{getattr(task, 'name', '?')}"
    if isinstance(task, PrimitiveTask):
        return
    if not isinstance(task, CompoundTask):
        raise PlanningError(f"{where}: not a task node ({type(task).__name__})")
    if not isinstance(task.combinator, Combinator):
        raise PlanningError(f"{where}: unknown combinator {task.combinator!r}")
    if not task.children:
        raise PlanningError(f"{where}: compound task has no children")
    for child in task.children:
        validate_domain(child, where)


class HTNPlanner:
    """
    Depth-first, order-sensitive decomposition over a task tree.

    - Primitive: conditions in order (first false fails), then body, then effect.
    - Sequence: children in order on the same context. A later failure does not
      undo earlier children's effects; the enclosing Select discards them instead.
    - Select: each child runs on a fork of the context. The first success is
      adopted into the parent; failed forks are dropped untouched.
    """

    def __init__(self, domain: Task, max_depth: int = DEFAULT_MAX_PLANNING_DEPTH):
        validate_domain(domain)
        if max_depth <= 0:
            raise PlanningError(f"max_depth must be positive, got {max_depth}")
        self.domain = domain
        self.max_depth = max_depth
        logger.debug(f"HTNPlanner initialized for domain '{getattr(domain, 'name', '?')}'. Max depth: {max_depth}.")

    def find_plan(self, context: PlanningContext) -> PlanResult:
        """Decomposes the domain against context. On success the context holds the plan's effects."""
        working = context.fork()
        trace: List[str] = []
        status = self._decompose(self.domain, working, 0, trace)
        if status == TaskStatus.SUCCESS:
            context.adopt(working)
            logger.debug(f"HTNPlanner: plan found ({len(trace)} primitive tasks): {trace}")
            return PlanResult(status, trace)
        logger.debug("HTNPlanner: no decomposition succeeded")
        return PlanResult(TaskStatus.FAILURE, [])

    def _decompose(self, task: Task, context: PlanningContext, depth: int, trace: List[str]) -> TaskStatus:
        indent = "  " * depth
        if depth >= self.max_depth:
            logger.debug(f"{indent}Depth limit {self.max_depth} hit for task '{task.name}'. Backtracking.")
            return TaskStatus.FAILURE

        if isinstance(task, PrimitiveTask):
            for condition in task.conditions:
                if not condition.predicate(context):
                    logger.debug(f"{indent}'{task.name}': condition '{condition.name}' not met")
                    return TaskStatus.FAILURE
            if task.body is not None and task.body(context) != TaskStatus.SUCCESS:
                logger.debug(f"{indent}'{task.name}': body failed")
                return TaskStatus.FAILURE
            if task.effect is not None:
                task.effect(context)
            trace.append(task.name)
            logger.debug(f"{indent}'{task.name}': ok")
            return TaskStatus.SUCCESS

        if task.combinator == Combinator.SEQUENCE:
            for child in task.children:
                if self._decompose(child, context, depth + 1, trace) != TaskStatus.SUCCESS:
                    logger.debug(f"{indent}Sequence '{task.name}' failed at '{child.name}'")
                    return TaskStatus.FAILURE
            return TaskStatus.SUCCESS

        for child in task.children:
            fork = context.fork()
            child_trace: List[str] = []
            if self._decompose(child, fork, depth + 1, child_trace) == TaskStatus.SUCCESS:
                context.adopt(fork)
                trace.extend(child_trace)
                logger.debug(f"{indent}Select '{task.name}' chose '{child.name}'")
                return TaskStatus.SUCCESS
        logger.debug(f"{indent}Select '{task.name}': all {len(task.children)} branches failed")
        return TaskStatus.FAILURE
