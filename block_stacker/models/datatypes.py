# block_stacker/models/datatypes.py

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from .enums import ActionType, RunOutcome

Vec3 = Tuple[float, float, float]
Grid = List[List[int]]


@dataclass(frozen=True)
class Cell:
    """Integer lattice coordinate on the height grid."""
    x: int
    z: int

    @property
    def key(self) -> str:
        return f"{self.x}:{self.z}"

    def offset(self, dx: int, dz: int) -> "Cell":
        return Cell(self.x + dx, self.z + dz)

    def __str__(self) -> str:
        return f"({self.x}, {self.z})"


@dataclass(frozen=True)
class StepDefinition:
    """One staircase step: the cell must be built up to target_height."""
    cell: Cell
    target_height: int
    label: str


@dataclass(frozen=True)
class SupplySource:
    """A column of stackable blocks. Remaining stock is the grid value at the cell."""
    cell: Cell
    height: int


# --- Planned actions (tagged variant, immutable once emitted) ---

@dataclass(frozen=True)
class NavigateAction:
    type: ClassVar[ActionType] = ActionType.NAVIGATE
    path: Tuple[Vec3, ...]
    target: Optional[Vec3]
    description: str

    @property
    def destination(self) -> Vec3:
        if self.target is not None:
            return self.target
        return self.path[-1]


@dataclass(frozen=True)
class PickAction:
    type: ClassVar[ActionType] = ActionType.PICK
    cell: Cell
    world_pos: Vec3
    description: str


@dataclass(frozen=True)
class PlaceAction:
    type: ClassVar[ActionType] = ActionType.PLACE
    cell: Cell
    world_pos: Vec3
    description: str


PlannedAction = Union[NavigateAction, PickAction, PlaceAction]


def action_to_dict(action: PlannedAction) -> Dict[str, Any]:
    """Flattens a planned action into JSON-friendly primitives."""
    data: Dict[str, Any] = {"type": action.type.value, "description": action.description}
    if isinstance(action, NavigateAction):
        data["path"] = [list(p) for p in action.path]
        data["target"] = list(action.destination)
    else:
        data["cell"] = {"x": action.cell.x, "z": action.cell.z}
        data["world_pos"] = list(action.world_pos)
    return data


@dataclass(frozen=True)
class PlannedStep:
    """Scratch record for one BuildStep decomposition.

    supply/stand are None when the agent already carries a block and no
    supply trip is needed.
    """
    frontier: StepDefinition
    anchor: Cell
    supply: Optional[Cell] = None
    supply_top: Optional[Vec3] = None
    stand: Optional[Cell] = None
    stand_top: Optional[Vec3] = None
    path_to_stand: Tuple[Vec3, ...] = ()


@dataclass(frozen=True)
class AdjacentMove:
    path: Tuple[Vec3, ...]
    target_pos: Vec3
    adjacent_cell: Cell
    target_height: int
    adjacent_height: int


@dataclass(frozen=True)
class NavMeshOptions:
    """Fixed navmesh tuning data, in world units (one block = 1.0)."""
    walkable_climb: float = 1.6
    walkable_height: float = 1.8
    walkable_slope_angle_degrees: float = 45.0


@dataclass
class PathResult:
    success: bool
    path: List[Vec3] = field(default_factory=list)


@dataclass
class HeadlessRunResult:
    reached_goal: bool
    actions: List[PlannedAction]
    final_grid: Grid
    final_agent_pos: Vec3
    iterations: int
    outcome: RunOutcome = RunOutcome.STUCK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reached_goal": self.reached_goal,
            "outcome": self.outcome.value,
            "iterations": self.iterations,
            "final_agent_pos": list(self.final_agent_pos),
            "final_grid": [list(row) for row in self.final_grid],
            "actions": [action_to_dict(a) for a in self.actions],
        }
