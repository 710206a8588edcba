# --- START OF FILE protocols.py ---

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .models.datatypes import Grid, PathResult, Vec3


@runtime_checkable
class PathfindingOracle(Protocol):
    """Reachability queries over a walkable-surface mesh built from a height grid."""

    def rebuild_nav_mesh(self, grid: Grid) -> Any:
        """Returns a fresh navmesh for grid. Must be a pure function of the grid."""
        ...

    def find_path(self, nav_mesh: Any, start: Vec3, goal: Vec3, half_extents: Vec3,
                  query_filter: Optional[Callable[[Any], bool]] = None) -> PathResult:
        """Returns a waypoint path start->goal, or PathResult(success=False). Never raises for unreachable goals."""
        ...

# --- END OF FILE protocols.py ---
