# block_stacker/planner_modules/navigation.py

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import networkx as nx

from ..agent_config import BLOCK_SIZE
from ..models.datatypes import Cell, Grid, NavMeshOptions, PathResult, Vec3
from ..protocols import PathfindingOracle

logger_navigation = logging.getLogger(__name__)

GROUND_THICKNESS = 0.2
_EPS = 1e-6

# Per-box face winding; normals point outward. Order: bottom, top, -z, +z, +x, -x.
_BOX_FACES = (
    (0, 1, 2, 0, 2, 3),
    (4, 6, 5, 4, 7, 6),
    (4, 5, 1, 4, 1, 0),
    (3, 2, 6, 3, 6, 7),
    (1, 5, 6, 1, 6, 2),
    (4, 0, 3, 4, 3, 7),
)


@dataclass(frozen=True)
class Geometry:
    vertices: Tuple[Vec3, ...]
    indices: Tuple[int, ...]

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    def triangle(self, i: int) -> Tuple[Vec3, Vec3, Vec3]:
        a, b, c = self.indices[3 * i:3 * i + 3]
        return self.vertices[a], self.vertices[b], self.vertices[c]


@dataclass(frozen=True)
class NavMesh:
    """Walkable cell tops plus the traversal graph between them.

    Treated as immutable once generated; world clones share the same instance
    until their own grid changes.
    """
    width: int
    depth: int
    surfaces: Dict[Cell, float]
    graph: nx.Graph = field(compare=False)

    def top_of(self, cell: Cell) -> Vec3:
        return (cell.x * BLOCK_SIZE + BLOCK_SIZE / 2, self.surfaces[cell], cell.z * BLOCK_SIZE + BLOCK_SIZE / 2)


# --- Geometry ---

def _add_box(vertices: List[Vec3], indices: List[int], x: float, y: float, z: float,
             width: float, height: float, depth: float) -> None:
    base = len(vertices)
    vertices.extend([
        (x, y, z), (x + width, y, z), (x + width, y, z + depth), (x, y, z + depth),
        (x, y + height, z), (x + width, y + height, z), (x + width, y + height, z + depth), (x, y + height, z + depth),
    ])
    for face in _BOX_FACES:
        indices.extend(base + i for i in face)


def build_geometry(grid: Grid) -> Geometry:
    """Triangle soup for the ground slab plus one cube per stacked block."""
    vertices: List[Vec3] = []
    indices: List[int] = []
    width = len(grid)
    depth = len(grid[0]) if width else 0
    _add_box(vertices, indices, 0.0, -GROUND_THICKNESS, 0.0, width * BLOCK_SIZE, GROUND_THICKNESS, depth * BLOCK_SIZE)
    for x in range(width):
        for z in range(depth):
            for h in range(grid[x][z]):
                _add_box(vertices, indices, x * BLOCK_SIZE, h * BLOCK_SIZE, z * BLOCK_SIZE,
                         BLOCK_SIZE, BLOCK_SIZE, BLOCK_SIZE)
    return Geometry(tuple(vertices), tuple(indices))


# --- Navmesh generation ---

def _normal(a: Vec3, b: Vec3, c: Vec3) -> Vec3:
    ux, uy, uz = b[0] - a[0], b[1] - a[1], b[2] - a[2]
    vx, vy, vz = c[0] - a[0], c[1] - a[1], c[2] - a[2]
    return (uy * vz - uz * vy, uz * vx - ux * vz, ux * vy - uy * vx)


def _height_in_triangle(px: float, pz: float, a: Vec3, b: Vec3, c: Vec3) -> Optional[float]:
    """Interpolated y at (px, pz) if the point lies inside the triangle's xz projection (edges inclusive)."""
    det = (b[2] - c[2]) * (a[0] - c[0]) + (c[0] - b[0]) * (a[2] - c[2])
    if abs(det) < _EPS:
        return None  # vertical face
    w1 = ((b[2] - c[2]) * (px - c[0]) + (c[0] - b[0]) * (pz - c[2])) / det
    w2 = ((c[2] - a[2]) * (px - c[0]) + (a[0] - c[0]) * (pz - c[2])) / det
    w3 = 1.0 - w1 - w2
    if w1 < -_EPS or w2 < -_EPS or w3 < -_EPS:
        return None
    return w1 * a[1] + w2 * b[1] + w3 * c[1]


def generate_nav_mesh(geometry: Geometry, options: NavMeshOptions) -> NavMesh:
    """Samples walkable surfaces at every cell centre and links neighbours the agent can step between."""
    xs = [v[0] for v in geometry.vertices] or [0.0]
    zs = [v[2] for v in geometry.vertices] or [0.0]
    width = max(0, int(round((max(xs) - min(xs)) / BLOCK_SIZE)))
    depth = max(0, int(round((max(zs) - min(zs)) / BLOCK_SIZE)))
    min_slope_cos = math.cos(math.radians(options.walkable_slope_angle_degrees))

    floors: Dict[Cell, List[float]] = {}
    ceilings: Dict[Cell, List[float]] = {}
    for i in range(geometry.triangle_count):
        a, b, c = geometry.triangle(i)
        nx_, ny, nz = _normal(a, b, c)
        norm = math.sqrt(nx_ * nx_ + ny * ny + nz * nz)
        if norm < _EPS:
            continue
        facing_up = ny / norm >= min_slope_cos
        facing_down = ny < 0
        if not facing_up and not facing_down:
            continue
        lo_x, hi_x = min(a[0], b[0], c[0]), max(a[0], b[0], c[0])
        lo_z, hi_z = min(a[2], b[2], c[2]), max(a[2], b[2], c[2])
        for x in range(max(0, math.floor(lo_x / BLOCK_SIZE)), min(width, math.ceil(hi_x / BLOCK_SIZE))):
            for z in range(max(0, math.floor(lo_z / BLOCK_SIZE)), min(depth, math.ceil(hi_z / BLOCK_SIZE))):
                y = _height_in_triangle((x + 0.5) * BLOCK_SIZE, (z + 0.5) * BLOCK_SIZE, a, b, c)
                if y is None:
                    continue
                target = floors if facing_up else ceilings
                target.setdefault(Cell(x, z), []).append(y)

    surfaces: Dict[Cell, float] = {}
    for cell, heights in floors.items():
        top = max(heights)
        blocked = any(top + _EPS < ceiling < top + options.walkable_height for ceiling in ceilings.get(cell, ()))
        if not blocked:
            surfaces[cell] = top

    graph = nx.Graph()
    for cell, y in surfaces.items():
        graph.add_node(cell, y=y)
    for cell, y in surfaces.items():
        for neighbour in (cell.offset(1, 0), cell.offset(0, 1)):
            other = surfaces.get(neighbour)
            if other is None or abs(other - y) > options.walkable_climb + _EPS:
                continue
            graph.add_edge(cell, neighbour, weight=math.hypot(BLOCK_SIZE, other - y))

    logger_navigation.debug(
        f"Navigator: navmesh generated ({len(surfaces)} walkable cells, {graph.number_of_edges()} links)"
    )
    return NavMesh(width=width, depth=depth, surfaces=surfaces, graph=graph)


# --- Path queries ---

def snap_to_cell(nav_mesh: NavMesh, point: Vec3, half_extents: Vec3) -> Optional[Cell]:
    """Nearest walkable cell whose footprint overlaps the query box and whose surface is within its vertical extent."""
    hx, hy, hz = half_extents
    best: Optional[Cell] = None
    best_dist = math.inf
    for x in range(math.floor((point[0] - hx) / BLOCK_SIZE), math.floor((point[0] + hx) / BLOCK_SIZE) + 1):
        for z in range(math.floor((point[2] - hz) / BLOCK_SIZE), math.floor((point[2] + hz) / BLOCK_SIZE) + 1):
            cell = Cell(x, z)
            surface = nav_mesh.surfaces.get(cell)
            if surface is None or abs(point[1] - surface) > hy + _EPS:
                continue
            top = nav_mesh.top_of(cell)
            dist = math.dist(point, top)
            if dist < best_dist:
                best, best_dist = cell, dist
    return best


def find_path(nav_mesh: NavMesh, start: Vec3, goal: Vec3, half_extents: Vec3,
              query_filter: Optional[Callable[[Cell], bool]] = None) -> PathResult:
    start_cell = snap_to_cell(nav_mesh, start, half_extents)
    goal_cell = snap_to_cell(nav_mesh, goal, half_extents)
    if start_cell is None or goal_cell is None:
        logger_navigation.debug(f"Navigator: could not snap query {start} -> {goal} to the navmesh")
        return PathResult(success=False)
    if start_cell == goal_cell:
        return PathResult(success=True, path=[tuple(start), tuple(goal)])

    graph = nav_mesh.graph
    if query_filter is not None:
        graph = nx.subgraph_view(graph, filter_node=query_filter)
        if start_cell not in graph or goal_cell not in graph:
            return PathResult(success=False)

    def heuristic(u: Cell, v: Cell) -> float:
        return math.dist(nav_mesh.top_of(u), nav_mesh.top_of(v))

    try:
        cells = nx.astar_path(graph, start_cell, goal_cell, heuristic=heuristic, weight="weight")
    except nx.NetworkXNoPath:
        return PathResult(success=False)

    points: List[Vec3] = [tuple(start)]
    points.extend(nav_mesh.top_of(cell) for cell in cells[1:-1])
    points.append(tuple(goal))
    return PathResult(success=True, path=points)


class GridNavigator(PathfindingOracle):
    """Pathfinding oracle over block grids, backed by networkx A*."""

    def __init__(self, options: Optional[NavMeshOptions] = None):
        self.options = options or NavMeshOptions()

    def rebuild_nav_mesh(self, grid: Grid) -> NavMesh:
        return generate_nav_mesh(build_geometry(grid), self.options)

    def find_path(self, nav_mesh: Any, start: Vec3, goal: Vec3, half_extents: Vec3,
                  query_filter: Optional[Callable[[Any], bool]] = None) -> PathResult:
        return find_path(nav_mesh, start, goal, half_extents, query_filter)
