# block_stacker/utils/grid_utils.py

import math
from typing import List, Sequence, Tuple

from ..agent_config import BLOCK_SIZE, GOAL_HORIZONTAL_TOLERANCE, GOAL_VERTICAL_TOLERANCE
from ..models.datatypes import Cell, Grid, Vec3

# Neighbour scan order matters: selectors return the first viable neighbour.
ADJACENT_OFFSETS: Tuple[Tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))


def grid_dimensions(grid: Grid) -> Tuple[int, int]:
    width = len(grid)
    depth = len(grid[0]) if width else 0
    return width, depth


def in_bounds(grid: Grid, cell: Cell) -> bool:
    width, depth = grid_dimensions(grid)
    return 0 <= cell.x < width and 0 <= cell.z < depth


def neighbours(grid: Grid, cell: Cell) -> List[Cell]:
    """In-bounds orthogonal neighbours of cell, in scan order."""
    result = []
    for dx, dz in ADJACENT_OFFSETS:
        candidate = cell.offset(dx, dz)
        if in_bounds(grid, candidate):
            result.append(candidate)
    return result


def is_adjacent(a: Cell, b: Cell) -> bool:
    return abs(a.x - b.x) + abs(a.z - b.z) == 1


def height_at(grid: Grid, cell: Cell) -> int:
    return grid[cell.x][cell.z]


def pos_to_cell(pos: Vec3) -> Cell:
    return Cell(math.floor(pos[0] / BLOCK_SIZE), math.floor(pos[2] / BLOCK_SIZE))


def get_agent_height(grid: Grid, agent_pos: Vec3) -> int:
    """Standing level of the agent in whole blocks; 0 when off-grid."""
    if not in_bounds(grid, pos_to_cell(agent_pos)):
        return 0
    return math.floor(agent_pos[1] / BLOCK_SIZE)


def cell_top(grid: Grid, cell: Cell) -> Vec3:
    """Centre of the walkable top face of cell's column."""
    return (
        cell.x * BLOCK_SIZE + BLOCK_SIZE / 2,
        grid[cell.x][cell.z] * BLOCK_SIZE,
        cell.z * BLOCK_SIZE + BLOCK_SIZE / 2,
    )


def cell_top_at(cell: Cell, height: int) -> Vec3:
    return (cell.x * BLOCK_SIZE + BLOCK_SIZE / 2, height * BLOCK_SIZE, cell.z * BLOCK_SIZE + BLOCK_SIZE / 2)


def distance3(a: Vec3, b: Vec3) -> float:
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


def path_length(points: Sequence[Vec3]) -> float:
    if len(points) < 2:
        return 0.0
    return sum(distance3(points[i - 1], points[i]) for i in range(1, len(points)))


def clone_grid(grid: Grid) -> Grid:
    return [list(row) for row in grid]


def total_blocks(grid: Grid) -> int:
    return sum(sum(row) for row in grid)


def has_agent_reached_goal(grid: Grid, agent_pos: Vec3, goal_cell: Cell) -> bool:
    goal_top = cell_top(grid, goal_cell)
    horizontal = math.hypot(agent_pos[0] - goal_top[0], agent_pos[2] - goal_top[2])
    vertical = abs(agent_pos[1] - goal_top[1])
    return horizontal <= GOAL_HORIZONTAL_TOLERANCE and vertical <= GOAL_VERTICAL_TOLERANCE
