# tests/unit/test_selectors.py

import pytest

from block_stacker.agent_config import HeadlessRunConfig
from block_stacker.models.datatypes import Cell, StepDefinition, SupplySource
from block_stacker.planner_modules.navigation import GridNavigator
from block_stacker.planner_modules.selectors import (can_place_directly_on_adjacent, choose_supply,
                                                     find_adjacent_placement_move, frontier_anchor,
                                                     frontier_step, get_frontier)
from block_stacker.planner_modules.world_model import WorldState

STEP = StepDefinition(Cell(3, 2), 1, "Step 1")


def make_world(**overrides) -> WorldState:
    config = HeadlessRunConfig(**overrides)
    return WorldState.from_config(config, GridNavigator(config.navigation))


class TestFrontier:

    def test_first_incomplete_step(self):
        config = HeadlessRunConfig()
        grid = [[0] * 8 for _ in range(8)]
        grid[3][2] = 1
        assert get_frontier(grid, config.stairs).label == "Step 2"

    def test_declaration_order_not_height_order(self):
        stairs = [StepDefinition(Cell(1, 1), 3, "high"), StepDefinition(Cell(2, 2), 1, "low")]
        grid = [[0] * 4 for _ in range(4)]
        assert get_frontier(grid, stairs).label == "high"

    def test_complete_staircase_is_idempotent(self):
        config = HeadlessRunConfig()
        grid = [[0] * 8 for _ in range(8)]
        for step in config.stairs:
            grid[step.cell.x][step.cell.z] = step.target_height
        for _ in range(3):
            assert get_frontier(grid, config.stairs) is None

    def test_anchor_is_previous_step_or_start(self):
        config = HeadlessRunConfig()
        assert frontier_anchor(config.stairs, config.stairs[0], config.start_cell) == config.start_cell
        assert frontier_anchor(config.stairs, config.stairs[2], config.start_cell) == Cell(3, 3)

    def test_frontier_step_has_no_supply(self):
        config = HeadlessRunConfig()
        grid = [[0] * 8 for _ in range(8)]
        step = frontier_step(grid, config.stairs, config.start_cell)
        assert step.frontier == config.stairs[0]
        assert step.supply is None and step.stand is None


class TestChooseSupply:

    def test_nearest_supply_and_stand(self):
        world = make_world(stairs=[STEP], supply_sources=[SupplySource(Cell(6, 6), 1), SupplySource(Cell(1, 1), 1)],
                           goal_cell=Cell(7, 7), goal_height=1)
        step = choose_supply(world, [STEP], [SupplySource(Cell(6, 6), 1), SupplySource(Cell(1, 1), 1)], Cell(3, 1))
        assert step.supply == Cell(1, 1)
        assert step.stand == Cell(2, 1)
        assert step.anchor == Cell(3, 1)
        assert step.stand_top == (2.5, 0.0, 1.5)
        assert step.supply_top == (1.5, 1.0, 1.5)
        assert step.path_to_stand[0] == world.agent_pos
        assert step.path_to_stand[-1] == step.stand_top

    @pytest.mark.parametrize("order, expected", [
        ([Cell(1, 1), Cell(5, 1)], Cell(1, 1)),
        ([Cell(5, 1), Cell(1, 1)], Cell(5, 1)),
    ])
    def test_ties_keep_declaration_order(self, order, expected):
        supplies = [SupplySource(cell, 1) for cell in order]
        world = make_world(stairs=[STEP], supply_sources=supplies, goal_cell=Cell(7, 7), goal_height=1)
        assert choose_supply(world, [STEP], supplies, Cell(3, 1)).supply == expected

    def test_empty_supply_is_skipped(self):
        supplies = [SupplySource(Cell(1, 1), 0), SupplySource(Cell(6, 1), 1)]
        world = make_world(stairs=[STEP], supply_sources=supplies, goal_cell=Cell(7, 7), goal_height=1)
        assert choose_supply(world, [STEP], supplies, Cell(3, 1)).supply == Cell(6, 1)

    def test_no_stock_returns_none(self):
        world = make_world(stairs=[STEP], supply_sources=[], goal_cell=Cell(7, 7), goal_height=1)
        assert choose_supply(world, [STEP], [], Cell(3, 1)) is None

    def test_walled_in_supply_returns_none(self):
        supplies = [SupplySource(Cell(0, 0), 2)]
        world = make_world(stairs=[STEP], supply_sources=supplies, goal_cell=Cell(7, 7), goal_height=1,
                           initial_heights=[SupplySource(Cell(1, 0), 3), SupplySource(Cell(0, 1), 3)])
        assert choose_supply(world, [STEP], supplies, Cell(3, 1)) is None

    def test_complete_staircase_returns_none(self):
        supplies = [SupplySource(Cell(1, 1), 2)]
        world = make_world(stairs=[STEP], supply_sources=supplies, goal_cell=Cell(7, 7), goal_height=1,
                           initial_heights=[SupplySource(Cell(3, 2), 1)])
        assert choose_supply(world, [STEP], supplies, Cell(3, 1)) is None


class TestDirectPlacement:

    @pytest.fixture
    def grid(self):
        return [[0] * 8 for _ in range(8)]

    def test_adjacent_same_level_while_carrying(self, grid):
        assert can_place_directly_on_adjacent(grid, (3.5, 0.0, 1.5), True, Cell(3, 2))

    def test_one_block_higher_is_allowed(self, grid):
        grid[3][1] = 1
        assert can_place_directly_on_adjacent(grid, (3.5, 1.0, 1.5), True, Cell(3, 2))

    def test_two_blocks_higher_is_not(self, grid):
        grid[3][1] = 2
        assert not can_place_directly_on_adjacent(grid, (3.5, 2.0, 1.5), True, Cell(3, 2))

    def test_lower_than_frontier_is_not(self, grid):
        grid[3][2] = 1
        assert not can_place_directly_on_adjacent(grid, (3.5, 0.0, 1.5), True, Cell(3, 2))

    def test_requires_carrying(self, grid):
        assert not can_place_directly_on_adjacent(grid, (3.5, 0.0, 1.5), False, Cell(3, 2))

    def test_diagonal_is_not_adjacent(self, grid):
        assert not can_place_directly_on_adjacent(grid, (2.5, 0.0, 1.5), True, Cell(3, 2))


class TestAdjacentMove:

    def test_first_reachable_neighbour(self):
        world = make_world(stairs=[STEP], supply_sources=[], goal_cell=Cell(7, 7), goal_height=1)
        move = find_adjacent_placement_move(world, Cell(3, 2))
        assert move.adjacent_cell == Cell(4, 2)
        assert move.target_height == 0
        assert move.target_pos == (4.5, 0.0, 2.5)
        assert move.path[-1] == move.target_pos

    def test_neighbour_at_frontier_level(self):
        world = make_world(stairs=[STEP], supply_sources=[], goal_cell=Cell(7, 7), goal_height=1,
                           initial_heights=[SupplySource(Cell(3, 2), 1), SupplySource(Cell(2, 2), 1)])
        move = find_adjacent_placement_move(world, Cell(3, 2))
        assert move.adjacent_cell == Cell(2, 2)
        assert move.target_height == 1
        assert move.adjacent_height == 1

    def test_neighbours_too_tall(self):
        tall = [SupplySource(cell, 3) for cell in (Cell(4, 2), Cell(2, 2), Cell(3, 3), Cell(3, 1))]
        world = make_world(start_cell=Cell(0, 0), stairs=[STEP], supply_sources=[], goal_cell=Cell(7, 7),
                           goal_height=1, initial_heights=tall)
        assert find_adjacent_placement_move(world, Cell(3, 2)) is None
