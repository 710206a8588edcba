# tests/unit/test_world_model.py

import pytest

from block_stacker.agent_config import HeadlessRunConfig
from block_stacker.models.datatypes import Cell, NavigateAction, PickAction, PlaceAction, StepDefinition, SupplySource
from block_stacker.models.exceptions import WorldInvariantError
from block_stacker.planner_modules.navigation import GridNavigator
from block_stacker.planner_modules.world_model import WorldState, create_initial_grid


@pytest.fixture
def navigator():
    return GridNavigator()


@pytest.fixture
def world(navigator):
    return WorldState.from_config(HeadlessRunConfig(), navigator)


class TestInitialGrid:

    def test_default_scenario_heights(self):
        grid = create_initial_grid(HeadlessRunConfig())
        assert grid[3][6] == 5
        assert grid[1][1] == 3
        assert grid[4][4] == 3
        assert sum(map(sum, grid)) == 5 + 3 + 2 + 2 + 2 + 3

    def test_later_writes_win(self):
        config = HeadlessRunConfig(
            goal_cell=Cell(2, 2), goal_height=4,
            supply_sources=[SupplySource(Cell(2, 2), 1), SupplySource(Cell(0, 0), 3)],
            initial_heights=[SupplySource(Cell(0, 0), 1)],
        )
        grid = create_initial_grid(config)
        assert grid[2][2] == 1
        assert grid[0][0] == 1

    def test_grid_dimensions_follow_config(self):
        config = HeadlessRunConfig(grid_width=4, grid_depth=3, start_cell=Cell(0, 0), goal_cell=Cell(1, 1),
                                   stairs=[], supply_sources=[])
        grid = create_initial_grid(config)
        assert len(grid) == 4 and all(len(col) == 3 for col in grid)


def test_agent_starts_on_start_cell_top(world):
    assert world.agent_pos == (3.5, 0.0, 1.5)
    assert world.carrying is False


def test_start_carrying_flag(navigator):
    world = WorldState.from_config(HeadlessRunConfig(start_carrying=True), navigator)
    assert world.carrying is True


def test_clone_is_independent_and_shares_navmesh(world):
    clone = world.clone()
    assert clone.nav_mesh is world.nav_mesh
    clone.pick(Cell(1, 1))
    assert world.grid[1][1] == 3
    assert world.carrying is False
    assert clone.nav_mesh is not world.nav_mesh


class TestConservation:

    def test_pick_then_place(self, world):
        before = world.total_blocks
        world.pick(Cell(1, 1))
        assert world.grid[1][1] == 2
        assert world.carrying
        assert world.total_blocks == before
        world.place(Cell(3, 2))
        assert world.grid[3][2] == 1
        assert not world.carrying
        assert world.total_blocks == before

    def test_long_sequence_keeps_total(self, world):
        before = world.total_blocks
        for source, target in [(Cell(1, 1), Cell(3, 2)), (Cell(5, 2), Cell(3, 3)),
                               (Cell(5, 2), Cell(3, 3)), (Cell(4, 4), Cell(0, 0))]:
            world.pick(source)
            assert world.total_blocks == before
            world.place(target)
            assert world.total_blocks == before
        assert world.grid[5][2] == 0

    def test_pick_empty_column_raises(self, world):
        with pytest.raises(WorldInvariantError):
            world.pick(Cell(0, 0))

    def test_double_pick_raises(self, world):
        world.pick(Cell(1, 1))
        with pytest.raises(WorldInvariantError):
            world.pick(Cell(1, 1))
        assert world.grid[1][1] == 2

    def test_place_without_block_raises(self, world):
        with pytest.raises(WorldInvariantError):
            world.place(Cell(3, 2))
        assert world.grid[3][2] == 0

    def test_out_of_bounds_raises(self, world):
        with pytest.raises(WorldInvariantError):
            world.pick(Cell(8, 0))


def test_pick_rebuilds_navmesh(world):
    old_mesh = world.nav_mesh
    world.pick(Cell(1, 1))
    assert world.nav_mesh is not old_mesh
    assert world.nav_mesh.surfaces[Cell(1, 1)] == pytest.approx(2.0)


def test_apply_action_replays_each_kind(world):
    world.apply_action(NavigateAction(((3.5, 0.0, 1.5), (2.5, 0.0, 1.5)), (2.5, 0.0, 1.5), "walk"))
    assert world.agent_pos == (2.5, 0.0, 1.5)
    world.apply_action(PickAction(Cell(1, 1), (1.5, 3.0, 1.5), "pick"))
    assert world.carrying and world.grid[1][1] == 2
    world.apply_action(PlaceAction(Cell(3, 2), (3.5, 1.0, 2.5), "place"))
    assert not world.carrying and world.grid[3][2] == 1


def test_navigate_without_target_uses_last_waypoint(world):
    world.apply_action(NavigateAction(((3.5, 0.0, 1.5), (4.5, 0.0, 1.5)), None, "walk"))
    assert world.agent_pos == (4.5, 0.0, 1.5)


def test_same_state_as(world):
    clone = world.clone()
    assert clone.same_state_as(world)
    clone.move_to((0.5, 0.0, 0.5))
    assert not clone.same_state_as(world)


def test_path_to_uses_agent_position(world):
    result = world.path_to(world.top(Cell(3, 3)))
    assert result.success
    assert result.path[0] == world.agent_pos
