# tests/unit/test_agent_config.py

from pathlib import Path

import pytest

from block_stacker.agent_config import (HeadlessRunConfig, PlannerSettings, compute_iteration_budget, load_config,
                                        load_run_config, parse_cell)
from block_stacker.models.datatypes import Cell, StepDefinition, SupplySource
from block_stacker.models.exceptions import ConfigurationError

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config.toml"


class TestDefaults:

    def test_canonical_scenario(self):
        config = HeadlessRunConfig()
        assert config.start_cell == Cell(3, 1)
        assert config.goal_cell == Cell(3, 6)
        assert config.goal_height == 5
        assert [s.target_height for s in config.stairs] == [1, 2, 3, 4]
        assert len(config.supply_sources) == 5
        assert config.planner.full_staircase_lookahead is False
        config.validate()

    def test_default_lists_are_not_shared(self):
        a, b = HeadlessRunConfig(), HeadlessRunConfig()
        a.stairs.append(StepDefinition(Cell(0, 0), 1, "extra"))
        assert len(b.stairs) == 4

    @pytest.mark.parametrize("steps, expected", [(4, 48), (0, 16), (1, 24)])
    def test_iteration_budget(self, steps, expected):
        assert compute_iteration_budget(steps) == expected

    def test_explicit_budget_wins(self):
        assert HeadlessRunConfig(max_iterations=5).iteration_budget == 5
        assert HeadlessRunConfig(stairs=[]).iteration_budget == 16

    def test_budget_follows_planner_settings(self):
        config = HeadlessRunConfig(planner=PlannerSettings(iteration_base=10, iterations_per_step=2))
        assert config.iteration_budget == 18


class TestValidate:

    def test_off_grid_goal(self):
        with pytest.raises(ConfigurationError, match="goal_cell"):
            HeadlessRunConfig(goal_cell=Cell(8, 0)).validate()

    def test_off_grid_supply(self):
        with pytest.raises(ConfigurationError, match="supply_sources"):
            HeadlessRunConfig(supply_sources=[SupplySource(Cell(-1, 2), 1)]).validate()

    def test_negative_height(self):
        with pytest.raises(ConfigurationError):
            HeadlessRunConfig(goal_height=-1).validate()

    def test_non_positive_budget(self):
        with pytest.raises(ConfigurationError):
            HeadlessRunConfig(max_iterations=0).validate()


class TestFromDict:

    def test_empty_mapping_keeps_defaults(self):
        assert HeadlessRunConfig.from_dict({}) == HeadlessRunConfig()

    def test_scenario_overrides(self):
        config = HeadlessRunConfig.from_dict({
            "world": {"grid_width": 5, "grid_depth": 6},
            "scenario": {
                "start_cell": [0, 0],
                "goal_cell": {"x": 4, "z": 5},
                "goal_height": 2,
                "stairs": [{"cell": [4, 4], "target_height": 1, "label": "Only"}],
                "supply_sources": [{"cell": [1, 1], "height": 2}],
                "start_carrying": True,
            },
            "planner": {"full_staircase_lookahead": True, "max_depth": 20},
            "navigation": {"walkable_climb": 1, "agent_half_extents": [0.2, 0.5, 0.2]},
        })
        assert (config.grid_width, config.grid_depth) == (5, 6)
        assert config.goal_cell == Cell(4, 5)
        assert config.stairs == [StepDefinition(Cell(4, 4), 1, "Only")]
        assert config.supply_sources == [SupplySource(Cell(1, 1), 2)]
        assert config.start_carrying is True
        assert config.planner.full_staircase_lookahead is True
        assert config.planner.max_depth == 20
        assert config.navigation.walkable_climb == pytest.approx(1.0)
        assert config.navigation.walkable_height == pytest.approx(1.8)
        assert config.half_extents == (0.2, 0.5, 0.2)

    def test_step_label_defaults_to_cell(self):
        config = HeadlessRunConfig.from_dict({"scenario": {"stairs": [{"cell": [1, 2], "target_height": 1}]}})
        assert config.stairs[0].label == f"Step {Cell(1, 2)}"

    def test_bool_is_not_an_int(self):
        with pytest.raises(ConfigurationError):
            HeadlessRunConfig.from_dict({"scenario": {"goal_height": True}})

    def test_step_without_height(self):
        with pytest.raises(ConfigurationError):
            HeadlessRunConfig.from_dict({"scenario": {"stairs": [{"cell": [1, 2]}]}})

    def test_section_must_be_table(self):
        with pytest.raises(ConfigurationError):
            HeadlessRunConfig.from_dict({"planner": 3})

    def test_unknown_scenario_key_warns(self, caplog):
        HeadlessRunConfig.from_dict({"scenario": {"goal_hieght": 3}})
        assert "goal_hieght" in caplog.text


@pytest.mark.parametrize("value", [[1, 2], (1, 2), {"x": 1, "z": 2}, Cell(1, 2)])
def test_parse_cell_forms(value):
    assert parse_cell(value) == Cell(1, 2)


@pytest.mark.parametrize("value", [[1], [1, 2, 3], "1,2", {"x": 1}, [1.5, 2]])
def test_parse_cell_rejects(value):
    with pytest.raises(ConfigurationError):
        parse_cell(value)


class TestLoadConfig:

    def test_missing_file_yields_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.toml") == {}
        assert load_run_config(tmp_path / "nope.toml") == HeadlessRunConfig()

    def test_malformed_file(self, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[scenario\ngoal_height = ")
        with pytest.raises(ConfigurationError):
            load_config(bad)

    def test_partial_file(self, tmp_path):
        path = tmp_path / "partial.toml"
        path.write_text("[scenario]\ngoal_height = 3\nmax_iterations = 7\n")
        config = load_run_config(path)
        assert config.goal_height == 3
        assert config.iteration_budget == 7
        assert config.stairs == HeadlessRunConfig().stairs

    def test_repository_config_matches_defaults(self):
        assert load_run_config(REPO_CONFIG) == HeadlessRunConfig()
