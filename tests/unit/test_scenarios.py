# tests/unit/test_scenarios.py

import pytest

from block_stacker.agent_config import HeadlessRunConfig
from block_stacker.models.datatypes import Cell
from block_stacker.models.exceptions import ConfigurationError
from block_stacker.scenarios import SCENARIOS, get_default_scenario, get_scenario_by_id, scenario_ids


def test_ids_are_unique():
    ids = scenario_ids()
    assert len(ids) == len(set(ids))
    assert ids[0] == "default"


def test_default_scenario_is_canonical_config():
    assert get_default_scenario().to_config() == HeadlessRunConfig()


def test_unknown_id_raises():
    with pytest.raises(ConfigurationError, match="nope"):
        get_scenario_by_id("nope")


@pytest.mark.parametrize("scenario", SCENARIOS, ids=lambda s: s.id)
def test_every_scenario_validates(scenario):
    scenario.to_config().validate()


def test_to_config_copies_lists():
    scenario = get_scenario_by_id("build_two_steps")
    first = scenario.to_config()
    first.stairs.clear()
    first.supply_sources.clear()
    second = scenario.to_config()
    assert len(second.stairs) == 2
    assert len(second.supply_sources) == 2


def test_extra_overrides_win():
    config = get_scenario_by_id("pick_place_one").to_config(max_iterations=3, start_cell=Cell(1, 0))
    assert config.max_iterations == 3
    assert config.start_cell == Cell(1, 0)
    assert config.goal_cell == Cell(2, 2)
