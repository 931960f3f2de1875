import pytest

from robot_game.errors import ConfigError
from robot_game.sim.config import (
    extract_battery_requirements,
    extract_box_requirements,
    load_world,
    transform_challenge_config,
)
from robot_game.sim.entities import Position


def test_battery_requirements_are_derived_per_color(battery_challenge):
    transformed = transform_challenge_config(battery_challenge)
    assert transformed["victory"]["byType"] == [{"red": 1, "yellow": 2, "green": 0}]
    assert transformed["victory"]["description"] == "Collect every battery"


def test_forbidden_batteries_are_not_required():
    groups = [{"tiles": [{"x": 0, "y": 0, "type": "red", "count": 2, "allowedCollect": False}, {"x": 1, "y": 0}]}]
    assert extract_battery_requirements(groups) == {"red": 0, "yellow": 0, "green": 1}
    assert extract_battery_requirements([]) is None


def test_box_rules_replace_battery_rules():
    challenge = {
        "robot": {"tile": {"x": 0, "y": 0}},
        "batteries": [{"tiles": [{"x": 1, "y": 1, "type": "red"}]}],
        "boxes": [{"tiles": [{"x": 2, "y": 2, "count": 2}, {"x": 3, "y": 3}]}],
    }
    transformed = transform_challenge_config(challenge)
    assert transformed["victory"]["byType"] == [{"x": 2, "y": 2, "count": 2}, {"x": 3, "y": 3, "count": 1}]
    assert extract_box_requirements(challenge["boxes"]) == transformed["victory"]["byType"]


def test_explicit_victory_block_wins(box_challenge):
    box_challenge["minCards"] = 3
    transformed = transform_challenge_config(box_challenge)
    assert transformed["victory"]["byType"] == [{"x": 4, "y": 0, "count": 1}]
    assert transformed["victory"]["description"] == "Deliver the box"
    assert transformed["victory"]["minCards"] == 3


def test_load_world_builds_entities(tiled_map, battery_challenge):
    world = load_world(tiled_map, battery_challenge)
    robot = world.get_first_robot()
    assert (world.width, world.height, world.tile_size) == (5, 5, 128)
    assert robot.position == Position(0, 2)
    assert robot.get_direction_name() == "east"
    assert [b.color for b in world.get_batteries_at_position(2, 2)] == ["yellow", "yellow"]
    assert world.get_required_batteries() == {"red": 1, "yellow": 2, "green": 0}
    assert world.game_state == "ready"


def test_load_world_reads_masked_gids(tiled_map, battery_challenge):
    # Tiled stores flip flags in the high bits; a flipped road is still a road.
    tiled_map["layers"][1]["data"][3] = 1 | 0x80000000
    world = load_world(tiled_map, battery_challenge)
    assert world.layer.tile_at(3, 0).index == 1


def test_load_world_rejects_missing_robot(tiled_map):
    with pytest.raises(ConfigError):
        load_world(tiled_map, {"batteries": []})


def test_load_world_rejects_map_without_layers(battery_challenge):
    with pytest.raises(ConfigError):
        load_world({"width": 5, "height": 5, "layers": []}, battery_challenge)


def test_load_world_requires_both_documents(tiled_map):
    with pytest.raises(ConfigError):
        load_world(tiled_map, None)


@pytest.mark.parametrize(
    "by_type",
    [
        [{"red": "lots"}],
        [{"yellow": -1}],
        [{"x": 4, "y": 0, "count": "many"}],
        [{"x": 4, "y": 0}, {"count": 1}],
        {"red": 1},
    ],
)
def test_load_world_rejects_malformed_victory_rules(tiled_map, battery_challenge, by_type):
    battery_challenge["victory"] = {"byType": by_type}
    with pytest.raises(ConfigError, match="victory"):
        load_world(tiled_map, battery_challenge)


def test_explicit_battery_rule_may_omit_colors(tiled_map, battery_challenge):
    battery_challenge["victory"] = {"byType": [{"red": 1}]}
    world = load_world(tiled_map, battery_challenge)
    assert world.get_required_batteries() == {"red": 1, "yellow": 0, "green": 0}
