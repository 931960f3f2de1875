import random

import pytest

from robot_game.errors import EntityValidationError
from robot_game.sim.battery import Battery
from robot_game.sim.box import Box
from robot_game.sim.entities import Position


def test_second_collect_is_a_soft_failure():
    battery = Battery(position=Position(1, 1), color="yellow")
    first = battery.collect("robot-1")
    second = battery.collect("robot-1")
    assert first.success and not first.game_over
    assert not second.success
    assert not second.game_over
    assert battery.collected_by == "robot-1"


def test_forbidden_battery_ends_the_game_without_collecting():
    battery = Battery(position=Position(1, 1), color="red", allowed_collect=False)
    result = battery.collect("robot-1")
    assert not result.success
    assert result.game_over
    assert not battery.is_collected
    assert battery.is_available()


def test_collect_notifies_observer_but_silent_collect_does_not():
    seen = []
    loud = Battery(observer=lambda battery, visible: seen.append((battery.id, visible)))
    quiet = Battery(observer=lambda battery, visible: seen.append((battery.id, visible)))

    loud.collect("r")
    quiet.collect_silently("r")
    assert seen == [(loud.id, False)]
    assert quiet.is_collected

    quiet.reset()
    assert seen[-1] == (quiet.id, True)
    assert quiet.is_available()


def test_battery_validate_requires_collector():
    battery = Battery()
    battery.is_collected = True
    with pytest.raises(EntityValidationError):
        battery.validate()


def test_color_priority_in_tile_factory():
    tile = {"x": 0, "y": 0, "count": 3, "types": ["red", "yellow"], "type": "green"}
    colors = [battery.color for battery in Battery.create_multiple_from_tile_config(tile)]
    assert colors == ["red", "yellow", "yellow"]
    assert Battery.from_tile_config({"x": 0, "y": 0, "type": "yellow"}).color == "yellow"
    assert Battery.from_tile_config({"x": 0, "y": 0}).color == "green"


def test_group_factory_inherits_type_and_spread():
    group = {"type": "red", "spread": 1.5, "tiles": [{"x": 1, "y": 2, "count": 2}, {"x": 3, "y": 3, "type": "green"}]}
    batteries = Battery.create_from_battery_config(group)
    assert [(b.position.x, b.color, b.spread) for b in batteries] == [(1, "red", 1.5), (1, "red", 1.5), (3, "green", 1.5)]
    assert [b.index for b in batteries[:2]] == [0, 1]


def test_single_battery_sits_at_tile_center():
    battery = Battery()
    assert battery.calculate_visual_position(128, 128, 64, 64) == (64, 64)


def test_box_round_trip_restores_warehouse_position():
    box = Box.from_tile_config({"x": 2, "y": 3})
    assert box.take_from_warehouse("robot-1")
    assert box.place_at_position(4, 0)
    assert box.position == Position(4, 0)
    assert box.return_to_warehouse()
    assert box.position == Position(2, 3)
    assert box.get_current_state() == "warehouse"


def test_box_guards_reject_out_of_order_transitions():
    box = Box.from_tile_config({"x": 0, "y": 0})
    assert not box.place_at_position(1, 1)
    assert box.take_from_warehouse("r")
    assert not box.take_from_warehouse("r")
    assert box.place_at_position(1, 1)
    assert not box.place_at_position(2, 2)
    assert box.position == Position(1, 1)


def test_box_flags_stay_mutually_exclusive_under_random_operations():
    rng = random.Random(42)
    box = Box.from_tile_config({"x": 1, "y": 1})
    operations = [
        lambda: box.take_from_warehouse("robot-1"),
        lambda: box.place_at_position(rng.randint(0, 4), rng.randint(0, 4)),
        box.return_to_warehouse,
        box.reset,
    ]
    for _ in range(500):
        rng.choice(operations)()
        flags = [box.is_in_warehouse, box.is_carried, box.is_placed]
        assert sum(flags) <= 1
        assert box.validate()
        if box.is_carried:
            assert box.carried_by == "robot-1"


def test_box_validate_rejects_two_states():
    box = Box.from_tile_config({"x": 0, "y": 0})
    box.is_placed = True
    with pytest.raises(EntityValidationError):
        box.validate()
