import pytest

from robot_game.errors import EntityError, EntityValidationError
from robot_game.sim.battery import Battery
from robot_game.sim.box import Box
from robot_game.sim.entities import EntityBase, Position
from robot_game.sim.robot import Robot


def test_generated_id_carries_kind_prefix():
    battery = Battery(position=Position(1, 2))
    kind, millis, suffix = battery.id.split("_")
    assert kind == "battery"
    assert millis.isdigit()
    assert len(suffix) == 9


def test_id_is_immutable_after_creation():
    robot = Robot(id="robot-1")
    with pytest.raises(EntityError):
        robot.id = "robot-2"
    assert robot.id == "robot-1"


def test_base_validate_always_raises():
    with pytest.raises(EntityValidationError):
        EntityBase().validate()


def test_clone_preserves_state_and_is_independent():
    battery = Battery(id="b1", position=Position(3, 4), color="red", metadata={"tag": ["a"]})
    battery.collect("robot-1")
    copy = battery.clone()

    assert copy.serialize() == battery.serialize()
    copy.metadata["tag"].append("b")
    assert battery.metadata["tag"] == ["a"]


def test_box_clone_round_trips_warehouse_position():
    box = Box.from_tile_config({"x": 2, "y": 3})
    copy = box.clone()
    assert copy.warehouse_position == Position(2, 3)
    assert copy.get_current_state() == "warehouse"


def test_distance_and_same_position():
    a = Battery(position=Position(0, 0))
    b = Box(position=Position(3, 4))
    assert a.distance_to(3, 4) == 5.0
    assert not a.is_same_position(b)
    a.update_position(3, 4)
    assert a.is_same_position(b)
