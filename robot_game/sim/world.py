from __future__ import annotations

"""
File: robot_game/sim/world.py
Purpose: World aggregate holding the entity arenas, game state and victory rules.
Key responsibilities:
- Instantiate the robot, batteries and boxes from a transformed challenge config.
- Pure, uncached queries over the entity collections.
- Coarse game-state machine: ready -> playing -> won/lost, reset.
"""

import copy
import logging
from typing import Any, Union

from robot_game.errors import EntityValidationError
from robot_game.sim import victory
from robot_game.sim.battery import Battery, VisibilityObserver
from robot_game.sim.box import Box
from robot_game.sim.entities import BATTERY_COLORS, GameState, generate_id, now_ms
from robot_game.sim.metrics import compute_statistics
from robot_game.sim.robot import Robot
from robot_game.sim.terrain import TerrainLayer

logger = logging.getLogger("robot-game.world")

Entity = Union[Robot, Battery, Box]


class GameMap:
    """In-memory world for a single session."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        layer: TerrainLayer | None = None,
        battery_observer: VisibilityObserver | None = None,
    ) -> None:
        config = config or {}
        self.id: str = config.get("id") or generate_id("map")
        self.map_key: str = config.get("mapKey", "")
        self.width: int = int(config.get("width") or 10)
        self.height: int = int(config.get("height") or 10)
        self.tile_size: int = int(config.get("tileSize") or 64)
        self.layer = layer
        self.battery_observer = battery_observer
        self.metadata: dict[str, Any] = dict(config.get("metadata") or {})

        # Insertion-ordered arenas keyed by entity id.
        self.robots: dict[str, Robot] = {}
        self.batteries: dict[str, Battery] = {}
        self.boxes: dict[str, Box] = {}

        self.victory_conditions: dict[str, Any] = {}
        self.game_state: GameState = "ready"
        self.start_time: int | None = None
        self.end_time: int | None = None

        self.load_from_config(config)

    @classmethod
    def from_config(cls, map_key: str, config: dict[str, Any], **kwargs: Any) -> GameMap:
        return cls({**config, "mapKey": map_key}, **kwargs)

    # ------------------------------------------------------------------
    # contract
    # ------------------------------------------------------------------

    def validate(self) -> bool:
        if not self.map_key:
            raise EntityValidationError("Map key is required")
        if self.width <= 0 or self.height <= 0:
            raise EntityValidationError("Invalid map dimensions")
        for entity in self.iter_entities():
            entity.validate()
        return True

    def serialize(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "map",
            "mapKey": self.map_key,
            "width": self.width,
            "height": self.height,
            "tileSize": self.tile_size,
            "robots": [robot.serialize() for robot in self.robots.values()],
            "batteries": [battery.serialize() for battery in self.batteries.values()],
            "boxes": [box.serialize() for box in self.boxes.values()],
            "victoryConditions": copy.deepcopy(self.victory_conditions),
            "gameState": self.game_state,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "metadata": copy.deepcopy(self.metadata),
        }

    # ------------------------------------------------------------------
    # config loading
    # ------------------------------------------------------------------

    def load_from_config(self, config: dict[str, Any]) -> None:
        robot_cfg = config.get("robot")
        if robot_cfg:
            robot = Robot(
                id=robot_cfg.get("id", ""),
                position=robot_cfg.get("tile") or {"x": 0, "y": 0},
                direction=robot_cfg.get("direction") or "north",
            )
            self.add_robot(robot)

        for group in config.get("batteries") or []:
            for battery in Battery.create_from_battery_config(group):
                self.add_battery(battery)

        for group in config.get("boxes") or []:
            for box in Box.create_from_box_config(group):
                self.add_box(box)

        if config.get("victory"):
            self.victory_conditions = copy.deepcopy(config["victory"])

        logger.debug(
            "world loaded map_key=%s robots=%s batteries=%s boxes=%s",
            self.map_key,
            len(self.robots),
            len(self.batteries),
            len(self.boxes),
        )

    # ------------------------------------------------------------------
    # entity management
    # ------------------------------------------------------------------

    def add_robot(self, robot: Robot) -> None:
        robot.set_map_references(self, self.layer)
        self.robots[robot.id] = robot

    def add_battery(self, battery: Battery) -> None:
        if self.battery_observer is not None:
            battery.observer = self.battery_observer
        self.batteries[battery.id] = battery

    def add_box(self, box: Box) -> None:
        self.boxes[box.id] = box

    def set_layer(self, layer: TerrainLayer | None) -> None:
        self.layer = layer
        for robot in self.robots.values():
            robot.set_map_references(self, layer)

    def iter_entities(self) -> list[Entity]:
        return [*self.robots.values(), *self.batteries.values(), *self.boxes.values()]

    def get_robot(self, robot_id: str) -> Robot | None:
        return self.robots.get(robot_id)

    def get_first_robot(self) -> Robot | None:
        return next(iter(self.robots.values()), None)

    def get_batteries_at_position(self, x: int, y: int) -> list[Battery]:
        """Available batteries on a tile, in load order."""
        return [
            battery
            for battery in self.batteries.values()
            if battery.position.x == x and battery.position.y == y and battery.is_available()
        ]

    def get_boxes_at_position(self, x: int, y: int) -> list[Box]:
        return [box for box in self.boxes.values() if box.position.x == x and box.position.y == y]

    def get_placed_boxes_at_position(self, x: int, y: int) -> list[Box]:
        return [box for box in self.get_boxes_at_position(x, y) if box.is_placed_on_map()]

    def get_warehouse_boxes_at_position(self, x: int, y: int) -> list[Box]:
        return [box for box in self.get_boxes_at_position(x, y) if box.is_available_in_warehouse()]

    def get_available_batteries(self) -> list[Battery]:
        return [battery for battery in self.batteries.values() if battery.is_available()]

    def get_all_batteries(self) -> list[Battery]:
        return list(self.batteries.values())

    def get_available_boxes(self) -> list[Box]:
        return [box for box in self.boxes.values() if box.is_available_in_warehouse()]

    def get_carried_boxes(self, robot_id: str | None = None) -> list[Box]:
        return [
            box
            for box in self.boxes.values()
            if box.is_being_carried() and (robot_id is None or box.carried_by == robot_id)
        ]

    # ------------------------------------------------------------------
    # game state
    # ------------------------------------------------------------------

    def start_game(self) -> None:
        self.game_state = "playing"
        self.start_time = now_ms()
        self.end_time = None

    def end_game(self, is_won: bool) -> None:
        self.game_state = "won" if is_won else "lost"
        self.end_time = now_ms()

    def reset_game(self) -> None:
        self.game_state = "ready"
        self.start_time = None
        self.end_time = None
        for entity in self.iter_entities():
            entity.reset()

    def get_play_time(self) -> int | None:
        if self.start_time is None:
            return None
        end = self.end_time if self.end_time is not None else now_ms()
        return end - self.start_time

    # ------------------------------------------------------------------
    # victory
    # ------------------------------------------------------------------

    def check_victory_conditions(self) -> victory.VictoryResult:
        return victory.evaluate(self)

    def has_box_victory_conditions(self) -> bool:
        return victory.has_box_rules(self.victory_conditions)

    def get_required_batteries(self) -> dict[str, int] | None:
        return victory.required_batteries(self.victory_conditions)

    def get_box_targets(self) -> list[dict[str, int]]:
        return victory.box_targets(self.victory_conditions)

    def get_collected_batteries_by_color(self) -> dict[str, int]:
        collected = {color: 0 for color in BATTERY_COLORS}
        for battery in self.batteries.values():
            if battery.is_collected:
                collected[battery.color] = collected.get(battery.color, 0) + 1
        return collected

    # ------------------------------------------------------------------
    # utility
    # ------------------------------------------------------------------

    def is_valid_position(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_statistics(self) -> dict[str, Any]:
        return compute_statistics(self)
