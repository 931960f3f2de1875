from __future__ import annotations

"""
File: robot_game/sim/robot.py
Purpose: Robot state machine (pose, inventory, bounded action history).
Key responsibilities:
- Rotate with wraparound direction arithmetic.
- Move forward first, validate the landing tile after (no rollback).
- Guarded inventory mutations and a FIFO-evicting history log.
"""

from collections import deque
import copy
from dataclasses import dataclass, field
import logging
from typing import Any, ClassVar, Protocol

from robot_game.errors import EntityValidationError
from robot_game.settings import settings
from robot_game.sim.entities import BATTERY_COLORS, EntityBase, Position, now_ms
from robot_game.sim.terrain import TerrainLayer

logger = logging.getLogger("robot-game.robot")

DIRECTION_NAMES: tuple[str, ...] = ("north", "east", "south", "west")
_DIRECTION_INDEX = {name: idx for idx, name in enumerate(DIRECTION_NAMES)}
_FRONT_OFFSETS = {0: (0, -1), 1: (1, 0), 2: (0, 1), 3: (-1, 0)}


def parse_direction(value: Any) -> int:
    """Parse a direction name or index; ints are clamped, unknown names fall back to north."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, min(3, value))
    if isinstance(value, str):
        return _DIRECTION_INDEX.get(value.strip().lower(), 0)
    return 0


class MapDimensions(Protocol):
    width: int
    height: int


@dataclass
class MoveResult:
    """Outcome of a single forward move."""
    success: bool
    new_position: Position
    error: str | None = None


@dataclass
class PositionCheck:
    """Outcome of validating the robot's current tile."""
    is_valid: bool
    error: str | None = None


@dataclass
class Inventory:
    """What the robot is carrying."""
    batteries: dict[str, int] = field(default_factory=lambda: {color: 0 for color in BATTERY_COLORS})
    boxes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"batteries": dict(self.batteries), "boxes": self.boxes}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Inventory:
        inventory = cls()
        if not data:
            return inventory
        for color, count in (data.get("batteries") or {}).items():
            inventory.batteries[color] = count
        inventory.boxes = data.get("boxes", 0)
        return inventory


@dataclass(eq=False)
class Robot(EntityBase):
    """The programmable agent."""
    kind: ClassVar[str] = "robot"

    direction: int = 0
    is_moving: bool = False
    inventory: Inventory = field(default_factory=Inventory)
    max_history_size: int = field(default_factory=lambda: settings.history_size)
    movement_history: deque = field(default_factory=deque)
    hazard_indices: tuple[int, ...] = field(default_factory=lambda: settings.hazard_tile_indices)
    walkable_indices: tuple[int, ...] = field(default_factory=lambda: settings.walkable_tile_indices)
    initial_position: Position | None = None
    initial_direction: int | None = None
    bounds: MapDimensions | None = field(default=None, repr=False)
    layer: TerrainLayer | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self.direction = parse_direction(self.direction)
        self.movement_history = deque(self.movement_history, maxlen=self.max_history_size)
        if self.initial_position is None:
            self.initial_position = Position(self.position.x, self.position.y)
        else:
            self.initial_position = Position.from_any(self.initial_position)
        if self.initial_direction is None:
            self.initial_direction = self.direction

    # ------------------------------------------------------------------
    # contract
    # ------------------------------------------------------------------

    def validate(self) -> bool:
        if not isinstance(self.direction, int) or isinstance(self.direction, bool) or not 0 <= self.direction <= 3:
            raise EntityValidationError(f"Invalid direction: {self.direction}")
        for coord in (self.position.x, self.position.y):
            if not isinstance(coord, int) or isinstance(coord, bool):
                raise EntityValidationError("Invalid position coordinates")
        for color, count in self.inventory.batteries.items():
            if color not in BATTERY_COLORS:
                raise EntityValidationError(f"Invalid battery color in inventory: {color}")
            if count < 0:
                raise EntityValidationError(f"Negative {color} battery count: {count}")
        if self.inventory.boxes < 0:
            raise EntityValidationError(f"Negative box count: {self.inventory.boxes}")
        if len(self.movement_history) > self.max_history_size:
            raise EntityValidationError("Movement history exceeds its capacity")
        return True

    def serialize(self) -> dict[str, Any]:
        snapshot = self._base_snapshot()
        snapshot.update(
            {
                "direction": self.direction,
                "directionName": self.get_direction_name(),
                "isMoving": self.is_moving,
                "inventory": self.inventory.to_dict(),
                "maxHistorySize": self.max_history_size,
                "movementHistory": copy.deepcopy(list(self.movement_history)),
                "initialPosition": self.initial_position.to_dict() if self.initial_position else None,
                "initialDirection": self.initial_direction,
            }
        )
        return snapshot

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Robot:
        return cls(
            **cls._base_kwargs(data),
            direction=data.get("direction", 0),
            is_moving=bool(data.get("isMoving", False)),
            inventory=Inventory.from_dict(data.get("inventory")),
            max_history_size=int(data.get("maxHistorySize") or settings.history_size),
            movement_history=deque(copy.deepcopy(data.get("movementHistory") or [])),
            initial_position=data.get("initialPosition"),
            initial_direction=data.get("initialDirection"),
        )

    # ------------------------------------------------------------------
    # map references and tile checks
    # ------------------------------------------------------------------

    def set_map_references(self, bounds: MapDimensions | None, layer: TerrainLayer | None) -> None:
        self.bounds = bounds
        self.layer = layer

    def is_within_bounds(self, tile_x: int, tile_y: int) -> bool:
        if self.bounds is None:
            return False
        return 0 <= tile_x < self.bounds.width and 0 <= tile_y < self.bounds.height

    def is_valid_tile(self, tile_x: int, tile_y: int) -> bool:
        """True if the tile is an in-bounds road/crossroad."""
        if self.layer is None or not self.is_within_bounds(tile_x, tile_y):
            return False
        tile = self.layer.tile_at(tile_x, tile_y)
        return tile is not None and tile.index in self.walkable_indices

    def validate_current_position(self) -> PositionCheck:
        x, y = self.position.x, self.position.y
        if not self.is_within_bounds(x, y):
            return PositionCheck(False, f"Moved off the map at ({x}, {y})")
        if self.layer is None:
            return PositionCheck(False, "Terrain layer is not configured")
        tile = self.layer.tile_at(x, y)
        if tile is None:
            return PositionCheck(False, "Uh-oh! Empty space trap, game over!")
        if tile.index in self.hazard_indices:
            return PositionCheck(False, "Yikes! You walked straight into nothingness")
        return PositionCheck(True)

    # ------------------------------------------------------------------
    # movement
    # ------------------------------------------------------------------

    def get_direction_name(self) -> str:
        return DIRECTION_NAMES[self.direction]

    def turn_left(self) -> None:
        self.direction = (self.direction - 1 + 4) % 4
        self.add_to_history("turnLeft")

    def turn_right(self) -> None:
        self.direction = (self.direction + 1) % 4
        self.add_to_history("turnRight")

    def turn_back(self) -> None:
        self.direction = (self.direction + 2) % 4
        self.add_to_history("turnBack")

    def get_front_position(self) -> Position:
        dx, dy = _FRONT_OFFSETS[self.direction]
        return Position(self.position.x + dx, self.position.y + dy)

    def move_to(self, x: int, y: int) -> None:
        old = self.position.to_dict()
        self.update_position(x, y)
        self.add_to_history("move", {"from": old, "to": {"x": x, "y": y}})

    def move_forward(self) -> MoveResult:
        """Step onto the front tile, then validate it; an invalid landing is not rolled back."""
        if self.is_moving:
            return MoveResult(False, Position(self.position.x, self.position.y), "Robot is already moving!")

        front = self.get_front_position()
        self.move_to(front.x, front.y)

        check = self.validate_current_position()
        if not check.is_valid:
            logger.debug("robot %s landed on invalid tile %s: %s", self.id, front.key(), check.error)
            return MoveResult(False, front, check.error)
        return MoveResult(True, front)

    # ------------------------------------------------------------------
    # inventory
    # ------------------------------------------------------------------

    def add_battery(self, color: str, count: int = 1) -> None:
        if count < 1:
            logger.warning("ignoring non-positive battery count=%s", count)
            return
        if color not in self.inventory.batteries:
            logger.warning("ignoring unknown battery color=%s", color)
            return
        self.inventory.batteries[color] += count
        self.add_to_history("addBattery", {"color": color, "count": count})

    def remove_battery(self, color: str, count: int = 1) -> bool:
        if count < 1 or self.inventory.batteries.get(color, 0) < count:
            return False
        self.inventory.batteries[color] -= count
        self.add_to_history("removeBattery", {"color": color, "count": count})
        return True

    def add_box(self, count: int = 1) -> None:
        if count < 1:
            return
        self.inventory.boxes += count
        self.add_to_history("addBox", {"count": count})

    def remove_box(self, count: int = 1) -> bool:
        if count < 1 or self.inventory.boxes < count:
            return False
        self.inventory.boxes -= count
        self.add_to_history("removeBox", {"count": count})
        return True

    def get_total_batteries(self) -> int:
        return sum(self.inventory.batteries.values())

    def has_battery(self, color: str, count: int = 1) -> bool:
        return self.inventory.batteries.get(color, 0) >= count

    def has_box(self, count: int = 1) -> bool:
        return self.inventory.boxes >= count

    # ------------------------------------------------------------------
    # history
    # ------------------------------------------------------------------

    def add_to_history(self, action: str, data: dict[str, Any] | None = None) -> None:
        # deque(maxlen=...) evicts the oldest entry at capacity
        self.movement_history.append(
            {
                "action": action,
                "data": data or {},
                "timestamp": now_ms(),
                "position": self.position.to_dict(),
                "direction": self.direction,
            }
        )

    def get_history(self, limit: int = 10) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        return list(self.movement_history)[-limit:]

    def clear_history(self) -> None:
        self.movement_history.clear()

    # ------------------------------------------------------------------
    # utility
    # ------------------------------------------------------------------

    def reset(self, initial: dict[str, Any] | None = None) -> None:
        """Return to the initial pose with an empty inventory and history."""
        if initial:
            self.position = Position.from_any(initial.get("position"))
            self.direction = parse_direction(initial.get("direction", "north"))
        else:
            start = self.initial_position or Position()
            self.position = Position(start.x, start.y)
            self.direction = self.initial_direction or 0
        self.is_moving = False
        self.inventory = Inventory()
        self.clear_history()

    def get_current_tile_key(self) -> str:
        return self.position.key()

    def pose(self) -> dict[str, Any]:
        return {"position": self.position.to_dict(), "direction": self.get_direction_name()}
