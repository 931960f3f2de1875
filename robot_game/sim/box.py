from __future__ import annotations

"""
File: robot_game/sim/box.py
Purpose: Box placement state machine (warehouse -> carried -> placed -> warehouse).
"""

from dataclasses import dataclass
from math import cos, pi, sin
from typing import Any, ClassVar

from robot_game.errors import EntityValidationError
from robot_game.sim.entities import EntityBase, Position


@dataclass(eq=False)
class Box(EntityBase):
    """A box that starts in a warehouse and can be carried and placed."""
    kind: ClassVar[str] = "box"

    is_in_warehouse: bool = False
    is_carried: bool = False
    carried_by: str | None = None
    is_placed: bool = False
    warehouse_position: Position | None = None
    spread: float = 1
    index: int = 0
    original_count: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.warehouse_position is not None:
            self.warehouse_position = Position.from_any(self.warehouse_position)

    def validate(self) -> bool:
        state_count = sum(1 for flag in (self.is_in_warehouse, self.is_carried, self.is_placed) if flag)
        if state_count > 1:
            raise EntityValidationError("Box can only be in one state: warehouse, carried, or placed")
        if self.is_carried and not self.carried_by:
            raise EntityValidationError("Carried box must have carriedBy field")
        return True

    def serialize(self) -> dict[str, Any]:
        snapshot = self._base_snapshot()
        snapshot.update(
            {
                "isInWarehouse": self.is_in_warehouse,
                "isCarried": self.is_carried,
                "carriedBy": self.carried_by,
                "isPlaced": self.is_placed,
                "warehousePosition": self.warehouse_position.to_dict() if self.warehouse_position else None,
                "spread": self.spread,
                "index": self.index,
                "originalCount": self.original_count,
            }
        )
        return snapshot

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Box:
        return cls(
            **cls._base_kwargs(data),
            is_in_warehouse=bool(data.get("isInWarehouse", False)),
            is_carried=bool(data.get("isCarried", False)),
            carried_by=data.get("carriedBy"),
            is_placed=bool(data.get("isPlaced", False)),
            warehouse_position=data.get("warehousePosition"),
            spread=data.get("spread") or 1,
            index=int(data.get("index") or 0),
            original_count=int(data.get("originalCount") or 1),
        )

    # ------------------------------------------------------------------
    # transitions; a violated precondition returns False and changes nothing
    # ------------------------------------------------------------------

    def take_from_warehouse(self, robot_id: str) -> bool:
        if not self.is_in_warehouse or self.is_carried or self.is_placed:
            return False
        self.is_in_warehouse = False
        self.is_carried = True
        self.carried_by = robot_id
        return True

    def place_at_position(self, x: int, y: int) -> bool:
        if not self.is_carried:
            return False
        self.is_carried = False
        self.carried_by = None
        self.is_placed = True
        self.update_position(x, y)
        return True

    def return_to_warehouse(self) -> bool:
        if not self.is_carried and not self.is_placed:
            return False
        self.is_carried = False
        self.carried_by = None
        self.is_placed = False
        self.is_in_warehouse = True
        if self.warehouse_position is not None:
            self.update_position(self.warehouse_position.x, self.warehouse_position.y)
        return True

    def reset(self) -> None:
        self.is_carried = False
        self.carried_by = None
        self.is_placed = False
        self.is_in_warehouse = True
        self.set_active(True)
        if self.warehouse_position is not None:
            self.update_position(self.warehouse_position.x, self.warehouse_position.y)

    # ------------------------------------------------------------------
    # state queries
    # ------------------------------------------------------------------

    def is_available_in_warehouse(self) -> bool:
        return self.is_in_warehouse and self.is_active

    def is_being_carried(self) -> bool:
        return self.is_carried and self.carried_by is not None

    def is_placed_on_map(self) -> bool:
        return self.is_placed

    def get_current_state(self) -> str:
        if self.is_in_warehouse:
            return "warehouse"
        if self.is_carried:
            return "carried"
        if self.is_placed:
            return "placed"
        return "unknown"

    def calculate_visual_position(
        self, tile_width: float, tile_height: float, center_x: float, center_y: float
    ) -> tuple[float, float]:
        if self.original_count <= 1:
            return center_x, center_y
        radius = min(tile_width, tile_height) * 0.2 * self.spread
        angle = -pi / 2 + (self.index * 2 * pi) / self.original_count
        return center_x + radius * cos(angle), center_y + radius * sin(angle)

    # ------------------------------------------------------------------
    # factories
    # ------------------------------------------------------------------

    @classmethod
    def from_tile_config(cls, tile: dict[str, Any], index: int = 0) -> Box:
        return cls(
            position=Position(tile["x"], tile["y"]),
            is_in_warehouse=True,
            warehouse_position=Position(tile["x"], tile["y"]),
            spread=tile.get("spread") or 1,
            index=index,
            original_count=tile.get("count") or 1,
            metadata={"tileConfig": dict(tile)},
        )

    @classmethod
    def create_multiple_from_tile_config(cls, tile: dict[str, Any]) -> list[Box]:
        count = tile.get("count") or 1
        return [cls.from_tile_config(tile, idx) for idx in range(count)]

    @classmethod
    def create_from_box_config(cls, group: dict[str, Any]) -> list[Box]:
        boxes: list[Box] = []
        for tile in group.get("tiles") or []:
            merged = {**tile, "spread": tile.get("spread") or group.get("spread")}
            boxes.extend(cls.create_multiple_from_tile_config(merged))
        return boxes
