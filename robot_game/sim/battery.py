from __future__ import annotations

"""
File: robot_game/sim/battery.py
Purpose: Battery collection state machine and tile-group factories.
Key responsibilities:
- collect(): soft no-op when already taken, terminal failure when forbidden.
- collect_silently(): same transitions without presentation callbacks.
- Expand challenge tile groups into individual battery entities.
"""

from dataclasses import dataclass, field
from math import cos, pi, sin
from typing import Any, Callable, ClassVar

from robot_game.errors import EntityValidationError
from robot_game.sim.entities import BATTERY_COLORS, EntityBase, Position, now_ms

# Presentation hook: called with (battery, visible).
VisibilityObserver = Callable[["Battery", bool], None]


@dataclass
class CollectResult:
    """Result of a collect attempt."""
    success: bool
    game_over: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "gameOver": self.game_over, "message": self.message}


@dataclass(eq=False)
class Battery(EntityBase):
    """A collectible battery on a tile."""
    kind: ClassVar[str] = "battery"

    color: str = "green"
    is_collected: bool = False
    collected_by: str | None = None
    collected_at: int | None = None
    allowed_collect: bool = True
    spread: float = 1
    index: int = 0
    original_count: int = 1
    observer: VisibilityObserver | None = field(default=None, repr=False)

    def validate(self) -> bool:
        if self.color not in BATTERY_COLORS:
            raise EntityValidationError(f"Invalid battery color: {self.color}")
        if self.is_collected and not self.collected_by:
            raise EntityValidationError("Collected battery must have collectedBy field")
        return True

    def serialize(self) -> dict[str, Any]:
        snapshot = self._base_snapshot()
        snapshot.update(
            {
                "color": self.color,
                "isCollected": self.is_collected,
                "collectedBy": self.collected_by,
                "collectedAt": self.collected_at,
                "allowedCollect": self.allowed_collect,
                "spread": self.spread,
                "index": self.index,
                "originalCount": self.original_count,
            }
        )
        return snapshot

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Battery:
        return cls(
            **cls._base_kwargs(data),
            color=data.get("color") or "green",
            is_collected=bool(data.get("isCollected", False)),
            collected_by=data.get("collectedBy"),
            collected_at=data.get("collectedAt"),
            allowed_collect=data.get("allowedCollect", True) is not False,
            spread=data.get("spread") or 1,
            index=int(data.get("index") or 0),
            original_count=int(data.get("originalCount") or 1),
        )

    # ------------------------------------------------------------------
    # collection
    # ------------------------------------------------------------------

    def collect(self, robot_id: str) -> CollectResult:
        result = self._collect(robot_id, silent=False)
        if result.success:
            self._notify(visible=False)
        return result

    def collect_silently(self, robot_id: str) -> CollectResult:
        """Same state transitions as collect(), without presentation callbacks."""
        return self._collect(robot_id, silent=True)

    def _collect(self, robot_id: str, silent: bool) -> CollectResult:
        if self.is_collected or not self.is_active:
            return CollectResult(False, False, "Battery already collected or inactive")

        if not self.allowed_collect:
            return CollectResult(
                False,
                True,
                f"Game Over! You collected a forbidden {self.color} battery at "
                f"({self.position.x}, {self.position.y})",
            )

        self.is_collected = True
        self.collected_by = robot_id
        self.collected_at = now_ms()
        self.set_active(False)
        suffix = " (silent)" if silent else ""
        return CollectResult(True, False, f"Collected {self.color} battery{suffix}")

    def reset(self) -> None:
        self.is_collected = False
        self.collected_by = None
        self.collected_at = None
        self.set_active(True)
        self._notify(visible=True)

    def is_available(self) -> bool:
        return not self.is_collected and self.is_active

    def _notify(self, visible: bool) -> None:
        if self.observer is not None:
            self.observer(self, visible)

    # ------------------------------------------------------------------
    # layout (consumed by renderers)
    # ------------------------------------------------------------------

    def calculate_visual_position(
        self, tile_width: float, tile_height: float, center_x: float, center_y: float
    ) -> tuple[float, float]:
        """Spread multiple batteries on one tile around its center."""
        if self.original_count <= 1:
            return center_x, center_y
        radius = min(tile_width, tile_height) * 0.2 * self.spread
        angle = -pi / 2 + (self.index * 2 * pi) / self.original_count
        return center_x + radius * cos(angle), center_y + radius * sin(angle)

    # ------------------------------------------------------------------
    # factories
    # ------------------------------------------------------------------

    @classmethod
    def from_tile_config(cls, tile: dict[str, Any], index: int = 0) -> Battery:
        count = tile.get("count") or 1
        types = tile.get("types")
        if isinstance(types, list) and types:
            color = types[index] if index < len(types) and types[index] else types[-1]
        elif tile.get("type"):
            color = tile["type"]
        else:
            color = "green"
        allowed = tile.get("allowedCollect")
        return cls(
            position=Position(tile["x"], tile["y"]),
            color=color,
            spread=tile.get("spread") or 1,
            index=index,
            original_count=count,
            allowed_collect=True if allowed is None else bool(allowed),
            metadata={"tileConfig": dict(tile)},
        )

    @classmethod
    def create_multiple_from_tile_config(cls, tile: dict[str, Any]) -> list[Battery]:
        count = tile.get("count") or 1
        return [cls.from_tile_config(tile, idx) for idx in range(count)]

    @classmethod
    def create_from_battery_config(cls, group: dict[str, Any]) -> list[Battery]:
        """Expand a challenge battery group; tiles inherit the group's type and spread."""
        batteries: list[Battery] = []
        for tile in group.get("tiles") or []:
            merged = {**tile, "type": tile.get("type") or group.get("type"), "spread": tile.get("spread") or group.get("spread")}
            batteries.extend(cls.create_multiple_from_tile_config(merged))
        return batteries
