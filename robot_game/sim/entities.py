from __future__ import annotations

"""
File: robot_game/sim/entities.py
Purpose: Shared entity contract and type aliases for simulation state.
Key responsibilities:
- Identity (generated, immutable id), tile position, active flag, metadata.
- validate/serialize/clone contract every concrete entity must honor.
- Pure geometric helpers (distance, same-position).
"""

import copy
from dataclasses import dataclass, field
from math import hypot
import secrets
import string
import time
from typing import Any, ClassVar, Literal

from robot_game.errors import EntityError, EntityValidationError


BatteryColor = Literal["red", "yellow", "green"]
GameState = Literal["ready", "playing", "won", "lost"]
EntityKind = Literal["robot", "battery", "box"]

BATTERY_COLORS: tuple[str, ...] = ("red", "yellow", "green")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def now_ms() -> int:
    """Wall-clock epoch milliseconds, used for timestamps only (never for simulation logic)."""
    return int(time.time() * 1000)


def generate_id(kind: str) -> str:
    """Build an id from the entity kind, a timestamp and a random suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{kind}_{now_ms()}_{suffix}"


@dataclass
class Position:
    """Integer tile coordinates."""
    x: int = 0
    y: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y}

    def key(self) -> str:
        return f"{self.x},{self.y}"

    @classmethod
    def from_any(cls, value: Any) -> Position:
        """Accept a Position, a {x, y} mapping or None."""
        if value is None:
            return cls()
        if isinstance(value, Position):
            return cls(value.x, value.y)
        return cls(x=value.get("x", 0), y=value.get("y", 0))


@dataclass(eq=False)
class EntityBase:
    """Identity, position and metadata shared by every entity kind.

    Concrete kinds must override validate(), serialize() and from_dict().
    """
    kind: ClassVar[str] = "entity"

    id: str = ""
    position: Position = field(default_factory=Position)
    is_active: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            self.id = generate_id(self.kind)
        self.position = Position.from_any(self.position)
        if not self.created_at:
            self.created_at = now_ms()

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and self.__dict__.get("id"):
            raise EntityError(f"{self.kind} id is immutable")
        super().__setattr__(name, value)

    def validate(self) -> bool:
        raise EntityValidationError(f"validate() must be implemented by {type(self).__name__}")

    def serialize(self) -> dict[str, Any]:
        raise EntityError(f"serialize() must be implemented by {type(self).__name__}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EntityBase:
        raise EntityError(f"from_dict() must be implemented by {cls.__name__}")

    def clone(self) -> EntityBase:
        """Construct an equivalent entity from this entity's snapshot."""
        return type(self).from_dict(self.serialize())

    def _base_snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "position": self.position.to_dict(),
            "isActive": self.is_active,
            "metadata": copy.deepcopy(self.metadata),
            "createdAt": self.created_at,
        }

    @staticmethod
    def _base_kwargs(data: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": data.get("id", ""),
            "position": Position.from_any(data.get("position")),
            "is_active": data.get("isActive", True) is not False,
            "metadata": copy.deepcopy(data.get("metadata") or {}),
            "created_at": int(data.get("createdAt") or 0),
        }

    def update_position(self, x: int, y: int) -> None:
        self.position = Position(x, y)

    def set_active(self, active: bool) -> None:
        self.is_active = active

    def get_metadata(self, key: str) -> Any:
        return self.metadata.get(key)

    def set_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def distance_to(self, x: float, y: float) -> float:
        return hypot(self.position.x - x, self.position.y - y)

    def is_same_position(self, other: EntityBase) -> bool:
        return self.position.x == other.position.x and self.position.y == other.position.y
