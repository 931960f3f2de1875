from __future__ import annotations

"""
File: robot_game/sim/config.py
Purpose: Turn raw challenge/map descriptions into a world aggregate.
Key responsibilities:
- Validate the external config shapes with pydantic models.
- Derive victory rules when the challenge has no explicit victory block.
- Build the terrain layer and the GameMap for a session.
Key entrypoints:
- transform_challenge_config, load_world
"""

import logging
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from robot_game.errors import ConfigError
from robot_game.settings import settings
from robot_game.sim.battery import Battery, VisibilityObserver
from robot_game.sim.entities import BATTERY_COLORS
from robot_game.sim.terrain import layer_from_tiled
from robot_game.sim.victory import has_box_rules
from robot_game.sim.world import GameMap

logger = logging.getLogger("robot-game.config")


class TileSpec(BaseModel):
    """One tile entry of a battery or box group."""
    model_config = ConfigDict(extra="allow")

    x: int
    y: int
    count: int = Field(default=1, ge=0)
    type: Optional[Literal["red", "yellow", "green"]] = None
    types: Optional[list[Literal["red", "yellow", "green"]]] = None
    spread: Optional[float] = None
    allowedCollect: Optional[bool] = None


class TileGroup(BaseModel):
    """A battery or box group; tiles inherit the group's type/spread."""
    model_config = ConfigDict(extra="allow")

    type: Optional[Literal["red", "yellow", "green"]] = None
    spread: Optional[float] = None
    tiles: list[TileSpec] = Field(default_factory=list)


class RobotSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    tile: dict[str, int]
    direction: Union[str, int] = "north"


class BatteryRule(BaseModel):
    """Battery-mode rule: at least this many of each color."""
    model_config = ConfigDict(extra="allow")

    red: Optional[int] = Field(default=None, ge=0)
    yellow: Optional[int] = Field(default=None, ge=0)
    green: Optional[int] = Field(default=None, ge=0)


class BoxRule(BaseModel):
    """Box-mode rule: exactly ``count`` boxes on tile (x, y)."""
    model_config = ConfigDict(extra="allow")

    x: int
    y: int
    count: Optional[int] = Field(default=None, ge=0)


class ChallengeConfig(BaseModel):
    """Challenge description sent by the host."""
    model_config = ConfigDict(extra="allow")

    robot: RobotSpec
    batteries: list[TileGroup] = Field(default_factory=list)
    boxes: list[TileGroup] = Field(default_factory=list)
    victory: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    statement: Any = None
    minCards: Optional[int] = None
    maxCards: Optional[int] = None

    @field_validator("victory")
    @classmethod
    def _check_victory_rules(cls, value: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        # The block is kept as sent; only the rules the evaluator reads are checked.
        rules = (value or {}).get("byType")
        if rules is None:
            return value
        if not isinstance(rules, list) or not all(isinstance(rule, dict) for rule in rules):
            raise ValueError("victory.byType must be a list of objects")
        try:
            if has_box_rules(value):
                for rule in rules:
                    BoxRule.model_validate(rule)
            elif rules:
                BatteryRule.model_validate(rules[0])
        except ValidationError as exc:
            error = exc.errors()[0]
            location = ".".join(str(part) for part in error["loc"])
            raise ValueError(f"invalid victory rule {location}: {error['msg']}") from None
        return value


class MapConfig(BaseModel):
    """The subset of a Tiled map description the engine reads."""
    model_config = ConfigDict(extra="allow")

    width: int = 10
    height: int = 10
    tilewidth: Optional[int] = None
    layers: list[dict[str, Any]]


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(exclude_none=True)


def extract_battery_requirements(groups: list[dict[str, Any]]) -> dict[str, int] | None:
    """Total collectible batteries per color, or None when no group contributes."""
    requirements = {color: 0 for color in BATTERY_COLORS}
    found = False
    for group in groups:
        for battery in Battery.create_from_battery_config(group):
            if not battery.allowed_collect:
                continue
            requirements[battery.color] += 1
            found = True
    return requirements if found else None


def extract_box_requirements(groups: list[dict[str, Any]]) -> list[dict[str, int]]:
    """One {x, y, count} requirement per box tile."""
    requirements: list[dict[str, int]] = []
    for group in groups:
        for tile in group.get("tiles") or []:
            requirements.append({"x": tile["x"], "y": tile["y"], "count": tile.get("count") or 1})
    return requirements


def transform_challenge_config(challenge: dict[str, Any]) -> dict[str, Any]:
    """Normalize a challenge into GameMap constructor parameters.

    An explicit ``victory`` block wins; otherwise rules are derived from the
    batteries, and box rules replace battery rules when both are present.
    """
    victory: dict[str, Any] = {
        "description": challenge.get("description") or "Complete the challenge",
        "statement": challenge.get("statement") or [],
    }
    for key in ("minCards", "maxCards"):
        if isinstance(challenge.get(key), int):
            victory[key] = challenge[key]

    batteries = list(challenge.get("batteries") or [])
    boxes = list(challenge.get("boxes") or [])

    if challenge.get("victory"):
        victory.update(challenge["victory"])
    else:
        battery_rules = extract_battery_requirements(batteries) if batteries else None
        if battery_rules:
            victory["byType"] = [battery_rules]
        box_rules = extract_box_requirements(boxes) if boxes else []
        if box_rules:
            victory["byType"] = box_rules

    return {
        "robot": challenge.get("robot"),
        "batteries": batteries,
        "boxes": boxes,
        "victory": victory,
    }


def parse_challenge(raw: dict[str, Any]) -> dict[str, Any]:
    try:
        return _dump(ChallengeConfig.model_validate(raw))
    except ValidationError as exc:
        raise ConfigError(f"invalid challenge config: {exc.errors()[0]['msg']}") from exc


def parse_map(raw: dict[str, Any]) -> dict[str, Any]:
    try:
        return MapConfig.model_validate(raw).model_dump()
    except ValidationError as exc:
        raise ConfigError(f"invalid map data: {exc.errors()[0]['msg']}") from exc


def load_world(
    map_json: dict[str, Any] | None,
    challenge_json: dict[str, Any] | None,
    battery_observer: VisibilityObserver | None = None,
    map_key: str = "webview",
) -> GameMap:
    """Build and validate a fresh world from host-supplied descriptions."""
    if not map_json or not challenge_json:
        raise ConfigError("mapJson and challengeJson are required")

    map_data = parse_map(map_json)
    challenge = parse_challenge(challenge_json)
    transformed = transform_challenge_config(challenge)

    world = GameMap.from_config(
        map_key,
        {
            "width": map_data["width"],
            "height": map_data["height"],
            "tileSize": map_data.get("tilewidth") or settings.default_tile_size,
            **transformed,
        },
        layer=layer_from_tiled(map_data),
        battery_observer=battery_observer,
    )
    world.validate()
    try:
        world.check_victory_conditions()
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"invalid victory conditions: {exc}") from exc
    logger.info(
        "world built width=%s height=%s batteries=%s boxes=%s box_mode=%s",
        world.width,
        world.height,
        len(world.batteries),
        len(world.boxes),
        world.has_box_victory_conditions(),
    )
    return world
