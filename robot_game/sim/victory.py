from __future__ import annotations

"""
File: robot_game/sim/victory.py
Purpose: Victory evaluation over a world aggregate.
Key responsibilities:
- Select the rule mode from the shape of the first rule entry.
- Box placement: exact count per target tile.
- Battery collection: at least the required count per color.
- Progress/missing breakdowns for host progress reporting.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from robot_game.sim.entities import BATTERY_COLORS

if TYPE_CHECKING:
    from robot_game.sim.world import GameMap


@dataclass
class VictoryResult:
    """Read-only judgement of a world state."""
    is_victory: bool
    type: str
    description: str | None = None
    results: list[dict[str, Any]] = field(default_factory=list)
    collected: dict[str, int] | None = None
    required: dict[str, int] | None = None
    missing: dict[str, int] | None = None
    progress: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "isVictory": self.is_victory,
            "type": self.type,
            "description": self.description,
            "progress": self.progress,
        }
        if self.type == "boxes":
            payload["results"] = [dict(item) for item in self.results]
        else:
            payload["collected"] = dict(self.collected) if self.collected is not None else None
            payload["required"] = dict(self.required) if self.required is not None else None
            payload["missing"] = dict(self.missing) if self.missing is not None else None
        return payload


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _rules(victory_conditions: dict[str, Any]) -> list[dict[str, Any]]:
    by_type = victory_conditions.get("byType")
    return by_type if isinstance(by_type, list) else []


def has_box_rules(victory_conditions: dict[str, Any]) -> bool:
    """Box mode is selected when the first rule carries numeric x and y."""
    rules = _rules(victory_conditions)
    if not rules or not isinstance(rules[0], dict):
        return False
    return _is_number(rules[0].get("x")) and _is_number(rules[0].get("y"))


def required_batteries(victory_conditions: dict[str, Any]) -> dict[str, int] | None:
    rules = _rules(victory_conditions)
    if not rules or not isinstance(rules[0], dict) or has_box_rules(victory_conditions):
        return None
    first = rules[0]
    return {color: int(first.get(color) or 0) for color in BATTERY_COLORS}


def box_targets(victory_conditions: dict[str, Any]) -> list[dict[str, int]]:
    """Target tiles of box mode, or an empty list in battery mode."""
    if not has_box_rules(victory_conditions):
        return []
    return [
        {"x": int(rule["x"]), "y": int(rule["y"]), "count": int(rule.get("count") or 0)}
        for rule in _rules(victory_conditions)
        if isinstance(rule, dict) and _is_number(rule.get("x")) and _is_number(rule.get("y"))
    ]


def calculate_missing(collected: dict[str, int], required: dict[str, int]) -> dict[str, int]:
    return {color: max(0, required.get(color, 0) - collected.get(color, 0)) for color in BATTERY_COLORS}


def calculate_progress(collected: dict[str, int], required: dict[str, int]) -> int:
    """Percent complete (0-100); over-collection of one color does not count toward another."""
    total_required = sum(required.get(color, 0) for color in BATTERY_COLORS)
    if total_required == 0:
        return 100
    total_collected = sum(min(collected.get(color, 0), required.get(color, 0)) for color in BATTERY_COLORS)
    return round(total_collected / total_required * 100)


def check_box_placement(world: GameMap) -> VictoryResult:
    """Every target tile must hold exactly the requested number of placed boxes."""
    results: list[dict[str, Any]] = []
    all_met = True
    for target in box_targets(world.victory_conditions):
        current = len(world.get_placed_boxes_at_position(target["x"], target["y"]))
        met = current == target["count"]
        results.append(
            {
                "position": {"x": target["x"], "y": target["y"]},
                "current": current,
                "required": target["count"],
                "met": met,
            }
        )
        if not met:
            all_met = False

    met_count = sum(1 for item in results if item["met"])
    progress = round(met_count / len(results) * 100) if results else 100
    return VictoryResult(
        is_victory=all_met,
        type="boxes",
        description=world.victory_conditions.get("description"),
        results=results,
        progress=progress,
    )


def check_battery_counts(world: GameMap) -> VictoryResult:
    """Collected count per color must be at least the required count."""
    required = required_batteries(world.victory_conditions)
    collected = world.get_collected_batteries_by_color()
    if required is None:
        return VictoryResult(
            is_victory=False,
            type="batteries",
            description=world.victory_conditions.get("description"),
            collected=collected,
        )

    is_victory = all(collected.get(color, 0) >= count for color, count in required.items())
    return VictoryResult(
        is_victory=is_victory,
        type="batteries",
        description=world.victory_conditions.get("description"),
        collected=collected,
        required=required,
        missing=calculate_missing(collected, required),
        progress=calculate_progress(collected, required),
    )


def evaluate(world: GameMap) -> VictoryResult:
    """Dispatch to whichever rule mode the world's configuration selects."""
    if has_box_rules(world.victory_conditions):
        return check_box_placement(world)
    return check_battery_counts(world)
