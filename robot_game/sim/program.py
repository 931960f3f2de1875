from __future__ import annotations

"""
File: robot_game/sim/program.py
Purpose: Compile host programs into primitive actions.
Key responsibilities:
- Parse structured programs ({actions: [...]}) with lenient field defaults.
- Compile flat token lists, coalescing adjacent forwards and same-color collects.
Key entrypoints:
- compile_program, compile_tokens, parse_program
"""

from dataclasses import dataclass
import logging
from typing import Any, Literal

from robot_game.sim.entities import BATTERY_COLORS

logger = logging.getLogger("robot-game.program")

ActionType = Literal["forward", "turnLeft", "turnRight", "turnBack", "collect", "takeBox", "putBox"]

TURN_ACTIONS = ("turnLeft", "turnRight", "turnBack")
BOX_ACTIONS = ("takeBox", "putBox")
ACTION_TYPES: tuple[str, ...] = ("forward", *TURN_ACTIONS, "collect", *BOX_ACTIONS)
TERMINAL_TOKENS = frozenset({"victory", "defeat"})
_COLLECT_TOKENS = {f"collect{color.capitalize()}": color for color in BATTERY_COLORS}


@dataclass
class PrimitiveAction:
    """One step the engine can apply to a world."""
    type: str
    count: int | None = None
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.count is not None:
            payload["count"] = self.count
        if self.color is not None:
            payload["color"] = self.color
        return payload


def _parse_count(value: Any) -> int:
    """Integer prefix parse; anything unparseable or non-positive becomes 1."""
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        count = int(value)
        return count if count > 0 else 1
    if isinstance(value, str):
        digits = ""
        for char in value.strip():
            if char.isdigit() or (char == "-" and not digits):
                digits += char
            else:
                break
        try:
            count = int(digits)
        except ValueError:
            return 1
        return count if count > 0 else 1
    return 1


def parse_action(raw: Any, index: int = 0) -> PrimitiveAction | None:
    """Parse one structured action, or None (with a warning) if it is unusable."""
    if not isinstance(raw, dict) or not raw.get("type"):
        logger.warning("action %s: missing type", index)
        return None

    action_type = raw["type"]
    if action_type == "forward":
        return PrimitiveAction("forward", count=_parse_count(raw.get("count")))
    if action_type in TURN_ACTIONS or action_type in BOX_ACTIONS:
        return PrimitiveAction(action_type)
    if action_type == "collect":
        color = raw.get("color")
        if not color and isinstance(raw.get("colors"), list) and raw["colors"]:
            color = raw["colors"][0]
        return PrimitiveAction("collect", count=_parse_count(raw.get("count")), color=color or "green")

    logger.warning("action %s: unknown type %r", index, action_type)
    return None


def parse_program(program: dict[str, Any]) -> list[PrimitiveAction]:
    """Parse a structured program; `version` and `programName` are informational."""
    raw_actions = program.get("actions")
    if not isinstance(raw_actions, list):
        return []
    if program.get("programName"):
        logger.debug("parsing program name=%s version=%s", program.get("programName"), program.get("version"))
    actions: list[PrimitiveAction] = []
    for index, raw in enumerate(raw_actions):
        action = parse_action(raw, index)
        if action is not None:
            actions.append(action)
    return actions


def compile_tokens(tokens: list[Any]) -> list[PrimitiveAction]:
    """Compile a flat token list into coalesced primitive actions.

    Terminal markers and unknown tokens are dropped without ending a run;
    turns and box tokens flush whatever is pending.
    """
    actions: list[PrimitiveAction] = []
    pending: PrimitiveAction | None = None

    def flush() -> None:
        nonlocal pending
        if pending is not None:
            actions.append(pending)
            pending = None

    for token in tokens:
        if isinstance(token, dict):
            # Mixed lists may carry already-structured actions.
            parsed = parse_action(token)
            if parsed is not None:
                flush()
                actions.append(parsed)
            continue
        if not isinstance(token, str):
            continue

        if token == "forward":
            if pending is not None and pending.type == "forward":
                pending.count = (pending.count or 0) + 1
            else:
                flush()
                pending = PrimitiveAction("forward", count=1)
        elif token in _COLLECT_TOKENS:
            color = _COLLECT_TOKENS[token]
            if pending is not None and pending.type == "collect" and pending.color == color:
                pending.count = (pending.count or 0) + 1
            else:
                flush()
                pending = PrimitiveAction("collect", count=1, color=color)
        elif token in TURN_ACTIONS or token in BOX_ACTIONS:
            flush()
            actions.append(PrimitiveAction(token))
        elif token in TERMINAL_TOKENS:
            continue
        else:
            logger.debug("ignoring unknown token=%r", token)

    flush()
    return actions


def compile_program(program: Any) -> list[PrimitiveAction]:
    """Accept a structured program, a token list, or a list of structured actions."""
    if isinstance(program, dict):
        return parse_program(program)
    if isinstance(program, list):
        if all(isinstance(item, dict) for item in program):
            return parse_program({"actions": program})
        return compile_tokens(program)
    logger.warning("unsupported program payload type=%s", type(program).__name__)
    return []
