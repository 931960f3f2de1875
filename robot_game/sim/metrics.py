from __future__ import annotations

"""
File: robot_game/sim/metrics.py
Purpose: Compute aggregate statistics from world state.
Key responsibilities:
- Entity totals, collection/placement counts, play time and victory progress.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from robot_game.sim.world import GameMap


def compute_statistics(world: GameMap) -> dict[str, Any]:
    """Compute map-level statistics used by status reports."""
    batteries = world.get_all_batteries()
    boxes = list(world.boxes.values())
    collected_batteries = sum(1 for b in batteries if b.is_collected)
    placed_boxes = sum(1 for b in boxes if b.is_placed_on_map())
    carried_boxes = sum(1 for b in boxes if b.is_being_carried())

    robot = world.get_first_robot()
    moves = 0
    if robot is not None:
        moves = sum(1 for entry in robot.movement_history if entry.get("action") == "move")

    return {
        "totalRobots": len(world.robots),
        "totalBatteries": len(batteries),
        "collectedBatteries": collected_batteries,
        "availableBatteries": len(batteries) - collected_batteries,
        "totalBoxes": len(boxes),
        "placedBoxes": placed_boxes,
        "carriedBoxes": carried_boxes,
        "warehouseBoxes": len(world.get_available_boxes()),
        "moves": moves,
        "gameState": world.game_state,
        "playTime": world.get_play_time(),
        "progress": world.check_victory_conditions().progress,
    }
