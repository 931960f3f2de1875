from __future__ import annotations

"""
File: robot_game/sim/engine.py
Purpose: Deterministic program executor over a world aggregate.
Key responsibilities:
- Apply primitive actions strictly in order; stop at the first losing action.
- Judge the final world state with the victory evaluator.
- Feed per-step payloads to an optional sink (interactive feedback).
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Callable

from robot_game.errors import GameError
from robot_game.sim.program import PrimitiveAction
from robot_game.sim.robot import Robot
from robot_game.sim.world import GameMap

logger = logging.getLogger("robot-game.engine")

StepSink = Callable[[dict[str, Any]], None]


@dataclass
class ActionFailure:
    """Why a single action lost the game."""
    reason: str
    message: str


@dataclass
class ExecutionResult:
    """Outcome of running a program to completion or to its first failure."""
    is_victory: bool
    reason: str | None
    message: str
    step: int
    total_steps: int
    failed_action: dict[str, Any] | None = None
    robot: dict[str, Any] = field(default_factory=dict)
    victory: dict[str, Any] | None = None
    actions: list[dict[str, Any]] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        return "victory" if self.is_victory else "lose"

    def to_dict(self) -> dict[str, Any]:
        return {
            "isVictory": self.is_victory,
            "outcome": self.outcome,
            "reason": self.reason,
            "message": self.message,
            "step": self.step,
            "totalSteps": self.total_steps,
            "failedAction": self.failed_action,
            "robot": self.robot,
            "victory": self.victory,
            "actions": self.actions,
        }


class SimulationEngine:
    """Applies primitive actions to a world and judges the result."""

    def __init__(self, world: GameMap, step_sink: StepSink | None = None, silent: bool = False) -> None:
        robot = world.get_first_robot()
        if robot is None:
            raise GameError("world has no robot")
        self.world = world
        self.robot: Robot = robot
        self.step_sink = step_sink
        self.silent = silent
        self.actions: list[PrimitiveAction] = []
        self.cursor = 0
        self.result: ExecutionResult | None = None

    # ------------------------------------------------------------------
    # stepping
    # ------------------------------------------------------------------

    def start(self, actions: list[PrimitiveAction]) -> None:
        self.actions = list(actions)
        self.cursor = 0
        self.result = None
        self.world.start_game()

    @property
    def done(self) -> bool:
        return self.result is not None

    def step(self) -> ExecutionResult | None:
        """Apply the next action; returns the final result once the run ends."""
        if self.result is not None:
            return self.result
        if self.cursor >= len(self.actions):
            return self._finish_with_judgement()

        index = self.cursor
        action = self.actions[index]
        failure = self.apply_action(action)
        self.cursor += 1
        self._emit_step(index, action, failure)

        if failure is not None:
            return self._finish(
                is_victory=False,
                reason=failure.reason,
                message=failure.message,
                step=index + 1,
                failed_action=action.to_dict(),
            )
        if self.cursor >= len(self.actions):
            return self._finish_with_judgement()
        return None

    def run(self, actions: list[PrimitiveAction]) -> ExecutionResult:
        """Run a whole program synchronously."""
        self.start(actions)
        result = self.step()
        while result is None:
            result = self.step()
        return result

    # ------------------------------------------------------------------
    # actions
    # ------------------------------------------------------------------

    def apply_action(self, action: PrimitiveAction) -> ActionFailure | None:
        if action.type == "forward":
            return self._forward(action.count or 1)
        if action.type == "turnLeft":
            self.robot.turn_left()
            return None
        if action.type == "turnRight":
            self.robot.turn_right()
            return None
        if action.type == "turnBack":
            self.robot.turn_back()
            return None
        if action.type == "collect":
            return self._collect(action.color or "green", action.count or 1)
        if action.type == "takeBox":
            return self._take_box()
        if action.type == "putBox":
            return self._put_box()
        # The compiler never produces other types.
        raise GameError(f"unsupported action type: {action.type}")

    def _forward(self, count: int) -> ActionFailure | None:
        for _ in range(count):
            result = self.robot.move_forward()
            if not result.success:
                return ActionFailure("invalid_move", result.error or "Invalid move")
        return None

    def _collect(self, color: str, count: int) -> ActionFailure | None:
        x, y = self.robot.position.x, self.robot.position.y
        available = self.world.get_batteries_at_position(x, y)
        if not available:
            return ActionFailure("no_battery", f"No battery at ({x}, {y})")
        if len(available) != count:
            return ActionFailure(
                "battery_count_mismatch",
                f"Tile ({x}, {y}) holds {len(available)} batteries but {count} were requested",
            )
        matching = [battery for battery in available if battery.color == color]
        if len(matching) < count:
            return ActionFailure(
                "wrong_battery_color",
                f"Tile ({x}, {y}) holds {len(matching)} {color} batteries, {count} requested",
            )

        for battery in matching[:count]:
            outcome = battery.collect_silently(self.robot.id) if self.silent else battery.collect(self.robot.id)
            if outcome.game_over:
                return ActionFailure("forbidden_battery", outcome.message)
            if not outcome.success:
                return ActionFailure("no_battery", outcome.message)
            self.robot.add_battery(color)
        return None

    def _take_box(self) -> ActionFailure | None:
        front = self.robot.get_front_position()
        boxes = self.world.get_warehouse_boxes_at_position(front.x, front.y)
        if not boxes or not boxes[0].take_from_warehouse(self.robot.id):
            return ActionFailure("no_box", f"No box to take at ({front.x}, {front.y})")
        self.robot.add_box()
        return None

    def _put_box(self) -> ActionFailure | None:
        carried = self.world.get_carried_boxes(self.robot.id)
        if not carried or not self.robot.has_box():
            return ActionFailure("no_box_carried", "Robot is not carrying a box")

        front = self.robot.get_front_position()
        if not self.world.is_valid_position(front.x, front.y):
            return ActionFailure("invalid_box_placement", f"Cannot place a box off the map at ({front.x}, {front.y})")
        targets = self.world.get_box_targets()
        if targets and not any(t["x"] == front.x and t["y"] == front.y for t in targets):
            return ActionFailure("invalid_box_placement", f"({front.x}, {front.y}) is not a box target")

        carried[0].place_at_position(front.x, front.y)
        self.robot.remove_box()
        return None

    # ------------------------------------------------------------------
    # results
    # ------------------------------------------------------------------

    def _finish_with_judgement(self) -> ExecutionResult:
        report = self.world.check_victory_conditions()
        if report.is_victory:
            message = report.description or "Victory!"
            return self._finish(True, None, message, len(self.actions), victory=report.to_dict())
        return self._finish(
            False,
            "victory_not_met",
            "Program finished without meeting the victory conditions",
            len(self.actions),
            victory=report.to_dict(),
        )

    def _finish(
        self,
        is_victory: bool,
        reason: str | None,
        message: str,
        step: int,
        failed_action: dict[str, Any] | None = None,
        victory: dict[str, Any] | None = None,
    ) -> ExecutionResult:
        self.world.end_game(is_victory)
        if victory is None:
            victory = self.world.check_victory_conditions().to_dict()
        self.result = ExecutionResult(
            is_victory=is_victory,
            reason=reason,
            message=message,
            step=step,
            total_steps=len(self.actions),
            failed_action=failed_action,
            robot=self._robot_payload(),
            victory=victory,
            actions=[action.to_dict() for action in self.actions],
        )
        logger.debug("run finished outcome=%s reason=%s step=%s", self.result.outcome, reason, step)
        return self.result

    def _emit_step(self, index: int, action: PrimitiveAction, failure: ActionFailure | None) -> None:
        if self.step_sink is None:
            return
        self.step_sink(
            {
                "step": index + 1,
                "totalSteps": len(self.actions),
                "action": action.to_dict(),
                "success": failure is None,
                "robot": self._robot_payload(),
            }
        )

    def _robot_payload(self) -> dict[str, Any]:
        return {**self.robot.pose(), "inventory": self.robot.inventory.to_dict()}

    def snapshot(self) -> dict[str, Any]:
        """Return a serializable snapshot of the current world state."""
        return {
            "gameState": self.world.game_state,
            "robot": self._robot_payload(),
            "step": self.cursor,
            "totalSteps": len(self.actions),
            "statistics": self.world.get_statistics(),
        }
