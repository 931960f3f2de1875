from __future__ import annotations

"""
File: robot_game/bridge.py
Purpose: Command/event bridge between an external host and the game engine.
Key responsibilities:
- Validate inbound commands and dispatch them to session operations.
- Own the live world, the stored map/challenge config and the physical-robot task.
- Map execution results to VICTORY/LOSE events and fan events out to every channel.
Key entrypoints:
- GameBridge.handle_message(), GameBridge.ready()
"""

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel

from robot_game.errors import ConfigError, ProtocolError
from robot_game.schemas import CommandType, Envelope, EventType, parse_command
from robot_game.settings import Settings, settings as default_settings
from robot_game.sim.battery import VisibilityObserver
from robot_game.sim.config import load_world
from robot_game.sim.engine import ExecutionResult, SimulationEngine
from robot_game.sim.program import compile_program
from robot_game.sim.world import GameMap
from robot_game.transports import EventChannel, HostBridgeChannel

logger = logging.getLogger("robot-game.bridge")


@dataclass
class BridgeContext:
    """Everything the bridge needs from its environment."""
    settings: Settings = field(default_factory=lambda: default_settings)
    host: Any = None
    channels: list[EventChannel] = field(default_factory=list)
    battery_observer: Optional[VisibilityObserver] = None


def result_to_event(result: ExecutionResult) -> tuple[EventType, dict[str, Any]]:
    """Shared outcome mapping for interactive and physical runs."""
    if result.is_victory:
        return EventType.VICTORY, {
            "message": result.message,
            "step": result.step,
            "totalSteps": result.total_steps,
            "robot": result.robot,
            "victory": result.victory,
        }
    return EventType.LOSE, {
        "reason": result.reason,
        "message": result.message,
        "details": result.to_dict(),
    }


class GameBridge:
    """Single-session game controller driven by host commands."""

    def __init__(self, context: BridgeContext | None = None) -> None:
        self.context = context or BridgeContext()
        self.settings = self.context.settings
        self.channels: list[EventChannel] = list(self.context.channels)
        if self.context.host is not None:
            self.channels.insert(0, HostBridgeChannel(self.context.host))

        self.world: GameMap | None = None
        self.map_json: dict[str, Any] | None = None
        self.challenge_json: dict[str, Any] | None = None

        self._physical_task: asyncio.Task | None = None
        self._physical_engine: SimulationEngine | None = None
        self._physical_last_result: ExecutionResult | None = None
        self._captured: list[dict[str, Any]] | None = None

        self._handlers: dict[CommandType, Callable[[BaseModel], None]] = {
            CommandType.START_MAP: lambda p: self.start_map(p.mapJson, p.challengeJson),
            CommandType.LOAD_MAP_AND_CHALLENGE: lambda p: self.load_map_and_challenge(p.mapJson, p.challengeJson),
            CommandType.RUN_PROGRAM: lambda p: self.run_program(p.program),
            CommandType.RUN_PROGRAM_HEADLESS: lambda p: self.run_program_headless(p.source_program()),
            CommandType.GET_STATUS: lambda p: self.get_status(),
            CommandType.RESTART_SCENE: lambda p: self.restart_scene(),
            CommandType.EXECUTE_PHYSICAL_ROBOT_ACTIONS: lambda p: self.execute_physical_robot_actions(p.actions),
            CommandType.GET_PHYSICAL_ROBOT_STATUS: lambda p: self.get_physical_robot_status(),
        }

    # ------------------------------------------------------------------
    # outbound
    # ------------------------------------------------------------------

    def add_channel(self, channel: EventChannel) -> None:
        self.channels.append(channel)

    def envelope(self, event_type: EventType, data: dict[str, Any] | None = None) -> dict[str, Any]:
        return Envelope(source=self.settings.event_source, type=event_type.value, data=data or {}).model_dump()

    def emit(self, event_type: EventType, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Wrap data in an envelope and hand it to every available channel."""
        envelope = self.envelope(event_type, data)
        if self._captured is not None:
            self._captured.append(envelope)

        delivered = False
        for channel in self.channels:
            if not channel.available:
                continue
            try:
                channel.deliver(envelope)
                delivered = True
            except Exception as exc:  # noqa: BLE001
                logger.exception("event delivery failed type=%s: %s", envelope["type"], exc)
        if not delivered:
            logger.debug("no transport for event type=%s", envelope["type"])
        return envelope

    def ready(self) -> dict[str, Any]:
        return self.emit(EventType.READY, self._ready_data())

    def ready_envelope(self) -> dict[str, Any]:
        """READY for a single newly connected client, without fan-out."""
        return self.envelope(EventType.READY, self._ready_data())

    def _ready_data(self) -> dict[str, Any]:
        return {"gameVersion": self.settings.game_version, "features": list(self.settings.features)}

    def emit_error(
        self, error_type: str, message: str, reply: Callable[[dict[str, Any]], None] | None = None
    ) -> dict[str, Any]:
        """Report a command error to its sender when known, else to every channel."""
        data = {"type": error_type, "message": message}
        if reply is None:
            return self.emit(EventType.ERROR, data)
        envelope = self.envelope(EventType.ERROR, data)
        if self._captured is not None:
            self._captured.append(envelope)
        reply(envelope)
        return envelope

    # ------------------------------------------------------------------
    # inbound
    # ------------------------------------------------------------------

    def handle_message(
        self,
        raw: str | bytes | dict[str, Any],
        reply: Callable[[dict[str, Any]], None] | None = None,
    ) -> list[dict[str, Any]]:
        """Process one command to completion; returns the events it emitted.

        With ``reply``, ERROR events for this command go only to that callback
        instead of every channel.
        """
        self._captured = captured = []
        try:
            command, payload = parse_command(raw)
            logger.info("command type=%s", command.value)
            self._handlers[command](payload)
        except ProtocolError as exc:
            logger.warning("protocol error type=%s message=%s", exc.error_type, exc.message)
            self.emit_error(exc.error_type, exc.message, reply)
        except ConfigError as exc:
            logger.warning("config error: %s", exc)
            self.emit_error("INVALID_CONFIG", str(exc), reply)
        except Exception as exc:  # noqa: BLE001
            logger.exception("command handling error: %s", exc)
            self.emit_error("INTERNAL_ERROR", str(exc), reply)
        finally:
            self._captured = None
        return captured

    # ------------------------------------------------------------------
    # session commands
    # ------------------------------------------------------------------

    def _load(self, map_json: dict[str, Any], challenge_json: dict[str, Any]) -> GameMap:
        self.cancel_physical()
        world = load_world(map_json, challenge_json, battery_observer=self.context.battery_observer)
        self.world = world
        self.map_json = map_json
        self.challenge_json = challenge_json
        return world

    def start_map(self, map_json: dict[str, Any], challenge_json: dict[str, Any]) -> None:
        world = self._load(map_json, challenge_json)
        world.start_game()
        self.get_status()

    def load_map_and_challenge(self, map_json: dict[str, Any], challenge_json: dict[str, Any]) -> None:
        self._load(map_json, challenge_json)
        self.get_status()

    def restart_scene(self) -> None:
        if self.map_json is None or self.challenge_json is None:
            raise ProtocolError("NO_MAP_LOADED", "No map has been loaded")
        self._load(self.map_json, self.challenge_json)
        self.get_status()

    def run_program(self, program: dict[str, Any] | list[Any]) -> ExecutionResult:
        """Interactive run on the live world, with PROGRESS per action."""
        self._require_idle()
        world = self._require_world()
        actions = compile_program(program)
        world.reset_game()
        engine = SimulationEngine(
            world,
            step_sink=lambda payload: self.emit(EventType.PROGRESS, payload),
            silent=False,
        )
        result = engine.run(actions)
        self.emit(*result_to_event(result))
        return result

    def run_program_headless(self, program: dict[str, Any] | list[Any]) -> ExecutionResult:
        """Simulate on a fresh world from the stored config; the live world is untouched."""
        if self.map_json is None or self.challenge_json is None:
            raise ProtocolError("NO_MAP_LOADED", "No map has been loaded")
        actions = compile_program(program)
        world = load_world(self.map_json, self.challenge_json)
        result = SimulationEngine(world, silent=True).run(actions)
        self.emit(
            EventType.PROGRAM_COMPILED_ACTIONS,
            {"actions": [action.to_dict() for action in actions], "result": result.to_dict()},
        )
        return result

    def get_status(self) -> dict[str, Any]:
        return self.emit(EventType.STATUS, self.status_payload())

    def status_payload(self) -> dict[str, Any]:
        world = self.world
        if world is None:
            return {"mapLoaded": False, "gameState": None, "physicalRobot": self._physical_status()}
        robot = world.get_first_robot()
        return {
            "mapLoaded": True,
            "gameState": world.game_state,
            "width": world.width,
            "height": world.height,
            "robot": {**robot.pose(), "inventory": robot.inventory.to_dict()} if robot else None,
            "victory": world.check_victory_conditions().to_dict(),
            "statistics": world.get_statistics(),
            "physicalRobot": self._physical_status(),
        }

    # ------------------------------------------------------------------
    # physical robot
    # ------------------------------------------------------------------

    @property
    def physical_task(self) -> asyncio.Task | None:
        return self._physical_task

    @property
    def physical_running(self) -> bool:
        return self._physical_task is not None and not self._physical_task.done()

    def execute_physical_robot_actions(self, raw_actions: list[Any]) -> asyncio.Task:
        """Replay actions reported by a physical robot on the live world, paced by a delay.

        The live world is reset first so the judgement covers this run only.
        """
        if self.physical_running:
            raise ProtocolError("PHYSICAL_ROBOT_BUSY", "Physical robot is already executing actions")
        world = self._require_world()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ProtocolError("PHYSICAL_ROBOT_UNAVAILABLE", "Physical execution needs a running event loop") from exc

        actions = compile_program(raw_actions)
        if not actions:
            raise ProtocolError("INVALID_PAYLOAD", "No actions provided")
        world.reset_game()
        engine = SimulationEngine(world, silent=True)
        engine.start(actions)
        self._physical_engine = engine
        self._physical_last_result = None
        self.emit(EventType.PHYSICAL_ROBOT_STATUS, {"status": "running", "totalSteps": len(actions)})
        self._physical_task = loop.create_task(self._run_physical(engine))
        return self._physical_task

    async def _run_physical(self, engine: SimulationEngine) -> ExecutionResult:
        try:
            result = engine.step()
            while result is None:
                await asyncio.sleep(self.settings.physical_step_delay_s)
                result = engine.step()
        except asyncio.CancelledError:
            logger.info("physical execution cancelled at step=%s", engine.cursor)
            self.emit(EventType.PHYSICAL_ROBOT_STATUS, {"status": "cancelled", "step": engine.cursor})
            raise
        self._physical_last_result = result
        self.emit(EventType.PHYSICAL_ROBOT_STATUS, {"status": "completed", "result": result.to_dict()})
        self.emit(*result_to_event(result))
        return result

    def cancel_physical(self) -> None:
        if self.physical_running:
            self._physical_task.cancel()
        self._physical_task = None
        self._physical_engine = None

    def get_physical_robot_status(self) -> dict[str, Any]:
        return self.emit(EventType.PHYSICAL_ROBOT_STATUS, self._physical_status())

    def _physical_status(self) -> dict[str, Any]:
        engine = self._physical_engine
        status: dict[str, Any] = {
            "running": self.physical_running,
            "step": engine.cursor if engine else 0,
            "totalSteps": len(engine.actions) if engine else 0,
        }
        if self._physical_last_result is not None:
            status["lastResult"] = self._physical_last_result.to_dict()
        return status

    # ------------------------------------------------------------------
    # guards
    # ------------------------------------------------------------------

    def _require_world(self) -> GameMap:
        if self.world is None:
            raise ProtocolError("NO_MAP_LOADED", "No map has been loaded")
        return self.world

    def _require_idle(self) -> None:
        if self.physical_running:
            raise ProtocolError("PHYSICAL_ROBOT_BUSY", "Physical robot is executing actions")
