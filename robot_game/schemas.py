from __future__ import annotations

"""
File: robot_game/schemas.py
Purpose: Pydantic models for the host command/event protocol.
Key responsibilities:
- Define the closed command and event enums.
- Validate the envelope and each command's payload at the boundary.
Key entrypoints:
- Envelope, parse_command
"""

from enum import Enum
import json
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from robot_game.errors import ProtocolError
from robot_game.sim.entities import now_ms


class CommandType(str, Enum):
    START_MAP = "START_MAP"
    LOAD_MAP_AND_CHALLENGE = "LOAD_MAP_AND_CHALLENGE"
    LOAD_MAP = "LOAD_MAP"
    RUN_PROGRAM = "RUN_PROGRAM"
    RUN_PROGRAM_HEADLESS = "RUN_PROGRAM_HEADLESS"
    GET_STATUS = "GET_STATUS"
    RESTART_SCENE = "RESTART_SCENE"
    EXECUTE_PHYSICAL_ROBOT_ACTIONS = "EXECUTE_PHYSICAL_ROBOT_ACTIONS"
    GET_PHYSICAL_ROBOT_STATUS = "GET_PHYSICAL_ROBOT_STATUS"


class EventType(str, Enum):
    READY = "READY"
    VICTORY = "VICTORY"
    LOSE = "LOSE"
    PROGRESS = "PROGRESS"
    STATUS = "STATUS"
    ERROR = "ERROR"
    PROGRAM_COMPILED_ACTIONS = "PROGRAM_COMPILED_ACTIONS"
    PHYSICAL_ROBOT_STATUS = "PHYSICAL_ROBOT_STATUS"


class Envelope(BaseModel):
    """Wire wrapper for every command and event."""
    source: str = ""
    type: str
    data: Any = Field(default_factory=dict)
    timestamp: int = Field(default_factory=now_ms)


class EmptyPayload(BaseModel):
    pass


class MapPayload(BaseModel):
    """START_MAP / LOAD_MAP_AND_CHALLENGE body; legacy hosts send JSON strings."""
    mapJson: dict[str, Any]
    challengeJson: dict[str, Any]

    @field_validator("mapJson", "challengeJson", mode="before")
    @classmethod
    def _decode_json_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError(f"not valid JSON: {exc.msg}") from exc
        return value


class RunProgramPayload(BaseModel):
    program: Union[dict[str, Any], list[Any]]


class HeadlessPayload(BaseModel):
    program: Optional[Union[dict[str, Any], list[Any]]] = None
    actions: Optional[list[Any]] = None

    @model_validator(mode="after")
    def _require_program_or_actions(self) -> HeadlessPayload:
        if self.program is None and self.actions is None:
            raise ValueError("program or actions is required")
        return self

    def source_program(self) -> Union[dict[str, Any], list[Any]]:
        return self.program if self.program is not None else list(self.actions or [])


class PhysicalActionsPayload(BaseModel):
    actions: list[Any] = Field(min_length=1)


PAYLOAD_MODELS: dict[CommandType, type[BaseModel]] = {
    CommandType.START_MAP: MapPayload,
    CommandType.LOAD_MAP_AND_CHALLENGE: MapPayload,
    CommandType.RUN_PROGRAM: RunProgramPayload,
    CommandType.RUN_PROGRAM_HEADLESS: HeadlessPayload,
    CommandType.GET_STATUS: EmptyPayload,
    CommandType.RESTART_SCENE: EmptyPayload,
    CommandType.EXECUTE_PHYSICAL_ROBOT_ACTIONS: PhysicalActionsPayload,
    CommandType.GET_PHYSICAL_ROBOT_STATUS: EmptyPayload,
}


def _decode(raw: Union[str, bytes, dict[str, Any]]) -> dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ProtocolError("INVALID_MESSAGE", f"message is not valid JSON: {exc.msg}") from exc
    if not isinstance(raw, dict):
        raise ProtocolError("INVALID_MESSAGE", "message must be a JSON object")
    return raw


def parse_command(raw: Union[str, bytes, dict[str, Any]]) -> tuple[CommandType, BaseModel]:
    """Validate an inbound message and its payload; raises ProtocolError."""
    message = _decode(raw)
    try:
        envelope = Envelope.model_validate(message)
    except ValidationError as exc:
        raise ProtocolError("INVALID_MESSAGE", "message must carry a string type") from exc

    try:
        command = CommandType(envelope.type)
    except ValueError as exc:
        raise ProtocolError("UNKNOWN_COMMAND", f"Unknown command type: {envelope.type}") from exc

    if command is CommandType.LOAD_MAP:
        raise ProtocolError("DEPRECATED_COMMAND", "LOAD_MAP is deprecated; use LOAD_MAP_AND_CHALLENGE")

    data = envelope.data if envelope.data is not None else {}
    if not isinstance(data, dict):
        raise ProtocolError("INVALID_PAYLOAD", f"{command.value} data must be an object")
    try:
        payload = PAYLOAD_MODELS[command].model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "data"
        raise ProtocolError("INVALID_PAYLOAD", f"{command.value}: {location}: {first['msg']}") from exc
    return command, payload
