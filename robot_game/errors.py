"""
File: robot_game/errors.py
Purpose: Domain exceptions shared by the simulation core and the bridge.
"""


class GameError(Exception):
    """Base class for structural game errors."""


class EntityError(GameError):
    """Raised on illegal structural mutation of an entity (e.g. id reassignment)."""


class EntityValidationError(EntityError):
    """Raised by validate() when stored entity state breaks an invariant."""


class ConfigError(GameError):
    """Raised when a map/challenge description is missing required data."""


class ProtocolError(GameError):
    """Raised at the bridge boundary for malformed or unsupported commands."""

    def __init__(self, error_type: str, message: str) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message
