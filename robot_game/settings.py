"""
File: robot_game/settings.py
Purpose: Environment-backed configuration for the robot game engine.
Key responsibilities:
- Parse HTTP, RabbitMQ and logging settings.
- Define gameplay constants (hazard tiles, history size, physical robot pacing).
"""

from dataclasses import dataclass, field
import os


def _int_env(name: str, default: int = 0) -> int:
    """Parse an integer env var with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return int(raw)


def _bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean env var (1/true/yes/on)."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int_tuple_env(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    """Parse a comma-separated list of tile indices."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return tuple(int(part) for part in raw.split(",") if part.strip())


def _str_tuple_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Game engine configuration parsed from environment."""
    host: str = os.getenv("GAME_HOST", "0.0.0.0")
    port: int = _int_env("GAME_PORT", 8010)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    game_version: str = os.getenv("GAME_VERSION", "1.0.0")
    features: tuple[str, ...] = field(
        default_factory=lambda: _str_tuple_env(
            "GAME_FEATURES",
            ("robot-programming", "battery-collection", "box-placement", "headless-execution", "physical-robot"),
        )
    )
    event_source: str = os.getenv("GAME_EVENT_SOURCE", "robot-game")
    history_size: int = _int_env("ROBOT_HISTORY_SIZE", 100)
    hazard_tile_indices: tuple[int, ...] = field(default_factory=lambda: _int_tuple_env("HAZARD_TILE_INDICES", (4, 5)))
    walkable_tile_indices: tuple[int, ...] = field(default_factory=lambda: _int_tuple_env("WALKABLE_TILE_INDICES", (1, 6)))
    default_tile_size: int = _int_env("DEFAULT_TILE_SIZE", 128)
    physical_step_delay_s: float = float(os.getenv("PHYSICAL_STEP_DELAY_S", "0.05"))
    rabbit_enabled: bool = _bool_env("RABBITMQ_ENABLED", False)
    rabbit_host: str = os.getenv("RABBITMQ_HOST", "rabbitmq")
    rabbit_port: int = _int_env("RABBITMQ_PORT", 5672)
    rabbit_user: str = os.getenv("RABBITMQ_USER", "robot")
    rabbit_pass: str = os.getenv("RABBITMQ_PASS", "robotpass")
    exchange_name: str = os.getenv("RABBITMQ_EXCHANGE", "robot.game")
    command_queue: str = os.getenv("RABBITMQ_COMMAND_QUEUE", "robot_game.commands")


settings = Settings()


def rabbit_url() -> str:
    return f"amqp://{settings.rabbit_user}:{settings.rabbit_pass}@{settings.rabbit_host}:{settings.rabbit_port}/"
