from __future__ import annotations

"""
File: robot_game/sim/terrain.py
Purpose: Terrain layer lookups used to validate robot landings.
Key responsibilities:
- Expose tile indices by (x, y) through a small TerrainLayer protocol.
- Build a layer from Tiled map JSON (flat gid array, gid 0 = empty).
"""

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from robot_game.errors import ConfigError


_GID_MASK = 0x1FFFFFFF


@dataclass(frozen=True)
class Tile:
    """A single terrain cell."""
    x: int
    y: int
    index: int


class TerrainLayer(Protocol):
    """Anything that can answer "which tile is at (x, y)?"."""

    def tile_at(self, x: int, y: int) -> Tile | None:
        ...


class GridLayer:
    """Terrain backed by a row-major flat list of tile indices."""

    def __init__(self, width: int, height: int, data: Sequence[int]) -> None:
        if len(data) < width * height:
            raise ConfigError(f"layer data has {len(data)} cells, expected {width * height}")
        self.width = width
        self.height = height
        self.data = [int(value) for value in data]

    def tile_at(self, x: int, y: int) -> Tile | None:
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return None
        index = self.data[y * self.width + x]
        if index <= 0:
            return None
        return Tile(x=x, y=y, index=index)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]]) -> GridLayer:
        """Build a layer from a list of rows (handy for hand-written maps)."""
        height = len(rows)
        width = len(rows[0]) if rows else 0
        flat = [value for row in rows for value in row]
        return cls(width=width, height=height, data=flat)


def layer_from_tiled(map_data: dict[str, Any], layer_name: str | None = None) -> GridLayer:
    """Pick the terrain tile layer out of a Tiled map description."""
    layers = map_data.get("layers")
    if not isinstance(layers, list) or not layers:
        raise ConfigError("invalid map data: missing layers")

    candidates = [layer for layer in layers if layer.get("type", "tilelayer") == "tilelayer" and "data" in layer]
    if layer_name is not None:
        candidates = [layer for layer in candidates if layer.get("name") == layer_name]
    if not candidates:
        raise ConfigError("invalid map data: no tile layer with data")

    layer = candidates[0]
    width = int(layer.get("width") or map_data.get("width") or 0)
    height = int(layer.get("height") or map_data.get("height") or 0)
    if width <= 0 or height <= 0:
        raise ConfigError("invalid map data: tile layer has no dimensions")
    data = layer["data"]
    if not isinstance(data, list):
        raise ConfigError("invalid map data: only uncompressed CSV/array layer data is supported")
    # Strip Tiled flip/rotation flags from each gid.
    return GridLayer(width=width, height=height, data=[int(gid) & _GID_MASK for gid in data])
