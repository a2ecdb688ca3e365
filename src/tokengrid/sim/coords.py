from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, order=True)
class CellId:
    """Discrete grid coordinate (i, j); i follows latitude, j follows longitude."""

    i: int
    j: int

    def to_dict(self) -> dict[str, int]:
        return {"i": self.i, "j": self.j}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CellId":
        return cls(i=int(data["i"]), j=int(data["j"]))


@dataclass(frozen=True)
class Position:
    """Continuous world coordinate."""

    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass(frozen=True)
class CellRange:
    """Half-open rectangular cell bound: i in [i_min, i_max), j in [j_min, j_max)."""

    i_min: int
    i_max: int
    j_min: int
    j_max: int

    def __contains__(self, cell: object) -> bool:
        if not isinstance(cell, CellId):
            return False
        return self.i_min <= cell.i < self.i_max and self.j_min <= cell.j < self.j_max

    @property
    def cell_count(self) -> int:
        return max(0, self.i_max - self.i_min) * max(0, self.j_max - self.j_min)

    def iter_cells(self, limit: int | None = None) -> Iterator[CellId]:
        count = 0
        for i in range(self.i_min, self.i_max):
            for j in range(self.j_min, self.j_max):
                if limit is not None and count >= limit:
                    return
                count += 1
                yield CellId(i, j)


def to_cell_id(pos: Position, cell_size: float) -> CellId:
    return CellId(i=math.floor(pos.lat / cell_size), j=math.floor(pos.lng / cell_size))


def cell_center(cell: CellId, cell_size: float) -> Position:
    return Position(lat=(cell.i + 0.5) * cell_size, lng=(cell.j + 0.5) * cell_size)


def snap_to_center(pos: Position, cell_size: float) -> Position:
    return cell_center(to_cell_id(pos, cell_size), cell_size)


def wrap_index(k: int, size: int) -> int:
    """Non-negative modulo, always within [0, size)."""
    if size <= 0:
        raise ValueError("size must be > 0")
    return ((k % size) + size) % size


def storage_index(i: int, j: int, extent: tuple[int, int]) -> int:
    """Flat slot for (i, j) in a grid_i x grid_j backing array.

    Cells that differ by a multiple of the extent on an axis share a slot.
    This bounds the practical play area; it is not used for override keys.
    """
    grid_i, grid_j = extent
    return wrap_index(i, grid_i) * grid_j + wrap_index(j, grid_j)


def chebyshev_distance(a: CellId, b: CellId) -> int:
    return max(abs(a.i - b.i), abs(a.j - b.j))


def step_cell(cell: CellId, di: int, dj: int) -> CellId:
    return CellId(cell.i + di, cell.j + dj)


def visible_cell_range(south: float, west: float, north: float, east: float, cell_size: float) -> CellRange:
    if north < south or east < west:
        raise ValueError("visible bounds must satisfy south <= north and west <= east")
    return CellRange(
        i_min=math.floor(south / cell_size),
        i_max=math.ceil(north / cell_size),
        j_min=math.floor(west / cell_size),
        j_max=math.ceil(east / cell_size),
    )
