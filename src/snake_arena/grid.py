"""Grid geometry for the arena."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

import numpy as np

from snake_arena.errors import ConfigurationError

if TYPE_CHECKING:
    from snake_arena.snake import Direction


class WallMode(enum.Enum):
    """Defines behavior when a snake reaches the grid boundary."""

    DEATH = "death"
    WRAP = "wrap"


class Coord(NamedTuple):
    """A cell on the grid. ``x`` is the column, ``y`` the row."""

    x: int
    y: int


@dataclass(frozen=True)
class Grid:
    """Fixed-size coordinate space shared by every state of a match.

    Coordinates are ``(x, y)`` with ``y`` growing downward, so occupancy
    masks are indexed ``mask[y, x]`` like any NumPy image.
    """

    width: int
    height: int
    wall_mode: WallMode = WallMode.DEATH

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ConfigurationError(
                f"Grid dimensions must be positive, got {self.width}x{self.height}."
            )

    @property
    def wraparound(self) -> bool:
        return self.wall_mode == WallMode.WRAP

    def in_bounds(self, coord: tuple[int, int]) -> bool:
        """Check whether a coordinate lies within the grid."""
        x, y = coord
        return 0 <= x < self.width and 0 <= y < self.height

    def wrap(self, coord: tuple[int, int]) -> Coord:
        """Wrap a coordinate around the grid edges."""
        x, y = coord
        return Coord(x % self.width, y % self.height)

    def step(self, coord: tuple[int, int], direction: Direction) -> Coord | None:
        """Return the neighbour of *coord* in *direction*.

        Under wraparound the result is wrapped onto the opposite edge;
        with walls, ``None`` means the step leaves the grid.
        """
        dx, dy = direction.value
        nxt = Coord(coord[0] + dx, coord[1] + dy)
        if self.in_bounds(nxt):
            return nxt
        if self.wraparound:
            return self.wrap(nxt)
        return None

    def is_adjacent(self, a: tuple[int, int], b: tuple[int, int]) -> bool:
        """Check whether two cells are one orthogonal step apart."""
        dx = abs(a[0] - b[0])
        dy = abs(a[1] - b[1])
        if self.wraparound:
            dx = min(dx, self.width - dx)
            dy = min(dy, self.height - dy)
        return dx + dy == 1

    def cells(self) -> list[Coord]:
        """Return every cell in row-major order."""
        return [Coord(x, y) for y in range(self.height) for x in range(self.width)]

    def free_cells(self, occupied: Iterable[tuple[int, int]]) -> list[Coord]:
        """Return the cells not in *occupied*, in row-major order."""
        mask = np.ones((self.height, self.width), dtype=bool)
        for x, y in occupied:
            if self.in_bounds((x, y)):
                mask[y, x] = False
        ys, xs = np.nonzero(mask)
        return [Coord(x, y) for y, x in zip(ys.tolist(), xs.tolist(), strict=True)]

    def to_dict(self) -> dict:
        """Serialize grid geometry to a dictionary."""
        return {
            "width": self.width,
            "height": self.height,
            "wall_mode": self.wall_mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Grid:
        return cls(
            width=data["width"],
            height=data["height"],
            wall_mode=WallMode(data.get("wall_mode", WallMode.DEATH.value)),
        )
