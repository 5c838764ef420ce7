"""Snake representation and movement directions."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from snake_arena.errors import IllegalMoveError
from snake_arena.grid import Coord


class Direction(enum.Enum):
    """Cardinal movement directions with (dx, dy) values."""

    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def opposite(self) -> Direction:
        return _OPPOSITES[self]

    @classmethod
    def parse(cls, value: object) -> Direction:
        """Coerce a provider answer to a direction.

        Accepts a member or a case-insensitive member name such as
        ``"up"``. Anything else raises :class:`IllegalMoveError`.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise IllegalMoveError(f"Not a direction: {value!r}.")


# Pairs that would cause an instant 180° reversal.
_OPPOSITES: dict[Direction, Direction] = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

# Direction assumed for a snake that has never moved and has no neck.
DEFAULT_DIRECTION = Direction.UP


class EliminationCause(enum.Enum):
    """Why a snake was removed from play."""

    NO_MOVE = "no_move"
    ILLEGAL_MOVE = "illegal_move"
    STARVATION = "starvation"
    OUT_OF_BOUNDS = "out_of_bounds"
    SELF_COLLISION = "self_collision"
    BODY_COLLISION = "body_collision"
    HEAD_COLLISION = "head_collision"


@dataclass(frozen=True)
class Snake:
    """One agent's snake at a given turn.

    The head is ``body[0]``; the tail is ``body[-1]``. Instances are
    never mutated: the rules engine builds a new one every turn.
    """

    snake_id: str
    body: tuple[Coord, ...]
    health: int = 100
    alive: bool = True
    direction: Direction | None = None
    eliminated_cause: EliminationCause | None = None
    eliminated_turn: int | None = None

    @classmethod
    def spawn(
        cls,
        snake_id: str,
        head: tuple[int, int],
        direction: Direction = Direction.RIGHT,
        length: int = 3,
        health: int = 100,
    ) -> Snake:
        """Create a straight snake whose body trails behind *head*."""
        if length < 1:
            raise ValueError("Snake length must be at least 1.")
        dx, dy = direction.value
        hx, hy = head
        body = tuple(Coord(hx - dx * i, hy - dy * i) for i in range(length))
        return cls(snake_id=snake_id, body=body, health=health, direction=direction)

    @property
    def head(self) -> Coord:
        return self.body[0]

    @property
    def neck(self) -> Coord | None:
        return self.body[1] if len(self.body) > 1 else None

    @property
    def tail(self) -> Coord:
        return self.body[-1]

    @property
    def length(self) -> int:
        return len(self.body)

    def occupies(self, coord: tuple[int, int]) -> bool:
        """Check whether the snake occupies a given cell."""
        return coord in self.body

    def to_dict(self) -> dict:
        """Serialize snake state to a dictionary."""
        return {
            "snake_id": self.snake_id,
            "body": [list(seg) for seg in self.body],
            "health": self.health,
            "alive": self.alive,
            "direction": self.direction.name if self.direction else None,
            "eliminated_cause": (
                self.eliminated_cause.value if self.eliminated_cause else None
            ),
            "eliminated_turn": self.eliminated_turn,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Snake:
        direction = data.get("direction")
        cause = data.get("eliminated_cause")
        return cls(
            snake_id=data["snake_id"],
            body=tuple(Coord(x, y) for x, y in data["body"]),
            health=data["health"],
            alive=data["alive"],
            direction=Direction[direction] if direction else None,
            eliminated_cause=EliminationCause(cause) if cause else None,
            eliminated_turn=data.get("eliminated_turn"),
        )
