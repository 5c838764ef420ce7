"""Immutable per-turn board snapshots."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from itertools import pairwise
from types import MappingProxyType

from snake_arena.errors import InvariantViolation
from snake_arena.grid import Coord, Grid
from snake_arena.snake import Snake


@dataclass(frozen=True, eq=False)
class BoardState:
    """Everything needed to describe a match at one turn.

    ``snakes`` is a read-only mapping iterated in sorted id order, and
    ``food`` is a frozenset, so a state can be handed to any number of
    readers without copying.
    """

    turn: int
    grid: Grid
    snakes: Mapping[str, Snake] = field(default_factory=dict)
    food: frozenset[Coord] = frozenset()

    def __post_init__(self) -> None:
        if isinstance(self.snakes, Mapping):
            items = self.snakes.values()
        else:
            items = self.snakes
        ordered = {s.snake_id: s for s in sorted(items, key=lambda s: s.snake_id)}
        object.__setattr__(self, "snakes", MappingProxyType(ordered))
        object.__setattr__(
            self, "food", frozenset(Coord(x, y) for x, y in self.food),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoardState):
            return NotImplemented
        return (
            self.turn == other.turn
            and self.grid == other.grid
            and dict(self.snakes) == dict(other.snakes)
            and self.food == other.food
        )

    def __hash__(self) -> int:
        return hash((self.turn, self.grid, tuple(self.snakes.values()), self.food))

    def snake(self, snake_id: str) -> Snake:
        return self.snakes[snake_id]

    def alive_snakes(self) -> list[Snake]:
        """Return the living snakes sorted by id."""
        return [s for s in self.snakes.values() if s.alive]

    @property
    def alive_ids(self) -> list[str]:
        return [s.snake_id for s in self.alive_snakes()]

    def occupied_cells(self) -> set[Coord]:
        """Cells covered by living snake bodies."""
        cells: set[Coord] = set()
        for snake in self.alive_snakes():
            cells.update(snake.body)
        return cells

    def validate(self, max_health: int | None = None) -> None:
        """Raise :class:`InvariantViolation` if the state is inconsistent."""
        seen: dict[Coord, str] = {}
        for sid, snake in self.snakes.items():
            if sid != snake.snake_id:
                raise InvariantViolation(
                    f"Turn {self.turn}: snake keyed {sid!r} has id {snake.snake_id!r}."
                )
            if not snake.alive:
                continue
            if snake.length < 1:
                raise InvariantViolation(f"Turn {self.turn}: snake {sid!r} has no body.")
            if snake.health <= 0 or (max_health is not None and snake.health > max_health):
                raise InvariantViolation(
                    f"Turn {self.turn}: snake {sid!r} alive with health {snake.health}."
                )
            if len(set(snake.body)) != snake.length:
                raise InvariantViolation(
                    f"Turn {self.turn}: snake {sid!r} body has duplicate cells."
                )
            for prev, nxt in pairwise(snake.body):
                if not self.grid.is_adjacent(prev, nxt):
                    raise InvariantViolation(
                        f"Turn {self.turn}: snake {sid!r} body is not contiguous "
                        f"between {prev} and {nxt}."
                    )
            for seg in snake.body:
                if not self.grid.in_bounds(seg):
                    raise InvariantViolation(
                        f"Turn {self.turn}: snake {sid!r} has segment {seg} off the grid."
                    )
                owner = seen.setdefault(seg, sid)
                if owner != sid:
                    raise InvariantViolation(
                        f"Turn {self.turn}: snakes {owner!r} and {sid!r} overlap at {seg}."
                    )
        for cell in self.food:
            if not self.grid.in_bounds(cell):
                raise InvariantViolation(f"Turn {self.turn}: food {cell} off the grid.")
            if cell in seen:
                raise InvariantViolation(
                    f"Turn {self.turn}: food {cell} lies under snake {seen[cell]!r}."
                )

    def to_dict(self) -> dict:
        """Serialize the full state with stable ordering."""
        return {
            "turn": self.turn,
            "grid": self.grid.to_dict(),
            "snakes": [s.to_dict() for s in self.snakes.values()],
            "food": [list(c) for c in sorted(self.food)],
        }

    @classmethod
    def from_dict(cls, data: dict) -> BoardState:
        return cls(
            turn=data["turn"],
            grid=Grid.from_dict(data["grid"]),
            snakes=[Snake.from_dict(s) for s in data["snakes"]],
            food=frozenset(Coord(x, y) for x, y in data["food"]),
        )

    @classmethod
    def with_snakes(
        cls,
        grid: Grid,
        snakes: Iterable[Snake],
        food: Iterable[tuple[int, int]] = (),
        turn: int = 0,
    ) -> BoardState:
        """Convenience constructor from plain iterables."""
        return cls(turn=turn, grid=grid, snakes=list(snakes), food=frozenset(food))
