"""Food spawning logic."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from snake_arena.errors import ConfigurationError
from snake_arena.grid import Coord

if TYPE_CHECKING:
    from snake_arena.board import BoardState
    from snake_arena.grid import Grid

logger = logging.getLogger(__name__)


def setup_rng(seed: int) -> np.random.Generator:
    """Generator used to lay out the board before turn 1."""
    return np.random.default_rng(np.random.SeedSequence(seed))


def turn_rng(seed: int, turn: int) -> np.random.Generator:
    """Generator for the transition that produces *turn*.

    Each turn draws from its own child stream of the match seed, so a
    match can be resumed from any recorded state without replaying the
    random draws that came before it.
    """
    return np.random.default_rng(np.random.SeedSequence(seed, spawn_key=(turn,)))


@dataclass(frozen=True)
class FoodPolicy:
    """When and how often food appears."""

    min_food: int = 1
    spawn_chance: float = 1.0

    def __post_init__(self) -> None:
        if self.min_food < 0:
            raise ConfigurationError("min_food must be non-negative.")
        if not 0.0 <= self.spawn_chance <= 1.0:
            raise ConfigurationError("spawn_chance must be between 0 and 1.")

    def to_dict(self) -> dict:
        return {"min_food": self.min_food, "spawn_chance": self.spawn_chance}

    @classmethod
    def from_dict(cls, data: dict) -> FoodPolicy:
        return cls(**data)


class FoodManager:
    """Places food on free cells using a caller-supplied NumPy generator."""

    def __init__(self, policy: FoodPolicy | None = None) -> None:
        self.policy = policy or FoodPolicy()

    def maybe_spawn(
        self,
        board: BoardState,
        rng: np.random.Generator,
    ) -> frozenset[Coord]:
        """Return the food set after this turn's spawn roll.

        At most one item is added, and only while the board holds fewer
        than ``min_food`` items.
        """
        food = board.food
        if len(food) >= self.policy.min_food:
            return food
        if rng.random() >= self.policy.spawn_chance:
            return food

        free = board.grid.free_cells(board.occupied_cells() | food)
        if not free:
            logger.debug("Turn %d: no free cell for food, skipping spawn.", board.turn)
            return food
        cell = free[int(rng.integers(len(free)))]
        logger.debug("Turn %d: food spawned at %s.", board.turn, cell)
        return food | {cell}

    @staticmethod
    def place_initial(
        grid: Grid,
        occupied: Iterable[tuple[int, int]],
        count: int,
        rng: np.random.Generator,
    ) -> frozenset[Coord]:
        """Pick *count* distinct free cells for the starting food."""
        if count <= 0:
            return frozenset()
        free = grid.free_cells(occupied)
        needed = min(count, len(free))
        if needed < count:
            logger.warning(
                "Only %d free cells for %d starting food items.", needed, count,
            )
        if needed == 0:
            return frozenset()
        indices = rng.choice(len(free), size=needed, replace=False)
        return frozenset(free[int(idx)] for idx in indices)
