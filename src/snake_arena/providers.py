"""Move providers: the interface through which agents choose moves.

A provider answers for one snake at a time. It receives the current
(immutable) board and the id of the snake it controls, and returns a
:class:`~snake_arena.snake.Direction`, a direction name such as
``"up"``, or ``None`` for "no decision". How the answer is obtained
(network call, subprocess, in-process code) is up to the implementation.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from snake_arena.board import BoardState
from snake_arena.snake import Direction

MoveAnswer = Direction | str | None


class MoveProvider:
    """Base class for anything that can pick a move for a snake."""

    def provide_move(self, board: BoardState, snake_id: str) -> MoveAnswer:
        raise NotImplementedError


class CallableMoveProvider(MoveProvider):
    """Adapts a plain ``func(board, snake_id)`` to the provider interface."""

    def __init__(self, func: Callable[[BoardState, str], MoveAnswer]) -> None:
        self.func = func

    def provide_move(self, board: BoardState, snake_id: str) -> MoveAnswer:
        return self.func(board, snake_id)


class ScriptedMoveProvider(MoveProvider):
    """Replays a fixed list of answers, one per turn.

    The answer for a board at turn ``t`` is ``moves[t]``; past the end
    of the script *default* is returned.
    """

    def __init__(
        self,
        moves: Sequence[MoveAnswer],
        default: MoveAnswer = None,
    ) -> None:
        self.moves = list(moves)
        self.default = default

    def provide_move(self, board: BoardState, snake_id: str) -> MoveAnswer:
        if board.turn < len(self.moves):
            return self.moves[board.turn]
        return self.default


class RandomSafeMoveProvider(MoveProvider):
    """Baseline agent: a random move that is not immediately fatal.

    Avoids walls, its own neck, and cells that will still be covered by
    a body next turn. Randomness is drawn from ``(seed, turn)`` so the
    provider is deterministic and holds no state between calls.
    """

    def __init__(self, seed: int = 0) -> None:
        self.seed = seed

    def provide_move(self, board: BoardState, snake_id: str) -> Direction:
        snake = board.snake(snake_id)
        blocked = set()
        for other in board.alive_snakes():
            blocked.update(other.body[:-1])

        safe: list[Direction] = []
        legal: list[Direction] = []
        for direction in Direction:
            nxt = board.grid.step(snake.head, direction)
            if nxt is None or nxt == snake.neck:
                continue
            legal.append(direction)
            if nxt not in blocked:
                safe.append(direction)

        rng = np.random.default_rng(
            np.random.SeedSequence(self.seed, spawn_key=(board.turn,)),
        )
        choices = safe or legal or list(Direction)
        return choices[int(rng.integers(len(choices)))]


def as_provider(obj: MoveProvider | Callable[[BoardState, str], MoveAnswer]) -> MoveProvider:
    """Wrap bare callables; pass providers through unchanged."""
    if isinstance(obj, MoveProvider):
        return obj
    if callable(obj):
        return CallableMoveProvider(obj)
    raise TypeError(f"Not a move provider: {obj!r}.")
