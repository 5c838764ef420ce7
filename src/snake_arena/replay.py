"""Append-only turn history with replay and determinism checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from snake_arena.board import BoardState
from snake_arena.errors import ReplayMismatch
from snake_arena.rules import RulesEngine
from snake_arena.snake import Direction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnRecord:
    """The decisions fed to the engine for one turn and the state it produced."""

    state: BoardState
    moves: Mapping[str, Direction] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "moves", MappingProxyType(dict(sorted(self.moves.items()))),
        )

    @property
    def turn(self) -> int:
        return self.state.turn

    def to_dict(self) -> dict:
        return {
            "turn": self.turn,
            "moves": {sid: move.name for sid, move in self.moves.items()},
            "state": self.state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> TurnRecord:
        return cls(
            moves={sid: Direction[name] for sid, name in data["moves"].items()},
            state=BoardState.from_dict(data["state"]),
        )


class ReplayLog:
    """Ordered record of a match: the initial state plus one entry per turn.

    There is a single writer (the match controller). Entries are
    immutable once appended, so other threads may read completed turns
    at any time; iteration works on a snapshot of the entries present
    when it started.

    When *engine* is given, its seed and rule settings travel with the
    serialized log, so a loaded log can be verified on its own.
    """

    def __init__(self, initial: BoardState, engine: RulesEngine | None = None) -> None:
        self._initial = initial
        self.engine = engine
        self._records: list[TurnRecord] = []

    @property
    def initial(self) -> BoardState:
        return self._initial

    @property
    def latest(self) -> BoardState:
        """The most recent state, or the initial one before any turn."""
        records = self._records
        return records[-1].state if records else self._initial

    def append(self, moves: Mapping[str, Direction], state: BoardState) -> TurnRecord:
        """Record one completed turn."""
        expected = self.latest.turn + 1
        if state.turn != expected:
            raise ValueError(
                f"Replay log expected turn {expected}, got {state.turn}."
            )
        record = TurnRecord(moves=moves, state=state)
        self._records.append(record)
        return record

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TurnRecord]:
        return iter(tuple(self._records))

    def __getitem__(self, index: int) -> TurnRecord:
        return self._records[index]

    def states(self) -> list[BoardState]:
        """Every state from turn 0 to the latest, in order."""
        return [self._initial, *(r.state for r in tuple(self._records))]

    def state_at(self, turn: int) -> BoardState:
        offset = turn - self._initial.turn
        if offset == 0:
            return self._initial
        if not 0 < offset <= len(self._records):
            raise IndexError(f"No state recorded for turn {turn}.")
        return self._records[offset - 1].state

    def moves(self) -> list[Mapping[str, Direction]]:
        return [r.moves for r in tuple(self._records)]

    def to_dict(self) -> dict:
        """Serialize the whole log to plain data."""
        return {
            "engine": self.engine.to_dict() if self.engine is not None else None,
            "initial": self._initial.to_dict(),
            "turns": [r.to_dict() for r in tuple(self._records)],
        }

    @classmethod
    def from_dict(cls, data: dict) -> ReplayLog:
        engine = data.get("engine")
        log = cls(
            BoardState.from_dict(data["initial"]),
            RulesEngine.from_dict(engine) if engine is not None else None,
        )
        for raw in data["turns"]:
            record = TurnRecord.from_dict(raw)
            log.append(record.moves, record.state)
        return log

    def verify(self, engine: RulesEngine | None = None) -> None:
        """Recompute every turn and compare it with the recorded state.

        Uses the recorded engine unless *engine* is given. Raises
        :class:`ReplayMismatch` at the first turn that differs.
        """
        engine = engine or self.engine
        if engine is None:
            raise ValueError("No rules engine recorded with this log; pass one.")
        board = self._initial
        for record in self:
            board = engine.apply_turn(board, record.moves)
            if board.to_dict() != record.state.to_dict():
                logger.warning("Replay diverged at turn %d.", record.turn)
                raise ReplayMismatch(record.turn)
        logger.info("Replay verified over %d turns.", len(self))


def replay(
    engine: RulesEngine,
    initial: BoardState,
    moves: Iterable[Mapping[str, Direction]],
) -> list[BoardState]:
    """Run *moves* through *engine* from *initial*; return every state."""
    states = [initial]
    for turn_moves in moves:
        states.append(engine.apply_turn(states[-1], turn_moves))
    return states
