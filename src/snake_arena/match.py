"""Match controller: turn loop, move collection, and terminal detection."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from snake_arena.board import BoardState
from snake_arena.config import MatchConfig
from snake_arena.errors import (
    ConfigurationError,
    IllegalMoveError,
    InvariantViolation,
    MatchFinishedError,
    ProviderError,
    ProviderTimeout,
)
from snake_arena.providers import MoveAnswer, MoveProvider, as_provider
from snake_arena.replay import ReplayLog
from snake_arena.rules import RulesEngine
from snake_arena.snake import Direction

logger = logging.getLogger(__name__)


class MatchStatus(str, enum.Enum):
    """Lifecycle states for a match."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class MatchOutcome(str, enum.Enum):
    """How a finished match ended."""

    WINNER = "winner"
    DRAW = "draw"
    ALL_ELIMINATED = "all_eliminated"
    ABORTED = "aborted"


@dataclass(frozen=True)
class MatchResult:
    """Terminal classification of a match."""

    outcome: MatchOutcome
    final_state: BoardState
    turns: int
    winner: str | None = None
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "winner": self.winner,
            "turns": self.turns,
            "reason": self.reason,
            "final_state": self.final_state.to_dict(),
        }


def last_elimination_reason(board: BoardState) -> str:
    """Causes of the eliminations that happened on *board*'s turn."""
    causes = sorted({
        s.eliminated_cause.value
        for s in board.snakes.values()
        if s.eliminated_turn == board.turn and s.eliminated_cause is not None
    })
    return ", ".join(causes)


ProviderLike = MoveProvider | Callable[[BoardState, str], MoveAnswer]


class MatchController:
    """Drives one match from its initial state to a :class:`MatchResult`.

    Each turn the controller asks every living snake's provider for a
    move (in parallel, bounded by ``config.move_timeout``), hands the
    complete mapping to the :class:`RulesEngine`, appends the result to
    :attr:`replay_log`, and checks for the end of the match.

    The controller is the only writer of its current state. ``abort``
    may be called from another thread; it waits for a running turn to
    complete and never interrupts one.
    """

    def __init__(
        self,
        config: MatchConfig,
        providers: Mapping[str, ProviderLike],
        *,
        engine: RulesEngine | None = None,
        initial: BoardState | None = None,
    ) -> None:
        self.config = config
        self.engine = engine or RulesEngine.from_config(config)
        board = initial if initial is not None else config.initial_board()
        try:
            board.validate(self.engine.settings.max_health)
        except InvariantViolation as exc:
            raise ConfigurationError(f"Invalid initial board: {exc}") from exc

        missing = sorted(set(board.alive_ids) - set(providers))
        if missing:
            raise ConfigurationError(f"No move provider for snakes {missing}.")
        unknown = sorted(set(providers) - set(board.snakes))
        if unknown:
            raise ConfigurationError(f"Providers given for unknown snakes {unknown}.")
        self.providers: dict[str, MoveProvider] = {
            sid: as_provider(p) for sid, p in sorted(providers.items())
        }

        self.replay_log = ReplayLog(board, self.engine)
        self.status = MatchStatus.NOT_STARTED
        self.result: MatchResult | None = None
        self._state = board
        self._multi_snake = len(board.snakes) > 1
        self._turn_lock = threading.Lock()
        self._abort_requested = threading.Event()
        self._abort_reason = "aborted"
        self._executor: ThreadPoolExecutor | None = None
        # Provider calls still running after their turn timed out.
        self._pending: dict[str, Future] = {}

    @property
    def state(self) -> BoardState:
        return self._state

    def __enter__(self) -> MatchController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the provider thread pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        self._pending.clear()

    def play_turn(self) -> BoardState:
        """Advance the match by one turn and return the new state."""
        with self._turn_lock:
            if self.status == MatchStatus.FINISHED:
                raise MatchFinishedError("The match has already finished.")
            if self.status == MatchStatus.NOT_STARTED:
                self.status = MatchStatus.IN_PROGRESS
                logger.info(
                    "Match started with snakes %s on a %dx%d grid (seed %d).",
                    list(self._state.snakes), self._state.grid.width,
                    self._state.grid.height, self.engine.seed,
                )

            board = self._state
            moves = self.collect_moves(board)
            try:
                nxt = self.engine.apply_turn(board, moves)
            except InvariantViolation:
                logger.error("Invariant violated after turn %d; stopping match.", board.turn)
                self.status = MatchStatus.FINISHED
                self.close()
                raise

            self.replay_log.append(moves, nxt)
            self._state = nxt
            result = self._terminal_result(nxt)
            if result is not None:
                self._finish(result)
            return nxt

    def run(self) -> MatchResult:
        """Play turns until the match finishes or :meth:`abort` is called."""
        while (
            self.status != MatchStatus.FINISHED
            and not self._abort_requested.is_set()
        ):
            try:
                self.play_turn()
            except MatchFinishedError:
                break
        if self.result is None:
            return self.abort(self._abort_reason)
        return self.result

    def abort(self, reason: str = "aborted") -> MatchResult:
        """Finish the match between turns with an ``ABORTED`` result.

        Safe to call from another thread: a running turn completes first,
        and :meth:`run` does not start another one.
        """
        self._abort_reason = reason
        self._abort_requested.set()
        with self._turn_lock:
            if self.result is not None:
                return self.result
            if self.status == MatchStatus.FINISHED:
                raise MatchFinishedError("The match stopped on an invariant violation.")
            result = MatchResult(
                outcome=MatchOutcome.ABORTED,
                final_state=self._state,
                turns=self._state.turn,
                reason=reason,
            )
            self._finish(result)
            return result

    def collect_moves(self, board: BoardState) -> dict[str, Direction]:
        """Ask every living snake's provider for a move.

        Providers that time out, raise, or answer with something that is
        not a direction are logged and left out of the mapping; the rules
        engine then applies the missing-move policy to them. A provider
        whose call from an earlier turn is still running is not asked
        again until that call returns, so it holds at most one worker and
        never delays the other snakes.
        """
        alive = board.alive_ids
        if not alive:
            return {}
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=len(self.providers),
                thread_name_prefix="move-provider",
            )
        futures: dict[str, Future] = {}
        for sid in alive:
            previous = self._pending.pop(sid, None)
            if previous is not None and not previous.done():
                self._pending[sid] = previous
                continue
            futures[sid] = self._executor.submit(self._ask, sid, board)
        timeout = self.config.move_timeout
        done, _ = wait(futures.values(), timeout=timeout)

        moves: dict[str, Direction] = {}
        for sid in alive:
            future = futures.get(sid)
            try:
                if future is None:
                    raise ProviderTimeout(
                        sid, f"still answering an earlier turn at turn {board.turn + 1}.",
                    )
                if future not in done:
                    if not future.cancel():
                        self._pending[sid] = future
                    raise ProviderTimeout(
                        sid, f"no answer within {timeout}s for turn {board.turn + 1}.",
                    )
                answer = future.result()
                if answer is None:
                    logger.debug("Snake %s: provider gave no decision.", sid)
                    continue
                moves[sid] = Direction.parse(answer)
            except (ProviderError, IllegalMoveError) as exc:
                logger.warning("%s Applying the missing-move policy.", exc)
        return moves

    def _ask(self, snake_id: str, board: BoardState) -> MoveAnswer:
        try:
            return self.providers[snake_id].provide_move(board, snake_id)
        except Exception as exc:
            raise ProviderError(snake_id, f"{type(exc).__name__}: {exc}") from exc

    def _terminal_result(self, board: BoardState) -> MatchResult | None:
        alive = board.alive_ids
        turns = board.turn
        if not alive:
            return MatchResult(
                outcome=MatchOutcome.ALL_ELIMINATED,
                final_state=board,
                turns=turns,
                reason=last_elimination_reason(board),
            )
        if len(alive) == 1 and self._multi_snake:
            return MatchResult(
                outcome=MatchOutcome.WINNER,
                final_state=board,
                turns=turns,
                winner=alive[0],
                reason=last_elimination_reason(board),
            )
        max_turns = self.config.max_turns
        if max_turns is not None and board.turn >= max_turns:
            if len(alive) == 1:
                return MatchResult(
                    outcome=MatchOutcome.WINNER,
                    final_state=board,
                    turns=turns,
                    winner=alive[0],
                    reason="turn limit reached",
                )
            return MatchResult(
                outcome=MatchOutcome.DRAW,
                final_state=board,
                turns=turns,
                reason="turn limit reached",
            )
        return None

    def _finish(self, result: MatchResult) -> None:
        """Transition to finished exactly once."""
        self.result = result
        self.status = MatchStatus.FINISHED
        self.close()
        logger.info(
            "Match finished after %d turns: %s%s%s.",
            result.turns,
            result.outcome.value,
            f" ({result.winner})" if result.winner else "",
            f", {result.reason}" if result.reason else "",
        )
