"""Deterministic per-turn rules engine with simultaneous resolution."""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from collections.abc import Mapping
from typing import TYPE_CHECKING

from snake_arena.board import BoardState
from snake_arena.config import MovePolicy, RuleSettings
from snake_arena.errors import IllegalMoveError
from snake_arena.food import FoodManager, FoodPolicy, turn_rng
from snake_arena.grid import Coord, Grid
from snake_arena.snake import DEFAULT_DIRECTION, Direction, EliminationCause, Snake

if TYPE_CHECKING:
    from snake_arena.config import MatchConfig

logger = logging.getLogger(__name__)

Moves = Mapping[str, Direction]


class RulesEngine:
    """Pure transition from one :class:`BoardState` to the next.

    :meth:`apply_turn` never mutates its inputs. Given the same board,
    the same moves and the same seed it returns an equal state on every
    call: all snakes are visited in id order and the food generator is
    derived from ``(seed, turn)``.

    The transition runs in a fixed order: movement, growth, health,
    collisions, elimination, food respawn, turn increment. Collisions are
    judged against the tentative positions of every snake at once, and
    eliminations are committed together afterwards.
    """

    def __init__(
        self,
        settings: RuleSettings | None = None,
        food_policy: FoodPolicy | None = None,
        seed: int = 0,
    ) -> None:
        self.settings = settings or RuleSettings()
        self.food_manager = FoodManager(food_policy)
        self.seed = seed

    @classmethod
    def from_config(cls, config: MatchConfig) -> RulesEngine:
        return cls(
            settings=config.rule_settings(),
            food_policy=config.food_policy(),
            seed=config.seed,
        )

    def to_dict(self) -> dict:
        """Everything needed to rebuild an equivalent engine."""
        return {
            "seed": self.seed,
            "settings": self.settings.to_dict(),
            "food_policy": self.food_manager.policy.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> RulesEngine:
        return cls(
            settings=RuleSettings.from_dict(data["settings"]),
            food_policy=FoodPolicy.from_dict(data["food_policy"]),
            seed=data["seed"],
        )

    def apply_turn(self, board: BoardState, moves: Moves) -> BoardState:
        """Advance *board* by one turn using one decision per living snake."""
        grid = board.grid
        next_turn = board.turn + 1
        alive = board.alive_snakes()
        eliminated: dict[str, EliminationCause] = {}

        unknown = sorted(set(moves) - {s.snake_id for s in alive})
        if unknown:
            logger.debug("Turn %d: ignoring moves for %s.", next_turn, unknown)

        # --- movement ---
        directions: dict[str, Direction] = {}
        new_heads: dict[str, Coord | None] = {}
        for snake in alive:
            sid = snake.snake_id
            resolved = self._resolve_move(grid, snake, moves.get(sid))
            if isinstance(resolved, EliminationCause):
                eliminated[sid] = resolved
                continue
            directions[sid], new_heads[sid] = resolved

        # --- growth ---
        # Snakes eliminated above do not move and keep their whole body.
        bodies: dict[str, tuple[Coord | None, ...]] = {}
        ate: set[str] = set()
        for snake in alive:
            sid = snake.snake_id
            if sid not in new_heads:
                bodies[sid] = snake.body
                continue
            head = new_heads[sid]
            if head is not None and head in board.food:
                ate.add(sid)
                bodies[sid] = (head, *snake.body)
            else:
                bodies[sid] = (head, *snake.body[:-1])
        food = board.food - {new_heads[sid] for sid in ate}

        # --- health ---
        health: dict[str, int] = {}
        for snake in alive:
            sid = snake.snake_id
            if sid not in new_heads:
                health[sid] = snake.health
                continue
            health[sid] = snake.health - self.settings.starvation_rate
            if sid in ate:
                health[sid] = self.settings.max_health
            if health[sid] <= 0:
                eliminated.setdefault(sid, EliminationCause.STARVATION)

        # --- collisions ---
        for sid, cause in self._collisions(bodies, new_heads).items():
            eliminated.setdefault(sid, cause)

        # --- elimination ---
        snakes: list[Snake] = []
        for snake in board.snakes.values():
            sid = snake.snake_id
            if not snake.alive:
                snakes.append(snake)
            elif sid in eliminated:
                logger.info(
                    "Snake %s eliminated at turn %d (%s).",
                    sid, next_turn, eliminated[sid].value,
                )
                snakes.append(
                    dataclasses.replace(
                        snake,
                        alive=False,
                        health=health[sid],
                        eliminated_cause=eliminated[sid],
                        eliminated_turn=next_turn,
                    )
                )
            else:
                snakes.append(
                    dataclasses.replace(
                        snake,
                        body=bodies[sid],
                        health=health[sid],
                        direction=directions[sid],
                    )
                )

        # --- food respawn and turn increment ---
        staged = BoardState(turn=next_turn, grid=grid, snakes=snakes, food=food)
        food = self.food_manager.maybe_spawn(staged, turn_rng(self.seed, next_turn))
        result = dataclasses.replace(staged, food=food)
        result.validate(self.settings.max_health)
        logger.debug(
            "Turn %d: %d alive, %d food.",
            next_turn, len(result.alive_snakes()), len(result.food),
        )
        return result

    def _resolve_move(
        self,
        grid: Grid,
        snake: Snake,
        decision: Direction | str | None,
    ) -> tuple[Direction, Coord | None] | EliminationCause:
        """Turn a decision into (direction, new head), or an elimination.

        A new head of ``None`` means the snake is heading off a walled
        grid; that only survives this step when the fallback direction
        itself leaves the grid, and the collision pass eliminates it.
        """
        sid = snake.snake_id
        if decision is not None and not isinstance(decision, Direction):
            try:
                decision = Direction.parse(decision)
            except IllegalMoveError as exc:
                logger.warning("Snake %s: %s Treating as missing.", sid, exc)
                decision = None

        if decision is None:
            if self.settings.on_missing_move == MovePolicy.ELIMINATE:
                return EliminationCause.NO_MOVE
            return self._continue_straight(grid, snake)

        head = grid.step(snake.head, decision)
        if head is None:
            problem = EliminationCause.OUT_OF_BOUNDS
        elif head == snake.neck:
            problem = EliminationCause.ILLEGAL_MOVE
        else:
            return decision, head

        if self.settings.on_illegal_move == MovePolicy.ELIMINATE:
            return problem
        logger.debug(
            "Snake %s: illegal move %s (%s), continuing straight.",
            sid, decision.name, problem.value,
        )
        return self._continue_straight(grid, snake)

    @staticmethod
    def _continue_straight(grid: Grid, snake: Snake) -> tuple[Direction, Coord | None]:
        direction = snake.direction
        if direction is None:
            direction = DEFAULT_DIRECTION
            if snake.neck is not None:
                for candidate in Direction:
                    if grid.step(snake.neck, candidate) == snake.head:
                        direction = candidate
                        break
        return direction, grid.step(snake.head, direction)

    @staticmethod
    def _collisions(
        bodies: dict[str, tuple[Coord | None, ...]],
        new_heads: dict[str, Coord | None],
    ) -> dict[str, EliminationCause]:
        """Judge every moving head against the full tentative board."""
        causes: dict[str, EliminationCause] = {}

        # Cells each snake will cover, heads excluded for snakes that
        # moved (head-on meetings are judged separately below).
        obstacles: dict[str, frozenset[Coord]] = {}
        for sid, body in bodies.items():
            cells = body[1:] if sid in new_heads else body
            obstacles[sid] = frozenset(c for c in cells if c is not None)

        for sid in sorted(new_heads):
            head = new_heads[sid]
            if head is None:
                causes[sid] = EliminationCause.OUT_OF_BOUNDS
            elif head in obstacles[sid]:
                causes[sid] = EliminationCause.SELF_COLLISION
            elif any(
                head in cells for other, cells in obstacles.items() if other != sid
            ):
                causes[sid] = EliminationCause.BODY_COLLISION

        meetings: dict[Coord, list[str]] = defaultdict(list)
        for sid in sorted(new_heads):
            head = new_heads[sid]
            if head is not None:
                meetings[head].append(sid)
        for sids in meetings.values():
            if len(sids) < 2:
                continue
            longest = max(len(bodies[sid]) for sid in sids)
            leaders = [sid for sid in sids if len(bodies[sid]) == longest]
            for sid in sids:
                if len(bodies[sid]) < longest or len(leaders) > 1:
                    causes.setdefault(sid, EliminationCause.HEAD_COLLISION)
        return causes
