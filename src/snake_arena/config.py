"""Match configuration: board layout, rules, and move policies."""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from snake_arena.board import BoardState
from snake_arena.errors import ConfigurationError, IllegalMoveError
from snake_arena.food import FoodManager, FoodPolicy, setup_rng
from snake_arena.grid import Coord, Grid, WallMode
from snake_arena.snake import Direction, Snake

logger = logging.getLogger(__name__)

# Spawn slots used when no explicit spawns are given:
# (x_fraction, y_fraction, direction).
_SPAWN_LAYOUT: list[tuple[float, float, Direction]] = [
    (0.25, 0.25, Direction.RIGHT),
    (0.75, 0.75, Direction.LEFT),
    (0.75, 0.25, Direction.DOWN),
    (0.25, 0.75, Direction.UP),
]


class MovePolicy(str, enum.Enum):
    """What to do with a snake whose decision is missing or illegal."""

    ELIMINATE = "eliminate"
    CONTINUE_STRAIGHT = "continue_straight"


def _coerce_policy(name: str, value: MovePolicy | str) -> MovePolicy:
    try:
        return MovePolicy(value)
    except ValueError:
        choices = ", ".join(p.value for p in MovePolicy)
        raise ConfigurationError(
            f"{name} must be one of {choices}; got {value!r}."
        ) from None


@dataclass(frozen=True)
class RuleSettings:
    """Parameters of the per-turn transition."""

    max_health: int = 100
    starvation_rate: int = 1
    on_missing_move: MovePolicy = MovePolicy.CONTINUE_STRAIGHT
    on_illegal_move: MovePolicy = MovePolicy.CONTINUE_STRAIGHT

    def __post_init__(self) -> None:
        if self.max_health < 1:
            raise ConfigurationError("max_health must be at least 1.")
        if self.starvation_rate < 0:
            raise ConfigurationError("starvation_rate must be non-negative.")
        object.__setattr__(
            self, "on_missing_move",
            _coerce_policy("on_missing_move", self.on_missing_move),
        )
        object.__setattr__(
            self, "on_illegal_move",
            _coerce_policy("on_illegal_move", self.on_illegal_move),
        )

    def to_dict(self) -> dict:
        return {
            "max_health": self.max_health,
            "starvation_rate": self.starvation_rate,
            "on_missing_move": self.on_missing_move.value,
            "on_illegal_move": self.on_illegal_move.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RuleSettings:
        return cls(**data)


@dataclass(frozen=True)
class SnakeSpawn:
    """Starting head position and heading of one snake."""

    snake_id: str
    x: int
    y: int
    direction: Direction = Direction.RIGHT

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "direction", Direction.parse(self.direction))
        except IllegalMoveError as exc:
            raise ConfigurationError(
                f"Spawn for snake {self.snake_id!r}: {exc}"
            ) from None

    def to_dict(self) -> dict:
        return {
            "snake_id": self.snake_id,
            "x": self.x,
            "y": self.y,
            "direction": self.direction.name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SnakeSpawn:
        return cls(
            snake_id=data["snake_id"],
            x=data["x"],
            y=data["y"],
            direction=data.get("direction", "RIGHT"),
        )


@dataclass(frozen=True)
class MatchConfig:
    """Configuration for a match, fixed before it starts.

    Snakes come either from ``spawns`` or, when that is ``None``, from a
    built-in layout of up to four slots with ids ``snake-0``,
    ``snake-1``... Starting food is ``food_positions`` if given, else
    ``starting_food`` cells drawn from the seed.
    """

    width: int = 11
    height: int = 11
    wall_mode: WallMode = WallMode.DEATH
    snake_count: int | None = None
    spawns: tuple[SnakeSpawn, ...] | None = None
    initial_length: int = 3
    starting_food: int = 1
    food_positions: tuple[tuple[int, int], ...] | None = None
    min_food: int = 1
    food_spawn_chance: float = 0.15
    max_health: int = 100
    starvation_rate: int = 1
    max_turns: int | None = 500
    on_missing_move: MovePolicy = MovePolicy.CONTINUE_STRAIGHT
    on_illegal_move: MovePolicy = MovePolicy.CONTINUE_STRAIGHT
    seed: int | None = None
    move_timeout: float | None = 1.0

    def __post_init__(self) -> None:
        if self.seed is None:
            object.__setattr__(self, "seed", int(np.random.SeedSequence().entropy))
        elif self.seed < 0:
            raise ConfigurationError("seed must be non-negative.")
        try:
            object.__setattr__(self, "wall_mode", WallMode(self.wall_mode))
        except ValueError:
            raise ConfigurationError(
                f"wall_mode must be 'death' or 'wrap'; got {self.wall_mode!r}."
            ) from None
        object.__setattr__(
            self, "on_missing_move",
            _coerce_policy("on_missing_move", self.on_missing_move),
        )
        object.__setattr__(
            self, "on_illegal_move",
            _coerce_policy("on_illegal_move", self.on_illegal_move),
        )
        if self.spawns is not None:
            object.__setattr__(self, "spawns", tuple(self.spawns))
        if self.food_positions is not None:
            object.__setattr__(
                self, "food_positions",
                tuple(Coord(x, y) for x, y in self.food_positions),
            )

        # Raises ConfigurationError on bad dimensions/policies.
        grid = self.grid()
        self.rule_settings()
        self.food_policy()

        if self.initial_length < 1:
            raise ConfigurationError("initial_length must be at least 1.")
        if self.starting_food < 0:
            raise ConfigurationError("starting_food must be non-negative.")
        if self.max_turns is not None and self.max_turns < 1:
            raise ConfigurationError("max_turns must be at least 1.")
        if self.move_timeout is not None and self.move_timeout <= 0:
            raise ConfigurationError("move_timeout must be positive.")

        occupied: dict[Coord, str] = {}
        for snake in self.initial_snakes():
            for seg in snake.body:
                if not grid.in_bounds(seg):
                    raise ConfigurationError(
                        f"Snake {snake.snake_id!r} does not fit the grid at {seg}; "
                        "increase grid size or reduce initial_length."
                    )
                if seg in occupied:
                    raise ConfigurationError(
                        f"Snakes {occupied[seg]!r} and {snake.snake_id!r} overlap "
                        f"at {seg}."
                    )
                occupied[seg] = snake.snake_id

        for cell in self.food_positions or ():
            if not grid.in_bounds(cell):
                raise ConfigurationError(f"Food position {cell} is off the grid.")
            if cell in occupied:
                raise ConfigurationError(
                    f"Food position {cell} lies under snake {occupied[cell]!r}."
                )

    @property
    def effective_snake_count(self) -> int:
        if self.spawns is not None:
            return len(self.spawns)
        return 2 if self.snake_count is None else self.snake_count

    def grid(self) -> Grid:
        return Grid(width=self.width, height=self.height, wall_mode=self.wall_mode)

    def rule_settings(self) -> RuleSettings:
        return RuleSettings(
            max_health=self.max_health,
            starvation_rate=self.starvation_rate,
            on_missing_move=self.on_missing_move,
            on_illegal_move=self.on_illegal_move,
        )

    def food_policy(self) -> FoodPolicy:
        return FoodPolicy(min_food=self.min_food, spawn_chance=self.food_spawn_chance)

    def effective_spawns(self) -> list[SnakeSpawn]:
        """Resolve the starting head and heading of every snake."""
        if self.spawns is not None:
            spawns = list(self.spawns)
        else:
            count = self.effective_snake_count
            if count > len(_SPAWN_LAYOUT):
                raise ConfigurationError(
                    f"The default layout holds {len(_SPAWN_LAYOUT)} snakes; "
                    f"pass explicit spawns for {count}."
                )
            spawns = []
            for i in range(count):
                x_frac, y_frac, direction = _SPAWN_LAYOUT[i]
                spawns.append(
                    SnakeSpawn(
                        snake_id=f"snake-{i}",
                        x=int(self.width * x_frac),
                        y=int(self.height * y_frac),
                        direction=direction,
                    )
                )
        if not spawns:
            raise ConfigurationError("A match needs at least one snake.")
        ids = [s.snake_id for s in spawns]
        if len(set(ids)) != len(ids):
            raise ConfigurationError(f"Snake ids must be unique, got {ids}.")
        return spawns

    def initial_snakes(self) -> list[Snake]:
        return [
            Snake.spawn(
                spawn.snake_id,
                (spawn.x, spawn.y),
                spawn.direction,
                length=self.initial_length,
                health=self.max_health,
            )
            for spawn in self.effective_spawns()
        ]

    def initial_board(self) -> BoardState:
        """Build the turn-0 state: spawned snakes and starting food."""
        grid = self.grid()
        snakes = self.initial_snakes()
        if self.food_positions is not None:
            food = frozenset(self.food_positions)
        else:
            occupied = [seg for snake in snakes for seg in snake.body]
            food = FoodManager.place_initial(
                grid, occupied, self.starting_food, setup_rng(self.seed),
            )
        return BoardState(turn=0, grid=grid, snakes=snakes, food=food)

    def with_seed(self, seed: int) -> MatchConfig:
        return dataclasses.replace(self, seed=seed)

    def to_dict(self) -> dict:
        """Serialize to a JSON-ready dict."""
        return {
            "width": self.width,
            "height": self.height,
            "wall_mode": self.wall_mode.value,
            "snake_count": self.snake_count,
            "spawns": (
                [s.to_dict() for s in self.spawns] if self.spawns is not None else None
            ),
            "initial_length": self.initial_length,
            "starting_food": self.starting_food,
            "food_positions": (
                [list(c) for c in self.food_positions]
                if self.food_positions is not None else None
            ),
            "min_food": self.min_food,
            "food_spawn_chance": self.food_spawn_chance,
            "max_health": self.max_health,
            "starvation_rate": self.starvation_rate,
            "max_turns": self.max_turns,
            "on_missing_move": self.on_missing_move.value,
            "on_illegal_move": self.on_illegal_move.value,
            "seed": self.seed,
            "move_timeout": self.move_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict) -> MatchConfig:
        raw = dict(data)
        spawns = raw.pop("spawns", None)
        if spawns is not None:
            raw["spawns"] = tuple(SnakeSpawn.from_dict(s) for s in spawns)
        food = raw.pop("food_positions", None)
        if food is not None:
            raw["food_positions"] = tuple(tuple(c) for c in food)
        return cls(**raw)

    def save(self, path: str | Path) -> None:
        """Write config to a JSON file."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2))
        logger.info("Config saved to %s", p)

    @classmethod
    def load(cls, path: str | Path) -> MatchConfig:
        """Load config from a JSON file."""
        return cls.from_dict(json.loads(Path(path).read_text()))
