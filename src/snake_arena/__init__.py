"""Snake Arena — deterministic multi-snake match engine."""

from snake_arena.board import BoardState
from snake_arena.config import MatchConfig, MovePolicy, RuleSettings, SnakeSpawn
from snake_arena.errors import (
    ConfigurationError,
    IllegalMoveError,
    InvariantViolation,
    MatchFinishedError,
    ProviderError,
    ProviderTimeout,
    ReplayMismatch,
    SnakeArenaError,
)
from snake_arena.food import FoodManager, FoodPolicy
from snake_arena.grid import Coord, Grid, WallMode
from snake_arena.match import MatchController, MatchOutcome, MatchResult, MatchStatus
from snake_arena.providers import (
    CallableMoveProvider,
    MoveProvider,
    RandomSafeMoveProvider,
    ScriptedMoveProvider,
)
from snake_arena.replay import ReplayLog, TurnRecord, replay
from snake_arena.rules import RulesEngine
from snake_arena.series import SeriesSummary, run_series
from snake_arena.snake import Direction, EliminationCause, Snake

__all__ = [
    "BoardState",
    "CallableMoveProvider",
    "ConfigurationError",
    "Coord",
    "Direction",
    "EliminationCause",
    "FoodManager",
    "FoodPolicy",
    "Grid",
    "IllegalMoveError",
    "InvariantViolation",
    "MatchConfig",
    "MatchController",
    "MatchFinishedError",
    "MatchOutcome",
    "MatchResult",
    "MatchStatus",
    "MovePolicy",
    "MoveProvider",
    "ProviderError",
    "ProviderTimeout",
    "RandomSafeMoveProvider",
    "ReplayLog",
    "ReplayMismatch",
    "RuleSettings",
    "RulesEngine",
    "ScriptedMoveProvider",
    "SeriesSummary",
    "SnakeArenaError",
    "Snake",
    "SnakeSpawn",
    "TurnRecord",
    "WallMode",
    "replay",
    "run_series",
]
