"""Exception types raised and recovered by the arena."""

from __future__ import annotations


class SnakeArenaError(Exception):
    """Base class for all arena errors."""


class ConfigurationError(SnakeArenaError, ValueError):
    """Invalid match configuration, detected before the match starts."""


class ProviderError(SnakeArenaError):
    """A move provider raised instead of answering."""

    def __init__(self, snake_id: str, message: str) -> None:
        super().__init__(f"Provider for snake {snake_id!r}: {message}")
        self.snake_id = snake_id


class ProviderTimeout(ProviderError):
    """A move provider did not answer within the time budget."""


class IllegalMoveError(SnakeArenaError):
    """A provider answered with something that is not a direction."""


class InvariantViolation(SnakeArenaError, RuntimeError):
    """The rules engine produced an inconsistent board state."""


class MatchFinishedError(SnakeArenaError, RuntimeError):
    """A turn was requested on a match that has already finished."""


class ReplayMismatch(SnakeArenaError):
    """Replaying a log produced a state that differs from the recorded one."""

    def __init__(self, turn: int) -> None:
        super().__init__(f"Replay diverged from the recorded log at turn {turn}.")
        self.turn = turn
