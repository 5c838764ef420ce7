"""Run many seeded matches and tally who won and why the loser died."""

from __future__ import annotations

import logging
import os
from collections import Counter
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from snake_arena.config import MatchConfig
from snake_arena.errors import ConfigurationError
from snake_arena.match import MatchController, MatchOutcome, MatchResult, ProviderLike

logger = logging.getLogger(__name__)

# Seeds kept per (winner, reason) pair for later reproduction.
MAX_EXAMPLE_SEEDS = 5

ProviderFactory = Callable[[MatchConfig], Mapping[str, ProviderLike]]


def winner_key(result: MatchResult) -> str:
    """Label a result is filed under: the winner's id or the outcome name."""
    if result.outcome == MatchOutcome.WINNER and result.winner is not None:
        return result.winner
    return result.outcome.value


@dataclass
class ReasonTally:
    count: int = 0
    seeds: list[int] = field(default_factory=list)


@dataclass
class SeriesSummary:
    """Aggregated results of a series of matches."""

    games: int = 0
    total_turns: int = 0
    wins: Counter[str] = field(default_factory=Counter)
    reasons: dict[str, dict[str, ReasonTally]] = field(default_factory=dict)

    def record(self, seed: int, result: MatchResult) -> None:
        key = winner_key(result)
        self.games += 1
        self.total_turns += result.turns
        self.wins[key] += 1
        tally = self.reasons.setdefault(key, {}).setdefault(
            result.reason or "none", ReasonTally(),
        )
        tally.count += 1
        if len(tally.seeds) < MAX_EXAMPLE_SEEDS:
            tally.seeds.append(seed)

    def share(self, key: str) -> float:
        return self.wins[key] / self.games if self.games else 0.0

    def summary(self) -> str:
        lines = [f"Series: {self.games} games, {self.total_turns} turns"]
        for key, count in sorted(self.wins.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"{key}: {count} ({self.share(key) * 100:.1f}%)")
            ranked = sorted(
                self.reasons.get(key, {}).items(),
                key=lambda kv: (-kv[1].count, kv[0]),
            )
            for reason, tally in ranked:
                seeds = ", ".join(str(s) for s in tally.seeds)
                lines.append(f"  {reason}: {tally.count} (seeds {seeds})")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "games": self.games,
            "total_turns": self.total_turns,
            "wins": dict(sorted(self.wins.items())),
            "reasons": {
                key: {
                    reason: {"count": t.count, "seeds": list(t.seeds)}
                    for reason, t in sorted(by_reason.items())
                }
                for key, by_reason in sorted(self.reasons.items())
            },
        }


def play_match(config: MatchConfig, providers: Mapping[str, ProviderLike]) -> MatchResult:
    """Play a single match to completion."""
    with MatchController(config, providers) as match:
        return match.run()


def run_series(
    config: MatchConfig,
    provider_factory: ProviderFactory,
    *,
    games: int = 100,
    start_seed: int = 0,
    workers: int | None = None,
) -> SeriesSummary:
    """Play *games* matches with consecutive seeds on a thread pool.

    Match ``i`` uses ``config`` with its seed replaced by
    ``start_seed + i`` and providers from ``provider_factory(config)``.
    Results are tallied in seed order, so the summary does not depend on
    which worker finished first.
    """
    if games < 1:
        raise ConfigurationError("games must be at least 1.")
    if start_seed < 0:
        raise ConfigurationError("start_seed must be non-negative.")
    workers = workers or os.cpu_count() or 1
    logger.info("Running %d games with %d workers.", games, workers)

    def _play(seed: int) -> MatchResult:
        cfg = config.with_seed(seed)
        result = play_match(cfg, provider_factory(cfg))
        logger.debug(
            "%05d = %s (%d turns) %s",
            seed, winner_key(result), result.turns, result.reason,
        )
        return result

    seeds = range(start_seed, start_seed + games)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="series") as pool:
        results = list(pool.map(_play, seeds))

    summary = SeriesSummary()
    for seed, result in zip(seeds, results, strict=True):
        summary.record(seed, result)
    logger.info("%s", summary.summary())
    return summary
