"""Tests for the series runner."""

import json
import logging

import pytest

from snake_arena.board import BoardState
from snake_arena.config import MatchConfig
from snake_arena.errors import ConfigurationError
from snake_arena.grid import Grid
from snake_arena.match import MatchOutcome, MatchResult
from snake_arena.providers import RandomSafeMoveProvider
from snake_arena.series import (
    MAX_EXAMPLE_SEEDS,
    SeriesSummary,
    play_match,
    run_series,
    winner_key,
)


def _result(outcome, winner=None, reason="", turns=10):
    return MatchResult(
        outcome=outcome,
        final_state=BoardState(turn=turns, grid=Grid(3, 3)),
        turns=turns,
        winner=winner,
        reason=reason,
    )


def _random_agents(config):
    return {
        sid: RandomSafeMoveProvider(config.seed * 10 + i)
        for i, sid in enumerate(config.initial_board().snakes)
    }


class TestWinnerKey:
    def test_winner_id(self):
        assert winner_key(_result(MatchOutcome.WINNER, winner="snake-1")) == "snake-1"

    def test_outcome_name(self):
        assert winner_key(_result(MatchOutcome.DRAW)) == "draw"
        assert winner_key(_result(MatchOutcome.ALL_ELIMINATED)) == "all_eliminated"


class TestSeriesSummary:
    def test_record(self):
        summary = SeriesSummary()
        summary.record(0, _result(MatchOutcome.WINNER, "a", "head_collision", turns=4))
        summary.record(1, _result(MatchOutcome.WINNER, "a", "starvation", turns=6))
        summary.record(2, _result(MatchOutcome.DRAW, reason="turn limit reached"))
        assert summary.games == 3
        assert summary.total_turns == 20
        assert summary.wins == {"a": 2, "draw": 1}
        assert summary.share("a") == pytest.approx(2 / 3)
        assert summary.reasons["a"]["starvation"].seeds == [1]

    def test_missing_reason_filed_as_none(self):
        summary = SeriesSummary()
        summary.record(0, _result(MatchOutcome.ABORTED))
        assert summary.reasons["aborted"]["none"].count == 1

    def test_example_seeds_capped(self):
        summary = SeriesSummary()
        for seed in range(8):
            summary.record(seed, _result(MatchOutcome.WINNER, "a", "body_collision"))
        tally = summary.reasons["a"]["body_collision"]
        assert tally.count == 8
        assert tally.seeds == list(range(MAX_EXAMPLE_SEEDS))

    def test_share_of_empty_summary(self):
        assert SeriesSummary().share("a") == 0.0

    def test_summary_text(self):
        summary = SeriesSummary()
        for seed in range(3):
            summary.record(seed, _result(MatchOutcome.WINNER, "snake-0", "out_of_bounds"))
        text = summary.summary()
        assert "Series: 3 games, 30 turns" in text
        assert "snake-0: 3 (100.0%)" in text
        assert "out_of_bounds: 3 (seeds 0, 1, 2)" in text

    def test_to_dict_is_json_ready(self):
        summary = SeriesSummary()
        summary.record(4, _result(MatchOutcome.DRAW, reason="turn limit reached"))
        d = json.loads(json.dumps(summary.to_dict()))
        assert d["wins"] == {"draw": 1}
        assert d["reasons"]["draw"]["turn limit reached"] == {"count": 1, "seeds": [4]}


class TestRunSeries:
    def test_invalid_game_count(self):
        with pytest.raises(ConfigurationError, match="games"):
            run_series(MatchConfig(seed=0), _random_agents, games=0)

    def test_invalid_start_seed(self):
        with pytest.raises(ConfigurationError, match="start_seed"):
            run_series(MatchConfig(seed=0), _random_agents, games=1, start_seed=-1)

    def test_tallies_every_game(self, caplog):
        cfg = MatchConfig(seed=0, max_turns=40)
        with caplog.at_level(logging.INFO, logger="snake_arena.series"):
            summary = run_series(cfg, _random_agents, games=4, start_seed=10, workers=2)
        assert summary.games == 4
        assert sum(summary.wins.values()) == 4
        for by_reason in summary.reasons.values():
            for tally in by_reason.values():
                assert set(tally.seeds) <= set(range(10, 14))
        assert "Series: 4 games" in caplog.text

    def test_independent_of_worker_count(self):
        cfg = MatchConfig(seed=0, max_turns=40)
        serial = run_series(cfg, _random_agents, games=3, workers=1)
        parallel = run_series(cfg, _random_agents, games=3, workers=3)
        assert serial.to_dict() == parallel.to_dict()

    def test_matches_single_play(self):
        cfg = MatchConfig(seed=0, max_turns=40)
        summary = run_series(cfg, _random_agents, games=1, start_seed=7)
        seeded = cfg.with_seed(7)
        result = play_match(seeded, _random_agents(seeded))
        assert summary.wins == {winner_key(result): 1}
        assert summary.total_turns == result.turns
