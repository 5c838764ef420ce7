"""Tests for the food module."""

import logging

import pytest

from snake_arena.board import BoardState
from snake_arena.errors import ConfigurationError
from snake_arena.food import FoodManager, FoodPolicy, setup_rng, turn_rng
from snake_arena.grid import Coord, Grid
from snake_arena.snake import Snake


def _board(*snakes, food=(), width=5, height=5):
    return BoardState.with_snakes(Grid(width=width, height=height), snakes, food=food)


class TestFoodPolicy:
    def test_defaults(self):
        policy = FoodPolicy()
        assert policy.min_food == 1
        assert policy.spawn_chance == 1.0

    def test_negative_min_food(self):
        with pytest.raises(ConfigurationError, match="min_food"):
            FoodPolicy(min_food=-1)

    def test_chance_out_of_range(self):
        with pytest.raises(ConfigurationError, match="spawn_chance"):
            FoodPolicy(spawn_chance=1.5)
        with pytest.raises(ConfigurationError, match="spawn_chance"):
            FoodPolicy(spawn_chance=-0.1)


class TestRngStreams:
    def test_turn_rng_reproducible(self):
        assert turn_rng(7, 3).random() == turn_rng(7, 3).random()

    def test_turns_draw_independent_streams(self):
        assert turn_rng(7, 3).random() != turn_rng(7, 4).random()

    def test_setup_rng_reproducible(self):
        assert setup_rng(11).integers(1000) == setup_rng(11).integers(1000)


# ---------------------------------------------------------------------------
# Spawning during a match
# ---------------------------------------------------------------------------


class TestMaybeSpawn:
    def test_no_spawn_when_enough_food(self):
        board = _board(food=[(1, 1)])
        manager = FoodManager(FoodPolicy(min_food=1, spawn_chance=1.0))
        assert manager.maybe_spawn(board, turn_rng(0, 1)) == board.food

    def test_spawns_one_on_free_cell(self):
        snake = Snake.spawn("a", (2, 2), length=3)
        board = _board(snake)
        manager = FoodManager(FoodPolicy(min_food=3, spawn_chance=1.0))
        food = manager.maybe_spawn(board, turn_rng(0, 1))
        assert len(food) == 1
        (cell,) = food
        assert isinstance(cell, Coord)
        assert board.grid.in_bounds(cell)
        assert cell not in snake.body

    def test_zero_chance_never_spawns(self):
        manager = FoodManager(FoodPolicy(min_food=5, spawn_chance=0.0))
        for turn in range(20):
            assert manager.maybe_spawn(_board(), turn_rng(0, turn)) == frozenset()

    def test_keeps_existing_food(self):
        board = _board(food=[(0, 0)])
        manager = FoodManager(FoodPolicy(min_food=2, spawn_chance=1.0))
        food = manager.maybe_spawn(board, turn_rng(0, 1))
        assert len(food) == 2
        assert (0, 0) in food

    def test_full_board_skips(self):
        board = _board(Snake.spawn("a", (1, 0), length=2), width=2, height=1)
        manager = FoodManager(FoodPolicy(min_food=1, spawn_chance=1.0))
        assert manager.maybe_spawn(board, turn_rng(0, 1)) == frozenset()

    def test_deterministic(self):
        board = _board(Snake.spawn("a", (2, 2), length=3))
        manager = FoodManager(FoodPolicy(min_food=1, spawn_chance=1.0))
        first = manager.maybe_spawn(board, turn_rng(42, 5))
        second = manager.maybe_spawn(board, turn_rng(42, 5))
        assert first == second


# ---------------------------------------------------------------------------
# Initial placement
# ---------------------------------------------------------------------------


class TestPlaceInitial:
    def test_distinct_free_cells(self):
        grid = Grid(width=5, height=5)
        occupied = [(0, 0), (1, 0), (2, 0)]
        food = FoodManager.place_initial(grid, occupied, 6, setup_rng(0))
        assert len(food) == 6
        assert not food & set(occupied)

    def test_zero_count(self):
        assert FoodManager.place_initial(Grid(3, 3), [], 0, setup_rng(0)) == frozenset()

    def test_more_food_than_free_cells(self, caplog):
        grid = Grid(width=2, height=2)
        with caplog.at_level(logging.WARNING, logger="snake_arena.food"):
            food = FoodManager.place_initial(grid, [(0, 0)], 10, setup_rng(0))
        assert food == {(1, 0), (0, 1), (1, 1)}
        assert "free cells" in caplog.text

    def test_same_seed_same_layout(self):
        grid = Grid(width=11, height=11)
        first = FoodManager.place_initial(grid, [], 4, setup_rng(9))
        second = FoodManager.place_initial(grid, [], 4, setup_rng(9))
        assert first == second
