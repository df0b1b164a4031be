"""
Tests for the ConnectFourGame state machine.

Tests:
- Move validation and error reporting
- Win, draw and score bookkeeping
- Lucky coin claims, spawns and their undo
- Undo as the exact inverse of make_move
- Computer turns and undo past them
- Difficulty configuration and status messages
"""

import numpy as np
import pytest

from lucky_connect4.config import Difficulty, STATUS_MESSAGE_DURATION
from lucky_connect4.game.board import Board
from lucky_connect4.utils import Cell, GameError, GameResult


def _snapshot(game):
    return (game.board.get_state(), game.current_player, game.game_result,
            game.remaining_bonus_coins, game.move_counter)


def _assert_same(snapshot, game):
    grid, player, result, pool, counter = snapshot
    assert np.array_equal(grid, game.board.grid)
    assert game.current_player == player
    assert game.game_result == result
    assert game.remaining_bonus_coins == pool
    assert game.move_counter == counter


class CoinGrabber:
    """Computer stand-in that always takes a lucky coin if one is on the board."""

    def __init__(self):
        self.calls = 0

    def choose_move(self, player, board):
        self.calls += 1
        coin = board.find_bonus()
        if coin is not None:
            return coin[0] + 1
        return board.valid_columns()[0] + 1


class TestMoveValidation:
    """Tests for rejected moves."""

    @pytest.mark.parametrize("column", [0, -1, 8])
    def test_invalid_column(self, human_game, column):
        result = human_game.make_move(column)

        assert not result
        assert result.error == GameError.INVALID_COLUMN
        assert human_game.error == GameError.INVALID_COLUMN
        assert "1-7" in human_game.error_message
        assert human_game.moves == []

    def test_column_full(self, human_game):
        for _ in range(6):
            assert human_game.make_move(1)

        result = human_game.make_move(1)
        assert result.error == GameError.COLUMN_FULL
        assert human_game.error_message == "That column is full."

    def test_error_cleared_by_next_move(self, human_game):
        human_game.make_move(42)
        assert human_game.error is not None

        assert human_game.make_move(2)
        assert human_game.error is None
        assert human_game.error_message is None

    def test_move_after_game_over(self, human_game):
        for column in [1, 2, 1, 2, 1, 2, 1]:
            human_game.make_move(column)
        assert human_game.red_wins

        result = human_game.make_move(3)
        assert result.error == GameError.GAME_OVER

    def test_players_alternate(self, human_game):
        assert human_game.current_player == Cell.RED
        human_game.make_move(4)
        assert human_game.current_player == Cell.YELLOW
        assert human_game.get_cell(3, 0) == Cell.RED
        assert human_game.get_cell(7, 0) is None


class TestOutcome:
    """Tests for wins, draws and scores."""

    def test_diagonal_scenario_and_undo(self, human_game):
        # After 4,4,4,5,5,3,3 it is Yellow to move and column 2 completes nothing,
        # so Red needs 5,5,1 before column 2 finishes (1,0) (2,1) (3,2) (4,3).
        # DESIGN.md ("Example scenario") has the full reasoning.
        for column in [4, 4, 4, 5, 5, 3, 3]:
            assert human_game.make_move(column)
        assert human_game.game_result == GameResult.IN_PROGRESS

        for column in [5, 5, 1]:
            assert human_game.make_move(column)
        assert human_game.game_result == GameResult.IN_PROGRESS
        assert human_game.current_player == Cell.RED

        human_game.make_move(2)
        assert human_game.game_result == GameResult.RED_WIN
        assert human_game.red_wins and human_game.game_over
        assert human_game.get_winner() == Cell.RED
        assert human_game.get_valid_moves() == []

        assert human_game.undo()
        assert human_game.game_result == GameResult.IN_PROGRESS
        assert human_game.current_player == Cell.RED
        assert human_game.get_cell(1, 0) == Cell.EMPTY

    def test_score_kept_across_restart(self, human_game):
        for column in [1, 2, 1, 2, 1, 2, 1]:
            human_game.make_move(column)
        assert human_game.red_score == 1
        assert human_game.yellow_score == 0

        human_game.restart()
        assert human_game.red_score == 1
        assert human_game.moves == []
        assert human_game.current_player == Cell.RED
        assert not human_game.game_over

    def test_yellow_win_scores_for_yellow(self, human_game):
        for column in [1, 2, 3, 2, 3, 2, 3, 2]:
            human_game.make_move(column)
        assert human_game.yellow_wins
        assert human_game.yellow_score == 1

    def test_draw(self, human_game):
        human_game.board = Board(2, 2)
        for column in [1, 2, 1, 2]:
            human_game.make_move(column)
        assert human_game.game_result == GameResult.DRAW
        assert human_game.game_over
        assert human_game.get_winner() is None
        assert human_game.red_score == 0 and human_game.yellow_score == 0

    def test_four_corners_win(self, human_game):
        for column in [1, 1, 3, 3, 1, 5]:
            human_game.make_move(column)
        assert not human_game.game_over

        # Red now holds (0,0) (2,0) (0,2); (2,2) completes the square
        human_game.make_move(3)
        assert human_game.get_cell(2, 2) == Cell.RED
        assert human_game.red_wins


class TestLuckyCoins:
    """Tests for lucky coin claims and spawning."""

    def test_claim_gives_extra_turn(self, human_game, clock):
        human_game.board.set(2, 0, Cell.BONUS)

        human_game.make_move(3)

        assert human_game.get_cell(2, 0) == Cell.RED
        assert human_game.current_player == Cell.RED
        assert human_game.status_message == "Red claimed the Lucky Coin!"
        clock.now += STATUS_MESSAGE_DURATION
        assert human_game.status_message is None

    def test_undo_claim_restores_coin(self, human_game):
        human_game.board.set(2, 0, Cell.BONUS)
        before = _snapshot(human_game)

        human_game.make_move(3)
        human_game.undo()

        _assert_same(before, human_game)
        assert human_game.board.find_bonus() == (2, 0)

    def test_unclaimed_coin_removed_after_move(self, human_game):
        human_game.board.set(2, 0, Cell.BONUS)

        human_game.make_move(5)
        assert human_game.board.find_bonus() is None
        assert human_game.current_player == Cell.YELLOW

        human_game.undo()
        assert human_game.board.find_bonus() == (2, 0)
        assert human_game.current_player == Cell.RED

    def test_spawn_when_due(self, human_game):
        human_game.remaining_bonus_coins = 3
        human_game.next_bonus_move = 1
        before = _snapshot(human_game)

        human_game.make_move(4)

        assert human_game.board.find_bonus() is not None
        assert human_game.remaining_bonus_coins == 2
        assert 3 <= human_game.next_bonus_move <= 5
        assert human_game.board.satisfies_gravity()

        human_game.undo()
        _assert_same(before, human_game)

    def test_no_spawn_when_pool_empty(self, human_game):
        human_game.next_bonus_move = 1
        human_game.make_move(4)
        assert human_game.board.find_bonus() is None

    def test_restart_refills_pool(self, make_game):
        game = make_game()
        game.remaining_bonus_coins = 0
        game.restart()
        assert game.remaining_bonus_coins == 3
        assert 2 <= game.next_bonus_move <= 4


class TestUndo:
    """Tests for undo."""

    def test_nothing_to_undo(self, human_game):
        result = human_game.undo()
        assert result.error == GameError.NOTHING_TO_UNDO
        assert human_game.error_message == "No moves to undo."

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_undo_inverts_every_move(self, make_game, seed):
        game = make_game()
        chooser = np.random.default_rng(seed)
        snapshots = []

        for _ in range(30):
            if game.game_over:
                break
            snapshots.append(_snapshot(game))
            moves = game.get_valid_moves()
            game.make_move(int(chooser.choice(moves)))
            assert game.board.satisfies_gravity()

        for snapshot in reversed(snapshots):
            assert game.undo()
            _assert_same(snapshot, game)
            assert game.board.satisfies_gravity()

        assert game.moves == []
        assert not game.undo()


class TestComputerPlayer:
    """Tests for computer-controlled turns."""

    def test_computer_replies_immediately(self, make_game):
        game = make_game(Difficulty.BEGINNER)
        assert game.computer is not None

        game.make_move(4)

        assert len(game.moves) == 2
        assert game.current_player == Cell.RED
        assert not game.is_computer_turn()

    def test_undo_skips_computer_move(self, make_game):
        game = make_game(Difficulty.BEGINNER)
        game.make_move(4)

        game.undo()

        assert game.moves == []
        assert game.current_player == Cell.RED
        assert not game.board.grid.any()

    def test_computer_moves_first_as_red(self, make_game):
        game = make_game(Difficulty.BEGINNER, computer_side=Cell.RED)
        assert len(game.moves) == 1
        assert game.current_player == Cell.YELLOW

        game.undo()
        # Computer made the first move of the game, so it plays again
        assert len(game.moves) == 1
        assert game.current_player == Cell.YELLOW

    def test_computer_claim_earns_extra_move(self, make_game):
        game = make_game(Difficulty.BEGINNER)
        game.computer = CoinGrabber()
        game.next_bonus_move = 1

        # Red's move spawns a coin; Yellow claims it and moves again
        game.make_move(4)

        assert game.computer.calls == 2
        assert len(game.moves) == 3
        assert game.current_player == Cell.RED
        assert game.remaining_bonus_coins == 2
        assert game.board.find_bonus() is None
        assert game.status_message == "Yellow claimed the Lucky Coin!"

        game.undo()

        assert game.moves == []
        assert game.current_player == Cell.RED
        assert game.remaining_bonus_coins == 3
        assert not game.board.grid.any()

    def test_never_left_on_computer_turn(self, make_game):
        game = make_game(Difficulty.BEGINNER)
        chooser = np.random.default_rng(7)

        while not game.game_over:
            game.make_move(int(chooser.choice(game.get_valid_moves())))
            assert game.game_over or game.current_player == Cell.RED
            assert game.board.satisfies_gravity()

        assert game.red_score == 0 and game.yellow_score == 0

    def test_set_computer_side_keeps_engine(self, make_game):
        game = make_game(Difficulty.BEGINNER)
        engine = game.computer

        game.set_computer_side(Cell.RED)

        assert game.computer is engine
        assert game.computer_side == Cell.RED
        assert engine.depth == 2 and engine.tolerance == 20

    def test_set_computer_side_rejects_non_player(self, human_game):
        with pytest.raises(ValueError):
            human_game.set_computer_side(Cell.BONUS)


class TestConfiguration:
    """Tests for difficulty changes."""

    @pytest.mark.parametrize("difficulty,columns,rows,coins,depth", [
        (Difficulty.HUMAN, 7, 6, 3, None),
        (Difficulty.BEGINNER, 7, 6, 3, 2),
        (Difficulty.INTERMEDIATE, 14, 12, 7, 3),
        (Difficulty.EXPERT, 21, 18, 11, 4),
    ])
    def test_reconfigure(self, human_game, difficulty, columns, rows, coins, depth):
        human_game.red_score = 2
        human_game.make_move(1)

        human_game.reconfigure(difficulty)

        assert (human_game.columns, human_game.rows) == (columns, rows)
        assert human_game.remaining_bonus_coins == coins
        assert human_game.moves == []
        assert human_game.red_score == 2
        assert not human_game.board.grid.any()
        if depth is None:
            assert human_game.computer is None
            assert human_game.tracks_score
        else:
            assert human_game.computer.depth == depth
            assert not human_game.tracks_score

    def test_status_message_expires(self, human_game, clock):
        human_game.set_status_message("hello")
        assert human_game.status_message == "hello"
        clock.now += STATUS_MESSAGE_DURATION - 0.5
        assert human_game.status_message == "hello"
        clock.now += 0.5
        assert human_game.status_message is None
