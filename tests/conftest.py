"""
Pytest fixtures for Lucky Connect Four tests.
"""

from typing import Callable, Dict, List

import numpy as np
import pytest

from lucky_connect4.config import Difficulty
from lucky_connect4.game.board import Board
from lucky_connect4.game.rules import ConnectFourGame
from lucky_connect4.utils import Cell


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random source so lucky coins and move choice are reproducible."""
    return np.random.default_rng(1234)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def save_path(tmp_path) -> str:
    return str(tmp_path / "game.txt")


@pytest.fixture
def make_game(rng, clock, save_path) -> Callable[..., ConnectFourGame]:
    """Factory for games wired to the seeded rng, fake clock and a temp save file."""

    def factory(difficulty: Difficulty = Difficulty.HUMAN,
                computer_side: Cell = Cell.YELLOW,
                lucky_coins: bool = True) -> ConnectFourGame:
        game = ConnectFourGame(difficulty, computer_side, rng=rng,
                               save_path=save_path, clock=clock)
        if not lucky_coins:
            game.remaining_bonus_coins = 0
        return game

    return factory


@pytest.fixture
def human_game(make_game) -> ConnectFourGame:
    """Two-player 7x6 game with lucky coins switched off."""
    return make_game(lucky_coins=False)


@pytest.fixture
def make_board() -> Callable[..., Board]:
    """Build a board from bottom-up column stacks: {column: [Cell, ...]}."""

    def factory(stacks: Dict[int, List[Cell]], columns: int = 7, rows: int = 6) -> Board:
        board = Board(columns, rows)
        for column, cells in stacks.items():
            for row, cell in enumerate(cells):
                board.set(column, row, cell)
        return board

    return factory
