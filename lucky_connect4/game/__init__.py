"""
lucky_connect4.game - Core game mechanics for Lucky Connect Four

This package contains the board representation and the game state machine.
"""

from lucky_connect4.game.board import Board
from lucky_connect4.game.rules import ConnectFourGame

__all__ = ['Board', 'ConnectFourGame']
