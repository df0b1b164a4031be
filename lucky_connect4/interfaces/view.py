"""
view.py - Contract for user interfaces driving a Lucky Connect Four game

Graphical and console front ends implement GameView. They call the game's
operations (make_move, undo, restart, save, load) and read its state back
(cells, current player, outcome flags, error, status message, scores); the game
never calls into a view.
"""

from abc import ABC, abstractmethod

from lucky_connect4.game.rules import ConnectFourGame


class GameView(ABC):
    """Base class for front ends that present a ConnectFourGame."""

    def __init__(self, game: ConnectFourGame):
        self.game = game

    @abstractmethod
    def update_view(self):
        """Redraw the view from the current game state."""

    @abstractmethod
    def show_error(self, message: str):
        """Display an error message to the user."""

    @abstractmethod
    def show_game_over(self, message: str):
        """Display the result of a finished game."""

    @abstractmethod
    def display(self):
        """Initialize the view and start handling user input."""
