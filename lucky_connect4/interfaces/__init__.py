"""
lucky_connect4.interfaces - User interface contract for Lucky Connect Four

Concrete front ends live outside this package; they implement GameView.
"""

from lucky_connect4.interfaces.view import GameView

__all__ = ['GameView']
