"""
lucky_connect4.ai - Computer players for Lucky Connect Four

This package provides the negamax search engine used for computer turns.
"""

from lucky_connect4.ai.minimax import MinimaxPlayer, WIN_SCORE

__all__ = ['MinimaxPlayer', 'WIN_SCORE']
