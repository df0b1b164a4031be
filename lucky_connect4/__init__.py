"""
lucky_connect4 - Variable-size Connect Four with lucky coins and computer opponents

This package provides the game state machine (board, turns, lucky coins, undo,
scores, save files) and the negamax search engine that plays computer turns.
"""

# Version number
__version__ = '0.1.0'
