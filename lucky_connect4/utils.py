"""
utils.py - Shared enumerations and helpers for Lucky Connect Four

This module provides the cell states, game outcomes, error kinds and direction
vectors used throughout the game engine and the search engine.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Tuple, List, Optional

# (column, row), both 0-indexed, row 0 at the bottom of the board
Position = Tuple[int, int]


class Cell(Enum):
    """Enumeration representing cell states and player colors."""
    EMPTY = 0
    RED = 1      # First player
    YELLOW = 2   # Second player
    BONUS = 3    # Lucky coin waiting to be claimed

    def other(self) -> 'Cell':
        """Get the opposing player color."""
        if self == Cell.RED:
            return Cell.YELLOW
        elif self == Cell.YELLOW:
            return Cell.RED
        return self

    def is_player(self) -> bool:
        """Check if this state is a player's color."""
        return self in (Cell.RED, Cell.YELLOW)

    def is_open(self) -> bool:
        """Check if a piece can be dropped onto this cell."""
        return self in (Cell.EMPTY, Cell.BONUS)

    @property
    def label(self) -> str:
        """Human readable color name."""
        return self.name.capitalize()

    def __str__(self):
        if self == Cell.RED:
            return "R"
        elif self == Cell.YELLOW:
            return "Y"
        elif self == Cell.BONUS:
            return "*"
        return "."


class GameResult(Enum):
    """Enumeration representing the game outcome."""
    IN_PROGRESS = auto()
    RED_WIN = auto()
    YELLOW_WIN = auto()
    DRAW = auto()

    def is_game_over(self) -> bool:
        """Check if the game is over."""
        return self != GameResult.IN_PROGRESS

    @classmethod
    def win_for(cls, player: Cell) -> 'GameResult':
        """Get the winning result for a player color."""
        if player == Cell.RED:
            return cls.RED_WIN
        if player == Cell.YELLOW:
            return cls.YELLOW_WIN
        raise ValueError(f"{player} cannot win a game")


class GameError(Enum):
    """Error kinds reported by game operations."""
    INVALID_COLUMN = auto()
    COLUMN_FULL = auto()
    GAME_OVER = auto()
    NOTHING_TO_UNDO = auto()
    MISSING_SAVE_FILE = auto()
    CORRUPTED_SAVE_FILE = auto()
    INVALID_SAVE_VALUE = auto()


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a game operation. Truthy when the operation succeeded."""
    success: bool
    error: Optional[GameError] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: Optional[str] = None) -> 'ActionResult':
        return cls(True, None, message)

    @classmethod
    def failed(cls, error: GameError, message: str) -> 'ActionResult':
        return cls(False, error, message)


# Line directions (column delta, row delta) used for four-in-a-row checks
LINE_DIRECTIONS: List[Tuple[int, int]] = [
    (0, 1),    # Vertical
    (1, 0),    # Horizontal
    (1, 1),    # Diagonal up-right
    (1, -1),   # Diagonal down-right
]

# All eight compass directions, used by the search heuristic
ALL_DIRECTIONS: List[Tuple[int, int]] = LINE_DIRECTIONS + [
    (-dc, -dr) for dc, dr in LINE_DIRECTIONS
]


def parse_bool(token: str) -> bool:
    """
    Parse a persisted boolean token.

    Args:
        token: "true" or "false" (case-insensitive)

    Returns:
        The parsed boolean

    Raises:
        ValueError: If the token is not a boolean
    """
    lowered = token.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"not a boolean: {token!r}")


def format_bool(value: bool) -> str:
    """Format a boolean the way the save file stores it."""
    return "true" if value else "false"
