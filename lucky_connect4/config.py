"""
config.py - Difficulty table and game constants for Lucky Connect Four

Board size, lucky coin pool and computer strength are all driven by the
difficulty tier. The table below is the only place those numbers live.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

CONNECT_N = 4  # Number of pieces in a row to win

# Four corners squares need a corner offset of at least 2 (side of 3 cells)
MIN_SQUARE_OFFSET = 2

# A new lucky coin becomes due 2-4 moves after the previous spawn attempt
BONUS_SPAWN_MIN_GAP = 2
BONUS_SPAWN_MAX_GAP = 4

# Seconds a status message stays visible
STATUS_MESSAGE_DURATION = 3.0

DEFAULT_SAVE_FILE = "game.txt"


class Difficulty(Enum):
    """Difficulty tiers. HUMAN has no computer player and keeps score."""
    HUMAN = "HUMAN"
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    EXPERT = "EXPERT"


@dataclass(frozen=True)
class SearchSettings:
    depth: int
    tolerance: int  # 0 always picks the best move


@dataclass(frozen=True)
class DifficultySettings:
    columns: int
    rows: int
    bonus_coins: int
    search: Optional[SearchSettings] = None

    @property
    def has_computer(self) -> bool:
        return self.search is not None


DIFFICULTY_SETTINGS: Dict[Difficulty, DifficultySettings] = {
    Difficulty.HUMAN: DifficultySettings(columns=7, rows=6, bonus_coins=3),
    Difficulty.BEGINNER: DifficultySettings(
        columns=7, rows=6, bonus_coins=3, search=SearchSettings(depth=2, tolerance=20)),
    Difficulty.INTERMEDIATE: DifficultySettings(
        columns=14, rows=12, bonus_coins=7, search=SearchSettings(depth=3, tolerance=10)),
    Difficulty.EXPERT: DifficultySettings(
        columns=21, rows=18, bonus_coins=11, search=SearchSettings(depth=4, tolerance=5)),
}


def settings_for(difficulty: Difficulty) -> DifficultySettings:
    """Look up the parameters for a difficulty tier."""
    return DIFFICULTY_SETTINGS[difficulty]
