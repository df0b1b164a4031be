"""
data_manager.py - Save file storage for Lucky Connect Four

This module converts a game snapshot to and from the line-oriented save record and
handles reading/writing it with file locking and atomic replacement.

Record layout, one field per line:
    columns, rows, lucky coin pool size
    difficulty token, computer-plays-yellow boolean
    move counter, next lucky coin move
    remaining lucky coins
    red score, yellow score
    board cells, column by column, bottom row first
    current player
    game over, red wins, yellow wins
    move history count, then "col,row" lines
    lucky coin history count, then "col,row" or "none" lines
"""

import os
import shutil
from dataclasses import dataclass, field
from typing import List, Optional

import filelock
import numpy as np

from lucky_connect4.config import Difficulty
from lucky_connect4.debug import debug
from lucky_connect4.utils import Cell, GameError, Position, format_bool, parse_bool

NO_POSITION = "none"


class SaveFileError(Exception):
    """Raised when a save record cannot be read back."""

    def __init__(self, kind: GameError, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass
class SavedGame:
    """Everything needed to rebuild a live game session."""
    columns: int
    rows: int
    bonus_pool: int
    difficulty: Difficulty
    computer_plays_yellow: bool
    move_counter: int
    next_bonus_move: int
    remaining_bonus_coins: int
    red_score: int
    yellow_score: int
    cells: np.ndarray
    current_player: Cell
    game_over: bool
    red_wins: bool
    yellow_wins: bool
    moves: List[Position] = field(default_factory=list)
    displaced_bonuses: List[Optional[Position]] = field(default_factory=list)


def _format_position(position: Optional[Position]) -> str:
    if position is None:
        return NO_POSITION
    return f"{position[0]},{position[1]}"


def encode_game(saved: SavedGame) -> List[str]:
    """
    Convert a snapshot to save record lines.

    Args:
        saved: The snapshot to encode

    Returns:
        List of lines without trailing newlines
    """
    lines = [
        str(saved.columns),
        str(saved.rows),
        str(saved.bonus_pool),
        saved.difficulty.value,
        format_bool(saved.computer_plays_yellow),
        str(saved.move_counter),
        str(saved.next_bonus_move),
        str(saved.remaining_bonus_coins),
        str(saved.red_score),
        str(saved.yellow_score),
    ]
    for column in range(saved.columns):
        for row in range(saved.rows):
            lines.append(Cell(int(saved.cells[column, row])).name)
    lines.append(saved.current_player.name)
    lines.extend(format_bool(flag) for flag in (saved.game_over, saved.red_wins, saved.yellow_wins))
    lines.append(str(len(saved.moves)))
    lines.extend(_format_position(position) for position in saved.moves)
    lines.append(str(len(saved.displaced_bonuses)))
    lines.extend(_format_position(position) for position in saved.displaced_bonuses)
    return lines


class _RecordReader:
    """Sequential reader over record lines that reports what went wrong where."""

    def __init__(self, lines: List[str]):
        self._lines = lines
        self._index = 0

    def next(self, field_name: str) -> str:
        if self._index >= len(self._lines):
            raise SaveFileError(GameError.CORRUPTED_SAVE_FILE,
                                f"Save file ends before {field_name}")
        line = self._lines[self._index].strip()
        self._index += 1
        return line

    def integer(self, field_name: str, minimum: int = 0) -> int:
        token = self.next(field_name)
        try:
            value = int(token)
        except ValueError:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"{field_name} is not a number: {token!r}") from None
        if value < minimum:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"{field_name} must be at least {minimum}, got {value}")
        return value

    def boolean(self, field_name: str) -> bool:
        token = self.next(field_name)
        try:
            return parse_bool(token)
        except ValueError:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"{field_name} is not a boolean: {token!r}") from None

    def cell(self, field_name: str) -> Cell:
        token = self.next(field_name)
        try:
            return Cell[token]
        except KeyError:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"{field_name} is not a cell state: {token!r}") from None

    def difficulty(self) -> Difficulty:
        token = self.next("difficulty")
        try:
            return Difficulty(token)
        except ValueError:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"Unknown difficulty: {token!r}") from None

    def position(self, field_name: str, columns: int, rows: int,
                 allow_none: bool = False) -> Optional[Position]:
        token = self.next(field_name)
        if allow_none and token.lower() in (NO_POSITION, "null"):
            return None
        parts = token.split(",")
        try:
            if len(parts) != 2:
                raise ValueError(token)
            column, row = int(parts[0]), int(parts[1])
        except ValueError:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"{field_name} is not a position: {token!r}") from None
        if not (0 <= column < columns and 0 <= row < rows):
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"{field_name} is off the board: {token!r}")
        return column, row

    def remaining(self) -> int:
        return len(self._lines) - self._index

    def history(self, field_name: str, columns: int, rows: int,
                allow_none: bool = False) -> List[Optional[Position]]:
        count = self.integer(f"{field_name} count")
        if count > self.remaining():
            raise SaveFileError(GameError.CORRUPTED_SAVE_FILE,
                                f"{field_name} is truncated: expected {count} entries")
        return [self.position(f"{field_name} entry {i}", columns, rows, allow_none)
                for i in range(count)]

    def finish(self):
        leftover = [line for line in self._lines[self._index:] if line.strip()]
        if leftover:
            raise SaveFileError(GameError.CORRUPTED_SAVE_FILE,
                                f"Save file has {len(leftover)} unexpected trailing lines")


def decode_game(lines: List[str]) -> SavedGame:
    """
    Parse and validate save record lines.

    Nothing is partially applied: either a complete snapshot is returned or
    SaveFileError is raised.

    Args:
        lines: Record lines

    Returns:
        The decoded snapshot

    Raises:
        SaveFileError: CORRUPTED_SAVE_FILE for missing or extra lines,
            INVALID_SAVE_VALUE for unreadable or out-of-range values
    """
    reader = _RecordReader(lines)

    columns = reader.integer("column count", minimum=1)
    rows = reader.integer("row count", minimum=1)
    bonus_pool = reader.integer("lucky coin pool")
    difficulty = reader.difficulty()
    computer_plays_yellow = reader.boolean("computer color")
    move_counter = reader.integer("move counter")
    next_bonus_move = reader.integer("next lucky coin move")
    remaining_bonus_coins = reader.integer("remaining lucky coins")
    red_score = reader.integer("red score")
    yellow_score = reader.integer("yellow score")

    # Cells, current player, three outcome flags and two history counts
    needed = columns * rows + 6
    if reader.remaining() < needed:
        raise SaveFileError(GameError.CORRUPTED_SAVE_FILE,
                            f"Save file too short for a {columns}x{rows} board: "
                            f"{reader.remaining()} lines left, need at least {needed}")

    cells = np.zeros((columns, rows), dtype=np.int8)
    for column in range(columns):
        for row in range(rows):
            cells[column, row] = reader.cell(f"cell ({column}, {row})").value

    current_player = reader.cell("current player")
    if not current_player.is_player():
        raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                            f"Current player cannot be {current_player.name}")

    game_over = reader.boolean("game over flag")
    red_wins = reader.boolean("red wins flag")
    yellow_wins = reader.boolean("yellow wins flag")

    moves = reader.history("move history", columns, rows)
    displaced = reader.history("lucky coin history", columns, rows, allow_none=True)
    if len(moves) != len(displaced):
        raise SaveFileError(GameError.CORRUPTED_SAVE_FILE,
                            f"History lengths differ: {len(moves)} moves, "
                            f"{len(displaced)} lucky coin entries")
    reader.finish()

    return SavedGame(
        columns=columns,
        rows=rows,
        bonus_pool=bonus_pool,
        difficulty=difficulty,
        computer_plays_yellow=computer_plays_yellow,
        move_counter=move_counter,
        next_bonus_move=next_bonus_move,
        remaining_bonus_coins=remaining_bonus_coins,
        red_score=red_score,
        yellow_score=yellow_score,
        cells=cells,
        current_player=current_player,
        game_over=game_over,
        red_wins=red_wins,
        yellow_wins=yellow_wins,
        moves=moves,
        displaced_bonuses=displaced,
    )


def _lock_for(file_path: str) -> filelock.FileLock:
    return filelock.FileLock(f"{file_path}.lock")


def write_save(file_path: str, saved: SavedGame):
    """
    Write a snapshot with file locking and atomic replacement.

    Args:
        file_path: Save file location
        saved: The snapshot to write

    Raises:
        OSError: If the file cannot be written
    """
    lines = encode_game(saved)
    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)

    with _lock_for(file_path):
        # Write to a temporary file first
        temp_file = f"{file_path}.tmp"
        with open(temp_file, 'w') as f:
            f.write("\n".join(lines) + "\n")
        shutil.move(temp_file, file_path)

    debug.info(f"Saved {len(lines)} lines to {os.path.abspath(file_path)}", "data")


def read_save(file_path: str) -> SavedGame:
    """
    Read and validate a snapshot.

    Args:
        file_path: Save file location

    Returns:
        The decoded snapshot

    Raises:
        SaveFileError: MISSING_SAVE_FILE if there is no file, CORRUPTED_SAVE_FILE if
            it cannot be read or is structurally broken, INVALID_SAVE_VALUE for bad values
    """
    if not os.path.exists(file_path):
        raise SaveFileError(GameError.MISSING_SAVE_FILE,
                            f"Save file not found at {os.path.abspath(file_path)}")

    try:
        with _lock_for(file_path):
            with open(file_path, 'r') as f:
                lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise SaveFileError(GameError.CORRUPTED_SAVE_FILE,
                            f"Could not read {file_path}: {e}") from e

    debug.debug(f"Read {len(lines)} lines from {file_path}", "data")
    return decode_game(lines)
