"""
board.py - Board representation and core game mechanics for Lucky Connect Four

This module implements the Board class which holds the grid of cell states and
provides gravity drops, lucky coin lookup and placement, full-board win scans,
local win checks for the search engine, and scoped probing of hypothetical moves.

The grid is a numpy array indexed as ``grid[column, row]`` with row 0 at the bottom,
so pieces stack towards higher row indices.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

import numpy as np

from lucky_connect4.config import CONNECT_N, MIN_SQUARE_OFFSET
from lucky_connect4.debug import debug
from lucky_connect4.utils import Cell, GameResult, Position, LINE_DIRECTIONS


class Board:
    """
    Represents a variable-size Connect Four game board.

    The board knows nothing about turns or history; it only stores cell states
    and answers questions about them. ``ConnectFourGame`` is its owner and the
    search engine borrows it through ``probe``.
    """

    def __init__(self, columns: int = 7, rows: int = 6):
        """
        Initialize an empty board.

        Args:
            columns: Number of columns
            rows: Number of rows
        """
        if columns < 1 or rows < 1:
            raise ValueError(f"Board dimensions must be positive, got {columns}x{rows}")
        debug.debug(f"Initializing new {columns}x{rows} Board", "board")
        self.columns = columns
        self.rows = rows
        self.grid = np.zeros((columns, rows), dtype=np.int8)

    def reset(self):
        """Reset the board to an empty state."""
        debug.debug("Resetting board", "board")
        self.grid.fill(Cell.EMPTY.value)

    def copy(self) -> 'Board':
        """
        Create a deep copy of the current board.

        Returns:
            A new Board instance with the same cells
        """
        new_board = Board(self.columns, self.rows)
        new_board.grid = self.grid.copy()
        return new_board

    def in_bounds(self, column: int, row: int) -> bool:
        """Check if a position is within the board boundaries."""
        return 0 <= column < self.columns and 0 <= row < self.rows

    def get(self, column: int, row: int) -> Cell:
        """Get the state of a cell (0-indexed)."""
        return Cell(int(self.grid[column, row]))

    def set(self, column: int, row: int, cell: Cell):
        """Overwrite the state of a cell (0-indexed)."""
        self.grid[column, row] = cell.value

    def clear(self, column: int, row: int):
        """Empty a cell."""
        self.grid[column, row] = Cell.EMPTY.value

    def is_column_open(self, column: int) -> bool:
        """
        Check if a piece can still be dropped into a column.

        A lucky coin on the top cell does not block the column.
        """
        return Cell(int(self.grid[column, self.rows - 1])).is_open()

    def valid_columns(self) -> List[int]:
        """Get the 0-indexed columns that still have room."""
        return [col for col in range(self.columns) if self.is_column_open(col)]

    def is_full(self) -> bool:
        """Check if every column's top cell holds a player's piece."""
        return not self.valid_columns()

    def drop_row(self, column: int) -> Optional[int]:
        """
        Find the row a piece dropped into ``column`` would land on.

        Args:
            column: The column (0-indexed)

        Returns:
            The lowest open row, or None if the column is full
        """
        for row in range(self.rows):
            if Cell(int(self.grid[column, row])).is_open():
                return row
        return None

    def place(self, column: int, player: Cell) -> Position:
        """
        Drop a piece into a column.

        Args:
            column: The column (0-indexed)
            player: The color being dropped

        Returns:
            The (column, row) the piece landed on

        Raises:
            ValueError: If the column is full
        """
        row = self.drop_row(column)
        if row is None:
            raise ValueError(f"Column {column} is full")
        debug.trace(f"Placing {player.name} at ({column}, {row})", "board")
        self.grid[column, row] = player.value
        return column, row

    @contextmanager
    def probe(self, column: int, player: Cell) -> Iterator[int]:
        """
        Temporarily drop a piece, restoring the cell on exit.

        Whatever the cell held before (empty or a lucky coin) is put back on every
        exit path, including exceptions and early returns from the caller.

        Args:
            column: The column (0-indexed)
            player: The color being tried

        Yields:
            The row the hypothetical piece landed on
        """
        row = self.drop_row(column)
        if row is None:
            raise ValueError(f"Column {column} is full")
        previous = self.grid[column, row]
        self.grid[column, row] = player.value
        try:
            yield row
        finally:
            self.grid[column, row] = previous

    # Lucky coins

    def find_bonus(self) -> Optional[Position]:
        """
        Find the lucky coin on the board.

        Returns:
            Its (column, row), or None if there is none
        """
        found = np.argwhere(self.grid == Cell.BONUS.value)
        if len(found) == 0:
            return None
        column, row = found[0]
        return int(column), int(row)

    def spawn_bonus(self, rng: np.random.Generator) -> Optional[Position]:
        """
        Put a lucky coin on the lowest free cell of a uniformly random column.

        Args:
            rng: Random source used to pick the column

        Returns:
            Where the coin was placed, or None if no column has room
        """
        candidates = [col for col in range(self.columns)
                      if self.grid[col, self.rows - 1] == Cell.EMPTY.value]
        if not candidates:
            debug.debug("No room for a lucky coin", "board")
            return None
        column = candidates[int(rng.integers(len(candidates)))]
        row = self.drop_row(column)
        self.grid[column, row] = Cell.BONUS.value
        debug.debug(f"Lucky coin spawned at ({column}, {row})", "board")
        return column, row

    # Win detection

    def has_four_in_a_row(self, player: Cell) -> bool:
        """
        Scan the whole board for CONNECT_N contiguous pieces of one color.

        Args:
            player: The color to check

        Returns:
            True if a vertical, horizontal or diagonal line is found
        """
        mask = self.grid == player.value
        return any(_has_line(mask, dc, dr, CONNECT_N) for dc, dr in LINE_DIRECTIONS)

    def has_four_corners(self, player: Cell) -> bool:
        """
        Scan the whole board for a square with the player's pieces on all four corners.

        Args:
            player: The color to check

        Returns:
            True if such a square with a side of at least three cells exists
        """
        mask = self.grid == player.value
        for offset in range(MIN_SQUARE_OFFSET, min(self.columns, self.rows)):
            corners = (mask[:-offset, :-offset] & mask[offset:, :-offset]
                       & mask[:-offset, offset:] & mask[offset:, offset:])
            if corners.any():
                return True
        return False

    def has_won(self, player: Cell) -> bool:
        """Check both win patterns for a player."""
        return self.has_four_in_a_row(player) or self.has_four_corners(player)

    def check_result(self) -> GameResult:
        """
        Compute the game outcome from the board contents alone.

        Returns:
            RED_WIN or YELLOW_WIN if that color has a winning pattern (red is checked
            first), DRAW if the board is full, IN_PROGRESS otherwise
        """
        for player in (Cell.RED, Cell.YELLOW):
            if self.has_won(player):
                return GameResult.win_for(player)
        if self.is_full():
            return GameResult.DRAW
        return GameResult.IN_PROGRESS

    def wins_through(self, column: int, row: int) -> bool:
        """
        Check if the piece at a position is part of a winning pattern.

        Only patterns containing this cell are examined, which keeps the search
        engine's tactical checks linear in board size.

        Args:
            column: Column of the piece (0-indexed)
            row: Row of the piece (0-indexed)

        Returns:
            True if the piece completes four in a row or four corners
        """
        value = self.grid[column, row]
        if not Cell(int(value)).is_player():
            return False

        for dc, dr in LINE_DIRECTIONS:
            count = 1
            for sign in (1, -1):
                c, r = column + sign * dc, row + sign * dr
                while self.in_bounds(c, r) and self.grid[c, r] == value:
                    count += 1
                    c += sign * dc
                    r += sign * dr
            if count >= CONNECT_N:
                return True

        for offset in range(MIN_SQUARE_OFFSET, max(self.columns, self.rows)):
            for sc in (offset, -offset):
                c2 = column + sc
                if not 0 <= c2 < self.columns or self.grid[c2, row] != value:
                    continue
                for sr in (offset, -offset):
                    r2 = row + sr
                    if (0 <= r2 < self.rows and self.grid[column, r2] == value
                            and self.grid[c2, r2] == value):
                        return True
        return False

    # Inspection

    def satisfies_gravity(self) -> bool:
        """Check that no column has an empty cell below a non-empty one."""
        occupied = self.grid != Cell.EMPTY.value
        # Once a column turns empty going upwards it must stay empty
        return bool(np.all(occupied[:, :-1] | ~occupied[:, 1:]))

    def get_state(self) -> np.ndarray:
        """
        Get the current board state as a numpy array.

        Returns:
            Copy of the (columns, rows) grid of Cell values
        """
        return self.grid.copy()

    def render(self) -> str:
        """
        Render the board as ASCII art, top row first.

        Returns:
            String representation of the board
        """
        lines = []
        for row in range(self.rows - 1, -1, -1):
            lines.append("|" + " ".join(str(self.get(col, row)) for col in range(self.columns)) + "|")
        lines.append("+" + "-" * (self.columns * 2 - 1) + "+")
        lines.append(" " + " ".join(str((col + 1) % 10) for col in range(self.columns)))
        return "\n".join(lines)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.grid.shape == other.grid.shape and bool(np.array_equal(self.grid, other.grid))

    def __str__(self) -> str:
        """String representation of the board."""
        return self.render()


def _has_line(mask: np.ndarray, dc: int, dr: int, length: int) -> bool:
    """
    Check a boolean mask for ``length`` consecutive True cells along (dc, dr).

    Every window start is tested at once by AND-ing shifted slices of the mask.
    """
    columns, rows = mask.shape
    span_c = (length - 1) * abs(dc)
    span_r = (length - 1) * abs(dr)
    if span_c >= columns or span_r >= rows:
        return False

    width = columns - span_c
    height = rows - span_r
    windows = np.ones((width, height), dtype=bool)
    for step in range(length):
        c0 = step * dc if dc >= 0 else span_c + step * dc
        r0 = step * dr if dr >= 0 else span_r + step * dr
        windows &= mask[c0:c0 + width, r0:r0 + height]
    return bool(windows.any())
