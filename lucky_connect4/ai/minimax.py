"""
minimax.py - Negamax search with alpha-beta pruning for Lucky Connect Four

This module provides the MinimaxPlayer class that picks moves for computer
controlled players on boards of any size.

The search works in three stages:
1. Tactical shortcut: take an immediate win, otherwise block the opponent's
2. Depth-bounded negamax with alpha-beta pruning over every legal column
3. Random choice among all columns scoring within a tolerance of the best

The board is borrowed, not copied. Every hypothetical piece goes through
``Board.probe`` so the caller gets the board back exactly as it handed it over.
"""

import math
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np

from lucky_connect4.config import CONNECT_N, MIN_SQUARE_OFFSET
from lucky_connect4.debug import debug
from lucky_connect4.utils import Cell, ALL_DIRECTIONS

if TYPE_CHECKING:
    from lucky_connect4.game.board import Board

# Value of a completed four in a row or four corners. Far above any heuristic sum.
WIN_SCORE = 1_000_000

# Heuristic weight per same-colored corner of a potential four corners square
SQUARE_WEIGHT = 4


class MinimaxPlayer:
    """
    A computer player that uses negamax with alpha-beta pruning.

    Difficulty comes from two knobs: how deep the search looks and how far below
    the best value a move may score while still being picked.
    """

    def __init__(self, depth: int = 4, tolerance: int = 0,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize the minimax player.

        Args:
            depth: Number of reply plies searched after the candidate move
            tolerance: Acceptable value distance from the best move (0 = best only)
            rng: Random source for choosing among equally acceptable moves
        """
        self.depth = depth
        self.tolerance = tolerance
        self.rng = rng if rng is not None else np.random.default_rng()
        self.nodes_evaluated = 0  # For performance tracking

    def choose_move(self, player: Cell, board: "Board") -> int:
        """
        Pick a column for ``player``.

        Args:
            player: The color to move
            board: The live board; it is probed in place and restored before returning

        Returns:
            The chosen column, 1-indexed

        Raises:
            ValueError: If no column has room (callers must not ask on a full board)
        """
        if not board.valid_columns():
            raise ValueError("choose_move called with no legal columns")

        self.nodes_evaluated = 0
        debug.start_timer("search")

        column = self.find_winning_column(board, player)
        if column is not None:
            debug.debug(f"{player.name} takes immediate win in column {column + 1}", "ai")
        else:
            column = self.find_winning_column(board, player.other())
            if column is not None:
                debug.debug(f"{player.name} blocks column {column + 1}", "ai")

        if column is None:
            values = self.score_columns(board, player)
            column = self._pick_with_tolerance(values)
            debug.debug(f"{player.name} picks column {column + 1} "
                        f"(value {values[column]}, {self.nodes_evaluated} nodes)", "ai")

        debug.end_timer("search", "ai")
        return column + 1

    def find_winning_column(self, board: "Board", player: Cell) -> Optional[int]:
        """
        Find a column that completes a winning pattern for ``player`` right away.

        Args:
            board: The board to probe
            player: The color to check

        Returns:
            The 0-indexed column, or None if no single move wins
        """
        for column in board.valid_columns():
            with board.probe(column, player) as row:
                if board.wins_through(column, row):
                    return column
        return None

    def score_columns(self, board: "Board", player: Cell) -> Dict[int, float]:
        """
        Search every legal column for ``player``.

        Moves that provably fall outside the tolerance window only get an upper
        bound, which is enough to exclude them from selection.

        Args:
            board: The board to search
            player: The color to move

        Returns:
            Mapping of 0-indexed column to its search value
        """
        values: Dict[int, float] = {}
        best = -math.inf
        for column in self._ordered_columns(board):
            alpha = best - self.tolerance - 1
            value = self._move_value(board, column, player, self.depth, alpha, math.inf)
            values[column] = value
            best = max(best, value)
        return values

    def _pick_with_tolerance(self, values: Dict[int, float]) -> int:
        best = max(values.values())
        candidates = sorted(col for col, value in values.items()
                            if value >= best - self.tolerance)
        return candidates[int(self.rng.integers(len(candidates)))]

    def _ordered_columns(self, board: "Board") -> List[int]:
        # Center columns first for better pruning
        center = (board.columns - 1) / 2
        return sorted(board.valid_columns(), key=lambda c: abs(c - center))

    def _move_value(self, board: "Board", column: int, player: Cell, depth: int,
                    alpha: float, beta: float) -> float:
        """
        Negamax value of dropping ``player``'s piece in ``column``.

        The value is the heuristic score of the placed piece minus the best value
        the opponent can reach in reply.

        Args:
            board: Board to probe
            column: Column to try (0-indexed)
            player: The color moving
            depth: Remaining reply plies
            alpha: Lower bound the caller already has
            beta: Upper bound beyond which the caller stops caring

        Returns:
            The move value (fail-soft: outside (alpha, beta) it is only a bound)
        """
        self.nodes_evaluated += 1

        with board.probe(column, player) as row:
            if board.wins_through(column, row):
                return WIN_SCORE + depth  # Prefer faster wins

            score = self._evaluate(board, column, row, player)
            if depth <= 0:
                return score

            replies = self._ordered_columns(board)
            if not replies:
                return score

            # value = score - best_reply, so the reply window is mirrored
            reply_alpha = score - beta
            reply_beta = score - alpha
            best_reply = -math.inf
            opponent = player.other()

            for reply in replies:
                value = self._move_value(board, reply, opponent, depth - 1,
                                         max(reply_alpha, best_reply), reply_beta)
                if value > best_reply:
                    best_reply = value
                if best_reply >= reply_beta or best_reply >= WIN_SCORE:
                    break

            return score - best_reply

    def _evaluate(self, board: "Board", column: int, row: int, player: Cell) -> int:
        """
        Heuristic score of the piece just placed at (column, row).

        Counts same-colored runs through the cell in all 8 directions, as long as
        the line still has room for four, plus partial four corners squares that
        use the cell as a corner and have no opponent corner.

        Args:
            board: The board holding the placed piece
            column: Column of the placed piece
            row: Row of the placed piece
            player: Color of the placed piece

        Returns:
            Non-negative heuristic score
        """
        grid = board.grid
        mine = player.value
        theirs = player.other().value
        score = 0

        runs = {}
        reach = {}
        for dc, dr in ALL_DIRECTIONS:
            run = 0
            steps = 0
            in_run = True
            c, r = column + dc, row + dr
            while steps < CONNECT_N - 1 and board.in_bounds(c, r):
                cell = grid[c, r]
                if cell == theirs:
                    break
                if cell == mine and in_run:
                    run += 1
                else:
                    in_run = False
                steps += 1
                c += dc
                r += dr
            runs[(dc, dr)] = run
            reach[(dc, dr)] = steps

        for (dc, dr), run in runs.items():
            if reach[(dc, dr)] + reach[(-dc, -dr)] + 1 >= CONNECT_N:
                score += (run + 1) ** 2

        for offset in range(MIN_SQUARE_OFFSET, max(board.columns, board.rows)):
            for sc in (offset, -offset):
                c2 = column + sc
                if not 0 <= c2 < board.columns:
                    continue
                for sr in (offset, -offset):
                    r2 = row + sr
                    if not 0 <= r2 < board.rows:
                        continue
                    corners = (grid[c2, row], grid[column, r2], grid[c2, r2])
                    if theirs in corners:
                        continue
                    score += SQUARE_WEIGHT * sum(1 for corner in corners if corner == mine)

        return score
