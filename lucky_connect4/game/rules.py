"""
rules.py - Game state management for Lucky Connect Four

This module provides ConnectFourGame, the single owner of the board. It validates
and applies moves, detects wins and draws, runs the lucky coin mechanic, keeps the
reversible move history, tracks scores and status messages, saves and loads games,
and hands turns to the computer player when it is its move.
"""

import time
from typing import Callable, List, Optional

import numpy as np

from lucky_connect4.ai.minimax import MinimaxPlayer
from lucky_connect4.config import (BONUS_SPAWN_MAX_GAP, BONUS_SPAWN_MIN_GAP, DEFAULT_SAVE_FILE,
                                   STATUS_MESSAGE_DURATION, Difficulty, settings_for)
from lucky_connect4.data.data_manager import SavedGame, SaveFileError, read_save, write_save
from lucky_connect4.debug import debug
from lucky_connect4.game.board import Board
from lucky_connect4.utils import ActionResult, Cell, GameError, GameResult, Position

# Short status strings shown for failed save/load attempts
SAVE_FAILED_STATUS = "Save failed!"
LOAD_STATUS = {
    GameError.MISSING_SAVE_FILE: "No save file found!",
    GameError.CORRUPTED_SAVE_FILE: "Corrupted save file!",
    GameError.INVALID_SAVE_VALUE: "Invalid save file!",
}


class ConnectFourGame:
    """
    High-level Lucky Connect Four game manager.

    Red always moves first. Depending on the difficulty one color is played by a
    MinimaxPlayer; its turns are resolved synchronously inside ``make_move``,
    ``undo``, ``restart`` and ``load`` so callers only ever see human turns or a
    finished game.
    """

    def __init__(self, difficulty: Difficulty = Difficulty.HUMAN,
                 computer_side: Cell = Cell.YELLOW,
                 rng: Optional[np.random.Generator] = None,
                 save_path: str = DEFAULT_SAVE_FILE,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize a new game.

        Args:
            difficulty: Difficulty tier, sets board size and computer strength
            computer_side: Color the computer plays when the tier has one
            rng: Random source for lucky coins and computer move choice
            save_path: Location of the save file
            clock: Time source for status message expiry (seconds)
        """
        debug.debug(f"Initializing ConnectFourGame ({difficulty.name})", "game")
        if not computer_side.is_player():
            raise ValueError(f"Computer cannot play {computer_side.name}")

        self.rng = rng if rng is not None else np.random.default_rng()
        self.save_path = save_path
        self._clock = clock

        self.computer_side = computer_side
        self.computer: Optional[MinimaxPlayer] = None
        self.red_score = 0
        self.yellow_score = 0

        self.error: Optional[GameError] = None
        self.error_message: Optional[str] = None
        self._status_message: Optional[str] = None
        self._status_time = 0.0
        self._processing_computer_move = False

        self.reconfigure(difficulty)
        self.restart()

    # Configuration

    def reconfigure(self, difficulty: Difficulty):
        """
        Switch difficulty tier, erasing the board.

        Board size, lucky coin pool and computer strength follow the tier. Scores
        are kept. No computer move is made; call ``restart`` to begin play.

        Args:
            difficulty: The new tier
        """
        settings = settings_for(difficulty)
        debug.info(f"Reconfiguring for {difficulty.name}: {settings.columns}x{settings.rows}, "
                   f"{settings.bonus_coins} lucky coins", "game")

        self.difficulty = difficulty
        self.max_bonus_coins = settings.bonus_coins
        if settings.search is not None:
            self.computer = MinimaxPlayer(settings.search.depth, settings.search.tolerance, self.rng)
        else:
            self.computer = None

        self.board = Board(settings.columns, settings.rows)
        self._reset_session()

    def set_computer_side(self, side: Cell):
        """
        Choose which color the computer plays.

        The configured search depth and tolerance are kept.

        Args:
            side: Cell.RED or Cell.YELLOW
        """
        if not side.is_player():
            raise ValueError(f"Computer cannot play {side.name}")
        debug.debug(f"Computer now plays {side.name}", "game")
        self.computer_side = side

    def _reset_session(self):
        self.board.reset()
        self.move_history: List[Position] = []
        self.bonus_history: List[Optional[Position]] = []
        self.game_result = GameResult.IN_PROGRESS
        self.current_player = Cell.RED
        self.remaining_bonus_coins = self.max_bonus_coins
        self.move_counter = 0
        self.next_bonus_move = self._bonus_gap()
        self.error = None
        self.error_message = None
        self._processing_computer_move = False

    def _bonus_gap(self) -> int:
        return int(self.rng.integers(BONUS_SPAWN_MIN_GAP, BONUS_SPAWN_MAX_GAP + 1))

    # Moves

    def make_move(self, column: int) -> ActionResult:
        """
        Drop the current player's piece into a column.

        If the computer is to move afterwards, its moves are played before returning.

        Args:
            column: Column number, 1-indexed

        Returns:
            ActionResult; on failure ``error`` is INVALID_COLUMN, GAME_OVER or COLUMN_FULL
        """
        self._clear_error()
        result = self._apply_move(column)
        if result:
            self._resolve_computer_turns()
        return result

    def _apply_move(self, column: int) -> ActionResult:
        if not 1 <= column <= self.board.columns:
            return self._fail(GameError.INVALID_COLUMN,
                              f"Invalid column. Please choose 1-{self.board.columns}.")
        if self.game_result.is_game_over():
            return self._fail(GameError.GAME_OVER, "The game is over.")

        col = column - 1
        if not self.board.is_column_open(col):
            return self._fail(GameError.COLUMN_FULL, "That column is full.")

        player = self.current_player
        row = self.board.drop_row(col)
        claimed = self.board.get(col, row) == Cell.BONUS
        self.bonus_history.append(self.board.find_bonus())

        self.board.place(col, player)
        self.move_history.append((col, row))
        debug.debug(f"{player.name} plays column {column} (row {row + 1})", "game")

        self.game_result = self.board.check_result()

        if self.game_result.is_game_over():
            self._record_result()
        elif claimed:
            # Lucky coin claimed - same player goes again
            self.set_status_message(f"{player.label} claimed the Lucky Coin!")
            debug.info(f"{player.name} claimed the lucky coin at ({col}, {row})", "game")
        else:
            displaced = self.bonus_history[-1]
            if displaced is not None:
                self.board.clear(*displaced)
            self.move_counter += 1
            self._maybe_spawn_bonus()
            self.current_player = player.other()

        return ActionResult.ok()

    def _maybe_spawn_bonus(self):
        if self.move_counter < self.next_bonus_move or self.remaining_bonus_coins <= 0:
            return
        if self.board.spawn_bonus(self.rng) is not None:
            self.remaining_bonus_coins -= 1
            debug.info(f"Lucky coin spawned! Remaining: {self.remaining_bonus_coins}", "game")
        self.next_bonus_move = self.move_counter + self._bonus_gap()

    def _record_result(self):
        debug.info(f"Game over: {self.game_result.name}", "game")
        if not self.tracks_score:
            return
        if self.game_result == GameResult.RED_WIN:
            self.red_score += 1
        elif self.game_result == GameResult.YELLOW_WIN:
            self.yellow_score += 1

    def _resolve_computer_turns(self):
        """Let the computer move until it is a human's turn or the game ends."""
        if self._processing_computer_move:
            return
        self._processing_computer_move = True
        try:
            while self.is_computer_turn():
                column = self.computer.choose_move(self.current_player, self.board)
                result = self._apply_move(column)
                if not result:
                    debug.error(f"Computer produced an illegal move: {result.message}", "game")
                    break
        finally:
            self._processing_computer_move = False

    def undo(self) -> ActionResult:
        """
        Take back the last move.

        Computer moves are taken back too, so control returns to the human. If the
        computer made the very first move of the game it plays again.

        Returns:
            ActionResult; on failure ``error`` is NOTHING_TO_UNDO
        """
        self._clear_error()
        if not self.move_history:
            return self._fail(GameError.NOTHING_TO_UNDO, "No moves to undo.")

        self._undo_one()
        while self.is_computer_turn():
            if self.move_history:
                self._undo_one()
            else:
                self._resolve_computer_turns()
                break
        return ActionResult.ok()

    def _undo_one(self):
        was_over = self.game_result.is_game_over()
        col, row = self.move_history.pop()
        displaced = self.bonus_history.pop()
        claimed = displaced == (col, row)
        # The move only advanced the turn machinery if it was an ordinary move
        ordinary = not was_over and not claimed

        present = self.board.find_bonus()
        if present is not None:
            self.board.clear(*present)
            if ordinary:
                # That coin was spawned by the move being undone
                self.remaining_bonus_coins += 1

        self.board.clear(col, row)
        if displaced is not None:
            self.board.set(*displaced, Cell.BONUS)

        if ordinary:
            self.move_counter -= 1
            self.current_player = self.current_player.other()
        elif was_over:
            self.game_result = GameResult.IN_PROGRESS
        debug.debug(f"Undid move at ({col}, {row}), {self.current_player.name} to play", "game")

    def restart(self):
        """
        Start a new game with the current settings.

        Scores are kept. If red is computer-controlled it moves immediately.
        """
        debug.info("Restarting game", "game")
        self._reset_session()
        self._resolve_computer_turns()

    # Persistence

    def save(self) -> ActionResult:
        """
        Write the full game state to the save file.

        Returns:
            ActionResult; the in-memory game is unchanged either way
        """
        try:
            write_save(self.save_path, self._snapshot())
        except OSError as e:
            debug.error(f"Failed to save game: {e}", "data")
            self.set_status_message(SAVE_FAILED_STATUS)
            return ActionResult(False, None, str(e))
        self.set_status_message("Game saved successfully!")
        return ActionResult.ok()

    def load(self) -> ActionResult:
        """
        Replace the game with the one in the save file.

        The file is fully validated first; on any problem the live game is untouched.

        Returns:
            ActionResult; on failure ``error`` is MISSING_SAVE_FILE,
            CORRUPTED_SAVE_FILE or INVALID_SAVE_VALUE
        """
        try:
            saved = read_save(self.save_path)
            board = self._board_for(saved)
        except SaveFileError as e:
            debug.error(f"Failed to load game: {e.message}", "data")
            self.set_status_message(LOAD_STATUS[e.kind])
            return self._fail(e.kind, e.message)

        self._restore(saved, board)
        self.set_status_message("Game loaded successfully!")
        debug.info(f"Game loaded from {self.save_path}", "data")
        self._resolve_computer_turns()
        return ActionResult.ok()

    @staticmethod
    def _board_for(saved: SavedGame) -> Board:
        """
        Rebuild the saved board and check the rest of the snapshot agrees with it.

        Raises:
            SaveFileError: INVALID_SAVE_VALUE if the cells, outcome flags or
                histories cannot belong to a real game
        """
        board = Board(saved.columns, saved.rows)
        board.grid = saved.cells.copy()

        if not board.satisfies_gravity():
            raise SaveFileError(GameError.INVALID_SAVE_VALUE, "Board has floating pieces")
        if np.count_nonzero(board.grid == Cell.BONUS.value) > 1:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE, "Board has more than one lucky coin")

        result = board.check_result()
        flags = (saved.game_over, saved.red_wins, saved.yellow_wins)
        expected = (result.is_game_over(), result == GameResult.RED_WIN,
                    result == GameResult.YELLOW_WIN)
        if flags != expected:
            raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                f"Outcome flags {flags} do not match the board ({result.name})")

        for column, row in saved.moves:
            if not board.get(column, row).is_player():
                raise SaveFileError(GameError.INVALID_SAVE_VALUE,
                                    f"Move history points at an uncoloured cell ({column}, {row})")
        return board

    def _snapshot(self) -> SavedGame:
        return SavedGame(
            columns=self.board.columns,
            rows=self.board.rows,
            bonus_pool=self.max_bonus_coins,
            difficulty=self.difficulty,
            computer_plays_yellow=self.computer_side == Cell.YELLOW,
            move_counter=self.move_counter,
            next_bonus_move=self.next_bonus_move,
            remaining_bonus_coins=self.remaining_bonus_coins,
            red_score=self.red_score,
            yellow_score=self.yellow_score,
            cells=self.board.get_state(),
            current_player=self.current_player,
            game_over=self.game_over,
            red_wins=self.red_wins,
            yellow_wins=self.yellow_wins,
            moves=list(self.move_history),
            displaced_bonuses=list(self.bonus_history),
        )

    def _restore(self, saved: SavedGame, board: Board):
        settings = settings_for(saved.difficulty)
        self.difficulty = saved.difficulty
        self.computer_side = Cell.YELLOW if saved.computer_plays_yellow else Cell.RED
        if settings.search is not None:
            self.computer = MinimaxPlayer(settings.search.depth, settings.search.tolerance, self.rng)
        else:
            self.computer = None

        self.board = board
        self.max_bonus_coins = saved.bonus_pool
        self.move_counter = saved.move_counter
        self.next_bonus_move = saved.next_bonus_move
        self.remaining_bonus_coins = saved.remaining_bonus_coins
        self.red_score = saved.red_score
        self.yellow_score = saved.yellow_score
        self.current_player = saved.current_player
        self.move_history = list(saved.moves)
        self.bonus_history = list(saved.displaced_bonuses)

        # Flags were checked against the board already
        self.game_result = board.check_result()

        self.error = None
        self.error_message = None
        self._processing_computer_move = False

    # Errors and status

    def _fail(self, error: GameError, message: str) -> ActionResult:
        self.error = error
        self.error_message = message
        debug.debug(f"{error.name}: {message}", "game")
        return ActionResult.failed(error, message)

    def _clear_error(self):
        self.error = None
        self.error_message = None

    def set_status_message(self, message: str):
        """Show a message for STATUS_MESSAGE_DURATION seconds."""
        self._status_message = message
        self._status_time = self._clock()

    @property
    def status_message(self) -> Optional[str]:
        """The current status message, or None once it has expired."""
        if (self._status_message is not None
                and self._clock() - self._status_time < STATUS_MESSAGE_DURATION):
            return self._status_message
        return None

    # Queries

    @property
    def columns(self) -> int:
        return self.board.columns

    @property
    def rows(self) -> int:
        return self.board.rows

    @property
    def game_over(self) -> bool:
        return self.game_result.is_game_over()

    @property
    def red_wins(self) -> bool:
        return self.game_result == GameResult.RED_WIN

    @property
    def yellow_wins(self) -> bool:
        return self.game_result == GameResult.YELLOW_WIN

    @property
    def tracks_score(self) -> bool:
        """Scores are only kept when two humans play each other."""
        return self.computer is None

    @property
    def moves(self) -> List[Position]:
        """Copy of the move history, oldest first."""
        return list(self.move_history)

    def get_cell(self, column: int, row: int) -> Optional[Cell]:
        """
        Get a cell's state.

        Args:
            column: Column index (0-indexed)
            row: Row index (0-indexed, 0 is the bottom)

        Returns:
            The cell state, or None if the position is off the board
        """
        if self.board.in_bounds(column, row):
            return self.board.get(column, row)
        return None

    def is_computer_turn(self) -> bool:
        """Check if the computer should move now."""
        return (self.computer is not None
                and not self.game_over
                and self.current_player == self.computer_side)

    def get_valid_moves(self) -> List[int]:
        """
        Get the columns that can be played.

        Returns:
            List of 1-indexed columns, empty once the game is over
        """
        if self.game_over:
            return []
        return [col + 1 for col in self.board.valid_columns()]

    def get_winner(self) -> Optional[Cell]:
        """
        Get the winner of the game.

        Returns:
            The winning color, or None if no winner yet or draw
        """
        if self.red_wins:
            return Cell.RED
        if self.yellow_wins:
            return Cell.YELLOW
        return None

    def render(self) -> str:
        """
        Render the game as a string.

        Returns:
            String representation of the board
        """
        return self.board.render()
