"""
lucky_connect4.data - Save file handling for Lucky Connect Four
"""

from lucky_connect4.data.data_manager import SavedGame, SaveFileError, read_save, write_save

__all__ = ['SavedGame', 'SaveFileError', 'read_save', 'write_save']
