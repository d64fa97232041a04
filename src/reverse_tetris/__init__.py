"""Reverse Tetris: the player picks pieces, an AI decides where they land."""

from .board import Board
from .tetromino import PieceType, rotate_shape
from .config import DifficultyParams, GameConfig, DIFFICULTY_PRESETS
from .ai import CenterDropEngine, Placement, PlacementEngine, evaluate_grid
from .game_state import Phase, SessionState, transition
from .session import GameSession
from .utils import can_place, find_resting_row, render_grid

__all__ = [
    "Board",
    "PieceType",
    "rotate_shape",
    "DifficultyParams",
    "GameConfig",
    "DIFFICULTY_PRESETS",
    "Placement",
    "PlacementEngine",
    "CenterDropEngine",
    "evaluate_grid",
    "Phase",
    "SessionState",
    "transition",
    "GameSession",
    "can_place",
    "find_resting_row",
    "render_grid",
]
