"""Deterministic puzzle engine.

Both clients of a match rebuild the same board from the match seed, so
nothing in this package touches Flask, the database or wall-clock time.
"""

from .seeded_random import create_seeded_random
from .puzzle import (
    GRID_SIZE,
    NUM_COLORS,
    MIN_PALINDROME_LENGTH,
    GameState,
    HintMove,
    MoveResult,
    ScoringResult,
    apply_move,
    can_place,
    check_palindromes,
    create_initial_state,
    find_scoring_move,
    has_blocks_left,
    has_empty_cell,
    is_game_over,
)

__all__ = [
    "GRID_SIZE",
    "NUM_COLORS",
    "MIN_PALINDROME_LENGTH",
    "GameState",
    "HintMove",
    "MoveResult",
    "ScoringResult",
    "apply_move",
    "can_place",
    "check_palindromes",
    "create_initial_state",
    "create_seeded_random",
    "find_scoring_move",
    "has_blocks_left",
    "has_empty_cell",
    "is_game_over",
]
