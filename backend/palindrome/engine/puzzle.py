from dataclasses import dataclass
from typing import FrozenSet, Optional, Sequence, Tuple

from .seeded_random import create_seeded_random

GRID_SIZE = 11
NUM_COLORS = 5
DEFAULT_BLOCK_COUNT = 16
MIN_PALINDROME_LENGTH = 3
BONUS_CELL_COUNT = 5
BONUS_POINTS = 10
# Bound on bonus-cell draws; a zero-hash seed repeats (0, 0) forever
MAX_BONUS_DRAWS = 1000

CENTER = GRID_SIZE // 2
# Pre-placed cells, identical for every match
INITIAL_POSITIONS: Tuple[Tuple[int, int], ...] = ((6, 5), (5, 4), (5, 5))

Cell = Tuple[int, int]
Row = Tuple[Optional[int], ...]
Grid = Tuple[Row, ...]


def _reserved_cells() -> FrozenSet[Cell]:
    """Middle row and middle column, where the title word is drawn."""
    cells = set()
    for i in range(GRID_SIZE):
        cells.add((CENTER, i))
        cells.add((i, CENTER))
    return frozenset(cells)


RESERVED_CELLS = _reserved_cells()


@dataclass(frozen=True)
class GameState:
    grid: Grid
    block_counts: Tuple[int, ...]
    score: int
    bonus_cells: Tuple[Cell, ...]
    move_count: int = 0

    def cell(self, row: int, col: int) -> Optional[int]:
        return self.grid[row][col]


@dataclass(frozen=True)
class ScoringResult:
    score: int
    # Longest scoring segment, for "GOOD/GREAT" style feedback
    segment_length: Optional[int] = None


@dataclass(frozen=True)
class MoveResult:
    success: bool
    new_state: Optional[GameState] = None
    score_delta: Optional[int] = None


@dataclass(frozen=True)
class HintMove:
    row: int
    col: int
    color: int


def _empty_grid() -> list:
    return [[None] * GRID_SIZE for _ in range(GRID_SIZE)]


def _freeze(grid: Sequence[Sequence[Optional[int]]]) -> Grid:
    return tuple(tuple(row) for row in grid)


def _with_cell(grid: Grid, row: int, col: int, color: int) -> Grid:
    new_row = grid[row][:col] + (color,) + grid[row][col + 1:]
    return grid[:row] + (new_row,) + grid[row + 1:]


def create_initial_state(seed: str) -> GameState:
    """Build the starting board for ``seed``.

    Draw order matters for cross-client determinism: bonus cells first
    (row then column per draw), then one color per pre-placed cell.
    Raises ValueError for a seed whose generator never yields five usable
    bonus cells (e.g. '' or '\\x00', which hash to 0).
    """
    rng = create_seeded_random(seed)

    bonus_cells = []
    draws = 0
    while len(bonus_cells) < BONUS_CELL_COUNT:
        if draws >= MAX_BONUS_DRAWS:
            raise ValueError(f'degenerate seed {seed!r}: no bonus cells after {draws} draws')
        draws += 1
        row = int(rng() * GRID_SIZE)
        col = int(rng() * GRID_SIZE)
        if (row, col) in RESERVED_CELLS or (row, col) in bonus_cells:
            continue
        bonus_cells.append((row, col))

    initial_colors = [int(rng() * NUM_COLORS) for _ in INITIAL_POSITIONS]

    grid = _empty_grid()
    for (row, col), color in zip(INITIAL_POSITIONS, initial_colors):
        grid[row][col] = color

    block_counts = [DEFAULT_BLOCK_COUNT] * NUM_COLORS
    for color in initial_colors:
        block_counts[color] = max(0, block_counts[color] - 1)

    return GameState(
        grid=_freeze(grid),
        block_counts=tuple(block_counts),
        score=0,
        bonus_cells=tuple(bonus_cells),
        move_count=0,
    )


def _segment(grid: Grid, row: int, col: int, along_row: bool) -> list:
    """Maximal run of filled cells through (row, col) on one axis."""
    if along_row:
        cells = [(row, c) for c in range(GRID_SIZE)]
        index = col
    else:
        cells = [(r, col) for r in range(GRID_SIZE)]
        index = row

    start = end = index
    while start > 0 and grid[cells[start - 1][0]][cells[start - 1][1]] is not None:
        start -= 1
    while end < GRID_SIZE - 1 and grid[cells[end + 1][0]][cells[end + 1][1]] is not None:
        end += 1
    return cells[start:end + 1]


def check_palindromes(
    grid: Grid,
    row: int,
    col: int,
    bonus_cells: Sequence[Cell],
    min_length: int = MIN_PALINDROME_LENGTH,
) -> ScoringResult:
    """Score the row and the column through (row, col).

    Each axis scores independently: a palindromic segment of at least
    ``min_length`` earns its length, plus BONUS_POINTS when it covers a
    bonus cell.
    """
    bonus = set(bonus_cells)
    total = 0
    longest = 0
    for along_row in (True, False):
        segment = _segment(grid, row, col, along_row)
        if len(segment) < min_length:
            continue
        colors = [grid[r][c] for r, c in segment]
        if colors != colors[::-1]:
            continue
        points = len(segment)
        if any(cell in bonus for cell in segment):
            points += BONUS_POINTS
        total += points
        longest = max(longest, len(segment))
    return ScoringResult(score=total, segment_length=longest or None)


def can_place(state: GameState, row: int, col: int, color: int) -> bool:
    if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
        return False
    if state.grid[row][col] is not None:
        return False
    if not (0 <= color < NUM_COLORS):
        return False
    return state.block_counts[color] > 0


def apply_move(
    state: GameState,
    row: int,
    col: int,
    color: int,
    min_length: int = MIN_PALINDROME_LENGTH,
) -> MoveResult:
    """Place ``color`` at (row, col) and score it; ``state`` is left untouched."""
    if not can_place(state, row, col, color):
        return MoveResult(success=False)

    grid = _with_cell(state.grid, row, col, color)
    result = check_palindromes(grid, row, col, state.bonus_cells, min_length)

    counts = list(state.block_counts)
    counts[color] -= 1

    new_state = GameState(
        grid=grid,
        block_counts=tuple(counts),
        score=state.score + result.score,
        bonus_cells=state.bonus_cells,
        move_count=state.move_count + 1,
    )
    return MoveResult(success=True, new_state=new_state, score_delta=result.score)


def find_scoring_move(state: GameState, min_length: int = MIN_PALINDROME_LENGTH) -> Optional[HintMove]:
    """First placement in scan order (row, column, color) that would score."""
    for r in range(GRID_SIZE):
        for c in range(GRID_SIZE):
            if state.grid[r][c] is not None:
                continue
            for color in range(NUM_COLORS):
                if state.block_counts[color] <= 0:
                    continue
                grid = _with_cell(state.grid, r, c, color)
                if check_palindromes(grid, r, c, state.bonus_cells, min_length).score > 0:
                    return HintMove(row=r, col=c, color=color)
    return None


def has_blocks_left(state: GameState) -> bool:
    return any(count > 0 for count in state.block_counts)


def has_empty_cell(state: GameState) -> bool:
    return any(cell is None for row in state.grid for cell in row)


def is_game_over(state: GameState) -> bool:
    return not has_blocks_left(state) or not has_empty_cell(state)
