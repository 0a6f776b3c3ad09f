# nonogram/games/core/grid.py
"""
Pure grid helpers: empty grids, clue derivation, solve check, shape validation.

Player cells:   0 = empty, 1 = filled, 2 = marked (X)
Solution cells: 0 = empty, 1 = filled
"""
from __future__ import annotations
from typing import Any, List, Sequence, Tuple

EMPTY = 0
FILLED = 1
MARKED = 2

PLAYER_CELLS = (EMPTY, FILLED, MARKED)
SOLUTION_CELLS = (EMPTY, FILLED)

Grid = List[List[int]]


def create_empty_grid(size: int, value: int = EMPTY) -> Grid:
    return [[value for _ in range(size)] for _ in range(size)]


def copy_grid(grid: Sequence[Sequence[int]]) -> Grid:
    return [list(row) for row in grid]


# ============================================================
# Clues
# ============================================================

def line_clues(line: Sequence[int]) -> List[int]:
    """
    Runs of consecutive filled cells, left to right.
    An all-empty line is [0] so the UI always has something to print.
    """
    clues: List[int] = []
    count = 0
    for cell in line:
        if cell == FILLED:
            count += 1
        elif count > 0:
            clues.append(count)
            count = 0
    if count > 0:
        clues.append(count)
    return clues or [0]


def compute_clues(solution: Sequence[Sequence[int]]) -> Tuple[List[List[int]], List[List[int]]]:
    """Return (row_clues, col_clues) for a square solution grid."""
    size = len(solution)
    row_clues = [line_clues(row) for row in solution]
    col_clues = [line_clues([solution[r][c] for r in range(size)]) for c in range(size)]
    return row_clues, col_clues


# ============================================================
# Solve check
# ============================================================

def is_solved(player: Sequence[Sequence[int]], solution: Sequence[Sequence[int]]) -> bool:
    """
    Solved when every solution=1 cell is filled and no solution=0 cell is filled.
    Empty and marked cells are equivalent off the picture.
    """
    size = len(solution)
    if len(player) != size:
        return False
    for r in range(size):
        prow, srow = player[r], solution[r]
        if len(prow) != size:
            return False
        for c in range(size):
            if (srow[c] == FILLED) != (prow[c] == FILLED):
                return False
    return True


def completed_rows(player: Sequence[Sequence[int]], solution: Sequence[Sequence[int]]) -> List[int]:
    """Indices of rows whose filled pattern already matches the solution row."""
    done: List[int] = []
    for r, (prow, srow) in enumerate(zip(player, solution)):
        if len(prow) == len(srow) and all((s == FILLED) == (p == FILLED) for p, s in zip(prow, srow)):
            done.append(r)
    return done


# ============================================================
# Validation (storage boundary / API input)
# ============================================================

def _is_square_of(grid: Any, size: int, allowed: Tuple[int, ...]) -> bool:
    if not isinstance(grid, list) or len(grid) != size:
        return False
    for row in grid:
        if not isinstance(row, list) or len(row) != size:
            return False
        for cell in row:
            # True/False would compare equal to 1/0
            if isinstance(cell, bool) or cell not in allowed:
                return False
    return True


def is_valid_player_grid(grid: Any, size: int) -> bool:
    return _is_square_of(grid, size, PLAYER_CELLS)


def is_valid_solution_grid(grid: Any, size: int) -> bool:
    return _is_square_of(grid, size, SOLUTION_CELLS)


def is_valid_player_grid_stack(data: Any, size: int) -> bool:
    return isinstance(data, list) and all(is_valid_player_grid(g, size) for g in data)
