"""Collision and gravity helpers shared by the engine and the session."""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .board import HEIGHT, PIECE_VALUES, WIDTH, Grid
from .tetromino import PieceType, Shape, shape_cells


def can_place(grid: Grid, shape: Shape, col: int, row: int) -> bool:
    """Return ``True`` if ``shape`` fits on ``grid`` with its corner at ``(row, col)``.

    Every occupied cell must lie within the side walls and above the floor.
    Cells above the top edge (negative rows) are always accepted so a piece
    may hang partly off the board; cells on the board must be empty.
    """

    for dr, dc in shape_cells(shape):
        r = row + dr
        c = col + dc
        if c < 0 or c >= WIDTH or r >= HEIGHT:
            return False
        if r >= 0 and grid[r][c]:
            return False
    return True


def find_resting_row(grid: Grid, shape: Shape, col: int) -> int:
    """Return the row where ``shape`` comes to rest when dropped at ``col``.

    The shape is lowered from row ``0``; the resting row is the one just
    above the first collision, or the floor if nothing is hit.  When the shape
    already collides at row ``0`` the result is clamped to ``0``, so callers
    must check :func:`can_place` before trusting it on crowded boards.
    """

    height = len(shape)
    for row in range(HEIGHT - height + 1):
        if not can_place(grid, shape, col, row):
            return max(0, row - 1)
    return HEIGHT - height


def render_grid(
    grid: Grid,
    piece: Optional[PieceType] = None,
    shape: Optional[Shape] = None,
    col: int = 0,
    row: int = 0,
    highlighted: Sequence[int] = (),
) -> List[List[int]]:
    """Return a copy of ``grid`` as nested lists with a falling piece overlaid.

    This is a convenience for renderers that want a single 2D array to draw
    without touching the session's grid.  Cells covered by the falling piece
    receive the piece's value; highlighted rows are reported separately by
    the session and only passed here so they can be marked with ``-1``.
    """

    out = np.array(grid, dtype=np.int16, copy=True)
    for r in highlighted:
        out[r, :] = -1
    if piece is not None:
        cells = shape_cells(shape if shape is not None else piece.shape)
        value = PIECE_VALUES[piece]
        for dr, dc in cells:
            r, c = row + dr, col + dc
            if 0 <= r < HEIGHT and 0 <= c < WIDTH:
                out[r, c] = value
    return out.tolist()


__all__ = ["can_place", "find_resting_row", "render_grid"]
