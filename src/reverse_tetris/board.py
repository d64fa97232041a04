"""Board representation for the playfield.

The grid is a ``(HEIGHT, WIDTH)`` ``uint8`` array where ``0`` is an empty cell
and any other value is the tag of the piece that locked there.  The helper
functions below never modify their input grid; they return a new array so the
session can treat each grid as an immutable snapshot.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

import numpy as np
from numpy.typing import NDArray

from .tetromino import PieceType, Shape


# Dimensions of the standard board.
WIDTH = 10
HEIGHT = 20

# Rows counted from the top that end the session once anything locks there.
TOP_ROWS = 3

Grid = NDArray[np.uint8]

# Mapping from ``PieceType`` to the integer stored in the grid.  The specific
# numeric values are not important as long as ``0`` represents an empty cell.
PIECE_VALUES = {t: i + 1 for i, t in enumerate(PieceType)}
VALUE_PIECES = {value: piece for piece, value in PIECE_VALUES.items()}


def create_empty_grid() -> Grid:
    """Return a new empty board grid filled with zeros."""

    return np.zeros((HEIGHT, WIDTH), dtype=np.uint8)


def lock_shape(grid: Grid, shape: Shape, col: int, row: int, value: int) -> Grid:
    """Return a copy of ``grid`` with ``shape`` written at ``(row, col)``.

    Cells that sit above the visible board (negative rows) are dropped.  Any
    cell left of, right of or below the board is an error.

    Raises:
        IndexError: If an occupied shape cell lands outside the board.
    """

    locked = np.array(grid, dtype=np.uint8, copy=True)
    rows, cols = np.nonzero(shape)
    rows = rows + row
    cols = cols + col
    if np.any(cols < 0) or np.any(cols >= WIDTH) or np.any(rows >= HEIGHT):
        raise IndexError("Block out of bounds")
    visible = rows >= 0
    locked[rows[visible], cols[visible]] = np.uint8(value)
    return locked


def completed_rows(grid: Grid) -> List[int]:
    """Return the indices of fully occupied rows, top to bottom."""

    full = np.all(np.asarray(grid) != 0, axis=1)
    return [int(r) for r in np.flatnonzero(full)]


def clear_rows(grid: Grid, rows: Iterable[int]) -> Grid:
    """Remove ``rows`` from ``grid`` and pad the top with empty rows.

    The result always has the same shape as the input.
    """

    doomed = sorted(set(rows), reverse=True)
    remaining = np.delete(np.asarray(grid), doomed, axis=0)
    padding = np.zeros((len(doomed), WIDTH), dtype=np.uint8)
    return np.vstack((padding, remaining)).astype(np.uint8)


def top_rows_occupied(grid: Grid, rows: int = TOP_ROWS) -> bool:
    """Return ``True`` if any of the first ``rows`` rows holds a block."""

    return bool(np.any(np.asarray(grid)[:rows] != 0))


class Board:
    """Mutable wrapper around a grid, handy for building positions by hand."""

    def __init__(self) -> None:
        self.grid: Grid = create_empty_grid()

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "Board":
        """Build a board from text rows aligned to the bottom.

        Each string is one row of ``WIDTH`` characters where ``.`` is empty
        and anything else is a block.  Missing rows at the top stay empty.
        """

        if len(rows) > HEIGHT:
            raise ValueError("Too many rows")
        board = cls()
        offset = HEIGHT - len(rows)
        for r, text in enumerate(rows):
            if len(text) != WIDTH:
                raise ValueError("Row width mismatch")
            for c, ch in enumerate(text):
                if ch != ".":
                    board.fill_cell(offset + r, c)
        return board

    def fill_cell(self, row: int, col: int, value: int = 1) -> None:
        """Occupy ``(row, col)``; raises ``IndexError`` off the board."""

        if not (0 <= row < HEIGHT and 0 <= col < WIDTH):
            raise IndexError(f"Cell {(row, col)} is off the board")
        self.grid[row, col] = value

    def fill_row(self, row: int, *, skip: Iterable[int] = (), value: int = 1) -> None:
        """Occupy every cell in ``row`` except the columns in ``skip``."""

        keep = set(skip)
        for col in range(WIDTH):
            if col not in keep:
                self.fill_cell(row, col, value)

    def stack(self, col: int, height: int, value: int = 1) -> None:
        """Occupy the bottom ``height`` cells of column ``col``."""

        for row in range(HEIGHT - height, HEIGHT):
            self.fill_cell(row, col, value)


__all__ = [
    "WIDTH",
    "HEIGHT",
    "TOP_ROWS",
    "Grid",
    "PIECE_VALUES",
    "VALUE_PIECES",
    "Board",
    "create_empty_grid",
    "lock_shape",
    "completed_rows",
    "clear_rows",
    "top_rows_occupied",
]
