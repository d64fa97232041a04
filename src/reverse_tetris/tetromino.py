"""Tetromino definitions and shape rotation.

Pieces are described by small boolean occupancy matrices rather than block
offsets: the placement engine rotates the matrix and slides it across the
board, so keeping the rectangular shape around makes the column range for
each rotation trivial to compute.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

import numpy as np
from numpy.typing import NDArray

Shape = NDArray[np.bool_]


class PieceType(str, Enum):
    """Enumeration of the seven standard tetromino shapes."""

    I = "I"
    O = "O"
    T = "T"
    S = "S"
    Z = "Z"
    J = "J"
    L = "L"

    @property
    def shape(self) -> Shape:
        """Return the spawn-orientation occupancy matrix."""

        return BASE_SHAPES[self]

    @property
    def color(self) -> str:
        return PIECE_COLORS[self]


def _freeze(rows: List[List[int]]) -> Shape:
    shape = np.array(rows, dtype=bool)
    shape.flags.writeable = False
    return shape


# Spawn orientation for each piece.  Rows run top to bottom.
BASE_SHAPES: Dict[PieceType, Shape] = {
    PieceType.I: _freeze([[1, 1, 1, 1]]),
    PieceType.O: _freeze([[1, 1], [1, 1]]),
    PieceType.T: _freeze([[0, 1, 0], [1, 1, 1]]),
    PieceType.S: _freeze([[0, 1, 1], [1, 1, 0]]),
    PieceType.Z: _freeze([[1, 1, 0], [0, 1, 1]]),
    PieceType.J: _freeze([[1, 0, 0], [1, 1, 1]]),
    PieceType.L: _freeze([[0, 0, 1], [1, 1, 1]]),
}

PIECE_COLORS: Dict[PieceType, str] = {
    PieceType.I: "#60a5fa",
    PieceType.O: "#fbbf24",
    PieceType.T: "#c084fc",
    PieceType.S: "#34d399",
    PieceType.Z: "#f87171",
    PieceType.J: "#38bdf8",
    PieceType.L: "#fb923c",
}


def rotate_shape(shape: Shape, quarter_turns: int) -> Shape:
    """Return ``shape`` rotated clockwise by ``quarter_turns`` * 90 degrees.

    The count is wrapped so any integer is accepted.  Odd counts swap the
    row and column dimensions.  The input is never modified; the result is a
    fresh read-only array.
    """

    rotated = np.rot90(np.asarray(shape, dtype=bool), k=-(quarter_turns % 4))
    rotated = np.array(rotated, copy=True, order="C")
    rotated.flags.writeable = False
    return rotated


def shape_cells(shape: Shape) -> List[tuple[int, int]]:
    """Return the ``(row, col)`` offsets of the occupied cells in ``shape``."""

    rows, cols = np.nonzero(shape)
    return [(int(r), int(c)) for r, c in zip(rows, cols)]


__all__ = [
    "PieceType",
    "Shape",
    "BASE_SHAPES",
    "PIECE_COLORS",
    "rotate_shape",
    "shape_cells",
]
