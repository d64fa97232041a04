"""Board metrics used by the placement evaluator.

Each function takes a grid snapshot (anything indexable as ``grid[row][col]``
works, numpy arrays included) and returns a plain ``int``.  None of them
mutate the grid, so measuring the same board twice always gives the same
answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .board import HEIGHT, WIDTH

GridLike = Sequence[Sequence[int]]


@dataclass(frozen=True)
class GridMetrics:
    """The four quantities the evaluator weighs."""

    height: int
    lines: int
    holes: int
    bumpiness: int

    @classmethod
    def from_grid(cls, grid: GridLike) -> "GridMetrics":
        return cls(
            height=max_height(grid),
            lines=completed_lines(grid),
            holes=count_holes(grid),
            bumpiness=bumpiness(column_heights(grid)),
        )


def _filled(grid: GridLike) -> np.ndarray:
    return np.asarray(grid) != 0


def max_height(grid: GridLike) -> int:
    """Distance from the topmost occupied row to the floor, ``0`` if empty."""

    occupied = np.flatnonzero(_filled(grid).any(axis=1))
    if occupied.size == 0:
        return 0
    return HEIGHT - int(occupied[0])


def completed_lines(grid: GridLike) -> int:
    return int(np.count_nonzero(_filled(grid).all(axis=1)))


def count_holes(grid: GridLike) -> int:
    """Count empty cells lying below any block in the same column."""

    holes = 0
    for col in range(WIDTH):
        seen_block = False
        for row in range(HEIGHT):
            if grid[row][col]:
                seen_block = True
            elif seen_block:
                holes += 1
    return holes


def column_heights(grid: GridLike) -> list[int]:
    filled = _filled(grid)
    tops = filled.argmax(axis=0)
    heights = np.where(filled.any(axis=0), HEIGHT - tops, 0)
    return [int(h) for h in heights]


def bumpiness(heights: Sequence[int]) -> int:
    total = 0
    for col in range(len(heights) - 1):
        total += abs(heights[col] - heights[col + 1])
    return total


__all__ = [
    "GridMetrics",
    "max_height",
    "completed_lines",
    "count_holes",
    "column_heights",
    "bumpiness",
]
