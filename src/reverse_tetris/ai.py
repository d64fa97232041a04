"""One-ply placement search.

For the requested piece the engine tries every rotation and every column,
drops the shape straight down, locks it into a scratch copy of the board and
scores the result with a fixed linear evaluation.  The candidate with the
highest score wins.  A uniform jitter whose width depends on the difficulty
is added to each score so weaker settings visibly misplay.

The engine never touches the caller's grid; every candidate is evaluated on
its own copy.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Mapping, Optional

from .board import WIDTH, Grid, lock_shape
from .config import DIFFICULTY_PRESETS, DifficultyParams, resolve_difficulty
from .features import GridMetrics
from .tetromino import Shape, rotate_shape
from .utils import can_place, find_resting_row


LOGGER = logging.getLogger(__name__)

ROTATIONS = 4

# Value written into scratch grids.  The metrics only care about occupancy.
_SCRATCH_VALUE = 1


@dataclass(frozen=True, eq=False)
class Placement:
    """Where the engine decided to put a piece."""

    column: int
    row: int
    rotation: int
    shape: Shape


def evaluate_grid(grid: Grid, params: DifficultyParams) -> float:
    """Return the weighted sum of height, complete lines, holes and bumpiness."""

    metrics = GridMetrics.from_grid(grid)
    return (
        params.height_weight * metrics.height
        + params.lines_weight * metrics.lines
        + params.holes_weight * metrics.holes
        + params.bumpiness_weight * metrics.bumpiness
    )


class PlacementEngine:
    """Pick a landing spot for a piece by exhaustive one-ply search."""

    def __init__(
        self,
        *,
        presets: Mapping[str, DifficultyParams] = DIFFICULTY_PRESETS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.presets = presets
        self._rng = rng or random.Random()

    def seed(self, seed: Optional[int]) -> None:
        """Seed the jitter source."""

        if seed is not None:
            self._rng.seed(seed)

    def params_for(self, difficulty: Optional[str]) -> DifficultyParams:
        return resolve_difficulty(difficulty, self.presets)

    def _jitter(self, randomness: float) -> float:
        return (self._rng.random() - 0.5) * randomness

    def find_best_placement(
        self, grid: Grid, shape: Shape, difficulty: Optional[str] = "normal"
    ) -> Optional[Placement]:
        """Return the best scoring placement for ``shape`` or ``None``.

        Rotations are tried in order ``0..3`` and columns left to right; a
        later candidate only replaces the incumbent with a strictly greater
        score.  Candidates whose resting row still overlaps the stack (the
        board is full up to the top at that column) are skipped.
        """

        params = self.params_for(difficulty)
        best: Optional[Placement] = None
        best_score = float("-inf")

        for rotation in range(ROTATIONS):
            rotated = rotate_shape(shape, rotation)
            width = rotated.shape[1]
            for column in range(WIDTH - width + 1):
                row = find_resting_row(grid, rotated, column)
                if row < 0 or not can_place(grid, rotated, column, row):
                    continue
                scratch = lock_shape(grid, rotated, column, row, _SCRATCH_VALUE)
                score = evaluate_grid(scratch, params) + self._jitter(params.randomness)
                if score > best_score:
                    best_score = score
                    best = Placement(column=column, row=row, rotation=rotation, shape=rotated)

        if best is None:
            LOGGER.debug("No legal placement found")
        else:
            LOGGER.debug(
                "Best placement rotation=%d column=%d row=%d score=%.3f",
                best.rotation,
                best.column,
                best.row,
                best_score,
            )
        return best


class CenterDropEngine:
    """Fallback placer: spawn orientation, centred column, straight drop."""

    def find_best_placement(
        self, grid: Grid, shape: Shape, difficulty: Optional[str] = None
    ) -> Optional[Placement]:
        rotated = rotate_shape(shape, 0)
        column = (WIDTH - rotated.shape[1]) // 2
        row = find_resting_row(grid, rotated, column)
        if not can_place(grid, rotated, column, row):
            return None
        return Placement(column=column, row=row, rotation=0, shape=rotated)


__all__ = ["Placement", "PlacementEngine", "CenterDropEngine", "evaluate_grid", "ROTATIONS"]
