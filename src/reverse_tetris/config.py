"""Difficulty presets and session timings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

DEFAULT_DIFFICULTY = "normal"


@dataclass(frozen=True)
class DifficultyParams:
    """Linear weights for the placement evaluator plus a jitter magnitude.

    ``randomness`` is the full width of the uniform noise added to every
    candidate score, i.e. noise is drawn from ``[-randomness/2, randomness/2]``.
    """

    height_weight: float
    lines_weight: float
    holes_weight: float
    bumpiness_weight: float
    randomness: float


DIFFICULTY_PRESETS: Dict[str, DifficultyParams] = {
    "easy": DifficultyParams(
        height_weight=-0.3,
        lines_weight=0.5,
        holes_weight=-0.5,
        bumpiness_weight=-0.2,
        randomness=0.3,
    ),
    "normal": DifficultyParams(
        height_weight=-0.5,
        lines_weight=1.0,
        holes_weight=-1.0,
        bumpiness_weight=-0.3,
        randomness=0.1,
    ),
    "hard": DifficultyParams(
        height_weight=-0.8,
        lines_weight=1.5,
        holes_weight=-2.0,
        bumpiness_weight=-0.5,
        randomness=0.0,
    ),
}

# Added to the score when the stack reaches the top rows.
COMPLETION_BONUS: Dict[str, int] = {"easy": 50, "normal": 100, "hard": 200}


def normalize_difficulty(
    name: Optional[str], presets: Mapping[str, DifficultyParams] = DIFFICULTY_PRESETS
) -> str:
    """Return ``name`` if it is a known preset, otherwise ``"normal"``."""

    if name in presets:
        return name  # type: ignore[return-value]
    return DEFAULT_DIFFICULTY


def resolve_difficulty(
    name: Optional[str], presets: Mapping[str, DifficultyParams] = DIFFICULTY_PRESETS
) -> DifficultyParams:
    """Look up the weights for ``name``, falling back to the normal preset."""

    params = presets.get(name) if name is not None else None
    if params is None:
        params = presets.get(DEFAULT_DIFFICULTY, DIFFICULTY_PRESETS[DEFAULT_DIFFICULTY])
    return params


def completion_bonus(name: str) -> int:
    return COMPLETION_BONUS.get(name, COMPLETION_BONUS[DEFAULT_DIFFICULTY])


@dataclass(frozen=True)
class GameConfig:
    """Tunables for a :class:`~reverse_tetris.session.GameSession`.

    Times are in seconds.  The drop animation starts at row ``0`` and moves
    ``drop_step_rows`` rows every ``drop_step_interval`` seconds until the
    piece reaches its resting row.
    """

    queue_capacity: int = 5
    clear_delay: float = 0.3
    drop_step_interval: float = 0.02
    drop_step_rows: int = 2
    difficulty: str = DEFAULT_DIFFICULTY

    @classmethod
    def instant(cls, **overrides) -> "GameConfig":
        """Return a config with every delay set to zero (tests, demos)."""

        values = {"clear_delay": 0.0, "drop_step_interval": 0.0}
        values.update(overrides)
        return cls(**values)


__all__ = [
    "DEFAULT_DIFFICULTY",
    "DifficultyParams",
    "DIFFICULTY_PRESETS",
    "COMPLETION_BONUS",
    "normalize_difficulty",
    "resolve_difficulty",
    "completion_bonus",
    "GameConfig",
]
