"""Piece lifecycle state machine.

The whole session is a single immutable :class:`SessionState` value.  Every
input, whether from the player (``Select``, ``Start``...) or from the timers
the session runs (``DropTick``, ``ClearElapsed``), is an event, and
:func:`transition` maps ``(state, event)`` to a new state plus a list of
effects.  Effects are plain records describing what observers should see or
what the driver must do next; ``transition`` itself performs no I/O and never
calls the placement engine.

The phases are:

* ``IDLE``: nothing in flight, the next ``Select`` starts immediately.
* ``PROCESSING``: a placement has been requested or a piece is falling.
* ``CLEARING``: completed rows are highlighted and waiting to be removed.
* ``TERMINAL``: the stack reached the top rows and the session is over.

``paused`` is orthogonal to the phase.  It blocks new work from starting but
does not interrupt a drop or a clear that is already under way.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Type, Union

from .ai import Placement
from .board import (
    PIECE_VALUES,
    Grid,
    clear_rows,
    completed_rows,
    create_empty_grid,
    lock_shape,
    top_rows_occupied,
)
from .config import DEFAULT_DIFFICULTY, completion_bonus, normalize_difficulty
from .features import max_height
from .tetromino import PieceType, Shape


BASE_SCORE = 400
PIECE_COST = 10
LINE_REWARD = 10
HEIGHT_PENALTY = 2


def placement_score(pieces_sent: int, lines_cleared: int, height: int) -> int:
    """Score after a piece locks.  Never negative."""

    return max(
        0,
        BASE_SCORE
        - pieces_sent * PIECE_COST
        + lines_cleared * LINE_REWARD
        - HEIGHT_PENALTY * height,
    )


class Phase(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    CLEARING = "clearing"
    TERMINAL = "terminal"


@dataclass(frozen=True, eq=False)
class FallingPiece:
    """A piece on its way down to the row chosen by the engine."""

    piece: PieceType
    placement: Placement
    row: int = 0

    @property
    def column(self) -> int:
        return self.placement.column

    @property
    def target_row(self) -> int:
        return self.placement.row

    @property
    def shape(self) -> Shape:
        return self.placement.shape

    @property
    def color(self) -> str:
        return self.piece.color


@dataclass(frozen=True, eq=False)
class SessionState:
    """Snapshot of one game session.

    ``grid`` must be treated as read-only; transitions that change the board
    build a new array.
    """

    grid: Grid = field(default_factory=create_empty_grid)
    phase: Phase = Phase.IDLE
    playing: bool = False
    paused: bool = False
    game_cleared: bool = False
    difficulty: str = DEFAULT_DIFFICULTY
    score: int = 0
    pieces_sent: int = 0
    lines_cleared: int = 0
    queue: Tuple[PieceType, ...] = ()
    queue_capacity: int = 5
    selected: Optional[PieceType] = None
    falling: Optional[FallingPiece] = None
    highlighted: Tuple[int, ...] = ()

    @property
    def busy(self) -> bool:
        return self.phase in (Phase.PROCESSING, Phase.CLEARING)

    @property
    def max_height(self) -> int:
        return max_height(self.grid)


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class TogglePause:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class SetDifficulty:
    name: str


@dataclass(frozen=True)
class Select:
    piece: PieceType


@dataclass(frozen=True, eq=False)
class PlacementDecided:
    """Result of the engine call requested by ``PlacementRequested``."""

    piece: PieceType
    placement: Optional[Placement]


@dataclass(frozen=True)
class DropTick:
    rows: int = 2


@dataclass(frozen=True)
class ClearElapsed:
    pass


Event = Union[
    Start,
    TogglePause,
    Reset,
    SetDifficulty,
    Select,
    PlacementDecided,
    DropTick,
    ClearElapsed,
]


# ----------------------------------------------------------------------
# Effects
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class SessionStarted:
    pass


@dataclass(frozen=True)
class PauseToggled:
    paused: bool


@dataclass(frozen=True)
class SessionReset:
    pass


@dataclass(frozen=True)
class DifficultyChanged:
    requested: str
    difficulty: str

    @property
    def fell_back(self) -> bool:
        return self.requested != self.difficulty


@dataclass(frozen=True)
class PieceQueued:
    piece: PieceType
    queue_length: int


@dataclass(frozen=True)
class PieceRejected:
    """The queue was full; the request was dropped."""

    piece: PieceType


@dataclass(frozen=True)
class PlacementRequested:
    """The driver must run the engine and feed back ``PlacementDecided``."""

    piece: PieceType
    difficulty: str


@dataclass(frozen=True)
class PieceDiscarded:
    """The engine found no legal placement; the piece was dropped."""

    piece: PieceType


@dataclass(frozen=True, eq=False)
class DropStarted:
    falling: FallingPiece


@dataclass(frozen=True, eq=False)
class DropAdvanced:
    falling: FallingPiece


@dataclass(frozen=True)
class PieceLocked:
    piece: PieceType
    column: int
    row: int
    score: int


@dataclass(frozen=True)
class LinesHighlighted:
    rows: Tuple[int, ...]


@dataclass(frozen=True)
class LinesCleared:
    rows: Tuple[int, ...]
    total: int


@dataclass(frozen=True)
class GameCleared:
    score: int
    pieces_sent: int
    lines_cleared: int


Effect = Union[
    SessionStarted,
    PauseToggled,
    SessionReset,
    DifficultyChanged,
    PieceQueued,
    PieceRejected,
    PlacementRequested,
    PieceDiscarded,
    DropStarted,
    DropAdvanced,
    PieceLocked,
    LinesHighlighted,
    LinesCleared,
    GameCleared,
]

Outcome = Tuple[SessionState, List[Effect]]


# ----------------------------------------------------------------------
# Shared steps
# ----------------------------------------------------------------------
def _begin(state: SessionState, piece: PieceType, effects: List[Effect]) -> SessionState:
    effects.append(PlacementRequested(piece=piece, difficulty=state.difficulty))
    return replace(state, phase=Phase.PROCESSING, selected=piece)


def _drain(state: SessionState, effects: List[Effect]) -> SessionState:
    """Start the oldest queued request if the session is free to do so."""

    if state.phase is not Phase.IDLE or state.paused or not state.playing:
        return state
    if not state.queue:
        return state
    piece, rest = state.queue[0], state.queue[1:]
    return _begin(replace(state, queue=rest), piece, effects)


def _settle(state: SessionState, effects: List[Effect]) -> SessionState:
    """Run the top-out check after a lock or a clear, then drain the queue."""

    if top_rows_occupied(state.grid):
        score = state.score + completion_bonus(state.difficulty)
        state = replace(
            state,
            phase=Phase.TERMINAL,
            playing=False,
            game_cleared=True,
            score=score,
        )
        effects.append(
            GameCleared(
                score=score,
                pieces_sent=state.pieces_sent,
                lines_cleared=state.lines_cleared,
            )
        )
        return state
    return _drain(replace(state, phase=Phase.IDLE), effects)


def _commit(state: SessionState, effects: List[Effect]) -> SessionState:
    falling = state.falling
    assert falling is not None
    grid = lock_shape(
        state.grid, falling.shape, falling.column, falling.target_row, PIECE_VALUES[falling.piece]
    )
    pieces_sent = state.pieces_sent + 1
    score = placement_score(pieces_sent, state.lines_cleared, max_height(grid))
    state = replace(state, grid=grid, falling=None, pieces_sent=pieces_sent, score=score)
    effects.append(
        PieceLocked(
            piece=falling.piece, column=falling.column, row=falling.target_row, score=score
        )
    )

    rows = completed_rows(grid)
    if rows:
        effects.append(LinesHighlighted(rows=tuple(rows)))
        return replace(state, phase=Phase.CLEARING, highlighted=tuple(rows))
    return _settle(state, effects)


# ----------------------------------------------------------------------
# Event handlers
# ----------------------------------------------------------------------
def _on_start(state: SessionState, event: Start) -> Outcome:
    if state.playing:
        return state, []
    effects: List[Effect] = [SessionStarted()]
    phase = Phase.IDLE if state.phase is Phase.TERMINAL else state.phase
    state = replace(state, playing=True, paused=False, game_cleared=False, phase=phase)
    return _drain(state, effects), effects


def _on_toggle_pause(state: SessionState, event: TogglePause) -> Outcome:
    if not state.playing:
        return state, []
    paused = not state.paused
    effects: List[Effect] = [PauseToggled(paused=paused)]
    state = replace(state, paused=paused)
    if not paused:
        state = _drain(state, effects)
    return state, effects


def _on_reset(state: SessionState, event: Reset) -> Outcome:
    fresh = SessionState(difficulty=state.difficulty, queue_capacity=state.queue_capacity)
    return fresh, [SessionReset()]


def _on_set_difficulty(state: SessionState, event: SetDifficulty) -> Outcome:
    name = normalize_difficulty(event.name)
    return replace(state, difficulty=name), [
        DifficultyChanged(requested=event.name, difficulty=name)
    ]


def _on_select(state: SessionState, event: Select) -> Outcome:
    if not state.playing or state.paused or state.game_cleared:
        return state, []
    if state.busy or state.falling is not None:
        if len(state.queue) < state.queue_capacity:
            queue = state.queue + (event.piece,)
            return replace(state, queue=queue), [
                PieceQueued(piece=event.piece, queue_length=len(queue))
            ]
        return state, [PieceRejected(piece=event.piece)]
    effects: List[Effect] = []
    return _begin(state, event.piece, effects), effects


def _on_placement_decided(state: SessionState, event: PlacementDecided) -> Outcome:
    if state.phase is not Phase.PROCESSING or state.falling is not None:
        return state, []
    effects: List[Effect] = []
    if event.placement is None:
        effects.append(PieceDiscarded(piece=event.piece))
        state = replace(state, phase=Phase.IDLE)
        return _drain(state, effects), effects
    falling = FallingPiece(piece=event.piece, placement=event.placement, row=0)
    effects.append(DropStarted(falling=falling))
    return replace(state, falling=falling), effects


def _on_drop_tick(state: SessionState, event: DropTick) -> Outcome:
    falling = state.falling
    if falling is None:
        return state, []
    effects: List[Effect] = []
    if falling.row < falling.target_row:
        falling = replace(falling, row=min(falling.row + event.rows, falling.target_row))
        effects.append(DropAdvanced(falling=falling))
        return replace(state, falling=falling), effects
    return _commit(state, effects), effects


def _on_clear_elapsed(state: SessionState, event: ClearElapsed) -> Outcome:
    if state.phase is not Phase.CLEARING:
        return state, []
    rows = state.highlighted
    lines_cleared = state.lines_cleared + len(rows)
    state = replace(
        state,
        grid=clear_rows(state.grid, rows),
        lines_cleared=lines_cleared,
        score=state.score + LINE_REWARD * len(rows),
        highlighted=(),
    )
    effects: List[Effect] = [LinesCleared(rows=rows, total=lines_cleared)]
    return _settle(state, effects), effects


_HANDLERS: Dict[Type, Callable[[SessionState, Event], Outcome]] = {
    Start: _on_start,
    TogglePause: _on_toggle_pause,
    Reset: _on_reset,
    SetDifficulty: _on_set_difficulty,
    Select: _on_select,
    PlacementDecided: _on_placement_decided,
    DropTick: _on_drop_tick,
    ClearElapsed: _on_clear_elapsed,
}


def transition(state: SessionState, event: Event) -> Outcome:
    """Apply ``event`` to ``state`` and return ``(new_state, effects)``.

    Events that make no sense in the current phase are ignored and produce no
    effects.

    Raises:
        TypeError: If ``event`` is not one of the known event types.
    """

    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown event: {event!r}")
    return handler(state, event)


__all__ = [
    "Phase",
    "FallingPiece",
    "SessionState",
    "placement_score",
    "transition",
    "Event",
    "Effect",
    "Start",
    "TogglePause",
    "Reset",
    "SetDifficulty",
    "Select",
    "PlacementDecided",
    "DropTick",
    "ClearElapsed",
    "SessionStarted",
    "PauseToggled",
    "SessionReset",
    "DifficultyChanged",
    "PieceQueued",
    "PieceRejected",
    "PlacementRequested",
    "PieceDiscarded",
    "DropStarted",
    "DropAdvanced",
    "PieceLocked",
    "LinesHighlighted",
    "LinesCleared",
    "GameCleared",
]
