from __future__ import annotations

import numpy as np
import pytest

from reverse_tetris.ai import Placement
from reverse_tetris.board import HEIGHT, WIDTH, Board
from reverse_tetris.game_state import (
    ClearElapsed,
    DifficultyChanged,
    DropAdvanced,
    DropStarted,
    DropTick,
    GameCleared,
    LinesCleared,
    LinesHighlighted,
    PauseToggled,
    Phase,
    PieceDiscarded,
    PieceLocked,
    PieceQueued,
    PieceRejected,
    PlacementDecided,
    PlacementRequested,
    Reset,
    Select,
    SessionReset,
    SessionStarted,
    SessionState,
    SetDifficulty,
    Start,
    TogglePause,
    placement_score,
    transition,
)
from reverse_tetris.tetromino import PieceType, rotate_shape


def _playing(**kwargs) -> SessionState:
    return SessionState(playing=True, **kwargs)


def _o_at(column: int, row: int) -> Placement:
    return Placement(column=column, row=row, rotation=0, shape=PieceType.O.shape)


def _land(state: SessionState):
    """Tick the falling piece until it locks; return the state and lock effects."""

    for _ in range(HEIGHT + 1):
        state, effects = transition(state, DropTick(rows=2))
        if any(isinstance(e, PieceLocked) for e in effects):
            return state, effects
    raise AssertionError("piece never locked")


def _send(state: SessionState, piece: PieceType, placement: Placement):
    state, _ = transition(state, Select(piece))
    state, _ = transition(state, PlacementDecided(piece, placement))
    return _land(state)


def test_select_is_ignored_unless_playing() -> None:
    state = SessionState()
    new_state, effects = transition(state, Select(PieceType.O))
    assert effects == []
    assert new_state is state

    paused = _playing(paused=True)
    assert transition(paused, Select(PieceType.O))[1] == []


def test_select_on_idle_session_requests_a_placement() -> None:
    state, effects = transition(_playing(difficulty="hard"), Select(PieceType.T))
    assert effects == [PlacementRequested(piece=PieceType.T, difficulty="hard")]
    assert state.phase is Phase.PROCESSING
    assert state.selected is PieceType.T


def test_busy_session_queues_until_capacity() -> None:
    state, _ = transition(_playing(), Select(PieceType.O))
    for i in range(5):
        state, effects = transition(state, Select(PieceType.I))
        assert effects == [PieceQueued(piece=PieceType.I, queue_length=i + 1)]
    state, effects = transition(state, Select(PieceType.Z))
    assert effects == [PieceRejected(piece=PieceType.Z)]
    assert state.queue == (PieceType.I,) * 5


def test_missing_placement_discards_piece_and_drains_queue() -> None:
    state, _ = transition(_playing(), Select(PieceType.O))
    state, _ = transition(state, Select(PieceType.T))
    state, effects = transition(state, PlacementDecided(PieceType.O, None))
    assert effects == [
        PieceDiscarded(piece=PieceType.O),
        PlacementRequested(piece=PieceType.T, difficulty="normal"),
    ]
    assert state.queue == ()
    assert state.pieces_sent == 0
    assert state.phase is Phase.PROCESSING
    assert not state.grid.any()


def test_drop_animates_from_top_then_locks() -> None:
    state, _ = transition(_playing(), Select(PieceType.O))
    state, effects = transition(state, PlacementDecided(PieceType.O, _o_at(4, 18)))
    assert isinstance(effects[0], DropStarted)
    assert state.falling.row == 0

    state, effects = transition(state, DropTick(rows=2))
    assert isinstance(effects[0], DropAdvanced)
    assert state.falling.row == 2
    assert not state.grid.any()

    state, effects = _land(state)
    assert state.falling is None
    assert effects[0] == PieceLocked(piece=PieceType.O, column=4, row=18, score=386)
    assert state.pieces_sent == 1
    assert state.score == placement_score(1, 0, 2) == 386
    assert state.phase is Phase.IDLE
    assert state.grid[18, 4] != 0 and state.grid[19, 5] != 0


def test_select_while_piece_is_falling_is_queued() -> None:
    state, _ = transition(_playing(), Select(PieceType.O))
    state, _ = transition(state, PlacementDecided(PieceType.O, _o_at(0, 18)))
    state, effects = transition(state, Select(PieceType.S))
    assert effects == [PieceQueued(piece=PieceType.S, queue_length=1)]


def test_lock_drains_next_queued_piece() -> None:
    state, _ = transition(_playing(), Select(PieceType.O))
    state, _ = transition(state, Select(PieceType.L))
    state, _ = transition(state, PlacementDecided(PieceType.O, _o_at(0, 18)))
    state, effects = _land(state)
    assert effects[-1] == PlacementRequested(piece=PieceType.L, difficulty="normal")
    assert state.phase is Phase.PROCESSING
    assert state.queue == ()


def test_completed_row_is_highlighted_then_cleared() -> None:
    board = Board()
    board.fill_row(HEIGHT - 1, skip=[WIDTH - 1])
    vertical_i = Placement(
        column=WIDTH - 1,
        row=HEIGHT - 4,
        rotation=1,
        shape=rotate_shape(PieceType.I.shape, 1),
    )
    state = _playing(grid=board.grid.copy())

    state, effects = _send(state, PieceType.I, vertical_i)
    assert effects[-1] == LinesHighlighted(rows=(HEIGHT - 1,))
    assert state.phase is Phase.CLEARING
    assert state.highlighted == (HEIGHT - 1,)
    assert state.score == placement_score(1, 0, 4) == 382

    # More requests wait while the highlight is showing.
    state, effects = transition(state, Select(PieceType.O))
    assert effects == [PieceQueued(piece=PieceType.O, queue_length=1)]

    state, effects = transition(state, ClearElapsed())
    assert effects[0] == LinesCleared(rows=(HEIGHT - 1,), total=1)
    assert effects[1] == PlacementRequested(piece=PieceType.O, difficulty="normal")
    assert state.lines_cleared == 1
    assert state.score == 392
    assert state.highlighted == ()
    assert state.grid.shape == (HEIGHT, WIDTH)
    assert not state.grid[0].any()
    assert list(np.flatnonzero(state.grid[HEIGHT - 1])) == [WIDTH - 1]
    assert int(np.count_nonzero(state.grid)) == 3


def test_stack_in_top_rows_ends_the_session() -> None:
    board = Board()
    board.stack(0, HEIGHT - 4)
    state = _playing(grid=board.grid.copy())

    state, effects = _send(state, PieceType.O, _o_at(0, 2))

    expected_score = placement_score(1, 0, HEIGHT - 2) + 100
    assert effects[-1] == GameCleared(score=expected_score, pieces_sent=1, lines_cleared=0)
    assert state.phase is Phase.TERMINAL
    assert state.game_cleared is True
    assert state.playing is False
    assert state.score == expected_score
    assert transition(state, Select(PieceType.I))[1] == []


def test_completion_bonus_depends_on_difficulty() -> None:
    board = Board()
    board.stack(0, HEIGHT - 4)
    state = _playing(grid=board.grid.copy(), difficulty="hard")
    state, effects = _send(state, PieceType.O, _o_at(0, 2))
    assert state.score == placement_score(1, 0, HEIGHT - 2) + 200


def test_stack_below_top_rows_keeps_playing() -> None:
    board = Board()
    board.stack(0, HEIGHT - 5)
    state = _playing(grid=board.grid.copy())
    state, effects = _send(state, PieceType.O, _o_at(0, 3))
    assert state.phase is Phase.IDLE
    assert not any(isinstance(e, GameCleared) for e in effects)


def test_pause_defers_queue_until_resumed() -> None:
    state = _playing(paused=True, queue=(PieceType.T,))
    state, effects = transition(state, TogglePause())
    assert effects == [
        PauseToggled(paused=False),
        PlacementRequested(piece=PieceType.T, difficulty="normal"),
    ]


def test_pause_does_not_interrupt_a_falling_piece() -> None:
    state, _ = transition(_playing(), Select(PieceType.O))
    state, _ = transition(state, Select(PieceType.I))
    state, _ = transition(state, PlacementDecided(PieceType.O, _o_at(0, 18)))
    state, effects = transition(state, TogglePause())
    assert effects == [PauseToggled(paused=True)]

    state, effects = _land(state)
    assert state.pieces_sent == 1
    assert state.phase is Phase.IDLE
    assert state.queue == (PieceType.I,)
    assert not any(isinstance(e, PlacementRequested) for e in effects)


def test_start_and_pause_only_apply_when_meaningful() -> None:
    state, effects = transition(SessionState(), TogglePause())
    assert effects == []
    state, effects = transition(state, Start())
    assert effects == [SessionStarted()]
    assert state.playing and not state.paused
    assert transition(state, Start())[1] == []


def test_reset_restores_initial_values_but_keeps_difficulty() -> None:
    state, _ = transition(_playing(difficulty="easy"), Select(PieceType.O))
    state, _ = transition(state, Select(PieceType.I))
    state, _ = transition(state, PlacementDecided(PieceType.O, _o_at(0, 18)))
    state, effects = transition(state, Reset())
    assert effects == [SessionReset()]
    assert state.phase is Phase.IDLE
    assert not state.playing
    assert state.queue == ()
    assert state.falling is None
    assert state.pieces_sent == 0 and state.score == 0
    assert state.difficulty == "easy"


def test_stale_timer_events_are_ignored() -> None:
    state = _playing()
    assert transition(state, DropTick())[1] == []
    assert transition(state, ClearElapsed())[1] == []
    assert transition(state, PlacementDecided(PieceType.O, _o_at(0, 18)))[1] == []


def test_unknown_difficulty_falls_back_to_normal() -> None:
    state, effects = transition(_playing(difficulty="hard"), SetDifficulty("insane"))
    assert state.difficulty == "normal"
    assert effects == [DifficultyChanged(requested="insane", difficulty="normal")]
    assert effects[0].fell_back


def test_score_never_goes_negative() -> None:
    assert placement_score(100, 0, 20) == 0
    assert placement_score(0, 0, 0) == 400


def test_unknown_event_type_is_an_error() -> None:
    with pytest.raises(TypeError):
        transition(SessionState(), object())  # type: ignore[arg-type]
