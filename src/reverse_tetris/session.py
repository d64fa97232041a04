"""Asyncio driver for the piece lifecycle state machine.

:class:`GameSession` owns the current :class:`~reverse_tetris.game_state.SessionState`
and is the only thing that feeds events into
:func:`~reverse_tetris.game_state.transition`.  It carries out the effects the
state machine asks for:

* ``PlacementRequested`` runs the placement engine synchronously on the
  current grid and feeds the answer straight back in.
* ``DropStarted`` spawns a task that ticks the falling piece down until it
  locks.
* ``LinesHighlighted`` spawns a task that waits ``clear_delay`` seconds and
  then removes the rows.

At most one of those tasks is alive at any time because the state machine
never starts a new piece while a drop or a clear is pending.  ``reset``
cancels the live task; anything it would have sent afterwards is ignored by
the state machine anyway.

Every effect is also handed to subscribed listeners, which is how a view
layer learns that it should redraw.  A listener that raises is logged and
skipped; it never stops the session from carrying out the effect.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

import numpy as np

from .ai import Placement, PlacementEngine
from .board import Grid
from .config import GameConfig
from .game_state import (
    ClearElapsed,
    DifficultyChanged,
    DropStarted,
    DropTick,
    Effect,
    Event,
    FallingPiece,
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
    transition,
)
from .tetromino import PieceType, Shape
from .utils import render_grid


LOGGER = logging.getLogger(__name__)

Listener = Callable[[Effect], None]


def _require_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        raise RuntimeError(
            "GameSession needs a running asyncio event loop to animate pieces"
        ) from None


class PlacementStrategy(Protocol):
    def find_best_placement(
        self, grid: Grid, shape: Shape, difficulty: Optional[str] = ...
    ) -> Optional[Placement]:
        ...


class GameSession:
    """Run one reverse-Tetris session on the current asyncio event loop."""

    def __init__(
        self,
        engine: Optional[PlacementStrategy] = None,
        *,
        config: Optional[GameConfig] = None,
    ) -> None:
        self.engine = engine if engine is not None else PlacementEngine()
        self.config = config or GameConfig()
        self._state = SessionState(
            difficulty=self.config.difficulty,
            queue_capacity=self.config.queue_capacity,
        )
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Begin the session.

        Raises:
            RuntimeError: If no asyncio event loop is running.
        """

        if self._state.playing:
            LOGGER.info("Start ignored: already playing")
            return
        _require_loop()
        self.dispatch(Start())

    def toggle_pause(self) -> None:
        if not self._state.playing:
            LOGGER.info("Pause ignored: not playing")
            return
        _require_loop()
        self.dispatch(TogglePause())

    def reset(self) -> None:
        self._cancel_task()
        self.dispatch(Reset())

    def set_difficulty(self, name: str) -> None:
        self.dispatch(SetDifficulty(name))

    def request_placement(self, piece: Union[PieceType, str]) -> None:
        """Ask for ``piece`` to be sent; queued if another piece is busy.

        Raises:
            ValueError: If ``piece`` is not one of the seven piece tags.
            RuntimeError: If no asyncio event loop is running.
        """

        selected = PieceType(piece)
        _require_loop()
        self.dispatch(Select(selected))

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every effect; returns an unsubscribe hook."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def grid(self) -> Grid:
        """Read-only view of the locked cells."""

        view = np.asarray(self._state.grid).view()
        view.flags.writeable = False
        return view

    @property
    def falling(self) -> Optional[FallingPiece]:
        return self._state.falling

    @property
    def highlighted_rows(self) -> tuple[int, ...]:
        return self._state.highlighted

    @property
    def selected(self) -> Optional[PieceType]:
        return self._state.selected

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def score(self) -> int:
        return self._state.score

    @property
    def pieces_sent(self) -> int:
        return self._state.pieces_sent

    @property
    def lines_cleared(self) -> int:
        return self._state.lines_cleared

    @property
    def max_height(self) -> int:
        return self._state.max_height

    @property
    def queue_length(self) -> int:
        return len(self._state.queue)

    @property
    def difficulty(self) -> str:
        return self._state.difficulty

    def render(self) -> List[List[int]]:
        """Return the grid with the falling piece and highlights overlaid."""

        falling = self._state.falling
        if falling is None:
            return render_grid(self._state.grid, highlighted=self._state.highlighted)
        return render_grid(
            self._state.grid,
            falling.piece,
            falling.shape,
            falling.column,
            falling.row,
            highlighted=self._state.highlighted,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Return a plain dict describing the session, for debugging."""

        state = self._state
        return {
            "phase": state.phase.value,
            "playing": state.playing,
            "paused": state.paused,
            "game_cleared": state.game_cleared,
            "difficulty": state.difficulty,
            "score": state.score,
            "pieces_sent": state.pieces_sent,
            "lines_cleared": state.lines_cleared,
            "max_height": state.max_height,
            "queue_length": len(state.queue),
            "selected": state.selected.value if state.selected else None,
            "highlighted": list(state.highlighted),
        }

    async def wait_until_idle(self) -> None:
        """Wait until no drop or clear task is pending.

        Exceptions raised inside a task are re-raised here.
        """

        while self._task is not None:
            task = self._task
            await asyncio.wait({task})
            if self._task is task:
                self._task = None
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]

    # ------------------------------------------------------------------
    # Event plumbing
    # ------------------------------------------------------------------
    def dispatch(self, event: Event) -> List[Effect]:
        """Feed ``event`` to the state machine and carry out its effects.

        Returns the effects produced directly by ``event``.
        """

        self._state, effects = transition(self._state, event)
        for effect in effects:
            self._log_effect(effect)
            for listener in list(self._listeners):
                try:
                    listener(effect)
                except Exception:
                    LOGGER.exception("Listener %r failed on %s", listener, type(effect).__name__)
            self._perform(effect)
        return effects

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, PlacementRequested):
            placement = self.engine.find_best_placement(
                self._state.grid, effect.piece.shape, effect.difficulty
            )
            self.dispatch(PlacementDecided(piece=effect.piece, placement=placement))
        elif isinstance(effect, DropStarted):
            self._schedule(self._run_drop())
        elif isinstance(effect, LinesHighlighted):
            self._schedule(self._run_clear())

    def _schedule(self, coro) -> None:
        try:
            loop = _require_loop()
        except RuntimeError:
            coro.close()
            raise
        self._task = loop.create_task(coro)

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run_drop(self) -> None:
        while True:
            effects = self.dispatch(DropTick(rows=self.config.drop_step_rows))
            if not effects or any(isinstance(e, PieceLocked) for e in effects):
                return
            await asyncio.sleep(self.config.drop_step_interval)

    async def _run_clear(self) -> None:
        await asyncio.sleep(self.config.clear_delay)
        self.dispatch(ClearElapsed())

    def _log_effect(self, effect: Effect) -> None:
        if isinstance(effect, SessionStarted):
            LOGGER.info("Game started")
        elif isinstance(effect, PauseToggled):
            LOGGER.info("Game %s", "paused" if effect.paused else "resumed")
        elif isinstance(effect, SessionReset):
            LOGGER.info("Game reset")
        elif isinstance(effect, DifficultyChanged):
            if effect.fell_back:
                LOGGER.warning(
                    "Unknown difficulty %r, using %r", effect.requested, effect.difficulty
                )
            else:
                LOGGER.info("Difficulty set to: %s", effect.difficulty)
        elif isinstance(effect, PieceQueued):
            LOGGER.debug("Queued %s (%d waiting)", effect.piece.value, effect.queue_length)
        elif isinstance(effect, PieceRejected):
            LOGGER.debug("Queue full, dropped %s", effect.piece.value)
        elif isinstance(effect, PieceDiscarded):
            LOGGER.warning("No legal placement for %s, piece discarded", effect.piece.value)
        elif isinstance(effect, PieceLocked):
            LOGGER.info("Piece placed at %d %d", effect.column, effect.row)
        elif isinstance(effect, LinesHighlighted):
            LOGGER.debug("Completed lines found: %s", list(effect.rows))
        elif isinstance(effect, LinesCleared):
            LOGGER.info("Lines cleared: %d Total: %d", len(effect.rows), effect.total)
        elif isinstance(effect, GameCleared):
            LOGGER.info("Game clear! Blocks reached the top rows, score %d", effect.score)


__all__ = ["GameSession", "PlacementStrategy", "Listener"]
