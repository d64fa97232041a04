"""Scripted ASCII demo for the reverse Tetris engine.

Run with: `python -m reverse_tetris --pieces IOTSZJL --difficulty hard`

Every piece in ``--pieces`` is requested in turn with all animation delays
set to zero, then the final board and a one-line summary are printed.  With
``--burst`` the requests are fired back to back without waiting, so anything
beyond the queue capacity is dropped exactly as it would be for a fast
clicker.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .ai import CenterDropEngine, PlacementEngine
from .config import DIFFICULTY_PRESETS, GameConfig
from .session import GameSession
from .tetromino import PieceType


LOGGER = logging.getLogger(__name__)

_CELL_CHARS = {0: ".", -1: "="}


def _format_grid(grid: list[list[int]]) -> str:
    return "\n".join("".join(_CELL_CHARS.get(cell, "#") for cell in row) for row in grid)


def _piece_sequence(text: str) -> list[PieceType]:
    try:
        return [PieceType(ch) for ch in text.upper()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Unknown piece in {text!r}") from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--pieces",
        type=_piece_sequence,
        default="IOTSZJL",
        help="Piece tags to send, e.g. IOTSZJL.",
    )
    parser.add_argument("--repeat", type=int, default=1, help="Send the sequence N times.")
    parser.add_argument(
        "--difficulty",
        default="normal",
        help=f"One of {', '.join(DIFFICULTY_PRESETS)}; unknown names fall back to normal.",
    )
    parser.add_argument(
        "--burst",
        action="store_true",
        help="Fire all requests at once instead of waiting for each piece to settle.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the AI jitter.")
    parser.add_argument(
        "--engine",
        choices=("search", "center"),
        default="search",
        help="Placement strategy: heuristic search or plain centred drop.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (e.g. DEBUG, INFO, WARNING).",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> GameSession:
    if args.engine == "center":
        engine = CenterDropEngine()
    else:
        engine = PlacementEngine()
        engine.seed(args.seed)
    session = GameSession(engine, config=GameConfig.instant())
    session.set_difficulty(args.difficulty)
    session.start()
    for _ in range(max(1, args.repeat)):
        for piece in args.pieces:
            session.request_placement(piece)
            if args.burst:
                continue
            await session.wait_until_idle()
            if session.state.game_cleared:
                return session
    await session.wait_until_idle()
    return session


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(message)s"
    )
    try:
        session = asyncio.run(run(args))
    except Exception as exc:
        LOGGER.error("Failed to run the game: %s", exc)
        return 1

    print(_format_grid(session.render()))
    status = "GAME CLEAR" if session.state.game_cleared else "in progress"
    print(
        f"{status} | score={session.score} pieces={session.pieces_sent} "
        f"lines={session.lines_cleared} height={session.max_height} "
        f"difficulty={session.difficulty}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
