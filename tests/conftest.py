from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

import numpy as np
import pytest

from falling_blocks.game import ActivePiece, Board, EngineConfig, GameLoop, GameState, TetrominoType

WIDTH, HEIGHT = 10, 20


class FixedClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


def board_with(cells: Iterable[Tuple[int, int]], value: int = int(TetrominoType.J)) -> Board:
    grid = np.zeros((HEIGHT, WIDTH), dtype=np.int8)
    for x, y in cells:
        grid[y, x] = value
    return Board(WIDTH, HEIGHT, grid)


def rows_filled_except(rows: Iterable[int], holes: Iterable[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Cells of `rows` filled completely apart from the `holes`."""
    skip = set(holes)
    return [(x, y) for y in rows for x in range(WIDTH) if (x, y) not in skip]


def make_loop(
    board: Board,
    piece: ActivePiece,
    *,
    next_kind: TetrominoType = TetrominoType.T,
    score: int = 0,
    level: int = 1,
    lines: int = 0,
    clock: Optional[FixedClock] = None,
    seed: int = 7,
    listeners=(),
) -> GameLoop:
    loop = GameLoop(EngineConfig(random_seed=seed), clock=clock or FixedClock(), listeners=listeners)
    state = GameState(
        board=board,
        current_piece=piece,
        next_piece=ActivePiece.spawn(next_kind, WIDTH),
        score=score,
        level=level,
        lines=lines,
        drop_interval_ms=loop.rules.drop_interval(level),
    )
    loop.load_state(state)
    return loop


@pytest.fixture
def empty_board() -> Board:
    return Board.empty(WIDTH, HEIGHT)
