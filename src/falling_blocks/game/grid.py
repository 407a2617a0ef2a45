from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from .pieces import ActivePiece, PieceCatalog, TetrominoType


Coordinate = Tuple[int, int]


@dataclass(frozen=True)
class Cell:
    kind: Optional[TetrominoType] = None

    @property
    def occupied(self) -> bool:
        return self.kind is not None

    @property
    def color(self) -> Optional[str]:
        if self.kind is None:
            return None
        return PieceCatalog.color_for(self.kind)


EMPTY_CELL = Cell()


class Board:
    """Fixed-size cell matrix for locked blocks.

    The matrix uses 0 for empty cells and `TetrominoType` values for filled
    cells. Row 0 is the top of the board. A board is a read-only snapshot:
    locking a piece or clearing rows always produces a new `Board`.
    """

    def __init__(self, width: int, height: int, grid: Optional[np.ndarray] = None) -> None:
        self.width = int(width)
        self.height = int(height)
        if grid is None:
            grid = np.zeros((self.height, self.width), dtype=np.int8)
        else:
            grid = np.array(grid, dtype=np.int8)
            if grid.shape != (self.height, self.width):
                raise ValueError(f"grid shape {grid.shape} does not match {self.height}x{self.width}")
        grid.flags.writeable = False
        self.grid = grid

    @classmethod
    def empty(cls, width: int = 10, height: int = 20) -> "Board":
        return cls(width, height)

    @classmethod
    def from_rows(cls, rows: Iterable[Iterable[int]]) -> "Board":
        grid = np.array([list(r) for r in rows], dtype=np.int8)
        h, w = grid.shape
        return cls(w, h, grid)

    def is_inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_at(self, x: int, y: int) -> Cell:
        if not self.is_inside(x, y):
            return EMPTY_CELL
        value = int(self.grid[y, x])
        if value == 0:
            return EMPTY_CELL
        return Cell(TetrominoType(value))

    def is_blocked(self, x: int, y: int) -> bool:
        # Above the top edge is open space for spawning pieces.
        if x < 0 or x >= self.width or y >= self.height:
            return True
        if y < 0:
            return False
        return self.grid[y, x] != 0

    def full_rows(self) -> Tuple[int, ...]:
        return tuple(int(r) for r in np.where(np.all(self.grid != 0, axis=1))[0])

    def filled_count(self) -> int:
        return int(np.count_nonzero(self.grid))

    def get_max_height(self) -> int:
        # y=0 is top; find first non-empty from top
        non_empty_rows = np.where(np.any(self.grid != 0, axis=1))[0]
        if non_empty_rows.size == 0:
            return 0
        return self.height - int(non_empty_rows[0])

    def with_cells(self, cells: Iterable[Coordinate], value: int) -> "Board":
        grid = self.grid.copy()
        for x, y in cells:
            if 0 <= y < self.height and 0 <= x < self.width:
                grid[y, x] = value
        return Board(self.width, self.height, grid)

    def copy_state(self) -> np.ndarray:
        return self.grid.copy()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.width == other.width and self.height == other.height and np.array_equal(self.grid, other.grid)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Board({self.width}x{self.height}, filled={self.filled_count()})"


@dataclass(frozen=True)
class LineClearResult:
    board: Board
    lines_cleared: int
    cleared_rows: Tuple[int, ...]
    merged: Board  # board after merging, before rows were removed


def clear_lines(board: Board) -> LineClearResult:
    """Remove every full row and drop the rows above it."""
    full_rows = np.where(np.all(board.grid != 0, axis=1))[0]
    if full_rows.size == 0:
        return LineClearResult(board=board, lines_cleared=0, cleared_rows=(), merged=board)
    num = int(full_rows.size)
    # Remove full rows and add empty rows at the top
    remaining = np.delete(board.grid, full_rows, axis=0)
    new_rows = np.zeros((num, board.width), dtype=np.int8)
    grid = np.vstack((new_rows, remaining))
    return LineClearResult(
        board=Board(board.width, board.height, grid),
        lines_cleared=num,
        cleared_rows=tuple(int(r) for r in full_rows),
        merged=board,
    )


def lock_piece(board: Board, piece: ActivePiece) -> LineClearResult:
    """Merge `piece` into `board`, then clear full rows.

    Cells that are still above the top edge are discarded.
    """
    merged = board.with_cells(piece.cells(), int(piece.kind))
    return clear_lines(merged)
