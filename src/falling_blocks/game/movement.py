"""
Movement and collision validation.

Every function here is pure: it looks at a board and a candidate placement
and answers whether that placement is legal. The game loop decides what to do
with the answer.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence, Tuple

from .grid import Board
from .pieces import ActivePiece


# Rotation is rotate-or-reject; a kick table can be passed to try_rotate.
NO_KICKS: Tuple[Tuple[int, int], ...] = ((0, 0),)


class Placement(NamedTuple):
    valid: bool
    piece: ActivePiece


def is_valid_position(board: Board, piece: ActivePiece) -> bool:
    for x, y in piece.cells():
        if board.is_blocked(x, y):
            return False
    return True


def try_move(board: Board, piece: ActivePiece, dx: int, dy: int) -> Placement:
    candidate = piece.moved(dx, dy)
    if is_valid_position(board, candidate):
        return Placement(True, candidate)
    return Placement(False, piece)


def try_rotate(
    board: Board,
    piece: ActivePiece,
    delta: int = 1,
    kicks: Sequence[Tuple[int, int]] = NO_KICKS,
) -> Placement:
    rotated = piece.rotated(delta)
    for dx, dy in kicks:
        candidate = rotated.moved(dx, dy)
        if is_valid_position(board, candidate):
            return Placement(True, candidate)
    return Placement(False, piece)


def drop_distance(board: Board, piece: ActivePiece) -> int:
    distance = 0
    while is_valid_position(board, piece.moved(0, distance + 1)):
        distance += 1
    return distance


def hard_drop(board: Board, piece: ActivePiece) -> Tuple[ActivePiece, int]:
    """Return the landing placement and the number of rows descended."""
    distance = drop_distance(board, piece)
    return piece.moved(0, distance), distance


def ghost_piece(board: Board, piece: ActivePiece) -> ActivePiece:
    landed, _ = hard_drop(board, piece)
    return landed
