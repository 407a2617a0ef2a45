from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple, Union

from .pieces import ActivePiece
from ..records import SessionGame


@dataclass(frozen=True)
class PieceLockedEvent:
    piece: ActivePiece


@dataclass(frozen=True)
class HardDropEvent:
    cells: int


@dataclass(frozen=True)
class MoveEvent:
    rotated: bool


@dataclass(frozen=True)
class LineClearEvent:
    rows_cleared: Tuple[int, ...]
    lines_cleared: int

    @property
    def is_tetris(self) -> bool:
        return self.lines_cleared == 4


@dataclass(frozen=True)
class LevelUpEvent:
    previous_level: int
    current_level: int


@dataclass(frozen=True)
class GameOverEvent:
    game: SessionGame


@dataclass(frozen=True)
class GameResetEvent:
    previous_score: int
    was_game_over: bool


GameEvent = Union[
    PieceLockedEvent,
    HardDropEvent,
    MoveEvent,
    LineClearEvent,
    LevelUpEvent,
    GameOverEvent,
    GameResetEvent,
]

EventListener = Callable[[GameEvent], None]
