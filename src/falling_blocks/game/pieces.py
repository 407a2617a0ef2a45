from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Tuple

import numpy as np


class TetrominoType(IntEnum):
    I = 1
    O = 2
    T = 3
    S = 4
    Z = 5
    J = 6
    L = 7


Shape = np.ndarray


TETROMINO_COLORS: Dict[TetrominoType, str] = {
    TetrominoType.I: "#00ffff",
    TetrominoType.O: "#ffff00",
    TetrominoType.T: "#ff00ff",
    TetrominoType.S: "#00ff00",
    TetrominoType.Z: "#ff0000",
    TetrominoType.J: "#0000ff",
    TetrominoType.L: "#ff8000",
}


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    color = color.lstrip("#")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)


BASE_SHAPES: Dict[TetrominoType, Shape] = {
    TetrominoType.I: np.array([[0, 0, 0, 0], [1, 1, 1, 1], [0, 0, 0, 0], [0, 0, 0, 0]], dtype=np.int8),
    TetrominoType.O: np.array([[1, 1], [1, 1]], dtype=np.int8),
    TetrominoType.T: np.array([[0, 1, 0], [1, 1, 1], [0, 0, 0]], dtype=np.int8),
    TetrominoType.S: np.array([[0, 1, 1], [1, 1, 0], [0, 0, 0]], dtype=np.int8),
    TetrominoType.Z: np.array([[1, 1, 0], [0, 1, 1], [0, 0, 0]], dtype=np.int8),
    TetrominoType.J: np.array([[1, 0, 0], [1, 1, 1], [0, 0, 0]], dtype=np.int8),
    TetrominoType.L: np.array([[0, 0, 1], [1, 1, 1], [0, 0, 0]], dtype=np.int8),
}


def _rot90(shape: Shape, k: int) -> Shape:
    k = k % 4
    if k == 0:
        return shape
    return np.rot90(shape, k, axes=(1, 0))  # rotate clockwise when k>0


class PieceCatalog:
    """Fixed rotation matrices for the seven piece types.

    Rotation states are the distinct clockwise rotations of the base matrix,
    so the O piece has a single state and every other piece has four.
    """

    _ROTATIONS: Dict[TetrominoType, Tuple[Shape, ...]] = {}

    @classmethod
    def rotations(cls, kind: TetrominoType) -> Tuple[Shape, ...]:
        kind = TetrominoType(kind)
        cached = cls._ROTATIONS.get(kind)
        if cached is None:
            states: List[Shape] = []
            for r in range(4):
                shape = _rot90(BASE_SHAPES[kind], r).copy()
                if any(np.array_equal(shape, existing) for existing in states):
                    continue
                shape.flags.writeable = False
                states.append(shape)
            cached = tuple(states)
            cls._ROTATIONS[kind] = cached
        return cached

    @classmethod
    def rotation_count(cls, kind: TetrominoType) -> int:
        return len(cls.rotations(kind))

    @classmethod
    def shape_for(cls, kind: TetrominoType, rotation: int) -> Shape:
        states = cls.rotations(kind)
        return states[rotation % len(states)]

    @staticmethod
    def color_for(kind: TetrominoType) -> str:
        return TETROMINO_COLORS[TetrominoType(kind)]


@dataclass(frozen=True)
class ActivePiece:
    """A falling piece: type, rotation index and board position of its matrix."""
    kind: TetrominoType
    rotation: int = 0
    x: int = 0
    y: int = 0

    @classmethod
    def spawn(cls, kind: TetrominoType, board_width: int, spawn_y: int = 0) -> "ActivePiece":
        return cls(kind=TetrominoType(kind), rotation=0, x=board_width // 2 - 1, y=spawn_y)

    @property
    def color(self) -> str:
        return PieceCatalog.color_for(self.kind)

    def shape(self) -> Shape:
        return PieceCatalog.shape_for(self.kind, self.rotation)

    def moved(self, dx: int, dy: int) -> "ActivePiece":
        return ActivePiece(self.kind, self.rotation, self.x + dx, self.y + dy)

    def rotated(self, delta: int) -> "ActivePiece":
        count = PieceCatalog.rotation_count(self.kind)
        return ActivePiece(self.kind, (self.rotation + delta) % count, self.x, self.y)

    def cells(self) -> List[Tuple[int, int]]:
        return cells_at(self.shape(), self.x, self.y)


def cells_at(shape: Shape, origin_x: int, origin_y: int) -> List[Tuple[int, int]]:
    h, w = shape.shape
    cells: List[Tuple[int, int]] = []
    for dy in range(h):
        for dx in range(w):
            if shape[dy, dx]:
                cells.append((origin_x + dx, origin_y + dy))
    return cells
