from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Sequence, Tuple

from .grid import Board
from .pieces import PieceCatalog, TetrominoType


CELL_SIZE = 24
CELL_CENTER_OFFSET = 12
BOARD_POSITION_OFFSET = 8
POSITION_VARIANCE_X = 20
PARTICLE_LIFE = 20  # frames
PARTICLE_GRAVITY = 0.5


@dataclass(frozen=True)
class Particle:
    id: str
    x: float
    y: float
    vx: float
    vy: float
    color: str
    life: int


@dataclass(frozen=True)
class LineEffectState:
    """Transient line-clear feedback for the UI; never affects gameplay."""
    flashing_lines: Tuple[int, ...] = ()
    shaking: bool = False
    particles: Tuple[Particle, ...] = ()
    expires_at_ms: float = 0.0

    @property
    def active(self) -> bool:
        return bool(self.flashing_lines or self.shaking or self.particles)


NO_EFFECT = LineEffectState()


def create_particles(
    rows: Sequence[int],
    board: Board,
    rng: random.Random,
    per_cell: int = 3,
    serial: int = 0,
) -> Tuple[Particle, ...]:
    """Spawn particles from every occupied cell of the given rows of `board`."""
    particles = []
    for row in rows:
        for x in range(board.width):
            value = int(board.grid[row, x])
            if value == 0:
                continue
            color = PieceCatalog.color_for(TetrominoType(value))
            for i in range(per_cell):
                particles.append(
                    Particle(
                        id=f"{serial}-{row}-{x}-{i}",
                        x=float(x * CELL_SIZE + CELL_CENTER_OFFSET + BOARD_POSITION_OFFSET),
                        y=float(row * CELL_SIZE + CELL_CENTER_OFFSET + BOARD_POSITION_OFFSET),
                        vx=(rng.random() - 0.5) * POSITION_VARIANCE_X / 2.5,
                        vy=rng.random() * -4 - 2,
                        color=color,
                        life=PARTICLE_LIFE,
                    )
                )
    return tuple(particles)


def build_line_effect(
    rows: Sequence[int],
    merged: Board,
    rng: random.Random,
    now_ms: float,
    duration_ms: float,
    per_cell: int = 3,
    serial: int = 0,
) -> LineEffectState:
    if not rows:
        return NO_EFFECT
    return LineEffectState(
        flashing_lines=tuple(rows),
        shaking=True,
        particles=create_particles(rows, merged, rng, per_cell, serial),
        expires_at_ms=now_ms + duration_ms,
    )


def tick_particles(effect: LineEffectState, frames: int = 1) -> LineEffectState:
    """Age particles by `frames`, applying gravity and dropping dead ones."""
    if not effect.particles or frames <= 0:
        return effect
    alive = []
    for p in effect.particles:
        life = p.life - frames
        if life <= 0:
            continue
        vy = p.vy + PARTICLE_GRAVITY * frames
        alive.append(replace(p, x=p.x + p.vx * frames, y=p.y + vy * frames, vy=vy, life=life))
    return replace(effect, particles=tuple(alive))


def expire_effect(effect: LineEffectState, now_ms: float) -> LineEffectState:
    if effect.active and now_ms >= effect.expires_at_ms:
        return NO_EFFECT
    return effect
