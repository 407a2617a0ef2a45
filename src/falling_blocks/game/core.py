from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Callable, Iterable, List, Optional

import numpy as np

from ..errors import EngineInvariantError
from ..records import SessionGame
from .config import EngineConfig, validate_config
from .effects import NO_EFFECT, LineEffectState, build_line_effect, expire_effect
from .events import (
    EventListener,
    GameEvent,
    GameOverEvent,
    GameResetEvent,
    HardDropEvent,
    LevelUpEvent,
    LineClearEvent,
    MoveEvent,
    PieceLockedEvent,
)
from .grid import Board, lock_piece
from .movement import hard_drop, is_valid_position, try_move, try_rotate
from .pieces import ActivePiece, TetrominoType
from .rules import ScoringRules

logger = logging.getLogger(__name__)


class Command(IntEnum):
    MOVE_LEFT = 0
    MOVE_RIGHT = 1
    ROTATE = 2
    ROTATE_CCW = 3
    SOFT_DROP = 4
    HARD_DROP = 5
    PAUSE = 6
    RESUME = 7
    TOGGLE_PAUSE = 8
    RESET = 9
    START = 10


MOVEMENT_COMMANDS = frozenset(
    {Command.MOVE_LEFT, Command.MOVE_RIGHT, Command.ROTATE, Command.ROTATE_CCW, Command.SOFT_DROP, Command.HARD_DROP}
)


class Phase(IntEnum):
    IDLE = 0
    RUNNING = 1
    PAUSED = 2
    GAME_OVER = 3


@dataclass(frozen=True)
class GameState:
    """Snapshot of one game, replaced after every tick or command."""
    board: Board
    current_piece: Optional[ActivePiece]
    next_piece: Optional[ActivePiece]
    score: int = 0
    level: int = 1
    lines: int = 0
    tetris_count: int = 0
    drop_interval_ms: float = 1000.0
    game_over: bool = False
    is_paused: bool = False
    line_effect: LineEffectState = NO_EFFECT

    def to_array(self) -> np.ndarray:
        # Overlay current piece on a copy of the board; negative marks the falling piece
        state = self.board.copy_state()
        if self.current_piece is not None and not self.game_over:
            for x, y in self.current_piece.cells():
                if 0 <= y < self.board.height and 0 <= x < self.board.width:
                    state[y, x] = -int(self.current_piece.kind)
        return state


class GameLoop:
    """Timing authority for one game instance.

    Gravity ticks, host time and commands all enter through `tick`, `advance`
    and `dispatch`. They share one re-entrant lock, so a command is always
    applied completely before or after a tick and never in between. Given the
    same seed and the same sequence of calls the resulting states are
    identical.

    Events raised by a call are queued while the lock is held and handed to
    listeners in order once it is released, so listeners may block or call
    back into the loop.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        clock: Callable[[], float] = time.time,
        listeners: Iterable[EventListener] = (),
    ) -> None:
        self.config = validate_config(config or EngineConfig())
        self.rules = ScoringRules.from_config(self.config)
        self.clock = clock
        self.rng = random.Random(self.config.random_seed)
        self.effect_rng = random.Random(self.config.random_seed)
        self._lock = threading.RLock()
        self._listeners: List[EventListener] = list(listeners)
        self._pending: List[GameEvent] = []
        self._engine_ms = 0.0
        self._gravity_ms = 0.0
        self._effect_serial = 0
        self.phase = Phase.IDLE
        self._state = self._new_state()

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def engine_time_ms(self) -> float:
        return self._engine_ms

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> GameState:
        return self.dispatch(Command.START)

    def load_state(self, state: GameState, phase: Phase = Phase.RUNNING) -> GameState:
        """Replace the current game with `state`, e.g. to resume a saved position."""
        with self._lock:
            if state.current_piece is not None and not is_valid_position(state.board, state.current_piece):
                raise EngineInvariantError("active piece overlaps the board")
            if phase is not Phase.GAME_OVER and (state.current_piece is None or state.next_piece is None):
                raise EngineInvariantError("a live game needs both a current and a next piece")
            self.phase = Phase(phase)
            self._state = replace(state, game_over=self.phase is Phase.GAME_OVER, is_paused=self.phase is Phase.PAUSED)
            self._gravity_ms = 0.0
            return self._state

    def reset(self, seed: Optional[int] = None) -> GameState:
        with self._lock:
            state = self._reset(seed)
            events = self._take_events()
        self._deliver(events)
        return state

    def tick(self) -> GameState:
        """Advance gravity by one step."""
        with self._lock:
            if self.phase is Phase.RUNNING:
                self._gravity_step()
            state = self._state
            events = self._take_events()
        self._deliver(events)
        return state

    def advance(self, elapsed_ms: float) -> GameState:
        """Feed host time into the loop, running every gravity tick that fell due."""
        with self._lock:
            state = self._advance(elapsed_ms)
            events = self._take_events()
        self._deliver(events)
        return state

    def dispatch(self, command: Command) -> GameState:
        with self._lock:
            state = self._dispatch(Command(command))
            events = self._take_events()
        self._deliver(events)
        return state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self, seed: Optional[int] = None) -> GameState:
        if seed is not None:
            self.rng.seed(seed)
            self.effect_rng.seed(seed)
        previous = self._state
        self._engine_ms = 0.0
        self._gravity_ms = 0.0
        self._state = self._new_state()
        self.phase = Phase.RUNNING
        logger.debug("game reset (previous score %d)", previous.score)
        self._emit([GameResetEvent(previous_score=previous.score, was_game_over=previous.game_over)])
        return self._state

    def _advance(self, elapsed_ms: float) -> GameState:
        elapsed_ms = max(0.0, float(elapsed_ms))
        if self.phase is Phase.RUNNING:
            self._engine_ms += elapsed_ms
            self._gravity_ms += elapsed_ms
            while self.phase is Phase.RUNNING and self._gravity_ms >= self._state.drop_interval_ms:
                self._gravity_ms -= self._state.drop_interval_ms
                self._gravity_step()
        elif self.phase is Phase.GAME_OVER:
            # Only the line-clear flash keeps running after the game ends.
            self._engine_ms += elapsed_ms
        if self.phase is not Phase.PAUSED:
            effect = expire_effect(self._state.line_effect, self._engine_ms)
            if effect is not self._state.line_effect:
                self._state = replace(self._state, line_effect=effect)
        return self._state

    def _dispatch(self, command: Command) -> GameState:
        if command is Command.RESET:
            return self._reset()
        if command is Command.START:
            if self.phase is Phase.IDLE:
                self.phase = Phase.RUNNING
            return self._state
        if command in (Command.PAUSE, Command.RESUME, Command.TOGGLE_PAUSE):
            self._set_paused(command)
            return self._state
        if self.phase is not Phase.RUNNING:
            return self._state
        self._apply_movement(command)
        return self._state

    def _random_piece(self) -> ActivePiece:
        kind = self.rng.choice(list(TetrominoType))
        return ActivePiece.spawn(kind, self.config.width, self.config.spawn_y)

    def _new_state(self) -> GameState:
        board = Board.empty(self.config.width, self.config.height)
        current = self._random_piece()
        nxt = self._random_piece()
        return GameState(
            board=board,
            current_piece=current,
            next_piece=nxt,
            level=1,
            drop_interval_ms=self.rules.drop_interval(1),
        )

    def _set_paused(self, command: Command) -> None:
        if command is Command.TOGGLE_PAUSE:
            if self.phase is Phase.RUNNING:
                command = Command.PAUSE
            elif self.phase is Phase.PAUSED:
                command = Command.RESUME
            else:
                return
        if command is Command.PAUSE and self.phase is Phase.RUNNING:
            self.phase = Phase.PAUSED
            self._state = replace(self._state, is_paused=True)
        elif command is Command.RESUME and self.phase is Phase.PAUSED:
            self.phase = Phase.RUNNING
            self._state = replace(self._state, is_paused=False)

    def _active_piece(self) -> ActivePiece:
        piece = self._state.current_piece
        if piece is None:
            raise EngineInvariantError("running game has no active piece")
        return piece

    def _apply_movement(self, command: Command) -> None:
        state = self._state
        piece = self._active_piece()
        if command is Command.MOVE_LEFT or command is Command.MOVE_RIGHT:
            dx = -1 if command is Command.MOVE_LEFT else 1
            placement = try_move(state.board, piece, dx, 0)
            if placement.valid:
                self._state = replace(state, current_piece=placement.piece)
                self._emit([MoveEvent(rotated=False)])
        elif command is Command.ROTATE or command is Command.ROTATE_CCW:
            delta = 1 if command is Command.ROTATE else -1
            placement = try_rotate(state.board, piece, delta)
            if placement.valid:
                self._state = replace(state, current_piece=placement.piece)
                self._emit([MoveEvent(rotated=True)])
        elif command is Command.SOFT_DROP:
            placement = try_move(state.board, piece, 0, 1)
            if placement.valid:
                self._state = replace(
                    state,
                    current_piece=placement.piece,
                    score=state.score + self.rules.soft_drop_points(1),
                )
            else:
                self._lock_piece(piece, drop_bonus=0)
        elif command is Command.HARD_DROP:
            landed, distance = hard_drop(state.board, piece)
            self._emit([HardDropEvent(cells=distance)])
            self._lock_piece(landed, drop_bonus=self.rules.hard_drop_points(distance))

    def _gravity_step(self) -> None:
        piece = self._active_piece()
        placement = try_move(self._state.board, piece, 0, 1)
        if placement.valid:
            self._state = replace(self._state, current_piece=placement.piece)
        else:
            self._lock_piece(piece, drop_bonus=0)

    def _lock_piece(self, piece: ActivePiece, drop_bonus: int) -> None:
        state = self._state
        next_piece = state.next_piece
        if next_piece is None:
            raise EngineInvariantError("next piece missing while locking")

        result = lock_piece(state.board, piece)
        update = self.rules.apply(state.score, state.level, state.lines, result.lines_cleared, drop_bonus)
        tetris_count = state.tetris_count + (1 if result.lines_cleared == 4 else 0)
        events: List[GameEvent] = [PieceLockedEvent(piece=piece)]

        line_effect = state.line_effect
        if result.lines_cleared:
            self._effect_serial += 1
            line_effect = build_line_effect(
                result.cleared_rows,
                result.merged,
                self.effect_rng,
                now_ms=self._engine_ms,
                duration_ms=self.config.flash_duration_ms,
                per_cell=self.config.particles_per_cell,
                serial=self._effect_serial,
            )
            events.append(LineClearEvent(rows_cleared=result.cleared_rows, lines_cleared=result.lines_cleared))
            logger.debug("cleared rows %s (+%d)", list(result.cleared_rows), update.gained)
        if update.leveled_up:
            events.append(LevelUpEvent(previous_level=state.level, current_level=update.level))
            logger.info("level up: %d -> %d", state.level, update.level)

        new_state = replace(
            state,
            board=result.board,
            score=update.score,
            level=update.level,
            lines=update.lines,
            tetris_count=tetris_count,
            drop_interval_ms=self.rules.drop_interval(update.level),
            line_effect=line_effect,
        )

        if is_valid_position(result.board, next_piece):
            self._state = replace(new_state, current_piece=next_piece, next_piece=self._random_piece())
        else:
            self._state = replace(new_state, current_piece=None, game_over=True)
            self.phase = Phase.GAME_OVER
            record = SessionGame(
                score=update.score,
                level=update.level,
                lines=update.lines,
                tetris_count=tetris_count,
                timestamp=float(self.clock()),
                duration=self._engine_ms / 1000.0,
            )
            events.append(GameOverEvent(game=record))
            logger.info("game over: score=%d level=%d lines=%d", record.score, record.level, record.lines)
        self._emit(events)

    def _emit(self, events: Iterable[GameEvent]) -> None:
        self._pending.extend(events)

    def _take_events(self) -> List[GameEvent]:
        events, self._pending = self._pending, []
        return events

    def _deliver(self, events: List[GameEvent]) -> None:
        for event in events:
            for listener in list(self._listeners):
                listener(event)
