"""Game module for falling-blocks.

Exports the simulation engine and supporting classes:
- Board: Locked-cell matrix and line clearing
- ActivePiece / PieceCatalog: Tetromino shapes, rotation states and colours
- ScoringRules: Line awards, drop bonuses, levels and gravity speed
- EngineConfig / ScoringConfig: Validated configuration and typed patches
- GameLoop: Tick driver, command handling and game-over detection
"""

from .config import (
    EngineConfig,
    EngineConfigPatch,
    ScoringConfig,
    ScoringConfigPatch,
    merge_engine_config,
    merge_scoring_config,
    validate_config,
)
from .core import Command, GameLoop, GameState, Phase
from .effects import LineEffectState, Particle, tick_particles
from .events import (
    GameEvent,
    GameOverEvent,
    GameResetEvent,
    HardDropEvent,
    LevelUpEvent,
    LineClearEvent,
    MoveEvent,
    PieceLockedEvent,
)
from .grid import Board, Cell, LineClearResult, clear_lines, lock_piece
from .movement import Placement, drop_distance, ghost_piece, hard_drop, is_valid_position, try_move, try_rotate
from .pieces import ActivePiece, PieceCatalog, TetrominoType, hex_to_rgb
from .rules import ScoringRules

__all__ = [
    "ActivePiece",
    "Board",
    "Cell",
    "Command",
    "EngineConfig",
    "EngineConfigPatch",
    "GameEvent",
    "GameLoop",
    "GameOverEvent",
    "GameResetEvent",
    "GameState",
    "HardDropEvent",
    "LevelUpEvent",
    "LineClearEvent",
    "LineClearResult",
    "LineEffectState",
    "MoveEvent",
    "Particle",
    "Phase",
    "PieceCatalog",
    "PieceLockedEvent",
    "Placement",
    "ScoringConfig",
    "ScoringConfigPatch",
    "ScoringRules",
    "TetrominoType",
    "clear_lines",
    "drop_distance",
    "ghost_piece",
    "hex_to_rgb",
    "hard_drop",
    "is_valid_position",
    "lock_piece",
    "merge_engine_config",
    "merge_scoring_config",
    "tick_particles",
    "try_move",
    "try_rotate",
    "validate_config",
]
