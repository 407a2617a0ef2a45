"""falling-blocks: a deterministic falling-block puzzle engine with play statistics."""

from .errors import ConfigValidationError, EngineInvariantError, FallingBlocksError, StorageError
from .game import Command, EngineConfig, GameLoop, GameState, Phase, ScoringConfig
from .records import EnhancedStatistics, GameSession, GameStatistics, HighScore, SessionGame
from .stats import JsonFileStorage, MemoryStorage, StatisticsService, StatisticsStore

__version__ = "0.1.0"

__all__ = [
    "Command",
    "ConfigValidationError",
    "EngineConfig",
    "EngineInvariantError",
    "EnhancedStatistics",
    "FallingBlocksError",
    "GameLoop",
    "GameSession",
    "GameState",
    "GameStatistics",
    "HighScore",
    "JsonFileStorage",
    "MemoryStorage",
    "Phase",
    "ScoringConfig",
    "SessionGame",
    "StatisticsService",
    "StatisticsStore",
    "StorageError",
]
