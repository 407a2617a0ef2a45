"""
Finalized play-history records.

These are the only objects the statistics layer reads. They are produced by
the game loop and the statistics store and are never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class SessionGame:
    """One completed game."""
    score: int
    level: int
    lines: int
    tetris_count: int
    timestamp: float
    duration: float = 0.0  # seconds of running play

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionGame":
        return cls(
            score=int(data["score"]),
            level=int(data["level"]),
            lines=int(data["lines"]),
            tetris_count=int(data.get("tetris_count", 0)),
            timestamp=float(data["timestamp"]),
            duration=float(data.get("duration", 0.0)),
        )


@dataclass(frozen=True)
class GameSession:
    id: str
    start_time: float
    end_time: float
    games: Tuple[SessionGame, ...] = ()

    @property
    def duration(self) -> float:
        return max(0.0, self.end_time - self.start_time)

    def with_game(self, game: SessionGame) -> "GameSession":
        return GameSession(self.id, self.start_time, max(self.end_time, game.timestamp), self.games + (game,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "games": [g.to_dict() for g in self.games],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameSession":
        return cls(
            id=str(data["id"]),
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            games=tuple(SessionGame.from_dict(g) for g in data.get("games", [])),
        )


@dataclass(frozen=True)
class HighScore:
    id: str
    score: int
    level: int
    lines: int
    date: float
    player_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HighScore":
        return cls(
            id=str(data["id"]),
            score=int(data["score"]),
            level=int(data["level"]),
            lines=int(data["lines"]),
            date=float(data["date"]),
            player_name=data.get("player_name"),
        )


@dataclass(frozen=True)
class GameStatistics:
    """Lifetime counters. `play_time` is in seconds."""
    total_games: int = 0
    total_lines: int = 0
    total_score: int = 0
    best_score: int = 0
    average_score: float = 0.0
    play_time: float = 0.0
    best_streak: int = 0  # carried for storage compatibility, never computed
    tetris_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameStatistics":
        defaults = cls()
        return cls(
            total_games=int(data.get("total_games", defaults.total_games)),
            total_lines=int(data.get("total_lines", defaults.total_lines)),
            total_score=int(data.get("total_score", defaults.total_score)),
            best_score=int(data.get("best_score", defaults.best_score)),
            average_score=float(data.get("average_score", defaults.average_score)),
            play_time=float(data.get("play_time", defaults.play_time)),
            best_streak=int(data.get("best_streak", defaults.best_streak)),
            tetris_count=int(data.get("tetris_count", defaults.tetris_count)),
        )


@dataclass(frozen=True)
class EnhancedStatistics:
    """Derived statistics for one period. Recomputed, never stored."""
    base: GameStatistics = field(default_factory=GameStatistics)
    efficiency: float = 0.0  # lines per minute
    consistency: float = 100.0
    longest_session: float = 0.0  # seconds
    favorite_level: int = 1
    lines_clearing_rate: float = 0.0  # lines per game
    score_per_line: float = 0.0
    session_count: int = 0
    last_play_date: float = 0.0
