from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import ConfigValidationError, StorageError
from ..game.config import EngineConfig, EngineConfigPatch, config_from_dict, config_to_dict, merge_engine_config
from ..game.core import GameLoop
from ..game.events import GameEvent, GameOverEvent, GameResetEvent
from ..records import EnhancedStatistics, GameSession, GameStatistics, HighScore, SessionGame
from .calculator import AdvancedMetrics, StatisticsService
from .highscores import MAX_HIGH_SCORES, create_high_score, insert_high_score, is_high_score, sort_high_scores
from .storage import MemoryStorage, StorageAdapter

logger = logging.getLogger(__name__)

SESSION_TIMEOUT = 30 * 60.0  # seconds


@dataclass(frozen=True)
class SessionStats:
    total_sessions: int = 0
    total_play_time: float = 0.0  # seconds
    total_games: int = 0
    average_session_time: float = 0.0
    average_games_per_session: float = 0.0


def _section(data: Dict[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise TypeError(f"{key} must be a {kind.__name__}, got {type(value).__name__}")
    return value


def calculate_session_stats(sessions: Tuple[GameSession, ...]) -> SessionStats:
    if not sessions:
        return SessionStats()
    total_play_time = sum(s.duration for s in sessions)
    total_games = sum(len(s.games) for s in sessions)
    return SessionStats(
        total_sessions=len(sessions),
        total_play_time=total_play_time,
        total_games=total_games,
        average_session_time=total_play_time / len(sessions),
        average_games_per_session=total_games / len(sessions),
    )


class StatisticsStore:
    """Play history owned by the host: lifetime counters, sessions, high scores and settings.

    The store listens to a `GameLoop` for finished and reset games but never
    feeds anything back into the simulation. Data is read and written through
    a `StorageAdapter`.
    """

    def __init__(
        self,
        storage: Optional[StorageAdapter] = None,
        *,
        clock: Callable[[], float] = time.time,
        session_timeout: float = SESSION_TIMEOUT,
        max_high_scores: int = MAX_HIGH_SCORES,
        autosave: bool = True,
        player_name: Optional[str] = None,
    ) -> None:
        self.storage = storage if storage is not None else MemoryStorage()
        self.clock = clock
        self.session_timeout = float(session_timeout)
        self.max_high_scores = int(max_high_scores)
        self.autosave = autosave
        self.player_name = player_name
        self.settings = EngineConfig()
        self.statistics = GameStatistics()
        self.high_scores: Tuple[HighScore, ...] = ()
        self.sessions: Tuple[GameSession, ...] = ()
        self.current_session: Optional[GameSession] = None
        self._last_activity = 0.0

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settings": config_to_dict(self.settings),
            "high_scores": [hs.to_dict() for hs in self.high_scores],
            "statistics": self.statistics.to_dict(),
            "sessions": [s.to_dict() for s in self.sessions],
        }

    def load(self) -> None:
        try:
            data = self.storage.load()
        except StorageError as exc:
            logger.warning("ignoring unreadable statistics: %s", exc)
            data = None
        if not data:
            return
        try:
            settings = config_from_dict(_section(data, "settings", dict))
            statistics = GameStatistics.from_dict(_section(data, "statistics", dict))
            high_scores = tuple(HighScore.from_dict(d) for d in _section(data, "high_scores", list))
            sessions = tuple(GameSession.from_dict(d) for d in _section(data, "sessions", list))
        except (AttributeError, KeyError, TypeError, ValueError, ConfigValidationError) as exc:
            logger.warning("ignoring malformed statistics payload: %s", exc)
            return
        self.settings = settings
        self.statistics = statistics
        self.high_scores = tuple(sort_high_scores(high_scores)[: self.max_high_scores])
        self.sessions = sessions

    def save(self) -> None:
        self.storage.save(self.to_dict())

    def clear(self) -> None:
        self.storage.clear()
        self.settings = EngineConfig()
        self.statistics = GameStatistics()
        self.high_scores = ()
        self.sessions = ()
        self.current_session = None

    def _changed(self) -> None:
        if not self.autosave:
            return
        # Runs inside game event delivery, so a failed write must not end the game
        try:
            self.save()
        except StorageError as exc:
            logger.warning("could not save statistics: %s", exc)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def update_settings(self, patch: EngineConfigPatch) -> EngineConfig:
        # merge_engine_config validates before anything is committed
        self.settings = merge_engine_config(self.settings, patch)
        self._changed()
        return self.settings

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _now(self, now: Optional[float]) -> float:
        return float(self.clock() if now is None else now)

    def start_session(self, now: Optional[float] = None) -> GameSession:
        now = self._now(now)
        if self.current_session is not None:
            self.end_session(self._last_activity)
        self.current_session = GameSession(id=f"session_{int(now * 1000)}", start_time=now, end_time=now)
        self._last_activity = now
        logger.debug("started session %s", self.current_session.id)
        return self.current_session

    def end_session(self, now: Optional[float] = None) -> Optional[GameSession]:
        session = self.current_session
        if session is None:
            return None
        end = max(session.end_time, self._now(now))
        closed = replace(session, end_time=end)
        self.sessions = self.sessions + (closed,)
        self.current_session = None
        logger.debug("closed session %s after %.0fs", closed.id, closed.duration)
        self._changed()
        return closed

    def touch(self, now: Optional[float] = None) -> GameSession:
        """Record activity, closing the current session first if it timed out."""
        now = self._now(now)
        if self.current_session is not None and now - self._last_activity > self.session_timeout:
            self.end_session(self._last_activity)
        if self.current_session is None:
            return self.start_session(now)
        self._last_activity = max(self._last_activity, now)
        self.current_session = replace(self.current_session, end_time=max(self.current_session.end_time, now))
        return self.current_session

    def all_sessions(self) -> Tuple[GameSession, ...]:
        """Closed sessions plus the one in progress."""
        if self.current_session is None:
            return self.sessions
        return self.sessions + (self.current_session,)

    def session_stats(self) -> SessionStats:
        return calculate_session_stats(self.sessions)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_game(self, game: SessionGame, player_name: Optional[str] = None) -> None:
        started = game.timestamp - game.duration
        if self.current_session is not None and started - self._last_activity > self.session_timeout:
            self.end_session(self._last_activity)
        if self.current_session is None:
            self.start_session(started)
        # The game itself was activity right up to its last move
        self._last_activity = max(self._last_activity, game.timestamp)
        self.current_session = self.current_session.with_game(game)
        stats = self.statistics
        total_score = stats.total_score + game.score
        self.statistics = replace(
            stats,
            total_score=total_score,
            total_lines=stats.total_lines + game.lines,
            tetris_count=stats.tetris_count + game.tetris_count,
            best_score=max(stats.best_score, game.score),
            play_time=stats.play_time + game.duration,
            average_score=total_score / stats.total_games if stats.total_games > 0 else 0.0,
        )
        if game.score > 0 and is_high_score(game.score, self.high_scores, self.max_high_scores):
            self.add_high_score(create_high_score(game.score, game.level, game.lines, game.timestamp, player_name))
        self._changed()

    def record_reset(self, now: Optional[float] = None) -> None:
        self.touch(now)
        stats = self.statistics
        total_games = stats.total_games + 1
        self.statistics = replace(stats, total_games=total_games, average_score=stats.total_score / total_games)
        self._changed()

    def add_high_score(self, entry: HighScore) -> None:
        self.high_scores = insert_high_score(self.high_scores, entry, self.max_high_scores)
        if entry.score > self.statistics.best_score:
            self.statistics = replace(self.statistics, best_score=entry.score)

    def clear_high_scores(self) -> None:
        self.high_scores = ()
        self._changed()

    def reset_statistics(self) -> None:
        self.statistics = GameStatistics()
        self.high_scores = ()
        self._changed()

    def handle_event(self, event: GameEvent) -> None:
        if isinstance(event, GameOverEvent):
            self.record_game(event.game, self.player_name)
        elif isinstance(event, GameResetEvent):
            self.record_reset()

    def attach(self, loop: GameLoop) -> Callable[[], None]:
        return loop.subscribe(self.handle_event)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def enhanced_statistics(self, period_label: str = "All Time", now: Optional[float] = None) -> EnhancedStatistics:
        period = StatisticsService.validate_period(period_label)
        return StatisticsService.calculate_period_statistics(
            self.statistics, self.all_sessions(), self.high_scores, period, self._now(now)
        )

    def advanced_metrics(self, period_label: str = "All Time", now: Optional[float] = None) -> AdvancedMetrics:
        period = StatisticsService.validate_period(period_label)
        return StatisticsService.calculate_advanced_metrics(self.all_sessions(), self._now(now), period)

    def recent_games(self, limit: int = 10) -> List[SessionGame]:
        games = [g for s in self.all_sessions() for g in s.games]
        return sorted(games, key=lambda g: g.timestamp, reverse=True)[:limit]
