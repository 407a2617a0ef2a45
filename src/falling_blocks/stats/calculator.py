"""
Derived play statistics.

Every function here is total: empty or degenerate input gives the documented
default (0, 100 for consistency, 1 for the favourite level) instead of NaN or
an exception, so callers only ever need a "no data" state.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..records import EnhancedStatistics, GameSession, GameStatistics, HighScore, SessionGame
from .periods import ALL_TIME, STATISTICS_PERIODS, PeriodFilter, StatisticsPeriod, period_by_label


@dataclass(frozen=True)
class SessionSummary:
    longest_session: float = 0.0
    session_count: int = 0
    last_play_date: float = 0.0
    lines_clearing_rate: float = 0.0
    score_per_line: float = 0.0


@dataclass(frozen=True)
class AdvancedMetrics:
    tetris_rate: float = 0.0
    average_game_duration: float = 0.0
    games_per_session: float = 0.0
    improvement_trend: float = 0.0


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def all_games(sessions: Sequence[GameSession]) -> List[SessionGame]:
    return [game for session in sessions for game in session.games]


class StatisticsCalculator:
    """Pure statistical helpers over finalized records"""

    @staticmethod
    def calculate_efficiency(total_lines: int, play_time_seconds: float) -> float:
        """Lines per minute."""
        if not play_time_seconds or play_time_seconds <= 0:
            return 0.0
        return round(_finite(total_lines / (play_time_seconds / 60.0)), 2)

    @staticmethod
    def calculate_consistency(scores: Sequence[float]) -> float:
        """100 minus the coefficient of variation in percent, floored at 0."""
        if len(scores) < 2:
            return 100.0
        values = np.asarray(scores, dtype=float)
        mean = float(np.mean(values))
        if mean == 0 or not math.isfinite(mean):
            return 100.0
        std = float(np.std(values))
        return round(max(0.0, 100.0 - (std / mean) * 100.0), 2)

    @staticmethod
    def find_favorite_level(sessions: Sequence[GameSession]) -> int:
        games = all_games(sessions)
        if not games:
            return 1
        # Equal counts go to the higher level
        level, _ = max(Counter(game.level for game in games).items(), key=lambda item: (item[1], item[0]))
        return int(level)

    @staticmethod
    def calculate_session_summary(sessions: Sequence[GameSession]) -> SessionSummary:
        if not sessions:
            return SessionSummary()
        games = all_games(sessions)
        total_lines = sum(g.lines for g in games)
        total_score = sum(g.score for g in games)
        lines_rate = total_lines / len(games) if games else 0.0
        per_line = total_score / total_lines if total_lines > 0 else 0.0
        return SessionSummary(
            longest_session=float(round(max(s.duration for s in sessions))),
            session_count=len(sessions),
            last_play_date=max(s.end_time for s in sessions),
            lines_clearing_rate=round(lines_rate, 2),
            score_per_line=round(per_line, 2),
        )

    @staticmethod
    def calculate_tetris_rate(sessions: Sequence[GameSession]) -> float:
        """Share of cleared lines that came from four-line clears, in percent."""
        games = all_games(sessions)
        total_lines = sum(g.lines for g in games)
        if total_lines <= 0:
            return 0.0
        total_tetris = sum(g.tetris_count for g in games)
        return round(total_tetris * 4 / total_lines * 100.0, 2)

    @staticmethod
    def calculate_average_game_duration(sessions: Sequence[GameSession]) -> float:
        games = all_games(sessions)
        if not games:
            return 0.0
        total_session_time = sum(s.duration for s in sessions)
        return float(round(total_session_time / len(games)))

    @staticmethod
    def calculate_improvement_trend(games: Sequence[SessionGame]) -> float:
        """Percent change of the mean score from the older half to the newer half."""
        if len(games) < 2:
            return 0.0
        ordered = sorted(games, key=lambda g: g.timestamp)
        half = len(ordered) // 2
        first = float(np.mean([g.score for g in ordered[:half]]))
        second = float(np.mean([g.score for g in ordered[half:]]))
        if first == 0:
            return 0.0
        return round(_finite((second - first) / first * 100.0), 2)


class StatisticsService:
    """Period-aware statistics for the analytics views."""

    @staticmethod
    def validate_period(label: str) -> StatisticsPeriod:
        return period_by_label(label)

    @staticmethod
    def calculate_enhanced_statistics(
        base: GameStatistics,
        sessions: Sequence[GameSession] = (),
        high_scores: Sequence[HighScore] = (),
    ) -> EnhancedStatistics:
        summary = StatisticsCalculator.calculate_session_summary(sessions)
        scores = [g.score for g in all_games(sessions)] or [hs.score for hs in high_scores]
        last_play = max([summary.last_play_date] + [hs.date for hs in high_scores])
        return EnhancedStatistics(
            base=base,
            efficiency=StatisticsCalculator.calculate_efficiency(base.total_lines, base.play_time),
            consistency=StatisticsCalculator.calculate_consistency(scores),
            longest_session=summary.longest_session,
            favorite_level=StatisticsCalculator.find_favorite_level(sessions),
            lines_clearing_rate=summary.lines_clearing_rate,
            score_per_line=summary.score_per_line,
            session_count=summary.session_count,
            last_play_date=last_play,
        )

    @classmethod
    def calculate_period_statistics(
        cls,
        base: GameStatistics,
        sessions: Sequence[GameSession],
        high_scores: Sequence[HighScore],
        period: StatisticsPeriod,
        now: float,
    ) -> EnhancedStatistics:
        filtered_sessions = PeriodFilter.filter_sessions(sessions, period, now)
        filtered_scores = PeriodFilter.filter_high_scores(high_scores, period, now)
        games = all_games(filtered_sessions)
        total_score = sum(g.score for g in games)
        period_base = GameStatistics(
            total_games=len(games),
            total_lines=sum(g.lines for g in games),
            total_score=total_score,
            best_score=max((g.score for g in games), default=0),
            average_score=total_score / len(games) if games else 0.0,
            play_time=sum(s.duration for s in filtered_sessions),
            best_streak=base.best_streak,
            tetris_count=sum(g.tetris_count for g in games),
        )
        return cls.calculate_enhanced_statistics(period_base, filtered_sessions, filtered_scores)

    @staticmethod
    def calculate_advanced_metrics(
        sessions: Sequence[GameSession],
        now: float,
        period: StatisticsPeriod = ALL_TIME,
    ) -> AdvancedMetrics:
        filtered = PeriodFilter.filter_sessions(sessions, period, now)
        games = all_games(filtered)
        games_per_session = len(games) / len(filtered) if filtered else 0.0
        return AdvancedMetrics(
            tetris_rate=StatisticsCalculator.calculate_tetris_rate(filtered),
            average_game_duration=StatisticsCalculator.calculate_average_game_duration(filtered),
            games_per_session=round(games_per_session, 2),
            improvement_trend=StatisticsCalculator.calculate_improvement_trend(games),
        )

    @staticmethod
    def available_periods() -> List[StatisticsPeriod]:
        return list(STATISTICS_PERIODS)


def validate_statistics(stats: EnhancedStatistics) -> bool:
    base = stats.base
    return not (
        base.total_games < 0
        or base.total_score < 0
        or stats.efficiency < 0
        or stats.consistency < 0
        or stats.consistency > 100
    )


def format_statistics(stats: EnhancedStatistics, tetris_rate: Optional[float] = None) -> Dict[str, str]:
    play_time = int(stats.base.play_time)
    hours, minutes = play_time // 3600, (play_time % 3600) // 60
    if tetris_rate is None:
        games = stats.base.total_games or 1
        tetris_rate = stats.base.tetris_count / games * 100.0
    return {
        "play_time": f"{hours}h {minutes}m",
        "efficiency": f"{stats.efficiency:.1f} LPM",
        "consistency": f"{stats.consistency:.1f}%",
        "score_per_line": f"{stats.score_per_line:.1f}",
        "tetris_rate": f"{tetris_rate:.1f}%",
    }


def summarize_statistics(current: EnhancedStatistics, previous: Optional[EnhancedStatistics] = None) -> Dict[str, object]:
    improvement = 0.0
    status = "stable"
    if previous is not None and previous.base.best_score > 0:
        improvement = (current.base.best_score - previous.base.best_score) / previous.base.best_score * 100.0
        if improvement > 5:
            status = "improving"
        elif improvement < -5:
            status = "declining"
    sign = "+" if improvement > 0 else ""
    return {
        "total_games": current.base.total_games,
        "best_score": current.base.best_score,
        "improvement": f"{sign}{improvement:.1f}%",
        "status": status,
    }
