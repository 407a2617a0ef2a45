from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..records import GameSession, HighScore, SessionGame


SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class StatisticsPeriod:
    label: str
    days: int

    @property
    def is_all_time(self) -> bool:
        return self.days <= 0

    def cutoff(self, now: float) -> float:
        if self.is_all_time:
            return 0.0
        return now - self.days * SECONDS_PER_DAY


TODAY = StatisticsPeriod("Today", 1)
THIS_WEEK = StatisticsPeriod("This Week", 7)
THIS_MONTH = StatisticsPeriod("This Month", 30)
ALL_TIME = StatisticsPeriod("All Time", 0)

STATISTICS_PERIODS: Tuple[StatisticsPeriod, ...] = (TODAY, THIS_WEEK, THIS_MONTH, ALL_TIME)


def period_by_label(label: str) -> StatisticsPeriod:
    """Look a period up by label; unknown labels mean all time."""
    for period in STATISTICS_PERIODS:
        if period.label == label:
            return period
    return ALL_TIME


class PeriodFilter:
    """Time-window filtering of finalized records."""

    @staticmethod
    def filter_sessions(sessions: Sequence[GameSession], period: StatisticsPeriod, now: float) -> List[GameSession]:
        if period.is_all_time:
            return list(sessions)
        cutoff = period.cutoff(now)
        return [s for s in sessions if s.start_time >= cutoff]

    @staticmethod
    def filter_games(games: Sequence[SessionGame], period: StatisticsPeriod, now: float) -> List[SessionGame]:
        if period.is_all_time:
            return list(games)
        cutoff = period.cutoff(now)
        return [g for g in games if g.timestamp >= cutoff]

    @staticmethod
    def filter_high_scores(high_scores: Sequence[HighScore], period: StatisticsPeriod, now: float) -> List[HighScore]:
        if period.is_all_time:
            return list(high_scores)
        cutoff = period.cutoff(now)
        return [hs for hs in high_scores if hs.date >= cutoff]
