"""Session tracking and derived play statistics."""

from .calculator import (
    AdvancedMetrics,
    SessionSummary,
    StatisticsCalculator,
    StatisticsService,
    format_statistics,
    summarize_statistics,
    validate_statistics,
)
from .highscores import (
    MAX_HIGH_SCORES,
    create_high_score,
    high_score_rank,
    high_score_summary,
    insert_high_score,
    is_high_score,
    sort_high_scores,
    validate_high_score,
    validate_player_name,
)
from .periods import ALL_TIME, STATISTICS_PERIODS, THIS_MONTH, THIS_WEEK, TODAY, PeriodFilter, StatisticsPeriod, period_by_label
from .storage import JsonFileStorage, MemoryStorage, StorageAdapter
from .store import SESSION_TIMEOUT, SessionStats, StatisticsStore, calculate_session_stats

__all__ = [
    "ALL_TIME",
    "AdvancedMetrics",
    "JsonFileStorage",
    "MAX_HIGH_SCORES",
    "MemoryStorage",
    "PeriodFilter",
    "SESSION_TIMEOUT",
    "STATISTICS_PERIODS",
    "SessionStats",
    "SessionSummary",
    "StatisticsCalculator",
    "StatisticsPeriod",
    "StatisticsService",
    "StatisticsStore",
    "StorageAdapter",
    "THIS_MONTH",
    "THIS_WEEK",
    "TODAY",
    "calculate_session_stats",
    "create_high_score",
    "format_statistics",
    "high_score_rank",
    "high_score_summary",
    "insert_high_score",
    "is_high_score",
    "period_by_label",
    "sort_high_scores",
    "summarize_statistics",
    "validate_high_score",
    "validate_player_name",
    "validate_statistics",
]
