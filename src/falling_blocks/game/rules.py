from __future__ import annotations

from dataclasses import dataclass, field

from .config import EngineConfig, ScoringConfig


@dataclass(frozen=True)
class ScoreUpdate:
    score: int
    level: int
    lines: int
    gained: int
    leveled_up: bool


@dataclass
class ScoringRules:
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    initial_drop_ms: float = 1000.0
    drop_multiplier: float = 0.9
    min_drop_ms: float = 50.0

    @classmethod
    def from_config(cls, config: EngineConfig) -> "ScoringRules":
        return cls(
            scoring=config.scoring,
            initial_drop_ms=config.initial_drop_ms,
            drop_multiplier=config.drop_multiplier,
            min_drop_ms=config.min_drop_ms,
        )

    def score_for_lines(self, lines: int, level: int = 1) -> int:
        if lines <= 0:
            return 0
        table = self.scoring.line_clear_scores
        # Four rows is the tallest piece, so the table covers every real clear.
        return table[min(lines, len(table)) - 1] * level

    def soft_drop_points(self, cells: int) -> int:
        return max(0, cells) * self.scoring.soft_drop_bonus

    def hard_drop_points(self, cells: int) -> int:
        return max(0, cells) * self.scoring.hard_drop_bonus

    def level_for_lines(self, total_lines: int) -> int:
        level = 1 + max(0, total_lines) // self.scoring.lines_per_level
        return min(level, self.scoring.max_level)

    def drop_interval(self, level: int) -> float:
        interval = self.initial_drop_ms * self.drop_multiplier ** (max(1, level) - 1)
        return max(self.min_drop_ms, interval)

    def apply(self, score: int, level: int, lines: int, lines_cleared: int, drop_bonus: int = 0) -> ScoreUpdate:
        """Score a lock at the level in force when the piece landed."""
        gained = self.score_for_lines(lines_cleared, level) + max(0, drop_bonus)
        new_lines = lines + max(0, lines_cleared)
        new_level = max(level, self.level_for_lines(new_lines))
        return ScoreUpdate(
            score=score + gained,
            level=new_level,
            lines=new_lines,
            gained=gained,
            leveled_up=new_level > level,
        )
