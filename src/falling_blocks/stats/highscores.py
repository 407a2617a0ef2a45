from __future__ import annotations

import re
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from ..records import HighScore


MAX_HIGH_SCORES = 10
MAX_PLAYER_NAME = 20

_PLAYER_NAME = re.compile(r"^\w+$")


def sort_high_scores(high_scores: Sequence[HighScore]) -> List[HighScore]:
    """Highest score first; equal scores newest first."""
    return sorted(high_scores, key=lambda hs: (-hs.score, -hs.date))


def is_high_score(score: int, high_scores: Sequence[HighScore], max_scores: int = MAX_HIGH_SCORES) -> bool:
    if len(high_scores) < max_scores:
        return True
    lowest = sort_high_scores(high_scores)[-1]
    return score > lowest.score


def high_score_rank(score: int, high_scores: Sequence[HighScore], max_scores: int = MAX_HIGH_SCORES) -> Optional[int]:
    """1-based position `score` would take, or None if it does not qualify."""
    if not is_high_score(score, high_scores, max_scores):
        return None
    ordered = sort_high_scores(high_scores)
    for i, entry in enumerate(ordered):
        if score > entry.score:
            return i + 1
    return len(ordered) + 1


def insert_high_score(
    high_scores: Sequence[HighScore],
    entry: HighScore,
    max_scores: int = MAX_HIGH_SCORES,
) -> Tuple[HighScore, ...]:
    # Sorting newest-first among ties means the oldest of the lowest falls off.
    return tuple(sort_high_scores(list(high_scores) + [entry])[:max_scores])


def generate_high_score_id(now: float) -> str:
    return f"score_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"


def create_high_score(
    score: int,
    level: int,
    lines: int,
    now: float,
    player_name: Optional[str] = None,
) -> HighScore:
    return HighScore(
        id=generate_high_score_id(now),
        score=int(score),
        level=int(level),
        lines=int(lines),
        date=float(now),
        player_name=player_name,
    )


def validate_high_score(entry: HighScore) -> bool:
    return (
        isinstance(entry.id, str)
        and bool(entry.id)
        and entry.score >= 0
        and entry.level >= 1
        and entry.lines >= 0
        and entry.date > 0
        and (entry.player_name is None or isinstance(entry.player_name, str))
    )


def validate_player_name(name: str) -> bool:
    return 0 < len(name) <= MAX_PLAYER_NAME and bool(_PLAYER_NAME.match(name))


def high_score_summary(high_scores: Sequence[HighScore]) -> Dict[str, int]:
    if not high_scores:
        return {
            "total_scores": 0,
            "average_score": 0,
            "highest_score": 0,
            "lowest_score": 0,
            "average_level": 0,
            "average_lines": 0,
        }
    n = len(high_scores)
    return {
        "total_scores": n,
        "average_score": sum(hs.score for hs in high_scores) // n,
        "highest_score": max(hs.score for hs in high_scores),
        "lowest_score": min(hs.score for hs in high_scores),
        "average_level": sum(hs.level for hs in high_scores) // n,
        "average_lines": sum(hs.lines for hs in high_scores) // n,
    }
