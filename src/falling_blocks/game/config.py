"""
Engine and scoring configuration.

Both configs are plain dataclasses with the classic defaults. Partial updates
go through the typed patch dataclasses and the matching ``merge_*`` function,
which validates the merged result before returning it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ConfigValidationError


@dataclass(frozen=True)
class ScoringConfig:
    """Score table, drop bonuses and level progression."""
    line_clear_scores: Tuple[int, int, int, int] = (100, 300, 500, 800)
    soft_drop_bonus: int = 1
    hard_drop_bonus: int = 2
    lines_per_level: int = 10
    max_level: int = 999


@dataclass(frozen=True)
class EngineConfig:
    width: int = 10
    height: int = 20
    spawn_y: int = 0
    initial_drop_ms: float = 1000.0
    drop_multiplier: float = 0.9
    min_drop_ms: float = 50.0
    flash_duration_ms: float = 300.0
    particles_per_cell: int = 3
    random_seed: Optional[int] = None
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


@dataclass(frozen=True)
class ScoringConfigPatch:
    line_clear_scores: Optional[Tuple[int, int, int, int]] = None
    soft_drop_bonus: Optional[int] = None
    hard_drop_bonus: Optional[int] = None
    lines_per_level: Optional[int] = None
    max_level: Optional[int] = None


@dataclass(frozen=True)
class EngineConfigPatch:
    width: Optional[int] = None
    height: Optional[int] = None
    spawn_y: Optional[int] = None
    initial_drop_ms: Optional[float] = None
    drop_multiplier: Optional[float] = None
    min_drop_ms: Optional[float] = None
    flash_duration_ms: Optional[float] = None
    particles_per_cell: Optional[int] = None
    random_seed: Optional[int] = None
    scoring: Optional[ScoringConfigPatch] = None


def scoring_config_errors(config: ScoringConfig) -> List[str]:
    errors: List[str] = []
    table = tuple(config.line_clear_scores)
    if len(table) != 4:
        errors.append(f"line_clear_scores must have 4 entries, got {len(table)}")
    else:
        if any(v < 0 for v in table):
            errors.append("line_clear_scores must be non-negative")
        if any(table[i] >= table[i + 1] for i in range(3)):
            errors.append("line_clear_scores must be strictly increasing (single < double < triple < tetris)")
    if config.soft_drop_bonus < 0:
        errors.append("soft_drop_bonus must be non-negative")
    if config.hard_drop_bonus < 0:
        errors.append("hard_drop_bonus must be non-negative")
    if config.lines_per_level < 1:
        errors.append("lines_per_level must be at least 1")
    if config.max_level < 1:
        errors.append("max_level must be at least 1")
    return errors


def engine_config_errors(config: EngineConfig) -> List[str]:
    errors: List[str] = []
    # A vertical I piece needs 4 rows and every piece needs 4 columns to spawn.
    if config.width < 4:
        errors.append("width must be at least 4")
    if config.height < 4:
        errors.append("height must be at least 4")
    if config.spawn_y < 0 or config.spawn_y >= config.height:
        errors.append("spawn_y must lie inside the board")
    if config.initial_drop_ms <= 0:
        errors.append("initial_drop_ms must be positive")
    if config.min_drop_ms <= 0:
        errors.append("min_drop_ms must be positive")
    if config.min_drop_ms > config.initial_drop_ms:
        errors.append("min_drop_ms must not exceed initial_drop_ms")
    if not 0 < config.drop_multiplier <= 1:
        errors.append("drop_multiplier must be in (0, 1]")
    if config.flash_duration_ms < 0:
        errors.append("flash_duration_ms must be non-negative")
    if config.particles_per_cell < 0:
        errors.append("particles_per_cell must be non-negative")
    errors.extend(f"scoring: {e}" for e in scoring_config_errors(config.scoring))
    return errors


def validate_config(config: EngineConfig) -> EngineConfig:
    """Return `config` unchanged or raise with every violated constraint."""
    errors = engine_config_errors(config)
    if errors:
        raise ConfigValidationError(errors)
    return config


def _apply(base, patch):
    changes = {}
    for f in fields(patch):
        value = getattr(patch, f.name)
        if value is not None:
            changes[f.name] = value
    return replace(base, **changes)


def merge_scoring_config(base: ScoringConfig, patch: ScoringConfigPatch) -> ScoringConfig:
    merged = _apply(base, patch)
    errors = scoring_config_errors(merged)
    if errors:
        raise ConfigValidationError(errors)
    return merged


def merge_engine_config(base: EngineConfig, patch: EngineConfigPatch) -> EngineConfig:
    scoring = base.scoring
    if patch.scoring is not None:
        scoring = _apply(base.scoring, patch.scoring)
    merged = replace(_apply(base, replace(patch, scoring=None)), scoring=scoring)
    return validate_config(merged)


def config_to_dict(config: EngineConfig) -> Dict[str, Any]:
    data = asdict(config)
    data["scoring"]["line_clear_scores"] = list(config.scoring.line_clear_scores)
    return data


def config_from_dict(data: Dict[str, Any]) -> EngineConfig:
    """Rebuild a validated config from `config_to_dict` output, ignoring unknown keys."""
    known = {f.name for f in fields(EngineConfig)} - {"scoring"}
    scoring_known = {f.name for f in fields(ScoringConfig)}
    scoring_data = {k: v for k, v in dict(data.get("scoring") or {}).items() if k in scoring_known}
    if "line_clear_scores" in scoring_data:
        scoring_data["line_clear_scores"] = tuple(scoring_data["line_clear_scores"])
    engine_data = {k: v for k, v in data.items() if k in known}
    return validate_config(EngineConfig(scoring=ScoringConfig(**scoring_data), **engine_data))
