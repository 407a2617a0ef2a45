from __future__ import annotations

import logging

import pytest

from falling_blocks.errors import ConfigValidationError, StorageError
from falling_blocks.game import ActivePiece, Command, EngineConfigPatch, GameOverEvent, TetrominoType
from falling_blocks.records import SessionGame
from falling_blocks.stats import JsonFileStorage, MemoryStorage, StatisticsStore, calculate_session_stats
from falling_blocks.stats.store import SESSION_TIMEOUT

from conftest import HEIGHT, WIDTH, board_with, make_loop


def _game(score, now, lines=0, level=1, tetris=0, duration=60.0):
    return SessionGame(score=score, level=level, lines=lines, tetris_count=tetris, timestamp=now, duration=duration)


def test_record_game_updates_lifetime_counters(clock):
    store = StatisticsStore(clock=clock)
    store.record_reset()
    store.record_game(_game(500, clock.now, lines=12, tetris=1, duration=90.0))

    stats = store.statistics
    assert stats.total_games == 1
    assert stats.total_score == 500
    assert stats.total_lines == 12
    assert stats.tetris_count == 1
    assert stats.best_score == 500
    assert stats.average_score == 500
    assert stats.play_time == 90.0
    assert stats.best_streak == 0
    assert [h.score for h in store.high_scores] == [500]


def test_zero_score_is_not_a_high_score(clock):
    store = StatisticsStore(clock=clock)
    store.record_game(_game(0, clock.now))
    assert store.high_scores == ()


def test_game_joins_current_session(clock):
    store = StatisticsStore(clock=clock)
    store.record_game(_game(100, clock.now, duration=120.0))
    clock.advance(300)
    store.record_game(_game(200, clock.now))
    session = store.current_session
    assert session is not None
    assert [g.score for g in session.games] == [100, 200]
    assert session.start_time == clock.now - 300 - 120.0
    assert session.end_time == clock.now


def test_inactivity_closes_session(clock):
    store = StatisticsStore(clock=clock)
    first = store.touch()
    clock.advance(100)
    assert store.touch().id == first.id
    clock.advance(SESSION_TIMEOUT + 1)
    second = store.touch()
    assert second.id != first.id
    assert len(store.sessions) == 1
    assert store.sessions[0].end_time == first.start_time + 100


def test_end_session(clock):
    store = StatisticsStore(clock=clock)
    assert store.end_session() is None
    store.start_session()
    clock.advance(50)
    closed = store.end_session()
    assert closed.duration == 50
    assert store.current_session is None
    assert store.session_stats().total_sessions == 1


def test_session_stats():
    assert calculate_session_stats(()).total_sessions == 0
    store = StatisticsStore(clock=lambda: 1000.0)
    store.record_game(_game(10, 1000.0, duration=100.0))
    store.end_session(1000.0)
    stats = store.session_stats()
    assert stats.total_sessions == 1
    assert stats.total_games == 1
    assert stats.total_play_time == 100.0
    assert stats.average_games_per_session == 1.0


def test_store_follows_game_loop(clock):
    store = StatisticsStore(clock=clock)
    board = board_with([(x, 1) for x in range(WIDTH - 1)])
    loop = make_loop(board, ActivePiece(TetrominoType.O, 0, 0, HEIGHT - 2), score=700, level=2, lines=12, clock=clock)
    store.attach(loop)

    loop.dispatch(Command.HARD_DROP)
    assert store.statistics.total_score == 700
    assert store.statistics.total_lines == 12
    assert store.high_scores[0].score == 700
    assert store.current_session.games[-1].level == 2

    loop.dispatch(Command.RESET)
    assert store.statistics.total_games == 1


def test_player_name_is_used_for_high_scores(clock):
    store = StatisticsStore(clock=clock, player_name="ada")
    board = board_with([(x, 1) for x in range(WIDTH - 1)])
    loop = make_loop(board, ActivePiece(TetrominoType.O, 0, 0, HEIGHT - 2), score=70, clock=clock)
    store.attach(loop)
    loop.dispatch(Command.HARD_DROP)
    assert store.high_scores[0].player_name == "ada"


def test_save_and_load(tmp_path, clock):
    path = tmp_path / "stats.json"
    store = StatisticsStore(JsonFileStorage(path), clock=clock)
    store.update_settings(EngineConfigPatch(width=12))
    store.record_reset()
    store.record_game(_game(900, clock.now, lines=9))
    store.end_session()

    restored = StatisticsStore(JsonFileStorage(path), clock=clock)
    restored.load()
    assert restored.settings.width == 12
    assert restored.statistics == store.statistics
    assert restored.high_scores == store.high_scores
    assert restored.sessions == store.sessions


def test_load_ignores_corrupt_file(tmp_path, clock):
    path = tmp_path / "stats.json"
    path.write_text("garbage", encoding="utf-8")
    store = StatisticsStore(JsonFileStorage(path), clock=clock)
    store.load()
    assert store.statistics.total_games == 0
    assert store.high_scores == ()


def test_load_ignores_malformed_payload(clock):
    storage = MemoryStorage({"high_scores": [{"score": 10}]})
    store = StatisticsStore(storage, clock=clock)
    store.load()
    assert store.high_scores == ()


@pytest.mark.parametrize(
    "payload",
    [
        {"statistics": "oops"},
        {"settings": [1, 2]},
        {"high_scores": {"id": "x"}},
        {"sessions": [{"id": "s", "start_time": 0, "end_time": 1, "games": [1, 2]}]},
    ],
)
def test_load_ignores_wrongly_typed_sections(payload, clock):
    store = StatisticsStore(MemoryStorage(payload), clock=clock)
    store.load()
    assert store.statistics.total_games == 0
    assert store.sessions == ()
    assert store.settings.width == 10


class FailingStorage(MemoryStorage):
    def save(self, data):
        raise StorageError("disk full")


def test_failed_autosave_does_not_stop_the_game(clock, caplog):
    store = StatisticsStore(FailingStorage(), clock=clock)
    board = board_with([(x, 1) for x in range(WIDTH - 1)])
    seen = []
    loop = make_loop(board, ActivePiece(TetrominoType.O, 0, 0, HEIGHT - 2), score=70, clock=clock)
    store.attach(loop)
    loop.subscribe(seen.append)

    with caplog.at_level(logging.WARNING, logger="falling_blocks.stats.store"):
        state = loop.dispatch(Command.HARD_DROP)

    assert state.game_over
    assert store.statistics.total_score == 70
    assert any(isinstance(e, GameOverEvent) for e in seen)
    assert "disk full" in caplog.text
    store.end_session()


def test_game_longer_than_timeout_keeps_one_session(clock):
    store = StatisticsStore(clock=clock)
    store.record_game(_game(800, clock.now, duration=3600.0))
    store.end_session()

    assert len(store.sessions) == 1
    session = store.sessions[0]
    assert session.start_time == clock.now - 3600.0
    assert session.end_time == clock.now
    assert [g.score for g in session.games] == [800]


def test_game_after_idle_gap_opens_new_session(clock):
    store = StatisticsStore(clock=clock)
    store.touch()
    clock.advance(SESSION_TIMEOUT + 600)
    store.record_game(_game(100, clock.now, duration=300.0))

    assert len(store.sessions) == 1
    assert store.sessions[0].games == ()
    assert store.current_session.start_time == clock.now - 300.0


def test_invalid_settings_are_not_committed(clock):
    store = StatisticsStore(clock=clock)
    with pytest.raises(ConfigValidationError):
        store.update_settings(EngineConfigPatch(height=1))
    assert store.settings.height == 20


def test_clear(clock):
    storage = MemoryStorage()
    store = StatisticsStore(storage, clock=clock)
    store.record_game(_game(100, clock.now))
    store.clear()
    assert storage.load() is None
    assert store.high_scores == ()
    assert store.current_session is None


def test_enhanced_statistics_include_current_session(clock):
    store = StatisticsStore(clock=clock)
    store.record_game(_game(100, clock.now, level=3, lines=5))
    stats = store.enhanced_statistics("Today")
    assert stats.session_count == 1
    assert stats.favorite_level == 3
    assert store.advanced_metrics().games_per_session == 1.0
    assert [g.score for g in store.recent_games()] == [100]
