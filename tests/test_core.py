from __future__ import annotations

import random
import threading

import pytest

from falling_blocks.errors import ConfigValidationError, EngineInvariantError
from falling_blocks.game import (
    ActivePiece,
    Command,
    EngineConfig,
    GameLoop,
    GameOverEvent,
    GameResetEvent,
    GameState,
    HardDropEvent,
    LevelUpEvent,
    LineClearEvent,
    Phase,
    PieceLockedEvent,
    TetrominoType,
)
from falling_blocks.game.effects import NO_EFFECT

from conftest import HEIGHT, WIDTH, FixedClock, board_with, make_loop, rows_filled_except


def _single_line_setup():
    """An O piece resting on row 19 that completes it when locked."""
    piece = ActivePiece(TetrominoType.O, 0, 4, HEIGHT - 2)
    holes = [cell for cell in piece.cells() if cell[1] == HEIGHT - 1]
    return board_with(rows_filled_except([HEIGHT - 1], holes)), piece


def _tetris_setup():
    piece = ActivePiece(TetrominoType.I, 1, 0, HEIGHT - 4)
    piece = piece.moved(-piece.cells()[0][0], 0)
    board = board_with(rows_filled_except(range(HEIGHT - 4, HEIGHT), piece.cells()))
    return board, piece


def test_new_loop_is_idle_and_ignores_movement():
    loop = GameLoop(EngineConfig(random_seed=1))
    before = loop.state
    assert loop.phase is Phase.IDLE
    assert loop.dispatch(Command.MOVE_LEFT) is before
    assert loop.tick() is before
    assert loop.advance(5000) is before
    assert loop.engine_time_ms == 0


def test_start_runs_game():
    loop = GameLoop(EngineConfig(random_seed=1))
    loop.start()
    assert loop.phase is Phase.RUNNING
    state = loop.state
    assert state.current_piece is not None and state.next_piece is not None
    assert state.score == 0 and state.level == 1 and state.lines == 0
    assert state.drop_interval_ms == 1000.0


def test_single_line_scores_by_level():
    board, piece = _single_line_setup()
    events = []
    loop = make_loop(board, piece, level=3, lines=20, score=50, listeners=[events.append])

    state = loop.dispatch(Command.SOFT_DROP)

    assert state.score == 50 + 100 * 3
    assert state.lines == 21
    assert state.level == 3
    assert state.board.filled_count() == 2
    assert [type(e) for e in events] == [PieceLockedEvent, LineClearEvent]
    assert events[1].rows_cleared == (HEIGHT - 1,)
    assert state.current_piece == ActivePiece.spawn(TetrominoType.T, WIDTH)


def test_tetris_scores_at_level_before_clear():
    board, piece = _tetris_setup()
    events = []
    loop = make_loop(board, piece, level=3, lines=20, listeners=[events.append])

    state = loop.dispatch(Command.SOFT_DROP)

    assert state.score == 800 * 3
    assert state.lines == 24
    assert state.tetris_count == 1
    assert state.board.filled_count() == 0
    clear = [e for e in events if isinstance(e, LineClearEvent)][0]
    assert clear.is_tetris
    assert clear.lines_cleared == 4


def test_level_up_speeds_up_gravity():
    board, piece = _single_line_setup()
    events = []
    loop = make_loop(board, piece, level=1, lines=9, listeners=[events.append])

    state = loop.dispatch(Command.SOFT_DROP)

    assert state.score == 100
    assert state.level == 2
    assert state.drop_interval_ms == pytest.approx(900.0)
    level_ups = [e for e in events if isinstance(e, LevelUpEvent)]
    assert level_ups == [LevelUpEvent(previous_level=1, current_level=2)]


def test_blocked_spawn_ends_game(clock):
    # Row 1 is nearly full, so every piece type overlaps it at spawn
    board = board_with([(x, 1) for x in range(WIDTH - 1)])
    piece = ActivePiece(TetrominoType.O, 0, 0, HEIGHT - 2)
    events = []
    loop = make_loop(board, piece, score=1234, level=2, lines=15, clock=clock, listeners=[events.append])
    loop.advance(250)

    state = loop.dispatch(Command.SOFT_DROP)

    assert state.game_over
    assert state.current_piece is None
    assert loop.phase is Phase.GAME_OVER
    over = [e for e in events if isinstance(e, GameOverEvent)]
    assert len(over) == 1
    game = over[0].game
    assert (game.score, game.level, game.lines, game.tetris_count) == (1234, 2, 15, 0)
    assert game.timestamp == clock.now
    assert game.duration == pytest.approx(0.25)

    # Terminal until reset
    assert loop.dispatch(Command.MOVE_LEFT) is state
    assert loop.tick() is state


def test_reset_after_game_over():
    board = board_with([(x, 1) for x in range(WIDTH - 1)])
    events = []
    loop = make_loop(board, ActivePiece(TetrominoType.O, 0, 0, HEIGHT - 2), score=10, listeners=[events.append])
    loop.dispatch(Command.HARD_DROP)
    assert loop.phase is Phase.GAME_OVER

    state = loop.dispatch(Command.RESET)

    assert loop.phase is Phase.RUNNING
    assert not state.game_over
    assert state.score == 0
    assert state.board.filled_count() == 0
    assert isinstance(events[-1], GameResetEvent)
    assert events[-1].was_game_over


def test_hard_drop_bonus(empty_board):
    piece = ActivePiece.spawn(TetrominoType.O, WIDTH)
    events = []
    loop = make_loop(empty_board, piece, listeners=[events.append])

    state = loop.dispatch(Command.HARD_DROP)

    assert state.score == 2 * (HEIGHT - 2)
    assert HardDropEvent(cells=HEIGHT - 2) in events
    assert state.board.filled_count() == 4


def test_soft_drop_bonus_only_on_command(empty_board):
    piece = ActivePiece.spawn(TetrominoType.O, WIDTH)
    loop = make_loop(empty_board, piece)

    state = loop.dispatch(Command.SOFT_DROP)
    assert state.score == 1
    assert state.current_piece.y == 1

    state = loop.tick()
    assert state.score == 1
    assert state.current_piece.y == 2


def test_rejected_move_leaves_state_untouched(empty_board):
    piece = ActivePiece(TetrominoType.O, 0, 0, 5)
    loop = make_loop(empty_board, piece)
    before = loop.state
    assert loop.dispatch(Command.MOVE_LEFT) is before


def test_pause_and_resume_are_idempotent(empty_board):
    loop = make_loop(empty_board, ActivePiece.spawn(TetrominoType.T, WIDTH))
    running = loop.state

    paused = loop.dispatch(Command.PAUSE)
    assert paused.is_paused
    assert loop.dispatch(Command.PAUSE) is paused
    assert loop.dispatch(Command.HARD_DROP) is paused
    assert loop.advance(10_000) is paused
    assert loop.tick() is paused
    assert loop.engine_time_ms == 0

    resumed = loop.dispatch(Command.RESUME)
    assert resumed == running
    assert loop.dispatch(Command.RESUME) is resumed


def test_toggle_pause(empty_board):
    loop = make_loop(empty_board, ActivePiece.spawn(TetrominoType.T, WIDTH))
    loop.dispatch(Command.TOGGLE_PAUSE)
    assert loop.phase is Phase.PAUSED
    loop.dispatch(Command.TOGGLE_PAUSE)
    assert loop.phase is Phase.RUNNING


def test_advance_runs_gravity_per_interval(empty_board):
    loop = make_loop(empty_board, ActivePiece.spawn(TetrominoType.T, WIDTH))
    assert loop.advance(999).current_piece.y == 0
    assert loop.advance(1).current_piece.y == 1
    assert loop.advance(3000).current_piece.y == 4
    assert loop.engine_time_ms == pytest.approx(4000)


def test_line_effect_expires_after_flash():
    board, piece = _single_line_setup()
    loop = make_loop(board, piece)
    state = loop.dispatch(Command.SOFT_DROP)
    effect = state.line_effect
    assert effect.flashing_lines == (HEIGHT - 1,)
    assert effect.shaking
    assert len(effect.particles) == WIDTH * 3

    assert loop.advance(299).line_effect is effect
    assert loop.advance(1).line_effect == NO_EFFECT


def test_load_state_rejects_overlap():
    board = board_with([(4, 0)])
    loop = GameLoop(EngineConfig(random_seed=1))
    state = GameState(
        board=board,
        current_piece=ActivePiece.spawn(TetrominoType.O, WIDTH),
        next_piece=ActivePiece.spawn(TetrominoType.T, WIDTH),
    )
    with pytest.raises(EngineInvariantError):
        loop.load_state(state)


def test_live_game_needs_next_piece(empty_board):
    loop = GameLoop(EngineConfig(random_seed=1))
    state = GameState(board=empty_board, current_piece=ActivePiece.spawn(TetrominoType.O, WIDTH), next_piece=None)
    with pytest.raises(EngineInvariantError):
        loop.load_state(state)


def test_invalid_config_is_rejected_before_construction():
    with pytest.raises(ConfigValidationError):
        GameLoop(EngineConfig(width=2))


def _play(loop: GameLoop, commands):
    states = []
    for command in commands:
        states.append(loop.dispatch(command))
        states.append(loop.advance(120))
    return states


def _random_commands(seed: int, n: int):
    rng = random.Random(seed)
    moves = [Command.MOVE_LEFT, Command.MOVE_RIGHT, Command.ROTATE, Command.ROTATE_CCW, Command.SOFT_DROP, Command.HARD_DROP]
    return [rng.choice(moves) for _ in range(n)]


def test_same_seed_same_game():
    commands = _random_commands(3, 400)
    a = GameLoop(EngineConfig(random_seed=42), clock=FixedClock())
    b = GameLoop(EngineConfig(random_seed=42), clock=FixedClock())
    a.start()
    b.start()
    assert _play(a, commands) == _play(b, commands)


def test_score_never_decreases_and_pieces_never_overlap():
    from falling_blocks.game import is_valid_position

    loop = GameLoop(EngineConfig(random_seed=5), clock=FixedClock())
    loop.start()
    last = 0
    for state in _play(loop, _random_commands(11, 600)):
        assert state.score >= last
        last = state.score
        if state.current_piece is not None:
            assert is_valid_position(state.board, state.current_piece)
        if state.game_over:
            break


def test_unsubscribe(empty_board):
    events = []
    loop = make_loop(empty_board, ActivePiece.spawn(TetrominoType.O, WIDTH))
    unsubscribe = loop.subscribe(events.append)
    loop.dispatch(Command.MOVE_LEFT)
    unsubscribe()
    loop.dispatch(Command.MOVE_LEFT)
    assert len(events) == 1


def test_to_array_marks_falling_piece(empty_board):
    piece = ActivePiece.spawn(TetrominoType.O, WIDTH)
    loop = make_loop(empty_board, piece)
    grid = loop.state.to_array()
    for x, y in piece.cells():
        assert grid[y, x] == -int(TetrominoType.O)
    assert (grid != 0).sum() == 4


def test_listeners_run_after_the_lock_is_released():
    board = board_with([(x, 1) for x in range(WIDTH - 1)])
    loop = make_loop(board, ActivePiece(TetrominoType.O, 0, 0, HEIGHT - 2))
    finished = []

    def on_event(event):
        if isinstance(event, GameOverEvent):
            # A second thread must be able to enter the loop while we are still in the listener
            worker = threading.Thread(target=lambda: finished.append(loop.tick()))
            worker.start()
            worker.join(timeout=2.0)
            assert not worker.is_alive()

    loop.subscribe(on_event)
    state = loop.dispatch(Command.HARD_DROP)
    assert state.game_over
    assert finished == [state]


def test_listener_can_reset_from_game_over():
    board = board_with([(x, 1) for x in range(WIDTH - 1)])
    events = []
    loop = make_loop(board, ActivePiece(TetrominoType.O, 0, 0, HEIGHT - 2), listeners=[events.append])
    loop.subscribe(lambda event: loop.reset() if isinstance(event, GameOverEvent) else None)

    loop.dispatch(Command.HARD_DROP)

    assert loop.phase is Phase.RUNNING
    assert [type(e) for e in events][-2:] == [GameOverEvent, GameResetEvent]
