from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from falling_blocks.game import (
    Command,
    EngineConfig,
    GameLoop,
    GameState,
    PieceCatalog,
    TetrominoType,
    hex_to_rgb,
    try_move,
    try_rotate,
)

# Discrete action index -> engine command
ACTIONS: Tuple[Command, ...] = (
    Command.MOVE_LEFT,
    Command.MOVE_RIGHT,
    Command.ROTATE,
    Command.ROTATE_CCW,
    Command.SOFT_DROP,
    Command.HARD_DROP,
)


def compute_action_mask(state: GameState) -> np.ndarray:
    """True for every action that would change the falling piece."""
    mask = np.zeros((len(ACTIONS),), dtype=np.bool_)
    piece = state.current_piece
    if piece is None or state.game_over:
        return mask
    board = state.board
    mask[0] = try_move(board, piece, -1, 0).valid
    mask[1] = try_move(board, piece, 1, 0).valid
    mask[2] = try_rotate(board, piece, 1).valid
    mask[3] = try_rotate(board, piece, -1).valid
    # Dropping either moves or locks the piece
    mask[4] = True
    mask[5] = True
    return mask


class FallingBlocksEnv(gym.Env):
    """One engine command per step, followed by one gravity tick.

    Reward is the score gained during the step, so drop bonuses count as well
    as line clears.
    """

    metadata = {"render_modes": ["rgb_array"], "render_fps": 30}

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        render_mode: Optional[str] = None,
        gravity: bool = True,
        max_episode_steps: int = 10_000,
        terminal_penalty: float = 0.0,
    ) -> None:
        super().__init__()
        self.loop = GameLoop(config)
        self.render_mode = render_mode
        self.gravity = gravity
        self.max_episode_steps = int(max_episode_steps)
        self.terminal_penalty = float(terminal_penalty)

        width, height = self.loop.config.width, self.loop.config.height
        n_kinds = len(TetrominoType)

        # Board: 0 empty, 1..7 locked kind, -1..-7 falling piece
        self.observation_space = spaces.Dict(
            {
                "board": spaces.Box(low=-n_kinds, high=n_kinds, shape=(height, width), dtype=np.int8),
                "next_piece": spaces.Discrete(n_kinds + 1),
                "level": spaces.Box(low=1, high=self.loop.config.scoring.max_level, shape=(1,), dtype=np.int32),
            }
        )
        self.action_space = spaces.Discrete(len(ACTIONS))
        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        state = self.loop.state
        next_kind = int(state.next_piece.kind) if state.next_piece is not None else 0
        return {
            "board": state.to_array().astype(np.int8),
            "next_piece": next_kind,
            "level": np.array([state.level], dtype=np.int32),
        }

    def _get_info(self) -> Dict[str, Any]:
        state = self.loop.state
        return {
            "action_mask": compute_action_mask(state),
            "score": state.score,
            "lines": state.lines,
            "level": state.level,
            "steps": self._steps,
        }

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        self.loop.reset(seed)
        self._steps = 0
        return self._get_obs(), self._get_info()

    def step(self, action: int):
        command = ACTIONS[int(action)]
        score_before = self.loop.state.score

        self.loop.dispatch(command)
        if self.gravity and command is not Command.HARD_DROP:
            self.loop.tick()

        state = self.loop.state
        self._steps += 1
        terminated = bool(state.game_over)
        truncated = not terminated and self._steps >= self.max_episode_steps

        reward = float(state.score - score_before)
        if terminated:
            reward += self.terminal_penalty

        info = self._get_info()
        info["score_delta"] = state.score - score_before
        return self._get_obs(), reward, terminated, truncated, info

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode != "rgb_array":
            return None
        grid = self.loop.state.to_array()
        cell = 12
        h, w = grid.shape
        img = np.zeros((h * cell, w * cell, 3), dtype=np.uint8)
        img[:, :] = (30, 30, 36)
        for y in range(h):
            for x in range(w):
                v = int(grid[y, x])
                if v == 0:
                    continue
                color = hex_to_rgb(PieceCatalog.color_for(TetrominoType(abs(v))))
                img[y * cell : (y + 1) * cell - 1, x * cell : (x + 1) * cell - 1, :] = color
        return img

    def close(self) -> None:
        pass
