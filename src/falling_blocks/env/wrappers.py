from __future__ import annotations

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .falling_blocks_env import compute_action_mask


class ActionMaskWrapper(gym.Wrapper):
    """Exposes `get_action_mask()` for maskable agents.

    The mask has one boolean per discrete action, in the order of
    `falling_blocks.env.ACTIONS`.
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)
        if not isinstance(env.action_space, spaces.Discrete):
            raise TypeError("ActionMaskWrapper needs a Discrete action space")

    def get_action_mask(self) -> np.ndarray:
        return compute_action_mask(self.env.unwrapped.loop.state)


class ResampleInvalidActionWrapper(gym.Wrapper):
    """If a sampled action would be rejected, resample uniformly among useful ones.

    Useful when training without action masking.
    """

    def step(self, action):  # type: ignore[override]
        mask = self.get_action_mask()
        if 0 <= int(action) < mask.shape[0] and not bool(mask[int(action)]):
            valid_idxs = np.flatnonzero(mask)
            if valid_idxs.size > 0:
                action = int(self.np_random.choice(valid_idxs))
        return self.env.step(action)

    def get_action_mask(self) -> np.ndarray:
        if hasattr(self.env, "get_action_mask"):
            return getattr(self.env, "get_action_mask")()
        return compute_action_mask(self.env.unwrapped.loop.state)
