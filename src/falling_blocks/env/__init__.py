"""Gymnasium environments for falling-blocks."""

from __future__ import annotations

from gymnasium.envs.registration import register

from .falling_blocks_env import ACTIONS, FallingBlocksEnv, compute_action_mask
from .wrappers import ActionMaskWrapper, ResampleInvalidActionWrapper

# Register the standard 10x20 board
register(
    id="FallingBlocks-10x20-v0",
    entry_point="falling_blocks.env.falling_blocks_env:FallingBlocksEnv",
)

__all__ = [
    "ACTIONS",
    "ActionMaskWrapper",
    "FallingBlocksEnv",
    "ResampleInvalidActionWrapper",
    "compute_action_mask",
]
