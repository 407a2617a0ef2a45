from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional

import pygame

from falling_blocks.audio import AudioCueListener, PygameSoundPlayer, SilentSoundPlayer, SoundPlayer
from falling_blocks.game import Command, GameLoop, Phase
from falling_blocks.stats import JsonFileStorage, StatisticsStore, format_statistics
from .renderer import Renderer

logger = logging.getLogger(__name__)


KEY_TO_COMMAND: Dict[int, Command] = {
    pygame.K_LEFT: Command.MOVE_LEFT,
    pygame.K_RIGHT: Command.MOVE_RIGHT,
    pygame.K_UP: Command.ROTATE,
    pygame.K_z: Command.ROTATE_CCW,
    pygame.K_DOWN: Command.SOFT_DROP,
    pygame.K_SPACE: Command.HARD_DROP,
    pygame.K_p: Command.TOGGLE_PAUSE,
    pygame.K_r: Command.RESET,
    pygame.K_RETURN: Command.START,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Play falling-blocks with the keyboard")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--cell-size", type=int, default=28)
    p.add_argument("--stats", type=str, default=str(Path.home() / ".falling_blocks" / "stats.json"),
                   help="JSON file for settings, high scores and session history")
    p.add_argument("--sounds", type=str, default=None, help="directory with <cue>.wav samples")
    p.add_argument("--player", type=str, default=None)
    p.add_argument("--fps", type=int, default=60)
    return p


def status_message(loop: GameLoop) -> Optional[str]:
    if loop.phase is Phase.IDLE:
        return "Press ENTER to start"
    if loop.phase is Phase.PAUSED:
        return "Paused - P to resume"
    if loop.phase is Phase.GAME_OVER:
        return "Game Over - R to restart, ESC to quit"
    return None


def run(args: argparse.Namespace) -> None:
    store = StatisticsStore(JsonFileStorage(args.stats))
    store.load()

    settings = store.settings
    if args.seed is not None:
        settings = replace(settings, random_seed=args.seed)

    pygame.init()
    try:
        loop = GameLoop(settings)
        player: SoundPlayer = PygameSoundPlayer(args.sounds) if args.sounds else SilentSoundPlayer()
        loop.subscribe(AudioCueListener(player))
        store.attach(loop)
        store.player_name = args.player

        renderer = Renderer(cell_size=args.cell_size)
        screen = pygame.display.set_mode(renderer.window_size(settings.width, settings.height))
        pygame.display.set_caption("Falling Blocks")
        clock = pygame.time.Clock()

        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                        continue
                    command = KEY_TO_COMMAND.get(event.key)
                    if command is not None:
                        loop.dispatch(command)
                        store.touch()

            state = loop.advance(clock.tick(args.fps))
            renderer.draw(screen, state, status_message(loop))
    finally:
        # end_session autosaves
        store.end_session()
        pygame.quit()

    summary = format_statistics(store.enhanced_statistics())
    logger.info("play time %s, efficiency %s", summary["play_time"], summary["efficiency"])


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run(args)


if __name__ == "__main__":  # pragma: no cover
    main()
