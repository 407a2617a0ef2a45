"""Sound cue points.

The engine never plays audio itself. `AudioCueListener` subscribes to a
`GameLoop`, turns engine events into `SoundCue`s and hands them to whichever
`SoundPlayer` the host injected.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import pygame

from .game.events import (
    GameEvent,
    GameOverEvent,
    HardDropEvent,
    LevelUpEvent,
    LineClearEvent,
    MoveEvent,
)

logger = logging.getLogger(__name__)


class SoundCue(str, Enum):
    MOVE = "move"
    ROTATE = "rotate"
    HARD_DROP = "hard_drop"
    LINE_CLEAR = "line_clear"
    TETRIS = "tetris"
    LEVEL_UP = "level_up"
    GAME_OVER = "game_over"


class SoundPlayer(Protocol):
    def play(self, cue: SoundCue) -> None:
        ...


class SilentSoundPlayer:
    """Player for headless runs and muted hosts."""

    def play(self, cue: SoundCue) -> None:
        return None


class PygameSoundPlayer:
    """Plays one sample per cue through `pygame.mixer`.

    Samples are looked up as `<sound_dir>/<cue value>.wav` unless `files`
    overrides the name for a cue. Cues without a loadable sample stay silent.
    """

    def __init__(
        self,
        sound_dir: Union[str, Path],
        files: Optional[Dict[SoundCue, str]] = None,
        volume: float = 0.7,
    ) -> None:
        self.sound_dir = Path(sound_dir)
        self.volume = max(0.0, min(1.0, float(volume)))
        self._sounds: Dict[SoundCue, pygame.mixer.Sound] = {}
        if not pygame.mixer.get_init():
            pygame.mixer.init()
        names = {cue: f"{cue.value}.wav" for cue in SoundCue}
        names.update(files or {})
        for cue, name in names.items():
            path = self.sound_dir / name
            if not path.exists():
                continue
            try:
                sound = pygame.mixer.Sound(str(path))
            except pygame.error as exc:
                logger.warning("cannot load sound %s: %s", path, exc)
                continue
            sound.set_volume(self.volume)
            self._sounds[cue] = sound

    def play(self, cue: SoundCue) -> None:
        sound = self._sounds.get(cue)
        if sound is not None:
            sound.play()


def cue_for_event(event: GameEvent) -> Optional[SoundCue]:
    if isinstance(event, MoveEvent):
        return SoundCue.ROTATE if event.rotated else SoundCue.MOVE
    if isinstance(event, HardDropEvent):
        return SoundCue.HARD_DROP
    if isinstance(event, LineClearEvent):
        return SoundCue.TETRIS if event.is_tetris else SoundCue.LINE_CLEAR
    if isinstance(event, LevelUpEvent):
        return SoundCue.LEVEL_UP
    if isinstance(event, GameOverEvent):
        return SoundCue.GAME_OVER
    return None


class AudioCueListener:
    def __init__(self, player: Optional[SoundPlayer] = None, enabled: bool = True) -> None:
        self.player: SoundPlayer = player if player is not None else SilentSoundPlayer()
        self.enabled = enabled

    def __call__(self, event: GameEvent) -> None:
        if not self.enabled:
            return
        cue = cue_for_event(event)
        if cue is not None:
            self.player.play(cue)
