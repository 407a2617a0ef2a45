from __future__ import annotations

from typing import Optional, Tuple

import pygame

from falling_blocks.game import GameState, LineEffectState, PieceCatalog, TetrominoType, ghost_piece, hex_to_rgb, tick_particles
from falling_blocks.game.effects import CELL_SIZE

BACKGROUND = (10, 10, 14)
BOARD_BACKGROUND = (30, 30, 36)
EMPTY_CELL = (20, 20, 26)
FLASH = (255, 255, 255)
TEXT = (230, 230, 230)


def _color_for_value(v: int) -> Tuple[int, int, int]:
    if v == 0:
        return EMPTY_CELL
    return hex_to_rgb(PieceCatalog.color_for(TetrominoType(abs(v))))


class Renderer:
    def __init__(self, cell_size: int = 30, margin: int = 20, panel_width: int = 160) -> None:
        self.cell_size = cell_size
        self.margin = margin
        self.panel_width = panel_width
        self._font: Optional[pygame.font.Font] = None
        # Engine effect last seen and the locally aged copy drawn each frame
        self._effect_source: Optional[LineEffectState] = None
        self._effect_view: Optional[LineEffectState] = None

    def window_size(self, width: int, height: int) -> Tuple[int, int]:
        return (
            width * self.cell_size + self.margin * 3 + self.panel_width,
            height * self.cell_size + self.margin * 2,
        )

    def _cell_rect(self, x: int, y: int) -> pygame.Rect:
        return pygame.Rect(x * self.cell_size, y * self.cell_size, self.cell_size - 1, self.cell_size - 1)

    def _grid_surface(self, state: GameState) -> pygame.Surface:
        board = state.board
        surf = pygame.Surface((board.width * self.cell_size, board.height * self.cell_size))
        surf.fill(BOARD_BACKGROUND)
        grid = state.to_array()
        flashing = set(state.line_effect.flashing_lines)
        for y in range(board.height):
            for x in range(board.width):
                color = FLASH if y in flashing else _color_for_value(int(grid[y, x]))
                pygame.draw.rect(surf, color, self._cell_rect(x, y))

        piece = state.current_piece
        if piece is not None and not state.game_over:
            ghost = ghost_piece(board, piece)
            color = hex_to_rgb(piece.color)
            for x, y in ghost.cells():
                if 0 <= y < board.height and int(grid[y, x]) == 0:
                    pygame.draw.rect(surf, color, self._cell_rect(x, y), width=1)
        return surf

    def _age_effect(self, effect: LineEffectState) -> LineEffectState:
        if effect is not self._effect_source or self._effect_view is None:
            self._effect_source = effect
            self._effect_view = effect
        else:
            self._effect_view = tick_particles(self._effect_view)
        return self._effect_view

    def _draw_particles(self, surf: pygame.Surface, effect: LineEffectState) -> None:
        # Particle positions are laid out on the reference cell size
        scale = self.cell_size / float(CELL_SIZE)
        for p in effect.particles:
            pos = (int(p.x * scale), int(p.y * scale))
            pygame.draw.circle(surf, hex_to_rgb(p.color), pos, max(1, self.cell_size // 8))

    def _text(self, screen: pygame.Surface, text: str, pos: Tuple[int, int], size: int = 24) -> None:
        if self._font is None:
            self._font = pygame.font.SysFont(None, size)
        screen.blit(self._font.render(text, True, TEXT), pos)

    def _draw_panel(self, screen: pygame.Surface, state: GameState) -> None:
        left = self.margin * 2 + state.board.width * self.cell_size
        top = self.margin
        self._text(screen, f"Score {state.score}", (left, top))
        self._text(screen, f"Level {state.level}", (left, top + 28))
        self._text(screen, f"Lines {state.lines}", (left, top + 56))
        self._text(screen, "Next", (left, top + 100))
        nxt = state.next_piece
        if nxt is not None:
            shape = nxt.shape()
            color = hex_to_rgb(nxt.color)
            size = self.cell_size // 2 + 4
            for y in range(shape.shape[0]):
                for x in range(shape.shape[1]):
                    if shape[y, x]:
                        rect = pygame.Rect(left + x * size, top + 128 + y * size, size - 1, size - 1)
                        pygame.draw.rect(screen, color, rect)

    def draw(self, screen: pygame.Surface, state: GameState, message: Optional[str] = None) -> None:
        grid_surf = self._grid_surface(state)
        self._draw_particles(grid_surf, self._age_effect(state.line_effect))
        offset = (self.margin, self.margin)
        if state.line_effect.shaking:
            offset = (self.margin + 2, self.margin)
        screen.fill(BACKGROUND)
        screen.blit(grid_surf, offset)
        self._draw_panel(screen, state)
        if message:
            self._text(screen, message, (self.margin, self.margin // 4))
        pygame.display.flip()
