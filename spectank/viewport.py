"""Choosing the player's viewport from a map position."""
from __future__ import annotations

from typing import Callable

from spectank.protocol import VP_X_PIXELS, VP_Y_PIXELS, MapXY, Viewport

VP_X_TILES = 28
VP_Y_TILES = 23
MAX_VP_X = 32767
MAX_VP_Y = 32767


def find_viewport(xy: MapXY) -> Viewport:
    """Return the screen-sized viewport that contains the map position."""
    if not (0 <= xy.mapx <= MAX_VP_X and 0 <= xy.mapy <= MAX_VP_Y):
        raise ValueError(f"map position out of range: ({xy.mapx}, {xy.mapy})")
    tx = xy.mapx // VP_X_PIXELS * VP_X_PIXELS
    ty = xy.mapy // VP_Y_PIXELS * VP_Y_PIXELS
    return Viewport(tx, ty, tx + VP_X_PIXELS, ty + VP_Y_PIXELS)


class ViewportManager:
    """Tracks the current viewport and reports changes to the server."""

    def __init__(
        self,
        send_viewport: Callable[[Viewport], object],
        remove_all_sprites: Callable[[], object] | None = None,
    ):
        self._send_viewport = send_viewport
        self._remove_all_sprites = remove_all_sprites
        self.viewport: Viewport | None = None

    @property
    def screen(self) -> tuple[int, int] | None:
        """Column and row of the current viewport in screen-sized units."""
        if self.viewport is None:
            return None
        return self.viewport.tx // VP_X_PIXELS, self.viewport.ty // VP_Y_PIXELS

    def find(self, xy: MapXY) -> Viewport:
        """Set the viewport around a position and send it to the server."""
        viewport = find_viewport(xy)
        self.viewport = viewport
        self._send_viewport(viewport)
        return viewport

    def switch(self, xy: MapXY) -> Viewport:
        """Change viewport mid-game: clear all sprites first, then find."""
        if self._remove_all_sprites is not None:
            self._remove_all_sprites()
        return self.find(xy)