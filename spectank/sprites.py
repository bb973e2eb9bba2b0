"""Client-side sprite table: which objects are on screen and how they look."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from spectank.protocol import (
    MAX_OBJS,
    ObjectFlag,
    RemoveSpriteMsg,
    SpriteId,
    SpriteMsg,
)
from spectank.screen import BRIGHT, Colour, make_attr

SPRITE_ATTR_MASK = 0xB8
FRAME_BYTES = 96
FLASH_BIT = 0x08
TANK_DIRECTIONS = 16
FOTON_LAST_FRAME = 3

# Number of animation frames available for each kind of sprite.
FRAME_COUNTS = {
    SpriteId.PLAYER: TANK_DIRECTIONS,
    SpriteId.FOTON: FOTON_LAST_FRAME + 1,
    SpriteId.XPLODE: 2,
    SpriteId.FLAG: 1,
    SpriteId.FUEL: 1,
    SpriteId.AMMO: 1,
}

# 8x8 bitmaps of the background tiles, keyed by their map character.
TILE_GRAPHICS = {
    " ": bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    "B": bytes([0xFF, 0x81, 0x81, 0x81, 0x81, 0x81, 0x81, 0xFF]),
    "s": bytes([0x00, 0x42, 0x24, 0x00, 0x00, 0x24, 0x42, 0x00]),
    "a": bytes([0x18, 0x16, 0x11, 0x16, 0x18, 0x10, 0x10, 0x7E]),
    "b": bytes([0x18, 0x16, 0x11, 0x16, 0x18, 0x10, 0x10, 0x7E]),
    "f": bytes([0x00, 0x00, 0x38, 0x20, 0x38, 0x20, 0x20, 0x00]),
    "g": bytes([0x00, 0x00, 0x18, 0x24, 0x3C, 0x24, 0x24, 0x00]),
    "1": bytes([0xFF, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80]),
    "2": bytes([0xFF, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    "3": bytes([0xFF, 0x01, 0x01, 0x01, 0x01, 0x01, 0x01, 0x01]),
    "4": bytes([0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80]),
    "5": bytes([0x08, 0x14, 0x22, 0x49, 0x22, 0x14, 0x08, 0x00]),
    "6": bytes([0x01, 0x01, 0x01, 0x01, 0x01, 0x01, 0x01, 0x01]),
    "7": bytes([0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0xFF]),
    "8": bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0xFF]),
    "9": bytes([0x01, 0x01, 0x01, 0x01, 0x01, 0x01, 0x01, 0xFF]),
}

# Tiles of the flag direction indicator: (row, column, tile), drawn in cyan.
FLAG_INDICATOR_TILES = tuple(
    (18 + index // 3, 29 + index % 3, str(index + 1)) for index in range(9)
)

_TILE_COLOURS = {
    "s": make_attr(Colour.YELLOW, Colour.BLACK),
    "a": make_attr(Colour.CYAN, Colour.BLUE),
    "b": make_attr(Colour.RED, Colour.YELLOW),
    "f": make_attr(Colour.RED, Colour.BLACK),
    "g": make_attr(Colour.RED, Colour.BLACK),
}
_WALL_COLOUR = make_attr(Colour.BLUE, Colour.BLACK)


def tile_colour(tile: str) -> int:
    """Attribute used to draw a map tile."""
    if len(tile) != 1:
        raise ValueError(f"a map tile is a single character, got {tile!r}")
    return _TILE_COLOURS.get(tile, _WALL_COLOUR)


@dataclass
class Sprite:
    """One object on screen: its graphic frame, pixel position and colour."""

    objid: int
    sprite_id: int
    frame: int
    x: int
    y: int
    attr: int
    attr_mask: int = SPRITE_ATTR_MASK

    @property
    def frame_offset(self) -> int:
        """Byte offset of the current frame within the sprite's graphic."""
        return self.frame * FRAME_BYTES


def _check_objid(objid: int) -> int:
    if not 0 <= objid < MAX_OBJS:
        raise ValueError(f"object id out of range: {objid}")
    return objid


def _check_sprite_id(sprite_id: int) -> int:
    if sprite_id not in FRAME_COUNTS:
        raise ValueError(f"unknown sprite id: {sprite_id}")
    return sprite_id


class SpriteTable:
    """The sprites currently shown, indexed by object id.

    Photon animation, explosion frame and photon colour are shared by all
    sprites of that kind, as they cycle once per sprite message. The flash
    clock is advanced by the game loop after each frame with sprite changes.
    """

    def __init__(self):
        self._sprites: dict[int, Sprite] = {}
        self.flash_clock = 0
        self._foton_frame = 0
        self._foton_reversing = False
        self._foton_colour = 0
        self._xplode_second = False

    def __len__(self) -> int:
        return len(self._sprites)

    def __contains__(self, objid: object) -> bool:
        return objid in self._sprites

    def __iter__(self) -> Iterator[Sprite]:
        return iter(list(self._sprites.values()))

    def __getitem__(self, objid: int) -> Sprite:
        return self._sprites[objid]

    def get(self, objid: int) -> Sprite | None:
        return self._sprites.get(objid)

    def manage(self, msg: SpriteMsg) -> Sprite:
        """Move the object's sprite if it exists, otherwise create it."""
        if _check_objid(msg.objid) in self._sprites:
            return self.move(msg)
        return self.put(msg)

    def put(self, msg: SpriteMsg) -> Sprite:
        """Create a sprite for the object at the message's position."""
        _check_objid(msg.objid)
        _check_sprite_id(msg.sprite_id)
        sprite = Sprite(msg.objid, msg.sprite_id, 0, msg.x, msg.y, msg.colour)
        self._sprites[msg.objid] = sprite
        return sprite

    def move(self, msg: SpriteMsg) -> Sprite:
        """Update an existing sprite from absolute position and state."""
        sprite = self._sprites.get(_check_objid(msg.objid))
        if sprite is None:
            raise KeyError(msg.objid)
        _check_sprite_id(msg.sprite_id)
        if msg.sprite_id == SpriteId.XPLODE:
            frame, attr = self._next_explosion()
        elif msg.sprite_id == SpriteId.FOTON:
            frame, attr = self._next_photon()
        elif msg.sprite_id == SpriteId.PLAYER:
            if not 0 <= msg.rotation < TANK_DIRECTIONS:
                raise ValueError(f"tank rotation out of range: {msg.rotation}")
            frame = msg.rotation
            if msg.flags & ObjectFlag.HAS_FLAG and self.flash_clock & FLASH_BIT:
                attr = make_attr(Colour.WHITE, bright=True)
            else:
                attr = msg.colour
        else:
            frame, attr = 0, sprite.attr
        sprite.sprite_id = msg.sprite_id
        sprite.frame = frame
        sprite.attr = attr
        sprite.x, sprite.y = msg.x, msg.y
        return sprite

    def _next_explosion(self) -> tuple[int, int]:
        if self._xplode_second:
            result = 1, make_attr(Colour.YELLOW, bright=True)
        else:
            result = 0, make_attr(Colour.RED, bright=True)
        self._xplode_second = not self._xplode_second
        return result

    def _next_photon(self) -> tuple[int, int]:
        if self._foton_reversing:
            self._foton_frame -= 1
            if self._foton_frame == 0:
                self._foton_reversing = False
        else:
            self._foton_frame += 1
            if self._foton_frame == FOTON_LAST_FRAME:
                self._foton_reversing = True
        self._foton_colour = (self._foton_colour + 1) & 7
        return self._foton_frame, self._foton_colour | BRIGHT

    def remove(self, msg: RemoveSpriteMsg) -> Sprite | None:
        """Remove the object's sprite; return it, or None if there was none."""
        return self._sprites.pop(_check_objid(msg.objid), None)

    def remove_all(self) -> list[Sprite]:
        """Remove every sprite; return those removed in object id order."""
        removed = [self._sprites[objid] for objid in sorted(self._sprites)]
        self._sprites.clear()
        return removed