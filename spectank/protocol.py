"""Wire format of the capture-the-flag game protocol.

All multi-byte values are little-endian and structures carry no padding,
matching the layout used by the Spectrum client.
"""
from __future__ import annotations

import struct
from dataclasses import astuple, dataclass
from enum import IntEnum, IntFlag
from typing import Iterable

CTF_PORT = 32767

MAX_NAME = 16
MAX_OBJS = 48
MAX_CLIENTS = 16
MAX_STATUS_MSG = 42
NUMBER_MSG_LEN = 5
CAPTURE_LEN = 4

VP_X_PIXELS = 224
VP_Y_PIXELS = 184

# Contents of an ACK reply to HELLO.
ACK_OK = 0x00
ACK_TOO_MANY = 0x01
ACK_UNABLE = 0x02

# Matchmaking flags.
MM_READY = 0x01
MM_JOIN_TEAM = 0x02

# Reasons carried by RemoveSpriteMsg.
REMOVED_OFFSCREEN = 0
REMOVED_KILLED = 1


class ProtocolError(ValueError):
    """A message could not be encoded or decoded."""


class ServerMsg(IntEnum):
    """Message types sent by the server."""

    SPRITE = 0x01
    REMOVE_SPRITE = 0x02
    MESSAGE = 0x03
    SCOREBOARD = 0x04
    FLAG_ALERT = 0x05
    MATCHMAKE = 0x06
    PING = 0x07
    CLEAR_PLAYER_LIST = 0x08
    MM_STARTABLE = 0x09
    MM_EXIT = 0x0A
    END_GAME_SCORE = 0x0B
    SPRITE16 = 0x0C
    PLAYER_ID = 0x0D
    SPECTATOR_SCOREBOARD = 0x0E
    SPECTATOR_GAME_END = 0x0F
    SPECTATOR_GAME_START = 0x10
    ACK = 0x41
    BYE_ACK = 0x48
    MAP = 0x49


class ClientMsg(IntEnum):
    """Message types initiated by a client."""

    HELLO = 0x40
    SPECTATOR_HELLO = 0x41
    VIEWPORT = 0x42
    JOIN = 0x43
    JOIN_ACK = 0x44
    START = 0x45
    START_ACK = 0x46
    BYE = 0x47
    CLIENT_READY = 0x48
    TEAM_REQUEST = 0x49
    MM_START = 0x4A
    MM_STOP = 0x4B
    MM_READY = 0x4C
    CONTROL = 0x80
    SERVER_KILL = 0xFF


class SpriteId(IntEnum):
    PLAYER = 0
    FOTON = 1
    XPLODE = 2
    FLAG = 3
    FUEL = 4
    AMMO = 5


class NumberType(IntEnum):
    AMMO = 0
    HITPOINTS = 1
    BLUE_SCORE = 2
    RED_SCORE = 3
    PLAYER_SCORE = 4
    LIVES = 5


class GameEndReason(IntEnum):
    TEAM_WON = 0
    OUT_OF_LIVES = 1


class Team(IntEnum):
    BLUE = 0
    RED = 1
    NONE = 2


class ObjectFlag(IntFlag):
    HAS_MOVED = 0x01
    NEW_OBJ = 0x02
    DESTROYED = 0x04
    VANISHED = 0x08
    NO_COLLIDE = 0x10
    EXPLODING = 0x20
    HAS_FLAG = 0x40


class ControlFlag(IntFlag):
    ACCELERATE = 0x01
    BRAKE = 0x02
    ROTATE_LEFT = 0x04
    ROTATE_RIGHT = 0x08
    FIRE = 0x80


def _pack(fmt: struct.Struct, *values) -> bytes:
    try:
        return fmt.pack(*values)
    except struct.error as exc:
        raise ProtocolError(str(exc)) from exc


def _unpack(fmt: struct.Struct, data: bytes, what: str) -> tuple:
    if len(data) < fmt.size:
        raise ProtocolError(f"{what} needs {fmt.size} bytes, got {len(data)}")
    return fmt.unpack_from(data)


def _encode_text(text: str, size: int, what: str, encoding: str = "latin-1") -> bytes:
    try:
        raw = text.encode(encoding)
    except UnicodeEncodeError as exc:
        raise ProtocolError(f"{what} cannot be encoded: {exc}") from exc
    if len(raw) > size:
        raise ProtocolError(f"{what} is longer than {size} bytes")
    return raw


def _decode_text(raw: bytes, encoding: str = "latin-1") -> str:
    return raw.split(b"\0", 1)[0].decode(encoding, errors="replace")


@dataclass(frozen=True)
class SpriteMsg:
    """Position and appearance of one sprite in the viewport."""

    objid: int
    x: int
    y: int
    rotation: int
    sprite_id: int
    colour: int = 0
    flags: int = 0

    _FORMAT = struct.Struct("<7B")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> SpriteMsg:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


@dataclass(frozen=True)
class SpriteMsg16:
    """Sprite message with 16-bit map coordinates, sent to spectators."""

    objid: int
    owner_id: int
    x: int
    y: int
    rotation: int
    sprite_id: int
    colour: int = 0
    flags: int = 0
    health: int = 0
    ammo: int = 0
    lives: int = 0

    _FORMAT = struct.Struct("<BBHH7B")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> SpriteMsg16:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


@dataclass(frozen=True)
class PlayerIdMsg:
    """Name label for a player, sent to spectators."""

    owner_id: int
    name: str

    _FORMAT = struct.Struct(f"<B{MAX_NAME}s")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        raw = _encode_text(self.name, MAX_NAME, "player name")
        return _pack(self._FORMAT, self.owner_id, raw)

    @classmethod
    def unpack(cls, data: bytes) -> PlayerIdMsg:
        owner, raw = _unpack(cls._FORMAT, data, cls.__name__)
        return cls(owner, _decode_text(raw))


_SCORE_ARRAYS = ("player_goals", "player_kills", "player_teams")


@dataclass(frozen=True)
class SpectatorScoreMsg:
    """Team scores and per-player statistics for spectators."""

    team1_score: int = 0
    team2_score: int = 0
    player_goals: tuple[int, ...] = (0,) * MAX_CLIENTS
    player_kills: tuple[int, ...] = (0,) * MAX_CLIENTS
    player_teams: tuple[int, ...] = (0,) * MAX_CLIENTS

    _FORMAT = struct.Struct(f"<{2 + 3 * MAX_CLIENTS}B")
    SIZE = _FORMAT.size

    def __post_init__(self) -> None:
        for name in _SCORE_ARRAYS:
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def pack(self) -> bytes:
        arrays = [getattr(self, name) for name in _SCORE_ARRAYS]
        for name, values in zip(_SCORE_ARRAYS, arrays):
            if len(values) != MAX_CLIENTS:
                raise ProtocolError(f"{name} must hold {MAX_CLIENTS} values")
        flat = [value for values in arrays for value in values]
        return _pack(self._FORMAT, self.team1_score, self.team2_score, *flat)

    @classmethod
    def unpack(cls, data: bytes) -> SpectatorScoreMsg:
        values = _unpack(cls._FORMAT, data, cls.__name__)
        rest = values[2:]
        goals, kills, teams = (
            rest[i * MAX_CLIENTS:(i + 1) * MAX_CLIENTS] for i in range(3)
        )
        return cls(values[0], values[1], goals, kills, teams)


@dataclass(frozen=True)
class RemoveSpriteMsg:
    objid: int
    reason: int = REMOVED_OFFSCREEN

    _FORMAT = struct.Struct("<2B")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> RemoveSpriteMsg:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


@dataclass(frozen=True)
class MaptileMsg:
    """One map tile: a tile character and its character cell."""

    tile: str
    x: int
    y: int

    _FORMAT = struct.Struct("<3B")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        if len(self.tile) != 1 or ord(self.tile) > 0xFF:
            raise ProtocolError(f"invalid map tile {self.tile!r}")
        return _pack(self._FORMAT, ord(self.tile), self.x, self.y)

    @classmethod
    def unpack(cls, data: bytes) -> MaptileMsg:
        tile, x, y = _unpack(cls._FORMAT, data, cls.__name__)
        return cls(chr(tile), x, y)


@dataclass(frozen=True)
class Viewport:
    """The part of the map a player sees, in absolute map pixels."""

    tx: int
    ty: int
    bx: int
    by: int

    _FORMAT = struct.Struct("<4H")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> Viewport:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


@dataclass(frozen=True)
class MapXY:
    """An absolute map position."""

    mapx: int
    mapy: int

    _FORMAT = struct.Struct("<2H")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> MapXY:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


@dataclass(frozen=True)
class MessageMsg:
    """A text message for the client's status line (UTF-8, at most 42 bytes)."""

    message: str

    _FORMAT = struct.Struct(f"<B{MAX_STATUS_MSG}s")
    SIZE = _FORMAT.size

    @property
    def encoded(self) -> bytes:
        return self.message.encode("utf-8")

    @property
    def size(self) -> int:
        return len(self.encoded)

    def pack(self) -> bytes:
        raw = _encode_text(self.message, MAX_STATUS_MSG, "status message", "utf-8")
        return _pack(self._FORMAT, len(raw), raw)

    @classmethod
    def unpack(cls, data: bytes) -> MessageMsg:
        size, raw = _unpack(cls._FORMAT, data, cls.__name__)
        return cls(_decode_text(raw[:min(size, MAX_STATUS_MSG)], "utf-8"))


@dataclass(frozen=True)
class NumberMsg:
    """A number, already formatted as text, for the status bar."""

    number_type: int
    text: str

    _FORMAT = struct.Struct(f"<B{NUMBER_MSG_LEN}s")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        raw = _encode_text(self.text, NUMBER_MSG_LEN, "number text")
        return _pack(self._FORMAT, self.number_type, raw)

    @classmethod
    def unpack(cls, data: bytes) -> NumberMsg:
        kind, raw = _unpack(cls._FORMAT, data, cls.__name__)
        return cls(kind, _decode_text(raw))


@dataclass(frozen=True)
class MatchmakeMsg:
    """A player's entry on the matchmaking screen."""

    team: int
    player_num: int
    flags: int
    player_name: str

    _FORMAT = struct.Struct(f"<3B{MAX_NAME}s")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        raw = _encode_text(self.player_name, MAX_NAME, "player name")
        return _pack(self._FORMAT, self.team, self.player_num, self.flags, raw)

    @classmethod
    def unpack(cls, data: bytes) -> MatchmakeMsg:
        team, num, flags, raw = _unpack(cls._FORMAT, data, cls.__name__)
        return cls(team, num, flags, _decode_text(raw))


@dataclass(frozen=True)
class MatchmakeInst:
    team: int
    player_num: int
    flags: int

    _FORMAT = struct.Struct("<3B")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> MatchmakeInst:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


@dataclass(frozen=True)
class GameEnd:
    """End of game result sent to a player; captures are short strings."""

    reason: int
    winner: int
    blue_capture: str
    red_capture: str

    _FORMAT = struct.Struct(f"<2B{CAPTURE_LEN}s{CAPTURE_LEN}s")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        blue = _encode_text(self.blue_capture, CAPTURE_LEN, "blue capture")
        red = _encode_text(self.red_capture, CAPTURE_LEN, "red capture")
        return _pack(self._FORMAT, self.reason, self.winner, blue, red)

    @classmethod
    def unpack(cls, data: bytes) -> GameEnd:
        reason, winner, blue, red = _unpack(cls._FORMAT, data, cls.__name__)
        return cls(reason, winner, _decode_text(blue), _decode_text(red))


@dataclass(frozen=True)
class SpectatorGameEnd:
    reason: int
    team_win: int
    blue_capture: int
    red_capture: int

    _FORMAT = struct.Struct("<4B")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> SpectatorGameEnd:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


@dataclass(frozen=True)
class PlayerSummary:
    score: int
    captures: int

    _FORMAT = struct.Struct("<HB")
    SIZE = _FORMAT.size

    def pack(self) -> bytes:
        return _pack(self._FORMAT, *astuple(self))

    @classmethod
    def unpack(cls, data: bytes) -> PlayerSummary:
        return cls(*_unpack(cls._FORMAT, data, cls.__name__))


_MAP_COUNT = struct.Struct("<H")


def encode_map(tiles: Iterable[MaptileMsg]) -> bytes:
    """Encode a map body: a 16-bit tile count followed by the tiles."""
    items = list(tiles)
    if len(items) > 0xFFFF:
        raise ProtocolError("too many map tiles")
    return _MAP_COUNT.pack(len(items)) + b"".join(tile.pack() for tile in items)


def decode_map(data: bytes) -> list[MaptileMsg]:
    """Decode a map body produced by encode_map."""
    (count,) = _unpack(_MAP_COUNT, data, "map count")
    body = data[_MAP_COUNT.size:]
    needed = count * MaptileMsg.SIZE
    if len(body) < needed:
        raise ProtocolError(f"map needs {needed} tile bytes, got {len(body)}")
    return [
        MaptileMsg.unpack(body[offset:offset + MaptileMsg.SIZE])
        for offset in range(0, needed, MaptileMsg.SIZE)
    ]