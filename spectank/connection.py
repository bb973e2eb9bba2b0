"""Client side of the game and matchmaking conversations with the server."""
from __future__ import annotations

import select
import socket
from typing import Callable, Iterator, Protocol

from spectank.protocol import (
    ACK_TOO_MANY,
    CTF_PORT,
    MAX_NAME,
    ClientMsg,
    GameEnd,
    MapXY,
    MaptileMsg,
    MatchmakeMsg,
    MessageMsg,
    NumberMsg,
    ProtocolError,
    RemoveSpriteMsg,
    ServerMsg,
    SpriteMsg,
    Viewport,
    decode_map,
)

RX_BUFFER_SIZE = 1024
SYNC_RETRIES = 3
REPLY_TIMEOUT = 1.0
POLL_INTERVAL = 0.02

Address = tuple[str, int]


class CTFError(Exception):
    """A failure talking to the game server; ``code`` is the client's status code."""

    code = -1


class LookupFailed(CTFError):
    code = -1


class SocketFailed(CTFError):
    code = -2


class TransmitError(CTFError):
    code = -3


class ReceiveError(CTFError):
    code = -4


class ServerFull(CTFError):
    code = -5


class NotAcknowledged(CTFError):
    code = -5


class SyncTimeout(CTFError):
    code = -6


class GameHandler(Protocol):
    """Receives what the game loop reads from the server."""

    def manage_sprite(self, msg: SpriteMsg) -> None: ...

    def remove_sprite(self, msg: RemoveSpriteMsg) -> None: ...

    def switch_viewport(self, xy: MapXY) -> None: ...

    def draw_map(self, tiles: list[MaptileMsg]) -> None: ...

    def set_message(self, msg: MessageMsg) -> None: ...

    def update_scoreboard(self, msg: NumberMsg) -> None: ...

    def flag_alert(self, sector: int) -> None: ...

    def game_over(self, end: GameEnd) -> None: ...

    def frame_done(self) -> None: ...

    def idle(self) -> None: ...


class MatchmakingHandler(Protocol):
    """Receives what the matchmaking loop reads from the server."""

    def clear_player_list(self) -> None: ...

    def display_matchmake(self, msg: MatchmakeMsg) -> None: ...

    def display_status(self, msg: MessageMsg) -> None: ...

    def set_startable(self, startable: bool) -> None: ...

    def idle(self) -> None: ...


def _byte(data: bytes, pos: int) -> int:
    if pos >= len(data):
        raise ProtocolError("message block is truncated")
    return data[pos]


def _struct_at(cls, data: bytes, pos: int):
    return cls.unpack(data[pos:pos + cls.SIZE]), pos + cls.SIZE


_GAME_STRUCTS = {
    ServerMsg.SPRITE: SpriteMsg,
    ServerMsg.REMOVE_SPRITE: RemoveSpriteMsg,
    ClientMsg.VIEWPORT: MapXY,
    ServerMsg.MESSAGE: MessageMsg,
    ServerMsg.SCOREBOARD: NumberMsg,
    ServerMsg.END_GAME_SCORE: GameEnd,
}


def iter_game_messages(data: bytes) -> Iterator[tuple[int, object]]:
    """Yield (type, body) for each message of a game block.

    A map message consumes the rest of the block; an end-of-game message or
    an unknown type ends the block.
    """
    count = _byte(data, 0)
    pos = 1
    for _ in range(count):
        kind = _byte(data, pos)
        pos += 1
        if kind == ServerMsg.MAP:
            yield kind, decode_map(data[pos:])
            return
        if kind == ServerMsg.FLAG_ALERT:
            yield kind, _byte(data, pos)
            pos += 1
        elif kind == ServerMsg.PING:
            yield kind, None
            pos += 1
        elif kind in _GAME_STRUCTS:
            body, pos = _struct_at(_GAME_STRUCTS[kind], data, pos)
            yield kind, body
            if kind == ServerMsg.END_GAME_SCORE:
                return
        else:
            return


def iter_matchmaking_messages(data: bytes) -> Iterator[tuple[int, object]]:
    """Yield (type, body) for each message of a matchmaking block.

    An exit message or an unknown type ends the block.
    """
    count = _byte(data, 0)
    pos = 1
    for _ in range(count):
        kind = _byte(data, pos)
        pos += 1
        if kind in (ServerMsg.CLEAR_PLAYER_LIST, ServerMsg.PING):
            yield kind, None
        elif kind == ServerMsg.MATCHMAKE:
            body, pos = _struct_at(MatchmakeMsg, data, pos)
            yield kind, body
        elif kind == ServerMsg.MESSAGE:
            body, pos = _struct_at(MessageMsg, data, pos)
            yield kind, body
        elif kind == ServerMsg.MM_STARTABLE:
            yield kind, bool(_byte(data, pos))
            pos += 1
        elif kind == ServerMsg.MM_EXIT:
            yield kind, None
            return
        else:
            return


def _poll(sock: socket.socket, timeout: float) -> bool:
    try:
        readable, _, errored = select.select([sock], [], [sock], timeout)
    except (OSError, ValueError) as exc:
        raise ReceiveError(f"poll failed: {exc}") from exc
    if errored:
        raise ReceiveError("poll reported a socket error")
    return bool(readable)


def _receive(sock: socket.socket) -> bytes:
    try:
        data, _ = sock.recvfrom(RX_BUFFER_SIZE)
    except OSError as exc:
        raise ReceiveError(f"recvfrom failed: {exc}") from exc
    return data


def _send_to(sock: socket.socket, address: Address, payload: bytes) -> None:
    try:
        sock.sendto(bytes(payload), address)
    except OSError as exc:
        raise TransmitError(f"sendto failed: {exc}") from exc


def _name_field(player: str) -> bytes:
    raw = player.encode("latin-1", errors="replace")[:MAX_NAME - 1]
    return raw.ljust(MAX_NAME, b"\0")


class _Link:
    def __init__(self, sock: socket.socket, address: Address, *, poll_interval: float = POLL_INTERVAL):
        self.sock = sock
        self.address = address
        self.poll_interval = poll_interval

    def close(self) -> None:
        self.sock.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class GameConnection(_Link):
    """The in-game conversation, on a socket handed over from matchmaking."""

    def send(self, payload: bytes) -> None:
        """Send one datagram to the server."""
        _send_to(self.sock, self.address, payload)

    def send_sync(self, payload: bytes) -> bytes:
        """Send a datagram and wait for the server's reply."""
        self.send(payload)
        return _receive(self.sock)

    def start_game(self) -> MapXY:
        """Ask the server to start; return the player's starting position."""
        reply = self.send_sync(bytes([ClientMsg.START]))
        if len(reply) < 2 or reply[1] != ClientMsg.START_ACK:
            raise NotAcknowledged("server did not acknowledge the game start")
        return MapXY.unpack(reply[2:])

    def send_control(self, dirs: int) -> None:
        self.send(bytes([ClientMsg.CONTROL, dirs & 0xFF]))

    def send_viewport(self, viewport: Viewport) -> None:
        self.send(bytes([ClientMsg.VIEWPORT]) + viewport.pack())

    def run(self, handler: GameHandler) -> GameEnd:
        """Run the game loop until the server ends the game."""
        self.send(bytes([ClientMsg.CLIENT_READY]))
        while True:
            if not _poll(self.sock, self.poll_interval):
                handler.idle()
                continue
            data = _receive(self.sock)
            sprites_changed = False
            try:
                for kind, body in iter_game_messages(data):
                    if kind == ServerMsg.SPRITE:
                        handler.manage_sprite(body)
                        sprites_changed = True
                    elif kind == ServerMsg.REMOVE_SPRITE:
                        handler.remove_sprite(body)
                        sprites_changed = True
                    elif kind == ClientMsg.VIEWPORT:
                        handler.switch_viewport(body)
                    elif kind == ServerMsg.MAP:
                        handler.draw_map(body)
                    elif kind == ServerMsg.MESSAGE:
                        handler.set_message(body)
                    elif kind == ServerMsg.SCOREBOARD:
                        handler.update_scoreboard(body)
                    elif kind == ServerMsg.FLAG_ALERT:
                        handler.flag_alert(body)
                    elif kind == ServerMsg.PING:
                        self.send(bytes([ServerMsg.PING]))
                    elif kind == ServerMsg.END_GAME_SCORE:
                        handler.game_over(body)
                        return body
            except ProtocolError:
                pass  # the rest of a malformed block is dropped
            if sprites_changed:
                handler.frame_done()

    def disconnect(self, send_bye: bool = False) -> bytes | None:
        """Close the socket, first saying goodbye if asked; return any reply."""
        try:
            return self.send_sync(bytes([ClientMsg.BYE])) if send_bye else None
        finally:
            self.close()


class MatchmakingConnection(_Link):
    """The conversation with the server before the game starts."""

    def __init__(
        self,
        sock: socket.socket,
        address: Address,
        *,
        retries: int = SYNC_RETRIES,
        reply_timeout: float = REPLY_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
    ):
        super().__init__(sock, address, poll_interval=poll_interval)
        self.retries = retries
        self.reply_timeout = reply_timeout

    @classmethod
    def connect(cls, host: str, player: str, port: int = CTF_PORT) -> MatchmakingConnection:
        """Look up the server, say hello and return the open connection."""
        try:
            address = (socket.gethostbyname(host), port)
        except OSError as exc:
            raise LookupFailed(f"could not look up {host!r}") from exc
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            raise SocketFailed(f"could not create socket: {exc}") from exc
        connection = cls(sock, address)
        try:
            reply = connection.send_sync(bytes([ClientMsg.HELLO]) + _name_field(player))
            if len(reply) > 1 and reply[1] == ACK_TOO_MANY:
                raise ServerFull("server is full")
        except CTFError:
            sock.close()
            raise
        return connection

    def send(self, payload: bytes) -> None:
        """Send one datagram to the server."""
        _send_to(self.sock, self.address, payload)

    def send_sync(self, payload: bytes) -> bytes:
        """Send a datagram and wait for a reply, retrying a few times."""
        for _ in range(self.retries):
            self.send(payload)
            if _poll(self.sock, self.reply_timeout):
                return _receive(self.sock)
        raise SyncTimeout("no reply from server")

    def ready_to_matchmake(self) -> None:
        self.send(bytes([ClientMsg.MM_START]))

    def join_team(self, team: int) -> None:
        self.send(bytes([ClientMsg.TEAM_REQUEST, team & 0xFF]))

    def player_ready(self) -> None:
        self.send(bytes([ClientMsg.MM_READY]))

    def stop_matchmaking(self) -> None:
        self.send(bytes([ClientMsg.MM_STOP]))

    def run(self, handler: MatchmakingHandler) -> GameConnection:
        """Run matchmaking until the server says to start; return the game link."""
        while True:
            if not _poll(self.sock, self.poll_interval):
                handler.idle()
                continue
            data = _receive(self.sock)
            try:
                for kind, body in iter_matchmaking_messages(data):
                    if kind == ServerMsg.CLEAR_PLAYER_LIST:
                        handler.clear_player_list()
                    elif kind == ServerMsg.MATCHMAKE:
                        handler.display_matchmake(body)
                    elif kind == ServerMsg.MESSAGE:
                        handler.display_status(body)
                    elif kind == ServerMsg.PING:
                        self.send(bytes([ServerMsg.PING]))
                    elif kind == ServerMsg.MM_STARTABLE:
                        handler.set_startable(body)
                    elif kind == ServerMsg.MM_EXIT:
                        return GameConnection(self.sock, self.address, poll_interval=self.poll_interval)
            except ProtocolError:
                pass  # the rest of a malformed block is dropped


class ControlInput:
    """Sends the control state to the server only when it changes."""

    def __init__(self, send_control: Callable[[int], object]):
        self._send_control = send_control
        self.sent = 0

    def update(self, dirs: int) -> bool:
        """Report the current controls; return whether a message was sent."""
        if dirs == self.sent:
            return False
        self._send_control(dirs)
        self.sent = dirs
        return True