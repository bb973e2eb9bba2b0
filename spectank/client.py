"""Entry points of the game client: matchmaking followed by the game itself."""
from __future__ import annotations

import argparse
import sys
from typing import Callable

from spectank.connection import (
    CTFError,
    ControlInput,
    GameConnection,
    LookupFailed,
    MatchmakingConnection,
    NotAcknowledged,
    ReceiveError,
    ServerFull,
    SocketFailed,
    SyncTimeout,
    TransmitError,
)
from spectank.lineinput import KeyBuffer
from spectank.matchmaking import MatchmakingUI, format_status, replace_spaces
from spectank.protocol import (
    CTF_PORT,
    GameEnd,
    MapXY,
    MaptileMsg,
    MessageMsg,
    NumberMsg,
    RemoveSpriteMsg,
    SpriteMsg,
)
from spectank.screen import Colour, Screen, fade_out, make_attr
from spectank.sprites import SpriteTable, tile_colour
from spectank.status import TEXT_COLUMNS, StatusDisplay, show_game_over
from spectank.viewport import VP_X_TILES, VP_Y_TILES, ViewportManager

DEFAULT_SERVER_FILE = "server.ip"
SERVER_FILE_READ = 16
PLAYER_NAME_LEN = 8
SERVER_NAME_LEN = 15
TEAM_COLOURS = make_attr(Colour.CYAN, Colour.BLUE)
MAP_BACKGROUND = make_attr(Colour.WHITE, Colour.BLACK)

_ERROR_CODES: tuple[tuple[type[CTFError], int], ...] = (
    (LookupFailed, -1),
    (SocketFailed, -2),
    (TransmitError, -3),
    (ReceiveError, -4),
    (ServerFull, -5),
    (NotAcknowledged, -5),
    (SyncTimeout, -6),
)


def _error_number(exc: CTFError) -> int:
    """Return the numeric status shown to the player for a connection error."""
    for kind, number in _ERROR_CODES:
        if isinstance(exc, kind):
            return number
    return -1


def read_default_server(path=DEFAULT_SERVER_FILE) -> str:
    """Return the preset server name from a file, or "" if there is none.

    At most 16 bytes are read; the name ends at the first control character.
    """
    try:
        with open(path, "rb") as fh:
            raw = fh.read(SERVER_FILE_READ)
    except OSError:
        return ""
    end = next((pos for pos, byte in enumerate(raw) if byte < 0x20), len(raw))
    return raw[:end].decode("latin-1")


def run_matchmaking(host: str, player: str, port: int = CTF_PORT) -> GameConnection:
    """Connect, take part in matchmaking and return the link for the game."""
    connection = MatchmakingConnection.connect(host, player, port)
    try:
        screen = Screen()
        ui = MatchmakingUI(connection, screen, KeyBuffer())
        ui.status(0, "Connected")
        fade_out(screen)
        ui.draw_screen()
        connection.ready_to_matchmake()
        return connection.run(ui)
    except BaseException:
        connection.close()
        raise


class _GameSession:
    """Ties the game loop's messages to the sprites, status areas and viewport."""

    def __init__(self, connection: GameConnection, controls: Callable[[], int] | None = None, lang: str = "en"):
        self.lang = lang
        self.screen = Screen(TEXT_COLUMNS)
        self.status = StatusDisplay(self.screen, TEAM_COLOURS, lang)
        self.sprites = SpriteTable()
        self.viewport = ViewportManager(connection.send_viewport, self.sprites.remove_all)
        self.control = ControlInput(connection.send_control)
        self.controls = controls if controls is not None else (lambda: 0)
        self.map_tiles: list[MaptileMsg] = []

    def manage_sprite(self, msg: SpriteMsg) -> None:
        try:
            self.sprites.manage(msg)
        except ValueError:
            pass  # objects the table cannot show are ignored

    def remove_sprite(self, msg: RemoveSpriteMsg) -> None:
        try:
            self.sprites.remove(msg)
        except ValueError:
            pass

    def switch_viewport(self, xy: MapXY) -> None:
        self.viewport.switch(xy)

    def draw_map(self, tiles: list[MaptileMsg]) -> None:
        for row in range(VP_Y_TILES):
            for col in range(VP_X_TILES):
                self.screen.put_char(row, col, " ")
                self.screen.set_attribute(row, col, MAP_BACKGROUND)
        self.map_tiles = [tile for tile in tiles if tile.x < VP_X_TILES and tile.y < VP_Y_TILES]
        for tile in self.map_tiles:
            self.screen.put_char(tile.y, tile.x, tile.tile)
            self.screen.set_attribute(tile.y, tile.x, tile_colour(tile.tile))

    def set_message(self, msg: MessageMsg) -> None:
        self.status.set_message(msg)

    def update_scoreboard(self, msg: NumberMsg) -> None:
        self.status.update_scoreboard(msg)

    def flag_alert(self, sector: int) -> None:
        self.status.flag_alert(sector)

    def game_over(self, end: GameEnd) -> None:
        show_game_over(self.screen, end, self.lang)
        fade_out(self.screen)

    def frame_done(self) -> None:
        self.sprites.flash_clock = (self.sprites.flash_clock + 1) & 0xFF

    def idle(self) -> None:
        self.control.update(self.controls())
        self.status.update_message_area()


def run_game(connection: GameConnection) -> GameEnd:
    """Start the game on a matched connection, play it out and disconnect."""
    session = _GameSession(connection)
    try:
        start = connection.start_game()
        session.viewport.find(start)
        return connection.run(session)
    finally:
        connection.disconnect(False)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spectank", description="Capture-the-flag tank game client.")
    parser.add_argument("player", help="player name")
    parser.add_argument("--server", help="game server host name")
    parser.add_argument("--server-file", default=DEFAULT_SERVER_FILE, help="file holding a preset server")
    parser.add_argument("--port", type=int, default=CTF_PORT, help="server port")
    parser.add_argument("--lang", choices=("en", "es"), default="en", help="language of messages")
    return parser


def main(argv=None) -> int:
    parser = _parser()
    args = parser.parse_args(argv)
    player = replace_spaces(args.player.strip()[:PLAYER_NAME_LEN])
    if not player:
        parser.error("a player name is required")
    server = args.server if args.server else read_default_server(args.server_file)
    server = server[:SERVER_NAME_LEN]
    if not server:
        print(format_status(-1, "Connection failed", args.lang))
        return 1
    print(format_status(0, "Connecting....", args.lang))
    try:
        game = run_matchmaking(server, player, args.port)
    except CTFError as exc:
        print(format_status(_error_number(exc), "Connection failed", args.lang))
        return 1
    print(format_status(0, "Connected", args.lang))
    try:
        run_game(game)
    except CTFError as exc:
        print(format_status(_error_number(exc), str(exc) or None, args.lang), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())