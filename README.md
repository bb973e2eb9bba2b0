# spectank

A client for a networked capture-the-flag tank game, the message formats it
speaks, and two small tools for pushing data to a machine over TCP.

## What is in the package

- `spectank.protocol` – the game's wire format: message identifiers
  (`ServerMsg`, `ClientMsg`), enumerations (`SpriteId`, `NumberType`,
  `GameEndReason`, `Team`, `ObjectFlag`, `ControlFlag`) and a frozen
  dataclass for every message structure (`SpriteMsg`, `SpriteMsg16`,
  `PlayerIdMsg`, `SpectatorScoreMsg`, `RemoveSpriteMsg`, `MaptileMsg`,
  `Viewport`, `MapXY`, `MessageMsg`, `NumberMsg`, `MatchmakeMsg`,
  `MatchmakeInst`, `GameEnd`, `SpectatorGameEnd`, `PlayerSummary`), each with
  `pack()` and the class method `unpack(data)`. Values are little-endian with
  no padding. Map bodies are handled by `encode_map` and `decode_map`.
  Malformed or oversized data raises `ProtocolError`.
- `spectank.connection` – UDP conversations with the game server.
  `MatchmakingConnection.connect(host, player, port)` says hello and returns
  the lobby connection; its `run(handler)` dispatches lobby messages to a
  `MatchmakingHandler` until the server says to start, and returns a
  `GameConnection`. `GameConnection` starts the game (`start_game()`), sends
  controls and viewport changes, runs the game loop with a `GameHandler`
  until the end-of-game message, and disconnects. `ControlInput` sends the
  control state only when it changes. `iter_game_messages` and
  `iter_matchmaking_messages` split a received block into typed messages.
  Failures raise subclasses of `CTFError` (`LookupFailed`, `SocketFailed`,
  `TransmitError`, `ReceiveError`, `ServerFull`, `NotAcknowledged`,
  `SyncTimeout`), each with a numeric `code`.
- `spectank.screen` – an in-memory model of the display: text cells over a
  32×24 colour attribute map (`Screen`), `Colour`, `make_attr`, and the
  fade-out effect (`fade_steps`, `fade_out`).
- `spectank.status` – the in-game side bar, scoreboard, scrolling status
  message and flag direction indicator (`StatusDisplay`), and the game-over
  panel (`game_over_text`, `show_game_over`), in English (`"en"`) or
  Spanish (`"es"`).
- `spectank.matchmaking` – the lobby screen (`MatchmakingUI`) with the
  player list, status line and key handling (`1` joins blue, `2` joins red,
  `0` marks the player ready, `s` asks to start), plus `replace_spaces`,
  `format_status` and `matchmake_position`.
- `spectank.sprites` – the sprite table (`SpriteTable`, `Sprite`) with
  explosion, photon and tank frame selection, and `tile_colour` for map
  tiles.
- `spectank.viewport` – `find_viewport` and `ViewportManager`, which pick the
  screen-sized part of the map around a position and report it.
- `spectank.lineinput` – `KeyBuffer`, a small key queue, and `LineInput`, a
  boxed line editor drawn on a `Screen`.
- `spectank.uploader` – send a file, with or without a load header, to a
  machine listening on TCP port 2000.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Commands

### Play

```
spectank PLAYER [--server HOST] [--server-file FILE] [--port PORT] [--lang {en,es}]
```

`PLAYER` is cut to 8 characters and its spaces become underscores. The
server is taken from `--server`, or else from the first 16 bytes of the
server file (`server.ip` by default) up to the first control character; it
is cut to 15 characters. The port defaults to 32767.

The command connects, takes part in matchmaking until the server starts the
match, plays the game until the server ends it, and then disconnects. It
prints status lines such as `Connecting....`, `Connected` or
`Code -5 - Connection failed`, and exits with status 1 on a failure and 0
once a game has finished.

### Upload a file

```
spectank-ethup <host> <file> [startaddr]
```

Connects to `<host>` on port 2000 and sends a four-byte little-endian
header (start address, then length; a length of 65536 is sent as zero)
followed by the file. The start address is decimal, defaults to 32768 and
must be within 0..65535; the file must be between 1 and 65536 bytes long.
Errors are printed and give exit status 255.

### Bandwidth test

```
spectank-bwtest <host>
```

Streams `BWTest.bin` from the current directory, with no header, to
`<host>` on port 2000.

## What the package does not do

The screens, status bar, sprites and lobby are kept as in-memory models;
the `spectank` command does not draw them in a terminal or window and does
not read the keyboard. Nothing fills the lobby's key buffer, so team choice,
"ready" and "start" cannot be sent from the command, and the in-game
controls always report no movement. The package contains no game server.

## Using the protocol from Python

```python
from spectank.protocol import MapXY, Viewport
from spectank.viewport import find_viewport

xy = MapXY.unpack(MapXY(mapx=300, mapy=200).pack())
vp = find_viewport(xy)
assert vp == Viewport(224, 184, 448, 368)
assert Viewport.unpack(vp.pack()) == vp
```