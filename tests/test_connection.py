import socket
import threading

import pytest

from spectank.connection import (
    ControlInput,
    GameConnection,
    MatchmakingConnection,
    NotAcknowledged,
    ServerFull,
    SyncTimeout,
    iter_game_messages,
    iter_matchmaking_messages,
)
from spectank.protocol import (
    ACK_OK,
    ACK_TOO_MANY,
    MAX_NAME,
    ClientMsg,
    GameEnd,
    MapXY,
    MaptileMsg,
    MatchmakeMsg,
    MessageMsg,
    ProtocolError,
    ServerMsg,
    SpriteMsg,
    Viewport,
    encode_map,
)


def _udp():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2)
    return sock


@pytest.fixture
def pair():
    server, client = _udp(), _udp()
    yield server, client
    server.close()
    client.close()


class GameRecorder:
    def __init__(self):
        self.events = []
        self.idles = 0

    def manage_sprite(self, msg):
        self.events.append(("manage_sprite", msg))

    def remove_sprite(self, msg):
        self.events.append(("remove_sprite", msg))

    def switch_viewport(self, xy):
        self.events.append(("switch_viewport", xy))

    def draw_map(self, tiles):
        self.events.append(("draw_map", tiles))

    def set_message(self, msg):
        self.events.append(("set_message", msg))

    def update_scoreboard(self, msg):
        self.events.append(("update_scoreboard", msg))

    def flag_alert(self, sector):
        self.events.append(("flag_alert", sector))

    def game_over(self, end):
        self.events.append(("game_over", end))

    def frame_done(self):
        self.events.append(("frame_done", None))

    def idle(self):
        self.idles += 1


class MatchRecorder:
    def __init__(self):
        self.events = []
        self.idles = 0

    def clear_player_list(self):
        self.events.append(("clear", None))

    def display_matchmake(self, msg):
        self.events.append(("matchmake", msg))

    def display_status(self, msg):
        self.events.append(("status", msg))

    def set_startable(self, startable):
        self.events.append(("startable", startable))

    def idle(self):
        self.idles += 1


SPRITE = SpriteMsg(3, 10, 20, 1, 0, 5, 0)


def test_game_messages_in_order():
    msg = MessageMsg("hi")
    data = bytes([2, ServerMsg.SPRITE]) + SPRITE.pack() + bytes([ServerMsg.MESSAGE]) + msg.pack()
    assert list(iter_game_messages(data)) == [(ServerMsg.SPRITE, SPRITE), (ServerMsg.MESSAGE, msg)]


def test_map_consumes_rest_of_block():
    tiles = [MaptileMsg("B", 1, 2), MaptileMsg("s", 3, 4)]
    data = bytes([3, ServerMsg.MAP]) + encode_map(tiles) + bytes([ServerMsg.SPRITE])
    assert list(iter_game_messages(data)) == [(ServerMsg.MAP, tiles)]


def test_ping_skips_a_byte_and_flag_alert_reads_one():
    data = bytes([2, ServerMsg.PING, 0, ServerMsg.FLAG_ALERT, 0x12])
    assert list(iter_game_messages(data)) == [(ServerMsg.PING, None), (ServerMsg.FLAG_ALERT, 0x12)]


def test_unknown_type_drops_the_rest():
    data = bytes([2, 0x7E]) + bytes([ServerMsg.SPRITE]) + SPRITE.pack()
    assert list(iter_game_messages(data)) == []


def test_end_game_stops_block():
    end = GameEnd(0, 1, "3", "2")
    data = bytes([2, ServerMsg.END_GAME_SCORE]) + end.pack() + bytes([ServerMsg.SPRITE]) + SPRITE.pack()
    assert list(iter_game_messages(data)) == [(ServerMsg.END_GAME_SCORE, end)]


def test_viewport_switch_message():
    xy = MapXY(300, 400)
    data = bytes([1, ClientMsg.VIEWPORT]) + xy.pack()
    assert list(iter_game_messages(data)) == [(ClientMsg.VIEWPORT, xy)]


def test_empty_and_truncated_blocks_raise():
    with pytest.raises(ProtocolError):
        list(iter_game_messages(b""))
    with pytest.raises(ProtocolError):
        list(iter_game_messages(bytes([1, ServerMsg.SPRITE, 1, 2])))


def test_matchmaking_messages():
    mm = MatchmakeMsg(1, 0, 1, "bob")
    data = (
        bytes([5, ServerMsg.CLEAR_PLAYER_LIST, ServerMsg.MATCHMAKE]) + mm.pack()
        + bytes([ServerMsg.PING, ServerMsg.MM_STARTABLE, 1, ServerMsg.MM_EXIT])
    )
    assert list(iter_matchmaking_messages(data)) == [
        (ServerMsg.CLEAR_PLAYER_LIST, None),
        (ServerMsg.MATCHMAKE, mm),
        (ServerMsg.PING, None),
        (ServerMsg.MM_STARTABLE, True),
        (ServerMsg.MM_EXIT, None),
    ]


def test_send_control_and_viewport_wire_bytes(pair):
    server, client = pair
    game = GameConnection(client, server.getsockname())
    game.send_control(0x85)
    assert server.recvfrom(64)[0] == bytes([0x80, 0x85])
    vp = Viewport(0, 0, 224, 184)
    game.send_viewport(vp)
    assert server.recvfrom(64)[0] == bytes([0x42]) + vp.pack()


def test_start_game_returns_position(pair):
    server, client = pair
    xy = MapXY(100, 200)
    server.sendto(bytes([1, ClientMsg.START_ACK]) + xy.pack(), client.getsockname())
    game = GameConnection(client, server.getsockname())
    assert game.start_game() == xy
    assert server.recvfrom(64)[0] == bytes([ClientMsg.START])


def test_start_game_without_ack(pair):
    server, client = pair
    server.sendto(bytes([1, ServerMsg.ACK, 0, 0, 0, 0]), client.getsockname())
    game = GameConnection(client, server.getsockname())
    with pytest.raises(NotAcknowledged):
        game.start_game()


def test_game_loop_dispatches_and_ends(pair):
    server, client = pair
    end = GameEnd(0, 1, "4", "1")
    server.sendto(bytes([2, ServerMsg.SPRITE]) + SPRITE.pack() + bytes([ServerMsg.PING, 0]), client.getsockname())
    server.sendto(bytes([1, ServerMsg.END_GAME_SCORE]) + end.pack(), client.getsockname())
    handler = GameRecorder()
    game = GameConnection(client, server.getsockname())
    assert game.run(handler) == end
    assert handler.events == [("manage_sprite", SPRITE), ("frame_done", None), ("game_over", end)]
    assert server.recvfrom(64)[0] == bytes([ClientMsg.CLIENT_READY])
    assert server.recvfrom(64)[0] == bytes([ServerMsg.PING])


def test_disconnect_with_bye(pair):
    server, client = pair
    reply = bytes([1, ServerMsg.BYE_ACK])
    server.sendto(reply, client.getsockname())
    game = GameConnection(client, server.getsockname())
    assert game.disconnect(True) == reply
    assert server.recvfrom(64)[0] == bytes([ClientMsg.BYE])
    assert client.fileno() == -1


def test_disconnect_without_bye(pair):
    server, client = pair
    game = GameConnection(client, server.getsockname())
    assert game.disconnect(False) is None
    assert client.fileno() == -1


def test_matchmaking_sync_retries_then_times_out(pair):
    server, client = pair
    conn = MatchmakingConnection(client, server.getsockname(), retries=3, reply_timeout=0.01)
    with pytest.raises(SyncTimeout):
        conn.send_sync(bytes([ClientMsg.MM_START]))
    received = [server.recvfrom(64)[0] for _ in range(3)]
    assert received == [bytes([ClientMsg.MM_START])] * 3


def test_matchmaking_requests(pair):
    server, client = pair
    conn = MatchmakingConnection(client, server.getsockname())
    conn.ready_to_matchmake()
    conn.join_team(1)
    conn.player_ready()
    conn.stop_matchmaking()
    received = [server.recvfrom(64)[0] for _ in range(4)]
    assert received == [
        bytes([ClientMsg.MM_START]),
        bytes([ClientMsg.TEAM_REQUEST, 1]),
        bytes([ClientMsg.MM_READY]),
        bytes([ClientMsg.MM_STOP]),
    ]


def test_matchmaking_loop_hands_over_to_game(pair):
    server, client = pair
    mm = MatchmakeMsg(0, 1, 0, "eve")
    server.sendto(bytes([2, ServerMsg.MATCHMAKE]) + mm.pack() + bytes([ServerMsg.PING]), client.getsockname())
    server.sendto(bytes([1, ServerMsg.MM_EXIT]), client.getsockname())
    handler = MatchRecorder()
    conn = MatchmakingConnection(client, server.getsockname())
    game = conn.run(handler)
    assert handler.events == [("matchmake", mm)]
    assert (game.sock, game.address) == (client, server.getsockname())
    assert server.recvfrom(64)[0] == bytes([ServerMsg.PING])


def _serve_once(server, reply, seen):
    data, addr = server.recvfrom(1024)
    seen.append(data)
    server.sendto(reply, addr)


def test_connect_sends_hello(pair):
    server, _ = pair
    seen = []
    port = server.getsockname()[1]
    thread = threading.Thread(target=_serve_once, args=(server, bytes([1, ServerMsg.ACK, ACK_OK]), seen))
    thread.start()
    conn = MatchmakingConnection.connect("127.0.0.1", "alice", port)
    thread.join()
    try:
        assert conn.address == ("127.0.0.1", port)
    finally:
        conn.close()
    assert seen == [bytes([ClientMsg.HELLO]) + b"alice".ljust(MAX_NAME, b"\0")]


def test_connect_to_full_server(pair):
    server, _ = pair
    seen = []
    thread = threading.Thread(target=_serve_once, args=(server, bytes([1, ACK_TOO_MANY]), seen))
    thread.start()
    with pytest.raises(ServerFull):
        MatchmakingConnection.connect("127.0.0.1", "a" * 30, server.getsockname()[1])
    thread.join()
    assert len(seen[0]) == MAX_NAME + 1
    assert seen[0][1:] == b"a" * (MAX_NAME - 1) + b"\0"


def test_control_input_sends_only_changes():
    sent = []
    control = ControlInput(sent.append)
    assert control.update(0) is False
    assert control.update(0x84) is True
    assert control.update(0x84) is False
    assert control.update(0x01) is True
    assert sent == [0x84, 0x01]