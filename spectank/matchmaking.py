"""Matchmaking screen: player list, team choice and status line."""
from __future__ import annotations

from typing import Callable, Protocol

from spectank.lineinput import KeyBuffer
from spectank.protocol import MM_READY, MatchmakeMsg, MessageMsg, Team
from spectank.screen import COLUMNS, Colour, Screen, make_attr

LOCKOUT_TIME = 512
STATUS_ROW = 20
STATUS_WIDTH = 31
STARTABLE_ROW = 9
STARTABLE_COL = 7
STARTABLE_WIDTH = 23
TEAM_ROW = 13
UNASSIGNED_ROW = 19
LIST_LINES = 4
LIST_WIDTH = 32
BLUE_COL = 1
RED_COL = 20
INSTRUCTIONS_ROW = 6
INSTRUCTIONS_COL = 1
HEADER_ROW = 11
UNASSIGNED_HEADER_ROW = 17
CLEAR_FROM_ROW = 7
CLEAR_CELLS = 16 * 33
READY_MARK = "*"

UI_ATTR = make_attr(Colour.YELLOW, Colour.BLACK, bright=True)
STATUS_ATTR = make_attr(Colour.YELLOW, Colour.RED, bright=True)
READY_ATTR = make_attr(Colour.YELLOW, Colour.BLACK, bright=True, flash=True)

_STRINGS = {
    "en": {
        "failed": "Code {code} - failed!",
        "coded": "Code {code} - {msg}",
        "instructions": ("Press 0 when ready", "       1 to join BLUE", "       2 to join RED"),
        "blue": "BLUE TEAM",
        "red": "RED TEAM",
        "unassigned": "Not on a team yet:",
        "startable": "S to start game",
    },
    "es": {
        "failed": "Codigo {code} - fallo",
        "coded": "Codigo {code} - {msg}",
        "instructions": (
            "Pulsa 0 cuando estes listo",
            "       1 unirse al equipo AZUL",
            "       2 unirse al equipo ROJO",
        ),
        "blue": "EQUIPO AZUL",
        "red": "EQUIPO ROJO",
        "unassigned": "No pertenecen a un equipo:",
        "startable": "S para empezar el juego",
    },
}


def _strings(lang: str) -> dict:
    try:
        return _STRINGS[lang]
    except KeyError:
        raise ValueError(f"unsupported language: {lang!r}") from None


class MatchmakingRequests(Protocol):
    def join_team(self, team: int) -> object: ...

    def player_ready(self) -> object: ...

    def stop_matchmaking(self) -> object: ...


def replace_spaces(text: str) -> str:
    """Player names may not contain spaces; they become underscores."""
    return text.replace(" ", "_")


def format_status(code: int, msg: str | None, lang: str = "en") -> str:
    """The text of the status line for a result code and optional message."""
    strings = _strings(lang)
    if msg is None:
        return strings["failed"].format(code=code)
    if code == 0:
        return msg
    return strings["coded"].format(code=code, msg=msg)


def matchmake_position(msg: MatchmakeMsg) -> tuple[int, int]:
    """Screen (row, column) where a player's entry starts."""
    if msg.team == Team.BLUE:
        row, col = TEAM_ROW + msg.player_num, BLUE_COL
    elif msg.team == Team.RED:
        row, col = TEAM_ROW + msg.player_num, RED_COL
    else:
        row, col = UNASSIGNED_ROW + msg.player_num, BLUE_COL
    if msg.flags & MM_READY:
        col -= 1
    return row, col


class MatchmakingUI:
    """Draws the matchmaking screen and turns key presses into requests."""

    def __init__(
        self,
        requests: MatchmakingRequests,
        screen: Screen | None = None,
        keys: KeyBuffer | None = None,
        lang: str = "en",
    ):
        self._strings = _strings(lang)
        self.lang = lang
        self.requests = requests
        self.screen = screen if screen is not None else Screen()
        self.keys = keys
        self.lockout = LOCKOUT_TIME
        self._actions: dict[str, Callable[[], object]] = {
            "1": lambda: requests.join_team(Team.BLUE),
            "2": lambda: requests.join_team(Team.RED),
            "0": requests.player_ready,
            "s": requests.stop_matchmaking,
        }

    def _print(self, row: int, col: int, text: str, attr: int = UI_ATTR) -> int:
        end = self.screen.write(row, col, text)
        for cell in range(col, min(end, COLUMNS)):
            self.screen.set_attribute(row, cell, attr)
        return end

    def status(self, code: int, msg: str | None) -> str:
        """Show a result on the status line; return the text shown."""
        text = format_status(code, msg, self.lang)
        self._print(STATUS_ROW, 0, " " * STATUS_WIDTH)
        self._print(STATUS_ROW, 0, text, STATUS_ATTR)
        return text

    def display_status(self, msg: MessageMsg) -> None:
        self.status(0, msg.message)

    def display_matchmake(self, msg: MatchmakeMsg) -> None:
        """Print a player's entry in the list for their team."""
        row, col = matchmake_position(msg)
        if msg.flags & MM_READY:
            col = self._print(row, col, READY_MARK, READY_ATTR)
        self._print(row, col, msg.player_name)

    def clear_player_list(self) -> None:
        for top in (TEAM_ROW, UNASSIGNED_ROW):
            for row in range(top, top + LIST_LINES):
                self._print(row, 0, " " * LIST_WIDTH)

    def set_startable(self, startable: bool) -> None:
        text = self._strings["startable"] if startable else " " * STARTABLE_WIDTH
        self._print(STARTABLE_ROW, STARTABLE_COL, text)

    def _clear_lower(self) -> None:
        full_rows, remainder = divmod(CLEAR_CELLS, COLUMNS)
        for row in range(CLEAR_FROM_ROW, CLEAR_FROM_ROW + full_rows):
            self._print(row, 0, " " * COLUMNS)
        if remainder:
            self._print(CLEAR_FROM_ROW + full_rows, 0, " " * remainder)

    def draw_screen(self) -> None:
        """Clear the lower screen and draw instructions and team headings."""
        self._clear_lower()
        first, *rest = self._strings["instructions"]
        self._print(INSTRUCTIONS_ROW, INSTRUCTIONS_COL, first)
        for offset, line in enumerate(rest, start=1):
            self._print(INSTRUCTIONS_ROW + offset, 0, line)
        self._print(HEADER_ROW, BLUE_COL, self._strings["blue"], make_attr(Colour.YELLOW, Colour.BLUE, bright=True))
        self._print(HEADER_ROW, RED_COL, self._strings["red"], make_attr(Colour.YELLOW, Colour.RED, bright=True))
        self._print(UNASSIGNED_HEADER_ROW, BLUE_COL, self._strings["unassigned"])

    def tick(self, key: str | int | None = None) -> bool:
        """Handle one poll of the keyboard; return whether a request was sent.

        Keys pressed while the lockout is running are dropped, which stops a
        held key from flooding the server.
        """
        if self.lockout:
            self.lockout -= 1
        if key is None:
            return False
        if isinstance(key, int):
            key = chr(key)
        if self.lockout:
            return False
        action = self._actions.get(key)
        if action is None:
            return False
        action()
        self.lockout = LOCKOUT_TIME
        return True

    def idle(self) -> None:
        key = self.keys.take_latest() if self.keys is not None else None
        self.tick(key)