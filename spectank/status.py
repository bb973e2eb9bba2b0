"""In-game status areas: labels, counters, scrolling message, flag indicator, game over panel."""
from __future__ import annotations

from typing import NamedTuple

from spectank.protocol import (
    MAX_STATUS_MSG,
    GameEnd,
    GameEndReason,
    MessageMsg,
    NumberMsg,
    NumberType,
)
from spectank.screen import COLUMNS, FLASH, Colour, Screen, make_attr

TEXT_COLUMNS = 42
STATUS_ROW = 23
LABEL_COLUMN = 38
VALUE_WIDTH = 4
FLAG_ROWS = (18, 19, 20)
FLAG_COLUMN = 29
FLAG_SIZE = 3
NO_SECTOR = 0xFF
STATUS_LINE_ATTR = make_attr(Colour.YELLOW, Colour.BLUE)
DEFAULT_TEAM_COLOURS = make_attr(Colour.CYAN, Colour.BLUE)

# Rows of the side-bar labels, in the order of the label tuples below.
LABEL_ROWS = (0, 3, 6, 16, 9, 12)
_LABELS = {
    "en": ("Ener", "Ammo", "Live", "Flag", "Blue", "Red"),
    "es": ("Ener", "Misl", "Vida", "Flag", "Azul", "Rojo"),
}
_WELCOME = {"en": "Welcome to Spectank.", "es": "Bienvenido a Spectank."}

# Row on which each counter's value is printed, at LABEL_COLUMN.
VALUE_POSITIONS = {
    NumberType.HITPOINTS: 1,
    NumberType.AMMO: 4,
    NumberType.LIVES: 7,
    NumberType.BLUE_SCORE: 10,
    NumberType.RED_SCORE: 13,
}

_UTF8_LEADS = (0xC2, 0xC3)

GAME_OVER_TOP = 8
GAME_OVER_LINES = 6
GAME_OVER_ATTR_COL = 8
GAME_OVER_ATTR_WIDTH = 15
GAME_OVER_ATTR = 0x29
GAME_OVER_TEXT_COL = 11
GAME_OVER_TEXT_WIDTH = 20

_GAME_OVER_STRINGS = {
    "en": {
        "title": "**** GAME OVER ****",
        "score": "------ SCORE ------",
        "blue": "BLUE: ",
        "red": "RED : ",
        "defeat": "Defeat!",
        "victory": "Victory!",
        "draw": "  Draw!",
        "no_lives": "No lives!",
        "prompt": "Press ENTER to finish",
        "outcome_col": 17,
    },
    "es": {
        "title": "PARTIDA  FINALIZADA",
        "score": "---PUNTUACIONES----",
        "blue": "AZUL: ",
        "red": "ROJO: ",
        "defeat": " \u00a1Derrota!",
        "victory": "\u00a1Victoria!",
        "draw": "  \u00a1Empate!",
        "no_lives": "\u00a1Has muerto!",
        "prompt": "Pulsa ENTER para salir",
        "outcome_col": 15,
    },
}


def _check_lang(lang: str) -> str:
    if lang not in _LABELS:
        raise ValueError(f"unsupported language: {lang!r}")
    return lang


def flag_indicator_cell(sector: int) -> tuple[int, int]:
    """Attribute cell (row, column) that flashes for a flag direction sector."""
    if not 0 <= sector <= 0xFF:
        raise ValueError(f"sector out of range: {sector}")
    band = sector & 0x70
    if band == 0:
        row = FLAG_ROWS[0]
    elif band == 0x10:
        row = FLAG_ROWS[1]
    else:
        row = FLAG_ROWS[2]
    return divmod(row * COLUMNS + FLAG_COLUMN + (sector & 0x07), COLUMNS)


class StatusDisplay:
    """The side bar and bottom message line shown during a game."""

    def __init__(self, screen: Screen | None = None, team_colours: int = DEFAULT_TEAM_COLOURS, lang: str = "en"):
        self.lang = _check_lang(lang)
        self.screen = screen if screen is not None else Screen(TEXT_COLUMNS)
        if self.screen.text_columns < TEXT_COLUMNS:
            raise ValueError(f"status display needs {TEXT_COLUMNS} text columns")
        self.team_colours = team_colours
        self._message = b""
        self._pos = 0
        self._print_pos = 0
        self._lead: int | None = None
        self._quieten_flag_indicator()
        for col in range(COLUMNS):
            self.screen.set_attribute(STATUS_ROW, col, STATUS_LINE_ATTR)
        self.set_message(MessageMsg(_WELCOME[lang]))
        for row, label in zip(LABEL_ROWS, _LABELS[lang]):
            self.screen.write(row, LABEL_COLUMN, label)

    def _clear_status_line(self) -> None:
        self.screen.write(STATUS_ROW, 0, " " * TEXT_COLUMNS)

    def set_message(self, msg: MessageMsg) -> None:
        """Start showing a new message, one character per update."""
        self._message = msg.encoded[:MAX_STATUS_MSG - 1]
        self._pos = 0
        self._print_pos = 0
        self._lead = None
        self._clear_status_line()

    def update_message_area(self) -> bool:
        """Print the next byte of the message; return False once it is all shown."""
        if self._pos >= len(self._message):
            return False
        byte = self._message[self._pos]
        self._pos += 1
        if byte in _UTF8_LEADS:
            self._lead = byte
            return True
        if self._lead is not None:
            ch = bytes((self._lead, byte)).decode("utf-8", errors="replace")
            self._lead = None
        else:
            ch = chr(byte)
        if self._print_pos < TEXT_COLUMNS:
            self.screen.put_char(STATUS_ROW, self._print_pos, ch)
        self._print_pos += 1
        return True

    def put_entire_message(self, text: str) -> None:
        """Replace the message line with the whole text at once."""
        self._clear_status_line()
        self.screen.write(STATUS_ROW, 0, text)

    def update_scoreboard(self, msg: NumberMsg) -> bool:
        """Show a counter value; return False for counters the side bar lacks."""
        row = VALUE_POSITIONS.get(msg.number_type)
        if row is None:
            return False
        self.screen.write(row, LABEL_COLUMN, " " * VALUE_WIDTH)
        self.screen.write(row, LABEL_COLUMN, msg.text)
        return True

    def _quieten_flag_indicator(self) -> None:
        for row in FLAG_ROWS:
            for col in range(FLAG_COLUMN, FLAG_COLUMN + FLAG_SIZE):
                self.screen.set_attribute(row, col, self.team_colours)

    def flag_alert(self, sector: int) -> None:
        """Stop any flashing, then flash the sector's cell unless it is NO_SECTOR."""
        self._quieten_flag_indicator()
        if sector != NO_SECTOR:
            row, col = flag_indicator_cell(sector)
            self.screen.set_attribute(row, col, self.team_colours | FLASH)


class TextItem(NamedTuple):
    row: int
    col: int
    text: str


def game_over_text(end: GameEnd, lang: str = "en") -> list[TextItem]:
    """Everything the game over panel prints, in order."""
    strings = _GAME_OVER_STRINGS[_check_lang(lang)]
    score_row = GAME_OVER_TOP + 5
    items = [
        TextItem(GAME_OVER_TOP, GAME_OVER_TEXT_COL, strings["title"]),
        TextItem(GAME_OVER_TOP + 4, GAME_OVER_TEXT_COL, strings["score"]),
        TextItem(score_row, GAME_OVER_TEXT_COL, strings["blue"]),
        TextItem(score_row, 20, strings["red"]),
    ]
    outcome = None
    if end.reason == GameEndReason.TEAM_WON:
        outcome = {0: "defeat", 1: "victory"}.get(end.winner, "draw")
    elif end.reason == GameEndReason.OUT_OF_LIVES:
        outcome = "no_lives"
    if outcome is not None:
        items.append(TextItem(GAME_OVER_TOP + 2, strings["outcome_col"], strings[outcome]))
    items.append(TextItem(score_row, 17, end.blue_capture))
    items.append(TextItem(score_row, 26, end.red_capture))
    items.append(TextItem(STATUS_ROW, 0, strings["prompt"]))
    return items


def show_game_over(screen: Screen, end: GameEnd, lang: str = "en") -> list[TextItem]:
    """Draw the game over panel and prompt; return the text items drawn."""
    items = game_over_text(end, lang)
    for row in range(GAME_OVER_TOP, GAME_OVER_TOP + GAME_OVER_LINES):
        screen.write(row, GAME_OVER_TEXT_COL, " " * GAME_OVER_TEXT_WIDTH)
        for col in range(GAME_OVER_ATTR_COL, GAME_OVER_ATTR_COL + GAME_OVER_ATTR_WIDTH):
            screen.set_attribute(row, col, GAME_OVER_ATTR)
    screen.write(STATUS_ROW, 0, " " * screen.text_columns)
    for item in items:
        screen.write(item.row, item.col, item.text)
    return items