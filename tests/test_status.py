import pytest

from spectank import status
from spectank.protocol import MAX_STATUS_MSG, GameEnd, GameEndReason, MessageMsg, NumberMsg, NumberType
from spectank.screen import DEFAULT_ATTRIBUTE, FLASH, Screen
from spectank.status import StatusDisplay, flag_indicator_cell, game_over_text, show_game_over

TEAM = status.DEFAULT_TEAM_COLOURS


def _display(lang="en"):
    return StatusDisplay(Screen(status.TEXT_COLUMNS), TEAM, lang)


def _drain(display):
    steps = 0
    while display.update_message_area():
        steps += 1
    return steps


def _indicator_cells():
    return [
        (row, col)
        for row in status.FLAG_ROWS
        for col in range(status.FLAG_COLUMN, status.FLAG_COLUMN + status.FLAG_SIZE)
    ]


def test_welcome_message_scrolls_in():
    display = _display()
    text = "Welcome to Spectank."
    assert display.screen.text_at(status.STATUS_ROW, 0, len(text)) == " " * len(text)
    assert _drain(display) == len(text)
    assert display.screen.text_at(status.STATUS_ROW, 0, len(text)) == text
    assert display.update_message_area() is False


def test_status_line_attributes():
    display = _display()
    attrs = {display.screen.attribute_at(status.STATUS_ROW, col) for col in range(32)}
    assert attrs == {status.STATUS_LINE_ATTR}


@pytest.mark.parametrize(
    "lang, labels",
    [
        ("en", ("Ener", "Ammo", "Live", "Flag", "Blue", "Red")),
        ("es", ("Ener", "Misl", "Vida", "Flag", "Azul", "Rojo")),
    ],
)
def test_labels(lang, labels):
    display = _display(lang)
    for row, label in zip(status.LABEL_ROWS, labels):
        assert display.screen.text_at(row, status.LABEL_COLUMN, len(label)) == label


def test_utf8_pairs_take_one_column():
    display = _display()
    display.set_message(MessageMsg("\u00a1Hola"))
    assert _drain(display) == len("\u00a1Hola".encode("utf-8"))
    assert display.screen.text_at(status.STATUS_ROW, 0, 6) == "\u00a1Hola "


def test_set_message_clears_previous_text():
    display = _display()
    _drain(display)
    display.set_message(MessageMsg("Hi"))
    assert display.screen.text_at(status.STATUS_ROW, 0, 20) == " " * 20
    _drain(display)
    assert display.screen.text_at(status.STATUS_ROW, 0, 3) == "Hi "


def test_long_message_is_truncated():
    display = _display()
    display.set_message(MessageMsg("x" * MAX_STATUS_MSG))
    assert _drain(display) == MAX_STATUS_MSG - 1


def test_put_entire_message():
    display = _display()
    text = "Press ENTER to finish"
    display.put_entire_message(text)
    row = status.STATUS_ROW
    assert display.screen.text_at(row, 0, len(text)) == text
    rest = status.TEXT_COLUMNS - len(text)
    assert display.screen.text_at(row, len(text), rest) == " " * rest


@pytest.mark.parametrize("kind", list(status.VALUE_POSITIONS))
def test_update_scoreboard(kind):
    display = _display()
    row = status.VALUE_POSITIONS[kind]
    assert display.update_scoreboard(NumberMsg(kind, "42")) is True
    assert display.screen.text_at(row, status.LABEL_COLUMN, status.VALUE_WIDTH) == "42  "
    display.update_scoreboard(NumberMsg(kind, "7"))
    assert display.screen.text_at(row, status.LABEL_COLUMN, status.VALUE_WIDTH) == "7   "


def test_player_score_is_ignored():
    display = _display()
    before = [display.screen.text_at(row, 0, status.TEXT_COLUMNS) for row in range(24)]
    assert display.update_scoreboard(NumberMsg(NumberType.PLAYER_SCORE, "99")) is False
    after = [display.screen.text_at(row, 0, status.TEXT_COLUMNS) for row in range(24)]
    assert after == before


def test_flag_indicator_cells():
    assert flag_indicator_cell(0x00) == (status.FLAG_ROWS[0], status.FLAG_COLUMN)
    assert flag_indicator_cell(0x12) == (status.FLAG_ROWS[1], status.FLAG_COLUMN + 2)
    assert flag_indicator_cell(0x21) == (status.FLAG_ROWS[2], status.FLAG_COLUMN + 1)


def test_flag_indicator_cell_range():
    with pytest.raises(ValueError):
        flag_indicator_cell(0x100)


def test_flag_alert_flashes_one_cell():
    display = _display()
    display.flag_alert(0x11)
    flashing = flag_indicator_cell(0x11)
    for cell in _indicator_cells():
        expected = TEAM | FLASH if cell == flashing else TEAM
        assert display.screen.attribute_at(*cell) == expected


def test_flag_alert_no_sector_quietens():
    display = _display()
    display.flag_alert(0x01)
    display.flag_alert(status.NO_SECTOR)
    assert {display.screen.attribute_at(*cell) for cell in _indicator_cells()} == {TEAM}


def test_invalid_language():
    with pytest.raises(ValueError):
        StatusDisplay(Screen(status.TEXT_COLUMNS), TEAM, "fr")


def test_narrow_screen_rejected():
    with pytest.raises(ValueError):
        StatusDisplay(Screen(), TEAM)


@pytest.mark.parametrize(
    "end, lang, outcome",
    [
        (GameEnd(GameEndReason.TEAM_WON, 1, "3", "1"), "en", "Victory!"),
        (GameEnd(GameEndReason.TEAM_WON, 0, "1", "3"), "en", "Defeat!"),
        (GameEnd(GameEndReason.TEAM_WON, 2, "2", "2"), "en", "  Draw!"),
        (GameEnd(GameEndReason.OUT_OF_LIVES, 0, "0", "0"), "en", "No lives!"),
        (GameEnd(GameEndReason.TEAM_WON, 1, "3", "1"), "es", "\u00a1Victoria!"),
    ],
)
def test_game_over_outcome(end, lang, outcome):
    texts = [item.text for item in game_over_text(end, lang)]
    assert outcome in texts
    assert end.blue_capture in texts and end.red_capture in texts


def test_game_over_title_first():
    items = game_over_text(GameEnd(GameEndReason.TEAM_WON, 1, "3", "1"))
    assert items[0].text == "**** GAME OVER ****"
    assert items[-1].text == "Press ENTER to finish"


def test_show_game_over_draws_items():
    screen = Screen(status.TEXT_COLUMNS)
    screen.write(status.GAME_OVER_TOP + 1, 12, "junk")
    items = show_game_over(screen, GameEnd(GameEndReason.TEAM_WON, 0, "1", "2"))
    for item in items:
        assert screen.text_at(item.row, item.col, len(item.text)) == item.text
    assert screen.text_at(status.GAME_OVER_TOP + 1, 12, 4) == "    "
    assert screen.attribute_at(status.GAME_OVER_TOP, status.GAME_OVER_ATTR_COL) == status.GAME_OVER_ATTR
    assert screen.attribute_at(status.GAME_OVER_TOP, status.GAME_OVER_ATTR_COL - 1) == DEFAULT_ATTRIBUTE