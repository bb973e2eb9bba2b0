import pytest

from spectank.lineinput import (
    COMPLETE_INK,
    COMPLETE_PAPER,
    INPUT_INK,
    INPUT_PAPER,
    KEY_DELETE,
    KEY_ENTER,
    KeyBuffer,
    LineInput,
)
from spectank.screen import Screen, make_attr


def _typed(line, text):
    for ch in text:
        line.handle_key(ord(ch))


@pytest.fixture
def line():
    entry = LineInput(Screen())
    entry.reset(2, 3, 10, 2, 15)
    return entry


def test_key_buffer_order_and_empty():
    buf = KeyBuffer()
    assert buf.pop() is None
    buf.push(0)
    assert buf.ready() is False
    buf.push(ord("a"))
    buf.push(ord("b"))
    assert buf.ready() is True
    assert buf.pop() == ord("a")
    assert buf.pop() == ord("b")
    assert buf.ready() is False


def test_take_latest_discards_the_rest():
    buf = KeyBuffer()
    assert buf.take_latest() is None
    for ch in "xyz":
        buf.push(ord(ch))
    assert buf.take_latest() == ord("x")
    assert buf.ready() is False


def test_key_buffer_rejects_out_of_range():
    with pytest.raises(ValueError):
        KeyBuffer().push(256)


def test_reset_colours_box(line):
    assert line.screen.attribute_at(3, 2) == make_attr(INPUT_INK, INPUT_PAPER)
    assert line.screen.attribute_at(4, 11) == make_attr(INPUT_INK, INPUT_PAPER)
    assert line.text == ""


def test_typing_echoes_with_cursor(line):
    _typed(line, "ab")
    assert line.text == "ab"
    assert line.screen.text_at(3, 2, 3) == "ab_"


def test_enter_completes_after_typing(line):
    _typed(line, "hi")
    assert line.handle_key(KEY_ENTER) == "hi"
    assert line.ready is True
    assert line.screen.text_at(3, 2, 3) == "hi "
    assert line.screen.attribute_at(3, 2) == make_attr(COMPLETE_INK, COMPLETE_PAPER)


def test_first_enter_is_debounced(line):
    assert line.handle_key(KEY_ENTER) is None
    assert line.ready is False
    assert line.handle_key(KEY_ENTER) == ""


def test_wraps_to_next_row():
    entry = LineInput(Screen())
    entry.reset(0, 0, 3, 2, 6)
    _typed(entry, "abcd")
    assert entry.screen.text_at(0, 0, 3) == "abc"
    assert entry.screen.text_at(1, 0, 2) == "d_"
    assert (entry.cur_x, entry.cur_y) == (1, 1)


def test_length_limit(line):
    line.reset(0, 0, 30, 1, 3)
    _typed(line, "abcdef")
    assert line.text == "abc"


def test_password_masks_echo():
    entry = LineInput(Screen(), password=True)
    entry.reset(0, 0, 10, 1, 8)
    _typed(entry, "pw")
    assert entry.text == "pw"
    assert entry.screen.text_at(0, 0, 3) == "**_"


def test_delete_removes_last_char(line):
    _typed(line, "ab")
    line.handle_key(KEY_DELETE)
    assert line.text == "a"
    assert line.screen.text_at(3, 2, 3) == "a_ "


def test_delete_across_row_boundary():
    entry = LineInput(Screen())
    entry.reset(0, 0, 3, 2, 6)
    _typed(entry, "abc")
    entry.handle_key(KEY_DELETE)
    assert entry.text == "ab"
    assert (entry.cur_x, entry.cur_y) == (2, 0)
    assert entry.screen.text_at(0, 0, 3) == "ab_"


def test_delete_on_empty_is_harmless(line):
    line.handle_key(KEY_DELETE)
    assert line.text == ""
    assert line.handle_key(KEY_ENTER) == ""


def test_control_keys_ignored(line):
    line.handle_key(7)
    line.handle_key(200)
    assert line.text == ""


def test_feed_from_buffer(line):
    buf = KeyBuffer()
    for ch in "ok":
        buf.push(ord(ch))
    assert line.feed(buf) is None
    buf.push(KEY_ENTER)
    buf.push(ord("z"))
    assert line.feed(buf) == "ok"
    assert buf.pop() == ord("z")