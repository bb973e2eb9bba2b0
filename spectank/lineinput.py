"""Keyboard buffering and a boxed line editor drawn on the screen model."""
from __future__ import annotations

from collections import deque

from spectank.screen import Colour, Screen, make_attr

KEY_BUFFER_SIZE = 8
INPUT_SIZE = 140
KEY_DELETE = 12
KEY_ENTER = 13
INPUT_INK = Colour.WHITE
INPUT_PAPER = Colour.BLUE
COMPLETE_INK = Colour.YELLOW
COMPLETE_PAPER = Colour.BLACK
CURSOR = "_"


class KeyBuffer:
    """Keys collected by the keyboard poller, waiting to be read."""

    def __init__(self):
        self._keys: deque[int] = deque(maxlen=KEY_BUFFER_SIZE)

    def push(self, key: int) -> None:
        """Queue a key code; zero means no key and is ignored."""
        if not 0 <= key <= 0xFF:
            raise ValueError(f"key code out of range: {key}")
        if key:
            self._keys.append(key)

    def ready(self) -> bool:
        return bool(self._keys)

    def pop(self) -> int | None:
        """Take the next key, or None if none is waiting."""
        return self._keys.popleft() if self._keys else None

    def take_latest(self) -> int | None:
        """Take the next key and discard everything else pending."""
        if not self._keys:
            return None
        key = self._keys[0]
        self._keys.clear()
        return key


class LineInput:
    """A text entry box: echoes typed keys with a cursor, wrapping in the box."""

    def __init__(self, screen: Screen, password: bool = False):
        self.screen = screen
        self.password = password
        self.x = self.y = self.width = self.height = self.length = 0
        self.cur_x = self.cur_y = 0
        self.ready = False
        self._debounce_enter = False
        self._chars: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._chars)

    def reset(self, x: int, y: int, width: int, height: int, length: int) -> None:
        """Place an empty box on screen, ready for input."""
        self.ready = False
        self.x, self.y, self.width, self.height, self.length = x, y, width, height, length
        self._debounce_enter = False
        self.cur_x, self.cur_y = x, y
        self.clear_area(INPUT_INK, INPUT_PAPER)
        self._chars.clear()

    def _box_cells(self):
        for row in range(self.y, self.y + self.height):
            for col in range(self.x, self.x + self.width):
                yield row, col

    def clear_area(self, ink: int, paper: int) -> None:
        """Blank the box in the given colours and home the cursor."""
        attr = make_attr(ink, paper)
        for row, col in self._box_cells():
            self.screen.put_char(row, col, " ")
            self.screen.set_attribute(row, col, attr)
        self.cur_x, self.cur_y = self.x, self.y

    def colour_area(self, ink: int, paper: int) -> None:
        """Recolour the box without touching its text and home the cursor."""
        attr = make_attr(ink, paper)
        for row, col in self._box_cells():
            self.screen.set_attribute(row, col, attr)
        self.cur_x, self.cur_y = self.x, self.y

    def handle_key(self, key: int) -> str | None:
        """Apply one key; return the entered text once ENTER completes it."""
        if key == KEY_DELETE:
            self._delete()
            return None
        if key == KEY_ENTER:
            if not self._debounce_enter:
                self._debounce_enter = True
                return None
            self.screen.put_char(self.cur_y, self.cur_x, " ")
            self.ready = True
            self.colour_area(COMPLETE_INK, COMPLETE_PAPER)
            return self.text
        if key < 32 or key > 127:
            return None
        self._debounce_enter = True
        if len(self._chars) >= min(INPUT_SIZE, self.length):
            return None
        ch = chr(key)
        self.screen.put_char(self.cur_y, self.cur_x, "*" if self.password else ch)
        if self.cur_x >= self.x + self.width - 1:
            self.cur_x = self.x
            self.cur_y += 1
        else:
            self.cur_x += 1
        self._chars.append(ch)
        self.screen.put_char(self.cur_y, self.cur_x, CURSOR)
        return None

    def _delete(self) -> None:
        self._debounce_enter = True
        if not self._chars:
            return
        self._chars.pop()
        if self.cur_x > self.x:
            self.cur_x -= 1
            self.screen.write(self.cur_y, self.cur_x, CURSOR + " ")
        else:
            self.screen.put_char(self.cur_y, self.cur_x, " ")
            self.cur_y -= 1
            self.cur_x = self.x + self.width - 1
            self.screen.put_char(self.cur_y, self.cur_x, CURSOR)

    def feed(self, buffer: KeyBuffer) -> str | None:
        """Apply waiting keys until input completes or none are left."""
        while buffer.ready():
            result = self.handle_key(buffer.pop())
            if result is not None:
                return result
        return None