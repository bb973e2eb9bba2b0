"""A model of the Spectrum display: character cells and colour attributes."""
from __future__ import annotations

from enum import IntEnum
from typing import Iterator

ROWS = 24
COLUMNS = 32
ATTRIBUTE_START = 22528
BRIGHT = 0x40
FLASH = 0x80
DEFAULT_ATTRIBUTE = 0x38
FADE_LEVELS = 8
FRAMES_PER_STEP = 3


class Colour(IntEnum):
    BLACK = 0
    BLUE = 1
    RED = 2
    MAGENTA = 3
    GREEN = 4
    CYAN = 5
    YELLOW = 6
    WHITE = 7


def make_attr(ink, paper=Colour.BLACK, bright=False, flash=False) -> int:
    """Build an attribute byte from ink and paper colours and the two flags."""
    for value in (ink, paper):
        if not 0 <= int(value) <= 7:
            raise ValueError(f"colour out of range: {value}")
    attr = int(ink) | int(paper) << 3
    if bright:
        attr |= BRIGHT
    if flash:
        attr |= FLASH
    return attr


def _check_attribute(value: int) -> int:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"attribute out of range: {value}")
    return value


class Screen:
    """Text cells (of configurable width) over a 32x24 attribute map."""

    def __init__(self, text_columns: int = COLUMNS, attribute: int = DEFAULT_ATTRIBUTE):
        if text_columns < 1:
            raise ValueError("text_columns must be positive")
        self.text_columns = text_columns
        self.default_attribute = _check_attribute(attribute)
        self.clear()

    def _check_cell(self, row: int, col: int, columns: int) -> None:
        if not (0 <= row < ROWS and 0 <= col < columns):
            raise IndexError(f"cell ({row}, {col}) is off screen")

    def put_char(self, row: int, col: int, ch: str) -> None:
        if len(ch) != 1:
            raise ValueError("put_char takes a single character")
        self._check_cell(row, col, self.text_columns)
        self._text[row][col] = ch

    def write(self, row: int, col: int, text: str) -> int:
        """Write text from a cell, cut off at the end of the row; return the next column."""
        self._check_cell(row, col, self.text_columns)
        fitted = text[:self.text_columns - col]
        self._text[row][col:col + len(fitted)] = list(fitted)
        return col + len(fitted)

    def text_at(self, row: int, col: int, length: int) -> str:
        self._check_cell(row, col, self.text_columns)
        return "".join(self._text[row][col:col + length])

    def set_attribute(self, row: int, col: int, value: int) -> None:
        self._check_cell(row, col, COLUMNS)
        self._attrs[row][col] = _check_attribute(value)

    def attribute_at(self, row: int, col: int) -> int:
        self._check_cell(row, col, COLUMNS)
        return self._attrs[row][col]

    def fill_attributes(self, value: int) -> None:
        _check_attribute(value)
        for line in self._attrs:
            line[:] = bytes([value]) * COLUMNS

    @property
    def attributes(self) -> bytes:
        """All attribute bytes in display-memory order."""
        return b"".join(bytes(line) for line in self._attrs)

    def clear(self) -> None:
        self._text = [[" "] * self.text_columns for _ in range(ROWS)]
        self._attrs = [bytearray([self.default_attribute]) * COLUMNS for _ in range(ROWS)]


def fade_steps() -> Iterator[int]:
    """Attribute values of the fade-out, each shown for FRAMES_PER_STEP frames."""
    yield from range(FADE_LEVELS - 1, -1, -1)


def fade_out(screen: Screen) -> list[int]:
    """Darken the whole screen step by step; return the values applied."""
    applied = []
    for value in fade_steps():
        screen.fill_attributes(value)
        applied.append(value)
    return applied