"""Character cell buffer that the alignment renderer draws into

The buffer is a plain row-major grid owned by the caller. Rendering functions
take it as an argument and write cells in place.
"""

from dataclasses import dataclass, field

from rich.style import Style

from .constants import BLANK_GLYPH
from .layout import Rect


@dataclass
class Cell:
    """One character cell: a glyph plus its foreground/background style"""

    symbol: str = BLANK_GLYPH
    style: Style = field(default_factory=Style.null)

    @property
    def fg(self):
        return self.style.color

    @property
    def bg(self):
        return self.style.bgcolor


class CellBuffer:
    """Row-major grid of cells

    Examples:
        >>> buf = CellBuffer(10, 2)
        >>> buf.set_string(0, 0, "ACGT", Style(color="red"))
        >>> buf.cell(1, 0).symbol
        'C'
    """

    def __init__(self, width: int, height: int):
        if width < 0 or height < 0:
            raise ValueError(f"Invalid buffer size {width}x{height}")
        self.area = Rect(0, 0, width, height)
        self.rows = [[Cell() for _ in range(width)] for _ in range(height)]

    @property
    def width(self) -> int:
        return self.area.width

    @property
    def height(self) -> int:
        return self.area.height

    def cell(self, x: int, y: int) -> Cell | None:
        """Return the cell at (x, y), or None outside the buffer"""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.rows[y][x]
        return None

    def set_string(self, x: int, y: int, string: str, style: Style) -> None:
        """Write ``string`` one character per cell starting at (x, y)

        The style is layered over each cell's current style: attributes the
        new style leaves unset (e.g. a missing background) keep their value.
        Characters past the right edge are dropped.
        """
        if not 0 <= y < self.height:
            return
        row = self.rows[y]
        for i, char in enumerate(string):
            column = x + i
            if column >= self.width:
                break
            if column < 0:
                continue
            cell = row[column]
            cell.symbol = char
            cell.style = cell.style + style

    def reset(self) -> None:
        for row in self.rows:
            for cell in row:
                cell.symbol = BLANK_GLYPH
                cell.style = Style.null()

    def lines(self) -> list[str]:
        """Symbols of each row joined into strings"""
        return ["".join(cell.symbol for cell in row) for row in self.rows]
