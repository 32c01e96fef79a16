"""Genomic to screen coordinate mapping for the alignment track"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Rect:
    """Rectangular region of the cell buffer"""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height


class Placement(Enum):
    """Where a coordinate falls relative to the visible area"""

    LEFT = "left"  # Left of (or above) the area
    ON_SCREEN = "on_screen"
    RIGHT = "right"  # Right of (or below) the area


@dataclass(frozen=True)
class OnScreenCoordinate:
    """A genomic coordinate resolved against the visible area

    For ON_SCREEN coordinates ``value`` is the offset inside the area. For
    LEFT and RIGHT it is the distance (in cells) past the area edge.
    """

    placement: Placement
    value: int

    @classmethod
    def left(cls, distance: int) -> "OnScreenCoordinate":
        return cls(Placement.LEFT, distance)

    @classmethod
    def on_screen(cls, offset: int) -> "OnScreenCoordinate":
        return cls(Placement.ON_SCREEN, offset)

    @classmethod
    def right(cls, distance: int) -> "OnScreenCoordinate":
        return cls(Placement.RIGHT, distance)

    @property
    def is_on_screen(self) -> bool:
        return self.placement is Placement.ON_SCREEN


def onscreen_start_and_length(
    start: OnScreenCoordinate, end: OnScreenCoordinate, area: Rect
) -> tuple[int, int] | None:
    """Clip a span to the area

    Returns:
        (x offset, length) of the visible part, or None if nothing is visible
    """
    if start.placement is Placement.RIGHT or end.placement is Placement.LEFT:
        return None

    x_start = 0 if start.placement is Placement.LEFT else start.value
    x_end = area.width - 1 if end.placement is Placement.RIGHT else end.value

    length = x_end - x_start + 1
    if length <= 0:
        return None
    return x_start, length


@dataclass
class AlignmentView:
    """Viewport over the alignment track

    Attributes:
        left: 1-based reference position drawn in the first column
        top: First alignment row drawn in the area
        zoom: Reference positions per screen cell
    """

    left: int = 1
    top: int = 0
    zoom: int = 1

    def __post_init__(self):
        if self.zoom < 1:
            raise ValueError(f"Zoom must be at least 1, got {self.zoom}")

    def onscreen_x_coordinate(self, position: int, area: Rect) -> OnScreenCoordinate:
        """Resolve a 1-based reference position to a column in ``area``"""
        offset = (position - self.left) // self.zoom
        if offset < 0:
            return OnScreenCoordinate.left(-offset)
        if offset >= area.width:
            return OnScreenCoordinate.right(offset - area.width + 1)
        return OnScreenCoordinate.on_screen(offset)

    def onscreen_y_coordinate(self, row: int, area: Rect) -> OnScreenCoordinate:
        """Resolve an alignment row to a line in ``area``"""
        offset = row - self.top
        if offset < 0:
            return OnScreenCoordinate.left(-offset)
        if offset >= area.height:
            return OnScreenCoordinate.right(offset - area.height + 1)
        return OnScreenCoordinate.on_screen(offset)

    def right(self, area: Rect) -> int:
        """Last reference position visible in ``area``"""
        return self.left + area.width * self.zoom - 1

    def center_on(self, position: int, area: Rect) -> None:
        """Move the viewport so ``position`` sits in the middle column"""
        self.left = max(1, position - (area.width // 2) * self.zoom)
