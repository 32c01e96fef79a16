"""Exceptions raised by termgv rendering"""


class StateError(RuntimeError):
    """Raised when render state is missing data a pass depends on

    Examples:
        Paired rendering requested before read pairs were computed.
    """


class GlyphError(ValueError):
    """Raised when a byte value cannot be turned into a display glyph"""
