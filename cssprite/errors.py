"""Exception types raised while building a sprite sheet."""


class SpriteError(Exception):
    """Base class for all sprite pipeline errors."""


class SkippableInputError(SpriteError):
    """An input could not be used; it is dropped and the batch continues."""


class DecodeError(SkippableInputError):
    """Bytes are not a raster format Pillow can read."""


class UnsupportedInputKind(SpriteError):
    """Input arrived as a non-seekable stream. Fatal for the whole batch."""


class InvariantViolation(SpriteError):
    """Overlapping placements or an out-of-bounds paste.

    Always a layout engine defect, never bad user input.
    """
