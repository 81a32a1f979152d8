"""
cssprite - CSS sprite sheet generator

Packs a batch of raster images into one sprite sheet (or a retina /
non-retina pair) and derives the per-sprite coordinates that stylesheet
templates consume.
"""

__version__ = "1.0.0"
__author__ = "cssprite Team"

from .errors import (
    SpriteError,
    SkippableInputError,
    DecodeError,
    UnsupportedInputKind,
    InvariantViolation,
)
from .layout import Strategy, LayoutResult, PlacedItem, pack, verify_layout
from .pipeline import SpriteDriver, SpriteOptions, SpriteOutput, DriverState
