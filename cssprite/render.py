from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageColor

from .codec import ALPHA_LESS_FORMATS
from .errors import InvariantViolation
from .layout import LayoutResult

RGBA = Tuple[int, int, int, int]


@dataclass
class Sheet:
    """One composite output raster."""
    name: str
    width: int
    height: int
    image: Image.Image
    format: str = "png"
    background: RGBA = (255, 255, 255, 255)
    data: Optional[bytes] = None
    ref: Optional[str] = None


def resolve_background(color: str, opacity: float, fmt: str) -> RGBA:
    """
    Turn a CSS colour and an opacity into an RGBA fill.

    Args:
        color: Any colour string Pillow's ImageColor understands
        opacity: 0 (transparent) .. 1 (opaque)
        fmt: Output format; formats without alpha never get a transparent fill

    Returns:
        (r, g, b, a) tuple
    """
    if not 0 <= opacity <= 1:
        raise ValueError(f"Opacity must be between 0 and 1, got {opacity}")

    if opacity == 0 and fmt.lower() in ALPHA_LESS_FORMATS:
        logging.info(f"Format {fmt} has no alpha channel; using an opaque background")
        opacity = 1

    r, g, b = ImageColor.getrgb(color)[:3]
    return r, g, b, int(round(opacity * 255))


def composite(layout: LayoutResult, background: RGBA, margin: int,
              name: str, fmt: str = "png") -> Sheet:
    """Paste every placed item onto a background-filled canvas, in layout order."""
    logging.info(f"Compositing {name}: {len(layout.placed_items)} sprites on "
                 f"{layout.canvas_width}x{layout.canvas_height} canvas")
    logging.debug(f"Background: {background}, margin: {margin}")

    try:
        base = Image.new("RGBA", (layout.canvas_width, layout.canvas_height), color=background)
    except (ValueError, MemoryError) as e:
        logging.error(f"PIL Image creation failed: {type(e).__name__}: {e}")
        logging.error(f"Attempted dimensions: {layout.canvas_width:,} x {layout.canvas_height:,} pixels")
        raise

    for idx, placed in enumerate(layout.placed_items):
        src = placed.item.source
        x0 = placed.x + margin
        y0 = placed.y + margin
        if (x0 < 0 or y0 < 0 or x0 + src.width > base.width or y0 + src.height > base.height):
            raise InvariantViolation(
                f"Paste of {src.name} ({src.width}x{src.height}) at ({x0}, {y0}) "
                f"exceeds {base.width}x{base.height} canvas"
            )
        logging.debug(f"Pasting {idx + 1}/{len(layout.placed_items)}: {src.name} at ({x0}, {y0})")
        # plain paste replaces the background, alpha included
        base.paste(src.image, (x0, y0))

    return Sheet(name=name, width=base.width, height=base.height, image=base, format=fmt,
                 background=background)


def downscale_sheet(sheet: Sheet, name: str) -> Sheet:
    """Derive the non-retina sheet at half size with area-averaging resampling."""
    width = max(1, sheet.width // 2)
    height = max(1, sheet.height // 2)
    logging.info(f"Downscaling {sheet.name} {sheet.width}x{sheet.height} -> {name} {width}x{height}")
    img = sheet.image.resize((width, height), Image.BOX)
    return Sheet(name=name, width=width, height=height, image=img, format=sheet.format,
                 background=sheet.background)
