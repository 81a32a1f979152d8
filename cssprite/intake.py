"""
Image record intake.

Accepts decoded or encoded images one at a time, drops unreadable ones and
sorts the rest into the retina (primary) and non-retina packing groups.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from .codec import decode
from .errors import SkippableInputError, UnsupportedInputKind

RETINA_MARKER = "@2x"

_SEPARATORS = re.compile(r"[/\\ ]")


def normalize_name(relative_path: str) -> str:
    """Strip the extension and turn path separators and spaces into dashes."""
    p = PurePath(relative_path.replace("\\", "/"))
    stem = str(p.with_suffix("")) if p.suffix else str(p)
    return _SEPARATORS.sub("-", stem)


@dataclass
class SourceImage:
    """A decoded input image, held as an RGBA Pillow image."""
    name: str
    width: int
    height: int
    image: Image.Image
    is_retina_variant: bool


@dataclass(frozen=True)
class PackItem:
    """A source image plus its margin, ready for the layout engine."""
    source: SourceImage
    padded_width: int
    padded_height: int

    @classmethod
    def from_source(cls, source: SourceImage, margin: int) -> "PackItem":
        return cls(source, source.width + 2 * margin, source.height + 2 * margin)


class ImageIntake:
    """Collects the images of one batch."""

    def __init__(self, non_retina_provided: bool = False):
        self.non_retina_provided = non_retina_provided
        self.accepted: List[SourceImage] = []
        self.skipped: List[Tuple[str, str]] = []
        self.logger = logging.getLogger(__name__)

    def add(self, name: str, source) -> Optional[SourceImage]:
        """
        Accept one input.

        Args:
            name: Relative path of the input, used to derive the sprite name
            source: Encoded bytes, a seekable binary file object, a Pillow
                image, a numpy pixel array, or None (ignored)

        Returns:
            The accepted SourceImage, or None when the input was ignored or skipped

        Raises:
            UnsupportedInputKind: source is a non-seekable stream
        """
        if source is None:
            self.logger.debug(f"Ignoring null input {name}")
            return None

        try:
            img = self._to_image(name, source)
        except SkippableInputError as e:
            self.skipped.append((name, str(e)))
            self.logger.warning(f"Ignoring {name} -> {e}")
            return None

        sprite_name = normalize_name(name)
        record = SourceImage(
            name=sprite_name,
            width=img.width,
            height=img.height,
            image=img,
            is_retina_variant=RETINA_MARKER in sprite_name,
        )
        self.accepted.append(record)
        self.logger.debug(f"Accepted {sprite_name} ({img.width}x{img.height})")
        return record

    def _to_image(self, name: str, source) -> Image.Image:
        if isinstance(source, Image.Image):
            img = source.convert("RGBA")
        elif isinstance(source, np.ndarray):
            try:
                img = Image.fromarray(source).convert("RGBA")
            except (TypeError, ValueError) as e:
                raise SkippableInputError(f"unsupported pixel array ({e})") from e
        elif isinstance(source, (bytes, bytearray, memoryview)):
            img = decode(bytes(source))
        elif hasattr(source, "read"):
            seekable = getattr(source, "seekable", None)
            if seekable is None or not seekable():
                raise UnsupportedInputKind(f"Streaming not supported: {name}")
            source.seek(0)
            img = decode(source.read())
        else:
            raise SkippableInputError(f"unrecognised input type {type(source).__name__}")

        if img.width <= 0 or img.height <= 0:
            raise SkippableInputError(f"empty image {img.width}x{img.height}")
        return img

    def groups(self, margin: int) -> Tuple[List[PackItem], List[PackItem]]:
        """
        Split accepted images into (retina_items, non_retina_items).

        Without non_retina_provided every image lands in the first group and
        the non-retina sheet, if any, is derived by downscaling. The
        independent non-retina group is padded with half the margin.
        """
        retina: List[PackItem] = []
        non_retina: List[PackItem] = []
        for src in self.accepted:
            if self.non_retina_provided and not src.is_retina_variant:
                non_retina.append(PackItem.from_source(src, margin // 2))
            else:
                retina.append(PackItem.from_source(src, margin))
        return retina, non_retina

    def release(self) -> None:
        for src in self.accepted:
            src.image.close()
        self.accepted.clear()
