#!/usr/bin/env python3
"""
Create test sprite sets for cssprite.

Used by the test suite and handy for trying the CLI by hand:

    python create_test_files.py
    python make_sprite.py compose --out build test_scenarios/mixed --style build/sprite.css
"""

import io
import random
from pathlib import Path
from typing import Tuple

from PIL import Image, ImageDraw

COLORS = ['red', 'blue', 'green', 'yellow', 'purple', 'orange', 'pink', 'cyan',
          'brown', 'gray', 'navy', 'maroon', 'olive', 'teal', 'silver']

CORRUPT_BYTES = b"this is not an image"


def make_sprite(width: int, height: int, color='red', mode: str = 'RGBA') -> Image.Image:
    """Solid sprite with a one-pixel black border, so pastes are easy to locate."""
    img = Image.new(mode, (width, height), color=color)
    if width > 2 and height > 2:
        draw = ImageDraw.Draw(img)
        draw.rectangle([0, 0, width - 1, height - 1], outline='black')
    return img


def sprite_bytes(width: int, height: int, color='red', fmt: str = 'PNG') -> bytes:
    img = make_sprite(width, height, color, mode='RGB' if fmt == 'JPEG' else 'RGBA')
    with io.BytesIO() as buf:
        img.save(buf, format=fmt)
        return buf.getvalue()


def create_test_scenario(root: Path, name: str, num_images: int, max_size: Tuple[int, int] = (64, 64),
                         corrupt: int = 0, retina: bool = False, seed: int = 7) -> Path:
    """
    Write a folder of sprites.

    Args:
        root: Parent folder for the scenario
        name: Scenario folder name
        num_images: Number of valid images
        max_size: Largest (width, height) generated
        corrupt: Number of extra files with an image extension but garbage content
        retina: Also write an @2x twin (double size) of every image
        seed: Random seed, so scenarios are reproducible

    Returns:
        Path of the scenario folder
    """
    rng = random.Random(seed)
    scenario_dir = root / name
    scenario_dir.mkdir(parents=True, exist_ok=True)

    max_w, max_h = max_size
    for i in range(num_images):
        width = rng.randint(max(1, max_w // 4), max_w)
        height = rng.randint(max(1, max_h // 4), max_h)
        color = rng.choice(COLORS)
        (scenario_dir / f"icon_{i:02d}.png").write_bytes(sprite_bytes(width, height, color))
        if retina:
            (scenario_dir / f"icon_{i:02d}@2x.png").write_bytes(sprite_bytes(width * 2, height * 2, color))

    for i in range(corrupt):
        (scenario_dir / f"broken_{i:02d}.png").write_bytes(CORRUPT_BYTES)

    return scenario_dir


def main():
    root = Path("test_scenarios")
    scenarios = [
        ("mixed", dict(num_images=12)),
        ("with_corrupt", dict(num_images=5, corrupt=2)),
        ("retina_pairs", dict(num_images=6, retina=True)),
        ("large", dict(num_images=40, max_size=(128, 96))),
    ]
    for name, kwargs in scenarios:
        path = create_test_scenario(root, name, **kwargs)
        print(f"Created scenario: {path}")


if __name__ == "__main__":
    main()
