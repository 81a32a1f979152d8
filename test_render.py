#!/usr/bin/env python3
"""
Tests for the canvas compositor and the sheet codec.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(__file__))

import numpy as np
import pytest
from PIL import Image

from create_test_files import make_sprite
from cssprite import codec
from cssprite.errors import DecodeError, InvariantViolation
from cssprite.intake import PackItem, SourceImage
from cssprite.layout import LayoutResult, PlacedItem, Strategy, pack
from cssprite.render import composite, downscale_sheet, resolve_background

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def solid_item(name, width, height, color, margin):
    img = Image.new("RGBA", (width, height), color)
    return PackItem.from_source(SourceImage(name, width, height, img, False), margin)


def test_background_keeps_transparency_for_png():
    assert resolve_background("white", 0, "png") == (255, 255, 255, 0)
    assert resolve_background("#336699", 0.5, "png") == (0x33, 0x66, 0x99, 128)


def test_zero_opacity_is_coerced_for_jpg():
    assert resolve_background("white", 0, "jpg") == (255, 255, 255, 255)
    assert resolve_background("white", 0.25, "jpg")[3] == 64


def test_background_rejects_bad_opacity():
    with pytest.raises(ValueError):
        resolve_background("white", 1.5, "png")


def test_composite_pastes_at_margin_offset():
    margin = 3
    items = [solid_item("red", 4, 5, RED, margin), solid_item("blue", 6, 2, BLUE, margin)]
    layout = pack(items, Strategy.TOP_DOWN, sort_enabled=False)
    sheet = composite(layout, (255, 255, 255, 255), margin, "sprite.png")

    assert (sheet.width, sheet.height) == (layout.canvas_width, layout.canvas_height) == (12, 19)
    pixels = np.asarray(sheet.image)
    # red sprite occupies x 3..6, y 3..7
    assert tuple(pixels[3, 3]) == RED
    assert tuple(pixels[7, 6]) == RED
    # margin ring stays background
    assert tuple(pixels[2, 3]) == (255, 255, 255, 255)
    assert tuple(pixels[8, 3]) == (255, 255, 255, 255)
    # blue sprite starts after the red padded box (height 11)
    assert tuple(pixels[11 + margin, margin]) == BLUE
    assert tuple(pixels[11 + margin + 1, margin + 5]) == BLUE


def test_composite_keeps_background_outside_sprites():
    items = [solid_item("a", 10, 10, RED, 0), solid_item("b", 4, 4, BLUE, 0)]
    layout = pack(items, Strategy.TOP_DOWN)
    sheet = composite(layout, (10, 20, 30, 0), 0, "sprite.png")
    # right of the small sprite is not covered by anything
    assert tuple(np.asarray(sheet.image)[12, 8]) == (10, 20, 30, 0)


def test_out_of_bounds_paste_is_an_invariant_violation():
    item = solid_item("big", 10, 10, RED, 0)
    layout = LayoutResult(8, 10, (PlacedItem(item, 0, 0),))
    with pytest.raises(InvariantViolation):
        composite(layout, (0, 0, 0, 0), 0, "sprite.png")


def test_downscale_halves_with_floor():
    items = [solid_item("a", 11, 7, RED, 0)]
    sheet = composite(pack(items), (0, 0, 0, 0), 0, "sprite@2x.png")
    low = downscale_sheet(sheet, "sprite.png")
    assert (low.width, low.height) == (5, 3)
    assert low.image.size == (5, 3)
    assert low.name == "sprite.png"
    assert tuple(np.asarray(low.image)[1, 1]) == RED


def test_downscale_averages_pixels():
    img = Image.new("RGBA", (2, 2), (0, 0, 0, 255))
    img.putpixel((0, 0), (255, 255, 255, 255))
    img.putpixel((1, 1), (255, 255, 255, 255))
    item = PackItem.from_source(SourceImage("checker", 2, 2, img, False), 0)
    sheet = composite(pack([item]), (0, 0, 0, 0), 0, "sprite@2x.png")
    low = downscale_sheet(sheet, "sprite.png")
    r = int(np.asarray(low.image)[0, 0][0])
    assert 120 <= r <= 135


def test_downscale_never_produces_empty_sheet():
    sheet = composite(pack([solid_item("dot", 1, 1, RED, 0)]), (0, 0, 0, 0), 0, "sprite@2x.png")
    low = downscale_sheet(sheet, "sprite.png")
    assert (low.width, low.height) == (1, 1)


def test_jpg_sheet_background_is_opaque_white():
    background = resolve_background("white", 0, "jpg")
    layout = pack([solid_item("a", 8, 8, BLUE, 16)])
    sheet = composite(layout, background, 16, "sprite.jpg", "jpg")

    decoded = codec.decode(codec.encode(sheet))
    r, g, b, a = decoded.getpixel((1, 1))
    assert a == 255
    assert min(r, g, b) >= 245


def test_png_roundtrip_preserves_transparency():
    layout = pack([solid_item("a", 4, 4, RED, 2)])
    sheet = composite(layout, (0, 0, 0, 0), 2, "sprite.png")
    decoded = codec.decode(codec.encode(sheet))
    assert decoded.getpixel((0, 0))[3] == 0
    assert decoded.getpixel((2, 2)) == RED


def test_decode_rejects_garbage():
    with pytest.raises(DecodeError):
        codec.decode(b"definitely not a png")


def test_encode_rejects_unknown_format():
    sheet = composite(pack([solid_item("a", 2, 2, RED, 0)]), (0, 0, 0, 0), 0, "sprite.bmp", "bmp")
    with pytest.raises(ValueError):
        codec.encode(sheet)


def test_sheet_ref_and_data_uri():
    sheet = composite(pack([solid_item("a", 2, 2, RED, 0)]), (0, 0, 0, 0), 0, "sprite.png")
    assert codec.sheet_ref(sheet, "../images") == "../images/sprite.png"
    assert codec.sheet_ref(sheet, "..\\img") == "../img/sprite.png"
    with pytest.raises(ValueError):
        codec.sheet_ref(sheet, "../images", use_base64=True)
    sheet.data = codec.encode(sheet)
    assert codec.sheet_ref(sheet, "../images", use_base64=True).startswith("data:image/png;base64,iVBOR")


def test_sprite_fixture_has_border():
    img = make_sprite(5, 5, "red")
    assert img.getpixel((0, 0)) == (0, 0, 0, 255)
    assert img.getpixel((2, 2)) == RED


def test_jpg_flattens_translucent_pixels_onto_sheet_background():
    navy = resolve_background("navy", 1, "jpg")
    layout = pack([solid_item("glass", 16, 16, (255, 0, 0, 128), 16)])
    sheet = composite(layout, navy, 16, "sprite.jpg", "jpg")
    assert sheet.background == navy

    r, g, b, _ = codec.decode(codec.encode(sheet)).getpixel((24, 24))
    # half red over navy, not half red over white
    assert abs(r - 128) <= 8 and g <= 8 and abs(b - 64) <= 8


def test_downscaled_sheet_keeps_background():
    navy = resolve_background("navy", 1, "jpg")
    sheet = composite(pack([solid_item("a", 4, 4, RED, 0)]), navy, 0, "sprite@2x.jpg", "jpg")
    assert downscale_sheet(sheet, "sprite.jpg").background == navy
