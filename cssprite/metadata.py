"""
Sprite metadata derivation.

Turns a layout plus its composited sheet(s) into the flat record list that
stylesheet templates render.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Optional

from .intake import RETINA_MARKER
from .layout import LayoutResult
from .render import Sheet

KIND_SPRITE = "sprite"
KIND_RETINA = "retina"
KIND_ITEM = "item"


@dataclass
class SpriteRecord:
    """Where one image (or a whole sheet) lives, in CSS pixels."""
    name: str
    x: int
    y: int
    width: int
    height: int
    sheet_width: int
    sheet_height: int
    sheet_ref: str
    kind: str = KIND_ITEM

    def to_dict(self) -> dict:
        return asdict(self)


def _sheet_record(sheet: Sheet, kind: str) -> SpriteRecord:
    return SpriteRecord(
        name=sheet.name.replace(RETINA_MARKER, ""),
        x=0,
        y=0,
        width=sheet.width,
        height=sheet.height,
        sheet_width=sheet.width,
        sheet_height=sheet.height,
        sheet_ref=sheet.ref or sheet.name,
        kind=kind,
    )


def derive_records(layout: LayoutResult, margin: int, sheet: Sheet,
                   retina_sheet: Optional[Sheet] = None) -> List[SpriteRecord]:
    """
    Build one record per placed item, preceded by whole-sheet records.

    Args:
        layout: Layout of the primary (retina when paired) group
        margin: Per-side margin used when packing that layout
        sheet: Sheet the stylesheet addresses by default
        retina_sheet: High-density counterpart; when given, all item
            geometry is floor-halved so both densities show the same region

    Returns:
        [sheet record, (retina sheet record), item records...]
    """
    ref = sheet.ref or sheet.name
    records = [
        SpriteRecord(
            name=p.item.source.name.replace(RETINA_MARKER, ""),
            x=p.x + margin,
            y=p.y + margin,
            width=p.item.padded_width - 2 * margin,
            height=p.item.padded_height - 2 * margin,
            sheet_width=layout.canvas_width,
            sheet_height=layout.canvas_height,
            sheet_ref=ref,
        )
        for p in layout.placed_items
    ]

    if retina_sheet is not None:
        for r in records:
            r.x //= 2
            r.y //= 2
            r.width //= 2
            r.height //= 2
            r.sheet_width //= 2
            r.sheet_height //= 2
        records.insert(0, _sheet_record(retina_sheet, KIND_RETINA))

    records.insert(0, _sheet_record(sheet, KIND_SPRITE))
    return records
