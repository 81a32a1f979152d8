"""
Pipeline driver.

Sequences intake -> layout -> composite -> encode -> derive -> render for
exactly one batch. Either every artifact of the batch is produced or none is.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from . import codec
from .intake import ImageIntake
from .layout import LayoutResult, pack, strategy_for_orientation, verify_layout
from .logger import log_intake_results, log_packing_calculation
from .metadata import SpriteRecord, derive_records
from .render import Sheet, composite, downscale_sheet, resolve_background
from .templates import PROCESSORS, TemplateRegistry, default_registry

STYLE_EXTENSIONS = {"css": "css", "less": "less", "scss": "scss", "stylus": "styl"}


@dataclass
class SpriteOptions:
    """Configuration for one sprite sheet build."""
    name: str = "sprite"
    format: str = "png"
    margin: int = 4
    orientation: str = "vertical"
    sort: bool = True
    retina: bool = False
    non_retina_provided: bool = False
    background: str = "#FFFFFF"
    opacity: float = 0
    css_path: str = "../images"
    processor: str = "css"
    prefix: str = "icon"
    base64: bool = False
    style: Optional[str] = None
    template: str = "sprite"

    def validate(self) -> None:
        if not self.name:
            raise ValueError("Sprite name must not be empty")
        if self.format.lower() not in codec.MIME_TYPES:
            raise ValueError(f"Unsupported format: {self.format}")
        if self.margin < 0:
            raise ValueError(f"Margin must be >= 0, got {self.margin}")
        if self.retina and self.non_retina_provided and self.margin % 2:
            # non-retina padding is margin // 2 and has to match the halved retina padding
            raise ValueError(f"Margin must be even when non-retina images are provided, got {self.margin}")
        if not 0 <= self.opacity <= 1:
            raise ValueError(f"Opacity must be between 0 and 1, got {self.opacity}")
        if self.processor not in PROCESSORS:
            raise ValueError(f"Unsupported processor: {self.processor}")
        strategy_for_orientation(self.orientation)

    @property
    def style_extension(self) -> str:
        return STYLE_EXTENSIONS[self.processor]

    @property
    def sheet_filename(self) -> str:
        return f"{self.name}.{self.format}"

    @property
    def retina_filename(self) -> str:
        return f"{self.name}@2x.{self.format}"


class DriverState(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    PACKING = "packing"
    COMPOSITING = "compositing"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SpriteOutput:
    """Everything one batch produced."""
    sheets: List[Sheet] = field(default_factory=list)
    records: List[SpriteRecord] = field(default_factory=list)
    stylesheet: Optional[str] = None
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.sheets and not self.records


class SpriteDriver:
    """Builds the sprite sheet(s) of one batch of images."""

    def __init__(self, options: Optional[SpriteOptions] = None,
                 registry: Optional[TemplateRegistry] = None):
        self.options = options or SpriteOptions()
        self.options.validate()
        self.registry = registry or default_registry()
        self.state = DriverState.IDLE
        # without retina output every image belongs to the one sheet
        self.intake = ImageIntake(
            non_retina_provided=self.options.non_retina_provided and self.options.retina
        )
        self.logger = logging.getLogger(__name__)

    def _transition(self, state: DriverState) -> None:
        self.logger.debug(f"Driver state: {self.state.value} -> {state.value}")
        self.state = state

    def add(self, name: str, source) -> None:
        """Feed one input. Fatal input errors fail the whole batch."""
        if self.state not in (DriverState.IDLE, DriverState.COLLECTING):
            raise RuntimeError(f"Cannot add images in state {self.state.value}")
        if self.state == DriverState.IDLE:
            self._transition(DriverState.COLLECTING)
        try:
            self.intake.add(name, source)
        except Exception:
            self.logger.error(f"Input {name} failed the batch; no output emitted", exc_info=True)
            self._fail()
            raise

    def process(self, sources) -> SpriteOutput:
        """Add (name, source) pairs and run."""
        for name, source in sources:
            self.add(name, source)
        return self.run()

    def run(self) -> SpriteOutput:
        if self.state not in (DriverState.IDLE, DriverState.COLLECTING):
            raise RuntimeError(f"Driver already ran (state {self.state.value})")

        log_intake_results(len(self.intake.accepted), self.intake.skipped)
        skipped = list(self.intake.skipped)

        if not self.intake.accepted:
            self.logger.info("No images accepted; nothing to emit")
            self._transition(DriverState.DONE)
            return SpriteOutput(skipped=skipped)

        try:
            output = self._run_batch()
        except Exception:
            self.logger.error("Sprite build failed; no output emitted", exc_info=True)
            self._fail()
            raise

        output.skipped = skipped
        self.intake.release()
        self._transition(DriverState.DONE)
        return output

    def _fail(self) -> None:
        self.intake.release()
        self._transition(DriverState.FAILED)

    def _pack_group(self, items, label: str) -> LayoutResult:
        opt = self.options
        start = time.perf_counter()
        layout = pack(items, strategy_for_orientation(opt.orientation), opt.sort)
        verify_layout(layout)
        log_packing_calculation(label, layout, time.perf_counter() - start)
        return layout

    def _run_batch(self) -> SpriteOutput:
        opt = self.options

        self._transition(DriverState.PACKING)
        retina_items, non_retina_items = self.intake.groups(opt.margin)
        background = resolve_background(opt.background, opt.opacity, opt.format)

        if not retina_items:
            # no @2x images at all: the non-retina group is the only sheet
            self.logger.warning("No retina images supplied; emitting a single non-retina sheet")
            layout = self._pack_group(non_retina_items, "non-retina")
            self._transition(DriverState.COMPOSITING)
            main = composite(layout, background, opt.margin // 2, opt.sheet_filename, opt.format)
            return self._emit(layout, opt.margin // 2, main, None)

        layout = self._pack_group(retina_items, "retina" if opt.retina else "sprite")
        non_retina_layout = None
        if non_retina_items:
            non_retina_layout = self._pack_group(non_retina_items, "non-retina")

        self._transition(DriverState.COMPOSITING)
        main = composite(layout, background, opt.margin, opt.sheet_filename, opt.format)
        if not opt.retina:
            return self._emit(layout, opt.margin, main, None)

        main.name = opt.retina_filename
        if non_retina_layout is not None:
            low = composite(non_retina_layout, background, opt.margin // 2, opt.sheet_filename, opt.format)
        else:
            low = downscale_sheet(main, opt.sheet_filename)
        return self._emit(layout, opt.margin, low, main)

    def _emit(self, layout: LayoutResult, margin: int, sheet: Sheet,
              retina_sheet: Optional[Sheet]) -> SpriteOutput:
        opt = self.options
        self._transition(DriverState.EMITTING)

        sheets = [s for s in (sheet, retina_sheet) if s is not None]
        for s in sheets:
            s.data = codec.encode(s)
            s.ref = codec.sheet_ref(s, opt.css_path, opt.base64)

        records = derive_records(layout, margin, sheet, retina_sheet)

        stylesheet = None
        if opt.style or opt.base64:
            stylesheet = self.registry.render(
                records, opt.template, {"processor": opt.processor, "prefix": opt.prefix}
            )

        # base64 sheets live inside the stylesheet only
        emitted = [] if opt.base64 else sheets
        self.logger.info(f"Emitting {len(emitted)} sheet(s) and {len(records)} records")
        return SpriteOutput(sheets=emitted, records=records, stylesheet=stylesheet)
