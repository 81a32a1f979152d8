from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Iterator, List, Tuple

from . import codec
from .errors import SpriteError
from .logger import DEFAULT_LOG_FILE, setup_logging
from .pipeline import SpriteDriver, SpriteOptions, SpriteOutput

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif"}


def _collect_sources(src_paths: List[str]) -> Iterator[Tuple[str, bytes]]:
    """Yield (relative name, bytes) for every input file, directories expanded in sorted order."""
    for src in src_paths:
        root = Path(src)
        if root.is_dir():
            files = sorted(
                (p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS),
                key=lambda p: p.relative_to(root).as_posix().lower(),
            )
            logging.info(f"Found {len(files)} images under {root}")
            for path in files:
                yield path.relative_to(root).as_posix(), path.read_bytes()
        elif root.is_file():
            yield root.name, root.read_bytes()
        else:
            logging.warning(f"Ignoring {src} -> no such file or directory")


def _options_from_args(args: argparse.Namespace) -> SpriteOptions:
    return SpriteOptions(
        name=args.name,
        format=args.format,
        margin=args.margin,
        orientation=args.orientation,
        sort=args.sort,
        retina=args.retina,
        non_retina_provided=args.non_retina_provided,
        background=args.background,
        opacity=args.opacity,
        css_path=args.css_image_path,
        processor=args.processor,
        prefix=args.prefix,
        base64=args.base64,
        style=args.style,
    )


def _write_output(output: SpriteOutput, options: SpriteOptions, out_dir: str) -> None:
    """File sink: sheets into out_dir, stylesheet to --style (or beside the sheets)."""
    os.makedirs(out_dir, exist_ok=True)
    for sheet in output.sheets:
        path = os.path.join(out_dir, sheet.name)
        with open(path, "wb") as f:
            f.write(sheet.data)
        logging.info(f"Wrote sheet: {path} ({sheet.width}x{sheet.height})")
        print(f"Wrote sheet: {path}")

    if output.stylesheet is not None:
        style_path = options.style or os.path.join(out_dir, f"{options.name}.{options.style_extension}")
        os.makedirs(os.path.dirname(style_path) or ".", exist_ok=True)
        with open(style_path, "w", encoding="utf-8") as f:
            f.write(output.stylesheet)
        logging.info(f"Wrote stylesheet: {style_path}")
        print(f"Wrote stylesheet: {style_path}")


def cli_compose(args: argparse.Namespace) -> int:
    """Pack the input images into sprite sheet(s) and a stylesheet."""
    logging.info("Starting compose operation")
    logging.debug(f"Args: {vars(args)}")

    try:
        options = _options_from_args(args)
        driver = SpriteDriver(options)
    except ValueError as e:
        logging.error(f"Invalid options: {e}")
        print(f"Invalid options: {e}")
        return 2

    try:
        output = driver.process(_collect_sources(args.src))
    except (SpriteError, OSError) as e:
        logging.error(f"Sprite build failed: {e}")
        print(f"Error: {e}")
        return 5

    if output.empty:
        print("No images to pack; nothing written.")
        return 0

    try:
        _write_output(output, options, args.out)
    except OSError as e:
        logging.error(f"Error writing output: {e}")
        print(f"Error writing output: {e}")
        return 5

    if output.skipped:
        print(f"Skipped {len(output.skipped)} unreadable image(s); see log for details")
    return 0


def cli_layout(args: argparse.Namespace) -> int:
    """Print the sprite records that compose would produce, without writing files."""
    try:
        options = _options_from_args(args)
        options.style = None
        options.base64 = False
        output = SpriteDriver(options).process(_collect_sources(args.src))
    except ValueError as e:
        print(f"Invalid options: {e}")
        return 2
    except (SpriteError, OSError) as e:
        logging.error(f"Layout failed: {e}")
        print(f"Error: {e}")
        return 5

    print(json.dumps([r.to_dict() for r in output.records], indent=2))
    return 0


def _add_sprite_arguments(c: argparse.ArgumentParser) -> None:
    c.add_argument("src", nargs="+", help="Image file or directory of images (repeatable)")
    c.add_argument("--name", default="sprite", help="Sprite sheet base name (default: sprite)")
    c.add_argument("--format", choices=sorted(codec.MIME_TYPES), default="png", help="Sheet image format")
    c.add_argument("--margin", type=int, default=4, help="Margin around each sprite in pixels (default: 4)")
    c.add_argument("--orientation", choices=["vertical", "horizontal", "binary-tree"], default="vertical")
    c.add_argument("--no-sort", dest="sort", action="store_false", help="Pack in input order")
    c.add_argument("--retina", action="store_true", help="Emit an @2x sheet plus a half-size sheet")
    c.add_argument("--non-retina-provided", action="store_true",
                   help="Inputs without @2x in their name are packed as the non-retina sheet instead of downscaling")
    c.add_argument("--background", default="#FFFFFF", help="Background colour (default: #FFFFFF)")
    c.add_argument("--opacity", type=float, default=0, help="Background opacity 0..1 (default: 0)")
    c.add_argument("--css-image-path", default="../images", help="Path to the sheet as seen from the stylesheet")
    c.add_argument("--processor", choices=["css", "less", "scss", "stylus"], default="css")
    c.add_argument("--prefix", default="icon", help="CSS class prefix (default: icon)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cssprite", description="CSS sprite sheet generator")
    p.add_argument("--log-file", default=DEFAULT_LOG_FILE, help="Debug log path ('' disables it)")
    p.add_argument("--verbose", action="store_true", help="Show debug messages on the console")
    sub = p.add_subparsers(dest="cmd")

    c = sub.add_parser("compose", help="Pack images into sprite sheet(s) and a stylesheet")
    c.add_argument("--out", required=True, help="Output directory for sheets")
    c.add_argument("--style", help="Stylesheet output path")
    c.add_argument("--base64", action="store_true", help="Embed sheets in the stylesheet as data URIs")
    _add_sprite_arguments(c)
    c.set_defaults(func=cli_compose)

    d = sub.add_parser("layout", help="Print sprite positions as JSON without writing files")
    _add_sprite_arguments(d)
    d.set_defaults(func=cli_layout, style=None, base64=False)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging first
    setup_logging(args.log_file or None, args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        result = args.func(args)
        logging.info(f"Operation completed with exit code: {result}")
        return result
    except Exception as e:
        logging.error(f"Unhandled exception: {e}", exc_info=True)
        print(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
