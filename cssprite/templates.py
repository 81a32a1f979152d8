"""
Stylesheet templates.

Templates are plain callables ``fn(records, options) -> str`` held by an
explicit TemplateRegistry; callers own the registry and decide what is
registered in it.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from .metadata import KIND_ITEM, KIND_RETINA, KIND_SPRITE, SpriteRecord

Template = Callable[[List[SpriteRecord], dict], str]

PROCESSORS = ("css", "less", "scss", "stylus")

RETINA_MEDIA = "@media (-webkit-min-device-pixel-ratio: 2), (min-resolution: 192dpi)"


class TemplateRegistry:
    """Named stylesheet templates."""

    def __init__(self):
        self._templates: Dict[str, Template] = {}

    def register(self, name: str, fn: Template) -> None:
        if name in self._templates:
            logging.debug(f"Replacing template {name!r}")
        self._templates[name] = fn

    def names(self) -> List[str]:
        return sorted(self._templates)

    def __contains__(self, name: str) -> bool:
        return name in self._templates

    def render(self, records: List[SpriteRecord], template_name: str,
               options: Optional[dict] = None) -> str:
        try:
            fn = self._templates[template_name]
        except KeyError:
            raise KeyError(f"Unknown template {template_name!r}; "
                           f"registered: {', '.join(self.names()) or 'none'}") from None
        return fn(records, dict(options or {}))


def default_registry() -> TemplateRegistry:
    registry = TemplateRegistry()
    registry.register("sprite", render_sprite)
    return registry


def _px(value: int) -> str:
    return f"{value}px" if value else "0"


def _offset(value: int) -> str:
    return f"-{value}px" if value else "0"


def _split(records: List[SpriteRecord]):
    sheet = next((r for r in records if r.kind == KIND_SPRITE), None)
    retina = next((r for r in records if r.kind == KIND_RETINA), None)
    items = [r for r in records if r.kind == KIND_ITEM]
    return sheet, retina, items


def _render_css(records: List[SpriteRecord], prefix: str) -> str:
    sheet, retina, items = _split(records)
    lines = []
    if sheet is not None:
        lines += [
            f".{prefix} {{",
            f"  background-image: url('{sheet.sheet_ref}');",
            "  background-repeat: no-repeat;",
            "}",
            "",
        ]
    if retina is not None and items:
        lines += [
            f"{RETINA_MEDIA} {{",
            f"  .{prefix} {{",
            f"    background-image: url('{retina.sheet_ref}');",
            f"    background-size: {_px(items[0].sheet_width)} {_px(items[0].sheet_height)};",
            "  }",
            "}",
            "",
        ]
    for r in items:
        lines += [
            f".{prefix}-{r.name} {{",
            f"  background-position: {_offset(r.x)} {_offset(r.y)};",
            f"  width: {_px(r.width)};",
            f"  height: {_px(r.height)};",
            "}",
            "",
        ]
    return "\n".join(lines)


def _sprite_value(r: SpriteRecord) -> str:
    return " ".join([
        _px(r.x), _px(r.y), _offset(r.x), _offset(r.y),
        _px(r.width), _px(r.height), _px(r.sheet_width), _px(r.sheet_height),
        f"'{r.sheet_ref}'",
    ])


# one entry per processor: variable declaration, 1-based element accessor,
# mixin opener, mixin call
_PREPROCESSOR_SYNTAX = {
    "scss": {
        "var": "${name}: {value};",
        "nth": "nth($sprite, {i})",
        "mixin": "@mixin {name}($sprite) {{",
        "include": "@include {name}(${var});",
    },
    "less": {
        "var": "@{name}: {value};",
        "nth": "extract(@sprite, {i})",
        "mixin": ".{name}(@sprite) {{",
        "include": ".{name}(@{var});",
    },
    "stylus": {
        "var": "${name} = {value}",
        "nth": "$sprite[{i0}]",
        "mixin": "{name}($sprite) {{",
        "include": "{name}(${var})",
    },
}


def _render_preprocessor(records: List[SpriteRecord], prefix: str, processor: str) -> str:
    syntax = _PREPROCESSOR_SYNTAX[processor]
    sheet, retina, items = _split(records)

    def nth(i: int) -> str:
        return syntax["nth"].format(i=i, i0=i - 1)

    lines = [syntax["var"].format(name=f"{prefix}-{r.name}", value=_sprite_value(r)) for r in items]
    lines.append("")

    mixins = [
        ("sprite-width", [f"width: {nth(5)};"]),
        ("sprite-height", [f"height: {nth(6)};"]),
        ("sprite-position", [f"background-position: {nth(3)} {nth(4)};"]),
        ("sprite-image", [f"background-image: url({nth(9)});"]),
    ]
    if retina is not None:
        mixins.append(("sprite-retina", [
            f"{RETINA_MEDIA} {{",
            f"  background-image: url('{retina.sheet_ref}');",
            f"  background-size: {nth(7)} {nth(8)};",
            "}",
        ]))
    for name, body in mixins:
        lines.append(syntax["mixin"].format(name=name))
        lines += [f"  {line}" for line in body]
        lines += ["}", ""]

    parts = ["sprite-image", "sprite-position", "sprite-width", "sprite-height"]
    if retina is not None:
        parts.append("sprite-retina")
    lines.append(syntax["mixin"].format(name="sprite"))
    lines += [f"  {syntax['include'].format(name=p, var='sprite')}" for p in parts]
    lines += ["}", ""]

    for r in items:
        lines.append(f".{prefix}-{r.name} {{")
        lines.append(f"  {syntax['include'].format(name='sprite', var=f'{prefix}-{r.name}')}")
        lines += ["}", ""]

    if sheet is not None:
        logging.debug(f"Rendered {processor} variables for {len(items)} sprites of {sheet.name}")
    return "\n".join(lines)


def render_sprite(records: List[SpriteRecord], options: dict) -> str:
    """Built-in template: CSS rules or preprocessor variables plus mixins."""
    processor = options.get("processor", "css")
    prefix = options.get("prefix") or "icon"
    if processor not in PROCESSORS:
        raise ValueError(f"Unsupported processor: {processor!r} (expected one of {', '.join(PROCESSORS)})")
    if processor == "css":
        return _render_css(records, prefix)
    return _render_preprocessor(records, prefix, processor)
