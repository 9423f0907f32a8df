"""Style resolution shared by the measurer and the page renderer.

Every visual value for a block comes from ``resolve_style``: the section
override (ignored when ``apply_global_styles`` is set), then the global style,
then the defaults table in ``assets/styles/typography.json``. Measuring and
drawing both go through here, so the preview and the exported PDF always see
the same fonts and sizes.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional, Tuple, Union

from ..config import load_style_defaults
from ..document import SectionStyleOverride, StyleConfig


@dataclass(frozen=True)
class ResolvedStyle:
    section_id: str
    font_name: str
    font_name_bold: str
    line_spacing: float
    heading_line_spacing: float
    header_color: str
    header_alignment: str
    header_font_size: float
    sub_header_font_size: float
    content_color: str
    content_alignment: str
    content_font_size: float
    muted_color: str
    rule_color: str


@lru_cache(maxsize=1)
def style_defaults() -> dict:
    return load_style_defaults()


def size_table(kind: str) -> Dict[str, float]:
    """Font-size-name -> px table for ``body``, ``header``, ``section_header`` or ``sub_header``."""
    return dict(style_defaults()[f"{kind}_sizes"])


def font_names(family: Optional[str]) -> Tuple[str, str]:
    defaults = style_defaults()
    families = defaults["font_families"]
    key = (family or "").strip().lower()
    entry = families.get(key) or families[defaults["default_font_family"]]
    return entry["regular"], entry["bold"]


def _size_px(value: Union[float, str, None], kind: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    text = str(value).strip().lower()
    table = size_table(kind)
    if text in table:
        return float(table[text])
    try:
        number = float(text)
    except ValueError:
        return None
    return number if number > 0 else None


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def resolve_style(config: StyleConfig, section_id: str) -> ResolvedStyle:
    defaults = style_defaults()
    default_sizes = defaults["default_sizes"]

    override = config.section_styles.get(section_id)
    if override is None or config.apply_global_styles:
        override = SectionStyleOverride()

    header_kind = "header" if section_id == "header" else "section_header"
    global_header_size = config.header_font_size if section_id == "header" else config.section_header_font_size

    regular, bold = font_names(config.font_family)

    # the global header alignment is for section headings; the title only moves via its own override
    if section_id == "header":
        header_alignment = _first(override.header_alignment, defaults["title_alignment"])
    else:
        header_alignment = _first(override.header_alignment, config.header_alignment, defaults["header_alignment"])

    return ResolvedStyle(
        section_id=section_id,
        font_name=regular,
        font_name_bold=bold,
        line_spacing=float(_first(config.line_spacing, defaults["line_spacing"])),
        heading_line_spacing=float(defaults["heading_line_spacing"]),
        header_color=_first(override.header_color, config.primary_color, defaults["primary_color"]),
        header_alignment=header_alignment,
        header_font_size=_first(
            _size_px(override.header_font_size, header_kind),
            _size_px(global_header_size, header_kind),
            _size_px(default_sizes[header_kind], header_kind),
        ),
        sub_header_font_size=_first(
            _size_px(config.sub_header_font_size, "sub_header"),
            _size_px(default_sizes["sub_header"], "sub_header"),
        ),
        content_color=_first(override.content_color, config.content_color, defaults["content_color"]),
        content_alignment=_first(
            override.content_alignment, config.content_alignment, defaults["content_alignment"]
        ),
        content_font_size=_first(
            _size_px(override.content_font_size, "body"),
            _size_px(config.body_font_size, "body"),
            _size_px(default_sizes["body"], "body"),
        ),
        muted_color=defaults["muted_color"],
        rule_color=defaults["rule_color"],
    )
