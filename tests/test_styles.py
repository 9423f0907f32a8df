from __future__ import annotations

from contractpress.document import SectionStyleOverride, StyleConfig
from contractpress.pipeline.styles import font_names, resolve_style, size_table


def test_section_override_wins_without_global_flag() -> None:
    config = StyleConfig(
        primary_color="#000000",
        section_styles={"scope": SectionStyleOverride(header_color="#FF0000", content_font_size="xlarge")},
    )
    style = resolve_style(config, "scope")
    assert style.header_color == "#FF0000"
    assert style.content_font_size == 16.0


def test_global_value_wins_when_global_styles_applied() -> None:
    config = StyleConfig(
        primary_color="#000000",
        body_font_size="small",
        section_styles={"scope": SectionStyleOverride(header_color="#FF0000", content_font_size="xlarge")},
        apply_global_styles=True,
    )
    style = resolve_style(config, "scope")
    assert style.header_color == "#000000"
    assert style.content_font_size == 11.0


def test_override_only_applies_to_its_section() -> None:
    config = StyleConfig(section_styles={"scope": SectionStyleOverride(header_color="#FF0000")})
    assert resolve_style(config, "payment").header_color == "#111827"


def test_defaults_fill_unset_values() -> None:
    title = resolve_style(StyleConfig(), "header")
    section = resolve_style(StyleConfig(), "scope")
    assert title.header_font_size == size_table("header")["xlarge"]
    assert title.header_alignment == "center"
    assert section.header_font_size == 18.0
    assert section.header_alignment == "left"
    assert section.content_font_size == 12.0
    assert section.line_spacing == 1.6


def test_numeric_font_sizes_are_pixels() -> None:
    style = resolve_style(StyleConfig(body_font_size=13, section_header_font_size="22"), "scope")
    assert style.content_font_size == 13.0
    assert style.header_font_size == 22.0


def test_font_family_lookup() -> None:
    assert font_names("Georgia") == ("serif", "serif-bold")
    assert font_names("Courier") == ("mono", "mono-bold")
    assert font_names("unknown") == ("sans", "sans-bold")
    assert font_names(None) == ("sans", "sans-bold")


def test_global_header_alignment_leaves_title_centered() -> None:
    config = StyleConfig(header_alignment="right")
    assert resolve_style(config, "header").header_alignment == "center"
    assert resolve_style(config, "scope").header_alignment == "right"


def test_title_alignment_follows_header_section_override() -> None:
    config = StyleConfig(
        header_alignment="right",
        section_styles={"header": SectionStyleOverride(header_alignment="left")},
    )
    assert resolve_style(config, "header").header_alignment == "left"
