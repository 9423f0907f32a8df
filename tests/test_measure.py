from __future__ import annotations

import logging

import pytest
from reportlab.pdfbase import pdfmetrics

from contractpress.document import Milestone, StyleConfig
from contractpress.exceptions import MeasurementUnavailable
from contractpress.pipeline.blocks import Heading, MilestoneItem, Paragraph
from contractpress.pipeline.measure import BlockMeasurer, TextOp, Typography, default_typography, layout_block, measure
from contractpress.pipeline.render_page import A4
from contractpress.pipeline.run import preview_document
from contractpress.pipeline.styles import resolve_style

WIDTH = A4.content_width_px


def test_measuring_before_prepare_raises() -> None:
    typo = Typography()
    block = Paragraph(text="Hello", section_id="scope", key="scope.text")
    with pytest.raises(MeasurementUnavailable):
        layout_block(block, WIDTH, resolve_style(StyleConfig(), "scope"), typography=typo)
    with pytest.raises(MeasurementUnavailable):
        typo.string_width("Hello", "Helvetica", 12)


def test_prepare_is_the_readiness_barrier() -> None:
    typo = Typography()
    assert typo.ready is False
    assert typo.prepare() is typo
    assert typo.ready is True
    assert typo.string_width("Hello", "Helvetica", 12) > 0


def test_longer_text_wraps_taller() -> None:
    style = resolve_style(StyleConfig(), "scope")
    short = Paragraph(text="One line.", section_id="scope", key="a")
    long = Paragraph(text="word " * 400, section_id="scope", key="b")
    assert measure(long, WIDTH, style) > measure(short, WIDTH, style)


def test_wrapped_lines_stay_inside_content_width() -> None:
    style = resolve_style(StyleConfig(content_alignment="justify"), "scope")
    layout = layout_block(Paragraph(text="lorem ipsum dolor " * 60, section_id="scope", key="a"), WIDTH, style)
    typo = Typography().prepare()
    for op in layout.ops:
        assert isinstance(op, TextOp)
        assert op.x + typo.string_width(op.text, op.font, op.size) <= WIDTH + 0.5


def test_larger_body_size_measures_taller() -> None:
    block = MilestoneItem(milestone=Milestone(title="Design", description="Three concepts."), index=0)
    small = measure(block, WIDTH, resolve_style(StyleConfig(body_font_size="small"), "scope"))
    large = measure(block, WIDTH, resolve_style(StyleConfig(body_font_size="xlarge"), "scope"))
    assert large > small


def test_divider_adds_space_above_heading() -> None:
    style = resolve_style(StyleConfig(), "payment")
    plain = Heading(level=2, text="PAYMENT TERMS", section_id="payment", key="payment.heading")
    ruled = Heading(level=2, text="PAYMENT TERMS", section_id="payment", key="payment.heading", divider=True)
    assert measure(ruled, WIDTH, style) > measure(plain, WIDTH, style)


def test_unknown_block_type_is_rejected() -> None:
    with pytest.raises(TypeError):
        layout_block(object(), WIDTH, resolve_style(StyleConfig(), "scope"))


def test_rendered_pages_match_measured_layout(sample_document) -> None:
    preview = preview_document(sample_document)
    fresh = BlockMeasurer(sample_document.style, WIDTH)
    for page, rendered in zip(preview.pages, preview.rendered):
        assert rendered.blocks == page
        for placement in rendered.placements:
            assert placement.style == resolve_style(sample_document.style, placement.block.section_id)
            assert placement.height == fresh(placement.block)


def test_missing_truetype_file_falls_back_to_builtin_with_warning(caplog) -> None:
    typo = Typography(
        {
            "faces": {"latin-only": {"files": ["/nonexistent/LatinOnly.ttf"], "builtin": "Helvetica"}},
            "font_families": {"plain": {"regular": "latin-only", "bold": "latin-only"}},
        }
    )
    with caplog.at_level(logging.WARNING, logger="contractpress.pipeline.measure"):
        typo.prepare()
    assert "falling back to Helvetica" in caplog.text
    assert typo.string_width("Hello", "latin-only", 12) == pytest.approx(pdfmetrics.stringWidth("Hello", "Helvetica", 12))
    assert typo.covers("Café", "latin-only")
    assert not typo.covers("₹", "latin-only")


def test_word_without_any_glyphs_keeps_its_font_and_warns(caplog) -> None:
    typo = default_typography()
    with caplog.at_level(logging.WARNING, logger="contractpress.pipeline.measure"):
        assert typo.face_for("\U0010fffd", "sans") == "sans"
    assert "No registered font has glyphs" in caplog.text


def test_latin_words_stay_in_the_requested_face() -> None:
    typo = default_typography()
    assert typo.face_for("Agreement", "sans") == "sans"
    assert typo.face_for("Agreement", "serif-bold") == "serif-bold"
