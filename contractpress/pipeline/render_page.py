from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
import io
import logging
from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .. import config
from ..document import StyleConfig
from .blocks import ContentBlock
from .measure import BlockLayout, BlockMeasurer, DrawOp, ImageOp, RectOp, RuleOp, TextOp, Typography, default_typography
from .styles import ResolvedStyle, resolve_style

logger = logging.getLogger(__name__)

PT_PER_PX = 72.0 / config.PX_PER_INCH
MM_PER_INCH = 25.4
FOOTER_SIZE = 9.0


@dataclass(frozen=True)
class PageGeometry:
    width_px: float = config.PAGE_WIDTH_PX
    height_px: float = config.PAGE_HEIGHT_PX
    margin_px: float = config.PAGE_MARGIN_PX

    @property
    def content_width_px(self) -> float:
        return self.width_px - 2 * self.margin_px

    @property
    def content_height_px(self) -> float:
        return self.height_px - 2 * self.margin_px

    @property
    def size_pt(self) -> Tuple[float, float]:
        return self.width_px * PT_PER_PX, self.height_px * PT_PER_PX

    @property
    def size_mm(self) -> Tuple[float, float]:
        return (
            self.width_px / config.PX_PER_INCH * MM_PER_INCH,
            self.height_px / config.PX_PER_INCH * MM_PER_INCH,
        )


A4 = PageGeometry()


@dataclass(frozen=True)
class Placement:
    block: ContentBlock
    top: float
    height: float
    style: ResolvedStyle


@dataclass(frozen=True)
class RenderedPage:
    """One laid-out page: where each block went, and its one-page PDF surface."""

    index: int
    geometry: PageGeometry
    placements: Tuple[Placement, ...]
    pdf_bytes: bytes

    @property
    def page_number(self) -> int:
        return self.index + 1

    @property
    def blocks(self) -> List[ContentBlock]:
        return [p.block for p in self.placements]

    def rasterize(self, scale: float = 1.0) -> fitz.Pixmap:
        """Raster of the page at ``scale`` times its 96 DPI pixel size."""
        zoom = scale / PT_PER_PX
        with fitz.open(stream=self.pdf_bytes, filetype="pdf") as doc:
            page = doc.load_page(0)
            return page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)

    def to_png(self, scale: float = config.PREVIEW_ZOOM) -> bytes:
        return self.rasterize(scale).tobytes("png")


def _hex(value: Optional[str], default=colors.black) -> colors.Color:
    if not value:
        return default
    try:
        return colors.HexColor("#" + str(value).lstrip("#"))
    except ValueError:
        return default


def _image_reader(ref: str) -> Optional[ImageReader]:
    try:
        if ref.startswith("data:"):
            _, _, payload = ref.partition(",")
            return ImageReader(io.BytesIO(base64.b64decode(payload)))
        return ImageReader(ref)
    except (OSError, ValueError, binascii.Error) as exc:
        logger.warning("Skipping image %s: %s", ref[:48], exc)
        return None


class _PageCanvas:
    """A reportlab canvas addressed in top-left-origin pixel coordinates."""

    def __init__(self, geometry: PageGeometry):
        self.geometry = geometry
        self.buffer = io.BytesIO()
        # invariant=1 keeps the output free of timestamps so identical input gives identical bytes
        self.canv = canvas.Canvas(self.buffer, pagesize=geometry.size_pt, invariant=1)
        self.canv.scale(PT_PER_PX, PT_PER_PX)

    def _y(self, top: float) -> float:
        return self.geometry.height_px - top

    def fill_rect(self, x: float, y: float, w: float, h: float, color: str) -> None:
        self.canv.setFillColor(_hex(color))
        self.canv.rect(x, self._y(y + h), w, h, stroke=0, fill=1)

    def image(self, ref: str, x: float, y: float, w: float, h: float, keep_ratio: bool = True) -> None:
        reader = _image_reader(ref)
        if reader is None:
            return
        self.canv.drawImage(
            reader, x, self._y(y + h), w, h, preserveAspectRatio=keep_ratio, anchor="c", mask="auto"
        )

    def draw_ops(self, ops: Sequence[DrawOp], ox: float, oy: float) -> None:
        canv = self.canv
        for op in ops:
            if isinstance(op, TextOp):
                canv.setFillColor(_hex(op.color))
                canv.setFont(op.font, op.size)
                canv.drawString(ox + op.x, self._y(oy + op.baseline), op.text)
            elif isinstance(op, RuleOp):
                canv.setStrokeColor(_hex(op.color))
                canv.setLineWidth(op.width)
                canv.line(ox + op.x1, self._y(oy + op.y1), ox + op.x2, self._y(oy + op.y2))
            elif isinstance(op, RectOp):
                self.fill_rect(ox + op.x, oy + op.y, op.w, op.h, op.color)
            elif isinstance(op, ImageOp):
                self.image(op.ref, ox + op.x, oy + op.y, op.w, op.h)

    def footer(self, text: str, font: str, color: str) -> None:
        g = self.geometry
        self.canv.setFillColor(_hex(color))
        self.canv.setFont(font, FOOTER_SIZE)
        self.canv.drawCentredString(g.width_px / 2, self._y(g.height_px - g.margin_px * 0.45), text)

    def finish(self) -> bytes:
        self.canv.showPage()
        self.canv.save()
        return self.buffer.getvalue()


def _draw_document_background(surface: _PageCanvas, style_config: StyleConfig) -> None:
    g = surface.geometry
    if style_config.document_background_color:
        surface.fill_rect(0, 0, g.width_px, g.height_px, style_config.document_background_color)
    if style_config.document_background:
        surface.image(style_config.document_background, 0, 0, g.width_px, g.height_px, keep_ratio=False)


def _draw_header_background(surface: _PageCanvas, style_config: StyleConfig, layout: BlockLayout) -> None:
    g = surface.geometry
    band_h = g.margin_px + layout.height
    if style_config.header_background_color:
        surface.fill_rect(0, 0, g.width_px, band_h, style_config.header_background_color)
    if style_config.header_background:
        surface.image(style_config.header_background, 0, 0, g.width_px, band_h, keep_ratio=False)


def render(
    page: Sequence[ContentBlock],
    style_config: StyleConfig,
    geometry: PageGeometry = A4,
    page_index: int = 0,
    page_count: int = 1,
    measurer: Optional[BlockMeasurer] = None,
    typography: Optional[Typography] = None,
) -> RenderedPage:
    """
    Draw one paginated page.

    Block styles come from ``resolve_style`` through the measurer, so the
    surface matches what pagination measured. The document background goes
    on every page; the header background only behind the first block of the
    first page.
    """
    if measurer is None:
        measurer = BlockMeasurer(style_config, geometry.content_width_px, typography or default_typography())

    surface = _PageCanvas(geometry)
    _draw_document_background(surface, style_config)

    placements: List[Placement] = []
    y = geometry.margin_px
    for i, block in enumerate(page):
        layout = measurer.layout(block)
        if page_index == 0 and i == 0:
            _draw_header_background(surface, style_config, layout)
        surface.draw_ops(layout.ops, geometry.margin_px, y)
        placements.append(Placement(block=block, top=y, height=layout.height, style=measurer.style_for(block)))
        y += layout.height

    footer_style = resolve_style(style_config, "header")
    surface.footer(f"Page {page_index + 1} of {page_count}", footer_style.font_name, footer_style.muted_color)

    return RenderedPage(
        index=page_index,
        geometry=geometry,
        placements=tuple(placements),
        pdf_bytes=surface.finish(),
    )


def render_pages(
    pages: Sequence[Sequence[ContentBlock]],
    style_config: StyleConfig,
    geometry: PageGeometry = A4,
    measurer: Optional[BlockMeasurer] = None,
    typography: Optional[Typography] = None,
) -> List[RenderedPage]:
    if measurer is None:
        measurer = BlockMeasurer(style_config, geometry.content_width_px, typography or default_typography())
    return [
        render(page, style_config, geometry, index, len(pages), measurer=measurer)
        for index, page in enumerate(pages)
    ]
