from __future__ import annotations

from datetime import date
import hashlib
import logging
import re
from typing import Optional, Sequence

import fitz  # PyMuPDF
from slugify import slugify

from .. import config
from ..exceptions import RasterizationFailed
from .render_page import RenderedPage

logger = logging.getLogger(__name__)

PRODUCER = "contractpress"


def slug_from_title(title: str) -> str:
    slug = slugify(title or "")
    slug = re.sub(r"[^a-z0-9-]+", "-", slug.lower()).strip("-")
    if not slug:
        slug = "contract"
    if ".." in slug or "/" in slug or "\\" in slug:
        raise ValueError("Invalid slug generated from title")
    return slug


def pdf_filename(title: str, on: Optional[date] = None) -> str:
    return f"{slug_from_title(title)}-{(on or date.today()).isoformat()}.pdf"


def export_pdf(
    pages: Sequence[RenderedPage],
    meta: dict,
    oversampling: float = config.OVERSAMPLING,
) -> bytes:
    """
    Rasterize each rendered page and assemble them into one PDF.

    Every page is rasterized at ``oversampling`` times its 96 DPI size and
    placed on an output page with the physical size of its geometry (A4 ->
    210x297mm). Only one raster is alive at a time. If any page fails the
    whole export fails with ``RasterizationFailed``; nothing partial is
    returned.
    """
    if oversampling < 2:
        raise ValueError(f"Oversampling must be at least 2x, got {oversampling}")
    if not pages:
        raise ValueError("Nothing to export: no pages")

    out = fitz.open()
    try:
        for rendered in pages:
            try:
                pix = rendered.rasterize(oversampling)
                width_pt, height_pt = rendered.geometry.size_pt
                target = out.new_page(width=width_pt, height=height_pt)
                target.insert_image(target.rect, pixmap=pix)
            except Exception as exc:
                logger.error("Rasterization failed on page %d: %s", rendered.page_number, exc)
                raise RasterizationFailed(rendered.index, str(exc)) from exc
            del pix

        title = str(meta.get("title") or config.DEFAULT_TITLE)
        out.set_metadata(
            {
                "title": title,
                "author": str(meta.get("author") or ""),
                "subject": str(meta.get("subject") or ""),
                "keywords": "",
                "creator": PRODUCER,
                "producer": PRODUCER,
                "creationDate": "",
                "modDate": "",
            }
        )
        data = out.tobytes(garbage=3, deflate=True, no_new_id=True)
    finally:
        out.close()

    logger.info(
        "Exported %d page(s) for %s (%s)", len(pages), meta.get("title"), hashlib.sha256(data).hexdigest()[:12]
    )
    return data
