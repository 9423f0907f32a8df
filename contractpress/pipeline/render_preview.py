from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from .. import config
from ..storage import artifact_path
from .render_page import RenderedPage


def _render_page_to_png(page: RenderedPage, out_path: Path, scale: float) -> None:
    pix = page.rasterize(scale)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    pix.save(str(out_path))


def render_previews(
    pages: Sequence[RenderedPage],
    slug: str,
    base_dir: Path | None = None,
    include_slug: bool = True,
    scale: float = config.PREVIEW_ZOOM,
) -> List[Path]:
    """Write one ``preview_N.png`` per rendered page, in page order."""
    paths: List[Path] = []
    for page in pages:
        out_path = artifact_path(slug, "preview", base_dir=base_dir, include_slug=include_slug, index=page.page_number)
        _render_page_to_png(page, out_path, scale)
        paths.append(out_path)
    return paths
