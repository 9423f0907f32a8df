from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date
import logging
from typing import Callable, Iterable, List, Optional

from .. import config
from ..document import ContractDocument
from ..exceptions import ContractNotFound, OversizedBlock, RasterizationFailed
from ..models import init_db
from ..storage import load_contract, mark_failed, record_export, write_error, write_pdf
from .blocks import ContentBlock, build_blocks
from .export_pdf import export_pdf, pdf_filename, slug_from_title
from .measure import BlockMeasurer, Typography, default_typography
from .paginate import Page, paginate
from .qa import validate_document, warn_schedule_total
from .render_page import A4, PageGeometry, RenderedPage, render_pages

logger = logging.getLogger(__name__)


@dataclass
class Pagination:
    document: ContractDocument
    geometry: PageGeometry
    blocks: List[ContentBlock]
    pages: List[Page]
    measurer: BlockMeasurer
    warnings: List[str] = field(default_factory=list)


@dataclass
class PreviewResult:
    pagination: Pagination
    rendered: List[RenderedPage]

    @property
    def pages(self) -> List[Page]:
        return self.pagination.pages

    @property
    def warnings(self) -> List[str]:
        return self.pagination.warnings

    @property
    def page_count(self) -> int:
        return len(self.rendered)


@dataclass
class ExportResult:
    filename: str
    pdf_bytes: bytes
    page_count: int
    rendered: List[RenderedPage]
    warnings: List[str] = field(default_factory=list)


def _oversized_warnings(pagination: Pagination) -> List[str]:
    limit = pagination.geometry.content_height_px
    messages: List[str] = []
    for page in pagination.pages:
        height = sum(pagination.measurer(block) for block in page)
        if height > limit:
            messages.append(str(OversizedBlock(page[-1].key, height, limit)))
    return messages


def paginate_document(
    document: ContractDocument,
    geometry: PageGeometry = A4,
    typography: Optional[Typography] = None,
) -> Pagination:
    """
    Build, measure and paginate one immutable document snapshot.

    Typography is prepared once up front; that is the only point where the
    run waits for the measuring backend.
    """
    typo = (typography or default_typography()).prepare()

    warn_schedule_total(document)
    blocks = build_blocks(document)
    measurer = BlockMeasurer(document.style, geometry.content_width_px, typo)
    pages = paginate(blocks, geometry.content_height_px, measurer)

    pagination = Pagination(document=document, geometry=geometry, blocks=blocks, pages=pages, measurer=measurer)
    pagination.warnings = validate_document(document) + _oversized_warnings(pagination)
    logger.debug("Paginated %s: %d blocks on %d pages", document.id, len(blocks), len(pages))
    return pagination


def preview_document(
    document: ContractDocument,
    geometry: PageGeometry = A4,
    typography: Optional[Typography] = None,
) -> PreviewResult:
    pagination = paginate_document(document, geometry, typography)
    rendered = render_pages(pagination.pages, document.style, geometry, measurer=pagination.measurer)
    return PreviewResult(pagination=pagination, rendered=rendered)


def export_document(
    document: ContractDocument,
    geometry: PageGeometry = A4,
    oversampling: float = config.OVERSAMPLING,
    on: Optional[date] = None,
    typography: Optional[Typography] = None,
) -> ExportResult:
    preview = preview_document(document, geometry, typography)
    meta = {"title": document.title or config.DEFAULT_TITLE, "subject": document.subtitle}
    pdf_bytes = export_pdf(preview.rendered, meta, oversampling=oversampling)
    return ExportResult(
        filename=pdf_filename(document.title, on=on),
        pdf_bytes=pdf_bytes,
        page_count=len(preview.rendered),
        rendered=preview.rendered,
        warnings=list(preview.warnings),
    )


async def export_document_async(
    document: ContractDocument,
    geometry: PageGeometry = A4,
    oversampling: float = config.OVERSAMPLING,
    on: Optional[date] = None,
) -> ExportResult:
    return await asyncio.to_thread(export_document, document, geometry, oversampling, on)


class PreviewSession:
    """
    Cancel-and-restart re-pagination for one document being edited.

    Each ``submit`` supersedes whatever run is pending: the older run is
    cancelled (or, if it is already inside the worker thread, its result is
    discarded) so output from two runs is never mixed. Runs start after a
    short debounce so a burst of edits triggers one pagination.
    """

    def __init__(
        self,
        geometry: PageGeometry = A4,
        debounce: float = config.REPAGINATE_DEBOUNCE_SECONDS,
        runner: Callable[[ContractDocument, PageGeometry], PreviewResult] = preview_document,
    ):
        self.geometry = geometry
        self.debounce = debounce
        self._runner = runner
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.latest: Optional[PreviewResult] = None

    @property
    def generation(self) -> int:
        return self._generation

    def submit(self, document: ContractDocument) -> asyncio.Task:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        snapshot = document.model_copy(deep=True)
        self._task = asyncio.get_running_loop().create_task(self._run(snapshot, self._generation))
        return self._task

    async def _run(self, document: ContractDocument, generation: int) -> Optional[PreviewResult]:
        await asyncio.sleep(self.debounce)
        result = await asyncio.to_thread(self._runner, document, self.geometry)
        if generation != self._generation:
            logger.debug("Discarding superseded pagination run %d", generation)
            return None
        self.latest = result
        return result

    async def wait(self) -> Optional[PreviewResult]:
        """Wait until the most recent submission has been published."""
        while self._task is not None:
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if task is self._task:
                    raise
                continue
            if task is self._task:
                break
        return self.latest


def export_contract(
    contract_id: str,
    on: Optional[date] = None,
    document: Optional[ContractDocument] = None,
) -> ExportResult:
    """Export a stored contract to ``OUT_DIR/<slug>/`` and record the artifact."""
    if document is None:
        document = load_contract(contract_id)
    result = export_document(document, on=on)
    pdf_path = write_pdf(slug_from_title(document.title), result.filename, result.pdf_bytes)
    record_export(contract_id, [("pdf", pdf_path)], result.page_count)
    return result


def run_exports(contract_ids: Iterable[str], on: Optional[date] = None) -> dict[str, list[str]]:
    init_db()
    results: dict[str, list[str]] = {"READY": [], "FAILED": []}
    for contract_id in contract_ids:
        # error.log sits beside the PDF; a payload that fails to load has no title, so its id is used
        slug = contract_id
        try:
            document = load_contract(contract_id)
            slug = slug_from_title(document.title)
            export_contract(contract_id, on=on, document=document)
        except ContractNotFound as exc:
            logger.error("%s", exc)
            results["FAILED"].append(contract_id)
            continue
        except Exception as exc:
            logger.exception("Export error for %s", contract_id)
            fail_code = "RASTERIZATION_FAILED" if isinstance(exc, RasterizationFailed) else "PIPELINE_ERROR"
            mark_failed(contract_id, fail_code, str(exc))
            write_error(slug, f"{fail_code}: {exc}")
            results["FAILED"].append(contract_id)
            continue
        results["READY"].append(contract_id)
    return results
