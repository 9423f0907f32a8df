from __future__ import annotations

import logging
from typing import Callable, List, Sequence
import warnings

from ..exceptions import OversizedBlock
from .blocks import ContentBlock, Heading

logger = logging.getLogger(__name__)

Page = List[ContentBlock]
Measurer = Callable[[ContentBlock], float]


def _units(blocks: Sequence[ContentBlock]) -> List[List[ContentBlock]]:
    """
    Group blocks into the indivisible units the packer places.

    A heading is kept with the block that follows it (a run of headings
    extends the unit up to the first non-heading block). Every other block
    is its own unit; milestone and payment rows are single blocks already.
    """
    units: List[List[ContentBlock]] = []
    pending: List[ContentBlock] = []
    for block in blocks:
        pending.append(block)
        if isinstance(block, Heading):
            continue
        units.append(pending)
        pending = []
    if pending:
        # trailing headings with nothing after them
        units.append(pending)
    return units


def paginate(
    blocks: Sequence[ContentBlock],
    page_content_height_px: float,
    measurer: Measurer,
) -> List[Page]:
    """
    Greedy first-fit packing of ``blocks`` into pages of
    ``page_content_height_px``.

    A unit that does not fit on a page that already has content starts a new
    page. A unit taller than a whole page is still placed, alone, on its own
    page; it is reported as an ``OversizedBlock`` warning and never dropped
    or split. No blocks -> no pages.
    """
    limit = float(page_content_height_px)
    pages: List[Page] = []
    current: Page = []
    current_height = 0.0

    for unit in _units(blocks):
        height = sum(measurer(block) for block in unit)

        if current_height + height > limit and current_height > 0:
            pages.append(current)
            current = []
            current_height = 0.0

        if height > limit:
            key = getattr(unit[-1], "key", type(unit[-1]).__name__)
            logger.warning("Oversized block %s: %.0fpx on a %.0fpx page", key, height, limit)
            warnings.warn(OversizedBlock(key, height, limit), stacklevel=2)

        current.extend(unit)
        current_height += height

    if current:
        pages.append(current)
    return pages


def page_assignment(pages: Sequence[Page]) -> List[List[str]]:
    """Block keys per page; handy for comparing two pagination runs."""
    return [[block.key for block in page] for page in pages]
