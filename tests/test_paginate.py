from __future__ import annotations

import warnings

import pytest

from contractpress.document import Milestone
from contractpress.exceptions import InvalidScheduleTotal, OversizedBlock
from contractpress.pipeline.blocks import Heading, MilestoneItem, Paragraph
from contractpress.pipeline.paginate import page_assignment, paginate
from contractpress.pipeline.run import paginate_document


def _milestones(count: int) -> list[MilestoneItem]:
    return [MilestoneItem(milestone=Milestone(title=f"M{i + 1}"), index=i) for i in range(count)]


def test_milestones_are_never_split() -> None:
    blocks = _milestones(3)
    heights = {"scope.milestone.0": 300, "scope.milestone.1": 500, "scope.milestone.2": 300}
    pages = paginate(blocks, 1123 - 2 * 60, lambda block: heights[block.key])
    assert page_assignment(pages) == [
        ["scope.milestone.0", "scope.milestone.1"],
        ["scope.milestone.2"],
    ]


def test_empty_block_list_has_no_pages() -> None:
    assert paginate([], 1003, lambda block: 10) == []


def test_oversized_block_gets_its_own_page() -> None:
    blocks = [
        Paragraph(text="a", section_id="scope", key="a"),
        Paragraph(text="big", section_id="scope", key="big"),
        Paragraph(text="c", section_id="scope", key="c"),
    ]
    with pytest.warns(OversizedBlock) as record:
        pages = paginate(blocks, 100, lambda block: 150 if block.key == "big" else 40)
    assert page_assignment(pages) == [["a"], ["big"], ["c"]]
    assert record[0].message.key == "big"


def test_oversized_first_block_does_not_leave_empty_page() -> None:
    blocks = [Paragraph(text="big", section_id="scope", key="big")]
    with pytest.warns(OversizedBlock):
        pages = paginate(blocks, 100, lambda block: 500)
    assert page_assignment(pages) == [["big"]]


def test_heading_moves_with_following_block() -> None:
    blocks = [
        Paragraph(text="first", section_id="scope", key="p0"),
        Heading(level=2, text="PAYMENT TERMS", section_id="payment", key="payment.heading"),
        Paragraph(text="second", section_id="payment", key="p1"),
    ]
    heights = {"p0": 60, "payment.heading": 30, "p1": 50}
    pages = paginate(blocks, 100, lambda block: heights[block.key])
    assert page_assignment(pages) == [["p0"], ["payment.heading", "p1"]]


def test_every_block_placed_once_in_order(long_document) -> None:
    pagination = paginate_document(long_document)
    flattened = [block for page in pagination.pages for block in page]
    assert flattened == pagination.blocks
    assert len(pagination.pages) >= 2


def test_pages_fit_and_rows_stay_whole(long_document) -> None:
    pagination = paginate_document(long_document)
    limit = pagination.geometry.content_height_px
    for page in pagination.pages:
        assert sum(pagination.measurer(block) for block in page) <= limit
    keys = [key for page in page_assignment(pagination.pages) for key in page]
    milestone_keys = [key for key in keys if key.startswith("scope.milestone.")]
    assert milestone_keys == [f"scope.milestone.{i}" for i in range(14)]


def test_pagination_is_deterministic(long_document) -> None:
    first = paginate_document(long_document)
    second = paginate_document(long_document)
    assert page_assignment(first.pages) == page_assignment(second.pages)


def test_schedule_over_100_percent_still_renders_rows(sample_document) -> None:
    document = sample_document.model_copy(
        update={
            "payment_schedule": tuple(
                entry.model_copy(update={"percentage": pct})
                for entry, pct in zip(sample_document.payment_schedule, (50, 60))
            )
        }
    )
    with pytest.warns(InvalidScheduleTotal):
        pagination = paginate_document(document)
    keys = [key for page in page_assignment(pagination.pages) for key in page]
    assert "payment.row.0" in keys
    assert "payment.row.1" in keys
    assert any("110%" in message for message in pagination.warnings)


def test_valid_schedule_emits_no_warning(sample_document) -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error", InvalidScheduleTotal)
        pagination = paginate_document(sample_document)
    assert not any("Payment schedule" in message for message in pagination.warnings)
