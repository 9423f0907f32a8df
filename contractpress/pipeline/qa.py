from __future__ import annotations

import logging
from typing import List, Optional
import warnings

from ..config import SCHEDULE_TOLERANCE
from ..document import ContractDocument
from ..exceptions import InvalidScheduleTotal

logger = logging.getLogger(__name__)


def schedule_total(document: ContractDocument) -> float:
    return sum(entry.percentage for entry in document.payment_schedule)


def check_schedule_total(document: ContractDocument) -> Optional[InvalidScheduleTotal]:
    """
    Payment schedule percentages should add up to 100. A mismatch is only a
    warning: the rows are rendered and exported regardless.
    """
    if not document.payment_schedule:
        return None
    total = schedule_total(document)
    if abs(total - 100) <= SCHEDULE_TOLERANCE:
        return None
    return InvalidScheduleTotal(total)


def warn_schedule_total(document: ContractDocument) -> Optional[InvalidScheduleTotal]:
    warning = check_schedule_total(document)
    if warning is not None:
        logger.warning("Contract %s: %s", document.id, warning)
        warnings.warn(warning, stacklevel=2)
    return warning


def validate_document(document: ContractDocument) -> List[str]:
    """Human-readable, non-blocking warnings for the editor's banner."""
    messages: List[str] = []
    schedule = check_schedule_total(document)
    if schedule is not None:
        messages.append(str(schedule))
    if document.payment_type == "hourly" and document.rate <= 0:
        messages.append("Hourly payment selected but no hourly rate is set")
    if document.start_date and document.end_date and document.end_date < document.start_date:
        messages.append("End date is before the start date")
    if document.provider.is_empty() or document.counterparty.is_empty():
        messages.append("Both parties should be named before sending for signature")
    return messages
