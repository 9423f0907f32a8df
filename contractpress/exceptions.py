"""Exception and warning hierarchy for the rendering engine.

Errors are raised for conditions the caller has to act on (typography not
ready, an export that could not be rasterized, a missing stored contract).
Layout policies that still produce output (an oversized block, a payment
schedule that does not total 100%) are issued as warnings instead.
"""
from __future__ import annotations


class ContractPressError(Exception):
    """Base exception for all contractpress errors."""
    pass


class MeasurementUnavailable(ContractPressError):
    """Raised when a block is measured before the typography backend is ready."""

    def __init__(self, message: str = "Typography backend is not prepared; call prepare() first"):
        super().__init__(message)


class RasterizationFailed(ContractPressError):
    """Raised when a rendered page cannot be converted to a raster surface."""

    def __init__(self, page_index: int, reason: str):
        self.page_index = page_index
        self.reason = reason
        super().__init__(f"Could not rasterize page {page_index + 1}: {reason}")


class ContractNotFound(ContractPressError):
    """Raised when a stored contract id does not exist."""

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class ContractPressWarning(UserWarning):
    """Base class for non-fatal layout and content warnings."""
    pass


class OversizedBlock(ContractPressWarning):
    def __init__(self, key: str, height: float, limit: float):
        self.key = key
        self.height = height
        self.limit = limit
        super().__init__(
            f"Block {key} is {height:.0f}px tall and exceeds the page content height of {limit:.0f}px"
        )


class InvalidScheduleTotal(ContractPressWarning):
    def __init__(self, total: float):
        self.total = total
        super().__init__(f"Payment schedule totals {total:g}% instead of 100%")
