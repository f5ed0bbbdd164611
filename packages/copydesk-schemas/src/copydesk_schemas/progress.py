"""Progress snapshot schemas for batch observation."""

from __future__ import annotations

from pydantic import Field, model_validator

from copydesk_schemas.base import BaseSchema


class StatusCounts(BaseSchema):
    """Item counts per status bucket."""

    pending: int = Field(0, ge=0, description="Items not yet started")
    optimizing: int = Field(
        0, ge=0, description="Items being rewritten or processed"
    )
    optimized: int = Field(0, ge=0, description="Items rewritten, not finished")
    translating: int = Field(0, ge=0, description="Items being translated")
    completed: int = Field(0, ge=0, description="Items finished successfully")
    error: int = Field(0, ge=0, description="Items that failed")

    def total(self) -> int:
        """Return the sum across every bucket.

        Returns:
            int: Total item count.
        """
        return (
            self.pending
            + self.optimizing
            + self.optimized
            + self.translating
            + self.completed
            + self.error
        )


class ProgressSnapshot(BaseSchema):
    """Point-in-time progress summary over a batch selection."""

    done: int = Field(..., ge=0, description="Items counted as done")
    total: int = Field(..., ge=0, description="Items in the selection")
    percent: int = Field(..., ge=0, le=100, description="Percent complete")
    counts: StatusCounts = Field(..., description="Counts per status bucket")

    @model_validator(mode="after")
    def validate_totals(self) -> ProgressSnapshot:
        """Ensure counts and done values agree with the total.

        Returns:
            ProgressSnapshot: Validated snapshot.

        Raises:
            ValueError: If counts do not sum to total or done exceeds total.
        """
        if self.counts.total() != self.total:
            raise ValueError("counts must sum to total")
        if self.done > self.total:
            raise ValueError("done must not exceed total")
        if self.total == 0 and self.percent != 0:
            raise ValueError("percent must be 0 when total is 0")
        return self

    def is_terminal(self) -> bool:
        """Return True when no selected item is waiting or in flight.

        Returns:
            bool: Whether observation can stop.
        """
        counts = self.counts
        return (
            counts.pending == 0 and counts.optimizing == 0 and counts.translating == 0
        )
