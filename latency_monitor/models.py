"""Window statistics models."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class RangeSnapshot(BaseModel):
    """One completed window of a metric stream.

    ``lowest``/``highest`` are None when the window saw no samples.
    """

    lowest: Optional[int] = None
    highest: Optional[int] = None
    sum: int = 0
    samples: int = Field(default=0, ge=0)

    @computed_field
    def mean(self) -> Optional[int]:
        if not self.samples:
            return None
        return self.sum // self.samples


class WindowSummary(BaseModel):
    latency: RangeSnapshot  # microseconds
    price: RangeSnapshot  # fixed-point cents
    ts: int  # wall clock ms at the tick

    @computed_field
    def datetime(self) -> datetime:
        return datetime.fromtimestamp(self.ts / 1000, tz=timezone.utc)
