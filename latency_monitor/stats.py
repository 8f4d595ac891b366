"""Running min/max/mean over a summary window."""

from typing import Optional

from latency_monitor.models import RangeSnapshot


class StatsAggregator:
    """Accumulates one metric stream until the next snapshot.

    Every folded value participates, including negative ones (a latency can be
    negative under clock skew).
    """

    def __init__(self, name: str):
        self.name = name
        self.reset()

    def reset(self) -> None:
        self.lowest: Optional[int] = None
        self.highest: Optional[int] = None
        self.sum = 0
        self.samples = 0

    def fold(self, value: int) -> None:
        if self.lowest is None or value < self.lowest:
            self.lowest = value
        if self.highest is None or value > self.highest:
            self.highest = value

        self.sum += value
        self.samples += 1

    def snapshot(self) -> RangeSnapshot:
        return RangeSnapshot(
            lowest=self.lowest,
            highest=self.highest,
            sum=self.sum,
            samples=self.samples,
        )

    def snapshot_and_reset(self) -> RangeSnapshot:
        """Return the current window and start a new, empty one."""
        window = self.snapshot()
        self.reset()
        return window

    def __repr__(self) -> str:
        return (
            f"StatsAggregator({self.name!r}, lowest={self.lowest}, "
            f"highest={self.highest}, sum={self.sum}, samples={self.samples})"
        )
