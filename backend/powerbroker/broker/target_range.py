"""Ordered storage-target band used by a broker."""

from __future__ import annotations

from dataclasses import dataclass


def _clamp01(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


@dataclass
class StorageTargetRange:
    """Storage-fraction band ``[low, high]`` with ``0 <= low <= high <= 1``.

    A broker helps charge storage while the network level is at or below
    ``low`` and may stop once the level reaches ``high``.  Every mutation
    keeps the bounds ordered.
    """

    low: float = 0.0
    high: float = 1.0

    def __post_init__(self) -> None:
        self.set(self.low, self.high)

    def set(self, low: float, high: float) -> None:
        """Clamp both bounds to [0, 1] and reorder them if needed."""
        low, high = _clamp01(low), _clamp01(high)
        self.low, self.high = min(low, high), max(low, high)

    def set_low(self, value: float) -> None:
        """Move the lower bound, pushing the upper bound up if crossed."""
        self.low = _clamp01(value)
        self.high = max(self.low, self.high)

    def set_high(self, value: float) -> None:
        """Move the upper bound, pushing the lower bound down if crossed."""
        self.high = _clamp01(value)
        self.low = min(self.low, self.high)

    def as_tuple(self) -> tuple[float, float]:
        return (self.low, self.high)

    def copy(self) -> "StorageTargetRange":
        return StorageTargetRange(self.low, self.high)
