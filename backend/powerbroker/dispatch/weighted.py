"""Weighted random selection."""

from __future__ import annotations

from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def choose_weighted(
    items: Sequence[T],
    weights: Sequence[float],
    rng: np.random.Generator,
) -> Optional[T]:
    """Pick one item with probability proportional to its weight.

    Items with a non-positive or non-finite weight are never picked.

    Returns
    -------
    T or None
        The chosen item, or ``None`` if nothing can be picked.
    """
    if len(items) == 0:
        return None

    w = np.asarray(weights, dtype=np.float64)
    if w.shape != (len(items),):
        raise ValueError(
            f"weights must have shape ({len(items)},), got {w.shape}"
        )

    w = np.where(np.isfinite(w) & (w > 0), w, 0.0)
    total = float(np.sum(w))
    if total <= 0:
        return None

    idx = int(rng.choice(len(items), p=w / total))
    return items[idx]
