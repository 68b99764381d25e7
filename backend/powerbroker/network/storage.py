"""Network-level storage aggregates."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .interfaces import PowerNetwork


def has_storage(network: Optional[PowerNetwork]) -> bool:
    """Whether any storage device is connected to ``network``."""
    if network is None:
        return False
    return len(network.storage_devices()) > 0


def storage_level(network: Optional[PowerNetwork]) -> float:
    """Fraction of total storage capacity currently filled.

    Sums stored energy and capacity over every storage device on the
    network.  Returns 0.0 for an absent network, a network without storage,
    or storage with zero total capacity.

    Returns
    -------
    float
        Storage level in [0, 1].
    """
    if network is None:
        return 0.0

    devices = network.storage_devices()
    if not devices:
        return 0.0

    stored = np.array([d.stored_energy for d in devices], dtype=np.float64)
    capacity = np.array([d.storage_capacity for d in devices], dtype=np.float64)

    total_capacity = float(np.sum(capacity))
    if total_capacity <= 0:
        return 0.0

    return float(np.clip(np.sum(stored) / total_capacity, 0.0, 1.0))
