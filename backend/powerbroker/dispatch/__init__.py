"""Balance loop for backup generators.

* **snapshot** -- per-network need, production and storage readings.
* **policies** -- shutdown and startup eligibility rules.
* **weighted** -- weighted random choice among eligible brokers.
* **balance_engine** -- the periodic loop that ties them together.
"""

from .snapshot import (
    EndpointReading,
    NetworkSnapshot,
    consumption,
    current_production,
    potential_production,
    take_snapshot,
)
from .policies import (
    should_consider_shutdown,
    should_consider_startup,
    shutdown_candidates,
    startup_candidates,
)
from .weighted import choose_weighted
from .balance_engine import BalanceEngine, NetworkDecision

__all__ = [
    "EndpointReading",
    "NetworkSnapshot",
    "consumption",
    "current_production",
    "potential_production",
    "take_snapshot",
    "should_consider_shutdown",
    "should_consider_startup",
    "shutdown_candidates",
    "startup_candidates",
    "choose_weighted",
    "BalanceEngine",
    "NetworkDecision",
]
