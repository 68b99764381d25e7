"""Periodic balance loop for backup generators.

Every ``update_interval`` ticks the engine groups the registry's brokers by
network and, per network:

1. takes a snapshot of need, production and storage;
2. stops at most one running backup (weighted towards small producers);
3. starts at most one idle backup (weighted towards large producers).

Both decisions read the same snapshot.  Bounding each network to one stop
and one start per interval, together with the brokers' minimum on-time,
keeps generators from flapping.  Random weighted choice spreads usage over
equally suitable generators instead of always picking the same one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, Iterable, Optional

import numpy as np

from powerbroker.broker.generator_broker import GeneratorBroker
from powerbroker.broker.registry import BrokerRegistry
from powerbroker.config import Settings, settings as default_settings
from powerbroker.core.logging import evaluation_context
from powerbroker.network.interfaces import Clock, PowerNetwork

from .policies import (
    should_consider_shutdown,
    should_consider_startup,
    shutdown_candidates,
    shutdown_weight,
    startup_candidates,
    startup_weight,
)
from .snapshot import NetworkSnapshot, take_snapshot
from .weighted import choose_weighted

logger = logging.getLogger(__name__)


@dataclass
class NetworkDecision:
    """Outcome of evaluating one network."""

    network_id: Hashable
    need: float
    production: float
    has_storage: bool
    storage_level: float
    stopped: Optional[str] = None
    started: Optional[str] = None

    @property
    def acted(self) -> bool:
        return self.stopped is not None or self.started is not None


class BalanceEngine:
    """Start/stop decision loop over one domain's brokers.

    Parameters
    ----------
    registry : BrokerRegistry
        Live brokers of the domain.
    clock : Clock or None
        Host clock read by :meth:`tick`.  Not needed when calling
        :meth:`evaluate` directly.
    settings : Settings or None
        ``update_interval`` and ``minimum_on_time``.  Defaults to the
        module settings.
    rng : numpy.random.Generator or None
        Source of randomness for weighted choice.
    seed : int or None
        Seed for a fresh generator when ``rng`` is not given.
    """

    def __init__(
        self,
        registry: BrokerRegistry,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.registry = registry
        self.clock = clock
        self.settings = settings or default_settings
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self._last_run: Optional[int] = None

        # Cumulative bookkeeping.
        self.starts_count: int = 0
        self.stops_count: int = 0

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def due(self, now: int) -> bool:
        """Whether ``update_interval`` ticks have passed since the last run."""
        if self._last_run is None:
            return True
        return now - self._last_run >= self.settings.update_interval

    def tick(self) -> list[NetworkDecision]:
        """Run an evaluation if one is due at the clock's current tick."""
        if self.clock is None:
            raise RuntimeError("BalanceEngine has no clock. Pass one or call evaluate().")
        now = self.clock.ticks
        if not self.due(now):
            return []
        return self.evaluate(now)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, now: int) -> list[NetworkDecision]:
        """Evaluate every network that has at least one registered broker."""
        self._last_run = now
        decisions: list[NetworkDecision] = []
        with evaluation_context(self.registry.domain_id, now):
            for group in self.registry.group_by_network().values():
                decisions.append(self.evaluate_network(group.network, group.brokers, now))
        return decisions

    def evaluate_network(
        self,
        network: PowerNetwork,
        brokers: Iterable[GeneratorBroker],
        now: int,
    ) -> NetworkDecision:
        """Apply the shutdown and startup rules to one network."""
        snapshot = take_snapshot(network, brokers)
        decision = NetworkDecision(
            network_id=snapshot.network_id,
            need=snapshot.need,
            production=snapshot.production,
            has_storage=snapshot.has_storage,
            storage_level=snapshot.storage_level,
        )

        if should_consider_shutdown(snapshot):
            decision.stopped = self._stop_one(snapshot, now)

        if should_consider_startup(snapshot):
            decision.started = self._start_one(snapshot, now)

        logger.debug(
            "Network %s: need=%.1f production=%.1f storage=%.2f stopped=%s started=%s",
            snapshot.network_id, snapshot.need, snapshot.production,
            snapshot.storage_level, decision.stopped, decision.started,
            extra={
                "network": snapshot.network_id,
                "need": snapshot.need,
                "production": snapshot.production,
                "storage_level": snapshot.storage_level,
            },
        )
        return decision

    def _stop_one(self, snapshot: NetworkSnapshot, now: int) -> Optional[str]:
        candidates = shutdown_candidates(snapshot, now, self.settings.minimum_on_time)
        chosen = choose_weighted(
            candidates, [shutdown_weight(c) for c in candidates], self.rng
        )
        if chosen is None:
            return None
        chosen.broker.stop()
        self.stops_count += 1
        return chosen.broker.broker_id

    def _start_one(self, snapshot: NetworkSnapshot, now: int) -> Optional[str]:
        candidates = startup_candidates(snapshot)
        chosen = choose_weighted(
            candidates, [startup_weight(c) for c in candidates], self.rng
        )
        if chosen is None:
            return None
        chosen.broker.start(now)
        self.starts_count += 1
        return chosen.broker.broker_id

    def reset_accumulators(self) -> None:
        """Zero-out start/stop counters and the run schedule."""
        self.starts_count = 0
        self.stops_count = 0
        self._last_run = None
