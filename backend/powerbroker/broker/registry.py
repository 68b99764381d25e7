"""Per-domain set of live brokers and grouping by network.

One :class:`BrokerRegistry` exists per domain (for example one per map).
It is created when the domain loads, passed explicitly to the balance
engine, and torn down when the domain unloads, so several domains can run
side by side without sharing state.

Misuse (``None`` brokers, duplicate registration, removing an absent
broker, registering after teardown) is reported once per error code and
otherwise ignored: the host may itself be half torn down when it notifies
us.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Hashable, Iterator, Optional

from powerbroker.core.logging import log_error_once
from powerbroker.network.interfaces import PowerNetwork

from .generator_broker import GeneratorBroker

logger = logging.getLogger(__name__)


class RegistryError(IntEnum):
    """Stable codes for registry misuse."""

    NULL_INSERT = 123411
    DUPLICATE_INSERT = 123412
    NULL_REMOVE = 123413
    ABSENT_REMOVE = 123414
    INSERT_AFTER_TEARDOWN = 123415


@dataclass
class NetworkGroup:
    """Brokers currently bound to one network."""

    network: PowerNetwork
    brokers: list[GeneratorBroker] = field(default_factory=list)

    @property
    def network_id(self) -> Hashable:
        return self.network.network_id


class BrokerRegistry:
    """Live brokers of one domain, keyed by broker identity.

    Parameters
    ----------
    domain_id : str
        Name of the owning domain, used in log records.
    """

    def __init__(self, domain_id: str = "default") -> None:
        self.domain_id: str = domain_id
        self._brokers: dict[str, GeneratorBroker] = {}
        self._closed: bool = False

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._brokers)

    def __contains__(self, broker: object) -> bool:
        if not isinstance(broker, GeneratorBroker):
            return False
        return self._brokers.get(broker.broker_id) is broker

    def __iter__(self) -> Iterator[GeneratorBroker]:
        return iter(list(self._brokers.values()))

    def get(self, broker_id: str) -> Optional[GeneratorBroker]:
        return self._brokers.get(broker_id)

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def register(self, broker: Optional[GeneratorBroker], force_regroup: bool = False) -> None:
        """Add ``broker``.

        With ``force_regroup`` any existing entry for this broker (under
        its identity, or under a stale key after a rebind) is removed first,
        so a generator whose network changed is picked up cleanly.
        """
        if broker is None:
            log_error_once(logger, RegistryError.NULL_INSERT,
                           "Tried registering a null broker in domain %s", self.domain_id)
            return

        if self._closed:
            log_error_once(logger, RegistryError.INSERT_AFTER_TEARDOWN,
                           "Tried registering broker %s in torn-down domain %s",
                           broker.broker_id, self.domain_id)
            return

        if force_regroup:
            self._discard(broker, include_key=True)

        existing = self._brokers.get(broker.broker_id)
        if existing is not None:
            log_error_once(logger, RegistryError.DUPLICATE_INSERT,
                           "Tried registering duplicate broker %s in domain %s",
                           broker.broker_id, self.domain_id)
            return

        self._brokers[broker.broker_id] = broker

    def deregister(self, broker: Optional[GeneratorBroker]) -> None:
        """Remove ``broker``; absent brokers are reported, not raised."""
        if broker is None:
            log_error_once(logger, RegistryError.NULL_REMOVE,
                           "Tried deregistering a null broker in domain %s", self.domain_id)
            return

        if not self._discard(broker):
            log_error_once(logger, RegistryError.ABSENT_REMOVE,
                           "Tried deregistering broker %s that is not registered in domain %s",
                           broker.broker_id, self.domain_id)

    def _discard(self, broker: GeneratorBroker, include_key: bool = False) -> bool:
        stale = [key for key, value in self._brokers.items()
                 if value is broker or (include_key and key == broker.broker_id)]
        for key in stale:
            del self._brokers[key]
        return bool(stale)

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------

    def group_by_network(self) -> dict[Hashable, NetworkGroup]:
        """Group live brokers by the network they are bound to right now.

        Brokers whose network cannot be resolved are left out for this
        pass.
        """
        groups: dict[Hashable, NetworkGroup] = {}
        for broker in list(self._brokers.values()):
            network = broker.network
            if network is None:
                continue
            group = groups.get(network.network_id)
            if group is None:
                group = groups[network.network_id] = NetworkGroup(network=network)
            group.brokers.append(broker)
        return groups

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def teardown(self) -> None:
        """Deregister every broker; failures are logged and skipped."""
        for broker in list(self._brokers.values()):
            try:
                self.deregister(broker)
            except Exception:
                logger.exception("Error deregistering broker %s during teardown of domain %s",
                                 broker.broker_id, self.domain_id)
        self._brokers.clear()
        self._closed = True
        logger.info("Broker registry for domain %s torn down", self.domain_id)
