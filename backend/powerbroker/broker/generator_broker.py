"""Per-generator broker: configuration, run-time guard, and actuation.

A broker wraps one backup generator.  It holds the generator's storage
target band and run-on-batteries-only flag, remembers when it last started
the generator (for the minimum-on-time guard), and is the only place that
switches the generator on or off.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Optional

from powerbroker.config import Settings, settings as default_settings
from powerbroker.network.interfaces import (
    Capabilities,
    NetworkView,
    PowerEndpoint,
    PowerNetwork,
)
from powerbroker.network.storage import storage_level
from powerbroker.schemas.broker import BrokerConfig, BrokerSnapshot

from .target_range import StorageTargetRange

logger = logging.getLogger(__name__)


class BrokerStatus(str, Enum):
    STANDBY = "standby"
    RUNNING = "running"
    ERROR = "error"


@dataclass(eq=False)
class GeneratorBroker:
    """Control wrapper around one backup generator.

    Parameters
    ----------
    host_id : Hashable
        Identity of the generator structure this broker drives.
    view : NetworkView
        Host lookup used to re-resolve the endpoint and network on every
        use.  The broker never holds on to either.
    capabilities : Capabilities
        Host behaviours resolved at bind time.
    storage_target_range : StorageTargetRange
        Storage band: help charge at or below ``low``, may stop at or
        above ``high``.
    run_on_batteries_only : bool
        Run while storage is below target even if production already
        covers demand.
    broker_id : str
        Stable identity of the broker.  Defaults to ``str(host_id)``.
    settings : Settings or None
        Source of ``minimum_on_time``.  Defaults to the module settings.
    """

    host_id: Hashable
    view: NetworkView = field(repr=False)
    capabilities: Capabilities = field(default_factory=Capabilities)
    storage_target_range: StorageTargetRange = field(default_factory=StorageTargetRange)
    run_on_batteries_only: bool = True
    broker_id: str = ""
    settings: Optional[Settings] = field(default=None, repr=False)

    # --- Runtime state (not constructor parameters) -----------------------
    last_start_tick: Optional[int] = field(default=None, init=False)

    def __post_init__(self) -> None:
        if not self.broker_id:
            self.broker_id = str(self.host_id)

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    @classmethod
    def try_bind(
        cls,
        view: NetworkView,
        host_id: Hashable,
        broker_id: str = "",
        config: Optional[BrokerConfig] = None,
        settings: Optional[Settings] = None,
    ) -> Optional["GeneratorBroker"]:
        """Bind a new broker to ``host_id``.

        Returns ``None`` unless the host is a generator with an on/off
        switch.
        """
        endpoint = view.endpoint(host_id)
        if endpoint is None or not endpoint.capabilities.is_controllable_generator:
            return None

        broker = cls(
            host_id=host_id,
            view=view,
            capabilities=endpoint.capabilities,
            broker_id=broker_id,
            settings=settings,
        )
        if config is not None:
            broker.apply_config(config)
        return broker

    def rebind(self, host_id: Hashable) -> bool:
        """Point this broker at a different host structure.

        State is left untouched when the new host cannot be driven.
        """
        endpoint = self.view.endpoint(host_id)
        if endpoint is None or not endpoint.capabilities.is_controllable_generator:
            return False
        self.host_id = host_id
        self.capabilities = endpoint.capabilities
        return True

    # ------------------------------------------------------------------
    # Host lookups (never cached)
    # ------------------------------------------------------------------

    @property
    def endpoint(self) -> Optional[PowerEndpoint]:
        return self.view.endpoint(self.host_id)

    @property
    def network(self) -> Optional[PowerNetwork]:
        return self.view.network_of(self.host_id)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_range(self, low: float, high: float) -> None:
        """Set the storage target band, clamped to [0, 1] and ordered."""
        self.storage_target_range.set(low, high)

    def copy_config_to(self, other: "GeneratorBroker") -> None:
        """Copy the storage target band (only) to ``other``."""
        other.storage_target_range = self.storage_target_range.copy()

    def to_config(self) -> BrokerConfig:
        return BrokerConfig(
            storage_target_range=self.storage_target_range.as_tuple(),
            run_on_batteries_only=self.run_on_batteries_only,
        )

    def apply_config(self, config: BrokerConfig) -> None:
        self.set_range(*config.storage_target_range)
        self.run_on_batteries_only = config.run_on_batteries_only

    # ------------------------------------------------------------------
    # Start / Stop
    # ------------------------------------------------------------------

    def can_stop(self, now: int, minimum_on_time: Optional[int] = None) -> bool:
        """Whether the generator has run long enough to be stopped.

        A broker that never started its generator may always stop it.
        """
        if self.last_start_tick is None:
            return True
        if minimum_on_time is None:
            minimum_on_time = (self.settings or default_settings).minimum_on_time
        return now - self.last_start_tick >= minimum_on_time

    def start(self, now: int) -> bool:
        """Record the start tick and switch the generator on.

        Returns
        -------
        bool
            Whether an on-command was actually issued.
        """
        self.last_start_tick = now
        return self._force(True)

    def stop(self) -> bool:
        """Switch the generator off.  Returns whether a command was issued."""
        return self._force(False)

    def _force(self, on: bool) -> bool:
        endpoint = self.endpoint
        if endpoint is None or not self.capabilities.can_actuate:
            return False
        if endpoint.is_on == on and endpoint.wants_power_flow() == on:
            return False
        endpoint.set_power_state(on)
        logger.debug("Broker %s switched %s", self.broker_id, "on" if on else "off",
                     extra={"broker": self.broker_id})
        return True

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> BrokerStatus:
        """Derived state of the generator, recomputed from the host."""
        endpoint = self.endpoint
        if endpoint is None:
            return BrokerStatus.STANDBY
        if self.capabilities.has_breakdown_gate and endpoint.is_broken_down:
            return BrokerStatus.ERROR
        if self.capabilities.has_fuel_gate and not endpoint.has_fuel:
            return BrokerStatus.ERROR
        if endpoint.is_on:
            return BrokerStatus.RUNNING
        return BrokerStatus.STANDBY

    def snapshot(self) -> BrokerSnapshot:
        """Serializable view of the broker for inspection and logging."""
        network = self.network
        return BrokerSnapshot(
            broker_id=self.broker_id,
            status=self.status().value,
            storage_target_range=self.storage_target_range.as_tuple(),
            run_on_batteries_only=self.run_on_batteries_only,
            last_start_tick=self.last_start_tick,
            network_id=None if network is None else str(network.network_id),
            storage_level=storage_level(network),
        )
