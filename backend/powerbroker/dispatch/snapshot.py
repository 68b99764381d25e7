"""Point-in-time readings of one network.

Each endpoint contributes three numbers:

* **consumption** -- demand, counted even if the endpoint is momentarily
  starved, as long as it is on or wants to be.
* **current production** -- positive flow of a generator that is on.
* **potential production** -- what a generator could deliver if started,
  zero when fuel-starved or broken down.

Endpoints whose host identity matches a broker are tagged with it; the rest
are plain load or production.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Iterable, Optional

from powerbroker.broker.generator_broker import GeneratorBroker
from powerbroker.network.interfaces import PowerEndpoint, PowerNetwork
from powerbroker.network.storage import has_storage, storage_level

# Production below this is treated as "not producing".
PRODUCTION_EPSILON: float = 1e-6


def consumption(endpoint: PowerEndpoint) -> float:
    if not endpoint.is_on and not endpoint.wants_power_flow():
        return 0.0
    return max(-endpoint.power_flow, 0.0)


def current_production(endpoint: PowerEndpoint) -> float:
    if not endpoint.capabilities.is_generator or not endpoint.is_on:
        return 0.0
    return max(endpoint.power_flow, 0.0)


def potential_production(endpoint: PowerEndpoint) -> float:
    caps = endpoint.capabilities
    if not caps.is_generator:
        return 0.0
    if caps.has_fuel_gate and not endpoint.has_fuel:
        return 0.0
    if caps.has_breakdown_gate and endpoint.is_broken_down:
        return 0.0
    return max(endpoint.desired_output(), endpoint.power_flow, 0.0)


@dataclass
class EndpointReading:
    endpoint: PowerEndpoint
    broker: Optional[GeneratorBroker]
    consumption: float
    current_production: float
    potential_production: float

    @property
    def is_idle(self) -> bool:
        return abs(self.current_production) < PRODUCTION_EPSILON


@dataclass
class NetworkSnapshot:
    """Aggregate state of one network at the start of an evaluation."""

    network_id: Hashable
    readings: list[EndpointReading] = field(default_factory=list)
    need: float = 0.0
    production: float = 0.0
    has_storage: bool = False
    storage_level: float = 0.0

    @property
    def surplus(self) -> float:
        """Production minus need (negative when in deficit)."""
        return self.production - self.need

    def brokered(self) -> list[EndpointReading]:
        """Readings matched to a broker."""
        return [r for r in self.readings if r.broker is not None]


def take_snapshot(network: PowerNetwork, brokers: Iterable[GeneratorBroker]) -> NetworkSnapshot:
    """Read every endpoint of ``network`` and match it to ``brokers``."""
    by_host: dict[Hashable, GeneratorBroker] = {}
    for broker in brokers:
        by_host.setdefault(broker.host_id, broker)

    readings = [
        EndpointReading(
            endpoint=endpoint,
            broker=by_host.get(endpoint.host_id),
            consumption=consumption(endpoint),
            current_production=current_production(endpoint),
            potential_production=potential_production(endpoint),
        )
        for endpoint in network.endpoints()
    ]

    return NetworkSnapshot(
        network_id=network.network_id,
        readings=readings,
        need=sum(r.consumption for r in readings),
        production=sum(r.current_production for r in readings),
        has_storage=has_storage(network),
        storage_level=storage_level(network),
    )
