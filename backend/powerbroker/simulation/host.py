"""In-memory host implementing the network interfaces.

Used by :class:`SimulationRunner` and the test-suite.  Power is in W and
stored energy in W-ticks unless the runner is given a different ``dt``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Optional

from powerbroker.network.interfaces import (
    Capabilities,
    Clock,
    NetworkView,
    PowerEndpoint,
    PowerNetwork,
    StorageDevice,
)


# ======================================================================
# Endpoints
# ======================================================================

class SimGenerator(PowerEndpoint):
    """Switchable generator with optional fuel and breakdown gates.

    Parameters
    ----------
    host_id : Hashable
        Structure identity.
    rated_output : float
        Output when on and functional (W).
    fuel : float or None
        Fuel units on board.  ``None`` means the generator needs no fuel.
    fuel_per_tick : float
        Fuel burnt per tick while producing.
    can_break_down : bool
        Whether the generator has a breakdown gate.
    switchable : bool
        Whether it exposes an on/off switch.
    switch_on : bool
        Initial switch position.
    """

    def __init__(
        self,
        host_id: Hashable,
        rated_output: float,
        fuel: Optional[float] = None,
        fuel_per_tick: float = 0.0,
        can_break_down: bool = False,
        switchable: bool = True,
        switch_on: bool = False,
    ) -> None:
        if rated_output < 0:
            raise ValueError(f"rated_output must be >= 0, got {rated_output}")
        self._host_id = host_id
        self.rated_output = rated_output
        self.fuel = fuel
        self.fuel_per_tick = fuel_per_tick
        self.broken_down = False
        self.switch_on = switch_on
        self.pending_switch: Optional[bool] = None
        self._capabilities = Capabilities(
            is_generator=True,
            can_actuate=switchable,
            has_fuel_gate=fuel is not None,
            has_breakdown_gate=can_break_down,
        )

    @property
    def host_id(self) -> Hashable:
        return self._host_id

    @property
    def capabilities(self) -> Capabilities:
        return self._capabilities

    @property
    def is_on(self) -> bool:
        return self.switch_on

    @property
    def has_fuel(self) -> bool:
        return self.fuel is None or self.fuel > 0

    @property
    def is_broken_down(self) -> bool:
        return self.broken_down

    @property
    def functional(self) -> bool:
        return self.has_fuel and not self.broken_down

    @property
    def power_flow(self) -> float:
        if self.switch_on and self.functional:
            return self.rated_output
        return 0.0

    def desired_output(self) -> float:
        return self.rated_output

    def wants_power_flow(self) -> bool:
        if self.pending_switch is not None:
            return self.pending_switch
        return self.switch_on

    def set_power_state(self, on: bool) -> None:
        self.switch_on = on
        self.pending_switch = None

    def burn_fuel(self) -> None:
        if self.fuel is not None and self.power_flow > 0:
            self.fuel = max(self.fuel - self.fuel_per_tick, 0.0)


class SimConsumer(PowerEndpoint):
    """Fixed load that loses power when the network cannot serve it."""

    def __init__(self, host_id: Hashable, demand: float, switch_on: bool = True) -> None:
        if demand < 0:
            raise ValueError(f"demand must be >= 0, got {demand}")
        self._host_id = host_id
        self.demand = demand
        self.switch_on = switch_on
        self.starved = False

    @property
    def host_id(self) -> Hashable:
        return self._host_id

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(can_actuate=True)

    @property
    def is_on(self) -> bool:
        return self.switch_on and not self.starved

    @property
    def power_flow(self) -> float:
        return -self.demand

    def desired_output(self) -> float:
        return 0.0

    def wants_power_flow(self) -> bool:
        return self.switch_on

    def set_power_state(self, on: bool) -> None:
        self.switch_on = on


class SimBattery(StorageDevice):
    """Lossless store with a fixed capacity."""

    def __init__(self, capacity: float, stored: float = 0.0) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self._capacity = capacity
        self._stored = min(max(stored, 0.0), capacity)

    @property
    def stored_energy(self) -> float:
        return self._stored

    @property
    def storage_capacity(self) -> float:
        return self._capacity

    def charge(self, energy: float) -> float:
        """Store up to ``energy``; returns the amount accepted."""
        accepted = min(max(energy, 0.0), self._capacity - self._stored)
        self._stored += accepted
        return accepted

    def discharge(self, energy: float) -> float:
        """Release up to ``energy``; returns the amount delivered."""
        delivered = min(max(energy, 0.0), self._stored)
        self._stored -= delivered
        return delivered


# ======================================================================
# Networks, host view, clock
# ======================================================================

@dataclass
class SimNetwork(PowerNetwork):
    """Mutable network of endpoints and batteries."""

    sim_id: Hashable
    members: list[PowerEndpoint] = field(default_factory=list)
    batteries: list[SimBattery] = field(default_factory=list)

    @property
    def network_id(self) -> Hashable:
        return self.sim_id

    def endpoints(self) -> list[PowerEndpoint]:
        return list(self.members)

    def storage_devices(self) -> list[SimBattery]:
        return list(self.batteries)


class SimHost(NetworkView):
    """Host world: networks, structures, and rewiring between ticks."""

    def __init__(self) -> None:
        self.networks: dict[Hashable, SimNetwork] = {}
        self._location: dict[Hashable, Hashable] = {}
        self._endpoints: dict[Hashable, PowerEndpoint] = {}
        self._replacements: dict[Hashable, Hashable] = {}

    def add_network(self, network_id: Hashable, batteries: Optional[list[SimBattery]] = None) -> SimNetwork:
        network = SimNetwork(sim_id=network_id, batteries=list(batteries or []))
        self.networks[network_id] = network
        return network

    def add(self, network_id: Hashable, endpoint: PowerEndpoint) -> PowerEndpoint:
        """Connect ``endpoint`` to ``network_id``."""
        if endpoint.host_id in self._endpoints:
            raise ValueError(f"Host {endpoint.host_id!r} already exists")
        self.networks[network_id].members.append(endpoint)
        self._endpoints[endpoint.host_id] = endpoint
        self._location[endpoint.host_id] = network_id
        return endpoint

    def remove(self, host_id: Hashable) -> None:
        """Destroy a structure."""
        endpoint = self._endpoints.pop(host_id)
        network_id = self._location.pop(host_id, None)
        if network_id is not None:
            self.networks[network_id].members.remove(endpoint)

    def disconnect(self, host_id: Hashable) -> None:
        """Cut a structure off every network; it still exists."""
        network_id = self._location.pop(host_id, None)
        if network_id is not None:
            self.networks[network_id].members.remove(self._endpoints[host_id])

    def move(self, host_id: Hashable, network_id: Hashable) -> None:
        """Rewire a structure onto another network."""
        self.disconnect(host_id)
        self.networks[network_id].members.append(self._endpoints[host_id])
        self._location[host_id] = network_id

    def replace(self, old_host_id: Hashable, network_id: Hashable, endpoint: PowerEndpoint) -> None:
        """Destroy ``old_host_id`` and build ``endpoint`` in its place."""
        self.remove(old_host_id)
        self.add(network_id, endpoint)
        self._replacements[old_host_id] = endpoint.host_id

    def replacement_for(self, host_id: Hashable) -> Optional[Hashable]:
        return self._replacements.get(host_id)

    # --- NetworkView ------------------------------------------------------

    def endpoint(self, host_id: Hashable) -> Optional[PowerEndpoint]:
        return self._endpoints.get(host_id)

    def network_of(self, host_id: Hashable) -> Optional[SimNetwork]:
        network_id = self._location.get(host_id)
        if network_id is None:
            return None
        return self.networks.get(network_id)


class SimClock(Clock):
    """Manually advanced tick counter."""

    def __init__(self, start: int = 0) -> None:
        self._ticks = start

    @property
    def ticks(self) -> int:
        return self._ticks

    def advance(self, n: int = 1) -> int:
        self._ticks += n
        return self._ticks
