"""Host-facing interfaces consumed by the broker engine.

The engine never inspects host objects dynamically.  A host adapter
implements the narrow abstract bases below explicitly; everything the
balance loop needs (power flow, fuel/breakdown gates, actuation) is
reached through them.

Identity
--------
Every endpoint carries an opaque, hashable ``host_id`` naming the structure
it belongs to.  Brokers are bound to a ``host_id`` and re-resolve their
endpoint and network through :class:`NetworkView` on every use, because the
host may rewire networks at any time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Hashable, Optional, Sequence


# ======================================================================
# Capability descriptor
# ======================================================================

@dataclass(frozen=True)
class Capabilities:
    """Optional host behaviours present on one endpoint.

    Resolved once when a broker binds to its generator.

    Parameters
    ----------
    is_generator : bool
        The endpoint is a power plant (its positive flow counts as
        production).
    can_actuate : bool
        The endpoint exposes an on/off switch the broker may drive.
    has_fuel_gate : bool
        Output depends on fuel; :attr:`PowerEndpoint.has_fuel` is meaningful.
    has_breakdown_gate : bool
        The endpoint can break down; :attr:`PowerEndpoint.is_broken_down`
        is meaningful.
    """

    is_generator: bool = False
    can_actuate: bool = False
    has_fuel_gate: bool = False
    has_breakdown_gate: bool = False

    @property
    def is_controllable_generator(self) -> bool:
        """Whether a broker can manage this endpoint."""
        return self.is_generator and self.can_actuate


# ======================================================================
# Endpoints
# ======================================================================

class PowerEndpoint(ABC):
    """A producer or consumer connected to a power network."""

    @property
    @abstractmethod
    def host_id(self) -> Hashable:
        """Identity of the structure this endpoint belongs to."""

    @property
    @abstractmethod
    def capabilities(self) -> Capabilities:
        """Static capability descriptor."""

    @property
    @abstractmethod
    def is_on(self) -> bool:
        """Current power-flow state."""

    @property
    @abstractmethod
    def power_flow(self) -> float:
        """Signed power flow: negative consumes, positive produces."""

    @abstractmethod
    def desired_output(self) -> float:
        """Output the device's drive logic wants to deliver right now."""

    @abstractmethod
    def wants_power_flow(self) -> bool:
        """Whether the device requests power flow regardless of its state."""

    @abstractmethod
    def set_power_state(self, on: bool) -> None:
        """Switch power flow on or off, overriding any pending intent."""

    @property
    def has_fuel(self) -> bool:
        """Fuel available (only meaningful with ``has_fuel_gate``)."""
        return True

    @property
    def is_broken_down(self) -> bool:
        """Broken down (only meaningful with ``has_breakdown_gate``)."""
        return False


class StorageDevice(ABC):
    """A battery-like store attached to a network."""

    @property
    @abstractmethod
    def stored_energy(self) -> float:
        """Energy currently stored."""

    @property
    @abstractmethod
    def storage_capacity(self) -> float:
        """Maximum storable energy."""


# ======================================================================
# Networks and the host view
# ======================================================================

class PowerNetwork(ABC):
    """A set of electrically connected endpoints evaluated together."""

    @property
    @abstractmethod
    def network_id(self) -> Hashable:
        """Stable identity of this network for the current tick."""

    @abstractmethod
    def endpoints(self) -> Sequence[PowerEndpoint]:
        """All producer/consumer endpoints currently connected."""

    @abstractmethod
    def storage_devices(self) -> Sequence[StorageDevice]:
        """All storage devices currently connected."""


class NetworkView(ABC):
    """Point-in-time lookup of endpoints and networks by host identity."""

    @abstractmethod
    def endpoint(self, host_id: Hashable) -> Optional[PowerEndpoint]:
        """Return the endpoint of ``host_id`` or ``None`` if it is gone."""

    @abstractmethod
    def network_of(self, host_id: Hashable) -> Optional[PowerNetwork]:
        """Return the network ``host_id`` is connected to, if any."""


class Clock(ABC):
    """Host-provided discrete clock."""

    @property
    @abstractmethod
    def ticks(self) -> int:
        """Current tick."""
