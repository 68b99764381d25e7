"""Tick-by-tick driver for an in-memory host and a balance engine.

``SimulationRunner`` advances the clock, settles each network's energy
balance (generators feed loads, batteries absorb surplus or cover deficit,
unserved loads are starved), checks that every broker still has a host,
and lets the engine act.  It records per-tick time series for analysis.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

from powerbroker.broker.lifecycle import check_host
from powerbroker.dispatch.balance_engine import BalanceEngine
from powerbroker.network.storage import storage_level

from .host import SimClock, SimConsumer, SimGenerator, SimHost, SimNetwork

logger = logging.getLogger(__name__)


class SimulationRunner:
    """Drive ``engine`` against ``host`` for a number of ticks.

    Parameters
    ----------
    host : SimHost
        The simulated world.
    engine : BalanceEngine
        Engine whose registry holds brokers bound to ``host``.
    clock : SimClock
        Clock shared with ``engine``.
    dt : float
        Stored energy per unit of power per tick.
    on_tick : callable or None
        Hook ``on_tick(tick)`` called before settling, e.g. to vary load.
    """

    def __init__(
        self,
        host: SimHost,
        engine: BalanceEngine,
        clock: SimClock,
        dt: float = 1.0,
        on_tick: Optional[Callable[[int], None]] = None,
    ) -> None:
        if dt <= 0:
            raise ValueError(f"dt must be > 0, got {dt}")
        self.host = host
        self.engine = engine
        self.clock = clock
        self.dt = dt
        self.on_tick = on_tick

    # ------------------------------------------------------------------
    # Physics
    # ------------------------------------------------------------------

    def _settle(self, network: SimNetwork) -> tuple[float, float, float]:
        """Balance one network for one tick.

        Returns
        -------
        need, production, unmet : float
        """
        consumers = [e for e in network.members if isinstance(e, SimConsumer)]
        generators = [e for e in network.members if isinstance(e, SimGenerator)]

        need = sum(c.demand for c in consumers if c.switch_on)
        production = sum(g.power_flow for g in generators)
        net_energy = (production - need) * self.dt

        unmet = 0.0
        if net_energy >= 0:
            for battery in network.batteries:
                if net_energy <= 0:
                    break
                net_energy -= battery.charge(net_energy)
        else:
            deficit = -net_energy
            for battery in network.batteries:
                if deficit <= 0:
                    break
                deficit -= battery.discharge(deficit)
            unmet = max(deficit, 0.0) / self.dt

        starved = unmet > 1e-9
        for c in consumers:
            c.starved = starved and c.switch_on

        for g in generators:
            g.burn_fuel()

        return need, production, unmet

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self, n_ticks: int) -> dict[str, NDArray]:
        """Advance ``n_ticks`` ticks and return time series.

        Returns
        -------
        dict[str, ndarray]
            Keys (all ndarray of shape (n_ticks,)):

            * ``tick``                -- Clock value of each step.
            * ``need``                -- Total requested load.
            * ``production``          -- Total generator output.
            * ``unmet``               -- Load that could not be served.
            * ``storage_level``       -- Mean storage level over networks with storage.
            * ``running_generators``  -- Generators switched on after the engine acted.
            * ``starts`` / ``stops``  -- Commands issued this tick.
        """
        if n_ticks < 0:
            raise ValueError(f"n_ticks must be >= 0, got {n_ticks}")

        tick = np.zeros(n_ticks, dtype=np.int64)
        need = np.zeros(n_ticks, dtype=np.float64)
        production = np.zeros(n_ticks, dtype=np.float64)
        unmet = np.zeros(n_ticks, dtype=np.float64)
        level = np.zeros(n_ticks, dtype=np.float64)
        running = np.zeros(n_ticks, dtype=np.int64)
        starts = np.zeros(n_ticks, dtype=np.int64)
        stops = np.zeros(n_ticks, dtype=np.int64)

        registry = self.engine.registry

        for t in range(n_ticks):
            now = self.clock.advance()
            tick[t] = now

            if self.on_tick is not None:
                self.on_tick(now)

            levels = []
            for network in self.host.networks.values():
                n, p, u = self._settle(network)
                need[t] += n
                production[t] += p
                unmet[t] += u
                if network.batteries:
                    levels.append(storage_level(network))
            level[t] = float(np.mean(levels)) if levels else 0.0

            for broker in registry:
                check_host(registry, broker, self.host.replacement_for(broker.host_id))

            decisions = self.engine.tick()
            starts[t] = sum(1 for d in decisions if d.started is not None)
            stops[t] = sum(1 for d in decisions if d.stopped is not None)

            running[t] = sum(
                1
                for network in self.host.networks.values()
                for e in network.members
                if isinstance(e, SimGenerator) and e.is_on
            )

        logger.info(
            "Simulated %d ticks: %d starts, %d stops",
            n_ticks, int(starts.sum()), int(stops.sum()),
        )

        return {
            "tick": tick,
            "need": need,
            "production": production,
            "unmet": unmet,
            "storage_level": level,
            "running_generators": running,
            "starts": starts,
            "stops": stops,
        }
