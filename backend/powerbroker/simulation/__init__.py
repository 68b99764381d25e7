"""In-memory host and tick-by-tick simulation runner."""

from .host import SimBattery, SimClock, SimConsumer, SimGenerator, SimHost, SimNetwork
from .runner import SimulationRunner

__all__ = [
    "SimBattery",
    "SimClock",
    "SimConsumer",
    "SimGenerator",
    "SimHost",
    "SimNetwork",
    "SimulationRunner",
]
