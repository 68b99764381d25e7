"""Generator brokers, the per-domain registry, and attach/detach handling."""

from .target_range import StorageTargetRange
from .generator_broker import BrokerStatus, GeneratorBroker
from .registry import BrokerRegistry, NetworkGroup, RegistryError
from .lifecycle import DetachReason, attach, check_host, detach, reattach

__all__ = [
    "StorageTargetRange",
    "BrokerStatus",
    "GeneratorBroker",
    "BrokerRegistry",
    "NetworkGroup",
    "RegistryError",
    "DetachReason",
    "attach",
    "check_host",
    "detach",
    "reattach",
]
