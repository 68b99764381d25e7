"""Host boundary: endpoint/network interfaces and storage aggregates."""

from .interfaces import (
    Capabilities,
    Clock,
    NetworkView,
    PowerEndpoint,
    PowerNetwork,
    StorageDevice,
)
from .storage import has_storage, storage_level

__all__ = [
    "Capabilities",
    "Clock",
    "NetworkView",
    "PowerEndpoint",
    "PowerNetwork",
    "StorageDevice",
    "has_storage",
    "storage_level",
]
