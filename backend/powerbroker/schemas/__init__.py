from .broker import BrokerConfig, BrokerSnapshot
from .settings import PersistedSettings

__all__ = ["BrokerConfig", "BrokerSnapshot", "PersistedSettings"]
